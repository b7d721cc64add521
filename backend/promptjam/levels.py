"""Level-pack catalog.

The catalog is a JSON object mapping a pack name to an ordered list of
problems, each ``{"level": <int>, "problem": <str>}``. ``level`` may be
omitted, in which case the problem's position (1-based) is used.
"""

import json
from typing import Dict, List, Optional, Tuple

from promptjam.errors import LevelCatalogError
from promptjam.models import Problem


class LevelCatalog:
    def __init__(self, packs: Dict[str, Tuple[Problem, ...]]):
        self._packs = dict(packs)

    def names(self) -> List[str]:
        return list(self._packs)

    def get(self, name: str) -> Optional[Tuple[Problem, ...]]:
        return self._packs.get(name)

    def __contains__(self, name) -> bool:
        return name in self._packs

    def __len__(self) -> int:
        return len(self._packs)

    def to_dict(self):
        return {
            'levelPacks': [
                {'name': name, 'levels': len(levels)} for name, levels in self._packs.items()
            ]
        }


def parse_catalog(data) -> LevelCatalog:
    if not isinstance(data, dict) or not data:
        raise LevelCatalogError('Level catalog must be a non-empty JSON object of level packs')
    packs = {}
    for name, entries in data.items():
        if not isinstance(entries, list):
            raise LevelCatalogError(f'Level pack {name!r} must be a list of problems')
        problems = []
        for idx, entry in enumerate(entries, start=1):
            if not isinstance(entry, dict) or not isinstance(entry.get('problem'), str):
                raise LevelCatalogError(f'Level {idx} of pack {name!r} has no problem text')
            level = entry.get('level', idx)
            if not isinstance(level, int) or isinstance(level, bool):
                raise LevelCatalogError(f'Level {idx} of pack {name!r} has a non-integer level number')
            problems.append(Problem(level=level, problem=entry['problem']))
        packs[name] = tuple(problems)
    return LevelCatalog(packs)


def load_catalog(path: str) -> LevelCatalog:
    """Read and validate the catalog file; any failure is a LevelCatalogError."""
    try:
        with open(path, encoding='utf-8') as fh:
            data = json.load(fh)
    except (OSError, ValueError) as exc:
        raise LevelCatalogError(f'Could not read level catalog {path}: {exc}') from exc
    return parse_catalog(data)
