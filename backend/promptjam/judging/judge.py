"""Ranking and explaining submissions with an LLM, plus the fail-soft wrapper."""

import json
import logging
import random
import re
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from promptjam.errors import JudgingUnavailable
from promptjam.judging.client import DEFAULT_BASE_URL, DEFAULT_MODEL, GeminiClient

FALLBACK_REASON = 'The AI judge was unavailable, so this ranking was drawn at random.'


class TextClient(Protocol):
    def complete(self, prompt: str, *, json_output: bool = False) -> str:
        """Return the model's text for a prompt."""


class Judge(Protocol):
    def rank(self, submissions: Sequence[Mapping[str, str]], problem: str) -> List[Dict[str, str]]:
        """Return ``{id, name, reason}`` entries ordered best to worst."""

    def explain(self, winning_text: str, problem: str) -> str:
        """Return a reference solution produced from the winning prompt."""


def _ranking_prompt(submissions: Sequence[Mapping[str, str]], problem: str) -> str:
    listing = json.dumps(
        [{'id': s['id'], 'name': s['name'], 'prompt': s['text']} for s in submissions],
        indent=2,
    )
    return (
        'You are the judge of a prompt-writing party game.\n'
        f'The players were asked to write a prompt for this problem:\n{problem}\n\n'
        f'Their prompts:\n{listing}\n\n'
        'Rank every prompt from best to worst by how well it would make an AI solve the problem.\n'
        'Return only a JSON array. Each element must be an object with the keys '
        '"id", "name" and "reason" (one or two sentences of feedback for that player). '
        'Include every player exactly once.'
    )


def _solution_prompt(winning_text: str, problem: str) -> str:
    return (
        f'Problem:\n{problem}\n\n'
        'Follow this prompt to solve the problem. Answer concisely.\n\n'
        f'{winning_text}'
    )


def _extract_json_array(raw: str) -> List[Any]:
    raw = raw.strip()
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        match = re.search(r'\[[\s\S]*\]', raw)
        if not match:
            raise JudgingUnavailable('No JSON array found in judge output.')
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise JudgingUnavailable(f'Judge output was not valid JSON: {exc}') from exc
    if isinstance(parsed, dict):
        parsed = parsed.get('rankings')
    if not isinstance(parsed, list):
        raise JudgingUnavailable('Judge output must be a JSON array.')
    return parsed


def validate_ranking(ranking: Any, submissions: Sequence[Mapping[str, str]]) -> List[Dict[str, str]]:
    """Check that ``ranking`` names every submission exactly once."""
    if not isinstance(ranking, list):
        raise JudgingUnavailable('Ranking must be a list.')
    expected = {s['id'] for s in submissions}
    seen = set()
    cleaned = []
    for entry in ranking:
        if not isinstance(entry, dict):
            raise JudgingUnavailable('Ranking entries must be objects.')
        entry_id = entry.get('id')
        if not isinstance(entry_id, str) or entry_id not in expected or entry_id in seen:
            raise JudgingUnavailable(f'Ranking names unknown or repeated id {entry_id!r}.')
        seen.add(entry_id)
        cleaned.append({
            'id': entry_id,
            'name': str(entry.get('name', '')),
            'reason': str(entry.get('reason', '')),
        })
    if seen != expected:
        raise JudgingUnavailable('Ranking is missing submissions.')
    return cleaned


class LLMJudge:
    """Judge backed by a text-generation client. Every failure raises."""

    def __init__(self, client: TextClient):
        self.client = client

    def rank(self, submissions: Sequence[Mapping[str, str]], problem: str) -> List[Dict[str, str]]:
        raw = self.client.complete(_ranking_prompt(submissions, problem), json_output=True)
        return validate_ranking(_extract_json_array(raw), submissions)

    def explain(self, winning_text: str, problem: str) -> str:
        text = self.client.complete(_solution_prompt(winning_text, problem)).strip()
        if not text:
            raise JudgingUnavailable('Judge returned an empty solution.')
        return text


class FailSoftJudge:
    """Wraps a judge so gameplay never stalls on it.

    One attempt per call. A failed ranking becomes a shuffled order with a
    placeholder reason; a failed explanation becomes a placeholder naming the
    winning prompt.
    """

    def __init__(
        self,
        judge: Judge,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.judge = judge
        self.rng = rng or random.Random()
        self.logger = logger or logging.getLogger(__name__)

    def rank(self, submissions: Sequence[Mapping[str, str]], problem: str) -> List[Dict[str, str]]:
        try:
            return validate_ranking(self.judge.rank(submissions, problem), submissions)
        except Exception as exc:
            self.logger.warning(f'[judge-fallback] rank failed, using random order: {exc}')
            fallback = [
                {'id': s['id'], 'name': s['name'], 'reason': FALLBACK_REASON} for s in submissions
            ]
            self.rng.shuffle(fallback)
            return fallback

    def explain(self, winning_text: str, problem: str) -> str:
        try:
            return self.judge.explain(winning_text, problem)
        except Exception as exc:
            self.logger.warning(f'[judge-fallback] explain failed: {exc}')
            return f'The AI could not produce a solution right now. The winning prompt was: "{winning_text}"'


def build_judge(config: Mapping[str, Any], logger: Optional[logging.Logger] = None) -> FailSoftJudge:
    client = GeminiClient(
        api_key=config.get('GEMINI_API_KEY'),
        model=config.get('GEMINI_MODEL', DEFAULT_MODEL),
        base_url=config.get('GEMINI_BASE_URL', DEFAULT_BASE_URL),
        timeout_sec=float(config.get('JUDGE_TIMEOUT_SEC', 30)),
    )
    return FailSoftJudge(LLMJudge(client), logger=logger)
