"""Gemini ``generateContent`` client."""

from typing import Any, Dict, Optional

import requests

from promptjam.errors import JudgingUnavailable

DEFAULT_MODEL = 'gemini-2.5-pro'
DEFAULT_BASE_URL = 'https://generativelanguage.googleapis.com/v1beta'

SAFETY_SETTINGS = [
    {'category': 'HARM_CATEGORY_HARASSMENT', 'threshold': 'BLOCK_ONLY_HIGH'},
    {'category': 'HARM_CATEGORY_HATE_SPEECH', 'threshold': 'BLOCK_ONLY_HIGH'},
]


def _extract_text(response: Dict[str, Any]) -> str:
    candidates = response.get('candidates') or []
    if not candidates:
        raise JudgingUnavailable('Gemini response did not include candidates.')
    parts = (candidates[0].get('content') or {}).get('parts') or []
    text = ''.join(part.get('text', '') for part in parts if isinstance(part, dict))
    if not text.strip():
        raise JudgingUnavailable('Gemini response contained no text.')
    return text


class GeminiClient:
    """Single-shot text generation against the Gemini REST API."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout_sec: float = 30.0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout_sec = timeout_sec

    def complete(self, prompt: str, *, json_output: bool = False) -> str:
        if not self.api_key:
            raise JudgingUnavailable('GEMINI_API_KEY is not configured.')
        payload: Dict[str, Any] = {
            'contents': [{'role': 'user', 'parts': [{'text': prompt}]}],
            'safetySettings': SAFETY_SETTINGS,
        }
        if json_output:
            payload['generationConfig'] = {'responseMimeType': 'application/json'}
        url = f"{self.base_url.rstrip('/')}/models/{self.model}:generateContent"
        try:
            res = requests.post(
                url,
                json=payload,
                headers={'x-goog-api-key': self.api_key},
                timeout=self.timeout_sec,
            )
        except requests.RequestException as exc:
            raise JudgingUnavailable(f'Network error calling {url}: {exc}') from exc
        if res.status_code >= 400:
            raise JudgingUnavailable(f'HTTP {res.status_code} from {url}: {res.text[:500]}')
        try:
            body = res.json()
        except ValueError as exc:
            raise JudgingUnavailable(f'Non-JSON response from {url}') from exc
        return _extract_text(body)
