"""Thin client for a local Ollama server."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from pos_api.config import settings

logger = logging.getLogger(__name__)

_FENCED_JSON_RE = re.compile(r'```json\s*([\s\S]*?)\s*```')
_FENCED_RE = re.compile(r'```\s*([\s\S]*?)\s*```')
_BRACES_RE = re.compile(r'\{[\s\S]*\}')


class LlmError(RuntimeError):
    pass


@dataclass(frozen=True)
class LlmResponse:
    raw: str
    parsed: dict | None


def parse_json_reply(raw: str) -> dict | None:
    """Pull a JSON object out of a model reply, tolerating markdown fences and chatter."""
    candidates = []
    for pattern in (_FENCED_JSON_RE, _FENCED_RE):
        match = pattern.search(raw)
        if match:
            candidates.append(match.group(1))
    candidates.append(raw)
    match = _BRACES_RE.search(raw)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate.strip())
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


class LlmService:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.ollama_base_url).rstrip('/')
        self.model = model or settings.ollama_model
        self.timeout_seconds = timeout_seconds or settings.ollama_timeout_seconds

    def _call(self, path: str, *, payload: dict | None = None, timeout: float) -> dict:
        req = Request(
            url=f'{self.base_url}{path}',
            data=json.dumps(payload).encode('utf-8') if payload is not None else None,
            headers={'Content-Type': 'application/json'},
            method='POST' if payload is not None else 'GET',
        )
        try:
            with urlopen(req, timeout=timeout) as response:
                return json.loads(response.read().decode('utf-8'))
        except HTTPError as exc:
            body = exc.read().decode('utf-8', errors='ignore') if exc.fp else ''
            raise LlmError(f'Ollama API error: {exc.code} - {body}') from exc
        except URLError as exc:
            raise LlmError(f'Ollama network error: {exc.reason}') from exc
        except (TimeoutError, ValueError) as exc:
            raise LlmError(f'LLM request failed: {exc}') from exc

    def is_available(self) -> bool:
        try:
            self._call('/api/tags', timeout=5)
        except LlmError as exc:
            logger.info('Ollama not reachable at %s: %s', self.base_url, exc)
            return False
        return True

    def get_models(self) -> list[str]:
        try:
            parsed = self._call('/api/tags', timeout=10)
        except LlmError as exc:
            logger.error('Failed to get models: %s', exc)
            return []
        return [model.get('name') for model in parsed.get('models', []) if model.get('name')]

    def generate(self, prompt: str, system: str | None = None) -> LlmResponse:
        logger.info('Sending prompt to LLM (model: %s, %s characters)', self.model, len(prompt))
        payload = {
            'model': self.model,
            'prompt': prompt,
            'stream': False,
            # Low temperature keeps the JSON shape stable between calls.
            'options': {'temperature': 0.1, 'num_predict': 2048},
        }
        if system:
            payload['system'] = system
        parsed_body = self._call('/api/generate', payload=payload, timeout=self.timeout_seconds)

        raw = parsed_body.get('response') or ''
        logger.info('LLM response received (%s characters)', len(raw))
        parsed = parse_json_reply(raw) if raw else None
        if raw and parsed is None:
            logger.warning('Could not parse LLM response as JSON')
        return LlmResponse(raw=raw, parsed=parsed)
