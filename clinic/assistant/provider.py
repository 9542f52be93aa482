"""
Client for the Generative Language API (Gemini).

Only ``streamGenerateContent`` with ``alt=sse`` is used.  The response is
a server-sent event stream whose ``data:`` lines each carry one partial
``GenerateContentResponse``; :meth:`GeminiClient.stream` flattens those
into the individual content parts (text, function calls, thought
signatures) in arrival order.
"""
import json
import logging
from typing import Iterator, Optional

import requests
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder

logger = logging.getLogger(__name__)

API_ROOT = 'https://generativelanguage.googleapis.com/v1beta'

QUOTA_EXCEEDED = 'QUOTA_EXCEEDED'
RATE_LIMITED = 'RATE_LIMITED'
UNKNOWN_ERROR = 'UNKNOWN_ERROR'


class AssistantError(Exception):
    """Provider failure carrying a client facing code."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def as_dict(self) -> dict:
        return {'error': self.message, 'code': self.code}


def classify_error(message: str, status: Optional[int] = None) -> str:
    # quota is checked first: Gemini reports exhausted quota as a 429 too
    text = message or ''
    if 'RESOURCE_EXHAUSTED' in text or 'quota' in text.lower():
        return QUOTA_EXCEEDED
    if status == 429 or '429' in text or 'Too Many Requests' in text:
        return RATE_LIMITED
    return UNKNOWN_ERROR


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return f"{resp.status_code} {resp.reason}: {resp.text[:500]}"
    if isinstance(data, list) and data:
        data = data[0]
    err = data.get('error') if isinstance(data, dict) else None
    if isinstance(err, dict):
        return f"{err.get('status') or resp.status_code}: {err.get('message') or resp.reason}"
    return f"{resp.status_code} {resp.reason}"


class GeminiClient:
    def __init__(self, api_key: str, model: str = 'gemini-2.5-flash', timeout: float = 30,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> 'GeminiClient':
        return cls(
            api_key=settings.GOOGLE_GENERATIVE_AI_API_KEY,
            model=settings.ASSISTANT_MODEL,
            timeout=settings.ASSISTANT_TIMEOUT,
        )

    def stream(self, *, system: str, contents: list, tools: list) -> Iterator[dict]:
        """Yield content parts of one model response; raises :class:`AssistantError`."""
        body = {
            'systemInstruction': {'parts': [{'text': system}]},
            'contents': contents,
        }
        if tools:
            body['tools'] = [{'functionDeclarations': tools}]
        url = f"{API_ROOT}/models/{self.model}:streamGenerateContent"
        try:
            resp = self.session.post(
                url,
                params={'alt': 'sse'},
                headers={'x-goog-api-key': self.api_key, 'Content-Type': 'application/json'},
                data=json.dumps(body, cls=DjangoJSONEncoder),
                timeout=self.timeout,
                stream=True,
            )
        except requests.RequestException as e:
            logger.error('assistant provider request failed: %s', e)
            raise AssistantError(classify_error(str(e)), str(e)) from e

        with resp:
            if resp.status_code >= 400:
                message = _error_message(resp)
                logger.error('assistant provider error status=%s: %s', resp.status_code, message)
                raise AssistantError(classify_error(message, resp.status_code), message)
            # SSE is always UTF-8; the content type carries no charset.
            resp.encoding = 'utf-8'
            yield from self._parts(resp)

    def _parts(self, resp: requests.Response) -> Iterator[dict]:
        for line in resp.iter_lines(decode_unicode=True):
            if not line or not line.startswith('data:'):
                continue
            payload = line[5:].strip()
            if not payload:
                continue
            try:
                chunk = json.loads(payload)
            except ValueError:
                logger.warning('assistant provider sent malformed event: %.200s', payload)
                continue
            if 'error' in chunk:
                err = chunk['error'] or {}
                message = f"{err.get('status', 'ERROR')}: {err.get('message', '')}"
                raise AssistantError(classify_error(message, err.get('code')), message)
            for candidate in chunk.get('candidates') or []:
                for part in (candidate.get('content') or {}).get('parts') or []:
                    yield part
                if candidate.get('finishReason'):
                    logger.info('assistant step finished: reason=%s usage=%s',
                                candidate['finishReason'], chunk.get('usageMetadata'))
