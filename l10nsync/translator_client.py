"""Chat-completion translation provider backed by ``requests``."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from l10nsync.errors import ProviderError, TransportError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_TIMEOUT = 45


class ChatCompletionTranslator:
    """Translate one text per request through an OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not (api_key or "").strip():
            raise ValidationError("Please enter your API key.")
        self.api_key = api_key.strip()
        self.model = model or DEFAULT_MODEL
        self.api_url = api_url.strip() if api_url and api_url.strip() else DEFAULT_API_URL
        self.timeout = timeout
        self._session = session or requests.Session()

    def translate(self, text: str, target_language: str, system_instructions: str) -> str:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_instructions},
                {"role": "user", "content": text},
            ],
        }

        try:
            response = self._session.post(
                self.api_url, headers=headers, json=payload, timeout=self.timeout
            )
        except requests.exceptions.Timeout as exc:
            raise TransportError("Translation request timed out.") from exc
        except requests.exceptions.RequestException as exc:
            raise TransportError(f"Network error or translation request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ProviderError(
                f"Translation API returned HTTP {response.status_code}: {_error_detail(response)}"
            )

        try:
            result = response.json()
        except ValueError as exc:
            raise ProviderError(f"Could not decode translation response: {response.text}") from exc

        return _extract_content(result)


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text


def _extract_content(result: Any) -> str:
    if not isinstance(result, dict):
        raise ProviderError(f"Translation API returned an unexpected body: {result!r}")
    choices = result.get("choices")
    if not isinstance(choices, list) or not choices:
        error = result.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        raise ProviderError(f"Translation API returned no choices: {message or result}")
    choice = choices[0]
    if not isinstance(choice, dict):
        raise ProviderError(f"Translation API returned a malformed choice: {choice!r}")
    message = choice.get("message")
    if not isinstance(message, dict):
        raise ProviderError(f"Translation API returned a malformed message: {message!r}")
    content = message.get("content")
    if content is None:
        reason = choice.get("finish_reason", "no content in message")
        raise ProviderError(f"Translation API returned no content ({reason})")
    return str(content).strip()


__all__ = ["ChatCompletionTranslator", "DEFAULT_API_URL", "DEFAULT_MODEL"]
