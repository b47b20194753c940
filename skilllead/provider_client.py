"""HTTP client for the chat-completions provider."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional, Sequence, Union

import httpx
from pydantic import BaseModel

from .config import Settings, get_settings
from .constants import API_KEY_PROBE_MAX_TOKENS, API_KEY_PROBE_MESSAGE
from .credentials import CredentialHolder
from .errors import CredentialError, TransportError
from .stream_decoder import StreamDecoder, TextCallback

logger = logging.getLogger(__name__)


class ProviderMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


MessageInput = Union[ProviderMessage, Dict[str, str]]


class ProviderClient:
    """Sends chat requests with the key held by a :class:`CredentialHolder`.

    Failures come back as :class:`TransportError` carrying the provider's own
    error message and status; the client never retries.
    """

    def __init__(
        self,
        credentials: CredentialHolder,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.credentials = credentials
        self.settings = settings or get_settings()
        self._client = client

    async def complete(
        self,
        messages: Sequence[MessageInput],
        *,
        stream: bool = False,
        on_text: Optional[TextCallback] = None,
    ) -> str:
        key = self.credentials.read()
        if not key:
            raise CredentialError("Provider API key not found. Configure your API key in Settings.")

        body = self._request_body(messages, stream=stream)
        local_client = self._client or httpx.AsyncClient(timeout=self.settings.provider_timeout_seconds)
        close_client = self._client is None
        try:
            if stream:
                return await self._stream(local_client, key, body, on_text)
            response = await local_client.post(self.settings.provider_url, headers=_headers(key), json=body)
            if response.is_error:
                raise _transport_error(response)
            return _message_content(response)
        except httpx.HTTPError as exc:
            raise TransportError(f"Provider request failed: {exc}") from exc
        finally:
            if close_client:
                await local_client.aclose()

    async def test_api_key(self, key: str) -> bool:
        """Probe the provider with a tiny request; any failure means the key is unusable."""
        body = {
            "model": self.settings.provider_model,
            "messages": [{"role": "user", "content": API_KEY_PROBE_MESSAGE}],
            "max_tokens": API_KEY_PROBE_MAX_TOKENS,
        }
        local_client = self._client or httpx.AsyncClient(timeout=self.settings.provider_timeout_seconds)
        close_client = self._client is None
        try:
            response = await local_client.post(self.settings.provider_url, headers=_headers(key), json=body)
        except httpx.HTTPError as exc:
            logger.warning("API key test failed: %s", exc)
            return False
        finally:
            if close_client:
                await local_client.aclose()
        if response.is_error:
            logger.info("API key rejected by provider (status=%s)", response.status_code)
            return False
        return True

    async def _stream(
        self,
        client: httpx.AsyncClient,
        key: str,
        body: Dict[str, Any],
        on_text: Optional[TextCallback],
    ) -> str:
        async with client.stream("POST", self.settings.provider_url, headers=_headers(key), json=body) as response:
            if response.is_error:
                await response.aread()
                raise _transport_error(response)
            decoder = StreamDecoder()
            text = await decoder.decode(response.aiter_bytes(), on_text)
        logger.debug(
            "Stream finished (fragments=%s, skipped=%s, done=%s)",
            decoder.fragments,
            decoder.skipped_frames,
            decoder.done,
        )
        return text

    def _request_body(self, messages: Sequence[MessageInput], *, stream: bool) -> Dict[str, Any]:
        payload: List[Dict[str, str]] = [ProviderMessage.model_validate(message).model_dump() for message in messages]
        return {
            "model": self.settings.provider_model,
            "messages": payload,
            "stream": stream,
            "temperature": self.settings.provider_temperature,
            "max_tokens": self.settings.stream_max_tokens if stream else self.settings.complete_max_tokens,
        }


def _headers(key: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {key}", "Content-Type": "application/json"}


def _transport_error(response: httpx.Response) -> TransportError:
    message = "Request failed"
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            message = str(error["message"])
    logger.warning("Provider returned %s: %s", response.status_code, message)
    return TransportError(f"Provider API error: {message}", status_code=response.status_code)


def _message_content(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError as exc:
        raise TransportError("Provider returned a non-JSON response.", status_code=response.status_code) from exc
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices:
        return ""
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""


__all__ = ["ProviderClient", "ProviderMessage"]
