"""Tests for the provider client using an in-process httpx transport."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List

import httpx
import pytest

from skilllead.config import Settings
from skilllead.credentials import CredentialHolder
from skilllead.errors import CredentialError, TransportError
from skilllead.provider_client import ProviderClient


def _sse(*contents: str) -> bytes:
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": content}}]})
        for content in contents
    ]
    lines.append("data: [DONE]")
    return ("\n".join(lines) + "\n").encode("utf-8")


def _client(tmp_path: Path, handler, key: str | None = "sk-test") -> ProviderClient:
    credentials = CredentialHolder(tmp_path / "key.enc")
    if key:
        credentials.save(key)
    transport = httpx.MockTransport(handler)
    return ProviderClient(credentials, Settings(), client=httpx.AsyncClient(transport=transport))


@pytest.mark.asyncio
async def test_complete_sends_request_and_reads_message(tmp_path: Path) -> None:
    captured: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "{}"}}]})

    provider = _client(tmp_path, handler)

    result = await provider.complete([{"role": "user", "content": "Analyse me"}])

    assert result == "{}"
    request = captured[0]
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4-turbo-preview"
    assert body["stream"] is False
    assert body["max_tokens"] == 4000
    assert body["temperature"] == 0.7
    assert body["messages"] == [{"role": "user", "content": "Analyse me"}]


@pytest.mark.asyncio
async def test_streaming_reports_incremental_text(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["max_tokens"] == 2000
        return httpx.Response(200, content=_sse("Hel", "lo"), headers={"content-type": "text/event-stream"})

    provider = _client(tmp_path, handler)
    seen: List[str] = []

    result = await provider.complete([{"role": "user", "content": "hi"}], stream=True, on_text=seen.append)

    assert result == "Hello"
    assert seen == ["Hel", "Hello"]


@pytest.mark.asyncio
async def test_error_body_becomes_transport_error(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"message": "Rate limit reached"}})

    provider = _client(tmp_path, handler)

    with pytest.raises(TransportError) as excinfo:
        await provider.complete([{"role": "user", "content": "hi"}], stream=True)

    assert excinfo.value.status_code == 429
    assert "Rate limit reached" in excinfo.value.message
    assert excinfo.value.retryable is True


@pytest.mark.asyncio
async def test_unparseable_error_body_uses_generic_message(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="nope")

    provider = _client(tmp_path, handler)

    with pytest.raises(TransportError) as excinfo:
        await provider.complete([{"role": "user", "content": "hi"}])

    assert excinfo.value.status_code == 401
    assert excinfo.value.retryable is False


@pytest.mark.asyncio
async def test_network_failure_becomes_transport_error(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = _client(tmp_path, handler)

    with pytest.raises(TransportError) as excinfo:
        await provider.complete([{"role": "user", "content": "hi"}])

    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_missing_key_raises_credential_error(tmp_path: Path) -> None:
    provider = _client(tmp_path, lambda request: httpx.Response(200), key=None)

    with pytest.raises(CredentialError):
        await provider.complete([{"role": "user", "content": "hi"}])


@pytest.mark.asyncio
async def test_api_key_probe(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["max_tokens"] == 5
        if request.headers["Authorization"] == "Bearer sk-good":
            return httpx.Response(200, json={"choices": []})
        return httpx.Response(401, json={"error": {"message": "Incorrect API key"}})

    provider = _client(tmp_path, handler, key=None)

    assert await provider.test_api_key("sk-good") is True
    assert await provider.test_api_key("sk-bad") is False
