from __future__ import annotations

import httpx
import pytest

from scribeflow.models.transcription import TranscriptionOptions
from scribeflow.providers.asr.openai_whisper import OpenAIWhisperProvider
from scribeflow.utils.audio import encode_wav


def _provider(handler, **kwargs) -> OpenAIWhisperProvider:  # noqa: ANN001
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenAIWhisperProvider("https://api.example.test/v1/", client=client, **kwargs)


@pytest.mark.asyncio
async def test_transcribe_posts_multipart_and_parses_verbose_json() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = request.read()
        return httpx.Response(200, json={"text": " hallo wereld ", "duration": 3.5, "language": "dutch"})

    wav = encode_wav(b"\x00\x00" * 160, sample_rate=16000, channels=1)
    async with _provider(handler, api_key="k-123") as provider:
        result = await provider.transcribe(wav, TranscriptionOptions(language="nl", prompt="vergadering"))

    assert result.success
    assert result.transcript == "hallo wereld"
    assert result.duration == 3.5
    assert result.language == "dutch"
    assert seen["url"] == "https://api.example.test/v1/audio/transcriptions"
    assert seen["auth"] == "Bearer k-123"
    body = seen["body"]
    assert b'filename="audio.wav"' in body
    assert b"whisper-large-v3-turbo" in body
    assert b"verbose_json" in body
    assert b"vergadering" in body


@pytest.mark.asyncio
async def test_unknown_container_uses_m4a_filename_and_no_auth_header() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = request.read()
        return httpx.Response(200, json={"text": "ok"})

    async with _provider(handler) as provider:
        result = await provider.transcribe(b"\x00\x01\x02\x03opaque")

    assert result.success
    assert seen["auth"] is None
    assert b'filename="audio.m4a"' in seen["body"]


@pytest.mark.asyncio
async def test_server_error_is_reported_as_retryable_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": {"message": "over capacity"}})

    async with _provider(handler, provider="groq") as provider:
        result = await provider.transcribe(b"RIFF0000WAVEdata")

    assert not result.success
    assert result.retryable
    assert result.error == "groq transcription failed: HTTP 503 Service Unavailable: over capacity"


@pytest.mark.asyncio
async def test_client_error_is_not_retryable_but_rate_limit_is() -> None:
    statuses = iter([400, 429])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(next(statuses), text="nope")

    async with _provider(handler) as provider:
        bad = await provider.transcribe(b"ID3xxxx")
        limited = await provider.transcribe(b"ID3xxxx")

    assert not bad.success and bad.retryable is False
    assert not limited.success and limited.retryable is True
    assert "HTTP 400" in (bad.error or "")


@pytest.mark.asyncio
async def test_transport_error_is_returned_not_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _provider(handler) as provider:
        result = await provider.transcribe(b"OggSxxxx")

    assert not result.success
    assert result.retryable
    assert "connection refused" in (result.error or "")


@pytest.mark.asyncio
async def test_text_response_format_returns_raw_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="plain transcript\n")

    async with _provider(handler) as provider:
        result = await provider.transcribe(b"fLaCxxxx", TranscriptionOptions(response_format="text"))

    assert result.transcript == "plain transcript"


@pytest.mark.asyncio
async def test_empty_payload_fails_without_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    async with _provider(handler) as provider:
        result = await provider.transcribe(b"")

    assert not result.success
    assert result.retryable is False
