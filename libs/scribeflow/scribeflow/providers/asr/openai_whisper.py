"""OpenAI-compatible Whisper transcription provider (Groq, OpenAI, vLLM)."""

from __future__ import annotations

import logging
import time

import httpx

from scribeflow.models.transcription import TranscriptionOptions, TranscriptionResult
from scribeflow.providers.asr.base import TranscriptionProvider
from scribeflow.utils.audio import DEFAULT_AUDIO_FORMAT, mime_type_for, sniff_audio_format

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"

# Client errors worth another attempt; every other 4xx is permanent.
_RETRYABLE_CLIENT_STATUSES = {408, 409, 425, 429}


def _format_http_error(response: httpx.Response) -> str:
    status = response.status_code
    reason = response.reason_phrase
    detail = ""
    try:
        body = response.json()
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict):
                detail = str(err.get("message") or "").strip()
            elif err:
                detail = str(err).strip()
    except ValueError:
        detail = response.text.strip()
    if detail:
        if len(detail) > 2000:
            detail = detail[:2000] + "…"
        return f"HTTP {status} {reason}: {detail}"
    return f"HTTP {status} {reason}"


def _is_retryable_status(status: int) -> bool:
    return status >= 500 or status in _RETRYABLE_CLIENT_STATUSES


class OpenAIWhisperProvider(TranscriptionProvider):
    """Whisper transcription over the OpenAI `/audio/transcriptions` API.

    Each call uploads one self-contained payload as multipart form data. The
    upload filename carries the sniffed container extension because several
    backends pick their demuxer from it.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        api_key: str = "",
        model: str = "whisper-large-v3-turbo",
        timeout: float = 120.0,
        provider: str = "openai_whisper",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            base_url: API base URL (e.g. https://api.groq.com/openai/v1)
            api_key: Bearer token; omitted from requests when empty
            model: Default model when options do not name one
            timeout: Request timeout in seconds
            provider: Name used in logs and error messages
            client: Pre-built client (tests inject one with a mock transport)
        """
        self.name = provider
        self.base_url = (str(base_url or "").strip() or DEFAULT_BASE_URL).rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = float(timeout)
        self._client = client

    def _headers(self) -> dict[str, str]:
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    def _form_data(self, options: TranscriptionOptions) -> dict[str, str]:
        data = {
            "model": options.model or self.model,
            "response_format": options.response_format,
            "temperature": str(float(options.temperature)),
        }
        if options.language:
            data["language"] = options.language
        if options.prompt:
            data["prompt"] = options.prompt
        return data

    async def transcribe(
        self,
        payload: bytes,
        options: TranscriptionOptions | None = None,
    ) -> TranscriptionResult:
        options = options or TranscriptionOptions()
        if not payload:
            return TranscriptionResult.failure("empty audio payload", retryable=False)

        fmt = sniff_audio_format(payload) or DEFAULT_AUDIO_FORMAT
        files = {"file": (f"audio.{fmt}", payload, mime_type_for(fmt))}
        client = await self._get_client()
        started = time.monotonic()
        try:
            response = await client.post(
                f"{self.base_url}/audio/transcriptions",
                headers=self._headers(),
                files=files,
                data=self._form_data(options),
            )
        except httpx.HTTPError as exc:
            message = f"{self.name} transcription failed: {str(exc) or exc.__class__.__name__}"
            logger.warning("transcription request error (provider=%s, error=%s)", self.name, exc)
            return TranscriptionResult.failure(message)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        if response.is_error:
            status = response.status_code
            logger.warning(
                "transcription http error (provider=%s, status=%s, latency_ms=%d)",
                self.name,
                status,
                elapsed_ms,
            )
            return TranscriptionResult.failure(
                f"{self.name} transcription failed: {_format_http_error(response)}",
                retryable=_is_retryable_status(status),
            )

        logger.debug(
            "transcription ok (provider=%s, bytes=%d, latency_ms=%d)",
            self.name,
            len(payload),
            elapsed_ms,
        )
        return self._parse_response(response, options)

    def _parse_response(self, response: httpx.Response, options: TranscriptionOptions) -> TranscriptionResult:
        if options.response_format not in {"json", "verbose_json"}:
            return TranscriptionResult.ok(response.text.strip(), language=options.language)
        try:
            body = response.json()
        except ValueError:
            return TranscriptionResult.ok(response.text.strip(), language=options.language)
        if not isinstance(body, dict):
            return TranscriptionResult.ok(str(body).strip(), language=options.language)

        duration = body.get("duration")
        return TranscriptionResult.ok(
            str(body.get("text") or "").strip(),
            duration=float(duration) if duration is not None else None,
            language=body.get("language") or options.language,
        )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
