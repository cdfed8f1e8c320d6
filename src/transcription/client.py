"""Speech-to-text client for OpenAI-compatible /audio/transcriptions endpoints."""

import mimetypes
from dataclasses import dataclass

import httpx
import structlog

from capture.errors import TranscriptionFailed

logger = structlog.get_logger()

_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
}


@dataclass
class TranscriptionResult:
    text: str


def _filename_for(content_type: str) -> str:
    base = content_type.split(";", 1)[0].strip().lower()
    ext = _EXTENSIONS.get(base)
    if not ext:
        guessed = mimetypes.guess_extension(base) or ".webm"
        ext = guessed.lstrip(".")
    return f"recording.{ext}"


class TranscriptionClient:
    """Async client for a hosted ASR model (StepFun step-asr by default)."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.stepfun.com/v1",
        model: str = "step-asr",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config) -> "TranscriptionClient":
        t = config.transcription
        return cls(
            api_key=t.api_key, base_url=t.base_url, model=t.model, timeout=t.timeout_seconds
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def transcribe(
        self, audio: bytes, content_type: str = "audio/webm"
    ) -> TranscriptionResult:
        """Upload an audio clip and return its transcript.

        Raises:
            TranscriptionFailed: missing key, transport error, non-2xx status,
                or a body without a ``text`` field.
        """
        if not self.api_key:
            raise TranscriptionFailed(None, "transcription service not configured")

        files = {"file": (_filename_for(content_type), audio, content_type)}
        data = {"model": self.model, "response_format": "json"}
        headers = {"Authorization": f"Bearer {self.api_key}"}

        logger.info(
            "transcription.request", model=self.model, size=len(audio), content_type=content_type
        )
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/audio/transcriptions",
                    data=data,
                    files=files,
                    headers=headers,
                )
        except httpx.HTTPError as e:
            logger.warning("transcription.transport_error", error=str(e))
            raise TranscriptionFailed(None, str(e)) from e

        if response.status_code >= 400:
            logger.warning(
                "transcription.http_error",
                status=response.status_code,
                body=response.text[:200],
            )
            raise TranscriptionFailed(response.status_code, response.text[:500])

        try:
            payload = response.json()
        except ValueError as e:
            raise TranscriptionFailed(response.status_code, "response was not JSON") from e

        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise TranscriptionFailed(response.status_code, "response had no text field")

        logger.info("transcription.complete", chars=len(text))
        return TranscriptionResult(text=text)
