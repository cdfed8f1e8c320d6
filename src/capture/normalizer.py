"""Turn a raw spoken transcript into a clean narrative."""

import json

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from llm import LLMError, generate_async

from .errors import NormalizationDegraded
from .models import NormalizedTranscript

logger = structlog.get_logger()

_NORMALIZE_SYSTEM = """You tidy up spoken notes about a social interaction.

Given a raw transcript, rewrite it as a short flowing narrative.

Rules:
- Remove filler words, false starts and repetitions ("um", "uh", "like", "you know").
- Merge fragments into complete sentences. Keep the speaker's own words where possible.
- Prefix a line with "Name:" only when it is unambiguous who is speaking.
- Do NOT invent events, names or details that are not in the transcript.
- The person recording the note is "I"/"me". Never list them as a person.
- "people": the names of other people mentioned.
- "tags": up to 5 short labels (1-3 words) describing the kind of interaction.
- Output ONLY a JSON object. No preamble, no markdown fences.

Example output:
{"organizedText": "Had lunch with Ana. She is moving to Lisbon in May.", "people": ["Ana"], "tags": ["lunch", "moving"]}"""


class _NormalizePayload(BaseModel):
    """Strict shape of the normalization reply."""

    model_config = ConfigDict(extra="ignore", strict=True)

    organized_text: str = Field(alias="organizedText")
    people: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


def strip_fences(response: str) -> str:
    """Remove a surrounding markdown code fence from a model reply."""
    text = response.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[-1]
    if text.endswith("```"):
        text = text.rsplit("```", 1)[0]
    return text.strip()


class TranscriptNormalizer:
    """Cleans a transcript into narrative text. Never raises on model trouble."""

    def __init__(self, provider=None, temperature: float = 0.3, max_tokens: int = 1500):
        self._provider = provider
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _get_provider(self):
        if self._provider:
            return self._provider
        from llm.factory import create_cheap_provider

        return create_cheap_provider()

    async def normalize(self, text: str) -> NormalizedTranscript:
        if not text or not text.strip():
            return NormalizedTranscript(narrative_text="")

        try:
            response = await generate_async(
                self._get_provider(),
                messages=[
                    {"role": "system", "content": _NORMALIZE_SYSTEM},
                    {"role": "user", "content": f"Transcript:\n\n{text}"},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            payload = self._parse_response(response)
        except (LLMError, NormalizationDegraded) as e:
            logger.warning("normalization_degraded", error=str(e), chars=len(text))
            return NormalizedTranscript(narrative_text=text, degraded=True)

        narrative = payload.organized_text.strip() or text
        return NormalizedTranscript(
            narrative_text=narrative,
            provisional_people=_clean(payload.people),
            provisional_tags=_clean(payload.tags),
        )

    @staticmethod
    def _parse_response(response: str) -> _NormalizePayload:
        text = strip_fences(response or "")
        try:
            return _NormalizePayload.model_validate(json.loads(text))
        except json.JSONDecodeError as e:
            raise NormalizationDegraded(f"reply is not JSON: {text[:80]!r}") from e
        except ValidationError as e:
            raise NormalizationDegraded(f"reply does not match schema: {e.error_count()} errors") from e


def _clean(values: list[str]) -> list[str]:
    return list(dict.fromkeys(v.strip() for v in values if v and v.strip()))
