"""LLM-powered people, tag and summary extraction from a narrative."""

import re

import structlog

from llm import LLMError, LLMRateLimitError, generate_async
from retry import llm_retry

from .errors import ExtractionFailed

logger = structlog.get_logger()

_PEOPLE_SYSTEM = """You extract the names of people mentioned in a note about a social interaction.

Rules:
- List only other people, by the name used in the note.
- The author of the note ("I", "me", "myself") is never a person to list.
- Output the names separated by commas, nothing else.
- If no one else is mentioned, output: none"""

_TAGS_SYSTEM = """You label a note about a social interaction with event tags.

Rules:
- Choose {count} tags describing what kind of interaction it was.
- Each tag is 1-3 words.
{vocabulary}- Output the tags separated by commas, nothing else."""

_TAGS_VOCABULARY = "- Only use tags from this list: {tags}\n"

_SUMMARY_SYSTEM = """Summarize this note about a social interaction in one sentence of at most 50 characters.
Output only the sentence."""

_SPLIT = re.compile(r"[,，、;；\n]")
_STRIP = " \t-*•·\"'“”‘’「」『』。."
_NONE_REPLIES = {"none", "no one", "nobody", "n/a", "无", "没有"}
DEFAULT_SELF_ALIASES = ("i", "me", "myself", "我", "本人")
SUMMARY_MAX_CHARS = 50


def split_reply(reply: str) -> list[str]:
    """Split a delimited model reply into distinct, cleaned items."""
    items = []
    for part in _SPLIT.split(reply or ""):
        item = part.strip().strip(_STRIP).strip()
        if item and item.lower() not in _NONE_REPLIES:
            items.append(item)
    return list(dict.fromkeys(items))


class EntityExtractor:
    """Extracts mentioned people, event tags and a short summary.

    Upstream failures are never swallowed here: rate limits are retried with
    backoff, anything else surfaces as ExtractionFailed so the caller keeps
    the captured text.
    """

    def __init__(
        self,
        provider=None,
        self_aliases: list[str] | None = None,
        uncategorized_tag: str = "uncategorized",
        max_tags: int = 5,
        people_temperature: float = 0.3,
        tags_temperature: float = 0.5,
        summary_temperature: float = 0.5,
        retry_attempts: int = 3,
        retry_min_wait: float = 2.0,
        retry_max_wait: float = 30.0,
    ):
        self._provider = provider
        self.self_aliases = {a.lower() for a in DEFAULT_SELF_ALIASES}
        self.self_aliases.update(a.strip().lower() for a in self_aliases or [] if a.strip())
        self.uncategorized_tag = uncategorized_tag
        self.max_tags = max_tags
        self.people_temperature = people_temperature
        self.tags_temperature = tags_temperature
        self.summary_temperature = summary_temperature
        self._retry = llm_retry(
            max_attempts=retry_attempts,
            min_wait=retry_min_wait,
            max_wait=retry_max_wait,
            exceptions=(LLMRateLimitError,),
        )

    def _get_provider(self):
        if self._provider:
            return self._provider
        from llm.factory import create_cheap_provider

        return create_cheap_provider()

    async def extract_people(self, text: str) -> list[str]:
        if not text or not text.strip():
            return []
        reply = await self._generate("extract_people", _PEOPLE_SYSTEM, text, self.people_temperature)
        people = [p for p in split_reply(reply) if p.lower() not in self.self_aliases]
        logger.debug("extraction.people", count=len(people))
        return people

    async def extract_tags(self, text: str, allowed_tags: list[str] | None = None) -> list[str]:
        """Event tags for ``text``; a subset of ``allowed_tags`` when one is given."""
        if not text or not text.strip():
            return [self.uncategorized_tag]

        if allowed_tags:
            vocabulary = _TAGS_VOCABULARY.format(tags=", ".join(allowed_tags))
        else:
            vocabulary = ""
        system = _TAGS_SYSTEM.format(count=f"1-{self.max_tags}", vocabulary=vocabulary)
        reply = await self._generate("extract_tags", system, text, self.tags_temperature)

        if allowed_tags:
            tags = self._constrain(split_reply(reply), allowed_tags)
        else:
            tags = [
                t for t in split_reply(reply)
                if len(t.split()) <= 3 and not t.replace(".", "").isdigit()
            ][: self.max_tags]
        logger.debug("extraction.tags", count=len(tags), constrained=bool(allowed_tags))
        return tags or [self.uncategorized_tag]

    async def summarize(self, text: str) -> str:
        if not text or not text.strip():
            return ""
        reply = await self._generate("summarize", _SUMMARY_SYSTEM, text, self.summary_temperature)
        summary = (reply or "").strip().strip("\"'“”")
        return summary[:SUMMARY_MAX_CHARS]

    def _constrain(self, tags: list[str], allowed_tags: list[str]) -> list[str]:
        # Vocabulary spelling wins over the model's
        by_lower = {}
        for allowed in allowed_tags:
            by_lower.setdefault(allowed.lower(), allowed)
        matched = [by_lower[t.lower()] for t in tags if t.lower() in by_lower]
        return list(dict.fromkeys(matched))[: self.max_tags]

    async def _generate(self, operation: str, system: str, text: str, temperature: float) -> str:
        @self._retry
        async def call() -> str:
            return await generate_async(
                self._get_provider(),
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": text},
                ],
                max_tokens=300,
                temperature=temperature,
            )

        try:
            return await call()
        except LLMError as e:
            logger.warning("extraction_failed", operation=operation, error=str(e))
            raise ExtractionFailed(operation, str(e)) from e
