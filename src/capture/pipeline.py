"""Capture pipeline: orchestrates transcribe -> normalize -> extract -> materialize."""

import asyncio

import structlog

from contacts.tags import TagStore
from observability import metrics
from shared_types import CaptureKind, PipelineStage, TagKind

from .errors import CaptureInputError, ExtractionFailed
from .extractor import EntityExtractor
from .materializer import RecordMaterializer
from .models import CaptureOutcome, CaptureSession
from .normalizer import TranscriptNormalizer

logger = structlog.get_logger()


class CapturePipeline:
    """Runs one capture through every stage, carrying state in a CaptureSession.

    ``analyze_text`` does everything short of persistence, so an abandoned
    session leaves nothing behind. ``commit`` writes the records.
    """

    def __init__(
        self,
        normalizer: TranscriptNormalizer,
        extractor: EntityExtractor,
        materializer: RecordMaterializer,
        tag_store: TagStore,
        transcriber=None,
        max_text_chars: int = 6000,
    ):
        self.normalizer = normalizer
        self.extractor = extractor
        self.materializer = materializer
        self.tags = tag_store
        self.transcriber = transcriber
        self.max_text_chars = max_text_chars

    async def analyze_text(
        self, owner_id: str, text: str, kind: CaptureKind = CaptureKind.TEXT
    ) -> CaptureSession:
        if not text or not text.strip():
            raise CaptureInputError("capture text is empty")
        if len(text) > self.max_text_chars:
            raise CaptureInputError(
                f"capture text is too long ({len(text)} > {self.max_text_chars} chars)"
            )

        session = CaptureSession(owner_id=owner_id, kind=kind, raw_text=text)
        log = logger.bind(session_id=session.session_id, kind=kind.value)

        with metrics.timer("capture.normalize"):
            normalized = await self.normalizer.normalize(text)
        session.narrative_text = normalized.narrative_text
        session.provisional_people = normalized.provisional_people
        session.provisional_tags = normalized.provisional_tags
        session.degraded = normalized.degraded
        session.stage = PipelineStage.NORMALIZED
        if normalized.degraded:
            metrics.counter("capture.degraded")
        log.info("capture.stage", stage=session.stage.value, degraded=session.degraded)

        allowed = await self.tags.list_tags(owner_id, TagKind.EVENT)
        body = session.analysis_text
        with metrics.timer("capture.extract"):
            people, tags, summary = await asyncio.gather(
                self.extractor.extract_people(body),
                self.extractor.extract_tags(body, allowed),
                self.extractor.summarize(body),
                return_exceptions=True,
            )

        for result in (people, tags):
            if isinstance(result, BaseException):
                metrics.counter("capture.extraction_failed")
                if isinstance(result, ExtractionFailed):
                    result.session = session
                    raise result
                raise ExtractionFailed("extract", str(result), session=session) from result
        if isinstance(summary, BaseException):
            log.warning("summary_failed", error=str(summary))
            summary = None

        session.people = people
        session.tags = tags
        session.summary = summary or None
        session.stage = PipelineStage.EXTRACTED
        log.info(
            "capture.stage",
            stage=session.stage.value,
            people=len(people),
            tags=len(tags),
            chars=len(body),
        )
        return session

    async def commit(self, session: CaptureSession) -> CaptureOutcome:
        with metrics.timer("capture.materialize"):
            result = await self.materializer.materialize(
                owner_id=session.owner_id,
                raw_text=session.raw_text,
                narrative_text=session.analysis_text,
                tags=session.tags,
                people=session.people,
                summary=session.summary,
            )
        session.stage = PipelineStage.MATERIALIZED
        metrics.counter("capture.records", result.saved)
        logger.info(
            "capture.committed",
            session_id=session.session_id,
            records=result.saved,
        )
        return CaptureOutcome(session=session, records=result.records)

    async def capture_text(self, owner_id: str, text: str) -> CaptureOutcome:
        session = await self.analyze_text(owner_id, text)
        return await self.commit(session)

    async def capture_audio(
        self, owner_id: str, audio: bytes, content_type: str = "audio/webm"
    ) -> CaptureOutcome:
        """Transcribe a voice note, then run it through the text path."""
        if not audio:
            raise CaptureInputError("audio is empty")
        if self.transcriber is None:
            raise CaptureInputError("audio capture is not configured")

        with metrics.timer("capture.transcribe"):
            transcript = await self.transcriber.transcribe(audio, content_type=content_type)
        logger.info("capture.stage", stage=PipelineStage.TRANSCRIBED.value, chars=len(transcript.text))
        if not transcript.text.strip():
            raise CaptureInputError("transcript is empty")

        session = await self.analyze_text(owner_id, transcript.text, kind=CaptureKind.AUDIO)
        return await self.commit(session)
