"""Capture routes: voice notes and typed notes in, interaction records out."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from capture.errors import (
    CaptureInputError,
    ExtractionFailed,
    PersistencePartialFailure,
    TranscriptionFailed,
)
from capture.models import CaptureOutcome
from capture.pipeline import CapturePipeline
from web.deps import get_owner_id, get_pipeline
from web.models import CaptureResponse, CaptureText, RecordResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/api/captures", tags=["captures"])


def _to_response(outcome: CaptureOutcome) -> CaptureResponse:
    session = outcome.session
    return CaptureResponse(
        session_id=session.session_id,
        kind=session.kind.value,
        degraded=session.degraded,
        provisional_people=session.provisional_people,
        provisional_tags=session.provisional_tags,
        records=[RecordResponse.from_record(r) for r in outcome.records],
    )


def _http_error(
    e: CaptureInputError | TranscriptionFailed | ExtractionFailed | PersistencePartialFailure,
) -> HTTPException:
    if isinstance(e, CaptureInputError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, TranscriptionFailed):
        return HTTPException(status_code=502, detail=str(e))
    if isinstance(e, ExtractionFailed):
        session = e.session
        return HTTPException(
            status_code=502,
            detail={
                "error": str(e),
                "operation": e.operation,
                "raw_text": session.raw_text if session else None,
                "narrative_text": session.narrative_text if session else None,
            },
        )
    # PersistencePartialFailure
    return HTTPException(
        status_code=500,
        detail={
            "error": str(e),
            "saved": e.saved,
            "total": e.total,
            "record_ids": [r.id for r in e.records],
        },
    )


@router.post("/text", response_model=CaptureResponse, status_code=status.HTTP_201_CREATED)
async def capture_text(
    body: CaptureText,
    owner_id: str = Depends(get_owner_id),
    pipeline: CapturePipeline = Depends(get_pipeline),
):
    try:
        outcome = await pipeline.capture_text(owner_id, body.text)
    except (CaptureInputError, ExtractionFailed, PersistencePartialFailure) as e:
        raise _http_error(e)
    return _to_response(outcome)


@router.post("/audio", response_model=CaptureResponse, status_code=status.HTTP_201_CREATED)
async def capture_audio(
    request: Request,
    owner_id: str = Depends(get_owner_id),
    pipeline: CapturePipeline = Depends(get_pipeline),
):
    """Raw audio body; the Content-Type header names the audio format."""
    audio = await request.body()
    content_type = request.headers.get("content-type") or "audio/webm"
    try:
        outcome = await pipeline.capture_audio(owner_id, audio, content_type)
    except (
        CaptureInputError,
        TranscriptionFailed,
        ExtractionFailed,
        PersistencePartialFailure,
    ) as e:
        raise _http_error(e)
    return _to_response(outcome)
