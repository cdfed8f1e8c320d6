"""Service status and consistency checks."""

from fastapi import APIRouter, Depends

from capture.reconciler import ReconciliationHandler
from llm import provider_configured
from settings import RapportConfig
from transcription import TranscriptionClient
from web.deps import get_config, get_owner_id, get_reconciler, get_transcriber
from web.models import InconsistencyResponse, StatusResponse

router = APIRouter(prefix="/api", tags=["status"])


@router.get("/status", response_model=StatusResponse)
async def service_status(
    config: RapportConfig = Depends(get_config),
    transcriber: TranscriptionClient = Depends(get_transcriber),
):
    """Whether the AI services are configured."""
    return StatusResponse(
        llm_configured=provider_configured(config.llm.provider, config.llm.api_key),
        transcription_configured=transcriber.configured,
    )


@router.get("/inconsistencies", response_model=list[InconsistencyResponse])
async def list_inconsistencies(
    owner_id: str = Depends(get_owner_id),
    reconciler: ReconciliationHandler = Depends(get_reconciler),
):
    """States left behind by a failed reconciliation; retry reconcile to repair."""
    found = await reconciler.find_inconsistencies(owner_id)
    return [
        InconsistencyResponse(
            kind=i.kind, contact_id=i.contact_id, record_id=i.record_id, person_name=i.person_name
        )
        for i in found
    ]
