"""Interaction record routes: browse, edit, delete, reconcile."""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from capture.errors import CaptureInputError, RecordNotFound, ReconciliationInconsistency
from capture.reconciler import ReconciliationHandler
from capture.store import RecordStore
from web.deps import get_owner_id, get_reconciler, get_record_store
from web.models import (
    ContactResponse,
    ReconcileRequest,
    ReconcileResponse,
    RecordResponse,
    RecordUpdate,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/records", tags=["records"])


@router.get("", response_model=list[RecordResponse])
async def list_records(
    contact_id: str | None = None,
    person: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 100,
    owner_id: str = Depends(get_owner_id),
    store: RecordStore = Depends(get_record_store),
):
    if person:
        records = await store.list_by_person(owner_id, person)
    elif start or end:
        records = await store.list_by_date_range(
            owner_id, start or datetime.min, end or datetime.max
        )
    else:
        records = await store.list_records(owner_id, contact_id=contact_id, limit=limit)
    return [RecordResponse.from_record(r) for r in records[:limit]]


@router.get("/{record_id}", response_model=RecordResponse)
async def get_record(
    record_id: str,
    owner_id: str = Depends(get_owner_id),
    store: RecordStore = Depends(get_record_store),
):
    record = await store.get(owner_id, record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Record not found")
    return RecordResponse.from_record(record)


@router.patch("/{record_id}", response_model=RecordResponse)
async def update_record(
    record_id: str,
    body: RecordUpdate,
    owner_id: str = Depends(get_owner_id),
    store: RecordStore = Depends(get_record_store),
):
    try:
        record = await store.update_text(owner_id, record_id, **body.model_dump(exclude_none=True))
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Record not found")
    return RecordResponse.from_record(record)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(
    record_id: str,
    owner_id: str = Depends(get_owner_id),
    store: RecordStore = Depends(get_record_store),
):
    if not await store.delete(owner_id, record_id):
        raise HTTPException(status_code=404, detail="Record not found")


@router.post("/{record_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_record(
    record_id: str,
    body: ReconcileRequest,
    owner_id: str = Depends(get_owner_id),
    reconciler: ReconciliationHandler = Depends(get_reconciler),
):
    """Archive an unarchived person: find or create the contact, link the records."""
    try:
        result = await reconciler.reconcile(owner_id, record_id, body.person_name)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Record not found")
    except CaptureInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ReconciliationInconsistency as e:
        raise HTTPException(
            status_code=409,
            detail={"error": str(e), "contact_id": e.contact_id, "record_id": e.record_id},
        )
    return ReconcileResponse(
        contact=ContactResponse.from_contact(result.contact),
        record=RecordResponse.from_record(result.record),
        contact_created=result.contact_created,
        relinked_record_ids=result.relinked_record_ids,
    )
