"""Address book routes."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from capture.errors import ContactExistsError, ContactNotFound
from capture.reconciler import ReconciliationHandler
from capture.store import RecordStore
from contacts import ContactStore, TagStore
from shared_types import TagKind
from web.deps import (
    get_contact_store,
    get_owner_id,
    get_reconciler,
    get_record_store,
    get_tag_store,
)
from web.models import ContactCreate, ContactResponse, ContactUpdate, RecordResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


async def _sync_person_tags(tags: TagStore, owner_id: str, names: list[str]):
    """New contact tags join the person-tag vocabulary; failures only logged."""
    try:
        await tags.ensure(owner_id, TagKind.PERSON, names)
    except Exception as e:
        logger.warning("person_tag_sync_failed", owner_id=owner_id, error=str(e))


@router.get("", response_model=list[ContactResponse])
async def list_contacts(
    owner_id: str = Depends(get_owner_id),
    store: ContactStore = Depends(get_contact_store),
):
    return [ContactResponse.from_contact(c) for c in await store.list_all(owner_id)]


@router.get("/search", response_model=list[ContactResponse])
async def search_contacts(
    q: str,
    owner_id: str = Depends(get_owner_id),
    store: ContactStore = Depends(get_contact_store),
):
    if not q.strip():
        return []
    return [ContactResponse.from_contact(c) for c in await store.search(owner_id, q.strip())]


@router.post("", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def create_contact(
    body: ContactCreate,
    owner_id: str = Depends(get_owner_id),
    store: ContactStore = Depends(get_contact_store),
    tags: TagStore = Depends(get_tag_store),
):
    try:
        contact = await store.create(
            owner_id,
            body.name,
            remark=body.remark,
            tags=body.tags,
            important_dates=[d.to_date() for d in body.important_dates],
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ContactExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if contact.tags:
        await _sync_person_tags(tags, owner_id, contact.tags)
    logger.info("contacts.created", contact_id=contact.id, origin=contact.origin.value)
    return ContactResponse.from_contact(contact)


@router.get("/{contact_id}", response_model=ContactResponse)
async def get_contact(
    contact_id: str,
    owner_id: str = Depends(get_owner_id),
    store: ContactStore = Depends(get_contact_store),
):
    contact = await store.get(owner_id, contact_id)
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    return ContactResponse.from_contact(contact)


@router.patch("/{contact_id}", response_model=ContactResponse)
async def update_contact(
    contact_id: str,
    body: ContactUpdate,
    owner_id: str = Depends(get_owner_id),
    store: ContactStore = Depends(get_contact_store),
    tags: TagStore = Depends(get_tag_store),
):
    fields = body.model_dump(exclude_none=True, exclude={"important_dates"})
    if body.important_dates is not None:
        fields["important_dates"] = [d.to_date() for d in body.important_dates]
    try:
        contact = await store.update(owner_id, contact_id, **fields)
    except ContactNotFound:
        raise HTTPException(status_code=404, detail="Contact not found")
    except ContactExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if body.tags:
        await _sync_person_tags(tags, owner_id, body.tags)
    return ContactResponse.from_contact(contact)


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    contact_id: str,
    owner_id: str = Depends(get_owner_id),
    store: ContactStore = Depends(get_contact_store),
    reconciler: ReconciliationHandler = Depends(get_reconciler),
):
    """Unlink the contact's records, then delete it."""
    if not await store.get(owner_id, contact_id):
        raise HTTPException(status_code=404, detail="Contact not found")
    await reconciler.detach_contact(owner_id, contact_id)
    await store.delete(owner_id, contact_id)


@router.get("/{contact_id}/records", response_model=list[RecordResponse])
async def contact_records(
    contact_id: str,
    limit: int = 100,
    owner_id: str = Depends(get_owner_id),
    contacts: ContactStore = Depends(get_contact_store),
    records: RecordStore = Depends(get_record_store),
):
    """A contact's interaction timeline, newest first."""
    if not await contacts.get(owner_id, contact_id):
        raise HTTPException(status_code=404, detail="Contact not found")
    timeline = await records.list_records(owner_id, contact_id=contact_id, limit=limit)
    return [RecordResponse.from_record(r) for r in timeline]
