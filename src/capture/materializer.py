"""Write analyzed captures as interaction records, one per mentioned person."""

import asyncio
from datetime import datetime

import structlog

from contacts.resolver import ContactResolver
from contacts.store import ContactStore

from .errors import PersistencePartialFailure
from .models import InteractionRecord, MaterializeResult
from .store import RecordStore

logger = structlog.get_logger()


class RecordMaterializer:
    """Fans a capture out into records and links each to a known contact.

    Zero people gives one unlinked record. Each distinct person gives their own
    record sharing text, tags, summary and timestamp with its siblings. Sibling
    inserts run concurrently; what was saved stays saved even if some fail.
    """

    def __init__(
        self,
        record_store: RecordStore,
        contact_store: ContactStore,
        resolver: ContactResolver | None = None,
        uncategorized_tag: str = "uncategorized",
    ):
        self.records = record_store
        self.contacts = contact_store
        self.resolver = resolver or ContactResolver(contact_store)
        self.uncategorized_tag = uncategorized_tag

    async def materialize(
        self,
        owner_id: str,
        raw_text: str,
        narrative_text: str,
        tags: list[str],
        people: list[str],
        summary: str | None = None,
    ) -> MaterializeResult:
        names = list(dict.fromkeys(p.strip() for p in people if p and p.strip()))
        tags = list(dict.fromkeys(t for t in tags if t)) or [self.uncategorized_tag]
        resolution = await self.resolver.resolve(owner_id, names)
        created_at = datetime.now()

        def build(name: str | None) -> InteractionRecord:
            contact_id = resolution.matched.get(name) if name else None
            return InteractionRecord(
                id="",
                owner_id=owner_id,
                raw_text=raw_text,
                narrative_text=narrative_text,
                summary=summary,
                tags=list(tags),
                mentioned_people=[name] if name else [],
                linked_contact_id=contact_id,
                unarchived_people=[name] if name and not contact_id else [],
                created_at=created_at,
                updated_at=created_at,
            )

        drafts = [build(name) for name in names] if names else [build(None)]
        results = await asyncio.gather(
            *(self.records.create(d) for d in drafts), return_exceptions=True
        )

        saved = [r for r in results if isinstance(r, InteractionRecord)]
        errors = [r for r in results if isinstance(r, BaseException)]

        for contact_id in {r.linked_contact_id for r in saved if r.linked_contact_id}:
            try:
                await self.contacts.touch_interaction(owner_id, contact_id, created_at)
            except Exception as e:
                # records are saved; the timestamp catches up on the next capture
                logger.warning("contact_touch_failed", contact_id=contact_id, error=str(e))

        logger.info(
            "capture.materialized",
            saved=len(saved),
            total=len(drafts),
            linked=sum(1 for r in saved if r.linked_contact_id),
        )
        if errors:
            for err in errors:
                logger.error("record_insert_failed", owner_id=owner_id, error=str(err))
            raise PersistencePartialFailure(
                saved=len(saved), total=len(drafts), records=saved, errors=errors
            )
        return MaterializeResult(records=saved, total=len(drafts))
