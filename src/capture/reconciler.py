"""Reconciliation: turn an unarchived mention into a contact and link its records."""

import structlog

from contacts.store import ContactStore
from contacts.tags import TagStore
from shared_types import ContactOrigin, InconsistencyKind, TagKind

from .errors import CaptureInputError, RecordNotFound, ReconciliationInconsistency
from .models import Inconsistency, ReconcileResult
from .store import RecordStore

logger = structlog.get_logger()


class ReconciliationHandler:
    """Links unarchived people to contacts, creating the contact on demand.

    Steps run strictly in sequence: find-or-create the contact, link the
    records, advance last_interaction_at. Every step is an idempotent
    overwrite, so a failed attempt is repaired by retrying the same
    (record, name).
    """

    def __init__(
        self,
        record_store: RecordStore,
        contact_store: ContactStore,
        tag_store: TagStore | None = None,
        new_contact_tag: str = "new-contact",
    ):
        self.records = record_store
        self.contacts = contact_store
        self.tags = tag_store
        self.new_contact_tag = new_contact_tag

    async def reconcile(self, owner_id: str, record_id: str, person_name: str) -> ReconcileResult:
        person_name = (person_name or "").strip()
        if not person_name:
            raise CaptureInputError("person name must not be empty")

        record = await self.records.get(owner_id, record_id)
        if record is None:
            raise RecordNotFound(record_id)
        if person_name not in record.mentioned_people and person_name not in record.unarchived_people:
            raise CaptureInputError(f"record {record_id} does not mention {person_name!r}")
        if record.linked_contact_id:
            linked = await self.contacts.get(owner_id, record.linked_contact_id)
            if linked is not None and linked.name != person_name:
                raise CaptureInputError(
                    f"record {record_id} is already linked to contact {linked.id}"
                )

        contact, created = await self.contacts.get_or_create(
            owner_id, person_name, tags=[self.new_contact_tag], origin=ContactOrigin.RECONCILIATION
        )
        if created:
            await self._sync_person_tags(owner_id, contact.tags)

        try:
            record = await self.records.link_contact(owner_id, record_id, contact.id, person_name)
            relinked = [record]
            for other in await self.records.list_unarchived(owner_id, person_name):
                if other.id == record.id:
                    continue
                relinked.append(
                    await self.records.link_contact(owner_id, other.id, contact.id, person_name)
                )
        except Exception as e:
            logger.error(
                "reconciliation_inconsistent",
                contact_id=contact.id,
                record_id=record_id,
                error=str(e),
            )
            raise ReconciliationInconsistency(contact.id, record_id, str(e)) from e

        newest = max(r.created_at for r in relinked)
        try:
            await self.contacts.touch_interaction(owner_id, contact.id, newest)
        except Exception as e:
            logger.warning("contact_touch_failed", contact_id=contact.id, error=str(e))

        logger.info(
            "capture.reconciled",
            contact_id=contact.id,
            record_id=record_id,
            contact_created=created,
            relinked=len(relinked),
        )
        return ReconcileResult(
            contact=contact,
            record=record,
            contact_created=created,
            relinked_record_ids=[r.id for r in relinked],
        )

    async def _sync_person_tags(self, owner_id: str, tags: list[str]):
        if not self.tags:
            return
        try:
            await self.tags.ensure(owner_id, TagKind.PERSON, tags)
        except Exception as e:
            logger.warning("person_tag_sync_failed", owner_id=owner_id, error=str(e))

    async def find_inconsistencies(self, owner_id: str) -> list[Inconsistency]:
        """Orphan contacts and records left unarchived for an existing contact."""
        found = []
        for contact in await self.contacts.list_all(owner_id, origin=ContactOrigin.RECONCILIATION):
            if await self.records.count_linked(owner_id, contact.id) == 0:
                found.append(
                    Inconsistency(
                        kind=InconsistencyKind.ORPHAN_CONTACT.value,
                        contact_id=contact.id,
                        person_name=contact.name,
                    )
                )

        pending = await self.records.list_unarchived(owner_id)
        names = list(dict.fromkeys(n for r in pending for n in r.unarchived_people))
        existing = await self.contacts.find_by_names(owner_id, names)
        for record in pending:
            for name in record.unarchived_people:
                if name in existing:
                    found.append(
                        Inconsistency(
                            kind=InconsistencyKind.UNRECONCILED_RECORD.value,
                            contact_id=existing[name].id,
                            record_id=record.id,
                            person_name=name,
                        )
                    )
        if found:
            logger.warning("reconciliation.inconsistencies", owner_id=owner_id, count=len(found))
        return found

    async def detach_contact(self, owner_id: str, contact_id: str) -> int:
        """Unlink every record of a contact so it can be deleted safely."""
        unlinked = await self.records.unlink_contact(owner_id, contact_id)
        logger.info("contacts.detached", contact_id=contact_id, records=unlinked)
        return unlinked
