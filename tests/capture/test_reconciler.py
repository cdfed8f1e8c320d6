"""Tests for ReconciliationHandler: archiving unarchived people."""

import asyncio
import sqlite3
from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from capture.errors import CaptureInputError, RecordNotFound, ReconciliationInconsistency
from capture.materializer import RecordMaterializer
from capture.models import InteractionRecord
from capture.reconciler import ReconciliationHandler
from shared_types import ContactOrigin, InconsistencyKind, LinkageState, TagKind


@pytest.fixture
def materializer(record_store, contact_store):
    return RecordMaterializer(record_store, contact_store)


@pytest.fixture
def reconciler(record_store, contact_store, tag_store):
    return ReconciliationHandler(record_store, contact_store, tag_store)


@pytest_asyncio.fixture
async def bo_record(materializer, contact_store, owner):
    """Ana is a known contact, Bo is not."""
    await contact_store.create(owner, "Ana")
    result = await materializer.materialize(
        owner, "lunch with ana and bo", "Had lunch with Ana and Bo.", ["lunch"], ["Ana", "Bo"]
    )
    return next(r for r in result.records if r.mentioned_people == ["Bo"])


class TestReconcile:
    @pytest.mark.asyncio
    async def test_creates_contact_and_links(
        self, reconciler, record_store, contact_store, tag_store, owner, bo_record
    ):
        result = await reconciler.reconcile(owner, bo_record.id, "Bo")

        assert result.contact_created
        assert result.contact.name == "Bo"
        assert result.contact.tags == ["new-contact"]
        assert result.contact.origin == ContactOrigin.RECONCILIATION

        rec = await record_store.get(owner, bo_record.id)
        assert rec.linked_contact_id == result.contact.id
        assert rec.unarchived_people == []
        assert rec.linkage_state() == LinkageState.LINKED

        contact = await contact_store.get(owner, result.contact.id)
        assert contact.last_interaction_at == bo_record.created_at
        assert "new-contact" in await tag_store.list_tags(owner, TagKind.PERSON)

    @pytest.mark.asyncio
    async def test_relinks_other_records_of_same_name(
        self, reconciler, materializer, record_store, owner, bo_record
    ):
        later = await materializer.materialize(owner, "bo again", "Saw Bo again.", ["x"], ["Bo"])
        later_record = later.records[0]

        result = await reconciler.reconcile(owner, bo_record.id, "Bo")

        assert set(result.relinked_record_ids) == {bo_record.id, later_record.id}
        assert result.contact.id == (await record_store.get(owner, later_record.id)).linked_contact_id
        assert await record_store.list_unarchived(owner, "Bo") == []

    @pytest.mark.asyncio
    async def test_last_interaction_is_newest_relinked(
        self, reconciler, record_store, contact_store, owner
    ):
        now = datetime.now()
        for days in (5, 1):
            created = now - timedelta(days=days)
            await record_store.create(
                InteractionRecord(
                    id="",
                    owner_id=owner,
                    raw_text="bo",
                    narrative_text="Bo.",
                    mentioned_people=["Bo"],
                    unarchived_people=["Bo"],
                    created_at=created,
                    updated_at=created,
                )
            )
        oldest = (await record_store.list_records(owner))[-1]

        result = await reconciler.reconcile(owner, oldest.id, "Bo")
        contact = await contact_store.get(owner, result.contact.id)
        assert contact.last_interaction_at == now - timedelta(days=1)

    @pytest.mark.asyncio
    async def test_idempotent(self, reconciler, contact_store, owner, bo_record):
        first = await reconciler.reconcile(owner, bo_record.id, "Bo")
        second = await reconciler.reconcile(owner, bo_record.id, "Bo")

        assert second.contact.id == first.contact.id
        assert not second.contact_created
        assert second.record.linked_contact_id == first.contact.id
        assert [c.name for c in await contact_store.list_all(owner)].count("Bo") == 1

    @pytest.mark.asyncio
    async def test_concurrent_attempts_converge(
        self, reconciler, record_store, contact_store, owner, bo_record, monkeypatch
    ):
        # both attempts pass validation before either creates the contact
        both_validated = asyncio.Barrier(2)
        get_or_create = contact_store.get_or_create

        async def gated(*args, **kwargs):
            await both_validated.wait()
            return await get_or_create(*args, **kwargs)

        monkeypatch.setattr(contact_store, "get_or_create", gated)

        a, b = await asyncio.gather(
            reconciler.reconcile(owner, bo_record.id, "Bo"),
            reconciler.reconcile(owner, bo_record.id, "Bo"),
        )
        assert a.contact.id == b.contact.id
        assert [a.contact_created, b.contact_created].count(True) == 1
        assert len(await contact_store.find_by_names(owner, ["Bo"])) == 1
        rec = await record_store.get(owner, bo_record.id)
        assert rec.linkage_state() == LinkageState.LINKED
        assert rec.unarchived_people == []

    @pytest.mark.asyncio
    async def test_existing_contact_is_reused(
        self, reconciler, contact_store, owner, bo_record
    ):
        manual = await contact_store.create(owner, "Bo", remark="Bobby")
        result = await reconciler.reconcile(owner, bo_record.id, "Bo")
        assert result.contact.id == manual.id
        assert not result.contact_created


class TestReconcileValidation:
    @pytest.mark.asyncio
    async def test_missing_record(self, reconciler, owner):
        with pytest.raises(RecordNotFound):
            await reconciler.reconcile(owner, "nope", "Bo")

    @pytest.mark.asyncio
    async def test_other_owner(self, reconciler, other_owner, bo_record):
        with pytest.raises(RecordNotFound):
            await reconciler.reconcile(other_owner, bo_record.id, "Bo")

    @pytest.mark.asyncio
    async def test_name_not_on_record(self, reconciler, contact_store, owner, bo_record):
        with pytest.raises(CaptureInputError):
            await reconciler.reconcile(owner, bo_record.id, "Cy")
        assert await contact_store.find_by_names(owner, ["Cy"]) == {}

    @pytest.mark.asyncio
    async def test_blank_name(self, reconciler, owner, bo_record):
        with pytest.raises(CaptureInputError):
            await reconciler.reconcile(owner, bo_record.id, "  ")

    @pytest.mark.asyncio
    async def test_linked_to_different_contact(
        self, reconciler, record_store, contact_store, owner
    ):
        ana = await contact_store.create(owner, "Ana")
        rec = await record_store.create(
            InteractionRecord(
                id="",
                owner_id=owner,
                raw_text="x",
                narrative_text="x",
                mentioned_people=["Bo"],
                linked_contact_id=ana.id,
            )
        )
        with pytest.raises(CaptureInputError, match="already linked"):
            await reconciler.reconcile(owner, rec.id, "Bo")
        assert await contact_store.find_by_names(owner, ["Bo"]) == {}


class TestInconsistency:
    @pytest.mark.asyncio
    async def test_link_failure_is_reported_and_repairable(
        self, reconciler, record_store, owner, bo_record, monkeypatch
    ):
        async def broken(*args, **kwargs):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(record_store, "link_contact", broken)

        with pytest.raises(ReconciliationInconsistency) as exc_info:
            await reconciler.reconcile(owner, bo_record.id, "Bo")
        err = exc_info.value
        assert err.record_id == bo_record.id
        assert isinstance(err.__cause__, sqlite3.OperationalError)

        found = await reconciler.find_inconsistencies(owner)
        kinds = {i.kind for i in found}
        assert kinds == {
            InconsistencyKind.ORPHAN_CONTACT.value,
            InconsistencyKind.UNRECONCILED_RECORD.value,
        }
        unreconciled = next(i for i in found if i.record_id)
        assert unreconciled.contact_id == err.contact_id
        assert unreconciled.person_name == "Bo"

        monkeypatch.undo()
        result = await reconciler.reconcile(owner, bo_record.id, "Bo")
        assert result.contact.id == err.contact_id
        assert not result.contact_created
        assert await reconciler.find_inconsistencies(owner) == []

    @pytest.mark.asyncio
    async def test_clean_state(self, reconciler, owner, bo_record):
        assert await reconciler.find_inconsistencies(owner) == []


class TestDetach:
    @pytest.mark.asyncio
    async def test_detach_restores_unarchived(
        self, reconciler, record_store, contact_store, owner, bo_record
    ):
        result = await reconciler.reconcile(owner, bo_record.id, "Bo")

        assert await reconciler.detach_contact(owner, result.contact.id) == 1
        await contact_store.delete(owner, result.contact.id)

        rec = await record_store.get(owner, bo_record.id)
        assert rec.linked_contact_id is None
        assert rec.unarchived_people == ["Bo"]
        assert rec.linkage_state() == LinkageState.UNARCHIVED
        assert await reconciler.find_inconsistencies(owner) == []
