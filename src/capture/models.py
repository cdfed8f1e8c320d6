"""Data models for interaction capture."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from shared_types import CaptureKind, LinkageState, PipelineStage

if TYPE_CHECKING:
    from contacts.models import Contact


@dataclass
class InteractionRecord:
    id: str
    owner_id: str
    raw_text: str
    narrative_text: str
    summary: str | None = None
    tags: list[str] = field(default_factory=list)
    mentioned_people: list[str] = field(default_factory=list)
    linked_contact_id: str | None = None
    unarchived_people: list[str] = field(default_factory=list)
    legacy_people: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def linkage_state(self) -> LinkageState:
        """Classify the record's linkage. Raises ValueError if it is inconsistent."""
        if self.linked_contact_id:
            if self.unarchived_people:
                raise ValueError(
                    f"record {self.id or '<new>'} is linked but still lists unarchived people"
                )
            return LinkageState.LINKED
        if not self.mentioned_people:
            if self.unarchived_people:
                raise ValueError(
                    f"record {self.id or '<new>'} lists unarchived people it never mentions"
                )
            return LinkageState.UNLINKED
        if sorted(self.unarchived_people) != sorted(self.mentioned_people):
            raise ValueError(
                f"record {self.id or '<new>'} is unlinked but unarchived people "
                "do not match mentioned people"
            )
        return LinkageState.UNARCHIVED

    def mentions(self, name: str) -> bool:
        return name in self.mentioned_people or name in self.legacy_people


@dataclass
class NormalizedTranscript:
    narrative_text: str
    provisional_people: list[str] = field(default_factory=list)
    provisional_tags: list[str] = field(default_factory=list)
    degraded: bool = False


@dataclass
class CaptureSession:
    """Per-capture state carried through the stages. Never shared between captures."""

    owner_id: str
    kind: CaptureKind
    raw_text: str
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    narrative_text: str = ""
    provisional_people: list[str] = field(default_factory=list)
    provisional_tags: list[str] = field(default_factory=list)
    people: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    summary: str | None = None
    degraded: bool = False
    stage: PipelineStage = PipelineStage.RECEIVED

    @property
    def analysis_text(self) -> str:
        return self.narrative_text or self.raw_text


@dataclass
class MaterializeResult:
    records: list[InteractionRecord]
    total: int

    @property
    def saved(self) -> int:
        return len(self.records)


@dataclass
class CaptureOutcome:
    session: CaptureSession
    records: list[InteractionRecord]


@dataclass
class ReconcileResult:
    contact: "Contact"
    record: InteractionRecord
    contact_created: bool
    relinked_record_ids: list[str] = field(default_factory=list)


@dataclass
class Inconsistency:
    kind: str  # InconsistencyKind value
    contact_id: str | None = None
    record_id: str | None = None
    person_name: str | None = None
