"""Pydantic request/response schemas for the web API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from capture.models import InteractionRecord
from contacts.models import Contact, ImportantDate
from shared_types import CalendarType

# --- Records ---


class RecordResponse(BaseModel):
    id: str
    raw_text: str
    narrative_text: str
    summary: Optional[str] = None
    tags: list[str] = []
    mentioned_people: list[str] = []
    linked_contact_id: Optional[str] = None
    unarchived_people: list[str] = []
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, record: InteractionRecord) -> "RecordResponse":
        return cls(
            id=record.id,
            raw_text=record.raw_text,
            narrative_text=record.narrative_text,
            summary=record.summary,
            tags=record.tags,
            mentioned_people=record.mentioned_people,
            linked_contact_id=record.linked_contact_id,
            unarchived_people=record.unarchived_people,
            created_at=record.created_at.isoformat(),
            updated_at=record.updated_at.isoformat(),
        )


class RecordUpdate(BaseModel):
    """Direct edit of a record. raw_text is not editable."""

    model_config = ConfigDict(extra="forbid")

    narrative_text: Optional[str] = Field(None, max_length=100_000)
    summary: Optional[str] = Field(None, max_length=200)
    tags: Optional[list[str]] = None


# --- Captures ---


class CaptureText(BaseModel):
    text: str


class CaptureResponse(BaseModel):
    session_id: str
    kind: str
    degraded: bool = False
    provisional_people: list[str] = []
    provisional_tags: list[str] = []
    records: list[RecordResponse]


# --- Contacts ---


class ImportantDateModel(BaseModel):
    name: str = Field(..., min_length=1)
    value: str
    calendar_type: CalendarType = CalendarType.SOLAR

    def to_date(self) -> ImportantDate:
        return ImportantDate(name=self.name, value=self.value, calendar_type=self.calendar_type)


class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    remark: str = ""
    tags: list[str] = []
    important_dates: list[ImportantDateModel] = []


class ContactUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    remark: Optional[str] = None
    tags: Optional[list[str]] = None
    important_dates: Optional[list[ImportantDateModel]] = None


class ContactResponse(BaseModel):
    id: str
    name: str
    remark: str = ""
    display_name: str
    tags: list[str] = []
    important_dates: list[dict] = []
    last_interaction_at: Optional[str] = None
    origin: str
    created_at: str

    @classmethod
    def from_contact(cls, contact: Contact) -> "ContactResponse":
        last = contact.last_interaction_at
        return cls(
            id=contact.id,
            name=contact.name,
            remark=contact.remark,
            display_name=contact.display_name,
            tags=contact.tags,
            important_dates=[d.to_dict() for d in contact.important_dates],
            last_interaction_at=last.isoformat() if last else None,
            origin=contact.origin.value,
            created_at=contact.created_at.isoformat(),
        )


# --- Reconciliation ---


class ReconcileRequest(BaseModel):
    person_name: str = Field(..., min_length=1)


class ReconcileResponse(BaseModel):
    contact: ContactResponse
    record: RecordResponse
    contact_created: bool
    relinked_record_ids: list[str] = []


class InconsistencyResponse(BaseModel):
    kind: str
    contact_id: Optional[str] = None
    record_id: Optional[str] = None
    person_name: Optional[str] = None


# --- Tags / status ---


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)


class StatusResponse(BaseModel):
    llm_configured: bool
    transcription_configured: bool
