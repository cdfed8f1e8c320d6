"""Data models for the address book."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import NamedTuple

from shared_types import CalendarType, ContactOrigin


class ContactKey(NamedTuple):
    """Exact-name identity used for matching mentions to contacts."""

    owner_id: str
    name: str


@dataclass
class ImportantDate:
    name: str
    value: str  # "YYYY-MM-DD" or "MM-DD", read in calendar_type
    calendar_type: CalendarType = CalendarType.SOLAR

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value, "calendar_type": self.calendar_type.value}

    @classmethod
    def from_dict(cls, data: dict) -> "ImportantDate":
        # "date"/"type" are the field names of older rows
        return cls(
            name=data["name"],
            value=data.get("value") or data.get("date", ""),
            calendar_type=CalendarType(data.get("calendar_type") or data.get("type") or "solar"),
        )


@dataclass
class Contact:
    id: str
    owner_id: str
    name: str
    remark: str = ""
    tags: list[str] = field(default_factory=list)
    important_dates: list[ImportantDate] = field(default_factory=list)
    last_interaction_at: datetime | None = None
    origin: ContactOrigin = ContactOrigin.MANUAL
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def key(self) -> ContactKey:
        return ContactKey(self.owner_id, self.name)

    @property
    def display_name(self) -> str:
        return self.remark or self.name


@dataclass
class Resolution:
    """Contact Resolver output: which names matched which contacts."""

    matched: dict[str, str] = field(default_factory=dict)  # name -> contact id
    unmatched: list[str] = field(default_factory=list)
