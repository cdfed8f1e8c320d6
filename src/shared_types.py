"""Shared enums and types for rapport."""

from enum import StrEnum


class CaptureKind(StrEnum):
    AUDIO = "audio"
    TEXT = "text"


class TagKind(StrEnum):
    PERSON = "person"
    EVENT = "event"


class CalendarType(StrEnum):
    SOLAR = "solar"
    LUNAR = "lunar"


class ContactOrigin(StrEnum):
    MANUAL = "manual"
    RECONCILIATION = "reconciliation"


class PipelineStage(StrEnum):
    RECEIVED = "received"
    TRANSCRIBED = "transcribed"
    NORMALIZED = "normalized"
    EXTRACTED = "extracted"
    MATERIALIZED = "materialized"


class LinkageState(StrEnum):
    LINKED = "linked"
    UNLINKED = "unlinked"
    UNARCHIVED = "unarchived"


class InconsistencyKind(StrEnum):
    ORPHAN_CONTACT = "orphan_contact"
    UNRECONCILED_RECORD = "unreconciled_record"
