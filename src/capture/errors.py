"""Error taxonomy for capture and reconciliation.

Every failure is scoped to one capture or reconciliation attempt. Soft
failures (normalization) are absorbed by the stage that hits them. Hard
failures before persistence carry the captured text back to the caller.
"""

from typing import Any


class CaptureError(Exception):
    """Base error for the capture pipeline."""


class CaptureInputError(CaptureError):
    """Empty or invalid audio/text, or a request that does not fit the record."""


class TranscriptionFailed(CaptureError):
    """The speech-to-text service could not produce a transcript."""

    def __init__(self, status_code: int | None, message: str):
        self.status_code = status_code
        self.message = message
        prefix = f"{status_code}: " if status_code else ""
        super().__init__(f"transcription failed: {prefix}{message}")


class NormalizationDegraded(CaptureError):
    """Normalization output was unusable; the raw text is used instead."""


class ExtractionFailed(CaptureError):
    """People or tag extraction failed upstream; nothing was persisted."""

    def __init__(self, operation: str, message: str, session: Any = None):
        self.operation = operation
        self.session = session
        super().__init__(f"{operation} failed: {message}")


class PersistencePartialFailure(CaptureError):
    """Fan-out wrote K of N records."""

    def __init__(self, saved: int, total: int, records: list | None = None, errors: list | None = None):
        self.saved = saved
        self.total = total
        self.records = records or []
        self.errors = errors or []
        super().__init__(f"saved {saved} of {total} records")


class ReconciliationInconsistency(CaptureError):
    """Contact exists but the record could not be linked to it."""

    def __init__(self, contact_id: str, record_id: str, message: str = ""):
        self.contact_id = contact_id
        self.record_id = record_id
        detail = f": {message}" if message else ""
        super().__init__(
            f"contact {contact_id} created but record {record_id} not linked{detail}"
        )


class RecordNotFound(CaptureError, LookupError):
    pass


class ContactNotFound(CaptureError, LookupError):
    pass


class ContactExistsError(CaptureError):
    """A contact with this exact name already exists for the owner."""
