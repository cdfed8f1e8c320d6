"""Interaction capture: raw audio/text to person-linked interaction records."""

from .errors import (
    CaptureError,
    CaptureInputError,
    ExtractionFailed,
    NormalizationDegraded,
    PersistencePartialFailure,
    ReconciliationInconsistency,
    TranscriptionFailed,
)
from .models import CaptureSession, InteractionRecord, NormalizedTranscript

__all__ = [
    "CaptureError",
    "CaptureInputError",
    "ExtractionFailed",
    "NormalizationDegraded",
    "PersistencePartialFailure",
    "ReconciliationInconsistency",
    "TranscriptionFailed",
    "CaptureSession",
    "InteractionRecord",
    "NormalizedTranscript",
]
