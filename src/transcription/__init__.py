"""Transcription Service boundary."""

from .client import TranscriptionClient, TranscriptionResult

__all__ = ["TranscriptionClient", "TranscriptionResult"]
