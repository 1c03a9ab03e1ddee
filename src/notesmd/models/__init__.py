"""Data models for the notes engine."""

from notesmd.models.schema import ExistingFile, Note, NoteListing, validate_title

__all__ = ["ExistingFile", "Note", "NoteListing", "validate_title"]
