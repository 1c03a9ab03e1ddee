"""Storage layer for the notes engine."""

from notesmd.storage.attachment_store import AttachmentStore
from notesmd.storage.note_repository import NoteRepository

__all__ = [
    "AttachmentStore",
    "NoteRepository",
]
