"""Service layer for the notes engine."""

from notesmd.services.notes_service import NotesService
from notesmd.services.search_service import SearchService

__all__ = ["NotesService", "SearchService"]
