"""Common test fixtures for the notes engine."""

import tempfile
from pathlib import Path

import pytest

from notesmd.config import load_config
from notesmd.observability import metrics
from notesmd.services.notes_service import NotesService
from notesmd.services.search_service import SearchService
from notesmd.storage.attachment_store import AttachmentStore
from notesmd.storage.note_repository import NoteRepository


@pytest.fixture
def temp_notes_dir():
    """Create a temporary notes directory."""
    with tempfile.TemporaryDirectory() as notes_dir:
        yield Path(notes_dir)


@pytest.fixture
def test_config(temp_notes_dir):
    """Configuration pointing at the temporary notes directory."""
    return load_config(
        notes_dir=temp_notes_dir,
        attachments_subdir="att",
        code_style="monokai",
        view_route="/view/",
        toc_enabled=False,
        tab_width=2,
    )


@pytest.fixture
def note_repository(test_config):
    """Create a test note repository."""
    return NoteRepository(test_config)


@pytest.fixture
def attachment_store(test_config):
    """Create a test attachment store."""
    return AttachmentStore(test_config)


@pytest.fixture
def search_service(note_repository):
    """Create a search service over the test repository."""
    return SearchService(note_repository)


@pytest.fixture
def notes_service(test_config, note_repository, attachment_store, search_service):
    """Create a NotesService wired to the test components."""
    return NotesService(
        test_config,
        repository=note_repository,
        attachments=attachment_store,
        search_service=search_service,
    )


@pytest.fixture
def clean_metrics():
    """Reset the global metrics collector around a test."""
    metrics.snapshot(reset=True)
    yield metrics
    metrics.snapshot(reset=True)
