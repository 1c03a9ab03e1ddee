"""Service layer for note operations, as consumed by a web or CLI front end."""

import logging
import random
from typing import Any, BinaryIO, Dict, Optional

from notesmd.config import NotesConfig
from notesmd.config import config as default_config
from notesmd.exceptions import ErrorCode, NoteNotFoundError, ValidationError
from notesmd.models.schema import ExistingFile, Note, NoteListing, validate_title
from notesmd.observability import metrics, traced
from notesmd.services.search_service import SearchService
from notesmd.storage.attachment_store import AttachmentStore
from notesmd.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)


def title_case(text: str) -> str:
    """Capitalize each space-separated word and lower-case the rest."""
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" "))


class NotesService:
    """Entry point for note, attachment and search operations.

    Titles coming from the outside are validated here; the repository
    below accepts any title.
    """

    def __init__(
        self,
        cfg: Optional[NotesConfig] = None,
        repository: Optional[NoteRepository] = None,
        attachments: Optional[AttachmentStore] = None,
        search_service: Optional[SearchService] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = cfg or default_config
        self.repository = repository or NoteRepository(self.config)
        self.attachment_store = attachments or AttachmentStore(self.config)
        self.search_service = search_service or SearchService(self.repository)
        self._rng = rng or random.Random()

    @staticmethod
    def validate_title(title: str) -> str:
        """Validate a title taken from a request.

        Raises:
            ValidationError: If the title is empty or has characters other
                than letters, digits and whitespace.
        """
        try:
            return validate_title(title)
        except ValueError as e:
            raise ValidationError(
                str(e), field="title", value=title, code=ErrorCode.INVALID_TITLE
            ) from e

    @traced("view_note")
    def view_note(self, title: str) -> Note:
        """Load a note for display.

        Raises:
            NoteNotFoundError: If there is no such note yet.
        """
        return self.repository.load(self.validate_title(title))

    @traced("edit_note")
    def edit_note(self, title: str) -> Note:
        """Load a note for editing, or a blank one if it does not exist."""
        title = self.validate_title(title)
        try:
            return self.repository.load(title)
        except NoteNotFoundError:
            logger.debug(f"Editing new note '{title}'")
            return Note(title=title)

    @traced("save_note")
    def save_note(self, title: str, raw: bytes) -> None:
        self.repository.save(self.validate_title(title), raw)
        logger.info(f"Note saved: '{title}'")

    @traced("delete_note")
    def delete_note(self, title: str) -> None:
        self.repository.delete(self.validate_title(title))
        logger.info(f"Note deleted: '{title}'")

    @traced("all_files")
    def all_files(self) -> NoteListing:
        """Listing page of every note."""
        return NoteListing(title="All Files", files=self.repository.list())

    @traced("search_files")
    def search_files(self, criteria: str) -> NoteListing:
        """Listing page of notes matching ``criteria``.

        Unless a title equals the criteria, a placeholder entry for a note
        named after the (title-cased) criteria is appended so the user can
        create it.
        """
        files, exact_match = self.search_service.search(
            self.repository.list(), criteria
        )
        if not exact_match and criteria.strip():
            files.append(ExistingFile(file_name=title_case(criteria), exists=False))
        return NoteListing(
            title=f"Files found with '{criteria}'",
            files=files,
            search_criteria=criteria,
        )

    @traced("attachments")
    def attachments(self) -> NoteListing:
        """Listing page of uploaded attachments."""
        return NoteListing(title="Attachments", files=self.attachment_store.list())

    @traced("upload_attachment")
    def upload_attachment(self, filename: str, stream: BinaryIO) -> int:
        written = self.attachment_store.store(filename, stream)
        logger.info(f"Attachment uploaded: '{filename}' ({written} bytes)")
        return written

    @traced("delete_attachment")
    def delete_attachment(self, filename: str) -> None:
        self.attachment_store.delete(filename)
        logger.info(f"Attachment deleted: '{filename}'")

    @traced("random_note")
    def random_note_title(self) -> str:
        """Pick the title of a random note.

        Raises:
            NoteNotFoundError: If there are no notes.
        """
        files = self.repository.list()
        if not files:
            raise NoteNotFoundError("", message="There are no notes to pick from")
        return self._rng.choice(files).file_name

    def metrics_report(self, reset: bool = False) -> Dict[str, Any]:
        """Call counts, timings and last errors for every traced operation.

        With ``reset`` the counters start over after the report is taken,
        so a poller can read per-interval figures.
        """
        return metrics.snapshot(reset=reset)
