"""Repository for note storage and retrieval."""

import logging
import os
import tempfile
import threading
import weakref
from pathlib import Path
from typing import List, Optional

from notesmd.config import NotesConfig
from notesmd.config import config as default_config
from notesmd.exceptions import ErrorCode, NoteNotFoundError, StorageError
from notesmd.models.schema import ExistingFile, Note
from notesmd.rendering.link_resolver import resolve_links
from notesmd.rendering.markdown_renderer import MarkdownRenderer

logger = logging.getLogger(__name__)

NOTE_SUFFIX = ".md"


def title_from_filename(filename: str) -> str:
    """Derive a note title from a file name: everything before the first dot.

    A note saved as ``a.b`` is stored as ``a.b.md`` but lists as ``a``;
    titles containing dots are not addressable through the listing.
    """
    return filename.split(".")[0]


class NoteRepository:
    """Repository for notes stored as markdown files.

    A note titled ``T`` lives in ``<notes_dir>/T.md``; the file is the
    only copy of the note. Titles are not validated here.

    Every save is atomic: the bytes go to a temporary file in the notes
    directory which is then renamed over the target, so a concurrent
    reader sees either the old or the new content. Saves and deletes of
    the same title are serialized through per-title locks.
    """

    def __init__(
        self,
        cfg: Optional[NotesConfig] = None,
        renderer: Optional[MarkdownRenderer] = None,
    ):
        """Initialize the repository.

        Args:
            cfg: Engine configuration. If None, uses the global config.
            renderer: Markdown renderer for ``load``. If None, one is built
                from the configuration.
        """
        self.config = cfg or default_config
        self.notes_dir = Path(self.config.notes_dir)
        self.notes_dir.mkdir(parents=True, exist_ok=True)

        self._renderer = renderer or MarkdownRenderer.from_config(self.config)

        # Per-title locks (WeakValueDictionary so idle locks are collected)
        self._note_locks: weakref.WeakValueDictionary[str, threading.RLock] = (
            weakref.WeakValueDictionary()
        )
        self._note_locks_lock = threading.Lock()  # Protects _note_locks dict access

        logger.info(f"NoteRepository initialized: notes_dir={self.notes_dir}")

    def _get_note_lock(self, title: str) -> threading.RLock:
        """Get or create the lock for a title.

        Args:
            title: The title to lock.

        Returns:
            A reentrant lock for the specified title.
        """
        with self._note_locks_lock:
            lock = self._note_locks.get(title)
            if lock is None:
                lock = threading.RLock()
                self._note_locks[title] = lock
            return lock

    def note_path(self, title: str) -> Path:
        """Storage location of the note with ``title``."""
        return self.notes_dir / f"{title}{NOTE_SUFFIX}"

    def render(self, raw: bytes) -> str:
        """Render note source to HTML with ``{Name}`` links resolved."""
        html = self._renderer.render(raw)
        return resolve_links(html, self.config.view_route)

    def load(self, title: str) -> Note:
        """Load a note and render its body.

        Raises:
            NoteNotFoundError: If the note file cannot be read for any reason.
        """
        file_path = self.note_path(title)
        try:
            raw = file_path.read_bytes()
        except (OSError, ValueError) as e:
            # ValueError: the title holds a NUL byte
            logger.debug(f"Cannot read note '{title}': {e}")
            raise NoteNotFoundError(title) from e

        return Note(title=title, raw_content=raw, rendered_body=self.render(raw))

    def save(self, title: str, raw: bytes) -> None:
        """Write ``raw`` as the full content of the note, replacing any old one.

        Raises:
            StorageError: If the file cannot be written.
        """
        file_path = self.note_path(title)
        with self._get_note_lock(title):
            staging_path: Optional[Path] = None
            try:
                fd, staging_name = tempfile.mkstemp(
                    dir=self.notes_dir, prefix=".", suffix=".tmp"
                )
                staging_path = Path(staging_name)
                with os.fdopen(fd, "wb") as f:
                    f.write(raw)
                    f.flush()
                    os.fsync(f.fileno())
                # POSIX atomic rename (same directory)
                os.replace(staging_path, file_path)
            except (OSError, ValueError) as e:
                if staging_path is not None:
                    staging_path.unlink(missing_ok=True)
                logger.error(f"Failed to save note '{title}': {e}")
                raise StorageError(
                    f"Failed to write note '{title}'",
                    operation="save",
                    path=str(file_path),
                    code=ErrorCode.STORAGE_WRITE_FAILED,
                    original_error=e,
                ) from e
        logger.debug(f"Saved note '{title}' ({len(raw)} bytes)")

    def delete(self, title: str) -> None:
        """Delete a note.

        Raises:
            StorageError: If the note does not exist or cannot be removed.
        """
        file_path = self.note_path(title)
        with self._get_note_lock(title):
            try:
                os.remove(file_path)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to delete note '{title}': {e}")
                raise StorageError(
                    f"Failed to delete note '{title}'",
                    operation="delete",
                    path=str(file_path),
                    code=ErrorCode.STORAGE_DELETE_FAILED,
                    original_error=e,
                ) from e
        logger.debug(f"Deleted note '{title}'")

    def list(self) -> List[ExistingFile]:
        """Enumerate notes in filesystem order.

        Subdirectories (such as the attachments directory) are skipped, as
        are files whose derived title is empty, which covers dotfiles and
        in-flight save files.

        Raises:
            StorageError: If the notes directory cannot be read.
        """
        files: List[ExistingFile] = []
        try:
            with os.scandir(self.notes_dir) as entries:
                for entry in entries:
                    if entry.is_dir():
                        continue
                    title = title_from_filename(entry.name)
                    if title:
                        files.append(ExistingFile(file_name=title, exists=True))
        except OSError as e:
            logger.error(f"Failed to list notes in {self.notes_dir}: {e}")
            raise StorageError(
                "Failed to list notes",
                operation="list",
                path=str(self.notes_dir),
                code=ErrorCode.STORAGE_LIST_FAILED,
                original_error=e,
            ) from e
        return files
