"""Storage for uploaded attachments."""

import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO, List, Optional

from notesmd.config import NotesConfig
from notesmd.config import config as default_config
from notesmd.exceptions import ErrorCode, StorageError, ValidationError
from notesmd.models.schema import ExistingFile

logger = logging.getLogger(__name__)

# Buffer size when streaming an upload into its file
COPY_CHUNK_SIZE = 64 * 1024


def validate_attachment_name(filename: str) -> str:
    """Check that ``filename`` is a bare file name inside the store.

    Raises:
        ValidationError: For empty names, ``.``/``..`` or names with a
            path separator.
    """
    if (
        not filename
        or filename in (".", "..")
        or "/" in filename
        or "\\" in filename
        or "\x00" in filename
    ):
        raise ValidationError(
            "Attachment name must be a plain file name",
            field="filename",
            value=filename,
            code=ErrorCode.INVALID_FILENAME,
        )
    return filename


class AttachmentStore:
    """Arbitrary uploaded files kept verbatim under ``<notes_dir>/att``.

    Files are addressed by their uploaded name; uploading a name again
    overwrites the earlier file. The directory is created on first upload.
    """

    def __init__(self, cfg: Optional[NotesConfig] = None):
        self.config = cfg or default_config
        self.attachments_dir = Path(self.config.attachments_dir)

    def path(self, filename: str) -> Path:
        """Location of the attachment called ``filename``."""
        return self.attachments_dir / validate_attachment_name(filename)

    def create(self, filename: str) -> BinaryIO:
        """Open the attachment for writing, creating or truncating it.

        The caller owns the returned handle and must close it.

        Raises:
            ValidationError: If ``filename`` is not a plain file name.
            StorageError: If the directory or file cannot be created.
        """
        file_path = self.path(filename)
        try:
            # A concurrent creator may win the race; the open below still
            # fails loudly if the directory is unusable.
            self.attachments_dir.mkdir(exist_ok=True)
            return open(file_path, "wb")
        except OSError as e:
            logger.error(f"Failed to create attachment '{filename}': {e}")
            raise StorageError(
                f"Failed to create attachment '{filename}'",
                operation="create",
                path=str(file_path),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

    def store(self, filename: str, stream: BinaryIO) -> int:
        """Stream an upload into the attachment called ``filename``.

        The file handle is closed on every path. If copying fails, the
        partly written file is removed before the error is raised.

        Returns:
            Number of bytes written.

        Raises:
            ValidationError: If ``filename`` is not a plain file name.
            StorageError: If the file cannot be created or written.
        """
        file_path = self.path(filename)
        dst = self.create(filename)
        try:
            with dst:
                shutil.copyfileobj(stream, dst, COPY_CHUNK_SIZE)
                written = dst.tell()
        except (OSError, ValueError) as e:
            file_path.unlink(missing_ok=True)
            logger.error(f"Failed to write attachment '{filename}': {e}")
            raise StorageError(
                f"Failed to write attachment '{filename}'",
                operation="store",
                path=str(file_path),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e
        logger.debug(f"Stored attachment '{filename}' ({written} bytes)")
        return written

    def list(self) -> List[ExistingFile]:
        """Enumerate attachments in filesystem order, names as stored.

        A store that has never received an upload lists as empty.

        Raises:
            StorageError: If the directory exists but cannot be read.
        """
        files: List[ExistingFile] = []
        try:
            with os.scandir(self.attachments_dir) as entries:
                for entry in entries:
                    if not entry.is_dir():
                        files.append(ExistingFile(file_name=entry.name, exists=True))
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Failed to list attachments in {self.attachments_dir}: {e}")
            raise StorageError(
                "Failed to list attachments",
                operation="list",
                path=str(self.attachments_dir),
                code=ErrorCode.STORAGE_LIST_FAILED,
                original_error=e,
            ) from e
        return files

    def delete(self, filename: str) -> None:
        """Remove an attachment. A missing attachment is not an error.

        Raises:
            ValidationError: If ``filename`` is not a plain file name.
            StorageError: If an existing file cannot be removed.
        """
        file_path = self.path(filename)
        try:
            file_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete attachment '{filename}': {e}")
            raise StorageError(
                f"Failed to delete attachment '{filename}'",
                operation="delete",
                path=str(file_path),
                code=ErrorCode.STORAGE_DELETE_FAILED,
                original_error=e,
            ) from e
