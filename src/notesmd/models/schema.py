"""Data models for the notes engine."""

import re
from typing import List

from pydantic import BaseModel, Field

# Titles accepted at the boundary: ASCII letters, digits and whitespace.
# Mirrors the link token grammar so every valid title is linkable.
SAFE_TITLE_PATTERN = re.compile(r"^[a-zA-Z0-9\s]+$", re.ASCII)


def validate_title(value: str, field_name: str = "Title") -> str:
    """Validate that a value is usable as a note title.

    Args:
        value: The string to validate
        field_name: Name of the field for error messages

    Returns:
        The validated value (unchanged)

    Raises:
        ValueError: If the value is empty or has characters outside
            letters, digits and whitespace.
    """
    if not value:
        raise ValueError(f"{field_name} cannot be empty")
    if not SAFE_TITLE_PATTERN.match(value):
        raise ValueError(
            f"{field_name} contains invalid characters. "
            "Only letters, digits and whitespace are allowed."
        )
    return value


class Note(BaseModel):
    """A titled markdown document stored as one file.

    ``raw_content`` is the source of truth. ``rendered_body`` is derived
    from it on every load and never written back to disk.
    """

    title: str = Field(..., description="Title of the note, also its file stem")
    raw_content: bytes = Field(default=b"", description="Markdown source bytes")
    rendered_body: str = Field(default="", description="HTML rendered from raw_content")
    is_special_view: bool = Field(
        default=False, description="Marks system-generated listing pages"
    )

    @property
    def text(self) -> str:
        """The raw content decoded for display in an editor."""
        return self.raw_content.decode("utf-8", errors="replace")


class ExistingFile(BaseModel):
    """A listing entry or search result, identified by ``file_name``."""

    file_name: str
    exists: bool = True
    hit_count: int = Field(default=0, ge=0)


class NoteListing(BaseModel):
    """A system-generated listing page (all notes, search hits, attachments)."""

    title: str
    files: List[ExistingFile] = Field(default_factory=list)
    is_special_view: bool = True
    search_criteria: str = ""
