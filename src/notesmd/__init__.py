"""
notesmd - a personal note store.
Each note is a markdown document addressed by a human-readable title and
persisted as a flat file. This package holds the note-management engine:
the note repository, the markdown rendering pipeline with inter-note links
and highlighted code blocks, the attachment store, and note search.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notesmd")
except PackageNotFoundError:
    __version__ = "0.3.0"
