"""Service for searching notes by title and by content."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Tuple

from notesmd.models.schema import ExistingFile
from notesmd.observability import timed_operation
from notesmd.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)

# Content is only scanned for queries longer than this many characters
CONTENT_SEARCH_MIN_EXCLUSIVE = 2


class SearchService:
    """Matches notes by title and, for longer queries, by content.

    There is no index: every call lists titles it is given and, for the
    content phase, reads the matching note files afresh.
    """

    def __init__(self, repository: NoteRepository):
        self.repository = repository

    def content_hits(self, title: str, criteria: str) -> int:
        """Count lines of the note that contain ``criteria``, ignoring case.

        Lines end at ``\\n`` only; a lone ``\\r`` does not start a new line.
        A note that cannot be opened or read (for instance one deleted
        since it was listed) counts as zero hits.
        """
        needle = criteria.lower()
        hits = 0
        try:
            with open(self.repository.note_path(title), "rb") as f:
                for raw_line in f:
                    line = raw_line.decode("utf-8", errors="replace")
                    if needle in line.lower():
                        hits += 1
        except (OSError, ValueError) as e:
            logger.debug(f"Content search skipped '{title}': {e}")
            return 0
        return hits

    def search(
        self, notes: Iterable[ExistingFile], criteria: str
    ) -> Tuple[List[ExistingFile], bool]:
        """Search ``notes`` for ``criteria``.

        A title containing ``criteria`` (case-insensitive) is a filename
        match; a title equal to it is also an exact match. Titles that do
        not match are content-searched when ``criteria`` is longer than two
        characters. Each title appears at most once, filename matches
        winning over content matches.

        Returns:
            The results sorted by file name, and whether an exact match
            was found.
        """
        needle = criteria.lower()
        scan_content = len(criteria) > CONTENT_SEARCH_MIN_EXCLUSIVE
        exact_match = False
        found: Dict[str, ExistingFile] = {}

        with timed_operation("search", criteria=criteria[:50]) as op:
            for entry in notes:
                name = entry.file_name
                lowered = name.lower()
                if needle in lowered:
                    if lowered == needle:
                        exact_match = True
                    found[name] = ExistingFile(file_name=name, exists=entry.exists)
                elif scan_content and name not in found:
                    hits = self.content_hits(name, criteria)
                    if hits > 0:
                        found[name] = ExistingFile(
                            file_name=name, exists=entry.exists, hit_count=hits
                        )

            results = sorted(found.values(), key=lambda f: f.file_name)
            op["result_count"] = len(results)
            op["exact_match"] = exact_match

        return results, exact_match
