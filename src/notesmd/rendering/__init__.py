"""Rendering pipeline: markdown to HTML, code highlighting, note links."""

from notesmd.rendering.highlighter import (
    CodeHighlighter,
    LanguageDetector,
    PygmentsLanguageDetector,
)
from notesmd.rendering.link_resolver import resolve_links
from notesmd.rendering.markdown_renderer import MarkdownRenderer

__all__ = [
    "CodeHighlighter",
    "LanguageDetector",
    "MarkdownRenderer",
    "PygmentsLanguageDetector",
    "resolve_links",
]
