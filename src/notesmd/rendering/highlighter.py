"""Syntax highlighting for code blocks in rendered notes.

Lexer selection follows a fixed chain: the block's declared language,
then a content-based guess from a ``LanguageDetector``, then plain text.
"""
import logging
from typing import Optional, Protocol, runtime_checkable

from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_by_name, guess_lexer
from pygments.util import ClassNotFound

from notesmd.exceptions import RenderError

logger = logging.getLogger(__name__)


@runtime_checkable
class LanguageDetector(Protocol):
    """Guesses the language of a code block from its content."""

    def detect(self, content: str) -> Optional[str]:
        """Return a language tag for ``content``, or None if unsure."""
        ...


class PygmentsLanguageDetector:
    """Language detection backed by Pygments' lexer analysers."""

    def detect(self, content: str) -> Optional[str]:
        if not content.strip():
            return None
        try:
            lexer = guess_lexer(content)
        except ClassNotFound:
            return None
        return lexer.aliases[0] if lexer.aliases else None


class CodeHighlighter:
    """Formats code blocks as highlighted HTML with a fixed style.

    The formatter is built once; ``highlight`` keeps no state between
    calls and is safe to share across threads.
    """

    def __init__(
        self,
        style: str = "monokai",
        tab_width: int = 2,
        detector: Optional[LanguageDetector] = None,
    ):
        """Initialize the highlighter.

        Args:
            style: Name of a Pygments style.
            tab_width: Tabs in code are expanded to this many spaces.
            detector: Language guesser used when a block has no usable
                language tag. Defaults to PygmentsLanguageDetector.

        Raises:
            ClassNotFound: If ``style`` is not a known Pygments style.
        """
        self.style = style
        self.tab_width = tab_width
        self._detector = detector or PygmentsLanguageDetector()
        self._formatter = HtmlFormatter(style=style, noclasses=True, wrapcode=True)

    def _lexer_for(self, language: str) -> Optional[Lexer]:
        try:
            return get_lexer_by_name(language, tabsize=self.tab_width)
        except ClassNotFound:
            return None

    def resolve_lexer(self, source: str, language: Optional[str] = None) -> Lexer:
        """Pick a lexer: declared language, detected language, plain text."""
        if language:
            lexer = self._lexer_for(language)
            if lexer is not None:
                return lexer
            logger.debug(f"No lexer for language '{language}', guessing from content")

        detected = self._detector.detect(source)
        if detected:
            lexer = self._lexer_for(detected)
            if lexer is not None:
                return lexer

        return TextLexer(tabsize=self.tab_width)

    def highlight(self, source: str, language: Optional[str] = None) -> str:
        """Render ``source`` as highlighted HTML.

        Raises:
            RenderError: If tokenizing or formatting the block fails.
        """
        lexer = self.resolve_lexer(source, language)
        try:
            return highlight(source, lexer, self._formatter)
        except Exception as e:
            raise RenderError(
                "Failed to highlight code block",
                language=language or lexer.name,
                original_error=e,
            ) from e
