"""Markdown to HTML rendering for notes."""
import logging
import re
from typing import Any, List, Optional, Sequence, Tuple, Union

from markdown_it import MarkdownIt
from markdown_it.common.utils import escapeHtml, unescapeAll
from markdown_it.token import Token
from mdit_py_plugins.anchors import anchors_plugin
from mdit_py_plugins.deflist import deflist_plugin

from notesmd.config import NotesConfig
from notesmd.exceptions import RenderError
from notesmd.rendering.highlighter import CodeHighlighter, LanguageDetector
from notesmd.rendering.link_resolver import LINK_TOKEN_PATTERN

logger = logging.getLogger(__name__)

# Links carrying a URI scheme (https:, mailto:) or protocol-relative ones
_EXTERNAL_LINK = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.\-]*:|//)")


def build_toc(tokens: Sequence[Token]) -> str:
    """Build a nested ``<nav>`` list linking to every identified heading.

    Returns an empty string when the document has no headings.
    """
    entries: List[Tuple[int, str, str]] = []
    for i, token in enumerate(tokens):
        if token.type != "heading_open":
            continue
        slug = token.attrGet("id")
        if not slug or i + 1 >= len(tokens):
            continue
        inline = tokens[i + 1]
        text = "".join(
            child.content
            for child in inline.children or []
            if child.type in ("text", "code_inline")
        )
        entries.append((int(token.tag[1]), str(slug), text))

    if not entries:
        return ""

    base = min(level for level, _, _ in entries)
    parts = ['<nav class="toc">\n']
    # One flag per open <ul>: whether its last <li> is still open
    open_items: List[bool] = []

    def close_list() -> None:
        if open_items.pop():
            parts.append("</li>\n")
        parts.append("</ul>\n")

    for level, slug, text in entries:
        target = level - base + 1
        while len(open_items) > target:
            close_list()
        while len(open_items) < target:
            if open_items and not open_items[-1]:
                # Skipped heading level: an empty item holds the sublist
                parts.append("<li>")
                open_items[-1] = True
            parts.append("<ul>\n")
            open_items.append(False)
        if open_items[-1]:
            parts.append("</li>\n")
        label = LINK_TOKEN_PATTERN.sub(r"\1", text)
        parts.append(f'<li><a href="#{escapeHtml(slug)}">{escapeHtml(label)}</a>')
        open_items[-1] = True
    while open_items:
        close_list()
    parts.append("</nav>\n")
    return "".join(parts)


class MarkdownRenderer:
    """Converts raw markdown into HTML.

    Supports CommonMark plus tables, strikethrough, definition lists and
    heading ids. Every code block is handed to a ``CodeHighlighter``; a
    block that fails to highlight is emitted verbatim instead of failing
    the whole document. External links open in a new browsing context.

    The parser and highlighter are configured once in ``__init__`` and
    only read afterwards, so one renderer can serve concurrent callers.
    """

    def __init__(
        self,
        highlighter: Optional[CodeHighlighter] = None,
        toc_enabled: bool = True,
    ):
        self._highlighter = highlighter or CodeHighlighter()
        self.toc_enabled = toc_enabled

        self._md = (
            MarkdownIt("commonmark", {"html": True})
            .enable(["table", "strikethrough"])
            .use(deflist_plugin)
            .use(anchors_plugin, min_level=1, max_level=6)
        )
        self._md.renderer.rules["fence"] = self._render_code
        self._md.renderer.rules["code_block"] = self._render_code
        self._md.renderer.rules["link_open"] = self._render_link_open

    @classmethod
    def from_config(
        cls, cfg: NotesConfig, detector: Optional[LanguageDetector] = None
    ) -> "MarkdownRenderer":
        """Build a renderer using the configured style, tab width and TOC flag."""
        highlighter = CodeHighlighter(
            style=cfg.code_style, tab_width=cfg.tab_width, detector=detector
        )
        return cls(highlighter=highlighter, toc_enabled=cfg.toc_enabled)

    def render(self, raw: Union[bytes, str]) -> str:
        """Render markdown source to an HTML fragment."""
        if isinstance(raw, bytes):
            text = raw.decode("utf-8", errors="replace")
        else:
            text = raw

        env: dict = {}
        tokens = self._md.parse(text, env)
        body = self._md.renderer.render(tokens, self._md.options, env)
        if self.toc_enabled:
            return build_toc(tokens) + body
        return body

    def _render_code(
        self, tokens: Sequence[Token], idx: int, options: Any, env: dict
    ) -> str:
        token = tokens[idx]
        info = unescapeAll(token.info).strip() if token.info else ""
        language = info.split(maxsplit=1)[0] if info else None
        try:
            return self._highlighter.highlight(token.content, language)
        except RenderError as e:
            logger.warning(f"Rendering code block without highlighting: {e}")
            return f"<pre><code>{escapeHtml(token.content)}</code></pre>\n"

    def _render_link_open(
        self, tokens: Sequence[Token], idx: int, options: Any, env: dict
    ) -> str:
        token = tokens[idx]
        href = token.attrGet("href")
        if href and _EXTERNAL_LINK.match(str(href)):
            token.attrSet("target", "_blank")
            token.attrSet("rel", "noopener noreferrer")
        return self._md.renderer.renderToken(tokens, idx, options, env)
