"""Tests for markdown rendering and code highlighting."""
import pytest
from pygments.lexers import TextLexer
from pygments.util import ClassNotFound

from notesmd.rendering.highlighter import (
    CodeHighlighter,
    LanguageDetector,
    PygmentsLanguageDetector,
)
from notesmd.rendering.link_resolver import resolve_links
from notesmd.rendering.markdown_renderer import MarkdownRenderer
from tests.fakes import FailingHighlighter, FakeLanguageDetector


@pytest.fixture
def renderer():
    return MarkdownRenderer(toc_enabled=False)


class TestMarkdownFeatures:
    """Block and inline markdown support."""

    def test_heading_gets_generated_id(self, renderer):
        html = renderer.render(b"# Hello World\n")
        assert '<h1 id="hello-world">Hello World</h1>' in html

    def test_emphasis_and_lists(self, renderer):
        html = renderer.render(b"*soft* **loud**\n\n- one\n- two\n")
        assert "<em>soft</em>" in html
        assert "<strong>loud</strong>" in html
        assert "<ul>" in html
        assert "<li>two</li>" in html

    def test_table(self, renderer):
        html = renderer.render(b"| a | b |\n|---|---|\n| 1 | 2 |\n")
        assert "<table>" in html
        assert "<td>2</td>" in html

    def test_definition_list(self, renderer):
        html = renderer.render(b"Term\n: The definition\n")
        assert "<dl>" in html
        assert "<dt>Term</dt>" in html
        assert "<dd>The definition</dd>" in html

    def test_strikethrough(self, renderer):
        assert "<s>gone</s>" in renderer.render(b"~~gone~~")

    def test_accepts_str_and_invalid_utf8(self, renderer):
        assert "<p>plain</p>" in renderer.render("plain")
        html = renderer.render(b"broken \xff byte")
        assert "broken" in html
        assert "�" in html

    def test_render_is_repeatable(self, renderer):
        source = b"# Title\n\n```python\nx = 1\n```\n"
        assert renderer.render(source) == renderer.render(source)


class TestLinks:
    """Link target hardening."""

    def test_external_link_opens_new_context(self, renderer):
        html = renderer.render(b"[site](https://example.com)")
        assert 'href="https://example.com"' in html
        assert 'target="_blank"' in html
        assert 'rel="noopener noreferrer"' in html

    def test_internal_link_untouched(self, renderer):
        html = renderer.render(b"[home](/view/Index)")
        assert 'href="/view/Index"' in html
        assert "target=" not in html


class TestCodeBlocks:
    """Fenced and indented code blocks go through the highlighter."""

    def test_fenced_block_with_language_is_highlighted(self, renderer):
        html = renderer.render(b"```python\ndef f():\n    return 1\n```\n")
        assert 'class="highlight"' in html
        assert "<span style=" in html
        assert "return" in html

    def test_unknown_language_still_renders(self, renderer):
        html = renderer.render(b"```notalanguage\nhello there\n```\n")
        assert 'class="highlight"' in html
        assert "hello there" in html

    def test_detector_used_without_language_tag(self):
        detector = FakeLanguageDetector("python")
        renderer = MarkdownRenderer(
            highlighter=CodeHighlighter(detector=detector), toc_enabled=False
        )
        renderer.render(b"```\nimport os\n```\n")
        assert detector.calls == ["import os\n"]

    def test_detector_skipped_with_known_language(self):
        detector = FakeLanguageDetector("python")
        renderer = MarkdownRenderer(
            highlighter=CodeHighlighter(detector=detector), toc_enabled=False
        )
        renderer.render(b"```go\npackage main\n```\n")
        assert detector.calls == []

    def test_indented_code_block_is_highlighted(self, renderer):
        html = renderer.render(b"Intro\n\n    x = 1\n")
        assert 'class="highlight"' in html

    def test_highlight_failure_falls_back_to_verbatim(self):
        renderer = MarkdownRenderer(highlighter=FailingHighlighter(), toc_enabled=False)
        html = renderer.render(b"# Before\n\n```c\nif (x < y) {}\n```\n\nAfter\n")
        assert "<pre><code>if (x &lt; y) {}\n</code></pre>" in html
        assert "<p>After</p>" in html
        assert "Before</h1>" in html


class TestTableOfContents:
    """Optional table of contents."""

    def test_toc_prepended_when_enabled(self):
        renderer = MarkdownRenderer(toc_enabled=True)
        html = renderer.render(b"# One\n\n## Two\n\n# Three\n")
        assert html.startswith('<nav class="toc">')
        assert '<a href="#one">One</a>' in html
        assert '<a href="#two">Two</a>' in html
        assert html.index('href="#two"') < html.index('href="#three"')

    def test_toc_nests_subheadings(self):
        renderer = MarkdownRenderer(toc_enabled=True)
        html = renderer.render(b"# One\n\n## Two\n")
        toc = html[: html.index("</nav>")]
        assert toc.count("<ul>") == 2

    def test_skipped_level_keeps_lists_inside_items(self):
        renderer = MarkdownRenderer(toc_enabled=True)
        html = renderer.render(b"# One\n\n### Deep\n\n# Two\n")
        toc = html[: html.index("</nav>") + len("</nav>")]
        assert "<ul>\n<ul>" not in toc
        assert "</ul>\n</ul>" not in toc
        assert toc.count("<ul>") == toc.count("</ul>") == 3
        assert toc.count("<li>") == toc.count("</li>") == 4
        assert "<li><ul>" in toc

    def test_starts_below_top_level(self):
        renderer = MarkdownRenderer(toc_enabled=True)
        html = renderer.render(b"## Sub\n\n# Top\n")
        toc = html[: html.index("</nav>")]
        assert toc.count("<ul>") == toc.count("</ul>") == 2
        assert toc.count("<li>") == toc.count("</li>") == 3

    def test_link_tokens_stripped_from_entries(self):
        renderer = MarkdownRenderer(toc_enabled=True)
        html = resolve_links(renderer.render(b"# Cooking {Pasta}\n"))
        toc = html[: html.index("</nav>")]
        assert "Cooking Pasta</a>" in toc
        assert "/view/Pasta" not in toc
        assert '<a href="/view/Pasta">Pasta</a>' in html[html.index("</nav>") :]

    def test_no_toc_without_headings(self):
        renderer = MarkdownRenderer(toc_enabled=True)
        assert "<nav" not in renderer.render(b"just text\n")

    def test_toc_disabled(self, renderer):
        assert "<nav" not in renderer.render(b"# One\n")


class TestCodeHighlighter:
    """Lexer resolution chain: declared language, detection, plain text."""

    def test_declared_language(self):
        lexer = CodeHighlighter().resolve_lexer("x = 1", "python")
        assert lexer.name == "Python"

    def test_unknown_language_uses_detector(self):
        highlighter = CodeHighlighter(detector=FakeLanguageDetector("python"))
        assert highlighter.resolve_lexer("x = 1", "nonsense").name == "Python"

    def test_falls_back_to_plain_text(self):
        highlighter = CodeHighlighter(detector=FakeLanguageDetector(None))
        assert isinstance(highlighter.resolve_lexer("x", None), TextLexer)

    def test_detector_answer_without_lexer_falls_back(self):
        highlighter = CodeHighlighter(detector=FakeLanguageDetector("no-such-lang"))
        assert isinstance(highlighter.resolve_lexer("x", None), TextLexer)

    def test_tabs_are_expanded(self):
        html = CodeHighlighter(tab_width=2).highlight("\tx\n", "text")
        assert "\t" not in html
        assert "  x" in html

    def test_unknown_style_rejected(self):
        with pytest.raises(ClassNotFound):
            CodeHighlighter(style="no-such-style")

    def test_pygments_detector(self):
        detector = PygmentsLanguageDetector()
        assert isinstance(detector, LanguageDetector)
        assert detector.detect("   \n") is None
        assert detector.detect("#!/usr/bin/env python\nprint('hi')\n") == "python"
