"""Tests for {PageName} link resolution."""
from notesmd.rendering.link_resolver import resolve_links


class TestResolveLinks:
    """Tests for resolve_links."""

    def test_token_becomes_view_link(self):
        html = resolve_links("<p>Cook {Pasta} tonight</p>")
        assert html == '<p>Cook <a href="/view/Pasta">Pasta</a> tonight</p>'

    def test_every_occurrence_is_replaced(self):
        html = resolve_links("<p>{Pasta} then {Pasta}, then {Pasta}</p>")
        assert html.count('<a href="/view/Pasta">Pasta</a>') == 3
        assert "{Pasta}" not in html

    def test_distinct_tokens(self):
        html = resolve_links("<p>{Soup} and {Bread}</p>")
        assert '<a href="/view/Soup">Soup</a>' in html
        assert '<a href="/view/Bread">Bread</a>' in html

    def test_whitespace_and_digits_allowed(self):
        html = resolve_links("<li>{Shopping List 2}</li>")
        assert '<a href="/view/Shopping List 2">Shopping List 2</a>' in html

    def test_other_braces_untouched(self):
        source = "<code>{foo-bar}</code> {} {é}"
        assert resolve_links(source) == source

    def test_custom_view_route(self):
        html = resolve_links("{Index}", view_route="/notes/")
        assert html == '<a href="/notes/Index">Index</a>'

    def test_no_tokens(self):
        assert resolve_links("<p>nothing</p>") == "<p>nothing</p>"
