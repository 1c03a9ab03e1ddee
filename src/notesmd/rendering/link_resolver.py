"""Inter-note links: turns ``{PageName}`` tokens into view links."""
import re

# Brace-delimited note titles: ASCII letters, digits and whitespace
LINK_TOKEN_PATTERN = re.compile(r"\{([a-zA-Z0-9\s]+)\}", re.ASCII)


def resolve_links(html: str, view_route: str = "/view/") -> str:
    """Replace every ``{Name}`` token in rendered HTML with a link to ``Name``.

    Tokens are taken first-to-last and each distinct token text is replaced
    everywhere it occurs, so repeated mentions all become links. Targets
    are not checked against the repository; a link to a missing note is
    left for the view route to turn into a create prompt.
    """
    found = [m.group(0) for m in LINK_TOKEN_PATTERN.finditer(html)]
    for token in found:
        name = token[1:-1]
        html = html.replace(token, f'<a href="{view_route}{name}">{name}</a>')
    return html
