"""Clean captured DOM HTML before it is saved as a snapshot.

Scripts, styles, embedded frames, comments and inline handlers make up
most of a modern page's markup and none of its meaning. Stripping them
keeps snapshots small enough to hand to a model.
"""

from __future__ import annotations

from bs4 import BeautifulSoup, Comment

REMOVED_TAGS: tuple[str, ...] = (
    "script",
    "style",
    "link",
    "noscript",
    "iframe",
    "object",
    "embed",
)

# Elements injected by the recorder's own in-page panel.
RECORDER_UI_IDS: tuple[str, ...] = (
    "vibe-logger-panel",
    "vibe-toast-container",
    "vibe-logger-styles",
)

NOISY_ATTRIBUTE_PREFIXES: tuple[str, ...] = ("on", "data-gtm", "data-analytics", "data-track")

SVG_PLACEHOLDER = "[SVG]"


def clean_html(html: str) -> str:
    """Strip non-semantic noise from an HTML document.

    - removes script, style, link, noscript, iframe, object and embed
    - replaces every svg with ``<span data-original="svg">[SVG]</span>``
    - removes the recorder's own UI elements
    - removes comments
    - drops event handler and tracking attributes (on*, data-gtm*,
      data-analytics*, data-track*)

    Args:
        html: Raw outer HTML of the document.

    Returns:
        The cleaned HTML.
    """
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.find_all(list(REMOVED_TAGS)):
        tag.extract()

    for svg in soup.find_all("svg"):
        if svg.parent is None:
            continue
        placeholder = soup.new_tag("span")
        placeholder["data-original"] = "svg"
        placeholder.string = SVG_PLACEHOLDER
        svg.replace_with(placeholder)

    for element_id in RECORDER_UI_IDS:
        for element in soup.find_all(id=element_id):
            element.extract()

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    for element in soup.find_all(True):
        noisy = [
            name for name in element.attrs
            if name.lower().startswith(NOISY_ATTRIBUTE_PREFIXES)
        ]
        for name in noisy:
            del element[name]

    return str(soup)
