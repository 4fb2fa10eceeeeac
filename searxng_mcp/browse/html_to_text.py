"""ABOUTME: HTML to normalized text conversion for browse results.

Strips non-content elements with BeautifulSoup, then renders the remaining
markup as Markdown-flavoured text with markdownify: headings become "#"
markers, list items "- " and links "[text](href)".
"""

import logging
import re
from typing import Optional, Tuple

from bs4 import BeautifulSoup, Comment
from markdownify import ATX, markdownify

logger = logging.getLogger(__name__)

# Elements that never carry readable content
STRIP_TAGS = ("script", "style", "noscript", "template", "iframe", "svg", "head")

_INLINE_SPACE_RUN = re.compile(r"(?<=\S)[ \t\u00a0]+")
_BLANK_LINES = re.compile(r"\n{3,}")
_FENCE = "```"


def extract_title(soup: BeautifulSoup) -> Optional[str]:
    """Return the document title, falling back to the first <h1>."""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
        if title:
            return title
    h1 = soup.find("h1")
    if h1:
        title = h1.get_text(" ", strip=True)
        if title:
            return title
    return None


def normalize_whitespace(text: str) -> str:
    """Tidy converted text without touching its layout.

    Space runs after the first word of a line collapse to one space, trailing
    spaces go, and three or more newlines become two. Leading indentation
    (nested lists, indented code) is kept. Lines inside ``` fences are left
    as they are apart from trailing spaces.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    lines = []
    in_fence = False
    for line in text.split("\n"):
        if line.lstrip().startswith(_FENCE):
            in_fence = not in_fence
        elif not in_fence:
            line = _INLINE_SPACE_RUN.sub(" ", line)
        lines.append(line.rstrip())

    text = _BLANK_LINES.sub("\n\n", "\n".join(lines))
    return text.strip("\n").rstrip()


def html_to_text(html: str) -> Tuple[str, Optional[str]]:
    """Convert an HTML document to readable text.

    Args:
        html: Decoded HTML source

    Returns:
        Tuple of (text, title); title is None when the page has none
    """
    soup = BeautifulSoup(html, "lxml")
    title = extract_title(soup)

    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    for tag in soup.find_all(STRIP_TAGS):
        tag.decompose()

    root = soup.body or soup
    text = markdownify(str(root), heading_style=ATX, bullets="-")
    text = normalize_whitespace(text)

    logger.debug(f"Converted HTML: {len(html)} chars -> {len(text)} chars")
    return text, title
