"""
Plain-text digest of a page, used only as enrichment input.

Bounds below keep the enrichment prompt size predictable. They are not
request options.
"""

import copy
import re

from bs4 import BeautifulSoup

MAX_HEADINGS_LENGTH = 500
MAX_CONTENT_LENGTH = 2000

# Boilerplate removed before any text is read
NON_CONTENT_TAGS = ['script', 'style', 'noscript', 'nav', 'footer', 'aside']
NON_CONTENT_SELECTORS = '.advertisement, .ads, .sidebar'


def _strip_boilerplate(soup: BeautifulSoup) -> BeautifulSoup:
    """Return a copy of soup without scripts, navigation, ads and sidebars."""
    # Work on a copy so extractors can keep using the original tree
    cleaned = copy.copy(soup)

    for element in cleaned.find_all(NON_CONTENT_TAGS):
        element.decompose()
    for element in cleaned.select(NON_CONTENT_SELECTORS):
        element.decompose()

    return cleaned


def build_text_digest(soup: BeautifulSoup) -> dict:
    """
    Reduce a page to the text the enrichment prompt needs.

    Returns dict with:
        title: str - <title> text
        headings: str - H1-H3 texts joined by spaces, max 500 chars
        meta_description: str - <meta name="description"> content or ''
        content: str - visible body text, whitespace collapsed, max 2000 chars
    """
    cleaned = _strip_boilerplate(soup)

    title_tag = cleaned.find('title')
    title = title_tag.get_text().strip() if title_tag else ''

    headings = ' '.join(
        heading.get_text().strip() for heading in cleaned.select('h1, h2, h3')
    )

    meta_tag = cleaned.find('meta', attrs={'name': 'description'})
    meta_description = (meta_tag.get('content') or '') if meta_tag else ''

    body = cleaned.find('body') or cleaned
    content = re.sub(r'\s+', ' ', body.get_text(separator=' ')).strip()

    return {
        'title': title,
        'headings': headings[:MAX_HEADINGS_LENGTH],
        'meta_description': meta_description,
        'content': content[:MAX_CONTENT_LENGTH],
    }
