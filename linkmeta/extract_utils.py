"""
Field extractors and the metadata aggregator.

Each extractor looks at one metadata field and tries its rules in a fixed
order (social/structured markup, then generic HTML, then fallbacks). The
first non-empty value wins. FIELD_EXTRACTORS is the single ordered table
the aggregator runs.
"""

import json
import re
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from dateutil import parser as dateparser

# Output order of a metadata record
METADATA_FIELDS = (
    'lang',
    'author',
    'title',
    'description',
    'publisher',
    'image',
    'logo',
    'url',
    'date',
)

LANG_PATTERN = re.compile(r'^([a-z]{2,3})(?:[-_][a-z0-9]+)*$', re.I)
BYLINE_PREFIX = re.compile(r'^by\s+', re.I)

# Two defaults differing in year, month and day; a value that parses the
# same against both carries a full date of its own
DATE_FILL_DEFAULTS = (datetime(2001, 1, 1), datetime(2002, 2, 2))


def empty_record() -> dict:
    """Return a metadata record with every field absent."""
    return {field: None for field in METADATA_FIELDS}


# ============================================================================
# Helpers
# ============================================================================

def _clean(value) -> Optional[str]:
    """Collapse whitespace; empty or non-string values become None."""
    if not isinstance(value, str):
        return None
    value = ' '.join(value.split())
    return value or None


def _first(*values) -> Optional[str]:
    for value in values:
        cleaned = _clean(value)
        if cleaned:
            return cleaned
    return None


def _meta(soup: BeautifulSoup, key: str) -> Optional[str]:
    """Content of the first <meta> whose property, name or itemprop is key."""
    key = key.lower()
    for tag in soup.find_all('meta'):
        for attr in ('property', 'name', 'itemprop'):
            if (tag.get(attr) or '').strip().lower() == key:
                content = _clean(tag.get('content'))
                if content:
                    return content
    return None


def _meta_any(soup: BeautifulSoup, *keys: str) -> Optional[str]:
    for key in keys:
        value = _meta(soup, key)
        if value:
            return value
    return None


def _itemprop(soup: BeautifulSoup, prop: str) -> Optional[str]:
    """Microdata value: content/href/src attribute or the element text."""
    for tag in soup.find_all(attrs={'itemprop': prop}):
        value = _first(tag.get('content'), tag.get('href'), tag.get('src'))
        if not value and tag.name != 'meta':
            value = _clean(tag.get_text(' ', strip=True))
        if value:
            return value
    return None


def _link_href(soup: BeautifulSoup, *rels: str) -> Optional[str]:
    """href of the first <link> whose rel list contains one of rels."""
    wanted = [rel.lower() for rel in rels]
    for rel in wanted:
        for tag in soup.find_all('link', href=True):
            tag_rels = tag.get('rel') or []
            if isinstance(tag_rels, str):
                tag_rels = tag_rels.split()
            tag_rels = [r.lower() for r in tag_rels]
            # "shortcut icon" is two rel tokens
            if rel in tag_rels or rel == ' '.join(tag_rels):
                href = _clean(tag['href'])
                if href:
                    return href
    return None


def _json_ld_nodes(soup: BeautifulSoup) -> List[dict]:
    """All JSON-LD objects on the page, flattened across lists and @graph."""
    nodes = []
    for script in soup.find_all('script', type='application/ld+json'):
        try:
            data = json.loads(script.string or '')
        except ValueError:
            continue

        stack = data if isinstance(data, list) else [data]
        while stack:
            node = stack.pop(0)
            if isinstance(node, list):
                stack.extend(node)
            elif isinstance(node, dict):
                nodes.append(node)
                if isinstance(node.get('@graph'), list):
                    stack.extend(node['@graph'])
    return nodes


def _json_ld_value(soup: BeautifulSoup, *keys: str):
    """First JSON-LD value found under any of keys, in key order."""
    nodes = _json_ld_nodes(soup)
    for key in keys:
        for node in nodes:
            value = node.get(key)
            if value:
                return value
    return None


def _name_of(value) -> Optional[str]:
    """Name from a JSON-LD Person/Organization, plain string or list of them."""
    if isinstance(value, list):
        return _first(*[_name_of(item) for item in value])
    if isinstance(value, dict):
        return _clean(value.get('name'))
    return _clean(value)


def _url_of(value) -> Optional[str]:
    """URL from a JSON-LD ImageObject, plain string or list of them."""
    if isinstance(value, list):
        return _first(*[_url_of(item) for item in value])
    if isinstance(value, dict):
        return _clean(value.get('url') or value.get('contentUrl'))
    return _clean(value)


def _absolute_url(value: Optional[str], base_url: str) -> Optional[str]:
    """Resolve value against base_url; only http(s) results are kept."""
    value = _clean(value)
    if not value:
        return None
    resolved = urljoin(base_url, value)
    if urlparse(resolved).scheme.lower() not in ('http', 'https'):
        return None
    return resolved


def _looks_like_url(value: str) -> bool:
    return '://' in value or value.startswith('www.')


# ============================================================================
# Field extractors
# ============================================================================

def extract_title(soup: BeautifulSoup, url: str) -> Optional[str]:
    """Title from social tags, JSON-LD, <title>, then headline classes."""
    ld_title = _json_ld_value(soup, 'headline')
    title_tag = soup.find('title')
    post_title = soup.select_one('.post-title, .entry-title')
    h1_tag = soup.find('h1')

    return _first(
        _meta(soup, 'og:title'),
        _meta(soup, 'twitter:title'),
        ld_title if isinstance(ld_title, str) else None,
        title_tag.get_text() if title_tag else None,
        post_title.get_text(' ') if post_title else None,
        h1_tag.get_text(' ') if h1_tag else None,
    )


def extract_description(soup: BeautifulSoup, url: str) -> Optional[str]:
    """Description from markup only; body text is never used here."""
    ld_desc = _json_ld_value(soup, 'description')

    return _first(
        _meta(soup, 'og:description'),
        _meta(soup, 'twitter:description'),
        _meta(soup, 'description'),
        _itemprop(soup, 'description'),
        ld_desc if isinstance(ld_desc, str) else None,
    )


def extract_author(soup: BeautifulSoup, url: str) -> Optional[str]:
    author_rel = soup.find('a', rel='author')
    author_class = soup.find(attrs={'class': re.compile(r'author|byline', re.I)})

    candidates = [
        _name_of(_json_ld_value(soup, 'author')),
        _meta(soup, 'author'),
        _meta(soup, 'article:author'),
        _itemprop(soup, 'author'),
        author_rel.get_text(' ', strip=True) if author_rel else None,
        author_class.get_text(' ', strip=True) if author_class else None,
    ]

    for candidate in candidates:
        candidate = _clean(candidate)
        if not candidate:
            continue
        candidate = _clean(BYLINE_PREFIX.sub('', candidate))
        # article:author is often a profile URL rather than a name
        if candidate and not _looks_like_url(candidate):
            return candidate
    return None


def extract_publisher(soup: BeautifulSoup, url: str) -> Optional[str]:
    return _first(
        _meta(soup, 'og:site_name'),
        _name_of(_json_ld_value(soup, 'publisher')),
        _meta(soup, 'application-name'),
        _meta(soup, 'publisher'),
        _meta(soup, 'apple-mobile-web-app-title'),
    )


def extract_image(soup: BeautifulSoup, url: str) -> Optional[str]:
    candidates = [
        _meta(soup, 'og:image:secure_url'),
        _meta(soup, 'og:image'),
        _meta(soup, 'og:image:url'),
        _meta(soup, 'twitter:image'),
        _meta(soup, 'twitter:image:src'),
        _itemprop(soup, 'image'),
        _url_of(_json_ld_value(soup, 'image', 'thumbnailUrl')),
        _link_href(soup, 'image_src'),
    ]

    for candidate in candidates:
        resolved = _absolute_url(candidate, url)
        if resolved:
            return resolved
    return None


def extract_logo(soup: BeautifulSoup, url: str) -> Optional[str]:
    publisher = _json_ld_value(soup, 'publisher')
    publisher_logo = publisher.get('logo') if isinstance(publisher, dict) else None

    candidates = [
        _url_of(publisher_logo),
        _url_of(_json_ld_value(soup, 'logo')),
        _itemprop(soup, 'logo'),
        _meta(soup, 'og:logo'),
        _link_href(soup, 'apple-touch-icon', 'apple-touch-icon-precomposed'),
        _link_href(soup, 'icon', 'shortcut icon'),
    ]

    for candidate in candidates:
        resolved = _absolute_url(candidate, url)
        if resolved:
            return resolved
    return None


def extract_url(soup: BeautifulSoup, url: str) -> Optional[str]:
    """Canonical URL declared by the page; None if it declares none."""
    candidates = [
        _meta(soup, 'og:url'),
        _meta(soup, 'twitter:url'),
        _link_href(soup, 'canonical'),
        _meta(soup, 'al:web:url'),
    ]

    for candidate in candidates:
        resolved = _absolute_url(candidate, url)
        if resolved:
            return resolved
    return None


def _normalize_date(value) -> Optional[str]:
    """
    Parse a date string into ISO 8601 UTC, or None if unparseable.

    Values missing a date part ("10:30", "March 5", "2024") are rejected:
    dateutil would fill the gap from its default and invent a date.
    """
    value = _clean(value)
    if not value:
        return None

    try:
        first = dateparser.parse(value, default=DATE_FILL_DEFAULTS[0])
        second = dateparser.parse(value, default=DATE_FILL_DEFAULTS[1])
        if first != second:
            return None

        if first.tzinfo is None:
            first = first.replace(tzinfo=timezone.utc)
        return first.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
    except (ValueError, OverflowError):
        return None


def extract_date(soup: BeautifulSoup, url: str) -> Optional[str]:
    """Publish date, falling back to modification date."""
    time_tag = soup.find('time', attrs={'datetime': True})

    candidates = [
        _meta(soup, 'article:published_time'),
        _meta(soup, 'og:published_time'),
        _json_ld_value(soup, 'datePublished'),
        _json_ld_value(soup, 'dateCreated'),
        _itemprop(soup, 'datePublished'),
        _meta(soup, 'date'),
        _meta_any(soup, 'dc.date', 'dc.date.issued', 'dcterms.date', 'dcterms.created'),
        time_tag.get('datetime') if time_tag else None,
        _meta(soup, 'article:modified_time'),
        _json_ld_value(soup, 'dateModified'),
    ]

    for candidate in candidates:
        normalized = _normalize_date(candidate)
        if normalized:
            return normalized
    return None


def _normalize_lang(value) -> Optional[str]:
    """'en-US' / 'ko_KR' / 'EN' -> primary ISO 639 subtag in lowercase."""
    value = _clean(value)
    if not value:
        return None
    # Content-Language may list several languages
    value = value.split(',')[0].strip()
    match = LANG_PATTERN.match(value)
    return match.group(1).lower() if match else None


def extract_lang(soup: BeautifulSoup, url: str) -> Optional[str]:
    html_tag = soup.find('html')
    content_language = None
    for tag in soup.find_all('meta', attrs={'http-equiv': True}):
        if tag['http-equiv'].strip().lower() == 'content-language':
            content_language = tag.get('content')
            break

    candidates = [
        html_tag.get('lang') if html_tag else None,
        html_tag.get('xml:lang') if html_tag else None,
        content_language,
        _meta(soup, 'og:locale'),
        _meta(soup, 'language'),
        _json_ld_value(soup, 'inLanguage'),
    ]

    for candidate in candidates:
        normalized = _normalize_lang(candidate)
        if normalized:
            return normalized
    return None


# Fixed, ordered extractor table. Each entry: (field, extractor(soup, url))
FIELD_EXTRACTORS: Tuple[Tuple[str, Callable[[BeautifulSoup, str], Optional[str]]], ...] = (
    ('title', extract_title),
    ('description', extract_description),
    ('author', extract_author),
    ('publisher', extract_publisher),
    ('image', extract_image),
    ('logo', extract_logo),
    ('url', extract_url),
    ('date', extract_date),
    ('lang', extract_lang),
)


def aggregate_metadata(soup: BeautifulSoup, url: str) -> dict:
    """
    Run every field extractor against the same document.

    A failing extractor only loses its own field; the rest of the record
    is still built. No network access happens here.

    Args:
        soup: Parsed page
        url: URL the page was requested from (base for relative links)

    Returns:
        Metadata record with all METADATA_FIELDS keys
    """
    record = empty_record()

    for field, extractor in FIELD_EXTRACTORS:
        try:
            record[field] = _clean(extractor(soup, url))
        except Exception as e:
            print(f"Extractor '{field}' failed for {url}: {e}")
            record[field] = None

    return record
