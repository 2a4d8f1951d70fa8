"""
Metadata extraction pipeline.

validate URL -> fetch -> parse -> aggregate -> enrichment gate
-> [digest -> enrichment request -> merge] -> normalized record
"""

from typing import Callable, Optional, Tuple

from bs4 import BeautifulSoup

from .config import Config
from .digest_utils import build_text_digest
from .enrichment_utils import (
    Completer,
    make_gemini_completer,
    merge_enrichment,
    request_enrichment,
    should_enrich,
)
from .extract_utils import METADATA_FIELDS, aggregate_metadata
from .fetch_utils import (
    ERROR_INTERNAL,
    ERROR_INVALID_URL,
    fetch_webpage,
    is_valid_url,
    make_error,
)

Fetcher = Callable[[str, str, int, int], Tuple[Optional[str], Optional[dict]]]


def normalize_record(record: dict, requested_url: str) -> dict:
    """Exactly METADATA_FIELDS keys, '' -> None, url defaults to the request URL."""
    normalized = {}
    for field in METADATA_FIELDS:
        value = record.get(field)
        normalized[field] = value if value else None

    if not normalized['url']:
        normalized['url'] = requested_url

    return normalized


def enrich_record(url: str, soup: BeautifulSoup, record: dict, config: Config,
                  complete: Optional[Completer] = None) -> dict:
    """Run the enrichment gate and, if it opens, fill missing fields."""
    enrich, skip_reason = should_enrich(record, config)
    if not enrich:
        print(f"Enrichment skipped for {url}: {skip_reason}")
        return record

    try:
        digest = build_text_digest(soup)
        if complete is None:
            complete = make_gemini_completer(config)
    except Exception as e:
        print(f"Enrichment setup failed for {url}: {e}")
        return record

    enrichment, error = request_enrichment(url, digest, record, complete)
    if error:
        print(f"Enrichment failed for {url}: {error}")
        return record

    return merge_enrichment(record, enrichment)


def extract_metadata(url: str, config: Config, user_agent: str = None, timeout_ms: int = None,
                     fetcher: Fetcher = fetch_webpage,
                     complete: Optional[Completer] = None) -> Tuple[Optional[dict], Optional[dict]]:
    """
    Fetch a URL and build its metadata record.

    Args:
        url: Page to describe
        config: Process configuration
        user_agent: Overrides config.user_agent for this request
        timeout_ms: Overrides config.request_timeout_ms for this request
        fetcher: fetch_webpage-compatible callable
        complete: Enrichment backend; built from config when None

    Returns:
        Tuple of (record, None) on success or (None, error_dict) on failure.
        Enrichment problems never produce an error.
    """
    if not is_valid_url(url):
        return None, make_error(ERROR_INVALID_URL, 'Invalid URL format', stage='validation')

    url = url.strip()
    html, fetch_error = fetcher(
        url,
        user_agent or config.user_agent,
        timeout_ms or config.request_timeout_ms,
        config.max_redirects
    )
    if fetch_error:
        print(f"Fetch failed for {url}: {fetch_error['code']} - {fetch_error['message']}")
        return None, fetch_error

    try:
        soup = BeautifulSoup(html or '', 'html.parser')
        record = aggregate_metadata(soup, url)
    except Exception as e:
        print(f"Parsing failed for {url}: {e}")
        return None, make_error(ERROR_INTERNAL, f'Parsing failed: {e}', stage='processing')

    if not record.get('url'):
        record['url'] = url

    record = enrich_record(url, soup, record, config, complete=complete)

    return normalize_record(record, url), None
