"""Metadata extraction and enrichment for link previews."""

from .config import (
    Config,
    load_config,
)

from .fetch_utils import (
    ERROR_CODES,
    ERROR_INVALID_URL,
    ERROR_TIMEOUT,
    ERROR_DOMAIN_NOT_FOUND,
    ERROR_HTTP,
    ERROR_INTERNAL,
    is_valid_url,
    fetch_webpage,
)

from .extract_utils import (
    METADATA_FIELDS,
    FIELD_EXTRACTORS,
    empty_record,
    aggregate_metadata,
)

from .digest_utils import (
    MAX_HEADINGS_LENGTH,
    MAX_CONTENT_LENGTH,
    build_text_digest,
)

from .enrichment_utils import (
    ENRICHABLE_FIELDS,
    should_enrich,
    build_enrichment_prompt,
    parse_enrichment_reply,
    request_enrichment,
    merge_enrichment,
    make_gemini_completer,
)

from .pipeline import extract_metadata

__all__ = [
    # Configuration
    'Config',
    'load_config',
    # Fetching
    'ERROR_CODES',
    'ERROR_INVALID_URL',
    'ERROR_TIMEOUT',
    'ERROR_DOMAIN_NOT_FOUND',
    'ERROR_HTTP',
    'ERROR_INTERNAL',
    'is_valid_url',
    'fetch_webpage',
    # Extraction
    'METADATA_FIELDS',
    'FIELD_EXTRACTORS',
    'empty_record',
    'aggregate_metadata',
    # Digest
    'MAX_HEADINGS_LENGTH',
    'MAX_CONTENT_LENGTH',
    'build_text_digest',
    # Enrichment
    'ENRICHABLE_FIELDS',
    'should_enrich',
    'build_enrichment_prompt',
    'parse_enrichment_reply',
    'request_enrichment',
    'merge_enrichment',
    'make_gemini_completer',
    # Pipeline
    'extract_metadata',
]
