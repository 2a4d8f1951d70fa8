"""
Process-wide configuration for the metadata extractor.

Built once at startup from environment variables and passed explicitly
into the pipeline. Treated as read-only for the lifetime of the process.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_GEMINI_MODEL = 'gemini-2.0-flash'
DEFAULT_REQUEST_TIMEOUT_MS = 10000
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_ENRICHMENT_TIMEOUT_MS = 30000
DEFAULT_USER_AGENT = 'Mozilla/5.0 (compatible; LinkMetaBot/1.0)'

# Values copied from .env templates that were never filled in
PLACEHOLDER_API_KEYS = {'your_gemini_api_key_here', 'your_api_key_here', 'changeme'}


@dataclass(frozen=True)
class Config:
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    request_timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    user_agent: str = DEFAULT_USER_AGENT
    enrichment_timeout_ms: int = DEFAULT_ENRICHMENT_TIMEOUT_MS
    cors_origin: str = '*'
    environment: str = 'development'

    @property
    def has_enrichment_backend(self) -> bool:
        """True if a usable Gemini API key is configured."""
        key = (self.gemini_api_key or '').strip()
        return bool(key) and key.lower() not in PLACEHOLDER_API_KEYS


def _int_setting(environ: Mapping[str, str], name: str, default: int) -> int:
    """Read a positive integer setting, falling back to default on junk."""
    raw = environ.get(name)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def load_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """
    Build a Config from environment variables.

    Args:
        environ: Mapping to read from (default os.environ)

    Returns:
        Frozen Config instance
    """
    if environ is None:
        environ = os.environ

    return Config(
        gemini_api_key=environ.get('GEMINI_API_KEY') or None,
        gemini_model=environ.get('GEMINI_MODEL') or DEFAULT_GEMINI_MODEL,
        request_timeout_ms=_int_setting(environ, 'REQUEST_TIMEOUT_MS', DEFAULT_REQUEST_TIMEOUT_MS),
        max_redirects=_int_setting(environ, 'MAX_REDIRECTS', DEFAULT_MAX_REDIRECTS),
        user_agent=environ.get('USER_AGENT') or DEFAULT_USER_AGENT,
        enrichment_timeout_ms=_int_setting(environ, 'ENRICHMENT_TIMEOUT_MS', DEFAULT_ENRICHMENT_TIMEOUT_MS),
        cors_origin=environ.get('CORS_ORIGIN') or '*',
        environment=environ.get('APP_ENV') or 'development',
    )
