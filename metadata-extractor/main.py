"""
Metadata Extractor Cloud Function

Fetches a webpage and returns link-preview metadata
(title, description, author, publisher, image, logo, lang, date, url).

Responsibilities:
- Validate the requested URL
- Fetch the page and extract metadata from its markup
- Fill a missing description (and author/publisher/lang) with Gemini

Does NOT:
- Cache results (caller's job)
- Rate limit or authenticate (API gateway's job)
- Render JavaScript or crawl linked pages
"""

import functions_framework
import json
import os
import sys
import time
from datetime import datetime, timezone

# Add linkmeta package to path when deployed without installing it
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from linkmeta.config import load_config
from linkmeta.fetch_utils import (
    ERROR_INVALID_URL,
    ERROR_TIMEOUT,
    ERROR_DOMAIN_NOT_FOUND,
    ERROR_HTTP,
)
from linkmeta.pipeline import extract_metadata

VERSION = '1.0.0'

# Paths that serve metadata; anything else but /health is a 404
METADATA_PATHS = ('', '/api/metadata')

# Read once per instance
CONFIG = load_config()


def _log(message: str) -> None:
    print(f"[{datetime.now(timezone.utc).isoformat()}] {message}")


def error_status(error: dict) -> tuple:
    """Map a pipeline error to (http_status, message)."""
    code = error.get('code')

    if code == ERROR_INVALID_URL:
        return 400, 'Invalid URL format'
    if code == ERROR_TIMEOUT:
        return 408, 'Request timeout'
    if code == ERROR_HTTP and error.get('status_code'):
        return error['status_code'], f"HTTP {error['status_code']} error"
    if code == ERROR_DOMAIN_NOT_FOUND:
        return 404, 'Domain not found'
    return 500, 'Internal server error'


def _parse_timeout(raw) -> int:
    """Per-request timeout in ms; None when missing or not a positive int."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


@functions_framework.http
def get_metadata(request):
    """
    Main Cloud Function entry point.

    Query parameters:
        url: Page to describe (required)
        userAgent: User-Agent override
        timeout: Fetch timeout override in milliseconds

    Response:
        {"status": true, "data": {...metadata...}}
        {"status": false, "message": "..."}
    """
    # Handle CORS
    if request.method == 'OPTIONS':
        headers = {
            'Access-Control-Allow-Origin': CONFIG.cors_origin,
            'Access-Control-Allow-Methods': 'GET',
            'Access-Control-Allow-Headers': 'Content-Type',
            'Access-Control-Max-Age': '3600'
        }
        return ('', 204, headers)

    headers = {
        'Access-Control-Allow-Origin': CONFIG.cors_origin,
        'Content-Type': 'application/json'
    }
    started = time.monotonic()
    path = getattr(request, 'path', '') or ''

    def respond(body: dict, status_code: int):
        duration_ms = round((time.monotonic() - started) * 1000)
        _log(f"{request.method} {path} - {status_code} - {duration_ms}ms")
        return (json.dumps(body, ensure_ascii=False), status_code, headers)

    _log(f"{request.method} {path} - Request received")

    if path.rstrip('/').endswith('/health'):
        return respond({
            'status': True,
            'message': 'API is running',
            'environment': CONFIG.environment,
            'version': VERSION
        }, 200)

    if path.rstrip('/') not in METADATA_PATHS:
        return respond({
            'status': False,
            'message': 'Endpoint not found'
        }, 404)

    try:
        args = request.args or {}
        url = args.get('url')

        if not url:
            return respond({
                'status': False,
                'message': 'URL parameter is required'
            }, 400)

        record, error = extract_metadata(
            url,
            CONFIG,
            user_agent=args.get('userAgent') or None,
            timeout_ms=_parse_timeout(args.get('timeout'))
        )

        if error:
            status_code, message = error_status(error)
            return respond({'status': False, 'message': message}, status_code)

        return respond({'status': True, 'data': record}, 200)

    except Exception as e:
        _log(f"Error scraping metadata: {e}")
        return respond({
            'status': False,
            'message': 'Internal server error'
        }, 500)
