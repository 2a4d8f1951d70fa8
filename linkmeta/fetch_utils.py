"""
Webpage fetching and fetch-error classification.

Every failure is returned as an error dict instead of raised:
    {
        'stage': 'fetch',
        'code': one of ERROR_CODES,
        'message': human readable text,
        'status_code': upstream HTTP status for http_error, else None,
        'recoverable': True
    }
"""

import socket
import time
from typing import Optional, Tuple
from urllib.parse import urlparse

import requests

ERROR_INVALID_URL = 'invalid_url'
ERROR_TIMEOUT = 'timeout'
ERROR_DOMAIN_NOT_FOUND = 'domain_not_found'
ERROR_HTTP = 'http_error'
ERROR_INTERNAL = 'internal_error'

ERROR_CODES = [
    ERROR_INVALID_URL,
    ERROR_TIMEOUT,
    ERROR_DOMAIN_NOT_FOUND,
    ERROR_HTTP,
    ERROR_INTERNAL,
]

ALLOWED_SCHEMES = ('http', 'https')

CHUNK_SIZE = 16 * 1024
MAX_BODY_BYTES = 5 * 1024 * 1024

# Resolver messages across urllib3 versions and platforms
DNS_FAILURE_MARKERS = [
    'NameResolutionError',
    'Name or service not known',
    'nodename nor servname provided',
    'getaddrinfo failed',
    'No address associated with hostname',
    'Temporary failure in name resolution',
]


def make_error(code: str, message: str, status_code: int = None, stage: str = 'fetch') -> dict:
    """Build an error dict in the shape callers expect."""
    return {
        'stage': stage,
        'code': code,
        'message': message,
        'status_code': status_code,
        'recoverable': True,
    }


def is_valid_url(url: str) -> bool:
    """Check that url is an absolute http(s) URL with a host."""
    if not url or not isinstance(url, str):
        return False

    try:
        parsed = urlparse(url.strip())
        # Accessing .port raises on malformed ports like "host:abc"
        parsed.port
    except ValueError:
        return False

    return parsed.scheme.lower() in ALLOWED_SCHEMES and bool(parsed.hostname)


def _is_dns_failure(exc: Exception) -> bool:
    """Walk the exception chain looking for a name resolution failure."""
    seen = set()
    current = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return True
        if type(current).__name__ == 'NameResolutionError':
            return True
        # urllib3 MaxRetryError keeps the underlying error on .reason
        reason = getattr(current, 'reason', None)
        if isinstance(reason, BaseException):
            current = reason
            continue
        if current.args and isinstance(current.args[0], BaseException):
            current = current.args[0]
            continue
        current = current.__cause__ or current.__context__

    text = str(exc)
    return any(marker in text for marker in DNS_FAILURE_MARKERS)


def _decode_body(body: bytes, response) -> str:
    """Decode with the declared charset, else UTF-8."""
    content_type = response.headers.get('Content-Type', '').lower()
    encoding = response.encoding if 'charset' in content_type else None
    try:
        return body.decode(encoding or 'utf-8', errors='replace')
    except LookupError:
        return body.decode('utf-8', errors='replace')


def fetch_webpage(url: str, user_agent: str, timeout_ms: int, max_redirects: int) -> Tuple[Optional[str], Optional[dict]]:
    """
    Fetch webpage HTML. Returns (html, error).

    timeout_ms is a deadline for the whole fetch (redirects and body
    included), not only a per-socket timeout. Bodies past MAX_BODY_BYTES
    are cut off; the head of the page is what carries metadata.

    Args:
        url: Absolute http(s) URL
        user_agent: User-Agent header to send
        timeout_ms: Total time allowed in milliseconds
        max_redirects: Maximum number of redirects to follow

    Returns:
        Tuple of (html, None) on success or (None, error_dict) on failure
    """
    headers = {
        'User-Agent': user_agent,
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.5',
    }
    deadline = time.monotonic() + timeout_ms / 1000

    try:
        with requests.Session() as session:
            session.max_redirects = max_redirects
            with session.get(
                url,
                headers=headers,
                timeout=timeout_ms / 1000,
                allow_redirects=True,
                stream=True
            ) as response:
                response.raise_for_status()
                if time.monotonic() > deadline:
                    return None, make_error(ERROR_TIMEOUT, 'Request timeout')

                chunks = []
                size = 0
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if time.monotonic() > deadline:
                        return None, make_error(ERROR_TIMEOUT, 'Request timeout')
                    chunks.append(chunk)
                    size += len(chunk)
                    if size >= MAX_BODY_BYTES:
                        break

                body = b''.join(chunks)[:MAX_BODY_BYTES]
                return _decode_body(body, response), None

    except requests.exceptions.Timeout:
        return None, make_error(ERROR_TIMEOUT, 'Request timeout')
    except requests.exceptions.HTTPError as e:
        status_code = e.response.status_code if e.response is not None else None
        if status_code is None:
            return None, make_error(ERROR_INTERNAL, f'HTTP error: {e}')
        return None, make_error(ERROR_HTTP, f'HTTP {status_code} error', status_code=status_code)
    except requests.exceptions.ConnectionError as e:
        if _is_dns_failure(e):
            return None, make_error(ERROR_DOMAIN_NOT_FOUND, 'Domain not found')
        return None, make_error(ERROR_INTERNAL, f'Connection failed: {e}')
    except requests.exceptions.RequestException as e:
        return None, make_error(ERROR_INTERNAL, f'Request failed: {e}')
