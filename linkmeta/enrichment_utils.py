"""
Language-model enrichment for records that came back without a description.

Flow: should_enrich() -> request_enrichment() -> merge_enrichment().
Enrichment failures never fail the request; they degrade to "no enrichment".
"""

import json
import re
from typing import Callable, Optional, Tuple

import google.generativeai as genai

from .config import Config

# Fields the model may fill in. Everything else stays extractor-only.
ENRICHABLE_FIELDS = ('description', 'author', 'publisher', 'lang')

SKIP_NO_BACKEND = 'no_backend'
SKIP_HAS_DESCRIPTION = 'has_description'

# Completer: prompt in, raw reply text out. May raise.
Completer = Callable[[str], str]


def should_enrich(record: dict, config: Config) -> Tuple[bool, Optional[str]]:
    """
    Decide whether to call the enrichment backend at all.

    Returns:
        Tuple of (enrich, skip_reason). skip_reason is None when enriching.
    """
    if not config.has_enrichment_backend:
        return (False, SKIP_NO_BACKEND)

    description = record.get('description')
    if isinstance(description, str) and description.strip():
        return (False, SKIP_HAS_DESCRIPTION)

    return (True, None)


def build_enrichment_prompt(url: str, digest: dict, record: dict) -> str:
    """Build the prompt sent to the model. Same inputs, same prompt."""
    current = json.dumps(record, indent=2, ensure_ascii=False, sort_keys=True)

    return f"""Extract webpage metadata.

URL: {url}
Title: {digest.get('title', '')}
Main headings: {digest.get('headings', '')}
Existing meta description: {digest.get('meta_description', '')}
Body content: {digest.get('content', '')}

Metadata extracted so far:
{current}

Fill in the missing information. Respond with ONLY a JSON object, no other text:
{{
  "description": "Page summary, 50-160 characters, in the page's own language",
  "author": "Author name or null",
  "publisher": "Publisher name or null",
  "lang": "ISO 639-1 language code (en/ko/etc) or null"
}}
Use JSON null for anything you cannot determine."""


def _normalize_value(value) -> Optional[str]:
    """Non-empty strings pass; '', 'null', non-strings become None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value.lower() == 'null':
        return None
    return value


def parse_enrichment_reply(reply_text: str) -> Tuple[Optional[dict], Optional[str]]:
    """
    Parse a model reply into an enrichment result.

    Tolerates Markdown code fences and text around the JSON object.

    Returns:
        Tuple of (result, error). result has exactly ENRICHABLE_FIELDS keys.
    """
    if not reply_text or not reply_text.strip():
        return None, 'Empty reply from enrichment backend'

    json_match = re.search(r'\{[\s\S]*\}', reply_text)
    if not json_match:
        return None, 'No JSON object in enrichment reply'

    try:
        parsed = json.loads(json_match.group())
    except ValueError as e:
        return None, f'Malformed JSON in enrichment reply: {e}'

    if not isinstance(parsed, dict):
        return None, 'Enrichment reply is not a JSON object'

    return {field: _normalize_value(parsed.get(field)) for field in ENRICHABLE_FIELDS}, None


def request_enrichment(url: str, digest: dict, record: dict, complete: Completer) -> Tuple[Optional[dict], Optional[str]]:
    """
    Ask the backend once for the missing fields.

    Never raises: backend errors and unusable replies come back as
    (None, error_message).
    """
    prompt = build_enrichment_prompt(url, digest, record)

    try:
        reply_text = complete(prompt)
    except Exception as e:
        return None, f'Enrichment backend error: {e}'

    if not isinstance(reply_text, str):
        return None, 'Enrichment backend returned no text'

    print(f"Enrichment reply for {url}: {reply_text[:200]}")
    return parse_enrichment_reply(reply_text)


def merge_enrichment(record: dict, enrichment: Optional[dict]) -> dict:
    """
    Fill absent enrichable fields from the enrichment result.

    Extracted values always win. Fields outside ENRICHABLE_FIELDS are
    copied through untouched.
    """
    merged = dict(record)
    if not enrichment:
        return merged

    for field in ENRICHABLE_FIELDS:
        current = merged.get(field)
        if isinstance(current, str) and current.strip():
            continue
        value = _normalize_value(enrichment.get(field))
        if value:
            merged[field] = value

    return merged


def make_gemini_completer(config: Config) -> Completer:
    """Build a completer backed by Gemini with the configured timeout."""
    genai.configure(api_key=config.gemini_api_key)
    model = genai.GenerativeModel(config.gemini_model)
    timeout_seconds = config.enrichment_timeout_ms / 1000

    def complete(prompt: str) -> str:
        response = model.generate_content(
            prompt,
            request_options={'timeout': timeout_seconds}
        )
        return response.text.strip()

    return complete
