"""
Shared pytest fixtures for the metadata extractor tests.
"""

import pytest
import sys
import importlib.util
from pathlib import Path
from bs4 import BeautifulSoup

from linkmeta.config import Config

# Project root for finding Cloud Function modules
PROJECT_ROOT = Path(__file__).parent.parent


def _load_module_from_path(module_name: str, file_path: Path):
    """Load a module from a specific file path."""
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


# Load Cloud Function module with a unique name at module load time
_metadata_extractor_module = _load_module_from_path(
    'metadata_extractor_main',
    PROJECT_ROOT / 'metadata-extractor' / 'main.py'
)


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def config_without_backend():
    """Config with no Gemini key: enrichment is disabled."""
    return Config(gemini_api_key=None)


@pytest.fixture
def config_with_backend():
    """Config with a (fake) Gemini key: enrichment is enabled."""
    return Config(gemini_api_key='test-gemini-key')


# ============================================================================
# Enrichment Backend Fixtures
# ============================================================================

class StubCompleter:
    """Enrichment backend double that records every prompt it receives."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def stub_completer():
    """Factory for call-counting enrichment backends."""
    return StubCompleter


# ============================================================================
# HTML Fixtures
# ============================================================================

SAMPLE_ARTICLE_HTML = """
<!DOCTYPE html>
<html lang="en-US">
<head>
    <title>10 Python Tips | Example Blog</title>
    <meta property="og:title" content="10 Python Tips You Should Know">
    <meta property="og:site_name" content="Example Blog">
    <meta property="og:url" content="https://blog.example.com/python-tips">
    <meta name="author" content="Jane Developer">
    <meta property="article:published_time" content="2024-12-15T10:00:00Z">
    <meta property="og:image" content="https://blog.example.com/image.jpg">
    <meta name="description" content="Learn essential Python tips">
    <link rel="apple-touch-icon" href="/apple-touch-icon.png">
</head>
<body>
    <nav>Home | About | Contact</nav>
    <article>
        <h1>10 Python Tips You Should Know</h1>
        <p>Here are some tips for Python development.</p>
    </article>
    <footer>Copyright Example Blog</footer>
</body>
</html>
"""

BARE_PAGE_HTML = """
<!DOCTYPE html>
<html>
<head><title>Example</title></head>
<body>
    <h1>Welcome</h1>
    <p>This page has no description markup at all.</p>
</body>
</html>
"""


@pytest.fixture
def sample_article_html():
    """Raw HTML of a well-annotated article page."""
    return SAMPLE_ARTICLE_HTML


@pytest.fixture
def sample_article_soup():
    """Returns BeautifulSoup of a well-annotated article page."""
    return BeautifulSoup(SAMPLE_ARTICLE_HTML, 'html.parser')


@pytest.fixture
def bare_page_html():
    """Raw HTML of a page with a title and no description markup."""
    return BARE_PAGE_HTML


@pytest.fixture
def empty_soup():
    """Returns empty BeautifulSoup."""
    return BeautifulSoup("", 'html.parser')


@pytest.fixture
def make_soup():
    """Factory: HTML string -> BeautifulSoup."""
    def _make(html: str) -> BeautifulSoup:
        return BeautifulSoup(html, 'html.parser')
    return _make


# ============================================================================
# HTTP Handler Fixtures
# ============================================================================

@pytest.fixture
def mock_flask_request():
    """Factory for creating mock Flask request objects."""
    class MockRequest:
        def __init__(self, args=None, method='GET', path='/'):
            self.args = args or {}
            self.method = method
            self.path = path
            self.data = b''

        def get_json(self, force=False, silent=False):
            return None

    return MockRequest


@pytest.fixture
def metadata_extractor_module():
    """The loaded metadata-extractor Cloud Function module."""
    return _metadata_extractor_module


@pytest.fixture
def get_metadata():
    """Returns main entry point from metadata-extractor."""
    return _metadata_extractor_module.get_metadata


@pytest.fixture
def error_status():
    """Returns error_status function from metadata-extractor."""
    return _metadata_extractor_module.error_status
