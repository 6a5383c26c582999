"""
Shared pytest fixtures for the reference rewriter tests.

Builds a throwaway site tree under tmp_path and an in-memory MongoDB.
"""

import mongomock
import pytest

from libs.jobs import RewriteEngine
from libs.models import RewriteSettings
from libs.rewriting import ReferenceResolver, ValueRewriter

SITE_URL = "https://example.com"
UPLOAD_URL = "https://example.com/wp-content/uploads"


# =============================================================================
# Filesystem Fixtures
# =============================================================================

@pytest.fixture
def site_root(tmp_path):
    """Local site root with an empty upload directory."""
    root = tmp_path / "site"
    (root / "wp-content" / "uploads").mkdir(parents=True)
    return root


@pytest.fixture
def upload_dir(site_root):
    return site_root / "wp-content" / "uploads"


@pytest.fixture
def make_file(site_root):
    """Create files relative to the site root."""

    def _make(*relative_paths):
        created = []
        for relative in relative_paths:
            path = site_root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"\x00")
            created.append(path)
        return created

    return _make


@pytest.fixture
def make_upload(make_file):
    """Create files relative to the upload directory."""

    def _make(*relative_paths):
        return make_file(*(f"wp-content/uploads/{p}" for p in relative_paths))

    return _make


# =============================================================================
# Engine Fixtures
# =============================================================================

@pytest.fixture
def rewrite_settings(site_root, upload_dir):
    """Settings for the tmp_path site, with small batches."""
    return RewriteSettings(
        upload_url=UPLOAD_URL,
        upload_dir=upload_dir,
        site_url=SITE_URL,
        site_root=site_root,
        batch_size=2,
    )


@pytest.fixture
def resolver(rewrite_settings):
    return ReferenceResolver(rewrite_settings.resolver_config())


@pytest.fixture
def rewriter(resolver, rewrite_settings):
    return ValueRewriter(
        resolver,
        opaque_field_patterns=rewrite_settings.opaque_field_patterns,
        opaque_size_threshold=rewrite_settings.opaque_size_threshold,
    )


@pytest.fixture
def mongo_db():
    """In-memory MongoDB database for tests."""
    return mongomock.MongoClient()["cms"]


@pytest.fixture
def engine(mongo_db, rewrite_settings):
    return RewriteEngine(mongo_db, rewrite_settings)
