"""
Unit tests for MongoContentResource.

Uses mongomock to exercise the engine wiring without a live service.
"""

import mongomock
import pytest

from libs.jobs import RewriteEngine
from services.dagster.rewrite_pipelines.resources import MongoContentResource


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mongomock_client():
    """In-memory MongoDB client for tests."""
    return mongomock.MongoClient()


@pytest.fixture
def mongo_resource(monkeypatch, mongomock_client):
    """MongoContentResource configured to use the mongomock client."""
    monkeypatch.setattr(
        "services.dagster.rewrite_pipelines.resources.mongodb_resource.MongoClient",
        lambda *args, **kwargs: mongomock_client,
    )
    return MongoContentResource(connection_string="mongodb://localhost:27017", database="cms")


# =============================================================================
# Tests
# =============================================================================


def test_get_database(mongo_resource, mongomock_client):
    assert mongo_resource.get_database().name == "cms"


def test_get_engine_creates_indexes(mongo_resource, mongomock_client, rewrite_settings):
    engine = mongo_resource.get_engine(rewrite_settings)

    assert isinstance(engine, RewriteEngine)
    assert engine.settings is rewrite_settings
    indexes = mongomock_client["cms"]["rewrite_jobs"].index_information()
    assert "rewrite_jobs_ttl" in indexes
    run_indexes = mongomock_client["cms"]["rewrite_runs"].index_information()
    assert any(index.get("unique") for index in run_indexes.values())


def test_engine_round_trip(mongo_resource, mongomock_client, rewrite_settings):
    engine = mongo_resource.get_engine(rewrite_settings)

    response = engine.run_to_completion("dagster", dry_run=True)

    assert response.continue_ is False
    assert mongomock_client["cms"]["rewrite_runs"].count_documents({}) == 1


def test_ping(mongo_resource):
    assert mongo_resource.ping() is True
