"""
Unit tests for data models.

Tests validation logic and model behavior for the job, audit and settings models.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from libs.models import (
    ChangeRecord,
    Job,
    JobMode,
    JobResponse,
    JobStage,
    JobStats,
    MongoSettings,
    RewriteSettings,
    truncate_preview,
)


# =============================================================================
# Settings Tests
# =============================================================================


class TestRewriteSettings:
    """Test rewrite settings validation and resolver wiring."""

    def test_defaults(self):
        settings = RewriteSettings()

        assert settings.legacy_extensions == ["jpg", "jpeg", "png"]
        assert settings.target_extension == "webp"
        assert settings.collections[0] == "posts"
        assert "custom_logo" in settings.protected_fields

    def test_extensions_normalized(self):
        settings = RewriteSettings(legacy_extensions=[".JPG", "png", " png "], target_extension=".WebP")

        assert settings.legacy_extensions == ["jpg", "png"]
        assert settings.target_extension == "webp"

    def test_empty_extensions_rejected(self):
        with pytest.raises(ValidationError):
            RewriteSettings(legacy_extensions=[" ", ""])

    def test_batch_size_bounds(self):
        with pytest.raises(ValidationError):
            RewriteSettings(batch_size=0)

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("REWRITE_BATCH_SIZE", "25")
        monkeypatch.setenv("REWRITE_UPLOAD_URL", "https://cdn.example.org/uploads")

        settings = RewriteSettings()

        assert settings.batch_size == 25
        assert settings.upload_url == "https://cdn.example.org/uploads"

    def test_home_url_defaults_to_site_url(self):
        config = RewriteSettings(site_url="https://example.com").resolver_config()

        assert config.home_url == "https://example.com"
        assert config.upload_dir == Path("/var/www/html/wp-content/uploads")
        assert config.legacy_extensions == ("jpg", "jpeg", "png")


class TestMongoSettings:
    def test_connection_string(self, monkeypatch):
        monkeypatch.setenv("MONGO_INITDB_ROOT_USERNAME", "root")
        monkeypatch.setenv("MONGO_INITDB_ROOT_PASSWORD", "pw")

        settings = MongoSettings()

        assert settings.connection_string == (
            "mongodb://root:pw@mongodb:27017/cms?authSource=admin"
        )


# =============================================================================
# Job Tests
# =============================================================================


class TestJob:
    def test_index_beyond_queue_rejected(self):
        with pytest.raises(ValidationError):
            Job(operator="alice", run_id="r1", mode=JobMode.LIVE, collections=["posts"], index=2)

    def test_empty_queue_rejected(self):
        with pytest.raises(ValidationError):
            Job(operator="alice", run_id="r1", mode=JobMode.LIVE, collections=[])

    def test_cursor_tracks_current_collection(self):
        job = Job(operator="alice", run_id="r1", mode="dry_run", collections=["posts", "options"])
        job.set_cursor(12)
        job.index = 1

        assert job.dry_run is True
        assert job.cursors == {"posts": 12}
        assert job.cursor == 0
        assert job.current_collection == "options"

    def test_finished_job_has_no_current_collection(self):
        job = Job(operator="alice", run_id="r1", mode=JobMode.LIVE, collections=["posts"], index=1)

        assert job.current_collection is None
        assert job.cursor == 0


class TestJobStats:
    def test_top_fields_ranked(self):
        stats = JobStats()
        stats.bump_field("posts:post_content", 3)
        stats.bump_field("options:header_banner")
        stats.bump_field("postmeta:_hero", 3)
        stats.bump_field("options:header_banner")

        top = stats.top_fields(2)

        assert [(f.key, f.count) for f in top] == [
            ("postmeta:_hero", 3),
            ("posts:post_content", 3),
        ]

    def test_total_updated(self):
        stats = JobStats()
        stats.for_collection("posts").updated = 2
        stats.for_collection("terms").updated = 1

        assert stats.total_updated == 3


class TestJobResponse:
    def test_continue_alias(self):
        response = JobResponse(message="ok", stage=JobStage.PROGRESS, continue_=False)

        assert response.model_dump(by_alias=True)["continue"] is False

    def test_populate_by_alias(self):
        response = JobResponse.model_validate({"message": "ok", "stage": "complete", "continue": False})

        assert response.continue_ is False


# =============================================================================
# Change Record Tests
# =============================================================================


class TestChangeRecord:
    def test_truncate_preview(self):
        assert truncate_preview("short", 10) == "short"
        assert truncate_preview("x" * 20, 10) == "xxxxxxx..."
        assert truncate_preview(42, 10) == "42"

    def test_preview_excludes_original(self):
        change = ChangeRecord(
            collection="postmeta",
            record_id="7",
            field="_hero",
            row_id=100,
            before="a.jpg",
            after="a.webp",
            replacements=1,
            original="a.jpg",
        )

        assert change.field_key == "postmeta:_hero"
        assert "original" not in change.preview()

    def test_frozen(self):
        change = ChangeRecord(collection="posts", record_id="1", field="post_content", before="", after="")

        with pytest.raises(ValidationError):
            change.after = "changed"
