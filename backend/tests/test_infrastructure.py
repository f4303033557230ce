"""
Tests for shared infrastructure: settings, logging, correlation, sessions
and the exception hierarchy.
"""

import json
import logging
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError
from sqlalchemy.pool import StaticPool

from admin_shared.config.logging import DevelopmentFormatter, StructuredFormatter, get_logger
from admin_shared.config.settings import Settings
from admin_shared.infrastructure.correlation import (
    CorrelationIdFilter,
    accept_request_id,
    correlation_scope,
    get_request_id,
    request_id_var,
)
from admin_shared.infrastructure.db import build_engine, safe_commit
from admin_shared.utils.exceptions import (
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    UnsupportedActionError,
    ValidationFailedError,
)


# =============================================================================
# Settings
# =============================================================================


class TestSettings:

    def test_development_defaults_pass(self):
        assert Settings(_env_file=None).validate_production_settings() == []

    def test_production_checks(self):
        problems = Settings(_env_file=None, environment="production").validate_production_settings()
        assert "DEBUG must be False in production" in problems
        assert any("SQLite" in problem for problem in problems)
        assert any("AUTHENTICATION_ENABLED" in problem for problem in problems)

    def test_production_ready(self):
        configured = Settings(
            _env_file=None,
            environment="production",
            debug=False,
            database_url="postgresql+psycopg://admin@db/admin",
            authentication_enabled=True,
        )
        assert configured.validate_production_settings() == []

    def test_page_size_bounds(self):
        problems = Settings(_env_file=None, default_per_page=500, max_per_page=100).validate_production_settings()
        assert problems == ["DEFAULT_PER_PAGE must be between 1 and MAX_PER_PAGE"]

    @pytest.mark.parametrize("field", ["default_per_page", "max_per_page"])
    def test_page_sizes_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})

    def test_page_size_from_environment_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("MAX_PER_PAGE", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_resource_modules_from_environment(self, monkeypatch):
        monkeypatch.setenv("RESOURCE_MODULES", '["blog.admin", "shop.admin"]')
        assert Settings(_env_file=None).resource_modules == ["blog.admin", "shop.admin"]

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("API_PREFIX", "/backoffice")
        monkeypatch.setenv("AUTHORIZATION_ENABLED", "true")
        configured = Settings(_env_file=None)
        assert configured.api_prefix == "/backoffice"
        assert configured.authorization_enabled is True


# =============================================================================
# Logging
# =============================================================================


def make_record(**extra_data) -> logging.LogRecord:
    record = logging.LogRecord("resource_admin.test", logging.INFO, __file__, 1, "Batch action performed", (), None)
    record.extra_data = extra_data or None
    record.request_id = "req-42"
    return record


class TestLogging:

    def test_get_logger_accepts_keyword_context(self, caplog):
        logger = get_logger("resource_admin.test")
        with caplog.at_level(logging.INFO, logger="resource_admin.test"):
            logger.info("Batch action performed", action="destroy", count=2)
        assert caplog.records[-1].extra_data == {"action": "destroy", "count": 2}

    def test_structured_formatter(self):
        payload = json.loads(StructuredFormatter().format(make_record(resource="article")))
        assert payload["message"] == "Batch action performed"
        assert payload["level"] == "INFO"
        assert payload["request_id"] == "req-42"
        assert payload["data"] == {"resource": "article"}

    def test_development_formatter(self):
        line = DevelopmentFormatter().format(make_record(count=3))
        assert "Batch action performed" in line
        assert "count=3" in line
        assert "[req-42]" in line


# =============================================================================
# Correlation
# =============================================================================


class TestCorrelationIdFilter:

    def test_adds_request_id_to_log_record(self):
        token = request_id_var.set("test-request-123")
        try:
            record = MagicMock()
            assert CorrelationIdFilter().filter(record) is True
            assert record.request_id == "test-request-123"
        finally:
            request_id_var.reset(token)

    def test_uses_dash_when_no_request_id(self):
        token = request_id_var.set("")
        try:
            record = MagicMock()
            CorrelationIdFilter().filter(record)
            assert record.request_id == "-"
        finally:
            request_id_var.reset(token)


class TestRequestIds:

    @pytest.mark.parametrize("value", ["abc-123", "req_1.2:3", "A" * 128])
    def test_accepts_well_formed_ids(self, value):
        assert accept_request_id(value) == value

    @pytest.mark.parametrize("value", [None, "", "a b", "x" * 129, "id\nforged", "trailing\n"])
    def test_replaces_malformed_ids(self, value):
        replacement = accept_request_id(value)
        assert replacement != value
        assert len(replacement) == 32

    def test_correlation_scope(self):
        with correlation_scope("run-1") as run_id:
            assert run_id == "run-1"
            assert get_request_id() == "run-1"
        assert get_request_id() == ""

    def test_correlation_scope_generates_id(self):
        with correlation_scope() as run_id:
            assert get_request_id() == run_id != ""


# =============================================================================
# Sessions
# =============================================================================


class TestSafeCommit:

    def test_commits_successfully(self):
        mock_db = MagicMock()
        safe_commit(mock_db)
        mock_db.commit.assert_called_once()
        mock_db.rollback.assert_not_called()

    def test_rollbacks_and_reraises(self):
        class CustomDBError(Exception):
            pass

        mock_db = MagicMock()
        mock_db.commit.side_effect = CustomDBError("Custom error")
        with pytest.raises(CustomDBError):
            safe_commit(mock_db)
        mock_db.rollback.assert_called_once()


class TestBuildEngine:

    def test_in_memory_sqlite_shares_one_connection(self):
        engine = build_engine("sqlite:///:memory:")
        try:
            assert isinstance(engine.pool, StaticPool)
        finally:
            engine.dispose()

    def test_file_sqlite_uses_regular_pool(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'admin.db'}")
        try:
            assert not isinstance(engine.pool, StaticPool)
        finally:
            engine.dispose()


# =============================================================================
# Exceptions
# =============================================================================


class TestExceptions:

    def test_not_found(self):
        error = NotFoundError("Article", 7)
        assert error.status_code == 404
        assert error.detail == "Article with ID 7 not found"

    def test_forbidden(self):
        error = ForbiddenError("batch_action_destroy")
        assert error.status_code == 403
        assert error.detail == "Not authorized to batch_action_destroy"

    def test_unsupported_action(self):
        error = UnsupportedActionError("explode", "Article")
        assert error.status_code == 400
        assert "explode" in error.detail

    def test_validation_failed(self):
        error = ValidationFailedError({"title": ["can't be blank"]})
        assert error.status_code == 422
        assert error.detail == {"errors": {"title": ["can't be blank"]}}

    def test_database_error(self):
        error = DatabaseError("destroy articles")
        assert error.status_code == 500
        assert "destroy articles" in error.detail
