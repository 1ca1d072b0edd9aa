"""Tests for Settings configuration model."""

from pathlib import Path

import pytest

from branchmem.config import Settings
from branchmem.models import CorrelationScheme


class TestDefaults:
    def test_default_database_path(self):
        s = Settings()
        assert s.database_path == Path("data/branchmem.db")

    def test_memory_enabled_default(self):
        s = Settings()
        assert s.memory_enabled is True

    def test_default_correlation_scheme(self):
        s = Settings()
        assert s.correlation_scheme is CorrelationScheme.TURN

    def test_default_agent_name(self):
        s = Settings()
        assert s.default_agent_name == "Workflow Chat"

    def test_default_context_window(self):
        s = Settings()
        assert s.context_window_length == 5


class TestCorrelationScheme:
    def test_parses_parent_message(self):
        s = Settings(correlation_scheme="parent_message")
        assert s.correlation_scheme is CorrelationScheme.PARENT_MESSAGE

    def test_unknown_scheme_raises(self):
        with pytest.raises(ValueError):
            Settings(correlation_scheme="sibling")


class TestUsesTurso:
    def test_empty_url(self):
        assert Settings(turso_database_url="").uses_turso is False

    def test_whitespace_url(self):
        assert Settings(turso_database_url="   ").uses_turso is False

    def test_configured_url(self):
        assert Settings(turso_database_url="libsql://db.turso.io").uses_turso is True


class TestValidation:
    def test_context_window_must_be_positive(self):
        with pytest.raises(ValueError):
            Settings(context_window_length=0)


class TestExtraForbidden:
    def test_unknown_env_var_raises(self):
        with pytest.raises(ValueError, match="extra_forbidden"):
            Settings(**{"nonexistent_field": "value"})
