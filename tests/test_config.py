"""Unit tests for settings."""

import logging

import pytest

from bodycheck.config import DEFAULT_EMAIL_PATTERN, Settings, configure_logging, get_settings
from bodycheck.errors import SchemaDefinitionError
from bodycheck.validation import SchemaValidator


class TestSettings:
    """Test reading settings from the environment."""

    def test_defaults(self):
        """Should use the documented defaults."""
        settings = Settings()

        assert settings.debug is False
        assert settings.email_pattern == DEFAULT_EMAIL_PATTERN
        assert settings.log_level == "WARNING"

    def test_environment_overrides(self, monkeypatch):
        """Should read BODYCHECK_ variables."""
        monkeypatch.setenv("BODYCHECK_DEBUG", "1")
        monkeypatch.setenv("BODYCHECK_EMAIL_PATTERN", r"@corp\.example$")
        monkeypatch.setenv("BODYCHECK_LOG_LEVEL", "debug")

        settings = Settings()

        assert settings.debug is True
        assert settings.email_pattern == r"@corp\.example$"
        assert settings.log_level == "debug"

    def test_get_settings_cached(self):
        """Should return the same instance until the cache is cleared."""
        assert get_settings() is get_settings()

    def test_validator_uses_configured_email_pattern(self, monkeypatch):
        """Should fall back to the configured email pattern."""
        monkeypatch.setenv("BODYCHECK_EMAIL_PATTERN", r"@corp\.example$")
        engine = SchemaValidator({"email": {"type": "email"}})

        assert engine.validate({"email": "eve@corp.example"}).is_valid is True
        assert engine.validate({"email": "eve@example.com"}).is_valid is False

    def test_invalid_configured_email_pattern(self, monkeypatch):
        """Should report a broken configured pattern as a schema error."""
        monkeypatch.setenv("BODYCHECK_EMAIL_PATTERN", "(")

        with pytest.raises(SchemaDefinitionError) as exc_info:
            SchemaValidator({"email": {"type": "email"}})

        assert exc_info.value.errors[0].startswith("email_pattern: invalid regular expression")

    def test_explicit_pattern_overrides_settings(self, monkeypatch):
        """Should prefer a pattern passed to the validator."""
        monkeypatch.setenv("BODYCHECK_EMAIL_PATTERN", r"@corp\.example$")
        engine = SchemaValidator({"email": {"type": "email"}}, email_pattern=DEFAULT_EMAIL_PATTERN)

        assert engine.validate({"email": "eve@example.com"}).is_valid is True


class TestConfigureLogging:
    """Test applying the configured log level."""

    def test_sets_package_level(self):
        """Should set the level of the bodycheck logger."""
        package_logger = logging.getLogger("bodycheck")
        previous = package_logger.level
        try:
            configured = configure_logging(Settings(log_level="debug"))

            assert configured is package_logger
            assert package_logger.level == logging.DEBUG
        finally:
            package_logger.setLevel(previous)

    def test_uses_settings_by_default(self, monkeypatch):
        """Should read the level from settings when none are given."""
        monkeypatch.setenv("BODYCHECK_LOG_LEVEL", "ERROR")
        package_logger = logging.getLogger("bodycheck")
        previous = package_logger.level
        try:
            configure_logging()

            assert package_logger.level == logging.ERROR
        finally:
            package_logger.setLevel(previous)
