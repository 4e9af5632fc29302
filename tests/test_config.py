"""Tests for configuration management module."""

import logging
import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from spreadsheet_skeleton.config import Settings, log_settings_summary


class TestSettings:
    """Tests for the Settings class."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        # Anchor detection defaults
        assert settings.neighborhood_k == 2
        assert settings.min_heterogeneity_score == 0.7
        assert settings.consider_styles is True
        assert settings.consider_number_formats is True
        assert settings.detect_multi_level_headers is True
        assert settings.max_header_depth == 3

        # Skeleton extraction defaults
        assert settings.preserve_nearby_non_empty is True
        assert settings.preserve_formulas is True
        assert settings.preserve_formatted_cells is True
        assert settings.min_compression_ratio == 0.7
        assert settings.create_placeholders is False

        # Workbook scan defaults
        assert settings.max_workers is None
        assert settings.scan_timeout_seconds is None

        # Logging defaults
        assert settings.log_level == "INFO"
        assert settings.debug is False

    def test_environment_variable_prefix(self) -> None:
        """Test that environment variables use SKELETON_ prefix."""
        env_vars = {
            "SKELETON_NEIGHBORHOOD_K": "1",
            "SKELETON_CONSIDER_STYLES": "false",
            "SKELETON_MAX_WORKERS": "4",
            "SKELETON_LOG_LEVEL": "DEBUG",
        }
        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

        assert settings.neighborhood_k == 1
        assert settings.consider_styles is False
        assert settings.max_workers == 4
        assert settings.log_level == "DEBUG"

    def test_log_level_normalized(self) -> None:
        with patch.dict(os.environ, {"SKELETON_LOG_LEVEL": "warning"}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.log_level == "WARNING"
        assert settings.log_level_int == logging.WARNING

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("SKELETON_LOG_LEVEL", "LOUD"),
            ("SKELETON_MIN_HETEROGENEITY_SCORE", "1.5"),
            ("SKELETON_MIN_COMPRESSION_RATIO", "-0.1"),
            ("SKELETON_NEIGHBORHOOD_K", "-1"),
            ("SKELETON_MAX_HEADER_DEPTH", "-2"),
            ("SKELETON_MAX_WORKERS", "0"),
            ("SKELETON_SCAN_TIMEOUT_SECONDS", "0"),
        ],
    )
    def test_invalid_values_rejected(self, name: str, value: str) -> None:
        with patch.dict(os.environ, {name: value}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_to_safe_dict(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        result = settings.to_safe_dict()
        assert result["neighborhood_k"] == 2
        assert result["log_level"] == "INFO"
        assert "scan_timeout_seconds" in result


class TestLogSettingsSummary:
    """Tests for configuration summary logging."""

    def test_warns_about_placeholders(self, caplog: pytest.LogCaptureFixture) -> None:
        with patch.dict(os.environ, {"SKELETON_CREATE_PLACEHOLDERS": "true"}, clear=True):
            settings = Settings(_env_file=None)

        with caplog.at_level(logging.INFO, logger="spreadsheet_skeleton.config"):
            log_settings_summary(settings)

        assert "SKELETON_CREATE_PLACEHOLDERS" in caplog.text
        assert "Configuration loaded" in caplog.text

    def test_warns_without_expansion(self, caplog: pytest.LogCaptureFixture) -> None:
        env_vars = {
            "SKELETON_NEIGHBORHOOD_K": "0",
            "SKELETON_DETECT_MULTI_LEVEL_HEADERS": "false",
        }
        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

        with caplog.at_level(logging.WARNING, logger="spreadsheet_skeleton.config"):
            log_settings_summary(settings)

        assert "Anchor expansion is disabled" in caplog.text

    def test_default_settings_log_no_warnings(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        with caplog.at_level(logging.WARNING, logger="spreadsheet_skeleton.config"):
            log_settings_summary(settings)

        assert caplog.records == []
