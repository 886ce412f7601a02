"""Tests for configuration loading and validation."""

from unittest.mock import patch

import pytest

from shipstation_endpoint.config import loader


@pytest.fixture(autouse=True)
def fresh_config():
    loader.reload_config()
    yield
    loader.reload_config()


def write_config(tmp_path, text: str) -> str:
    path = tmp_path / "app.yaml"
    path.write_text(text)
    return str(path)


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path):
        config = loader.load_config(str(tmp_path / "missing.yaml"))

        assert config == loader.DEFAULTS
        assert loader.get_shipstation_settings()["timezone"] == "America/Los_Angeles"

    def test_settings_from_file(self, tmp_path):
        loader.load_config(
            write_config(tmp_path, "shipstation:\n  timeout_seconds: 30\n  page_size: 50\n  timezone: UTC\n")
        )

        settings = loader.get_shipstation_settings()

        assert settings["timeout_seconds"] == 30.0
        assert settings["page_size"] == 50
        assert settings["rest_base_url"] == "https://ssapi.shipstation.com"
        assert str(loader.get_remote_timezone()) == "UTC"

    def test_cfg_dot_notation(self, tmp_path):
        loader.load_config(write_config(tmp_path, "observability:\n  metrics:\n    enabled: false\n"))

        assert loader.cfg("observability.metrics.enabled", True) is False
        assert loader.cfg("observability.tracing.enabled", "nope") == "nope"


class TestValidateConfig:
    def test_defaults_are_valid(self, tmp_path):
        loader.load_config(str(tmp_path / "missing.yaml"))

        loader.validate_config()

    def test_invalid_values_reported_together(self, tmp_path):
        loader.load_config(
            write_config(
                tmp_path, "shipstation:\n  timezone: Mars/Olympus\n  timeout_seconds: 0\n  page_size: 1000\n"
            )
        )

        with pytest.raises(ValueError) as exc_info:
            loader.validate_config()

        message = str(exc_info.value)
        assert "timezone" in message
        assert "timeout_seconds" in message
        assert "page_size" in message


class TestFallbackCredentials:
    def test_reads_environment(self):
        environment = {"SHIPSTATION_API_KEY": "k", "SHIPSTATION_API_SECRET": "s", "SHIPSTATION_STORE_ID": ""}
        with patch.dict("os.environ", environment):
            assert loader.get_fallback_credentials() == {"key": "k", "secret": "s"}
