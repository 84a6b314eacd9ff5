"""
Tests for settings, mode resolution and startup validation.
"""

from pathlib import Path

import pytest

from tradegate_engine.config import (
    AppEnvironment,
    ConfigurationError,
    Settings,
    TradingMode,
    validate_startup,
)

# =============================================================================
# Fixtures
# =============================================================================


def live_settings(tmp_path: Path, **kwargs) -> Settings:
    return Settings(_env_file=None, data_dir=tmp_path, mode=TradingMode.LIVE, **kwargs)


# =============================================================================
# Defaults and Environment
# =============================================================================


class TestDefaults:
    def test_defaults(self, tmp_path: Path) -> None:
        settings = Settings(_env_file=None, data_dir=tmp_path)

        assert settings.mode == TradingMode.PAPER
        assert settings.effective_mode == TradingMode.PAPER
        assert settings.broker_timeout_s == 5.0
        assert settings.sim_latency_ms == 300
        assert settings.sim_success_probability == 0.95
        assert settings.rate_limit_window_s == 60
        assert settings.dhan_base_url == "https://api.dhan.co/v2"
        assert not settings.has_broker_credentials
        assert settings.get_live_blockers() == []

    def test_data_dir_created(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "data"

        settings = Settings(_env_file=None, data_dir=target)

        assert settings.data_dir.is_dir()

    def test_log_level_normalized(self, tmp_path: Path) -> None:
        assert Settings(_env_file=None, data_dir=tmp_path, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            Settings(_env_file=None, data_dir=tmp_path, log_level="LOUD")

    def test_environment_variables(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Broker settings use unprefixed names, the rest use TRADEGATE_."""
        monkeypatch.setenv("TRADING_MODE", "LIVE")
        monkeypatch.setenv("DHAN_CLIENT_ID", "1000000001")
        monkeypatch.setenv("DHAN_ACCESS_TOKEN", "env-token")
        monkeypatch.setenv("BROKER_TIMEOUT_S", "2.5")
        monkeypatch.setenv("TRADEGATE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("TRADEGATE_ENV", "production")

        settings = Settings(_env_file=None)

        assert settings.mode == TradingMode.LIVE
        assert settings.env == AppEnvironment.PRODUCTION
        assert settings.broker_timeout_s == 2.5
        assert settings.effective_mode == TradingMode.LIVE
        assert settings.data_dir == tmp_path.resolve()


# =============================================================================
# Mode Resolution and Startup
# =============================================================================


class TestLiveResolution:
    def test_live_without_credentials_degrades(self, tmp_path: Path) -> None:
        settings = live_settings(tmp_path)

        assert settings.effective_mode == TradingMode.PAPER
        assert settings.get_live_blockers() == [
            "DHAN_CLIENT_ID not set",
            "DHAN_ACCESS_TOKEN not set",
        ]

    def test_live_with_partial_credentials(self, tmp_path: Path) -> None:
        settings = live_settings(tmp_path, dhan_client_id="1000000001")

        assert settings.effective_mode == TradingMode.PAPER
        assert settings.get_live_blockers() == ["DHAN_ACCESS_TOKEN not set"]

    def test_validate_startup_non_strict_returns_blockers(self, tmp_path: Path) -> None:
        blockers = validate_startup(live_settings(tmp_path))

        assert len(blockers) == 2

    def test_validate_startup_strict_raises(self, tmp_path: Path) -> None:
        """Production refuses LIVE without credentials."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_startup(live_settings(tmp_path), strict=True)

        assert "DHAN_CLIENT_ID not set" in exc_info.value.blockers

    def test_validate_startup_paper_is_clean(self, settings: Settings) -> None:
        assert validate_startup(settings, strict=True) == []


class TestRedaction:
    def test_redacted_config_hides_secrets(self, tmp_path: Path) -> None:
        settings = live_settings(
            tmp_path, dhan_client_id="1000000001", dhan_access_token="super-secret"
        )

        config = settings.get_redacted_config()

        assert config["broker_configured"] is True
        assert config["effective_mode"] == "LIVE"
        assert "super-secret" not in str(config)
        assert "1000000001" not in str(config)
        assert "super-secret" not in repr(settings)
