"""
Pytest configuration and shared fixtures.
"""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("TRADEGATE_DATA_DIR", tempfile.mkdtemp(prefix="tradegate-test-"))
os.environ.setdefault("TRADEGATE_ENV", "development")

from tradegate_engine.config import Settings, get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure no real credentials leak into tests from local .env."""
    broker_vars = [
        "DHAN_CLIENT_ID",
        "DHAN_ACCESS_TOKEN",
        "DHAN_BASE_URL",
        "TRADING_MODE",
    ]
    for var in broker_vars:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset module-level singletons between tests."""
    get_settings.cache_clear()

    yield

    from tradegate_engine.api import order_routes

    order_routes._service = None
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """PAPER settings with an isolated data directory and instant fills."""
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        sim_latency_ms=0,
        sim_success_probability=1.0,
    )
