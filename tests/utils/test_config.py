from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError

from ledgermatch.utils.config import Settings, get_settings, reload_settings

pytestmark = pytest.mark.unit


def test_settings_defaults(tmp_path):
    """Defaults match the engine's documented limits."""
    settings = Settings(data_dir=tmp_path)

    assert settings.max_candidates == 50
    assert settings.candidate_window_days == 7
    assert settings.scoring_workers == 4
    assert settings.scoring_timeout_seconds is None
    assert settings.prometheus_enabled is False


def test_database_defaults_to_sqlite_under_data_dir(tmp_path):
    settings = Settings(data_dir=tmp_path)

    assert settings.database_url == f"sqlite:///{tmp_path / 'ledgermatch.db'}"


def test_explicit_database_url_is_kept(tmp_path):
    settings = Settings(data_dir=tmp_path, database_url="postgresql://db/ledger")

    assert settings.database_url == "postgresql://db/ledger"


def test_settings_env_override(monkeypatch):
    """Environment variables use the LEDGERMATCH_ prefix."""
    monkeypatch.setenv("LEDGERMATCH_MAX_CANDIDATES", "20")
    monkeypatch.setenv("LEDGERMATCH_SCORING_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("LEDGERMATCH_DEBUG", "true")

    try:
        settings = reload_settings()

        assert settings.max_candidates == 20
        assert settings.scoring_timeout_seconds == 2.5
        assert settings.debug is True
    finally:
        get_settings.cache_clear()


def test_unprefixed_env_is_ignored(monkeypatch):
    monkeypatch.setenv("MAX_CANDIDATES", "3")

    assert Settings().max_candidates == 50


def test_log_level_is_normalized():
    assert Settings(log_level="debug").log_level == "DEBUG"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"log_level": "verbose"},
        {"max_candidates": 0},
        {"candidate_window_days": 0},
        {"scoring_workers": 0},
        {"scoring_timeout_seconds": 0},
    ],
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValidationError):
        Settings(**kwargs)


def test_platformdirs_usage():
    """data_dir comes from platformdirs."""
    import importlib

    import ledgermatch.utils.config

    with patch("platformdirs.PlatformDirs") as MockPlatformDirs:
        mock_instance = MagicMock()
        mock_instance.user_data_dir = "/tmp/mock/data"
        MockPlatformDirs.return_value = mock_instance

        importlib.reload(ledgermatch.utils.config)
        settings = ledgermatch.utils.config.Settings()

    # Restore the real platformdirs-backed module
    importlib.reload(ledgermatch.utils.config)

    assert str(settings.data_dir) == "/tmp/mock/data"
    assert settings.database_url == "sqlite:////tmp/mock/data/ledgermatch.db"
