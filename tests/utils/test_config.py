from datetime import timedelta

import pytest

from lnp2p.exceptions import ConfigurationError
from lnp2p.utils import config
from lnp2p.utils.config import Settings, get_settings, load_settings

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def logging_applied(monkeypatch):
    """Record logging reconfiguration instead of touching global logging state."""
    applied: list[Settings] = []
    monkeypatch.setattr(config, "configure_from_settings", applied.append)
    return applied


def test_settings_defaults():
    """Test the out-of-the-box configuration."""
    settings = Settings(_env_file=None)

    assert settings.database_url == "sqlite:///./lnp2p.db"
    assert settings.invoice_expiration_window == timedelta(hours=1)
    assert settings.log_level == "INFO"
    assert settings.lnd_macaroon_hex is None


def test_settings_env_override(monkeypatch):
    """Test that LNP2P_ prefixed variables override defaults."""
    monkeypatch.setenv("LNP2P_DATABASE_URL", "sqlite:///tmp/other.db")
    monkeypatch.setenv("LNP2P_LOG_LEVEL", "debug")
    monkeypatch.setenv("LNP2P_JSON_LOGS", "true")

    settings = load_settings()

    assert settings.database_url == "sqlite:///tmp/other.db"
    assert settings.log_level == "DEBUG"
    assert settings.json_logs is True


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1800", timedelta(minutes=30)),
        ("PT2H", timedelta(hours=2)),
        ("0", timedelta(0)),
    ],
)
def test_window_from_env(monkeypatch, raw, expected):
    """Test that the window accepts seconds and ISO-8601 durations."""
    monkeypatch.setenv("LNP2P_INVOICE_EXPIRATION_WINDOW", raw)

    assert load_settings().invoice_expiration_window == expected


def test_negative_window_rejected():
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(invoice_expiration_window=timedelta(seconds=-1))

    assert exc_info.value.context["setting"] == "invoice_expiration_window"


def test_unknown_log_level_rejected():
    with pytest.raises(ConfigurationError):
        load_settings(log_level="LOUD")


def test_timeout_bounds():
    with pytest.raises(ConfigurationError):
        load_settings(lnd_timeout_seconds=0)


def test_get_settings_is_cached(monkeypatch):
    """Test that settings are loaded once per process until the cache is cleared."""
    first = get_settings()
    monkeypatch.setenv("LNP2P_LOG_LEVEL", "ERROR")

    assert get_settings() is first

    get_settings.cache_clear()
    assert get_settings().log_level == "ERROR"


def test_get_settings_applies_logging(monkeypatch, logging_applied):
    """Test that the first settings lookup configures logging from the settings."""
    monkeypatch.setenv("LNP2P_JSON_LOGS", "true")

    settings = get_settings()
    get_settings()

    assert logging_applied == [settings]
    assert logging_applied[0].json_logs is True
