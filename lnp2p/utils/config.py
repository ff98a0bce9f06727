"""Application settings.

Pydantic-based configuration, overridable through environment variables or a
``.env`` file.

Environment Variables:
- LNP2P_DATABASE_URL: SQLAlchemy URL (default: sqlite:///./lnp2p.db)
- LNP2P_INVOICE_EXPIRATION_WINDOW: minimum remaining invoice lifetime, seconds
  or ISO-8601 duration (default: 3600)
- LNP2P_LOG_LEVEL / LNP2P_JSON_LOGS / LNP2P_DEV_MODE: logging output
- LNP2P_LND_REST_URL / LNP2P_LND_MACAROON_HEX / LNP2P_LND_TLS_CERT_PATH:
  LND REST endpoint used to decode payment requests
"""

from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lnp2p.exceptions import ConfigurationError
from lnp2p.utils.logging import configure_from_settings, get_logger

logger = get_logger(__name__)


class Settings(BaseSettings):
    """lnp2p runtime configuration.

    Example:
        >>> settings = Settings(invoice_expiration_window=7200)
        >>> settings.invoice_expiration_window
        datetime.timedelta(seconds=7200)
    """

    model_config = SettingsConfigDict(
        env_prefix="LNP2P_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = Field(
        default="sqlite:///./lnp2p.db",
        description="SQLAlchemy database URL for orders and users",
    )

    invoice_expiration_window: timedelta = Field(
        default=timedelta(hours=1),
        description=(
            "Safety window: buyer invoices must stay valid at least this long "
            "so the seller can still pay them after release"
        ),
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    json_logs: bool = Field(default=False, description="Emit JSON logs")
    dev_mode: bool = Field(default=True, description="Colorful console logs")

    # LND REST (invoice decoding)
    lnd_rest_url: str = Field(
        default="https://localhost:8080",
        description="Base URL of the LND REST gateway",
    )
    lnd_macaroon_hex: str | None = Field(
        default=None,
        description="Hex-encoded macaroon sent as Grpc-Metadata-macaroon",
    )
    lnd_tls_cert_path: Path | None = Field(
        default=None,
        description="LND tls.cert; when unset the system trust store is used",
    )
    lnd_timeout_seconds: float = Field(default=10.0, gt=0, le=120)

    @field_validator("invoice_expiration_window", mode="before")
    @classmethod
    def _window_seconds(cls, value):
        # Environment values arrive as strings; bare digits mean seconds
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        return value

    @field_validator("invoice_expiration_window")
    @classmethod
    def _window_not_negative(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("invoice_expiration_window cannot be negative")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return level


def load_settings(**overrides) -> Settings:
    """Build settings, turning pydantic errors into ``ConfigurationError``."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        first = e.errors()[0]
        setting = ".".join(str(part) for part in first.get("loc", ()))
        logger.error("settings_invalid", setting=setting, error=first.get("msg"))
        raise ConfigurationError(
            "Invalid lnp2p configuration",
            setting=setting or None,
            expected=first.get("msg"),
            original_error=e,
        ) from e


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, loaded once.

    Loading also applies the logging fields, so the configured level and
    renderer are in effect from the first settings lookup on.
    """
    settings = load_settings()
    configure_from_settings(settings)
    return settings
