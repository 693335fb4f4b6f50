"""Runtime settings for the storefront API.

Settings are read once from environment variables. Database connection
parameters follow the same convention as the inventory service: a full
``DATABASE_URL`` wins, otherwise the URL is assembled from ``DB_*`` parts.
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    """Immutable view of the process configuration.

    Attributes:
        database_url: SQLAlchemy URL of the catalog/orders database.
        pool_size: Maximum number of pooled connections.
        pool_timeout: Seconds to wait for a free pooled connection.
        default_shipping_total: Shipping charged when a request omits it.
        log_level: Level name for the ``storefront`` loggers.
        api_max_bytes: Largest accepted request body under ``/api/``.
        db_startup_timeout: Seconds to wait for the database on startup.
    """

    database_url: str
    pool_size: int = 10
    pool_timeout: float = 30.0
    default_shipping_total: Decimal = Decimal("25.00")
    log_level: str = "INFO"
    api_max_bytes: int = 1024 * 1024
    db_startup_timeout: float = 30.0


def _database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    host = os.getenv("DB_HOST", "store-db")
    port = os.getenv("DB_PORT", "5432")
    name = os.getenv("DB_NAME", "store")
    user = os.getenv("DB_USER", "store_user")
    password = os.getenv("DB_PASSWORD", "store-pass")
    return f"postgresql+psycopg://{user}:{password}@{host}:{port}/{name}"


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero")
    return value


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} cannot be negative")
    return value


def _shipping(default: str = "25.00") -> Decimal:
    raw = os.getenv("DEFAULT_SHIPPING_TOTAL") or default
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ValueError(f"DEFAULT_SHIPPING_TOTAL must be a number, got {raw!r}") from None
    if not value.is_finite() or value < 0:
        raise ValueError("DEFAULT_SHIPPING_TOTAL cannot be negative")
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def load_settings() -> Settings:
    """Build a ``Settings`` instance from the current environment.

    Raises:
        ValueError: When a numeric variable cannot be parsed or is out of
            range.
    """
    return Settings(
        database_url=_database_url(),
        pool_size=_int("DB_POOL_SIZE", 10),
        pool_timeout=_float("DB_POOL_TIMEOUT", 30.0),
        default_shipping_total=_shipping(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        api_max_bytes=_int("API_MAX_BYTES", 1024 * 1024),
        db_startup_timeout=_float("DB_STARTUP_TIMEOUT", 30.0),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    return load_settings()
