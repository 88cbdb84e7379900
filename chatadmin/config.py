from __future__ import annotations

from pathlib import Path
import os

try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    # python-dotenv is optional; plain environment variables still work
    pass

# Repository root
REPO_ROOT = Path(__file__).resolve().parent.parent
# Default database location
DB_FILE = REPO_ROOT / "chatadmin.db"
# Files uploaded without object storage are written here
PUBLIC_DIR = REPO_ROOT / "public"

# Addresses that refer to the server itself and can never be sealed
LOCAL_ADDRESSES = frozenset({"::1", "127.0.0.1"})


class BaseConfig:
    """Base settings shared across environments."""

    # seal durations in seconds
    SEAL_USER_TIMEOUT = 60 * 10
    SEAL_IP_TIMEOUT = 60 * 60 * 6
    # the provider issues month-long tokens; refresh a day early
    BAIDU_TOKEN_MARGIN = 60 * 60 * 24
    HTTP_TIMEOUT = 10.0


class ProductionConfig(BaseConfig):
    LOG_LEVEL = "INFO"


class DevelopmentConfig(BaseConfig):
    LOG_LEVEL = "DEBUG"


_CONFIGS = {
    "production": ProductionConfig,
    "development": DevelopmentConfig,
}

# Current active configuration determined by the ``APP_ENV`` environment
# variable. Defaults to development.
APP_ENV = os.getenv("APP_ENV", "development")
ActiveConfig = _CONFIGS.get(APP_ENV, DevelopmentConfig)


def get_database_url() -> str:
    """Return the configured database connection string.

    ``DATABASE_URL`` may point at PostgreSQL or at an SQLite file
    (``sqlite:///path``). Without it the SQLite file :data:`DB_FILE` is used.
    """
    return os.getenv("DATABASE_URL", "")


def get_redis_url() -> str | None:
    """Return the Redis connection string if set."""
    return os.getenv("REDIS_URL")


def get_admin_token() -> str:
    """Return the bearer token that grants administrator access."""
    return os.getenv("ADMIN_TOKEN", "")


def get_seal_user_timeout() -> float:
    """Return how long a sealed user stays sealed, in seconds."""
    return float(os.getenv("SEAL_USER_TIMEOUT", ActiveConfig.SEAL_USER_TIMEOUT))


def get_seal_ip_timeout() -> float:
    """Return how long a sealed IP address stays sealed, in seconds."""
    return float(os.getenv("SEAL_IP_TIMEOUT", ActiveConfig.SEAL_IP_TIMEOUT))


def get_baidu_credentials() -> tuple[str, str]:
    """Return the ``(client_id, client_secret)`` pair for speech synthesis."""
    return os.getenv("BAIDU_CLIENT_ID", ""), os.getenv("BAIDU_CLIENT_SECRET", "")


def get_baidu_token_margin() -> float:
    return float(os.getenv("BAIDU_TOKEN_MARGIN", ActiveConfig.BAIDU_TOKEN_MARGIN))


def get_http_timeout() -> float:
    return float(os.getenv("HTTP_TIMEOUT", ActiveConfig.HTTP_TIMEOUT))


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", ActiveConfig.LOG_LEVEL)


def get_qiniu_settings() -> dict[str, str]:
    """Return the object storage settings; empty values mean not configured."""
    return {
        "access_key": os.getenv("QINIU_ACCESS_KEY", ""),
        "bucket": os.getenv("QINIU_BUCKET", ""),
        "url_prefix": os.getenv("QINIU_URL_PREFIX", ""),
    }


def get_public_dir() -> Path:
    return Path(os.getenv("PUBLIC_DIR", str(PUBLIC_DIR)))


__all__ = [
    "DB_FILE",
    "LOCAL_ADDRESSES",
    "get_database_url",
    "get_redis_url",
    "get_admin_token",
    "get_seal_user_timeout",
    "get_seal_ip_timeout",
    "get_baidu_credentials",
    "get_baidu_token_margin",
    "get_http_timeout",
    "get_log_level",
    "get_qiniu_settings",
    "get_public_dir",
]
