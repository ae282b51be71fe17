# utils/config.py
"""
Centralized Configuration Management

Version: 3.0.0
Features:
- One settings reader for both Streamlit Cloud (secrets.toml sections)
  and local runs (.env / environment variables)
- Singleton pattern for efficiency
- Typed settings table with defaults
- Optional record store database: without it the app runs against the
  local cache store

secrets.toml layout (Streamlit Cloud):

    [DB_CONFIG]   host, port, user, password, database, url
    [EMAIL]       OUTBOUND_EMAIL_SENDER, OUTBOUND_EMAIL_PASSWORD, SMTP_HOST, SMTP_PORT
    [API]         OPENAI_API_KEY
    [APP]         any key of APP_SETTINGS
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Any, Callable, Dict, Optional, Tuple
from dataclasses import dataclass
from urllib.parse import quote_plus

logger = logging.getLogger(__name__)


def is_running_on_streamlit_cloud() -> bool:
    """Detect if running on Streamlit Cloud"""
    try:
        import streamlit as st
        return hasattr(st, 'secrets') and len(st.secrets) > 0
    except Exception:
        return False


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


# (key, cast, default)
APP_SETTINGS: Tuple[Tuple[str, Callable, Any], ...] = (
    ("SYNC_INTERVAL_SECONDS", int, 600),
    ("LOCAL_CACHE_DIR", str, str(Path.home() / ".sales_pipeline")),
    ("CACHE_VERSION", int, 11),
    ("DB_POOL_SIZE", int, 5),
    ("DB_POOL_RECYCLE", int, 3600),
    ("OPENAI_MODEL", str, "gpt-4o-mini"),
    ("TIMEZONE", str, "Asia/Seoul"),
    ("ENABLE_EMAIL_NOTIFICATIONS", _as_bool, True),
    ("ENABLE_NARRATIVE", _as_bool, True),
)


@dataclass
class DatabaseConfig:
    """Record store database; a full url wins over host settings"""
    host: str = ""
    port: int = 3306
    user: str = ""
    password: str = ""
    database: str = "sales_pipeline"
    url: Optional[str] = None

    def is_configured(self) -> bool:
        return bool(self.url or (self.host and self.user and self.password))

    def build_url(self) -> Optional[str]:
        if self.url:
            return self.url
        if not self.is_configured():
            return None
        return (
            f"mysql+pymysql://{self.user}:{quote_plus(str(self.password))}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    def describe(self) -> str:
        """Location without credentials, for logs"""
        if self.url:
            return self.url.split("@")[-1]
        return f"{self.host}:{self.port}/{self.database}"


@dataclass
class EmailConfig:
    """Outbound mail account for the weekly report"""
    sender: Optional[str] = None
    password: Optional[str] = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587

    def is_configured(self) -> bool:
        return bool(self.sender and self.password)


class _SettingsReader:
    """Reads a key from a secrets section on the cloud, from the environment locally."""

    def __init__(self, secrets=None):
        self._secrets = secrets

    def get(self, section: str, key: str, env_key: Optional[str] = None, default: Any = None) -> Any:
        if self._secrets is not None:
            value = self._secrets.get(section, {}).get(key)
        else:
            value = os.getenv(env_key or key)
        return default if value in (None, "") else value


class Config:
    """
    Centralized configuration management

    Usage:
        from utils.config import config

        # Record store
        if config.is_remote_configured():
            url = config.get_database_url()

        # App settings
        interval = config.get_app_setting("SYNC_INTERVAL_SECONDS", 600)

        # Feature flags
        if config.is_feature_enabled("narrative"):
            ...
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.is_cloud = is_running_on_streamlit_cloud()
        self._load(self._reader())
        self._initialized = True

    def _reader(self) -> _SettingsReader:
        if self.is_cloud:
            import streamlit as st
            logger.info("☁️ Running in STREAMLIT CLOUD")
            return _SettingsReader(st.secrets)

        for env_path in (Path.cwd() / ".env", Path(__file__).parent.parent / ".env"):
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from: {env_path}")
                break
        logger.info("💻 Running in LOCAL environment")
        return _SettingsReader()

    def _load(self, read: _SettingsReader):
        self._db_config = DatabaseConfig(
            host=read.get("DB_CONFIG", "host", "DB_HOST", ""),
            port=int(read.get("DB_CONFIG", "port", "DB_PORT", 3306)),
            user=read.get("DB_CONFIG", "user", "DB_USER", ""),
            password=read.get("DB_CONFIG", "password", "DB_PASSWORD", ""),
            database=read.get("DB_CONFIG", "database", "DB_NAME", "sales_pipeline"),
            url=read.get("DB_CONFIG", "url", "DATABASE_URL"),
        )

        self._email_config = EmailConfig(
            sender=read.get("EMAIL", "OUTBOUND_EMAIL_SENDER"),
            password=read.get("EMAIL", "OUTBOUND_EMAIL_PASSWORD"),
            smtp_host=read.get("EMAIL", "SMTP_HOST", default="smtp.gmail.com"),
            smtp_port=int(read.get("EMAIL", "SMTP_PORT", default=587)),
        )

        self._api_keys = {
            "openai": read.get("API", "OPENAI_API_KEY"),
        }

        self._app_config = {}
        for key, cast, default in APP_SETTINGS:
            raw = read.get("APP", key, default=default)
            try:
                self._app_config[key] = cast(raw)
            except (TypeError, ValueError):
                logger.warning(f"Invalid value for {key}: {raw!r}, using {default!r}")
                self._app_config[key] = default

        if self._db_config.is_configured():
            logger.info(f"✅ Record store: {self._db_config.describe()}")
        else:
            logger.warning("No record store database configured - using local cache")
        logger.info(f"✅ Email: {'Configured' if self._email_config.is_configured() else 'Not configured'}")
        logger.info(f"✅ OpenAI: {'Configured' if self._api_keys.get('openai') else 'Missing'}")

    # ==================== PUBLIC GETTERS ====================

    def get_database_url(self) -> Optional[str]:
        """SQLAlchemy URL for the record store, None in local mode"""
        return self._db_config.build_url()

    def is_remote_configured(self) -> bool:
        return self._db_config.is_configured()

    def get_email_config(self, module: str = "outbound") -> Dict[str, Any]:
        """Outbound mail settings in the shape EmailNotifier expects"""
        email = self._email_config
        return {
            "sender": email.sender,
            "password": email.password,
            "host": email.smtp_host,
            "port": email.smtp_port,
        }

    def is_email_configured(self) -> bool:
        return self._email_config.is_configured()

    def get_api_key(self, service: str) -> Optional[str]:
        return self._api_keys.get(service)

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        return self._app_config.get(key, default)

    def is_feature_enabled(self, feature: str) -> bool:
        return self._app_config.get(f"ENABLE_{feature.upper()}", True)

    @property
    def app_config(self) -> Dict[str, Any]:
        return self._app_config.copy()


# ==================== SINGLETON INSTANCE ====================

config = Config()

IS_RUNNING_ON_CLOUD = config.is_cloud
APP_CONFIG = config.app_config
OUTBOUND_EMAIL_CONFIG = config.get_email_config("outbound")

__all__ = [
    'config',
    'Config',
    'DatabaseConfig',
    'EmailConfig',
    'IS_RUNNING_ON_CLOUD',
    'APP_CONFIG',
    'OUTBOUND_EMAIL_CONFIG',
]
