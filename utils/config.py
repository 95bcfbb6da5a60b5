# utils/config.py
"""
Centralized Configuration Management

Version: 1.0.0
Features:
- Support both local (.env) and Streamlit Cloud (secrets.toml)
- Singleton pattern for efficiency
- Type-safe getters with defaults
- Environment detection
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any, Optional
from dataclasses import dataclass

# Initialize logger
logger = logging.getLogger(__name__)


def is_running_on_streamlit_cloud() -> bool:
    """Detect if running on Streamlit Cloud"""
    try:
        import streamlit as st
        return hasattr(st, 'secrets') and len(st.secrets) > 0
    except Exception:
        return False


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class DatabaseConfig:
    """Database configuration container (hosted Postgres)"""
    host: str
    port: int
    user: str
    password: str
    database: str
    sslmode: str = "require"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'host': self.host,
            'port': self.port,
            'user': self.user,
            'password': self.password,
            'database': self.database,
            'sslmode': self.sslmode,
        }

    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)


@dataclass
class SupabaseConfig:
    """Hosted auth / RPC endpoint configuration"""
    url: Optional[str] = None
    anon_key: Optional[str] = None

    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)


@dataclass
class BuildInfo:
    """Build metadata shown in the footer"""
    commit: str = "unknown"
    branch: str = "unknown"
    build_time: str = ""

    @property
    def short_commit(self) -> str:
        return self.commit[:7] if self.commit else "unknown"


class Config:
    """
    Centralized configuration management

    Usage:
        from utils.config import config

        # Get database config
        db_config = config.get_db_config()

        # Get app settings
        debounce = config.get_app_setting("REFRESH_DEBOUNCE_MS", 1000)

        # Check feature flags
        if config.is_feature_enabled("DEBUG_MODE"):
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
        self._load_config()
        self._initialized = True

    def _load_config(self):
        """Load configuration based on environment"""
        if self.is_cloud:
            self._load_cloud_config()
        else:
            self._load_local_config()

        self._load_app_config()
        self._log_config_status()

    def _load_cloud_config(self):
        """Load configuration from Streamlit Cloud secrets"""
        import streamlit as st

        # Database
        db_secrets = st.secrets.get("DB_CONFIG", {})
        self._db_config = DatabaseConfig(
            host=db_secrets.get("host", ""),
            port=int(db_secrets.get("port", 5432)),
            user=db_secrets.get("user", ""),
            password=db_secrets.get("password", ""),
            database=db_secrets.get("database", "postgres"),
            sslmode=db_secrets.get("sslmode", "require"),
        )

        # Hosted auth
        supabase_secrets = st.secrets.get("SUPABASE", {})
        self._supabase_config = SupabaseConfig(
            url=supabase_secrets.get("URL"),
            anon_key=supabase_secrets.get("ANON_KEY"),
        )

        # Server-side secrets (never rendered)
        automation_secrets = st.secrets.get("AUTOMATION", {})
        self._secrets = {
            "automation_webhook": automation_secrets.get("WEBHOOK_SECRET"),
        }

        build = st.secrets.get("BUILD", {})
        self._build_info = BuildInfo(
            commit=build.get("GIT_COMMIT", "unknown"),
            branch=build.get("GIT_BRANCH", "unknown"),
            build_time=build.get("BUILD_TIME", ""),
        )

        logger.info("☁️ Running in STREAMLIT CLOUD")

    def _load_local_config(self):
        """Load configuration from local .env file"""
        # Find and load .env file
        env_paths = [
            Path.cwd() / ".env",
            Path(__file__).parent.parent / ".env",
        ]

        for env_path in env_paths:
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from: {env_path}")
                break

        # Database
        self._db_config = DatabaseConfig(
            host=os.getenv("DB_HOST", ""),
            port=int(os.getenv("DB_PORT", "5432")),
            user=os.getenv("DB_USER", ""),
            password=os.getenv("DB_PASSWORD", ""),
            database=os.getenv("DB_NAME", os.getenv("DB_DATABASE", "postgres")),
            sslmode=os.getenv("DB_SSLMODE", "require"),
        )

        # Hosted auth
        self._supabase_config = SupabaseConfig(
            url=os.getenv("SUPABASE_URL"),
            anon_key=os.getenv("SUPABASE_ANON_KEY"),
        )

        # Server-side secrets (never rendered)
        self._secrets = {
            "automation_webhook": os.getenv("AUTOMATION_WEBHOOK_SECRET"),
        }

        self._build_info = BuildInfo(
            commit=os.getenv("GIT_COMMIT", "unknown"),
            branch=os.getenv("GIT_BRANCH", "unknown"),
            build_time=os.getenv("BUILD_TIME", ""),
        )

        logger.info("💻 Running in LOCAL environment")

    def _load_app_config(self):
        """Load application-specific settings"""
        self._app_config = {
            # Session
            "SESSION_REFRESH_MINUTES": int(os.getenv("SESSION_REFRESH_MINUTES", "10")),
            "SESSION_WARNING_MINUTES": int(os.getenv("SESSION_WARNING_MINUTES", "5")),

            # Refresh coordination
            "REFRESH_DEBOUNCE_MS": int(os.getenv("REFRESH_DEBOUNCE_MS", "1000")),
            "REALTIME_POLL_SECONDS": int(os.getenv("REALTIME_POLL_SECONDS", "5")),

            # Database pool
            "DB_POOL_SIZE": int(os.getenv("DB_POOL_SIZE", "5")),
            "DB_POOL_RECYCLE": int(os.getenv("DB_POOL_RECYCLE", "1800")),

            # Webhook
            "WEBHOOK_TIMEOUT_SECONDS": float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "10")),

            # Localization
            "TIMEZONE": os.getenv("TIMEZONE", "Europe/Amsterdam"),

            # Feature flags
            "ENABLE_REALTIME": _as_bool(os.getenv("ENABLE_REALTIME"), True),
            "ENABLE_DEBUG_MODE": _as_bool(os.getenv("ENABLE_DEBUG_MODE"), False),
        }

    def _log_config_status(self):
        """Log configuration status"""
        if self._db_config.is_configured():
            logger.info(f"✅ Database: {self._db_config.host}/{self._db_config.database}")
        else:
            logger.warning("⚠️ Database: Not configured")
        logger.info(f"✅ Auth service: {'Configured' if self._supabase_config.is_configured() else 'Not configured'}")
        logger.info(f"✅ Automation secret: {'Configured' if self._secrets.get('automation_webhook') else 'Missing'}")

    # ==================== PUBLIC GETTERS ====================

    def get_db_config(self) -> Dict[str, Any]:
        """
        Get database configuration as dictionary

        Raises:
            ValueError: if host, user or password are missing
        """
        if not self._db_config.is_configured():
            logger.error("Missing required database configuration")
            raise ValueError("Missing required database configuration. Please check .env file.")
        return self._db_config.to_dict()

    def get_supabase_config(self) -> SupabaseConfig:
        """Get hosted auth configuration"""
        return self._supabase_config

    def get_secret(self, name: str) -> Optional[str]:
        """Get a server-side secret by name"""
        return self._secrets.get(name)

    def get_build_info(self) -> BuildInfo:
        """Get build metadata"""
        return self._build_info

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        """Get application setting with default"""
        return self._app_config.get(key, default)

    def is_feature_enabled(self, feature: str) -> bool:
        """Check if feature is enabled"""
        key = f"ENABLE_{feature.upper()}"
        return self._app_config.get(key, True)

    # ==================== PROPERTIES ====================

    @property
    def app_config(self) -> Dict[str, Any]:
        """Copy of the application settings"""
        return self._app_config.copy()


# ==================== SINGLETON INSTANCE ====================

config = Config()

__all__ = [
    'config',
    'Config',
    'BuildInfo',
]
