# utils/db.py
"""
Postgres access for the document tracker

Version: 1.0.0
- One pooled SQLAlchemy engine per process, shared by every session
- build_database_url: psycopg2 URL from the DB_CONFIG block
- check_db_connection: page-level guard with a user-facing message
- get_listen_connection: autocommit driver connection for the change feed
"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL
from sqlalchemy.pool import QueuePool
from sqlalchemy.exc import OperationalError
import logging
import threading
from typing import Tuple, Optional, Dict, Any

from .config import config

logger = logging.getLogger(__name__)

# ==================== ENGINE ====================

_engine = None
_engine_lock = threading.Lock()


def build_database_url(db_config: Dict[str, Any]) -> URL:
    """psycopg2 URL for the tracker database; the password is never rendered in logs."""
    return URL.create(
        "postgresql+psycopg2",
        username=db_config["user"],
        password=str(db_config["password"]),
        host=db_config["host"],
        port=int(db_config["port"]),
        database=db_config["database"],
    )


def get_db_engine():
    """Shared engine for customers, documents, stats, settings and roles."""
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = _create_engine()

    return _engine


def _create_engine():
    db_config = config.get_db_config()
    url = build_database_url(db_config)

    pool_size = config.get_app_setting("DB_POOL_SIZE", 5)
    pool_recycle = config.get_app_setting("DB_POOL_RECYCLE", 1800)

    logger.info(f"🔌 Connecting to {url.render_as_string(hide_password=True)}")

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=pool_recycle,
        # Hosted Postgres drops idle connections
        pool_pre_ping=True,
        connect_args={"sslmode": db_config.get("sslmode", "require")},
    )

    logger.info(f"✅ Tracker database engine ready (pool_size={pool_size}, recycle={pool_recycle}s)")
    return engine


# ==================== HEALTH ====================

def check_db_connection() -> Tuple[bool, Optional[str]]:
    """
    Run SELECT 1 against the tracker database.

    Returns:
        (True, None), or (False, message to show on the page)
    """
    try:
        with get_db_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, None
    except ValueError as e:
        logger.error(f"❌ {e}")
        return False, "The document database is not configured."
    except OperationalError as e:
        logger.error(f"❌ Database unreachable: {e}")
        return False, "Cannot reach the document database. Please check your network connection."
    except Exception as e:
        logger.error(f"❌ Database error: {e}")
        return False, f"Database error: {e}"


def reset_db_engine():
    """Dispose the shared engine; the next query reconnects (System Status button)."""
    global _engine

    with _engine_lock:
        engine, _engine = _engine, None

    if engine is not None:
        try:
            engine.dispose()
        except Exception as e:
            logger.error(f"Error disposing engine: {e}")
    logger.info("🔄 Database engine reset")


def get_connection_pool_status() -> Dict[str, Any]:
    """Pool counters for the admin System Status panel."""
    if _engine is None:
        return {"status": "not_initialized"}

    try:
        pool = _engine.pool
        return {
            "status": "active",
            "pool_size": pool.size(),
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            "overflow": pool.overflow(),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}


# ==================== CHANGE FEED ====================

def get_listen_connection():
    """
    Pool connection switched to autocommit for LISTEN/NOTIFY.

    The change listener owns it and closes it on stop.
    """
    raw = get_db_engine().raw_connection()
    raw.driver_connection.autocommit = True
    return raw


__all__ = [
    'build_database_url',
    'get_db_engine',
    'check_db_connection',
    'reset_db_engine',
    'get_connection_pool_status',
    'get_listen_connection',
]
