# utils/__init__.py
"""
Shared Utilities Package for the Customer Document Tracker

This package contains common utilities shared across all pages:
- auth: Authentication and session management (hosted auth service)
- config: Configuration management (local + Streamlit Cloud)
- db: Database connection management with pooling
- supabase_client: Per-session auth client
- document_tracker: Feature package (gateway, table engine, metrics, ...)

Usage:
    # Import specific modules
    from utils.auth import AuthManager
    from utils.db import get_db_engine, check_db_connection
    from utils.config import config

    # Or import commonly used items directly
    from utils import AuthManager, get_db_engine, config
"""

# Authentication
from .auth import (
    AuthManager,
    require_login,
    require_admin,
)

# Configuration
from .config import (
    config,
    Config,
    BuildInfo,
)

# Database
from .db import (
    get_db_engine,
    check_db_connection,
    reset_db_engine,
    get_listen_connection,
    get_connection_pool_status,
)

__all__ = [
    # Auth
    'AuthManager',
    'require_login',
    'require_admin',

    # Config
    'config',
    'Config',
    'BuildInfo',

    # Database
    'get_db_engine',
    'check_db_connection',
    'reset_db_engine',
    'get_listen_connection',
    'get_connection_pool_status',
]

__version__ = '3.0.0'
