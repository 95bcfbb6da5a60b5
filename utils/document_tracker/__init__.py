# utils/document_tracker/__init__.py
"""
Customer Document Tracker Module

Core classes are importable without Streamlit; the rendering layer
lives in utils.document_tracker.fragments and is imported by pages.

VERSION: 1.0.0
"""

# Core classes
from .queries import DocumentTrackerQueries, normalize_customers, normalize_stats_history
from .table_engine import CustomerTable, RefreshDebouncer, sort_rows, filter_rows
from .notifications import (
    ChangeCoordinator,
    ChangeEvent,
    ChangeNotificationListener,
    PostgresChangeFeed,
)
from .metrics import percent_change, on_target, chart_series, build_metric_cards
from .document_browser import DocumentBrowser, DocumentFilters
from .webhook import trigger_automation, validate_automation_url
from .validators import FormValidator, password_strength
from .access_control import AccessControl
from .badges import BadgeResolver, badge_resolver, clear_badge_cache
from .export import CustomerExport, export_frame

# Models / errors
from .models import (
    ActorRef,
    AppSettings,
    ColumnKind,
    ColumnSpec,
    MetricCard,
    SettingsState,
    SettingsStatus,
    SortConfig,
    SortDirection,
    UserWithRole,
)
from .errors import (
    DocumentTrackerError,
    SettingsMissingError,
    WriteError,
    ValidationError,
    AuthorizationError,
    AuthError,
    WebhookError,
    WebhookNotConfiguredError,
    WebhookURLNotAllowedError,
    WebhookResponseError,
)

# Constants
from .constants import (
    CUSTOMER_COLUMNS,
    MANAGEMENT_COLUMNS,
    DASHBOARD_SEARCH_FIELDS,
    MANAGEMENT_SEARCH_FIELDS,
    PAGE_SIZE_OPTIONS,
    DEFAULT_PAGE_SIZE,
    DOCUMENTS_PER_PAGE,
    DEFAULT_HISTORY_LIMIT,
    MIN_HISTORY_LIMIT,
    MAX_HISTORY_LIMIT,
    DEFAULT_TOPX,
    STATS_UPDATE_EVENT,
    DOCUMENT_TYPES,
    COLORS,
)

__all__ = [
    # Core classes
    'DocumentTrackerQueries',
    'normalize_customers',
    'normalize_stats_history',
    'CustomerTable',
    'RefreshDebouncer',
    'sort_rows',
    'filter_rows',
    'ChangeCoordinator',
    'ChangeEvent',
    'ChangeNotificationListener',
    'PostgresChangeFeed',
    'percent_change',
    'on_target',
    'chart_series',
    'build_metric_cards',
    'DocumentBrowser',
    'DocumentFilters',
    'trigger_automation',
    'validate_automation_url',
    'FormValidator',
    'password_strength',
    'AccessControl',
    'BadgeResolver',
    'badge_resolver',
    'clear_badge_cache',
    'CustomerExport',
    'export_frame',

    # Models
    'ActorRef',
    'AppSettings',
    'ColumnKind',
    'ColumnSpec',
    'MetricCard',
    'SettingsState',
    'SettingsStatus',
    'SortConfig',
    'SortDirection',
    'UserWithRole',

    # Errors
    'DocumentTrackerError',
    'SettingsMissingError',
    'WriteError',
    'ValidationError',
    'AuthorizationError',
    'AuthError',
    'WebhookError',
    'WebhookNotConfiguredError',
    'WebhookURLNotAllowedError',
    'WebhookResponseError',

    # Constants
    'CUSTOMER_COLUMNS',
    'MANAGEMENT_COLUMNS',
    'DASHBOARD_SEARCH_FIELDS',
    'MANAGEMENT_SEARCH_FIELDS',
    'PAGE_SIZE_OPTIONS',
    'DEFAULT_PAGE_SIZE',
    'DOCUMENTS_PER_PAGE',
    'DEFAULT_HISTORY_LIMIT',
    'MIN_HISTORY_LIMIT',
    'MAX_HISTORY_LIMIT',
    'DEFAULT_TOPX',
    'STATS_UPDATE_EVENT',
    'DOCUMENT_TYPES',
    'COLORS',
]
