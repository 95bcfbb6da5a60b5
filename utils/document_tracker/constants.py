# utils/document_tracker/constants.py
"""
Constants for the Customer Document Tracker

VERSION: 1.0.0
"""

from .models import ColumnKind, ColumnSpec

# =============================================================================
# ROLE DEFINITIONS
# =============================================================================
ROLE_ADMIN = 'admin'
ROLE_USER = 'user'
AVAILABLE_ROLES = [ROLE_ADMIN, ROLE_USER]

# =============================================================================
# BACKEND TABLES
# =============================================================================
TABLE_CUSTOMERS = 'customers'
TABLE_DOCUMENTS = 'customer_documents'
TABLE_STATS_HISTORY = 'cct_stats_hist'
TABLE_SETTINGS = 'settings'
TABLE_PROFILES = 'profiles'
TABLE_USER_ROLES = 'user_roles'

# Singleton settings row
SETTINGS_ROW_ID = 1

# =============================================================================
# HISTORY / TOP-N DEFAULTS
# =============================================================================
DEFAULT_HISTORY_LIMIT = 10
MIN_HISTORY_LIMIT = 5
MAX_HISTORY_LIMIT = 50
DEFAULT_TOPX = 15

# =============================================================================
# PAGINATION
# =============================================================================
PAGE_SIZE_OPTIONS = [10, 15, 25, 50, 100]
DEFAULT_PAGE_SIZE = 25
DOCUMENTS_PER_PAGE = 25

# =============================================================================
# REFRESH COORDINATION
# =============================================================================
DEFAULT_DEBOUNCE_MS = 1000
STATS_UPDATE_EVENT = 'stats_update'
NOTIFY_CHANNEL = 'table_changes'

EVENT_INSERT = 'INSERT'
EVENT_UPDATE = 'UPDATE'
EVENT_DELETE = 'DELETE'
ALL_EVENTS = (EVENT_INSERT, EVENT_UPDATE, EVENT_DELETE)

# =============================================================================
# DOCUMENT TYPES
# =============================================================================
DOCUMENT_TYPE_INVOICE = 'invoice'
DOCUMENT_TYPE_OTHER = 'other'
DOCUMENT_TYPES = [DOCUMENT_TYPE_INVOICE, DOCUMENT_TYPE_OTHER]

# =============================================================================
# CUSTOMER TABLE COLUMNS
# Comparison kind is declared per column; nothing is inferred at sort time.
# =============================================================================
CUSTOMER_COLUMNS = [
    ColumnSpec('id', 'Customer #', ColumnKind.STRING),
    ColumnSpec('customer_name', 'Customer', ColumnKind.STRING),
    ColumnSpec('cs_documents_total', 'Total', ColumnKind.NUMBER),
    ColumnSpec('cs_documents_in_process', 'In Process', ColumnKind.NUMBER),
    ColumnSpec('cs_documents_other', 'Other', ColumnKind.NUMBER),
    ColumnSpec('cs_documents_inbox', 'Inbox', ColumnKind.NUMBER),
    ColumnSpec('cs_last_update', 'Updated', ColumnKind.DATE),
    ColumnSpec('last_updated_by', 'By', ColumnKind.STRING),
]

MANAGEMENT_COLUMNS = [
    ColumnSpec('id', 'Customer #', ColumnKind.STRING),
    ColumnSpec('customer_name', 'Customer', ColumnKind.STRING),
    ColumnSpec('administration_name', 'Administration', ColumnKind.STRING),
    ColumnSpec('administration_mail', 'Administration Mail', ColumnKind.STRING),
    ColumnSpec('source', 'Source', ColumnKind.STRING),
    ColumnSpec('source_root', 'Source Root', ColumnKind.STRING),
    ColumnSpec('is_active', 'Active', ColumnKind.BOOLEAN),
    ColumnSpec('cs_last_update', 'Updated', ColumnKind.DATE),
    ColumnSpec('last_updated_by', 'By', ColumnKind.STRING),
]

DASHBOARD_SEARCH_FIELDS = ('id', 'customer_name')
MANAGEMENT_SEARCH_FIELDS = ('id', 'customer_name', 'source_root', 'administration_mail')

# Counters stored on the customer row; total is derived from these
CUSTOMER_COUNTER_COLUMNS = ('cs_documents_in_process', 'cs_documents_other', 'cs_documents_inbox')
CUSTOMER_TOTAL_COMPONENTS = ('cs_documents_in_process', 'cs_documents_other')

CUSTOMER_EDITABLE_FIELDS = (
    'customer_name',
    'administration_name',
    'administration_mail',
    'source',
    'source_root',
    'is_active',
)

# =============================================================================
# METRICS
# =============================================================================
STATS_FIELDS = ('total', 'total_top', 'total_in_process')

# metric field -> settings target attribute
METRIC_TARGETS = {
    'total': 'target_all',
    'total_top': 'target_top',
    'total_in_process': 'target_invoice',
}

METRIC_LABELS = {
    'total': 'Total Documents',
    'total_top': 'Total Top {topx}',
    'total_in_process': 'Invoices In Process',
}

# =============================================================================
# SESSION STATE KEYS (prefixed _dt_)
# =============================================================================
SESSION_KEY_COORDINATOR = '_dt_change_coordinator'
SESSION_KEY_DASHBOARD_TABLE = '_dt_dashboard_table'
SESSION_KEY_MANAGEMENT_TABLE = '_dt_management_table'
SESSION_KEY_DOCUMENT_BROWSER = '_dt_document_browser'
SESSION_KEY_LISTENER = '_dt_change_listener'
SESSION_KEY_METRICS = '_dt_metrics_snapshot'
SESSION_KEY_SETTINGS_STATE = '_dt_settings_state'

# =============================================================================
# COLOR SCHEME
# =============================================================================
COLORS = {
    "primary": "#1f77b4",
    "good": "#4CAF50",
    "bad": "#FF5252",
    "placeholder": "#d3d3d3",
    "admin_badge": "#6b21a8",
    "user_badge": "#1e40af",
    "text_light": "#666666",
}

DEFAULT_BADGE_COLOR = '#e5e7eb'

CHART_HEIGHT = 45

# =============================================================================
# DEBUG SETTINGS
# Use environment variable to enable: DT_DEBUG_TIMING=true
# =============================================================================
import os as _os
DEBUG_TIMING = _os.getenv('DT_DEBUG_TIMING', 'false').lower() == 'true'

# =============================================================================
# DISPLAY FORMATS
# =============================================================================
DATETIME_DISPLAY_FORMAT = '%d.%m.%Y - %H:%M'
DOCUMENT_DATE_FORMAT = '%d-%m-%Y %H:%M'

# =============================================================================
# EXPORT
# =============================================================================
EXCEL_STYLES = {
    'header_fill_color': '1F77B4',
    'header_font_color': 'FFFFFF',
    'count_format': '#,##0',
    'datetime_format': 'dd.mm.yyyy hh:mm',
}
