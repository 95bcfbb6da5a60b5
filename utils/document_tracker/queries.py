# utils/document_tracker/queries.py
"""
SQL Queries for the Customer Document Tracker (remote data gateway)

Data sources (hosted Postgres):
  - customers, customer_documents
  - cct_stats_hist (newest-first in storage, returned oldest-first)
  - settings (singleton row)
  - profiles, user_roles

Rows are normalized once here: derived totals recomputed, the legacy
stats column names mapped, "last updated by" parsed into ActorRef.

Reads log and return an empty result on failure. Settings reads and
all writes raise.

VERSION: 1.0.0
"""

import logging
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, Iterable
import pandas as pd
from sqlalchemy import text, bindparam

from utils.db import get_db_engine
from .constants import (
    TABLE_CUSTOMERS, TABLE_DOCUMENTS, TABLE_STATS_HISTORY, TABLE_SETTINGS,
    TABLE_PROFILES, TABLE_USER_ROLES, SETTINGS_ROW_ID,
    CUSTOMER_COUNTER_COLUMNS, CUSTOMER_TOTAL_COMPONENTS, CUSTOMER_EDITABLE_FIELDS,
    DEFAULT_HISTORY_LIMIT, DOCUMENTS_PER_PAGE, ROLE_ADMIN, ROLE_USER,
    AVAILABLE_ROLES, DEBUG_TIMING,
)
from .errors import SettingsMissingError, WriteError, AuthorizationError
from .models import ActorRef, AppSettings, UserWithRole

logger = logging.getLogger(__name__)

CUSTOMER_COLUMNS_ORDER = [
    'id', 'customer_name',
    'cs_documents_total', 'cs_documents_in_process', 'cs_documents_other', 'cs_documents_inbox',
    'cs_last_update', 'last_updated_by',
    'is_active', 'administration_name', 'administration_mail', 'source', 'source_root',
]

STATS_COLUMNS = ['id', 'total', 'total_top', 'total_in_process', 'created_at']

DOCUMENT_COLUMNS = [
    'id', 'customer_id', 'document_name', 'document_path', 'document_type', 'created_at',
]


# =============================================================================
# ROW NORMALIZATION
# =============================================================================

def normalize_customers(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize raw customer rows into the application shape.

    - cs_documents_total is always recomputed (any stored value is dropped)
    - counters default to 0
    - id is a string, is_active a bool
    - cs_last_update is a UTC timestamp
    - last_updated_by becomes ActorRef or None
    """
    if df is None or df.empty:
        return pd.DataFrame(columns=CUSTOMER_COLUMNS_ORDER)

    df = df.copy()
    if 'cs_documents_total' in df.columns:
        df = df.drop(columns=['cs_documents_total'])

    for col in CUSTOMER_COLUMNS_ORDER:
        if col not in df.columns and col != 'cs_documents_total':
            df[col] = None

    for col in CUSTOMER_COUNTER_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors='coerce').fillna(0).astype(int)

    df['cs_documents_total'] = df[list(CUSTOMER_TOTAL_COMPONENTS)].sum(axis=1).astype(int)

    df['id'] = df['id'].astype(str)
    df['is_active'] = df['is_active'].map(lambda v: bool(v) if pd.notna(v) else False)
    df['cs_last_update'] = pd.to_datetime(df['cs_last_update'], errors='coerce', utc=True)
    df['last_updated_by'] = df['last_updated_by'].map(ActorRef.parse).astype(object)

    extra = [c for c in df.columns if c not in CUSTOMER_COLUMNS_ORDER]
    return df[CUSTOMER_COLUMNS_ORDER + extra].reset_index(drop=True)


def normalize_stats_history(df: pd.DataFrame) -> pd.DataFrame:
    """Coerce counters to ints and return rows oldest-first."""
    if df is None or df.empty:
        return pd.DataFrame(columns=STATS_COLUMNS)

    df = df.copy()
    for col in ('total', 'total_top', 'total_in_process'):
        df[col] = pd.to_numeric(df[col], errors='coerce').fillna(0).astype(int)
    df['created_at'] = pd.to_datetime(df['created_at'], errors='coerce', utc=True)
    # Stored newest-first; charts read oldest-first
    return df.iloc[::-1].reset_index(drop=True)


def _settings_from_row(row: Dict) -> AppSettings:
    def _opt_int(value):
        if value is None or (isinstance(value, float) and pd.isna(value)):
            return None
        return int(value)

    last_run = row.get('last_update_run')
    if last_run is not None and not isinstance(last_run, datetime):
        last_run = pd.to_datetime(last_run, errors='coerce', utc=True)
        last_run = None if pd.isna(last_run) else last_run.to_pydatetime()

    return AppSettings(
        id=int(row['id']),
        target_all=_opt_int(row.get('target_all')),
        target_invoice=_opt_int(row.get('target_invoice')),
        target_top=_opt_int(row.get('target_top')),
        history_limit=_opt_int(row.get('history_limit')),
        topx=_opt_int(row.get('topx')),
        last_update_run=last_run,
        automation_url=row.get('automation_url') or None,
    )


class DocumentTrackerQueries:
    """
    SQL query helpers for the document tracker.

    Usage:
        queries = DocumentTrackerQueries()
        customers_df = queries.load_active_customers()
        history_df = queries.load_stats_history(limit=10)
        settings = queries.load_settings()
    """

    def __init__(self, engine=None):
        self._engine = engine

    @property
    def engine(self):
        """Lazy load database engine."""
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    def _read(self, name: str, query: str, params: Dict = None) -> pd.DataFrame:
        start_time = time.perf_counter()
        df = pd.read_sql(text(query), self.engine, params=params or {})
        if DEBUG_TIMING:
            print(f"   📊 SQL [{name}]: {time.perf_counter() - start_time:.3f}s → {len(df):,} rows")
        return df

    # =========================================================================
    # CUSTOMERS
    # =========================================================================

    def load_active_customers(self, strict: bool = False) -> pd.DataFrame:
        """
        Load customers with is_active = true (dashboard view).

        Args:
            strict: Re-raise backend errors instead of returning an empty
                frame, so a table refresh can keep its previous rows
        """
        query = f"""
            SELECT *
            FROM {TABLE_CUSTOMERS}
            WHERE is_active = true
        """
        try:
            return normalize_customers(self._read('active_customers', query))
        except Exception as e:
            logger.error(f"Error loading active customers: {e}")
            if strict:
                raise
            return normalize_customers(pd.DataFrame())

    def load_all_customers(self, strict: bool = False) -> pd.DataFrame:
        """Load every customer, active or not (management view)."""
        query = f"""
            SELECT *
            FROM {TABLE_CUSTOMERS}
        """
        try:
            return normalize_customers(self._read('all_customers', query))
        except Exception as e:
            logger.error(f"Error loading all customers: {e}")
            if strict:
                raise
            return normalize_customers(pd.DataFrame())

    def get_customer(self, customer_id: str) -> Optional[Dict]:
        """Load one customer by id, or None."""
        query = f"""
            SELECT *
            FROM {TABLE_CUSTOMERS}
            WHERE id = :customer_id
        """
        try:
            df = normalize_customers(self._read('customer', query, {'customer_id': str(customer_id)}))
        except Exception as e:
            logger.error(f"Error loading customer {customer_id}: {e}")
            return None
        if df.empty:
            return None
        return df.iloc[0].to_dict()

    def get_customer_name(self, customer_id: str) -> Optional[str]:
        customer = self.get_customer(customer_id)
        if not customer:
            return None
        name = customer.get('customer_name')
        return None if pd.isna(name) else str(name)

    def count_active_customers(self) -> int:
        query = f"SELECT COUNT(*) AS cnt FROM {TABLE_CUSTOMERS} WHERE is_active = true"
        try:
            df = self._read('customer_count', query)
            return int(df.iloc[0]['cnt']) if not df.empty else 0
        except Exception as e:
            logger.error(f"Error counting customers: {e}")
            return 0

    def update_customer(self, customer_id: str, fields: Dict, actor_id: Optional[str] = None) -> int:
        """
        Update mutable customer fields.

        Only CUSTOMER_EDITABLE_FIELDS are written; cs_documents_total is
        never persisted. When actor_id is given, cs_last_update and
        last_updated_by are stamped as well.

        Raises:
            WriteError: on backend failure or when no row matched
        """
        values = {k: v for k, v in fields.items() if k in CUSTOMER_EDITABLE_FIELDS}
        ignored = set(fields) - set(values)
        if ignored:
            logger.warning(f"Ignoring non-editable customer fields: {sorted(ignored)}")

        assignments = [f"{col} = :{col}" for col in values]
        params = dict(values)
        if actor_id:
            assignments += ["cs_last_update = :now", "last_updated_by = :actor_id"]
            params['now'] = datetime.now(timezone.utc)
            params['actor_id'] = actor_id
        if not assignments:
            return 0

        params['customer_id'] = str(customer_id)
        query = f"""
            UPDATE {TABLE_CUSTOMERS}
            SET {', '.join(assignments)}
            WHERE id = :customer_id
        """
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(query), params)
                rowcount = result.rowcount
        except Exception as e:
            logger.error(f"Error updating customer {customer_id}: {e}")
            raise WriteError(f"update customer {customer_id}", str(e)) from e

        if rowcount == 0:
            raise WriteError(f"update customer {customer_id}", "customer not found")
        logger.info(f"Customer {customer_id} updated by {actor_id or 'unknown'}: {sorted(values)}")
        return rowcount

    def mark_customer_updated(self, customer_id: str, actor_id: str) -> int:
        """Stamp cs_last_update / last_updated_by without changing other fields."""
        return self.update_customer(customer_id, {}, actor_id=actor_id)

    # =========================================================================
    # DOCUMENTS
    # =========================================================================

    def load_documents(
        self,
        customer_id: str,
        page: int = 0,
        page_size: int = DOCUMENTS_PER_PAGE,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        document_types: Optional[Iterable[str]] = None,
        strict: bool = False,
    ) -> Tuple[pd.DataFrame, int]:
        """
        Load one page of a customer's documents, newest-first.

        Args:
            customer_id: Owning customer
            page: Zero-based page index
            page_size: Rows per page
            created_from / created_to: Inclusive created_at bounds
            document_types: Type tags to keep; empty/None = all types
            strict: Re-raise backend errors so the browser can keep its page

        Returns:
            (documents_df, total_count_matching_filters)
        """
        where = ["customer_id = :customer_id"]
        params = {'customer_id': str(customer_id)}
        bind = []

        if created_from is not None:
            where.append("created_at >= :created_from")
            params['created_from'] = created_from
        if created_to is not None:
            where.append("created_at <= :created_to")
            params['created_to'] = created_to

        types = sorted(set(document_types or []))
        if types:
            where.append("document_type IN :document_types")
            params['document_types'] = types
            bind.append(bindparam('document_types', expanding=True))

        where_sql = " AND ".join(where)
        count_query = f"SELECT COUNT(*) AS cnt FROM {TABLE_DOCUMENTS} WHERE {where_sql}"
        page_query = f"""
            SELECT {', '.join(DOCUMENT_COLUMNS)}
            FROM {TABLE_DOCUMENTS}
            WHERE {where_sql}
            ORDER BY created_at DESC
            LIMIT :limit OFFSET :offset
        """
        page_params = dict(params, limit=page_size, offset=max(page, 0) * page_size)

        try:
            with self.engine.connect() as conn:
                count_stmt = text(count_query)
                page_stmt = text(page_query)
                if bind:
                    count_stmt = count_stmt.bindparams(*bind)
                    page_stmt = page_stmt.bindparams(*bind)
                total = conn.execute(count_stmt, params).scalar() or 0
                df = pd.read_sql(page_stmt, conn, params=page_params)
        except Exception as e:
            logger.error(f"Error loading documents for customer {customer_id}: {e}")
            if strict:
                raise
            return pd.DataFrame(columns=DOCUMENT_COLUMNS), 0

        if not df.empty:
            df['customer_id'] = df['customer_id'].astype(str)
            df['created_at'] = pd.to_datetime(df['created_at'], errors='coerce', utc=True)
        return df, int(total)

    # =========================================================================
    # STATS
    # =========================================================================

    def load_latest_stats(self, strict: bool = False) -> Optional[Dict]:
        """Most recent stats snapshot, or None."""
        query = f"""
            SELECT id, total, total_15 AS total_top, total_in_proces AS total_in_process, created_at
            FROM {TABLE_STATS_HISTORY}
            ORDER BY created_at DESC
            LIMIT 1
        """
        try:
            df = normalize_stats_history(self._read('latest_stats', query))
        except Exception as e:
            logger.error(f"Error loading stats: {e}")
            if strict:
                raise
            return None
        if df.empty:
            return None
        return df.iloc[-1].to_dict()

    def load_stats_history(self, limit: int = DEFAULT_HISTORY_LIMIT, strict: bool = False) -> pd.DataFrame:
        """Last `limit` snapshots, returned oldest-first."""
        query = f"""
            SELECT id, total, total_15 AS total_top, total_in_proces AS total_in_process, created_at
            FROM {TABLE_STATS_HISTORY}
            ORDER BY created_at DESC
            LIMIT :limit
        """
        try:
            return normalize_stats_history(self._read('stats_history', query, {'limit': int(limit)}))
        except Exception as e:
            logger.error(f"Error loading stats history: {e}")
            if strict:
                raise
            return pd.DataFrame(columns=STATS_COLUMNS)

    # =========================================================================
    # SETTINGS (singleton row)
    # =========================================================================

    def load_settings(self) -> AppSettings:
        """
        Load the singleton settings row.

        Raises:
            SettingsMissingError: the row does not exist
            Exception: backend errors are propagated, never defaulted
        """
        query = f"""
            SELECT id, target_all, target_invoice, target_top, history_limit, topx,
                   last_update_run, wh_run AS automation_url
            FROM {TABLE_SETTINGS}
            WHERE id = :settings_id
        """
        try:
            df = self._read('settings', query, {'settings_id': SETTINGS_ROW_ID})
        except Exception as e:
            logger.error(f"Error loading settings: {e}")
            raise

        if df.empty:
            logger.critical(f"Settings row {SETTINGS_ROW_ID} is missing")
            raise SettingsMissingError(
                f"The settings record (id={SETTINGS_ROW_ID}) does not exist. "
                "The dashboard cannot run without it."
            )
        return _settings_from_row(df.iloc[0].to_dict())

    def update_settings(self, fields: Dict) -> int:
        """
        Update the singleton settings row.

        Raises:
            WriteError: on backend failure or when the row is missing
        """
        column_map = {
            'target_all': 'target_all',
            'target_invoice': 'target_invoice',
            'target_top': 'target_top',
            'history_limit': 'history_limit',
            'topx': 'topx',
            'automation_url': 'wh_run',
            'last_update_run': 'last_update_run',
        }
        values = {column_map[k]: v for k, v in fields.items() if k in column_map}
        if not values:
            return 0

        assignments = ", ".join(f"{col} = :{col}" for col in values)
        query = f"UPDATE {TABLE_SETTINGS} SET {assignments} WHERE id = :settings_id"
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(query), dict(values, settings_id=SETTINGS_ROW_ID))
                rowcount = result.rowcount
        except Exception as e:
            logger.error(f"Error updating settings: {e}")
            raise WriteError("update settings", str(e)) from e

        if rowcount == 0:
            raise WriteError("update settings", "settings record not found")
        logger.info(f"Settings updated: {sorted(values)}")
        return rowcount

    # =========================================================================
    # USERS & ROLES
    # =========================================================================

    def has_role(self, user_id: Optional[str], role: str) -> bool:
        """Does user_id hold role? Any failure answers False."""
        if not user_id:
            return False
        query = f"""
            SELECT 1 AS ok
            FROM {TABLE_USER_ROLES}
            WHERE user_id = :user_id AND role = :role
            LIMIT 1
        """
        try:
            df = self._read('has_role', query, {'user_id': user_id, 'role': role})
            return not df.empty
        except Exception as e:
            logger.error(f"Error checking role {role} for {user_id}: {e}")
            return False

    def load_users_with_roles(self, requested_by: Optional[str]) -> List[UserWithRole]:
        """
        Profiles joined with their role; empty for non-admin callers.

        Users with an admin row are reported as admin, everyone else as user.
        """
        if not self.has_role(requested_by, ROLE_ADMIN):
            logger.warning(f"User {requested_by} requested the user list without admin role")
            return []

        query = f"""
            SELECT p.id, p.email, p.full_name,
                   CASE WHEN bool_or(r.role = '{ROLE_ADMIN}') THEN '{ROLE_ADMIN}' ELSE '{ROLE_USER}' END AS role
            FROM {TABLE_PROFILES} p
            LEFT JOIN {TABLE_USER_ROLES} r ON r.user_id = p.id
            GROUP BY p.id, p.email, p.full_name
            ORDER BY p.email
        """
        try:
            df = self._read('users_with_roles', query)
        except Exception as e:
            logger.error(f"Error loading users: {e}")
            return []

        return [
            UserWithRole(
                id=str(row['id']),
                email=row['email'],
                full_name=row['full_name'] if pd.notna(row['full_name']) else None,
                role=row['role'] or ROLE_USER,
            )
            for _, row in df.iterrows()
        ]

    def set_user_role(self, requested_by: Optional[str], user_id: str, role: str) -> None:
        """
        Give user_id exactly one role.

        Demotion deletes the admin row and ensures a user row; promotion
        adds the admin row.

        Raises:
            AuthorizationError: caller is not an admin
            WriteError: backend failure
        """
        if role not in AVAILABLE_ROLES:
            raise ValueError(f"Unknown role: {role}")
        if not self.has_role(requested_by, ROLE_ADMIN):
            raise AuthorizationError("Only administrators can change user roles")

        upsert = f"""
            INSERT INTO {TABLE_USER_ROLES} (user_id, role)
            VALUES (:user_id, :role)
            ON CONFLICT (user_id, role) DO NOTHING
        """
        try:
            with self.engine.begin() as conn:
                if role == ROLE_USER:
                    conn.execute(
                        text(f"DELETE FROM {TABLE_USER_ROLES} WHERE user_id = :user_id AND role = :role"),
                        {'user_id': user_id, 'role': ROLE_ADMIN},
                    )
                conn.execute(text(upsert), {'user_id': user_id, 'role': role})
        except Exception as e:
            logger.error(f"Error setting role {role} for {user_id}: {e}")
            raise WriteError(f"update role for user {user_id}", str(e)) from e

        logger.info(f"User {user_id} role set to {role} by {requested_by}")

    def load_profile_badges(self, keys: List[str]) -> pd.DataFrame:
        """
        Badge colours for profiles matched by id or full name.

        Returns:
            DataFrame with columns key, full_name, badge_color
        """
        if not keys:
            return pd.DataFrame(columns=['key', 'full_name', 'badge_color'])

        query = f"""
            SELECT CAST(id AS text) AS id, full_name, badge_color
            FROM {TABLE_PROFILES}
            WHERE CAST(id AS text) IN :keys OR full_name IN :keys
        """
        stmt = text(query).bindparams(bindparam('keys', expanding=True))
        df = pd.read_sql(stmt, self.engine, params={'keys': list(keys)})
        rows = []
        wanted = set(keys)
        for _, row in df.iterrows():
            for key in (row['id'], row['full_name']):
                if key in wanted:
                    rows.append({'key': key, 'full_name': row['full_name'], 'badge_color': row['badge_color']})
        return pd.DataFrame(rows, columns=['key', 'full_name', 'badge_color'])
