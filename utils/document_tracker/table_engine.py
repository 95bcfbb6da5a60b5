# utils/document_tracker/table_engine.py
"""
In-memory customer table: search, sort, pagination and refresh coordination.

All operations are Pandas-based and synchronous; only refresh() touches
the backend, through the fetch callable it is given.

Comparison policy (per declared column kind):
- missing values (None / NaN / NaT) sort last ascending, first descending
- STRING: locale-style comparison (accent-stripped, case-folded text,
  raw text as tie-breaker); non-string values are stringified
- NUMBER: numeric; non-numeric values fall back to stringified text after
  all numbers
- DATE: timestamp; values that do not parse fall back to stringified text
  after all dates
- BOOLEAN: False before True

VERSION: 1.0.0
"""

import logging
import math
import time
import unicodedata
from datetime import datetime, date
from numbers import Number
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple
import pandas as pd

from .constants import (
    CUSTOMER_COLUMNS, DASHBOARD_SEARCH_FIELDS, DEFAULT_PAGE_SIZE, DEFAULT_DEBOUNCE_MS,
)
from .models import ColumnKind, ColumnSpec, SortConfig, SortDirection

logger = logging.getLogger(__name__)


# =============================================================================
# COMPARISON KEYS
# =============================================================================

def is_missing(value) -> bool:
    """None, NaN and NaT count as missing; everything else is a value."""
    if value is None:
        return True
    try:
        result = pd.isna(value)
    except (TypeError, ValueError):
        return False
    if getattr(result, 'ndim', 0):
        return False
    return bool(result)


def text_key(value) -> Tuple[str, str]:
    """Collation key approximating a locale-aware string compare."""
    raw = str(value)
    decomposed = unicodedata.normalize('NFKD', raw)
    folded = ''.join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return folded, raw


def _timestamp_value(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (pd.Timestamp, datetime, date)) or isinstance(value, str):
        try:
            ts = pd.Timestamp(value)
        except (ValueError, TypeError, OverflowError):
            return None
        if ts is pd.NaT or pd.isna(ts):
            return None
        if ts.tzinfo is None:
            ts = ts.tz_localize('UTC')
        return ts.value
    return None


def sort_key(kind: ColumnKind, value) -> tuple:
    """
    Key for a non-missing value of the given column kind.

    Keys are (group, primary, text): group 0 holds values handled natively
    by the kind, group 1 holds values that fell back to stringified text.
    """
    if kind is ColumnKind.NUMBER:
        if isinstance(value, Number) and not isinstance(value, bool) and not math.isnan(float(value)):
            return 0, float(value), ('', '')
        return 1, 0.0, text_key(value)

    if kind is ColumnKind.DATE:
        ts = _timestamp_value(value)
        if ts is not None:
            return 0, ts, ('', '')
        return 1, 0, text_key(value)

    if kind is ColumnKind.BOOLEAN:
        return 0, int(bool(value)), ('', '')

    return 0, 0, text_key(value)


# =============================================================================
# SORT / FILTER / PAGINATE
# =============================================================================

def sort_rows(df: pd.DataFrame, config: SortConfig, columns: Dict[str, ColumnSpec]) -> pd.DataFrame:
    """
    Return df ordered by config. Stable; the input is not modified.

    Args:
        df: Rows to sort
        config: Column key (None = keep order) and direction
        columns: Declared column specs by key
    """
    if config.key is None or df.empty or config.key not in df.columns:
        return df

    spec = columns.get(config.key) or ColumnSpec(config.key, config.key, ColumnKind.STRING)
    values = df[config.key].tolist()

    present = [i for i, v in enumerate(values) if not is_missing(v)]
    missing = [i for i, v in enumerate(values) if is_missing(v)]

    descending = config.direction is SortDirection.DESC
    ordered = sorted(present, key=lambda i: sort_key(spec.kind, values[i]), reverse=descending)

    positions = missing + ordered if descending else ordered + missing
    return df.iloc[positions]


def filter_rows(df: pd.DataFrame, search_text: str, fields: Sequence[str]) -> pd.DataFrame:
    """
    Case-insensitive substring match on any of fields.

    Blank text keeps every row (and the same object).
    """
    needle = (search_text or '').strip().casefold()
    if not needle or df.empty:
        return df

    mask = pd.Series(False, index=df.index)
    for field in fields:
        if field not in df.columns:
            continue
        hits = df[field].map(lambda v: (not is_missing(v)) and needle in str(v).casefold())
        mask |= hits.astype(bool)
    return df[mask]


def page_count(total_rows: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(total_rows / page_size)


def page_slice(df: pd.DataFrame, page_index: int, page_size: int) -> pd.DataFrame:
    start = page_index * page_size
    return df.iloc[start:start + page_size]


def frames_equal(left: Optional[pd.DataFrame], right: Optional[pd.DataFrame]) -> bool:
    """Structural equality over every column and cell."""
    if left is None or right is None:
        return left is right
    if left.shape != right.shape or list(left.columns) != list(right.columns):
        return False
    return left.reset_index(drop=True).equals(right.reset_index(drop=True))


# =============================================================================
# DEBOUNCE
# =============================================================================

class RefreshDebouncer:
    """
    Minimum-interval gate for refresh requests.

    A request inside the interval is remembered as pending rather than
    dropped, so a burst collapses into one immediate refresh plus at most
    one trailing refresh once the interval has passed.
    """

    def __init__(self, min_interval_ms: int = DEFAULT_DEBOUNCE_MS,
                 clock: Callable[[], float] = time.monotonic):
        self.min_interval = min_interval_ms / 1000.0
        self._clock = clock
        self._last_run: Optional[float] = None
        self.pending = False

    def _elapsed_ok(self, now: float) -> bool:
        return self._last_run is None or (now - self._last_run) >= self.min_interval

    def request(self, now: Optional[float] = None) -> bool:
        """True if the caller should refresh now."""
        now = self._clock() if now is None else now
        if self._elapsed_ok(now):
            self._last_run = now
            self.pending = False
            return True
        self.pending = True
        return False

    def due(self, now: Optional[float] = None) -> bool:
        """True if a pending request may run now."""
        if not self.pending:
            return False
        now = self._clock() if now is None else now
        if self._elapsed_ok(now):
            self._last_run = now
            self.pending = False
            return True
        return False


# =============================================================================
# CUSTOMER TABLE
# =============================================================================

class CustomerTable:
    """
    Authoritative customer collection plus its visible projection.

    The projection is: sort(all rows) → search filter → page slice.
    User actions re-derive it synchronously; refreshes go through
    begin_fetch/complete_fetch so that a slower, older fetch can never
    overwrite a newer one.

    Usage:
        table = CustomerTable()
        table.refresh(queries.load_active_customers)
        table.set_search_text("acme")
        table.sort("cs_documents_total")
        rows = table.page_rows()
    """

    def __init__(
        self,
        columns: Iterable[ColumnSpec] = CUSTOMER_COLUMNS,
        search_fields: Sequence[str] = DASHBOARD_SEARCH_FIELDS,
        sort_config: SortConfig = SortConfig('id', SortDirection.ASC),
        page_size: int = DEFAULT_PAGE_SIZE,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.columns: Dict[str, ColumnSpec] = {c.key: c for c in columns}
        self.search_fields = tuple(search_fields)
        self.sort_config = sort_config
        self.page_size = page_size
        self.page_index = 0
        self.search_text = ''
        self.customers: Optional[pd.DataFrame] = None
        self.visible: pd.DataFrame = pd.DataFrame(columns=list(self.columns))
        self.revision = 0
        self.error: Optional[str] = None
        self.loading = False

        self._generation = 0
        self._mounted = True
        self._paused = False
        self._stale = False
        self._debouncer = RefreshDebouncer(debounce_ms, clock)

    # ---------------------------------------------------------------------
    # Projection
    # ---------------------------------------------------------------------

    def _rebuild(self):
        rows = self.customers if self.customers is not None else self.visible.iloc[0:0]
        ordered = sort_rows(rows, self.sort_config, self.columns)
        self.visible = filter_rows(ordered, self.search_text, self.search_fields)
        last_page = max(self.page_count - 1, 0)
        self.page_index = min(self.page_index, last_page)
        self.revision += 1

    def load(self, rows: pd.DataFrame) -> bool:
        """
        Replace the collection unless rows deep-equal the current one.

        Returns:
            True if the projection was rebuilt
        """
        if self.customers is not None and frames_equal(rows, self.customers):
            logger.debug("Customer rows unchanged, projection kept")
            return False
        self.customers = rows.reset_index(drop=True).copy()
        self._rebuild()
        return True

    def set_search_text(self, text: str):
        """Apply search text and go back to the first page."""
        self.search_text = text or ''
        self.page_index = 0
        self._rebuild()

    def sort(self, column_key: str):
        """Sort by column_key; the same column again flips direction."""
        if column_key not in self.columns:
            raise KeyError(f"Unknown column: {column_key}")
        self.sort_config = self.sort_config.toggled(column_key)
        self._rebuild()

    def paginate(self, page_index: Optional[int] = None, page_size: Optional[int] = None):
        """
        Move to page_index and/or change page_size.

        A new page_size always returns to the first page.
        """
        if page_size is not None and page_size != self.page_size:
            if page_size <= 0:
                raise ValueError("page_size must be positive")
            self.page_size = page_size
            self.page_index = 0
            return
        if page_index is not None:
            last_page = max(self.page_count - 1, 0)
            self.page_index = max(0, min(int(page_index), last_page))

    def next_page(self):
        self.paginate(page_index=self.page_index + 1)

    def previous_page(self):
        self.paginate(page_index=self.page_index - 1)

    @property
    def total_rows(self) -> int:
        return len(self.visible)

    @property
    def page_count(self) -> int:
        return page_count(self.total_rows, self.page_size)

    @property
    def is_first_page(self) -> bool:
        return self.page_index == 0

    @property
    def is_last_page(self) -> bool:
        return self.page_index >= max(self.page_count - 1, 0)

    def page_rows(self) -> pd.DataFrame:
        return page_slice(self.visible, self.page_index, self.page_size)

    def page_range(self) -> Tuple[int, int, int]:
        """(first_row, last_row, total) as shown to the user, 1-based."""
        total = self.total_rows
        if total == 0:
            return 0, 0, 0
        start = self.page_index * self.page_size + 1
        end = min((self.page_index + 1) * self.page_size, total)
        return start, end, total

    # ---------------------------------------------------------------------
    # Refresh coordination
    # ---------------------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    def begin_fetch(self) -> int:
        """Issue a new fetch generation; older ones become stale."""
        self._generation += 1
        self.loading = True
        return self._generation

    def complete_fetch(self, generation: int, rows: pd.DataFrame) -> bool:
        """Apply a fetch result if it is still the latest and the view is mounted."""
        if not self._mounted or generation != self._generation:
            logger.debug(f"Discarding stale fetch {generation} (latest {self._generation})")
            return False
        self.loading = False
        self.error = None
        return self.load(rows)

    def fail_fetch(self, generation: int, message: str) -> bool:
        """Record a failed fetch; rows already loaded are kept."""
        if not self._mounted or generation != self._generation:
            return False
        self.loading = False
        self.error = message
        return True

    def dismiss_error(self):
        self.error = None

    def refresh(self, fetch: Callable[[], pd.DataFrame]) -> bool:
        """Fetch and load. Failures keep the current rows and set .error."""
        generation = self.begin_fetch()
        try:
            rows = fetch()
        except Exception as e:
            logger.error(f"Failed to fetch customers: {e}")
            self.fail_fetch(generation, "Failed to load customer data. Please try again.")
            return False
        return self.complete_fetch(generation, rows)

    def handle_external_change(self, fetch: Callable[[], pd.DataFrame],
                               now: Optional[float] = None) -> bool:
        """Refresh on a change event, coalescing bursts inside the debounce interval."""
        if not self._mounted:
            return False
        if self._paused:
            self._stale = True
            return False
        if self._debouncer.request(now):
            return self.refresh(fetch)
        logger.debug("Refresh debounced, marked pending")
        return False

    def flush_pending(self, fetch: Callable[[], pd.DataFrame], now: Optional[float] = None) -> bool:
        """Run a debounced refresh once its interval has passed."""
        if self._mounted and not self._paused and self._debouncer.due(now):
            return self.refresh(fetch)
        return False

    @property
    def is_paused(self) -> bool:
        return self._paused

    def pause(self):
        """Stop background refreshes while the table is not on screen."""
        self._paused = True

    def resume(self, fetch: Callable[[], pd.DataFrame]) -> bool:
        """Resume refreshes; one fetch catches up on changes missed while paused."""
        was_stale = self._stale or self._debouncer.pending
        self._paused = False
        self._stale = False
        if was_stale and self._mounted:
            self._debouncer.pending = False
            return self.refresh(fetch)
        return False

    @property
    def refresh_pending(self) -> bool:
        return self._debouncer.pending

    def unmount(self):
        """Stop accepting fetch results."""
        self._mounted = False
        self._generation += 1
        self.loading = False

    def __repr__(self) -> str:
        return (f"CustomerTable(rows={0 if self.customers is None else len(self.customers)}, "
                f"visible={self.total_rows}, sort={self.sort_config.key}:{self.sort_config.direction.value}, "
                f"page={self.page_index + 1}/{max(self.page_count, 1)})")
