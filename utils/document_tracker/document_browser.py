# utils/document_tracker/document_browser.py
"""
Per-customer document browser state.

Server-side: created_at range, type tags, page (fixed 25 per page).
Client-side: name substring search over the page that is loaded.

Filters are reset whenever the browser is opened for a different
customer id; closing keeps them.

VERSION: 1.0.0
"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone, tzinfo
from typing import FrozenSet, Iterable, Optional, Tuple
import pandas as pd

from .constants import DOCUMENTS_PER_PAGE, DOCUMENT_TYPES

logger = logging.getLogger(__name__)

START_OF_DAY = time(0, 0, 0, 0)
END_OF_DAY = time(23, 59, 59, 999000)


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def start_of_day(value, tz: tzinfo = timezone.utc) -> Optional[datetime]:
    day = _as_date(value)
    return None if day is None else datetime.combine(day, START_OF_DAY, tzinfo=tz)


def end_of_day(value, tz: tzinfo = timezone.utc) -> Optional[datetime]:
    """23:59:59.999 on the day of value, whatever time value carries."""
    day = _as_date(value)
    return None if day is None else datetime.combine(day, END_OF_DAY, tzinfo=tz)


@dataclass(frozen=True)
class DocumentFilters:
    """Filter values; date_to always means the end of that day."""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    document_types: FrozenSet[str] = field(default_factory=frozenset)
    name_search: str = ''

    def bounds(self, tz: tzinfo = timezone.utc) -> Tuple[Optional[datetime], Optional[datetime]]:
        return start_of_day(self.date_from, tz), end_of_day(self.date_to, tz)

    def matches_created_at(self, created_at, tz: tzinfo = timezone.utc) -> bool:
        """Inclusive range check, as applied by the backend query."""
        ts = pd.Timestamp(created_at)
        if ts.tzinfo is None:
            ts = ts.tz_localize(tz)
        lower, upper = self.bounds(tz)
        if lower is not None and ts < pd.Timestamp(lower):
            return False
        if upper is not None and ts > pd.Timestamp(upper):
            return False
        return True

    def matches_type(self, document_type) -> bool:
        return not self.document_types or document_type in self.document_types

    @property
    def is_active(self) -> bool:
        return bool(self.date_from or self.date_to or self.document_types or self.name_search.strip())


def filter_by_name(documents: pd.DataFrame, search_text: str) -> pd.DataFrame:
    """Case-insensitive substring match on document_name."""
    needle = (search_text or '').strip().casefold()
    if not needle or documents.empty or 'document_name' not in documents.columns:
        return documents
    mask = documents['document_name'].map(
        lambda name: isinstance(name, str) and needle in name.casefold()
    ).astype(bool)
    return documents[mask]


class DocumentBrowser:
    """
    State behind the customer documents dialog.

    Usage:
        browser = DocumentBrowser()
        browser.open("1001")
        browser.set_date_range(date(2024, 1, 1), date(2024, 1, 31))
        browser.fetch(queries)
        rows = browser.visible_documents()
    """

    def __init__(self, page_size: int = DOCUMENTS_PER_PAGE, tz: tzinfo = timezone.utc):
        self.page_size = page_size
        self.tz = tz
        self.customer_id: Optional[str] = None
        self.customer_name: Optional[str] = None
        self.is_open = False
        self.filters = DocumentFilters()
        self.page = 0
        self.total = 0
        self.documents = pd.DataFrame()
        self.needs_fetch = False
        self.error: Optional[str] = None
        self._loaded_page = 0
        self._needs_name = False

    # ---------------------------------------------------------------------
    # Open / close
    # ---------------------------------------------------------------------

    def open(self, customer_id) -> bool:
        """
        Open for customer_id.

        Returns:
            True if this is a different customer (filters were reset)
        """
        customer_id = str(customer_id)
        changed = customer_id != self.customer_id
        self.is_open = True
        if changed:
            logger.debug(f"Document browser switched to customer {customer_id}")
            self.customer_id = customer_id
            self.customer_name = None
            self.filters = DocumentFilters()
            self.page = 0
            self.total = 0
            self.documents = pd.DataFrame()
            self.needs_fetch = True
            self.error = None
            self._loaded_page = 0
            self._needs_name = True
        return changed

    def close(self):
        self.is_open = False

    # ---------------------------------------------------------------------
    # Filters / paging
    # ---------------------------------------------------------------------

    def _apply_server_filters(self, filters: DocumentFilters):
        if filters != self.filters:
            self.filters = filters
            self.page = 0
            self.needs_fetch = True

    def set_date_range(self, date_from=None, date_to=None):
        self._apply_server_filters(
            replace(self.filters, date_from=_as_date(date_from), date_to=_as_date(date_to))
        )

    def set_document_types(self, document_types: Iterable[str]):
        wanted = frozenset(t for t in (document_types or []) if t in DOCUMENT_TYPES)
        self._apply_server_filters(replace(self.filters, document_types=wanted))

    def set_name_search(self, text: str):
        """Client-side only; the loaded page is not refetched."""
        self.filters = replace(self.filters, name_search=text or '')

    def reset_filters(self):
        self._apply_server_filters(DocumentFilters())

    @property
    def page_count(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    def set_page(self, page: int):
        last_page = max(self.page_count - 1, 0)
        page = max(0, min(int(page), last_page))
        if page != self.page:
            self.page = page
            self.needs_fetch = True

    # ---------------------------------------------------------------------
    # Data
    # ---------------------------------------------------------------------

    def fetch(self, queries) -> bool:
        """
        Load the current page (and the customer name on first open).

        A failed read keeps the loaded page (and its page index) and sets
        `error`; it is not retried until the page or filters change.

        Returns:
            False when no customer is selected or the read failed
        """
        if self.customer_id is None:
            return False

        if self._needs_name:
            self.customer_name = queries.get_customer_name(self.customer_id)
            self._needs_name = False

        created_from, created_to = self.filters.bounds(self.tz)
        try:
            documents, total = queries.load_documents(
                self.customer_id,
                page=self.page,
                page_size=self.page_size,
                created_from=created_from,
                created_to=created_to,
                document_types=sorted(self.filters.document_types),
                strict=True,
            )
        except Exception as e:
            logger.warning(f"Document fetch failed for customer {self.customer_id}: {e}")
            self.error = "Failed to load customer documents."
            self.page = self._loaded_page
            self.needs_fetch = False
            return False

        self.documents = documents
        self.total = int(total)
        self._loaded_page = self.page
        self.needs_fetch = False
        self.error = None
        return True

    def dismiss_error(self):
        self.error = None

    def visible_documents(self) -> pd.DataFrame:
        return filter_by_name(self.documents, self.filters.name_search)

    @property
    def title(self) -> str:
        if self.customer_name:
            return f"Documents - {self.customer_name} ({self.customer_id})"
        return f"Documents - customer {self.customer_id}"
