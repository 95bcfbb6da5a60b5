# utils/document_tracker/models.py
"""
Data containers for the Customer Document Tracker.

Rows from the backend travel as pandas DataFrames; the types here cover
the values that need more structure than a DataFrame cell:
- ActorRef: normalized "last updated by" reference
- ColumnSpec / ColumnKind: declared comparison kind per table column
- SortConfig: current sort column + direction
- AppSettings / SettingsState: singleton settings row and its load state
- UserWithRole: user joined with its role relation

VERSION: 1.0.0
"""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Any

_UUID_RE = re.compile(
    r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$'
)


# =============================================================================
# ACTOR REFERENCE
# =============================================================================

@dataclass(frozen=True)
class ActorRef:
    """
    Who last updated a customer row.

    Older rows hold a free-text name or e-mail, newer rows a stable user id.
    Both are normalized once at the gateway into one of:
        ActorRef(kind='actor-id', value='<uuid>')
        ActorRef(kind='legacy-name', value='Jane Doe')
    """
    kind: str
    value: str

    ACTOR_ID = 'actor-id'
    LEGACY_NAME = 'legacy-name'

    @classmethod
    def parse(cls, raw: Any) -> Optional['ActorRef']:
        """Normalize a raw column value; None/blank/NaN yields None."""
        if raw is None:
            return None
        if isinstance(raw, ActorRef):
            return raw
        if isinstance(raw, float) and raw != raw:  # NaN
            return None
        text = str(raw).strip()
        if not text:
            return None
        if _UUID_RE.match(text):
            return cls(cls.ACTOR_ID, text.lower())
        return cls(cls.LEGACY_NAME, text)

    @property
    def is_actor_id(self) -> bool:
        return self.kind == self.ACTOR_ID

    def __str__(self) -> str:
        return self.value


# =============================================================================
# TABLE COLUMNS / SORTING
# =============================================================================

class ColumnKind(str, Enum):
    STRING = 'string'
    NUMBER = 'number'
    DATE = 'date'
    BOOLEAN = 'boolean'


@dataclass(frozen=True)
class ColumnSpec:
    key: str
    label: str
    kind: ColumnKind = ColumnKind.STRING


class SortDirection(str, Enum):
    ASC = 'asc'
    DESC = 'desc'

    def flipped(self) -> 'SortDirection':
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


@dataclass(frozen=True)
class SortConfig:
    """Sort column (or None for unsorted) and direction."""
    key: Optional[str] = None
    direction: SortDirection = SortDirection.ASC

    def toggled(self, key: str) -> 'SortConfig':
        """Same column flips direction, a new column starts ascending."""
        if self.key == key:
            return replace(self, direction=self.direction.flipped())
        return SortConfig(key=key, direction=SortDirection.ASC)

    @property
    def ascending(self) -> bool:
        return self.direction is SortDirection.ASC


# =============================================================================
# SETTINGS
# =============================================================================

@dataclass
class AppSettings:
    """The singleton settings row."""
    id: int
    target_all: Optional[int] = None
    target_invoice: Optional[int] = None
    target_top: Optional[int] = None
    history_limit: Optional[int] = None
    topx: Optional[int] = None
    last_update_run: Optional[datetime] = None
    automation_url: Optional[str] = None

    def effective_history_limit(self, default: int, lower: int, upper: int) -> int:
        """History window with fallback to default and clamped to [lower, upper]."""
        if self.history_limit is None:
            return default
        return max(lower, min(upper, int(self.history_limit)))

    def effective_topx(self, default: int) -> int:
        if self.topx is None or int(self.topx) <= 0:
            return default
        return int(self.topx)

    def target_for(self, attribute: str) -> Optional[int]:
        return getattr(self, attribute, None)


class SettingsStatus(str, Enum):
    NOT_LOADED = 'not_loaded'
    LOADED = 'loaded'
    MISSING = 'missing'


@dataclass
class SettingsState:
    """
    Load state of the singleton settings row.

    The three states are distinct on purpose: a view must never render
    defaults in place of a missing row.
    """
    status: SettingsStatus = SettingsStatus.NOT_LOADED
    settings: Optional[AppSettings] = None
    error: Optional[str] = None

    @classmethod
    def loaded(cls, settings: AppSettings) -> 'SettingsState':
        return cls(status=SettingsStatus.LOADED, settings=settings)

    @classmethod
    def missing(cls, error: str) -> 'SettingsState':
        return cls(status=SettingsStatus.MISSING, error=error)

    @property
    def is_loaded(self) -> bool:
        return self.status is SettingsStatus.LOADED

    @property
    def is_missing(self) -> bool:
        return self.status is SettingsStatus.MISSING


# =============================================================================
# USERS
# =============================================================================

@dataclass
class UserWithRole:
    id: str
    email: str
    full_name: Optional[str] = None
    role: str = 'user'

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'


@dataclass
class MetricCard:
    """Derived values for one dashboard metric card."""
    field: str
    label: str
    value: int
    change: float
    target: Optional[int]
    on_target: bool
    series: list = field(default_factory=list)
    is_placeholder: bool = False

    @property
    def trend_is_good(self) -> bool:
        # For document backlogs a decrease is good
        return self.change <= 0

    @property
    def status_label(self) -> str:
        return "On track" if self.on_target else "Off track"
