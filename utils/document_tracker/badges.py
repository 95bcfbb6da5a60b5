# utils/document_tracker/badges.py
"""
Badge display for "last updated by" actor references.

Actor ids resolve to the profile's full name; legacy names are shown as
stored. Colours come from the profile badge_color (default #e5e7eb).
Lookups are cached per process until clear() is called.

VERSION: 1.0.0
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from .constants import DEFAULT_BADGE_COLOR
from .models import ActorRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Badge:
    label: str
    color: str = DEFAULT_BADGE_COLOR


class BadgeResolver:
    """
    Cached actor → Badge lookup.

    Usage:
        resolver = BadgeResolver(queries)
        badges = resolver.badges_for(df['last_updated_by'])
        badge = badges.get(actor.value)
    """

    def __init__(self, queries=None):
        self._queries = queries
        self._cache: Dict[str, Badge] = {}
        self._lock = threading.Lock()

    @property
    def queries(self):
        if self._queries is None:
            from .queries import DocumentTrackerQueries
            self._queries = DocumentTrackerQueries()
        return self._queries

    def clear(self):
        with self._lock:
            self._cache.clear()
        logger.debug("Badge colour cache cleared")

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def badges_for(self, actors: Iterable[Optional[ActorRef]]) -> Dict[str, Badge]:
        """
        Batch lookup keyed by ActorRef.value.

        Keys not found in profiles get the raw value with the default colour.
        Lookup failures are logged and answered with defaults without caching,
        so the next render retries.
        """
        refs = {a.value: a for a in actors if isinstance(a, ActorRef) and a.value.strip()}
        if not refs:
            return {}

        with self._lock:
            result = {k: self._cache[k] for k in refs if k in self._cache}
        missing = [k for k in refs if k not in result]
        if not missing:
            return result

        try:
            df = self.queries.load_profile_badges(missing)
        except Exception as e:
            logger.error(f"Error loading badge colours: {e}")
            result.update({k: Badge(label=k) for k in missing})
            return result

        found: Dict[str, Badge] = {}
        for _, row in df.iterrows():
            label = row['full_name'] if isinstance(row['full_name'], str) and row['full_name'] else row['key']
            color = row['badge_color'] if isinstance(row['badge_color'], str) and row['badge_color'] else DEFAULT_BADGE_COLOR
            found[row['key']] = Badge(label=label, color=color)

        with self._lock:
            for key in missing:
                badge = found.get(key, Badge(label=key))
                self._cache[key] = badge
                result[key] = badge
        return result

    def badge_for(self, actor: Optional[ActorRef]) -> Optional[Badge]:
        if actor is None:
            return None
        return self.badges_for([actor]).get(actor.value)


# Process-wide resolver shared by all sessions
badge_resolver = BadgeResolver()


def clear_badge_cache():
    badge_resolver.clear()
