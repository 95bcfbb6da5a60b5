# utils/document_tracker/notifications.py
"""
Change notifications for the document tracker.

Pieces:
- ChangeCoordinator: explicit publish/subscribe hub handed to each view.
  Table change events and named broadcasts (stats_update) fan out
  from here; every subscribe returns a handle that removes it again.
- PostgresChangeFeed: LISTEN/NOTIFY bridge. Triggers installed by
  sql/realtime_triggers.sql publish {"table", "type"} JSON on the
  table_changes channel; broadcasts travel on the same channel as
  {"broadcast": "<event>"} so other sessions see them too.
- ChangeNotificationListener: binds a feed to a coordinator and pumps
  pending notifications on each Streamlit rerun / fragment tick.

VERSION: 1.0.0
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .constants import (
    ALL_EVENTS, EVENT_INSERT, EVENT_UPDATE, NOTIFY_CHANNEL, STATS_UPDATE_EVENT,
    TABLE_CUSTOMERS, TABLE_DOCUMENTS, TABLE_SETTINGS, TABLE_STATS_HISTORY,
)

logger = logging.getLogger(__name__)

BROADCAST_EVENT_TYPE = 'BROADCAST'

# Streams a dashboard view listens to: table -> event types
DASHBOARD_STREAMS: Dict[str, Tuple[str, ...]] = {
    TABLE_CUSTOMERS: ALL_EVENTS,
    TABLE_STATS_HISTORY: (EVENT_INSERT,),
    TABLE_SETTINGS: (EVENT_UPDATE,),
    TABLE_DOCUMENTS: ALL_EVENTS,
}


@dataclass(frozen=True)
class ChangeEvent:
    """One delivered change. Only table/type are relied upon."""
    table: Optional[str]
    event_type: str
    name: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_broadcast(self) -> bool:
        return self.event_type == BROADCAST_EVENT_TYPE

    @classmethod
    def broadcast(cls, name: str, payload: Optional[Dict] = None) -> 'ChangeEvent':
        return cls(table=None, event_type=BROADCAST_EVENT_TYPE, name=name, payload=payload or {})


class Subscription:
    """Handle returned by ChangeCoordinator.subscribe*; call unsubscribe() on teardown."""

    def __init__(self, coordinator: 'ChangeCoordinator', key: Tuple[str, str], callback: Callable):
        self._coordinator = coordinator
        self.key = key
        self.callback = callback
        self.active = True

    def unsubscribe(self):
        if self.active:
            self._coordinator._remove(self)
            self.active = False


# =============================================================================
# COORDINATOR
# =============================================================================

class ChangeCoordinator:
    """
    Publish/subscribe hub for table changes and named broadcasts.

    Usage:
        coordinator = ChangeCoordinator()
        sub = coordinator.subscribe_table('customers', on_change)
        coordinator.subscribe_broadcast('stats_update', on_change)
        coordinator.broadcast('stats_update')
        sub.unsubscribe()
    """

    def __init__(self, publisher: Optional[Callable[[str, Dict], None]] = None):
        # publisher forwards broadcasts to other processes (PostgresChangeFeed.publish)
        self._publisher = publisher
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def set_publisher(self, publisher: Optional[Callable[[str, Dict], None]]):
        self._publisher = publisher

    # ---------------------------------------------------------------------
    # Subscribe
    # ---------------------------------------------------------------------

    def _add(self, key: Tuple[str, str], callback: Callable[[ChangeEvent], None]) -> Subscription:
        sub = Subscription(self, key, callback)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def _remove(self, sub: Subscription):
        with self._lock:
            self._subscriptions = [s for s in self._subscriptions if s is not sub]

    def subscribe_table(self, table: str, callback: Callable[[ChangeEvent], None],
                        events: Iterable[str] = ALL_EVENTS) -> List[Subscription]:
        """Subscribe to table change events of the given types."""
        return [self._add(('table', f"{table}:{event}"), callback) for event in events]

    def subscribe_broadcast(self, name: str, callback: Callable[[ChangeEvent], None]) -> Subscription:
        return self._add(('broadcast', name), callback)

    def subscribe_view(self, callback: Callable[[ChangeEvent], None],
                       streams: Dict[str, Tuple[str, ...]] = None,
                       broadcasts: Iterable[str] = (STATS_UPDATE_EVENT,)) -> List[Subscription]:
        """
        Subscribe one view-level callback to all of its streams and broadcasts.

        Returns:
            Handles to pass to unsubscribe_all() when the view goes away
        """
        streams = DASHBOARD_STREAMS if streams is None else streams
        handles: List[Subscription] = []
        for table, events in streams.items():
            handles.extend(self.subscribe_table(table, callback, events))
        for name in broadcasts:
            handles.append(self.subscribe_broadcast(name, callback))
        return handles

    @staticmethod
    def unsubscribe_all(handles: Iterable[Subscription]):
        for handle in handles:
            handle.unsubscribe()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    # ---------------------------------------------------------------------
    # Publish
    # ---------------------------------------------------------------------

    def dispatch(self, event: ChangeEvent) -> int:
        """
        Deliver event to matching subscribers.

        A failing callback is logged and does not stop delivery to the rest.

        Returns:
            Number of callbacks invoked
        """
        if event.is_broadcast:
            key = ('broadcast', event.name)
        else:
            key = ('table', f"{event.table}:{event.event_type}")

        with self._lock:
            targets = [s for s in self._subscriptions if s.key == key]

        for sub in targets:
            try:
                sub.callback(event)
            except Exception as e:
                logger.error(f"Change callback failed for {key[1]}: {e}")
        if targets:
            logger.debug(f"Dispatched {key[1]} to {len(targets)} subscriber(s)")
        return len(targets)

    def broadcast(self, name: str = STATS_UPDATE_EVENT, payload: Optional[Dict] = None) -> int:
        """
        Notify local subscribers synchronously, then forward to other sessions.

        Forwarding failures are logged; local delivery has already happened.
        """
        delivered = self.dispatch(ChangeEvent.broadcast(name, payload))
        if self._publisher is not None:
            try:
                self._publisher(name, payload or {})
            except Exception as e:
                logger.warning(f"Could not forward broadcast '{name}': {e}")
        return delivered


# =============================================================================
# POSTGRES FEED
# =============================================================================

def parse_notification(raw_payload: str) -> Optional[ChangeEvent]:
    """Parse a NOTIFY payload; malformed payloads yield None."""
    try:
        data = json.loads(raw_payload)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed notification payload: {raw_payload!r}")
        return None
    if not isinstance(data, dict):
        return None
    if data.get('broadcast'):
        return ChangeEvent.broadcast(str(data['broadcast']), data.get('payload') or {})
    table = data.get('table')
    event_type = str(data.get('type') or '').upper()
    if not table or event_type not in ALL_EVENTS:
        logger.warning(f"Ignoring notification without table/type: {data}")
        return None
    return ChangeEvent(table=str(table), event_type=event_type, payload=data)


class PostgresChangeFeed:
    """
    LISTEN on the change channel over a dedicated autocommit connection.

    poll() never blocks; it drains whatever the driver has received.
    """

    def __init__(self, channel: str = NOTIFY_CHANNEL, connection_factory: Callable = None):
        if connection_factory is None:
            from ..db import get_listen_connection
            connection_factory = get_listen_connection
        self.channel = channel
        self._connection_factory = connection_factory
        self._connection = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def _driver(self):
        return getattr(self._connection, 'driver_connection', self._connection)

    def open(self):
        if self._connection is not None:
            return
        self._connection = self._connection_factory()
        cursor = self._driver().cursor()
        try:
            cursor.execute(f'LISTEN "{self.channel}"')
        finally:
            cursor.close()
        logger.info(f"📡 Listening on '{self.channel}'")

    def poll(self) -> List[ChangeEvent]:
        if self._connection is None:
            return []
        driver = self._driver()
        driver.poll()
        events: List[ChangeEvent] = []
        while driver.notifies:
            notify = driver.notifies.pop(0)
            event = parse_notification(notify.payload)
            if event is not None:
                events.append(event)
        return events

    def publish(self, name: str, payload: Optional[Dict] = None):
        """Send a broadcast through pg_notify so every listening session receives it."""
        if self._connection is None:
            return
        message = json.dumps({'broadcast': name, 'payload': payload or {}}, default=str)
        cursor = self._driver().cursor()
        try:
            cursor.execute("SELECT pg_notify(%s, %s)", (self.channel, message))
        finally:
            cursor.close()

    def close(self):
        if self._connection is None:
            return
        try:
            cursor = self._driver().cursor()
            cursor.execute(f'UNLISTEN "{self.channel}"')
            cursor.close()
        except Exception as e:
            logger.debug(f"UNLISTEN failed on close: {e}")
        finally:
            self._connection.close()
            self._connection = None
            logger.info(f"📴 Stopped listening on '{self.channel}'")


# =============================================================================
# LISTENER
# =============================================================================

class ChangeNotificationListener:
    """
    Bridge between a change feed and a coordinator.

    Usage:
        listener = ChangeNotificationListener(coordinator)
        listener.start()
        listener.pump()      # each rerun / fragment tick
        listener.stop()
    """

    def __init__(self, coordinator: ChangeCoordinator, feed: Optional[PostgresChangeFeed] = None):
        self.coordinator = coordinator
        self.feed = feed if feed is not None else PostgresChangeFeed()
        self.error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.feed.is_open

    def start(self) -> bool:
        """Open the feed; on failure views keep working without live updates."""
        try:
            self.feed.open()
        except Exception as e:
            logger.error(f"Could not subscribe to change notifications: {e}")
            self.error = str(e)
            return False
        self.error = None
        self.coordinator.set_publisher(self.feed.publish)
        return True

    def pump(self) -> int:
        """Deliver pending notifications. Returns the number of events delivered."""
        if not self.feed.is_open:
            return 0
        try:
            events = self.feed.poll()
        except Exception as e:
            logger.error(f"Change feed poll failed, closing: {e}")
            self.error = str(e)
            self.stop()
            return 0

        # A session also receives its own forwarded broadcasts; the table
        # debouncer absorbs the echo.
        for event in events:
            logger.info(f"🔄 {event.name if event.is_broadcast else event.table} {event.event_type}")
            self.coordinator.dispatch(event)
        return len(events)

    def stop(self):
        self.coordinator.set_publisher(None)
        self.feed.close()
