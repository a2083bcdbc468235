"""
Real-time change feed.

Committed INSERT/UPDATE/DELETE operations on models flagged with
``__realtime__ = True`` are published to in-process subscribers. The
Socket.IO bridge in ``socket_events`` is one such subscriber; every open
tracking view holds another.

Payloads are captured during flush and only published once the outermost
transaction commits, so rolled-back writes are never seen.
"""
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import event, inspect

from roadside.models.base import serialize_value

logger = logging.getLogger(__name__)

EVENTS = ('INSERT', 'UPDATE', 'DELETE')

_PENDING_KEY = 'realtime_pending'
_BUFFER_KEY = 'realtime_buffer'


@dataclass
class ChangeEvent:
    """One committed row change with its before/after payloads."""
    table: str
    event: str
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None

    @property
    def row(self):
        """The most recent known state of the row."""
        return self.new if self.new is not None else self.old

    @property
    def row_id(self):
        row = self.row or {}
        return row.get('id')

    def to_dict(self):
        return {
            'table': self.table,
            'event': self.event,
            'new': self.new,
            'old': self.old,
        }


class Subscription:
    """Handle returned by ``ChangeFeed.subscribe``."""

    def __init__(self, feed, sub_id, table, callback, event='*', row_filter=None):
        self._feed = feed
        self.id = sub_id
        self.table = table
        self.callback = callback
        self.event = event
        self.row_filter = row_filter
        self.active = True

    def matches(self, change):
        if change.table != self.table:
            return False
        if self.event != '*' and change.event != self.event:
            return False
        if self.row_filter:
            row = change.row or {}
            return all(row.get(key) == value for key, value in self.row_filter.items())
        return True

    def unsubscribe(self):
        """Stop receiving events. Safe to call more than once."""
        if not self.active:
            return False
        self.active = False
        self._feed._remove(self.id)
        return True

    def __repr__(self):
        return f'<Subscription {self.id} {self.table}:{self.event}>'


class ChangeFeed:
    """
    Fan-out of committed row changes to independent subscribers.

    Each subscription is delivered separately; a callback that raises is
    logged and does not prevent delivery to the others.
    """

    def __init__(self):
        self._subscriptions = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, table: str, callback: Callable[[ChangeEvent], None],
                  event: str = '*', row_filter: Optional[Dict[str, Any]] = None) -> Subscription:
        if event != '*' and event not in EVENTS:
            raise ValueError(f'Unknown change event: {event}')
        with self._lock:
            sub = Subscription(self, next(self._ids), table, callback, event, row_filter)
            self._subscriptions[sub.id] = sub
        logger.debug('Subscribed %r', sub)
        return sub

    def _remove(self, sub_id):
        with self._lock:
            self._subscriptions.pop(sub_id, None)

    def subscriber_count(self, table=None):
        with self._lock:
            subs = list(self._subscriptions.values())
        if table is None:
            return len(subs)
        return sum(1 for sub in subs if sub.table == table)

    def publish(self, change: ChangeEvent):
        with self._lock:
            subs = list(self._subscriptions.values())

        delivered = 0
        for sub in subs:
            if not sub.active or not sub.matches(change):
                continue
            try:
                sub.callback(change)
                delivered += 1
            except Exception:
                logger.exception('Change feed subscriber %r failed on %s %s',
                                 sub, change.event, change.table)
        return delivered

    def clear(self):
        with self._lock:
            subs = list(self._subscriptions.values())
        for sub in subs:
            sub.unsubscribe()


# ---------------------------------------------------------------------------
# SQLAlchemy session hooks
# ---------------------------------------------------------------------------

def _is_realtime(obj):
    return getattr(obj, '__realtime__', False)


def _previous_row(obj):
    """Column values as they were before the pending flush."""
    current = obj.row_dict()
    previous = dict(current)
    state = inspect(obj)
    for attr in state.mapper.column_attrs:
        history = state.attrs[attr.key].history
        if history.deleted:
            previous[attr.columns[0].name] = serialize_value(history.deleted[0])
    return previous


class _ChangeCapture:
    """Session listeners that buffer row changes and publish them on commit."""

    def __init__(self, feed):
        self.feed = feed

    def before_flush(self, session, flush_context, instances):
        pending = []
        for obj in session.deleted:
            if _is_realtime(obj):
                pending.append(('DELETE', obj, obj.row_dict()))
        for obj in session.dirty:
            if _is_realtime(obj) and session.is_modified(obj, include_collections=False):
                pending.append(('UPDATE', obj, _previous_row(obj)))
        for obj in session.new:
            if _is_realtime(obj):
                pending.append(('INSERT', obj, None))
        session.info[_PENDING_KEY] = pending

    def after_flush(self, session, flush_context):
        pending = session.info.pop(_PENDING_KEY, [])
        buffer = session.info.setdefault(_BUFFER_KEY, [])
        for op, obj, old in pending:
            new = None if op == 'DELETE' else obj.row_dict()
            buffer.append(ChangeEvent(obj.__tablename__, op, new=new, old=old))

    def after_commit(self, session):
        # Releasing a savepoint also fires after_commit
        if session.in_nested_transaction():
            return
        for change in session.info.pop(_BUFFER_KEY, []):
            self.feed.publish(change)

    def after_soft_rollback(self, session, previous_transaction):
        # Savepoint and flush-level rollbacks keep the outer buffer
        if previous_transaction.parent is not None:
            return
        session.info.pop(_PENDING_KEY, None)
        dropped = session.info.pop(_BUFFER_KEY, [])
        if dropped:
            logger.debug('Discarded %d unpublished changes on rollback', len(dropped))


_installed = set()


def install_change_hooks(session, feed):
    """
    Wire the change feed to a session, scoped session or sessionmaker.

    Installing the same feed on the same target twice is a no-op.
    """
    marker = (id(session), id(feed))
    if marker in _installed:
        return

    capture = _ChangeCapture(feed)
    event.listen(session, 'before_flush', capture.before_flush)
    event.listen(session, 'after_flush', capture.after_flush)
    event.listen(session, 'after_commit', capture.after_commit)
    event.listen(session, 'after_soft_rollback', capture.after_soft_rollback)
    _installed.add(marker)


# ---------------------------------------------------------------------------
# Client-side row cache
# ---------------------------------------------------------------------------

@dataclass
class RowCache:
    """
    In-memory copy of a set of rows kept current by merging change events.

    ``reset`` replaces the whole cache with a fresh fetch; it is the
    fallback after a reconnect or a failed optimistic mutation.
    """
    key: str = 'id'
    rows: Dict[Any, Dict[str, Any]] = field(default_factory=dict)

    def reset(self, rows):
        self.rows = {row[self.key]: dict(row) for row in rows}

    def apply(self, change: ChangeEvent):
        if change.event == 'DELETE':
            row_key = (change.old or {}).get(self.key)
            self.rows.pop(row_key, None)
            return None
        row = dict(change.new or {})
        row_key = row.get(self.key)
        if row_key is None:
            return None
        merged = self.rows.get(row_key, {})
        merged.update(row)
        self.rows[row_key] = merged
        return merged

    def get(self, row_key):
        return self.rows.get(row_key)

    def values(self) -> List[Dict[str, Any]]:
        return list(self.rows.values())

    def __len__(self):
        return len(self.rows)

    def __contains__(self, row_key):
        return row_key in self.rows

    def optimistic(self, mutate, command, refetch):
        """
        Apply ``mutate(rows)`` locally, then run ``command()``.

        ``command`` returns a ``CommandResult``; when it fails the local
        change is discarded by reloading the cache from ``refetch()``.
        """
        mutate(self.rows)
        result = command()
        if not result.ok:
            logger.info('Optimistic change rolled back: %s', result.error)
            self.reset(refetch())
        return result
