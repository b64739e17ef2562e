"""
Change notifications for squads and squad members.

Tables touched by a flush are remembered on the session and announced
once the transaction commits; a rollback drops them. Subscribers get a
ChangeEvent naming the entity and nothing else - the only contract is
"something changed, read again".

Callbacks run inside the committing session's after_commit hook, so they
must not query the database themselves. Mark state as stale and re-read
later (see SquadView).
"""

import itertools
import logging
from collections import defaultdict
from dataclasses import dataclass
from sqlalchemy import event
from sqlalchemy.orm import Session

SQUADS = 'squads'
SQUAD_MEMBERS = 'squad_members'
ENTITIES = (SQUADS, SQUAD_MEMBERS)

_PENDING_KEY = 'squadup_changed_entities'


@dataclass(frozen=True)
class ChangeEvent:
    entity: str


class ChangeFeed:
    """In-process publisher of committed squad/member changes."""

    def __init__(self, app=None):
        self.app = app
        self._subscribers = defaultdict(list)
        self._listening = False
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize with Flask app and hook into SQLAlchemy sessions."""
        self.app = app
        if not self._listening:
            event.listen(Session, 'after_flush', self._collect)
            event.listen(Session, 'after_commit', self._publish_pending)
            event.listen(Session, 'after_rollback', self._discard_pending)
            self._listening = True

    def subscribe(self, entity, on_event):
        """Call ``on_event(ChangeEvent)`` whenever ``entity`` rows change. Returns an unsubscribe function."""
        if entity not in ENTITIES:
            raise ValueError(f'Unknown entity: {entity}')
        self._subscribers[entity].append(on_event)

        def unsubscribe():
            if on_event in self._subscribers[entity]:
                self._subscribers[entity].remove(on_event)
        return unsubscribe

    def publish(self, entity):
        change = ChangeEvent(entity)
        for callback in list(self._subscribers[entity]):
            try:
                callback(change)
            except Exception:
                # One broken subscriber shouldn't starve the rest
                logger = self.app.logger if self.app is not None else logging.getLogger(__name__)
                logger.exception(f"Change subscriber failed for {entity}")

    def subscriber_count(self, entity):
        return len(self._subscribers[entity])

    def mark_changed(self, session, *entities):
        """Queue entities for the next commit. Needed for statement-level writes, which skip the flush."""
        session.info.setdefault(_PENDING_KEY, set()).update(entities)

    # ============== SESSION HOOKS ==============

    def _collect(self, session, flush_context):
        changed = session.info.setdefault(_PENDING_KEY, set())
        for obj in itertools.chain(session.new, session.dirty, session.deleted):
            entity = getattr(obj, '__tablename__', None)
            if entity in ENTITIES:
                changed.add(entity)

    def _publish_pending(self, session):
        changed = session.info.pop(_PENDING_KEY, set())
        for entity in ENTITIES:
            if entity in changed:
                self.publish(entity)

    def _discard_pending(self, session):
        session.info.pop(_PENDING_KEY, None)


change_feed = ChangeFeed()
