"""
Read-only squad listings.

Three projections:
- browse: upcoming squads, soonest first, open to everyone
- mine: squads the caller created, then squads they joined, each once
- admin: every squad, admins only

``SquadView`` keeps one projection current. Change events only mark it
stale; the next read recomputes the whole projection from the database.
Several events between reads cost a single query.
"""

from flask import current_app

from squadup.errors import Unavailable
from squadup.services.auth import require_admin
from squadup.services.change_feed import ENTITIES, change_feed
from squadup.services.squad_store import SquadFilter, list_squads

PROJECTIONS = ('browse', 'mine', 'admin')


def browse(now=None):
    return list_squads(SquadFilter.upcoming(now))


def mine(caller):
    """Squads the caller created or joined. Created ones come first."""
    if not caller.is_authenticated:
        return []

    squads = list_squads(SquadFilter.owned_by(caller.id))
    seen = {squad.id for squad in squads}
    for squad in list_squads(SquadFilter.member_of(caller.id)):
        if squad.id not in seen:
            seen.add(squad.id)
            squads.append(squad)
    return squads


def admin(caller):
    require_admin(caller)
    return list_squads(SquadFilter.everything())


def build_projection(name, caller, now=None):
    if name == 'browse':
        return browse(now)
    if name == 'mine':
        return mine(caller)
    if name == 'admin':
        return admin(caller)
    raise ValueError(f'Unknown projection: {name}')


class SquadView:
    """
    A projection kept in step with change notifications.

    Usage:
        view = SquadView('mine', caller)
        rows = view.rows()      # reads once
        ...                     # someone joins a squad
        rows = view.rows()      # stale, so reads again
        view.close()

    If the database is unreachable, ``rows()``/``refresh()`` raise
    Unavailable and the last good snapshot stays in ``snapshot``.
    """

    def __init__(self, name, caller, feed=None, loader=None):
        if name not in PROJECTIONS:
            raise ValueError(f'Unknown projection: {name}')
        self.name = name
        self.caller = caller
        self.feed = feed or change_feed
        self.loader = loader or (lambda: build_projection(self.name, self.caller))
        self.snapshot = None
        self.stale = True
        self.active = True
        self._generation = 0
        self._unsubscribers = [self.feed.subscribe(entity, self._invalidate) for entity in ENTITIES]

    def _invalidate(self, change_event):
        self._generation += 1
        self.stale = True

    def refresh(self):
        """Recompute the projection from a fresh read."""
        generation = self._generation
        try:
            rows = self.loader()
        except Unavailable:
            current_app.logger.warning(f"Keeping last {self.name} listing, database unavailable")
            raise

        if not self.active:
            # Closed while the read was in flight; don't apply it
            return self.snapshot

        self.snapshot = rows
        # An event that arrived mid-read means this result may already be old
        self.stale = generation != self._generation
        return self.snapshot

    def rows(self):
        if self.stale or self.snapshot is None:
            return self.refresh()
        return self.snapshot

    def close(self):
        self.active = False
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
