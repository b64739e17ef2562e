"""
Joining and leaving squads.

Join is the one multi-step write in the app (count, then insert), so it
is guarded three ways:
1. The squad row is locked (SELECT ... FOR UPDATE) while counting
2. The unique (squad_id, member_id) key makes a duplicate join a no-op
3. After the insert the count is checked again; if the squad ended up
   over capacity the insert is rolled back and reported as a Conflict

On PostgreSQL a trigger also rejects inserts past capacity (see the
initial migration), which surfaces here as SquadFull.
"""

from dataclasses import dataclass
from flask import current_app
from sqlalchemy.exc import IntegrityError

from squadup import db
from squadup.errors import Conflict, NotFound, SquadFull
from squadup.models import Squad, SquadMember
from squadup.services.auth import require_user
from squadup.services.change_feed import SQUAD_MEMBERS, change_feed
from squadup.services.squad_store import count_members, ensure_profile, store_errors

# Raised by the capacity trigger on PostgreSQL
STORE_CAPACITY_MARKER = 'squad_full'


@dataclass(frozen=True)
class JoinResult:
    joined: bool


def _has_open_spot(squad):
    return count_members(squad.id) < squad.capacity


def _find_membership(squad_id, user_id):
    return SquadMember.query.filter_by(squad_id=squad_id, member_id=user_id).first()


def join(squad_id, caller):
    """
    Take a spot in a squad.

    Returns JoinResult(joined=False) if the caller already has a spot.

    Raises:
        Unauthenticated: caller isn't signed in
        NotFound: squad doesn't exist
        SquadFull: no spots left
        Conflict: a concurrent join took the last spot first
    """
    user = require_user(caller)

    with store_errors('join'):
        squad = Squad.query.filter_by(id=squad_id).with_for_update().first()
        if squad is None:
            raise NotFound()

        ensure_profile(user.id, user.display_name)

        if _find_membership(squad_id, user.id):
            db.session.commit()
            return JoinResult(joined=False)

        if not _has_open_spot(squad):
            raise SquadFull()

        db.session.add(SquadMember(squad_id=squad_id, member_id=user.id, is_leader=False))
        try:
            db.session.flush()
        except IntegrityError as e:
            db.session.rollback()
            if STORE_CAPACITY_MARKER in str(e.orig):
                raise SquadFull()
            # Same user joined concurrently; the unique key kept one row.
            # The rollback also dropped the profile upsert, so redo it.
            ensure_profile(user.id, user.display_name)
            db.session.commit()
            current_app.logger.info(f"Duplicate join ignored: squad={squad_id}, member={user.id}")
            return JoinResult(joined=False)

        member_count = count_members(squad_id)
        if member_count > squad.capacity:
            current_app.logger.warning(
                f"Join race on squad {squad_id}: {member_count}/{squad.capacity}, rolling back {user.id}"
            )
            raise Conflict('Squad became full')

        db.session.commit()

    current_app.logger.info(f"Member {user.id} joined squad {squad_id}")
    return JoinResult(joined=True)


def leave(squad_id, caller):
    """Give up a spot. Leaving a squad you're not in does nothing."""
    user = require_user(caller)

    with store_errors('leave'):
        result = db.session.execute(
            db.delete(SquadMember).where(
                SquadMember.squad_id == squad_id,
                SquadMember.member_id == user.id,
            )
        )
        if result.rowcount == 0:
            # Not a member, or a concurrent leave got there first
            db.session.rollback()
            return
        change_feed.mark_changed(db.session(), SQUAD_MEMBERS)
        db.session.commit()

    current_app.logger.info(f"Member {user.id} left squad {squad_id}")
