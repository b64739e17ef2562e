"""
Squad store - create, read and delete squads.

Every read is a fresh snapshot of the database. Each squad handed back is
annotated with ``member_count``, counted at read time and never stored.

Authorization for deletes lives in the access service; ``delete_squad``
here is unconditional.
"""

from contextlib import contextmanager
from datetime import date, time, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import InterfaceError, OperationalError

from squadup import db
from squadup.errors import NotFound, Unavailable, ValidationError
from squadup.models import Squad, SquadMember, Profile, DISCIPLINES, CONTACT_METHODS
from squadup.models.types import utcnow
from squadup.services.auth import require_user
from squadup.services.change_feed import SQUAD_MEMBERS, SQUADS, change_feed
from squadup.services.pin_service import hash_pin

REQUIRED_TEXT_FIELDS = ('title', 'range_name', 'city', 'state', 'contact_value')
# Column sizes on squads
MAX_LENGTHS = {
    'title': 200,
    'range_name': 200,
    'city': 100,
    'state': 100,
    'contact_value': 200,
}
PIN_MIN_LENGTH = 4
PIN_MAX_LENGTH = 8


@contextmanager
def store_errors(action):
    """Roll back on any failure; report connection problems as Unavailable."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        db.session.rollback()
        current_app.logger.error(f"Squad store unavailable during {action}: {e}")
        raise Unavailable() from e
    except Exception:
        db.session.rollback()
        raise


class SquadFilter:
    """Which squads ``list_squads`` returns."""

    UPCOMING = 'upcoming'
    OWNED_BY = 'owned_by'
    MEMBER_OF = 'member_of'
    ALL = 'all'
    KINDS = (UPCOMING, OWNED_BY, MEMBER_OF, ALL)

    def __init__(self, kind, user_id=None, now=None):
        self.kind = kind
        self.user_id = user_id
        self.now = now

    @classmethod
    def upcoming(cls, now=None):
        return cls(cls.UPCOMING, now=now or utcnow())

    @classmethod
    def owned_by(cls, user_id):
        return cls(cls.OWNED_BY, user_id=user_id)

    @classmethod
    def member_of(cls, user_id):
        return cls(cls.MEMBER_OF, user_id=user_id)

    @classmethod
    def everything(cls):
        return cls(cls.ALL)

    def __repr__(self):
        return f'<SquadFilter {self.kind} user={self.user_id}>'


# ============== VALIDATION ==============

def combine_local(date_value, time_value, tz_name):
    """
    Turn a calendar date and a wall-clock time in ``tz_name`` into a UTC instant.

    Ambiguous local times (DST fall-back) resolve to the first occurrence.
    """
    try:
        day = date.fromisoformat(date_value)
    except (TypeError, ValueError):
        raise ValidationError('scheduled_date', 'Expected a date like 2025-06-14')
    try:
        at = time.fromisoformat(time_value)
    except (TypeError, ValueError):
        raise ValidationError('scheduled_time', 'Expected a time like 09:30')
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, TypeError, ValueError):
        raise ValidationError('timezone', f'Unknown timezone {tz_name!r}')

    local = datetime.combine(day, at.replace(tzinfo=None)).replace(tzinfo=tz)
    return local.astimezone(timezone.utc)


def _parse_capacity(value):
    if isinstance(value, bool):
        raise ValidationError('capacity', 'Must be a whole number')
    if isinstance(value, str):
        value = value.strip()
    try:
        capacity = int(value)
    except (TypeError, ValueError):
        raise ValidationError('capacity', 'Must be a whole number')
    if isinstance(value, float) and value != capacity:
        raise ValidationError('capacity', 'Must be a whole number')
    if capacity < 1:
        raise ValidationError('capacity', 'Must be at least 1')
    return capacity


def validate_squad_fields(fields):
    """Check and clean submitted squad fields. Raises ValidationError naming the first bad field."""
    if not isinstance(fields, dict):
        raise ValidationError('body', 'Expected an object of squad fields')
    cleaned = {}

    for field in REQUIRED_TEXT_FIELDS:
        value = fields.get(field)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(field, 'Required')
        value = value.strip()
        if len(value) > MAX_LENGTHS[field]:
            raise ValidationError(field, f'At most {MAX_LENGTHS[field]} characters')
        cleaned[field] = value

    discipline = fields.get('discipline')
    if discipline not in DISCIPLINES:
        raise ValidationError('discipline', f"Must be one of {', '.join(DISCIPLINES)}")
    cleaned['discipline'] = discipline

    contact_method = fields.get('contact_method')
    if contact_method not in CONTACT_METHODS:
        raise ValidationError('contact_method', f"Must be one of {', '.join(CONTACT_METHODS)}")
    cleaned['contact_method'] = contact_method

    cleaned['capacity'] = _parse_capacity(fields.get('capacity'))

    tz_name = fields.get('timezone') or current_app.config.get('DEFAULT_TIMEZONE', 'UTC')
    cleaned['scheduled_at'] = combine_local(
        fields.get('scheduled_date'), fields.get('scheduled_time'), tz_name
    )

    pin = fields.get('pin')
    if (not isinstance(pin, str) or not pin.isalnum()
            or not PIN_MIN_LENGTH <= len(pin) <= PIN_MAX_LENGTH):
        raise ValidationError('pin', f'PIN must be {PIN_MIN_LENGTH}-{PIN_MAX_LENGTH} letters or digits')
    cleaned['pin'] = pin

    notes = fields.get('notes')
    if notes is not None and not isinstance(notes, str):
        raise ValidationError('notes', 'Must be text')
    cleaned['notes'] = notes.strip() if notes and notes.strip() else None

    return cleaned


# ============== PROFILES ==============

def ensure_profile(user_id, display_name=None):
    """Create the user's profile if missing, refresh the display name otherwise. Does not commit."""
    profile = db.session.get(Profile, user_id)
    if profile is None:
        profile = Profile(id=user_id, display_name=display_name)
        db.session.add(profile)
    elif display_name and profile.display_name != display_name:
        profile.display_name = display_name
    return profile


# ============== READS ==============

def _squads_with_counts():
    counts = db.session.query(
        SquadMember.squad_id,
        func.count(SquadMember.id).label('member_count')
    ).group_by(SquadMember.squad_id).subquery()

    return db.session.query(
        Squad,
        func.coalesce(counts.c.member_count, 0)
    ).outerjoin(counts, counts.c.squad_id == Squad.id)


def _annotate(rows):
    squads = []
    for squad, member_count in rows:
        squad.member_count = member_count
        if squad.over_capacity:
            # Left as-is: a join race overfilled this squad
            current_app.logger.warning(
                f"Squad {squad.id} has {member_count} members for {squad.capacity} spots"
            )
        squads.append(squad)
    return squads


def list_squads(squad_filter):
    """Return squads matching the filter, each annotated with ``member_count``."""
    if squad_filter.kind not in SquadFilter.KINDS:
        raise ValueError(f'Unknown squad filter: {squad_filter.kind}')
    query = _squads_with_counts()

    if squad_filter.kind == SquadFilter.UPCOMING:
        query = query.filter(Squad.scheduled_at >= squad_filter.now)
    elif squad_filter.kind == SquadFilter.OWNED_BY:
        query = query.filter(Squad.created_by == squad_filter.user_id)
    elif squad_filter.kind == SquadFilter.MEMBER_OF:
        joined_ids = db.select(SquadMember.squad_id).where(
            SquadMember.member_id == squad_filter.user_id
        )
        query = query.filter(Squad.id.in_(joined_ids))

    with store_errors('list_squads'):
        rows = query.order_by(Squad.scheduled_at.asc(), Squad.id).all()
    return _annotate(rows)


def get_squad(squad_id):
    """Return the squad with its ``member_count``, or None."""
    with store_errors('get_squad'):
        row = _squads_with_counts().filter(Squad.id == squad_id).first()
    if row is None:
        return None
    return _annotate([row])[0]


def count_members(squad_id):
    return SquadMember.query.filter_by(squad_id=squad_id).count()


# ============== WRITES ==============

def create_squad(fields, caller):
    """
    Create a squad owned by the caller.

    The creator is added as the leader and first member in the same
    transaction, so a new squad always starts with one taken spot.

    Raises:
        Unauthenticated: caller isn't signed in
        ValidationError: a field is missing or out of range
        Unavailable: the database couldn't be reached
    """
    user = require_user(caller)
    data = validate_squad_fields(fields)
    pin_hash = hash_pin(data.pop('pin'))

    with store_errors('create_squad'):
        ensure_profile(user.id, user.display_name)
        squad = Squad(created_by=user.id, pin_hash=pin_hash, **data)
        db.session.add(squad)
        db.session.flush()
        db.session.add(SquadMember(squad_id=squad.id, member_id=user.id, is_leader=True))
        db.session.commit()

    squad.member_count = 1
    current_app.logger.info(f"Squad {squad.id} created by {user.id} ({squad.capacity} spots)")
    return squad


def delete_squad(squad_id):
    """Delete a squad and, by cascade, its members. Raises NotFound if it's already gone."""
    with store_errors('delete_squad'):
        result = db.session.execute(db.delete(Squad).where(Squad.id == squad_id))
        if result.rowcount == 0:
            # Never existed, or a concurrent delete got there first
            raise NotFound()
        # Members go with the squad via ON DELETE CASCADE
        change_feed.mark_changed(db.session(), SQUADS, SQUAD_MEMBERS)
        db.session.commit()

    current_app.logger.info(f"Squad {squad_id} deleted")
