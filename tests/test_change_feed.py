import pytest

from squadup import db
from squadup.errors import NotFound
from squadup.models import SquadMember
from squadup.services.change_feed import SQUAD_MEMBERS, SQUADS, ChangeEvent, change_feed
from squadup.services.membership import join, leave
from squadup.services.squad_store import delete_squad


@pytest.fixture
def received(app):
    """Record every event on both entities for the duration of a test."""
    events = []
    unsubscribers = [
        change_feed.subscribe(SQUADS, events.append),
        change_feed.subscribe(SQUAD_MEMBERS, events.append),
    ]
    yield events
    for unsubscribe in unsubscribers:
        unsubscribe()


def test_create_announces_squad_and_members(make_squad, received):
    make_squad()

    assert ChangeEvent(SQUADS) in received
    assert ChangeEvent(SQUAD_MEMBERS) in received


def test_join_announces_members_only(make_squad, bob, received):
    squad = make_squad()
    received.clear()

    join(squad.id, bob)

    assert received == [ChangeEvent(SQUAD_MEMBERS)]


def test_delete_announces_members_too(make_squad, received):
    squad = make_squad()
    received.clear()

    delete_squad(squad.id)

    assert received == [ChangeEvent(SQUADS), ChangeEvent(SQUAD_MEMBERS)]


def test_leave_announces_members(make_squad, bob, received):
    squad = make_squad()
    join(squad.id, bob)
    received.clear()

    leave(squad.id, bob)
    leave(squad.id, bob)

    assert received == [ChangeEvent(SQUAD_MEMBERS)]


def test_deleting_missing_squad_announces_nothing(app, received):
    with pytest.raises(NotFound):
        delete_squad('no-such-squad')

    assert received == []


def test_rolled_back_changes_are_not_announced(make_squad, received):
    squad = make_squad()
    received.clear()

    db.session.add(SquadMember(squad_id=squad.id, member_id='user-ghost'))
    db.session.flush()
    db.session.rollback()

    assert received == []


def test_failing_subscriber_does_not_block_others(make_squad, bob):
    squad = make_squad()
    delivered = []

    def broken(change_event):
        raise RuntimeError('subscriber bug')

    unsubscribe_broken = change_feed.subscribe(SQUAD_MEMBERS, broken)
    unsubscribe_ok = change_feed.subscribe(SQUAD_MEMBERS, delivered.append)
    try:
        join(squad.id, bob)
    finally:
        unsubscribe_broken()
        unsubscribe_ok()

    assert delivered == [ChangeEvent(SQUAD_MEMBERS)]


def test_unsubscribe_stops_delivery(make_squad, bob):
    squad = make_squad()
    delivered = []
    unsubscribe = change_feed.subscribe(SQUAD_MEMBERS, delivered.append)
    unsubscribe()

    join(squad.id, bob)

    assert delivered == []


def test_unknown_entity(app):
    with pytest.raises(ValueError):
        change_feed.subscribe('profiles', lambda change_event: None)
