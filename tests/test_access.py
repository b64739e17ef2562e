import pytest
from sqlalchemy import text

from squadup import db
from squadup.errors import InvalidCredential, NotFound, Unauthenticated
from squadup.models import Squad, SquadMember
from squadup.services.access import request_delete
from squadup.services.auth import ANONYMOUS
from squadup.services.membership import join
from squadup.services.squad_store import get_squad


def test_wrong_pin_keeps_squad(make_squad, alice):
    squad = make_squad(pin='2468')

    with pytest.raises(InvalidCredential):
        request_delete(squad.id, alice, pin='1357')

    assert get_squad(squad.id) is not None


def test_correct_pin_deletes_squad(make_squad, alice, bob):
    squad = make_squad(pin='2468')
    squad_id = squad.id
    join(squad_id, bob)

    request_delete(squad_id, alice, pin='2468')

    assert get_squad(squad_id) is None
    assert SquadMember.query.filter_by(squad_id=squad_id).count() == 0


def test_missing_pin_is_invalid_credential(make_squad, alice):
    squad = make_squad()

    with pytest.raises(InvalidCredential):
        request_delete(squad.id, alice)
    with pytest.raises(InvalidCredential):
        request_delete(squad.id, alice, pin='')


def test_anyone_with_the_pin_may_delete(make_squad, carol):
    squad = make_squad(pin='2468')
    squad_id = squad.id

    request_delete(squad_id, carol, pin='2468')

    assert get_squad(squad_id) is None


def test_admin_deletes_without_pin(make_squad, admin_user):
    squad = make_squad()
    squad_id = squad.id

    request_delete(squad_id, admin_user)

    assert get_squad(squad_id) is None


def test_anonymous_cannot_delete(make_squad):
    squad = make_squad(pin='2468')

    with pytest.raises(Unauthenticated):
        request_delete(squad.id, ANONYMOUS, pin='2468')
    assert get_squad(squad.id) is not None


def test_missing_squad_is_not_found_not_bad_pin(app, alice, admin_user):
    with pytest.raises(NotFound):
        request_delete('no-such-squad', alice, pin='2468')
    with pytest.raises(NotFound):
        request_delete('no-such-squad', admin_user)


def test_deleting_twice_reports_not_found(make_squad, alice):
    squad = make_squad(pin='2468')
    squad_id = squad.id
    request_delete(squad_id, alice, pin='2468')

    with pytest.raises(NotFound):
        request_delete(squad_id, alice, pin='2468')


def test_corrupt_digest_looks_like_wrong_pin(make_squad, alice):
    squad = make_squad(pin='2468')
    db.session.get(Squad, squad.id).pin_hash = 'garbage'
    db.session.commit()

    with pytest.raises(InvalidCredential):
        request_delete(squad.id, alice, pin='2468')


def test_admin_delete_of_squad_removed_underneath(make_squad, admin_user):
    squad_id = make_squad().id
    assert db.session.get(Squad, squad_id).title
    # A concurrent delete wins after the squad was loaded
    db.session.execute(text('DELETE FROM squads WHERE id = :id'), {'id': squad_id})

    with pytest.raises(NotFound):
        request_delete(squad_id, admin_user)
