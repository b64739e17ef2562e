# tests/conftest.py

from datetime import date, timedelta

import pytest

from squadup import create_app, db
from squadup.services import squad_store
from squadup.services.auth import Admin, User


def build_squad_fields(**overrides):
    """Valid create-squad payload 30 days out; override any field."""
    fields = {
        'title': 'Saturday Sporting Clays',
        'discipline': 'sporting_clays',
        'range_name': 'Blue Creek Gun Club',
        'city': 'Austin',
        'state': 'TX',
        'scheduled_date': (date.today() + timedelta(days=30)).isoformat(),
        'scheduled_time': '09:30',
        'timezone': 'UTC',
        'capacity': 4,
        'contact_method': 'email',
        'contact_value': 'leader@example.com',
        'pin': '1234',
        'notes': 'Bring eye and ear protection',
    }
    fields.update(overrides)
    return fields


def days_from_today(days):
    return (date.today() + timedelta(days=days)).isoformat()


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def alice():
    return User(id='user-alice', display_name='alice@example.com')


@pytest.fixture
def bob():
    return User(id='user-bob', display_name='bob@example.com')


@pytest.fixture
def carol():
    return User(id='user-carol', display_name='carol@example.com')


@pytest.fixture
def admin_user():
    return Admin(id='user-admin', display_name='admin@example.com')


@pytest.fixture
def squad_fields():
    return build_squad_fields


@pytest.fixture
def make_squad(app, alice):
    """Create a squad through the store. Defaults to alice as the creator."""
    def _make(caller=None, **overrides):
        return squad_store.create_squad(build_squad_fields(**overrides), caller or alice)
    return _make
