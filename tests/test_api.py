"""
End-to-end tests through the JSON API with the Flask test client.
"""

import pytest

from squadup import db
from squadup.models import Profile

from conftest import build_squad_fields


def login(client, user_id, **extra):
    return client.post('/auth/login', json={'user_id': user_id, **extra})


@pytest.fixture
def alice_client(app):
    client = app.test_client()
    login(client, 'user-alice', display_name='alice@example.com')
    return client


@pytest.fixture
def bob_client(app):
    client = app.test_client()
    login(client, 'user-bob', display_name='bob@example.com')
    return client


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    response = login(client, 'user-admin', admin_password='admin-pass')
    assert response.status_code == 200
    return client


def create(client, **overrides):
    return client.post('/api/squads', json=build_squad_fields(**overrides))


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


class TestAuthRoutes:

    def test_login_requires_user_id(self, client):
        response = client.post('/auth/login', json={})
        assert response.status_code == 400

    def test_wrong_admin_password(self, client):
        response = login(client, 'user-x', admin_password='nope')
        assert response.status_code == 403
        assert client.get('/auth/me').get_json()['user']['authenticated'] is False

    def test_login_rejects_non_object_body(self, client):
        response = client.post('/auth/login', json=['user-x'])
        assert response.status_code == 400
        assert response.get_json()['field'] == 'body'

    @pytest.mark.parametrize('field, value', [
        ('user_id', ['user-x']),
        ('user_id', 'u' * 65),
        ('display_name', {'first': 'x'}),
        ('display_name', 'd' * 121),
    ])
    def test_login_rejects_bad_field(self, client, field, value):
        response = client.post('/auth/login', json={'user_id': 'user-x', field: value})
        assert response.status_code == 400
        assert response.get_json()['field'] == field
        assert client.get('/auth/me').get_json()['user']['authenticated'] is False

    def test_me_and_logout(self, alice_client):
        me = alice_client.get('/auth/me').get_json()['user']
        assert me['user_id'] == 'user-alice'
        assert me['is_admin'] is False

        alice_client.post('/auth/logout')
        assert alice_client.get('/auth/me').get_json()['user']['authenticated'] is False


class TestSquadRoutes:

    def test_create_requires_sign_in(self, client):
        response = create(client)
        assert response.status_code == 401
        assert response.get_json()['error'] == 'unauthenticated'

    def test_create_and_browse(self, alice_client, client):
        response = create(alice_client, capacity=3)
        assert response.status_code == 201
        squad = response.get_json()['squad']
        assert squad['member_count'] == 1
        assert squad['spots_left'] == 2
        assert 'pin_hash' not in squad

        listing = client.get('/api/squads').get_json()['squads']
        assert [s['id'] for s in listing] == [squad['id']]

    def test_validation_error_names_field(self, alice_client):
        response = create(alice_client, capacity=0)
        assert response.status_code == 400
        body = response.get_json()
        assert body['error'] == 'validation_error'
        assert body['field'] == 'capacity'

    def test_get_missing_squad(self, client):
        response = client.get('/api/squads/no-such-squad')
        assert response.status_code == 404
        assert response.get_json()['error'] == 'not_found'

    def test_capacity_one_flow(self, alice_client, bob_client):
        squad_id = create(alice_client, capacity=1).get_json()['squad']['id']

        full = bob_client.post(f'/api/squads/{squad_id}/join')
        assert full.status_code == 409
        assert full.get_json()['error'] == 'squad_full'

        assert alice_client.post(f'/api/squads/{squad_id}/leave').status_code == 200
        joined = bob_client.post(f'/api/squads/{squad_id}/join')
        assert joined.get_json() == {'success': True, 'joined': True}

        again = bob_client.post(f'/api/squads/{squad_id}/join')
        assert again.get_json() == {'success': True, 'joined': False}

        squad = bob_client.get(f'/api/squads/{squad_id}').get_json()['squad']
        assert squad['member_count'] == 1

    def test_join_requires_sign_in(self, alice_client, client):
        squad_id = create(alice_client).get_json()['squad']['id']
        assert client.post(f'/api/squads/{squad_id}/join').status_code == 401

    def test_mine(self, alice_client, bob_client):
        created = create(alice_client).get_json()['squad']['id']
        joined = create(bob_client).get_json()['squad']['id']
        alice_client.post(f'/api/squads/{joined}/join')

        mine = alice_client.get('/api/squads/mine').get_json()['squads']
        assert [s['id'] for s in mine] == [created, joined]

    def test_delete_with_pin(self, alice_client, bob_client):
        squad_id = create(alice_client, pin='2468').get_json()['squad']['id']

        wrong = bob_client.post(f'/api/squads/{squad_id}/delete', json={'pin': '1111'})
        assert wrong.status_code == 403
        assert wrong.get_json()['error'] == 'invalid_credential'
        assert alice_client.get(f'/api/squads/{squad_id}').status_code == 200

        right = alice_client.post(f'/api/squads/{squad_id}/delete', json={'pin': '2468'})
        assert right.status_code == 200
        assert alice_client.get(f'/api/squads/{squad_id}').status_code == 404

        gone = alice_client.post(f'/api/squads/{squad_id}/delete', json={'pin': '2468'})
        assert gone.status_code == 404

    def test_admin_list_and_delete(self, alice_client, admin_client):
        squad_id = create(alice_client).get_json()['squad']['id']

        assert alice_client.get('/api/admin/squads').status_code == 403
        listing = admin_client.get('/api/admin/squads').get_json()['squads']
        assert [s['id'] for s in listing] == [squad_id]

        assert admin_client.post(f'/api/squads/{squad_id}/delete').status_code == 200
        assert admin_client.get('/api/admin/squads').get_json()['squads'] == []

    def test_delete_rejects_non_object_body(self, alice_client):
        squad_id = create(alice_client, pin='1234').get_json()['squad']['id']

        response = alice_client.post(f'/api/squads/{squad_id}/delete', json=['1234'])
        assert response.status_code == 400
        assert response.get_json()['field'] == 'body'
        assert alice_client.get(f'/api/squads/{squad_id}').status_code == 200

    def test_create_rejects_non_object_body(self, alice_client):
        response = alice_client.post('/api/squads', json=[build_squad_fields()])
        assert response.status_code == 400
        assert response.get_json()['field'] == 'body'

    def test_create_rejects_overlong_title(self, alice_client):
        response = create(alice_client, title='t' * 201)
        assert response.status_code == 400
        assert response.get_json()['field'] == 'title'


def promote(app, user_id, *extra):
    result = app.test_cli_runner().invoke(args=['promote-admin', user_id, *extra])
    assert result.exit_code == 0
    return result.output


def admin_token_from(output):
    return output.split('Admin token: ', 1)[1].strip()


class TestAdminSignIn:

    def test_promoted_profile_without_token_is_not_admin(self, app, client):
        promote(app, 'user-admin')

        me = login(client, 'user-admin').get_json()['user']
        assert me['is_admin'] is False
        assert client.get('/api/admin/squads').status_code == 403

    def test_admin_token_grants_admin(self, app, client):
        token = admin_token_from(promote(app, 'user-admin'))

        assert login(client, 'user-admin', admin_token='not-the-token').status_code == 403
        assert login(client, 'user-other', admin_token=token).status_code == 403

        me = login(client, 'user-admin', admin_token=token).get_json()['user']
        assert me['is_admin'] is True
        assert client.get('/api/admin/squads').status_code == 200

    def test_revoke_ends_token_sessions(self, app, client):
        token = admin_token_from(promote(app, 'user-admin'))
        login(client, 'user-admin', admin_token=token)

        promote(app, 'user-admin', '--revoke')

        assert client.get('/api/admin/squads').status_code == 403
        assert login(client, 'user-admin', admin_token=token).status_code == 403


def test_promote_admin_command(app):
    output = promote(app, 'user-frank')

    assert 'Admin granted for user-frank' in output
    token = admin_token_from(output)
    profile = db.session.get(Profile, 'user-frank')
    assert profile.is_admin is True
    assert profile.admin_token_hash and profile.admin_token_hash != token

    output = promote(app, 'user-frank', '--revoke')
    assert 'Admin revoked for user-frank' in output
    db.session.expire_all()
    profile = db.session.get(Profile, 'user-frank')
    assert profile.is_admin is False
    assert profile.admin_token_hash is None
