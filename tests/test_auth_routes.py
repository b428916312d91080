import datetime
import jwt
import pytest

from rx_app_pkg import db
from rx_app_pkg.utils import create_access_token, decode_access_token
from conftest import API_USERNAME, API_PASSWORD, ALL_PERMISSIONS


class TestLogin:

    def test_login(self, client, api_user):
        response = client.post('/api/auth/login', json={'username': API_USERNAME, 'password': API_PASSWORD})

        assert response.status_code == 200
        body = response.get_json()
        assert body['user']['username'] == API_USERNAME
        assert body['user']['permissions'] == sorted(ALL_PERMISSIONS)

        payload = decode_access_token(body['access_token'])
        assert payload['sub'] == str(api_user.id)
        assert payload['permissions'] == sorted(ALL_PERMISSIONS)

    def test_wrong_password(self, client, api_user):
        response = client.post('/api/auth/login', json={'username': API_USERNAME, 'password': 'guess'})
        assert response.status_code == 401

    @pytest.mark.parametrize('body', [{}, {'username': API_USERNAME}])
    def test_missing_credentials(self, client, api_user, body):
        assert client.post('/api/auth/login', json=body).status_code == 400

    def test_inactive_user(self, client, api_user):
        api_user.is_active = False
        db.session.commit()
        response = client.post('/api/auth/login', json={'username': API_USERNAME, 'password': API_PASSWORD})
        assert response.status_code == 403

    def test_user_without_password_cannot_log_in(self, client, seeded):
        response = client.post('/api/auth/login', json={'username': 'dr.hale', 'password': 'anything'})
        assert response.status_code == 401


class TestTokens:

    def test_expired_token(self, client, api_user, seeded):
        payload = {
            'sub': str(api_user.id),
            'jti': 'expired-token',
            'permissions': ALL_PERMISSIONS,
            'exp': datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(minutes=1),
        }
        token = jwt.encode(payload, seeded.config['JWT_SECRET_KEY'], algorithm='HS256')

        response = client.get('/api/prescriptions', headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 401
        assert response.get_json()['message'] == 'Token has expired. Please log in again.'

    def test_foreign_signature(self, client, api_user):
        token = jwt.encode({'sub': str(api_user.id), 'permissions': ALL_PERMISSIONS}, 'someone-else', algorithm='HS256')
        response = client.get('/api/prescriptions', headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 401

    def test_token_for_missing_user(self, client, seeded):
        token = create_access_token(user_id=999, user_permissions=ALL_PERMISSIONS)
        response = client.get('/api/prescriptions', headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 401


class TestLogout:

    def test_logout_revokes_the_token(self, client, auth_headers):
        response = client.post('/api/auth/logout', headers=auth_headers)
        assert response.status_code == 200

        response = client.get('/api/prescriptions', headers=auth_headers)
        assert response.status_code == 401
        assert response.get_json()['message'] == 'Token has been revoked (logged out).'

    def test_logout_requires_token(self, client, seeded):
        assert client.post('/api/auth/logout').status_code == 401
