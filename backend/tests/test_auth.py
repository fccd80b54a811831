"""
Authentication tests.

Verifies:
- Local login issues an opaque session cookie and resolves the identity
- Logout and re-login revoke server-side sessions
- Deactivated users and expired sessions are rejected (401)
- Identity-provider login creates or links users and redeems invitations
- Expired provider tokens are refreshed, and a failed refresh ends the session
"""

import time
from datetime import timedelta
from urllib.parse import urlparse

import pytest

from komersh.models import AuthSession
from komersh.services import auth_service, oidc_service, session_service
from komersh.services.oidc_service import OidcError, TokenSet
from komersh.time_utils import utcnow

COOKIE = 'komersh.sid'
PASSWORD = 'Password123!'


def _session_for(db_session, token):
    return db_session.query(AuthSession).filter_by(token_hash=session_service.hash_token(token)).one()


class TestLocalLogin:

    def test_login_returns_identity_and_sets_cookie(self, client, make_user):
        make_user('founder@komersh.test', role='founder', first_name='Sara')

        resp = client.post('/api/auth/login', json={'email': 'founder@komersh.test', 'password': PASSWORD})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body['email'] == 'founder@komersh.test'
        assert body['firstName'] == 'Sara'
        assert body['role'] == 'founder'
        assert body['authSource'] == 'local'
        assert 'BUY_PRODUCTS' in body['capabilities']
        assert 'MANAGE_USERS' not in body['capabilities']

        cookie = client.get_cookie(COOKIE)
        assert cookie is not None
        assert len(cookie.value) == 64

    def test_stored_session_holds_only_token_hash(self, client, make_user, db_session):
        make_user('a@komersh.test')
        client.post('/api/auth/login', json={'email': 'a@komersh.test', 'password': PASSWORD})
        token = client.get_cookie(COOKIE).value

        session = _session_for(db_session, token)
        assert session.token_hash != token
        assert session.source == 'local'
        assert session.access_token is None

    def test_email_is_case_insensitive(self, client, make_user):
        make_user('mixed@komersh.test')
        resp = client.post('/api/auth/login', json={'email': '  Mixed@Komersh.TEST ', 'password': PASSWORD})
        assert resp.status_code == 200

    @pytest.mark.parametrize('email,password', [
        ('a@komersh.test', 'wrong-password'),
        ('nobody@komersh.test', PASSWORD),
    ])
    def test_bad_credentials(self, client, make_user, email, password):
        make_user('a@komersh.test')
        resp = client.post('/api/auth/login', json={'email': email, 'password': password})
        assert resp.status_code == 401
        assert resp.get_json() == {'message': 'Invalid email or password'}
        assert client.get_cookie(COOKIE) is None

    def test_inactive_user_cannot_log_in(self, client, make_user):
        make_user('gone@komersh.test', is_active=False)
        resp = client.post('/api/auth/login', json={'email': 'gone@komersh.test', 'password': PASSWORD})
        assert resp.status_code == 401

    def test_password_less_user_cannot_log_in(self, client, make_user):
        make_user('sso@komersh.test', password=None)
        resp = client.post('/api/auth/login', json={'email': 'sso@komersh.test', 'password': PASSWORD})
        assert resp.status_code == 401

    def test_missing_fields(self, client):
        resp = client.post('/api/auth/login', json={'email': 'a@komersh.test'})
        assert resp.status_code == 400
        assert resp.get_json()['field'] == 'password'


class TestSessions:

    def test_current_user_requires_session(self, client):
        resp = client.get('/api/auth/user')
        assert resp.status_code == 401
        assert resp.get_json() == {'message': 'Unauthorized'}

    def test_current_user_is_not_cached(self, viewer_client):
        resp = viewer_client.get('/api/auth/user')
        assert resp.status_code == 200
        assert resp.headers['Cache-Control'] == 'no-store'
        assert resp.get_json()['role'] == 'viewer'

    def test_unknown_token_rejected(self, client):
        client.set_cookie(COOKIE, 'f' * 64)
        assert client.get('/api/auth/user').status_code == 401

    def test_logout_revokes_session(self, viewer_client, db_session):
        token = viewer_client.get_cookie(COOKIE).value

        resp = viewer_client.post('/api/auth/logout')
        assert resp.status_code == 200
        assert 'redirectUrl' not in resp.get_json()

        session = _session_for(db_session, token)
        assert session.is_revoked is True
        assert session.revoked_reason == 'User logout'

        # A copied cookie no longer works
        viewer_client.set_cookie(COOKIE, token)
        assert viewer_client.get('/api/auth/user').status_code == 401

    def test_relogin_replaces_previous_session(self, viewer_client, db_session):
        old_token = viewer_client.get_cookie(COOKIE).value

        resp = viewer_client.post('/api/auth/login', json={'email': 'viewer@komersh.test', 'password': PASSWORD})
        assert resp.status_code == 200

        assert viewer_client.get_cookie(COOKIE).value != old_token
        assert _session_for(db_session, old_token).is_revoked is True
        assert auth_service.resolve_identity(old_token) is None

    def test_expired_session_rejected(self, viewer_client, db_session):
        session = _session_for(db_session, viewer_client.get_cookie(COOKIE).value)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert viewer_client.get('/api/auth/user').status_code == 401

    def test_deactivated_user_session_rejected(self, viewer_client, db_session):
        token = viewer_client.get_cookie(COOKIE).value
        session = _session_for(db_session, token)
        session.user.is_active = False
        db_session.commit()

        assert viewer_client.get('/api/auth/user').status_code == 401
        assert _session_for(db_session, token).is_revoked is True

    def test_cleanup_removes_old_dead_sessions(self, viewer_client, db_session):
        session = _session_for(db_session, viewer_client.get_cookie(COOKIE).value)
        session.is_revoked = True
        session.created_at = utcnow() - timedelta(days=40)
        db_session.commit()

        assert session_service.cleanup_expired_sessions(retention_days=30) == 1


@pytest.fixture(scope='function')
def oidc_enabled(app, monkeypatch):
    monkeypatch.setitem(app.config, 'OIDC_CLIENT_ID', 'komersh-test')
    monkeypatch.setattr(
        oidc_service,
        'build_authorization_url',
        lambda *, state, nonce, code_challenge: f'https://idp.example.test/auth?state={state}',
    )


def _provider_tokens(claims, expires_in=3600, refresh_token='refresh-1'):
    return TokenSet(
        access_token='access-1',
        refresh_token=refresh_token,
        id_token='id-token-1',
        expires_at=int(time.time()) + expires_in,
        claims=claims,
    )


def _start_login(client):
    resp = client.get('/api/login')
    assert resp.status_code == 302
    with client.session_transaction() as sess:
        return sess['oidc_state']


class TestIdentityProviderLogin:

    def test_login_not_configured(self, client):
        assert client.get('/api/login').status_code == 400

    def test_login_redirects_to_provider(self, client, oidc_enabled):
        resp = client.get('/api/login')
        assert resp.status_code == 302
        assert resp.headers['Location'].startswith('https://idp.example.test/auth')

        with client.session_transaction() as sess:
            assert sess['oidc_state'] in resp.headers['Location']
            assert sess['oidc_nonce']
            assert sess['oidc_verifier']

    def test_login_provider_down(self, client, oidc_enabled, monkeypatch):
        def unavailable(**kwargs):
            raise OidcError('discovery failed')

        monkeypatch.setattr(oidc_service, 'build_authorization_url', unavailable)
        assert client.get('/api/login').status_code == 502

    def test_callback_creates_user_and_session(self, client, oidc_enabled, monkeypatch):
        state = _start_login(client)
        seen = {}

        def exchange(*, code, code_verifier, nonce):
            seen.update(code=code, verifier=code_verifier, nonce=nonce)
            return _provider_tokens({'sub': 'sub-1', 'email': 'New.Person@Example.com', 'first_name': 'New'})

        monkeypatch.setattr(oidc_service, 'exchange_code', exchange)

        resp = client.get(f'/api/callback?code=abc&state={state}')
        assert resp.status_code == 302
        assert urlparse(resp.headers['Location']).path == '/'
        assert seen['code'] == 'abc'
        assert seen['verifier'] and seen['nonce']

        body = client.get('/api/auth/user').get_json()
        assert body['authSource'] == 'oidc'
        assert body['email'] == 'new.person@example.com'
        assert body['firstName'] == 'New'
        assert body['role'] == 'viewer'

    def test_callback_state_mismatch(self, client, oidc_enabled, monkeypatch):
        _start_login(client)
        monkeypatch.setattr(oidc_service, 'exchange_code', lambda **kw: pytest.fail('should not exchange'))

        resp = client.get('/api/callback?code=abc&state=forged')
        assert resp.status_code == 302
        assert urlparse(resp.headers['Location']).path == '/api/login'
        assert client.get_cookie(COOKIE) is None

    def test_callback_exchange_failure(self, client, oidc_enabled, monkeypatch):
        state = _start_login(client)

        def exchange(**kwargs):
            raise OidcError('bad code')

        monkeypatch.setattr(oidc_service, 'exchange_code', exchange)

        resp = client.get(f'/api/callback?code=abc&state={state}')
        assert urlparse(resp.headers['Location']).path == '/api/login'

    def test_callback_links_existing_local_user(self, client, oidc_enabled, monkeypatch, make_user):
        user = make_user('local@komersh.test', role='warehouse')
        state = _start_login(client)
        monkeypatch.setattr(
            oidc_service, 'exchange_code',
            lambda **kw: _provider_tokens({'sub': 'sub-9', 'email': 'local@komersh.test'}),
        )

        client.get(f'/api/callback?code=abc&state={state}')

        body = client.get('/api/auth/user').get_json()
        assert body['id'] == user.id
        assert body['role'] == 'warehouse'
        assert user.oidc_subject == 'sub-9'

    def test_callback_redeems_pending_invitation(self, client, admin_client, oidc_enabled, monkeypatch):
        admin_client.post('/api/invitations', json={'email': 'invitee@example.com', 'role': 'marketing'})
        state = _start_login(client)
        monkeypatch.setattr(
            oidc_service, 'exchange_code',
            lambda **kw: _provider_tokens({'sub': 'sub-2', 'email': 'invitee@example.com'}),
        )

        client.get(f'/api/callback?code=abc&state={state}')

        assert client.get('/api/auth/user').get_json()['role'] == 'marketing'
        invitations = admin_client.get('/api/invitations').get_json()
        assert invitations[0]['status'] == 'accepted'

    def test_callback_for_deactivated_user(self, client, oidc_enabled, monkeypatch, make_user):
        make_user('gone@komersh.test', is_active=False)
        state = _start_login(client)
        monkeypatch.setattr(
            oidc_service, 'exchange_code',
            lambda **kw: _provider_tokens({'sub': 'sub-3', 'email': 'gone@komersh.test'}),
        )

        resp = client.get(f'/api/callback?code=abc&state={state}')
        assert resp.status_code == 403
        assert client.get_cookie(COOKIE) is None


class TestProviderTokenRefresh:

    @pytest.fixture(scope='function')
    def provider_session(self, app, client, make_user):
        """A signed-in identity-provider session whose access token has already expired."""
        user = make_user('sso@komersh.test', password=None, role='founder')
        claims = {'sub': 'sub-5', 'email': 'sso@komersh.test'}
        session, token = session_service.create_session(
            user.id, 'oidc', token_set=_provider_tokens(claims, expires_in=-60)
        )
        client.set_cookie(COOKIE, token)
        return session

    def test_expired_access_token_is_refreshed(self, client, provider_session, oidc_enabled, monkeypatch):
        calls = []

        def refresh(refresh_token):
            calls.append(refresh_token)
            return TokenSet(
                access_token='access-2',
                refresh_token='refresh-2',
                id_token=None,
                expires_at=int(time.time()) + 3600,
                claims=None,
            )

        monkeypatch.setattr(oidc_service, 'refresh_tokens', refresh)

        resp = client.get('/api/auth/user')
        assert resp.status_code == 200
        assert resp.get_json()['authSource'] == 'oidc'
        assert calls == ['refresh-1']

        assert provider_session.access_token == 'access-2'
        assert provider_session.refresh_token == 'refresh-2'
        assert provider_session.id_token == 'id-token-1'
        assert provider_session.claims['sub'] == 'sub-5'

        # Fresh token: no second refresh
        client.get('/api/auth/user')
        assert calls == ['refresh-1']

    def test_failed_refresh_ends_session(self, client, provider_session, oidc_enabled, monkeypatch):
        def refresh(refresh_token):
            raise OidcError('invalid_grant')

        monkeypatch.setattr(oidc_service, 'refresh_tokens', refresh)

        assert client.get('/api/auth/user').status_code == 401
        assert provider_session.is_revoked is True
        assert provider_session.revoked_reason == 'Token refresh failed'

    def test_expired_without_refresh_token(self, client, provider_session, db_session):
        provider_session.refresh_token = None
        db_session.commit()

        assert client.get('/api/auth/user').status_code == 401

    def test_logout_returns_provider_logout_url(self, client, provider_session, oidc_enabled, monkeypatch):
        monkeypatch.setattr(
            oidc_service, 'end_session_url',
            lambda id_token: f'https://idp.example.test/logout?hint={id_token}',
        )

        body = client.post('/api/auth/logout').get_json()
        assert body['redirectUrl'] == 'https://idp.example.test/logout?hint=id-token-1'

    def test_local_session_cannot_carry_tokens(self, make_user):
        user = make_user('x@komersh.test')
        with pytest.raises(ValueError):
            session_service.create_session(user.id, 'local', token_set=_provider_tokens({'sub': 'x'}))
        with pytest.raises(ValueError):
            session_service.create_session(user.id, 'oidc')
