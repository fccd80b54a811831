"""
Invitation lifecycle: invite, verify, accept, replay, expiry, resend.
"""

from datetime import timedelta

import pytest

from komersh.models import Invitation
from komersh.services import email_service
from komersh.time_utils import utcnow


@pytest.fixture(scope='function')
def outbox(monkeypatch):
    """Capture invitation emails instead of logging them."""
    sent = []

    def capture(to_email, token, role, invited_by=None):
        sent.append({'to': to_email, 'token': token, 'role': role, 'invitedBy': invited_by})
        return True

    monkeypatch.setattr(email_service, 'send_invitation_email', capture)
    return sent


@pytest.fixture(scope='function')
def invite(admin_client, outbox):
    def _invite(email='new@komersh.test', role='warehouse'):
        resp = admin_client.post('/api/invitations', json={'email': email, 'role': role})
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json(), outbox[-1]['token']

    return _invite


class TestCreateInvitation:

    def test_create_sends_email(self, admin_client, outbox):
        resp = admin_client.post('/api/invitations', json={'email': ' New@Komersh.test ', 'role': 'marketing'})
        assert resp.status_code == 201
        body = resp.get_json()
        assert body['email'] == 'new@komersh.test'
        assert body['role'] == 'marketing'
        assert body['status'] == 'pending'
        assert body['emailSent'] is True
        assert 'token' not in body
        assert 'tokenHash' not in body

        assert outbox[0]['to'] == 'new@komersh.test'
        assert len(outbox[0]['token']) == 64

    def test_invalid_role(self, admin_client, outbox):
        resp = admin_client.post('/api/invitations', json={'email': 'x@komersh.test', 'role': 'owner'})
        assert resp.status_code == 400
        assert resp.get_json()['field'] == 'role'
        assert outbox == []

    def test_pending_invitation_conflicts(self, admin_client, invite):
        invite('dup@komersh.test')
        resp = admin_client.post('/api/invitations', json={'email': 'dup@komersh.test', 'role': 'viewer'})
        assert resp.status_code == 409

    def test_existing_active_user_conflicts(self, admin_client, make_user, outbox):
        make_user('taken@komersh.test')
        resp = admin_client.post('/api/invitations', json={'email': 'taken@komersh.test', 'role': 'viewer'})
        assert resp.status_code == 409

    def test_founder_cannot_invite(self, founder_client):
        resp = founder_client.post('/api/invitations', json={'email': 'x@komersh.test', 'role': 'viewer'})
        assert resp.status_code == 403
        assert resp.get_json()['requiredCapability'] == 'MANAGE_USERS'

    def test_email_logged_without_api_token(self, admin_client, caplog):
        with caplog.at_level('INFO', logger='komersh.services.email_service'):
            resp = admin_client.post('/api/invitations', json={'email': 'log@komersh.test', 'role': 'viewer'})
        assert resp.get_json()['emailSent'] is True
        assert 'accept-invitation?token=' in caplog.text


class TestAcceptInvitation:

    def test_verify_shows_email_and_role(self, client, invite):
        _, token = invite('verify@komersh.test', 'founder')
        resp = client.get(f'/api/invitations/verify?token={token}')
        assert resp.status_code == 200
        body = resp.get_json()
        assert body['email'] == 'verify@komersh.test'
        assert body['role'] == 'founder'

    def test_verify_unknown_token(self, client):
        assert client.get('/api/invitations/verify?token=nope').status_code == 404

    def test_accept_creates_user_and_signs_in(self, client, invite):
        _, token = invite('join@komersh.test', 'warehouse')

        resp = client.post('/api/invitations/accept', json={
            'token': token, 'password': 'longenough', 'firstName': 'Omar',
        })
        assert resp.status_code == 201
        user = resp.get_json()['user']
        assert user['email'] == 'join@komersh.test'
        assert user['role'] == 'warehouse'
        assert user['firstName'] == 'Omar'

        me = client.get('/api/auth/user').get_json()
        assert me['id'] == user['id']
        assert me['authSource'] == 'local'

        # The new password works for a normal login
        fresh = client.application.test_client()
        assert fresh.post('/api/auth/login', json={
            'email': 'join@komersh.test', 'password': 'longenough',
        }).status_code == 200

    def test_replayed_token_conflicts(self, client, invite):
        _, token = invite()
        first = client.post('/api/invitations/accept', json={'token': token, 'password': 'longenough'})
        assert first.status_code == 201

        second = client.post('/api/invitations/accept', json={'token': token, 'password': 'otherpassword'})
        assert second.status_code == 409
        assert client.get(f'/api/invitations/verify?token={token}').status_code == 409

    def test_expired_invitation_conflicts(self, client, invite, db_session):
        created, token = invite()
        invitation = db_session.get(Invitation, created['id'])
        invitation.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        assert client.get(f'/api/invitations/verify?token={token}').status_code == 409
        resp = client.post('/api/invitations/accept', json={'token': token, 'password': 'longenough'})
        assert resp.status_code == 409
        assert client.get_cookie('komersh.sid') is None

    def test_short_password_leaves_invitation_unused(self, client, invite, db_session):
        created, token = invite()
        resp = client.post('/api/invitations/accept', json={'token': token, 'password': 'short'})
        assert resp.status_code == 400
        assert resp.get_json()['field'] == 'password'

        assert db_session.get(Invitation, created['id']).used is False
        assert client.get(f'/api/invitations/verify?token={token}').status_code == 200

    @pytest.mark.parametrize('bad_token', [12345, ['abc'], {'t': 1}])
    def test_non_string_token_is_rejected(self, client, bad_token):
        resp = client.post('/api/invitations/accept', json={'token': bad_token, 'password': 'Password123!'})
        assert resp.status_code == 400
        assert resp.get_json() == {'message': 'token must be a string', 'field': 'token'}
        assert client.get_cookie('komersh.sid') is None

    def test_accept_reactivates_deactivated_user(self, admin_client, client, make_user, invite):
        old = make_user('back@komersh.test', role='viewer', is_active=False)
        _, token = invite('back@komersh.test', 'founder')

        resp = client.post('/api/invitations/accept', json={'token': token, 'password': 'longenough'})
        assert resp.status_code == 201
        body = resp.get_json()['user']
        assert body['id'] == old.id
        assert body['role'] == 'founder'
        assert body['isActive'] is True


class TestManageInvitations:

    def test_resend_rotates_token(self, admin_client, client, invite, outbox):
        created, old_token = invite()

        resp = admin_client.post(f"/api/invitations/{created['id']}/resend")
        assert resp.status_code == 200
        new_token = outbox[-1]['token']
        assert new_token != old_token

        assert client.get(f'/api/invitations/verify?token={old_token}').status_code == 404
        assert client.get(f'/api/invitations/verify?token={new_token}').status_code == 200

    def test_resend_used_invitation_conflicts(self, admin_client, client, invite):
        created, token = invite()
        client.post('/api/invitations/accept', json={'token': token, 'password': 'longenough'})

        assert admin_client.post(f"/api/invitations/{created['id']}/resend").status_code == 409

    def test_expired_invitation_can_be_reissued(self, admin_client, invite, db_session):
        created, _ = invite('again@komersh.test')
        db_session.get(Invitation, created['id']).expires_at = utcnow() - timedelta(days=1)
        db_session.commit()

        again, _ = invite('again@komersh.test')
        assert again['id'] == created['id']
        assert again['status'] == 'pending'

    def test_delete_revokes_link(self, admin_client, client, invite):
        created, token = invite()
        assert admin_client.delete(f"/api/invitations/{created['id']}").status_code == 204
        assert client.get(f'/api/invitations/verify?token={token}').status_code == 404

    def test_list(self, admin_client, invite):
        invite('one@komersh.test')
        invite('two@komersh.test')
        emails = {i['email'] for i in admin_client.get('/api/invitations').get_json()}
        assert emails == {'one@komersh.test', 'two@komersh.test'}
