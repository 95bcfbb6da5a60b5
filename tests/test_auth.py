# tests/test_auth.py
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from utils import auth as auth_module
from utils.auth import (
    AuthManager,
    is_already_registered,
    is_session_not_found_error,
    seconds_until_expiry,
)

NOW = datetime(2024, 1, 5, 12, 0, tzinfo=timezone.utc)


class SessionState(dict):
    """Dict with attribute access, like st.session_state."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError as e:
            raise AttributeError(name) from e

    def __setattr__(self, name, value):
        self[name] = value

    def __delattr__(self, name):
        del self[name]


@pytest.fixture
def session(monkeypatch):
    state = SessionState()
    fake_st = SimpleNamespace(
        session_state=state,
        cache_data=MagicMock(),
        warning=MagicMock(),
        error=MagicMock(),
        stop=MagicMock(),
        button=MagicMock(return_value=False),
        toast=MagicMock(),
        rerun=MagicMock(),
    )
    monkeypatch.setattr(auth_module, 'st', fake_st)
    monkeypatch.setattr(auth_module, 'reset_supabase', MagicMock())
    return state


@pytest.fixture
def client():
    client = MagicMock()
    user = SimpleNamespace(id='u-1', email='ann@example.com', user_metadata={'full_name': 'Ann Smit'})
    session = SimpleNamespace(access_token='a', refresh_token='r',
                              expires_at=int((NOW + timedelta(hours=1)).timestamp()))
    client.auth.sign_in_with_password.return_value = SimpleNamespace(user=user, session=session)
    return client


@pytest.fixture
def queries():
    q = MagicMock()
    q.has_role.side_effect = lambda user_id, role: role == 'admin'
    return q


@pytest.fixture
def auth(session, client, queries):
    return AuthManager(client=client, queries=queries)


class TestHelpers:

    def test_session_not_found(self):
        assert is_session_not_found_error(Exception("Session not found"))
        err = Exception("403")
        err.code = 'session_not_found'
        assert is_session_not_found_error(err)
        assert not is_session_not_found_error(Exception("network down"))

    def test_already_registered(self):
        assert is_already_registered(SimpleNamespace(user=SimpleNamespace(identities=[])))
        assert not is_already_registered(SimpleNamespace(user=SimpleNamespace(identities=[{'id': 1}])))
        assert not is_already_registered(SimpleNamespace(user=None))

    def test_seconds_until_expiry(self):
        assert seconds_until_expiry(None, NOW) is None
        assert seconds_until_expiry(int(NOW.timestamp()) + 90, NOW) == 90


class TestSignIn:

    def test_validation_happens_before_network(self, auth, client):
        ok, result = auth.sign_in('not-an-email', '')
        assert not ok
        assert set(result['errors']) == {'email', 'password'}
        client.auth.sign_in_with_password.assert_not_called()

    def test_success_stores_session_and_roles(self, auth, session):
        ok, user = auth.sign_in('ann@example.com', 'whatever')
        assert ok
        assert session['authenticated'] is True
        assert session['refresh_token'] == 'r'
        assert user['roles'] == ['user', 'admin']
        assert auth.is_admin()
        assert auth.get_user_display_name() == 'Ann Smit'

    def test_rejected_credentials(self, auth, client, session):
        client.auth.sign_in_with_password.side_effect = Exception("Invalid login credentials")
        ok, result = auth.sign_in('ann@example.com', 'wrong')
        assert not ok
        assert result['error'] == 'Invalid email or password'
        assert 'authenticated' not in session


class TestSignUp:

    def test_existing_email(self, auth, client):
        client.auth.sign_up.return_value = SimpleNamespace(user=SimpleNamespace(identities=[]))
        ok, result = auth.sign_up('Ann Smit', 'ann@example.com', 'Sunny-Day-42', 'Sunny-Day-42')
        assert not ok
        assert 'already registered' in result['errors']['email']

    def test_full_name_is_sent_as_metadata(self, auth, client):
        client.auth.sign_up.return_value = SimpleNamespace(user=SimpleNamespace(identities=[{'id': 'x'}]))
        ok, _ = auth.sign_up(' Ann Smit ', 'ann@example.com', 'Sunny-Day-42', 'Sunny-Day-42')
        assert ok
        payload = client.auth.sign_up.call_args.args[0]
        assert payload['options']['data']['full_name'] == 'Ann Smit'

    def test_weak_password_is_not_sent(self, auth, client):
        ok, result = auth.sign_up('Ann Smit', 'ann@example.com', 'weak', 'weak')
        assert not ok and 'password' in result['errors']
        client.auth.sign_up.assert_not_called()


class TestSession:

    def test_refresh_only_after_interval(self, auth, client, session):
        auth.sign_in('ann@example.com', 'pw')
        client.auth.refresh_session.return_value = SimpleNamespace(session=SimpleNamespace(
            access_token='a2', refresh_token='r2', expires_at=int((NOW + timedelta(hours=2)).timestamp()),
        ))
        session['last_session_refresh'] = NOW

        assert auth.refresh_session_if_due(NOW + timedelta(minutes=9)) is False
        assert auth.refresh_session_if_due(NOW + timedelta(minutes=10)) is True
        client.auth.refresh_session.assert_called_once_with('r')
        assert session['refresh_token'] == 'r2'

    def test_failed_refresh_is_flagged(self, auth, client, session):
        auth.sign_in('ann@example.com', 'pw')
        client.auth.refresh_session.side_effect = Exception("refresh token revoked")
        assert auth.refresh_session() is False
        assert session['session_refresh_failed'] is True

    def test_expiry_warning_window(self, auth, session):
        session['expires_at'] = int((NOW + timedelta(minutes=4)).timestamp())
        assert '4 minute' in auth.session_expiry_warning(NOW)
        session['expires_at'] = int((NOW + timedelta(minutes=30)).timestamp())
        assert auth.session_expiry_warning(NOW) is None

    def test_logout_ignores_missing_remote_session(self, auth, client, session):
        auth.sign_in('ann@example.com', 'pw')
        client.auth.sign_out.side_effect = Exception("session_not_found")
        auth.logout()
        assert 'authenticated' not in session
        assert 'access_token' not in session
        auth_module.reset_supabase.assert_called_once()
        auth_module.st.cache_data.clear.assert_called_once()


class TestSessionControls:

    @pytest.fixture
    def refreshed(self, client):
        client.auth.refresh_session.return_value = SimpleNamespace(session=SimpleNamespace(
            access_token='a2', refresh_token='r2', expires_at=int((NOW + timedelta(hours=2)).timestamp()),
        ))
        return client

    def test_tick_refreshes_once_interval_has_passed(self, auth, refreshed, session):
        auth.sign_in('ann@example.com', 'pw')
        session['last_session_refresh'] = NOW

        assert auth.session_tick(NOW + timedelta(minutes=9)) is False
        refreshed.auth.refresh_session.assert_not_called()
        assert auth.session_tick(NOW + timedelta(minutes=10)) is False
        refreshed.auth.refresh_session.assert_called_once_with('r')
        assert session['last_session_refresh'] > NOW

    def test_tick_reruns_when_warning_appears_or_session_expires(self, auth, session):
        auth.sign_in('ann@example.com', 'pw')
        session['last_session_refresh'] = NOW
        session['expires_at'] = int((NOW + timedelta(minutes=4)).timestamp())

        assert auth.session_tick(NOW) is True
        auth.show_session_controls(NOW)
        auth_module.st.warning.assert_called_once()
        assert session['session_warning_shown'] is True
        assert auth.session_tick(NOW) is False

        assert auth.session_tick(NOW + timedelta(minutes=5)) is True

    def test_tick_is_idle_when_signed_out(self, auth, client):
        assert auth.session_tick(NOW) is False
        client.auth.refresh_session.assert_not_called()

    def test_every_protected_page_shows_expiry_warning(self, auth, session):
        auth.sign_in('ann@example.com', 'pw')
        session['expires_at'] = int((datetime.now(timezone.utc) + timedelta(minutes=3)).timestamp())
        assert auth.require_auth() is True
        message = auth_module.st.warning.call_args.args[0]
        assert message.startswith('⏳') and 'Stay signed in' in message

    def test_stay_signed_in_refreshes_and_reruns(self, auth, refreshed, session):
        auth.sign_in('ann@example.com', 'pw')
        session['expires_at'] = int((NOW + timedelta(minutes=2)).timestamp())
        auth_module.st.button.return_value = True

        auth.show_session_controls(NOW)
        refreshed.auth.refresh_session.assert_called_once()
        assert session['session_warning_shown'] is False
        auth_module.st.rerun.assert_called_once()


def test_unconfigured_auth_service_is_reported(session, queries):

    client = MagicMock()
    client.auth.sign_in_with_password.side_effect = auth_module.AuthError("auth service is not configured")
    ok, result = AuthManager(client=client, queries=queries).sign_in('ann@example.com', 'pw')
    assert not ok
    assert 'not configured' in result['error']


class TestDecorators:

    def test_require_login_runs_wrapped_function(self, monkeypatch):
        monkeypatch.setattr(auth_module.AuthManager, 'require_auth', lambda self: True)
        assert auth_module.require_login(lambda: 'page')() == 'page'

    def test_require_admin_blocks_non_admin(self, monkeypatch):
        monkeypatch.setattr(auth_module.AuthManager, 'require_admin', lambda self: False)
        assert auth_module.require_admin(lambda: 'page')() is None
