"""Tests for accounts, login sessions and consent."""
from datetime import datetime, timedelta
import pytest
from signlearn.constants import (
    CONSENT_VERSION,
    KEY_FAVORITES,
    KEY_LOGGED_IN,
    KEY_USER_EMAIL,
    KEY_USER_ID,
    KEY_USER_NAME,
)
from signlearn.db.models import AuthSession
from signlearn.errors import AuthenticationError, InputValidationError
from signlearn.services import auth, consent
from signlearn.services.local_store import LocalStore


@pytest.fixture
def account(test_db):
    user, token = auth.sign_up(test_db, "Meera", "Meera@Example.com", "secret123")
    return user, token


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = auth.hash_password("secret123")
        assert hashed != "secret123"
        assert auth.verify_password("secret123", hashed)
        assert not auth.verify_password("wrong", hashed)

    def test_garbage_hash(self):
        assert auth.verify_password("secret123", "not-a-hash") is False


class TestSignUpAndLogin:
    """Tests for account creation and login."""

    def test_sign_up_normalizes_email_and_caches_login(self, test_db, account):
        user, token = account
        assert user.email == "meera@example.com"
        assert token

        local = LocalStore(test_db, user.id)
        assert local.get(KEY_LOGGED_IN) == "true"
        assert local.get(KEY_USER_ID) == user.id
        assert local.get(KEY_USER_EMAIL) == "meera@example.com"
        assert local.get(KEY_USER_NAME) == "Meera"

    @pytest.mark.parametrize("name,email,password", [
        ("", "a@b.com", "secret123"),
        ("A", "", "secret123"),
        ("A", "a@b.com", ""),
    ])
    def test_missing_fields(self, test_db, name, email, password):
        with pytest.raises(InputValidationError, match="Please fill all fields"):
            auth.sign_up(test_db, name, email, password)

    def test_short_password(self, test_db):
        with pytest.raises(InputValidationError):
            auth.sign_up(test_db, "A", "a@b.com", "12345")

    def test_duplicate_email(self, test_db, account):
        with pytest.raises(InputValidationError):
            auth.sign_up(test_db, "Other", "meera@example.com", "secret456")

    def test_login(self, test_db, account):
        user, _ = account
        logged_in, token = auth.log_in(test_db, "MEERA@example.com", "secret123")
        assert logged_in.id == user.id
        assert auth.get_current_user(test_db, token)["email"] == "meera@example.com"

    def test_login_wrong_password(self, test_db, account):
        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            auth.log_in(test_db, "meera@example.com", "nope123")

    def test_login_unknown_email(self, test_db):
        with pytest.raises(AuthenticationError):
            auth.log_in(test_db, "ghost@example.com", "secret123")


class TestSessions:
    """Tests for resolving and ending login sessions."""

    def test_no_token(self, test_db):
        assert auth.get_current_user(test_db, None) is None
        assert auth.get_current_user(test_db, "unknown") is None

    def test_expired_session_clears_flags(self, test_db, account):
        user, token = account
        session = test_db.query(AuthSession).filter_by(token=token).first()
        session.expires_at = datetime.utcnow() - timedelta(minutes=1)
        test_db.commit()

        assert auth.get_current_user(test_db, token) is None
        assert test_db.query(AuthSession).filter_by(token=token).first() is None
        local = LocalStore(test_db, user.id)
        assert local.get(KEY_LOGGED_IN) is None
        assert local.get(KEY_USER_EMAIL) is None
        assert local.get(KEY_USER_NAME) == "Meera"

    def test_sign_out_wipes_local_storage(self, test_db, account):
        user, token = account
        LocalStore(test_db, user.id).toggle_favorite("stop")

        auth.sign_out(test_db, token)

        assert auth.get_current_user(test_db, token) is None
        local = LocalStore(test_db, user.id)
        assert local.get(KEY_FAVORITES) is None
        assert local.get(KEY_USER_NAME) is None

    def test_sign_out_without_session(self, test_db):
        auth.sign_out(test_db, None)
        auth.sign_out(test_db, "missing")


class TestProfile:

    def test_rename(self, test_db, account):
        user, _ = account
        assert auth.update_profile_name(test_db, user.id, "  Meera S ") == "Meera S"
        assert auth.display_name(test_db, user.id) == "Meera S"

    def test_blank_name(self, test_db, account):
        user, _ = account
        with pytest.raises(InputValidationError, match="Name cannot be empty"):
            auth.update_profile_name(test_db, user.id, "   ")

    def test_display_name_fallbacks(self, test_db, account):
        user, _ = account
        local = LocalStore(test_db, user.id)
        local.remove(KEY_USER_NAME)
        assert auth.display_name(test_db, user.id) == "meera"
        local.remove(KEY_USER_EMAIL)
        assert auth.display_name(test_db, user.id) == "Driver"


class TestConsent:
    """Tests for privacy consent records."""

    def test_no_record(self, test_db):
        assert consent.get_consent(test_db, "u1") is None
        assert consent.has_consent(test_db, "u1") is False

    def test_round_trip(self, test_db):
        when = datetime(2024, 3, 15, 9, 30)
        record = consent.set_consent(test_db, "u1", given=True, timestamp=when)
        assert record == {"given": True, "version": CONSENT_VERSION, "accepted_at": when.isoformat()}
        assert consent.has_consent(test_db, "u1") is True

    def test_withdraw(self, test_db):
        consent.set_consent(test_db, "u1", given=True)
        consent.set_consent(test_db, "u1", given=False)
        assert consent.has_consent(test_db, "u1") is False
