"""Tests for the credential store."""

from datetime import timedelta

import pytest

from authflow import models
from authflow.database import utcnow
from authflow.errors import ConstraintViolation


@pytest.fixture
def user(store):
    with store.transaction():
        return store.create_user("bob", "bob@example.com", "hash")


class TestUsers:

    def test_create_user_creates_profile(self, store, db, user):
        assert user.id
        assert user.is_verified is False
        assert db.query(models.Profile).filter(models.Profile.user_id == user.id).count() == 1

    def test_lookups(self, store, user):
        assert store.find_user_by_id(user.id).id == user.id
        assert store.find_user_by_email("BOB@example.com").id == user.id
        assert store.find_user_by_username("bob").id == user.id
        assert store.find_user_by_username_or_email("nobody", "bob@example.com").id == user.id
        assert store.find_user_by_id("missing") is None

    def test_duplicate_email_is_constraint_violation(self, store, user):
        with pytest.raises(ConstraintViolation) as exc_info:
            with store.transaction():
                store.create_user("other", "bob@example.com", "hash")
        assert exc_info.value.entity == "user"
        assert exc_info.value.field == "email"

    def test_update_user(self, store, user):
        with store.transaction():
            store.update_user(user, is_blocked=True)
        assert store.find_user_by_id(user.id).is_blocked is True

    def test_update_unknown_field_rejected(self, store, user):
        with pytest.raises(AttributeError):
            store.update_user(user, nickname="bobby")

    def test_failed_transaction_rolls_back(self, store, user):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.update_user(user, is_verified=True)
                raise RuntimeError("boom")
        assert store.find_user_by_id(user.id).is_verified is False


class TestOtps:

    def test_duplicate_code_is_constraint_violation(self, store, user):
        expires = utcnow() + timedelta(minutes=5)
        with store.transaction():
            store.create_otp(user.id, 123456, expires)
        with pytest.raises(ConstraintViolation) as exc_info:
            with store.transaction():
                store.create_otp(user.id, 123456, expires)
        assert exc_info.value.entity == "otp"

    def test_delete_expired_otps_with_code_spares_live_rows(self, store, user):
        now = utcnow()
        with store.transaction():
            store.create_otp(user.id, 111111, now - timedelta(minutes=1))
            store.create_otp(user.id, 222222, now + timedelta(minutes=5))
        with store.transaction():
            assert store.delete_expired_otps_with_code(111111, now) == 1
            assert store.delete_expired_otps_with_code(222222, now) == 0
        assert store.find_otp_by_code(111111) is None
        assert store.find_otp_by_code(222222) is not None

    def test_delete_otp_succeeds_once(self, store, user):
        now = utcnow()
        with store.transaction():
            otp_id = store.create_otp(user.id, 333333, now + timedelta(minutes=5)).id
        with store.transaction():
            assert store.delete_otp(otp_id, now) is True
            assert store.delete_otp(otp_id, now) is False

    def test_delete_skips_expired_rows(self, store, user):
        now = utcnow()
        with store.transaction():
            otp_id = store.create_otp(user.id, 444444, now - timedelta(minutes=1)).id
            token_id = store.create_reset_token(user.id, "stale", now - timedelta(minutes=1)).id
        assert store.delete_otp(otp_id, now) is False
        assert store.delete_reset_token(token_id, now) is False


class TestBlacklist:

    def test_blacklist_membership(self, store):
        assert store.find_blacklisted_token("tok") is None
        with store.transaction():
            store.create_blacklisted_token("tok")
        assert store.find_blacklisted_token("tok") is not None

    def test_duplicate_blacklist_entry(self, store):
        with store.transaction():
            store.create_blacklisted_token("tok")
        with pytest.raises(ConstraintViolation):
            with store.transaction():
                store.create_blacklisted_token("tok")
