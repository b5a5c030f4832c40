"""
CredentialService tests.

Covers:
- create_user: hashing, projections, duplicate usernames, unknown customer, policy
- verify_password: match / mismatch / corrupt hash, auth logging
- authenticate, change_password, update_user
"""
import logging

import pytest
from sqlalchemy import update

from hotel_manage.config import Settings
from hotel_manage.exceptions import (
    CorruptCredentialError,
    NotFoundError,
    PasswordPolicyError,
    ValidationError,
)
from hotel_manage.models.schemas import UserCredentials, UserPublic
from hotel_manage.models.user import AppUser
from hotel_manage.services.credential_service import CredentialService


# ── create_user ───────────────────────────────────────────


class TestCreateUser:

    def test_returns_public_projection(self, user, customer):
        assert isinstance(user, UserPublic)
        assert user.username == "alice"
        assert user.customer_id == customer.customer_id
        assert not hasattr(user, "password")
        assert "password" not in user.model_dump()

    def test_stores_hash_not_plaintext(self, credentials, user, db_session):
        stored = db_session.get(AppUser, user.user_id).password
        assert stored != "s3cret-pass"
        assert stored.startswith("$2")

    def test_privileged_read_returns_hash(self, credentials, user):
        creds = credentials.get_user_with_password(user.user_id)
        assert isinstance(creds, UserCredentials)
        assert creds.password.startswith("$2")

    def test_duplicate_username(self, credentials, customer, user):
        with pytest.raises(ValidationError):
            credentials.create_user(customer.customer_id, "alice", "other-pass", "A", "B")

    def test_unknown_customer(self, credentials):
        with pytest.raises(NotFoundError) as exc_info:
            credentials.create_user(9999, "bob", "pass", "Bob", "Jones")
        assert exc_info.value.entity == "Customer"

    @pytest.mark.parametrize("field_name", ["username", "first_name", "last_name"])
    def test_blank_required_field(self, credentials, customer, field_name):
        kwargs = dict(username="bob", password="pass", first_name="Bob", last_name="Jones")
        kwargs[field_name] = "   "
        with pytest.raises(ValidationError):
            credentials.create_user(customer.customer_id, **kwargs)

    def test_empty_password(self, credentials, customer):
        with pytest.raises(ValidationError):
            credentials.create_user(customer.customer_id, "bob", "", "Bob", "Jones")

    def test_policy_rejects_short_password(self, db_session, customer):
        strict = Settings(
            _env_file=None, ENVIRONMENT="test", BCRYPT_ROUNDS=4,
            PasswordComplexityActive=True, MinimumPasswordCharacters=8,
        )
        service = CredentialService(db_session, strict)
        with pytest.raises(PasswordPolicyError):
            service.create_user(customer.customer_id, "bob", "short", "Bob", "Jones")
        assert service.create_user(customer.customer_id, "bob", "long-enough", "Bob", "Jones").username == "bob"

    def test_policy_inactive_accepts_single_char(self, credentials, customer):
        assert credentials.create_user(customer.customer_id, "bob", "x", "Bob", "Jones").username == "bob"


# ── verify_password ───────────────────────────────────────


class TestVerifyPassword:

    def test_matches(self, credentials, user):
        assert credentials.verify_password(user, "s3cret-pass") is True

    def test_mismatch(self, credentials, user):
        assert credentials.verify_password(user, "s3cret-passx") is False

    def test_accepts_user_id(self, credentials, user):
        assert credentials.verify_password(user.user_id, "s3cret-pass") is True

    def test_non_string_password(self, credentials, user):
        assert credentials.verify_password(user, None) is False

    def test_unknown_user(self, credentials):
        with pytest.raises(NotFoundError):
            credentials.verify_password(4242, "whatever")

    def test_corrupt_hash_raises_and_logs(self, credentials, user, db_session, caplog):
        db_session.execute(
            update(AppUser).where(AppUser.user_id == user.user_id).values(password="garbage")
        )
        db_session.commit()

        with caplog.at_level(logging.INFO, logger="hotel_manage"):
            with pytest.raises(CorruptCredentialError):
                credentials.verify_password(user.user_id, "s3cret-pass")

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert errors and errors[0].category == "auth"

    def test_every_attempt_logged_in_auth(self, credentials, user, caplog):
        with caplog.at_level(logging.INFO, logger="hotel_manage"):
            credentials.verify_password(user, "s3cret-pass")
            credentials.verify_password(user, "wrong")

        auth_records = [r for r in caplog.records if getattr(r, "category", None) == "auth"]
        assert len(auth_records) == 2
        assert "succeeded" in auth_records[0].getMessage()
        assert "failed" in auth_records[1].getMessage()


# ── authenticate / change_password / update_user ──────────


class TestAuthenticate:

    def test_success(self, credentials, user):
        result = credentials.authenticate("alice", "s3cret-pass")
        assert isinstance(result, UserPublic)
        assert result.user_id == user.user_id

    def test_wrong_password(self, credentials, user):
        assert credentials.authenticate("alice", "nope") is None

    def test_unknown_username(self, credentials):
        assert credentials.authenticate("ghost", "nope") is None


class TestChangePassword:

    def test_new_password_replaces_old(self, credentials, user):
        credentials.change_password(user.user_id, "brand-new")
        assert credentials.verify_password(user.user_id, "brand-new") is True
        assert credentials.verify_password(user.user_id, "s3cret-pass") is False

    def test_empty_password_rejected(self, credentials, user):
        with pytest.raises(ValidationError):
            credentials.change_password(user.user_id, "")

    def test_unknown_user(self, credentials):
        with pytest.raises(NotFoundError):
            credentials.change_password(4242, "brand-new")


class TestUpdateUser:

    def test_updates_names(self, credentials, user):
        updated = credentials.update_user(user.user_id, first_name="Alicia")
        assert updated.first_name == "Alicia"
        assert updated.last_name == "Smith"

    def test_blank_name_rejected(self, credentials, user):
        with pytest.raises(ValidationError):
            credentials.update_user(user.user_id, last_name=" ")

    def test_get_user_by_username(self, credentials, user):
        assert credentials.get_user_by_username("alice").user_id == user.user_id
        with pytest.raises(NotFoundError):
            credentials.get_user_by_username("ghost")
