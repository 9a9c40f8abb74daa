import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .errors import ConstraintViolation

logger = logging.getLogger(__name__)

# Which column a unique-constraint failure most likely hit, per entity
_UNIQUE_FIELDS = {
    "user": ("email", "username"),
    "otp": ("code",),
    "reset_password_token": ("token",),
    "blacklisted_token": ("token",),
}


def _violated_field(entity: str, exc: IntegrityError) -> str:
    text = str(exc.orig).lower()
    for field in _UNIQUE_FIELDS.get(entity, ()):
        if field in text:
            return field
    return _UNIQUE_FIELDS.get(entity, ("unknown",))[0]


class CredentialStore:
    """Data access for users, OTPs, reset tokens and the token blacklist.

    Wraps a single SQLAlchemy session. Writes are flushed immediately so
    uniqueness conflicts surface at the call site; nothing is committed
    until the surrounding ``transaction()`` block exits cleanly.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator["CredentialStore"]:
        try:
            yield self
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _flush(self, entity: str) -> None:
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise ConstraintViolation(entity, _violated_field(entity, e)) from e

    # Users

    def find_user_by_id(self, user_id: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def find_user_by_email(self, email: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(func.lower(models.User.email) == email.lower()).first()

    def find_user_by_username(self, username: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(func.lower(models.User.username) == username.lower()).first()

    def find_user_by_username_or_email(self, username: str, email: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(or_(
            func.lower(models.User.username) == username.lower(),
            func.lower(models.User.email) == email.lower(),
        )).first()

    def create_user(self, username: str, email: str, password: Optional[str]) -> models.User:
        """Create a user together with its empty profile."""
        user = models.User(username=username, email=email, password=password, is_verified=False)
        user.profile = models.Profile()
        self.db.add(user)
        self._flush("user")
        return user

    def update_user(self, user: models.User, **fields) -> models.User:
        for name, value in fields.items():
            if not hasattr(models.User, name):
                raise AttributeError(f"User has no field {name!r}")
            setattr(user, name, value)
        self._flush("user")
        return user

    # OTPs

    def create_otp(self, user_id: str, code: int, expires_at: datetime) -> models.OTP:
        otp = models.OTP(user_id=user_id, code=code, expires_at=expires_at)
        self.db.add(otp)
        self._flush("otp")
        return otp

    def find_otp_by_code(self, code: int) -> Optional[models.OTP]:
        return self.db.query(models.OTP).filter(models.OTP.code == code).first()

    def delete_otp(self, otp_id: str, now: datetime) -> bool:
        """Delete a still-live OTP row; False if it was already gone or expired."""
        deleted = self.db.query(models.OTP).filter(
            models.OTP.id == otp_id,
            models.OTP.expires_at >= now,
        ).delete(synchronize_session=False)
        return deleted == 1

    def delete_expired_otps_with_code(self, code: int, now: datetime) -> int:
        return self.db.query(models.OTP).filter(
            models.OTP.code == code,
            models.OTP.expires_at < now,
        ).delete(synchronize_session=False)

    def delete_expired_otps(self, now: datetime) -> int:
        return self.db.query(models.OTP).filter(
            models.OTP.expires_at < now
        ).delete(synchronize_session=False)

    def count_otps_for_user(self, user_id: str) -> int:
        return self.db.query(models.OTP).filter(models.OTP.user_id == user_id).count()

    # Reset tokens

    def create_reset_token(self, user_id: str, token: str, expires_at: datetime) -> models.ResetPasswordToken:
        record = models.ResetPasswordToken(user_id=user_id, token=token, expires_at=expires_at)
        self.db.add(record)
        self._flush("reset_password_token")
        return record

    def find_reset_token(self, token: str) -> Optional[models.ResetPasswordToken]:
        return self.db.query(models.ResetPasswordToken).filter(
            models.ResetPasswordToken.token == token
        ).first()

    def delete_reset_token(self, record_id: str, now: datetime) -> bool:
        deleted = self.db.query(models.ResetPasswordToken).filter(
            models.ResetPasswordToken.id == record_id,
            models.ResetPasswordToken.expires_at >= now,
        ).delete(synchronize_session=False)
        return deleted == 1

    def delete_reset_tokens_for_user(self, user_id: str) -> int:
        return self.db.query(models.ResetPasswordToken).filter(
            models.ResetPasswordToken.user_id == user_id
        ).delete(synchronize_session=False)

    def delete_expired_reset_tokens(self, now: datetime) -> int:
        return self.db.query(models.ResetPasswordToken).filter(
            models.ResetPasswordToken.expires_at < now
        ).delete(synchronize_session=False)

    # Blacklist

    def find_blacklisted_token(self, token: str) -> Optional[models.BlacklistedToken]:
        return self.db.query(models.BlacklistedToken).filter(
            models.BlacklistedToken.token == token
        ).first()

    def create_blacklisted_token(self, token: str) -> models.BlacklistedToken:
        record = models.BlacklistedToken(token=token)
        self.db.add(record)
        self._flush("blacklisted_token")
        return record
