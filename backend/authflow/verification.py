import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable

from . import models
from .database import utcnow
from .errors import AlreadyVerified, CodeExpired, ConstraintViolation, Internal, InvalidCode
from .store import CredentialStore

logger = logging.getLogger(__name__)

OTP_TTL = timedelta(minutes=5)
MAX_CODE_ATTEMPTS = 5


def generate_otp_code() -> int:
    """Generate a 6-digit verification code."""
    return secrets.randbelow(900000) + 100000


class VerificationService:
    """Issues and consumes the one-time codes that verify an email address."""

    def __init__(
        self,
        store: CredentialStore,
        ttl: timedelta = OTP_TTL,
        code_factory: Callable[[], int] = generate_otp_code,
        now: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.ttl = ttl
        self.code_factory = code_factory
        self.now = now

    def issue_otp(self, user: models.User) -> models.OTP:
        # Outstanding codes for the same user are left alone; any of them verifies
        user_id = user.id
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            code = self.code_factory()
            now = self.now()
            try:
                with self.store.transaction():
                    # A stale row holding this code would block the unique index
                    self.store.delete_expired_otps_with_code(code, now)
                    otp = self.store.create_otp(user_id, code, now + self.ttl)
                return otp
            except ConstraintViolation:
                logger.warning(f"OTP code collision on attempt {attempt} for user {user_id}")
        raise Internal("Could not allocate a unique verification code")

    def consume_otp(self, code: int) -> models.User:
        otp = self.store.find_otp_by_code(code)
        if not otp:
            raise InvalidCode()

        now = self.now()
        if otp.expires_at < now:
            raise CodeExpired()

        user = self.store.find_user_by_id(otp.user_id)
        if not user:
            raise InvalidCode()

        with self.store.transaction():
            if not self.store.delete_otp(otp.id, now):
                logger.warning(f"OTP for user {user.id} was consumed concurrently")
                raise InvalidCode()
            self.store.update_user(user, is_verified=True)

        logger.info(f"User {user.id} verified")
        return user

    def request_resend(self, user: models.User) -> models.OTP:
        if user.is_verified:
            raise AlreadyVerified()
        return self.issue_otp(user)
