import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
from urllib.parse import urlencode

from . import models
from .database import utcnow
from .errors import ForgedRequest, InvalidToken, TokenExpired, UserNotFound
from .security import BcryptHasher
from .store import CredentialStore

logger = logging.getLogger(__name__)

RESET_TOKEN_TTL = timedelta(hours=2)


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def build_reset_url(base_url: str, token: str, user_id: str) -> str:
    if not base_url.endswith("/"):
        base_url += "/"
    return f"{base_url}reset-password?{urlencode({'token': token, 'user_id': user_id})}"


@dataclass
class ResetTokenIssue:
    record: models.ResetPasswordToken
    url: str


class PasswordResetService:
    """Single-use password recovery tokens."""

    def __init__(
        self,
        store: CredentialStore,
        hasher: BcryptHasher,
        ttl: timedelta = RESET_TOKEN_TTL,
        token_factory: Callable[[], str] = generate_reset_token,
        now: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.hasher = hasher
        self.ttl = ttl
        self.token_factory = token_factory
        self.now = now

    def issue_reset_token(self, user: models.User, base_url: str) -> ResetTokenIssue:
        """Replace any outstanding reset token for ``user`` with a fresh one."""
        with self.store.transaction():
            self.store.delete_reset_tokens_for_user(user.id)
            record = self.store.create_reset_token(user.id, self.token_factory(), self.now() + self.ttl)
        return ResetTokenIssue(record=record, url=build_reset_url(base_url, record.token, user.id))

    def consume_reset_token(self, token: str, user_id: str, new_password: str) -> None:
        record = self.store.find_reset_token(token)
        if not record:
            raise InvalidToken()

        now = self.now()
        if record.expires_at < now:
            raise TokenExpired()

        if record.user_id != user_id:
            logger.warning(f"Reset token for user {record.user_id} presented for user {user_id}")
            raise ForgedRequest()

        user = self.store.find_user_by_id(user_id)
        if not user:
            raise UserNotFound()

        hashed_password = self.hasher.hash(new_password)
        # Delete and update commit together; a failed update leaves the token usable
        with self.store.transaction():
            if not self.store.delete_reset_token(record.id, now):
                logger.warning(f"Reset token for user {user.id} was consumed concurrently")
                raise InvalidToken()
            self.store.update_user(user, password=hashed_password)

        logger.info(f"Password reset for user {user.id}")


def reap_expired(store: CredentialStore, now: datetime) -> int:
    """Delete expired OTP and reset-token rows. Blacklist rows are kept."""
    with store.transaction():
        removed = store.delete_expired_otps(now) + store.delete_expired_reset_tokens(now)
    return removed
