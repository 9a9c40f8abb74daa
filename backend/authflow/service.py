import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from . import models
from .database import utcnow
from .email import Mailer, _redact_email
from .errors import (
    AlreadyBlacklisted,
    Blocked,
    ConstraintViolation,
    DeletedAccount,
    InvalidCredentials,
    InvalidToken,
    NotVerified,
    Unauthorized,
    UserExists,
    UserNotFound,
)
from .password_reset import PasswordResetService, ResetTokenIssue
from .security import BcryptHasher
from .store import CredentialStore
from .tokens import ACCESS, REFRESH, TokenService
from .verification import VerificationService

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    user: models.User
    access_token: str
    refresh_token: str


class AuthService:
    """Signup, verification, login, logout, refresh and password reset.

    One instance serves one operation: it wraps a store bound to a single
    session and re-reads user state on every call.
    """

    def __init__(
        self,
        store: CredentialStore,
        tokens: TokenService,
        hasher: BcryptHasher,
        mailer: Mailer,
        verification: VerificationService,
        resets: PasswordResetService,
        now: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.tokens = tokens
        self.hasher = hasher
        self.mailer = mailer
        self.verification = verification
        self.resets = resets
        self.now = now

    def _ensure_active(self, user: models.User) -> None:
        # Order matters: each check assumes the previous ones passed
        if not user.is_verified:
            raise NotVerified()
        if user.is_blocked:
            raise Blocked()
        if user.is_deleted:
            raise DeletedAccount()

    def signup(self, username: str, email: str, password: str) -> models.User:
        if self.store.find_user_by_username_or_email(username, email):
            raise UserExists()

        hashed_password = self.hasher.hash(password)
        try:
            with self.store.transaction():
                user = self.store.create_user(username, email, hashed_password)
        except ConstraintViolation:
            # Lost a race with a concurrent signup
            raise UserExists()

        otp = self.verification.issue_otp(user)
        logger.info(f"User {user.id} signed up")

        # The user and OTP stay committed if delivery fails; resend-otp recovers
        self.mailer.send_otp(user.email, user.username, otp.code)
        return user

    def verify_otp(self, code: int) -> models.User:
        user = self.verification.consume_otp(code)
        self.mailer.send_welcome(user.email, user.username)
        return user

    def request_new_otp(self, email: str) -> None:
        user = self.store.find_user_by_email(email)
        if not user:
            raise UserNotFound()

        otp = self.verification.request_resend(user)
        self.mailer.send_otp(user.email, user.username, otp.code)

    def login(self, email: str, password: str) -> LoginResult:
        user = self.store.find_user_by_email(email)
        if not user:
            raise UserNotFound()

        if not user.is_verified:
            raise NotVerified()

        # Accounts without a local password can't log in here
        if not user.password or not self.hasher.compare(password, user.password):
            logger.warning(f"Failed login for: {_redact_email(email)}")
            raise InvalidCredentials()

        self._ensure_active(user)

        with self.store.transaction():
            self.store.update_user(user, last_login=self.now())

        return LoginResult(
            user=user,
            access_token=self.tokens.sign_access(user.id),
            refresh_token=self.tokens.sign_refresh(user.id),
        )

    def logout(self, refresh_token: str) -> None:
        try:
            self.tokens.verify(refresh_token, expected_type=REFRESH)
        except InvalidToken:
            raise InvalidToken()

        try:
            with self.store.transaction():
                self.store.create_blacklisted_token(refresh_token)
        except ConstraintViolation:
            raise AlreadyBlacklisted()

    def refresh_access_token(self, refresh_token: str) -> str:
        try:
            claims = self.tokens.verify(refresh_token, expected_type=REFRESH)
        except InvalidToken:
            raise InvalidToken()

        if self.store.find_blacklisted_token(refresh_token):
            logger.warning(f"Blacklisted refresh token used for user {claims.user_id}")
            raise Unauthorized()

        user = self.store.find_user_by_id(claims.user_id)
        if not user:
            raise InvalidToken()

        self._ensure_active(user)
        return self.tokens.sign_access(user.id)

    def reset_password(self, email: str, base_url: str) -> ResetTokenIssue:
        user = self.store.find_user_by_email(email)
        if not user:
            raise UserNotFound()

        issue = self.resets.issue_reset_token(user, base_url)
        self.mailer.send_password_reset(user.email, issue.url)
        return issue

    def reset_password_confirm(self, user_id: str, token: str, new_password: str) -> None:
        self.resets.consume_reset_token(token, user_id, new_password)

    def authorize(self, access_token: str) -> models.User:
        """Resolve a bearer access token to an active user."""
        if self.store.find_blacklisted_token(access_token):
            raise Unauthorized()

        claims = self.tokens.verify(access_token, expected_type=ACCESS)

        user = self.store.find_user_by_id(claims.user_id)
        if not user:
            raise InvalidToken()

        self._ensure_active(user)
        return user


def build_auth_service(db, settings, tokens: TokenService, hasher: BcryptHasher, mailer: Mailer) -> AuthService:
    """Wire an AuthService around one database session."""
    store = CredentialStore(db)
    return AuthService(
        store=store,
        tokens=tokens,
        hasher=hasher,
        mailer=mailer,
        verification=VerificationService(store, ttl=settings.otp_ttl),
        resets=PasswordResetService(store, hasher, ttl=settings.reset_token_ttl),
    )
