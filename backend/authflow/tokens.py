import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from .errors import InvalidToken, TokenExpired

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    issued_at: datetime
    expires_at: datetime
    token_type: str
    jti: str


class TokenService:
    """Signs and verifies access/refresh JWTs.

    Stateless: revocation (the blacklist) lives in the store and is the
    caller's concern.
    """

    def __init__(self, secret_key: str, access_ttl: timedelta, refresh_ttl: timedelta):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.secret_key = secret_key
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def sign_access(self, user_id: str) -> str:
        return self._sign(user_id, ACCESS, self.access_ttl)

    def sign_refresh(self, user_id: str) -> str:
        return self._sign(user_id, REFRESH, self.refresh_ttl)

    def _sign(self, user_id: str, token_type: str, expires_delta: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = {
            "sub": str(user_id),
            "type": token_type,
            "iat": now,
            "exp": now + expires_delta,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=ALGORITHM)

    def verify(self, token: str, expected_type: Optional[str] = None) -> TokenClaims:
        """Decodes and verifies a JWT token.

        Raises TokenExpired once past ``exp`` and InvalidToken for anything
        else that is wrong with it (signature, shape, or a type other than
        ``expected_type``).
        """
        if not token:
            raise InvalidToken()
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise TokenExpired()
        except JWTError:
            raise InvalidToken()

        user_id = payload.get("sub")
        token_type = payload.get("type")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not user_id or issued_at is None or expires_at is None:
            raise InvalidToken("Invalid token payload")
        if expected_type is not None and token_type != expected_type:
            raise InvalidToken()

        return TokenClaims(
            user_id=user_id,
            issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
            token_type=token_type,
            jti=payload.get("jti", ""),
        )
