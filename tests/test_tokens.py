"""Tests for access/refresh token signing and verification."""

from datetime import timedelta

import pytest
from jose import jwt

from authflow.errors import InvalidToken, TokenExpired
from authflow.tokens import ACCESS, ALGORITHM, REFRESH, TokenService


class TestSignAndVerify:

    def test_access_token_round_trips_user_id(self, tokens):
        claims = tokens.verify(tokens.sign_access("user-1"))
        assert claims.user_id == "user-1"
        assert claims.token_type == ACCESS
        assert claims.expires_at > claims.issued_at

    def test_refresh_token_round_trips_user_id(self, tokens):
        claims = tokens.verify(tokens.sign_refresh("user-1"))
        assert claims.user_id == "user-1"
        assert claims.token_type == REFRESH

    def test_refresh_outlives_access(self, tokens):
        access = tokens.verify(tokens.sign_access("user-1"))
        refresh = tokens.verify(tokens.sign_refresh("user-1"))
        assert refresh.expires_at > access.expires_at

    def test_refresh_lifetime_is_fourteen_days(self, tokens):
        claims = tokens.verify(tokens.sign_refresh("user-1"))
        lifetime = claims.expires_at - claims.issued_at
        assert lifetime == timedelta(days=14)

    def test_tokens_issued_together_are_distinct(self, tokens):
        # jti keeps same-second tokens apart so each can be blacklisted alone
        assert tokens.sign_refresh("user-1") != tokens.sign_refresh("user-1")


class TestRejection:

    def test_expired_token_raises_token_expired(self):
        expired = TokenService("secret", timedelta(seconds=-30), timedelta(seconds=-30))
        with pytest.raises(TokenExpired):
            expired.verify(expired.sign_access("user-1"))

    def test_token_expired_is_an_invalid_token(self):
        assert issubclass(TokenExpired, InvalidToken)

    def test_wrong_secret_is_invalid(self, tokens):
        other = TokenService("another-secret", timedelta(minutes=5), timedelta(days=1))
        with pytest.raises(InvalidToken) as exc_info:
            tokens.verify(other.sign_access("user-1"))
        assert not isinstance(exc_info.value, TokenExpired)

    def test_garbage_is_invalid(self, tokens):
        with pytest.raises(InvalidToken):
            tokens.verify("not-a-jwt")

    def test_empty_is_invalid(self, tokens):
        with pytest.raises(InvalidToken):
            tokens.verify("")

    def test_type_mismatch_is_invalid(self, tokens):
        with pytest.raises(InvalidToken):
            tokens.verify(tokens.sign_access("user-1"), expected_type=REFRESH)

    def test_missing_subject_is_invalid(self, settings, tokens):
        token = jwt.encode({"type": ACCESS, "iat": 0, "exp": 4102444800}, settings.secret_key, algorithm=ALGORITHM)
        with pytest.raises(InvalidToken):
            tokens.verify(token)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenService("", timedelta(minutes=5), timedelta(days=14))
