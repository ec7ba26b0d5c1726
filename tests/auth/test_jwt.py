"""Tests for access token creation and verification."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from qaforum.auth.jwt import create_access_token, verify_token
from qaforum.config import get_settings


class TestAccessToken:
    def test_create_and_verify(self):
        token = create_access_token(user_id=7, email="alice@example.com")
        payload = verify_token(token)
        assert payload["sub"] == "7"
        assert payload["id"] == 7
        assert payload["email"] == "alice@example.com"
        assert payload["iss"] == get_settings().jwt_issuer

    def test_expired_rejected(self):
        issued = datetime.now(timezone.utc) - timedelta(minutes=get_settings().jwt_access_token_expire_minutes + 1)
        token = create_access_token(user_id=7, email="alice@example.com", now=issued)
        with pytest.raises(jwt.InvalidTokenError, match="Token has expired"):
            verify_token(token)

    def test_wrong_type_rejected(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "7", "type": "refresh", "iss": settings.jwt_issuer},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(token)

    def test_foreign_secret_rejected(self):
        token = jwt.encode(
            {"sub": "7", "type": "access", "iss": get_settings().jwt_issuer},
            "some-other-secret-that-is-long-enough",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)
