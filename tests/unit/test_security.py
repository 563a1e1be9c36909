"""Unit tests for authentication utilities."""

from unittest.mock import patch
from uuid import uuid4

import pytest

from procapacity.config import settings
from procapacity.core.security import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    create_token_pair,
    decode_token,
    generate_url_token,
    hash_password,
    verify_access_token,
    verify_password,
    verify_refresh_token,
)


class TestPasswordHashing:
    """Tests for password hashing utilities."""

    def test_hash_password_creates_hash(self):
        """Verify password hashing produces an Argon2 hash."""
        hashed = hash_password("SecurePass123")

        assert hashed != "SecurePass123"
        assert hashed.startswith("$argon2")

    def test_verify_password(self):
        """Verify correct and incorrect passwords."""
        hashed = hash_password("SecurePass123")

        assert verify_password("SecurePass123", hashed) is True
        assert verify_password("WrongPass123", hashed) is False

    def test_verify_password_bad_hash(self):
        """Verify a malformed stored hash fails closed."""
        assert verify_password("SecurePass123", "not-a-hash") is False


class TestJWTTokens:
    """Tests for JWT token creation and verification."""

    def test_token_pair_claims(self):
        """Verify the access token carries workspace and role."""
        user_id, workspace_id = uuid4(), uuid4()
        access, refresh = create_token_pair(user_id, workspace_id, "OWNER")

        payload = verify_access_token(access)
        assert payload["sub"] == str(user_id)
        assert payload["workspace_id"] == str(workspace_id)
        assert payload["role"] == "OWNER"
        assert payload["type"] == ACCESS_TOKEN_TYPE

        assert verify_refresh_token(refresh)["type"] == REFRESH_TOKEN_TYPE

    def test_refresh_tokens_are_unique(self):
        """Verify two refresh tokens issued together differ."""
        user_id = uuid4()

        assert create_refresh_token(user_id) != create_refresh_token(user_id)

    def test_verify_access_token_rejects_refresh_token(self):
        """Verify access token verification rejects refresh tokens."""
        with pytest.raises(ValueError, match="Invalid token type"):
            verify_access_token(create_refresh_token(uuid4()))

    def test_verify_refresh_token_rejects_access_token(self):
        """Verify refresh token verification rejects access tokens."""
        with pytest.raises(ValueError, match="Invalid token type"):
            verify_refresh_token(create_access_token(uuid4(), uuid4(), "MEMBER"))

    def test_expired_token(self):
        """Verify an expired token is reported as such."""
        with patch.object(settings, "ACCESS_TOKEN_EXPIRE_MINUTES", -1):
            token = create_access_token(uuid4(), uuid4(), "OWNER")

        with pytest.raises(ValueError, match="Token has expired"):
            verify_access_token(token)

    def test_decode_invalid_token(self):
        """Verify invalid token raises error."""
        with pytest.raises(ValueError, match="Invalid token"):
            decode_token("invalid.token.here")


def test_url_tokens_are_64_hex_characters():
    token = generate_url_token()

    assert len(token) == 64
    int(token, 16)
    assert token != generate_url_token()
