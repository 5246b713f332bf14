"""
WifiAtlas Backend — Password Hashing & Token Tests
====================================================
"""

import uuid
from datetime import timedelta

import jwt
import pytest

from wifiatlas.config import settings
from wifiatlas.exceptions import AuthenticationError
from wifiatlas.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestPasswordHashing:

    def test_hash_is_salted(self):
        assert hash_password("password123") != hash_password("password123")

    def test_verify_roundtrip(self):
        hashed = hash_password("password123")
        assert verify_password("password123", hashed)
        assert not verify_password("password124", hashed)

    def test_malformed_hash_is_rejected_not_raised(self):
        assert verify_password("password123", "not-a-bcrypt-hash") is False


class TestAccessTokens:

    def test_claims(self):
        user_id, org_id = uuid.uuid4(), uuid.uuid4()
        payload = decode_access_token(create_access_token(user_id, "a@example.com", org_id))

        assert payload["sub"] == user_id
        assert payload["email"] == "a@example.com"
        assert payload["org_id"] == str(org_id)
        assert payload["exp"] > payload["iat"]

    def test_no_organization_claim_is_null(self):
        payload = decode_access_token(create_access_token(uuid.uuid4(), "a@example.com", None))
        assert payload["org_id"] is None

    def test_expired_token_is_403(self):
        token = create_access_token(
            uuid.uuid4(), "a@example.com", None, expires_in=timedelta(seconds=-10)
        )
        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.status_code == 403

    def test_foreign_signature_is_403(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4())}, "some-other-secret", algorithm=settings.jwt_algorithm
        )
        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.status_code == 403

    def test_non_uuid_subject_is_403(self):
        token = jwt.encode(
            {"sub": "not-a-uuid"}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
        )
        with pytest.raises(AuthenticationError):
            decode_access_token(token)
