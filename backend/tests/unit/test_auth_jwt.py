"""Unit tests for JWT token handling and principal resolution

Tests cover:
- Token creation with DocFlow claims
- Token decoding and validation
- Token expiration handling
- Invalid token handling
- Building principals from claims
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from docflow.auth.dependencies import principal_from_claims
from docflow.auth.jwt import create_access_token, decode_token
from docflow.auth.roles import Capability, DocFlowRole
from docflow.config import get_settings


@pytest.fixture
def reset_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestCreateAccessToken:
    """Test JWT token creation"""

    def test_token_contains_claims(self):
        token = create_access_token(user_id=4, roles=["branch_user"], ba_code=1101)
        payload = decode_token(token)

        assert payload["sub"] == "4"
        assert payload["roles"] == ["branch_user"]
        assert payload["ba_code"] == 1101
        assert payload["region_code"] == "R6"
        assert payload["exp"] > payload["iat"]

    def test_ba_code_omitted_when_absent(self):
        payload = decode_token(create_access_token(user_id=10, roles=["uploader"]))
        assert "ba_code" not in payload

    def test_expiration_window(self):
        payload = decode_token(create_access_token(user_id=1, roles=["admin"], expires_minutes=15))
        assert payload["exp"] - payload["iat"] == 15 * 60


class TestDecodeToken:
    """Test JWT token validation"""

    def test_expired_token_rejected(self):
        token = create_access_token(user_id=4, roles=["branch_user"], expires_minutes=-1)
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_token(token)

    def test_tampered_token_rejected(self):
        token = create_access_token(user_id=4, roles=["branch_user"])
        header, payload, signature = token.split(".")
        tampered = ".".join([header, payload, signature[::-1]])
        with pytest.raises(jwt.InvalidTokenError):
            decode_token(tampered)

    def test_token_signed_with_other_secret_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "4", "roles": ["admin"], "exp": int((now + timedelta(minutes=5)).timestamp())},
            "some-other-secret-that-is-long-enough-for-hs256",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            decode_token(token)

    def test_token_without_expiry_rejected(self):
        token = jwt.encode(
            {"sub": "4", "roles": ["branch_user"]},
            get_settings().JWT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            decode_token(token)

    def test_missing_secret(self, monkeypatch, reset_settings):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        get_settings.cache_clear()
        with pytest.raises(ValueError, match="JWT_SECRET"):
            create_access_token(user_id=1, roles=["admin"])


class TestPrincipalFromClaims:
    def test_claims_map_to_principal(self):
        principal = principal_from_claims(
            {"sub": "3", "roles": ["branch_manager"], "ba_code": "1101", "region_code": "R7"}
        )
        assert principal.user_id == 3
        assert principal.roles == frozenset({DocFlowRole.BRANCH_MANAGER})
        assert principal.ba_code == 1101
        assert principal.region_code == "R7"
        assert principal.has_capability(Capability.DOCUMENTS_UPDATE_STATUS)

    def test_single_role_string(self):
        principal = principal_from_claims({"sub": "1", "roles": "admin"})
        assert principal.has_role(DocFlowRole.ADMIN)
        assert principal.region_code == "R6"

    def test_unknown_roles_grant_nothing(self):
        principal = principal_from_claims({"sub": "7", "roles": ["superuser"]})
        assert principal.roles == frozenset()
        assert principal.capabilities == frozenset()

    def test_missing_subject(self):
        with pytest.raises(ValueError):
            principal_from_claims({"roles": ["admin"]})

    def test_non_numeric_subject(self):
        with pytest.raises(ValueError):
            principal_from_claims({"sub": "abc", "roles": ["admin"]})
