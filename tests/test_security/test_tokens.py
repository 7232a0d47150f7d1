"""Tests for access/refresh token issuing and verification."""

import time
from types import SimpleNamespace

import jwt
import pytest

from hrm.security.tokens import ACCESS, REFRESH, TokenError, decode_token, issue_token_pair, user_id_from_claims
from hrm.settings import Settings


@pytest.fixture
def settings():
    return Settings(
        jwt_secret="test-access-secret-0123456789abcdef0123",
        jwt_refresh_secret="test-refresh-secret-0123456789abcdef012",
        jwt_issuer="hrm-test",
    )


USER = SimpleNamespace(id=42, role_id="hr_admin", department_id=3)


def test_issue_and_decode_access_token(settings):
    pair = issue_token_pair(USER, settings)

    claims = decode_token(pair.access_token, settings)

    assert claims["sub"] == "42"
    assert claims["role"] == "hr_admin"
    assert claims["dept"] == 3
    assert claims["type"] == ACCESS
    assert claims["exp"] - claims["iat"] == settings.access_token_ttl_seconds
    assert pair.expires_in == 15 * 60
    assert pair.token_type == "bearer"
    assert user_id_from_claims(claims) == 42


def test_refresh_token_lifetime(settings):
    pair = issue_token_pair(USER, settings)

    claims = decode_token(pair.refresh_token, settings, expected_type=REFRESH)

    assert claims["exp"] - claims["iat"] == 7 * 24 * 60 * 60
    assert "role" not in claims


def test_refresh_token_is_not_an_access_token(settings):
    pair = issue_token_pair(USER, settings)
    with pytest.raises(TokenError):
        decode_token(pair.refresh_token, settings, expected_type=ACCESS)
    with pytest.raises(TokenError):
        decode_token(pair.access_token, settings, expected_type=REFRESH)


def test_token_type_claim_must_match(settings):
    now = int(time.time())
    token = jwt.encode(
        {"sub": "1", "type": REFRESH, "iss": "hrm-test", "iat": now, "exp": now + 60},
        settings.jwt_secret,
        algorithm="HS256",
    )
    with pytest.raises(TokenError, match="expected access"):
        decode_token(token, settings)


def test_expired_token_rejected(settings):
    now = int(time.time())
    token = jwt.encode(
        {"sub": "1", "type": ACCESS, "iss": "hrm-test", "iat": now - 120, "exp": now - 60},
        settings.jwt_secret,
        algorithm="HS256",
    )
    with pytest.raises(TokenError, match="expired"):
        decode_token(token, settings)


def test_wrong_issuer_rejected(settings):
    now = int(time.time())
    token = jwt.encode(
        {"sub": "1", "type": ACCESS, "iss": "someone-else", "iat": now, "exp": now + 60},
        settings.jwt_secret,
        algorithm="HS256",
    )
    with pytest.raises(TokenError, match="issuer"):
        decode_token(token, settings)


def test_missing_subject_rejected(settings):
    now = int(time.time())
    token = jwt.encode(
        {"type": ACCESS, "iss": "hrm-test", "iat": now, "exp": now + 60},
        settings.jwt_secret,
        algorithm="HS256",
    )
    with pytest.raises(TokenError):
        decode_token(token, settings)


def test_garbage_token_rejected(settings):
    with pytest.raises(TokenError):
        decode_token("not-a-jwt", settings)


def test_non_numeric_subject_rejected():
    with pytest.raises(TokenError):
        user_id_from_claims({"sub": "abc"})
