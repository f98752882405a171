from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from familyhub.auth.tokens import TokenIssuer
from familyhub.errors import TokenExpired, TokenInvalidSignature, TokenMalformed


@pytest.fixture()
def issuer():
    return TokenIssuer("test-secret")


def test_issue_and_verify(issuer):
    token = issuer.issue_token("user-1", "family-1", "admin")
    claims = issuer.verify_token(token)

    assert claims.user_id == "user-1"
    assert claims.family_id == "family-1"
    assert claims.role == "admin"

    # Absolute 24 hour lifetime
    remaining = claims.expires_at - datetime.now(timezone.utc)
    assert timedelta(hours=23, minutes=59) < remaining <= timedelta(hours=24)


def test_expired_token(issuer):
    expired = TokenIssuer("test-secret", expire_minutes=-1)
    token = expired.issue_token("user-1", "family-1", "member")

    with pytest.raises(TokenExpired):
        issuer.verify_token(token)


def test_wrong_signature(issuer):
    token = TokenIssuer("other-secret").issue_token("user-1", "family-1", "member")

    with pytest.raises(TokenInvalidSignature):
        issuer.verify_token(token)


def test_tampered_payload_fails_signature(issuer):
    token = issuer.issue_token("user-1", "family-1", "member")
    forged = jwt.encode(
        {"sub": "user-1", "family_id": "family-2", "role": "admin",
         "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "attacker",
        algorithm="HS256",
    )
    header, _, signature = token.split(".")
    _, payload, _ = forged.split(".")

    with pytest.raises(TokenInvalidSignature):
        issuer.verify_token(f"{header}.{payload}.{signature}")


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
def test_malformed(issuer, token):
    with pytest.raises(TokenMalformed):
        issuer.verify_token(token)


def test_missing_claims_is_malformed(issuer):
    token = jwt.encode(
        {"sub": "user-1", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        "test-secret",
        algorithm="HS256",
    )
    with pytest.raises(TokenMalformed):
        issuer.verify_token(token)
