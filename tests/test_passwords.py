import pytest

from familyhub.auth.passwords import (
    PasswordHasher,
    check_family_password,
    check_personal_password,
)
from familyhub.errors import InvalidCredentials, NotFound, PasswordPolicyViolation


def test_personal_password_policy():
    check_personal_password("abc123")

    with pytest.raises(PasswordPolicyViolation):
        check_personal_password("abcdef")  # no digit
    with pytest.raises(PasswordPolicyViolation):
        check_personal_password("ab1")  # too short


def test_family_password_needs_length_only():
    check_family_password("secret")

    with pytest.raises(PasswordPolicyViolation):
        check_family_password("abc")


def test_hasher_round_trip_and_rejects_wrong_password():
    hasher = PasswordHasher(rounds=4)
    hashed = hasher.hash("alice12")

    assert hashed != "alice12"
    assert hasher.verify("alice12", hashed)
    assert not hasher.verify("alice13", hashed)
    assert not hasher.verify("alice12", "not-a-bcrypt-hash")


def test_hasher_uses_configured_cost():
    hashed = PasswordHasher(rounds=5).hash("pw12345")
    assert hashed.startswith("$2b$05$")


def test_verify_family_by_name(services, smith):
    family = services.credentials.verify_family("Smith Family", "secret1")
    assert family.id == smith["family_id"]

    # Surrounding whitespace is ignored
    assert services.credentials.verify_family("  Smith Family ", "secret1").id == smith["family_id"]

    with pytest.raises(InvalidCredentials):
        services.credentials.verify_family("Smith Family", "wrong!")
    with pytest.raises(NotFound):
        services.credentials.verify_family("Jones Family", "secret1")


def test_password_domains_are_independent(services, smith):
    # The family secret does not open Alice's account and vice versa
    with pytest.raises(InvalidCredentials):
        services.credentials.verify_user(smith["alice_id"], "secret1")
    with pytest.raises(InvalidCredentials):
        services.credentials.verify_family("Smith Family", "alice12")

    user = services.credentials.verify_user(smith["alice_id"], "alice12")
    assert user.full_name == "Alice"


def test_verify_user_unknown_id(services):
    with pytest.raises(NotFound):
        services.credentials.verify_user("missing", "alice12")


def test_verify_family_by_id(services, smith):
    family = services.credentials.verify_family_id(smith["family_id"], "secret1")
    assert family.family_name == "Smith Family"

    with pytest.raises(InvalidCredentials):
        services.credentials.verify_family_id(smith["family_id"], "alice12")
    with pytest.raises(NotFound):
        services.credentials.verify_family_id("missing", "secret1")
