"""Tests for bcrypt password hashing."""

import pytest

from hrm.security.passwords import PasswordError, hash_password, verify_password


def test_hash_and_verify():
    hashed = hash_password("correct horse", rounds=4)

    assert hashed.startswith("$2b$04$")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_same_password_gets_different_salts():
    assert hash_password("s3cret-pass", rounds=4) != hash_password("s3cret-pass", rounds=4)


def test_missing_hash_never_verifies():
    assert not verify_password("anything", None)
    assert not verify_password("anything", "")


@pytest.mark.parametrize("password", ["", "   ", "x" * 73, "é" * 37])
def test_unusable_passwords_are_rejected(password):
    with pytest.raises(PasswordError):
        hash_password(password, rounds=4)


def test_overlong_password_does_not_verify():
    hashed = hash_password("x" * 72, rounds=4)
    assert not verify_password("x" * 73, hashed)
