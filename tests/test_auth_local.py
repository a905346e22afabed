import pytest

from shopcrm.auth_local import (
    create_access_token, decode_access_token, hash_password, verify_password,
)


def test_hash_is_bcrypt_and_verifies():
    hashed = hash_password("correct horse")
    assert hashed.startswith("$2b$")
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_each_hash_is_salted():
    assert hash_password("same") != hash_password("same")


@pytest.mark.parametrize("stored", [None, "", "plain-text", "pbkdf2_sha256$1$abc$def"])
def test_non_bcrypt_values_never_verify(stored):
    assert verify_password("plain-text", stored) is False


def test_long_passwords_are_accepted():
    password = "x" * 100
    hashed = hash_password(password)
    assert verify_password(password, hashed)
    # bcrypt only sees the first 72 bytes
    assert verify_password("x" * 72, hashed)


def test_token_round_trip_carries_role():
    payload = decode_access_token(create_access_token("7", "admin", role="OWNER"))
    assert payload["sub"] == "7"
    assert payload["user_type"] == "admin"
    assert payload["role"] == "OWNER"


def test_tampered_token_is_rejected():
    header, _, signature = create_access_token("7", "customer").split(".")
    forged = create_access_token("7", "admin", role="OWNER").split(".")[1]
    assert decode_access_token(f"{header}.{forged}.{signature}") is None
