import pytest

from security import (TokenError, TokenExpired, create_admin_token, create_user_token, decode_token,
                      hash_password, verify_password)

SECRET = "unit-test-secret-0123"
DAY = 24 * 60 * 60
ISSUED = 1_700_000_000_000


def test_admin_token_round_trip():
    token = create_admin_token(SECRET, "admin", issued_at=ISSUED)
    claims = decode_token(SECRET, token, "admin", DAY, now=ISSUED + 1000)
    assert claims.sub == "admin"
    assert claims.iat == ISSUED
    assert claims.email is None


def test_admin_token_valid_at_exactly_ttl():
    token = create_admin_token(SECRET, "admin", issued_at=ISSUED)
    assert decode_token(SECRET, token, "admin", DAY, now=ISSUED + DAY * 1000).sub == "admin"


def test_admin_token_expired_one_ms_after_ttl():
    token = create_admin_token(SECRET, "admin", issued_at=ISSUED)
    with pytest.raises(TokenExpired):
        decode_token(SECRET, token, "admin", DAY, now=ISSUED + DAY * 1000 + 1)


def test_user_token_carries_email():
    token = create_user_token(SECRET, "abc123", "fox@example.com", issued_at=ISSUED)
    claims = decode_token(SECRET, token, "user", 7 * DAY, now=ISSUED)
    assert (claims.sub, claims.email) == ("abc123", "fox@example.com")


def test_tampered_payload_is_rejected():
    token = create_user_token(SECRET, "abc123", "fox@example.com", issued_at=ISSUED)
    forged = create_user_token(SECRET, "other", "fox@example.com", issued_at=ISSUED)
    mixed = forged.split(".")[0] + "." + token.split(".")[1]
    with pytest.raises(TokenError):
        decode_token(SECRET, mixed, "user", DAY, now=ISSUED)


def test_wrong_secret_and_kind_are_rejected():
    token = create_admin_token(SECRET, "admin", issued_at=ISSUED)
    with pytest.raises(TokenError):
        decode_token("another-secret-0000", token, "admin", DAY, now=ISSUED)
    with pytest.raises(TokenError):
        decode_token(SECRET, token, "user", DAY, now=ISSUED)


@pytest.mark.parametrize("token", ["", "abc", "a.b.c", "!!!.???"])
def test_malformed_tokens(token):
    with pytest.raises(TokenError):
        decode_token(SECRET, token, "admin", DAY)


def test_password_hashing():
    hashed = hash_password("trustno1", rounds=4)
    assert hashed != "trustno1"
    assert verify_password("trustno1", hashed)
    assert not verify_password("trustno2", hashed)
    assert not verify_password("trustno1", None)
    assert not verify_password("trustno1", "not-a-bcrypt-hash")
