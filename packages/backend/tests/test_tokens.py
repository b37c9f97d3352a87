"""Token engine tests — issue, verify, expiry, tampering.

Learn: The engine takes its clock as a constructor argument, so expiry is
tested by advancing a FakeClock rather than sleeping. Tampering is done
on the raw base64url segments: change the payload and keep the old
signature, or change one character of the signature.
"""

import base64
import json
from datetime import timedelta

import jwt
import pytest

from conftest import TEST_SECRET, FakeClock
from shareme.auth.jwt import TokenEngine, TokenError, TokenFailure

EMAIL = "alice@example.com"
USER_ID = "6f1c9a52-3d7e-4b8a-9c1f-2e4d5a6b7c8d"


@pytest.fixture()
def engine(clock):
    return TokenEngine(TEST_SECRET, ttl=timedelta(minutes=60), clock=clock)


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _claims(token: str) -> dict:
    segment = token.split(".")[1]
    return json.loads(base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4)))


def _failure(engine: TokenEngine, token: str) -> TokenFailure:
    with pytest.raises(TokenError) as exc:
        engine.verify(token)
    return exc.value.failure


# ═══════════════════════════════════════════════════════════
# Issue + verify
# ═══════════════════════════════════════════════════════════


def test_roundtrip_returns_original_claims(engine, clock):
    token = engine.issue(EMAIL, USER_ID)
    identity = engine.verify(token)

    assert identity.email == EMAIL
    assert identity.user_id == USER_ID
    assert identity.issued_at == clock.now
    assert identity.expires_at == clock.now + timedelta(minutes=60)
    assert identity.expires_at > identity.issued_at


def test_payload_carries_expected_claims(engine):
    claims = _claims(engine.issue(EMAIL, USER_ID))
    assert claims["sub"] == EMAIL
    assert claims["uid"] == USER_ID
    assert claims["type"] == "access"
    assert claims["exp"] - claims["iat"] == 3600


def test_custom_ttl(engine, clock):
    token = engine.issue(EMAIL, USER_ID, ttl=timedelta(minutes=5))
    assert engine.verify(token).expires_at == clock.now + timedelta(minutes=5)


def test_non_positive_ttl_rejected(engine):
    with pytest.raises(ValueError):
        engine.issue(EMAIL, USER_ID, ttl=timedelta(0))
    with pytest.raises(ValueError):
        engine.issue(EMAIL, USER_ID, ttl=timedelta(seconds=-1))


def test_empty_secret_rejected():
    with pytest.raises(ValueError):
        TokenEngine("")


def test_extract_claims(engine):
    token = engine.issue(EMAIL, USER_ID)
    assert engine.extract_email(token) == EMAIL
    assert engine.extract_user_id(token) == USER_ID


def test_verification_is_repeatable(engine):
    token = engine.issue(EMAIL, USER_ID)
    assert engine.verify(token) == engine.verify(token)


# ═══════════════════════════════════════════════════════════
# Expiry
# ═══════════════════════════════════════════════════════════


def test_valid_until_just_before_expiry(engine, clock):
    token = engine.issue(EMAIL, USER_ID)
    clock.advance(minutes=59, seconds=59)
    assert engine.verify(token).email == EMAIL


def test_expired_at_exp(engine, clock):
    token = engine.issue(EMAIL, USER_ID)
    clock.advance(minutes=60)
    assert _failure(engine, token) == TokenFailure.EXPIRED


def test_extraction_after_expiry_fails(engine, clock):
    token = engine.issue(EMAIL, USER_ID)
    clock.advance(hours=2)
    with pytest.raises(TokenError):
        engine.extract_email(token)
    with pytest.raises(TokenError):
        engine.extract_user_id(token)


def test_expiry_uses_verifier_clock(clock):
    """A token minted by a fast clock is judged by the verifier's clock."""
    issuer_clock = FakeClock(clock.now - timedelta(hours=3))
    issuer = TokenEngine(TEST_SECRET, clock=issuer_clock)
    verifier = TokenEngine(TEST_SECRET, clock=clock)

    token = issuer.issue(EMAIL, USER_ID)
    assert issuer.verify(token).email == EMAIL
    assert _failure(verifier, token) == TokenFailure.EXPIRED


def test_expired_wins_over_bad_signature(engine, clock):
    token = engine.issue(EMAIL, USER_ID)
    other = TokenEngine("another-secret-0123456789abcdef0123", clock=clock)
    clock.advance(hours=2)
    assert _failure(other, token) == TokenFailure.EXPIRED


# ═══════════════════════════════════════════════════════════
# Tampering
# ═══════════════════════════════════════════════════════════


def test_tampered_payload_fails_signature(engine):
    header, _, signature = engine.issue(EMAIL, USER_ID).split(".")
    claims = _claims(engine.issue(EMAIL, USER_ID))
    claims["uid"] = "00000000-0000-0000-0000-000000000000"
    forged = ".".join([header, _b64(claims), signature])

    assert _failure(engine, forged) == TokenFailure.INVALID_SIGNATURE


def test_extended_expiry_fails_signature(engine):
    token = engine.issue(EMAIL, USER_ID)
    header, _, signature = token.split(".")
    claims = _claims(token)
    claims["exp"] += 86400
    forged = ".".join([header, _b64(claims), signature])

    assert _failure(engine, forged) == TokenFailure.INVALID_SIGNATURE


def test_tampered_signature_fails(engine):
    header, payload, signature = engine.issue(EMAIL, USER_ID).split(".")
    mid = len(signature) // 2
    flipped = "A" if signature[mid] != "A" else "B"
    forged = ".".join([header, payload, signature[:mid] + flipped + signature[mid + 1:]])

    assert _failure(engine, forged) == TokenFailure.INVALID_SIGNATURE


def test_wrong_secret_fails_signature(engine, clock):
    other = TokenEngine("another-secret-0123456789abcdef0123", clock=clock)
    assert _failure(engine, other.issue(EMAIL, USER_ID)) == TokenFailure.INVALID_SIGNATURE


# ═══════════════════════════════════════════════════════════
# Malformed
# ═══════════════════════════════════════════════════════════


@pytest.mark.parametrize("token", ["", "garbage", "a.b", "a.b.c", "...."])
def test_garbage_is_malformed(engine, token):
    assert _failure(engine, token) == TokenFailure.MALFORMED


def test_missing_claims_is_malformed(engine, clock):
    iat = int(clock.now.timestamp())
    token = jwt.encode({"sub": EMAIL, "iat": iat, "exp": iat + 60}, TEST_SECRET)
    assert _failure(engine, token) == TokenFailure.MALFORMED


def test_unsigned_token_is_malformed(engine, clock):
    iat = int(clock.now.timestamp())
    header = _b64({"alg": "none", "typ": "JWT"})
    payload = _b64({"sub": EMAIL, "uid": USER_ID, "iat": iat, "exp": iat + 60})
    assert _failure(engine, f"{header}.{payload}.") == TokenFailure.MALFORMED


def test_exp_before_iat_is_malformed(engine, clock):
    iat = int(clock.now.timestamp())
    token = jwt.encode(
        {"sub": EMAIL, "uid": USER_ID, "iat": iat, "exp": iat - 10}, TEST_SECRET
    )
    assert _failure(engine, token) == TokenFailure.MALFORMED


def test_non_access_token_is_malformed(engine, clock):
    iat = int(clock.now.timestamp())
    token = jwt.encode(
        {"sub": EMAIL, "uid": USER_ID, "type": "refresh", "iat": iat, "exp": iat + 60},
        TEST_SECRET,
    )
    assert _failure(engine, token) == TokenFailure.MALFORMED
