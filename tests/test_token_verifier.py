"""
Unit tests for the bearer token verifier.
"""

import time

import jwt
import pytest

from idbridge.modules.auth import AuthError, AuthErrorCode, JWKSTokenVerifier

from conftest import AUDIENCE, DOMAIN, StaticKeySetFetcher, jwk_for


@pytest.fixture
def verifier(key_fetcher):
    return JWKSTokenVerifier(key_fetcher)


def assert_rejected(verifier, token, code):
    with pytest.raises(AuthError) as exc_info:
        verifier.verify(token, AUDIENCE, DOMAIN)
    assert exc_info.value.code == code
    return exc_info.value


def test_valid_token_yields_identity(verifier, make_token, valid_claims, key_fetcher):
    identity = verifier.verify(make_token(valid_claims), AUDIENCE, DOMAIN)

    assert identity.subject == "auth0|user-123"
    assert identity.email == "test@example.com"
    assert key_fetcher.calls == [DOMAIN]


def test_email_defaults_to_empty(verifier, make_token, valid_claims):
    del valid_claims["email"]

    identity = verifier.verify(make_token(valid_claims), AUDIENCE, DOMAIN)

    assert identity.email == ""


def test_audience_array_containing_expected(verifier, make_token, valid_claims):
    valid_claims["aud"] = ["https://other.example.com", AUDIENCE]

    identity = verifier.verify(make_token(valid_claims), AUDIENCE, DOMAIN)

    assert identity.subject == "auth0|user-123"


def test_audience_array_without_expected(verifier, make_token, valid_claims):
    valid_claims["aud"] = ["https://other.example.com"]

    assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.INVALID_AUDIENCE)


def test_wrong_audience_string(verifier, make_token, valid_claims):
    valid_claims["aud"] = "https://other.example.com"

    assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.INVALID_AUDIENCE)


def test_missing_audience(verifier, make_token, valid_claims):
    del valid_claims["aud"]

    assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.INVALID_AUDIENCE)


def test_wrong_issuer(verifier, make_token, valid_claims):
    valid_claims["iss"] = f"https://{DOMAIN}"

    assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.INVALID_ISSUER)


def test_expired_token(verifier, make_token, valid_claims):
    valid_claims["exp"] = int(time.time()) - 60

    assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.EXPIRED)


def test_expiry_boundary(key_fetcher, make_token, valid_claims):
    """Test a token stays valid through its exp second and expires after it."""
    now = 1_700_000_000
    valid_claims["exp"] = now
    token = make_token(valid_claims)

    at_exp = JWKSTokenVerifier(key_fetcher, clock=lambda: now + 0.9)
    assert at_exp.verify(token, AUDIENCE, DOMAIN).subject == "auth0|user-123"

    after_exp = JWKSTokenVerifier(key_fetcher, clock=lambda: now + 1)
    assert_rejected(after_exp, token, AuthErrorCode.EXPIRED)


def test_missing_expiry(verifier, make_token, valid_claims):
    del valid_claims["exp"]

    assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.MISSING_EXPIRY)


def test_non_numeric_expiry(verifier, make_token, valid_claims):
    valid_claims["exp"] = "tomorrow"

    assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.MISSING_EXPIRY)


@pytest.mark.parametrize("expiry", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_expiry(verifier, make_token, valid_claims, expiry):
    valid_claims["exp"] = expiry

    assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.MISSING_EXPIRY)


def test_missing_subject(verifier, make_token, valid_claims):
    del valid_claims["sub"]

    assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.MISSING_SUBJECT)


def test_malformed_token(verifier, key_fetcher):
    assert_rejected(verifier, "not-a-jwt", AuthErrorCode.MALFORMED)
    assert key_fetcher.calls == []


def test_hmac_token_rejected_before_fetch(verifier, valid_claims, key_fetcher):
    """Test algorithm substitution: HS256 signed with public material is refused."""
    token = jwt.encode(valid_claims, "shared-secret-long-enough-for-hmac-sha256", algorithm="HS256", headers={"kid": "key-1"})

    assert_rejected(verifier, token, AuthErrorCode.UNSUPPORTED_ALGORITHM)
    assert key_fetcher.calls == []


def test_unsigned_token_rejected(verifier, valid_claims):
    token = jwt.encode(valid_claims, None, algorithm="none", headers={"kid": "key-1"})

    assert_rejected(verifier, token, AuthErrorCode.UNSUPPORTED_ALGORITHM)


def test_missing_kid(verifier, make_token, valid_claims, key_fetcher):
    assert_rejected(verifier, make_token(valid_claims, kid=None), AuthErrorCode.MISSING_KEY_ID)
    assert key_fetcher.calls == []


def test_key_set_unavailable(failing_fetcher, make_token, valid_claims):
    verifier = JWKSTokenVerifier(failing_fetcher)

    error = assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.KEYSET_UNAVAILABLE)

    assert "connection refused" in error.detail
    assert len(failing_fetcher.calls) == 1


def test_unknown_kid_not_tried_against_other_keys(make_token, valid_claims, private_key):
    """Test an unknown kid is rejected even though a published key would verify it."""
    fetcher = StaticKeySetFetcher({"keys": [jwk_for(private_key, "key-1")]})
    verifier = JWKSTokenVerifier(fetcher)

    assert_rejected(verifier, make_token(valid_claims, kid="rotated-away"), AuthErrorCode.KEY_NOT_FOUND)


def test_signature_from_wrong_key(verifier, make_token, valid_claims, other_private_key):
    token = make_token(valid_claims, key=other_private_key)

    assert_rejected(verifier, token, AuthErrorCode.INVALID_SIGNATURE)


def test_tampered_claims(verifier, make_token, valid_claims):
    token = make_token(valid_claims)
    forged = make_token(dict(valid_claims, sub="auth0|admin"))
    header, _, signature = token.split(".")
    _, payload, _ = forged.split(".")

    assert_rejected(verifier, f"{header}.{payload}.{signature}", AuthErrorCode.INVALID_SIGNATURE)


def test_key_rotation_observed_immediately(make_token, valid_claims, private_key, other_private_key):
    """Test a newly published key is usable on the next verification."""
    fetcher = StaticKeySetFetcher({"keys": [jwk_for(private_key, "key-1")]})
    verifier = JWKSTokenVerifier(fetcher)
    token = make_token(valid_claims, key=other_private_key, kid="key-2")

    assert_rejected(verifier, token, AuthErrorCode.KEY_NOT_FOUND)

    fetcher.document = {"keys": [jwk_for(private_key, "key-1"), jwk_for(other_private_key, "key-2")]}
    assert verifier.verify(token, AUDIENCE, DOMAIN).subject == "auth0|user-123"


def test_error_message_is_generic(verifier, make_token, valid_claims):
    valid_claims["aud"] = "https://other.example.com"

    error = assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.INVALID_AUDIENCE)

    assert str(error) == "invalid audience"
    assert "other.example.com" in error.detail


@pytest.mark.parametrize("override", [{"x5c": 7}, {"n": 12345}, {"kid": ["key-1"]}])
def test_mistyped_published_key(make_token, valid_claims, private_key, override):
    """Test a key set with wrongly typed JWK fields is treated as unavailable."""
    fetcher = StaticKeySetFetcher({"keys": [dict(jwk_for(private_key, "key-1"), **override)]})
    verifier = JWKSTokenVerifier(fetcher)

    assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.KEYSET_UNAVAILABLE)


def test_unusable_modulus(make_token, valid_claims, private_key):
    fetcher = StaticKeySetFetcher({"keys": [dict(jwk_for(private_key, "key-1"), n="!!!!")]})
    verifier = JWKSTokenVerifier(fetcher)

    assert_rejected(verifier, make_token(valid_claims), AuthErrorCode.INVALID_SIGNATURE)
