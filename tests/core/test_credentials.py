"""Credential Parsing — tests for pure token decoding.

Tests cover:
    - Token shape validation (3 non-empty segments, base64url, JSON object)
    - exp claim parsing (int, float, numeric string; bool and garbage rejected)
    - Claim read order (exp before key_type)
    - Inclusive expiry
    - Credential repr never leaks the token
"""

import json

import pytest

from verifyflow.core.credentials import (
    Credential,
    decode_claims,
    decode_payload,
    is_expired,
    parse_expiration,
)
from verifyflow.core.domain_types import KeyType
from verifyflow.core.errors import ClientError

from tests.tokens import encode_segment, make_token, raw_token


def _code_of(token: str) -> str:
    with pytest.raises(ClientError) as exc_info:
        decode_claims(token)
    return exc_info.value.code


# ==============================================================================
# Token shape
# ==============================================================================


@pytest.mark.parametrize("token", [
    "only.two",
    "a.b.c.d",
    "a..c",
    ".b.c",
    "a.b.",
    "",
])
def test_wrong_segment_shape_is_invalid_format(token):
    assert _code_of(token) == "invalid_jwt_format"


def test_non_base64_payload_is_invalid_format():
    assert _code_of(raw_token("!!not-base64!!")) == "invalid_jwt_format"


def test_non_json_payload_is_invalid_format():
    assert _code_of(raw_token(encode_segment(b"not json at all"))) == "invalid_jwt_format"


def test_json_array_payload_is_invalid_format():
    assert _code_of(raw_token(encode_segment(b"[1, 2, 3]"))) == "invalid_jwt_format"


def test_non_json_header_is_invalid_format():
    payload = encode_segment(json.dumps({"exp": 1, "key_type": "sdk"}).encode())
    assert _code_of(f"aGVhZGVy.{payload}.c2lnbmF0dXJl") == "invalid_jwt_format"


def test_url_safe_unpadded_payload_decodes():
    payload = {"exp": 1, "key_type": "sdk", "note": "??>>~~"}
    assert decode_payload(raw_token(encode_segment(json.dumps(payload).encode()))) == payload


def test_signature_is_not_verified():
    token = make_token({"exp": 1, "key_type": "sdk"})
    header, payload, _ = token.split(".")
    assert decode_payload(f"{header}.{payload}.c2lnbmF0dXJl")["key_type"] == "sdk"


# ==============================================================================
# Claims
# ==============================================================================


def test_reads_int_exp_and_key_type():
    claims = decode_claims(make_token({"exp": 1_700_000_000, "key_type": "sdk"}))
    assert claims.exp == 1_700_000_000.0
    assert claims.key_type == "sdk"


def test_numeric_string_exp_is_accepted():
    claims = decode_claims(make_token({"exp": "1700000000", "key_type": "sdk"}))
    assert claims.exp == 1_700_000_000.0


def test_float_exp_is_accepted():
    claims = decode_claims(make_token({"exp": 1700000000.5, "key_type": "sdk"}))
    assert claims.exp == 1700000000.5


@pytest.mark.parametrize("exp", [True, "soon", None, [1], {"at": 1}])
def test_unparseable_exp_is_missing_expiration(exp):
    assert _code_of(make_token({"exp": exp, "key_type": "sdk"})) == "missing_expiration"


def test_missing_exp_is_missing_expiration():
    assert _code_of(make_token({"key_type": "sdk"})) == "missing_expiration"


def test_missing_both_claims_reports_expiration_first():
    assert _code_of(make_token({})) == "missing_expiration"


def test_missing_key_type_is_missing_key_type():
    assert _code_of(make_token({"exp": 1})) == "missing_key_type"


def test_non_string_key_type_is_missing_key_type():
    assert _code_of(make_token({"exp": 1, "key_type": 7})) == "missing_key_type"


def test_parse_expiration_rejects_non_finite():
    assert parse_expiration("nan") is None
    assert parse_expiration(float("inf")) is None


@pytest.mark.parametrize("exp", [10**400, -(10**400), "1" * 400 + "e400"])
def test_exp_beyond_float_range_is_missing_expiration(exp):
    assert parse_expiration(exp) is None
    assert _code_of(make_token({"exp": exp, "key_type": "sdk"})) == "missing_expiration"


# ==============================================================================
# Expiry and Credential
# ==============================================================================


def test_expiry_is_inclusive():
    assert is_expired(100.0, 100.0)
    assert is_expired(100.0, 100.1)
    assert not is_expired(100.0, 99.9)


def test_credential_repr_hides_token():
    credential = Credential("secret.token.value", KeyType.SDK, 10.0)
    assert "secret" not in repr(credential)
    assert "sdk" in repr(credential)
