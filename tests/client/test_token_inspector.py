import base64
import json
import time

import pytest

from ethshot.client.token_inspector import decode_payload, extract_wallet_from_jwt, is_jwt_expired
from ethshot.core.errors import DecodeError
from tests.conftest import TEST_WALLET, make_unsigned_token

MIXED_CASE_WALLET = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


class TestExtractWallet:
    """Reading the wallet claim without verifying the signature"""

    def test_wallet_address_claim(self):
        token = make_unsigned_token({"walletAddress": MIXED_CASE_WALLET})

        assert extract_wallet_from_jwt(token) == MIXED_CASE_WALLET.lower()

    def test_snake_case_claim(self):
        token = make_unsigned_token({"wallet_address": TEST_WALLET})

        assert extract_wallet_from_jwt(token) == TEST_WALLET

    def test_falls_back_to_sub(self):
        token = make_unsigned_token({"sub": MIXED_CASE_WALLET})

        assert extract_wallet_from_jwt(token) == MIXED_CASE_WALLET.lower()

    def test_prefers_wallet_address_over_sub(self):
        token = make_unsigned_token({"sub": "someone-else", "walletAddress": TEST_WALLET})

        assert extract_wallet_from_jwt(token) == TEST_WALLET

    def test_url_safe_unpadded_segments(self):
        body = base64.urlsafe_b64encode(json.dumps({"walletAddress": TEST_WALLET}).encode()).decode().rstrip("=")

        assert extract_wallet_from_jwt(f"eyJhbGciOiJIUzI1NiJ9.{body}.sig") == TEST_WALLET

    def test_no_wallet_claim(self):
        with pytest.raises(DecodeError):
            extract_wallet_from_jwt(make_unsigned_token({"role": "authenticated"}))


class TestDecodePayload:
    @pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d", "a..c"])
    def test_wrong_shape(self, token):
        with pytest.raises(DecodeError):
            decode_payload(token)

    def test_payload_not_json(self):
        body = base64.urlsafe_b64encode(b"not json").decode()

        with pytest.raises(DecodeError):
            decode_payload(f"h.{body}.s")

    def test_payload_not_object(self):
        body = base64.urlsafe_b64encode(b"[1, 2, 3]").decode()

        with pytest.raises(DecodeError):
            decode_payload(f"h.{body}.s")


class TestIsJwtExpired:
    def test_future_exp(self):
        token = make_unsigned_token({"sub": TEST_WALLET, "exp": int(time.time()) + 3600})

        assert is_jwt_expired(token) is False

    def test_past_exp(self):
        token = make_unsigned_token({"sub": TEST_WALLET, "exp": int(time.time()) - 3600})

        assert is_jwt_expired(token) is True

    def test_exp_equal_to_now_is_not_expired(self):
        token = make_unsigned_token({"exp": 1000})

        assert is_jwt_expired(token, now=1000) is False
        assert is_jwt_expired(token, now=1001) is True

    def test_missing_exp(self):
        assert is_jwt_expired(make_unsigned_token({"sub": TEST_WALLET})) is False

    def test_non_numeric_exp(self):
        with pytest.raises(DecodeError):
            is_jwt_expired(make_unsigned_token({"exp": "tomorrow"}))
