import pytest

from ethshot.core.address import get_checksum_address, is_valid_wallet_address, normalize_address

CHECKSUMMED = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


class TestNormalizeAddress:
    @pytest.mark.parametrize(
        "value",
        [CHECKSUMMED, CHECKSUMMED.lower(), "  " + CHECKSUMMED + "\n", "0X5AAEB6053F3E94C9B9A09F33669435E7EF1BEAED"],
    )
    def test_is_idempotent(self, value):
        once = normalize_address(value)

        assert normalize_address(once) == once
        assert once == once.strip().lower()

    def test_rejects_none(self):
        with pytest.raises(ValueError):
            normalize_address(None)


class TestIsValidWalletAddress:
    @pytest.mark.parametrize("value", [CHECKSUMMED, CHECKSUMMED.lower(), "0x" + CHECKSUMMED[2:].upper()])
    def test_valid(self, value):
        assert is_valid_wallet_address(value)

    @pytest.mark.parametrize(
        "value",
        [None, "", "0x123", CHECKSUMMED[2:] + "00", "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaeg", "0x5AAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"],
    )
    def test_invalid(self, value):
        assert not is_valid_wallet_address(value)


def test_checksum_address_from_any_case():
    assert get_checksum_address(CHECKSUMMED.lower()) == CHECKSUMMED
    assert get_checksum_address(CHECKSUMMED) == CHECKSUMMED


def test_checksum_address_invalid():
    with pytest.raises(ValueError):
        get_checksum_address("0x123")
