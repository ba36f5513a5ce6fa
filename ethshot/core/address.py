"""
Wallet address helpers.

The lower-cased address is the canonical identity everywhere: challenge store keys,
token subjects and profile primary keys all go through normalize_address().
"""

from eth_utils import is_address, to_checksum_address


def normalize_address(address: str) -> str:
    """Canonical (lower-case, trimmed) form of a wallet address. Idempotent."""
    if address is None:
        raise ValueError("wallet address is required")
    return address.strip().lower()


def is_valid_wallet_address(address: str | None) -> bool:
    """
    True for a 0x-prefixed 20-byte hex address.

    All-lower and all-upper addresses are accepted; mixed case must carry a valid
    EIP-55 checksum.
    """
    if not address or not isinstance(address, str):
        return False
    return bool(is_address(address.strip()))


def get_checksum_address(address: str) -> str:
    """EIP-55 checksummed form of any valid address, regardless of input case."""
    normalized = normalize_address(address)
    if not is_address(normalized):
        raise ValueError(f"Invalid wallet address: {address}")
    return to_checksum_address(normalized)
