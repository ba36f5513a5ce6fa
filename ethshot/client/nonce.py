"""
Client-safe wallet login helpers.

Nothing in this module touches signing secrets or server configuration, so it may be
shipped to (or mirrored by) browser code. The server-only counterparts live in
ethshot.server.jwt_secure, which imports from here and never the other way round.

Login message format:

    Sign in to ETH Shot - <epoch-ms> - <32 hex chars>

    Wallet: <lower-cased address>
"""

import logging
import secrets
import time

from eth_account import Account
from eth_account.messages import encode_defunct

from ethshot.core.address import normalize_address

logger = logging.getLogger(__name__)

APP_PHRASE = "Sign in to ETH Shot"
NONCE_RANDOM_BYTES = 16  # 16 bytes = 32 hex characters


def build_nonce(random_hex: str, timestamp_ms: int | None = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{APP_PHRASE} - {timestamp_ms} - {random_hex}"


def generate_nonce() -> str:
    """
    Generate a human-readable login nonce.

    Uniqueness, not secrecy, is what matters here: a signed message can only be
    replayed against the nonce it embeds.
    """
    return build_nonce(secrets.token_hex(NONCE_RANDOM_BYTES))


def create_auth_message(wallet_address: str, nonce: str) -> str:
    """Message the wallet signs. Deterministic so the server can rebuild it."""
    return f"{nonce}\n\nWallet: {normalize_address(wallet_address)}"


def recover_signer(message: str, signature: str) -> str:
    """
    Recover the lower-cased address that produced an EIP-191 personal_sign signature.

    Raises:
        ValueError: if the signature is not a valid 65-byte signature
    """
    signable = encode_defunct(text=message)
    try:
        recovered = Account.recover_message(signable, signature=signature)
    except Exception as e:
        raise ValueError(f"Unrecoverable signature: {e}") from e
    return normalize_address(recovered)


def verify_signature(message: str, signature: str, expected_signer: str) -> bool:
    """True when `signature` over `message` was made by `expected_signer` (any case)."""
    if not message or not signature or not expected_signer:
        return False
    try:
        recovered = recover_signer(message, signature)
    except ValueError as e:
        logger.info("Signature verification failed: %s", e)
        return False
    return recovered == normalize_address(expected_signer)
