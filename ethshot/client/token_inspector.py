"""
Untrusted, read-only inspection of bearer tokens.

These helpers decode the payload segment of a JWT without checking its signature.
They are for local UX decisions only (showing who is logged in, deciding when to
refresh). Authorization must go through ethshot.server.jwt_secure.verify_jwt_secure.
"""

import base64
import binascii
import json
import time
from typing import Any, Dict, Optional

from ethshot.core.address import normalize_address
from ethshot.core.errors import DecodeError

WALLET_CLAIMS = ("walletAddress", "wallet_address", "sub")


def _b64url_decode(segment: str) -> bytes:
    """Decode base64url, tolerating missing padding and standard-alphabet input."""
    segment = segment.strip().replace("+", "-").replace("/", "_")
    padded = segment + "=" * (-len(segment) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, ValueError, UnicodeEncodeError) as e:
        raise DecodeError("Token payload is not valid base64url") from e


def decode_payload(token: str) -> Dict[str, Any]:
    """
    Return the claims of a header.payload.signature token without verifying it.

    Raises:
        DecodeError: wrong segment count, bad encoding, or a payload that is not a JSON object
    """
    if not token or not isinstance(token, str):
        raise DecodeError("Token is empty")

    parts = token.strip().split(".")
    if len(parts) != 3 or not parts[1]:
        raise DecodeError("Token must have three dot-separated segments")

    raw = _b64url_decode(parts[1])
    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError("Token payload is not valid JSON") from e

    if not isinstance(payload, dict):
        raise DecodeError("Token payload must be a JSON object")
    return payload


def extract_wallet_from_jwt(token: str) -> str:
    """
    Normalized wallet address carried by the token.

    Prefers the walletAddress claim, then wallet_address, then sub.
    The signature segment is ignored entirely.
    """
    payload = decode_payload(token)
    for claim in WALLET_CLAIMS:
        value = payload.get(claim)
        if isinstance(value, str) and value.strip():
            return normalize_address(value)
    raise DecodeError("Token carries no wallet claim")


def is_jwt_expired(token: str, now: Optional[float] = None) -> bool:
    """
    True when the exp claim is strictly in the past.

    A token without exp is reported as not expired; whether such a token is
    acceptable is decided by the server-side verifier, which requires exp.
    """
    payload = decode_payload(token)
    exp = payload.get("exp")
    if exp is None:
        return False
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise DecodeError("exp claim must be a number")

    current = time.time() if now is None else now
    return exp < current
