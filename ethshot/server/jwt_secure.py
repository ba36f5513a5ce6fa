"""
Server-only JWT issuing and verification.

This module holds the only code paths that read the signing material. It must only be
imported by server-executed code (API endpoints, services); ethshot.client never
imports it.

Signing:
- ES256 with JWT_PRIVATE_KEY_PEM when configured
- otherwise HS256 with SUPABASE_JWT_SECRET, which keeps tokens readable by Supabase RLS

Verification tries ES256 first and falls back to HS256, so tokens minted before a key
rotation from HS256 to ES256 stay valid until they expire.

The JWT contains:
- sub / walletAddress / wallet_address: the lower-cased wallet address
- aud, iss, role: Supabase-compatible identity claims
- iat / exp: issued at and expiry (ACCESS_TOKEN_EXPIRE_SECONDS)
- session_id: random per-login identifier
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from cryptography.hazmat.primitives import serialization

from ethshot.client.nonce import (
    NONCE_RANDOM_BYTES,
    build_nonce,
    create_auth_message,
    verify_signature,
)
from ethshot.core.address import normalize_address
from ethshot.core.config import Settings, get_settings
from ethshot.core.errors import ConfigError, VerificationError

logger = logging.getLogger(__name__)

ES256 = "ES256"
HS256 = "HS256"


def generate_nonce_secure() -> str:
    """Same format as the client nonce, drawn from the server's entropy source."""
    return build_nonce(secrets.token_hex(NONCE_RANDOM_BYTES))


def create_auth_message_secure(wallet_address: str, nonce: str) -> str:
    return create_auth_message(wallet_address, nonce)


def verify_signature_secure(message: str, signature: str, expected_signer: str) -> bool:
    return verify_signature(message, signature, expected_signer)


def has_signing_key(settings: Optional[Settings] = None) -> bool:
    """Whether any signing method is configured. Never reveals the material itself."""
    settings = settings or get_settings()
    return bool(settings.JWT_PRIVATE_KEY_PEM or settings.SUPABASE_JWT_SECRET)


def _es256_public_key(settings: Settings) -> Optional[str]:
    if settings.JWT_PUBLIC_KEY_PEM:
        return settings.JWT_PUBLIC_KEY_PEM
    if not settings.JWT_PRIVATE_KEY_PEM:
        return None
    try:
        private_key = serialization.load_pem_private_key(
            settings.JWT_PRIVATE_KEY_PEM.encode(), password=None
        )
    except ValueError as e:
        raise ConfigError("JWT_PRIVATE_KEY_PEM is not a valid PEM private key") from e
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


def generate_jwt_secure(
    wallet_address: str,
    extra_claims: Optional[Dict[str, Any]] = None,
    settings: Optional[Settings] = None,
) -> str:
    """
    Create a signed access token for a wallet that has proven ownership.

    Args:
        wallet_address: The verified wallet address (any case)
        extra_claims: Optional additional claims merged over the defaults
        settings: Settings to sign with (defaults to the process settings)

    Returns:
        A JWT string for the Authorization: Bearer <token> header

    Raises:
        ValueError: If wallet_address is empty
        ConfigError: If neither an ES256 key nor an HS256 secret is configured
    """
    if not wallet_address or not wallet_address.strip():
        raise ValueError("wallet_address is required")
    settings = settings or get_settings()

    normalized = normalize_address(wallet_address)
    now = datetime.now(timezone.utc)
    iat = int(now.timestamp())
    payload: Dict[str, Any] = {
        "aud": settings.JWT_AUDIENCE,
        "iss": settings.JWT_ISSUER,
        "sub": normalized,
        "iat": iat,
        "exp": int((now + timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS)).timestamp()),
        "role": "authenticated",
        "app_metadata": {"provider": "wallet", "providers": ["wallet"]},
        "user_metadata": {"wallet_address": normalized, "auth_method": "wallet_signature"},
        "amr": [{"method": "wallet", "timestamp": iat}],
        "session_id": str(uuid.uuid4()),
        "walletAddress": normalized,
        "wallet_address": normalized,
    }
    if extra_claims:
        payload.update(extra_claims)

    if settings.JWT_PRIVATE_KEY_PEM:
        try:
            return jwt.encode(payload, settings.JWT_PRIVATE_KEY_PEM, algorithm=ES256)
        except (ValueError, TypeError, jwt.InvalidKeyError) as e:
            raise ConfigError("JWT_PRIVATE_KEY_PEM cannot sign ES256 tokens") from e
    if settings.SUPABASE_JWT_SECRET:
        return jwt.encode(payload, settings.SUPABASE_JWT_SECRET, algorithm=HS256)

    raise ConfigError(
        "No JWT signing method available",
        missing_variables=["JWT_PRIVATE_KEY_PEM", "SUPABASE_JWT_SECRET"],
    )


def _decode(token: str, key: str, algorithm: str, settings: Settings) -> Dict[str, Any]:
    return jwt.decode(
        token,
        key,
        algorithms=[algorithm],
        audience=settings.JWT_AUDIENCE,
        options={"require": ["exp", "sub"]},
    )


def verify_jwt_secure(token: str, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Verify signature, expiry and audience of a token and return its claims.

    This is the only trusted verification path; any authorization decision must use it.

    Raises:
        VerificationError: missing, expired, tampered or foreign token
        ConfigError: if no verification key is configured
    """
    if not token or not token.strip():
        raise VerificationError("Missing token")
    settings = settings or get_settings()

    public_key = _es256_public_key(settings)
    if not public_key and not settings.SUPABASE_JWT_SECRET:
        raise ConfigError(
            "No JWT verification method available",
            missing_variables=["JWT_PUBLIC_KEY_PEM", "SUPABASE_JWT_SECRET"],
        )

    payload = None
    if public_key:
        try:
            payload = _decode(token, public_key, ES256, settings)
        except jwt.ExpiredSignatureError:
            raise VerificationError("Token expired")
        except jwt.InvalidTokenError as e:
            if not settings.SUPABASE_JWT_SECRET:
                raise VerificationError("Invalid token") from e
            logger.debug("ES256 verification failed, trying HS256: %s", type(e).__name__)

    if payload is None:
        try:
            payload = _decode(token, settings.SUPABASE_JWT_SECRET, HS256, settings)
        except jwt.ExpiredSignatureError:
            raise VerificationError("Token expired")
        except jwt.InvalidTokenError as e:
            raise VerificationError("Invalid token") from e

    wallet = payload.get("walletAddress") or payload.get("wallet_address") or payload.get("sub")
    if not isinstance(wallet, str) or not wallet.strip():
        raise VerificationError("Invalid token payload")
    payload["walletAddress"] = normalize_address(wallet)
    return payload
