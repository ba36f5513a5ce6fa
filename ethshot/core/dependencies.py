"""
FastAPI Dependencies
This module provides the dependency functions injected into route handlers: the shared
settings, challenge store and profile gateway, and the bearer-token check.
Usage in endpoints:
    @router.post("/protected")
    def protected_route(wallet_address: str = Depends(get_current_wallet)):
        # wallet_address comes from a token verified by verify_jwt_secure()
        return {"user": wallet_address}
Flow:
1. Client sends request with Authorization: Bearer <token> header
2. FastAPI calls get_current_wallet() dependency
3. _extract_token() extracts token from header
4. verify_jwt_secure() validates the JWT (from server/jwt_secure.py)
5. Returns the normalized wallet address to the route handler
"""

from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, status

from ethshot.core.challenge_store import ChallengeStore, build_challenge_store
from ethshot.core.config import Settings, get_settings
from ethshot.core.errors import VerificationError
from ethshot.server.jwt_secure import verify_jwt_secure
from ethshot.server.wallet_auth_service import WalletAuthService
from ethshot.services.profile_gateway import ProfileGateway, build_profile_gateway


@lru_cache
def get_challenge_store() -> ChallengeStore:
    return build_challenge_store(get_settings())


@lru_cache
def get_profile_gateway() -> ProfileGateway:
    return build_profile_gateway(get_settings())


def get_auth_service(
    settings: Settings = Depends(get_settings),
    challenges: ChallengeStore = Depends(get_challenge_store),
    profiles: ProfileGateway = Depends(get_profile_gateway),
) -> WalletAuthService:
    return WalletAuthService(settings, challenges, profiles)


def _extract_token(authorization: Optional[str]) -> str:
    """
    Extract JWT token from Authorization header.
    Supports both "Bearer <token>" and plain token formats.
    Args:
        authorization: The Authorization header value (e.g., "Bearer eyJ...")
    Returns:
        The extracted token string
    Raises:
        HTTPException 401: If Authorization header is missing or invalid
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
        )

    authorization = authorization.strip()
    if authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    else:
        token = authorization
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )

    return token


def get_token_payload(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    token = _extract_token(authorization)
    try:
        return verify_jwt_secure(token, settings=settings)
    except VerificationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_wallet(payload: Dict[str, Any] = Depends(get_token_payload)) -> str:
    """
    returning the normalized wallet address.
    """
    return payload["walletAddress"]
