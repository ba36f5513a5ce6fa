from enum import Enum
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

import ethshot.schemas.auth as schemas
from ethshot.core.dependencies import get_auth_service
from ethshot.server.wallet_auth_service import WalletAuthService

router = APIRouter()
group_tags: List[str | Enum] = ["Auth"]


"""
wallet authentication, the only entry point to the server-side token operations

api: POST /api/auth
- generate_nonce:   walletAddress              -> nonce, message to sign
- verify_signature: walletAddress, signature   -> jwtToken
- validate_token:   token                      -> walletAddress, expiresAt
- refresh_token:    token                      -> new jwtToken

errors:
- 400 missing field, bad wallet address, unknown action
- 401 signature or token rejected
- 503 signing key not configured (details only in the server log)
"""


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


@router.get(
    "/auth",
    tags=group_tags,
    response_model=schemas.AuthInfoResponse,
)
def auth_info() -> schemas.AuthInfoResponse:
    """List the supported authentication actions."""
    return schemas.AuthInfoResponse()


@router.post(
    "/auth",
    tags=group_tags,
    status_code=status.HTTP_200_OK,
    response_model=schemas.NonceResponse | schemas.AuthResponse | schemas.TokenValidationResponse,
)
def handle_auth(body: schemas.AuthRequest, service: WalletAuthService = Depends(get_auth_service)):
    action = body.action.strip()

    if action == "generate_nonce":
        if not body.wallet_address:
            raise _bad_request("walletAddress is required")
        try:
            result = service.generate_auth_nonce(body.wallet_address)
        except ValueError as e:
            raise _bad_request(str(e))
        return schemas.NonceResponse(**result)

    if action == "verify_signature":
        if not body.wallet_address or not body.signature:
            raise _bad_request("walletAddress and signature are required")
        try:
            result = service.verify_and_authenticate(body.wallet_address, body.signature)
        except ValueError as e:
            raise _bad_request(str(e))
        return schemas.AuthResponse(**result)

    if action == "validate_token":
        if not body.token:
            raise _bad_request("token is required")
        return schemas.TokenValidationResponse(**service.validate_auth_token(body.token))

    if action == "refresh_token":
        if not body.token:
            raise _bad_request("token is required")
        result = service.refresh_auth_token(body.token)
        return schemas.AuthResponse(message="Token refreshed successfully", **result)

    raise _bad_request("Invalid action. Supported actions: " + ", ".join(schemas.AUTH_ACTIONS))
