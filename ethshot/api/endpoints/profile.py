from enum import Enum
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from ethshot.core.address import normalize_address
from ethshot.core.config import Settings, get_settings
from ethshot.core.dependencies import get_profile_gateway, get_token_payload
from ethshot.schemas.profile import (
    PROFILE_ACTIONS,
    NicknameAvailabilityResponse,
    ProfileRequest,
    ProfileResponse,
)
from ethshot.services.profile_gateway import ProfileGateway

router = APIRouter()
group_tags: List[str | Enum] = ["Profile"]


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


@router.post(
    "/profile",
    tags=group_tags,
    response_model=ProfileResponse | NicknameAvailabilityResponse,
)
def handle_profile(
    body: ProfileRequest,
    authorization: Optional[str] = Header(None, alias="Authorization"),
    settings: Settings = Depends(get_settings),
    profiles: ProfileGateway = Depends(get_profile_gateway),
):
    """
    Profile operations, selected by action:
    - upsert: requires Authorization: Bearer <token>; writes the token owner's profile only
    - get: walletAddress -> profile (404 when absent)
    - check_nickname: nickname, optional excludeWalletAddress -> availability
    """
    action = body.action.strip()

    if action == "upsert":
        if body.profile_data is None:
            raise _bad_request("profileData is required")
        wallet = get_token_payload(authorization, settings)["walletAddress"]
        if body.wallet_address and normalize_address(body.wallet_address) != wallet:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Cannot modify another wallet's profile",
            )
        data = body.profile_data
        try:
            row = profiles.upsert_profile(
                wallet,
                nickname=data.nickname,
                bio=data.bio,
                notifications_enabled=data.notifications_enabled,
                avatar_url=data.avatar_url,
            )
        except ValueError as e:
            raise _bad_request(str(e))
        return ProfileResponse.from_record(row)

    if action == "get":
        if not body.wallet_address:
            raise _bad_request("walletAddress is required")
        try:
            row = profiles.get_profile(body.wallet_address)
        except ValueError as e:
            raise _bad_request(str(e))
        return ProfileResponse.from_record(row)

    if action == "check_nickname":
        if not body.nickname:
            raise _bad_request("nickname is required")
        available = profiles.is_nickname_available(body.nickname, body.exclude_wallet_address)
        return NicknameAvailabilityResponse(nickname=body.nickname, available=available)

    raise _bad_request("Invalid action. Supported actions: " + ", ".join(PROFILE_ACTIONS))
