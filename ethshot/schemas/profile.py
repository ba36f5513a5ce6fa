from typing import Optional

from pydantic import Field

from ethshot.schemas.my_base_model import CustomBaseModel

PROFILE_ACTIONS = ("upsert", "get", "check_nickname")


class ProfileData(CustomBaseModel):
    nickname: Optional[str] = Field(default=None, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=500)
    avatar_url: Optional[str] = None
    notifications_enabled: Optional[bool] = None


class ProfileRequest(CustomBaseModel):
    """Request model for POST /api/profile - input validation"""

    action: str = Field(..., description="One of: " + ", ".join(PROFILE_ACTIONS))
    wallet_address: Optional[str] = Field(default=None, description="Wallet address (get)")
    nickname: Optional[str] = Field(default=None, description="Nickname to check (check_nickname)")
    exclude_wallet_address: Optional[str] = Field(default=None, description="Owner to ignore (check_nickname)")
    profile_data: Optional[ProfileData] = Field(default=None, description="Fields to write (upsert)")


class ProfileResponse(CustomBaseModel):
    """Response model for user profile
    Example:
    {
        "walletAddress": "0x1234567890123456789012345678901234567890",
        "nickname": "TestUser",
        "bio": "Test bio",
        "avatarUrl": null,
        "notificationsEnabled": true,
        "createdAt": "2025-07-26T00:06:00+00:00",
        "updatedAt": "2025-07-26T00:06:00+00:00"
    }
    """

    wallet_address: str
    nickname: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    notifications_enabled: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class NicknameAvailabilityResponse(CustomBaseModel):
    nickname: str
    available: bool
