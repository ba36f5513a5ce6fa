from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, Field

from ethshot.schemas.my_base_model import CustomBaseModel

AUTH_ACTIONS = ("generate_nonce", "verify_signature", "validate_token", "refresh_token")


class AuthRequest(CustomBaseModel):
    """Request model for POST /api/auth - input validation

    The action discriminator selects which of the other fields are required.
    """

    action: str = Field(..., description="One of: " + ", ".join(AUTH_ACTIONS))
    wallet_address: Optional[str] = Field(default=None, description="Wallet address")
    signature: Optional[str] = Field(default=None, description="Signature of the auth message")
    nonce: Optional[str] = Field(default=None, description="Nonce that was signed (informational)")
    token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("token", "jwtToken", "currentToken"),
        description="JWT for validate_token / refresh_token",
    )


class NonceResponse(CustomBaseModel):
    """Response model for nonce generation - output"""

    success: bool = True
    nonce: str
    message: str
    wallet_address: str
    expires_at: int


class AuthResponse(CustomBaseModel):
    """Response model for signature verification and token refresh - output"""

    success: bool = True
    jwt_token: str
    token_type: str = "bearer"
    wallet_address: str
    message: str = "Authentication successful"


class TokenValidationResponse(CustomBaseModel):
    success: bool = True
    wallet_address: str
    expires_at: int
    token_payload: Dict[str, Any] = Field(default_factory=dict)


class AuthInfoResponse(CustomBaseModel):
    success: bool = True
    message: str = "Authentication API is running"
    actions: List[str] = Field(default_factory=lambda: list(AUTH_ACTIONS))
