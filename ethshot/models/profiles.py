from sqlalchemy import Boolean, Column, DateTime, Index, String, Text, func, true

from ethshot.db.base import Base


class UserProfile(Base):
    """Model for the user_profiles table, keyed by the lower-cased wallet address
    Example:
    {
        "wallet_address": "0x1234567890123456789012345678901234567890",
        "nickname": "TestUser",
        "bio": "Test bio",
        "avatar_url": null,
        "notifications_enabled": true,
        "created_at": "2025-07-26T00:06:00+00:00",
        "updated_at": "2025-07-26T00:06:00+00:00"
    }
    """

    __tablename__ = "user_profiles"

    wallet_address = Column(String(42), primary_key=True)
    nickname = Column(String(50), nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)
    notifications_enabled = Column(Boolean, nullable=False, server_default=true())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# nicknames are unique regardless of case
Index("uq_user_profiles_nickname_lower", func.lower(UserProfile.nickname), unique=True)
