"""
SQL implementations of the profile store procedures.

Each procedure takes a Session plus the same keyword parameters the hosted store's
RPC endpoints take (wallet_addr, p_nickname, ...), and returns JSON-shaped
data: a list of row dicts, or a bool for the nickname check.

Every access path lower-cases the wallet address before touching the table, and the
upsert is a single INSERT .. ON CONFLICT (wallet_address) DO UPDATE statement so two
racing writes for the same wallet cannot interleave.
"""

import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ethshot.core.address import is_valid_wallet_address, normalize_address
from ethshot.models.auth import WalletUser
from ethshot.models.profiles import UserProfile

PROFILE_COLUMNS = (
    "wallet_address",
    "nickname",
    "bio",
    "avatar_url",
    "notifications_enabled",
    "created_at",
    "updated_at",
)


def _insert(session: Session, table):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table)
    if dialect == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"No native upsert for dialect {dialect}")


def _wallet(value: Optional[str]) -> str:
    if not is_valid_wallet_address(value):
        raise ValueError("Invalid wallet address format")
    return normalize_address(value)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _to_json(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value


def _profile_row(profile: UserProfile) -> Dict[str, Any]:
    return {column: _to_json(getattr(profile, column)) for column in PROFILE_COLUMNS}


def _select_profiles(session: Session, wallet: str) -> List[Dict[str, Any]]:
    profiles = session.execute(
        select(UserProfile).where(UserProfile.wallet_address == wallet)
    ).scalars().all()
    return [_profile_row(p) for p in profiles]


def is_nickname_available(
    session: Session,
    p_nickname: Optional[str],
    exclude_wallet_addr: Optional[str] = None,
) -> bool:
    """Case-insensitive check; the excluded wallet's own nickname counts as available."""
    nickname = _clean(p_nickname)
    if nickname is None:
        return True

    query = select(func.count()).select_from(UserProfile).where(
        func.lower(UserProfile.nickname) == nickname.lower()
    )
    if exclude_wallet_addr:
        query = query.where(UserProfile.wallet_address != normalize_address(exclude_wallet_addr))
    return session.execute(query).scalar_one() == 0


def upsert_user_profile(
    session: Session,
    wallet_addr: Optional[str],
    p_nickname: Optional[str] = None,
    p_avatar_url: Optional[str] = None,
    p_bio: Optional[str] = None,
    p_notifications_enabled: Optional[bool] = None,
) -> List[Dict[str, Any]]:
    """
    Create or update one profile. None parameters keep the stored value on update.

    Raises:
        ValueError: invalid wallet address
        sqlalchemy.exc.IntegrityError: nickname owned by another wallet
    """
    wallet = _wallet(wallet_addr)
    now = datetime.now(timezone.utc)
    values = {
        "wallet_address": wallet,
        "nickname": _clean(p_nickname),
        "bio": p_bio,
        "avatar_url": _clean(p_avatar_url),
        "notifications_enabled": True if p_notifications_enabled is None else p_notifications_enabled,
        "created_at": now,
        "updated_at": now,
    }

    table = UserProfile.__table__
    stmt = _insert(session, table).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.wallet_address],
        set_={
            "nickname": func.coalesce(stmt.excluded.nickname, table.c.nickname),
            "bio": func.coalesce(stmt.excluded.bio, table.c.bio),
            "avatar_url": func.coalesce(stmt.excluded.avatar_url, table.c.avatar_url),
            "notifications_enabled": (
                table.c.notifications_enabled
                if p_notifications_enabled is None
                else stmt.excluded.notifications_enabled
            ),
            "updated_at": stmt.excluded.updated_at,
        },
    )
    session.execute(stmt)
    session.commit()

    # identity map may hold a copy from before the upsert
    session.expire_all()
    return _select_profiles(session, wallet)


def get_user_profile(session: Session, wallet_addr: Optional[str]) -> List[Dict[str, Any]]:
    if not wallet_addr:
        raise ValueError("Invalid wallet address format")
    return _select_profiles(session, normalize_address(wallet_addr))


def record_wallet_login(session: Session, wallet_addr: Optional[str]) -> List[Dict[str, Any]]:
    """Bump last_login for a wallet that just authenticated, creating it on first login."""
    wallet = _wallet(wallet_addr)
    now = int(time.time())

    table = WalletUser.__table__
    stmt = _insert(session, table).values(wallet_address=wallet, created_at=now, last_login=now, login_count=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.wallet_address],
        set_={"last_login": stmt.excluded.last_login, "login_count": table.c.login_count + 1},
    )
    session.execute(stmt)
    session.commit()

    user = session.get(WalletUser, wallet, populate_existing=True)
    return [{
        "wallet_address": user.wallet_address,
        "created_at": user.created_at,
        "last_login": user.last_login,
        "login_count": user.login_count,
    }]


PROCEDURES: Dict[str, Callable[..., Any]] = {
    "upsert_user_profile": upsert_user_profile,
    "get_user_profile": get_user_profile,
    "is_nickname_available": is_nickname_available,
    "record_wallet_login": record_wallet_login,
}
