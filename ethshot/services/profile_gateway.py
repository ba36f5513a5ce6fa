"""
Profile store gateway.

A thin facade over the named profile procedures (upsert_user_profile, get_user_profile,
is_nickname_available, record_wallet_login). Parameter names follow the hosted functions
(wallet_addr, p_nickname, p_bio, p_avatar_url, p_notifications_enabled,
exclude_wallet_addr) since PostgREST resolves functions by argument name. The procedures
run either
- in-process against SQLAlchemy (SqlRpcTransport), or
- on a hosted Supabase project through PostgREST's /rest/v1/rpc/<name> (SupabaseRpcTransport).
  The hosted project has no record_wallet_login, so login bookkeeping only happens on
  the SQL backend.

Both transports answer with an RpcResult: JSON-shaped data plus an error slot, the same
shape the hosted store returns. The gateway turns the error slot into StoreError
subclasses and bounds every call with a timeout, surfaced as the builtin TimeoutError.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from ethshot.core.address import is_valid_wallet_address, normalize_address
from ethshot.core.config import Settings
from ethshot.core.errors import NicknameTaken, ProfileNotFound, StoreError
from ethshot.db.profile_rpc import PROCEDURES
from ethshot.db.session import create_db_engine, create_session_factory

logger = logging.getLogger(__name__)

# Postgres error codes, also what PostgREST reports in the "code" field
UNIQUE_VIOLATION = "23505"
INVALID_PARAMETER = "22023"
UNDEFINED_FUNCTION = "42883"
INTERNAL_ERROR = "XX000"


@dataclass(frozen=True)
class RpcError:
    code: str
    message: str


@dataclass(frozen=True)
class RpcResult:
    data: Any = None
    error: Optional[RpcError] = None


class SqlRpcTransport:
    """Runs procedures against a SQLAlchemy session factory on a worker pool."""

    def __init__(self, session_factory: sessionmaker, max_workers: int = 4):
        self.session_factory = session_factory
        self.procedures = frozenset(PROCEDURES)
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="profile-rpc")

    def _run(self, name: str, params: Dict[str, Any]) -> RpcResult:
        procedure = PROCEDURES.get(name)
        if procedure is None:
            return RpcResult(error=RpcError(UNDEFINED_FUNCTION, f"function {name} does not exist"))

        with self.session_factory() as session:
            try:
                return RpcResult(data=procedure(session, **params))
            except ValueError as e:
                return RpcResult(error=RpcError(INVALID_PARAMETER, str(e)))
            except IntegrityError as e:
                session.rollback()
                return RpcResult(error=RpcError(UNIQUE_VIOLATION, str(e.orig)))
            except Exception as e:
                session.rollback()
                logger.exception("Profile procedure %s failed", name)
                return RpcResult(error=RpcError(INTERNAL_ERROR, str(e)))

    def call(self, name: str, params: Dict[str, Any], timeout: float) -> RpcResult:
        future = self._pool.submit(self._run, name, params)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            future.cancel()
            raise TimeoutError(f"{name} did not complete within {timeout}s")

    def close(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)


class SupabaseRpcTransport:
    """Calls the procedures on a hosted Supabase project with the service role key."""

    procedures = frozenset({"upsert_user_profile", "get_user_profile", "is_nickname_available"})

    def __init__(self, base_url: str, api_key: str, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def call(self, name: str, params: Dict[str, Any], timeout: float) -> RpcResult:
        try:
            response = self.session.post(
                f"{self.base_url}/rest/v1/rpc/{name}",
                json=params,
                headers=self.headers,
                timeout=timeout,
            )
        except requests.Timeout as e:
            raise TimeoutError(f"{name} did not complete within {timeout}s") from e
        except requests.RequestException as e:
            return RpcResult(error=RpcError("network", str(e)))

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            if isinstance(body, dict):
                return RpcResult(error=RpcError(
                    str(body.get("code") or response.status_code),
                    body.get("message") or response.reason,
                ))
            return RpcResult(error=RpcError(str(response.status_code), response.reason))
        return RpcResult(data=body)

    def close(self) -> None:
        self.session.close()


class ProfileGateway:
    def __init__(self, transport, timeout: float = 10.0):
        self.transport = transport
        self.timeout = timeout

    def _call(self, name: str, params: Dict[str, Any], timeout: Optional[float]) -> Any:
        result = self.transport.call(name, params, timeout if timeout is not None else self.timeout)
        if result.error is None:
            return result.data

        error = result.error
        if error.code == UNIQUE_VIOLATION:
            raise NicknameTaken(params.get("p_nickname") or "")
        if error.code == INVALID_PARAMETER:
            raise ValueError(error.message)
        logger.error("Profile store call %s failed: [%s] %s", name, error.code, error.message)
        raise StoreError(f"{name} failed")

    @staticmethod
    def _require_wallet(wallet_address: str) -> str:
        if not is_valid_wallet_address(wallet_address):
            raise ValueError("Invalid wallet address format")
        return normalize_address(wallet_address)

    def upsert_profile(
        self,
        wallet_address: str,
        nickname: Optional[str] = None,
        bio: Optional[str] = None,
        notifications_enabled: Optional[bool] = None,
        avatar_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Create or update the profile of a wallet and return the stored row.

        Idempotent: repeating the call with the same arguments leaves exactly one row.

        Raises:
            ValueError: invalid wallet address
            NicknameTaken: the nickname belongs to another wallet
            StoreError: any other store failure
            TimeoutError: the store did not answer within the timeout
        """
        wallet = self._require_wallet(wallet_address)
        if nickname and not self.is_nickname_available(nickname, wallet, timeout=timeout):
            raise NicknameTaken(nickname)

        rows = self._call(
            "upsert_user_profile",
            {
                "wallet_addr": wallet,
                "p_nickname": nickname,
                "p_avatar_url": avatar_url,
                "p_bio": bio,
                "p_notifications_enabled": notifications_enabled,
            },
            timeout,
        )
        if not rows:
            raise StoreError("upsert_user_profile returned no row")
        return rows[0]

    def get_profile(self, wallet_address: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Raises:
            ProfileNotFound: no profile for this wallet
        """
        wallet = self._require_wallet(wallet_address)
        rows = self._call("get_user_profile", {"wallet_addr": wallet}, timeout)
        if not rows:
            raise ProfileNotFound(wallet)
        return rows[0]

    def is_nickname_available(
        self,
        nickname: str,
        exclude_wallet_address: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        params: Dict[str, Any] = {"p_nickname": nickname}
        if exclude_wallet_address:
            params["exclude_wallet_addr"] = normalize_address(exclude_wallet_address)
        return bool(self._call("is_nickname_available", params, timeout))

    def record_login(self, wallet_address: str, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Bump the wallet's login bookkeeping. Returns None when the store has no such procedure."""
        wallet = self._require_wallet(wallet_address)
        if "record_wallet_login" not in self.transport.procedures:
            return None
        rows = self._call("record_wallet_login", {"wallet_addr": wallet}, timeout)
        return rows[0] if rows else {"wallet_address": wallet}

    def close(self) -> None:
        self.transport.close()


def build_profile_gateway(settings: Settings) -> ProfileGateway:
    if settings.PROFILE_STORE_BACKEND == "supabase":
        transport = SupabaseRpcTransport(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_ROLE_KEY or settings.SUPABASE_ANON_KEY or "",
        )
    else:
        engine = create_db_engine(settings.DATABASE_URL)
        transport = SqlRpcTransport(create_session_factory(engine))
    return ProfileGateway(transport, timeout=settings.STORE_TIMEOUT_SECONDS)
