from __future__ import annotations

# login challenge storage: one active nonce per wallet, consumed once
import json
import logging
import time
from dataclasses import asdict, dataclass
from threading import Lock
from typing import Dict, Optional

from redis import Connection, ConnectionPool, Redis, RedisError, SSLConnection

from ethshot.core.address import normalize_address
from ethshot.core.config import Settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "auth:challenge:"


@dataclass(frozen=True)
class AuthChallenge:
    nonce: str
    issued_for_wallet: str
    message: str
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return self.expires_at <= (time.time() if now is None else now)


class MemoryChallengeStore:
    """Process-local challenge store with per-entry expiry."""

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds
        self._items: Dict[str, AuthChallenge] = {}
        self._lock = Lock()

    def put(self, wallet_address: str, nonce: str, message: str) -> AuthChallenge:
        wallet = normalize_address(wallet_address)
        challenge = AuthChallenge(
            nonce=nonce,
            issued_for_wallet=wallet,
            message=message,
            expires_at=time.time() + self.ttl_seconds,
        )
        with self._lock:
            # a new request replaces the previous challenge for the same wallet
            self._items[wallet] = challenge
            self._evict_expired()
        return challenge

    def take(self, wallet_address: str) -> Optional[AuthChallenge]:
        """Remove and return the wallet's challenge, or None if absent or expired."""
        wallet = normalize_address(wallet_address)
        with self._lock:
            challenge = self._items.pop(wallet, None)
        if challenge is None or challenge.is_expired():
            return None
        return challenge

    def _evict_expired(self) -> None:
        now = time.time()
        expired = [k for k, c in self._items.items() if c.is_expired(now)]
        for k in expired:
            self._items.pop(k, None)


class RedisChallengeStore:
    """Challenge store shared between workers. Consumption is atomic via GETDEL."""

    def __init__(self, client: Redis, ttl_seconds: int):
        self.client = client
        self.ttl_seconds = ttl_seconds

    def put(self, wallet_address: str, nonce: str, message: str) -> AuthChallenge:
        wallet = normalize_address(wallet_address)
        challenge = AuthChallenge(
            nonce=nonce,
            issued_for_wallet=wallet,
            message=message,
            expires_at=time.time() + self.ttl_seconds,
        )
        self.client.set(KEY_PREFIX + wallet, json.dumps(asdict(challenge)), ex=self.ttl_seconds)
        return challenge

    def take(self, wallet_address: str) -> Optional[AuthChallenge]:
        wallet = normalize_address(wallet_address)
        raw = self.client.getdel(KEY_PREFIX + wallet)
        if raw is None or raw == b"":
            return None
        try:
            challenge = AuthChallenge(**json.loads(raw))
        except (TypeError, ValueError):
            logger.warning("Discarding unreadable challenge for wallet %s", wallet)
            return None
        if challenge.is_expired():
            return None
        return challenge


ChallengeStore = MemoryChallengeStore | RedisChallengeStore


def build_challenge_store(settings: Settings) -> ChallengeStore:
    """Redis when REDIS_HOST is configured and reachable, in-memory otherwise."""
    if not settings.REDIS_HOST:
        return MemoryChallengeStore(settings.NONCE_EXPIRY_SECONDS)

    pool = ConnectionPool(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        socket_connect_timeout=0.5,
        socket_timeout=5,
        retry_on_timeout=False,
        connection_class=SSLConnection if settings.REDIS_SSL else Connection,
    )
    client = Redis(connection_pool=pool)
    try:
        client.ping()
    except RedisError as e:
        logger.warning("Redis unavailable at %s (%s), keeping challenges in memory", settings.REDIS_HOST, e)
        return MemoryChallengeStore(settings.NONCE_EXPIRY_SECONDS)
    return RedisChallengeStore(client, settings.NONCE_EXPIRY_SECONDS)
