"""
Wallet Authentication Service

Server-side glue behind POST /api/auth. It never verifies anything itself: nonces come
from jwt_secure.generate_nonce_secure(), signatures and tokens are checked by
jwt_secure.verify_signature_secure() / verify_jwt_secure().

Authentication Flow:
1. generate_auth_nonce(wallet)  -> nonce + message stored as the wallet's single challenge
2. wallet signs the message (EIP-191 personal_sign)
3. verify_and_authenticate(wallet, signature) -> challenge consumed, JWT issued
4. validate_auth_token(token) / refresh_auth_token(token) for the lifetime of the session
"""

import logging
from typing import Any, Dict, Optional

from ethshot.core.address import is_valid_wallet_address, normalize_address
from ethshot.core.challenge_store import ChallengeStore
from ethshot.core.config import Settings
from ethshot.core.errors import ConfigError, StoreError, VerificationError
from ethshot.server.jwt_secure import (
    create_auth_message_secure,
    generate_jwt_secure,
    generate_nonce_secure,
    has_signing_key,
    verify_jwt_secure,
    verify_signature_secure,
)
from ethshot.services.profile_gateway import ProfileGateway

logger = logging.getLogger(__name__)


class WalletAuthService:
    def __init__(self, settings: Settings, challenges: ChallengeStore, profiles: Optional[ProfileGateway] = None):
        self.settings = settings
        self.challenges = challenges
        self.profiles = profiles

    def _require_signing_key(self, context: str) -> None:
        if not has_signing_key(self.settings):
            raise ConfigError(
                f"{context} failed: no JWT signing key configured",
                missing_variables=self.settings.missing_server_variables(),
            )

    @staticmethod
    def _require_wallet(wallet_address: str) -> str:
        if not is_valid_wallet_address(wallet_address):
            raise ValueError("Invalid wallet address format")
        return normalize_address(wallet_address)

    def generate_auth_nonce(self, wallet_address: str) -> Dict[str, Any]:
        """Issue a fresh challenge for the wallet, replacing any previous one."""
        self._require_signing_key("Nonce generation")
        wallet = self._require_wallet(wallet_address)

        nonce = generate_nonce_secure()
        message = create_auth_message_secure(wallet, nonce)
        challenge = self.challenges.put(wallet, nonce, message)

        logger.info("Generated nonce for wallet %s", wallet)
        return {
            "nonce": challenge.nonce,
            "message": challenge.message,
            "wallet_address": wallet,
            "expires_at": int(challenge.expires_at),
        }

    def verify_and_authenticate(self, wallet_address: str, signature: str) -> Dict[str, Any]:
        """
        Check the signature over the wallet's pending challenge and issue a token.

        The challenge is consumed whether or not the signature matches.

        Raises:
            ValueError: invalid wallet address
            VerificationError: no pending challenge or signature mismatch
            ConfigError: no signing key configured
        """
        self._require_signing_key("Signature verification")
        wallet = self._require_wallet(wallet_address)

        challenge = self.challenges.take(wallet)
        if challenge is None:
            raise VerificationError("No authentication nonce found. Please request a new nonce first.")

        message = create_auth_message_secure(wallet, challenge.nonce)
        if not verify_signature_secure(message, signature, wallet):
            logger.info("Rejected signature for wallet %s", wallet)
            raise VerificationError("Invalid signature")

        token = generate_jwt_secure(wallet, settings=self.settings)
        self._record_login(wallet)

        logger.info("Wallet authentication successful: %s", wallet)
        return {"jwt_token": token, "wallet_address": wallet}

    def _record_login(self, wallet: str) -> None:
        if self.profiles is None:
            return
        try:
            self.profiles.record_login(wallet)
        except (StoreError, TimeoutError) as e:
            # login bookkeeping is best effort
            logger.warning("Failed to record login for %s: %s", wallet, e)

    def validate_auth_token(self, token: str) -> Dict[str, Any]:
        payload = verify_jwt_secure(token, settings=self.settings)
        return {
            "wallet_address": payload["walletAddress"],
            "expires_at": payload["exp"],
            "token_payload": payload,
        }

    def refresh_auth_token(self, token: str) -> Dict[str, Any]:
        """Issue a new token for the holder of a still-valid one."""
        validation = self.validate_auth_token(token)
        wallet = validation["wallet_address"]
        new_token = generate_jwt_secure(wallet, settings=self.settings)
        logger.info("Token refreshed for wallet %s", wallet)
        return {"jwt_token": new_token, "wallet_address": wallet}
