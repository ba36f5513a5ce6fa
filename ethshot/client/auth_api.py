"""
Client side of the wallet login flow.

Talks to POST /api/auth only; every trust decision is made by the server. The
wallet's signing happens in a caller-supplied callback, so no key material passes
through this module.

    api = AuthApiClient("https://ethshot.example")
    session = api.sign_in(address, lambda message: wallet.sign(message))
    api.validate_token(session["jwtToken"])
"""

import logging
from typing import Any, Callable, Dict, Optional

import requests

from ethshot.core.address import is_valid_wallet_address, normalize_address
from ethshot.core.errors import AuthApiError

logger = logging.getLogger(__name__)

AUTH_PATH = "/api/auth"


class AuthApiClient:
    def __init__(self, base_url: str = "", session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(f"{self.base_url}{AUTH_PATH}", json=body, timeout=self.timeout)
        except requests.Timeout as e:
            raise TimeoutError(f"{body['action']} did not complete within {self.timeout}s") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code != 200:
            detail = data.get("detail") if isinstance(data, dict) else None
            raise AuthApiError(response.status_code, str(detail or f"{body['action']} failed"))
        if not isinstance(data, dict):
            raise AuthApiError(response.status_code, "Response is not a JSON object")
        return data

    @staticmethod
    def _wallet(wallet_address: str) -> str:
        if not is_valid_wallet_address(wallet_address):
            raise ValueError("Invalid wallet address format")
        return normalize_address(wallet_address)

    def request_nonce(self, wallet_address: str) -> Dict[str, Any]:
        """Ask the server for a challenge: {nonce, message, walletAddress, expiresAt}."""
        return self._post({"action": "generate_nonce", "walletAddress": self._wallet(wallet_address)})

    def submit_signature(self, wallet_address: str, signature: str, nonce: Optional[str] = None) -> Dict[str, Any]:
        """Exchange a signature over the challenge message for {jwtToken, walletAddress}."""
        body = {
            "action": "verify_signature",
            "walletAddress": self._wallet(wallet_address),
            "signature": signature,
        }
        if nonce:
            body["nonce"] = nonce
        return self._post(body)

    def validate_token(self, token: str) -> Dict[str, Any]:
        return self._post({"action": "validate_token", "token": token})

    def refresh_token(self, token: str) -> Dict[str, Any]:
        return self._post({"action": "refresh_token", "token": token})

    def sign_in(self, wallet_address: str, sign_message: Callable[[str], str]) -> Dict[str, Any]:
        """
        Full login: request a nonce, have the wallet sign the message, submit the signature.

        Args:
            wallet_address: The wallet logging in (any case)
            sign_message: Produces an EIP-191 personal_sign signature for a message

        Raises:
            AuthApiError: the server rejected a step (401 for a bad signature)
            TimeoutError: the server did not answer in time
        """
        challenge = self.request_nonce(wallet_address)
        signature = sign_message(challenge["message"])
        result = self.submit_signature(wallet_address, signature, nonce=challenge["nonce"])
        logger.info("Signed in as %s", result.get("walletAddress"))
        return result

    def close(self) -> None:
        self.session.close()
