"""
Error taxonomy shared by the client-safe helpers, the server-only token
module and the profile store.

The API layer maps these onto HTTP responses in main.py:
- ConfigError       -> 503, detail logged, generic body
- DecodeError       -> 400
- VerificationError -> 401, generic body
- StoreError        -> 500, generic body (ProfileNotFound -> 404, NicknameTaken -> 409)
"""


class EthShotError(Exception):
    """Base class for all application errors."""


class ConfigError(EthShotError):
    """Missing or invalid deployment configuration."""

    def __init__(self, message: str, missing_variables: list[str] | None = None):
        super().__init__(message)
        self.missing_variables = missing_variables or []


class DecodeError(EthShotError):
    """Malformed bearer token (segment count, encoding or payload shape)."""


class VerificationError(EthShotError):
    """Signature or token check failed."""


class StoreError(EthShotError):
    """Backing store call failed."""


class ProfileNotFound(StoreError):
    def __init__(self, wallet_address: str):
        super().__init__(f"No profile for wallet {wallet_address}")
        self.wallet_address = wallet_address


class NicknameTaken(StoreError):
    def __init__(self, nickname: str):
        super().__init__(f"Nickname '{nickname}' is already taken")
        self.nickname = nickname


class AuthApiError(EthShotError):
    """Non-success reply from POST /api/auth, as seen by an API client."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(f"[{status_code}] {detail}")
        self.status_code = status_code
        self.detail = detail
