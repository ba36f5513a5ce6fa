import logging
from functools import lru_cache
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from ethshot.core.errors import ConfigError

logger = logging.getLogger(__name__)

# dialects with a native INSERT .. ON CONFLICT upsert
SUPPORTED_DATABASE_DIALECTS = ("postgresql", "sqlite")


class PublicConfig(BaseModel):
    """Deployment values that are safe to hand to browser code."""

    server_url: str
    walletconnect_project_id: str
    rpc_url: str
    chain_id: int
    network_name: str
    block_explorer_url: str
    contract_address: str

    class Config:
        frozen = True


class Settings(BaseSettings):
    PROJECT_NAME: str = "ETH Shot"
    # Application settings
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    DOC_PASSWORD: str | None = None

    # SSL settings
    SSL_KEY: str | None = None
    SSL_CERT: str | None = None

    # Public network settings (served to the browser through /api/config)
    PUBLIC_APP_URL: str = "http://localhost:5173"
    WALLETCONNECT_PROJECT_ID: str = "demo"
    RPC_URL: str = "https://sepolia.infura.io/v3/demo"
    CHAIN_ID: int = 11155111
    NETWORK_NAME: str = "Sepolia Testnet"
    BLOCK_EXPLORER_URL: str = "https://sepolia.etherscan.io"
    CONTRACT_ADDRESS: str = ""

    # Profile store
    DATABASE_URL: str = "sqlite:///./ethshot.db"
    PROFILE_STORE_BACKEND: Literal["sql", "supabase"] = "sql"
    STORE_TIMEOUT_SECONDS: float = 10.0
    SUPABASE_URL: str | None = None
    SUPABASE_ANON_KEY: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # Login configuration
    SUPABASE_JWT_SECRET: str | None = None
    JWT_PRIVATE_KEY_PEM: str | None = None
    JWT_PUBLIC_KEY_PEM: str | None = None
    JWT_AUDIENCE: str = "authenticated"
    JWT_ISSUER: str = "supabase"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 24 * 60 * 60  # 24 hours
    NONCE_EXPIRY_SECONDS: int = 300  # 5 minutes

    # Redis settings, challenges are kept in memory when REDIS_HOST is unset
    REDIS_HOST: str | None = None
    REDIS_PORT: int = 6379
    REDIS_SSL: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"
        frozen = True

    @field_validator(
        "DOC_PASSWORD",
        "SSL_KEY",
        "SSL_CERT",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "SUPABASE_SERVICE_ROLE_KEY",
        "SUPABASE_JWT_SECRET",
        "JWT_PRIVATE_KEY_PEM",
        "JWT_PUBLIC_KEY_PEM",
        "REDIS_HOST",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("PORT", "CHAIN_ID", mode="before")
    @classmethod
    def _default_on_unparsable_int(cls, value: Any, info) -> Any:
        # an unparsable public number degrades to its default instead of failing startup
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                default = cls.model_fields[info.field_name].default
                logger.warning(
                    "Invalid %s=%r, falling back to default %s", info.field_name, value, default
                )
                return default
        return value

    @model_validator(mode="after")
    def _check_store_backend(self) -> "Settings":
        if self.PROFILE_STORE_BACKEND == "supabase" and not self.SUPABASE_URL:
            raise ValueError("PROFILE_STORE_BACKEND=supabase requires SUPABASE_URL")
        if self.STORE_TIMEOUT_SECONDS <= 0:
            raise ValueError("STORE_TIMEOUT_SECONDS must be positive")
        if self.PROFILE_STORE_BACKEND == "sql":
            try:
                dialect = make_url(self.DATABASE_URL).get_backend_name()
            except ArgumentError as e:
                raise ValueError(f"DATABASE_URL is not a valid database URL: {e}") from e
            if dialect not in SUPPORTED_DATABASE_DIALECTS:
                raise ValueError(
                    f"DATABASE_URL dialect {dialect!r} is not supported, use one of: "
                    + ", ".join(SUPPORTED_DATABASE_DIALECTS)
                )
        return self

    def public_config(self) -> PublicConfig:
        return PublicConfig(
            server_url=self.PUBLIC_APP_URL,
            walletconnect_project_id=self.WALLETCONNECT_PROJECT_ID,
            rpc_url=self.RPC_URL,
            chain_id=self.CHAIN_ID,
            network_name=self.NETWORK_NAME,
            block_explorer_url=self.BLOCK_EXPLORER_URL,
            contract_address=self.CONTRACT_ADDRESS,
        )

    def missing_server_variables(self) -> list[str]:
        """Names of server-side secrets that are not configured."""
        missing = []
        if not (self.SUPABASE_JWT_SECRET or self.JWT_PRIVATE_KEY_PEM):
            missing.append("SUPABASE_JWT_SECRET")
        if self.PROFILE_STORE_BACKEND == "supabase":
            if not self.SUPABASE_SERVICE_ROLE_KEY:
                missing.append("SUPABASE_SERVICE_ROLE_KEY")
        return missing


def load_settings(**overrides: Any) -> Settings:
    """
    Build a validated Settings instance from the environment and .env.

    Raises:
        ConfigError: when a value is present but invalid
    """
    load_dotenv()
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) or "settings" for err in e.errors()]
        raise ConfigError(f"Invalid configuration: {', '.join(fields)}") from e

    missing = settings.missing_server_variables()
    if missing:
        logger.warning("Missing server environment variables: %s", ", ".join(missing))
    return settings


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, built once on first use."""
    return load_settings()
