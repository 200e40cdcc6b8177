"""
TonPay Configuration Module

Loads environment variables for the payment backend. Settings are loaded
once by the application factory and passed explicitly to the components
that need them.
"""
from typing import Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError


API_ENDPOINTS = {
    "mainnet": "https://tonapi.io/v2/",
    "testnet": "https://testnet.tonapi.io/v2/",
}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Required:
    - TON_NETWORK: "mainnet" or "testnet"
    - RECIPIENT_WALLET_ADDRESS_MAINNET / RECIPIENT_WALLET_ADDRESS_TESTNET
    - TONAPI_API_KEY: bearer token for tonapi.io
    """

    # Network
    ton_network: Literal["mainnet", "testnet"]
    recipient_wallet_address_mainnet: str
    recipient_wallet_address_testnet: str
    tonapi_api_key: str

    # Ledger queries
    tonapi_timeout_seconds: float = Field(default=25, gt=0)
    transaction_window: int = Field(default=35, ge=1, le=1000)

    # Orders
    memo_retry_attempts: int = Field(default=3, ge=1)

    # Database (defaults to ./tonpay-<network>.db)
    database_path: Optional[str] = None

    # Server
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        case_sensitive = False

    @field_validator(
        "recipient_wallet_address_mainnet",
        "recipient_wallet_address_testnet",
        "tonapi_api_key",
    )
    @classmethod
    def require_non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @property
    def recipient_address(self) -> str:
        """Wallet that receives payments on the configured network."""
        if self.ton_network == "testnet":
            return self.recipient_wallet_address_testnet
        return self.recipient_wallet_address_mainnet

    @property
    def api_endpoint(self) -> str:
        return API_ENDPOINTS[self.ton_network]

    @property
    def resolved_database_path(self) -> str:
        return self.database_path or f"./tonpay-{self.ton_network}.db"


def load_settings(**overrides) -> Settings:
    """
    Build Settings from the environment plus explicit overrides.

    Raises:
        ConfigurationError: a required key is missing or blank, or
            TON_NETWORK is not "mainnet"/"testnet"
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigurationError(
            "Invalid configuration: " + "; ".join(problems),
            details={"errors": problems},
        ) from e
