"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

from .account import AccountId, MAX_BALANCE, default_accounts


class TokenLedgerConfig(BaseSettings):
    """Token ledger configuration"""

    model_config = SettingsConfigDict(
        env_prefix="TOKEN_LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Storage configuration
    database_url: str = "sqlite:///token_ledger.db"  # or memory://

    # Token configuration, used only when no token is deployed yet
    initial_supply: int = 1_000_000
    minter: str = default_accounts()["alice"].to_hex()
    contract_name: str = "Erc20"  # Prefix of event topics

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    @field_validator("initial_supply")
    @classmethod
    def _supply_in_range(cls, value: int) -> int:
        if not 0 <= value <= MAX_BALANCE:
            raise ValueError("initial_supply must be within 0..2**128-1")
        return value

    @field_validator("minter")
    @classmethod
    def _minter_is_account(cls, value: str) -> str:
        return AccountId.from_hex(value).to_hex()

    @property
    def minter_account(self) -> AccountId:
        return AccountId.from_hex(self.minter)


# Global configuration instance
config = TokenLedgerConfig()


def get_config() -> TokenLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> TokenLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = TokenLedgerConfig()
    return config
