"""Application configuration using pydantic-settings.

The vault and exchange addresses identify the custody account and the
conversion network inside the settlement layer.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Database
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/nftgift.db",
        description="Database connection URL",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # Claim registry
    # ======================
    claim_name: str = Field(default="NFTGift", description="Claim token collection name")
    claim_symbol: str = Field(default="NTG", description="Claim token collection symbol")

    # ======================
    # Vault
    # ======================
    vault_address: str = Field(
        default="0x5FbDB2315678afecb367f032d93F642f64180aa3",
        description="Account holding custodied assets",
    )
    strict_unknown_claims: bool = Field(
        default=False,
        description="Raise on liquidation of unknown claims instead of silently ignoring",
    )
    lock_timeout_seconds: float = Field(
        default=30.0, description="Maximum wait for the vault operation lock"
    )

    # ======================
    # Exchange
    # ======================
    exchange_provider: str = Field(default="dry_run", description="Exchange collaborator")
    exchange_address: str = Field(
        default="0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512",
        description="Conversion network address",
    )
    exchange_fee_percent: Decimal = Field(
        default=Decimal("0.003"), description="Conversion fee (0.3%)"
    )
    default_exchange_rate: Decimal = Field(
        default=Decimal("1"), description="Rate used for pairs without an explicit rate"
    )

    # ======================
    # Safety Guards
    # ======================
    dry_run: bool = Field(
        default=True,
        description=(
            "Expose the faucet and allowance endpoints. Only simulated collaborators "
            "ship, so turning this off only hides those endpoints and logs a warning"
        ),
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "database_url": self._redact_url(self.database_url),
            "claims": {
                "name": self.claim_name,
                "symbol": self.claim_symbol,
                "strict_unknown_claims": self.strict_unknown_claims,
            },
            "vault": {
                "address": self.vault_address,
                "lock_timeout_seconds": self.lock_timeout_seconds,
            },
            "exchange": {
                "provider": self.exchange_provider,
                "address": self.exchange_address,
                "fee_percent": str(self.exchange_fee_percent),
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
