"""Application configuration using pydantic-settings.

Limits are expressed in the internal accounting unit (6 fractional digits),
so 1_000_000 means 1.000000 units.
"""

from functools import lru_cache
from typing import Optional

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
        default="sqlite+aiosqlite:///./data/stablevault.db",
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
    dry_run: bool = Field(
        default=True, description="Use in-process simulated collaborators"
    )

    # ======================
    # Admin
    # ======================
    owner_id: str = Field(default="owner", description="Identity of the vault owner")
    admin_token: str = Field(default="", description="Admin API token for protected endpoints")

    # ======================
    # Assets
    # ======================
    native_asset: str = Field(default="NATIVE", description="Native settlement asset identifier")
    native_decimals: int = Field(default=18, description="Native asset decimal precision")
    unit_of_account_asset: str = Field(
        default="USDC", description="Stable unit-of-account asset identifier"
    )
    bridge_asset: str = Field(
        default="WNATIVE", description="Bridging asset for two-hop swap routes"
    )
    vault_address: str = Field(
        default="vault", description="Identity of the vault at the custody layer"
    )

    # ======================
    # Limits (immutable after bootstrap)
    # ======================
    limit_per_tx: int = Field(
        default=10_000_000_000, description="Per-operation limit (10,000.000000 units)"
    )
    bank_cap: int = Field(
        default=1_000_000_000_000, description="Global bank capacity (1,000,000.000000 units)"
    )

    # ======================
    # Risk parameters (owner mutable)
    # ======================
    slippage_tolerance_bps: int = Field(
        default=300, ge=0, le=1000, description="Initial slippage tolerance (3%)"
    )
    price_feed_reference: str = Field(
        default="dry-run",
        description="Price feed reference (http(s) URL; names only with DRY_RUN=true)",
    )
    accept_plain_transfers: bool = Field(
        default=True, description="Treat plain native transfers as deposits"
    )

    # ======================
    # Collaborator endpoints
    # ======================
    exchange_url: str = Field(default="", description="Exchange router service URL")
    exchange_address: str = Field(
        default="exchange", description="Identity the exchange spends vault funds as"
    )
    custody_url: str = Field(default="", description="Asset custody service URL")
    custody_api_key: Optional[str] = Field(default=None, description="Custody service API key")
    http_timeout: float = Field(default=10.0, description="Collaborator HTTP timeout (seconds)")

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
            "admin_token": "***" if self.admin_token else "(not set)",
            "owner_id": self.owner_id,
            "assets": {
                "native": self.native_asset,
                "native_decimals": self.native_decimals,
                "unit_of_account": self.unit_of_account_asset,
                "bridge": self.bridge_asset,
            },
            "limits": {
                "limit_per_tx": self.limit_per_tx,
                "bank_cap": self.bank_cap,
            },
            "risk": {
                "slippage_tolerance_bps": self.slippage_tolerance_bps,
                "price_feed_reference": self.price_feed_reference,
                "accept_plain_transfers": self.accept_plain_transfers,
            },
            "collaborators": {
                "exchange": self.exchange_url or "(not set)",
                "custody": self.custody_url or "(not set)",
                "custody_api_key": "***" if self.custody_api_key else "(not set)",
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
