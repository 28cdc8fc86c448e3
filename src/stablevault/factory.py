"""Vault factory wiring collaborators from settings."""

import logging
from functools import partial
from typing import Optional

from stablevault.config import Settings, get_settings
from stablevault.ledger.database import get_session_factory
from stablevault.oracle.factory import create_price_feed
from stablevault.vault import Vault

logger = logging.getLogger(__name__)

# Singleton instance
_vault_instance: Optional[Vault] = None


def create_vault(settings: Optional[Settings] = None, session_factory=None) -> Vault:
    """Build an unbootstrapped Vault from settings.

    Collaborators are selected by ``DRY_RUN``:
    - true (default): in-memory custody, simulated exchange and feed
    - false: HTTP custody and exchange services; the feed is resolved from
      ``PRICE_FEED_REFERENCE``
    """
    settings = settings or get_settings()
    session_factory = session_factory or get_session_factory()
    feed_factory = partial(create_price_feed, settings=settings)

    if settings.dry_run:
        from stablevault.oracle.dry_run import SimulatedPriceFeed
        from stablevault.routing.dry_run import SimulatedExchange
        from stablevault.transfers.memory import InMemoryAssetBook

        transfers = InMemoryAssetBook(
            vault_address=settings.vault_address, native_asset=settings.native_asset
        )
        exchange = SimulatedExchange(transfers, address=settings.exchange_address)
        feed = SimulatedPriceFeed(name=settings.price_feed_reference, auto_refresh=True)
    else:
        if not settings.custody_url or not settings.exchange_url:
            raise ValueError("CUSTODY_URL and EXCHANGE_URL are required when DRY_RUN=false")

        from stablevault.routing.http_exchange import HttpExchange
        from stablevault.transfers.http_custody import HttpCustody

        transfers = HttpCustody(
            settings.custody_url,
            vault_address=settings.vault_address,
            api_key=settings.custody_api_key,
            timeout=settings.http_timeout,
        )
        exchange = HttpExchange(
            settings.exchange_url,
            spender_address=settings.exchange_address,
            timeout=settings.http_timeout,
        )
        feed = feed_factory(settings.price_feed_reference)

    logger.info(
        f"Vault collaborators: custody={type(transfers).__name__} "
        f"exchange={exchange.name} feed={feed.reference}"
    )

    return Vault(
        session_factory,
        feed=feed,
        exchange=exchange,
        transfers=transfers,
        native_asset=settings.native_asset,
        native_decimals=settings.native_decimals,
        unit_of_account=settings.unit_of_account_asset,
        bridge_asset=settings.bridge_asset,
        accept_plain_transfers=settings.accept_plain_transfers,
        feed_factory=feed_factory,
    )


async def bootstrap_vault(vault: Vault, settings: Optional[Settings] = None) -> Vault:
    """Load or create persisted vault state using configured parameters."""
    settings = settings or get_settings()
    return await vault.bootstrap(
        owner=settings.owner_id,
        limit_per_tx=settings.limit_per_tx,
        bank_cap=settings.bank_cap,
        slippage_tolerance_bps=settings.slippage_tolerance_bps,
        price_feed_reference=settings.price_feed_reference,
    )


def get_vault() -> Vault:
    """Get the process-wide vault instance."""
    global _vault_instance
    if _vault_instance is None:
        _vault_instance = create_vault()
    return _vault_instance


def reset_vault() -> None:
    """Reset vault instance (useful for testing)."""
    global _vault_instance
    _vault_instance = None
