"""Factory for price feeds.

Creates an HTTP feed for URL references. Name references resolve to the
simulated feed, and only in dry-run mode.
"""

import logging
from typing import Optional

from stablevault.config import Settings, get_settings
from stablevault.errors import InvalidReference
from stablevault.oracle.base import PriceFeed

logger = logging.getLogger(__name__)


def create_price_feed(reference: str, settings: Optional[Settings] = None) -> PriceFeed:
    """Resolve a feed reference to a PriceFeed implementation.

    Raises:
        InvalidReference: If a non-URL reference is given outside dry-run
    """
    settings = settings or get_settings()

    if reference.startswith(("http://", "https://")):
        from stablevault.oracle.http_feed import HttpPriceFeed

        return HttpPriceFeed(reference, timeout=settings.http_timeout)

    if not settings.dry_run:
        logger.error(f"Price feed reference {reference!r} is not a URL (DRY_RUN=false)")
        raise InvalidReference("price_feed_reference", "must be an http(s) URL outside dry-run")

    from stablevault.oracle.dry_run import SimulatedPriceFeed

    return SimulatedPriceFeed(name=reference, auto_refresh=True)
