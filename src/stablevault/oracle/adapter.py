"""Validated access to the native asset reference price."""

import logging
import time
from typing import Callable

from stablevault.oracle.base import Price, PriceFeed, PriceResult

logger = logging.getLogger(__name__)

#: Maximum age of a price reading (1 hour)
STALENESS_WINDOW_SECONDS = 3600


class PriceOracleAdapter:
    """Fetches and validates the reference price on every call.

    Readings are never cached: staleness is re-evaluated each time a
    native-asset valuation is needed.
    """

    def __init__(
        self,
        feed: PriceFeed,
        clock: Callable[[], float] = time.time,
        staleness_window: int = STALENESS_WINDOW_SECONDS,
    ):
        self._feed = feed
        self._clock = clock
        self.staleness_window = staleness_window

    @property
    def feed(self) -> PriceFeed:
        return self._feed

    def set_feed(self, feed: PriceFeed) -> None:
        """Replace the feed in use (owner action via AdminConfig)."""
        logger.info(f"Price feed switched: {self._feed.reference} -> {feed.reference}")
        self._feed = feed

    async def get_reference_price(self) -> PriceResult:
        """Fetch and validate the latest price.

        Checks run in order and the first failure wins:
        non-positive answer, incomplete round, stale round, expired reading.
        Never raises.
        """
        try:
            round_data = await self._feed.latest_round_data()
            decimals = await self._feed.decimals()
        except Exception as e:
            logger.warning(
                f"Price feed {self._feed.reference} call failed: {type(e).__name__}: {e}"
            )
            return PriceResult.unavailable(f"{type(e).__name__}: {e}")

        if round_data.answer <= 0:
            logger.warning(f"Price feed returned non-positive answer {round_data.answer}")
            return PriceResult.invalid(round_data.answer)

        if round_data.updated_at == 0:
            logger.warning(f"Price feed round {round_data.round_id} is incomplete")
            return PriceResult.unavailable("round not complete")

        if round_data.answered_in_round < round_data.round_id:
            logger.warning(
                f"Price answered in round {round_data.answered_in_round} "
                f"older than round {round_data.round_id}"
            )
            return PriceResult.stale("answer from a previous round")

        elapsed = int(self._clock()) - round_data.updated_at
        if elapsed > self.staleness_window:
            logger.warning(f"Price is {elapsed}s old (window {self.staleness_window}s)")
            return PriceResult.stale("price older than staleness window", elapsed=elapsed)

        return PriceResult.success(
            Price(value=round_data.answer, decimals=decimals, updated_at=round_data.updated_at)
        )

    async def require_price(self) -> Price:
        """Validated price, or raise the typed oracle error."""
        result = await self.get_reference_price()
        return result.unwrap()
