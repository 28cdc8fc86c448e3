"""Simulated price feed for dry-run mode and tests."""

import time
from dataclasses import replace
from typing import Callable, Optional

from stablevault.oracle.base import PriceFeed, RoundData

#: Default simulated native price: 2000.00000000 units of account
DEFAULT_PRICE = 2000 * 10**8


class SimulatedPriceFeed(PriceFeed):
    """In-process feed whose rounds are pushed by the caller.

    With ``auto_refresh`` the latest round is re-stamped with the current
    time on every read, so a long-running dry-run server never sees a stale
    price. Tests leave it off and drive staleness through the clock.
    """

    def __init__(
        self,
        price: int = DEFAULT_PRICE,
        decimals: int = 8,
        clock: Callable[[], float] = time.time,
        name: str = "dry-run",
        auto_refresh: bool = False,
    ):
        self._decimals = decimals
        self._clock = clock
        self._name = name
        self.auto_refresh = auto_refresh
        self._round_id = 0
        self._round: Optional[RoundData] = None
        self.fail_with: Optional[Exception] = None
        self.push_price(price)

    @property
    def reference(self) -> str:
        return self._name

    def push_price(self, price: int, updated_at: Optional[int] = None) -> RoundData:
        """Publish a new complete round."""
        self._round_id += 1
        now = int(self._clock()) if updated_at is None else updated_at
        self._round = RoundData(
            round_id=self._round_id,
            answer=price,
            started_at=now,
            updated_at=now,
            answered_in_round=self._round_id,
        )
        return self._round

    def set_round(self, round_data: RoundData) -> None:
        """Publish an arbitrary (possibly malformed) round."""
        self._round = round_data

    async def latest_round_data(self) -> RoundData:
        if self.fail_with is not None:
            raise self.fail_with
        if self.auto_refresh and self._round is not None:
            now = int(self._clock())
            self._round = replace(self._round, started_at=now, updated_at=now)
        return self._round

    async def decimals(self) -> int:
        return self._decimals
