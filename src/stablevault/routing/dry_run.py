"""Simulated exchange for dry-run mode and tests."""

import logging
import time
from typing import Callable, Optional

from stablevault.routing.base import Exchange
from stablevault.transfers.memory import InMemoryAssetBook
from stablevault.units import BPS_DENOMINATOR

logger = logging.getLogger(__name__)


# Simulated reference prices (8 decimals) and precisions.
# These are for demonstration purposes only.
SIMULATED_ASSETS: dict[str, tuple[int, int]] = {
    # symbol: (price, decimals)
    "USDC": (1_00000000, 6),
    "WNATIVE": (2000_00000000, 18),
    "DAI": (1_00000000, 18),
    "LINK": (15_00000000, 18),
    "UNI": (8_00000000, 18),
    "WBTC": (60000_00000000, 8),
}

SIMULATED_PAIRS: list[tuple[str, str]] = [
    ("DAI", "USDC"),
    ("WBTC", "USDC"),
    ("WNATIVE", "USDC"),
    ("LINK", "WNATIVE"),
    ("UNI", "WNATIVE"),
]


class SimulatedExchange(Exchange):
    """
    Constant-price exchange over an in-memory asset book.

    Provides:
    - A pair registry (pairs are unordered)
    - Quotes from simulated prices with a per-hop fee
    - Execution that honors deadlines and minimum output, with optional
      adverse price movement between quote and execution
    """

    def __init__(
        self,
        book: InMemoryAssetBook,
        fee_bps: int = 30,
        clock: Callable[[], float] = time.time,
        address: str = "exchange",
        assets: Optional[dict[str, tuple[int, int]]] = None,
        pairs: Optional[list[tuple[str, str]]] = None,
    ):
        self.book = book
        self.fee_bps = fee_bps
        self._clock = clock
        self._address = address
        self._assets = dict(SIMULATED_ASSETS if assets is None else assets)
        self._pairs: set[frozenset] = set()
        for a, b in SIMULATED_PAIRS if pairs is None else pairs:
            self.add_pair(a, b)
        self.execution_slippage_bps = 0
        self.fail_swaps = False

    @property
    def name(self) -> str:
        return "dry_run"

    @property
    def address(self) -> str:
        return self._address

    def add_pair(self, token_a: str, token_b: str) -> None:
        self._pairs.add(frozenset((token_a, token_b)))

    def remove_pair(self, token_a: str, token_b: str) -> None:
        self._pairs.discard(frozenset((token_a, token_b)))

    def set_asset(self, symbol: str, price: int, decimals: int) -> None:
        """Set simulated price (8 decimals) and precision for an asset."""
        self._assets[symbol] = (price, decimals)

    async def get_pair(self, token_a: str, token_b: str) -> Optional[str]:
        if frozenset((token_a, token_b)) in self._pairs:
            return f"{min(token_a, token_b)}-{max(token_a, token_b)}"
        return None

    def _hop(self, amount_in: int, token_in: str, token_out: str) -> int:
        price_in, dec_in = self._assets[token_in]
        price_out, dec_out = self._assets[token_out]
        gross = amount_in * price_in * 10**dec_out // (price_out * 10**dec_in)
        return gross * (BPS_DENOMINATOR - self.fee_bps) // BPS_DENOMINATOR

    async def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        amounts = [amount_in]
        for token_in, token_out in zip(path, path[1:]):
            if frozenset((token_in, token_out)) not in self._pairs:
                raise ValueError(f"Pair {token_in}/{token_out} does not exist")
            amounts.append(self._hop(amounts[-1], token_in, token_out))
        return amounts

    async def swap_exact_tokens_for_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        recipient: str,
        deadline: int,
    ) -> list[int]:
        if self.fail_swaps:
            raise RuntimeError("Simulated exchange failure")
        if int(self._clock()) > deadline:
            raise ValueError("EXPIRED")

        amounts = await self.get_amounts_out(amount_in, path)
        if self.execution_slippage_bps:
            amounts[-1] = (
                amounts[-1] * (BPS_DENOMINATOR - self.execution_slippage_bps) // BPS_DENOMINATOR
            )
        if amounts[-1] < amount_out_min:
            raise ValueError("INSUFFICIENT_OUTPUT_AMOUNT")

        # Input is pulled from the caller (the vault) using granted authority
        pulled = await self.book.transfer_from(
            path[0], self.book.vault_address, self._address, self._address, amount_in
        )
        if not pulled:
            raise ValueError("TRANSFER_FROM_FAILED")

        self.book.mint(recipient, path[-1], amounts[-1])
        logger.debug(f"Simulated swap {amounts[0]} {path[0]} -> {amounts[-1]} {path[-1]}")
        return amounts
