"""Swap routing into the unit-of-account asset.

Routing is two-tier: the direct pair first, then a single bridge hop.
Minimum output is derived from a live quote taken right before execution and
the owner-configured slippage tolerance.
"""

import logging
import time
from typing import Callable, Optional

from stablevault.errors import NoRouteAvailable, SwapFailed
from stablevault.routing.base import Exchange, SwapPath, SwapQuote
from stablevault.transfers.base import AssetTransfer
from stablevault.units import apply_slippage

logger = logging.getLogger(__name__)

#: Execution deadline window (5 minutes)
SWAP_DEADLINE_SECONDS = 300


class SwapRouterAdapter:
    """Selects routes and executes swaps into the unit of account."""

    def __init__(
        self,
        exchange: Exchange,
        transfers: AssetTransfer,
        unit_of_account: str,
        bridge_asset: str,
        slippage_bps: Callable[[], int],
        clock: Callable[[], float] = time.time,
        deadline_seconds: int = SWAP_DEADLINE_SECONDS,
    ):
        """Initialize the adapter.

        Args:
            exchange: External exchange collaborator
            transfers: Custody layer used to grant spending authority
            unit_of_account: Output asset of every route
            bridge_asset: Intermediate asset for two-hop routes
            slippage_bps: Callable returning the current tolerance in bps
            clock: Time source (seconds)
            deadline_seconds: Execution window passed to the exchange
        """
        self.exchange = exchange
        self.transfers = transfers
        self.unit_of_account = unit_of_account
        self.bridge_asset = bridge_asset
        self._slippage_bps = slippage_bps
        self._clock = clock
        self.deadline_seconds = deadline_seconds

    async def _find_path(self, token_in: str) -> Optional[SwapPath]:
        if await self.exchange.get_pair(token_in, self.unit_of_account):
            return SwapPath((token_in, self.unit_of_account))

        if token_in == self.bridge_asset:
            return None

        first_leg = await self.exchange.get_pair(token_in, self.bridge_asset)
        if first_leg and await self.exchange.get_pair(self.bridge_asset, self.unit_of_account):
            return SwapPath((token_in, self.bridge_asset, self.unit_of_account))

        return None

    async def select_path(self, token_in: str) -> SwapPath:
        """Direct pair if registered, else the bridge route.

        Raises:
            NoRouteAvailable: If neither route exists
        """
        path = await self._find_path(token_in)
        if path is None:
            raise NoRouteAvailable(token_in, self.unit_of_account)
        logger.debug(f"Selected path {path}")
        return path

    async def has_route(self, token_in: str) -> bool:
        return await self._find_path(token_in) is not None

    async def quote(self, token_in: str, amount_in: int) -> int:
        """Estimated output for previews; 0 when no route or quote exists."""
        path = await self._find_path(token_in)
        if path is None or amount_in <= 0:
            return 0
        try:
            amounts = await self.exchange.get_amounts_out(amount_in, path.as_list())
        except Exception as e:
            logger.warning(f"Quote for {amount_in} {token_in} failed: {type(e).__name__}: {e}")
            return 0
        return amounts[-1] if amounts else 0

    async def prepare(self, token_in: str, amount_in: int) -> SwapQuote:
        """Select a path and quote it without executing.

        Raises:
            NoRouteAvailable: If no route exists
            SwapFailed: If the exchange cannot quote the path
        """
        path = await self.select_path(token_in)
        try:
            amounts = await self.exchange.get_amounts_out(amount_in, path.as_list())
        except Exception as e:
            raise SwapFailed(f"quote failed: {type(e).__name__}: {e}", path=str(path))

        expected_out = amounts[-1] if amounts else 0
        if expected_out <= 0:
            raise SwapFailed("exchange quoted zero output", path=str(path))

        slippage_bps = self._slippage_bps()
        return SwapQuote(
            path=path,
            amount_in=amount_in,
            expected_out=expected_out,
            min_out=apply_slippage(expected_out, slippage_bps),
            slippage_bps=slippage_bps,
        )

    async def execute(self, token_in: str, amount_in: int) -> SwapQuote:
        """Swap ``amount_in`` of a held asset into the unit of account.

        Spending authority is granted for exactly ``amount_in`` and revoked
        afterwards on every path.

        Returns:
            The executed quote with ``actual_out`` set

        Raises:
            NoRouteAvailable: If no route exists
            SwapFailed: On zero quote, exchange failure, or short output
        """
        quote = await self.prepare(token_in, amount_in)
        quote.deadline = int(self._clock()) + self.deadline_seconds
        spender = self.exchange.address

        if not await self.transfers.approve(token_in, spender, amount_in):
            raise SwapFailed("could not grant exchange spending authority", asset=token_in)

        try:
            amounts = await self.exchange.swap_exact_tokens_for_tokens(
                amount_in,
                quote.min_out,
                quote.path.as_list(),
                self.transfers.vault_address,
                quote.deadline,
            )
        except SwapFailed:
            raise
        except Exception as e:
            logger.error(f"Exchange {self.exchange.name} swap error: {type(e).__name__}: {e}")
            raise SwapFailed(f"{type(e).__name__}: {e}", path=str(quote.path))
        finally:
            await self.transfers.approve(token_in, spender, 0)

        actual_out = amounts[-1] if amounts else 0
        if actual_out <= 0:
            raise SwapFailed("exchange returned zero output", path=str(quote.path))
        if actual_out < quote.min_out:
            raise SwapFailed(
                "output below slippage bound",
                actual_out=actual_out,
                min_out=quote.min_out,
            )

        quote.actual_out = actual_out
        logger.info(
            f"Swapped {amount_in} {token_in} -> {actual_out} {self.unit_of_account} "
            f"via {quote.path} (expected {quote.expected_out}, min {quote.min_out})"
        )
        return quote
