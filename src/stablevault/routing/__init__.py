"""Swap routing into the unit-of-account asset."""

from stablevault.routing.adapter import SWAP_DEADLINE_SECONDS, SwapRouterAdapter
from stablevault.routing.base import Exchange, SwapPath, SwapQuote

__all__ = ["SWAP_DEADLINE_SECONDS", "Exchange", "SwapPath", "SwapQuote", "SwapRouterAdapter"]
