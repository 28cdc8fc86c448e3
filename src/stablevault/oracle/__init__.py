"""Native asset price oracle."""

from stablevault.oracle.adapter import STALENESS_WINDOW_SECONDS, PriceOracleAdapter
from stablevault.oracle.base import OracleFailure, Price, PriceFeed, PriceResult, RoundData
from stablevault.oracle.factory import create_price_feed

__all__ = [
    "STALENESS_WINDOW_SECONDS",
    "OracleFailure",
    "Price",
    "PriceFeed",
    "PriceOracleAdapter",
    "PriceResult",
    "RoundData",
    "create_price_feed",
]
