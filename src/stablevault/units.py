"""Fixed-point conversions into the internal accounting unit.

All ledger amounts are integers with ``ACCOUNTING_DECIMALS`` fractional
digits. Conversions use integer arithmetic and truncate toward zero.
"""

from decimal import Decimal

#: Fractional digits of the internal accounting unit
ACCOUNTING_DECIMALS = 6

#: Basis-point denominator (10000 bps = 100%)
BPS_DENOMINATOR = 10_000

#: Highest slippage tolerance the owner may configure (10%)
MAX_SLIPPAGE_BPS = 1_000


def to_unit_of_account(
    amount: int,
    asset_decimals: int,
    price: int,
    price_decimals: int,
    target_decimals: int = ACCOUNTING_DECIMALS,
) -> int:
    """Convert a raw asset amount into the accounting unit.

    Computes ``amount * price / 10**(asset_decimals + price_decimals - target_decimals)``.

    Example:
        1 native unit (18 decimals) at 2000 with an 8-decimal price:
        ``to_unit_of_account(10**18, 18, 2000 * 10**8, 8) == 2000_000000``

    Raises:
        ValueError: If the scaling exponent is negative or an input is negative
    """
    exponent = asset_decimals + price_decimals - target_decimals
    if exponent < 0:
        raise ValueError(
            f"Unsupported precision: asset={asset_decimals} price={price_decimals} "
            f"target={target_decimals}"
        )
    if amount < 0 or price < 0:
        raise ValueError("amount and price must be non-negative")
    return amount * price // 10**exponent


def scale_amount(amount: int, from_decimals: int, to_decimals: int) -> int:
    """Rescale an integer amount between precisions (truncating)."""
    if to_decimals >= from_decimals:
        return amount * 10 ** (to_decimals - from_decimals)
    return amount // 10 ** (from_decimals - to_decimals)


def format_units(amount: int, decimals: int = ACCOUNTING_DECIMALS) -> Decimal:
    """Human-readable Decimal for logs and API responses."""
    return Decimal(amount).scaleb(-decimals)


def apply_slippage(expected_out: int, slippage_bps: int) -> int:
    """Minimum acceptable output for a quote under a slippage tolerance."""
    return expected_out * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR
