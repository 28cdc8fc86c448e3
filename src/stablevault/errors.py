"""Error taxonomy for vault operations.

Every error carries the values needed to diagnose it (requested vs allowed,
balance vs requested, ...) in ``context`` so callers and the API layer can
act on it without parsing messages.
"""

from typing import Any, Optional


class VaultError(Exception):
    """Base class for all vault errors."""

    code = "vault_error"

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict:
        """Serialize for API responses and audit logs."""
        return {
            "error": self.code,
            "message": self.message,
            "context": {
                k: str(v) if isinstance(v, int) and not isinstance(v, bool) else v
                for k, v in self.context.items()
            },
        }


# ======================
# Input validation
# ======================


class InputValidationError(VaultError):
    """Malformed request; never retried."""

    code = "invalid_input"


class ZeroAmount(InputValidationError):
    code = "zero_amount"

    def __init__(self, operation: str):
        super().__init__(f"{operation}: amount must be greater than zero", operation=operation)


class InvalidAddress(InputValidationError):
    code = "invalid_address"

    def __init__(self, field: str):
        super().__init__(f"{field} must not be empty", field=field)


class UnrecognizedCall(InputValidationError):
    code = "unrecognized_call"

    def __init__(self, reason: str):
        super().__init__(f"Unrecognized call rejected: {reason}", reason=reason)


# ======================
# Limits
# ======================


class LimitError(VaultError):
    """A protective limit would be breached."""

    code = "limit_exceeded"


class ExceedsPerTxLimit(LimitError):
    code = "exceeds_per_tx_limit"

    def __init__(self, requested: int, limit: int):
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Amount {requested} exceeds per-operation limit {limit}",
            requested=requested,
            limit=limit,
        )


class BankCapExceeded(LimitError):
    code = "bank_cap_exceeded"

    def __init__(self, projected_total: int, cap: int):
        self.projected_total = projected_total
        self.cap = cap
        super().__init__(
            f"Projected bank value {projected_total} exceeds bank cap {cap}",
            projected_total=projected_total,
            cap=cap,
        )


# ======================
# Balance
# ======================


class InsufficientBalance(VaultError):
    code = "insufficient_balance"

    def __init__(self, balance: int, requested: int):
        self.balance = balance
        self.requested = requested
        super().__init__(
            f"Insufficient balance: have {balance}, requested {requested}",
            balance=balance,
            requested=requested,
        )


# ======================
# Collaborators
# ======================


class CollaboratorError(VaultError):
    """An external collaborator failed; the caller must resubmit later."""

    code = "collaborator_error"


class OracleUnavailable(CollaboratorError):
    code = "oracle_unavailable"

    def __init__(self, reason: str = "price feed unavailable"):
        super().__init__(f"Oracle unavailable: {reason}", reason=reason)


class StalePrice(CollaboratorError):
    code = "stale_price"

    def __init__(self, reason: str, elapsed: Optional[int] = None):
        self.elapsed = elapsed
        context: dict[str, Any] = {"reason": reason}
        if elapsed is not None:
            context["elapsed_seconds"] = elapsed
        super().__init__(f"Stale price: {reason}", **context)


class InvalidPrice(CollaboratorError):
    code = "invalid_price"

    def __init__(self, price: int):
        self.price = price
        super().__init__(f"Invalid oracle price: {price}", price=price)


class NoRouteAvailable(CollaboratorError):
    code = "no_route_available"

    def __init__(self, token_in: str, token_out: str):
        super().__init__(
            f"No swap route from {token_in} to {token_out}",
            token_in=token_in,
            token_out=token_out,
        )


class SwapFailed(CollaboratorError):
    code = "swap_failed"

    def __init__(self, reason: str, **context: Any):
        super().__init__(f"Swap failed: {reason}", reason=reason, **context)


class AssetTransferFailed(CollaboratorError):
    code = "asset_transfer_failed"

    def __init__(self, asset: str, amount: int, direction: str):
        super().__init__(
            f"Asset transfer {direction} of {amount} {asset} failed",
            asset=asset,
            amount=amount,
            direction=direction,
        )


# ======================
# Concurrency / authorization / configuration
# ======================


class ReentrancyAttempt(VaultError):
    code = "reentrancy_attempt"

    def __init__(self, operation: str, active: Optional[str]):
        super().__init__(
            f"Reentrant call to {operation} while {active} is executing",
            operation=operation,
            active=active,
        )


class NotOwner(VaultError):
    code = "not_owner"

    def __init__(self, caller: Optional[str]):
        super().__init__(f"Caller {caller!r} is not the owner", caller=caller)


class InvalidReference(VaultError):
    code = "invalid_reference"

    def __init__(self, field: str = "price_feed_reference", reason: str = "must not be empty"):
        super().__init__(f"{field} {reason}", field=field, reason=reason)


class InvalidSlippageTolerance(VaultError):
    code = "invalid_slippage_tolerance"

    def __init__(self, bps: int, maximum: int):
        super().__init__(
            f"Slippage tolerance {bps} bps outside [0, {maximum}]",
            bps=bps,
            maximum=maximum,
        )
