"""Audit events emitted on every vault state transition."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from stablevault.routing.base import SwapQuote


class EventType(str, Enum):
    """Kinds of observable state transitions."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    SWAP_EXECUTED = "swap_executed"
    FEED_UPDATED = "feed_updated"
    SLIPPAGE_UPDATED = "slippage_updated"
    OWNERSHIP_TRANSFERRED = "ownership_transferred"


@dataclass
class VaultEvent:
    """A single audit event.

    Integer amounts in ``data`` are kept as ints here and serialized as
    strings when persisted.
    """

    event_type: EventType
    actor: Optional[str]
    data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def payload(self) -> dict[str, Any]:
        """JSON-safe payload."""
        return {
            k: str(v) if isinstance(v, int) and not isinstance(v, bool) else v
            for k, v in self.data.items()
        }


def deposit_event(depositor: str, asset: str, raw_amount: int, normalized: int) -> VaultEvent:
    return VaultEvent(
        EventType.DEPOSIT,
        depositor,
        {"asset": asset, "raw_amount": raw_amount, "normalized_amount": normalized},
    )


def withdrawal_event(depositor: str, asset: str, amount: int, normalized: int) -> VaultEvent:
    return VaultEvent(
        EventType.WITHDRAWAL,
        depositor,
        {"asset": asset, "amount": amount, "normalized_amount": normalized},
    )


def swap_event(depositor: str, quote: SwapQuote) -> VaultEvent:
    """Executed swap with its route, bounds and deadline."""
    return VaultEvent(
        EventType.SWAP_EXECUTED,
        depositor,
        {"asset_in": quote.path.token_in, "asset_out": quote.path.token_out, **quote.to_dict()},
    )
