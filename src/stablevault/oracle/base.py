"""Abstract price feed interface and oracle result types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from stablevault.errors import CollaboratorError, InvalidPrice, OracleUnavailable, StalePrice


@dataclass(frozen=True)
class RoundData:
    """A raw reading from a round-based price feed."""

    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


@dataclass(frozen=True)
class Price:
    """A validated reference price."""

    value: int
    decimals: int
    updated_at: int


class OracleFailure(str, Enum):
    """Closed set of oracle failure kinds."""

    UNAVAILABLE = "unavailable"
    STALE = "stale"
    INVALID = "invalid"


@dataclass(frozen=True)
class PriceResult:
    """Outcome of a price lookup: a validated price or a classified failure."""

    price: Optional[Price] = None
    failure: Optional[OracleFailure] = None
    reason: str = ""
    elapsed: Optional[int] = None
    raw_answer: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.price is not None

    @classmethod
    def success(cls, price: Price) -> "PriceResult":
        return cls(price=price)

    @classmethod
    def unavailable(cls, reason: str) -> "PriceResult":
        return cls(failure=OracleFailure.UNAVAILABLE, reason=reason)

    @classmethod
    def stale(cls, reason: str, elapsed: Optional[int] = None) -> "PriceResult":
        return cls(failure=OracleFailure.STALE, reason=reason, elapsed=elapsed)

    @classmethod
    def invalid(cls, answer: int) -> "PriceResult":
        return cls(failure=OracleFailure.INVALID, reason="non-positive answer", raw_answer=answer)

    def to_error(self) -> CollaboratorError:
        """Build the typed error matching this failure."""
        if self.failure == OracleFailure.INVALID:
            return InvalidPrice(self.raw_answer if self.raw_answer is not None else 0)
        if self.failure == OracleFailure.STALE:
            return StalePrice(self.reason, self.elapsed)
        return OracleUnavailable(self.reason or "price feed unavailable")

    def unwrap(self) -> Price:
        """Return the price or raise the typed error."""
        if self.price is None:
            raise self.to_error()
        return self.price


class PriceFeed(ABC):
    """Abstract external price feed for the native asset."""

    @property
    @abstractmethod
    def reference(self) -> str:
        """Identifier of this feed (URL or name)."""
        pass

    @abstractmethod
    async def latest_round_data(self) -> RoundData:
        """Fetch the latest round.

        Raises:
            Any exception on transport failure; the adapter classifies it.
        """
        pass

    @abstractmethod
    async def decimals(self) -> int:
        """Decimal precision of ``RoundData.answer``."""
        pass
