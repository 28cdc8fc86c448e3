"""Abstract exchange interface and swap records."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapPath:
    """Ordered assets from the input asset to the unit of account."""

    assets: tuple[str, ...]

    @property
    def is_direct(self) -> bool:
        return len(self.assets) == 2

    @property
    def token_in(self) -> str:
        return self.assets[0]

    @property
    def token_out(self) -> str:
        return self.assets[-1]

    def as_list(self) -> list[str]:
        return list(self.assets)

    def __str__(self) -> str:
        return " -> ".join(self.assets)


@dataclass
class SwapQuote:
    """Quote and execution result of a single swap."""

    path: SwapPath
    amount_in: int
    expected_out: int
    min_out: int
    actual_out: Optional[int] = None
    deadline: Optional[int] = None
    slippage_bps: int = 0

    @property
    def executed(self) -> bool:
        return self.actual_out is not None

    @property
    def shortfall(self) -> int:
        """Output lost against the quote (0 if not executed or if output beat the quote)."""
        if self.actual_out is None:
            return 0
        return max(0, self.expected_out - self.actual_out)

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "path": self.path.as_list(),
            "amount_in": str(self.amount_in),
            "expected_out": str(self.expected_out),
            "min_out": str(self.min_out),
            "actual_out": str(self.actual_out) if self.actual_out is not None else None,
            "deadline": self.deadline,
            "slippage_bps": self.slippage_bps,
        }


class Exchange(ABC):
    """Abstract external exchange (pair registry + router)."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Exchange name identifier."""
        pass

    @property
    @abstractmethod
    def address(self) -> str:
        """Spender identity that pulls swap input from the vault."""
        pass

    @abstractmethod
    async def get_pair(self, token_a: str, token_b: str) -> Optional[str]:
        """Pair identifier from the registry, or None if the pair does not exist."""
        pass

    @abstractmethod
    async def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        """Quoted amounts for each hop of ``path`` (first entry is ``amount_in``)."""
        pass

    @abstractmethod
    async def swap_exact_tokens_for_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        recipient: str,
        deadline: int,
    ) -> list[int]:
        """Execute an exact-input swap along ``path``.

        Must refuse to execute after ``deadline`` or below ``amount_out_min``.

        Returns:
            Executed amounts for each hop
        """
        pass
