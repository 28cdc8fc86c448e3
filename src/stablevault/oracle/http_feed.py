"""HTTP client for a round-based price feed service.

Expected endpoints:
    GET {base_url}/latest   -> {"round_id", "answer", "started_at", "updated_at", "answered_in_round"}
    GET {base_url}/decimals -> {"decimals": 8}
"""

import logging
from typing import Optional

import httpx

from stablevault.oracle.base import PriceFeed, RoundData

logger = logging.getLogger(__name__)


class HttpPriceFeed(PriceFeed):
    """Price feed backed by a REST service."""

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._decimals: Optional[int] = None

    @property
    def reference(self) -> str:
        return self.base_url

    async def latest_round_data(self) -> RoundData:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(f"{self.base_url}/latest")
            response.raise_for_status()
            data = response.json()

        logger.debug(f"Price feed {self.base_url} round: {data}")
        return RoundData(
            round_id=int(data["round_id"]),
            answer=int(data["answer"]),
            started_at=int(data.get("started_at", 0)),
            updated_at=int(data.get("updated_at", 0)),
            answered_in_round=int(data.get("answered_in_round", data["round_id"])),
        )

    async def decimals(self) -> int:
        # Precision is fixed per feed deployment
        if self._decimals is None:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.base_url}/decimals")
                response.raise_for_status()
                self._decimals = int(response.json()["decimals"])
        return self._decimals
