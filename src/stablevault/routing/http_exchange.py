"""HTTP client for an external exchange router service.

Expected endpoints (amounts as decimal strings of raw units):
    GET  /pairs?token_a=..&token_b=..   -> {"pair": "0x..." | null}
    POST /amounts-out {"amount_in", "path"}                              -> {"amounts": [...]}
    POST /swap {"amount_in", "amount_out_min", "path", "recipient", "deadline"} -> {"amounts": [...]}
"""

import logging
from typing import Optional

import httpx

from stablevault.routing.base import Exchange

logger = logging.getLogger(__name__)


class HttpExchange(Exchange):
    """Exchange router reached over REST."""

    def __init__(self, base_url: str, spender_address: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self._address = spender_address
        self.timeout = timeout

    @property
    def name(self) -> str:
        return f"http:{self.base_url}"

    @property
    def address(self) -> str:
        return self._address

    async def get_pair(self, token_a: str, token_b: str) -> Optional[str]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}/pairs", params={"token_a": token_a, "token_b": token_b}
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json().get("pair")

    async def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/amounts-out",
                json={"amount_in": str(amount_in), "path": path},
            )
            response.raise_for_status()
            return [int(a) for a in response.json()["amounts"]]

    async def swap_exact_tokens_for_tokens(
        self,
        amount_in: int,
        amount_out_min: int,
        path: list[str],
        recipient: str,
        deadline: int,
    ) -> list[int]:
        payload = {
            "amount_in": str(amount_in),
            "amount_out_min": str(amount_out_min),
            "path": path,
            "recipient": recipient,
            "deadline": deadline,
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(f"{self.base_url}/swap", json=payload)

        if response.status_code != 200:
            logger.warning(f"Exchange swap error {response.status_code}: {response.text}")
            response.raise_for_status()

        data = response.json()
        if "error" in data:
            raise RuntimeError(f"Exchange rejected swap: {data['error']}")
        return [int(a) for a in data["amounts"]]
