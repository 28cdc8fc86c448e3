"""HTTP client for an external custody service.

Expected endpoints (JSON bodies, amounts as decimal strings of raw units):
    POST /transfer-in   {"asset", "sender", "amount"}           -> {"success": bool}
    POST /transfer-out  {"asset", "recipient", "amount"}        -> {"success": bool}
    POST /approve       {"asset", "spender", "amount"}          -> {"success": bool}
    GET  /balance?asset=...&holder=...                          -> {"balance": "123"}
"""

import logging
from typing import Optional

import httpx

from stablevault.transfers.base import AssetTransfer

logger = logging.getLogger(__name__)


class HttpCustody(AssetTransfer):
    """Custody layer reached over REST."""

    def __init__(
        self,
        base_url: str,
        vault_address: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._vault_address = vault_address
        self.api_key = api_key
        self.timeout = timeout

    @property
    def vault_address(self) -> str:
        return self._vault_address

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    async def _post(self, path: str, payload: dict) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}{path}", json=payload, headers=self._headers()
                )
        except httpx.HTTPError as e:
            logger.error(f"Custody {path} request failed: {e}")
            return False

        if response.status_code != 200:
            logger.warning(f"Custody {path} error {response.status_code}: {response.text}")
            return False

        return bool(response.json().get("success"))

    async def transfer_in(self, asset: str, sender: str, amount: int) -> bool:
        return await self._post(
            "/transfer-in", {"asset": asset, "sender": sender, "amount": str(amount)}
        )

    async def transfer_out(self, asset: str, recipient: str, amount: int) -> bool:
        return await self._post(
            "/transfer-out", {"asset": asset, "recipient": recipient, "amount": str(amount)}
        )

    async def approve(self, asset: str, spender: str, amount: int) -> bool:
        return await self._post(
            "/approve", {"asset": asset, "spender": spender, "amount": str(amount)}
        )

    async def balance_of(self, asset: str) -> int:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}/balance",
                params={"asset": asset, "holder": self._vault_address},
                headers=self._headers(),
            )
            response.raise_for_status()
            return int(response.json()["balance"])
