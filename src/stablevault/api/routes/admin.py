"""Admin API endpoints (token-protected).

The token authenticates the operator; the vault itself authorizes the
``caller`` identity, which defaults to the configured owner.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from stablevault.api.deps import get_vault, require_admin_token
from stablevault.config import get_settings
from stablevault.events import EventType
from stablevault.utils.locks import vault_operation_lock
from stablevault.vault import Vault

router = APIRouter(prefix="/admin", tags=["admin"])


class AdminRequest(BaseModel):
    caller: Optional[str] = Field(None, description="Acting identity (defaults to OWNER_ID)")


class PriceFeedUpdate(AdminRequest):
    reference: str = Field(..., description="New price feed reference")


class SlippageUpdate(AdminRequest):
    bps: int = Field(..., description="Slippage tolerance in basis points (0-1000)")


class OwnershipTransfer(AdminRequest):
    new_owner: str = Field(..., description="Identity of the new owner")


class AdminConfigResponse(BaseModel):
    owner: Optional[str]
    slippage_tolerance_bps: int
    price_feed_reference: str
    limit_per_tx: str
    bank_cap: str


def _caller(request: AdminRequest) -> str:
    return request.caller or get_settings().owner_id


def _config(vault: Vault) -> AdminConfigResponse:
    limits = vault.limits
    return AdminConfigResponse(
        owner=vault.owner,
        slippage_tolerance_bps=vault.slippage_tolerance_bps,
        price_feed_reference=vault.price_feed_reference,
        limit_per_tx=str(limits.limit_per_tx),
        bank_cap=str(limits.bank_cap),
    )


@router.get("/config", response_model=AdminConfigResponse)
async def get_config(
    _: bool = Depends(require_admin_token), vault: Vault = Depends(get_vault)
) -> AdminConfigResponse:
    """Current owner-controlled parameters and immutable limits."""
    return _config(vault)


@router.put("/price-feed", response_model=AdminConfigResponse)
async def set_price_feed(
    update: PriceFeedUpdate,
    _: bool = Depends(require_admin_token),
    vault: Vault = Depends(get_vault),
) -> AdminConfigResponse:
    """Point the vault at a different price feed."""
    async with vault_operation_lock(vault.transfers.vault_address, operation="set_price_feed"):
        await vault.set_price_feed_reference(_caller(update), update.reference)
    return _config(vault)


@router.put("/slippage", response_model=AdminConfigResponse)
async def set_slippage(
    update: SlippageUpdate,
    _: bool = Depends(require_admin_token),
    vault: Vault = Depends(get_vault),
) -> AdminConfigResponse:
    """Change the swap slippage tolerance."""
    async with vault_operation_lock(vault.transfers.vault_address, operation="set_slippage"):
        await vault.set_slippage_tolerance(_caller(update), update.bps)
    return _config(vault)


@router.put("/owner", response_model=AdminConfigResponse)
async def transfer_ownership(
    update: OwnershipTransfer,
    _: bool = Depends(require_admin_token),
    vault: Vault = Depends(get_vault),
) -> AdminConfigResponse:
    """Hand the vault to a new owner."""
    async with vault_operation_lock(vault.transfers.vault_address, operation="transfer_owner"):
        await vault.transfer_ownership(_caller(update), update.new_owner)
    return _config(vault)


@router.get("/events")
async def get_events(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    event_type: Optional[EventType] = None,
    actor: Optional[str] = None,
    _: bool = Depends(require_admin_token),
    vault: Vault = Depends(get_vault),
):
    """Audit trail, newest first."""
    records = await vault.events(limit, offset, event_type=event_type, actor=actor)
    return [
        {
            "id": r.id,
            "event_type": r.event_type,
            "actor": r.actor,
            "payload": r.payload_dict(),
            "created_at": r.created_at.isoformat() if r.created_at else None,
        }
        for r in records
    ]
