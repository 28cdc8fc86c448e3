"""Depositor-facing vault endpoints.

Amounts travel as raw integer strings in the asset's own precision for
requests, and in the accounting unit (6 fractional digits) for responses.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator

from stablevault.api.deps import get_vault
from stablevault.config import get_settings
from stablevault.ledger.models import AssetClass
from stablevault.transfers.memory import InMemoryAssetBook
from stablevault.units import format_units
from stablevault.utils.locks import vault_operation_lock
from stablevault.vault import Vault

router = APIRouter(prefix="/vault")


class AmountRequest(BaseModel):
    """Request carrying a depositor and a raw amount."""

    depositor: str = Field(..., min_length=1, max_length=100)
    amount: int = Field(..., description="Raw amount in the asset's precision")

    @field_validator("depositor")
    @classmethod
    def strip_depositor(cls, v: str) -> str:
        return v.strip()


class AssetAmountRequest(AmountRequest):
    asset: str = Field(..., min_length=1, max_length=20, description="Asset identifier")

    @field_validator("asset")
    @classmethod
    def normalize_asset(cls, v: str) -> str:
        return v.upper().strip()


class OperationResponse(BaseModel):
    """Result of a deposit or withdrawal."""

    success: bool
    depositor: str
    normalized_amount: str
    display_amount: str
    total_balance: str


class BalanceResponse(BaseModel):
    depositor: str
    native: str
    unit_of_account: str
    total: str


class RouteResponse(BaseModel):
    asset: str
    routable: bool
    amount_in: Optional[str] = None
    estimated_out: Optional[str] = None


class SimulatedFundingRequest(BaseModel):
    """Dry-run only: mint assets to a holder and optionally authorize the vault."""

    holder: str = Field(..., min_length=1, max_length=100)
    asset: str = Field(..., min_length=1, max_length=20)
    amount: int = Field(..., gt=0)
    authorize_vault: bool = True


async def _respond(vault: Vault, depositor: str, normalized: int) -> OperationResponse:
    total = await vault.total_of(depositor)
    return OperationResponse(
        success=True,
        depositor=depositor,
        normalized_amount=str(normalized),
        display_amount=str(format_units(normalized)),
        total_balance=str(total),
    )


def _lock_key(vault: Vault) -> str:
    return vault.transfers.vault_address


@router.post("/deposits/native", response_model=OperationResponse)
async def deposit_native(request: AmountRequest, vault: Vault = Depends(get_vault)):
    """Deposit native value, credited at the oracle price."""
    async with vault_operation_lock(_lock_key(vault), operation="deposit_native"):
        normalized = await vault.deposit_native(request.depositor, request.amount)
    return await _respond(vault, request.depositor, normalized)


@router.post("/deposits/unit-of-account", response_model=OperationResponse)
async def deposit_unit_of_account(request: AmountRequest, vault: Vault = Depends(get_vault)):
    """Deposit the unit-of-account asset at face value."""
    async with vault_operation_lock(_lock_key(vault), operation="deposit_unit_of_account"):
        normalized = await vault.deposit_unit_of_account(request.depositor, request.amount)
    return await _respond(vault, request.depositor, normalized)


@router.post("/deposits/asset", response_model=OperationResponse)
async def deposit_asset(request: AssetAmountRequest, vault: Vault = Depends(get_vault)):
    """Deposit any asset; non unit-of-account assets are swapped first."""
    async with vault_operation_lock(_lock_key(vault), operation="deposit_asset"):
        normalized = await vault.deposit_asset(request.depositor, request.asset, request.amount)
    return await _respond(vault, request.depositor, normalized)


@router.post("/receive", response_model=OperationResponse)
async def receive(request: AmountRequest, vault: Vault = Depends(get_vault)):
    """Plain native transfer into the vault."""
    async with vault_operation_lock(_lock_key(vault), operation="receive"):
        normalized = await vault.receive(request.depositor, request.amount)
    return await _respond(vault, request.depositor, normalized)


@router.post("/withdrawals/native", response_model=OperationResponse)
async def withdraw_native(request: AmountRequest, vault: Vault = Depends(get_vault)):
    """Withdraw raw native units, debited at the oracle price."""
    async with vault_operation_lock(_lock_key(vault), operation="withdraw_native"):
        normalized = await vault.withdraw_native(request.depositor, request.amount)
    return await _respond(vault, request.depositor, normalized)


@router.post("/withdrawals/unit-of-account", response_model=OperationResponse)
async def withdraw_unit_of_account(request: AmountRequest, vault: Vault = Depends(get_vault)):
    """Withdraw the unit-of-account asset at face value."""
    async with vault_operation_lock(_lock_key(vault), operation="withdraw_unit_of_account"):
        normalized = await vault.withdraw_unit_of_account(request.depositor, request.amount)
    return await _respond(vault, request.depositor, normalized)


@router.get("/balances/{depositor}", response_model=BalanceResponse)
async def get_balances(depositor: str, vault: Vault = Depends(get_vault)):
    """Per-class and total balances of a depositor."""
    native = await vault.balance_of(depositor, AssetClass.NATIVE)
    unit = await vault.balance_of(depositor, AssetClass.UNIT_OF_ACCOUNT)
    return BalanceResponse(
        depositor=depositor,
        native=str(native),
        unit_of_account=str(unit),
        total=str(native + unit),
    )


@router.get("/routes/{asset}", response_model=RouteResponse)
async def get_route(
    asset: str,
    amount: Optional[int] = Query(None, gt=0),
    vault: Vault = Depends(get_vault),
):
    """Whether ``asset`` can be deposited, with an optional output estimate."""
    asset = asset.upper()
    async with vault_operation_lock(_lock_key(vault), operation="get_route"):
        routable = await vault.has_route(asset)
        response = RouteResponse(asset=asset, routable=routable)
        if amount is not None:
            response.amount_in = str(amount)
            response.estimated_out = str(await vault.estimate_swap(asset, amount))
    return response


@router.get("/status")
async def get_status(vault: Vault = Depends(get_vault)):
    """Limits, counters and current bank value."""
    async with vault_operation_lock(_lock_key(vault), operation="get_status"):
        status = await vault.status()
    for key in ("limit_per_tx", "bank_cap", "bank_value"):
        if status[key] is not None:
            status[key] = str(status[key])
    status["liabilities"] = {k: str(v) for k, v in status["liabilities"].items()}
    return status


@router.post("/simulate/fund")
async def simulate_funding(
    request: SimulatedFundingRequest, vault: Vault = Depends(get_vault)
):
    """Mint simulated assets to a holder (dry-run mode only)."""
    settings = get_settings()
    if not settings.dry_run or not isinstance(vault.transfers, InMemoryAssetBook):
        raise HTTPException(status_code=400, detail="Simulation is only available in dry-run mode")

    book = vault.transfers
    asset = request.asset.upper()
    book.mint(request.holder, asset, request.amount)
    if request.authorize_vault and asset != book.native_asset:
        book.authorize(request.holder, book.vault_address, asset, request.amount)

    return {
        "success": True,
        "holder": request.holder,
        "asset": asset,
        "balance": str(book.balance(request.holder, asset)),
    }
