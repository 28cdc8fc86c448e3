"""Health check endpoints."""

from fastapi import APIRouter, Depends

from stablevault.api.deps import get_vault
from stablevault.config import get_settings
from stablevault.utils.locks import vault_operation_lock
from stablevault.vault import Vault

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "stablevault"}


@router.get("/health/detailed")
async def detailed_health(vault: Vault = Depends(get_vault)):
    """Detailed health check with configuration and oracle state."""
    settings = get_settings()
    async with vault_operation_lock(vault.transfers.vault_address, operation="health"):
        result = await vault.check_oracle()
    return {
        "status": "healthy" if result.ok else "degraded",
        "service": "stablevault",
        "version": "0.1.0",
        "oracle": {
            "reference": vault.oracle.feed.reference,
            "ok": result.ok,
            "failure": None if result.ok else result.failure.value,
            "reason": result.reason,
        },
        "config": settings.get_safe_dict(),
    }
