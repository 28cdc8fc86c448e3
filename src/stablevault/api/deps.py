"""Shared FastAPI dependencies."""

from fastapi import Header, HTTPException

from stablevault.config import get_settings
from stablevault.factory import get_vault as _get_vault
from stablevault.vault import Vault


def get_vault() -> Vault:
    """Vault serving the request (overridden in tests)."""
    return _get_vault()


async def require_admin_token(x_admin_token: str = Header(None)) -> bool:
    """Verify admin token from header.

    If ADMIN_TOKEN is not set, allows access (dev mode).
    """
    settings = get_settings()

    if not settings.admin_token:
        return True

    if x_admin_token != settings.admin_token:
        raise HTTPException(status_code=401, detail="Invalid admin token")

    return True
