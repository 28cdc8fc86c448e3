"""Utility modules for StableVault."""

from stablevault.utils.locks import LockTimeoutError, get_vault_lock, vault_operation_lock

__all__ = ["LockTimeoutError", "get_vault_lock", "vault_operation_lock"]
