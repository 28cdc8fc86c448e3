"""StableVault - custodial vault normalizing deposits into a stable unit of account."""

__version__ = "0.1.0"
