"""HTTP API for the vault."""
