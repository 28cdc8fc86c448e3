"""Asset transfer (custody) layer."""

from stablevault.transfers.base import AssetTransfer
from stablevault.transfers.memory import InMemoryAssetBook

__all__ = ["AssetTransfer", "InMemoryAssetBook"]
