"""SQLAlchemy models for the ledger."""

import json
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class AssetClass(str, Enum):
    """Ledger asset classes. Swapped assets are credited as unit of account."""

    NATIVE = "native"
    UNIT_OF_ACCOUNT = "unit_of_account"


class Balance(Base):
    """Depositor balance for an asset class, in the internal accounting unit."""

    __tablename__ = "balances"
    __table_args__ = (
        Index("ix_balances_depositor_class", "depositor", "asset_class", unique=True),
        CheckConstraint("amount >= 0", name="ck_balances_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    depositor: Mapped[str] = mapped_column(String(255), nullable=False)
    asset_class: Mapped[str] = mapped_column(String(32), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class VaultState(Base):
    """Single-row vault configuration and counters.

    ``limit_per_tx`` and ``bank_cap`` are written once at bootstrap.
    """

    __tablename__ = "vault_state"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    limit_per_tx: Mapped[int] = mapped_column(BigInteger, nullable=False)
    bank_cap: Mapped[int] = mapped_column(BigInteger, nullable=False)
    slippage_tolerance_bps: Mapped[int] = mapped_column(nullable=False)
    price_feed_reference: Mapped[str] = mapped_column(String(512), nullable=False)
    deposit_count: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    withdrawal_count: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class VaultEventRecord(Base):
    """Audit trail of state transitions, written in the same transaction."""

    __tablename__ = "vault_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    actor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)  # JSON
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def payload_dict(self) -> dict:
        return json.loads(self.payload) if self.payload else {}
