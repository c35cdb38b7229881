"""
RiskCover SQLAlchemy Models.

Primary keys are deterministic hex keys from riskcover.db.keys. Token
amounts use TokenAmount (exact u64). Timestamps are unix seconds from the
service clock. Mutable rows carry a `version` column checked on every
UPDATE, so a writer that lost a race fails instead of overwriting.
"""

from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from riskcover.db.compat import TokenAmount
from riskcover.db.engine import Base

KEY = String(64)
ADDRESS = String(64)


# ──────────────────────────────────────────────────────────────────────────────
# Protocol administration
# ──────────────────────────────────────────────────────────────────────────────


class ProtocolState(Base):
    """Singleton: protocol administrator, fee and treasury."""

    __tablename__ = "protocol_state"

    id: Mapped[str] = mapped_column(KEY, primary_key=True)
    authority: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    protocol_fee_bps: Mapped[int] = mapped_column(Integer, nullable=False)
    treasury_account: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class ProtocolRegistry(Base):
    """Singleton: running count of registered protocols."""

    __tablename__ = "protocol_registry"

    id: Mapped[str] = mapped_column(KEY, primary_key=True)
    protocol_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class ProtocolInfo(Base):
    """A registered protocol and its latest risk assessment."""

    __tablename__ = "protocols"
    __table_args__ = (
        Index("ix_protocols_is_active", "is_active"),
    )

    id: Mapped[str] = mapped_column(KEY, primary_key=True)
    authority: Mapped[str] = mapped_column(ADDRESS, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    tvl_usd: Mapped[int] = mapped_column(TokenAmount(), nullable=False)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False)
    code_risk: Mapped[Optional[int]] = mapped_column(Integer)
    economic_risk: Mapped[Optional[int]] = mapped_column(Integer)
    operational_risk: Mapped[Optional[int]] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    alert_count: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    registered_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    risk_updated_at: Mapped[Optional[int]] = mapped_column(BigInteger)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


# ──────────────────────────────────────────────────────────────────────────────
# Asset ledger substrate
# ──────────────────────────────────────────────────────────────────────────────


class TokenAccount(Base):
    """Balance of one mint held by one owner."""

    __tablename__ = "token_accounts"
    __table_args__ = (
        Index("ix_token_accounts_owner", "owner"),
    )

    address: Mapped[str] = mapped_column(ADDRESS, primary_key=True)
    owner: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    mint: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    balance: Mapped[int] = mapped_column(TokenAmount(), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


# ──────────────────────────────────────────────────────────────────────────────
# Capital
# ──────────────────────────────────────────────────────────────────────────────


class CapitalPool(Base):
    """
    Pooled underwriting capital for one risk tier.

    total_capital == sum of provider capital_amount
    total_capital == available_capital + claimed_capital
    """

    __tablename__ = "capital_pools"

    id: Mapped[str] = mapped_column(KEY, primary_key=True)
    pool_type: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    yield_rate_bps: Mapped[int] = mapped_column(Integer, nullable=False)
    token_mint: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    token_account: Mapped[str] = mapped_column(ADDRESS, ForeignKey("token_accounts.address"), nullable=False)
    authority: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    total_capital: Mapped[int] = mapped_column(TokenAmount(), nullable=False)
    available_capital: Mapped[int] = mapped_column(TokenAmount(), nullable=False)
    claimed_capital: Mapped[int] = mapped_column(TokenAmount(), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class CapitalProvider(Base):
    __tablename__ = "capital_providers"
    __table_args__ = (
        UniqueConstraint("owner", "pool_id", name="uq_provider_owner_pool"),
        Index("ix_capital_providers_pool_id", "pool_id"),
    )

    id: Mapped[str] = mapped_column(KEY, primary_key=True)
    owner: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    pool_id: Mapped[str] = mapped_column(KEY, ForeignKey("capital_pools.id"), nullable=False)
    capital_amount: Mapped[int] = mapped_column(TokenAmount(), nullable=False)
    rewards_earned: Mapped[int] = mapped_column(TokenAmount(), nullable=False)
    deposited_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    last_accrual_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


# ──────────────────────────────────────────────────────────────────────────────
# Policies & claims
# ──────────────────────────────────────────────────────────────────────────────


class Policy(Base):
    __tablename__ = "policies"
    __table_args__ = (
        UniqueConstraint("insured", "protocol_id", "generation", name="uq_policy_generation"),
        Index("ix_policies_insured", "insured"),
        Index("ix_policies_protocol_id", "protocol_id"),
    )

    id: Mapped[str] = mapped_column(KEY, primary_key=True)
    insured: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    protocol_id: Mapped[str] = mapped_column(KEY, ForeignKey("protocols.id"), nullable=False)
    generation: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    coverage_amount: Mapped[int] = mapped_column(TokenAmount(), nullable=False)
    premium_amount: Mapped[int] = mapped_column(TokenAmount(), nullable=False)
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expiry_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_claimed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def in_force(self, now: int) -> bool:
        """Active, unclaimed and not yet expired."""
        return self.is_active and not self.is_claimed and now < self.expiry_time


class Claim(Base):
    """At most one per policy. pending → approved | rejected."""

    __tablename__ = "claims"
    __table_args__ = (
        Index("ix_claims_status", "status"),
        Index("ix_claims_claimant", "claimant"),
    )

    id: Mapped[str] = mapped_column(KEY, primary_key=True)
    policy_id: Mapped[str] = mapped_column(KEY, ForeignKey("policies.id"), unique=True, nullable=False)
    protocol_id: Mapped[str] = mapped_column(KEY, ForeignKey("protocols.id"), nullable=False)
    claimant: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    amount: Mapped[int] = mapped_column(TokenAmount(), nullable=False)
    evidence: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    resolver: Mapped[Optional[str]] = mapped_column(ADDRESS)
    resolution_notes: Mapped[Optional[str]] = mapped_column(String(256))
    pool_id: Mapped[Optional[str]] = mapped_column(KEY, ForeignKey("capital_pools.id"))
    submitted_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    resolved_at: Mapped[Optional[int]] = mapped_column(BigInteger)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


# ──────────────────────────────────────────────────────────────────────────────
# Exploit alerts
# ──────────────────────────────────────────────────────────────────────────────


class ExploitAlert(Base):
    """
    Observational anomaly record.

    Immutable except for the one-time confirmation/resolution.
    """

    __tablename__ = "exploit_alerts"
    __table_args__ = (
        UniqueConstraint("protocol_id", "sequence", name="uq_alert_protocol_sequence"),
        Index("ix_exploit_alerts_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(KEY, primary_key=True)
    protocol_id: Mapped[str] = mapped_column(KEY, ForeignKey("protocols.id"), nullable=False)
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    anomaly_type: Mapped[str] = mapped_column(String(16), nullable=False)
    severity: Mapped[int] = mapped_column(Integer, nullable=False)
    details: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reporter: Mapped[str] = mapped_column(ADDRESS, nullable=False)
    is_confirmed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    resolution_notes: Mapped[Optional[str]] = mapped_column(String(256))
    resolved_at: Mapped[Optional[int]] = mapped_column(BigInteger)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
