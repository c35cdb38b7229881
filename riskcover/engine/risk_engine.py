"""
Protocol Risk Engine — composite 0-100 risk score.

Three independent sub-scores, each on [0, 100] (higher = riskier):
1. Code risk: audits, bug bounty size, code complexity
2. Economic risk: TVL, liquidity depth, holder concentration
3. Operational risk: governance participants, admin keys, oracle dependency

The composite is a fixed weighted average of the three (weights in percent,
summing to 100), clamped to [0, 100]. Integer division throughout.

Monotonicity:
- more audits / bigger bounty / deeper liquidity / more governance → lower
- higher complexity / concentration / TVL / admin count / oracle use → higher
"""

from dataclasses import asdict, dataclass
from typing import Optional

import structlog

from riskcover.engine.checked import ensure_u64
from riskcover.engine.pricing import risk_category
from riskcover.errors import ArithmeticOverflow, InvalidRiskParams
from riskcover.schemas.common import RiskCategory

logger = structlog.get_logger(__name__)


# ── Configuration ─────────────────────────────────────────────────────────

DEFAULT_WEIGHTS: tuple[int, int, int] = (30, 40, 30)   # code, economic, operational

MAX_AUDITS_COUNTED = 5
MAX_GOVERNANCE_COUNTED = 10
MAX_ADMINS_COUNTED = 5

# (upper bound inclusive, factor); last bracket catches everything above
BOUNTY_BRACKETS: tuple[tuple[int, int], ...] = (
    (0, 100),
    (50_000, 75),
    (250_000, 50),
    (1_000_000, 25),
)
BOUNTY_FLOOR = 0

TVL_BRACKETS: tuple[tuple[int, int], ...] = (
    (1_000_000, 25),
    (10_000_000, 50),
    (100_000_000, 75),
)
TVL_CEILING = 100

LIQUIDITY_BRACKETS: tuple[tuple[int, int], ...] = (
    (100_000, 100),
    (1_000_000, 75),
    (10_000_000, 50),
)
LIQUIDITY_FLOOR = 25


@dataclass(frozen=True)
class CodeRiskParams:
    audit_count: int
    bug_bounty_size: int
    complexity_score: int        # 0-100


@dataclass(frozen=True)
class EconomicRiskParams:
    liquidity_depth: int
    concentration_risk: int      # 0-100


@dataclass(frozen=True)
class OperationalRiskParams:
    governance_count: int
    admin_count: int
    oracle_dependency: bool


@dataclass(frozen=True)
class RiskBreakdown:
    """Sub-scores and the composite they produced."""
    code_risk: int
    economic_risk: int
    operational_risk: int
    risk_score: int
    category: RiskCategory
    weights: tuple[int, int, int]

    def to_dict(self) -> dict:
        return asdict(self)


# ── Validation ────────────────────────────────────────────────────────────


def _require_count(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidRiskParams(f"{name} must be a non-negative integer", field=name)
    return value


def _require_percent(value, name: str) -> int:
    _require_count(value, name)
    if value > 100:
        raise InvalidRiskParams(f"{name} must be within [0, 100]", field=name, value=value)
    return value


def _require_amount(value, name: str) -> int:
    _require_count(value, name)
    try:
        return ensure_u64(value, name)
    except ArithmeticOverflow as exc:
        raise InvalidRiskParams(f"{name} out of range", field=name) from exc


def validate_params(
    code: CodeRiskParams,
    economic: EconomicRiskParams,
    operational: OperationalRiskParams,
) -> None:
    """Raise InvalidRiskParams if any input is outside its declared bound."""
    _require_count(code.audit_count, "audit_count")
    _require_amount(code.bug_bounty_size, "bug_bounty_size")
    _require_percent(code.complexity_score, "complexity_score")
    _require_amount(economic.liquidity_depth, "liquidity_depth")
    _require_percent(economic.concentration_risk, "concentration_risk")
    _require_count(operational.governance_count, "governance_count")
    _require_count(operational.admin_count, "admin_count")
    if not isinstance(operational.oracle_dependency, bool):
        raise InvalidRiskParams("oracle_dependency must be a boolean", field="oracle_dependency")


# ── Sub-scores ────────────────────────────────────────────────────────────


def _bracket(value: int, brackets: tuple[tuple[int, int], ...], above: int) -> int:
    for upper, factor in brackets:
        if value <= upper:
            return factor
    return above


def assess_code_risk(audit_count: int, bug_bounty_size: int, complexity_score: int) -> int:
    audit_factor = 100 - min(audit_count, MAX_AUDITS_COUNTED) * 20
    bounty_factor = _bracket(bug_bounty_size, BOUNTY_BRACKETS, BOUNTY_FLOOR)
    complexity_factor = min(complexity_score, 100)
    return (audit_factor + bounty_factor + complexity_factor) // 3


def assess_economic_risk(tvl_usd: int, liquidity_depth: int, concentration_risk: int) -> int:
    tvl_factor = _bracket(tvl_usd, TVL_BRACKETS, TVL_CEILING)
    liquidity_factor = _bracket(liquidity_depth, LIQUIDITY_BRACKETS, LIQUIDITY_FLOOR)
    concentration_factor = min(concentration_risk, 100)
    return (tvl_factor + liquidity_factor + concentration_factor) // 3


def assess_operational_risk(governance_count: int, admin_count: int, oracle_dependency: bool) -> int:
    governance_factor = 100 - min(governance_count, MAX_GOVERNANCE_COUNTED) * 10
    admin_factor = min(admin_count, MAX_ADMINS_COUNTED) * 20
    oracle_factor = 100 if oracle_dependency else 0
    return (governance_factor + admin_factor + oracle_factor) // 3


def composite_score(
    code_risk: int,
    economic_risk: int,
    operational_risk: int,
    weights: tuple[int, int, int] = DEFAULT_WEIGHTS,
) -> int:
    w_code, w_econ, w_ops = weights
    weighted = (code_risk * w_code + economic_risk * w_econ + operational_risk * w_ops) // 100
    return max(0, min(100, weighted))


# ── Engine ────────────────────────────────────────────────────────────────


class RiskEngine:
    """Validates inputs and produces a RiskBreakdown."""

    def __init__(self, weights: Optional[tuple[int, int, int]] = None):
        weights = weights or DEFAULT_WEIGHTS
        if len(weights) != 3 or sum(weights) != 100 or any(w < 0 for w in weights):
            raise ValueError(f"risk weights must be three non-negative ints summing to 100, got {weights}")
        self.weights = tuple(weights)

    def assess(
        self,
        tvl_usd: int,
        code: CodeRiskParams,
        economic: EconomicRiskParams,
        operational: OperationalRiskParams,
    ) -> RiskBreakdown:
        validate_params(code, economic, operational)

        code_risk = assess_code_risk(code.audit_count, code.bug_bounty_size, code.complexity_score)
        economic_risk = assess_economic_risk(tvl_usd, economic.liquidity_depth, economic.concentration_risk)
        operational_risk = assess_operational_risk(
            operational.governance_count, operational.admin_count, operational.oracle_dependency,
        )
        score = composite_score(code_risk, economic_risk, operational_risk, self.weights)

        logger.debug(
            "risk_assessed",
            code_risk=code_risk,
            economic_risk=economic_risk,
            operational_risk=operational_risk,
            risk_score=score,
        )
        return RiskBreakdown(
            code_risk=code_risk,
            economic_risk=economic_risk,
            operational_risk=operational_risk,
            risk_score=score,
            category=risk_category(score),
            weights=self.weights,
        )
