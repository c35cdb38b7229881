"""
Pricing Engine — premium quotes from a risk score.

Annual premium rate by risk tier (basis points of coverage):
    score ≤ 25  →  25 bps
    score ≤ 50  →  50 bps
    score ≤ 75  → 100 bps
    otherwise   → 200 bps

premium = coverage * rate // 10_000 // 365 * duration_days

Integer-only, truncating left to right. Short or small policies can quote
a premium of 0; that is accepted.
"""

from riskcover.engine.checked import checked_mul, ensure_u64
from riskcover.errors import InvalidDuration, InvalidRiskParams
from riskcover.schemas.common import PoolType, RiskCategory

BPS_DENOMINATOR = 10_000
DAYS_PER_YEAR = 365
MAX_DURATION_DAYS = 65_535

# (upper bound inclusive, annual bps)
PREMIUM_TIERS: tuple[tuple[int, int], ...] = (
    (25, 25),
    (50, 50),
    (75, 100),
)
PREMIUM_CEILING_BPS = 200

CATEGORY_BANDS: tuple[tuple[int, RiskCategory], ...] = (
    (25, RiskCategory.LOW),
    (50, RiskCategory.MEDIUM_LOW),
    (75, RiskCategory.MEDIUM_HIGH),
)

POOL_BANDS: tuple[tuple[int, PoolType], ...] = (
    (25, PoolType.LOW),
    (75, PoolType.MEDIUM),
)


def _check_score(risk_score: int) -> int:
    if isinstance(risk_score, bool) or not isinstance(risk_score, int):
        raise InvalidRiskParams("risk_score must be an integer", field="risk_score")
    if not 0 <= risk_score <= 100:
        raise InvalidRiskParams("risk_score must be within [0, 100]", field="risk_score", value=risk_score)
    return risk_score


def check_duration(duration_days: int) -> int:
    """Raise InvalidDuration unless 1 ≤ duration_days ≤ 65535."""
    if isinstance(duration_days, bool) or not isinstance(duration_days, int):
        raise InvalidDuration("duration_days must be an integer", field="duration_days")
    if duration_days <= 0 or duration_days > MAX_DURATION_DAYS:
        raise InvalidDuration(
            f"duration_days must be within [1, {MAX_DURATION_DAYS}]",
            duration_days=duration_days,
        )
    return duration_days


def premium_rate_bps(risk_score: int) -> int:
    score = _check_score(risk_score)
    for upper, bps in PREMIUM_TIERS:
        if score <= upper:
            return bps
    return PREMIUM_CEILING_BPS


def quote_premium(risk_score: int, coverage_amount: int, duration_days: int) -> int:
    """
    Quote the premium for a policy.

    Raises:
        InvalidRiskParams: score outside [0, 100]
        InvalidDuration: duration outside [1, 65535]
        ArithmeticOverflow: coverage or an intermediate product beyond u64
    """
    rate = premium_rate_bps(risk_score)
    days = check_duration(duration_days)
    coverage = ensure_u64(coverage_amount, "coverage_amount")

    annual = checked_mul(coverage, rate) // BPS_DENOMINATOR
    daily = annual // DAYS_PER_YEAR
    return checked_mul(daily, days)


def risk_category(risk_score: int) -> RiskCategory:
    score = _check_score(risk_score)
    for upper, category in CATEGORY_BANDS:
        if score <= upper:
            return category
    return RiskCategory.HIGH


def pool_type_for_score(risk_score: int) -> PoolType:
    """Capital pool tier that underwrites a protocol at this score."""
    score = _check_score(risk_score)
    for upper, pool_type in POOL_BANDS:
        if score <= upper:
            return pool_type
    return PoolType.HIGH
