"""
Closed enumerations shared by the engine, the DB models and the API.

Each tag also has a compact integer code (1, 2, 3) for clients that send
numeric tags. parse() accepts either form and raises the matching
Invalid* error for anything else.
"""

from enum import StrEnum
from typing import Union

from riskcover.errors import InvalidAnomalyType, InvalidPoolType

RawTag = Union[str, int]


class PoolType(StrEnum):
    """Risk tier of a capital pool."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, raw: RawTag) -> "PoolType":
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, int) and not isinstance(raw, bool):
            for member, code in _POOL_CODES.items():
                if code == raw:
                    return member
        elif isinstance(raw, str):
            try:
                return cls(raw.lower())
            except ValueError:
                pass
        raise InvalidPoolType(f"unknown pool type {raw!r}", pool_type=str(raw))


_POOL_CODES: dict[PoolType, int] = {
    PoolType.LOW: 1,
    PoolType.MEDIUM: 2,
    PoolType.HIGH: 3,
}


class AnomalyType(StrEnum):
    """Kind of anomaly recorded in the exploit alert log."""
    TVL_DROP = "tvl_drop"
    PRICE = "price"
    TX_VOLUME = "tx_volume"

    @classmethod
    def parse(cls, raw: RawTag) -> "AnomalyType":
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, int) and not isinstance(raw, bool):
            for member, code in _ANOMALY_CODES.items():
                if code == raw:
                    return member
        elif isinstance(raw, str):
            try:
                return cls(raw.lower())
            except ValueError:
                pass
        raise InvalidAnomalyType(f"unknown anomaly type {raw!r}", anomaly_type=str(raw))


_ANOMALY_CODES: dict[AnomalyType, int] = {
    AnomalyType.TVL_DROP: 1,
    AnomalyType.PRICE: 2,
    AnomalyType.TX_VOLUME: 3,
}


class ClaimStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"       # terminal
    REJECTED = "rejected"       # terminal

    @property
    def is_terminal(self) -> bool:
        return self is not ClaimStatus.PENDING


class RiskCategory(StrEnum):
    """Display band for a composite risk score."""
    LOW = "Low Risk"
    MEDIUM_LOW = "Medium-Low Risk"
    MEDIUM_HIGH = "Medium-High Risk"
    HIGH = "High Risk"
