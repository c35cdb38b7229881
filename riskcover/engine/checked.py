"""
Checked unsigned 64-bit arithmetic.

Token amounts are u64 values in the token's smallest unit. Python ints
never wrap, so every operation here checks the result against the u64
range and raises ArithmeticOverflow instead of producing a value the
ledger could not hold.
"""

from riskcover.errors import ArithmeticOverflow

U64_MAX: int = 2**64 - 1


def ensure_u64(value: int, name: str = "value") -> int:
    """Return value unchanged if it is an int in [0, U64_MAX]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ArithmeticOverflow(f"{name} must be an integer", field=name)
    if value < 0 or value > U64_MAX:
        raise ArithmeticOverflow(f"{name} out of u64 range", field=name, value=str(value))
    return value


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > U64_MAX:
        raise ArithmeticOverflow("addition overflow", a=str(a), b=str(b))
    return result


def checked_sub(a: int, b: int) -> int:
    result = a - b
    if result < 0:
        raise ArithmeticOverflow("subtraction underflow", a=str(a), b=str(b))
    return result


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > U64_MAX:
        raise ArithmeticOverflow("multiplication overflow", a=str(a), b=str(b))
    return result
