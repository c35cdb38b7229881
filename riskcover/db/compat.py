"""
Database compatibility layer.

Provides types that work on both SQLite (dev) and PostgreSQL (prod):
- TokenAmount: NUMERIC(20, 0) on PostgreSQL, decimal string on SQLite

SQLite INTEGER is a signed 64-bit value, so u64 amounts above 2^63 - 1
would not fit. Storing them as text keeps the full range exact.
"""

from decimal import Decimal

from sqlalchemy import String, TypeDecorator
from sqlalchemy.dialects import postgresql


class TokenAmount(TypeDecorator):
    """Unsigned 64-bit token amount, exposed to Python as int."""

    impl = String(20)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.NUMERIC(20, 0))
        return dialect.type_descriptor(String(20))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return Decimal(int(value))
        return str(int(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return int(value)
