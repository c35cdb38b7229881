"""
RiskCover — Insurance protocol accounting and claims-resolution core.

Architecture:
    riskcover/
    ├── api/             # FastAPI routers (HTTP layer)
    ├── db/              # SQLAlchemy models, derived keys, repositories
    ├── engine/          # Pure math: risk scoring, premium pricing, checked u64 arithmetic
    ├── middleware/      # Error handling, request context
    ├── schemas/         # Pydantic request/response models
    └── services/        # State machine: protocols, capital pools, policies, claims, alerts

Module Boundaries:
    - The asset ledger is an EXTERNAL collaborator (debit/credit/balance only)
    - Every public operation runs as ONE database transaction: all or nothing
    - Every amount is a non-negative integer in the token's smallest unit
    - Overflow is rejected, never wrapped

Data Flow:
    Register → Risk Engine → Pricing → Policy (premium → treasury)
    Capital providers → Pool
    Claim → Resolution → Pool payout (or rejection)

Version: 1.0.0
"""

__version__ = "1.0.0"
