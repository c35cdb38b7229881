"""
RiskCover Exceptions.

Every business failure is a CoverError subclass with:
- a machine-readable ErrorCode
- an HTTP status code for the API layer
- optional structured details

All of them are local validation failures: the operation raising one is
aborted and its transaction rolled back. None are retried inside the core.
"""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Optional

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


# ── Error codes ───────────────────────────────────────────────────────────


class ErrorCode(StrEnum):
    # Authorization
    UNAUTHORIZED = "unauthorized"

    # Input range
    INVALID_AMOUNT = "invalid_amount"
    INVALID_DURATION = "invalid_duration"
    INVALID_RISK_PARAMS = "invalid_risk_params"
    INVALID_PARAMETER = "invalid_parameter"
    INVALID_BASIS_POINTS = "invalid_basis_points"
    INVALID_POOL_TYPE = "invalid_pool_type"
    INVALID_ANOMALY_TYPE = "invalid_anomaly_type"
    INVALID_SEVERITY = "invalid_severity"
    INVALID_TOKEN_ACCOUNT = "invalid_token_account"

    # Uniqueness
    ALREADY_INITIALIZED = "already_initialized"
    DUPLICATE_REGISTRATION = "duplicate_registration"
    DUPLICATE_POOL = "duplicate_pool"
    DUPLICATE_POLICY = "duplicate_policy"
    DUPLICATE_CLAIM = "duplicate_claim"

    # Lookup
    NOT_FOUND = "not_found"

    # Lifecycle
    PROTOCOL_INACTIVE = "protocol_inactive"
    POLICY_EXPIRED = "policy_expired"
    POLICY_INACTIVE = "policy_inactive"
    POLICY_ALREADY_CLAIMED = "policy_already_claimed"
    AMOUNT_EXCEEDS_COVERAGE = "amount_exceeds_coverage"
    PREMIUM_MISMATCH = "premium_mismatch"
    CLAIM_ALREADY_RESOLVED = "claim_already_resolved"
    ALERT_ALREADY_RESOLVED = "alert_already_resolved"

    # Funds
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_POOL_FUNDS = "insufficient_pool_funds"
    ARITHMETIC_OVERFLOW = "arithmetic_overflow"

    # Concurrency
    CONCURRENT_UPDATE = "concurrent_update"

    # Infrastructure (rendered by the error middleware, never raised)
    INTERNAL_ERROR = "internal_error"
    SERVICE_UNAVAILABLE = "service_unavailable"


# ── Response model ────────────────────────────────────────────────────────


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Uniform error body returned by every endpoint."""
    error: ErrorDetail
    request_id: Optional[str] = None
    timestamp: Optional[str] = None


# ── Base exception ────────────────────────────────────────────────────────


class CoverError(Exception):
    """Base exception for every RiskCover business failure."""

    code: ErrorCode = ErrorCode.INVALID_PARAMETER
    status_code: int = 400

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        return ErrorResponse(
            error=ErrorDetail(
                code=self.code.value,
                message=self.message,
                details=self.details or None,
            ),
            request_id=request_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )


# ── Authorization ─────────────────────────────────────────────────────────


class Unauthorized(CoverError):
    """Caller lacks the role required for the operation."""
    code = ErrorCode.UNAUTHORIZED
    status_code = 403


# ── Input range ───────────────────────────────────────────────────────────


class InvalidAmount(CoverError):
    code = ErrorCode.INVALID_AMOUNT
    status_code = 422


class InvalidDuration(CoverError):
    code = ErrorCode.INVALID_DURATION
    status_code = 422


class InvalidRiskParams(CoverError):
    code = ErrorCode.INVALID_RISK_PARAMS
    status_code = 422


class InvalidParameter(CoverError):
    code = ErrorCode.INVALID_PARAMETER
    status_code = 422


class InvalidBasisPoints(InvalidParameter):
    code = ErrorCode.INVALID_BASIS_POINTS


class InvalidPoolType(InvalidParameter):
    code = ErrorCode.INVALID_POOL_TYPE


class InvalidAnomalyType(InvalidParameter):
    code = ErrorCode.INVALID_ANOMALY_TYPE


class InvalidSeverity(InvalidParameter):
    code = ErrorCode.INVALID_SEVERITY


class InvalidTokenAccount(CoverError):
    """Token account has the wrong owner or mint for this operation."""
    code = ErrorCode.INVALID_TOKEN_ACCOUNT
    status_code = 422


# ── Uniqueness ────────────────────────────────────────────────────────────


class AlreadyInitialized(CoverError):
    code = ErrorCode.ALREADY_INITIALIZED
    status_code = 409


class DuplicateRegistration(CoverError):
    code = ErrorCode.DUPLICATE_REGISTRATION
    status_code = 409


class DuplicatePool(CoverError):
    code = ErrorCode.DUPLICATE_POOL
    status_code = 409


class DuplicatePolicy(CoverError):
    code = ErrorCode.DUPLICATE_POLICY
    status_code = 409


class DuplicateClaim(CoverError):
    code = ErrorCode.DUPLICATE_CLAIM
    status_code = 409


# ── Lookup ────────────────────────────────────────────────────────────────


class NotFound(CoverError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


# ── Lifecycle ─────────────────────────────────────────────────────────────


class ProtocolInactive(CoverError):
    code = ErrorCode.PROTOCOL_INACTIVE
    status_code = 409


class PolicyExpired(CoverError):
    code = ErrorCode.POLICY_EXPIRED
    status_code = 409


class PolicyInactive(CoverError):
    code = ErrorCode.POLICY_INACTIVE
    status_code = 409


class PolicyAlreadyClaimed(CoverError):
    code = ErrorCode.POLICY_ALREADY_CLAIMED
    status_code = 409


class AmountExceedsCoverage(CoverError):
    code = ErrorCode.AMOUNT_EXCEEDS_COVERAGE
    status_code = 422


class PremiumMismatch(CoverError):
    code = ErrorCode.PREMIUM_MISMATCH
    status_code = 422


class ClaimAlreadyResolved(CoverError):
    code = ErrorCode.CLAIM_ALREADY_RESOLVED
    status_code = 409


class AlertAlreadyResolved(CoverError):
    code = ErrorCode.ALERT_ALREADY_RESOLVED
    status_code = 409


# ── Funds ─────────────────────────────────────────────────────────────────


class InsufficientFunds(CoverError):
    code = ErrorCode.INSUFFICIENT_FUNDS
    status_code = 409


class InsufficientPoolFunds(CoverError):
    """
    The pool cannot cover an approved claim right now.

    Reported to the caller, never retried: resubmit after the pool is
    replenished or escalate through governance.
    """
    code = ErrorCode.INSUFFICIENT_POOL_FUNDS
    status_code = 409


class ArithmeticOverflow(CoverError):
    code = ErrorCode.ARITHMETIC_OVERFLOW
    status_code = 422


# ── Concurrency ───────────────────────────────────────────────────────────


class ConcurrentUpdate(CoverError):
    """Another transaction committed a change to the same entity first."""
    code = ErrorCode.CONCURRENT_UPDATE
    status_code = 409


# ── Exception handlers ────────────────────────────────────────────────────


async def cover_error_handler(request: Request, exc: CoverError) -> JSONResponse:
    """Render a CoverError as the uniform error body."""
    request_id = getattr(request.state, "request_id", None)

    logger.warning(
        "cover_error",
        error_code=exc.code.value,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response(request_id).model_dump(),
    )


def register_exception_handlers(app) -> None:
    """Register exception handlers with the FastAPI app."""
    app.add_exception_handler(CoverError, cover_error_handler)
