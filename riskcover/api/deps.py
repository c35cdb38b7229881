"""
FastAPI dependencies for API routes.

The caller's identity arrives in the X-Signer header, asserted by the
transaction substrate in front of this service. Signature verification
is not done here.
"""

from fastapi import HTTPException, Request

from riskcover.services.insurance import InsuranceService

SIGNER_HEADER = "X-Signer"


def get_service(request: Request) -> InsuranceService:
    """The InsuranceService attached to the app at startup."""
    service = getattr(request.app.state, "insurance", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return service


def get_signer(request: Request) -> str:
    signer = request.headers.get(SIGNER_HEADER, "").strip()
    if not signer:
        raise HTTPException(status_code=401, detail=f"Missing {SIGNER_HEADER} header")
    return signer
