"""OTP API router — registration-flow endpoints.

Endpoints
---------
POST /api/send-otp     → issue a challenge for a phone number
POST /api/verify-otp   → verify a submitted code
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from fitflex.otp.service import OTPService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["otp"])


def get_otp_service(request: Request) -> OTPService:
    """Return the process-wide service built during application startup."""
    return request.app.state.otp_service


# ── Request / response models ────────────────────────────

class SendOTPRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    phone: str | None = None


class VerifyOTPRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    phone: str | None = None
    otp: str | None = None


class OTPResponse(BaseModel):
    success: bool
    message: str
    demoOtp: str | None = None
    reason: str | None = None


def _reply(status_code: int, body: OTPResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


# Malformed bodies get the same 400 shape as missing fields
_INVALID_BODY_MESSAGES = {
    "/api/send-otp": "Phone is required",
    "/api/verify-otp": "Phone & OTP required",
}


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Answer unparseable request bodies with ``{success, message}`` instead of 422."""
    logger.info("Rejected malformed body on %s: %s", request.url.path, exc.errors())
    message = _INVALID_BODY_MESSAGES.get(request.url.path, "Invalid request")
    return _reply(400, OTPResponse(success=False, message=message))


# ── Endpoints ────────────────────────────────────────────

@router.post("/send-otp", response_model=OTPResponse)
async def send_otp(
    body: SendOTPRequest, service: OTPService = Depends(get_otp_service)
) -> JSONResponse:
    """Generate an OTP for the phone and deliver it (or disclose it in demo mode)."""
    phone = (body.phone or "").strip()
    if not phone:
        return _reply(400, OTPResponse(success=False, message="Phone is required"))

    result = await service.request_challenge(phone)
    if not result.ok:
        return _reply(500, OTPResponse(success=False, message=result.message))

    return _reply(
        200, OTPResponse(success=True, message=result.message, demoOtp=result.code)
    )


@router.post("/verify-otp", response_model=OTPResponse)
async def verify_otp(
    body: VerifyOTPRequest, service: OTPService = Depends(get_otp_service)
) -> JSONResponse:
    """Validate an OTP for the given phone."""
    phone = (body.phone or "").strip()
    otp = (body.otp or "").strip()
    if not phone or not otp:
        return _reply(400, OTPResponse(success=False, message="Phone & OTP required"))

    result = service.verify_challenge(phone, otp)
    if result.verified:
        return _reply(200, OTPResponse(success=True, message=result.message))

    return _reply(
        400,
        OTPResponse(success=False, message=result.message, reason=result.reason.value),
    )
