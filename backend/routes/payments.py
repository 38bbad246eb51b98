"""
Checkout Routes — Razorpay order creation and payment verification.

Flow:
  1) POST /api/payments/create-order  -> {orderId, amount, currency, courseName, keyId}
  2) Browser opens Razorpay checkout with keyId + orderId; user pays
  3) Razorpay handler yields {razorpay_order_id, razorpay_payment_id, razorpay_signature}
  4) POST /api/payments/verify        -> signature check, enrollment commit

Endpoints:
    GET  /api/payments/config        — public checkout settings
    POST /api/payments/create-order  — start a checkout
    POST /api/payments/verify        — verify confirmation, enroll
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from middleware.auth import get_current_user_id, require_user_id
from middleware.rate_limit import rate_limit
from models import (
    CheckoutConfigResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    EnrollmentResultResponse,
    VerifyPaymentRequest,
)
from services import enrollment_service
from services import order_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.get("/config", response_model=CheckoutConfigResponse)
async def get_checkout_config():
    """Public checkout settings for the browser widget."""
    return CheckoutConfigResponse(
        keyId=settings.razorpay_key_id,
        currency=settings.payment_currency,
        checkoutName=settings.checkout_name,
    )


@router.post("/create-order", response_model=CreateOrderResponse)
async def create_order(
    req: CreateOrderRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
    _rate=Depends(rate_limit(max_requests=20, window_seconds=60)),
):
    """
    Create a Razorpay order for a course.

    The amount is always derived from the stored course price.
    """
    result = await order_service.create_order(db, user_id=user_id, course_id=req.course_id)
    return CreateOrderResponse(**result)


@router.post("/verify", response_model=EnrollmentResultResponse)
async def verify_payment(
    req: VerifyPaymentRequest,
    user_id: Optional[str] = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    _rate=Depends(rate_limit(max_requests=30, window_seconds=60)),
):
    """
    Verify a Razorpay checkout confirmation and enroll the caller.

    Session lookup is non-raising here so the signature is always checked
    first; the service rejects anonymous callers right after it.
    Resubmitting the same confirmation is safe and returns success with
    alreadyEnrolled=true.
    """
    confirmation = enrollment_service.PaymentConfirmation(
        order_id=req.razorpay_order_id,
        payment_id=req.razorpay_payment_id,
        signature=req.razorpay_signature,
        course_id=req.course_id,
    )
    result = await enrollment_service.verify_and_enroll(db, confirmation, user_id)
    return result.as_response()
