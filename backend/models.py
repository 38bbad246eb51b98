"""
Pydantic models for request/response validation.

Request bodies enumerate their fields explicitly; unknown fields (such as
a client-supplied "amount") are ignored and never reach business logic.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class CheckoutBase(BaseModel):
    """Shared base — allows construction by Python name or alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Order Creation ──────────────────────────────────────────────────

class CreateOrderRequest(CheckoutBase):
    """Request to start a checkout for one course."""
    course_id: str = Field(..., alias="courseId", min_length=1, max_length=64)


class CreateOrderResponse(CheckoutBase):
    """Provider order details for the browser checkout widget."""
    order_id: str = Field(..., alias="orderId")
    amount: int = Field(..., description="Amount in the currency's smallest unit")
    currency: str
    course_name: str = Field(..., alias="courseName")
    key_id: str = Field(..., alias="keyId", description="Public Razorpay key id")


# ── Verification ────────────────────────────────────────────────────

class VerifyPaymentRequest(CheckoutBase):
    """Checkout confirmation forwarded verbatim from the Razorpay handler."""
    razorpay_order_id: str = Field(..., min_length=1, max_length=64)
    razorpay_payment_id: str = Field(..., min_length=1, max_length=64)
    razorpay_signature: str = Field(..., min_length=1, max_length=128)
    course_id: str = Field(..., alias="courseId", min_length=1, max_length=64)


class EnrollmentResultResponse(CheckoutBase):
    """Outcome of a verification or free enrollment."""
    success: bool
    message: str
    already_enrolled: bool = Field(False, alias="alreadyEnrolled")


# ── Free Enrollment ─────────────────────────────────────────────────

class FreeEnrollRequest(CheckoutBase):
    course_id: str = Field(..., alias="courseId", min_length=1, max_length=64)


# ── Listings / Config ───────────────────────────────────────────────

class EnrollmentItem(CheckoutBase):
    id: str
    course_id: str = Field(..., alias="courseId")
    course_title: str = Field(..., alias="courseTitle")
    course_slug: str = Field(..., alias="courseSlug")
    amount_paid: str = Field(..., alias="amountPaid")
    payment_id: Optional[str] = Field(None, alias="paymentId")
    enrolled_at: Optional[str] = Field(None, alias="enrolledAt")


class EnrollmentListResponse(CheckoutBase):
    enrollments: List[EnrollmentItem]


class CheckoutConfigResponse(CheckoutBase):
    """Public checkout settings. Never includes the key secret."""
    key_id: str = Field(..., alias="keyId")
    currency: str
    checkout_name: str = Field(..., alias="checkoutName")
