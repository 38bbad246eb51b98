"""
Order Creation Service

Turns "student clicks buy" into a Razorpay order that matches exactly what
we are willing to charge. Every gate runs against the freshly loaded course
row; nothing the client says about price or availability is trusted.

Gates, in order (any failure aborts before the gateway is called):
    1. course exists                       → NotFoundError
    2. approved, published, not flagged    → NotPurchasableError
    3. price > 0                           → FreeCourseNotPayableError
    4. no existing enrollment (fast path)  → AlreadyEnrolledError
Then the price is converted to minor units server-side and the order is
created at the gateway (failures → GatewayError).
"""
import logging
import time
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from domain.constants import RECEIPT_MAX_LENGTH, RECEIPT_PREFIX
from domain.enums import CheckoutState
from domain.errors import (
    AlreadyEnrolledError,
    FreeCourseNotPayableError,
    NotFoundError,
    NotPurchasableError,
    UnauthenticatedError,
)
from services import catalog_service
from services import gateway_service
from utils.money import to_decimal, to_minor_units
from utils.validators import validate_course_id

logger = logging.getLogger(__name__)


def build_receipt(course_id: str, user_id: str, now_ms: int | None = None) -> str:
    """
    Per-attempt receipt: crs_<course8>_<user8>_<epoch-ms>.

    Unique per attempt so Razorpay never folds a new checkout into a stale
    order context.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    receipt = f"{RECEIPT_PREFIX}{course_id.replace('-', '')[:8]}_{user_id.replace('-', '')[:8]}_{now_ms}"
    return receipt[:RECEIPT_MAX_LENGTH]


async def create_order(db: AsyncSession, user_id: str | None, course_id: str | None) -> dict:
    """
    Validate a purchase and create the matching provider order.

    Returns:
        dict: {orderId, amount, currency, courseName, keyId}
    """
    if not user_id:
        raise UnauthenticatedError()
    course_id = validate_course_id(course_id)

    course = await catalog_service.get_course(db, course_id)
    if not course:
        raise NotFoundError("Course", course_id)

    if not course.is_purchasable:
        logger.info(
            f"Order refused for unpurchasable course {course_id} "
            f"(approved={course.is_approved}, published={course.is_published}, "
            f"flagged={course.is_flagged})"
        )
        raise NotPurchasableError()

    price: Decimal = to_decimal(course.price)
    if price <= 0:
        raise FreeCourseNotPayableError()

    if await catalog_service.get_enrollment(db, user_id, course_id):
        raise AlreadyEnrolledError()

    # End the read transaction; the store lock must not span the gateway call
    await db.commit()

    amount_minor = to_minor_units(price)
    currency = settings.payment_currency

    order = await gateway_service.create_order(
        amount=amount_minor,
        currency=currency,
        receipt=build_receipt(course_id, user_id),
        notes={
            "courseId": course_id,
            "userId": user_id,
            "courseTitle": course.title,
        },
    )

    logger.info(
        f"  🧾 {CheckoutState.CREATED.value}: order {order['id']} for course {course_id} "
        f"user {user_id} ({amount_minor} {currency})"
    )

    return {
        "orderId": order["id"],
        "amount": order["amount"],
        "currency": order["currency"],
        "courseName": course.title,
        "keyId": settings.razorpay_key_id,
    }
