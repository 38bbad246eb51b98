"""
Payment Verification & Enrollment Commit Service

Handles:
    1. Signature check of the Razorpay checkout confirmation (first, always)
    2. Session identity check
    3. Authoritative price lookup
    4. Atomic, idempotent commit: audit Payment row + Enrollment row
    5. Free-course enrollment (no payment, same uniqueness guard)

Idempotency comes from uq_enrollment_user_course alone. Replaying a
confirmation, or committing a second confirmation for a course the user
already owns, ends in CheckoutState.ALREADY_COMMITTED, which callers treat
as success.

A verified payment that cannot be written as an enrollment is logged at
CRITICAL with order id, payment id, user id and course id for manual
reconciliation.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from domain.constants import MSG_ALREADY_ENROLLED, MSG_ENROLLED, MSG_FREE_ENROLLED
from domain.enums import CheckoutState
from domain.errors import (
    EnrollmentFailedError,
    InvalidRequestError,
    InvalidSignatureError,
    NotFoundError,
    NotPurchasableError,
    UnauthenticatedError,
)
from services import catalog_service
from utils.money import to_decimal
from utils.signatures import verify_payment_signature
from utils.validators import validate_course_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentConfirmation:
    """Opaque checkout result forwarded verbatim by the browser."""
    order_id: str
    payment_id: str
    signature: str
    course_id: str


@dataclass
class CommitResult:
    state: CheckoutState
    message: str
    enrollment_id: str | None = None

    @property
    def already_enrolled(self) -> bool:
        return self.state == CheckoutState.ALREADY_COMMITTED

    def as_response(self) -> dict:
        return {
            "success": self.state.is_success,
            "message": self.message,
            "alreadyEnrolled": self.already_enrolled,
        }


async def verify_and_enroll(
    db: AsyncSession,
    confirmation: PaymentConfirmation,
    user_id: str | None,
) -> CommitResult:
    """
    Verify a checkout confirmation and grant access to the course.

    Raises:
        InvalidRequestError, InvalidSignatureError, UnauthenticatedError,
        NotFoundError, EnrollmentFailedError
    """
    if not all((confirmation.order_id, confirmation.payment_id,
                confirmation.signature, confirmation.course_id)):
        raise InvalidRequestError("Missing required payment fields")
    logger.debug(
        f"{CheckoutState.CONFIRMATION_RECEIVED.value}: order={confirmation.order_id} "
        f"payment={confirmation.payment_id}"
    )

    # 1. Signature, before identity or any DB work
    if not verify_payment_signature(
        confirmation.order_id,
        confirmation.payment_id,
        confirmation.signature,
        settings.razorpay_key_secret,
    ):
        logger.warning(
            f"  🚫 {CheckoutState.SIGNATURE_INVALID.value}: order={confirmation.order_id} "
            f"payment={confirmation.payment_id}"
        )
        raise InvalidSignatureError()
    logger.debug(f"{CheckoutState.SIGNATURE_VALID.value}: order={confirmation.order_id}")

    # 2. Identity: the signature proves payment, not who paid
    if not user_id:
        raise UnauthenticatedError()

    course_id = validate_course_id(confirmation.course_id)

    # 3. Authoritative price
    course = await catalog_service.get_course(db, course_id)
    if not course:
        raise NotFoundError("Course", course_id)
    price: Decimal = to_decimal(course.price)

    # 4. Commit
    context = (
        f"order={confirmation.order_id} payment={confirmation.payment_id} "
        f"user={user_id} course={course_id}"
    )
    try:
        await catalog_service.insert_payment_audit(
            db,
            user_id=user_id,
            course_id=course_id,
            provider_order_id=confirmation.order_id,
            provider_payment_id=confirmation.payment_id,
            amount=price,
            currency=settings.payment_currency,
        )
        enrollment = await catalog_service.insert_enrollment(
            db,
            user_id=user_id,
            course_id=course_id,
            amount_paid=price,
            payment_id=confirmation.payment_id,
        )
        await db.commit()
    except catalog_service.DuplicateEnrollment as dup:
        existing_id = dup.existing.id
        # Keep the audit row: a captured payment without its own enrollment
        # is exactly what an operator needs to spot a refund.
        await _commit_audit_only(db, context)
        logger.warning(f"  ↩️  {CheckoutState.ALREADY_COMMITTED.value}: {context}")
        return CommitResult(
            state=CheckoutState.ALREADY_COMMITTED,
            message=MSG_ALREADY_ENROLLED,
            enrollment_id=existing_id,
        )
    except SQLAlchemyError as e:
        existing = await _existing_after_write_error(db, user_id, course_id)
        if existing is not None:
            existing_id = existing.id
            # The rollback dropped this payment's audit row; write it again
            await catalog_service.insert_payment_audit(
                db,
                user_id=user_id,
                course_id=course_id,
                provider_order_id=confirmation.order_id,
                provider_payment_id=confirmation.payment_id,
                amount=price,
                currency=settings.payment_currency,
            )
            await _commit_audit_only(db, context)
            logger.warning(
                f"  ↩️  {CheckoutState.ALREADY_COMMITTED.value} after write error: {context} error={e}"
            )
            return CommitResult(
                state=CheckoutState.ALREADY_COMMITTED,
                message=MSG_ALREADY_ENROLLED,
                enrollment_id=existing_id,
            )
        logger.critical(
            f"  🔥 {CheckoutState.COMMIT_FAILED.value}: verified payment NOT recorded, "
            f"manual reconciliation required: {context} error={e}"
        )
        raise EnrollmentFailedError()

    logger.info(f"  ✅ {CheckoutState.COMMITTED.value}: enrollment {enrollment.id} ({context})")
    return CommitResult(
        state=CheckoutState.COMMITTED,
        message=MSG_ENROLLED,
        enrollment_id=enrollment.id,
    )


async def _existing_after_write_error(db: AsyncSession, user_id: str, course_id: str):
    """Roll back, then look for an enrollment a concurrent request committed."""
    await db.rollback()
    try:
        return await catalog_service.get_enrollment(db, user_id, course_id)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Enrollment re-check failed (user={user_id}, course={course_id}): {e}")
        return None


async def _commit_audit_only(db: AsyncSession, context: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Payment audit commit failed on idempotent replay ({context}): {e}")


async def enroll_free(db: AsyncSession, user_id: str | None, course_id: str | None) -> CommitResult:
    """
    Enroll a user in a zero-price course. No payment, same uniqueness guard.
    """
    if not user_id:
        raise UnauthenticatedError()
    course_id = validate_course_id(course_id)

    course = await catalog_service.get_course(db, course_id)
    if not course:
        raise NotFoundError("Course", course_id)
    if not course.is_purchasable:
        raise NotPurchasableError("Course is not available for enrollment")
    if to_decimal(course.price) > 0:
        raise InvalidRequestError("This course requires payment. Use checkout.")

    try:
        enrollment = await catalog_service.insert_enrollment(
            db,
            user_id=user_id,
            course_id=course_id,
            amount_paid=Decimal("0"),
        )
        await db.commit()
    except catalog_service.DuplicateEnrollment as dup:
        existing_id = dup.existing.id
        await db.rollback()
        return CommitResult(
            state=CheckoutState.ALREADY_COMMITTED,
            message=MSG_ALREADY_ENROLLED,
            enrollment_id=existing_id,
        )
    except SQLAlchemyError as e:
        existing = await _existing_after_write_error(db, user_id, course_id)
        if existing is not None:
            return CommitResult(
                state=CheckoutState.ALREADY_COMMITTED,
                message=MSG_ALREADY_ENROLLED,
                enrollment_id=existing.id,
            )
        logger.error(f"Free enrollment failed (user={user_id}, course={course_id}): {e}")
        raise EnrollmentFailedError("Failed to create enrollment")

    logger.info(f"  🎓 Free enrollment {enrollment.id} (user={user_id}, course={course_id})")
    return CommitResult(
        state=CheckoutState.COMMITTED,
        message=MSG_FREE_ENROLLED,
        enrollment_id=enrollment.id,
    )
