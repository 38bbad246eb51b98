"""
Catalog Store access — the handful of queries the checkout core needs.

    get_course           — course row with price and moderation gates
    get_enrollment       — existing (user, course) enrollment, if any
    insert_enrollment    — guarded by uq_enrollment_user_course
    insert_payment_audit — best-effort audit row, never raises
    list_user_enrollments

Writes run inside SAVEPOINTs so a failed insert rolls back only itself and
leaves the surrounding transaction usable.
"""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Course, Enrollment, Payment
from domain.enums import PaymentStatus

logger = logging.getLogger(__name__)


class DuplicateEnrollment(Exception):
    """The (user, course) pair already has an enrollment row."""

    def __init__(self, existing: Enrollment):
        super().__init__(f"enrollment {existing.id} already exists")
        self.existing = existing


async def get_course(db: AsyncSession, course_id: str) -> Optional[Course]:
    result = await db.execute(select(Course).where(Course.id == course_id))
    return result.scalar_one_or_none()


async def get_enrollment(db: AsyncSession, user_id: str, course_id: str) -> Optional[Enrollment]:
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
        )
    )
    return result.scalar_one_or_none()


async def insert_enrollment(
    db: AsyncSession,
    *,
    user_id: str,
    course_id: str,
    amount_paid: Decimal,
    payment_id: Optional[str] = None,
) -> Enrollment:
    """
    Insert an enrollment row and flush it.

    Raises:
        DuplicateEnrollment: the unique constraint fired and a row for
            (user, course) exists — the idempotent outcome.
        IntegrityError / SQLAlchemyError: anything else.
    """
    enrollment = Enrollment(
        user_id=user_id,
        course_id=course_id,
        payment_id=payment_id,
        amount_paid=amount_paid,
    )
    try:
        async with db.begin_nested():
            db.add(enrollment)
    except IntegrityError:
        # Race or replay: another request committed first. Only a row for this
        # exact pair makes it idempotent; any other integrity failure is real.
        existing = await get_enrollment(db, user_id, course_id)
        if existing:
            raise DuplicateEnrollment(existing)
        raise
    return enrollment


async def insert_payment_audit(
    db: AsyncSession,
    *,
    user_id: str,
    course_id: str,
    provider_order_id: str,
    provider_payment_id: str,
    amount: Decimal,
    currency: str,
) -> Optional[Payment]:
    """
    Record a captured payment. Best-effort: failures are logged, not raised.
    """
    payment = Payment(
        user_id=user_id,
        course_id=course_id,
        provider_order_id=provider_order_id,
        provider_payment_id=provider_payment_id,
        amount=amount,
        currency=currency,
        status=PaymentStatus.CAPTURED.value,
    )
    try:
        async with db.begin_nested():
            db.add(payment)
    except IntegrityError:
        logger.warning(f"Payment audit row already exists for payment {provider_payment_id}")
        return None
    except SQLAlchemyError as e:
        logger.error(
            f"Payment audit write failed (order={provider_order_id}, "
            f"payment={provider_payment_id}): {e}"
        )
        return None
    return payment


async def list_user_enrollments(db: AsyncSession, user_id: str) -> list[dict]:
    """Enrollments for a user, newest first, with course display fields."""
    result = await db.execute(
        select(Enrollment, Course)
        .join(Course, Course.id == Enrollment.course_id)
        .where(Enrollment.user_id == user_id)
        .order_by(Enrollment.enrolled_at.desc())
    )
    return [
        {
            "id": enrollment.id,
            "courseId": course.id,
            "courseTitle": course.title,
            "courseSlug": course.slug,
            "amountPaid": str(enrollment.amount_paid),
            "paymentId": enrollment.payment_id,
            "enrolledAt": enrollment.enrolled_at.isoformat() if enrollment.enrolled_at else None,
        }
        for enrollment, course in result.all()
    ]
