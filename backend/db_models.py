"""
SQLAlchemy ORM models for the course marketplace catalog store.

Tables:
    users        — principals known to the identity provider
    courses      — course catalog rows (price + moderation gates)
    enrollments  — one row per (user, course); the access grant
    payments     — best-effort audit trail of captured provider payments
"""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Numeric, Boolean, DateTime, Text, ForeignKey,
    UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship

from database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Marketplace principals (students, instructors, admins)."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default="student")  # "student" | "instructor" | "admin"
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    courses = relationship("Course", back_populates="instructor", lazy="select")
    enrollments = relationship("Enrollment", back_populates="user", lazy="select")


class Course(Base):
    """
    Course catalog row.

    Purchasable only when is_approved and is_published are true and
    is_flagged is false. Price is stored in major units (e.g. rupees).
    """
    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, default=_uuid)
    instructor_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(300), nullable=False)
    slug = Column(String(300), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    is_approved = Column(Boolean, nullable=False, default=False)
    is_published = Column(Boolean, nullable=False, default=False)
    is_flagged = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    instructor = relationship("User", back_populates="courses")
    enrollments = relationship("Enrollment", back_populates="course", lazy="select")

    @property
    def is_purchasable(self) -> bool:
        return bool(self.is_approved and self.is_published and not self.is_flagged)


class Enrollment(Base):
    """
    Access grant linking one user to one course.

    The (user_id, course_id) unique constraint is the authoritative guard
    against double enrollment; application-level checks are only a fast path.
    """
    __tablename__ = "enrollments"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    payment_id = Column(String(64), nullable=True)  # Razorpay payment id; null for free courses
    amount_paid = Column(Numeric(10, 2), nullable=False, default=0)
    enrolled_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
    )


class Payment(Base):
    """
    Audit record of a verified, captured provider payment.

    A captured payment with no matching enrollment is the operator's signal
    for a manual refund.
    """
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    course_id = Column(String(36), nullable=False, index=True)
    provider_order_id = Column(String(64), nullable=False, index=True)
    provider_payment_id = Column(String(64), unique=True, nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    status = Column(String(20), nullable=False, default="captured")
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_payments_user_course", "user_id", "course_id"),
    )
