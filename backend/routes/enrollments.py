"""
Enrollment Routes

Endpoints:
    POST /api/enrollments/free  — enroll in a zero-price course
    GET  /api/enrollments/me    — caller's enrollments, newest first
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from middleware.auth import require_user_id
from middleware.rate_limit import rate_limit
from models import EnrollmentListResponse, EnrollmentResultResponse, FreeEnrollRequest
from services import catalog_service
from services import enrollment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])


@router.post("/free", response_model=EnrollmentResultResponse)
async def enroll_free(
    req: FreeEnrollRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
    _rate=Depends(rate_limit(max_requests=20, window_seconds=60)),
):
    """Enroll in a free course. Paid courses must go through checkout."""
    result = await enrollment_service.enroll_free(db, user_id=user_id, course_id=req.course_id)
    return result.as_response()


@router.get("/me", response_model=EnrollmentListResponse)
async def my_enrollments(
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    enrollments = await catalog_service.list_user_enrollments(db, user_id)
    return {"enrollments": enrollments}
