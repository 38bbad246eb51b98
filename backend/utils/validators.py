"""
Input validation utilities for checkout requests.

Course ids are canonical UUID strings; anything else is rejected before a
database query is issued.
"""
import uuid

from domain.errors import InvalidRequestError


def validate_course_id(course_id: str | None) -> str:
    """
    Validate a course identifier.

    Args:
        course_id: Course id as received from the client

    Returns:
        The canonical (lower-case, hyphenated) form of the id

    Raises:
        InvalidRequestError(400) if missing or not a UUID
    """
    if not course_id or not isinstance(course_id, str):
        raise InvalidRequestError("courseId is required")

    try:
        parsed = uuid.UUID(course_id.strip())
    except ValueError:
        raise InvalidRequestError("must be a valid course identifier", field="courseId")

    return str(parsed)
