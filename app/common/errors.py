"""Domain error taxonomy shared by every feature.

Services raise these; ``app.main`` renders them as ``ErrorResponse`` payloads.
Lifecycle and distribution errors are expected user errors and carry enough
``details`` for the caller to self-correct.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CourseTrackerError(Exception):
    error_code = "error"
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.error_code}: {self.message}>"


class NotFound(CourseTrackerError):
    error_code = "not_found"
    status_code = 404
    default_message = "Resource not found"


class Forbidden(CourseTrackerError):
    error_code = "forbidden"
    status_code = 403
    default_message = "Access denied"


class DuplicateAssignment(CourseTrackerError):
    error_code = "duplicate_assignment"
    status_code = 409
    default_message = "Student is already assigned to this assignment"


class NotAssigned(CourseTrackerError):
    error_code = "not_assigned"
    status_code = 409
    default_message = "Student is not assigned to this assignment"


class AlreadySubmitted(CourseTrackerError):
    error_code = "already_submitted"
    status_code = 409
    default_message = "Assignment already submitted"


class NotSubmitted(CourseTrackerError):
    error_code = "not_submitted"
    status_code = 409
    default_message = "Submission has not been submitted"


class NotGraded(CourseTrackerError):
    error_code = "not_graded"
    status_code = 409
    default_message = "Submission has not been graded"


class AssignmentClosed(CourseTrackerError):
    error_code = "assignment_closed"
    status_code = 400
    default_message = "Assignment is not open for submissions"


class AttemptLimitExceeded(CourseTrackerError):
    error_code = "attempt_limit_exceeded"
    status_code = 400
    default_message = "Maximum number of attempts exceeded"


class ValidationFailed(CourseTrackerError):
    error_code = "validation_failed"
    status_code = 400
    default_message = "Invalid input"


class StoreUnavailable(CourseTrackerError):
    error_code = "store_unavailable"
    status_code = 503
    default_message = "Database connection not available"


__all__ = [
    "CourseTrackerError",
    "NotFound",
    "Forbidden",
    "DuplicateAssignment",
    "NotAssigned",
    "AlreadySubmitted",
    "NotSubmitted",
    "NotGraded",
    "AssignmentClosed",
    "AttemptLimitExceeded",
    "ValidationFailed",
    "StoreUnavailable",
]
