"""Error taxonomy for the study-plan engine.

Every application error carries an ErrorKind. The kind drives the HTTP
status code and the localized user-facing message; the exception text is
for logs only. Application errors are never retried.
"""

from __future__ import annotations

from datetime import date
from enum import StrEnum


class ErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    PERMISSION_DENIED = "permission_denied"
    INCOMPLETE_REORDER_SET = "incomplete_reorder_set"
    STORE_UNAVAILABLE = "store_unavailable"
    INTERNAL = "internal"


class StudyPlanError(Exception):
    """Base class for all study-plan application errors.

    Attributes:
        kind: Error category
        message_key: Key into the localized message catalog
    """

    kind: ErrorKind = ErrorKind.VALIDATION
    message_key: str = "validation"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(StudyPlanError):
    """Raised when a task, comment, plan (by id) or student does not exist.

    A missing plan for a (student, week) pair is not an error; the store
    returns None for that lookup.
    """

    kind = ErrorKind.NOT_FOUND
    message_key = "not_found"

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id
        self.message_key = f"not_found.{entity}"


class ConflictError(StudyPlanError):
    kind = ErrorKind.CONFLICT
    message_key = "conflict"


class PlanAlreadyExistsError(ConflictError):
    """Raised when a plan already exists for (student_id, week_start)."""

    message_key = "conflict.plan_exists"

    def __init__(self, student_id: str, week_start: date) -> None:
        super().__init__(f"Plan already exists for student_id={student_id}, week_start={week_start.isoformat()}")
        self.student_id = student_id
        self.week_start = week_start


class StaleOrderingError(ConflictError):
    """Raised when a reorder was computed against an outdated day ordering."""

    message_key = "conflict.stale_ordering"

    def __init__(self, target_date: date, expected_version: int, current_version: int) -> None:
        super().__init__(
            f"Task ordering for {target_date.isoformat()} changed: expected version {expected_version}, current {current_version}"
        )
        self.expected_version = expected_version
        self.current_version = current_version


class ValidationError(StudyPlanError):
    kind = ErrorKind.VALIDATION
    message_key = "validation"


class OutOfWeekRangeError(ValidationError):
    """Raised when a target date falls outside [week_start, week_start + 6]."""

    message_key = "validation.out_of_week"

    def __init__(self, target_date: date, week_start: date) -> None:
        super().__init__(f"Date {target_date.isoformat()} is outside the week starting {week_start.isoformat()}")
        self.target_date = target_date
        self.week_start = week_start


class InvalidWeekStartError(ValidationError):
    """Raised when a week start is not a Monday."""

    message_key = "validation.week_start"

    def __init__(self, value: date) -> None:
        super().__init__(f"Week start must be a Monday, got {value.isoformat()} ({value.strftime('%A')})")
        self.value = value


class EmptyContentError(ValidationError):
    message_key = "validation.empty_content"

    def __init__(self, field: str = "content") -> None:
        super().__init__(f"{field} must not be empty")
        self.field = field


class PermissionDeniedError(StudyPlanError):
    kind = ErrorKind.PERMISSION_DENIED
    message_key = "permission_denied"


class IncompleteReorderSetError(StudyPlanError):
    """Raised when a reorder payload does not match the day's tasks exactly."""

    kind = ErrorKind.INCOMPLETE_REORDER_SET
    message_key = "incomplete_reorder_set"

    def __init__(self, target_date: date, missing: set[str], unexpected: set[str], duplicated: set[str]) -> None:
        super().__init__(
            f"Reorder for {target_date.isoformat()} must list every task exactly once "
            f"(missing={sorted(missing)}, unexpected={sorted(unexpected)}, duplicated={sorted(duplicated)})"
        )
        self.missing = missing
        self.unexpected = unexpected
        self.duplicated = duplicated


class StoreUnavailableError(StudyPlanError):
    """Raised when the store stays unreachable after all retry attempts."""

    kind = ErrorKind.STORE_UNAVAILABLE
    message_key = "store_unavailable"


class InternalError(StudyPlanError):
    """Stands in for an unexpected failure when it is reported to a caller."""

    kind = ErrorKind.INTERNAL
    message_key = "internal"
