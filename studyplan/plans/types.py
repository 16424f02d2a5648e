"""Read-oriented records for plans, tasks, comments and week views.

Records are immutable copies built inside a store unit of work. Callers
never hold live ORM objects.
"""

from __future__ import annotations

import datetime as dt
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from studyplan.core.permissions import CapabilitySet


class PlanStatus(StrEnum):
    DRAFT = "draft"
    PUBLISHED = "published"


class EnrollmentStatus(StrEnum):
    ENROLLED = "enrolled"
    PAUSED = "paused"
    WITHDRAWN = "withdrawn"


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)


class StudentRecord(_Record):
    id: str
    display_name: str
    enrollment_status: EnrollmentStatus


class PlanRecord(_Record):
    id: str
    student_id: str
    week_start: dt.date
    status: PlanStatus
    notes: str | None = None
    created_at: dt.datetime
    updated_at: dt.datetime
    published_at: dt.datetime | None = None


class TaskRecord(_Record):
    id: str
    plan_id: str
    target_date: dt.date
    content: str
    is_completed: bool
    display_order: int
    notes: str | None = None
    created_at: dt.datetime
    updated_at: dt.datetime


class CommentRecord(_Record):
    id: str
    plan_id: str
    target_date: dt.date
    author_id: str
    author_role: str
    author_name: str | None = None
    content: str
    created_at: dt.datetime
    updated_at: dt.datetime


class DaySlot(_Record):
    """One day of a week view.

    Attributes:
        date: Calendar date
        day_of_week: Localized weekday label
        tasks: Tasks ordered by display_order
        comments: Comments ordered by creation time
        order_version: Ordering version to send back with reorders
        completion_rate: Rounded percentage of completed tasks (0 when empty)
        has_comments: Whether any teacher commented on this day
    """

    date: dt.date
    day_of_week: str
    tasks: list[TaskRecord]
    comments: list[CommentRecord]
    order_version: int = 0
    completion_rate: int = 0
    has_comments: bool = False


class WeekSummary(_Record):
    total_tasks: int = 0
    completed_tasks: int = 0
    completion_rate: int = 0
    has_teacher_comments: bool = False


class WeekNavigationView(_Record):
    previous_week: dt.date
    next_week: dt.date
    can_go_next: bool


class WeekView(_Record):
    """Composed per-week view.

    plan is None when no plan exists for the week yet; that is a normal
    result telling the caller to create one.
    """

    plan: PlanRecord | None
    student: StudentRecord
    days: list[DaySlot]
    week_start_date: dt.date
    week_end_date: dt.date
    week_label: str
    permissions: CapabilitySet
    summary: WeekSummary
    navigation: WeekNavigationView


def completion_rate(completed: int, total: int) -> int:
    """Rounded completion percentage; 0 when there is nothing to complete."""
    if total <= 0:
        return 0
    # Half-up rounding, so 1 of 8 reads as 13%
    return (completed * 200 + total) // (2 * total)
