"""Plans module - weekly to-do lists, their tasks and teacher comments.

This module provides:
- Immutable records for plans, tasks, comments and week views
- The plan store (single owner of persisted plan state)
- The draft/publish lifecycle controller

The week view assembler lives in studyplan.plans.week_view.
"""

from studyplan.plans.lifecycle import PlanLifecycle
from studyplan.plans.store import PlanContents, PlanStore
from studyplan.plans.types import (
    CommentRecord,
    DaySlot,
    PlanRecord,
    PlanStatus,
    TaskRecord,
    WeekView,
    completion_rate,
)

__all__ = [
    "CommentRecord",
    "DaySlot",
    "PlanContents",
    "PlanLifecycle",
    "PlanRecord",
    "PlanStatus",
    "PlanStore",
    "TaskRecord",
    "WeekView",
    "completion_rate",
]
