"""Request bodies for the plan and to-do endpoints."""

from datetime import date

from pydantic import BaseModel, Field

from studyplan.plans.types import PlanStatus

# ============================================================================
# Plan Schemas
# ============================================================================


class CreatePlanRequest(BaseModel):
    """Request body for POST /plans/{student_id}/{week_identifier}."""

    status: PlanStatus = Field(default=PlanStatus.DRAFT, description="Initial status: draft | published")
    notes: str | None = Field(default=None, description="Free-text notes for the week")


class UpdatePlanNotesRequest(BaseModel):
    """Request body for PATCH /todo/plans/{plan_id}."""

    notes: str | None = Field(default=None, description="New notes; null or blank clears them")


# ============================================================================
# Task Schemas
# ============================================================================


class CreateTaskRequest(BaseModel):
    """Request body for POST /todo/plans/{plan_id}/tasks."""

    target_date: date = Field(description="ISO 8601 date (YYYY-MM-DD) inside the plan's week")
    content: str = Field(description="Task text")
    notes: str | None = Field(default=None, description="Optional task notes")


class UpdateTaskRequest(BaseModel):
    """Request body for PATCH /todo/tasks/{task_id}. Omitted fields are unchanged."""

    content: str | None = None
    target_date: date | None = None
    notes: str | None = None
    is_completed: bool | None = None


class ReorderTasksRequest(BaseModel):
    """Request body for PUT /todo/plans/{plan_id}/days/{day}/order."""

    task_ids: list[str] = Field(description="Every task ID of the day, in the new order")
    version: int | None = Field(default=None, description="Day ordering version the order was computed from")


class MoveTaskRequest(BaseModel):
    """Request body for POST /todo/tasks/{task_id}/move."""

    target_date: date = Field(description="Day to move the task to")
    position: int = Field(ge=1, description="1-based position on the target day; past the end appends")
    version: int | None = Field(default=None, description="Target day ordering version")


# ============================================================================
# Comment Schemas
# ============================================================================


class CreateCommentRequest(BaseModel):
    """Request body for POST /todo/plans/{plan_id}/comments."""

    target_date: date = Field(description="ISO 8601 date (YYYY-MM-DD) inside the plan's week")
    content: str = Field(description="Comment text")


class UpdateCommentRequest(BaseModel):
    """Request body for PATCH /todo/comments/{comment_id}."""

    content: str = Field(description="New comment text")
