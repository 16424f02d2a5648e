from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class Student(Base):
    """Student directory record (owned by the enrollment system).

    Stores:
    - id: Student ID (string UUID format)
    - display_name: Full name shown in views
    - enrollment_status: enrolled, paused or withdrawn
    - guardian_id: Parent principal allowed to view the student's plans
    """

    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    enrollment_status: Mapped[str] = mapped_column(String, nullable=False, default="enrolled")
    guardian_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class Teacher(Base):
    """Teacher directory record (owned by the staffing system)."""

    __tablename__ = "teachers"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class Assignment(Base):
    """Teacher-student assignment.

    role is "mentor" (may edit the plan) or "instructor" (comment-only);
    status is "active" or "ended". Read here, never written by the engine.
    """

    __tablename__ = "assignments"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    teacher_id: Mapped[str] = mapped_column(String, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    student_id: Mapped[str] = mapped_column(String, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (Index("idx_assignments_teacher_student", "teacher_id", "student_id"),)


class Plan(Base):
    """Weekly to-do list for one student and one calendar week.

    Constraints:
    - Unique constraint: (student_id, week_start) - at most one plan per week
    - week_start is always a Monday
    """

    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    student_id: Mapped[str] = mapped_column(String, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
    published_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("student_id", "week_start", name="uq_plans_student_week"),
        Index("idx_plans_student_week", "student_id", "week_start"),
    )


class Task(Base):
    """Task on one day of a plan.

    display_order is dense (1..N) within (plan_id, target_date).
    """

    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    plan_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id", ondelete="CASCADE"), nullable=False)
    target_date: Mapped[date] = mapped_column(Date, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (Index("idx_tasks_plan_date_order", "plan_id", "target_date", "display_order"),)


class Comment(Base):
    """Teacher feedback on one day of a plan. Authorship is immutable."""

    __tablename__ = "teacher_comments"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid, index=True)
    plan_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id", ondelete="CASCADE"), nullable=False)
    target_date: Mapped[date] = mapped_column(Date, nullable=False)
    author_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    author_role: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (Index("idx_teacher_comments_plan_date", "plan_id", "target_date"),)


class DayOrderVersion(Base):
    """Ordering version of one plan day, bumped on every ordering change."""

    __tablename__ = "plan_day_order_versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[str] = mapped_column(String, ForeignKey("plans.id", ondelete="CASCADE"), nullable=False)
    target_date: Mapped[date] = mapped_column(Date, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("plan_id", "target_date", name="uq_day_order_versions_plan_date"),)
