"""Read-only directory of students, teachers and assignments.

Students, teachers and assignments are owned by the enrollment and
staffing systems. This module only reads them, and turns an
authenticated principal into an Actor scoped to one student.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import assert_never

from loguru import logger
from pydantic import BaseModel, ConfigDict

from studyplan.core.errors import NotFoundError, PermissionDeniedError
from studyplan.core.permissions import Actor, ActorRole, AssignmentStatus
from studyplan.db.models import Assignment, Student, Teacher
from studyplan.db.session import Database
from studyplan.plans.types import StudentRecord


class PrincipalKind(StrEnum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as reported by the identity service."""

    principal_id: str
    kind: PrincipalKind


class TeacherRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    display_name: str


class AssignmentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    teacher_id: str
    student_id: str
    role: ActorRole
    status: AssignmentStatus


# Mentor wins when a teacher holds both assignments for the same student
_ROLE_PRIORITY = {ActorRole.MENTOR: 0, ActorRole.INSTRUCTOR: 1}


class Directory:
    """Lookups of students, teachers and teacher-student assignments."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def get_student(self, student_id: str) -> StudentRecord:
        """Get a student by ID.

        Raises:
            NotFoundError: If the student does not exist
        """
        with self._database.session() as session:
            student = session.query(Student).filter_by(id=student_id).one_or_none()
            if student is None:
                raise NotFoundError("student", student_id)
            return StudentRecord.model_validate(student)

    def get_teacher(self, teacher_id: str) -> TeacherRecord | None:
        with self._database.session() as session:
            teacher = session.query(Teacher).filter_by(id=teacher_id).one_or_none()
            return TeacherRecord.model_validate(teacher) if teacher else None

    def active_assignment(self, teacher_id: str, student_id: str) -> AssignmentRecord | None:
        """Get the teacher's active assignment for a student.

        Args:
            teacher_id: Teacher ID
            student_id: Student ID

        Returns:
            The active mentor assignment if there is one, else the active
            instructor assignment, else None
        """
        with self._database.session() as session:
            links = (
                session.query(Assignment)
                .filter_by(teacher_id=teacher_id, student_id=student_id, status=AssignmentStatus.ACTIVE.value)
                .all()
            )
            records = [
                AssignmentRecord(
                    teacher_id=link.teacher_id,
                    student_id=link.student_id,
                    role=ActorRole(link.role),
                    status=AssignmentStatus(link.status),
                )
                for link in links
                if link.role in _ROLE_PRIORITY
            ]
        if not records:
            return None
        return min(records, key=lambda record: _ROLE_PRIORITY[record.role])

    def resolve_actor(self, principal: Principal, student_id: str) -> Actor:
        """Resolve an authenticated principal into an Actor for one student.

        Args:
            principal: Authenticated caller
            student_id: Student whose plans are being accessed

        Returns:
            Actor scoped to the student

        Raises:
            NotFoundError: If the student does not exist
            PermissionDeniedError: If a parent is not the student's guardian
        """
        match principal.kind:
            case PrincipalKind.ADMIN:
                return Actor(actor_id=principal.principal_id, role=ActorRole.ADMIN)
            case PrincipalKind.TEACHER:
                self.get_student(student_id)
                assignment = self.active_assignment(principal.principal_id, student_id)
                if assignment is None:
                    logger.debug(f"[DIRECTORY] Teacher {principal.principal_id} has no active assignment for {student_id}")
                    return Actor(
                        actor_id=principal.principal_id,
                        role=ActorRole.UNASSIGNED_TEACHER,
                        student_id=student_id,
                    )
                return Actor(
                    actor_id=principal.principal_id,
                    role=assignment.role,
                    assignment_status=assignment.status,
                    student_id=student_id,
                )
            case PrincipalKind.STUDENT:
                if principal.principal_id != student_id:
                    raise PermissionDeniedError(f"Student {principal.principal_id} may only access their own plans")
                self.get_student(student_id)
                return Actor(actor_id=principal.principal_id, role=ActorRole.STUDENT_VIEWER, student_id=student_id)
            case PrincipalKind.PARENT:
                guardian_id = self._guardian_id(student_id)
                if guardian_id != principal.principal_id:
                    raise PermissionDeniedError(f"Parent {principal.principal_id} is not a guardian of student {student_id}")
                return Actor(actor_id=principal.principal_id, role=ActorRole.STUDENT_VIEWER, student_id=student_id)
            case _:
                assert_never(principal.kind)

    def _guardian_id(self, student_id: str) -> str | None:
        with self._database.session() as session:
            student = session.query(Student).filter_by(id=student_id).one_or_none()
            if student is None:
                raise NotFoundError("student", student_id)
            return student.guardian_id
