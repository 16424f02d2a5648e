"""Permission engine for weekly study plans.

Maps an actor to the capability set it holds on a student's plan.
No implicit permissions - every capability comes from the role table below.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import assert_never

from pydantic import BaseModel, ConfigDict

from studyplan.core.errors import PermissionDeniedError


class ActorRole(StrEnum):
    ADMIN = "admin"
    MENTOR = "mentor"
    INSTRUCTOR = "instructor"
    UNASSIGNED_TEACHER = "unassigned_teacher"
    STUDENT_VIEWER = "student_viewer"


class AssignmentStatus(StrEnum):
    ACTIVE = "active"
    ENDED = "ended"


@dataclass(frozen=True)
class Actor:
    """Already-authenticated caller, scoped to one student.

    Attributes:
        actor_id: Principal ID (admin, teacher, student or parent ID)
        role: Role variant for the scoped student
        assignment_status: Assignment status for mentor/instructor roles
        student_id: Student the actor is scoped to (None for admins)
    """

    actor_id: str
    role: ActorRole
    assignment_status: AssignmentStatus | None = None
    student_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is ActorRole.ADMIN


class CapabilitySet(BaseModel):
    """Boolean permission vector for an actor.

    can_edit_comments is refined at the store call site to the actor's own
    comments unless the role is admin.
    """

    model_config = ConfigDict(frozen=True)

    role: ActorRole
    can_add_tasks: bool = False
    can_edit_tasks: bool = False
    can_delete_tasks: bool = False
    can_reorder_tasks: bool = False
    can_add_comments: bool = False
    can_edit_comments: bool = False
    can_publish: bool = False
    can_toggle_own_tasks: bool = False


def _editor(role: ActorRole) -> CapabilitySet:
    return CapabilitySet(
        role=role,
        can_add_tasks=True,
        can_edit_tasks=True,
        can_delete_tasks=True,
        can_reorder_tasks=True,
        can_add_comments=True,
        can_edit_comments=True,
        can_publish=True,
    )


def capabilities(actor: Actor) -> CapabilitySet:
    """Compute the capability set for an actor.

    Args:
        actor: Actor descriptor

    Returns:
        CapabilitySet for the actor's role and assignment status
    """
    role = actor.role
    match role:
        case ActorRole.ADMIN:
            return _editor(role)
        case ActorRole.MENTOR:
            if actor.assignment_status is not AssignmentStatus.ACTIVE:
                return CapabilitySet(role=role)
            return _editor(role)
        case ActorRole.INSTRUCTOR:
            if actor.assignment_status is not AssignmentStatus.ACTIVE:
                return CapabilitySet(role=role)
            return CapabilitySet(role=role, can_add_comments=True, can_edit_comments=True)
        case ActorRole.UNASSIGNED_TEACHER:
            return CapabilitySet(role=role)
        case ActorRole.STUDENT_VIEWER:
            return CapabilitySet(role=role, can_toggle_own_tasks=True)
        case _:
            assert_never(role)


def require(capability_set: CapabilitySet, capability: str) -> None:
    """Raise PermissionDeniedError unless the capability is granted.

    Args:
        capability_set: Capabilities of the acting caller
        capability: Field name on CapabilitySet (e.g. "can_add_tasks")

    Raises:
        PermissionDeniedError: If the capability is not granted
    """
    if not getattr(capability_set, capability):
        raise PermissionDeniedError(f"Role {capability_set.role.value} lacks {capability}")


def require_student_scope(actor: Actor, student_id: str) -> None:
    """Raise PermissionDeniedError unless the actor may act on student_id.

    Only admins are unscoped. Student viewers without an explicit scope are
    scoped to their own ID; any other role must carry a student_id.
    """
    if actor.is_admin:
        return
    scoped_to = actor.student_id
    if scoped_to is None and actor.role is ActorRole.STUDENT_VIEWER:
        scoped_to = actor.actor_id
    if scoped_to is None:
        raise PermissionDeniedError(f"Actor {actor.actor_id} ({actor.role.value}) is not scoped to any student")
    if scoped_to != student_id:
        raise PermissionDeniedError(f"Actor {actor.actor_id} is not scoped to student {student_id}")
