"""Tests for the role -> capability table."""

import pytest

from studyplan.core.errors import PermissionDeniedError
from studyplan.core.permissions import (
    Actor,
    ActorRole,
    AssignmentStatus,
    capabilities,
    require,
    require_student_scope,
)

EDIT_FIELDS = ("can_add_tasks", "can_edit_tasks", "can_delete_tasks", "can_reorder_tasks", "can_publish")
ALL_FIELDS = (*EDIT_FIELDS, "can_add_comments", "can_edit_comments", "can_toggle_own_tasks")


def _granted(actor: Actor) -> set[str]:
    caps = capabilities(actor)
    return {name for name in ALL_FIELDS if getattr(caps, name)}


class TestCapabilities:
    def test_admin_has_every_editing_capability(self):
        granted = _granted(Actor("a", ActorRole.ADMIN))
        assert granted == set(ALL_FIELDS) - {"can_toggle_own_tasks"}

    def test_active_mentor_matches_admin(self):
        mentor = Actor("m", ActorRole.MENTOR, AssignmentStatus.ACTIVE, "s")
        assert _granted(mentor) == _granted(Actor("a", ActorRole.ADMIN))

    def test_active_instructor_can_only_comment(self):
        instructor = Actor("i", ActorRole.INSTRUCTOR, AssignmentStatus.ACTIVE, "s")
        assert _granted(instructor) == {"can_add_comments", "can_edit_comments"}

    @pytest.mark.parametrize("role", [ActorRole.MENTOR, ActorRole.INSTRUCTOR])
    def test_ended_assignment_grants_nothing(self, role):
        assert _granted(Actor("t", role, AssignmentStatus.ENDED, "s")) == set()

    def test_missing_assignment_status_grants_nothing(self):
        assert _granted(Actor("t", ActorRole.MENTOR, None, "s")) == set()

    def test_unassigned_teacher_grants_nothing(self):
        assert _granted(Actor("t", ActorRole.UNASSIGNED_TEACHER, student_id="s")) == set()

    def test_student_viewer_can_only_toggle(self):
        assert _granted(Actor("s", ActorRole.STUDENT_VIEWER, student_id="s")) == {"can_toggle_own_tasks"}

    def test_capability_set_records_role(self):
        assert capabilities(Actor("a", ActorRole.ADMIN)).role is ActorRole.ADMIN


class TestRequire:
    def test_passes_when_granted(self):
        require(capabilities(Actor("a", ActorRole.ADMIN)), "can_publish")

    def test_names_missing_capability(self):
        caps = capabilities(Actor("s", ActorRole.STUDENT_VIEWER, student_id="s"))
        with pytest.raises(PermissionDeniedError, match="can_add_tasks"):
            require(caps, "can_add_tasks")


class TestRequireStudentScope:
    def test_admin_is_unscoped(self):
        require_student_scope(Actor("a", ActorRole.ADMIN), "anyone")

    def test_rejects_other_student(self):
        mentor = Actor("m", ActorRole.MENTOR, AssignmentStatus.ACTIVE, "student-1")
        with pytest.raises(PermissionDeniedError):
            require_student_scope(mentor, "student-2")

    def test_viewer_defaults_to_own_id(self):
        viewer = Actor("student-1", ActorRole.STUDENT_VIEWER)
        require_student_scope(viewer, "student-1")
        with pytest.raises(PermissionDeniedError):
            require_student_scope(viewer, "student-2")

    @pytest.mark.parametrize("role", [ActorRole.MENTOR, ActorRole.INSTRUCTOR, ActorRole.UNASSIGNED_TEACHER])
    def test_teacher_without_student_is_rejected(self, role):
        teacher = Actor("t", role, AssignmentStatus.ACTIVE)
        with pytest.raises(PermissionDeniedError, match="not scoped to any student"):
            require_student_scope(teacher, "student-1")
