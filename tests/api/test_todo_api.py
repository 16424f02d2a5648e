"""Tests for the task, comment and publish endpoints."""

import pytest
from fastapi import status


@pytest.fixture
def mentor_headers(ids, as_principal):
    return as_principal(ids.mentor_id, "teacher")


@pytest.fixture
def plan_id(client, ids, mentor_headers):
    response = client.post(f"/plans/{ids.student_id}/2025-01-06", json={}, headers=mentor_headers)
    return response.json()["id"]


def _add_task(client, plan_id, headers, content, target_date="2025-01-06"):
    response = client.post(
        f"/todo/plans/{plan_id}/tasks",
        json={"target_date": target_date, "content": content},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


class TestTasks:
    def test_add_and_view(self, client, ids, plan_id, mentor_headers):
        _add_task(client, plan_id, mentor_headers, "Math")
        _add_task(client, plan_id, mentor_headers, "English")

        week = client.get(f"/plans/{ids.student_id}/2025-01-06", headers=mentor_headers).json()

        assert [(t["content"], t["display_order"]) for t in week["days"][0]["tasks"]] == [("Math", 1), ("English", 2)]
        assert week["days"][0]["order_version"] == 2

    def test_out_of_week_is_validation_error(self, client, plan_id, mentor_headers):
        response = client.post(
            f"/todo/plans/{plan_id}/tasks",
            json={"target_date": "2025-01-13", "content": "Math"},
            headers=mentor_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": {"kind": "validation", "message": "The date is outside this week"}}

    def test_update_and_toggle(self, client, ids, plan_id, mentor_headers, as_principal):
        task = _add_task(client, plan_id, mentor_headers, "Math")

        updated = client.patch(f"/todo/tasks/{task['id']}", json={"content": "Math p.5"}, headers=mentor_headers)
        assert updated.json()["content"] == "Math p.5"

        toggled = client.post(f"/todo/tasks/{task['id']}/toggle", headers=as_principal(ids.student_id, "student"))
        assert toggled.status_code == status.HTTP_200_OK
        assert toggled.json()["is_completed"] is True

    def test_student_cannot_edit(self, client, ids, plan_id, mentor_headers, as_principal):
        task = _add_task(client, plan_id, mentor_headers, "Math")
        response = client.patch(
            f"/todo/tasks/{task['id']}",
            json={"content": "Nothing"},
            headers=as_principal(ids.student_id, "student"),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_reorder(self, client, plan_id, mentor_headers):
        a = _add_task(client, plan_id, mentor_headers, "A")
        b = _add_task(client, plan_id, mentor_headers, "B")

        response = client.put(
            f"/todo/plans/{plan_id}/days/2025-01-06/order",
            json={"task_ids": [b["id"], a["id"]], "version": 2},
            headers=mentor_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert [t["content"] for t in response.json()] == ["B", "A"]

    def test_reorder_errors(self, client, plan_id, mentor_headers):
        a = _add_task(client, plan_id, mentor_headers, "A")
        _add_task(client, plan_id, mentor_headers, "B")
        url = f"/todo/plans/{plan_id}/days/2025-01-06/order"

        incomplete = client.put(url, json={"task_ids": [a["id"]]}, headers=mentor_headers)
        assert incomplete.status_code == status.HTTP_400_BAD_REQUEST
        assert incomplete.json()["error"]["kind"] == "incomplete_reorder_set"

        stale = client.put(url, json={"task_ids": [a["id"]], "version": 1}, headers=mentor_headers)
        assert stale.status_code == status.HTTP_409_CONFLICT

    def test_move_and_delete(self, client, ids, plan_id, mentor_headers):
        a = _add_task(client, plan_id, mentor_headers, "A")
        _add_task(client, plan_id, mentor_headers, "B")

        moved = client.post(
            f"/todo/tasks/{a['id']}/move",
            json={"target_date": "2025-01-07", "position": 1},
            headers=mentor_headers,
        )
        assert moved.json()["target_date"] == "2025-01-07"

        deleted = client.delete(f"/todo/tasks/{a['id']}", headers=mentor_headers)
        assert deleted.status_code == status.HTTP_204_NO_CONTENT

        missing = client.delete(f"/todo/tasks/{a['id']}", headers=mentor_headers)
        assert missing.status_code == status.HTTP_404_NOT_FOUND

        week = client.get(f"/plans/{ids.student_id}/2025-01-06", headers=mentor_headers).json()
        assert [t["display_order"] for t in week["days"][0]["tasks"]] == [1]
        assert week["days"][1]["tasks"] == []


class TestPlanEndpoints:
    def test_notes_and_publish(self, client, plan_id, mentor_headers):
        notes = client.patch(f"/todo/plans/{plan_id}", json={"notes": "Bring textbook"}, headers=mentor_headers)
        assert notes.json()["notes"] == "Bring textbook"

        published = client.post(f"/todo/plans/{plan_id}/publish", headers=mentor_headers)
        assert published.json()["status"] == "published"
        assert published.json()["published_at"] is not None

        again = client.post(f"/todo/plans/{plan_id}/publish", headers=mentor_headers)
        assert again.status_code == status.HTTP_200_OK

    def test_unknown_plan(self, client, ids, as_principal):
        response = client.post("/todo/plans/missing/publish", headers=as_principal(ids.admin_id, "admin"))
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestComments:
    def test_comment_lifecycle(self, client, ids, plan_id, mentor_headers, as_principal):
        instructor = as_principal(ids.instructor_id, "teacher")

        created = client.post(
            f"/todo/plans/{plan_id}/comments",
            json={"target_date": "2025-01-08", "content": "Well done"},
            headers=instructor,
        )
        assert created.status_code == status.HTTP_201_CREATED
        comment_id = created.json()["id"]
        assert created.json()["author_name"] == "Tanaka Sensei"

        forbidden = client.patch(f"/todo/comments/{comment_id}", json={"content": "Hijacked"}, headers=mentor_headers)
        assert forbidden.status_code == status.HTTP_403_FORBIDDEN

        edited = client.patch(f"/todo/comments/{comment_id}", json={"content": "Very well done"}, headers=instructor)
        assert edited.json()["content"] == "Very well done"

        deleted = client.delete(f"/todo/comments/{comment_id}", headers=instructor)
        assert deleted.status_code == status.HTTP_204_NO_CONTENT

    def test_empty_comment(self, client, ids, plan_id, mentor_headers):
        response = client.post(
            f"/todo/plans/{plan_id}/comments",
            json={"target_date": "2025-01-08", "content": "  "},
            headers=mentor_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["message"] == "Please enter some content"


class TestMalformedRequests:
    def test_impossible_date_is_validation_error(self, client, plan_id, mentor_headers):
        response = client.post(
            f"/todo/plans/{plan_id}/tasks",
            json={"target_date": "2025-02-30", "content": "Math"},
            headers=mentor_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": {"kind": "validation", "message": "The input is not valid"}}

    def test_bad_day_in_path_is_validation_error(self, client, plan_id, mentor_headers):
        response = client.put(
            f"/todo/plans/{plan_id}/days/monday/order",
            json={"task_ids": []},
            headers=mentor_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["kind"] == "validation"

    def test_missing_body_is_validation_error(self, client, plan_id, mentor_headers):
        response = client.post(f"/todo/plans/{plan_id}/tasks", headers=mentor_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "detail" not in response.json()
        assert response.json()["error"]["kind"] == "validation"
