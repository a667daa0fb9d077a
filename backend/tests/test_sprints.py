# tests/test_sprints.py — Sprint router tests
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from models import SprintStatus
from tests.conftest import OTHER_ORG_ID, get_auth_headers


def _window(start_offset_days=-1, length_days=14):
    start = datetime.now(timezone.utc) + timedelta(days=start_offset_days)
    return {
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=length_days)).isoformat(),
    }


@pytest.mark.asyncio
class TestCreateSprint:
    async def test_default_name_uses_project_key(self, client: AsyncClient, test_user, test_project):
        headers = get_auth_headers(test_user)
        resp = await client.post(f"/api/v1/projects/{test_project.id}/sprints", json=_window(), headers=headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "MTR-1"
        assert data["status"] == "PLANNED"
        assert data["can_start"] is True
        assert data["can_complete"] is False

        resp = await client.post(f"/api/v1/projects/{test_project.id}/sprints", json=_window(), headers=headers)
        assert resp.json()["name"] == "MTR-2"

    async def test_explicit_name(self, client: AsyncClient, test_user, test_project):
        headers = get_auth_headers(test_user)
        body = {"name": "Winding push", **_window(3)}
        resp = await client.post(f"/api/v1/projects/{test_project.id}/sprints", json=body, headers=headers)
        assert resp.json()["name"] == "Winding push"
        assert resp.json()["can_start"] is False

    async def test_end_before_start_rejected(self, client: AsyncClient, test_user, test_project):
        headers = get_auth_headers(test_user)
        resp = await client.post(
            f"/api/v1/projects/{test_project.id}/sprints", json=_window(0, -2), headers=headers
        )
        assert resp.status_code == 422

    async def test_project_of_other_org(self, client: AsyncClient, outsider_user, test_project):
        headers = get_auth_headers(outsider_user, org_id=OTHER_ORG_ID)
        resp = await client.post(f"/api/v1/projects/{test_project.id}/sprints", json=_window(), headers=headers)
        assert resp.status_code == 404


@pytest.mark.asyncio
class TestListSprints:
    async def test_list_in_creation_order(
        self, client: AsyncClient, test_user, test_project, active_sprint, planned_sprint
    ):
        headers = get_auth_headers(test_user)
        resp = await client.get(f"/api/v1/projects/{test_project.id}/sprints", headers=headers)
        assert resp.status_code == 200
        assert [s["name"] for s in resp.json()] == ["MTR-1", "MTR-2"]

    async def test_current_prefers_active(
        self, client: AsyncClient, test_user, test_project, completed_sprint, active_sprint
    ):
        headers = get_auth_headers(test_user)
        resp = await client.get(f"/api/v1/projects/{test_project.id}/sprints/current", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["id"] == active_sprint.id

    async def test_current_falls_back_to_first(
        self, client: AsyncClient, test_user, test_project, completed_sprint, planned_sprint
    ):
        headers = get_auth_headers(test_user)
        resp = await client.get(f"/api/v1/projects/{test_project.id}/sprints/current", headers=headers)
        assert resp.json()["id"] == completed_sprint.id

    async def test_current_without_sprints(self, client: AsyncClient, test_user, test_project):
        headers = get_auth_headers(test_user)
        resp = await client.get(f"/api/v1/projects/{test_project.id}/sprints/current", headers=headers)
        assert resp.status_code == 404


@pytest.mark.asyncio
class TestSprintStatus:
    async def test_start_planned_sprint(self, client: AsyncClient, test_user, planned_sprint):
        headers = get_auth_headers(test_user)
        resp = await client.patch(
            f"/api/v1/sprints/{planned_sprint.id}/status", json={"status": "ACTIVE"}, headers=headers
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "ACTIVE"
        assert resp.json()["can_complete"] is True

    async def test_complete_active_sprint(self, client: AsyncClient, db_session, test_user, active_sprint):
        headers = get_auth_headers(test_user)
        resp = await client.patch(
            f"/api/v1/sprints/{active_sprint.id}/status", json={"status": "COMPLETED"}, headers=headers
        )
        assert resp.status_code == 200
        await db_session.refresh(active_sprint)
        assert active_sprint.status == SprintStatus.COMPLETED

    async def test_reopen_completed_sprint_rejected(self, client: AsyncClient, test_user, completed_sprint):
        headers = get_auth_headers(test_user)
        resp = await client.patch(
            f"/api/v1/sprints/{completed_sprint.id}/status", json={"status": "ACTIVE"}, headers=headers
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "invalid_sprint_transition"

    async def test_unknown_status_value(self, client: AsyncClient, test_user, planned_sprint):
        headers = get_auth_headers(test_user)
        resp = await client.patch(
            f"/api/v1/sprints/{planned_sprint.id}/status", json={"status": "PAUSED"}, headers=headers
        )
        assert resp.status_code == 422

    async def test_sprint_of_other_org(self, client: AsyncClient, outsider_user, planned_sprint):
        headers = get_auth_headers(outsider_user, org_id=OTHER_ORG_ID)
        resp = await client.patch(
            f"/api/v1/sprints/{planned_sprint.id}/status", json={"status": "ACTIVE"}, headers=headers
        )
        assert resp.status_code == 404
