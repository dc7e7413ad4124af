"""
Integration tests for the event and admin endpoints.

Requests go through the full FastAPI stack against the in-memory database;
only authentication is replaced by choosing ``client.acting_user``.
"""

import pytest
from datetime import timedelta
from httpx import AsyncClient
from sqlalchemy import select

from eventsphere.models.archive_link import ArchiveLink
from eventsphere.models.event import Event
from eventsphere.models.task import Task
from eventsphere.models.user import User
from eventsphere.tasks.scheduler import TaskName

from tests.conftest import make_event, make_user, utc_in


def iso(value) -> str:
    return value.isoformat().replace("+00:00", "Z")


@pytest.mark.integration
@pytest.mark.asyncio
class TestEventEndpoints:
    """Test event lifecycle endpoints."""

    async def test_requires_authentication(self, client: AsyncClient, upcoming_event: Event):
        response = await client.get(f"/api/events/{upcoming_event.id}")

        assert response.status_code == 401

    async def test_volunteer_cannot_create(self, client: AsyncClient, volunteer_user: User):
        client.acting_user = volunteer_user

        response = await client.post("/api/events", json={
            "title": "Unauthorized",
            "description": "Should not exist",
            "start_date": iso(utc_in(days=2)),
            "end_date": iso(utc_in(days=3)),
        })

        assert response.status_code == 403

    async def test_create_and_fetch(self, client: AsyncClient, admin_user: User):
        client.acting_user = admin_user

        response = await client.post("/api/events", json={
            "title": "Launch Party",
            "description": "Product launch",
            "location": "Hall B",
            "start_date": iso(utc_in(days=2)),
            "end_date": iso(utc_in(days=2, hours=5)),
        })

        assert response.status_code == 201
        created = response.json()
        assert created["status"] == "active"

        response = await client.get(f"/api/events/{created['id']}")
        assert response.status_code == 200
        assert response.json()["title"] == "Launch Party"

    async def test_create_rejects_past_start(self, client: AsyncClient, admin_user: User):
        client.acting_user = admin_user

        response = await client.post("/api/events", json={
            "title": "Yesterday",
            "description": "Too late",
            "start_date": iso(utc_in(days=-1)),
            "end_date": iso(utc_in(hours=1)),
        })

        assert response.status_code == 400
        assert response.json()["detail"] == "Start date cannot be in the past"

    async def test_read_derives_stale_status(self, client: AsyncClient, volunteer_user: User, db_session):
        ended = await make_event(db_session, title="Wrapped Up", status="active",
                                 start_date=utc_in(days=-3), end_date=utc_in(days=-2))
        client.acting_user = volunteer_user

        response = await client.get(f"/api/events/{ended.id}")

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["is_upcoming"] is False

        listed = await client.get("/api/events", params={"status": "active"})
        assert [item["status"] for item in listed.json()["items"]] == ["completed"]

        await db_session.refresh(ended)
        assert ended.status == "active"

    async def test_list_my_events(self, client: AsyncClient, volunteer_user: User, upcoming_event: Event,
                                  db_session):
        await make_event(db_session, title="Not Mine")
        client.acting_user = volunteer_user

        response = await client.get("/api/events", params={"my_events": "true", "page_size": 5})

        assert response.status_code == 200
        body = response.json()
        assert [item["id"] for item in body["items"]] == [upcoming_event.id]
        assert body["total"] == 1
        assert body["page_size"] == 5
        assert body["total_pages"] == 1

    async def test_create_rejects_oversized_event(self, client: AsyncClient, admin_user: User):
        client.acting_user = admin_user

        response = await client.post("/api/events", json={
            "title": "Stadium",
            "description": "Too many people",
            "start_date": iso(utc_in(days=2)),
            "end_date": iso(utc_in(days=3)),
            "max_participants": 100000,
        })

        assert response.status_code == 422

    async def test_status_transition(self, client: AsyncClient, admin_user: User, upcoming_event: Event):
        client.acting_user = admin_user

        response = await client.patch(f"/api/events/{upcoming_event.id}/status", json={"status": "cancelled"})
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        response = await client.patch(f"/api/events/{upcoming_event.id}/status", json={"status": "completed"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot change status from cancelled to completed"

    async def test_change_dates(self, client: AsyncClient, admin_user: User, upcoming_event: Event):
        client.acting_user = admin_user
        new_start = utc_in(days=40)

        response = await client.patch(f"/api/events/{upcoming_event.id}/dates", json={
            "start_date": iso(new_start),
            "end_date": iso(new_start + timedelta(days=1)),
        })

        assert response.status_code == 200
        assert response.json()["status"] == "draft"

    async def test_delete_event_cascade(self, client: AsyncClient, admin_user: User, upcoming_event: Event,
                                        db_session, session_factory):
        db_session.add(Task(event_id=upcoming_event.id, title="Book venue"))
        await db_session.commit()
        client.acting_user = admin_user

        response = await client.delete(f"/api/events/{upcoming_event.id}")

        assert response.status_code == 200
        body = response.json()
        assert body["atomicity"] == "atomic"
        assert body["tasks_deleted"] == 1
        assert body["users_updated"] == 1

        async with session_factory() as session:
            remaining = (await session.execute(select(Event).where(Event.id == upcoming_event.id))).first()
        assert remaining is None


@pytest.mark.integration
@pytest.mark.asyncio
class TestMembershipEndpoints:
    """Test adding and removing event members."""

    async def test_add_and_remove_member(self, client: AsyncClient, admin_user: User, upcoming_event: Event,
                                         db_session):
        guest = await make_user(db_session, "guest@test.com", name="Guest")
        client.acting_user = admin_user

        response = await client.post(f"/api/events/{upcoming_event.id}/users",
                                     json={"user_id": guest.id, "role": "team_member"})
        assert response.status_code == 200
        assert response.json()["created"] is True

        response = await client.delete(f"/api/events/{upcoming_event.id}/users/{guest.id}")
        assert response.status_code == 200
        assert response.json()["removed"] is True

    async def test_invalid_role_rejected(self, client: AsyncClient, admin_user: User, upcoming_event: Event):
        client.acting_user = admin_user

        response = await client.post(f"/api/events/{upcoming_event.id}/users",
                                     json={"user_id": admin_user.id, "role": "overlord"})

        assert response.status_code == 422


@pytest.mark.integration
@pytest.mark.asyncio
class TestManagementEndpoints:
    """Test listings reserved for management roles."""

    @pytest.mark.parametrize("path", [
        "/api/events/admin/dashboard",
        "/api/admin/events",
        "/api/admin/tasks",
        "/api/admin/archives",
    ])
    async def test_volunteer_rejected(self, client: AsyncClient, volunteer_user: User, path: str):
        client.acting_user = volunteer_user

        response = await client.get(path)

        assert response.status_code == 403

    async def test_dashboard(self, client: AsyncClient, admin_user: User, upcoming_event: Event):
        client.acting_user = admin_user

        response = await client.get("/api/events/admin/dashboard")

        assert response.status_code == 200
        statistics = response.json()["statistics"]
        assert statistics["total"] == 1
        assert statistics["status_counts"] == {"draft": 1}
        assert statistics["upcoming_events"] == 1

    async def test_task_and_archive_listings(self, client: AsyncClient, admin_user: User,
                                             upcoming_event: Event, db_session):
        db_session.add_all([
            Task(event_id=upcoming_event.id, title="Book venue", assigned_to=admin_user.id),
            Task(event_id=upcoming_event.id, title="Print badges"),
            ArchiveLink(event_id=upcoming_event.id, title="Photos", drive_url="https://drive.example/photos"),
        ])
        await db_session.commit()
        client.acting_user = admin_user

        tasks = (await client.get("/api/admin/tasks")).json()
        archives = (await client.get("/api/admin/archives")).json()
        events = (await client.get("/api/admin/events")).json()

        assignees = {task["title"]: task["assignee_email"] for task in tasks}
        assert assignees == {"Book venue": "admin@test.com", "Print badges": None}
        assert {task["event_title"] for task in tasks} == {"Upcoming Summit"}
        assert [link["title"] for link in archives] == ["Photos"]
        assert [event["id"] for event in events] == [upcoming_event.id]


@pytest.mark.integration
@pytest.mark.asyncio
class TestAdminEndpoints:
    """Test admin endpoints."""

    async def test_delete_user(self, client: AsyncClient, admin_user: User, volunteer_user: User):
        client.acting_user = admin_user

        response = await client.delete(f"/api/admin/users/{volunteer_user.id}")

        assert response.status_code == 200
        assert response.json()["events_updated"] == 1

    async def test_volunteer_cannot_view_scheduler(self, client: AsyncClient, volunteer_user: User):
        client.acting_user = volunteer_user

        response = await client.get("/api/admin/scheduler/status")

        assert response.status_code == 403

    async def test_scheduler_status_and_run(self, client: AsyncClient, admin_user: User, session_factory):
        from eventsphere.tasks.scheduler import register_default_tasks

        register_default_tasks(client.scheduler, session_factory)
        client.acting_user = admin_user

        response = await client.get("/api/admin/scheduler/status")
        assert response.status_code == 200
        assert set(response.json()["tasks"]) == {t.value for t in TaskName}

        response = await client.post("/api/admin/scheduler/tasks/update_event_statuses/run")
        assert response.status_code == 200
        assert response.json()["result"] == []

        response = await client.post("/api/admin/scheduler/tasks/cleanup_logs/run")
        assert response.status_code == 404


@pytest.mark.integration
@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
