"""
Project API tests: ownership, team membership and the users' project lists.
"""

import uuid

import pytest
from sqlmodel import select

from taskhive.exceptions import AlreadyTeamMemberError
from taskhive.models import Project, Task, TeamMember, TeamRole, UserProject
from taskhive.schemas import ProjectCreate, TeamMemberAdd
from taskhive.services import projects as project_service
from taskhive.services import users as user_service
from taskhive.services.policy import Caller
from tests.conftest import ADMIN, EDITOR, MEMBER, OUTSIDER, OWNER

pytestmark = pytest.mark.asyncio


async def user_projects(client, auth, uid):
    response = await client.get("/auth/me", headers=auth(uid))
    assert response.status_code == 200
    return response.json()["data"]["projects"]


class TestCreateProject:
    async def test_owner_is_caller_and_linked(self, client, auth):
        response = await client.post(
            "/projects",
            json={"name": "Gemini", "description": "Orbit", "owner_id": OUTSIDER},
            headers=auth(OWNER),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        project = body["data"]
        assert project["owner_id"] == OWNER
        assert project["status"] == "planning"
        assert project["priority"] == "medium"
        assert project["team"] == []
        assert project["tasks"] == []
        assert project["task_count"] == 0
        assert project["id"] in await user_projects(client, auth, OWNER)
        assert project["id"] not in await user_projects(client, auth, OUTSIDER)

    async def test_validation_error_envelope(self, client, auth):
        response = await client.post(
            "/projects",
            json={"name": "X", "description": "", "status": "bogus"},
            headers=auth(OWNER),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "validation_error"
        fields = {tuple(d["loc"]) for d in body["error"]["details"]}
        assert ("body", "name") in fields
        assert ("body", "status") in fields

    async def test_requires_authentication(self, client):
        response = await client.post("/projects", json={"name": "Gemini", "description": "Orbit"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthenticated"

    async def test_unregistered_identity_is_unauthenticated(self, client, auth):
        response = await client.get("/projects", headers=auth("ghost-uid"))
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "User not registered"


class TestGetProject:
    async def test_owner_and_members_can_read(self, client, auth, project):
        for uid in (OWNER, MEMBER, EDITOR, ADMIN):
            response = await client.get(f"/projects/{project['id']}", headers=auth(uid))
            assert response.status_code == 200, uid
            assert response.json()["data"]["id"] == project["id"]

    async def test_outsider_forbidden(self, client, auth, project):
        response = await client.get(f"/projects/{project['id']}", headers=auth(OUTSIDER))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "forbidden"

    async def test_missing_project(self, client, auth):
        response = await client.get(f"/projects/{uuid.uuid4()}", headers=auth(OWNER))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    async def test_malformed_id(self, client, auth):
        response = await client.get("/projects/not-a-uuid", headers=auth(OWNER))
        assert response.status_code == 400

    async def test_team_roles_are_stored(self, client, auth, project):
        team = {m["user_id"]: m["role"] for m in project["team"]}
        assert team == {MEMBER: "viewer", EDITOR: "editor"}
        assert all(m["joined_at"] for m in project["team"])


class TestUpdateProject:
    async def test_owner_updates_and_owner_field_is_stripped(self, client, auth, project):
        response = await client.put(
            f"/projects/{project['id']}",
            json={"name": "Apollo 11", "status": "active", "owner_id": OUTSIDER, "owner": OUTSIDER},
            headers=auth(OWNER),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Apollo 11"
        assert data["status"] == "active"
        assert data["owner_id"] == OWNER

    async def test_admin_can_update(self, client, auth, project):
        response = await client.put(
            f"/projects/{project['id']}", json={"priority": "urgent"}, headers=auth(ADMIN)
        )
        assert response.status_code == 200
        assert response.json()["data"]["priority"] == "urgent"

    @pytest.mark.parametrize("uid", [MEMBER, EDITOR, OUTSIDER])
    async def test_non_owner_forbidden(self, client, auth, project, uid):
        response = await client.put(
            f"/projects/{project['id']}", json={"name": "Hijacked"}, headers=auth(uid)
        )
        assert response.status_code == 403


class TestListProjects:
    async def test_lists_owned_and_member_projects_only(self, client, auth, project):
        await client.post(
            "/projects", json={"name": "Private", "description": "Mine"}, headers=auth(OUTSIDER)
        )

        member_view = (await client.get("/projects", headers=auth(MEMBER))).json()
        assert [p["id"] for p in member_view["data"]] == [project["id"]]
        assert member_view["total"] == 1
        assert member_view["pagination"] == {"page": 1, "limit": 10, "pages": 1}

    async def test_admin_gets_no_blanket_listing(self, client, auth, project):
        response = await client.get("/projects", headers=auth(ADMIN))
        assert response.status_code == 200
        assert response.json()["data"] == []
        assert response.json()["total"] == 0

    async def test_archived_hidden_unless_requested(self, client, auth, project):
        await client.put(f"/projects/{project['id']}", json={"is_archived": True}, headers=auth(OWNER))

        hidden = (await client.get("/projects", headers=auth(OWNER))).json()
        shown = (await client.get("/projects?include_archived=true", headers=auth(OWNER))).json()

        assert hidden["total"] == 0
        assert [p["id"] for p in shown["data"]] == [project["id"]]

    async def test_filters_and_pagination(self, client, auth):
        for i, priority in enumerate(["low", "high", "high", "high"]):
            await client.post(
                "/projects",
                json={"name": f"Project {i}", "description": "d", "priority": priority},
                headers=auth(OWNER),
            )

        response = await client.get("/projects?priority=high&limit=2&page=2", headers=auth(OWNER))
        body = response.json()

        assert response.status_code == 200
        assert body["total"] == 3
        assert body["count"] == 1
        assert body["pagination"] == {"page": 2, "limit": 2, "pages": 2}
        assert all(p["priority"] == "high" for p in body["data"])

    async def test_default_sort_newest_first_and_custom_sort(self, client, auth):
        for name in ("Alpha", "Bravo", "Charlie"):
            await client.post("/projects", json={"name": name, "description": "d"}, headers=auth(OWNER))

        newest_first = (await client.get("/projects", headers=auth(OWNER))).json()["data"]
        by_name = (await client.get("/projects?sort=name", headers=auth(OWNER))).json()["data"]

        assert [p["name"] for p in newest_first] == ["Charlie", "Bravo", "Alpha"]
        assert [p["name"] for p in by_name] == ["Alpha", "Bravo", "Charlie"]

    async def test_unknown_sort_field_rejected(self, client, auth):
        response = await client.get("/projects?sort=-nonsense", headers=auth(OWNER))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    @pytest.mark.parametrize("query", ["page=0", "limit=101", "sort=bad;field"])
    async def test_bad_pagination_rejected(self, client, auth, query):
        response = await client.get(f"/projects?{query}", headers=auth(OWNER))
        assert response.status_code == 400


class TestTeamMembership:
    async def test_duplicate_member_conflict(self, client, auth, project):
        response = await client.post(
            f"/projects/{project['id']}/team",
            json={"user_id": MEMBER, "role": "editor"},
            headers=auth(OWNER),
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "already_team_member"

        current = (await client.get(f"/projects/{project['id']}", headers=auth(OWNER))).json()["data"]
        assert len(current["team"]) == len(project["team"])

    async def test_default_role_is_viewer(self, client, auth, project):
        response = await client.post(
            f"/projects/{project['id']}/team", json={"user_id": OUTSIDER}, headers=auth(OWNER)
        )
        team = {m["user_id"]: m["role"] for m in response.json()["data"]["team"]}
        assert team[OUTSIDER] == "viewer"

    async def test_unknown_user_not_found(self, client, auth, project):
        response = await client.post(
            f"/projects/{project['id']}/team", json={"user_id": "nobody"}, headers=auth(OWNER)
        )
        assert response.status_code == 404

    @pytest.mark.parametrize("uid", [MEMBER, EDITOR, OUTSIDER])
    async def test_only_owner_manages_team(self, client, auth, project, uid):
        add = await client.post(
            f"/projects/{project['id']}/team", json={"user_id": OUTSIDER}, headers=auth(uid)
        )
        remove = await client.delete(f"/projects/{project['id']}/team/{MEMBER}", headers=auth(uid))
        assert add.status_code == 403
        assert remove.status_code == 403

    async def test_admin_manages_team(self, client, auth, project):
        response = await client.post(
            f"/projects/{project['id']}/team", json={"user_id": OUTSIDER}, headers=auth(ADMIN)
        )
        assert response.status_code == 200

    async def test_add_then_remove_restores_state(self, client, auth, project):
        before_team = (await client.get(f"/projects/{project['id']}", headers=auth(OWNER))).json()["data"]["team"]
        before_projects = await user_projects(client, auth, OUTSIDER)

        added = await client.post(
            f"/projects/{project['id']}/team", json={"user_id": OUTSIDER}, headers=auth(OWNER)
        )
        assert added.status_code == 200
        assert project["id"] in await user_projects(client, auth, OUTSIDER)

        removed = await client.delete(f"/projects/{project['id']}/team/{OUTSIDER}", headers=auth(OWNER))
        assert removed.status_code == 200

        assert removed.json()["data"]["team"] == before_team
        assert await user_projects(client, auth, OUTSIDER) == before_projects

    async def test_remove_is_idempotent(self, client, auth, project):
        first = await client.delete(f"/projects/{project['id']}/team/{OUTSIDER}", headers=auth(OWNER))
        second = await client.delete(f"/projects/{project['id']}/team/{OUTSIDER}", headers=auth(OWNER))
        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["data"]["team"] == second.json()["data"]["team"]

    async def test_removing_owner_membership_keeps_owner_link(self, client, auth, project):
        await client.post(f"/projects/{project['id']}/team", json={"user_id": OWNER}, headers=auth(OWNER))
        await client.delete(f"/projects/{project['id']}/team/{OWNER}", headers=auth(OWNER))
        assert project["id"] in await user_projects(client, auth, OWNER)

    async def test_removed_member_loses_access(self, client, auth, project):
        await client.delete(f"/projects/{project['id']}/team/{MEMBER}", headers=auth(OWNER))
        response = await client.get(f"/projects/{project['id']}", headers=auth(MEMBER))
        assert response.status_code == 403

    async def test_remove_from_missing_project(self, client, auth):
        response = await client.delete(f"/projects/{uuid.uuid4()}/team/{MEMBER}", headers=auth(OWNER))
        assert response.status_code == 404

    async def test_concurrent_duplicate_add_is_conflict(self, seeded_users, session_maker, monkeypatch):
        owner = Caller(OWNER)
        async with session_maker() as session:
            created = await project_service.create_project(
                session, owner, ProjectCreate(name="Race", description="Two admins, one click")
            )
            await session.commit()
        project_id = created.id

        real_lookup = user_service.get_user_or_404

        async def lookup_while_another_request_adds(session, user_id):
            # The other request commits after this one has checked the team
            user = await real_lookup(session, user_id)
            async with session_maker() as other:
                other.add(TeamMember(project_id=project_id, user_id=user_id, role=TeamRole.EDITOR))
                await other.commit()
            return user

        monkeypatch.setattr(user_service, "get_user_or_404", lookup_while_another_request_adds)

        async with session_maker() as session:
            with pytest.raises(AlreadyTeamMemberError):
                await project_service.add_team_member(
                    session, owner, project_id, TeamMemberAdd(user_id=MEMBER, role=TeamRole.VIEWER)
                )
            await session.rollback()

        async with session_maker() as session:
            rows = (await session.execute(
                select(TeamMember).where(TeamMember.project_id == project_id)
            )).scalars().all()
        assert [(row.user_id, row.role) for row in rows] == [(MEMBER, TeamRole.EDITOR)]


class TestDeleteProject:
    async def test_cascades_tasks_and_links(self, client, auth, project, test_session):
        task_ids = []
        for title in ("First task", "Second task"):
            response = await client.post(
                "/tasks", json={"title": title, "project_id": project["id"]}, headers=auth(MEMBER)
            )
            task_ids.append(response.json()["data"]["id"])

        response = await client.delete(f"/projects/{project['id']}", headers=auth(OWNER))
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {}}

        for task_id in task_ids:
            gone = await client.get(f"/tasks/{task_id}", headers=auth(OWNER))
            assert gone.status_code == 404

        for uid in (OWNER, MEMBER, EDITOR):
            assert project["id"] not in await user_projects(client, auth, uid)

        project_uuid = uuid.UUID(project["id"])
        assert await test_session.get(Project, project_uuid) is None
        remaining = await test_session.execute(select(Task).where(Task.project_id == project_uuid))
        assert remaining.scalars().all() == []
        links = await test_session.execute(select(UserProject).where(UserProject.project_id == project_uuid))
        assert links.scalars().all() == []

    async def test_leaves_other_projects_alone(self, client, auth, project):
        other = await client.post("/projects", json={"name": "Other", "description": "d"}, headers=auth(OWNER))
        other_id = other.json()["data"]["id"]
        task = await client.post("/tasks", json={"title": "Keep me", "project_id": other_id}, headers=auth(OWNER))

        await client.delete(f"/projects/{project['id']}", headers=auth(OWNER))

        assert (await client.get(f"/tasks/{task.json()['data']['id']}", headers=auth(OWNER))).status_code == 200
        assert other_id in await user_projects(client, auth, OWNER)

    @pytest.mark.parametrize("uid", [MEMBER, EDITOR, OUTSIDER])
    async def test_non_owner_forbidden(self, client, auth, project, uid):
        response = await client.delete(f"/projects/{project['id']}", headers=auth(uid))
        assert response.status_code == 403

    async def test_admin_can_delete(self, client, auth, project):
        response = await client.delete(f"/projects/{project['id']}", headers=auth(ADMIN))
        assert response.status_code == 200

    async def test_missing_project(self, client, auth):
        response = await client.delete(f"/projects/{uuid.uuid4()}", headers=auth(OWNER))
        assert response.status_code == 404


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
