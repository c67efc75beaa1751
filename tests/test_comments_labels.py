# tests/test_comments_labels.py: Comments and labels on tasks
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
class TestComments:
    async def test_create_and_list_in_order(self, client: AsyncClient, auth_headers, board, create_task,
                                            test_user):
        task = await create_task(auth_headers, board["project"]["id"], board["statuses"]["To Do"]["id"])
        url = f"/tasks/{task['id']}/comments"

        res = await client.post(url, json={"content": "First"}, headers=auth_headers)
        assert res.status_code == 201
        first = res.json()
        assert first["user_id"] == test_user.id
        assert first["is_edited"] is False
        assert first["user"]["email"] == test_user.email

        await client.post(url, json={"content": "Reply", "parent_comment_id": first["id"]}, headers=auth_headers)

        res = await client.get(url, headers=auth_headers)
        assert [c["content"] for c in res.json()] == ["First", "Reply"]
        assert res.json()[1]["parent_comment_id"] == first["id"]

    async def test_edit_marks_edited(self, client: AsyncClient, auth_headers, board, create_task):
        task = await create_task(auth_headers, board["project"]["id"], board["statuses"]["To Do"]["id"])
        res = await client.post(f"/tasks/{task['id']}/comments", json={"content": "Draft"}, headers=auth_headers)
        comment_id = res.json()["id"]

        res = await client.patch(f"/comments/{comment_id}", json={"content": "Final"}, headers=auth_headers)
        assert res.status_code == 200
        assert res.json()["content"] == "Final"
        assert res.json()["is_edited"] is True

    async def test_deleted_comment_hidden(self, client: AsyncClient, auth_headers, board, create_task):
        task = await create_task(auth_headers, board["project"]["id"], board["statuses"]["To Do"]["id"])
        res = await client.post(f"/tasks/{task['id']}/comments", json={"content": "Oops"}, headers=auth_headers)
        comment_id = res.json()["id"]

        res = await client.delete(f"/comments/{comment_id}", headers=auth_headers)
        assert res.status_code == 200
        res = await client.get(f"/tasks/{task['id']}/comments", headers=auth_headers)
        assert res.json() == []
        res = await client.patch(f"/comments/{comment_id}", json={"content": "Again"}, headers=auth_headers)
        assert res.status_code == 404

    async def test_comment_on_missing_task(self, client: AsyncClient, auth_headers):
        res = await client.post("/tasks/missing/comments", json={"content": "Hello"}, headers=auth_headers)
        assert res.status_code == 404

    async def test_empty_comment_rejected(self, client: AsyncClient, auth_headers, board, create_task):
        task = await create_task(auth_headers, board["project"]["id"], board["statuses"]["To Do"]["id"])
        res = await client.post(f"/tasks/{task['id']}/comments", json={"content": "  "}, headers=auth_headers)
        assert res.status_code == 400

    async def test_reply_must_stay_on_same_task(self, client: AsyncClient, auth_headers, board, create_task):
        project_id = board["project"]["id"]
        todo = board["statuses"]["To Do"]["id"]
        one = await create_task(auth_headers, project_id, todo, title="One")
        two = await create_task(auth_headers, project_id, todo, title="Two")
        res = await client.post(f"/tasks/{one['id']}/comments", json={"content": "Root"}, headers=auth_headers)
        root_id = res.json()["id"]

        res = await client.post(f"/tasks/{two['id']}/comments", json={
            "content": "Stray reply", "parent_comment_id": root_id,
        }, headers=auth_headers)
        assert res.status_code == 400
        assert res.json()["error"] == "Parent comment belongs to another task"

        res = await client.post(f"/tasks/{two['id']}/comments", json={
            "content": "Orphan", "parent_comment_id": "missing",
        }, headers=auth_headers)
        assert res.status_code == 404


@pytest.mark.asyncio
class TestLabels:
    async def _label(self, client, headers, org_id, name, **fields):
        res = await client.post(f"/organizations/{org_id}/labels", json={
            "name": name, "color": "#ff0000", **fields,
        }, headers=headers)
        assert res.status_code == 201, res.text
        return res.json()

    async def test_org_and_project_scoped_labels(self, client: AsyncClient, auth_headers, board,
                                                 create_project):
        org_id = board["org"]["id"]
        project_id = board["project"]["id"]
        other = await create_project(auth_headers, org_id)

        await self._label(client, auth_headers, org_id, "bug")
        await self._label(client, auth_headers, org_id, "frontend", project_id=project_id)
        await self._label(client, auth_headers, org_id, "infra", project_id=other["id"])

        res = await client.get(f"/organizations/{org_id}/labels", headers=auth_headers)
        assert [label["name"] for label in res.json()] == ["bug", "frontend", "infra"]

        res = await client.get(f"/organizations/{org_id}/labels", params={"project_id": project_id},
                               headers=auth_headers)
        assert [label["name"] for label in res.json()] == ["bug", "frontend"]

    async def test_attach_detach_and_filter(self, client: AsyncClient, auth_headers, board, create_task):
        org_id = board["org"]["id"]
        project_id = board["project"]["id"]
        todo = board["statuses"]["To Do"]["id"]
        bug = await self._label(client, auth_headers, org_id, "bug")
        tagged = await create_task(auth_headers, project_id, todo, title="Tagged")
        await create_task(auth_headers, project_id, todo, title="Untagged")

        res = await client.post(f"/tasks/{tagged['id']}/labels/{bug['id']}", headers=auth_headers)
        assert res.status_code == 200
        assert [label["id"] for label in res.json()["labels"]] == [bug["id"]]

        res = await client.post(f"/tasks/{tagged['id']}/labels/{bug['id']}", headers=auth_headers)
        assert res.status_code == 409

        res = await client.get(f"/projects/{project_id}/tasks", params={"label_id": bug["id"]},
                               headers=auth_headers)
        assert [t["title"] for t in res.json()] == ["Tagged"]
        assert res.json()[0]["labels"][0]["name"] == "bug"

        res = await client.delete(f"/tasks/{tagged['id']}/labels/{bug['id']}", headers=auth_headers)
        assert res.status_code == 200
        assert res.json()["labels"] == []

        res = await client.delete(f"/tasks/{tagged['id']}/labels/{bug['id']}", headers=auth_headers)
        assert res.status_code == 404

    async def test_deleted_label_disappears_from_tasks(self, client: AsyncClient, auth_headers, board,
                                                       create_task):
        org_id = board["org"]["id"]
        label = await self._label(client, auth_headers, org_id, "stale")
        task = await create_task(auth_headers, board["project"]["id"], board["statuses"]["To Do"]["id"])
        await client.post(f"/tasks/{task['id']}/labels/{label['id']}", headers=auth_headers)

        res = await client.delete(f"/labels/{label['id']}", headers=auth_headers)
        assert res.status_code == 200

        res = await client.get(f"/tasks/{task['id']}", headers=auth_headers)
        assert res.json()["labels"] == []
        res = await client.get(f"/organizations/{org_id}/labels", headers=auth_headers)
        assert res.json() == []

    async def test_project_from_other_org_rejected(self, client: AsyncClient, auth_headers, board, create_org):
        other_org = await create_org(auth_headers)
        res = await client.post(f"/organizations/{other_org['id']}/labels", json={
            "name": "bug", "color": "#ff0000", "project_id": board["project"]["id"],
        }, headers=auth_headers)
        assert res.status_code == 400
