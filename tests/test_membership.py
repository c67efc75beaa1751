# tests/test_membership.py: Organization and project memberships
import pytest
from httpx import AsyncClient

from projecthub.errors import ConflictError, NotFoundError, ValidationError
from projecthub.services import membership


@pytest.mark.asyncio
class TestOrganizationMembers:
    async def test_add_member_by_email(self, client: AsyncClient, auth_headers, create_org, test_user, other_user):
        org = await create_org(auth_headers)
        res = await client.post(f"/organizations/{org['id']}/members", json={
            "email": other_user.email,
            "role": "member",
        }, headers=auth_headers)
        assert res.status_code == 201
        member = res.json()
        assert member["user_id"] == other_user.id
        assert member["role"] == "member"
        assert member["invited_by"] == test_user.id
        assert member["user"]["email"] == other_user.email

    async def test_list_members_in_join_order(self, client: AsyncClient, auth_headers, create_org,
                                              test_user, other_user):
        org = await create_org(auth_headers)
        await client.post(f"/organizations/{org['id']}/members", json={
            "email": other_user.email, "role": "admin",
        }, headers=auth_headers)

        res = await client.get(f"/organizations/{org['id']}/members", headers=auth_headers)
        assert res.status_code == 200
        members = res.json()
        assert [m["user_id"] for m in members] == [test_user.id, other_user.id]
        assert [m["role"] for m in members] == ["owner", "admin"]
        assert members[0]["user"]["first_name"] == test_user.first_name

    async def test_add_unknown_email(self, client: AsyncClient, auth_headers, create_org):
        org = await create_org(auth_headers)
        res = await client.post(f"/organizations/{org['id']}/members", json={
            "email": "nobody@example.com", "role": "member",
        }, headers=auth_headers)
        assert res.status_code == 404

    async def test_add_twice_conflicts(self, client: AsyncClient, auth_headers, create_org, other_user):
        org = await create_org(auth_headers)
        payload = {"email": other_user.email, "role": "member"}
        await client.post(f"/organizations/{org['id']}/members", json=payload, headers=auth_headers)
        res = await client.post(f"/organizations/{org['id']}/members", json=payload, headers=auth_headers)
        assert res.status_code == 409

    async def test_invalid_role(self, client: AsyncClient, auth_headers, create_org, other_user):
        org = await create_org(auth_headers)
        res = await client.post(f"/organizations/{org['id']}/members", json={
            "email": other_user.email, "role": "editor",
        }, headers=auth_headers)
        assert res.status_code == 400

    async def test_update_role_and_remove(self, client: AsyncClient, auth_headers, create_org, other_user):
        org = await create_org(auth_headers)
        res = await client.post(f"/organizations/{org['id']}/members", json={
            "email": other_user.email, "role": "member",
        }, headers=auth_headers)
        member_id = res.json()["id"]

        res = await client.patch(f"/organizations/{org['id']}/members/{member_id}",
                                 json={"role": "admin"}, headers=auth_headers)
        assert res.status_code == 200
        assert res.json()["role"] == "admin"

        res = await client.delete(f"/organizations/{org['id']}/members/{member_id}", headers=auth_headers)
        assert res.status_code == 200

        res = await client.get(f"/organizations/{org['id']}/members", headers=auth_headers)
        assert len(res.json()) == 1

    async def test_last_owner_can_be_demoted(self, client: AsyncClient, auth_headers, create_org):
        org = await create_org(auth_headers)
        res = await client.get(f"/organizations/{org['id']}/members", headers=auth_headers)
        owner_id = res.json()[0]["id"]

        res = await client.patch(f"/organizations/{org['id']}/members/{owner_id}",
                                 json={"role": "member"}, headers=auth_headers)
        assert res.status_code == 200
        assert res.json()["role"] == "member"

    async def test_member_of_other_org_not_found(self, client: AsyncClient, auth_headers, create_org):
        first = await create_org(auth_headers)
        second = await create_org(auth_headers)
        res = await client.get(f"/organizations/{first['id']}/members", headers=auth_headers)
        member_id = res.json()[0]["id"]

        res = await client.delete(f"/organizations/{second['id']}/members/{member_id}", headers=auth_headers)
        assert res.status_code == 404


@pytest.mark.asyncio
class TestProjectMembers:
    async def test_creator_is_project_owner(self, client: AsyncClient, auth_headers, create_org,
                                            create_project, test_user):
        org = await create_org(auth_headers)
        project = await create_project(auth_headers, org["id"])
        res = await client.get(f"/projects/{project['id']}/members", headers=auth_headers)
        assert res.status_code == 200
        members = res.json()
        assert len(members) == 1
        assert members[0]["user_id"] == test_user.id
        assert members[0]["role"] == "owner"
        assert members[0]["added_by"] == test_user.id

    async def test_add_by_user_id(self, client: AsyncClient, auth_headers, create_org, create_project, other_user):
        org = await create_org(auth_headers)
        project = await create_project(auth_headers, org["id"])
        res = await client.post(f"/projects/{project['id']}/members", json={
            "user_id": other_user.id, "role": "editor",
        }, headers=auth_headers)
        assert res.status_code == 201
        assert res.json()["role"] == "editor"

        res = await client.post(f"/projects/{project['id']}/members", json={
            "user_id": other_user.id, "role": "viewer",
        }, headers=auth_headers)
        assert res.status_code == 409

    async def test_add_unknown_user(self, client: AsyncClient, auth_headers, create_org, create_project):
        org = await create_org(auth_headers)
        project = await create_project(auth_headers, org["id"])
        res = await client.post(f"/projects/{project['id']}/members", json={
            "user_id": "missing", "role": "editor",
        }, headers=auth_headers)
        assert res.status_code == 404

    async def test_project_roles_enforced(self, client: AsyncClient, auth_headers, create_org,
                                          create_project, other_user):
        org = await create_org(auth_headers)
        project = await create_project(auth_headers, org["id"])
        res = await client.post(f"/projects/{project['id']}/members", json={
            "user_id": other_user.id, "role": "admin",
        }, headers=auth_headers)
        assert res.status_code == 400


@pytest.mark.asyncio
class TestMembershipService:
    async def test_check_role_per_scope(self, db_session, test_user):
        with pytest.raises(ValidationError):
            await membership.add_member(db_session, membership.PROJECT, "p1", test_user, "member")

    async def test_duplicate_rejected(self, db_session, test_user):
        await membership.add_member(db_session, membership.PROJECT, "p1", test_user, "viewer")
        with pytest.raises(ConflictError):
            await membership.add_member(db_session, membership.PROJECT, "p1", test_user, "editor")

    async def test_get_role(self, db_session, test_user):
        await membership.add_member(db_session, membership.ORGANIZATION, "o1", test_user, "admin")
        assert await membership.get_role(db_session, membership.ORGANIZATION, "o1", test_user.id) == "admin"
        assert await membership.get_role(db_session, membership.ORGANIZATION, "o2", test_user.id) is None

    async def test_remove_unknown_member(self, db_session):
        with pytest.raises(NotFoundError):
            await membership.remove_member(db_session, membership.ORGANIZATION, "nope")
