"""Pluggable authorization policy.

Every mutating route calls ``policy.authorize(...)`` before touching state. The
default ``PermissivePolicy`` lets any authenticated caller through; the
``RoleCapabilityPolicy`` checks the caller's role in the scope against a
capability table.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub.config import settings
from projecthub.errors import ForbiddenError
from projecthub.services import membership
from projecthub.services.membership import Scope, ORGANIZATION, PROJECT


class OrgAction:
    UPDATE = "org:update"
    DELETE = "org:delete"
    MANAGE_MEMBERS = "org:manage_members"
    CREATE_PROJECT = "project:create"
    MANAGE_LABELS = "label:manage"


class ProjectAction:
    UPDATE = "project:update"
    DELETE = "project:delete"
    ARCHIVE = "project:archive"
    MANAGE_MEMBERS = "project:manage_members"
    MANAGE_STATUSES = "status:manage"
    CREATE_TASK = "task:create"
    UPDATE_TASK = "task:update"
    DELETE_TASK = "task:delete"
    COMMENT = "comment:create"


ROLE_CAPABILITIES: dict[str, dict[str, set[str]]] = {
    ORGANIZATION.name: {
        "owner": {
            OrgAction.UPDATE, OrgAction.DELETE, OrgAction.MANAGE_MEMBERS,
            OrgAction.CREATE_PROJECT, OrgAction.MANAGE_LABELS,
        },
        "admin": {
            OrgAction.UPDATE, OrgAction.MANAGE_MEMBERS,
            OrgAction.CREATE_PROJECT, OrgAction.MANAGE_LABELS,
        },
        "member": {
            OrgAction.CREATE_PROJECT,
        },
    },
    PROJECT.name: {
        "owner": {
            ProjectAction.UPDATE, ProjectAction.DELETE, ProjectAction.ARCHIVE,
            ProjectAction.MANAGE_MEMBERS, ProjectAction.MANAGE_STATUSES,
            ProjectAction.CREATE_TASK, ProjectAction.UPDATE_TASK, ProjectAction.DELETE_TASK,
            ProjectAction.COMMENT,
        },
        "editor": {
            ProjectAction.UPDATE, ProjectAction.MANAGE_STATUSES,
            ProjectAction.CREATE_TASK, ProjectAction.UPDATE_TASK, ProjectAction.DELETE_TASK,
            ProjectAction.COMMENT,
        },
        "viewer": {
            ProjectAction.COMMENT,
        },
    },
}


class Policy:
    async def authorize(self, db: AsyncSession, user_id: str, scope: Scope, scope_id: str, action: str) -> None:
        raise NotImplementedError


class PermissivePolicy(Policy):
    async def authorize(self, db, user_id, scope, scope_id, action):
        return None


class RoleCapabilityPolicy(Policy):
    def __init__(self, capabilities: dict[str, dict[str, set[str]]] | None = None):
        self.capabilities = capabilities or ROLE_CAPABILITIES

    def allows(self, scope: Scope, role: str | None, action: str) -> bool:
        if role is None:
            return False
        return action in self.capabilities.get(scope.name, {}).get(role, set())

    async def authorize(self, db, user_id, scope, scope_id, action):
        role = await membership.get_role(db, scope, scope_id, user_id)
        if not self.allows(scope, role, action):
            raise ForbiddenError(f"Not allowed to perform {action} on this {scope.name}")


POLICIES = {
    "permissive": PermissivePolicy,
    "role": RoleCapabilityPolicy,
}


def build_policy(name: str) -> Policy:
    try:
        return POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown AUTHZ_POLICY: {name}")


_policy = build_policy(settings.AUTHZ_POLICY)


def get_policy() -> Policy:
    return _policy
