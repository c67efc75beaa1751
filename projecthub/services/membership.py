"""Organization and project memberships.

Both scopes share one implementation; a ``Scope`` names the member table, the
column holding the scope id and the roles valid in that scope.
"""
import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError

from projecthub.errors import ConflictError, NotFoundError, ValidationError
from projecthub.models.common import utcnow
from projecthub.models.organization import OrganizationMember
from projecthub.models.project import ProjectMember
from projecthub.models.user import User

logger = logging.getLogger(__name__)


def _new_organization_member(scope_id, user_id, role, added_by):
    now = utcnow()
    return OrganizationMember(
        organization_id=scope_id,
        user_id=user_id,
        role=role,
        invited_by=added_by,
        invited_at=now if added_by else None,
        joined_at=now,
    )


def _new_project_member(scope_id, user_id, role, added_by):
    return ProjectMember(project_id=scope_id, user_id=user_id, role=role, added_by=added_by)


@dataclass(frozen=True)
class Scope:
    name: str
    model: type
    scope_field: str
    roles: frozenset
    factory: Callable

    @property
    def column(self):
        return getattr(self.model, self.scope_field)


ORGANIZATION = Scope(
    name="organization",
    model=OrganizationMember,
    scope_field="organization_id",
    roles=frozenset({"owner", "admin", "member"}),
    factory=_new_organization_member,
)

PROJECT = Scope(
    name="project",
    model=ProjectMember,
    scope_field="project_id",
    roles=frozenset({"owner", "editor", "viewer"}),
    factory=_new_project_member,
)


def _check_role(scope: Scope, role: str):
    if role not in scope.roles:
        raise ValidationError(f"Invalid {scope.name} role: {role}")


async def list_members(db: AsyncSession, scope: Scope, scope_id: str):
    result = await db.execute(
        select(scope.model)
        .filter(scope.column == scope_id)
        .order_by(scope.model.created_at.asc(), scope.model.id)
    )
    return result.scalars().unique().all()


async def find_membership(db: AsyncSession, scope: Scope, scope_id: str, user_id: str):
    result = await db.execute(
        select(scope.model).filter(scope.column == scope_id, scope.model.user_id == user_id)
    )
    return result.scalars().first()


async def get_role(db: AsyncSession, scope: Scope, scope_id: str, user_id: str) -> str | None:
    member = await find_membership(db, scope, scope_id, user_id)
    return member.role if member else None


async def get_member(db: AsyncSession, scope: Scope, member_id: str, scope_id: str | None = None):
    query = select(scope.model).filter(scope.model.id == member_id)
    if scope_id is not None:
        query = query.filter(scope.column == scope_id)
    result = await db.execute(query)
    member = result.scalars().first()
    if not member:
        raise NotFoundError(f"{scope.name.capitalize()} member not found")
    return member


async def add_member(db: AsyncSession, scope: Scope, scope_id: str, user: User, role: str,
                     added_by: str | None = None):
    _check_role(scope, role)

    if await find_membership(db, scope, scope_id, user.id):
        raise ConflictError(f"User is already a member of this {scope.name}")

    member = scope.factory(scope_id, user.id, role, added_by)
    member.user = user
    db.add(member)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race with a concurrent insert of the same pair
        await db.rollback()
        raise ConflictError(f"User is already a member of this {scope.name}")

    logger.info("Added user %s to %s %s as %s", user.id, scope.name, scope_id, role)
    return member


async def update_role(db: AsyncSession, scope: Scope, member_id: str, role: str,
                      scope_id: str | None = None):
    # No last-owner guard: demoting every owner is allowed
    _check_role(scope, role)
    member = await get_member(db, scope, member_id, scope_id)
    member.role = role
    return member


async def remove_member(db: AsyncSession, scope: Scope, member_id: str, scope_id: str | None = None):
    member = await get_member(db, scope, member_id, scope_id)
    await db.delete(member)
    logger.info("Removed member %s from %s %s", member_id, scope.name, getattr(member, scope.scope_field))
