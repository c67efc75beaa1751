import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError

from projecthub.config import settings
from projecthub.errors import ConflictError, NotFoundError
from projecthub.models.common import utcnow
from projecthub.models.organization import Organization, OrganizationMember
from projecthub.models.user import User
from projecthub.schemas.organization import OrganizationCreate, OrganizationUpdate
from projecthub.services import membership

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "."


def _path_token() -> str:
    return str(uuid.uuid4())


def child_placement(parent: Organization | None) -> tuple[int, str]:
    """Depth and materialized path for a new node under ``parent``.

    Every node gets a fresh opaque segment; the parent's id never appears in
    the path.
    """
    if parent is None:
        return 0, _path_token()
    if parent.path:
        return parent.depth + 1, f"{parent.path}{PATH_SEPARATOR}{_path_token()}"
    return parent.depth + 1, _path_token()


async def get_organization(db: AsyncSession, org_id: str) -> Organization:
    result = await db.execute(
        select(Organization).filter(Organization.id == org_id, Organization.deleted_at.is_(None))
    )
    org = result.scalars().first()
    if not org:
        raise NotFoundError("Organization not found")
    return org


async def get_organization_by_slug(db: AsyncSession, slug: str) -> Organization:
    result = await db.execute(
        select(Organization).filter(Organization.slug == slug, Organization.deleted_at.is_(None))
    )
    org = result.scalars().first()
    if not org:
        raise NotFoundError("Organization not found")
    return org


async def create_organization(db: AsyncSession, data: OrganizationCreate, creator: User) -> Organization:
    """Create a node and make ``creator`` its owner.

    Both rows are flushed in the caller's transaction, so a failed membership
    insert rolls the organization back with it.
    """
    result = await db.execute(
        select(Organization.id).filter(Organization.slug == data.slug, Organization.deleted_at.is_(None))
    )
    if result.scalars().first():
        raise ConflictError(f"Organization with slug {data.slug} already exists")

    parent = None
    if data.parent_id is not None:
        try:
            parent = await get_organization(db, data.parent_id)
        except NotFoundError:
            raise NotFoundError("Parent organization not found")

    depth, path = child_placement(parent)

    org = Organization(
        parent_id=data.parent_id,
        name=data.name,
        slug=data.slug,
        description=data.description,
        logo_url=data.logo_url,
        depth=depth,
        path=path,
        settings={},
        created_by=creator.id,
    )
    db.add(org)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"Organization with slug {data.slug} already exists")

    await membership.add_member(db, membership.ORGANIZATION, org.id, creator, "owner")

    logger.info("Created organization %s (slug=%s, depth=%d)", org.id, org.slug, org.depth)
    return org


async def list_organizations(db: AsyncSession, user_id: str):
    memberships = select(OrganizationMember.organization_id).filter(OrganizationMember.user_id == user_id)
    result = await db.execute(
        select(Organization)
        .filter(Organization.id.in_(memberships), Organization.deleted_at.is_(None))
        .order_by(Organization.created_at.desc())
    )
    return result.scalars().all()


async def update_organization(db: AsyncSession, org_id: str, data: OrganizationUpdate) -> Organization:
    org = await get_organization(db, org_id)

    if data.name is not None:
        org.name = data.name
    if data.description is not None:
        org.description = data.description
    if data.logo_url is not None:
        org.logo_url = data.logo_url

    return org


async def list_descendants(db: AsyncSession, org: Organization):
    if not org.path:
        return []
    result = await db.execute(
        select(Organization).filter(
            Organization.path.startswith(f"{org.path}{PATH_SEPARATOR}", autoescape=True),
            Organization.deleted_at.is_(None),
        )
    )
    return result.scalars().all()


async def delete_organization(db: AsyncSession, org_id: str, cascade: bool | None = None) -> list[str]:
    """Soft-delete an organization and return the ids that were deleted.

    Children are left in place unless ``cascade`` (default from
    ``ORG_DELETE_CASCADE``) is set, in which case the whole subtree goes.
    """
    if cascade is None:
        cascade = settings.ORG_DELETE_CASCADE

    org = await get_organization(db, org_id)
    now = utcnow()
    org.deleted_at = now
    deleted = [org.id]

    if cascade:
        for child in await list_descendants(db, org):
            child.deleted_at = now
            deleted.append(child.id)

    logger.info("Soft-deleted organization %s (%d node(s))", org_id, len(deleted))
    return deleted
