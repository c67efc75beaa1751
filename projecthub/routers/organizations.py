from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub import cache
from projecthub.dependencies import get_db, get_current_user
from projecthub.models.user import User as UserModel
from projecthub.schemas.organization import (
    Organization as OrganizationSchema, OrganizationCreate, OrganizationUpdate,
    OrganizationMember, OrganizationMemberAdd, OrganizationMemberRoleUpdate,
)
from projecthub.schemas.project import Project as ProjectSchema
from projecthub.schemas.task import Label as LabelSchema, LabelCreate
from projecthub.schemas.user import MessageResponse
from projecthub.services import labels as label_service
from projecthub.services import membership
from projecthub.services import organizations as org_service
from projecthub.services import projects as project_service
from projecthub.services import users as user_service
from projecthub.services.policy import OrgAction, Policy, get_policy

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.post("", response_model=OrganizationSchema, status_code=status.HTTP_201_CREATED)
async def create_organization(
    data: OrganizationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    org = await org_service.create_organization(db, data, current_user)
    await db.commit()
    await cache.publish("organization.created", organization_id=org.id, user_id=current_user.id)
    return org


@router.get("", response_model=list[OrganizationSchema])
async def list_organizations(
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    return await org_service.list_organizations(db, current_user.id)


@router.get("/slug/{slug}", response_model=OrganizationSchema)
async def get_organization_by_slug(
    slug: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    return await org_service.get_organization_by_slug(db, slug)


@router.get("/{organization_id}", response_model=OrganizationSchema)
async def get_organization(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    key = cache.organization_key(organization_id)
    cached = await cache.get_json(key)
    if cached is not None:
        return cached

    org = await org_service.get_organization(db, organization_id)
    await cache.set_json(key, OrganizationSchema.model_validate(org).model_dump(mode="json"))
    return org


@router.patch("/{organization_id}", response_model=OrganizationSchema)
async def update_organization(
    organization_id: str,
    data: OrganizationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await policy.authorize(db, current_user.id, membership.ORGANIZATION, organization_id, OrgAction.UPDATE)
    org = await org_service.update_organization(db, organization_id, data)
    await db.commit()
    await cache.invalidate(cache.organization_key(organization_id))
    await cache.publish("organization.updated", organization_id=organization_id)
    return org


@router.delete("/{organization_id}", response_model=MessageResponse)
async def delete_organization(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await policy.authorize(db, current_user.id, membership.ORGANIZATION, organization_id, OrgAction.DELETE)
    deleted = await org_service.delete_organization(db, organization_id)
    await db.commit()
    await cache.invalidate(*[cache.organization_key(i) for i in deleted])
    await cache.publish("organization.deleted", organization_ids=deleted)
    return {"message": "Organization deleted successfully"}


# ── Members ─────────────────────────────────────────────

@router.get("/{organization_id}/members", response_model=list[OrganizationMember])
async def list_members(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    await org_service.get_organization(db, organization_id)
    return await membership.list_members(db, membership.ORGANIZATION, organization_id)


@router.post("/{organization_id}/members", response_model=OrganizationMember,
             status_code=status.HTTP_201_CREATED)
async def add_member(
    organization_id: str,
    data: OrganizationMemberAdd,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await policy.authorize(db, current_user.id, membership.ORGANIZATION, organization_id,
                           OrgAction.MANAGE_MEMBERS)
    await org_service.get_organization(db, organization_id)
    user = await user_service.get_user_by_email(db, data.email)
    member = await membership.add_member(
        db, membership.ORGANIZATION, organization_id, user, data.role, added_by=current_user.id
    )
    await db.commit()
    return member


@router.patch("/{organization_id}/members/{member_id}", response_model=OrganizationMember)
async def update_member_role(
    organization_id: str,
    member_id: str,
    data: OrganizationMemberRoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await policy.authorize(db, current_user.id, membership.ORGANIZATION, organization_id,
                           OrgAction.MANAGE_MEMBERS)
    member = await membership.update_role(
        db, membership.ORGANIZATION, member_id, data.role, scope_id=organization_id
    )
    await db.commit()
    return member


@router.delete("/{organization_id}/members/{member_id}", response_model=MessageResponse)
async def remove_member(
    organization_id: str,
    member_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await policy.authorize(db, current_user.id, membership.ORGANIZATION, organization_id,
                           OrgAction.MANAGE_MEMBERS)
    await membership.remove_member(db, membership.ORGANIZATION, member_id, scope_id=organization_id)
    await db.commit()
    return {"message": "Member removed successfully"}


# ── Projects & labels ───────────────────────────────────

@router.get("/{organization_id}/projects", response_model=list[ProjectSchema])
async def list_projects(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    await org_service.get_organization(db, organization_id)
    return await project_service.list_projects(db, organization_id)


@router.post("/{organization_id}/labels", response_model=LabelSchema, status_code=status.HTTP_201_CREATED)
async def create_label(
    organization_id: str,
    data: LabelCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await policy.authorize(db, current_user.id, membership.ORGANIZATION, organization_id,
                           OrgAction.MANAGE_LABELS)
    label = await label_service.create_label(db, organization_id, data, current_user)
    await db.commit()
    return label


@router.get("/{organization_id}/labels", response_model=list[LabelSchema])
async def list_labels(
    organization_id: str,
    project_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    return await label_service.list_labels(db, organization_id, project_id)
