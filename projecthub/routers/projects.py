from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub import cache
from projecthub.dependencies import get_db, get_current_user
from projecthub.models.user import User as UserModel
from projecthub.schemas.project import (
    Project as ProjectSchema, ProjectCreate, ProjectUpdate,
    ProjectMember, ProjectMemberAdd, ProjectMemberRoleUpdate,
)
from projecthub.schemas.task import (
    Task as TaskSchema, TaskCreate, TaskFields, TaskFilters,
    TaskStatus as TaskStatusSchema, TaskStatusCreate,
)
from projecthub.schemas.user import MessageResponse
from projecthub.services import membership
from projecthub.services import projects as project_service
from projecthub.services import tasks as task_service
from projecthub.services import users as user_service
from projecthub.services.policy import OrgAction, ProjectAction, Policy, get_policy

router = APIRouter(prefix="/projects", tags=["projects"])


async def _authorize(policy: Policy, db: AsyncSession, user: UserModel, project_id: str, action: str):
    await policy.authorize(db, user.id, membership.PROJECT, project_id, action)


@router.post("", response_model=ProjectSchema, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await policy.authorize(db, current_user.id, membership.ORGANIZATION, data.organization_id,
                           OrgAction.CREATE_PROJECT)
    project = await project_service.create_project(db, data, current_user)
    await db.commit()
    await cache.publish("project.created", project_id=project.id, organization_id=project.organization_id)
    return project


@router.get("/{project_id}", response_model=ProjectSchema)
async def get_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    return await project_service.get_project(db, project_id)


@router.patch("/{project_id}", response_model=ProjectSchema)
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize(policy, db, current_user, project_id, ProjectAction.UPDATE)
    if data.status is not None:
        current = await project_service.get_project(db, project_id)
        if project_service.changes_archive_state(current, data.status):
            await _authorize(policy, db, current_user, project_id, ProjectAction.ARCHIVE)
    project = await project_service.update_project(db, project_id, data)
    await db.commit()
    await cache.publish("project.updated", project_id=project_id)
    return project


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize(policy, db, current_user, project_id, ProjectAction.DELETE)
    await project_service.delete_project(db, project_id)
    await db.commit()
    await cache.publish("project.deleted", project_id=project_id)
    return {"message": "Project deleted successfully"}


@router.post("/{project_id}/archive", response_model=ProjectSchema)
async def archive_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize(policy, db, current_user, project_id, ProjectAction.ARCHIVE)
    project = await project_service.archive_project(db, project_id)
    await db.commit()
    await cache.publish("project.archived", project_id=project_id)
    return project


@router.post("/{project_id}/unarchive", response_model=ProjectSchema)
async def unarchive_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize(policy, db, current_user, project_id, ProjectAction.ARCHIVE)
    project = await project_service.unarchive_project(db, project_id)
    await db.commit()
    await cache.publish("project.unarchived", project_id=project_id)
    return project


# ── Members ─────────────────────────────────────────────

@router.get("/{project_id}/members", response_model=list[ProjectMember])
async def list_members(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    await project_service.get_project(db, project_id)
    return await membership.list_members(db, membership.PROJECT, project_id)


@router.post("/{project_id}/members", response_model=ProjectMember, status_code=status.HTTP_201_CREATED)
async def add_member(
    project_id: str,
    data: ProjectMemberAdd,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize(policy, db, current_user, project_id, ProjectAction.MANAGE_MEMBERS)
    await project_service.get_project(db, project_id)
    user = await user_service.get_user(db, data.user_id)
    member = await membership.add_member(
        db, membership.PROJECT, project_id, user, data.role, added_by=current_user.id
    )
    await db.commit()
    return member


@router.patch("/{project_id}/members/{member_id}", response_model=ProjectMember)
async def update_member_role(
    project_id: str,
    member_id: str,
    data: ProjectMemberRoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize(policy, db, current_user, project_id, ProjectAction.MANAGE_MEMBERS)
    member = await membership.update_role(db, membership.PROJECT, member_id, data.role, scope_id=project_id)
    await db.commit()
    return member


@router.delete("/{project_id}/members/{member_id}", response_model=MessageResponse)
async def remove_member(
    project_id: str,
    member_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize(policy, db, current_user, project_id, ProjectAction.MANAGE_MEMBERS)
    await membership.remove_member(db, membership.PROJECT, member_id, scope_id=project_id)
    await db.commit()
    return {"message": "Member removed successfully"}


# ── Statuses & tasks ────────────────────────────────────

@router.get("/{project_id}/statuses", response_model=list[TaskStatusSchema])
async def list_statuses(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    return await task_service.list_statuses(db, project_id)


@router.post("/{project_id}/statuses", response_model=TaskStatusSchema, status_code=status.HTTP_201_CREATED)
async def create_status(
    project_id: str,
    data: TaskStatusCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize(policy, db, current_user, project_id, ProjectAction.MANAGE_STATUSES)
    task_status = await task_service.create_status(db, project_id, data)
    await db.commit()
    return task_status


@router.get("/{project_id}/tasks", response_model=list[TaskSchema])
async def list_tasks(
    project_id: str,
    status_id: list[str] = Query(default=[]),
    assignee_id: list[str] = Query(default=[]),
    priority: list[str] = Query(default=[]),
    label_id: list[str] = Query(default=[]),
    search: str | None = None,
    due_from: date | None = None,
    due_to: date | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    filters = TaskFilters(
        status_ids=status_id,
        assignee_ids=assignee_id,
        priorities=priority,
        label_ids=label_id,
        search=search or None,
        due_from=due_from,
        due_to=due_to,
    )
    return await task_service.list_tasks(db, project_id, filters)


@router.post("/{project_id}/tasks", response_model=TaskSchema, status_code=status.HTTP_201_CREATED)
async def create_task(
    project_id: str,
    data: TaskFields,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize(policy, db, current_user, project_id, ProjectAction.CREATE_TASK)
    task = await task_service.create_task(db, TaskCreate(project_id=project_id, **data.model_dump()), current_user)
    await db.commit()
    await cache.publish("task.created", task_id=task.id, project_id=project_id)
    return task
