from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub import cache
from projecthub.dependencies import get_db, get_current_user
from projecthub.models.user import User as UserModel
from projecthub.schemas.task import (
    Task as TaskSchema, TaskCreate, TaskUpdate, TaskStatusChange,
    Comment as CommentSchema, CommentCreate,
)
from projecthub.schemas.user import MessageResponse
from projecthub.services import comments as comment_service
from projecthub.services import labels as label_service
from projecthub.services import membership
from projecthub.services import tasks as task_service
from projecthub.services.policy import ProjectAction, Policy, get_policy

router = APIRouter(prefix="/tasks", tags=["tasks"])


async def _authorize_on_task(policy: Policy, db: AsyncSession, user: UserModel, task_id: str, action: str):
    task = await task_service.get_task(db, task_id)
    await policy.authorize(db, user.id, membership.PROJECT, task.project_id, action)
    return task


@router.post("", response_model=TaskSchema, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await policy.authorize(db, current_user.id, membership.PROJECT, data.project_id, ProjectAction.CREATE_TASK)
    task = await task_service.create_task(db, data, current_user)
    await db.commit()
    await cache.publish("task.created", task_id=task.id, project_id=task.project_id)
    return task


@router.get("/{task_id}", response_model=TaskSchema)
async def get_task(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    return await task_service.get_task(db, task_id)


@router.patch("/{task_id}", response_model=TaskSchema)
async def update_task(
    task_id: str,
    data: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize_on_task(policy, db, current_user, task_id, ProjectAction.UPDATE_TASK)
    task = await task_service.update_task(db, task_id, data)
    await db.commit()
    await cache.publish("task.updated", task_id=task_id, project_id=task.project_id)
    return task


@router.patch("/{task_id}/status", response_model=TaskSchema)
async def update_task_status(
    task_id: str,
    data: TaskStatusChange,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize_on_task(policy, db, current_user, task_id, ProjectAction.UPDATE_TASK)
    task = await task_service.update_task_status(db, task_id, data.status_id)
    await db.commit()
    await cache.publish("task.status_changed", task_id=task_id, status_id=task.status_id)
    return task


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    task = await _authorize_on_task(policy, db, current_user, task_id, ProjectAction.DELETE_TASK)
    await task_service.delete_task(db, task_id)
    await db.commit()
    await cache.publish("task.deleted", task_id=task_id, project_id=task.project_id)
    return {"message": "Task deleted successfully"}


# ── Comments ────────────────────────────────────────────

@router.get("/{task_id}/comments", response_model=list[CommentSchema])
async def list_comments(
    task_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    return await comment_service.list_comments(db, task_id)


@router.post("/{task_id}/comments", response_model=CommentSchema, status_code=status.HTTP_201_CREATED)
async def create_comment(
    task_id: str,
    data: CommentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize_on_task(policy, db, current_user, task_id, ProjectAction.COMMENT)
    comment = await comment_service.create_comment(db, task_id, data, current_user)
    await db.commit()
    return comment


# ── Labels ──────────────────────────────────────────────

@router.post("/{task_id}/labels/{label_id}", response_model=TaskSchema)
async def add_label(
    task_id: str,
    label_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize_on_task(policy, db, current_user, task_id, ProjectAction.UPDATE_TASK)
    task = await label_service.add_label_to_task(db, task_id, label_id)
    await db.commit()
    return task


@router.delete("/{task_id}/labels/{label_id}", response_model=TaskSchema)
async def remove_label(
    task_id: str,
    label_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize_on_task(policy, db, current_user, task_id, ProjectAction.UPDATE_TASK)
    task = await label_service.remove_label_from_task(db, task_id, label_id)
    await db.commit()
    return task
