from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub.dependencies import get_db, get_current_user
from projecthub.models.user import User as UserModel
from projecthub.schemas.task import TaskStatus as TaskStatusSchema, TaskStatusUpdate
from projecthub.schemas.user import MessageResponse
from projecthub.services import membership
from projecthub.services import tasks as task_service
from projecthub.services.policy import ProjectAction, Policy, get_policy

router = APIRouter(prefix="/statuses", tags=["statuses"])


@router.patch("/{status_id}", response_model=TaskStatusSchema)
async def update_status(
    status_id: str,
    data: TaskStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    existing = await task_service.get_status(db, status_id)
    await policy.authorize(db, current_user.id, membership.PROJECT, existing.project_id,
                           ProjectAction.MANAGE_STATUSES)
    task_status = await task_service.update_status(db, status_id, data)
    await db.commit()
    return task_status


@router.delete("/{status_id}", response_model=MessageResponse)
async def delete_status(
    status_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    existing = await task_service.get_status(db, status_id)
    await policy.authorize(db, current_user.id, membership.PROJECT, existing.project_id,
                           ProjectAction.MANAGE_STATUSES)
    await task_service.delete_status(db, status_id)
    await db.commit()
    return {"message": "Status deleted successfully"}
