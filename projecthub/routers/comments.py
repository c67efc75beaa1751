from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from projecthub.dependencies import get_db, get_current_user
from projecthub.models.user import User as UserModel
from projecthub.schemas.task import Comment as CommentSchema, CommentUpdate
from projecthub.schemas.user import MessageResponse
from projecthub.services import comments as comment_service
from projecthub.services import membership
from projecthub.services import tasks as task_service
from projecthub.services.policy import ProjectAction, Policy, get_policy

router = APIRouter(prefix="/comments", tags=["comments"])


async def _authorize_on_comment(policy: Policy, db: AsyncSession, user: UserModel, comment_id: str):
    comment = await comment_service.get_comment(db, comment_id)
    task = await task_service.get_task(db, comment.task_id)
    await policy.authorize(db, user.id, membership.PROJECT, task.project_id, ProjectAction.COMMENT)
    return comment


@router.patch("/{comment_id}", response_model=CommentSchema)
async def update_comment(
    comment_id: str,
    data: CommentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize_on_comment(policy, db, current_user, comment_id)
    comment = await comment_service.update_comment(db, comment_id, data)
    await db.commit()
    return comment


@router.delete("/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
    policy: Policy = Depends(get_policy),
):
    await _authorize_on_comment(policy, db, current_user, comment_id)
    await comment_service.delete_comment(db, comment_id)
    await db.commit()
    return {"message": "Comment deleted successfully"}
