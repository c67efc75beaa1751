import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from projecthub.errors import NotFoundError, ValidationError
from projecthub.models.common import utcnow
from projecthub.models.task import Comment
from projecthub.models.user import User
from projecthub.schemas.task import CommentCreate, CommentUpdate
from projecthub.services.tasks import get_task

logger = logging.getLogger(__name__)


async def get_comment(db: AsyncSession, comment_id: str) -> Comment:
    result = await db.execute(
        select(Comment).filter(Comment.id == comment_id, Comment.deleted_at.is_(None))
    )
    comment = result.scalars().first()
    if not comment:
        raise NotFoundError("Comment not found")
    return comment


async def list_comments(db: AsyncSession, task_id: str):
    await get_task(db, task_id)
    result = await db.execute(
        select(Comment)
        .filter(Comment.task_id == task_id, Comment.deleted_at.is_(None))
        .order_by(Comment.created_at.asc(), Comment.id)
    )
    return result.scalars().unique().all()


async def create_comment(db: AsyncSession, task_id: str, data: CommentCreate, author: User) -> Comment:
    await get_task(db, task_id)

    if data.parent_comment_id is not None:
        parent = await get_comment(db, data.parent_comment_id)
        if parent.task_id != task_id:
            raise ValidationError("Parent comment belongs to another task")

    comment = Comment(
        task_id=task_id,
        user_id=author.id,
        content=data.content,
        parent_comment_id=data.parent_comment_id,
        is_edited=False,
    )
    comment.user = author
    db.add(comment)
    await db.flush()
    return comment


async def update_comment(db: AsyncSession, comment_id: str, data: CommentUpdate) -> Comment:
    comment = await get_comment(db, comment_id)
    comment.content = data.content
    comment.is_edited = True
    return comment


async def delete_comment(db: AsyncSession, comment_id: str) -> None:
    comment = await get_comment(db, comment_id)
    comment.deleted_at = utcnow()
    logger.info("Soft-deleted comment %s", comment_id)
