import logging

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError

from projecthub.errors import ConflictError, NotFoundError, ValidationError
from projecthub.models.common import utcnow
from projecthub.models.task import Label, TaskLabel
from projecthub.models.user import User
from projecthub.schemas.task import LabelCreate
from projecthub.services.organizations import get_organization
from projecthub.services.projects import get_project
from projecthub.services.tasks import get_task, attach_labels

logger = logging.getLogger(__name__)


async def get_label(db: AsyncSession, label_id: str) -> Label:
    result = await db.execute(
        select(Label).filter(Label.id == label_id, Label.deleted_at.is_(None))
    )
    label = result.scalars().first()
    if not label:
        raise NotFoundError("Label not found")
    return label


async def create_label(db: AsyncSession, org_id: str, data: LabelCreate, creator: User) -> Label:
    await get_organization(db, org_id)
    if data.project_id is not None:
        project = await get_project(db, data.project_id)
        if project.organization_id != org_id:
            raise ValidationError("Project belongs to another organization")

    label = Label(
        organization_id=org_id,
        project_id=data.project_id,
        name=data.name,
        color=data.color,
        description=data.description,
        created_by=creator.id,
    )
    db.add(label)
    await db.flush()
    return label


async def list_labels(db: AsyncSession, org_id: str, project_id: str | None = None):
    """Labels of an organization.

    With ``project_id`` the result is the org-wide labels plus that project's
    own labels; without it, every label in the organization.
    """
    await get_organization(db, org_id)
    query = select(Label).filter(Label.organization_id == org_id, Label.deleted_at.is_(None))
    if project_id is not None:
        query = query.filter(or_(Label.project_id.is_(None), Label.project_id == project_id))
    result = await db.execute(query.order_by(Label.name.asc(), Label.created_at.asc()))
    return result.scalars().all()


async def delete_label(db: AsyncSession, label_id: str) -> None:
    label = await get_label(db, label_id)
    label.deleted_at = utcnow()
    logger.info("Soft-deleted label %s", label_id)


async def add_label_to_task(db: AsyncSession, task_id: str, label_id: str):
    task = await get_task(db, task_id)
    await get_label(db, label_id)

    result = await db.execute(
        select(TaskLabel.id).filter(TaskLabel.task_id == task_id, TaskLabel.label_id == label_id)
    )
    if result.scalars().first():
        raise ConflictError("Label is already attached to this task")

    db.add(TaskLabel(task_id=task_id, label_id=label_id))
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Label is already attached to this task")

    await attach_labels(db, [task])
    return task


async def remove_label_from_task(db: AsyncSession, task_id: str, label_id: str):
    task = await get_task(db, task_id)
    result = await db.execute(
        select(TaskLabel).filter(TaskLabel.task_id == task_id, TaskLabel.label_id == label_id)
    )
    link = result.scalars().first()
    if not link:
        raise NotFoundError("Label is not attached to this task")

    await db.delete(link)
    await db.flush()
    await attach_labels(db, [task])
    return task
