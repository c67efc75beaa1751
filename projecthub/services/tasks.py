import logging
from collections import defaultdict

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError

from projecthub.errors import ConflictError, NotFoundError, ValidationError
from projecthub.models.common import utcnow
from projecthub.models.project import Project
from projecthub.models.task import Task, TaskStatus, Label, TaskLabel
from projecthub.models.user import User
from projecthub.schemas.task import TaskCreate, TaskUpdate, TaskFilters, TaskStatusCreate, TaskStatusUpdate
from projecthub.services.projects import get_project
from projecthub.services.users import get_user

logger = logging.getLogger(__name__)


# ── Statuses ────────────────────────────────────────────

async def get_status(db: AsyncSession, status_id: str) -> TaskStatus:
    result = await db.execute(select(TaskStatus).filter(TaskStatus.id == status_id))
    status = result.scalars().first()
    if not status:
        raise NotFoundError("Status not found")
    return status


async def _status_in_project(db: AsyncSession, status_id: str, project_id: str) -> TaskStatus:
    status = await get_status(db, status_id)
    if status.project_id != project_id:
        raise ValidationError("Status does not belong to this project")
    return status


async def list_statuses(db: AsyncSession, project_id: str):
    await get_project(db, project_id)
    result = await db.execute(
        select(TaskStatus)
        .filter(TaskStatus.project_id == project_id)
        .order_by(TaskStatus.position.asc(), TaskStatus.created_at.asc())
    )
    return result.scalars().all()


async def create_status(db: AsyncSession, project_id: str, data: TaskStatusCreate) -> TaskStatus:
    # Duplicate names and positions are allowed
    await get_project(db, project_id)
    status = TaskStatus(
        project_id=project_id,
        name=data.name,
        color=data.color,
        position=data.position,
        is_default=False,
        is_completed=False,
    )
    db.add(status)
    await db.flush()
    return status


async def update_status(db: AsyncSession, status_id: str, data: TaskStatusUpdate) -> TaskStatus:
    status = await get_status(db, status_id)
    for key, value in data.model_dump(exclude_none=True).items():
        setattr(status, key, value)
    return status


async def delete_status(db: AsyncSession, status_id: str) -> None:
    status = await get_status(db, status_id)
    result = await db.execute(select(func.count(Task.id)).filter(Task.status_id == status_id))
    if result.scalar():
        raise ConflictError("Status is still used by tasks")
    await db.delete(status)


# ── Labels on tasks ─────────────────────────────────────

async def labels_for_tasks(db: AsyncSession, task_ids: list[str]) -> dict[str, list[Label]]:
    if not task_ids:
        return {}
    result = await db.execute(
        select(TaskLabel.task_id, Label)
        .join(Label, Label.id == TaskLabel.label_id)
        .filter(TaskLabel.task_id.in_(task_ids), Label.deleted_at.is_(None))
        .order_by(TaskLabel.created_at.asc())
    )
    by_task = defaultdict(list)
    for task_id, label in result.all():
        by_task[task_id].append(label)
    return by_task


async def attach_labels(db: AsyncSession, tasks):
    by_task = await labels_for_tasks(db, [t.id for t in tasks])
    for task in tasks:
        task.labels = by_task.get(task.id, [])
    return tasks


# ── Tasks ───────────────────────────────────────────────

async def _load_task(db: AsyncSession, task_id: str) -> Task:
    result = await db.execute(
        select(Task).filter(Task.id == task_id, Task.deleted_at.is_(None))
    )
    task = result.scalars().first()
    if not task:
        raise NotFoundError("Task not found")
    return task


async def get_task(db: AsyncSession, task_id: str) -> Task:
    task = await _load_task(db, task_id)
    await attach_labels(db, [task])
    return task


async def next_task_number(db: AsyncSession, project_id: str) -> int:
    """Next per-project task number.

    The project row is locked first so concurrent creators in one project
    queue up; numbers of soft-deleted tasks are never reused.
    """
    await db.execute(select(Project.id).filter(Project.id == project_id).with_for_update())
    result = await db.execute(
        select(func.max(Task.task_number)).filter(Task.project_id == project_id)
    )
    current = result.scalar()
    return (current or 0) + 1


async def _check_parent(db: AsyncSession, parent_id: str, project_id: str, task_id: str | None = None):
    parent = await _load_task(db, parent_id)
    if parent.project_id != project_id:
        raise ValidationError("Parent task belongs to another project")
    if task_id is None:
        return parent

    # Walk up from the new parent; reaching the task itself means a cycle
    seen = set()
    node = parent
    while node is not None:
        if node.id == task_id:
            raise ValidationError("Parent task would create a cycle")
        if node.id in seen or node.parent_task_id is None:
            break
        seen.add(node.id)
        result = await db.execute(select(Task).filter(Task.id == node.parent_task_id))
        node = result.scalars().first()
    return parent


async def _check_assignee(db: AsyncSession, user_id: str):
    try:
        await get_user(db, user_id)
    except NotFoundError:
        raise NotFoundError("Assignee not found")


def _is_number_clash(error: IntegrityError) -> bool:
    # Postgres names the constraint, SQLite names the columns
    message = str(error.orig)
    return "uq_tasks_project_number" in message or "tasks.task_number" in message


async def create_task(db: AsyncSession, data: TaskCreate, reporter: User) -> Task:
    await get_project(db, data.project_id)
    status = await _status_in_project(db, data.status_id, data.project_id)
    if data.parent_task_id is not None:
        await _check_parent(db, data.parent_task_id, data.project_id)
    if data.assignee_id is not None:
        await _check_assignee(db, data.assignee_id)

    task_number = await next_task_number(db, data.project_id)

    task = Task(
        project_id=data.project_id,
        parent_task_id=data.parent_task_id,
        title=data.title,
        description=data.description,
        task_number=task_number,
        status_id=status.id,
        priority=data.priority or "none",
        assignee_id=data.assignee_id,
        reporter_id=reporter.id,
        start_date=data.start_date,
        due_date=data.due_date,
        estimated_hours=data.estimated_hours,
        actual_hours=0.0,
        position=float(task_number),
        custom_fields=data.custom_fields or {},
        created_by=reporter.id,
    )
    task.status = status
    if status.is_completed:
        task.completed_at = utcnow()
    db.add(task)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        if _is_number_clash(e):
            raise ConflictError("Task number already taken, retry the request")
        raise

    task.labels = []
    logger.info("Created task %s #%d in project %s", task.id, task.task_number, task.project_id)
    return task


def _move_to_status(task: Task, status: TaskStatus):
    task.status_id = status.id
    task.status = status
    if status.is_completed:
        if task.completed_at is None:
            task.completed_at = utcnow()
    else:
        task.completed_at = None


async def update_task(db: AsyncSession, task_id: str, data: TaskUpdate) -> Task:
    task = await _load_task(db, task_id)
    fields = data.model_dump(exclude_none=True)

    status_id = fields.pop("status_id", None)
    if status_id is not None and status_id != task.status_id:
        _move_to_status(task, await _status_in_project(db, status_id, task.project_id))

    assignee_id = fields.get("assignee_id")
    if assignee_id is not None and assignee_id != task.assignee_id:
        await _check_assignee(db, assignee_id)

    parent_id = fields.pop("parent_task_id", None)
    if parent_id is not None and parent_id != task.parent_task_id:
        await _check_parent(db, parent_id, task.project_id, task_id=task.id)
        task.parent_task_id = parent_id

    for key, value in fields.items():
        setattr(task, key, value)

    await attach_labels(db, [task])
    return task


async def update_task_status(db: AsyncSession, task_id: str, status_id: str) -> Task:
    task = await _load_task(db, task_id)
    if status_id != task.status_id:
        _move_to_status(task, await _status_in_project(db, status_id, task.project_id))
    await attach_labels(db, [task])
    return task


async def delete_task(db: AsyncSession, task_id: str) -> None:
    task = await _load_task(db, task_id)
    task.deleted_at = utcnow()
    logger.info("Soft-deleted task %s", task_id)


async def list_tasks(db: AsyncSession, project_id: str, filters: TaskFilters | None = None):
    await get_project(db, project_id)
    filters = filters or TaskFilters()

    query = select(Task).filter(Task.project_id == project_id, Task.deleted_at.is_(None))

    if filters.status_ids:
        query = query.filter(Task.status_id.in_(filters.status_ids))
    if filters.assignee_ids:
        query = query.filter(Task.assignee_id.in_(filters.assignee_ids))
    if filters.priorities:
        query = query.filter(Task.priority.in_(filters.priorities))
    if filters.label_ids:
        labelled = select(TaskLabel.task_id).filter(TaskLabel.label_id.in_(filters.label_ids))
        query = query.filter(Task.id.in_(labelled))
    if filters.search:
        query = query.filter(or_(
            Task.title.icontains(filters.search, autoescape=True),
            Task.description.icontains(filters.search, autoescape=True),
        ))
    if filters.due_from is not None:
        query = query.filter(Task.due_date >= filters.due_from)
    if filters.due_to is not None:
        query = query.filter(Task.due_date <= filters.due_to)

    query = query.order_by(Task.position.asc(), Task.created_at.desc())
    result = await db.execute(query)
    tasks = result.scalars().unique().all()
    return await attach_labels(db, tasks)
