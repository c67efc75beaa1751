import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from projecthub.errors import NotFoundError
from projecthub.models.common import utcnow
from projecthub.models.project import Project
from projecthub.models.task import TaskStatus
from projecthub.models.user import User
from projecthub.schemas.project import ProjectCreate, ProjectUpdate
from projecthub.services import membership
from projecthub.services.organizations import get_organization

logger = logging.getLogger(__name__)

ARCHIVED = "archived"
ACTIVE = "active"

# (name, color, position, is_default, is_completed)
DEFAULT_STATUSES = [
    ("Backlog", "#94a3b8", 1, False, False),
    ("To Do", "#3b82f6", 2, True, False),
    ("In Progress", "#f59e0b", 3, False, False),
    ("In Review", "#8b5cf6", 4, False, False),
    ("Done", "#10b981", 5, False, True),
]


async def get_project(db: AsyncSession, project_id: str) -> Project:
    result = await db.execute(
        select(Project).filter(Project.id == project_id, Project.deleted_at.is_(None))
    )
    project = result.scalars().first()
    if not project:
        raise NotFoundError("Project not found")
    return project


async def create_project(db: AsyncSession, data: ProjectCreate, creator: User) -> Project:
    """Create a project with its owner membership and the default statuses.

    All three writes share the caller's transaction.
    """
    await get_organization(db, data.organization_id)

    project = Project(
        organization_id=data.organization_id,
        team_id=data.team_id,
        name=data.name,
        description=data.description,
        key=data.key,
        color=data.color,
        icon=data.icon,
        visibility=data.visibility or "team",
        status=ACTIVE,
        start_date=data.start_date,
        due_date=data.due_date,
        settings={},
        created_by=creator.id,
    )
    db.add(project)
    await db.flush()

    await membership.add_member(db, membership.PROJECT, project.id, creator, "owner", added_by=creator.id)

    for name, color, position, is_default, is_completed in DEFAULT_STATUSES:
        db.add(TaskStatus(
            project_id=project.id,
            name=name,
            color=color,
            position=position,
            is_default=is_default,
            is_completed=is_completed,
        ))
    await db.flush()

    logger.info("Created project %s in organization %s", project.id, project.organization_id)
    return project


async def list_projects(db: AsyncSession, org_id: str):
    result = await db.execute(
        select(Project)
        .filter(Project.organization_id == org_id, Project.deleted_at.is_(None))
        .order_by(Project.created_at.desc())
    )
    return result.scalars().all()


def changes_archive_state(project: Project, status: str | None) -> bool:
    """True when setting `status` would archive or unarchive the project."""
    return status is not None and status != project.status and ARCHIVED in (status, project.status)


async def update_project(db: AsyncSession, project_id: str, data: ProjectUpdate) -> Project:
    project = await get_project(db, project_id)

    for key, value in data.model_dump(exclude_none=True, exclude={"status"}).items():
        setattr(project, key, value)

    # Moving in or out of "archived" goes through the same path as the
    # dedicated endpoints so status and archived_at never drift apart
    if changes_archive_state(project, data.status):
        if data.status == ARCHIVED:
            _apply_archive(project)
        else:
            project.status = data.status
            project.archived_at = None
    elif data.status is not None:
        project.status = data.status

    return project


async def delete_project(db: AsyncSession, project_id: str) -> None:
    project = await get_project(db, project_id)
    project.deleted_at = utcnow()
    logger.info("Soft-deleted project %s", project_id)


def _apply_archive(project: Project):
    project.status = ARCHIVED
    project.archived_at = utcnow()


async def archive_project(db: AsyncSession, project_id: str) -> Project:
    project = await get_project(db, project_id)
    _apply_archive(project)
    logger.info("Archived project %s", project_id)
    return project


async def unarchive_project(db: AsyncSession, project_id: str) -> Project:
    project = await get_project(db, project_id)
    project.status = ACTIVE
    project.archived_at = None
    logger.info("Unarchived project %s", project_id)
    return project
