from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator
from projecthub.schemas.common import sanitize_string
from projecthub.schemas.user import UserSummary

VISIBILITY_PATTERN = r"^(private|team|organization)$"
STATUS_PATTERN = r"^(active|on_hold|archived|completed)$"
PROJECT_ROLE_PATTERN = r"^(owner|editor|viewer)$"


class ProjectCreate(BaseModel):
    organization_id: str
    team_id: str | None = None
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    key: str | None = Field(None, max_length=10)
    color: str | None = Field(None, max_length=20)
    icon: str | None = Field(None, max_length=100)
    visibility: str | None = Field(None, pattern=VISIBILITY_PATTERN)
    start_date: date | None = None
    due_date: date | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class ProjectUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    color: str | None = Field(None, max_length=20)
    icon: str | None = Field(None, max_length=100)
    visibility: str | None = Field(None, pattern=VISIBILITY_PATTERN)
    status: str | None = Field(None, pattern=STATUS_PATTERN)
    start_date: date | None = None
    due_date: date | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class Project(BaseModel):
    id: str
    organization_id: str
    team_id: str | None = None
    name: str
    description: str | None = None
    key: str | None = None
    color: str | None = None
    icon: str | None = None
    visibility: str
    status: str
    start_date: date | None = None
    due_date: date | None = None
    settings: dict = {}
    created_by: str
    archived_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


# ── Members ─────────────────────────────────────────────

class ProjectMemberAdd(BaseModel):
    user_id: str
    role: str = Field(..., pattern=PROJECT_ROLE_PATTERN)


class ProjectMemberRoleUpdate(BaseModel):
    role: str = Field(..., pattern=PROJECT_ROLE_PATTERN)


class ProjectMember(BaseModel):
    id: str
    project_id: str
    user_id: str
    role: str
    added_by: str | None = None
    created_at: datetime | None = None
    user: UserSummary | None = None

    class Config:
        from_attributes = True
