from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from projecthub.schemas.common import sanitize_string, HEX_COLOR
from projecthub.schemas.user import UserSummary

PRIORITY_PATTERN = r"^(urgent|high|medium|low|none)$"


# ── Status schemas ──────────────────────────────────────

class TaskStatusCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(..., pattern=HEX_COLOR)
    position: int

    @field_validator("name", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class TaskStatusUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = Field(None, pattern=HEX_COLOR)
    position: int | None = None
    is_default: bool | None = None
    is_completed: bool | None = None

    @field_validator("name", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class TaskStatus(BaseModel):
    id: str
    project_id: str
    name: str
    color: str
    position: int
    is_default: bool
    is_completed: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


# ── Label schemas ───────────────────────────────────────

class LabelCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(..., pattern=HEX_COLOR)
    description: str | None = None
    project_id: str | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class Label(BaseModel):
    id: str
    organization_id: str
    project_id: str | None = None
    name: str
    color: str
    description: str | None = None
    created_by: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True


# ── Task schemas ────────────────────────────────────────

class TaskFields(BaseModel):
    """Task creation body when the project comes from the URL."""
    parent_task_id: str | None = None
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    status_id: str
    priority: str | None = Field(None, pattern=PRIORITY_PATTERN)
    assignee_id: str | None = None
    start_date: date | None = None
    due_date: date | None = None
    estimated_hours: float | None = Field(None, ge=0)
    custom_fields: dict | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class TaskCreate(TaskFields):
    project_id: str


class TaskUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    status_id: str | None = None
    priority: str | None = Field(None, pattern=PRIORITY_PATTERN)
    assignee_id: str | None = None
    parent_task_id: str | None = None
    start_date: date | None = None
    due_date: date | None = None
    estimated_hours: float | None = Field(None, ge=0)
    position: float | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class TaskStatusChange(BaseModel):
    status_id: str


class TaskFilters(BaseModel):
    status_ids: list[str] = Field(default_factory=list)
    assignee_ids: list[str] = Field(default_factory=list)
    priorities: list[str] = Field(default_factory=list)
    label_ids: list[str] = Field(default_factory=list)
    search: str | None = None
    due_from: date | None = None
    due_to: date | None = None


class Task(BaseModel):
    id: str
    project_id: str
    parent_task_id: str | None = None
    title: str
    description: str | None = None
    task_number: int
    status_id: str
    priority: str
    assignee_id: str | None = None
    reporter_id: str
    start_date: date | None = None
    due_date: date | None = None
    completed_at: datetime | None = None
    estimated_hours: float | None = None
    actual_hours: float
    position: float
    custom_fields: dict = {}
    created_by: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    status: TaskStatus | None = None
    labels: list[Label] = []

    class Config:
        from_attributes = True


# ── Comment schemas ─────────────────────────────────────

class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1)
    parent_comment_id: str | None = None

    @field_validator("content", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1)

    @field_validator("content", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class Comment(BaseModel):
    id: str
    task_id: str
    user_id: str
    content: str
    parent_comment_id: str | None = None
    is_edited: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    user: UserSummary | None = None

    class Config:
        from_attributes = True
