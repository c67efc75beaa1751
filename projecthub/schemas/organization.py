from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator
from projecthub.schemas.common import sanitize_string
from projecthub.schemas.user import UserSummary

ORG_ROLE_PATTERN = r"^(owner|admin|member)$"


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9]+$")
    description: str | None = None
    logo_url: str | None = Field(None, max_length=500)
    parent_id: str | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class OrganizationUpdate(BaseModel):
    """Only these fields are mutable; slug and placement in the tree are fixed."""
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    logo_url: str | None = Field(None, max_length=500)

    @field_validator("name", "description", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class Organization(BaseModel):
    id: str
    parent_id: str | None = None
    name: str
    slug: str
    description: str | None = None
    logo_url: str | None = None
    depth: int
    path: str | None = None
    settings: dict = {}
    created_by: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


# ── Members ─────────────────────────────────────────────

class OrganizationMemberAdd(BaseModel):
    email: EmailStr
    role: str = Field(..., pattern=ORG_ROLE_PATTERN)


class OrganizationMemberRoleUpdate(BaseModel):
    role: str = Field(..., pattern=ORG_ROLE_PATTERN)


class OrganizationMember(BaseModel):
    id: str
    organization_id: str
    user_id: str
    role: str
    invited_by: str | None = None
    invited_at: datetime | None = None
    joined_at: datetime | None = None
    created_at: datetime | None = None
    user: UserSummary | None = None

    class Config:
        from_attributes = True
