from sqlalchemy import Column, String, Boolean, DateTime, Index, text
from projecthub.database import Base
from projecthub.models.common import new_id, utcnow


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        # Email stays unique among live accounts only
        Index(
            "uq_users_email_live", "email", unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    avatar_url = Column(String(500), nullable=True)
    timezone = Column(String(64), nullable=False, default="UTC")
    locale = Column(String(16), nullable=False, default="en")
    email_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
