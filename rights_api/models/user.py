import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from rights_api.database import Base


USER_ROLES = ("Admin", "Legal", "Finance", "Sales Manager", "Sales")


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    # NULL until an invited user accepts and sets a password
    password_hash: Mapped[Optional[str]] = mapped_column(String(255))
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="Sales")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    invite_token: Mapped[Optional[str]] = mapped_column(String(255))
    invite_token_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime)
    invite_status: Mapped[Optional[str]] = mapped_column(String(20))
    reset_token: Mapped[Optional[str]] = mapped_column(String(255))
    reset_token_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_users_email", "email"),
        Index("idx_users_role", "role"),
        Index("idx_users_invite_token", "invite_token"),
        Index("idx_users_reset_token", "reset_token"),
    )
