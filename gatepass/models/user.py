"""
User directory model.

Rows are provisioned by the identity provider; the workflow only reads
them to resolve departments, affiliations and parent contacts.
"""

from typing import Optional

from sqlalchemy import Boolean, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from gatepass.models.base import BaseModel, StudentType, UserRole, enum_values


class User(BaseModel):
    """Campus user (student, staff member or parent)."""

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_role_department", "role", "department"),
    )

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        index=True,
    )

    # Required for students, mentors and HODs
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    student_affiliation: Mapped[Optional[StudentType]] = mapped_column(
        Enum(StudentType, native_enum=False, length=20, values_callable=enum_values),
        nullable=True,
        comment="Students only",
    )

    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    parent_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Parent account linked to a student",
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
