"""SQLAlchemy models for LTI users, courses, and enrollments."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from cclti.db.base import BaseEntity


class UserEntity(BaseEntity):
    """A person as identified by a platform (sub is only unique per issuer)."""

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("sub", "issuer", name="uq_users_sub_issuer"),)

    id: Mapped[str] = mapped_column(String(48), primary_key=True)
    sub: Mapped[str] = mapped_column(String(255), nullable=False)
    issuer: Mapped[str] = mapped_column(String(2048), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    given_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    family_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    picture: Mapped[str] = mapped_column(String(2048), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class CourseEntity(BaseEntity):
    """A platform course context."""

    __tablename__ = "courses"
    __table_args__ = (
        UniqueConstraint("issuer", "context_id", name="uq_courses_issuer_context"),
    )

    id: Mapped[str] = mapped_column(String(48), primary_key=True)
    issuer: Mapped[str] = mapped_column(String(2048), nullable=False)
    context_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(
        String(512), nullable=False, default="Untitled Course"
    )
    label: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class EnrollmentEntity(BaseEntity):
    """A user's role in a course, refreshed on every launch."""

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
    )

    id: Mapped[str] = mapped_column(String(48), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(48), ForeignKey("users.id"), nullable=False
    )
    course_id: Mapped[str] = mapped_column(
        String(48), ForeignKey("courses.id"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="student")
    last_seen: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
