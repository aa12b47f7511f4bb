"""
SQLAlchemy 2.0 models for the remote relational store.

Uses modern declarative syntax with Mapped[] type annotations. Column types
are the portable SQLAlchemy ones so the same metadata serves Postgres in
production and SQLite in tests. Table names are the names the stores query.
"""

import datetime as dt
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from certtrack.db.base import Base


class User(Base):
    """
    Profile row written at sign-up.

    Identity lives with the identity provider; this table only keeps the
    display name alongside the e-mail.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class UserSkill(Base):
    """
    A user's rank for one catalog skill.

    category_name/skill_name are copies of the catalog labels at write time.
    """

    __tablename__ = "user_skills"
    __table_args__ = (
        UniqueConstraint("user_id", "skill_id", name="unique_user_skill"),
        Index("idx_user_skills_user_updated_at", "user_id", "updated_at"),
        CheckConstraint(
            "status IN ('completed', 'in-progress', 'not-started')",
            name="valid_skill_status",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    skill_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category_name: Mapped[str] = mapped_column(String(255), nullable=False)
    skill_name: Mapped[str] = mapped_column(String(255), nullable=False)
    rank: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="not-started")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class SAO(Base):
    """Situation-Action-Outcome narrative entry."""

    __tablename__ = "saos"
    __table_args__ = (
        Index("idx_saos_user_created_at", "user_id", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    sao_skills: Mapped[list["SAOSkill"]] = relationship(
        "SAOSkill", back_populates="sao", cascade="all, delete-orphan", passive_deletes=True
    )


class SAOSkill(Base):
    """Link between an SAO and a catalog skill, with the labels snapshotted."""

    __tablename__ = "sao_skills"
    __table_args__ = (
        UniqueConstraint("sao_id", "skill_id", name="unique_sao_skill"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    sao_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("saos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    skill_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category_name: Mapped[str] = mapped_column(String(255), nullable=False)
    skill_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relationships
    sao: Mapped["SAO"] = relationship("SAO", back_populates="sao_skills")


class Document(Base):
    """Supporting document metadata; the file itself lives in blob storage."""

    __tablename__ = "documents"
    __table_args__ = (
        Index("idx_documents_user_created_at", "user_id", "created_at"),
        CheckConstraint(
            "status IN ('draft', 'submitted', 'approved')",
            name="valid_document_status",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    related_skill_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    related_experience_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Deadline(Base):
    """Dated milestone shown on the dashboard."""

    __tablename__ = "deadlines"
    __table_args__ = (
        Index("idx_deadlines_user_date", "user_id", "date"),
        CheckConstraint("priority IN ('high', 'medium', 'low')", name="valid_priority"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="other")
    related_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class Experience(Base):
    """Work experience record; only its two review flags feed the progress figure."""

    __tablename__ = "experiences"
    __table_args__ = (
        Index("idx_experiences_user_flags", "user_id", "is_documented", "supervisor_approved"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    is_documented: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    supervisor_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
