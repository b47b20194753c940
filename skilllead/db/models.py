"""ORM models backing the SkillLead record store."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin, utcnow

JSONType = JSON


class UserModel(TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_role", "role"),
        Index("ix_users_updated_at", "updated_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    is_guest: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    passphrase_protected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class StudentProfileModel(Base):
    __tablename__ = "student_profiles"
    __table_args__ = (
        Index("ix_student_profiles_user_status", "user_id", "status"),
        Index("ix_student_profiles_updated_at", "updated_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    education: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    projects: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    internships: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    skills: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    interests: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    preferred_locations: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    work_authorization: Mapped[str] = mapped_column(Text, default="", nullable=False)
    preferences: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="draft", nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class ProfessionalProfileModel(Base):
    __tablename__ = "professional_profiles"
    __table_args__ = (
        Index("ix_professional_profiles_user_status", "user_id", "status"),
        Index("ix_professional_profiles_updated_at", "updated_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company: Mapped[str] = mapped_column(Text, default="", nullable=False)
    role: Mapped[str] = mapped_column(Text, default="", nullable=False)
    years_experience: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    domains: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    projects: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    stack: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    certifications: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    skills: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    desired_roles: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    salary_range: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    preferred_locations: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    preferences: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="draft", nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class AnalysisModel(TimestampMixin, Base):
    __tablename__ = "analyses"
    __table_args__ = (
        Index("ix_analyses_user_latest", "user_id", "latest"),
        Index("ix_analyses_user_version", "user_id", "version"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="complete", nullable=False)
    clarifications: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    interests_confirmed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    plans: Mapped[dict] = mapped_column(JSONType, nullable=False)
    plan_a_deep_dive: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    summary: Mapped[str] = mapped_column(Text, default="", nullable=False)
    roadmap: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    latest: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)


class ChatThreadModel(Base):
    __tablename__ = "chat_threads"
    __table_args__ = (Index("ix_chat_threads_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    context_refs: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)


class ChatMessageModel(Base):
    __tablename__ = "chat_messages"
    __table_args__ = (Index("ix_chat_messages_thread_created", "thread_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    thread_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("chat_threads.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    tokens: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    annotations: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)


class AppSettingsModel(Base):
    __tablename__ = "app_settings"
    __table_args__ = (Index("ix_app_settings_updated_at", "updated_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    openai_key_stored: Mapped[str] = mapped_column(String(32), default="none", nullable=False)
    reduce_motion: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    theme: Mapped[str] = mapped_column(String(16), default="system", nullable=False)
    locale: Mapped[str] = mapped_column(String(32), default="en", nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


__all__ = [
    "AnalysisModel",
    "AppSettingsModel",
    "ChatMessageModel",
    "ChatThreadModel",
    "ProfessionalProfileModel",
    "StudentProfileModel",
    "UserModel",
]
