from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ideaforge.core.database import Base


class IdeaSessionRow(Base):
  __tablename__ = "idea_sessions"
  __table_args__ = (Index("ix_idea_sessions_owner_created", "owner_id", "created_at"),)

  session_id: Mapped[str] = mapped_column(String, primary_key=True)
  owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  idea_text: Mapped[str] = mapped_column(Text, nullable=False)
  domain_hint: Mapped[str] = mapped_column(String, nullable=False)
  tone_preference: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, index=True)
  run_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  last_run_ended_at: Mapped[str | None] = mapped_column(String, nullable=True)
  completed_at: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[str] = mapped_column(String, nullable=False)
  updated_at: Mapped[str] = mapped_column(String, nullable=False)

  modules: Mapped[list[SessionModuleRow]] = relationship(back_populates="session", cascade="all, delete-orphan", order_by="SessionModuleRow.position", lazy="selectin")


class SessionModuleRow(Base):
  __tablename__ = "session_modules"
  __table_args__ = (UniqueConstraint("session_id", "module_id", name="ux_session_modules_session_module"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  session_id: Mapped[str] = mapped_column(ForeignKey("idea_sessions.session_id", ondelete="CASCADE"), nullable=False, index=True)
  module_id: Mapped[str] = mapped_column(String, nullable=False)
  position: Mapped[int] = mapped_column(Integer, nullable=False)
  state: Mapped[str] = mapped_column(String, nullable=False, index=True)
  payload: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  error: Mapped[str | None] = mapped_column(Text, nullable=True)
  attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  updated_at: Mapped[str | None] = mapped_column(String, nullable=True)

  session: Mapped[IdeaSessionRow] = relationship(back_populates="modules")
