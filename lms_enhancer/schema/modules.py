from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms_enhancer.core.database import Base


class Profession(Base):
  __tablename__ = "professions"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  name: Mapped[str] = mapped_column(String, nullable=False)

  subjects: Mapped[list[Subject]] = relationship(back_populates="profession")


class Subject(Base):
  __tablename__ = "subjects"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  profession_id: Mapped[int] = mapped_column(Integer, ForeignKey("professions.id"), nullable=False)
  name: Mapped[str] = mapped_column(String, nullable=False)

  profession: Mapped[Profession] = relationship(back_populates="subjects")
  modules: Mapped[list[Module]] = relationship(back_populates="subject")


class Module(Base):
  __tablename__ = "modules"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  subject_id: Mapped[int] = mapped_column(Integer, ForeignKey("subjects.id"), nullable=False, index=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  content: Mapped[str] = mapped_column(Text, nullable=False)
  concise_content: Mapped[str | None] = mapped_column(Text, nullable=True)
  detailed_content: Mapped[str | None] = mapped_column(Text, nullable=True)
  key_concepts_data: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONB, nullable=True)
  module_number: Mapped[int] = mapped_column(Integer, nullable=False)
  is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
  updated_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=False), nullable=True, server_default=func.now())

  subject: Mapped[Subject] = relationship(back_populates="modules")
