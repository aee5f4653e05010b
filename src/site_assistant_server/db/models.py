"""
SQLAlchemy Models

Defines the database schema for answered assistant questions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Answer Record Model
# ---------------------------------------------------------------------

class AnswerRecordRow(Base):
    """
    One answered assistant question.

    Written after each successful generation; never read back by the
    request path.
    """
    __tablename__ = "assistant_answer"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    query: Mapped[str] = mapped_column(Text, nullable=False)
    knowledge_found: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    article_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    article_section: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    response_text: Mapped[str] = mapped_column(Text, nullable=False)
    client_ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    country_code: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    __table_args__ = (
        Index("idx_answer_created", "created_at"),
    )
