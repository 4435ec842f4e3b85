"""SQLAlchemy declarative base for all ORM models."""

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all database models."""


class ContentItemModel(Base):
    """Query mirror of content items.

    The per-category JSON files are authoritative; rows here are replaced
    per category whenever that category is flushed.
    """

    __tablename__ = "content_items"

    category_id: Mapped[str] = mapped_column(String, primary_key=True)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    form_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    # "|tag1|tag2|", matched with LIKE '%|tag|%'
    metadata_text: Mapped[str] = mapped_column("metadata", Text, nullable=False, default="||")
    preview_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_on: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (Index("ix_content_items_id", "id"),)
