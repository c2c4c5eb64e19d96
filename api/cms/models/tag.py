"""Tag model and the article_version_tags association table.

usage_count and trending_score are a derived view over published versions,
recomputed in full by the trending refresh (services/trending.py).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow

article_version_tags = Table(
    "article_version_tags",
    Base.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "article_version_id",
        Integer,
        ForeignKey("article_versions.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("created_at", DateTime(timezone=True), default=utcnow, server_default=func.now()),
    UniqueConstraint("article_version_id", "tag_id", name="uq_article_version_tags_version_tag"),
)


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    trending_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    # Decay clock for trending_score. No onupdate: only the trending refresh moves it.
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
