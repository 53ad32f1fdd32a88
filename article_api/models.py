from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from article_api.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Tag
# ---------------------------------------------------------------------------
class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Stored already normalised (see tag_service.normalize_tag_name), so a
    # plain unique index gives case-insensitive uniqueness.
    name: Mapped[str] = mapped_column(String(256), unique=True, nullable=False, index=True)


# ---------------------------------------------------------------------------
# Ordered association objects: Article <-> Tag, Section <-> Tag
# ---------------------------------------------------------------------------
class ArticleTag(Base):
    __tablename__ = "article_tags"

    article_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    tag: Mapped["Tag"] = relationship("Tag", lazy="raise")


class SectionTag(Base):
    __tablename__ = "section_tags"

    section_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("sections.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    tag: Mapped["Tag"] = relationship("Tag", lazy="raise")


class TaggedMixin:
    """
    Read-only views over ``tag_links`` shared by Article and Section.

    ``tag_links`` is ordered by ``position``, so both properties preserve
    the order the tags were given in.
    """

    @property
    def tag_ids(self) -> list[uuid.UUID]:
        return [link.tag_id for link in self.tag_links]

    @property
    def tags(self) -> list[Tag]:
        return [link.tag for link in self.tag_links]


# ---------------------------------------------------------------------------
# Article
# ---------------------------------------------------------------------------
class Article(TaggedMixin, Base):
    __tablename__ = "articles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # lazy="raise" everywhere; services load links and their tags explicitly.
    tag_links: Mapped[List["ArticleTag"]] = relationship(
        "ArticleTag",
        order_by="ArticleTag.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )


# ---------------------------------------------------------------------------
# Section
# ---------------------------------------------------------------------------
class Section(TaggedMixin, Base):
    __tablename__ = "sections"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(1024), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )
    # Digest of the tag set, filled only for auto-derived sections.  The
    # unique constraint stops two concurrent derivations from inserting the
    # same tag set; NULLs (user-created sections) never collide.
    derived_key: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)

    tag_links: Mapped[List["SectionTag"]] = relationship(
        "SectionTag",
        order_by="SectionTag.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )
