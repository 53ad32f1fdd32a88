"""
Tag service — CRUD for the Tag aggregate.

Tag names are unique ignoring case.  Rather than relying on a save hook,
every write path calls ``normalize_tag_name`` before touching the
database, so the stored name is always trimmed and lowercase and the
plain unique index on ``tags.name`` is enough to enforce uniqueness.
"""
import logging
import uuid
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.exceptions import TagNameConflictError, UnknownTagsError
from article_api.models import ArticleTag, SectionTag, Tag
from article_api.schemas import TagCreate, TagUpdate

logger = logging.getLogger(__name__)


def normalize_tag_name(name: str) -> str:
    """Return the canonical stored form of a tag name."""
    return name.strip().lower()


def tag_to_dict(tag: Tag) -> dict:
    return {"id": tag.id, "name": tag.name}


async def _find_by_name(db: AsyncSession, name: str) -> Tag | None:
    result = await db.execute(select(Tag).where(Tag.name == name))
    return result.scalar_one_or_none()


async def resolve_tags(db: AsyncSession, tag_ids: Iterable[uuid.UUID]) -> list[Tag]:
    """
    Return the Tag rows for *tag_ids* in the given order.

    Raises ``UnknownTagsError`` listing every id that does not exist.
    """
    tag_ids = list(tag_ids)
    if not tag_ids:
        return []

    result = await db.execute(select(Tag).where(Tag.id.in_(tag_ids)))
    by_id = {tag.id: tag for tag in result.scalars().all()}

    missing = [tag_id for tag_id in tag_ids if tag_id not in by_id]
    if missing:
        raise UnknownTagsError(missing)
    return [by_id[tag_id] for tag_id in tag_ids]


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_tags(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Tag).order_by(Tag.name))
    return [tag_to_dict(t) for t in result.scalars().all()]


async def get_tag(db: AsyncSession, tag_id: uuid.UUID) -> dict | None:
    tag = await db.get(Tag, tag_id)
    return tag_to_dict(tag) if tag else None


async def create_tag(db: AsyncSession, data: TagCreate) -> dict:
    """
    Create a tag under its normalised name.

    Raises ``TagNameConflictError`` when the normalised name is taken.
    """
    name = normalize_tag_name(data.name)
    if await _find_by_name(db, name) is not None:
        logger.debug("Tag create rejected, %r already exists", name)
        raise TagNameConflictError(name)

    tag = Tag(id=uuid.uuid4(), name=name)
    db.add(tag)
    await db.flush()
    return tag_to_dict(tag)


async def update_tag(db: AsyncSession, tag_id: uuid.UUID, data: TagUpdate) -> dict | None:
    """
    Rename a tag.  Returns None when it does not exist.

    Renaming a tag to its own name (in any casing) is allowed; taking
    another tag's name raises ``TagNameConflictError``.
    """
    tag = await db.get(Tag, tag_id)
    if tag is None:
        return None

    name = normalize_tag_name(data.name)
    other = await _find_by_name(db, name)
    if other is not None and other.id != tag.id:
        logger.debug("Tag rename rejected, %r already exists", name)
        raise TagNameConflictError(name)

    tag.name = name
    await db.flush()
    return tag_to_dict(tag)


async def delete_tag(db: AsyncSession, tag_id: uuid.UUID) -> bool:
    """
    Delete a tag and its memberships in articles and sections.

    Returns False when the tag does not exist.
    """
    tag = await db.get(Tag, tag_id)
    if tag is None:
        return False

    await db.execute(delete(ArticleTag).where(ArticleTag.tag_id == tag_id))
    await db.execute(delete(SectionTag).where(SectionTag.tag_id == tag_id))
    await db.delete(tag)
    await db.flush()
    return True
