"""
Section service — CRUD, ranked listing, per-section article lists and
auto-derivation.

Design notes
------------
- All matching, ranking and derivation rules live in
  ``article_api.sectioning``; this module only loads the snapshot those
  pure functions need and persists what they return.
- "Articles in a section" and the ranking counts use the same
  ``matches_section`` primitive, evaluated in memory over the loaded
  articles.
- Auto-derivation persists its batch with one flush.  Concurrent runs
  can race for the same tag set; the unique ``sections.derived_key``
  column makes the loser fail, and the loser re-derives once against
  the winner's rows, which then yields nothing for that tag set.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from article_api import sectioning
from article_api.models import Section, SectionTag
from article_api.schemas import SectionCreate
from article_api.services.article_service import article_to_dict, load_articles
from article_api.services.tag_service import resolve_tags, tag_to_dict

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Query / serialisation helpers
# ---------------------------------------------------------------------------

def _section_query():
    return select(Section).options(
        selectinload(Section.tag_links).selectinload(SectionTag.tag)
    )


def section_to_dict(section: Section) -> dict:
    return {
        "id": section.id,
        "title": section.title,
        "tags": [tag_to_dict(t) for t in section.tags if t is not None],
    }


async def load_sections(db: AsyncSession) -> list[Section]:
    """Return every section with its tags loaded, oldest first."""
    q = (
        _section_query()
        .order_by(Section.created_at, Section.id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return list(result.scalars().all())


async def _load_section(db: AsyncSession, section_id: uuid.UUID) -> Section | None:
    q = (
        _section_query()
        .where(Section.id == section_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_sections(db: AsyncSession) -> list[dict]:
    """Return all sections, those matching the most articles first."""
    sections = await load_sections(db)
    articles = await load_articles(db)
    return [section_to_dict(s) for s in sectioning.rank_sections(sections, articles)]


async def get_section(db: AsyncSession, section_id: uuid.UUID) -> dict | None:
    section = await _load_section(db, section_id)
    return section_to_dict(section) if section else None


async def create_section(db: AsyncSession, data: SectionCreate) -> dict:
    """
    Create a user-defined section with an arbitrary tag set.

    Raises ``UnknownTagsError`` when any of ``data.tag_ids`` is missing.
    """
    await resolve_tags(db, data.tag_ids)

    section = Section(
        id=uuid.uuid4(),
        title=data.title,
        created_at=datetime.now(timezone.utc),
        tag_links=[
            SectionTag(tag_id=tag_id, position=index)
            for index, tag_id in enumerate(data.tag_ids)
        ],
    )
    db.add(section)
    await db.flush()

    return section_to_dict(await _load_section(db, section.id))


async def delete_section(db: AsyncSession, section_id: uuid.UUID) -> bool:
    section = await db.get(Section, section_id)
    if section is None:
        return False

    await db.execute(delete(SectionTag).where(SectionTag.section_id == section_id))
    await db.delete(section)
    await db.flush()
    return True


async def get_section_articles(db: AsyncSession, section_id: uuid.UUID) -> list[dict] | None:
    """
    Return the articles whose tag set equals the section's.

    Returns None when the section does not exist.
    """
    section = await _load_section(db, section_id)
    if section is None:
        return None

    articles = await load_articles(db)
    return [article_to_dict(a) for a in sectioning.articles_in_section(section, articles)]


async def _derive_and_persist(db: AsyncSession) -> list[Section]:
    articles = await load_articles(db)
    existing = await load_sections(db)

    created = sectioning.derive_sections(articles, existing)
    # Distinct timestamps keep the batch in first-appearance order.
    now = datetime.now(timezone.utc)
    for offset, section in enumerate(created):
        section.created_at = now + timedelta(microseconds=offset)
    if created:
        db.add_all(created)
        await db.flush()
    return created


async def auto_create_sections(db: AsyncSession) -> list[dict]:
    """
    Create one section per distinct article tag set not yet covered by
    any section, and return the new sections.

    Safe to re-run: a second call on unchanged data creates nothing.
    """
    try:
        created = await _derive_and_persist(db)
    except IntegrityError:
        # Another request inserted one of our tag sets first.
        logger.warning("Section auto-derivation raced another run, retrying once")
        await db.rollback()
        created = await _derive_and_persist(db)

    logger.info("Auto-derived %d new section(s)", len(created))
    return [section_to_dict(s) for s in created]
