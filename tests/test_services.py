"""
Direct service-layer tests — exercises business logic without HTTP overhead.

These call service functions with a live session to cover the query
paths (eager loading, link rewriting, referential cleanup) that the pure
``sectioning`` tests cannot reach.
"""
import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.ext.asyncio import AsyncSession

from article_api.exceptions import TagNameConflictError, UnknownTagsError
from article_api.models import Article, ArticleTag, Section, SectionTag
from article_api.schemas import ArticleCreate, ArticleUpdate, SectionCreate, TagCreate, TagUpdate
from article_api.services import article_service, section_service, tag_service


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _tags(db: AsyncSession, *names: str) -> list[uuid.UUID]:
    return [(await tag_service.create_tag(db, TagCreate(name=n)))["id"] for n in names]


async def _article(db: AsyncSession, tag_ids: list[uuid.UUID], title: str = "Article") -> dict:
    return await article_service.create_article(
        db, ArticleCreate(title=title, content="Body", tag_ids=tag_ids)
    )


# ---------------------------------------------------------------------------
# tag_service
# ---------------------------------------------------------------------------

def test_normalize_tag_name():
    assert tag_service.normalize_tag_name("  PyThOn ") == "python"


@pytest.mark.asyncio
async def test_create_tag_stores_normalised_name(db_session: AsyncSession):
    tag = await tag_service.create_tag(db_session, TagCreate(name="  FastAPI  "))
    assert tag["name"] == "fastapi"


@pytest.mark.asyncio
async def test_create_tag_conflict_is_case_insensitive(db_session: AsyncSession):
    await tag_service.create_tag(db_session, TagCreate(name="Python"))
    with pytest.raises(TagNameConflictError):
        await tag_service.create_tag(db_session, TagCreate(name="PYTHON "))


@pytest.mark.asyncio
async def test_update_tag_to_own_name_in_other_case(db_session: AsyncSession):
    (tag_id,) = await _tags(db_session, "python")
    result = await tag_service.update_tag(db_session, tag_id, TagUpdate(name="Python"))
    assert result == {"id": tag_id, "name": "python"}


@pytest.mark.asyncio
async def test_update_tag_conflict_with_other_tag(db_session: AsyncSession):
    python_id, _ = await _tags(db_session, "python", "rust")
    with pytest.raises(TagNameConflictError):
        await tag_service.update_tag(db_session, python_id, TagUpdate(name="Rust"))


@pytest.mark.asyncio
async def test_update_missing_tag_returns_none(db_session: AsyncSession):
    assert await tag_service.update_tag(db_session, uuid.uuid4(), TagUpdate(name="x")) is None


@pytest.mark.asyncio
async def test_resolve_tags_reports_missing_ids(db_session: AsyncSession):
    (known,) = await _tags(db_session, "known")
    missing = uuid.uuid4()
    with pytest.raises(UnknownTagsError) as excinfo:
        await tag_service.resolve_tags(db_session, [known, missing])
    assert excinfo.value.missing == [missing]


@pytest.mark.asyncio
async def test_delete_tag_removes_memberships(db_session: AsyncSession):
    keep_id, drop_id = await _tags(db_session, "keep", "drop")
    article = await _article(db_session, [keep_id, drop_id])
    await section_service.create_section(
        db_session, SectionCreate(title="Both", tag_ids=[keep_id, drop_id])
    )

    assert await tag_service.delete_tag(db_session, drop_id) is True

    detail = await article_service.get_article(db_session, article["id"])
    assert [t["name"] for t in detail["tags"]] == ["keep"]
    remaining = await db_session.execute(
        select(func.count()).select_from(SectionTag).where(SectionTag.tag_id == drop_id)
    )
    assert remaining.scalar_one() == 0


@pytest.mark.asyncio
async def test_delete_missing_tag_returns_false(db_session: AsyncSession):
    assert await tag_service.delete_tag(db_session, uuid.uuid4()) is False


# ---------------------------------------------------------------------------
# article_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_article_preserves_tag_order(db_session: AsyncSession):
    a, b, c = await _tags(db_session, "a", "b", "c")
    article = await _article(db_session, [c, a, b], title="  Ordered  ")

    assert article["title"] == "Ordered"
    assert [t["name"] for t in article["tags"]] == ["c", "a", "b"]
    assert article["created_at"] is not None
    assert article["updated_at"] is None


@pytest.mark.asyncio
async def test_create_article_with_unknown_tag_raises(db_session: AsyncSession):
    (known,) = await _tags(db_session, "known")
    with pytest.raises(UnknownTagsError):
        await _article(db_session, [known, uuid.uuid4()])


@pytest.mark.asyncio
async def test_update_article_replaces_tags(db_session: AsyncSession):
    a, b, c = await _tags(db_session, "a", "b", "c")
    article = await _article(db_session, [a, b])

    updated = await article_service.update_article(
        db_session,
        article["id"],
        ArticleUpdate(title="New title", content="New body", tag_ids=[b, c, a]),
    )

    assert updated["title"] == "New title"
    assert updated["content"] == "New body"
    assert updated["updated_at"] is not None
    assert [t["name"] for t in updated["tags"]] == ["b", "c", "a"]


@pytest.mark.asyncio
async def test_update_missing_article_returns_none(db_session: AsyncSession):
    (a,) = await _tags(db_session, "a")
    data = ArticleUpdate(title="t", content="c", tag_ids=[a])
    assert await article_service.update_article(db_session, uuid.uuid4(), data) is None


@pytest.mark.asyncio
async def test_delete_article_removes_links(db_session: AsyncSession):
    (a,) = await _tags(db_session, "a")
    article = await _article(db_session, [a])

    assert await article_service.delete_article(db_session, article["id"]) is True
    assert await article_service.get_article(db_session, article["id"]) is None
    links = await db_session.execute(select(func.count()).select_from(ArticleTag))
    assert links.scalar_one() == 0


@pytest.mark.asyncio
async def test_delete_missing_article_returns_false(db_session: AsyncSession):
    assert await article_service.delete_article(db_session, uuid.uuid4()) is False


# ---------------------------------------------------------------------------
# section_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_section_preserves_tag_order(db_session: AsyncSession):
    a, b = await _tags(db_session, "a", "b")
    section = await section_service.create_section(
        db_session, SectionCreate(title="Mine", tag_ids=[b, a])
    )
    assert section["title"] == "Mine"
    assert [t["name"] for t in section["tags"]] == ["b", "a"]


@pytest.mark.asyncio
async def test_create_section_with_unknown_tag_raises(db_session: AsyncSession):
    with pytest.raises(UnknownTagsError):
        await section_service.create_section(
            db_session, SectionCreate(title="Bad", tag_ids=[uuid.uuid4()])
        )


@pytest.mark.asyncio
async def test_get_section_articles_exact_match_only(db_session: AsyncSession):
    a, b, c = await _tags(db_session, "a", "b", "c")
    await _article(db_session, [a, b], title="exact")
    await _article(db_session, [b, a], title="exact reversed")
    await _article(db_session, [a], title="subset")
    await _article(db_session, [a, b, c], title="superset")
    section = await section_service.create_section(
        db_session, SectionCreate(title="AB", tag_ids=[a, b])
    )

    articles = await section_service.get_section_articles(db_session, section["id"])
    assert sorted(x["title"] for x in articles) == ["exact", "exact reversed"]


@pytest.mark.asyncio
async def test_get_section_articles_for_untagged_section_is_empty(db_session: AsyncSession):
    (a,) = await _tags(db_session, "a")
    await _article(db_session, [a])
    section = await section_service.create_section(db_session, SectionCreate(title="Empty"))

    assert await section_service.get_section_articles(db_session, section["id"]) == []


@pytest.mark.asyncio
async def test_get_section_articles_missing_section(db_session: AsyncSession):
    assert await section_service.get_section_articles(db_session, uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_get_sections_ranked_by_article_count(db_session: AsyncSession):
    a, b, c = await _tags(db_session, "a", "b", "c")
    await _article(db_session, [b])
    await _article(db_session, [c])
    await _article(db_session, [c])
    for title, tag in (("A", a), ("B", b), ("C", c)):
        await section_service.create_section(db_session, SectionCreate(title=title, tag_ids=[tag]))

    sections = await section_service.get_sections(db_session)
    assert [s["title"] for s in sections] == ["C", "B", "A"]


@pytest.mark.asyncio
async def test_auto_create_sections_groups_by_tag_set(db_session: AsyncSession):
    t1, t2, t3 = await _tags(db_session, "t1", "t2", "t3")
    await _article(db_session, [t1, t2])
    await _article(db_session, [t2, t1])
    await _article(db_session, [t3])

    created = await section_service.auto_create_sections(db_session)

    assert sorted(s["title"] for s in created) == ["t1,t2", "t3"]
    stored = await db_session.execute(select(func.count()).select_from(Section))
    assert stored.scalar_one() == 2


@pytest.mark.asyncio
async def test_auto_create_sections_twice_creates_nothing_new(db_session: AsyncSession):
    t1, t2 = await _tags(db_session, "t1", "t2")
    await _article(db_session, [t1, t2])
    await _article(db_session, [t2])

    first = await section_service.auto_create_sections(db_session)
    second = await section_service.auto_create_sections(db_session)

    assert len(first) == 2
    assert second == []


@pytest.mark.asyncio
async def test_auto_create_sections_respects_user_sections(db_session: AsyncSession):
    t1, t2 = await _tags(db_session, "t1", "t2")
    await _article(db_session, [t1, t2])
    await section_service.create_section(
        db_session, SectionCreate(title="Handmade", tag_ids=[t2, t1])
    )

    assert await section_service.auto_create_sections(db_session) == []


@pytest.mark.asyncio
async def test_auto_created_section_lists_its_articles(db_session: AsyncSession):
    t1, t2 = await _tags(db_session, "t1", "t2")
    await _article(db_session, [t2, t1], title="only")

    (section,) = await section_service.auto_create_sections(db_session)
    assert section["title"] == "t2,t1"

    articles = await section_service.get_section_articles(db_session, section["id"])
    assert [a["title"] for a in articles] == ["only"]


@pytest.mark.asyncio
async def test_delete_section(db_session: AsyncSession):
    (a,) = await _tags(db_session, "a")
    section = await section_service.create_section(
        db_session, SectionCreate(title="Gone", tag_ids=[a])
    )

    assert await section_service.delete_section(db_session, section["id"]) is True
    assert await section_service.get_section(db_session, section["id"]) is None
    assert await section_service.delete_section(db_session, section["id"]) is False


@pytest.mark.asyncio
async def test_get_sections_ties_keep_creation_order(db_session: AsyncSession):
    titles = [f"s{i}" for i in range(8)]
    for title in titles:
        await section_service.create_section(db_session, SectionCreate(title=title))

    sections = await section_service.get_sections(db_session)
    assert [s["title"] for s in sections] == titles


@pytest.mark.asyncio
async def test_auto_created_sections_listed_in_first_appearance_order(db_session: AsyncSession):
    tag_ids = await _tags(db_session, *[f"t{i}" for i in range(6)])
    for tag_id in tag_ids:
        await _article(db_session, [tag_id])

    created = await section_service.auto_create_sections(db_session)
    assert [s["title"] for s in created] == [f"t{i}" for i in range(6)]

    sections = await section_service.get_sections(db_session)
    assert [s["title"] for s in sections] == [f"t{i}" for i in range(6)]


# ---------------------------------------------------------------------------
# Relationship loading
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_unloaded_tag_links_raise_instead_of_reading_empty(db_session: AsyncSession):
    (a,) = await _tags(db_session, "a")
    article = await _article(db_session, [a])
    db_session.expunge_all()

    bare = await db_session.get(Article, article["id"])
    with pytest.raises(InvalidRequestError):
        bare.tag_links

    loaded = await article_service.load_articles(db_session)
    assert loaded[0].tag_ids == [a]
