"""
Article service — business logic for the Article aggregate.

Design notes
------------
- Tags are attached through ``ArticleTag`` link rows carrying a
  ``position``, so an article's tags always come back in the order the
  client sent them.
- Relationships are ``lazy="raise"``; every read goes through
  ``_article_query`` which eager-loads links and their tags with
  ``selectinload``.  After a write the article is re-read with
  ``populate_existing`` so the returned dict reflects what was stored.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from article_api.models import Article, ArticleTag
from article_api.schemas import ArticleCreate, ArticleUpdate
from article_api.services.tag_service import resolve_tags, tag_to_dict


# ---------------------------------------------------------------------------
# Query / serialisation helpers
# ---------------------------------------------------------------------------

def _article_query():
    return select(Article).options(
        selectinload(Article.tag_links).selectinload(ArticleTag.tag)
    )


def article_to_dict(article: Article) -> dict:
    """Serialise an Article with its ordered tags to a plain dict."""
    return {
        "id": article.id,
        "title": article.title,
        "content": article.content,
        "created_at": article.created_at,
        "updated_at": article.updated_at,
        "tags": [tag_to_dict(t) for t in article.tags if t is not None],
    }


def _links_for(tag_ids: list[uuid.UUID]) -> list[ArticleTag]:
    return [ArticleTag(tag_id=tag_id, position=index) for index, tag_id in enumerate(tag_ids)]


async def load_articles(db: AsyncSession) -> list[Article]:
    """Return every article with its tags loaded, oldest first."""
    q = (
        _article_query()
        .order_by(Article.created_at, Article.id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return list(result.scalars().all())


async def _load_article(db: AsyncSession, article_id: uuid.UUID) -> Article | None:
    q = (
        _article_query()
        .where(Article.id == article_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def get_articles(db: AsyncSession) -> list[dict]:
    return [article_to_dict(a) for a in await load_articles(db)]


async def get_article(db: AsyncSession, article_id: uuid.UUID) -> dict | None:
    article = await _load_article(db, article_id)
    return article_to_dict(article) if article else None


async def create_article(db: AsyncSession, data: ArticleCreate) -> dict:
    """
    Create an article and return its dict.

    Raises ``UnknownTagsError`` when any of ``data.tag_ids`` is missing.
    """
    await resolve_tags(db, data.tag_ids)

    article = Article(
        id=uuid.uuid4(),
        title=data.title.strip(),
        content=data.content,
        created_at=datetime.now(timezone.utc),
        tag_links=_links_for(data.tag_ids),
    )
    db.add(article)
    await db.flush()

    return article_to_dict(await _load_article(db, article.id))


async def update_article(
    db: AsyncSession, article_id: uuid.UUID, data: ArticleUpdate
) -> dict | None:
    """
    Replace title, content and tags of an article.

    Returns None when the article does not exist; raises
    ``UnknownTagsError`` for missing tags.
    """
    article = await _load_article(db, article_id)
    if article is None:
        return None

    await resolve_tags(db, data.tag_ids)

    article.title = data.title.strip()
    article.content = data.content
    article.updated_at = datetime.now(timezone.utc)

    # Old links must be gone before rows with the same key are re-added.
    article.tag_links.clear()
    await db.flush()
    article.tag_links.extend(_links_for(data.tag_ids))
    await db.flush()

    return article_to_dict(await _load_article(db, article_id))


async def delete_article(db: AsyncSession, article_id: uuid.UUID) -> bool:
    """Delete an article and its tag links.  False when it does not exist."""
    article = await db.get(Article, article_id)
    if article is None:
        return False

    await db.execute(delete(ArticleTag).where(ArticleTag.article_id == article_id))
    await db.delete(article)
    await db.flush()
    return True
