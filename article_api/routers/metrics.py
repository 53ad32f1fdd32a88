from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from article_api.database import get_db
from article_api.models import Article, ArticleTag, Section, Tag
from article_api.schemas import MetricsResponse

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])

@router.get("", response_model=MetricsResponse)
async def get_metrics(db: AsyncSession = Depends(get_db)):

    total_articles = (await db.execute(select(func.count()).select_from(Article))).scalar_one()

    total_tags = (await db.execute(select(func.count()).select_from(Tag))).scalar_one()

    total_sections = (await db.execute(select(func.count()).select_from(Section))).scalar_one()

    total_links = (await db.execute(select(func.count()).select_from(ArticleTag))).scalar_one()

    avg_tags = total_links / total_articles if total_articles > 0 else 0

    return MetricsResponse(
        total_articles=total_articles,
        total_tags=total_tags,
        total_sections=total_sections,
        avg_tags_per_article=round(avg_tags, 2),
    )
