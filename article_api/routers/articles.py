import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from article_api.database import get_db
from article_api.exceptions import UnknownTagsError
from article_api.schemas import ArticleCreate, ArticleResponse, ArticleUpdate
from article_api.services import article_service

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])

@router.get("", response_model=list[ArticleResponse])
async def list_articles(db: AsyncSession = Depends(get_db)):
    return await article_service.get_articles(db)

@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(article_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    article = await article_service.get_article(db, article_id)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return article

@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(data: ArticleCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await article_service.create_article(db, data)
    except UnknownTagsError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(article_id: uuid.UUID, data: ArticleUpdate, db: AsyncSession = Depends(get_db)):
    try:
        article = await article_service.update_article(db, article_id, data)
    except UnknownTagsError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return article

@router.delete("/{article_id}", status_code=204)
async def delete_article(article_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    deleted = await article_service.delete_article(db, article_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Article not found")
