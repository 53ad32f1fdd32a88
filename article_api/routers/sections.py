import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from article_api.database import get_db
from article_api.exceptions import UnknownTagsError
from article_api.schemas import ArticleResponse, AutoSectionsResponse, SectionCreate, SectionResponse
from article_api.services import section_service

router = APIRouter(prefix="/api/v1/sections", tags=["sections"])

@router.get("", response_model=list[SectionResponse])
async def list_sections(db: AsyncSession = Depends(get_db)):
    return await section_service.get_sections(db)

# Declared before "/{section_id}" routes so "auto" is never parsed as an id.
@router.post("/auto", response_model=AutoSectionsResponse)
async def auto_create_sections(db: AsyncSession = Depends(get_db)):
    created = await section_service.auto_create_sections(db)
    return {"created": len(created), "sections": created}

@router.get("/{section_id}", response_model=SectionResponse)
async def get_section(section_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    section = await section_service.get_section(db, section_id)
    if not section:
        raise HTTPException(status_code=404, detail="Section not found")
    return section

@router.post("", status_code=201, response_model=SectionResponse)
async def create_section(data: SectionCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await section_service.create_section(db, data)
    except UnknownTagsError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

@router.delete("/{section_id}", status_code=204)
async def delete_section(section_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    deleted = await section_service.delete_section(db, section_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Section not found")

@router.get("/{section_id}/articles", response_model=list[ArticleResponse])
async def list_section_articles(section_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    articles = await section_service.get_section_articles(db, section_id)
    if articles is None:
        raise HTTPException(status_code=404, detail="Section not found")
    return articles
