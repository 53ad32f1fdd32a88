import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from article_api.database import get_db
from article_api.exceptions import TagNameConflictError
from article_api.schemas import TagCreate, TagResponse, TagUpdate
from article_api.services import tag_service

router = APIRouter(prefix="/api/v1/tags", tags=["tags"])

@router.get("", response_model=list[TagResponse])
async def list_tags(db: AsyncSession = Depends(get_db)):
    return await tag_service.get_tags(db)

@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(tag_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    tag = await tag_service.get_tag(db, tag_id)
    if not tag:
        raise HTTPException(status_code=404, detail="Tag not found")
    return tag

@router.post("", status_code=201, response_model=TagResponse)
async def create_tag(data: TagCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await tag_service.create_tag(db, data)
    except (TagNameConflictError, IntegrityError):
        raise HTTPException(status_code=409, detail="A tag with this name already exists")

@router.put("/{tag_id}", response_model=TagResponse)
async def update_tag(tag_id: uuid.UUID, data: TagUpdate, db: AsyncSession = Depends(get_db)):
    try:
        tag = await tag_service.update_tag(db, tag_id, data)
    except (TagNameConflictError, IntegrityError):
        raise HTTPException(status_code=409, detail="A tag with this name already exists")
    if not tag:
        raise HTTPException(status_code=404, detail="Tag not found")
    return tag

@router.delete("/{tag_id}", status_code=204)
async def delete_tag(tag_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    deleted = await tag_service.delete_tag(db, tag_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Tag not found")
