import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

TAG_NAME_MAX_LENGTH = 256
ARTICLE_TITLE_MAX_LENGTH = 256
SECTION_TITLE_MAX_LENGTH = 1024
MAX_TAGS_PER_ITEM = 256


def _reject_duplicate_ids(tag_ids: list[uuid.UUID]) -> list[uuid.UUID]:
    if len(set(tag_ids)) != len(tag_ids):
        raise ValueError("tag_ids must not contain duplicates")
    return tag_ids


def _require_text(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


# --- Tag ---

class TagBase(BaseModel):
    name: str = Field(max_length=TAG_NAME_MAX_LENGTH)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        return _require_text(value)


class TagCreate(TagBase):
    pass


class TagUpdate(TagBase):
    pass


class TagResponse(BaseModel):
    id: uuid.UUID
    name: str
    model_config = ConfigDict(from_attributes=True)


# --- Article ---

class ArticleBase(BaseModel):
    title: str = Field(max_length=ARTICLE_TITLE_MAX_LENGTH)
    content: str
    # Order is kept: it is the display order of the article's tags.
    tag_ids: list[uuid.UUID] = Field(min_length=1, max_length=MAX_TAGS_PER_ITEM)

    @field_validator("title", "content")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("tag_ids")
    @classmethod
    def tags_unique(cls, tag_ids: list[uuid.UUID]) -> list[uuid.UUID]:
        return _reject_duplicate_ids(tag_ids)


class ArticleCreate(ArticleBase):
    pass


class ArticleUpdate(ArticleBase):
    """Full replacement of title, content and tags."""


class ArticleResponse(BaseModel):
    id: uuid.UUID
    title: str
    content: str
    created_at: datetime
    updated_at: datetime | None
    tags: list[TagResponse] = []
    model_config = ConfigDict(from_attributes=True)


# --- Section ---

class SectionCreate(BaseModel):
    title: str = Field(max_length=SECTION_TITLE_MAX_LENGTH)
    tag_ids: list[uuid.UUID] = Field(default=[], max_length=MAX_TAGS_PER_ITEM)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("tag_ids")
    @classmethod
    def tags_unique(cls, tag_ids: list[uuid.UUID]) -> list[uuid.UUID]:
        return _reject_duplicate_ids(tag_ids)


class SectionResponse(BaseModel):
    id: uuid.UUID
    title: str
    tags: list[TagResponse] = []
    model_config = ConfigDict(from_attributes=True)


class AutoSectionsResponse(BaseModel):
    created: int
    sections: list[SectionResponse]


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_articles: int
    total_tags: int
    total_sections: int
    avg_tags_per_article: float
