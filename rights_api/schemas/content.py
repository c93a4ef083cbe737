from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

ContentType = Literal["Film", "TV Series", "TBN FAST", "TBN Linear", "WoF FAST"]


class _SeriesFieldsMixin(BaseModel):
    @model_validator(mode="after")
    def series_fields_only_for_tv(self):
        if self.type is not None and self.type != "TV Series":
            if self.season is not None or self.episode_count is not None:
                raise ValueError("season and episode_count only apply to TV Series")
        return self


class ContentItemCreate(_SeriesFieldsMixin):
    title: str = Field(..., min_length=1, max_length=255)
    type: ContentType
    description: Optional[str] = None
    season: Optional[int] = Field(None, ge=1)
    episode_count: Optional[int] = Field(None, ge=1)
    release_year: Optional[int] = Field(None, ge=1888, le=2100)
    genre: Optional[str] = Field(None, max_length=100)
    duration: Optional[int] = Field(None, ge=1)


class ContentItemUpdate(_SeriesFieldsMixin):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[ContentType] = None
    description: Optional[str] = None
    season: Optional[int] = Field(None, ge=1)
    episode_count: Optional[int] = Field(None, ge=1)
    release_year: Optional[int] = Field(None, ge=1888, le=2100)
    genre: Optional[str] = Field(None, max_length=100)
    duration: Optional[int] = Field(None, ge=1)


class ContentItemResponse(BaseModel):
    id: str
    title: str
    type: str
    description: Optional[str] = None
    season: Optional[int] = None
    episode_count: Optional[int] = None
    release_year: Optional[int] = None
    genre: Optional[str] = None
    duration: Optional[int] = None
    created_at: Optional[str] = None

    model_config = {"from_attributes": True}


class ContractContentResponse(BaseModel):
    id: str
    contract_id: str
    content_id: str
    notes: Optional[str] = None
    content: Optional[ContentItemResponse] = None
