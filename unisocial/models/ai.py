"""
AI Assistance Schemas

Request/response schemas for caption suggestions, content ideas and
translation.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SuggestRequest(BaseModel):
    topic: Optional[str] = Field(None, description="What the post is about")
    platforms: Optional[List[str]] = Field(None, description="Target platforms")
    tone: Optional[str] = Field(None, description="casual, professional, ...")
    language: Optional[str] = Field(None, description="Caption language")


class SuggestResponse(BaseModel):
    captions: Dict[str, Any] = Field(default_factory=dict)
    hashtags: List[Any] = Field(default_factory=list)
    best_posting_times: Dict[str, Any] = Field(default_factory=dict)
    source: str = Field(..., description="claude or default")


class IdeasRequest(BaseModel):
    category: Optional[str] = Field(None, description="Content category")
    count: Optional[int] = Field(None, ge=1, le=20, description="Number of ideas")
    language: Optional[str] = Field(None, description="Idea language")


class IdeasResponse(BaseModel):
    ideas: List[Dict[str, Any]]
    source: str


class TranslateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: Optional[str] = None
    from_lang: Optional[str] = Field(None, alias="fromLang")
    to_langs: List[str] = Field(default_factory=list, alias="toLangs")


class TranslateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original: str
    from_lang: str = Field(..., alias="fromLang")
    translations: Dict[str, str]
    source: str = "deepl"
