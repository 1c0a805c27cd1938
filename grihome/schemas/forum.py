"""
Pydantic schemas for the discussion forum.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Literal
from datetime import datetime
from grihome.models.forum import ReactionType
from grihome.schemas.common import PageMeta
from grihome.schemas.user import PublicUserResponse
import uuid


class CategoryResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None
    display_order: int = 0
    parent_id: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    property_type: Optional[str] = None
    post_count: int = 0
    children: List["CategoryResponse"] = []


class CategoryTreeResponse(BaseModel):
    categories: List[CategoryResponse]


class Breadcrumb(BaseModel):
    name: str
    slug: str


class CategoryDetailResponse(CategoryResponse):
    breadcrumbs: List[Breadcrumb] = []


class InitCitiesResponse(BaseModel):
    message: str
    cities_added: int
    cities: List[str] = []


class PostCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=255, examples=["Best gated communities in Gachibowli?"])
    content: str = Field(..., min_length=10, max_length=20000)
    category_id: uuid.UUID

    @field_validator("title", "content")
    @classmethod
    def strip_text(cls, v):
        if not v.strip():
            raise ValueError("Field cannot be blank")
        return v.strip()


class CategoryBrief(BaseModel):
    id: str
    name: str
    slug: str
    city: Optional[str] = None
    property_type: Optional[str] = None


class PostResponse(BaseModel):
    id: str
    title: str
    slug: str
    content: str
    category: Optional[CategoryBrief] = None
    author: Optional[PublicUserResponse] = None
    is_sticky: bool
    is_locked: bool
    view_count: int
    reply_count: int
    last_reply_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    reactions: Dict[str, int] = {}
    reaction_count: int = 0
    match_type: Optional[str] = Field(None, description="post or reply, search results only")


class PostListResponse(BaseModel):
    posts: List[PostResponse]
    pagination: PageMeta


class ReplyCreate(BaseModel):
    post_id: uuid.UUID
    content: str = Field(..., min_length=1, max_length=10000)
    parent_id: Optional[uuid.UUID] = Field(None, description="Reply being answered, for threaded replies")

    @field_validator("content")
    @classmethod
    def strip_content(cls, v):
        if not v.strip():
            raise ValueError("Reply cannot be blank")
        return v.strip()


class ReplyResponse(BaseModel):
    id: str
    content: str
    post_id: str
    parent_id: Optional[str] = None
    author: Optional[PublicUserResponse] = None
    created_at: Optional[datetime] = None
    reactions: Dict[str, int] = {}
    children: List["ReplyResponse"] = []


class PostDetailResponse(PostResponse):
    replies: List[ReplyResponse] = []
    breadcrumbs: List[Breadcrumb] = []


class ReactionRequest(BaseModel):
    target_id: uuid.UUID = Field(..., description="Post or reply id")
    type: ReactionType


class ReactionResponse(BaseModel):
    action: Literal["added", "removed"]
    type: ReactionType
    counts: Dict[str, int] = {}


class SearchResponse(BaseModel):
    query: str
    posts: List[PostResponse] = []
    categories: List[CategoryResponse] = []
    total_results: int = 0
    pagination: PageMeta


class UserStatsResponse(BaseModel):
    user_id: str
    post_count: int
    reply_count: int
    reactions_received: Dict[str, int]
    reactions_given: Dict[str, int]
    total_reactions_received: int
    total_reactions_given: int


CategoryResponse.model_rebuild()
ReplyResponse.model_rebuild()
