"""Request/response schemas for blog posts."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.base import ApiModel


class PostAuthor(ApiModel):
    """Author summary embedded in post responses."""

    id: str
    name: str
    email: str


class PostRead(ApiModel):
    id: str
    title: str
    content: str
    published: bool
    author_id: str
    created_at: datetime
    updated_at: datetime
    author: PostAuthor | None = None


class PostCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, description="Post title")
    content: str = Field(..., min_length=1, description="Post body")
    published: bool = Field(default=False, description="Visible to readers when true")


class PostUpdateRequest(BaseModel):
    """Partial update; omitted (or null) fields are left unchanged."""

    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    published: bool | None = None

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)


class PostListResponse(BaseModel):
    posts: list[PostRead]


class PostResponse(BaseModel):
    post: PostRead


class PostMutationResponse(BaseModel):
    message: str
    post: PostRead
