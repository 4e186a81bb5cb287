"""
Evanescent Backend: Writeup Schemas
=====================================

What:  Request/response models for the writeup ("bottle") endpoints.
How:   Responses are built straight from ORM rows (`from_attributes`);
       list items add the author's display name from the users join.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WriteupCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(default="", max_length=20_000)
    is_public: bool = Field(default=True)


class WriteupResponse(BaseModel):
    """Full writeup row as stored."""
    id: int
    user_id: int
    title: str
    content: str
    is_public: bool
    likes: int = Field(ge=0)
    claimed_by: Optional[int] = Field(default=None, description="Claimant user id, null if unclaimed")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WriteupListItem(WriteupResponse):
    """Writeup plus its author's name, as shown in the public feed."""
    author_name: str


class LikesResponse(BaseModel):
    """New like count after a like/unlike."""
    likes: int = Field(ge=0)
