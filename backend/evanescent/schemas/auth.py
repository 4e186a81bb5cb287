"""
Evanescent Backend: Session Schemas
=====================================

What:  Request bodies and responses for signup, login, refresh and user-info.

Wire format:
    Token and statistics keys are camelCase on the wire (`accessToken`,
    `postCount`, `totalLikes`) because that is what the frontend reads.
    Fields keep snake_case names in Python and declare the wire name as an
    alias; `populate_by_name` lets services construct them by field name.
"""

from pydantic import BaseModel, ConfigDict, Field


class SignupRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=1024)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=1024)


class UserPublic(BaseModel):
    """A user as returned to clients: never includes the password hash."""
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class SignupResponse(BaseModel):
    message: str = Field(default="User created successfully")
    user: UserPublic


class AccessTokenResponse(BaseModel):
    """Body of /login and /refresh-token. The refresh token travels in a cookie only."""
    access_token: str = Field(alias="accessToken")

    model_config = ConfigDict(populate_by_name=True)


class UserInfoResponse(BaseModel):
    """Profile summary for the authenticated user."""
    name: str
    email: str
    post_count: int = Field(alias="postCount", description="Writeups authored by the user")
    total_likes: int = Field(alias="totalLikes", description="Sum of likes across those writeups")

    model_config = ConfigDict(populate_by_name=True)
