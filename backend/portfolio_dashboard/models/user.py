"""Authenticated identities and profiles."""

from pydantic import BaseModel


class AuthUser(BaseModel):
    """The verified caller. Its access token scopes every remote query."""

    id: str
    email: str | None = None
    access_token: str


class UserProfile(BaseModel):
    id: str
    email: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class AuthSession(BaseModel):
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"
    user: UserProfile
