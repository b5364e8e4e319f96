from datetime import datetime

from pydantic import BaseModel


class UserResponse(BaseModel):
    """Profile returned to clients; the password hash never leaves the store."""
    id: int
    name: str
    email: str
    role: str
    photo_url: str | None = None
    phone: str | None = None
    address: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class TutorPublicResponse(BaseModel):
    name: str
    email: str
    photo_url: str | None = None

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    access_token: str
    token_type: str = 'bearer'


class PaginatedUsersResponse(BaseModel):
    users: list[UserResponse]
    total: int
    page: int
    limit: int
    total_pages: int
