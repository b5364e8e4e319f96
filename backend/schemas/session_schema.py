from datetime import datetime

from pydantic import BaseModel

from backend.schemas.user_schema import TutorPublicResponse


class StudySessionResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    category: str | None = None
    image_url: str | None = None
    tutor_name: str
    tutor_email: str
    registration_start_date: datetime
    registration_end_date: datetime
    class_start_date: datetime
    class_end_date: datetime
    duration_hours: float | None = None
    fee: float
    status: str
    rejection_reason: str | None = None
    feedback: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class PaginatedSessionsResponse(BaseModel):
    sessions: list[StudySessionResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class ReviewResponse(BaseModel):
    id: int
    session_id: int
    student_email: str
    student_name: str | None = None
    rating: int
    comment: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class SessionDetailResponse(BaseModel):
    session: StudySessionResponse
    reviews: list[ReviewResponse]
    tutor: TutorPublicResponse | None = None
    average_rating: float
    review_count: int


class BookedSessionResponse(BaseModel):
    id: int
    student_email: str
    session_id: int
    tutor_email: str | None = None
    booked_at: datetime | None = None
    session: StudySessionResponse | None = None


class MaterialResponse(BaseModel):
    id: int
    title: str
    session_id: int
    tutor_email: str
    link: str | None = None
    image_url: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
