from __future__ import annotations
from typing import Optional, List, Literal
from pydantic import BaseModel, Field, EmailStr, AliasChoices
from datetime import datetime


# --- auth ---
class Token(BaseModel):
    """
    /auth/login response. The frontend stores the JWT and sends it as a bearer token.
    """
    access_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    """
    /auth/register (regular user) request.
    """
    name: str = Field(..., min_length=1)
    age: int = Field(..., gt=0, lt=150)
    email: EmailStr
    password: str = Field(..., min_length=6)


class PsychologistCreate(BaseModel):
    """
    /auth/register/psychologist request. The account stays disabled until an admin approves it.
    """
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    bio: str = ""
    specialties: List[str] = Field(..., min_length=1)
    hourly_rate: int = Field(..., gt=0)
    professional_link: str = Field(..., min_length=1)


class SpecialtyRate(BaseModel):
    name: str = Field(..., min_length=1)
    price: int = Field(..., ge=0)


class UserPublic(BaseModel):
    """
    User as returned by the API, without the password hash.
    """
    id: int
    email: EmailStr
    name: str
    age: Optional[int] = None
    image_url: Optional[str] = None
    is_tutor: bool
    is_disabled: bool = False
    validation_status: Optional[str] = None
    rating: Optional[float] = None
    reviews: Optional[int] = None
    hourly_rate: Optional[int] = None
    specialty_rates: Optional[List[SpecialtyRate]] = None
    courses: Optional[List[str]] = None
    bio: Optional[str] = None
    professional_link: Optional[str] = None

    class Config:
        from_attributes = True


class PsychologistCard(BaseModel):
    id: int
    name: str
    image_url: Optional[str] = None
    rating: Optional[float] = None
    reviews: Optional[int] = None
    hourly_rate: Optional[int] = None
    courses: List[str] = []

    class Config:
        from_attributes = True


class PsychologistDetail(PsychologistCard):
    bio: Optional[str] = None
    professional_link: Optional[str] = None
    specialty_rates: List[SpecialtyRate] = []


class SpecialtyPrice(BaseModel):
    specialty: str
    price: int


class ProfileUpdate(BaseModel):
    """
    /user/profile update. bio, professional_link and specialty_rates only apply to psychologists.
    """
    name: Optional[str] = Field(None, min_length=1)
    age: Optional[int] = Field(None, gt=0, lt=150)
    bio: Optional[str] = None
    professional_link: Optional[str] = None
    specialty_rates: Optional[List[SpecialtyRate]] = None


class AdminUserDetail(UserPublic):
    verification_document_url: Optional[str] = None
    created_at: Optional[datetime] = None
    reports_against: List["ReportPublic"] = []
    reports_by: List["ReportPublic"] = []


# --- courses ---
class CourseCreate(BaseModel):
    name: str = Field(..., min_length=1)


class CoursePublic(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


# --- sessions ---
class SessionCreate(BaseModel):
    tutor_id: int
    course: str = Field(..., min_length=1)


class TutorSnapshot(BaseModel):
    name: str
    image_url: Optional[str] = None
    email: Optional[str] = None


class StudentSnapshot(BaseModel):
    name: str
    image_url: Optional[str] = None
    age: Optional[int] = None


class SessionPublic(BaseModel):
    id: int
    tutor_id: int
    student_id: int
    status: str
    course: str
    created_at: Optional[datetime] = None
    session_date: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    tutor: TutorSnapshot
    student: StudentSnapshot

    class Config:
        from_attributes = True


class SessionRespondReq(BaseModel):
    response: Literal["accepted", "declined"]


class SessionScheduleReq(BaseModel):
    session_date: datetime


class PsychologistSessions(BaseModel):
    """Tutor dashboard: incoming requests and sessions already accepted."""
    pending_requests: List[SessionPublic] = []
    accepted_sessions: List[SessionPublic] = []


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class MessagePublic(BaseModel):
    id: int
    session_id: int
    sender_id: int
    content: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- reports ---
class ReportCreate(BaseModel):
    reported_user_id: int
    reason: str = Field(
        ...,
        min_length=10,
        max_length=500,
        description="La descripción debe tener entre 10 y 500 caracteres.",
    )


class ReportPublic(BaseModel):
    id: int
    reported_user_id: int
    reported_user_name: str
    reported_by_user_id: int
    reported_by_user_name: str
    reason: str
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReportStatusUpdate(BaseModel):
    status: Literal["Pendiente", "En Revisión", "Resuelto", "Descartado"]


# --- admin ---
class UserDisabledUpdate(BaseModel):
    is_disabled: bool


class ValidationUpdate(BaseModel):
    status: Literal["approved", "rejected"]


class AdminStats(BaseModel):
    total_users: int
    total_psychologists: int
    pending_validations: int
    open_reports: int
    disabled_users: int


# --- reviews ---
class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=1000)


class ReviewPublic(BaseModel):
    id: int
    psychologist_id: int
    author_id: int
    author_name: str
    author_image_url: Optional[str] = None
    rating: int
    comment: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- AI suggestion ---
class SpecialtySuggestionReq(BaseModel):
    # the web client historically sent problemDescription
    problem: Optional[str] = Field(None, validation_alias=AliasChoices("problem", "problemDescription"))


class SpecialtySuggestion(BaseModel):
    specialty: str
    reasoning: str


AdminUserDetail.model_rebuild()
