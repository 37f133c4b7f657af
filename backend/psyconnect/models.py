from __future__ import annotations
from typing import Optional, Literal
from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    BigInteger, Integer, String, Text, DateTime, Float, Boolean, JSON,
    CheckConstraint, ForeignKey, Index,
)
from sqlalchemy.sql import func

from psyconnect.db import Base

# SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

ValidationStatus = Literal["pending", "approved", "rejected"]
SessionStatus = Literal["pending", "accepted", "declined", "completed", "cancelled"]
ReportStatus = Literal["Pendiente", "En Revisión", "Resuelto", "Descartado"]

SESSION_STATUSES = ("pending", "accepted", "declined", "completed", "cancelled")
REPORT_STATUSES = ("Pendiente", "En Revisión", "Resuelto", "Descartado")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "validation_status in ('pending','approved','rejected') or validation_status is null",
            name="ck_users_validation_status",
        ),
        Index("idx_users_is_tutor", "is_tutor"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_tutor: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    validation_status: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # psychologist profile
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    reviews: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    hourly_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    specialty_rates: Mapped[Optional[list[dict]]] = mapped_column(JSON, nullable=True)  # [{name, price}]
    courses: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    professional_link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    verification_document_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    student_sessions: Mapped[list["Session"]] = relationship(
        "Session", foreign_keys="Session.student_id", back_populates="student_user"
    )
    tutor_sessions: Mapped[list["Session"]] = relationship(
        "Session", foreign_keys="Session.tutor_id", back_populates="tutor_user"
    )


class Course(Base):
    """A psychological specialty. Used both as a tutor capability and as a session topic."""
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, unique=True, nullable=False)


class Session(Base):
    """
    Booking request between a student and a tutor for one specialty.

    tutor / student hold display snapshots taken at booking time, so cards can be
    rendered without joining users.
    """
    __tablename__ = "sessions"
    __table_args__ = (
        CheckConstraint(
            "status in ('pending','accepted','declined','completed','cancelled')",
            name="ck_sessions_status",
        ),
        Index("idx_sessions_student", "student_id", "status"),
        Index("idx_sessions_tutor", "tutor_id", "status"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    tutor_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String, default="pending", nullable=False)
    course: Mapped[str] = mapped_column(String, nullable=False)

    tutor: Mapped[dict] = mapped_column(JSON, nullable=False)     # {name, image_url, email}
    student: Mapped[dict] = mapped_column(JSON, nullable=False)   # {name, image_url, age}

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    session_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    student_user: Mapped["User"] = relationship(
        "User", foreign_keys=[student_id], back_populates="student_sessions"
    )
    tutor_user: Mapped["User"] = relationship(
        "User", foreign_keys=[tutor_id], back_populates="tutor_sessions"
    )
    messages: Mapped[list["SessionMessage"]] = relationship(
        back_populates="session", cascade="all, delete-orphan"
    )


class SessionMessage(Base):
    __tablename__ = "session_messages"
    __table_args__ = (
        Index("idx_session_msg_session_time", "session_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    session: Mapped["Session"] = relationship(back_populates="messages")


class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        CheckConstraint(
            "status in ('Pendiente','En Revisión','Resuelto','Descartado')",
            name="ck_reports_status",
        ),
        Index("idx_reports_reported_user", "reported_user_id"),
        Index("idx_reports_reported_by", "reported_by_user_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, index=True)
    reported_user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reported_user_name: Mapped[str] = mapped_column(String, nullable=False)
    reported_by_user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reported_by_user_name: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String, default="Pendiente", nullable=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating >= 1 and rating <= 5", name="ck_reviews_rating"),
        Index("idx_reviews_psychologist_time", "psychologist_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, index=True)
    psychologist_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    author_name: Mapped[str] = mapped_column(String, nullable=False)
    author_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
