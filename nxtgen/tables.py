"""
ORM tables mirroring the hosted backend's public schema.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text,
    UniqueConstraint
)

from .db import Base


def _now():
    return datetime.now(timezone.utc)


class CollegeRow(Base):
    __tablename__ = "colleges"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    location = Column(String, nullable=False, default="")
    city = Column(String, nullable=False, default="")
    state = Column(String, nullable=False, default="")
    type = Column(String, nullable=False, default="")
    description = Column(Text)
    rating = Column(Float)
    total_fees_min = Column(Integer)
    total_fees_max = Column(Integer)
    placement_percentage = Column(Float)
    average_package = Column(Float)
    highest_package = Column(Float)
    established_year = Column(Integer)
    website_url = Column(String)
    cutoff_rank_general = Column(Integer)
    cutoff_rank_obc = Column(Integer)
    cutoff_rank_sc = Column(Integer)
    cutoff_rank_st = Column(Integer)
    cutoff_rank_bc_a = Column(Integer)
    cutoff_rank_bc_b = Column(Integer)
    cutoff_rank_bc_c = Column(Integer)
    cutoff_rank_bc_d = Column(Integer)
    cutoff_rank_bc_e = Column(Integer)
    eligible_exams = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), default=_now)


class CourseRow(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True)
    college_id = Column(Integer, ForeignKey("colleges.id", ondelete="CASCADE"))
    course_name = Column(String, nullable=False)
    branch = Column(String, nullable=False)
    duration = Column(String, default="4 years")
    exam_accepted = Column(String, default="")
    fees_per_year = Column(Integer)
    seats_total = Column(Integer)


class AdmissionRow(Base):
    __tablename__ = "admissions"

    id = Column(Integer, primary_key=True)
    college_id = Column(Integer, ForeignKey("colleges.id", ondelete="CASCADE"))
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"))
    exam_name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    opening_rank = Column(Integer)
    closing_rank = Column(Integer)
    round_number = Column(Integer)
    year = Column(Integer, nullable=False)


class CollegeFavoriteRow(Base):
    __tablename__ = "user_college_favorites"
    __table_args__ = (UniqueConstraint("user_id", "college_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    college_id = Column(Integer, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class ResourceRow(Base):
    """News items and other published resources."""
    __tablename__ = "resources"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    category = Column(String, nullable=False, default="news")
    description = Column(Text)
    source = Column(String)
    image_url = Column(String)
    is_featured = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class SavedResourceRow(Base):
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "resource_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    resource_id = Column(Integer, ForeignKey("resources.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class ReviewRow(Base):
    __tablename__ = "college_reviews"

    id = Column(Integer, primary_key=True)
    college_id = Column(Integer, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, nullable=False)
    rating = Column(Integer, nullable=False)
    review = Column(Text, default="")
    created_at = Column(DateTime(timezone=True), default=_now)


class NotificationRow(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, default="general")
    message = Column(Text, nullable=False)
    resource_id = Column(Integer)
    read = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class ForumQuestionRow(Base):
    __tablename__ = "forum_questions"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    title = Column(String, nullable=False)
    body = Column(Text, default="")
    created_at = Column(DateTime(timezone=True), default=_now)


class ForumAnswerRow(Base):
    __tablename__ = "forum_answers"

    id = Column(Integer, primary_key=True)
    question_id = Column(Integer, ForeignKey("forum_questions.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class ComparisonRow(Base):
    __tablename__ = "college_comparisons"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    college_ids = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class ProfileRow(Base):
    """One row per signed-in user, keyed by the auth service's user id."""
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, default="")
    full_name = Column(String)
    phone_number = Column(String)
    academic_field = Column(String)
    preferred_course = Column(String)
    preferred_branches = Column(JSON, default=list)
    preferred_locations = Column(JSON, default=list)
    budget_min = Column(Integer)
    budget_max = Column(Integer)
    notification_preferences = Column(JSON)
    tutorial_completed = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class SelectedCollegeRow(Base):
    """Colleges a user has shortlisted under My Colleges."""
    __tablename__ = "user_selected_colleges"
    __table_args__ = (UniqueConstraint("user_id", "college_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    college_id = Column(Integer, ForeignKey("colleges.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class ApplicationRow(Base):
    __tablename__ = "application_tracker"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)
    target_id = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=_now)


class ScholarshipRow(Base):
    __tablename__ = "scholarships"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text)
    amount = Column(Integer)
    deadline = Column(Date)
    eligible_courses = Column(JSON, default=list)
    application_link = Column(String)
    created_at = Column(DateTime(timezone=True), default=_now)


class QuizResultRow(Base):
    __tablename__ = "college_recommendation_quiz"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, index=True)
    answers = Column(JSON, nullable=False)
    recommended_colleges = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_now)
