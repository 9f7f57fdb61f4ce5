from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


@dataclass
class ValidationResult:
    ok: bool
    errors: List[str] = field(default_factory=list)


class ExamType(str, Enum):
    jee_main = "jee-main"
    jee_advanced = "jee-advanced"
    neet = "neet"
    ap_eamcet = "ap-eamcet"
    ts_eamcet = "ts-eamcet"


class Category(str, Enum):
    general = "general"
    obc = "obc"
    sc = "sc"
    st = "st"
    bc_a = "bc_a"
    bc_b = "bc_b"
    bc_c = "bc_c"
    bc_d = "bc_d"
    bc_e = "bc_e"


class Gender(str, Enum):
    all = "all"
    women = "women"
    men = "men"


class SortKey(str, Enum):
    rating = "rating"
    fees_low = "fees_low"
    fees_high = "fees_high"
    placement = "placement"


class College(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    location: str = ""
    city: str = ""
    state: str = ""
    type: str = ""
    description: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    total_fees_min: Optional[int] = None
    total_fees_max: Optional[int] = None
    placement_percentage: Optional[float] = None
    average_package: Optional[float] = None
    highest_package: Optional[float] = None
    established_year: Optional[int] = None
    website_url: Optional[str] = None
    cutoff_rank_general: Optional[int] = Field(None, gt=0)
    cutoff_rank_obc: Optional[int] = Field(None, gt=0)
    cutoff_rank_sc: Optional[int] = Field(None, gt=0)
    cutoff_rank_st: Optional[int] = Field(None, gt=0)
    cutoff_rank_bc_a: Optional[int] = Field(None, gt=0)
    cutoff_rank_bc_b: Optional[int] = Field(None, gt=0)
    cutoff_rank_bc_c: Optional[int] = Field(None, gt=0)
    cutoff_rank_bc_d: Optional[int] = Field(None, gt=0)
    cutoff_rank_bc_e: Optional[int] = Field(None, gt=0)
    eligible_exams: List[str] = Field(default_factory=list)

    @field_validator("eligible_exams", mode="before")
    @classmethod
    def _null_exams(cls, value):
        return value or []


class FilterCriteria(BaseModel):
    """
    Filter modal selections. Values are kept as plain strings so that an
    unknown value passes through the engine instead of failing validation;
    null means the same as "all".
    """
    model_config = ConfigDict(populate_by_name=True)

    state: Optional[str] = Field("all", description="State name or 'all'")
    district: Optional[str] = Field("all", description="District/city or 'all'")
    gender: Optional[str] = Field("all", description="all, women or men")
    college_type: Optional[str] = Field("all", alias="collegeType", description="College type filter")
    show_top_colleges: Optional[bool] = Field(False, alias="showTopColleges")
    location_based: Optional[bool] = Field(False, alias="locationBased")
    sort_by: Optional[str] = Field(None, alias="sortBy", description="rating, fees_low, fees_high or placement")


class FilterRequest(BaseModel):
    criteria: FilterCriteria = Field(default_factory=FilterCriteria)
    query: Optional[str] = Field(None, description="Optional free-text search applied first")


class CutoffPredictionInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rank: Optional[int] = Field(None, description="Exam rank")
    category: Optional[str] = Field(None, description="general, obc, sc, st, bc_a .. bc_e")
    exam_type: Optional[str] = Field(None, alias="examType", description="jee-main, jee-advanced, ap-eamcet, ts-eamcet")


class ScorePredictionInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    exam_type: Optional[str] = Field(None, alias="examType", description="jee-main, neet, ap-eamcet, ts-eamcet")
    exam_marks: Optional[float] = Field(None, alias="examMarks", description="Marks in the entrance exam")
    ipe_marks: Optional[float] = Field(None, alias="ipeMarks", description="IPE marks out of 1000 (EAMCET only)")
    category: Optional[str] = Field(None, description="OC, BC-A .. BC-E, SC, ST, EWS")


class AdmissionMatch(BaseModel):
    college_id: int
    college_name: str
    location: str = ""
    course_name: Optional[str] = None
    branch: Optional[str] = None
    category: str
    opening_rank: Optional[int] = None
    closing_rank: Optional[int] = None
    year: int


class PredictionResult(BaseModel):
    rank_range: Optional[str] = None
    final_score: Optional[float] = None
    colleges: List[Any] = Field(default_factory=list)
    example_colleges: List[str] = Field(default_factory=list)
    message: str = ""
    plot_data: Optional[Dict[str, Any]] = None


class ReviewCreate(BaseModel):
    rating: int = Field(..., description="1 to 5 stars")
    review: str = Field("", max_length=2000)


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    college_id: int
    user_id: str
    rating: int
    review: str
    created_at: Optional[datetime] = None


class FavoriteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    college_id: int
    created_at: Optional[datetime] = None


class SavedNewsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    resource_id: int
    created_at: Optional[datetime] = None


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category: str
    message: str
    resource_id: Optional[int] = None
    read: bool = False
    created_at: Optional[datetime] = None


class QuestionCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=300)
    body: str = Field("", max_length=5000)


class AnswerCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=5000)


class AnswerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    question_id: int
    user_id: str
    body: str
    created_at: Optional[datetime] = None


class QuestionResponse(BaseModel):
    id: int
    user_id: str
    title: str
    body: str
    created_at: Optional[datetime] = None
    answers: List[AnswerResponse] = Field(default_factory=list)


class CompareInput(BaseModel):
    college_ids: List[int] = Field(..., min_length=2, max_length=4)


class MessageResponse(BaseModel):
    message: str
    success: bool = True


class NotificationPreferences(BaseModel):
    scholarships: bool = True
    admissions: bool = True
    events: bool = True


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str = ""
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    academic_field: Optional[str] = None
    preferred_course: Optional[str] = None
    preferred_branches: List[str] = Field(default_factory=list)
    preferred_locations: List[str] = Field(default_factory=list)
    budget_min: Optional[int] = None
    budget_max: Optional[int] = None
    notification_preferences: NotificationPreferences = Field(default_factory=NotificationPreferences)
    tutorial_completed: bool = False
    created_at: Optional[datetime] = None

    @field_validator("preferred_branches", "preferred_locations", mode="before")
    @classmethod
    def _null_lists(cls, value):
        return value or []

    @field_validator("notification_preferences", "tutorial_completed", mode="before")
    @classmethod
    def _null_defaults(cls, value, info):
        if value is None:
            return NotificationPreferences() if info.field_name == "notification_preferences" else False
        return value


class ProfileUpdate(BaseModel):
    """Only the fields sent are changed."""
    full_name: Optional[str] = Field(None, max_length=200)
    phone_number: Optional[str] = Field(None, max_length=20)
    academic_field: Optional[str] = Field(None, max_length=200)
    preferred_course: Optional[str] = Field(None, max_length=200)
    preferred_branches: Optional[List[str]] = None
    preferred_locations: Optional[List[str]] = None
    budget_min: Optional[int] = Field(None, ge=0)
    budget_max: Optional[int] = Field(None, ge=0)
    notification_preferences: Optional[NotificationPreferences] = None


class SelectedCollegeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    college_id: int
    created_at: Optional[datetime] = None


class ApplicationType(str, Enum):
    college = "college"
    scholarship = "scholarship"


class ApplicationStatus(str, Enum):
    pending = "pending"
    applied = "applied"
    shortlisted = "shortlisted"
    accepted = "accepted"
    rejected = "rejected"


class ApplicationCreate(BaseModel):
    type: ApplicationType
    target_id: str = Field(..., min_length=1, max_length=200, description="College or scholarship id/name")
    status: ApplicationStatus = ApplicationStatus.pending
    notes: Optional[str] = Field(None, max_length=2000)


class ApplicationUpdate(BaseModel):
    status: Optional[ApplicationStatus] = None
    notes: Optional[str] = Field(None, max_length=2000)


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    target_id: str
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class ScholarshipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    amount: Optional[int] = None
    deadline: Optional[date] = None
    eligible_courses: List[str] = Field(default_factory=list)
    application_link: Optional[str] = None

    @field_validator("eligible_courses", mode="before")
    @classmethod
    def _null_courses(cls, value):
        return value or []


class QuizAnswers(BaseModel):
    preferred_course: Optional[str] = Field(None, description="e.g. Computer Science, Mechanical, MBBS")
    preferred_location: Optional[str] = Field(None, description="State or city, or 'Any'")
    budget: Optional[float] = Field(None, ge=0, description="Maximum annual tuition in INR lakhs")
    exams: List[str] = Field(default_factory=list, description="Entrance exams, list or comma-separated")

    @field_validator("exams", mode="before")
    @classmethod
    def _split_exams(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value
