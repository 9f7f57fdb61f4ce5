"""
Student planning features.

GET /api/profile - My profile, created on first access
PUT /api/profile - Update academic field, preferences, budget
POST /api/profile/tutorial-complete - Mark the tutorial as seen
GET /api/my-colleges - Colleges I selected
POST /api/my-colleges/{college_id} - Select a college
DELETE /api/my-colleges/{college_id} - Unselect a college
GET /api/applications - My tracked applications, optionally by type
POST /api/applications - Track an application
PUT /api/applications/{application_id} - Change status or notes
DELETE /api/applications/{application_id} - Stop tracking
GET /api/scholarships - Scholarships by deadline
POST /api/quiz - College recommendation quiz
GET /api/quiz/results - My past quiz results
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from . import repository
from .auth import get_current_user, get_optional_user
from .db import get_db_session
from .models import (
    ApplicationCreate, ApplicationResponse, ApplicationType, ApplicationUpdate,
    MessageResponse, ProfileResponse, ProfileUpdate, QuizAnswers, ScholarshipResponse,
    SelectedCollegeResponse, ValidationResult
)
from .predictor import NO_MATCH_MESSAGE

logger = logging.getLogger(__name__)

BUDGET_MESSAGE = "Minimum budget cannot be more than maximum budget."
QUIZ_MESSAGE = "Please answer at least one question."
QUIZ_READY_MESSAGE = "Personalized recommendations ready!"


def validate_profile_update(data: ProfileUpdate) -> ValidationResult:
    errors = []
    if data.budget_min is not None and data.budget_max is not None and data.budget_min > data.budget_max:
        errors.append(BUDGET_MESSAGE)
    return ValidationResult(ok=len(errors) == 0, errors=errors)


def validate_quiz(answers: QuizAnswers) -> ValidationResult:
    answered = (
        (answers.preferred_course or "").strip()
        or (answers.preferred_location or "").strip()
        or answers.budget
        or answers.exams
    )
    errors = [] if answered else [QUIZ_MESSAGE]
    return ValidationResult(ok=len(errors) == 0, errors=errors)


# ============================================================
# PROFILE
# ============================================================

profile_router = APIRouter(prefix="/api/profile", tags=["Profile"])


@profile_router.get("", response_model=ProfileResponse)
def get_profile(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = repository.get_or_create_profile(db, user["user_id"], user.get("email"))
        return ProfileResponse.model_validate(row)


@profile_router.put("", response_model=ProfileResponse)
def update_profile(data: ProfileUpdate, user: dict = Depends(get_current_user)):
    """Update only the fields sent; notification preferences are merged."""
    v = validate_profile_update(data)
    if not v.ok:
        raise HTTPException(status_code=422, detail=v.errors)

    with get_db_session() as db:
        row = repository.update_profile(
            db, user["user_id"], data.model_dump(exclude_unset=True), user.get("email")
        )
        return ProfileResponse.model_validate(row)


@profile_router.post("/tutorial-complete", response_model=ProfileResponse)
def complete_tutorial(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = repository.complete_tutorial(db, user["user_id"], user.get("email"))
        return ProfileResponse.model_validate(row)


# ============================================================
# MY COLLEGES
# ============================================================

my_colleges_router = APIRouter(prefix="/api/my-colleges", tags=["My Colleges"])


@my_colleges_router.get("", response_model=List[SelectedCollegeResponse])
def list_my_colleges(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        rows = repository.list_selected_colleges(db, user["user_id"])
        return [SelectedCollegeResponse.model_validate(row) for row in rows]


@my_colleges_router.post("/{college_id}", response_model=SelectedCollegeResponse, status_code=201)
def select_college(college_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = repository.select_college(db, user["user_id"], college_id)
        if row is None:
            raise HTTPException(status_code=404, detail="College not found")
        return SelectedCollegeResponse.model_validate(row)


@my_colleges_router.delete("/{college_id}", response_model=MessageResponse)
def unselect_college(college_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        removed = repository.unselect_college(db, user["user_id"], college_id)
    if not removed:
        raise HTTPException(status_code=404, detail="College is not in your list")
    return MessageResponse(message="Removed from My Colleges")


# ============================================================
# APPLICATION TRACKER
# ============================================================

applications_router = APIRouter(prefix="/api/applications", tags=["Applications"])


@applications_router.get("", response_model=List[ApplicationResponse])
def list_applications(type: Optional[ApplicationType] = None, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        rows = repository.list_applications(db, user["user_id"], type=type.value if type else None)
        return [ApplicationResponse.model_validate(row) for row in rows]


@applications_router.post("", response_model=ApplicationResponse, status_code=201)
def track_application(data: ApplicationCreate, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = repository.track_application(
            db,
            user["user_id"],
            data.type.value,
            data.target_id.strip(),
            status=data.status.value,
            notes=data.notes
        )
        logger.info(f"Application {row.id} tracked for {user['user_id']}")
        return ApplicationResponse.model_validate(row)


@applications_router.put("/{application_id}", response_model=ApplicationResponse)
def update_application(application_id: int, data: ApplicationUpdate, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = repository.update_application(
            db,
            user["user_id"],
            application_id,
            status=data.status.value if data.status else None,
            notes=data.notes
        )
        if row is None:
            raise HTTPException(status_code=404, detail="Application not found")
        return ApplicationResponse.model_validate(row)


@applications_router.delete("/{application_id}", response_model=MessageResponse)
def delete_application(application_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        deleted = repository.delete_application(db, user["user_id"], application_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Application not found")
    return MessageResponse(message="Application removed")


# ============================================================
# SCHOLARSHIPS
# ============================================================

scholarships_router = APIRouter(prefix="/api/scholarships", tags=["Scholarships"])


@scholarships_router.get("", response_model=List[ScholarshipResponse])
def list_scholarships():
    with get_db_session() as db:
        return [ScholarshipResponse.model_validate(row) for row in repository.list_scholarships(db)]


# ============================================================
# RECOMMENDATION QUIZ
# ============================================================

quiz_router = APIRouter(prefix="/api/quiz", tags=["Quiz"])


@quiz_router.post("")
def take_quiz(answers: QuizAnswers, user: Optional[dict] = Depends(get_optional_user)):
    """
    Recommend colleges from the quiz answers and keep the result

    Args:
        answers (QuizAnswers): Course, location, budget in lakhs and exams

    Returns:
        Dict containing the stored result id, the colleges and a message
    """
    v = validate_quiz(answers)
    if not v.ok:
        raise HTTPException(status_code=422, detail=v.errors)

    with get_db_session() as db:
        colleges = repository.recommend_colleges(db, answers)
        row = repository.save_quiz_result(db, user["user_id"] if user else None, answers, colleges)
        result_id = row.id

    return {
        "id": result_id,
        "colleges": [college.model_dump() for college in colleges],
        "message": QUIZ_READY_MESSAGE if colleges else NO_MATCH_MESSAGE
    }


@quiz_router.get("/results")
def list_quiz_results(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return [
            {
                "id": row.id,
                "answers": row.answers,
                "recommended_colleges": row.recommended_colleges,
                "created_at": row.created_at,
            }
            for row in repository.list_quiz_results(db, user["user_id"])
        ]


routers = [
    profile_router,
    my_colleges_router,
    applications_router,
    scholarships_router,
    quiz_router,
]
