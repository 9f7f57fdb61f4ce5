"""
Signed-in user features.

GET /api/favorites - My favorite colleges
POST /api/favorites/{college_id} - Add a favorite
DELETE /api/favorites/{college_id} - Remove a favorite
GET /api/news - Published news
GET /api/saved-news - My saved news
POST /api/saved-news/{resource_id} - Save a news item
DELETE /api/saved-news/{resource_id} - Unsave a news item
GET /api/colleges/{college_id}/reviews - Reviews of a college
POST /api/colleges/{college_id}/reviews - Review a college
GET /api/notifications - My notifications
PUT /api/notifications/read-all - Mark all read
PUT /api/notifications/{notification_id}/read - Mark one read
DELETE /api/notifications/{notification_id} - Delete one
GET /api/forum/questions - Questions with answers
POST /api/forum/questions - Ask a question
POST /api/forum/questions/{question_id}/answers - Answer a question
POST /api/compare - Compare 2 to 4 colleges
POST /api/compare/save - Save a comparison
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from . import repository
from .auth import get_current_user
from .db import get_db_session
from .models import (
    AnswerCreate, AnswerResponse, College, CompareInput, FavoriteResponse,
    MessageResponse, NotificationResponse, QuestionCreate, QuestionResponse,
    ReviewCreate, ReviewResponse, SavedNewsResponse, ValidationResult
)
from .utils import build_comparison_plot, figure_to_dict

logger = logging.getLogger(__name__)

RATING_MESSAGE = "Please select a rating between 1 and 5!"


def validate_review(data: ReviewCreate) -> ValidationResult:
    errors = []
    if not 1 <= data.rating <= 5:
        errors.append(RATING_MESSAGE)
    return ValidationResult(ok=len(errors) == 0, errors=errors)


# ============================================================
# FAVORITES
# ============================================================

favorites_router = APIRouter(prefix="/api/favorites", tags=["Favorites"])


@favorites_router.get("", response_model=List[FavoriteResponse])
def list_favorites(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        rows = repository.list_favorites(db, user["user_id"])
        return [FavoriteResponse.model_validate(row) for row in rows]


@favorites_router.post("/{college_id}", response_model=FavoriteResponse, status_code=201)
def add_favorite(college_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = repository.add_favorite(db, user["user_id"], college_id)
        if row is None:
            raise HTTPException(status_code=404, detail="College not found")
        return FavoriteResponse.model_validate(row)


@favorites_router.delete("/{college_id}", response_model=MessageResponse)
def remove_favorite(college_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        removed = repository.remove_favorite(db, user["user_id"], college_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Favorite not found")
    return MessageResponse(message="Removed from favorites")


# ============================================================
# NEWS
# ============================================================

news_router = APIRouter(prefix="/api", tags=["News"])


@news_router.get("/news")
def list_news(category: Optional[str] = None):
    with get_db_session() as db:
        rows = repository.list_news(db, category=category)
        return [
            {
                "id": row.id,
                "title": row.title,
                "category": row.category,
                "description": row.description,
                "source": row.source,
                "image_url": row.image_url,
                "is_featured": bool(row.is_featured),
                "created_at": row.created_at,
            }
            for row in rows
        ]


@news_router.get("/saved-news", response_model=List[SavedNewsResponse])
def list_saved_news(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        rows = repository.list_saved_news(db, user["user_id"])
        return [SavedNewsResponse.model_validate(row) for row in rows]


@news_router.post("/saved-news/{resource_id}", response_model=SavedNewsResponse, status_code=201)
def save_news(resource_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = repository.save_news(db, user["user_id"], resource_id)
        if row is None:
            raise HTTPException(status_code=404, detail="News item not found")
        return SavedNewsResponse.model_validate(row)


@news_router.delete("/saved-news/{resource_id}", response_model=MessageResponse)
def unsave_news(resource_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        removed = repository.unsave_news(db, user["user_id"], resource_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Saved news item not found")
    return MessageResponse(message="Removed from saved news")


# ============================================================
# REVIEWS
# ============================================================

reviews_router = APIRouter(prefix="/api/colleges", tags=["Reviews"])


@reviews_router.get("/{college_id}/reviews", response_model=List[ReviewResponse])
def list_reviews(college_id: int):
    with get_db_session() as db:
        if repository.get_college(db, college_id) is None:
            raise HTTPException(status_code=404, detail="College not found")
        rows = repository.list_reviews(db, college_id)
        return [ReviewResponse.model_validate(row) for row in rows]


@reviews_router.post("/{college_id}/reviews", response_model=ReviewResponse, status_code=201)
def add_review(college_id: int, data: ReviewCreate, user: dict = Depends(get_current_user)):
    """Submit a review. Rating must be 1 to 5 stars."""
    v = validate_review(data)
    if not v.ok:
        raise HTTPException(status_code=422, detail=v.errors)

    with get_db_session() as db:
        if repository.get_college(db, college_id) is None:
            raise HTTPException(status_code=404, detail="College not found")
        row = repository.add_review(db, user["user_id"], college_id, data.rating, data.review.strip())
        logger.info(f"Review {row.id} added for college {college_id}")
        return ReviewResponse.model_validate(row)


# ============================================================
# NOTIFICATIONS
# ============================================================

notifications_router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@notifications_router.get("", response_model=List[NotificationResponse])
def list_notifications(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        rows = repository.list_notifications(db, user["user_id"])
        return [NotificationResponse.model_validate(row) for row in rows]


@notifications_router.put("/read-all", response_model=MessageResponse)
def mark_all_read(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        count = repository.mark_all_notifications_read(db, user["user_id"])
    return MessageResponse(message=f"Marked {count} notifications as read")


@notifications_router.put("/{notification_id}/read", response_model=MessageResponse)
def mark_read(notification_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        updated = repository.mark_notification_read(db, user["user_id"], notification_id)
    if not updated:
        raise HTTPException(status_code=404, detail="Notification not found")
    return MessageResponse(message="Notification marked as read")


@notifications_router.delete("/{notification_id}", response_model=MessageResponse)
def delete_notification(notification_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        deleted = repository.delete_notification(db, user["user_id"], notification_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Notification not found")
    return MessageResponse(message="Notification deleted")


# ============================================================
# FORUM
# ============================================================

forum_router = APIRouter(prefix="/api/forum", tags=["Forum"])


@forum_router.get("/questions", response_model=List[QuestionResponse])
def list_questions():
    with get_db_session() as db:
        return [
            QuestionResponse(
                id=question.id,
                user_id=question.user_id,
                title=question.title,
                body=question.body or "",
                created_at=question.created_at,
                answers=[AnswerResponse.model_validate(answer) for answer in answers]
            )
            for question, answers in repository.list_questions(db)
        ]


@forum_router.post("/questions", response_model=QuestionResponse, status_code=201)
def ask_question(data: QuestionCreate, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = repository.ask_question(db, user["user_id"], data.title.strip(), data.body.strip())
        return QuestionResponse(
            id=row.id, user_id=row.user_id, title=row.title, body=row.body, created_at=row.created_at
        )


@forum_router.post("/questions/{question_id}/answers", response_model=AnswerResponse, status_code=201)
def answer_question(question_id: int, data: AnswerCreate, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = repository.answer_question(db, user["user_id"], question_id, data.body.strip())
        if row is None:
            raise HTTPException(status_code=404, detail="Question not found")
        return AnswerResponse.model_validate(row)


# ============================================================
# COMPARE
# ============================================================

compare_router = APIRouter(prefix="/api/compare", tags=["Compare"])


@compare_router.post("")
def compare_colleges(data: CompareInput):
    """
    Side-by-side view of 2 to 4 colleges

    Returns:
        Dict containing the colleges in request order and a grouped bar chart
    """
    with get_db_session() as db:
        colleges = repository.get_colleges_by_ids(db, data.college_ids)

    if len(colleges) < 2:
        raise HTTPException(status_code=404, detail="At least two of the selected colleges must exist")

    return {
        "colleges": [college.model_dump() for college in colleges],
        "plot_data": figure_to_dict(build_comparison_plot(colleges))
    }


@compare_router.post("/save", response_model=MessageResponse, status_code=201)
def save_comparison(data: CompareInput, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        found: List[College] = repository.get_colleges_by_ids(db, data.college_ids)
        if {college.id for college in found} != set(data.college_ids):
            raise HTTPException(status_code=404, detail="One or more colleges not found")
        row = repository.save_comparison(db, user["user_id"], data.college_ids)
        comparison_id = row.id
    return MessageResponse(message=f"Comparison {comparison_id} saved")


routers = [
    favorites_router,
    news_router,
    reviews_router,
    notifications_router,
    forum_router,
    compare_router,
]
