"""
Row-query surface over the backend tables.

Reads take column equality / ilike predicates and an order-by clause; writes
are keyed inserts and deletes scoped to a user id. Functions flush but never
commit; the caller's session owns the transaction.
"""

import logging
from typing import Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from .filters import SEARCH_COLUMNS, expand_query
from .models import AdmissionMatch, College, QuizAnswers
from .tables import (
    AdmissionRow, ApplicationRow, CollegeFavoriteRow, CollegeRow, ComparisonRow, CourseRow,
    ForumAnswerRow, ForumQuestionRow, NotificationRow, ProfileRow, QuizResultRow,
    ResourceRow, ReviewRow, SavedResourceRow, ScholarshipRow, SelectedCollegeRow
)

logger = logging.getLogger(__name__)


def _college_column(name: str):
    if name not in CollegeRow.__table__.columns:
        raise ValueError(f"Unknown college column: {name}")
    return getattr(CollegeRow, name)


def _to_college(row) -> Optional[College]:
    """A stored row as a College; rows breaking the rating/cutoff bounds are skipped."""
    try:
        return College.model_validate(row)
    except ValidationError as e:
        logger.warning(f"Skipping invalid college row {row.id}: {e.error_count()} errors")
        return None


def _to_colleges(rows) -> List[College]:
    colleges = (_to_college(row) for row in rows)
    return [college for college in colleges if college is not None]


def _find_user_link(db: Session, model, user_id: str, **key):
    return db.execute(select(model).filter_by(user_id=user_id, **key)).scalar_one_or_none()


def _add_user_link(db: Session, model, user_id: str, **key):
    """Insert a (user, target) row once; a repeated add returns the existing row."""
    existing = _find_user_link(db, model, user_id, **key)
    if existing is not None:
        return existing
    row = model(user_id=user_id, **key)
    db.add(row)
    db.flush()
    return row


def _remove_user_link(db: Session, model, user_id: str, **key) -> bool:
    result = db.execute(delete(model).filter_by(user_id=user_id, **key))
    return result.rowcount > 0


# ============================================================
# COLLEGES
# ============================================================

def list_colleges(
    db: Session,
    eq: Optional[Dict[str, object]] = None,
    ilike: Optional[Dict[str, str]] = None,
    order_by: Optional[str] = None,
    ascending: bool = True,
    limit: Optional[int] = None
) -> List[College]:
    """
    List colleges matching every predicate

    Args:
        db (Session): Open session
        eq (dict): column -> value equality predicates
        ilike (dict): column -> substring, case-insensitive
        order_by (str): Column to order by; id breaks ties
        ascending (bool): Order direction
        limit (int): Max rows

    Returns:
        List[College]: Matching colleges
    """
    stmt = select(CollegeRow)
    for column, value in (eq or {}).items():
        stmt = stmt.where(_college_column(column) == value)
    for column, value in (ilike or {}).items():
        stmt = stmt.where(_college_column(column).ilike(f"%{value}%"))
    if order_by:
        column = _college_column(order_by)
        stmt = stmt.order_by(column.asc() if ascending else column.desc())
    stmt = stmt.order_by(CollegeRow.id)
    if limit:
        stmt = stmt.limit(limit)
    return _to_colleges(db.execute(stmt).scalars().all())


def search_colleges(db: Session, query: str, limit: int = 50) -> List[College]:
    """ilike match of the query (and its shortcut expansions) on any searchable column."""
    terms = expand_query(query)
    conditions = [
        getattr(CollegeRow, column).ilike(f"%{term}%")
        for term in terms
        for column in SEARCH_COLUMNS
    ]
    stmt = select(CollegeRow).where(or_(*conditions)).order_by(CollegeRow.id).limit(limit)
    return _to_colleges(db.execute(stmt).scalars().all())


def get_college(db: Session, college_id: int) -> Optional[College]:
    row = db.get(CollegeRow, college_id)
    return _to_college(row) if row is not None else None


def get_colleges_by_ids(db: Session, college_ids: List[int]) -> List[College]:
    """Colleges in the order of the ids given; unknown ids are skipped."""
    rows = db.execute(select(CollegeRow).where(CollegeRow.id.in_(college_ids))).scalars().all()
    by_id = {row.id: row for row in rows}
    return _to_colleges(by_id[i] for i in college_ids if i in by_id)


def find_admissions(
    db: Session,
    exam_name: str,
    category: str,
    min_rank: int,
    max_rank: int,
    limit: int = 10
) -> List[AdmissionMatch]:
    """Admissions joined with college and course, closing rank within [min_rank, max_rank]."""
    stmt = (
        select(AdmissionRow, CollegeRow, CourseRow)
        .join(CollegeRow, AdmissionRow.college_id == CollegeRow.id)
        .outerjoin(CourseRow, AdmissionRow.course_id == CourseRow.id)
        .where(AdmissionRow.exam_name == exam_name)
        .where(func.lower(AdmissionRow.category) == category.strip().lower())
        .where(AdmissionRow.closing_rank >= min_rank)
        .where(AdmissionRow.closing_rank <= max_rank)
        .order_by(AdmissionRow.closing_rank.asc(), AdmissionRow.id)
        .limit(limit)
    )
    matches = []
    for admission, college, course in db.execute(stmt).all():
        matches.append(AdmissionMatch(
            college_id=college.id,
            college_name=college.name,
            location=college.location or "",
            course_name=course.course_name if course else None,
            branch=course.branch if course else None,
            category=admission.category,
            opening_rank=admission.opening_rank,
            closing_rank=admission.closing_rank,
            year=admission.year
        ))
    return matches


# ============================================================
# FAVORITES
# ============================================================

def list_favorites(db: Session, user_id: str) -> List[CollegeFavoriteRow]:
    stmt = (
        select(CollegeFavoriteRow)
        .where(CollegeFavoriteRow.user_id == user_id)
        .order_by(CollegeFavoriteRow.created_at.desc(), CollegeFavoriteRow.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def add_favorite(db: Session, user_id: str, college_id: int) -> Optional[CollegeFavoriteRow]:
    """Add a college to the user's favorites. Returns None for an unknown college."""
    if db.get(CollegeRow, college_id) is None:
        return None
    return _add_user_link(db, CollegeFavoriteRow, user_id, college_id=college_id)


def remove_favorite(db: Session, user_id: str, college_id: int) -> bool:
    return _remove_user_link(db, CollegeFavoriteRow, user_id, college_id=college_id)


# ============================================================
# NEWS
# ============================================================

def list_news(db: Session, category: Optional[str] = None, limit: int = 50) -> List[ResourceRow]:
    stmt = select(ResourceRow)
    if category:
        stmt = stmt.where(ResourceRow.category == category)
    stmt = stmt.order_by(ResourceRow.is_featured.desc(), ResourceRow.created_at.desc()).limit(limit)
    return list(db.execute(stmt).scalars().all())


def list_saved_news(db: Session, user_id: str) -> List[SavedResourceRow]:
    stmt = (
        select(SavedResourceRow)
        .where(SavedResourceRow.user_id == user_id)
        .order_by(SavedResourceRow.created_at.desc(), SavedResourceRow.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def save_news(db: Session, user_id: str, resource_id: int) -> Optional[SavedResourceRow]:
    if db.get(ResourceRow, resource_id) is None:
        return None
    return _add_user_link(db, SavedResourceRow, user_id, resource_id=resource_id)


def unsave_news(db: Session, user_id: str, resource_id: int) -> bool:
    return _remove_user_link(db, SavedResourceRow, user_id, resource_id=resource_id)


# ============================================================
# REVIEWS
# ============================================================

def list_reviews(db: Session, college_id: int) -> List[ReviewRow]:
    stmt = (
        select(ReviewRow)
        .where(ReviewRow.college_id == college_id)
        .order_by(ReviewRow.created_at.desc(), ReviewRow.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def add_review(db: Session, user_id: str, college_id: int, rating: int, review: str) -> ReviewRow:
    row = ReviewRow(user_id=user_id, college_id=college_id, rating=rating, review=review)
    db.add(row)
    db.flush()
    return row


# ============================================================
# NOTIFICATIONS
# ============================================================

def list_notifications(db: Session, user_id: str) -> List[NotificationRow]:
    stmt = (
        select(NotificationRow)
        .where(NotificationRow.user_id == user_id)
        .order_by(NotificationRow.created_at.desc(), NotificationRow.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def create_notification(
    db: Session,
    user_id: str,
    message: str,
    category: str = "general",
    resource_id: Optional[int] = None
) -> NotificationRow:
    row = NotificationRow(user_id=user_id, message=message, category=category, resource_id=resource_id)
    db.add(row)
    db.flush()
    return row


def mark_notification_read(db: Session, user_id: str, notification_id: int) -> bool:
    result = db.execute(
        update(NotificationRow)
        .where(NotificationRow.id == notification_id, NotificationRow.user_id == user_id)
        .values(read=True)
    )
    return result.rowcount > 0


def mark_all_notifications_read(db: Session, user_id: str) -> int:
    result = db.execute(
        update(NotificationRow)
        .where(NotificationRow.user_id == user_id, NotificationRow.read.is_(False))
        .values(read=True)
    )
    return result.rowcount


def delete_notification(db: Session, user_id: str, notification_id: int) -> bool:
    result = db.execute(
        delete(NotificationRow).where(
            NotificationRow.id == notification_id,
            NotificationRow.user_id == user_id
        )
    )
    return result.rowcount > 0


# ============================================================
# FORUM
# ============================================================

def list_questions(db: Session, limit: int = 50):
    """Questions newest first, each paired with its answers oldest first."""
    questions = db.execute(
        select(ForumQuestionRow).order_by(ForumQuestionRow.created_at.desc(), ForumQuestionRow.id.desc()).limit(limit)
    ).scalars().all()
    if not questions:
        return []
    answers = db.execute(
        select(ForumAnswerRow)
        .where(ForumAnswerRow.question_id.in_([q.id for q in questions]))
        .order_by(ForumAnswerRow.created_at.asc(), ForumAnswerRow.id.asc())
    ).scalars().all()
    by_question: Dict[int, List[ForumAnswerRow]] = {}
    for answer in answers:
        by_question.setdefault(answer.question_id, []).append(answer)
    return [(question, by_question.get(question.id, [])) for question in questions]


def ask_question(db: Session, user_id: str, title: str, body: str) -> ForumQuestionRow:
    row = ForumQuestionRow(user_id=user_id, title=title, body=body)
    db.add(row)
    db.flush()
    return row


def answer_question(db: Session, user_id: str, question_id: int, body: str) -> Optional[ForumAnswerRow]:
    """Answer a question and notify its author. Returns None for an unknown question."""
    question = db.get(ForumQuestionRow, question_id)
    if question is None:
        return None
    row = ForumAnswerRow(question_id=question_id, user_id=user_id, body=body)
    db.add(row)
    db.flush()
    if question.user_id != user_id:
        create_notification(
            db,
            question.user_id,
            f"New answer to your question: {question.title}",
            category="forum",
            resource_id=question_id
        )
    return row


# ============================================================
# COMPARISONS
# ============================================================

def save_comparison(db: Session, user_id: str, college_ids: List[int]) -> ComparisonRow:
    row = ComparisonRow(user_id=user_id, college_ids=list(college_ids))
    db.add(row)
    db.flush()
    return row


# ============================================================
# PROFILES
# ============================================================

DEFAULT_NOTIFICATION_PREFERENCES = {"scholarships": True, "admissions": True, "events": True}


def get_or_create_profile(db: Session, user_id: str, email: Optional[str] = None) -> ProfileRow:
    """The user's profile, created with default preferences on first access."""
    row = db.get(ProfileRow, user_id)
    if row is not None:
        return row
    row = ProfileRow(
        id=user_id,
        email=email or "",
        preferred_branches=[],
        preferred_locations=[],
        notification_preferences=dict(DEFAULT_NOTIFICATION_PREFERENCES),
        tutorial_completed=False
    )
    db.add(row)
    db.flush()
    logger.info(f"Profile created for {user_id}")
    return row


def update_profile(
    db: Session,
    user_id: str,
    changes: Dict[str, object],
    email: Optional[str] = None
) -> ProfileRow:
    """
    Apply the given profile fields

    Args:
        db (Session): Open session
        user_id (str): Profile owner
        changes (dict): field -> new value; notification_preferences is merged
            into the stored preferences instead of replacing them
        email (str): Used only when the profile does not exist yet

    Returns:
        ProfileRow: The updated profile
    """
    row = get_or_create_profile(db, user_id, email)
    changes = dict(changes)
    preferences = changes.pop("notification_preferences", None)
    for column, value in changes.items():
        if column not in ProfileRow.__table__.columns or column == "id":
            raise ValueError(f"Unknown profile field: {column}")
        setattr(row, column, value)
    if preferences:
        merged = dict(row.notification_preferences or DEFAULT_NOTIFICATION_PREFERENCES)
        merged.update(preferences)
        row.notification_preferences = merged
    db.flush()
    return row


def complete_tutorial(db: Session, user_id: str, email: Optional[str] = None) -> ProfileRow:
    row = get_or_create_profile(db, user_id, email)
    row.tutorial_completed = True
    db.flush()
    return row


# ============================================================
# MY COLLEGES
# ============================================================

def list_selected_colleges(db: Session, user_id: str) -> List[SelectedCollegeRow]:
    stmt = (
        select(SelectedCollegeRow)
        .where(SelectedCollegeRow.user_id == user_id)
        .order_by(SelectedCollegeRow.created_at.desc(), SelectedCollegeRow.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def select_college(db: Session, user_id: str, college_id: int) -> Optional[SelectedCollegeRow]:
    """Add a college to My Colleges. Returns None for an unknown college."""
    if db.get(CollegeRow, college_id) is None:
        return None
    return _add_user_link(db, SelectedCollegeRow, user_id, college_id=college_id)


def unselect_college(db: Session, user_id: str, college_id: int) -> bool:
    return _remove_user_link(db, SelectedCollegeRow, user_id, college_id=college_id)


# ============================================================
# APPLICATION TRACKER
# ============================================================

def list_applications(db: Session, user_id: str, type: Optional[str] = None) -> List[ApplicationRow]:
    stmt = select(ApplicationRow).where(ApplicationRow.user_id == user_id)
    if type:
        stmt = stmt.where(ApplicationRow.type == type)
    stmt = stmt.order_by(ApplicationRow.created_at.desc(), ApplicationRow.id.desc())
    return list(db.execute(stmt).scalars().all())


def track_application(
    db: Session,
    user_id: str,
    type: str,
    target_id: str,
    status: str = "pending",
    notes: Optional[str] = None
) -> ApplicationRow:
    row = ApplicationRow(user_id=user_id, type=type, target_id=target_id, status=status, notes=notes)
    db.add(row)
    db.flush()
    return row


def update_application(
    db: Session,
    user_id: str,
    application_id: int,
    status: Optional[str] = None,
    notes: Optional[str] = None
) -> Optional[ApplicationRow]:
    """Change status and/or notes. Returns None when the user has no such application."""
    row = db.execute(
        select(ApplicationRow).where(ApplicationRow.id == application_id, ApplicationRow.user_id == user_id)
    ).scalar_one_or_none()
    if row is None:
        return None
    if status is not None:
        row.status = status
    if notes is not None:
        row.notes = notes
    db.flush()
    return row


def delete_application(db: Session, user_id: str, application_id: int) -> bool:
    result = db.execute(
        delete(ApplicationRow).where(ApplicationRow.id == application_id, ApplicationRow.user_id == user_id)
    )
    return result.rowcount > 0


# ============================================================
# SCHOLARSHIPS
# ============================================================

def list_scholarships(db: Session) -> List[ScholarshipRow]:
    """Scholarships by nearest deadline; ones without a deadline last."""
    stmt = select(ScholarshipRow).order_by(
        ScholarshipRow.deadline.is_(None), ScholarshipRow.deadline.asc(), ScholarshipRow.id
    )
    return list(db.execute(stmt).scalars().all())


# ============================================================
# RECOMMENDATION QUIZ
# ============================================================

QUIZ_RECOMMENDATIONS = 6


def _exam_key(exam: str) -> str:
    return "-".join(exam.strip().lower().split())


def _takes_exam(college: College, exams: List[str]) -> bool:
    eligible = [_exam_key(exam) for exam in college.eligible_exams]
    return any(wanted in exam for wanted in exams for exam in eligible)


def recommend_colleges(db: Session, answers: QuizAnswers, limit: int = QUIZ_RECOMMENDATIONS) -> List[College]:
    """
    Colleges matching every quiz answer given, best rated first

    Args:
        db (Session): Open session
        answers (QuizAnswers): Course, location ('Any' for anywhere), budget in
            lakhs compared with the maximum fees, and entrance exams
        limit (int): Max colleges

    Returns:
        List[College]: Recommended colleges
    """
    stmt = select(CollegeRow)

    course = (answers.preferred_course or "").strip()
    if course:
        pattern = f"%{course}%"
        offering = select(CourseRow.college_id).where(
            or_(CourseRow.branch.ilike(pattern), CourseRow.course_name.ilike(pattern))
        )
        stmt = stmt.where(or_(
            CollegeRow.name.ilike(pattern),
            CollegeRow.type.ilike(pattern),
            CollegeRow.id.in_(offering)
        ))

    location = (answers.preferred_location or "").strip()
    if location and location.lower() != "any":
        pattern = f"%{location}%"
        stmt = stmt.where(or_(
            CollegeRow.city.ilike(pattern),
            CollegeRow.state.ilike(pattern),
            CollegeRow.location.ilike(pattern)
        ))

    if answers.budget:
        stmt = stmt.where(CollegeRow.total_fees_max <= int(answers.budget * 100000))

    stmt = stmt.order_by(CollegeRow.rating.desc().nulls_last(), CollegeRow.id)
    colleges = _to_colleges(db.execute(stmt).scalars().all())

    exams = [_exam_key(exam) for exam in answers.exams if exam.strip()]
    if exams:
        colleges = [college for college in colleges if _takes_exam(college, exams)]

    return colleges[:limit]


def save_quiz_result(
    db: Session,
    user_id: Optional[str],
    answers: QuizAnswers,
    colleges: List[College]
) -> QuizResultRow:
    row = QuizResultRow(
        user_id=user_id,
        answers=answers.model_dump(),
        recommended_colleges=[{"id": college.id, "name": college.name} for college in colleges]
    )
    db.add(row)
    db.flush()
    return row


def list_quiz_results(db: Session, user_id: str) -> List[QuizResultRow]:
    stmt = (
        select(QuizResultRow)
        .where(QuizResultRow.user_id == user_id)
        .order_by(QuizResultRow.created_at.desc(), QuizResultRow.id.desc())
    )
    return list(db.execute(stmt).scalars().all())
