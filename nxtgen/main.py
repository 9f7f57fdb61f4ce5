from datetime import timedelta
from typing import Optional
import logging
import os

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import uvicorn

from . import __version__, repository
from .auth import get_optional_user
from .community import routers as community_routers
from .config import get_settings
from .db import check_connection, get_db_session, init_db
from .filters import apply_filters, search_colleges
from .models import CutoffPredictionInput, FilterRequest, MessageResponse, ScorePredictionInput
from .predictor import (
    NO_MATCH_MESSAGE, RETRY_MESSAGE, run_cutoff_prediction, run_score_prediction,
    validate_cutoff_request, validate_score_request
)
from .session import SessionRegistry
from .student import routers as student_routers
from .utils import get_filter_options, load_seed_data

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

STORE_ERROR_MESSAGE = "Something went wrong. Please try again."

# FastAPI Application
app = FastAPI(
    title="NXTGEN College Guide",
    description="College discovery and admission prediction",
    version=__version__
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

for router in community_routers + student_routers:
    app.include_router(router)

# One app visit per session; see nxtgen.session
sessions = SessionRegistry(
    idle_timeout=timedelta(minutes=settings.session_idle_minutes),
    max_sessions=settings.max_sessions
)


def _retry_response(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"message": message, "colleges": [], "retryable": True}
    )


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Store error on {request.method} {request.url.path}: {exc}")
    return _retry_response(STORE_ERROR_MESSAGE)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create tables and load seed data on startup"""
    try:
        init_db()
        if settings.seed_on_startup:
            with get_db_session() as db:
                load_seed_data(db, settings.seed_dir)
        logger.info("Database ready on startup")
    except Exception as e:
        logger.error(f"Failed to prepare database on startup: {e}")


# Store-backed handlers are plain def; FastAPI runs them in its threadpool.
# Session handlers stay async so sessions are only touched on the event loop.
@app.get("/api/filter-options")
def filter_options():
    """States, districts and college types for the filter modal"""
    with get_db_session() as db:
        colleges = repository.list_colleges(db)
    return get_filter_options(colleges)


@app.post("/api/colleges/filter")
def filter_colleges(request: FilterRequest):
    """
    Run the filter engine over the stored colleges

    Args:
        request (FilterRequest): Filter modal selections and optional search text

    Returns:
        Dict containing the matching colleges in result order
    """
    with get_db_session() as db:
        colleges = repository.list_colleges(db)

    colleges = search_colleges(colleges, request.query)
    result = apply_filters(colleges, request.criteria)

    return {
        "colleges": [college.model_dump() for college in result],
        "count": len(result),
        "message": "" if result else NO_MATCH_MESSAGE
    }


def _run_search(query: str, limit: int):
    with get_db_session() as db:
        if not query.strip():
            return repository.list_colleges(db, limit=limit)
        return repository.search_colleges(db, query, limit=limit)


@app.get("/api/colleges/search")
async def search(
    q: str = Query("", description="College name, city, state or short code"),
    session_id: Optional[str] = Query(None, description="Session whose latest search wins"),
    limit: int = Query(50, ge=1, le=200)
):
    """
    Free-text college search.

    With a session id, only the newest search of that session is applied;
    a search overtaken by a newer one comes back with stale=true and no rows.
    """
    state = None
    if session_id:
        state = sessions.get(session_id)
        if state is None:
            raise HTTPException(status_code=404, detail="Session not found")

    token = state.search_gate.issue() if state else None
    results = await run_in_threadpool(_run_search, q, limit)

    if state is not None and not state.apply_search(token, results):
        return {"query": q, "colleges": [], "count": 0, "stale": True}

    return {
        "query": q,
        "colleges": [college.model_dump() for college in results],
        "count": len(results),
        "stale": False
    }


@app.get("/api/colleges/{college_id}")
def college_detail(college_id: int):
    with get_db_session() as db:
        college = repository.get_college(db, college_id)
    if college is None:
        raise HTTPException(status_code=404, detail="College not found")
    return college.model_dump()


@app.post("/api/predict/cutoff")
def predict_cutoff(payload: CutoffPredictionInput):
    """
    Predict colleges from a rank and its category cutoff

    Args:
        payload (CutoffPredictionInput): Rank, category and exam

    Returns:
        Dict containing predictions and visualization data
    """
    v = validate_cutoff_request(payload)
    if not v.ok:
        raise HTTPException(status_code=422, detail=v.errors)

    try:
        with get_db_session() as db:
            result = run_cutoff_prediction(db, payload)
    except SQLAlchemyError as e:
        logger.error(f"Error in predict_cutoff endpoint: {e}")
        return _retry_response(RETRY_MESSAGE)

    return result


@app.post("/api/predict/score")
def predict_score(payload: ScorePredictionInput):
    """
    Predict a rank range (and, for EAMCET, matching admissions) from marks

    Args:
        payload (ScorePredictionInput): Exam, marks, IPE marks and category

    Returns:
        Dict containing the rank range, EAMCET score and colleges
    """
    v = validate_score_request(payload)
    if not v.ok:
        raise HTTPException(status_code=422, detail=v.errors)

    try:
        with get_db_session() as db:
            result = run_score_prediction(db, payload)
    except SQLAlchemyError as e:
        logger.error(f"Error in predict_score endpoint: {e}")
        return _retry_response(RETRY_MESSAGE)

    return result


@app.post("/api/session", status_code=201)
async def start_session(user: Optional[dict] = Depends(get_optional_user)):
    state = sessions.start(user_id=user["user_id"] if user else None)
    return {"session_id": state.session_id, "user_id": state.user_id}


@app.delete("/api/session/{session_id}", response_model=MessageResponse)
async def end_session(session_id: str):
    if not sessions.end(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return MessageResponse(message="Session ended")


@app.post("/api/session/{session_id}/flash-popup")
async def flash_popup(session_id: str):
    """Whether to show the flash popup; true only once per session"""
    state = sessions.get(session_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"show": state.take_flash_popup()}


# Health check endpoint
@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "database": "up" if check_connection() else "down"}


if __name__ == "__main__":
    uvicorn.run(
        "nxtgen.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", settings.port)),
        reload=True
    )
