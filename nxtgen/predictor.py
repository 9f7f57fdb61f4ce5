"""
Rank/cutoff prediction.

Two strategies:
- cutoff based: compare a rank against each college's cutoff for the
  chosen category
- formula based: turn exam marks into a rank range (static tables for
  JEE Main/NEET, blended score for EAMCET) and, for EAMCET, look up
  admissions whose closing rank falls in that range
"""

import logging
from typing import List, NamedTuple, Optional, Tuple

import pandas as pd
from sqlalchemy.orm import Session

from .filters import lower_text
from .models import (
    Category, College, CutoffPredictionInput, ExamType, PredictionResult,
    ScorePredictionInput, ValidationResult
)
from .repository import find_admissions, list_colleges
from .utils import build_cutoff_plot, colleges_to_frame, figure_to_dict

logger = logging.getLogger(__name__)

MAX_CUTOFF_RESULTS = 20
MAX_ADMISSION_RESULTS = 10
OPEN_UPPER_RANK = 200000

CUTOFF_COLUMNS = {category: f"cutoff_rank_{category.value}" for category in Category}

JEE_ADVANCED_TYPES = {"IIT", "NIT"}
EXAM_STATES = {
    ExamType.ap_eamcet: "Andhra Pradesh",
    ExamType.ts_eamcet: "Telangana",
}
CUTOFF_EXAMS = {ExamType.jee_main, ExamType.jee_advanced, ExamType.neet, ExamType.ap_eamcet, ExamType.ts_eamcet}
SCORE_EXAMS = {ExamType.jee_main, ExamType.neet, ExamType.ap_eamcet, ExamType.ts_eamcet}
EAMCET_EXAMS = {ExamType.ap_eamcet, ExamType.ts_eamcet}

# Exam name as stored in the admissions table
ADMISSION_EXAM_NAMES = {
    ExamType.ap_eamcet: "AP EAMCET",
    ExamType.ts_eamcet: "TS EAMCET",
}

MAX_MARKS = {
    ExamType.jee_main: 300,
    ExamType.neet: 720,
    ExamType.ap_eamcet: 160,
    ExamType.ts_eamcet: 160,
}
MAX_IPE_MARKS = 1000


class MarksBand(NamedTuple):
    min_marks: float
    rank_range: str
    example_colleges: Tuple[str, ...]


# Evaluated top-down, first match wins
JEE_MAIN_BANDS = [
    MarksBand(250, "1 – 2,000", ("NIT Tiruchirappalli", "NIT Surathkal", "NIT Warangal", "IIIT Hyderabad")),
    MarksBand(200, "2,000 – 10,000", ("NIT Calicut", "NIT Rourkela", "IIIT Allahabad", "DTU Delhi")),
    MarksBand(150, "10,000 – 35,000", ("NIT Durgapur", "NIT Jaipur", "NIT Kurukshetra", "IIIT Gwalior")),
    MarksBand(0, "> 35,000", ("State engineering colleges", "Private universities", "GFTIs")),
]

NEET_BANDS = [
    MarksBand(650, "1 – 2,000", ("AIIMS New Delhi", "Maulana Azad Medical College", "JIPMER Puducherry")),
    MarksBand(600, "2,000 – 20,000", ("Grant Medical College Mumbai", "Madras Medical College", "Osmania Medical College")),
    MarksBand(500, "20,000 – 75,000", ("Government medical colleges (state quota)", "ESIC medical colleges")),
    MarksBand(0, "> 75,000", ("Private medical colleges", "BDS and AYUSH colleges")),
]

# (min score, OC range, reserved category range)
EAMCET_BANDS = [
    (85, "500 – 1,000", "500 – 1,500"),
    (80, "1,000 – 2,500", "1,500 – 3,500"),
    (75, "2,500 – 5,000", "3,500 – 6,500"),
    (70, "5,000 – 8,000", "6,500 – 10,000"),
    (65, "8,000 – 12,000", "10,000 – 15,000"),
    (60, "12,000 – 18,000", "15,000 – 21,000"),
    (55, "18,000 – 25,000", "21,000 – 28,000"),
    (50, "25,000 – 32,000", "28,000 – 36,000"),
    (45, "32,000 – 40,000", "36,000 – 45,000"),
    (40, "40,000 – 50,000", "45,000 – 55,000"),
    (35, "50,000 – 60,000", "55,000 – 70,000"),
]
EAMCET_ELSE = ("> 60,000", "> 70,000")

NO_MATCH_MESSAGE = "No colleges found matching your criteria. Try adjusting your filters."
RETRY_MESSAGE = "Failed to predict colleges. Please try again."


def _exam(value: Optional[str]) -> Optional[ExamType]:
    try:
        return ExamType((value or "").strip().lower())
    except ValueError:
        return None


def _category(value: Optional[str]) -> Optional[Category]:
    try:
        return Category((value or "").strip().lower().replace("-", "_"))
    except ValueError:
        return None


# ============================================================
# CUTOFF BASED
# ============================================================

def validate_cutoff_request(payload: CutoffPredictionInput) -> ValidationResult:
    errors = []

    if payload.rank is None:
        errors.append("Please enter your rank.")
    elif payload.rank <= 0:
        errors.append("Rank must be a positive number.")

    if not payload.category:
        errors.append("Please select your category.")
    elif _category(payload.category) is None:
        errors.append(f"Unknown category: {payload.category}.")

    if not payload.exam_type:
        errors.append("Please select an exam.")
    elif _exam(payload.exam_type) not in CUTOFF_EXAMS:
        errors.append(f"Unknown exam: {payload.exam_type}.")

    return ValidationResult(ok=len(errors) == 0, errors=errors)


def narrow_by_exam(frame: pd.DataFrame, exam_type: ExamType) -> pd.DataFrame:
    """Restrict the candidate colleges to those the exam admits to."""
    if exam_type == ExamType.jee_advanced:
        return frame[lower_text(frame, "type").str.strip().str.upper().isin(JEE_ADVANCED_TYPES)]
    state = EXAM_STATES.get(exam_type)
    if state:
        return frame[lower_text(frame, "state").str.strip() == state.lower()]
    return frame


def predict_by_cutoff(colleges: List[College], rank: int, category: str, exam_type: str) -> List[College]:
    """
    Colleges whose cutoff for the category admits the given rank

    Args:
        colleges (List[College]): Candidate colleges
        rank (int): Student's rank
        category (str): One of the Category values
        exam_type (str): One of the ExamType values

    Returns:
        List[College]: Qualifying colleges, most selective first, at most 20
    """
    if not colleges:
        return []

    column = CUTOFF_COLUMNS[_category(category)]
    frame = narrow_by_exam(colleges_to_frame(colleges), _exam(exam_type))

    # Larger cutoff = less selective, so cutoff >= rank means the rank qualifies
    frame = frame.assign(_cutoff=pd.to_numeric(frame[column], errors="coerce"))
    frame = frame[frame["_cutoff"].notna() & (frame["_cutoff"] >= rank)]
    frame = frame.sort_values("_cutoff", kind="stable").head(MAX_CUTOFF_RESULTS)

    return [colleges[i] for i in frame.index]


def run_cutoff_prediction(db: Session, payload: CutoffPredictionInput) -> PredictionResult:
    """Fetch colleges and run the cutoff predictor. Store errors propagate to the caller."""
    colleges = list_colleges(db)
    matched = predict_by_cutoff(colleges, payload.rank, payload.category, payload.exam_type)
    logger.info(
        f"Cutoff prediction for rank {payload.rank} ({payload.category}, {payload.exam_type}): "
        f"{len(matched)} of {len(colleges)} colleges"
    )

    if not matched:
        return PredictionResult(colleges=[], message=NO_MATCH_MESSAGE)

    column = CUTOFF_COLUMNS[_category(payload.category)]
    return PredictionResult(
        colleges=matched,
        message=f"Found {len(matched)} colleges matching your criteria!",
        plot_data=figure_to_dict(build_cutoff_plot(matched, column))
    )


# ============================================================
# FORMULA BASED
# ============================================================

def validate_score_request(payload: ScorePredictionInput) -> ValidationResult:
    errors = []
    exam = _exam(payload.exam_type)

    if not payload.exam_type:
        errors.append("Please select an exam.")
    elif exam not in SCORE_EXAMS:
        errors.append(f"Unknown exam: {payload.exam_type}.")

    if not payload.category:
        errors.append("Please select your category.")

    if payload.exam_marks is None:
        errors.append("Please enter your exam marks.")
    elif exam in MAX_MARKS and not (0 <= payload.exam_marks <= MAX_MARKS[exam]):
        errors.append(f"Exam marks must be between 0 and {MAX_MARKS[exam]}.")

    if exam in EAMCET_EXAMS:
        if payload.ipe_marks is None:
            errors.append("Please enter your IPE marks.")
        elif not (0 <= payload.ipe_marks <= MAX_IPE_MARKS):
            errors.append(f"IPE marks must be between 0 and {MAX_IPE_MARKS}.")

    return ValidationResult(ok=len(errors) == 0, errors=errors)


def lookup_band(bands: List[MarksBand], marks: float) -> MarksBand:
    for band in bands:
        if marks >= band.min_marks:
            return band
    return bands[-1]


def eamcet_score(exam_marks: float, ipe_marks: float) -> float:
    """Exam marks weighted to 75 points plus IPE marks (rescaled to 600) weighted to 25."""
    ipe_on_600 = ipe_marks / 1000 * 600
    return (exam_marks / 160) * 75 + (ipe_on_600 / 600) * 25


def eamcet_rank_range(final_score: float, category: str) -> str:
    is_oc = (category or "").strip().upper() == "OC"
    for min_score, oc_range, reserved_range in EAMCET_BANDS:
        if final_score >= min_score:
            return oc_range if is_oc else reserved_range
    return EAMCET_ELSE[0] if is_oc else EAMCET_ELSE[1]


def parse_rank_range(rank_range: str) -> Tuple[int, int]:
    """
    Rank bounds from a range label

    "12,000 – 18,000" -> (12000, 18000); "> 60,000" -> (60000, 200000)
    """
    label = rank_range.strip()
    if label.startswith(">"):
        return int(label[1:].strip().replace(",", "")), OPEN_UPPER_RANK
    low, high = label.split("–", 1)
    return int(low.strip().replace(",", "")), int(high.strip().replace(",", ""))


def run_score_prediction(db: Session, payload: ScorePredictionInput) -> PredictionResult:
    """
    Predict a rank range from exam marks

    Args:
        db (Session): Open session, used for the EAMCET admissions lookup
        payload (ScorePredictionInput): Validated request

    Returns:
        PredictionResult: Rank range, EAMCET final score and matching colleges
    """
    exam = _exam(payload.exam_type)

    if exam not in EAMCET_EXAMS:
        bands = JEE_MAIN_BANDS if exam == ExamType.jee_main else NEET_BANDS
        band = lookup_band(bands, payload.exam_marks)
        return PredictionResult(
            rank_range=band.rank_range,
            example_colleges=list(band.example_colleges),
            message=f"Expected rank range: {band.rank_range}"
        )

    final_score = eamcet_score(payload.exam_marks, payload.ipe_marks)
    rank_range = eamcet_rank_range(final_score, payload.category)
    min_rank, max_rank = parse_rank_range(rank_range)
    logger.info(f"EAMCET score {final_score:.2f} ({payload.category}) -> rank range {rank_range}")

    matches = find_admissions(
        db,
        exam_name=ADMISSION_EXAM_NAMES[exam],
        category=payload.category,
        min_rank=min_rank,
        max_rank=max_rank,
        limit=MAX_ADMISSION_RESULTS
    )

    return PredictionResult(
        rank_range=rank_range,
        final_score=round(final_score, 2),
        colleges=matches,
        message=f"Found {len(matches)} colleges for rank range {rank_range}" if matches else NO_MATCH_MESSAGE
    )
