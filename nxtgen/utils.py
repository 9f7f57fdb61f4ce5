import json
import logging
import os
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objs as go
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .models import College
from .tables import AdmissionRow, CollegeRow, CourseRow, ScholarshipRow

logger = logging.getLogger(__name__)

INDIAN_STATES = [
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh",
    "Goa", "Gujarat", "Haryana", "Himachal Pradesh", "Jharkhand", "Karnataka",
    "Kerala", "Madhya Pradesh", "Maharashtra", "Manipur", "Meghalaya", "Mizoram",
    "Nagaland", "Odisha", "Punjab", "Rajasthan", "Sikkim", "Tamil Nadu",
    "Telangana", "Tripura", "Uttar Pradesh", "Uttarakhand", "West Bengal"
]

STATE_DISTRICTS = {
    "Andhra Pradesh": ["Visakhapatnam", "Vijayawada", "Guntur", "Nellore", "Kurnool", "Rajahmundry", "Tirupati", "Anantapur", "Kadapa"],
    "Telangana": ["Hyderabad", "Warangal", "Nizamabad", "Khammam", "Karimnagar", "Mahbubnagar", "Nalgonda", "Adilabad", "Medak"],
    "Karnataka": ["Bangalore", "Mysore", "Hubli", "Mangalore", "Belgaum", "Gulbarga", "Davanagere", "Bellary", "Bijapur"],
    "Tamil Nadu": ["Chennai", "Coimbatore", "Madurai", "Tiruchirappalli", "Salem", "Tirunelveli", "Erode", "Vellore", "Thoothukudi"],
    "Maharashtra": ["Mumbai", "Pune", "Nagpur", "Thane", "Nashik", "Aurangabad", "Solapur", "Amravati", "Kolhapur"],
    "Kerala": ["Thiruvananthapuram", "Kochi", "Kozhikode", "Thrissur", "Kollam", "Palakkad", "Alappuzha", "Kottayam", "Kannur"],
    "Gujarat": ["Ahmedabad", "Surat", "Vadodara", "Rajkot", "Bhavnagar", "Jamnagar", "Junagadh", "Gandhinagar", "Anand"],
    "Rajasthan": ["Jaipur", "Jodhpur", "Kota", "Bikaner", "Udaipur", "Ajmer", "Bhilwara", "Alwar", "Bharatpur"],
    "Uttar Pradesh": ["Lucknow", "Kanpur", "Ghaziabad", "Agra", "Meerut", "Varanasi", "Allahabad", "Bareilly", "Aligarh"],
    "West Bengal": ["Kolkata", "Howrah", "Durgapur", "Asansol", "Siliguri", "Malda", "Bardhaman", "Kharagpur", "Haldia"],
}

COLLEGE_TYPES = [
    "Government", "Private", "University", "Engineering", "Medical",
    "Arts & Science", "Management", "Law", "Pharmacy", "Agriculture", "Polytechnic"
]

COLLEGE_COLUMNS = list(College.model_fields.keys())


def colleges_to_frame(colleges: List[College]) -> pd.DataFrame:
    """
    Build a DataFrame with one row per college, indexed by list position

    Args:
        colleges (List[College]): Colleges in input order

    Returns:
        pd.DataFrame: Frame with every College field as a column
    """
    if not colleges:
        return pd.DataFrame(columns=COLLEGE_COLUMNS)
    return pd.DataFrame([college.model_dump() for college in colleges], columns=COLLEGE_COLUMNS)


def _read_csv(seed_dir: str, name: str) -> Optional[pd.DataFrame]:
    path = os.path.join(seed_dir, name)
    if not os.path.exists(path):
        logger.warning(f"Seed file not found at: {path}")
        return None
    df = pd.read_csv(path).convert_dtypes()
    # Empty cells become NULL, not NaN
    return df.astype(object).where(df.notna(), None)


def _split_list(value) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in str(value).split("|") if part.strip()]


def load_seed_data(db: Session, seed_dir: str) -> int:
    """
    Load colleges, courses, admissions and scholarships from CSV when no
    colleges are stored

    Args:
        db (Session): Open session; the caller commits
        seed_dir (str): Directory holding colleges.csv, courses.csv, admissions.csv
            and scholarships.csv

    Returns:
        int: Number of colleges inserted
    """
    existing = db.execute(select(func.count()).select_from(CollegeRow)).scalar()
    if existing:
        logger.info(f"Skipping seed load, {existing} colleges already stored")
        return 0

    colleges = _read_csv(seed_dir, "colleges.csv")
    if colleges is None:
        return 0

    for record in colleges.to_dict(orient="records"):
        record["eligible_exams"] = _split_list(record.get("eligible_exams"))
        db.add(CollegeRow(**record))
    db.flush()

    courses = _read_csv(seed_dir, "courses.csv")
    if courses is not None:
        db.add_all(CourseRow(**record) for record in courses.to_dict(orient="records"))
        db.flush()

    admissions = _read_csv(seed_dir, "admissions.csv")
    if admissions is not None:
        db.add_all(AdmissionRow(**record) for record in admissions.to_dict(orient="records"))

    scholarships = _read_csv(seed_dir, "scholarships.csv")
    if scholarships is not None:
        for record in scholarships.to_dict(orient="records"):
            record["eligible_courses"] = _split_list(record.get("eligible_courses"))
            record["deadline"] = date.fromisoformat(str(record["deadline"])) if record.get("deadline") else None
            db.add(ScholarshipRow(**record))

    logger.info(f"Seed data loaded. Colleges: {len(colleges)}")
    return len(colleges)


def get_filter_options(colleges: List[College]) -> Dict[str, Any]:
    """States, districts and college types offered by the filter modal."""
    frame = colleges_to_frame(colleges)
    stored_states = sorted(set(frame["state"].dropna().astype(str).str.strip()) - {""})
    return {
        "states": ["All States"] + INDIAN_STATES,
        "districts": {state: ["All Districts"] + districts for state, districts in STATE_DISTRICTS.items()},
        "college_types": ["All Types"] + COLLEGE_TYPES,
        "available_states": stored_states,
        "sort_options": ["rating", "fees_low", "fees_high", "placement"],
    }


def figure_to_dict(fig: Optional[go.Figure]) -> Optional[Dict[str, Any]]:
    # to_json knows how to encode the numpy arrays plotly keeps internally
    return json.loads(fig.to_json()) if fig is not None else None


def build_cutoff_plot(colleges: List[College], cutoff_column: str) -> Optional[go.Figure]:
    """Bar chart of the cutoff rank of each predicted college."""
    if not colleges:
        return None
    frame = colleges_to_frame(colleges)
    fig = px.bar(
        frame,
        x="name",
        y=cutoff_column,
        title="Cutoff Ranks of Predicted Colleges",
        labels={"name": "College", cutoff_column: "Cutoff Rank"},
    )
    fig.update_layout(showlegend=False, xaxis_title="College", yaxis_title="Cutoff Rank")
    return fig


def build_comparison_plot(colleges: List[College]) -> Optional[go.Figure]:
    """Grouped bars of rating, placement and minimum fees (in lakhs)."""
    if not colleges:
        return None
    frame = colleges_to_frame(colleges)
    frame["fees_lakhs"] = pd.to_numeric(frame["total_fees_min"], errors="coerce").fillna(0) / 100000
    long = frame.melt(
        id_vars=["name"],
        value_vars=["rating", "placement_percentage", "fees_lakhs"],
        var_name="metric",
        value_name="value",
    )
    fig = px.bar(
        long,
        x="metric",
        y="value",
        color="name",
        barmode="group",
        title="College Comparison",
        labels={"metric": "Metric", "value": "Value", "name": "College"},
    )
    return fig
