"""
College filter engine.

Narrows an in-memory list of colleges with the filter modal selections,
applied in a fixed order:

    state -> district -> gender -> college type -> top colleges -> sort

plus a free-text search used by the list and search pages. The engine never
raises and never mutates the list it is given; an unknown or empty criteria
value means "no filter".
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .models import College, FilterCriteria, Gender, SortKey
from .utils import colleges_to_frame

logger = logging.getLogger(__name__)

ALL_SENTINELS = {"", "all", "all states", "all districts", "all types"}
TOP_COLLEGE_MIN_RATING = 4.0


class CollegeTag(str, Enum):
    government = "government"
    private = "private"
    university = "university"
    engineering = "engineering"
    medical = "medical"
    management = "management"
    law = "law"
    pharmacy = "pharmacy"
    agriculture = "agriculture"
    polytechnic = "polytechnic"
    arts_science = "arts & science"


# Substrings tested against the lower-cased college `type`
TYPE_KEYWORDS: Dict[CollegeTag, Tuple[str, ...]] = {
    CollegeTag.government: ("government", "public", "state", "central", "national"),
    CollegeTag.private: ("private", "deemed", "autonomous"),
    CollegeTag.university: ("university",),
    CollegeTag.engineering: ("engineering", "technology", "technical"),
    CollegeTag.medical: ("medical", "medicine", "health"),
    CollegeTag.management: ("management", "business", "mba"),
    CollegeTag.law: ("law", "legal"),
    CollegeTag.pharmacy: ("pharmacy", "pharmaceutical"),
    CollegeTag.agriculture: ("agriculture", "agricultural"),
    CollegeTag.polytechnic: ("polytechnic",),
    CollegeTag.arts_science: ("arts & science", "arts and science", "arts"),
}

# "women" contains "men", so the men pattern only matches whole words
WOMEN_PATTERN = r"women|girls|mahila"
MEN_PATTERN = r"\bmens?\b|boys"

# column, ascending
SORT_COLUMNS: Dict[SortKey, Tuple[str, bool]] = {
    SortKey.rating: ("rating", False),
    SortKey.fees_low: ("total_fees_min", True),
    SortKey.fees_high: ("total_fees_min", False),
    SortKey.placement: ("placement_percentage", False),
}

SEARCH_COLUMNS = ("name", "location", "city", "state", "type", "description")

# Short codes students type for AP colleges
COLLEGE_SHORTCUTS: Dict[str, Tuple[str, ...]] = {
    "ANITS": ("ANIL NEERUKONDA INSTITUTE OF TECHNOLOGY",),
    "BEC": ("BAPATLA ENGINEERING COLLEGE",),
    "CBIT": ("CHAITANYA BHARATHI INSTITUTE OF TECHNOLOGY",),
    "GEC": ("GUDLAVALLERU ENGINEERING COLLEGE",),
    "GVPCE": ("GAYATRI VIDYA PARISHAD COLLEGE OF ENGINEERING",),
    "JNTUA": ("JNTU COLLEGE OF ENGINEERING, ANANTAPUR",),
    "JNTUK": ("JNTU COLLEGE OF ENGINEERING, KAKINADA",),
    "KIET": ("KAKINADA INSTITUTE OF ENGINEERING AND TECHNOLOGY",),
    "LBRCE": ("LAKIREDDY BALI REDDY COLLEGE OF ENGINEERING",),
    "SRKR": ("SAGI RAMA KRISHNAM RAJU ENGINEERING COLLEGE",),
    "SVEC": ("SRI VASAVI ENGINEERING COLLEGE", "SRI VIDYANIKETHAN ENGINEERING COLLEGE"),
    "SVECW": ("SRI VISHNU ENGINEERING COLLEGE FOR WOMEN",),
    "VFSTR": ("VIGNAN'S FOUNDATION FOR SCIENCE, TECHNOLOGY & RESEARCH",),
    "VIIT": ("VIGNAN'S INSTITUTE OF INFORMATION TECHNOLOGY",),
    "VRSEC": ("VELAGAPUDI RAMAKRISHNA SIDDHARTHA ENGINEERING COLLEGE",),
    "VVIT": ("VASIREDDY VENKATADRI INSTITUTE OF TECHNOLOGY",),
}


def is_all(value: Optional[str]) -> bool:
    return value is None or str(value).strip().lower() in ALL_SENTINELS


def lower_text(frame: pd.DataFrame, column: str) -> pd.Series:
    return frame[column].fillna("").astype(str).str.lower()


def _contains_any(series: pd.Series, needles: Sequence[str]) -> np.ndarray:
    masks = [series.str.contains(needle, regex=False).to_numpy() for needle in needles]
    return np.logical_or.reduce(masks)


def type_keywords(college_type: str) -> Tuple[str, ...]:
    """Keywords for a college type filter; unknown values match themselves."""
    value = college_type.strip().lower()
    try:
        return TYPE_KEYWORDS[CollegeTag(value)]
    except ValueError:
        return (value,)


def filter_by_state(frame: pd.DataFrame, state: Optional[str]) -> pd.DataFrame:
    if is_all(state):
        return frame
    return frame[lower_text(frame, "state").str.contains(state.strip().lower(), regex=False)]


def filter_by_district(frame: pd.DataFrame, district: Optional[str]) -> pd.DataFrame:
    if is_all(district):
        return frame
    needle = district.strip().lower()
    return frame[_contains_any(lower_text(frame, "city"), [needle]) | _contains_any(lower_text(frame, "location"), [needle])]


def filter_by_gender(frame: pd.DataFrame, gender: Optional[str]) -> pd.DataFrame:
    value = (gender or "").strip().lower()
    if value == Gender.women.value:
        pattern = WOMEN_PATTERN
    elif value == Gender.men.value:
        pattern = MEN_PATTERN
    else:
        return frame
    haystack = lower_text(frame, "name") + " " + lower_text(frame, "type")
    return frame[haystack.str.contains(pattern, regex=True)]


def filter_by_type(frame: pd.DataFrame, college_type: Optional[str]) -> pd.DataFrame:
    if is_all(college_type):
        return frame
    return frame[_contains_any(lower_text(frame, "type"), type_keywords(college_type))]


def filter_top_colleges(frame: pd.DataFrame) -> pd.DataFrame:
    ratings = pd.to_numeric(frame["rating"], errors="coerce").fillna(0)
    return frame[ratings >= TOP_COLLEGE_MIN_RATING]


def sort_frame(frame: pd.DataFrame, sort_by: Optional[str]) -> pd.DataFrame:
    """Stable sort by a SortKey value; nulls count as 0. Unknown keys keep order."""
    try:
        column, ascending = SORT_COLUMNS[SortKey(sort_by)]
    except ValueError:
        return frame
    key = pd.to_numeric(frame[column], errors="coerce").fillna(0).astype(float)
    if not ascending:
        key = -key
    return (
        frame.assign(_sort_key=key)
        .sort_values("_sort_key", kind="stable")
        .drop(columns="_sort_key")
    )


def apply_filters(colleges: List[College], criteria: Optional[FilterCriteria] = None) -> List[College]:
    """
    Apply the filter modal selections to a list of colleges.

    Args:
        colleges (List[College]): Colleges to narrow; not modified
        criteria (FilterCriteria): Selections; defaults to "no filters"

    Returns:
        List[College]: New list in result order
    """
    criteria = criteria or FilterCriteria()
    if not colleges:
        return []

    try:
        frame = colleges_to_frame(colleges)
        frame = filter_by_state(frame, criteria.state)
        frame = filter_by_district(frame, criteria.district)
        frame = filter_by_gender(frame, criteria.gender)
        frame = filter_by_type(frame, criteria.college_type)
        if criteria.show_top_colleges:
            frame = filter_top_colleges(frame)
        frame = sort_frame(frame, criteria.sort_by)

        # Top colleges always end up rating-descending, whatever sort_by says
        if criteria.show_top_colleges:
            frame = sort_frame(frame, SortKey.rating.value)

        logger.debug(f"Filters kept {len(frame)} of {len(colleges)} colleges")
        return [colleges[i] for i in frame.index]

    except Exception as e:
        logger.error(f"Error applying filters: {e}")
        return list(colleges)


def expand_query(query: str) -> List[str]:
    """Search terms for a query: the query itself plus any shortcut expansion."""
    terms = [query.strip().lower()]
    for name in COLLEGE_SHORTCUTS.get(query.strip().upper(), ()):
        terms.append(name.lower())
    return terms


def search_colleges(colleges: List[College], query: Optional[str]) -> List[College]:
    """Keep colleges where the query appears in any searchable text column."""
    if not query or not query.strip():
        return list(colleges)
    if not colleges:
        return []

    try:
        frame = colleges_to_frame(colleges)
        terms = expand_query(query)
        mask = np.logical_or.reduce([_contains_any(lower_text(frame, column), terms) for column in SEARCH_COLUMNS])
        return [colleges[i] for i in frame.index[mask]]

    except Exception as e:
        logger.error(f"Error searching colleges for '{query}': {e}")
        return []
