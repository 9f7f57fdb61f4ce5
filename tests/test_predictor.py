"""
Rank/cutoff predictor: cutoff narrowing, the marks tables, the EAMCET score
and the admissions lookup.
"""

import pytest

from nxtgen.models import CutoffPredictionInput, ScorePredictionInput
from nxtgen.predictor import (
    JEE_MAIN_BANDS, NEET_BANDS, NO_MATCH_MESSAGE, eamcet_rank_range, eamcet_score,
    lookup_band, parse_rank_range, predict_by_cutoff, run_cutoff_prediction,
    run_score_prediction, validate_cutoff_request, validate_score_request
)
from nxtgen.repository import find_admissions

from conftest import make_college


def ids(colleges):
    return [college.id for college in colleges]


# ============================================================
# CUTOFF BASED
# ============================================================

def test_rank_within_cutoff_qualifies():
    colleges = [make_college(1, cutoff_rank_general=5000)]
    assert ids(predict_by_cutoff(colleges, 3000, "general", "jee-main")) == [1]
    assert ids(predict_by_cutoff(colleges, 5000, "general", "jee-main")) == [1]
    assert predict_by_cutoff(colleges, 6000, "general", "jee-main") == []


def test_null_cutoff_never_qualifies():
    colleges = [make_college(1, cutoff_rank_general=None, cutoff_rank_sc=9000)]
    assert predict_by_cutoff(colleges, 1, "general", "jee-main") == []
    assert ids(predict_by_cutoff(colleges, 1, "sc", "jee-main")) == [1]


def test_results_sorted_by_cutoff_ascending():
    colleges = [
        make_college(1, cutoff_rank_obc=9000),
        make_college(2, cutoff_rank_obc=4000),
        make_college(3, cutoff_rank_obc=6000),
    ]
    assert ids(predict_by_cutoff(colleges, 1000, "obc", "neet")) == [2, 3, 1]


def test_results_capped_at_twenty():
    colleges = [make_college(i, cutoff_rank_general=1000 + i) for i in range(1, 26)]
    result = predict_by_cutoff(colleges, 1, "general", "jee-main")
    assert len(result) == 20
    assert result[0].id == 1


def test_jee_advanced_keeps_iit_and_nit():
    colleges = [
        make_college(1, type="IIT", cutoff_rank_general=500),
        make_college(2, type="NIT", cutoff_rank_general=800),
        make_college(3, type="Private Engineering", cutoff_rank_general=900),
        make_college(4, type="State University", cutoff_rank_general=90000),
    ]
    assert ids(predict_by_cutoff(colleges, 100, "general", "jee-advanced")) == [1, 2]


def test_eamcet_keeps_exam_state():
    colleges = [
        make_college(1, state="Andhra Pradesh", cutoff_rank_bc_a=7000),
        make_college(2, state="Telangana", cutoff_rank_bc_a=7000),
    ]
    assert ids(predict_by_cutoff(colleges, 100, "bc-a", "ap-eamcet")) == [1]
    assert ids(predict_by_cutoff(colleges, 100, "bc_a", "ts-eamcet")) == [2]


def test_empty_college_list():
    assert predict_by_cutoff([], 100, "general", "jee-main") == []


def test_cutoff_validation_messages():
    v = validate_cutoff_request(CutoffPredictionInput())
    assert not v.ok
    assert v.errors == ["Please enter your rank.", "Please select your category.", "Please select an exam."]

    v = validate_cutoff_request(CutoffPredictionInput(rank=0, category="vip", exam_type="gate"))
    assert v.errors == ["Rank must be a positive number.", "Unknown category: vip.", "Unknown exam: gate."]

    assert validate_cutoff_request(CutoffPredictionInput(rank=10, category="General", exam_type="jee-main")).ok


def test_run_cutoff_prediction(seeded_db):
    payload = CutoffPredictionInput(rank=3000, category="general", exam_type="jee-main")
    result = run_cutoff_prediction(seeded_db, payload)
    assert ids(result.colleges) == [3, 11, 5, 9, 6, 7, 8, 15]
    assert result.message == "Found 8 colleges matching your criteria!"
    assert result.plot_data is not None


def test_run_cutoff_prediction_without_matches(seeded_db):
    payload = CutoffPredictionInput(rank=150000, category="general", exam_type="jee-main")
    result = run_cutoff_prediction(seeded_db, payload)
    assert result.colleges == []
    assert result.message == NO_MATCH_MESSAGE


# ============================================================
# FORMULA BASED
# ============================================================

def test_marks_bands_are_top_down():
    assert lookup_band(JEE_MAIN_BANDS, 250).rank_range == "1 – 2,000"
    assert lookup_band(JEE_MAIN_BANDS, 249).rank_range == "2,000 – 10,000"
    assert lookup_band(JEE_MAIN_BANDS, 0).rank_range == "> 35,000"
    assert lookup_band(NEET_BANDS, 700).rank_range == "1 – 2,000"
    assert lookup_band(NEET_BANDS, 499).rank_range == "> 75,000"


def test_eamcet_score():
    assert eamcet_score(160, 1000) == pytest.approx(100.0)
    assert eamcet_score(0, 0) == 0
    assert eamcet_score(80, 500) == pytest.approx(37.5 + 12.5)


def test_eamcet_rank_range_by_category():
    assert eamcet_rank_range(100, "OC") == "500 – 1,000"
    assert eamcet_rank_range(100, "BC-A") == "500 – 1,500"
    assert eamcet_rank_range(85, "oc") == "500 – 1,000"
    assert eamcet_rank_range(84.99, "OC") == "1,000 – 2,500"
    assert eamcet_rank_range(35, "SC") == "55,000 – 70,000"
    assert eamcet_rank_range(0, "OC") == "> 60,000"
    assert eamcet_rank_range(0, "ST") == "> 70,000"


def test_parse_rank_range():
    assert parse_rank_range("12,000 – 18,000") == (12000, 18000)
    assert parse_rank_range("500 – 1,000") == (500, 1000)
    assert parse_rank_range("> 60,000") == (60000, 200000)


def test_score_validation():
    v = validate_score_request(ScorePredictionInput(exam_type="ap-eamcet", exam_marks=120, category="OC"))
    assert v.errors == ["Please enter your IPE marks."]

    v = validate_score_request(ScorePredictionInput(exam_type="jee-main", exam_marks=301, category="general"))
    assert v.errors == ["Exam marks must be between 0 and 300."]

    v = validate_score_request(ScorePredictionInput(exam_type="ts-eamcet", exam_marks=100, ipe_marks=1200, category="OC"))
    assert v.errors == ["IPE marks must be between 0 and 1000."]

    v = validate_score_request(ScorePredictionInput())
    assert v.errors == ["Please select an exam.", "Please select your category.", "Please enter your exam marks."]

    assert validate_score_request(ScorePredictionInput(exam_type="neet", exam_marks=610, category="obc")).ok


def test_jee_prediction_uses_static_table(db):
    payload = ScorePredictionInput(exam_type="jee-main", exam_marks=260, category="general")
    result = run_score_prediction(db, payload)
    assert result.rank_range == "1 – 2,000"
    assert "NIT Tiruchirappalli" in result.example_colleges
    assert result.colleges == []
    assert result.final_score is None


def test_eamcet_prediction_full_marks(seeded_db):
    payload = ScorePredictionInput(exam_type="ap-eamcet", exam_marks=160, ipe_marks=1000, category="OC")
    result = run_score_prediction(seeded_db, payload)
    assert result.final_score == 100.0
    assert result.rank_range == "500 – 1,000"
    assert [(m.college_id, m.closing_rank) for m in result.colleges] == [(5, 820)]


def test_eamcet_prediction_mid_range(seeded_db):
    payload = ScorePredictionInput(examType="ap-eamcet", examMarks=100, ipeMarks=800, category="OC")
    result = run_score_prediction(seeded_db, payload)
    assert result.final_score == pytest.approx(66.875, abs=0.01)
    assert result.rank_range == "8,000 – 12,000"
    assert len(result.colleges) == 1
    assert result.colleges[0].college_name == "Sri Vishnu Engineering College for Women"
    assert result.colleges[0].branch == "Computer Science and Engineering"


def test_eamcet_prediction_without_matches(seeded_db):
    payload = ScorePredictionInput(exam_type="ts-eamcet", exam_marks=0, ipe_marks=0, category="BC-E")
    result = run_score_prediction(seeded_db, payload)
    assert result.rank_range == "> 70,000"
    assert result.colleges == []
    assert result.message == NO_MATCH_MESSAGE


def test_find_admissions_orders_by_closing_rank(seeded_db):
    matches = find_admissions(seeded_db, "AP EAMCET", "oc", 1, 20000)
    closing = [m.closing_rank for m in matches]
    assert closing == sorted(closing)
    assert closing == [820, 1800, 2100, 7600, 11500, 16800]


def test_find_admissions_respects_limit(seeded_db):
    assert len(find_admissions(seeded_db, "AP EAMCET", "OC", 1, 200000, limit=3)) == 3
