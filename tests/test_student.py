"""
Profiles, My Colleges, application tracker, scholarships and the quiz.
"""

import pytest

from nxtgen import repository
from nxtgen.models import QuizAnswers
from nxtgen.tables import QuizResultRow

from conftest import auth_header


def ids(colleges):
    return [college.id for college in colleges]


# ============================================================
# Repository
# ============================================================

def test_profile_created_with_defaults(db):
    profile = repository.get_or_create_profile(db, "user-1", "user-1@example.com")
    assert profile.email == "user-1@example.com"
    assert profile.tutorial_completed is False
    assert profile.notification_preferences == {"scholarships": True, "admissions": True, "events": True}
    assert repository.get_or_create_profile(db, "user-1") is profile


def test_update_profile_merges_preferences(db):
    repository.update_profile(db, "user-1", {"academic_field": "Engineering"})
    profile = repository.update_profile(db, "user-1", {"notification_preferences": {"events": False}})
    assert profile.academic_field == "Engineering"
    assert profile.notification_preferences == {"scholarships": True, "admissions": True, "events": False}


def test_update_profile_rejects_unknown_field(db):
    with pytest.raises(ValueError):
        repository.update_profile(db, "user-1", {"id": "someone-else"})


def test_complete_tutorial(db):
    assert repository.complete_tutorial(db, "user-1").tutorial_completed is True


def test_selected_colleges(seeded_db):
    first = repository.select_college(seeded_db, "user-1", 9)
    assert repository.select_college(seeded_db, "user-1", 9).id == first.id
    assert repository.select_college(seeded_db, "user-1", 999) is None

    repository.select_college(seeded_db, "user-2", 3)
    assert [c.college_id for c in repository.list_selected_colleges(seeded_db, "user-1")] == [9]

    assert repository.unselect_college(seeded_db, "user-1", 9) is True
    assert repository.unselect_college(seeded_db, "user-1", 9) is False
    assert repository.list_selected_colleges(seeded_db, "user-1") == []


def test_applications_by_type_newest_first(db):
    college = repository.track_application(db, "user-1", "college", "9")
    scholarship = repository.track_application(db, "user-1", "scholarship", "2", status="applied")
    repository.track_application(db, "user-2", "college", "3")

    assert [a.id for a in repository.list_applications(db, "user-1")] == [scholarship.id, college.id]
    assert [a.id for a in repository.list_applications(db, "user-1", type="college")] == [college.id]
    assert college.status == "pending"


def test_update_application_is_scoped_to_owner(db):
    row = repository.track_application(db, "user-1", "college", "9")
    assert repository.update_application(db, "user-2", row.id, status="accepted") is None

    updated = repository.update_application(db, "user-1", row.id, status="shortlisted", notes="Interview on Monday")
    assert updated.status == "shortlisted"
    assert updated.notes == "Interview on Monday"

    assert repository.delete_application(db, "user-2", row.id) is False
    assert repository.delete_application(db, "user-1", row.id) is True


def test_scholarships_by_deadline(seeded_db):
    titles = [s.title for s in repository.list_scholarships(seeded_db)]
    assert titles == [
        "Central Sector Scheme of Scholarships",
        "AICTE Pragati Scholarship for Girls",
        "Jagananna Vidya Deevena",
        "Telangana ePASS Post-Matric Scholarship",
    ]
    assert repository.list_scholarships(seeded_db)[0].eligible_courses == ["B.Tech", "B.E.", "B.Sc.", "MBBS"]


def test_recommend_uses_every_answer(seeded_db):
    answers = QuizAnswers(
        preferred_course="Computer Science", preferred_location="Andhra Pradesh", budget=3, exams="AP EAMCET"
    )
    assert ids(repository.recommend_colleges(seeded_db, answers)) == [5, 6]


def test_recommend_any_location_best_rated_first(seeded_db):
    answers = QuizAnswers(preferred_course="computer science", preferred_location="Any", exams=["TS EAMCET"])
    assert ids(repository.recommend_colleges(seeded_db, answers)) == [10, 9]


def test_recommend_is_capped(seeded_db):
    assert len(repository.recommend_colleges(seeded_db, QuizAnswers(preferred_location="Any"))) == 6


def test_save_quiz_result(seeded_db):
    answers = QuizAnswers(preferred_course="Law")
    colleges = repository.recommend_colleges(seeded_db, answers)
    row = repository.save_quiz_result(seeded_db, "user-1", answers, colleges)
    assert row.recommended_colleges == [{"id": 14, "name": "National Law School of India University"}]
    assert row.answers["preferred_course"] == "Law"
    assert [r.id for r in repository.list_quiz_results(seeded_db, "user-1")] == [row.id]


# ============================================================
# API
# ============================================================

def test_student_routes_require_token(client):
    assert client.get("/api/profile").status_code == 401
    assert client.get("/api/my-colleges").status_code == 401
    assert client.get("/api/applications").status_code == 401


def test_profile_flow(client, auth_headers):
    profile = client.get("/api/profile", headers=auth_headers).json()
    assert profile["id"] == "user-1"
    assert profile["email"] == "user-1@example.com"
    assert profile["tutorial_completed"] is False

    response = client.put(
        "/api/profile",
        json={"academic_field": "Medicine", "notification_preferences": {"admissions": False}},
        headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["academic_field"] == "Medicine"
    assert response.json()["notification_preferences"] == {"scholarships": True, "admissions": False, "events": True}

    assert client.post("/api/profile/tutorial-complete", headers=auth_headers).json()["tutorial_completed"] is True
    assert client.get("/api/profile", headers=auth_headers).json()["academic_field"] == "Medicine"


def test_profile_budget_validation(client, auth_headers):
    response = client.put("/api/profile", json={"budget_min": 500000, "budget_max": 100000}, headers=auth_headers)
    assert response.status_code == 422
    assert response.json()["detail"] == ["Minimum budget cannot be more than maximum budget."]


def test_my_colleges_flow(client, seeded, auth_headers):
    assert client.post("/api/my-colleges/3", headers=auth_headers).status_code == 201
    assert client.post("/api/my-colleges/999", headers=auth_headers).status_code == 404
    assert [c["college_id"] for c in client.get("/api/my-colleges", headers=auth_headers).json()] == [3]
    assert client.get("/api/my-colleges", headers=auth_header("user-2")).json() == []
    assert client.delete("/api/my-colleges/3", headers=auth_headers).status_code == 200
    assert client.delete("/api/my-colleges/3", headers=auth_headers).status_code == 404


def test_applications_flow(client, auth_headers):
    created = client.post(
        "/api/applications", json={"type": "scholarship", "target_id": "2", "notes": "Need income certificate"},
        headers=auth_headers
    )
    assert created.status_code == 201
    assert created.json()["status"] == "pending"
    app_id = created.json()["id"]

    assert client.post("/api/applications", json={"type": "hostel", "target_id": "1"}, headers=auth_headers).status_code == 422
    assert client.get("/api/applications", params={"type": "college"}, headers=auth_headers).json() == []

    updated = client.put(f"/api/applications/{app_id}", json={"status": "applied"}, headers=auth_headers)
    assert updated.json()["status"] == "applied"
    assert updated.json()["notes"] == "Need income certificate"
    assert client.put(f"/api/applications/{app_id}", json={"status": "won"}, headers=auth_headers).status_code == 422
    assert client.put(f"/api/applications/{app_id}", json={"status": "accepted"}, headers=auth_header("user-2")).status_code == 404

    assert client.delete(f"/api/applications/{app_id}", headers=auth_headers).status_code == 200
    assert client.get("/api/applications", headers=auth_headers).json() == []


def test_scholarships_route(client, seeded):
    body = client.get("/api/scholarships").json()
    assert [s["deadline"] for s in body] == ["2026-10-31", "2026-11-30", "2026-12-31", None]
    assert body[0]["amount"] == 12000


def test_quiz_for_signed_in_user(client, seeded, auth_headers):
    response = client.post(
        "/api/quiz",
        json={"preferred_course": "Computer Science", "preferred_location": "Andhra Pradesh", "budget": 3, "exams": "AP EAMCET"},
        headers=auth_headers
    )
    assert response.status_code == 200
    assert [c["id"] for c in response.json()["colleges"]] == [5, 6]
    assert response.json()["message"] == "Personalized recommendations ready!"

    results = client.get("/api/quiz/results", headers=auth_headers).json()
    assert [r["id"] for r in results] == [response.json()["id"]]
    assert [c["id"] for c in results[0]["recommended_colleges"]] == [5, 6]


def test_quiz_without_account_is_stored_anonymously(client, seeded, db):
    body = client.post("/api/quiz", json={"preferred_course": "Dentistry"}).json()
    assert body["colleges"] == []
    assert body["message"].startswith("No colleges found")
    assert db.get(QuizResultRow, body["id"]).user_id is None


def test_quiz_needs_an_answer(client):
    response = client.post("/api/quiz", json={"preferred_location": "  ", "exams": ""})
    assert response.status_code == 422
    assert response.json()["detail"] == ["Please answer at least one question."]
