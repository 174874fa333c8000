# tests/test_surveys.py
"""问卷：打分计算、公开提交、manager 列表筛选。"""
from datetime import datetime

import pytest

from ellarises.core.errors import RecordNotFound
from ellarises.core.models import Event, EventOccurrence, Participant, Survey
from ellarises.core.models_user import Role
from ellarises.services import surveys as survey_svc
from ellarises.services.surveys import SurveyFilters

from conftest import login


def _scores(sat, use, ins, rec):
    return {"satisfaction_score": sat, "usefulness_score": use,
            "instructor_score": ins, "recommendation_score": rec}


@pytest.fixture
def occurrence(db):
    ev = Event(name="STEAM Night", type="Workshop")
    occ = EventOccurrence(event=ev, starts_at=datetime(2024, 3, 5, 18, 0), location="Library")
    db.add_all([ev, occ]); db.commit()
    return occ


@pytest.fixture
def participant(db):
    p = Participant(first_name="Lucia", last_name="Reyes", email="lucia@example.org")
    db.add(p); db.commit()
    return p


def test_overall_score_is_mean_of_four_scores():
    assert survey_svc.overall_score(_scores(5, 4, 3, 4)) == 4.0
    assert survey_svc.overall_score(_scores(1, 2, 2, 2)) == 1.75


@pytest.mark.parametrize("rec, bucket", [(5, "Promoter"), (4, "Passive"), (3, "Detractor"), (1, "Detractor")])
def test_nps_bucket(rec, bucket):
    assert survey_svc.nps_bucket(rec) == bucket


@pytest.mark.parametrize("raw", [
    {"satisfaction_score": "6", "usefulness_score": "3", "instructor_score": "3", "recommendation_score": "3"},
    {"satisfaction_score": "0", "usefulness_score": "3", "instructor_score": "3", "recommendation_score": "3"},
    {"satisfaction_score": "x", "usefulness_score": "3", "instructor_score": "3", "recommendation_score": "3"},
    {"usefulness_score": "3", "instructor_score": "3", "recommendation_score": "3"},
])
def test_parse_scores_rejects_bad_input(raw):
    with pytest.raises(ValueError):
        survey_svc.parse_scores(raw)


def test_update_recomputes_derived_fields(db, participant, occurrence):
    s = survey_svc.create_survey(db, participant.id, occurrence.id, _scores(5, 5, 5, 5))
    assert (s.overall_score, s.nps_bucket) == (5.0, "Promoter")

    s = survey_svc.update_survey(db, s.id, participant.id, occurrence.id, _scores(2, 2, 2, 2), "meh")
    assert (s.overall_score, s.nps_bucket, s.comments) == (2.0, "Detractor", "meh")


def test_anonymous_visitor_can_submit_feedback(client, db, participant, occurrence):
    assert client.get("/surveys/new").status_code == 200

    r = client.post("/surveys/new", data={
        "participant_id": str(participant.id), "occurrence_id": str(occurrence.id),
        "satisfaction_score": "5", "usefulness_score": "4",
        "instructor_score": "4", "recommendation_score": "4", "comments": "Great night",
    }, follow_redirects=False)

    assert r.status_code == 303
    assert r.headers["location"] == "/surveys/new?submitted=1"
    saved = db.query(Survey).one()
    assert saved.overall_score == 4.25
    assert saved.nps_bucket == "Passive"


def test_invalid_submission_is_rejected_without_saving(client, db, participant, occurrence):
    r = client.post("/surveys/new", data={
        "participant_id": str(participant.id), "occurrence_id": str(occurrence.id),
        "satisfaction_score": "9", "usefulness_score": "4",
        "instructor_score": "4", "recommendation_score": "4",
    })
    assert r.status_code == 400
    assert db.query(Survey).count() == 0


def test_submission_with_unknown_references_is_rejected(client, db, participant, occurrence):
    base = {"satisfaction_score": "4", "usefulness_score": "4",
            "instructor_score": "4", "recommendation_score": "4"}
    for pid, oid in ((9999, occurrence.id), (participant.id, 8888)):
        r = client.post("/surveys/new", data={**base, "participant_id": str(pid), "occurrence_id": str(oid)},
                        follow_redirects=False)
        assert r.status_code == 400
        assert "give every score from 1 to 5" in r.text
    assert db.query(Survey).count() == 0


def test_service_refuses_unknown_references(db, participant, occurrence):
    with pytest.raises(RecordNotFound):
        survey_svc.create_survey(db, 9999, occurrence.id, _scores(3, 3, 3, 3))
    s = survey_svc.create_survey(db, participant.id, occurrence.id, _scores(3, 3, 3, 3))
    with pytest.raises(RecordNotFound):
        survey_svc.update_survey(db, s.id, participant.id, 8888, _scores(3, 3, 3, 3))


def test_member_submission_shows_thank_you(client, make_user, participant, occurrence):
    make_user("meg", "pw", Role.member)
    login(client, "meg", "pw")
    r = client.post("/surveys/new", data={
        "participant_id": str(participant.id), "occurrence_id": str(occurrence.id),
        "satisfaction_score": "3", "usefulness_score": "3",
        "instructor_score": "3", "recommendation_score": "3",
    })
    assert r.status_code == 200
    assert "Thank you for your feedback!" in r.text


def test_list_filters(db, participant, occurrence):
    other = Event(name="Dance Lab")
    other_occ = EventOccurrence(event=other, starts_at=datetime(2024, 4, 1, 10, 0))
    db.add_all([other, other_occ]); db.commit()
    survey_svc.create_survey(db, participant.id, occurrence.id, _scores(5, 5, 5, 5), "loved the robots")
    survey_svc.create_survey(db, participant.id, other_occ.id, _scores(2, 2, 2, 1), "too loud")

    assert len(survey_svc.list_surveys(db, SurveyFilters())) == 2
    assert [s.comments for s, *_ in survey_svc.list_surveys(db, SurveyFilters(nps="Promoter"))] == ["loved the robots"]
    assert [s.comments for s, *_ in survey_svc.list_surveys(db, SurveyFilters(score="3"))] == ["loved the robots"]
    assert [e.name for _, _, e, _ in survey_svc.list_surveys(db, SurveyFilters(event=str(other.id)))] == ["Dance Lab"]
    assert [e.name for _, _, e, _ in survey_svc.list_surveys(db, SurveyFilters(date="2024-03-05"))] == ["STEAM Night"]
    assert [s.comments for s, *_ in survey_svc.list_surveys(db, SurveyFilters(search="LOUD"))] == ["too loud"]


def test_manager_list_page(client, db, make_user, participant, occurrence):
    survey_svc.create_survey(db, participant.id, occurrence.id, _scores(4, 4, 4, 5))
    make_user("mgr", "pw", Role.manager)
    login(client, "mgr", "pw")

    r = client.get("/surveys", params={"nps": "Promoter"})
    assert r.status_code == 200
    assert "Lucia Reyes" in r.text and "4.25" in r.text

    r = client.get("/surveys", params={"nps": "Detractor"})
    assert "No surveys match these filters." in r.text
