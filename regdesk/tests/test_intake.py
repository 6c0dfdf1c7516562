import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from regdesk.errors import Conflict, InvalidTransition, NotFound
from regdesk.main import app
from regdesk.participant.intake import IntakeService
from regdesk.storage import ParticipantStorage

client = TestClient(app)

API = "/api/regdesk/participants"


def arrive(participant_id, course_id):
    return client.post(f"{API}/arrival", json={"participantId": participant_id, "courseId": course_id})


# --- ARRIVAL / TOKENS ---
def test_arrival_issues_sequential_tokens(make_course, make_participant):
    course = make_course()
    people = [make_participant(course.course_id, name) for name in ("Asha", "Bilal", "Chen")]

    tokens = []
    for p in people:
        response = arrive(p.participant_id, course.course_id)
        assert response.status_code == 200
        body = response.json()
        assert body["process_stage"] == 1
        assert body["status"] == "In Process"
        tokens.append(body["token_number"])

    assert tokens == [1, 2, 3]


def test_tokens_are_scoped_per_course(make_course, make_participant):
    first = make_course("Course A")
    second = make_course("Course B")
    a = make_participant(first.course_id, "Asha")
    b = make_participant(second.course_id, "Bilal")

    assert arrive(a.participant_id, first.course_id).json()["token_number"] == 1
    assert arrive(b.participant_id, second.course_id).json()["token_number"] == 1


def test_repeat_arrival_keeps_token(make_course, make_participant):
    course = make_course()
    p = make_participant(course.course_id)
    first = arrive(p.participant_id, course.course_id).json()
    again = arrive(p.participant_id, course.course_id)
    assert again.status_code == 200
    assert again.json()["token_number"] == first["token_number"] == 1


def test_arrival_not_found(make_course, make_participant):
    course = make_course()
    other = make_course("Other")
    p = make_participant(course.course_id)
    assert arrive(9999, course.course_id).status_code == 404
    # exists, but in another course
    assert arrive(p.participant_id, other.course_id).status_code == 404


def test_arrival_retries_after_token_collision(db, make_course, make_participant, monkeypatch):
    course = make_course()
    p = make_participant(course.course_id)
    service = IntakeService(db)

    original_save = ParticipantStorage.save
    calls = {"n": 0}

    def flaky_save(self, participant):
        calls["n"] += 1
        if calls["n"] == 1:
            raise IntegrityError("UPDATE participants", {}, Exception("UNIQUE constraint failed: participants.course_id, participants.token_number"))
        return original_save(self, participant)

    monkeypatch.setattr(ParticipantStorage, "save", flaky_save)
    result = service.record_arrival(p.participant_id, course.course_id)
    assert result.token_number == 1
    assert calls["n"] == 2


def test_arrival_gives_up_after_repeated_collisions(db, make_course, make_participant, monkeypatch):
    course = make_course()
    p = make_participant(course.course_id)

    def always_collides(self, participant):
        raise IntegrityError("UPDATE participants", {}, Exception("UNIQUE constraint failed: participants.course_id, participants.token_number"))

    monkeypatch.setattr(ParticipantStorage, "save", always_collides)
    with pytest.raises(Conflict) as exc:
        IntakeService(db).record_arrival(p.participant_id, course.course_id)
    assert exc.value.field == "token_number"


def test_arrival_rejected_past_stage_zero_without_token(make_course, make_participant):
    course = make_course()
    p = make_participant(course.course_id)
    client.post(f"{API}/stage", json={"participantId": p.participant_id, "stage": 3})
    onboarded = client.post(
        f"{API}/onboard", json={"participantId": p.participant_id, "courseId": course.course_id, "roomNo": "12"}
    )
    assert onboarded.status_code == 200

    response = arrive(p.participant_id, course.course_id)
    assert response.status_code == 400

    body = client.get(f"{API}/{p.participant_id}").json()
    assert body["status"] == "Attending"
    assert body["process_stage"] == 4
    assert body["token_number"] is None
    assert body["room_no"] == "12"


def test_arrival_after_briefing_without_token_is_rejected(db, make_course, make_participant):
    course = make_course()
    p = make_participant(course.course_id)
    IntakeService(db).advance_stage(p.participant_id, 2)
    with pytest.raises(InvalidTransition):
        IntakeService(db).record_arrival(p.participant_id, course.course_id)
    assert IntakeService(db).get(p.participant_id).process_stage == 2


def test_arrival_of_cancelled_participant_reports_taken_conf_no(make_course, make_participant):
    course = make_course()
    a = make_participant(course.course_id, "Asha", conf_no="OM1")
    client.post(f"{API}/gate-cancel", json={"participantId": a.participant_id})
    make_participant(course.course_id, "Bina", conf_no="OM1")

    response = arrive(a.participant_id, course.course_id)
    assert response.status_code == 409
    assert response.json()["detail"]["field"] == "conf_no"
    assert response.json()["detail"]["value"] == "OM1"

    body = client.get(f"{API}/{a.participant_id}").json()
    assert body["status"] == "Cancelled"
    assert body["token_number"] is None


def test_arrival_does_not_retry_non_token_collisions(db, make_course, make_participant, monkeypatch):
    course = make_course()
    a = make_participant(course.course_id, "Asha", conf_no="OM1")
    IntakeService(db).gate_cancel(a.participant_id)
    make_participant(course.course_id, "Bina", conf_no="OM1")

    original_save = ParticipantStorage.save
    calls = {"n": 0}

    def counting_save(self, participant):
        calls["n"] += 1
        return original_save(self, participant)

    monkeypatch.setattr(ParticipantStorage, "save", counting_save)
    with pytest.raises(Conflict) as exc:
        IntakeService(db).record_arrival(a.participant_id, course.course_id)
    assert exc.value.field == "conf_no"
    assert calls["n"] == 1


# --- STAGES ---
def test_stage_sequence_is_monotonic(make_course, make_participant):
    course = make_course()
    p = make_participant(course.course_id)
    stages = [arrive(p.participant_id, course.course_id).json()["process_stage"]]
    for target in (2, 3):
        response = client.post(f"{API}/stage", json={"participantId": p.participant_id, "stage": target})
        assert response.status_code == 200
        stages.append(response.json()["process_stage"])
    onboard = client.post(f"{API}/onboard", json={"participantId": p.participant_id, "courseId": course.course_id})
    stages.append(onboard.json()["process_stage"])
    assert stages == [1, 2, 3, 4]
    assert stages == sorted(stages)


def test_stage_can_be_corrected_backwards(make_course, make_participant):
    course = make_course()
    p = make_participant(course.course_id)
    client.post(f"{API}/stage", json={"participantId": p.participant_id, "stage": 3})
    response = client.post(f"{API}/stage", json={"participantId": p.participant_id, "stage": 2})
    assert response.status_code == 200
    assert response.json()["process_stage"] == 2


@pytest.mark.parametrize("stage", [1, 4, 7])
def test_stage_rejects_invalid_target(make_course, make_participant, stage):
    course = make_course()
    p = make_participant(course.course_id)
    response = client.post(f"{API}/stage", json={"participantId": p.participant_id, "stage": stage})
    assert response.status_code == 400


def test_stage_not_found():
    response = client.post(f"{API}/stage", json={"participantId": 4242, "stage": 2})
    assert response.status_code == 404


# --- GATE ---
def test_gate_check_in_and_cancel(make_course, make_participant):
    course = make_course()
    p = make_participant(course.course_id)
    response = client.post(f"{API}/gate-checkin", json={"participantId": p.participant_id})
    assert response.status_code == 200
    assert response.json()["status"] == "Gate Check-In"

    response = client.post(f"{API}/gate-cancel", json={"participantId": p.participant_id})
    assert response.status_code == 200
    assert response.json()["status"] == "Cancelled"


def test_gate_rejects_attending(make_course, interviewed):
    course = make_course()
    p = interviewed(course.course_id)
    client.post(f"{API}/onboard", json={"participantId": p.participant_id, "courseId": course.course_id})

    for path in ("gate-checkin", "gate-cancel"):
        response = client.post(f"{API}/{path}", json={"participantId": p.participant_id})
        assert response.status_code == 400

    assert client.get(f"{API}/{p.participant_id}").json()["status"] == "Attending"


def test_gate_check_in_of_cancelled_participant_reports_taken_conf_no(make_course, make_participant):
    course = make_course()
    a = make_participant(course.course_id, "Asha", conf_no="OM1")
    client.post(f"{API}/gate-cancel", json={"participantId": a.participant_id})
    make_participant(course.course_id, "Bina", conf_no="OM1")

    response = client.post(f"{API}/gate-checkin", json={"participantId": a.participant_id})
    assert response.status_code == 409
    assert response.json()["detail"]["field"] == "conf_no"
    assert client.get(f"{API}/{a.participant_id}").json()["status"] == "Cancelled"


def test_gate_check_in_of_cancelled_participant_reports_taken_resource(make_course, make_participant, interviewed):
    course = make_course()
    a = make_participant(course.course_id, "Asha")
    client.put(f"{API}/{a.participant_id}", json={"mobileLockerNo": "M5"})
    client.post(f"{API}/gate-cancel", json={"participantId": a.participant_id})

    b = interviewed(course.course_id, "Bina")
    onboarded = client.post(
        f"{API}/onboard", json={"participantId": b.participant_id, "courseId": course.course_id, "mobileLockerNo": "M5"}
    )
    assert onboarded.status_code == 200

    response = client.post(f"{API}/gate-checkin", json={"participantId": a.participant_id})
    assert response.status_code == 409
    assert response.json()["detail"]["field"] == "mobile_locker_no"
    assert response.json()["detail"]["value"] == "M5"


def test_gate_unknown_participant_is_400():
    assert client.post(f"{API}/gate-checkin", json={"participantId": 777}).status_code == 400
    assert client.post(f"{API}/gate-cancel", json={"participantId": 777}).status_code == 400


# --- DIRECT RECORD MAINTENANCE ---
def test_register_participant_endpoint(make_course):
    course = make_course()
    response = client.post(f"{API}/", json={
        "courseId": course.course_id,
        "fullName": "  Dev Patel ",
        "confNo": "NM7",
        "gender": "Male",
        "age": 31,
    })
    assert response.status_code == 201
    body = response.json()
    assert body["full_name"] == "Dev Patel"
    assert body["status"] == "No Response"
    assert body["process_stage"] == 0
    assert body["discourse_language"] == "English"


def test_register_participant_unknown_course():
    response = client.post(f"{API}/", json={"courseId": 99, "fullName": "Nobody"})
    assert response.status_code == 404


def test_register_duplicate_conf_no_conflicts(make_course, make_participant):
    course = make_course()
    make_participant(course.course_id, "Asha", conf_no="OF1")
    response = client.post(f"{API}/", json={"courseId": course.course_id, "fullName": "Bina", "confNo": "OF1"})
    assert response.status_code == 409
    assert response.json()["detail"]["field"] == "conf_no"


def test_update_participant_after_onboarding(make_course, interviewed):
    course = make_course()
    p = interviewed(course.course_id)
    client.post(f"{API}/onboard", json={"participantId": p.participant_id, "courseId": course.course_id, "roomNo": "12"})

    response = client.put(f"{API}/{p.participant_id}", json={"roomNo": "14", "teacherNotes": "Back pain"})
    assert response.status_code == 200
    body = response.json()
    assert body["room_no"] == "14"
    assert body["teacher_notes"] == "Back pain"
    assert body["status"] == "Attending"


def test_update_participant_conflict_names_field(make_course, interviewed):
    course = make_course()
    a = interviewed(course.course_id, "Asha")
    b = interviewed(course.course_id, "Bina")
    client.post(f"{API}/onboard", json={"participantId": a.participant_id, "courseId": course.course_id, "mobileLockerNo": "M5"})

    response = client.put(f"{API}/{b.participant_id}", json={"mobileLockerNo": "M5"})
    assert response.status_code == 409
    assert response.json()["detail"]["field"] == "mobile_locker_no"
    assert response.json()["detail"]["value"] == "M5"


def test_update_participant_requires_fields(make_course, make_participant):
    course = make_course()
    p = make_participant(course.course_id)
    assert client.put(f"{API}/{p.participant_id}", json={}).status_code == 400


def test_delete_participant(make_course, make_participant):
    course = make_course()
    p = make_participant(course.course_id)
    assert client.delete(f"{API}/{p.participant_id}").status_code == 200
    assert client.get(f"{API}/{p.participant_id}").status_code == 404
    assert client.delete(f"{API}/{p.participant_id}").status_code == 404


def test_service_get_not_found(db):
    with pytest.raises(NotFound):
        IntakeService(db).get(1)
