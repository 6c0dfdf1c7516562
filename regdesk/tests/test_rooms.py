import pytest
from fastapi.testclient import TestClient

from regdesk.dependencies import get_protected_rooms
from regdesk.errors import Forbidden, NotFound
from regdesk.main import app
from regdesk.room.aggregate_root import Room
from regdesk.room.registry import RoomRegistry

client = TestClient(app)

API = "/api/regdesk"


def create_room(room_no, gender_type="Male"):
    return client.post(f"{API}/rooms/", json={"roomNo": room_no, "genderType": gender_type})


def test_create_and_list_rooms():
    response = create_room("12")
    assert response.status_code == 201
    assert response.json()["room_no"] == "12"
    create_room("14", "Female")

    rooms = client.get(f"{API}/rooms/").json()
    assert [r["room_no"] for r in rooms] == ["12", "14"]


def test_create_duplicate_room_conflicts():
    create_room("12")
    response = create_room(" 12 ")
    assert response.status_code == 409


def test_create_room_requires_number():
    assert create_room("  ").status_code == 400


def test_delete_room():
    room_id = create_room("12").json()["room_id"]
    assert client.delete(f"{API}/rooms/{room_id}").status_code == 200
    assert client.get(f"{API}/rooms/").json() == []
    assert client.delete(f"{API}/rooms/{room_id}").status_code == 404


def test_protected_room_cannot_be_deleted():
    # conftest sets PROTECTED_ROOMS=101,102,T1
    room_id = create_room("101").json()["room_id"]
    response = client.delete(f"{API}/rooms/{room_id}")
    assert response.status_code == 403
    assert [r["room_no"] for r in client.get(f"{API}/rooms/").json()] == ["101"]


def test_protected_set_is_injected():
    app.dependency_overrides[get_protected_rooms] = lambda: frozenset({"12"})
    try:
        room_id = create_room("12").json()["room_id"]
        assert client.delete(f"{API}/rooms/{room_id}").status_code == 403
        other = create_room("101").json()["room_id"]
        assert client.delete(f"{API}/rooms/{other}").status_code == 200
    finally:
        app.dependency_overrides.clear()


def test_registry_delete_protected(db):
    registry = RoomRegistry(db, frozenset({"A"}))
    room = registry.create_room("A")
    with pytest.raises(Forbidden):
        registry.delete_room(room.room_id)
    assert [r.room_no for r in registry.list_rooms()] == ["A"]
    with pytest.raises(NotFound):
        registry.delete_room(999)


def test_room_aggregate_protection():
    room = Room("T1")
    assert room.is_protected({"T1"})
    assert not room.is_protected({"T2"})


def test_deleting_room_leaves_participant_reference(make_course, interviewed):
    course = make_course()
    p = interviewed(course.course_id)
    room_id = create_room("12").json()["room_id"]
    client.post(f"{API}/participants/onboard", json={"participantId": p.participant_id, "courseId": course.course_id, "roomNo": "12"})

    assert client.delete(f"{API}/rooms/{room_id}").status_code == 200
    assert client.get(f"{API}/participants/{p.participant_id}").json()["room_no"] == "12"


def test_occupancy_lists_room_holders(make_course, make_participant, interviewed):
    course = make_course("Winter Course")
    make_participant(course.course_id, "No Room Yet")
    p = interviewed(course.course_id, "Asha", gender="Female")
    client.post(f"{API}/participants/onboard", json={"participantId": p.participant_id, "courseId": course.course_id, "roomNo": "12"})

    response = client.get(f"{API}/rooms/occupancy")
    assert response.status_code == 200
    assert response.json() == [{
        "room_no": "12",
        "participant_id": p.participant_id,
        "full_name": "Asha",
        "status": "Attending",
        "gender": "Female",
        "course_id": course.course_id,
        "course_name": "Winter Course",
    }]
