from datetime import date, datetime

import pytest

from conftest import make_doctor, make_patient
from momcare.appointment_api import build_overview, check_transition, sort_appointments
from momcare.errors import Conflict, InvalidArgument
from momcare.models import Appointment
from momcare import appointment_api, schemas


def book(client, patient_id, **overrides):
    body = {"patientId": patient_id, "date": "2025-03-10", "time": "10:30 AM", **overrides}
    return client.post("/api/appointments", json=body)


def set_status(client, appt_id, status):
    return client.put(f"/api/appointments/{appt_id}/status", json={"status": status})


def test_booking_defaults_to_assigned_doctor(client, doctor, patient):
    res = book(client, patient["id"], notes="  first visit ")
    assert res.status_code == 201
    appt = res.json()["appointment"]
    assert appt["status"] == "pending"
    assert appt["doctorId"] == doctor["id"]
    assert appt["doctorName"] == doctor["name"]
    assert appt["patientName"] == patient["name"]
    assert appt["date"] == "2025-03-10"
    assert appt["notes"] == "first visit"


def test_second_request_for_same_slot_conflicts(client, doctor, patient):
    other = make_patient(client, doctor["id"], email="second@vnx.com")
    assert book(client, patient["id"], doctorId=doctor["id"]).status_code == 201

    res = book(client, other["id"], doctorId=doctor["id"])
    assert res.status_code == 409
    assert res.json() == {"success": False, "message": "This slot is already requested or booked"}


def test_slot_index_conflicts_when_precheck_misses(client, doctor, patient, monkeypatch):
    other = make_patient(client, doctor["id"], email="second@vnx.com")
    assert book(client, patient["id"]).status_code == 201

    async def never_taken(*args):
        return False

    monkeypatch.setattr(appointment_api, "_slot_is_taken", never_taken)
    res = book(client, other["id"])
    assert res.status_code == 409
    assert res.json() == {"success": False, "message": "This slot is already requested or booked"}


def test_slot_date_ignores_time_of_day(client, patient):
    assert book(client, patient["id"], date="2025-03-10T18:45:00Z").status_code == 201
    assert book(client, patient["id"], date="2025-03-10").status_code == 409


def test_rejected_slot_can_be_requested_again(client, patient):
    first = book(client, patient["id"]).json()["appointment"]
    assert set_status(client, first["id"], "rejected").status_code == 200
    assert book(client, patient["id"]).status_code == 201


def test_booking_validation(client, doctor, patient):
    assert book(client, patient["id"], time="  ").status_code == 400
    assert book(client, patient["id"], date="not-a-date").status_code == 400
    assert book(client, "nobody").status_code == 404
    assert book(client, patient["id"], doctorId="nobody").status_code == 404
    assert book(client, patient["id"], doctorId=patient["id"]).status_code == 404


def test_lists_are_ordered_by_slot_then_newest(client, doctor, patient):
    book(client, patient["id"], date="2025-03-12", time="09:00 AM")
    book(client, patient["id"], date="2025-03-10", time="11:00 AM")
    early = book(client, patient["id"], date="2025-03-10", time="09:00 AM").json()["appointment"]
    set_status(client, early["id"], "rejected")
    rebooked = book(client, patient["id"], date="2025-03-10", time="09:00 AM").json()["appointment"]

    listed = client.get(f"/api/appointments/patient/{patient['id']}").json()["appointments"]
    assert [(a["date"], a["time"]) for a in listed] == [
        ("2025-03-10", "09:00 AM"),
        ("2025-03-10", "09:00 AM"),
        ("2025-03-10", "11:00 AM"),
        ("2025-03-12", "09:00 AM"),
    ]
    assert listed[0]["id"] == rebooked["id"]

    by_doctor = client.get(f"/api/appointments/doctor/{doctor['id']}").json()["appointments"]
    assert len(by_doctor) == 4
    assert by_doctor[0]["patientName"] == patient["name"]


def test_approve_then_complete(client, doctor, patient):
    appt = book(client, patient["id"], date="2025-03-10").json()["appointment"]
    assert set_status(client, appt["id"], "approved").json()["appointment"]["status"] == "approved"
    done = set_status(client, appt["id"], "completed")
    assert done.status_code == 200
    assert done.json()["appointment"]["status"] == "completed"

    overview = client.get(f"/api/appointments/doctor/{doctor['id']}/overview", params={"today": "2025-03-10"}).json()
    assert overview == {"pending": [], "today": [], "upcoming": []}


def test_status_update_errors(client, patient):
    appt = book(client, patient["id"]).json()["appointment"]
    assert set_status(client, appt["id"], "cancelled").status_code == 400
    assert set_status(client, "missing", "approved").status_code == 404
    assert set_status(client, appt["id"], "completed").status_code == 409

    set_status(client, appt["id"], "rejected")
    assert set_status(client, appt["id"], "approved").status_code == 409


def test_overview_buckets(client, doctor, patient):
    pending = book(client, patient["id"], date="2025-03-10", time="09:00 AM").json()["appointment"]
    today = book(client, patient["id"], date="2025-03-10", time="10:00 AM").json()["appointment"]
    later = book(client, patient["id"], date="2025-03-11", time="10:00 AM").json()["appointment"]
    past = book(client, patient["id"], date="2025-03-01", time="10:00 AM").json()["appointment"]
    for appt in (today, later, past):
        set_status(client, appt["id"], "approved")

    overview = client.get(f"/api/appointments/doctor/{doctor['id']}/overview", params={"today": "2025-03-10"}).json()
    assert [a["id"] for a in overview["pending"]] == [pending["id"]]
    assert [a["id"] for a in overview["today"]] == [today["id"]]
    assert [a["id"] for a in overview["upcoming"]] == [later["id"]]


def test_other_doctor_slot_is_independent(client, patient):
    other = make_doctor(client, email="ravi@vnx.com", name="Dr. Ravi")
    assert book(client, patient["id"]).status_code == 201
    assert book(client, patient["id"], doctorId=other["id"]).status_code == 201


@pytest.mark.parametrize("current,new", [
    ("pending", "approved"), ("pending", "rejected"),
    ("approved", "completed"), ("approved", "rejected"), ("approved", "approved"),
])
def test_allowed_transitions(current, new):
    check_transition(current, new)


@pytest.mark.parametrize("current,new", [
    ("pending", "completed"), ("approved", "pending"),
    ("rejected", "approved"), ("completed", "pending"),
])
def test_blocked_transitions(current, new):
    with pytest.raises(Conflict):
        check_transition(current, new)


def test_unknown_status_is_invalid():
    with pytest.raises(InvalidArgument):
        check_transition("pending", "archived")


def test_sort_breaks_ties_by_newest():
    older = Appointment(id="a", date=date(2025, 3, 10), time="10:00", created_at=datetime(2025, 1, 1))
    newer = Appointment(id="b", date=date(2025, 3, 10), time="10:00", created_at=datetime(2025, 2, 1))
    earlier_slot = Appointment(id="c", date=date(2025, 3, 9), time="23:00", created_at=datetime(2024, 1, 1))
    assert [a.id for a in sort_appointments([older, newer, earlier_slot])] == ["c", "b", "a"]


def test_build_overview_is_a_pure_filter():
    def appt(id, status, day):
        return schemas.Appointment(id=id, patient_id="p", doctor_id="d", date=day, time="10:00", status=status)

    items = [appt("1", "approved", "2025-03-09"), appt("2", "completed", "2025-03-10"), appt("3", "approved", "2025-03-10")]
    overview = build_overview(items, date(2025, 3, 10))
    assert [a.id for a in overview.today] == ["3"]
    assert overview.pending == [] and overview.upcoming == []
