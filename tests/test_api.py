"""
HTTP tests for the booking API.

Tests cover:
- Registration and login
- Facility listing, admin CRUD and the availability grid
- Booking requests, the 409 waitlist offer and waitlist enrollment
- Admin status changes with waitlist promotion
- Notification polling, deferred reminders and read/delete
- Error rendering for booking rule failures
"""

from datetime import date, datetime, timedelta

import pytest

from app.models import Notification

API = "/api/v1"


@pytest.fixture
def student(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role="admin")


def _book(client, headers, facility, day, start="08:00", end="09:00", join_waitlist=False):
    return client.post(
        f"{API}/bookings/",
        json={
            "facility_id": str(facility.id),
            "date": day.isoformat(),
            "start_time": start,
            "end_time": end,
            "join_waitlist": join_waitlist,
        },
        headers=headers,
    )


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


def test_register_then_login(client):
    response = client.post(
        f"{API}/auth/register",
        json={"email": "asha@university.edu", "password": "s3cret!", "full_name": "Asha", "branch": "CSE"},
    )
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "student"

    response = client.post(
        f"{API}/auth/login",
        data={"username": "asha@university.edu", "password": "s3cret!"},
    )
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get(f"{API}/me/", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "asha@university.edu"
    assert me.json()["branch"] == "CSE"


def test_login_with_wrong_password(client):
    client.post(
        f"{API}/auth/register",
        json={"email": "ravi@university.edu", "password": "right", "full_name": "Ravi"},
    )

    response = client.post(f"{API}/auth/login", data={"username": "ravi@university.edu", "password": "wrong"})

    assert response.status_code == 401


def test_admin_registration_requires_secret(client):
    body = {"email": "ops@university.edu", "password": "pw", "full_name": "Ops", "admin_secret": "guess"}
    assert client.post(f"{API}/auth/admin/register", json=body).status_code == 403

    body["admin_secret"] = "test-admin-secret"
    response = client.post(f"{API}/auth/admin/register", json=body)
    assert response.status_code == 201
    assert response.json()["user"]["role"] == "admin"


def test_bookings_require_authentication(client, facility, booking_day):
    response = _book(client, {}, facility, booking_day)
    assert response.status_code == 401


# ---------------------------------------------------------------------------
# Facilities and availability
# ---------------------------------------------------------------------------


def test_public_facility_listing_filters_unavailable(client, make_facility):
    make_facility(name="Court A")
    make_facility(name="Court B", availability=False)

    everything = client.get(f"{API}/facilities/").json()
    bookable = client.get(f"{API}/facilities/", params={"available_only": True}).json()

    assert [f["name"] for f in everything["data"]] == ["Court A", "Court B"]
    assert [f["name"] for f in bookable["data"]] == ["Court A"]


def test_availability_grid(client, facility, student, auth_headers, booking_day):
    _book(client, auth_headers(student), facility, booking_day, "09:00", "10:00")

    response = client.get(f"{API}/facilities/{facility.id}/availability", params={"date": booking_day.isoformat()})

    assert response.status_code == 200
    assert response.json()["slots"] == [
        {"start_time": "08:00", "end_time": "09:00", "is_available": True, "waitlist_count": 0},
        {"start_time": "09:00", "end_time": "10:00", "is_available": False, "waitlist_count": 0},
    ]


def test_availability_for_unknown_facility(client):
    response = client.get(
        f"{API}/facilities/00000000-0000-4000-8000-000000000000/availability",
        params={"date": date.today().isoformat()},
    )

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_admin_facility_crud(client, admin, auth_headers):
    headers = auth_headers(admin)

    created = client.post(
        f"{API}/admin/facilities/",
        json={"name": "Squash Court", "location": "Block C", "capacity": 2, "open_time": "6:00", "close_time": "09:00"},
        headers=headers,
    )
    assert created.status_code == 201
    facility = created.json()
    assert facility["open_time"] == "06:00"

    updated = client.patch(f"{API}/admin/facilities/{facility['id']}", json={"close_time": "12:00"}, headers=headers)
    assert updated.json()["close_time"] == "12:00"

    backwards = client.patch(f"{API}/admin/facilities/{facility['id']}", json={"close_time": "05:00"}, headers=headers)
    assert backwards.status_code == 422
    assert backwards.json()["error"] == "validation_failed"

    deleted = client.delete(f"{API}/admin/facilities/{facility['id']}", headers=headers)
    assert deleted.json()["is_active"] is False
    assert client.get(f"{API}/facilities/{facility['id']}").status_code == 404
    assert client.get(f"{API}/facilities/").json()["total"] == 0


def test_facility_hours_are_validated(client, admin, auth_headers):
    response = client.post(
        f"{API}/admin/facilities/",
        json={"name": "Track", "location": "Field", "capacity": 50, "open_time": "late", "close_time": "09:00"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 422


def test_students_cannot_use_admin_routes(client, student, auth_headers):
    headers = auth_headers(student)

    assert client.get(f"{API}/admin/bookings/", headers=headers).status_code == 403
    assert client.get(f"{API}/admin/facilities/", headers=headers).status_code == 403


# ---------------------------------------------------------------------------
# Booking requests
# ---------------------------------------------------------------------------


def test_booking_is_created_pending(client, facility, student, auth_headers, booking_day):
    response = _book(client, auth_headers(student), facility, booking_day)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["waitlist_position"] is None
    assert body["start_time"] == "08:00"
    assert body["end_time"] == "09:00"
    assert body["facility"]["name"] == facility.name


def test_taken_slot_returns_waitlist_offer(client, facility, make_user, auth_headers, booking_day):
    _book(client, auth_headers(make_user()), facility, booking_day)
    late = make_user()

    response = _book(client, auth_headers(late), facility, booking_day)

    assert response.status_code == 409
    body = response.json()
    assert body["conflict"] is True
    assert body["waitlist_available"] is True
    assert body["start_time"] == "08:00"
    assert client.get(f"{API}/bookings/", headers=auth_headers(late)).json()["total"] == 0


def test_joining_waitlist_returns_position(client, facility, make_user, auth_headers, booking_day):
    _book(client, auth_headers(make_user()), facility, booking_day)

    first = _book(client, auth_headers(make_user()), facility, booking_day, join_waitlist=True)
    second = _book(client, auth_headers(make_user()), facility, booking_day, join_waitlist=True)

    assert first.status_code == 201
    assert first.json()["waitlist_position"] == 1
    assert second.json()["waitlist_position"] == 2


@pytest.mark.parametrize(
    "start, end, error",
    [
        ("08:00", "10:00", "validation_failed"),
        ("08:15", "09:15", "validation_failed"),
        ("8 am", "9 am", "invalid_time_format"),
    ],
)
def test_bad_intervals_are_rejected(client, facility, student, auth_headers, booking_day, start, end, error):
    response = _book(client, auth_headers(student), facility, booking_day, start, end)

    assert response.status_code == 422
    assert response.json()["error"] == error


def test_second_booking_same_day_is_refused(client, make_facility, student, auth_headers, booking_day):
    court = make_facility(name="Court")
    gym = make_facility(name="Gym")
    headers = auth_headers(student)
    _book(client, headers, court, booking_day)

    response = _book(client, headers, gym, booking_day, "09:00", "10:00")

    assert response.status_code == 400
    assert response.json()["error"] == "daily_limit_exceeded"


def test_unavailable_facility(client, make_facility, student, auth_headers, booking_day):
    closed = make_facility(name="Pool", availability=False)

    response = _book(client, auth_headers(student), closed, booking_day)

    assert response.status_code == 400
    assert response.json()["error"] == "facility_unavailable"


def test_past_date_is_refused(client, facility, student, auth_headers):
    response = _book(client, auth_headers(student), facility, date.today() - timedelta(days=1))

    assert response.status_code == 422


def test_list_and_cancel_own_booking(client, facility, student, auth_headers, booking_day):
    headers = auth_headers(student)
    booking = _book(client, headers, facility, booking_day).json()

    listing = client.get(f"{API}/bookings/", headers=headers).json()
    assert [b["id"] for b in listing["data"]] == [booking["id"]]

    canceled = client.patch(f"{API}/bookings/{booking['id']}/cancel", headers=headers)
    assert canceled.status_code == 200
    assert canceled.json()["status"] == "canceled"

    again = client.patch(f"{API}/bookings/{booking['id']}/cancel", headers=headers)
    assert again.status_code == 409
    assert again.json()["error"] == "invalid_status_transition"


def test_users_cannot_see_each_others_bookings(client, facility, make_user, auth_headers, booking_day):
    booking = _book(client, auth_headers(make_user()), facility, booking_day).json()

    response = client.get(f"{API}/bookings/{booking['id']}", headers=auth_headers(make_user()))

    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Admin status changes
# ---------------------------------------------------------------------------


def test_admin_rejection_promotes_waitlisted_user(client, facility, make_user, admin, auth_headers, booking_day):
    user_a, user_b = make_user(), make_user()
    booking_a = _book(client, auth_headers(user_a), facility, booking_day).json()
    assert _book(client, auth_headers(user_b), facility, booking_day).status_code == 409
    booking_b = _book(client, auth_headers(user_b), facility, booking_day, join_waitlist=True).json()
    assert booking_b["waitlist_position"] == 1

    response = client.put(
        f"{API}/admin/bookings/status",
        json={"booking_id": booking_a["id"], "status": "rejected", "remarks": "Maintenance"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["user"]["id"] == str(user_a.id)

    promoted = client.get(f"{API}/bookings/{booking_b['id']}", headers=auth_headers(user_b)).json()
    assert promoted["status"] == "pending"
    assert promoted["waitlist_position"] is None
    assert promoted["remarks"] == "Promoted from waitlist"

    a_titles = [n["title"] for n in client.get(f"{API}/me/notifications", headers=auth_headers(user_a)).json()["data"]]
    b_titles = [n["title"] for n in client.get(f"{API}/me/notifications", headers=auth_headers(user_b)).json()["data"]]
    assert a_titles == [f"Booking Rejected: {facility.name}"]
    assert f"Booking Available: {facility.name}" in b_titles

    slot = client.get(f"{API}/facilities/{facility.id}/availability", params={"date": booking_day.isoformat()})
    assert slot.json()["slots"][0] == {
        "start_time": "08:00", "end_time": "09:00", "is_available": False, "waitlist_count": 0,
    }


def test_admin_status_update_rejects_unknown_status(client, facility, student, admin, auth_headers, booking_day):
    booking = _book(client, auth_headers(student), facility, booking_day).json()

    response = client.put(
        f"{API}/admin/bookings/status",
        json={"booking_id": booking["id"], "status": "pending"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 422


def test_admin_booking_filters(client, facility, make_user, admin, auth_headers, booking_day):
    _book(client, auth_headers(make_user()), facility, booking_day)
    _book(client, auth_headers(make_user()), facility, booking_day, join_waitlist=True)
    headers = auth_headers(admin)

    waitlisted = client.get(f"{API}/admin/bookings/", params={"waitlisted": True}, headers=headers).json()
    primaries = client.get(f"{API}/admin/bookings/", params={"waitlisted": False}, headers=headers).json()

    assert waitlisted["total"] == 1
    assert waitlisted["data"][0]["waitlist_position"] == 1
    assert primaries["total"] == 1
    assert primaries["data"][0]["user"]["email"].endswith("@university.edu")


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


def test_approval_reminder_is_hidden_until_due(client, db, facility, student, admin, auth_headers, booking_day):
    booking = _book(client, auth_headers(student), facility, booking_day).json()
    client.put(
        f"{API}/admin/bookings/status",
        json={"booking_id": booking["id"], "status": "approved"},
        headers=auth_headers(admin),
    )

    listing = client.get(f"{API}/me/notifications", headers=auth_headers(student)).json()
    assert [n["type"] for n in listing["data"]] == ["booking_status"]

    # Pull the reminder's due time into the past, as if the clock had moved on
    db.expire_all()
    reminder = db.query(Notification).filter(Notification.type == "reminder").one()
    reminder.scheduled_for = datetime.now() - timedelta(minutes=1)
    db.commit()

    listing = client.get(f"{API}/me/notifications", headers=auth_headers(student)).json()
    assert sorted(n["type"] for n in listing["data"]) == ["booking_status", "reminder"]
    [released] = [n for n in listing["data"] if n["type"] == "reminder"]
    assert released["is_sent"] is True
    assert released["related_booking"] == {"kind": "facility_booking", "id": booking["id"]}


def test_mark_read_and_delete_notifications(client, facility, student, admin, auth_headers, booking_day):
    headers = auth_headers(student)
    booking = _book(client, headers, facility, booking_day).json()
    client.put(
        f"{API}/admin/bookings/status",
        json={"booking_id": booking["id"], "status": "rejected"},
        headers=auth_headers(admin),
    )
    [notice] = client.get(f"{API}/me/notifications", headers=headers).json()["data"]

    read = client.patch(f"{API}/me/notifications/{notice['id']}/read", headers=headers)
    assert read.json()["is_read"] is True
    unread = client.get(f"{API}/me/notifications", params={"unread_only": True}, headers=headers).json()
    assert unread["total"] == 0

    deleted = client.delete(f"{API}/me/notifications/{notice['id']}", headers=headers)
    assert deleted.json()["deleted"] is True
    assert client.get(f"{API}/me/notifications", headers=headers).json()["total"] == 0


def test_notifications_are_private(client, facility, make_user, admin, auth_headers, booking_day):
    owner = make_user()
    booking = _book(client, auth_headers(owner), facility, booking_day).json()
    client.put(
        f"{API}/admin/bookings/status",
        json={"booking_id": booking["id"], "status": "approved"},
        headers=auth_headers(admin),
    )
    [notice] = client.get(f"{API}/me/notifications", headers=auth_headers(owner)).json()["data"]

    response = client.delete(f"{API}/me/notifications/{notice['id']}", headers=auth_headers(make_user()))

    assert response.status_code == 404


def test_read_all(client, student, admin, auth_headers):
    for title in ("One", "Two"):
        client.post(
            f"{API}/admin/notifications/",
            json={"user_id": str(student.id), "title": title, "message": "hello"},
            headers=auth_headers(admin),
        )

    response = client.patch(f"{API}/me/notifications/read-all", headers=auth_headers(student))

    assert response.json() == {"marked_read": 2}


def test_admin_penalty_notice(client, student, admin, auth_headers):
    response = client.post(
        f"{API}/admin/notifications/",
        json={"user_id": str(student.id), "type": "penalty", "penalty_hours": 48, "reason": "a no-show"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    assert response.json()["title"] == "Booking Restriction Applied"
    assert response.json()["related_booking"] is None


def test_penalty_notice_requires_reason(client, student, admin, auth_headers):
    response = client.post(
        f"{API}/admin/notifications/",
        json={"user_id": str(student.id), "type": "penalty", "penalty_hours": 48},
        headers=auth_headers(admin),
    )

    assert response.status_code == 422
