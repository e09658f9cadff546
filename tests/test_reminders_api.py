from datetime import datetime

from tests.conftest import OTHER_UID


def _add_medicine(client, **overrides):
    body = {
        "name": "Metformin",
        "dosage": {"amount": "500", "unit": "mg"},
        "type": "tablet",
        "frequency": "twice-daily",
        "reminderTimes": ["08:00", "20:00"],
        "priority": "high",
    }
    body.update(overrides)
    res = client.post("/api/medicines", json=body)
    assert res.status_code == 201, res.text
    return res.json()["medicine"]


def test_today_lists_materialized_reminders_with_status(client):
    _add_medicine(client)

    res = client.get("/api/reminders/today")
    assert res.status_code == 200
    data = res.json()

    assert data["date"] == "2025-03-10"
    assert data["view"] == "all"
    assert [r["scheduledTime"] for r in data["reminders"]] == ["2025-03-10T08:00:00", "2025-03-10T20:00:00"]
    assert [r["status"] for r in data["reminders"]] == ["missed", "upcoming"]
    assert data["summary"] == {"taken": 0, "skipped": 0, "missed": 1, "due": 0, "upcoming": 1, "total": 2}

    first, second = data["reminders"]
    assert first["minutesOverdue"] == 60 and first["minutesUntil"] is None
    assert second["minutesUntil"] == 660
    assert second["name"] == "Metformin"
    assert second["dosage"] == {"amount": "500", "unit": "mg"}


def test_today_view_narrows_list_but_not_summary(client):
    _add_medicine(client)

    data = client.get("/api/reminders/today", params={"view": "missed"}).json()
    assert data["count"] == 1
    assert data["reminders"][0]["status"] == "missed"
    assert data["summary"]["total"] == 2

    assert client.get("/api/reminders/today", params={"view": "soon"}).status_code == 422


def test_due_window_follows_the_clock(client, clock):
    _add_medicine(client)

    clock["now"] = datetime(2025, 3, 10, 20, 30)
    statuses = [r["status"] for r in client.get("/api/reminders/today").json()["reminders"]]
    assert statuses == ["missed", "due"]

    clock["now"] = datetime(2025, 3, 10, 20, 31)
    statuses = [r["status"] for r in client.get("/api/reminders/today").json()["reminders"]]
    assert statuses == ["missed", "missed"]


def test_log_taken_updates_status_and_adherence(client):
    medicine = _add_medicine(client)
    morning = client.get("/api/reminders/today").json()["reminders"][0]

    res = client.post(f"/api/reminders/{morning['id']}/adherence", json={"taken": True, "notes": "after breakfast"})
    assert res.status_code == 200
    reminder = res.json()["reminder"]
    assert res.json()["message"] == "Medicine marked as taken"
    assert reminder["status"] == "taken"
    assert reminder["takenAt"] == "2025-03-10T09:00:00"
    assert reminder["notes"] == "after breakfast"

    detail = client.get(f"/api/medicines/{medicine['id']}").json()
    assert detail["adherenceRate"] == 100
    assert detail["adherence"] == {"taken": 1, "skipped": 0, "missed": 0, "percentage": 100}


def test_log_skipped_clears_taken(client):
    _add_medicine(client)
    morning = client.get("/api/reminders/today").json()["reminders"][0]

    client.post(f"/api/reminders/{morning['id']}/adherence", json={"taken": True})
    res = client.post(f"/api/reminders/{morning['id']}/adherence", json={"taken": False})

    reminder = res.json()["reminder"]
    assert reminder["status"] == "skipped"
    assert reminder["taken"] is False and reminder["skipped"] is True
    assert reminder["takenAt"] is None


def test_log_with_explicit_taken_at(client):
    _add_medicine(client)
    morning = client.get("/api/reminders/today").json()["reminders"][0]

    res = client.post(
        f"/api/reminders/{morning['id']}/adherence",
        json={"taken": True, "takenAt": "2025-03-10T08:10:00"},
    )
    assert res.json()["reminder"]["takenAt"] == "2025-03-10T08:10:00"

    future = client.post(
        f"/api/reminders/{morning['id']}/adherence",
        json={"taken": True, "takenAt": "2025-03-10T10:00:00"},
    )
    assert future.status_code == 422


def test_log_unknown_or_foreign_reminder_is_404(client, make_medicine, make_reminder):
    foreign = make_reminder(
        make_medicine(owner_uid=OTHER_UID),
        datetime(2025, 3, 10, 8, 0),
    )
    assert client.post("/api/reminders/9999/adherence", json={"taken": True}).status_code == 404
    assert client.post(f"/api/reminders/{foreign.id}/adherence", json={"taken": True}).status_code == 404


def test_upcoming_today_has_urgency_and_label(client):
    _add_medicine(client)

    data = client.get("/api/reminders/upcoming", params={"view": "today"}).json()
    assert data["total"] == 1
    item = data["reminders"][0]
    assert item["scheduledTime"] == "2025-03-10T20:00:00"
    assert item["urgency"] == "upcoming"
    assert item["timeUntil"] == "11h 0m"


def test_upcoming_week_counts_and_limit(client):
    _add_medicine(client)

    data = client.get("/api/reminders/upcoming", params={"view": "week", "limit": 3}).json()
    # 20:00 today, two a day for six days, 08:00 next Monday
    assert data["total"] == 14
    assert data["highPriority"] == 14
    assert data["urgent"] == 0
    assert len(data["reminders"]) == 3

    tomorrow = client.get("/api/reminders/upcoming", params={"view": "tomorrow"}).json()
    assert [r["scheduledTime"] for r in tomorrow["reminders"]] == ["2025-03-11T08:00:00", "2025-03-11T20:00:00"]


def test_urgent_dose_is_flagged(client, clock):
    _add_medicine(client)
    clock["now"] = datetime(2025, 3, 10, 19, 45)

    data = client.get("/api/reminders/upcoming").json()
    assert data["urgent"] == 1
    assert data["reminders"][0]["timeUntil"] == "15m"


def test_deleted_medicine_reminders_are_hidden(client):
    medicine = _add_medicine(client)
    assert len(client.get("/api/reminders/today").json()["reminders"]) == 2

    assert client.delete(f"/api/medicines/{medicine['id']}").status_code == 200
    assert client.get("/api/reminders/today").json()["reminders"] == []


def test_as_needed_medicine_has_no_reminders(client):
    _add_medicine(client, frequency="as-needed", reminderTimes=["09:00"])
    assert client.get("/api/reminders/today").json()["count"] == 0
