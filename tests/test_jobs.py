from datetime import datetime, timedelta, timezone

import pytest

from src.models import Frequency, Reminder
from src.repositories.reminders import ReminderRepository
from src.services import fcm_push
from src.services.reminder_notifications import process_due_reminders
from src.services.reminders import ReminderStateError, log_adherence, materialize_all

from tests.conftest import NOW, USER_UID


@pytest.fixture
def pushes(monkeypatch):
    """Records pushes instead of calling Firebase; result is adjustable per test."""
    sent = []
    state = {"result": (1, 0, 0)}

    def fake_send(db, owner_uid, title, body, data=None):
        sent.append({"owner_uid": owner_uid, "title": title, "body": body, "data": data})
        result = state["result"]
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(fcm_push, "send_push_to_user", fake_send)
    return {"sent": sent, "state": state}


def test_due_reminders_are_pushed_once(db, make_medicine, make_reminder, pushes):
    medicine = make_medicine(name="Losartan")
    due = make_reminder(medicine, NOW - timedelta(minutes=10))
    make_reminder(medicine, NOW - timedelta(minutes=40))  # already missed
    make_reminder(medicine, NOW - timedelta(minutes=5), taken=True)
    make_reminder(medicine, NOW + timedelta(minutes=5))  # not due yet

    assert process_due_reminders(db, NOW) == 1
    assert len(pushes["sent"]) == 1
    push = pushes["sent"][0]
    assert push["owner_uid"] == USER_UID
    assert "Losartan" in push["body"]
    assert push["data"]["reminder_id"] == due.id

    db.expire_all()
    assert db.get(Reminder, due.id).notified_at == NOW

    assert process_due_reminders(db, NOW + timedelta(minutes=1)) == 0
    assert len(pushes["sent"]) == 1


def test_unsent_push_is_retried(db, make_medicine, make_reminder, pushes):
    medicine = make_medicine()
    due = make_reminder(medicine, NOW - timedelta(minutes=1))

    pushes["state"]["result"] = (0, 1, 0)
    assert process_due_reminders(db, NOW) == 0
    db.expire_all()
    assert db.get(Reminder, due.id).notified_at is None

    pushes["state"]["result"] = (1, 0, 0)
    assert process_due_reminders(db, NOW + timedelta(minutes=1)) == 1


def test_push_failure_does_not_stop_the_run(db, make_medicine, make_reminder, pushes):
    medicine = make_medicine()
    make_reminder(medicine, NOW - timedelta(minutes=2))
    make_reminder(medicine, NOW - timedelta(minutes=1))

    pushes["state"]["result"] = RuntimeError("Firebase Admin SDK is not initialized")
    assert process_due_reminders(db, NOW) == 0
    assert len(pushes["sent"]) == 2


def test_send_push_requires_firebase(db, monkeypatch):
    monkeypatch.setattr(fcm_push, "firebase_ready", lambda: False)
    with pytest.raises(RuntimeError):
        fcm_push.send_push_to_user(db, USER_UID, "title", "body")


def test_materialize_all_covers_active_scheduled_medicines(db, make_medicine, make_reminder):
    daily = make_medicine()
    make_medicine(name="Paused", is_active=False)
    make_medicine(name="Inhaler", frequency=Frequency.as_needed, reminder_times=["09:00"])
    make_reminder(daily, datetime(2025, 3, 9, 8, 0), taken=True)
    make_reminder(daily, datetime(2025, 3, 9, 20, 0))

    # the job runs at midnight
    midnight = datetime(2025, 3, 10)
    assert materialize_all(db, midnight.date(), midnight) == 2
    assert materialize_all(db, midnight.date(), midnight) == 0

    db.expire_all()
    repo = ReminderRepository(db)
    today = repo.find(USER_UID, start=datetime(2025, 3, 10), end=datetime(2025, 3, 11))
    assert [r.scheduled_time.hour for r in today] == [8, 20]
    assert repo.find(USER_UID, start=datetime(2025, 3, 9), end=datetime(2025, 3, 10))[0].medicine.adherence_rate == 50


def test_log_adherence_rejects_future_taken_at(db, make_medicine, make_reminder):
    reminder = make_reminder(make_medicine(), NOW - timedelta(hours=1))
    with pytest.raises(ReminderStateError):
        log_adherence(
            ReminderRepository(db),
            USER_UID,
            reminder.id,
            taken=True,
            taken_at=NOW + timedelta(minutes=1),
            now=NOW,
        )


def test_log_adherence_converts_aware_taken_at(db, make_medicine, make_reminder):
    reminder = make_reminder(make_medicine(), NOW - timedelta(hours=1))
    # 03:00 UTC is 08:30 in Asia/Kolkata
    logged = log_adherence(
        ReminderRepository(db),
        USER_UID,
        reminder.id,
        taken=True,
        taken_at=datetime(2025, 3, 10, 3, 0, tzinfo=timezone.utc),
        now=NOW,
    )
    assert logged.taken_at == datetime(2025, 3, 10, 8, 30)
