from datetime import datetime


def test_weekly_report(client, make_medicine, make_reminder):
    medicine = make_medicine()
    taken = [
        datetime(2025, 3, 3, 8, 0),  # outside the week
        datetime(2025, 3, 7, 8, 0),
        datetime(2025, 3, 8, 8, 0),
        datetime(2025, 3, 8, 20, 0),
        datetime(2025, 3, 9, 8, 0),
        datetime(2025, 3, 9, 20, 0),
        datetime(2025, 3, 10, 8, 0),
    ]
    for when in taken:
        make_reminder(medicine, when, taken=True, taken_at=when)
    make_reminder(medicine, datetime(2025, 3, 7, 20, 0), skipped=True)

    res = client.get("/api/adherence", params={"period": "week"})
    assert res.status_code == 200
    report = res.json()

    assert report["startDate"] == "2025-03-04"
    assert report["endDate"] == "2025-03-10"
    assert len(report["days"]) == 7
    assert report["days"][3] == {"day": "2025-03-07", "scheduled": 2, "taken": 1}
    assert report["totalScheduled"] == 7
    assert report["totalTaken"] == 6
    assert report["percentage"] == 86
    assert report["grade"] == "B+"
    assert report["currentStreak"] == 3
    assert report["bestStreak"] == 3


def test_missed_doses_count_against_adherence(client, make_medicine, make_reminder):
    medicine = make_medicine()
    make_reminder(medicine, datetime(2025, 3, 9, 8, 0), taken=True)
    make_reminder(medicine, datetime(2025, 3, 9, 20, 0))
    # still inside the 30 minute window
    make_reminder(medicine, datetime(2025, 3, 10, 8, 45))

    report = client.get("/api/adherence").json()
    assert report["totalScheduled"] == 2
    assert report["percentage"] == 50
    assert report["grade"] == "D"
    assert report["currentStreak"] == 0


def test_month_report_and_empty_history(client):
    report = client.get("/api/adherence", params={"period": "month"}).json()
    assert len(report["days"]) == 30
    assert report["startDate"] == "2025-02-09"
    assert report["percentage"] == 0
    assert report["grade"] == "D"
    assert report["bestStreak"] == 0

    assert client.get("/api/adherence", params={"period": "decade"}).status_code == 422
