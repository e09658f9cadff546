import os

# must be set before src.* is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["AUTH_AUDIENCE"] = "pill-pal-demo"
os.environ["FIREBASE_KEY_PATH"] = "tests/missing-firebase-key.json"

from datetime import date, datetime

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.auth.dependencies import get_current_user
from src.db.database import Base, get_db
from src.main import app
from src.models import Frequency, Medicine, MedicineType, Priority, Reminder, User
from src.services.clock import current_time

USER_UID = "user-abcdef-123456"
OTHER_UID = "user-zyxwvu-654321"

# a Monday
NOW = datetime(2025, 3, 10, 9, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    user = User(uid=USER_UID, name="Asha", email="asha@example.com")
    db.add(user)
    db.add(User(uid=OTHER_UID, name="Ravi", email="ravi@example.com"))
    db.commit()
    return user


@pytest.fixture
def clock():
    # tests move time by assigning clock["now"]
    return {"now": NOW}


@pytest.fixture
def client(session_factory, user, clock):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def _current_user(db: Session = Depends(get_db)):
        return db.get(User, USER_UID)

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = _current_user
    app.dependency_overrides[current_time] = lambda: clock["now"]
    try:
        # no "with": the lifespan (scheduler, firebase) stays off
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_medicine(db, user):
    def _make(**overrides):
        values = dict(
            owner_uid=USER_UID,
            name="Metformin",
            dosage_amount="500",
            dosage_unit="mg",
            medicine_type=MedicineType.tablet,
            frequency=Frequency.twice_daily,
            reminder_times=["08:00", "20:00"],
            days=[],
            start_date=date(2025, 3, 1),
            priority=Priority.medium,
            is_active=True,
        )
        values.update(overrides)
        medicine = Medicine(**values)
        db.add(medicine)
        db.commit()
        db.refresh(medicine)
        return medicine

    return _make


@pytest.fixture
def make_reminder(db):
    def _make(medicine, scheduled_time, **overrides):
        values = dict(
            medicine_id=medicine.id,
            owner_uid=medicine.owner_uid,
            scheduled_time=scheduled_time,
            taken=False,
            skipped=False,
            priority=medicine.priority,
        )
        values.update(overrides)
        reminder = Reminder(**values)
        db.add(reminder)
        db.commit()
        db.refresh(reminder)
        return reminder

    return _make
