import os

# must be set before yoga_studio.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from yoga_studio import models  # noqa: F401  (registers the tables)
from yoga_studio.db import Base, engine_options

TODAY = date(2026, 10, 19)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def raw_bundle():
    """
    A store dump with the usual noise: null slots, a past session, a malformed
    date, a dangling class type and a dangling teacher.
    """
    return {
        "classes": [
            None,
            {
                "description": "Vinyasa Flow",
                "level": "Beginner",
                "price": 20,
                "duration": 60,
                "room": "Studio A",
                "time": "09:00",
                "daysOfWeek": ["Monday", "Wednesday"],
                "capacity": 12,
                "classTypeId": 0,
            },
            {
                "description": "Power Yoga",
                "level": "Advanced",
                "price": 35,
                "duration": 75,
                "room": "Studio B",
                "time": "18:30",
                "daysOfWeek": ["Tuesday"],
                "capacity": 8,
                "classTypeId": 5,
            },
            {
                "description": "Yin Restore",
                "level": "Intermediate",
                "price": 15,
                "duration": 90,
                "room": "Studio A",
                "time": "09:00",
                "daysOfWeek": "Sunday",
                "capacity": 10,
                "classTypeId": 1,
            },
        ],
        "classInstances": [
            {"classId": 1, "teacherId": 0, "date": "2026-10-19"},
            {"classId": 1, "teacherId": 0, "date": "2026-10-18"},
            {"classId": 1, "teacherId": 2, "date": "2026-11-02", "additionalComments": "Bring a mat"},
            None,
            {"classId": 1, "teacherId": 9, "date": "2026-10-26"},
            {"classId": 2, "teacherId": 2, "date": "not-a-date"},
            {"classId": 3, "teacherId": 0, "date": "2026-10-20"},
            {"classId": 2, "teacherId": 2, "date": "2026-12-01"},
        ],
        "classTypes": [
            {"name": "Flow Yoga", "description": "Dynamic sequences"},
            {"name": "Yin", "description": "Long passive holds"},
        ],
        "teachers": [
            {"name": "Ana", "basicInfo": "RYT-500"},
            None,
            {"name": "Ben", "basicInfo": "Ashtanga"},
        ],
        "bookings": {},
    }


@pytest.fixture
def session_factory():
    url = "sqlite://"
    engine = create_engine(url, future=True, **engine_options(url))
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
