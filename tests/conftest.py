"""Make the top-level modules importable and provide an in-memory store."""

from __future__ import annotations

import sys
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

root_path = str(ROOT)
if root_path not in sys.path:
    sys.path.insert(0, root_path)

from aggregator import CalculationRecord  # noqa: E402
from emissions import ActivityInput, EmissionResult, Period, Subject  # noqa: E402


@pytest.fixture()
def db():
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker

    from database import Base

    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def make_record():
    counter = iter(range(1000))

    def _make(total, days=30, start=date(2024, 1, 1), per_person=None, **categories):
        n = next(counter)
        results = EmissionResult(total=total,
                                 per_person=total if per_person is None else per_person,
                                 days=days, **categories)
        return CalculationRecord(
            id=f"calc-{n}",
            user_id="user-1",
            period=Period(start, start + timedelta(days=days - 1)),
            subject=Subject.individual(),
            activity=ActivityInput(),
            results=results,
            created_at=datetime(2024, 1, 1) + timedelta(minutes=n),
        )

    return _make
