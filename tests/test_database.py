import warnings
from datetime import date, datetime, timedelta, timezone

import pytest

from database import (
    InvalidCalculation,
    SignupError,
    authenticate,
    check_password,
    create_calculation,
    create_user,
    delete_calculation,
    get_user,
    hash_password,
    list_calculations,
    validate_signup,
)
from emissions import ActivityInput, Period, Subject, compute

PERIOD = Period(date(2024, 2, 1), date(2024, 2, 10))


def _save(db, user_id, electricity=100, period=PERIOD, subject=None):
    subject = subject or Subject.individual()
    activity = ActivityInput.from_mapping({"energy": {"electricity": electricity}})
    return create_calculation(db, user_id, period, subject, activity,
                              compute(activity, period, subject))


@pytest.fixture()
def user(db):
    return create_user("Ada", "Ada@Example.com", "secret1", db=db)


def test_password_hash_round_trip():
    stored = hash_password("hunter22", iterations=1000)
    assert stored.startswith("pbkdf2_sha256$1000$")
    assert check_password("hunter22", stored)
    assert not check_password("hunter23", stored)
    assert not check_password("hunter22", "plaintext")


@pytest.mark.parametrize("stored", [
    None,
    "pbkdf2_sha256$1000$!!!not-base64!!!$abc",
    "pbkdf2_sha256$many$c2FsdA==$abc",
    "pbkdf2_sha256$1000$c2FsdA==$abc$extra",
    "md5$1000$c2FsdA==$abc",
    "pbkdf2_sha256$0$c2FsdA==$abc",
    "pbkdf2_sha256$1000$c2FsdA==$h\u00e9",
])
def test_check_password_rejects_corrupted_hashes(stored):
    assert check_password("hunter22", stored) is False


def test_create_user_normalises_email_and_rejects_duplicates(db, user):
    assert user.email == "ada@example.com"
    assert user.password != "secret1"
    assert create_user("Other", "ada@example.com", "secret2", db=db) is None


def test_authenticate(db, user):
    assert authenticate("ADA@example.com", "secret1", db=db).id == user.id
    assert authenticate("ada@example.com", "wrong", db=db) is None
    assert authenticate("nobody@example.com", "secret1", db=db) is None


@pytest.mark.parametrize("fields, message", [
    (("", "a@b.c", "secret1", "secret1"), "Please fill all fields"),
    (("Ada", "a@b.c", "secret1", "secret2"), "Passwords do not match"),
    (("Ada", "a@b.c", "abc", "abc"), "at least 6"),
])
def test_validate_signup(fields, message):
    with pytest.raises(SignupError, match=message):
        validate_signup(*fields)


def test_create_calculation_assigns_id_and_timestamp(db, user):
    record = _save(db, user.id, subject=Subject.family(2))
    assert record.id
    assert record.user_id == user.id
    assert record.created_at is not None
    assert record.created_at.tzinfo is None
    assert record.period == PERIOD
    assert record.days == 10
    assert record.subject == Subject.family(2)
    assert record.activity.get("energy", "electricity") == 100
    assert record.results.total == pytest.approx(85 * 10 / 30)
    assert record.results.per_person == pytest.approx(record.results.total / 2)


def test_created_at_is_naive_utc_without_deprecation_warnings(db, user):
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        record = _save(db, user.id)
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    assert record.created_at.tzinfo is None
    assert abs(now - record.created_at) < timedelta(minutes=1)


def test_create_calculation_requires_inputs_and_valid_period(db, user):
    with pytest.raises(InvalidCalculation):
        _save(db, user.id, electricity=0)
    with pytest.raises(InvalidCalculation):
        _save(db, user.id, period=Period(date(2024, 2, 10), date(2024, 2, 1)))
    with pytest.raises(InvalidCalculation):
        _save(db, "", electricity=5)
    assert list_calculations(db, user.id) == []


def test_list_calculations_is_per_user_and_newest_first(db, user):
    other = create_user("Bob", "bob@example.com", "secret1", db=db)
    first = _save(db, user.id, electricity=10)
    second = _save(db, user.id, electricity=20)
    _save(db, other.id, electricity=30)

    records = list_calculations(db, user.id)
    assert [r.id for r in records] == [second.id, first.id]
    assert len(list_calculations(db, other.id)) == 1


def test_delete_calculation_only_for_owner(db, user):
    other = create_user("Bob", "bob@example.com", "secret1", db=db)
    record = _save(db, user.id)

    assert delete_calculation(db, record.id, other.id) is False
    assert delete_calculation(db, record.id, user.id) is True
    assert delete_calculation(db, record.id, user.id) is False
    assert list_calculations(db, user.id) == []


def test_get_user(db, user):
    assert get_user(db, user.id).name == "Ada"
    assert get_user(db, "missing") is None
