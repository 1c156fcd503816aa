# database.py
import base64
import hashlib
import hmac
import logging
import os
import uuid
from datetime import datetime, timezone

from sqlalchemy import (create_engine, Column, Integer, String, Date, DateTime,
                        ForeignKey, JSON)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, relationship

from aggregator import CalculationRecord
from config import DEFAULT_DATABASE_URL, REQUEST_TIMEOUT
from emissions import ActivityInput, EmissionResult, Period, Subject

LOGGER = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 310_000
MIN_PASSWORD_LENGTH = 6

Session = sessionmaker()
Base = declarative_base()


def _new_id():
    return uuid.uuid4().hex


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"
    id       = Column(String(32), primary_key=True, default=_new_id)
    name     = Column(String, nullable=False)
    email    = Column(String, unique=True, nullable=False)
    password = Column(String, nullable=False)

    calculations = relationship("Calculation", back_populates="user",
                                cascade="all, delete-orphan")


class Calculation(Base):
    __tablename__ = "calculations"
    id             = Column(String(32), primary_key=True, default=_new_id)
    user_id        = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    date_from      = Column(Date, nullable=False)
    date_to        = Column(Date, nullable=False)
    days           = Column(Integer, nullable=False)
    user_type      = Column(String, nullable=False)
    household_size = Column(Integer, nullable=False)
    inputs         = Column(JSON, nullable=False)
    results        = Column(JSON, nullable=False)
    created_at     = Column(DateTime, nullable=False, default=_utcnow)

    user = relationship("User", back_populates="calculations")

    def to_record(self):
        return CalculationRecord(
            id=self.id,
            user_id=self.user_id,
            period=Period(self.date_from, self.date_to),
            subject=Subject(self.user_type, self.household_size),
            activity=ActivityInput(self.inputs or {}),
            results=EmissionResult.from_dict(self.results, days=self.days),
            created_at=self.created_at,
        )


class InvalidCalculation(ValueError):
    """A calculation that may not be saved."""


class SignupError(ValueError):
    pass


def make_engine(url=DEFAULT_DATABASE_URL, timeout=REQUEST_TIMEOUT):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"timeout": timeout, "check_same_thread": False}
    return create_engine(url, echo=False, connect_args=connect_args)


def init_db(url=DEFAULT_DATABASE_URL, timeout=REQUEST_TIMEOUT):
    engine = make_engine(url, timeout)
    Base.metadata.create_all(engine)
    Session.configure(bind=engine)
    return engine


# --- Accounts ---------------------------------------------------------------

def hash_password(password, salt=None, iterations=PBKDF2_ITERATIONS):
    if salt is None:
        salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return "pbkdf2_sha256${}${}${}".format(
        iterations,
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(dk).decode("ascii"),
    )


def check_password(password, stored):
    try:
        scheme, iterations, salt, expected = stored.split("$")
        if scheme != "pbkdf2_sha256":
            return False
        candidate = hash_password(password, base64.b64decode(salt, validate=True), int(iterations))
        return hmac.compare_digest(candidate.split("$")[-1], expected)
    except (AttributeError, TypeError, ValueError, OverflowError):
        return False


def validate_signup(name, email, password, confirm_password):
    if not name or not email or not password or not confirm_password:
        raise SignupError("Please fill all fields")
    if password != confirm_password:
        raise SignupError("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise SignupError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def create_user(name, email, password, db=None):
    """Create an account; returns None when the email is already registered."""
    own = db is None
    db = db or Session()
    try:
        user = User(name=name.strip(), email=email.strip().lower(),
                    password=hash_password(password))
        db.add(user)
        db.commit()
        db.refresh(user)
        LOGGER.info("Created user %s", user.id)
        return user
    except IntegrityError:
        db.rollback()
        LOGGER.info("Sign-up rejected, email already registered")
        return None
    finally:
        if own:
            db.close()


def authenticate(email, password, db=None):
    own = db is None
    db = db or Session()
    try:
        user = db.query(User).filter_by(email=(email or "").strip().lower()).first()
        if user is None or not check_password(password, user.password):
            LOGGER.info("Failed login attempt")
            return None
        return user
    finally:
        if own:
            db.close()


def get_user(db, user_id):
    return db.get(User, user_id)


# --- Calculations -----------------------------------------------------------

def create_calculation(db, user_id, period, subject, activity, results):
    if not user_id:
        raise InvalidCalculation("User ID is required")
    if not period.is_valid():
        raise InvalidCalculation("Date range is required")
    if not activity.has_inputs():
        raise InvalidCalculation("Please enter at least one calculation input")
    entry = Calculation(
        user_id=user_id,
        date_from=period.start,
        date_to=period.end,
        days=period.days,
        user_type=subject.kind.value,
        household_size=subject.divisor,
        inputs=activity.to_dict(),
        results=results.to_dict(),
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        LOGGER.exception("Saving calculation for user %s failed", user_id)
        raise
    db.refresh(entry)
    LOGGER.info("Saved calculation %s for user %s", entry.id, user_id)
    return entry.to_record()


def list_calculations(db, user_id):
    rows = (db.query(Calculation)
              .filter(Calculation.user_id == user_id)
              .order_by(Calculation.created_at.desc())
              .all())
    LOGGER.debug("Fetched %d calculations for user %s", len(rows), user_id)
    return [row.to_record() for row in rows]


def delete_calculation(db, calc_id, user_id):
    """Delete one of ``user_id``'s calculations; False when there is none."""
    entry = (db.query(Calculation)
               .filter(Calculation.id == calc_id, Calculation.user_id == user_id)
               .first())
    if entry is None:
        return False
    try:
        db.delete(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        LOGGER.exception("Deleting calculation %s failed", calc_id)
        raise
    LOGGER.info("Deleted calculation %s for user %s", calc_id, user_id)
    return True
