# emissions.py
"""Emission model: turns self-reported activity into kg CO2e for a period."""
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

# kg CO2e per input unit
DEFAULT_FACTORS = {
    "energy.electricity": 0.85,
    "energy.natural_gas": 2.0,
    "energy.gasoline": 2.3,
    "energy.diesel": 2.7,
    "transportation.car": 0.12,
    "transportation.flight": 0.25,
    "transportation.bus": 0.08,
    "transportation.train": 0.05,
    "waste.landfill": 0.5,
    "water.consumption": 0.3,
    "food.meat": 15.0,
    "food.dairy": 5.0,
}

DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class ActivityField:
    key: str
    label: str
    unit: str
    factor_key: str = None  # None: collected but not weighted


@dataclass(frozen=True)
class ActivityCategory:
    name: str
    label: str
    result_key: str
    fields: tuple


CATEGORIES = (
    ActivityCategory("energy", "Energy", "energy", (
        ActivityField("electricity", "Electricity", "kWh", "energy.electricity"),
        ActivityField("natural_gas", "Natural Gas", "m³", "energy.natural_gas"),
        ActivityField("gasoline", "Gasoline", "L", "energy.gasoline"),
        ActivityField("diesel", "Diesel", "L", "energy.diesel"),
    )),
    ActivityCategory("transportation", "Transportation", "transport", (
        ActivityField("car_distance", "Car Distance", "km", "transportation.car"),
        ActivityField("flight_distance", "Flight Distance", "km", "transportation.flight"),
        ActivityField("bus_distance", "Bus Distance", "km", "transportation.bus"),
        ActivityField("train_distance", "Train Distance", "km", "transportation.train"),
    )),
    ActivityCategory("waste", "Waste", "waste", (
        ActivityField("landfill", "Landfill Waste", "kg", "waste.landfill"),
        ActivityField("recycling", "Recycling", "kg"),
    )),
    ActivityCategory("water", "Water", "water", (
        ActivityField("consumption", "Water Consumption", "m³", "water.consumption"),
    )),
    ActivityCategory("food", "Food", "food", (
        ActivityField("meat", "Meat Consumption", "kg", "food.meat"),
        ActivityField("dairy", "Dairy Consumption", "kg", "food.dairy"),
    )),
)
CATEGORY_BY_NAME = {c.name: c for c in CATEGORIES}
RESULT_KEYS = tuple(c.result_key for c in CATEGORIES)


class UnknownActivityField(ValueError):
    """An activity category or key outside the known enumeration."""


def coerce_quantity(value):
    """Numbers pass through, anything unparsable or negative becomes 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if number != number or number in (float("inf"), float("-inf")) or number < 0:
        return 0.0
    return number


def _as_mapping(value):
    return value if isinstance(value, Mapping) else {}


@dataclass
class ActivityInput:
    quantities: dict = field(default_factory=dict)

    def __post_init__(self):
        filled = {}
        for category in CATEGORIES:
            given = _as_mapping(_as_mapping(self.quantities).get(category.name))
            filled[category.name] = {
                f.key: coerce_quantity(given.get(f.key, 0)) for f in category.fields
            }
        self.quantities = filled

    @classmethod
    def from_mapping(cls, data):
        """Validate category/key names, then default and coerce quantities."""
        data = _as_mapping(data)
        for name, values in data.items():
            category = CATEGORY_BY_NAME.get(name)
            if category is None:
                raise UnknownActivityField(f"Unknown activity category: {name!r}")
            known = {f.key for f in category.fields}
            for key in _as_mapping(values):
                if key not in known:
                    raise UnknownActivityField(f"Unknown activity field: {name}.{key}")
        return cls({name: dict(_as_mapping(values)) for name, values in data.items()})

    def get(self, category, key):
        return self.quantities[category][key]

    def has_inputs(self):
        return any(v > 0 for values in self.quantities.values() for v in values.values())

    def to_dict(self):
        return {name: dict(values) for name, values in self.quantities.items()}


def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class Period:
    start: date
    end: date

    def __post_init__(self):
        object.__setattr__(self, "start", _as_date(self.start))
        object.__setattr__(self, "end", _as_date(self.end))

    @property
    def days(self):
        if self.end < self.start:
            return 0
        return (self.end - self.start).days + 1

    @property
    def factor(self):
        return self.days / DAYS_PER_MONTH

    def is_valid(self):
        return self.days >= 1


class SubjectKind(str, Enum):
    INDIVIDUAL = "individual"
    FAMILY = "family"


@dataclass(frozen=True)
class Subject:
    kind: SubjectKind = SubjectKind.INDIVIDUAL
    household_size: int = 1

    def __post_init__(self):
        object.__setattr__(self, "kind", SubjectKind(self.kind))

    @classmethod
    def individual(cls):
        return cls(SubjectKind.INDIVIDUAL, 1)

    @classmethod
    def family(cls, household_size):
        return cls(SubjectKind.FAMILY, household_size)

    @property
    def divisor(self):
        if self.kind is SubjectKind.FAMILY:
            try:
                return max(int(self.household_size), 1)
            except (TypeError, ValueError, OverflowError):
                return 1
        return 1


@dataclass(frozen=True)
class EmissionResult:
    energy: float = 0.0
    transport: float = 0.0
    waste: float = 0.0
    water: float = 0.0
    food: float = 0.0
    total: float = 0.0
    per_person: float = 0.0
    days: int = 0

    def category(self, result_key):
        return getattr(self, result_key)

    def to_dict(self):
        return {
            "energy": self.energy,
            "transport": self.transport,
            "waste": self.waste,
            "water": self.water,
            "food": self.food,
            "total": self.total,
            "per_person": self.per_person,
        }

    @classmethod
    def from_dict(cls, data, days=0):
        data = data or {}
        values = {k: coerce_quantity(data.get(k, 0)) for k in RESULT_KEYS + ("total", "per_person")}
        return cls(days=days, **values)


def category_subtotals(activity, factors=DEFAULT_FACTORS):
    """Unscaled kg CO2e per result category."""
    subtotals = {}
    for category in CATEGORIES:
        subtotal = 0.0
        for f in category.fields:
            if f.factor_key is None:
                continue
            subtotal += activity.get(category.name, f.key) * factors.get(f.factor_key, 0.0)
        subtotals[category.result_key] = subtotal
    return subtotals


def compute(activity, period, subject, factors=DEFAULT_FACTORS):
    """Emissions for ``activity`` over ``period``, normalised to 30-day months.

    Category values and the total are scaled by ``period.days / 30``; the
    per-person figure divides the total by the household size for families.
    An inverted period yields an all-zero result.
    """
    days = period.days
    if days == 0:
        return EmissionResult()
    period_factor = period.factor
    subtotals = category_subtotals(activity, factors)
    total = sum(subtotals.values()) * period_factor
    return EmissionResult(
        total=total,
        per_person=total / subject.divisor,
        days=days,
        **{key: value * period_factor for key, value in subtotals.items()},
    )


def reduction_suggestions(result):
    suggestions = []
    if result.energy > 1000:
        suggestions.append("Use renewable energy sources or install solar panels.")
    if result.transport > 500:
        suggestions.append("Prefer public transport, carpool, or cycle.")
    if result.food > 300:
        suggestions.append("Reduce meat and dairy consumption.")
    if result.waste > 200:
        suggestions.append("Recycle and compost more.")
    if not suggestions:
        suggestions.append("Great job! Your carbon footprint is low.")
    return suggestions
