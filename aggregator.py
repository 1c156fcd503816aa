# aggregator.py
"""Dashboard statistics derived from a user's saved calculations."""
import math
from dataclasses import dataclass, field
from datetime import datetime

import pandas as pd

from emissions import DAYS_PER_MONTH

SHARE_CATEGORIES = ("transport", "energy", "food", "waste", "water")
KG_PER_TREE = 21
GOOD_PER_PERSON_LIMIT = 1000


@dataclass
class CalculationRecord:
    id: str
    user_id: str
    period: object
    subject: object
    activity: object
    results: object
    created_at: datetime = None

    @property
    def days(self):
        return self.results.days or self.period.days


@dataclass
class Summary:
    record_count: int = 0
    latest_emission: float = 0.0
    per_person_emission: float = 0.0
    monthly_average: float = 0.0
    category_shares: dict = field(default_factory=lambda: {c: 0.0 for c in SHARE_CATEGORIES})
    trend_delta: float = None
    trees_equivalent: int = 0
    rating: str = None


def sort_newest_first(records):
    """Newest reporting period first, most recently saved breaking ties."""
    return sorted(
        records,
        key=lambda r: (r.period.start, r.created_at or datetime.min),
        reverse=True,
    )


def monthly_equivalent(record):
    days = record.days
    if days <= 0:
        return 0.0
    return record.results.total / (days / DAYS_PER_MONTH)


def trend_delta(records):
    """Percent change of the newest total against the previous one, or None."""
    if len(records) < 2:
        return None
    previous = records[1].results.total
    if previous == 0:
        return None
    return (records[0].results.total - previous) / previous * 100


def category_shares(records):
    totals = {c: sum(r.results.category(c) for r in records) for c in SHARE_CATEGORIES}
    overall = sum(totals.values())
    if overall <= 0:
        return {c: 0.0 for c in SHARE_CATEGORIES}
    return {c: value / overall * 100 for c, value in totals.items()}


def aggregate(records):
    """Summarise ``records`` (newest first). Never raises on an empty list."""
    records = list(records)
    if not records:
        return Summary()
    latest = records[0].results
    per_person = latest.per_person
    return Summary(
        record_count=len(records),
        latest_emission=latest.total,
        per_person_emission=per_person,
        monthly_average=sum(monthly_equivalent(r) for r in records) / len(records),
        category_shares=category_shares(records),
        trend_delta=trend_delta(records),
        trees_equivalent=math.ceil(latest.total / KG_PER_TREE),
        rating="Good" if per_person < GOOD_PER_PERSON_LIMIT else "Needs improvement",
    )


def trend_label(summary):
    if summary.record_count == 0:
        return "No data"
    if summary.record_count == 1:
        return "First calculation"
    if summary.trend_delta is None:
        return "No data"
    return f"{summary.trend_delta:+.1f}% from last period"


def history(records, limit=6):
    points = []
    for record in list(records)[:limit]:
        points.append({
            "id": record.id,
            "label": record.period.start.strftime("%b"),
            "total": record.results.total,
            "target": record.results.total * 0.9,
        })
    return points


def recommended_actions(summary):
    if summary.record_count == 0:
        return []
    shares = summary.category_shares
    latest = summary.latest_emission
    actions = []
    if shares["transport"] > 30:
        actions.append(("Reduce Car Usage", f"Could save {latest * 0.15:.1f} kg CO2"))
    if shares["energy"] > 25:
        actions.append(("Energy Efficient Appliances", f"Reduce home emissions by {latest * 0.1:.1f} kg"))
    if shares["food"] > 20:
        actions.append(("Plant-Based Meals", f"3 meals/week saves {latest * 0.05:.1f} kg"))
    return actions


def records_frame(records):
    rows = []
    for r in records:
        row = {
            "Id": r.id,
            "From": r.period.start,
            "To": r.period.end,
            "Days": r.days,
            "Subject": r.subject.kind.value,
            "Household Size": r.subject.divisor,
        }
        for key in SHARE_CATEGORIES:
            row[key.capitalize()] = r.results.category(key)
        row["Total"] = r.results.total
        row["Per Person"] = r.results.per_person
        row["Saved"] = r.created_at
        rows.append(row)
    columns = ["Id", "From", "To", "Days", "Subject", "Household Size",
               *[c.capitalize() for c in SHARE_CATEGORIES], "Total", "Per Person", "Saved"]
    return pd.DataFrame(rows, columns=columns)
