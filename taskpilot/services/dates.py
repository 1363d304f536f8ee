"""
Clés de jour indépendantes de la locale.

Stockage: "YYYY-MM-DD" calculé dans un fuseau explicite.
Affichage: "M/D/YYYY".
"""

from datetime import date, datetime, timezone
from typing import Union
from zoneinfo import ZoneInfo

from dateutil.parser import parse as parse_date

DayLike = Union[date, datetime, str]


def day_key(moment: datetime, tz_name: str = "UTC") -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name)).date().isoformat()


def to_date(value: DayLike) -> date:
    """Accepte date, datetime, ISO ou M/D/YYYY. ValueError sinon."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        raise ValueError("empty date")
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    # mois en premier, comme toLocaleDateString en-US
    return parse_date(text, dayfirst=False).date()


def to_key(value: DayLike) -> str:
    return to_date(value).isoformat()


def format_day(value: DayLike) -> str:
    d = to_date(value)
    return f"{d.month}/{d.day}/{d.year}"
