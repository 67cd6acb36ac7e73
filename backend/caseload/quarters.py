from __future__ import annotations
from datetime import date, datetime
from typing import List, Optional


QUARTERS: tuple[str, ...] = ("Q1", "Q2", "Q3", "Q4")

# Academic calendar: Q1 Sep-Nov, Q2 Dec-Feb, Q3 Mar-May, Q4 Jun-Aug
_QUARTER_BY_MONTH = {
	9: "Q1", 10: "Q1", 11: "Q1",
	12: "Q2", 1: "Q2", 2: "Q2",
	3: "Q3", 4: "Q3", 5: "Q3",
	6: "Q4", 7: "Q4", 8: "Q4",
}

_MONTH_SPANS = {
	"Q1": ("September", "November"),
	"Q2": ("December", "February"),
	"Q3": ("March", "May"),
	"Q4": ("June", "August"),
}


def is_quarter(value: object) -> bool:
	return isinstance(value, str) and value in QUARTERS


def quarter_for_date(d: date) -> str:
	return _QUARTER_BY_MONTH[d.month]


def current_quarter(now: Optional[datetime] = None) -> str:
	return quarter_for_date((now or datetime.now()).date())


def prior_quarters(quarter: str) -> List[str]:
	"""Quarters strictly before ``quarter`` within one school year, in order."""
	if quarter not in QUARTERS:
		return []
	return list(QUARTERS[: QUARTERS.index(quarter)])


def school_year_start(d: date) -> int:
	return d.year if d.month >= 9 else d.year - 1


def school_year_label(d: date) -> str:
	start = school_year_start(d)
	return f"{start}-{start + 1}"


def format_reporting_period(quarter: str, today: Optional[date] = None) -> str:
	today = today or date.today()
	first, last = _MONTH_SPANS.get(quarter, ("", ""))
	if not first:
		return f"{quarter}, {school_year_label(today)}"
	return f"{quarter} ({first} - {last}), {school_year_label(today)}"
