"""Progress report assembly.

Joins a student's goals and objectives with progress entries for one quarter
(plus the quarters before it) into a display-ready tree. Nothing here raises
for data-shape problems: missing goals, missing entries and ungradeable
classes are states of the output, not errors.
"""
from __future__ import annotations
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session

from .app_logger import get_logger
from .models import CheckIn, ProgressEntry
from .progress import get_all_progress_for_student
from .quarters import format_reporting_period, is_quarter, prior_quarters
from .records import case_manager_name, get_student, student_record
from .results import fail, ok
from .schemas import (
	NO_OBJECTIVE,
	AcademicClass,
	Goal,
	ObjectiveKey,
	StudentRecord,
	objective_key,
	parse_academic_data,
	parse_goals,
)

logger = get_logger("report")

NOT_YET_REPORTED = "Not yet reported"
NO_PROGRESS = "No Progress"

GRADE_POINTS: Dict[str, float] = {
	"A": 4.0,
	"A-": 3.7,
	"B+": 3.3,
	"B": 3.0,
	"B-": 2.7,
	"C+": 2.3,
	"C": 2.0,
	"C-": 1.7,
	"D+": 1.3,
	"D": 1.0,
	"D-": 0.7,
	"F": 0.0,
}

_EntryKey = Tuple[str, ObjectiveKey, str]


def calculate_gpa(academic_data: Iterable[Union[AcademicClass, Mapping[str, Any], str]]) -> Optional[Dict[str, Any]]:
	"""Average of letter grades on the 4.0 scale.

	Items may be classes, class mappings or bare letter grades. Grades outside
	the letter table (Pass/Fail, blanks) and unusable items are left out of
	the average and counted in ``excluded_count``. Returns None when nothing is
	gradeable, so "no data" is never reported as a 0.00 GPA.
	"""
	points: List[float] = []
	excluded = 0
	for item in academic_data or []:
		if isinstance(item, AcademicClass):
			grade = item.grade
		elif isinstance(item, Mapping):
			grade = item.get("grade")
		elif isinstance(item, str):
			grade = item
		else:
			grade = None
		letter = str(grade).strip().upper() if grade is not None else ""
		if letter in GRADE_POINTS:
			points.append(GRADE_POINTS[letter])
		else:
			excluded += 1
	if not points:
		return None
	value = sum(points) / len(points)
	return {"value": value, "formatted": f"{value:.2f}", "excluded_count": excluded}


def _as_record(student: Union[StudentRecord, Mapping[str, Any]]) -> StudentRecord:
	if isinstance(student, StudentRecord):
		return student
	data = dict(student or {})
	try:
		return StudentRecord(
			id=str(data.get("id") or ""),
			first_name=str(data.get("first_name") or data.get("firstName") or ""),
			last_name=str(data.get("last_name") or data.get("lastName") or ""),
			grade=None if data.get("grade") is None else str(data.get("grade")),
			goals=parse_goals(data.get("goals")),
			academic_data=parse_academic_data(data.get("academic_data") or data.get("academicData")),
		)
	except ValidationError:
		logger.warning("Unusable student record for report; assembling without goals")
		return StudentRecord(id=str(data.get("id") or ""), first_name="", last_name="")


def _field(entry: Any, name: str) -> Any:
	if isinstance(entry, Mapping):
		return entry.get(name)
	return getattr(entry, name, None)


def _index_entries(student_id: str, entries: Iterable[Union[ProgressEntry, Mapping[str, Any]]]) -> Dict[_EntryKey, Dict[str, str]]:
	"""Key entries by (goal, objective, quarter); accepts rows or plain mappings."""
	index: Dict[_EntryKey, Dict[str, str]] = {}
	for e in entries or []:
		if e is None:
			continue
		# Entries of other students never leak in, even with matching goal ids
		owner_id = _field(e, "student_id")
		if student_id and owner_id is not None and owner_id != student_id:
			continue
		goal_id = _field(e, "goal_id")
		quarter = _field(e, "quarter")
		if not goal_id or not quarter:
			continue
		index[(str(goal_id), objective_key(_field(e, "objective_id")), str(quarter))] = {
			"rating": _field(e, "progress_rating") or "",
			"notes": _field(e, "anecdotal_notes") or "",
		}
	return index


def _current(entry: Optional[Dict[str, str]]) -> Dict[str, str]:
	if entry is None:
		return {"rating": NOT_YET_REPORTED, "notes": ""}
	return dict(entry)


def _history(index: Dict[_EntryKey, Dict[str, str]], goal_id: str, key: ObjectiveKey, priors: List[str]) -> List[Dict[str, str]]:
	history = []
	for q in priors:
		entry = index.get((goal_id, key, q))
		if entry is not None:
			history.append({"quarter": q, **entry})
	return history


def _needs_attention(entry: Optional[Dict[str, str]]) -> bool:
	return entry is None or entry["rating"] == NO_PROGRESS


def _assemble_goal(goal: Goal, index: Dict[_EntryKey, Dict[str, str]], quarter: str, priors: List[str]) -> Tuple[Dict[str, Any], Optional[bool]]:
	out: Dict[str, Any] = {
		"id": goal.id,
		"text": goal.text,
		"goal_area": goal.area,
		"responsible_email": goal.responsible_email,
		"objectives": [],
	}
	if not goal.objectives:
		out["current_progress"] = _current(index.get((goal.id, NO_OBJECTIVE, quarter)))
		out["progress_history"] = _history(index, goal.id, NO_OBJECTIVE, priors)
		return out, None

	flagged = False
	for obj in goal.objectives:
		entry = index.get((goal.id, obj.id, quarter))
		flagged = flagged or _needs_attention(entry)
		out["objectives"].append({
			"id": obj.id,
			"text": obj.text,
			"current_progress": _current(entry),
			"progress_history": _history(index, goal.id, obj.id, priors),
		})
	return out, not flagged


def assemble_report_data(
	student: Union[StudentRecord, Mapping[str, Any]],
	quarter: str,
	all_entries: Iterable[Union[ProgressEntry, Mapping[str, Any]]],
	*,
	case_manager: str = "",
	today: Optional[date] = None,
) -> Dict[str, Any]:
	record = _as_record(student)
	index = _index_entries(record.id, all_entries)
	priors = prior_quarters(quarter)

	areas: Dict[str, List[Dict[str, Any]]] = {}
	on_track = needs_attention = 0
	for goal in record.goals:
		goal_out, on_track_flag = _assemble_goal(goal, index, quarter, priors)
		if on_track_flag is True:
			on_track += 1
		elif on_track_flag is False:
			needs_attention += 1
		areas.setdefault(goal.area, []).append(goal_out)

	grades = sorted(
		(
			{"class_name": c.class_name, "grade": c.grade or "", "missing": c.missing}
			for c in record.academic_data
		),
		key=lambda g: g["class_name"],
	)

	return {
		"summary": {
			"student_name": record.full_name,
			"grade": record.grade or "",
			"case_manager": case_manager,
			"reporting_period": format_reporting_period(quarter, today),
			"quarter": quarter,
			"total_goals": len(record.goals),
			"goals_with_adequate_or_met": on_track,
			"goals_with_no_progress": needs_attention,
		},
		"goal_groups": [{"goal_area": area, "goals": goals} for area, goals in areas.items()],
		"grades": grades,
		"gpa": calculate_gpa(record.academic_data),
	}


def load_report_data(db: Session, owner: str, student_id: str, quarter: str, *, today: Optional[date] = None) -> Dict[str, Any]:
	"""Fetch, decode and assemble; reports are built on demand and never cached."""
	if not is_quarter(quarter):
		return fail(f"Invalid quarter: {quarter}")
	row = get_student(db, owner, student_id)
	if row is None:
		return fail("Student not found")
	latest = (
		db.query(CheckIn)
		.filter(CheckIn.owner == owner, CheckIn.student_id == student_id)
		.order_by(CheckIn.week_of.desc(), CheckIn.created_at.desc())
		.first()
	)
	entries = get_all_progress_for_student(db, owner, student_id)
	report = assemble_report_data(
		student_record(row, latest),
		quarter,
		entries,
		case_manager=case_manager_name(db, owner),
		today=today,
	)
	return ok(report=report)
