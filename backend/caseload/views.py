"""Derived caseload views served through the read-through cache.

Each ``get_*`` checks the owner's cache first and rebuilds from the store on a
miss. Writers keep these fresh by invalidating the families listed in
``cache.INVALIDATES``.
"""
from __future__ import annotations
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from . import cache as cache_keys
from .cache import cached
from .completion import load_completion_map
from .models import Evaluation, IEPMeeting
from .progress import get_quarter_entries
from .quarters import quarter_for_date, school_year_start
from .records import (
	check_in_to_dict,
	evaluation_to_dict,
	latest_check_ins,
	list_students,
	meeting_to_dict,
	student_record,
	student_to_dict,
)
from .report import calculate_gpa
from .schemas import objective_key, parse_goals


def _in_quarter(d: Optional[date], quarter: str, today: date) -> bool:
	return d is not None and quarter_for_date(d) == quarter and school_year_start(d) == school_year_start(today)


def build_student_list(db: Session, owner: str) -> List[Dict[str, Any]]:
	return [student_to_dict(r) for r in list_students(db, owner)]


def build_dashboard(db: Session, owner: str) -> List[Dict[str, Any]]:
	latest = latest_check_ins(db, owner)
	rows = []
	for s in list_students(db, owner):
		check_in = latest.get(s.id)
		record = student_record(s, check_in)
		check_in_data = check_in_to_dict(check_in) if check_in else None
		rows.append({
			"id": s.id,
			"first_name": s.first_name,
			"last_name": s.last_name,
			"grade": s.grade,
			"goal_count": len(record.goals),
			"iep_due_date": s.iep_due_date.isoformat() if s.iep_due_date else None,
			"latest_check_in_id": check_in.id if check_in else None,
			"latest_check_in_week": check_in_data["week_of"] if check_in_data else None,
			"ratings": check_in_data["ratings"] if check_in_data else {},
			"academic_data": check_in_data["academic_data"] if check_in_data else [],
			"total_missing": check_in_data["total_missing"] if check_in_data else 0,
			"gpa": calculate_gpa(record.academic_data),
		})
	return rows


def build_eval_summary(db: Session, owner: str, today: Optional[date] = None) -> List[Dict[str, Any]]:
	today = today or date.today()
	evaluations: Dict[str, List[Dict[str, Any]]] = {}
	for row in db.query(Evaluation).filter(Evaluation.owner == owner).order_by(Evaluation.due_date).all():
		evaluations.setdefault(row.student_id, []).append(evaluation_to_dict(row))
	next_meeting: Dict[str, Dict[str, Any]] = {}
	meetings = (
		db.query(IEPMeeting)
		.filter(IEPMeeting.owner == owner, IEPMeeting.status == "scheduled", IEPMeeting.meeting_date >= today)
		.order_by(IEPMeeting.meeting_date)
		.all()
	)
	for m in meetings:
		next_meeting.setdefault(m.student_id, meeting_to_dict(m))
	summary = []
	for s in list_students(db, owner):
		evals = evaluations.get(s.id, [])
		summary.append({
			"student_id": s.id,
			"student_name": f"{s.first_name} {s.last_name}",
			"evaluations": evals,
			"open_items": sum(e["total_items"] - e["completed_items"] for e in evals),
			"next_meeting": next_meeting.get(s.id),
		})
	return summary


def build_due_process(db: Session, owner: str, quarter: str, today: Optional[date] = None) -> Dict[str, Any]:
	today = today or date.today()
	reported = {
		(e.student_id, e.goal_id, objective_key(e.objective_id))
		for e in get_quarter_entries(db, owner, quarter)
		if (e.progress_rating or "").strip()
	}
	meetings: Dict[str, List[Dict[str, Any]]] = {}
	for m in db.query(IEPMeeting).filter(IEPMeeting.owner == owner).order_by(IEPMeeting.meeting_date).all():
		if _in_quarter(m.meeting_date, quarter, today):
			meetings.setdefault(m.student_id, []).append(meeting_to_dict(m))
	evals: Dict[str, List[Dict[str, Any]]] = {}
	for ev in db.query(Evaluation).filter(Evaluation.owner == owner).order_by(Evaluation.due_date).all():
		if _in_quarter(ev.due_date, quarter, today):
			evals.setdefault(ev.student_id, []).append(evaluation_to_dict(ev))

	students = []
	totals = {"meetings": 0, "evaluations_due": 0, "progress_units": 0, "progress_reported": 0}
	for s in list_students(db, owner):
		units = [(g.id, k) for g in parse_goals(s.goals_json) for k in g.unit_keys()]
		done = sum(1 for goal_id, k in units if (s.id, goal_id, k) in reported)
		item = {
			"student_id": s.id,
			"student_name": f"{s.first_name} {s.last_name}",
			"iep_due_date": s.iep_due_date.isoformat() if s.iep_due_date else None,
			"iep_due_this_quarter": _in_quarter(s.iep_due_date, quarter, today),
			"reeval_due_date": s.reeval_due_date.isoformat() if s.reeval_due_date else None,
			"reeval_due_this_quarter": _in_quarter(s.reeval_due_date, quarter, today),
			"meetings": meetings.get(s.id, []),
			"evaluations_due": evals.get(s.id, []),
			"progress_units": len(units),
			"progress_reported": done,
		}
		totals["meetings"] += len(item["meetings"])
		totals["evaluations_due"] += len(item["evaluations_due"])
		totals["progress_units"] += len(units)
		totals["progress_reported"] += done
		students.append(item)
	return {"quarter": quarter, "students": students, "totals": totals}


def get_students(db: Session, owner: str) -> List[Dict[str, Any]]:
	return cached(owner, cache_keys.STUDENTS, lambda: build_student_list(db, owner))


def get_dashboard(db: Session, owner: str) -> List[Dict[str, Any]]:
	return cached(owner, cache_keys.DASHBOARD, lambda: build_dashboard(db, owner))


def get_eval_summary(db: Session, owner: str) -> List[Dict[str, Any]]:
	return cached(owner, cache_keys.EVAL_SUMMARY, lambda: build_eval_summary(db, owner))


def get_due_process(db: Session, owner: str, quarter: str) -> Dict[str, Any]:
	return cached(owner, cache_keys.key(cache_keys.DUE_PROCESS, quarter), lambda: build_due_process(db, owner, quarter))


def get_progress_status(db: Session, owner: str, identity: str, quarter: str) -> Dict[str, Any]:
	return cached(
		owner,
		cache_keys.key(cache_keys.PROGRESS, quarter, identity),
		lambda: load_completion_map(db, owner, identity, quarter),
	)
