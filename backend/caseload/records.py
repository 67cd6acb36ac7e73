from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from .models import CheckIn, Evaluation, IEPMeeting, Student, UserAccount
from .schemas import (
	StudentRecord,
	parse_academic_data,
	parse_checklist,
	parse_goals,
	parse_ratings,
)


def _iso(value: Any) -> Optional[str]:
	return value.isoformat() if value is not None else None


def list_students(db: Session, owner: str) -> List[Student]:
	return db.query(Student).filter(Student.owner == owner).order_by(Student.last_name, Student.first_name).all()


def get_student(db: Session, owner: str, student_id: str) -> Optional[Student]:
	return db.query(Student).filter(Student.owner == owner, Student.id == student_id).first()


def latest_check_ins(db: Session, owner: str) -> Dict[str, CheckIn]:
	"""Most recent check-in per student, by week then creation time."""
	latest: Dict[str, CheckIn] = {}
	rows = db.query(CheckIn).filter(CheckIn.owner == owner).order_by(CheckIn.week_of, CheckIn.created_at).all()
	for row in rows:
		latest[row.student_id] = row
	return latest


def student_record(row: Student, latest: Optional[CheckIn] = None) -> StudentRecord:
	return StudentRecord(
		id=row.id,
		first_name=row.first_name,
		last_name=row.last_name,
		grade=row.grade,
		iep_due_date=row.iep_due_date,
		reeval_due_date=row.reeval_due_date,
		goals=parse_goals(row.goals_json),
		academic_data=parse_academic_data(latest.academic_data_json) if latest else [],
	)


def student_records(db: Session, owner: str, rows: Optional[Iterable[Student]] = None) -> List[StudentRecord]:
	latest = latest_check_ins(db, owner)
	return [student_record(r, latest.get(r.id)) for r in (rows if rows is not None else list_students(db, owner))]


def student_to_dict(row: Student) -> Dict[str, Any]:
	goals = parse_goals(row.goals_json)
	return {
		"id": row.id,
		"first_name": row.first_name,
		"last_name": row.last_name,
		"grade": row.grade,
		"school": row.school,
		"disability_category": row.disability_category,
		"iep_due_date": _iso(row.iep_due_date),
		"reeval_due_date": _iso(row.reeval_due_date),
		"goals": [g.model_dump(mode="json") for g in goals],
	}


def check_in_to_dict(row: CheckIn) -> Dict[str, Any]:
	academic = parse_academic_data(row.academic_data_json)
	return {
		"id": row.id,
		"student_id": row.student_id,
		"week_of": _iso(row.week_of),
		"ratings": parse_ratings(row.ratings_json),
		"academic_data": [c.model_dump(mode="json") for c in academic],
		"total_missing": sum(max(c.missing, 0) for c in academic),
		"notes": row.notes or "",
		"created_by": row.created_by,
	}


def evaluation_to_dict(row: Evaluation) -> Dict[str, Any]:
	items = parse_checklist(row.items_json)
	return {
		"id": row.id,
		"student_id": row.student_id,
		"eval_type": row.eval_type,
		"due_date": _iso(row.due_date),
		"items": [i.model_dump(mode="json") for i in items],
		"completed_items": sum(1 for i in items if i.done),
		"total_items": len(items),
		"notes": row.notes or "",
	}


def meeting_to_dict(row: IEPMeeting) -> Dict[str, Any]:
	return {
		"id": row.id,
		"student_id": row.student_id,
		"meeting_type": row.meeting_type,
		"meeting_date": _iso(row.meeting_date),
		"status": row.status,
		"notes": row.notes or "",
		"created_by": row.created_by,
	}


def case_manager_name(db: Session, owner: str) -> str:
	account = db.get(UserAccount, owner)
	if account and account.display_name:
		return account.display_name
	return owner

