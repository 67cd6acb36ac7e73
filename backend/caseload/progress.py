from __future__ import annotations
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .app_logger import get_logger
from .cache import invalidate_for
from .locks import LOCK_FAILURE_MESSAGE, LockTimeout, identity_locks
from .models import ProgressEntry, Student
from .quarters import QUARTERS, is_quarter
from .results import fail, ok
from .schemas import PROGRESS_RATINGS, NO_OBJECTIVE, ObjectiveKey, objective_key, objective_label, stored_objective_id

logger = get_logger("progress")

MIN_NOTES_LENGTH = 10


def entry_to_dict(row: ProgressEntry) -> Dict[str, Any]:
	return {
		"id": row.id,
		"student_id": row.student_id,
		"goal_id": row.goal_id,
		"objective_id": objective_label(objective_key(row.objective_id)),
		"quarter": row.quarter,
		"progress_rating": row.progress_rating,
		"anecdotal_notes": row.anecdotal_notes,
		"date_entered": row.date_entered.isoformat() if row.date_entered else None,
		"entered_by": row.entered_by,
		"created_at": row.created_at.isoformat() if row.created_at else None,
		"last_modified": row.last_modified.isoformat() if row.last_modified else None,
	}


def _validate(
	student_id: Optional[str],
	goal_id: Optional[str],
	objective_id: Optional[ObjectiveKey],
	quarter: Any,
	progress_rating: Any,
	anecdotal_notes: Any,
) -> Optional[str]:
	has_objective = objective_id is NO_OBJECTIVE or (isinstance(objective_id, str) and objective_id.strip() != "")
	if not student_id or not goal_id or not has_objective:
		return "Student ID, goal ID, and objective ID are required"
	if not is_quarter(quarter):
		return f"Invalid quarter: {quarter}. Must be one of {', '.join(QUARTERS)}"
	if progress_rating not in PROGRESS_RATINGS:
		return f"Invalid progress rating: {progress_rating}. Must be one of {', '.join(PROGRESS_RATINGS)}"
	notes = anecdotal_notes.strip() if isinstance(anecdotal_notes, str) else ""
	if len(notes) < MIN_NOTES_LENGTH:
		return f"Anecdotal notes are required and must be at least {MIN_NOTES_LENGTH} characters"
	return None


def _find(db: Session, owner: str, student_id: str, goal_id: str, stored_objective: str, quarter: str) -> Optional[ProgressEntry]:
	return (
		db.query(ProgressEntry)
		.filter(
			ProgressEntry.owner == owner,
			ProgressEntry.student_id == student_id,
			ProgressEntry.goal_id == goal_id,
			ProgressEntry.objective_id == stored_objective,
			ProgressEntry.quarter == quarter,
		)
		.first()
	)


def save_progress_entry(
	db: Session,
	owner: str,
	actor: str,
	student_id: Optional[str],
	goal_id: Optional[str],
	objective_id: Optional[ObjectiveKey],
	quarter: Any,
	progress_rating: Any,
	anecdotal_notes: Any,
	*,
	now: Optional[datetime] = None,
) -> Dict[str, Any]:
	"""Create or overwrite the entry for (student, goal, objective, quarter).

	Saving the same tuple again is the update path: rating, notes and the
	entered/modified stamps are replaced and ``created_at`` is kept.
	"""
	error = _validate(student_id, goal_id, objective_id, quarter, progress_rating, anecdotal_notes)
	if error:
		return fail(error)
	notes = anecdotal_notes.strip()
	student = db.query(Student).filter(Student.owner == owner, Student.id == student_id).first()
	if student is None:
		return fail("Student not found")

	stored_objective = stored_objective_id(objective_id)
	stamp = now or datetime.utcnow()
	try:
		with identity_locks.hold(actor):
			# Another identity may insert the same tuple between scan and commit;
			# the second pass takes the update path.
			for attempt in range(2):
				row = _find(db, owner, student_id, goal_id, stored_objective, quarter)
				updated = row is not None
				if row is None:
					row = ProgressEntry(
						id=uuid.uuid4().hex,
						owner=owner,
						student_id=student_id,
						goal_id=goal_id,
						objective_id=stored_objective,
						quarter=quarter,
						created_at=stamp,
					)
					db.add(row)
				row.progress_rating = progress_rating
				row.anecdotal_notes = notes
				row.date_entered = stamp.date()
				row.entered_by = actor
				row.last_modified = stamp
				try:
					db.commit()
				except IntegrityError:
					db.rollback()
					if attempt == 1:
						raise
					continue
				break
	except LockTimeout:
		return fail(LOCK_FAILURE_MESSAGE)

	invalidate_for(owner, "progress")
	return ok(id=row.id, updated=updated)


def get_progress_entries(db: Session, owner: str, student_id: str, quarter: str) -> List[ProgressEntry]:
	return (
		db.query(ProgressEntry)
		.filter(ProgressEntry.owner == owner, ProgressEntry.student_id == student_id, ProgressEntry.quarter == quarter)
		.all()
	)


def get_all_progress_for_student(db: Session, owner: str, student_id: str) -> List[ProgressEntry]:
	return db.query(ProgressEntry).filter(ProgressEntry.owner == owner, ProgressEntry.student_id == student_id).all()


def get_quarter_entries(db: Session, owner: str, quarter: str) -> List[ProgressEntry]:
	return db.query(ProgressEntry).filter(ProgressEntry.owner == owner, ProgressEntry.quarter == quarter).all()


def delete_progress_entry(db: Session, owner: str, entry_id: str) -> Dict[str, Any]:
	row = db.query(ProgressEntry).filter(ProgressEntry.owner == owner, ProgressEntry.id == entry_id).first()
	if row is None:
		return fail("Progress entry not found")
	db.delete(row)
	db.commit()
	invalidate_for(owner, "progress")
	return ok(id=entry_id)
