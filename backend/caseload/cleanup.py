from __future__ import annotations
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from .app_logger import get_logger
from .models import Student, CheckIn, Evaluation, ProgressEntry, IEPMeeting

logger = get_logger("cleanup")


def purge_orphaned_rows(db: Session) -> int:
	# Rows whose student is gone (for example, deleted before cascades existed)
	removed = 0
	student_ids = select(Student.id)
	for model in (CheckIn, Evaluation, ProgressEntry, IEPMeeting):
		res = db.execute(delete(model).where(model.student_id.not_in(student_ids)))
		removed += res.rowcount or 0
	db.commit()
	if removed:
		logger.info("Purged %d orphaned rows", removed)
	return removed


def delete_student_rows(db: Session, owner: str, student_id: str) -> int:
	"""Cascade for a student delete; the caller commits."""
	removed = 0
	for model in (CheckIn, Evaluation, ProgressEntry, IEPMeeting):
		res = db.execute(delete(model).where(model.owner == owner, model.student_id == student_id))
		removed += res.rowcount or 0
	return removed
