from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..progress import (
	delete_progress_entry,
	entry_to_dict,
	get_all_progress_for_student,
	get_progress_entries,
	save_progress_entry,
)
from ..quarters import QUARTERS, current_quarter, is_quarter
from ..results import fail, ok
from ..schemas import NO_OBJECTIVE
from ..views import get_progress_status
from .auth import Scope, check_scope, get_scope

router = APIRouter(prefix="/progress", tags=["progress"])


class ProgressEntryIn(BaseModel):
	student_id: Optional[str] = None
	goal_id: Optional[str] = None
	objective_id: Optional[str] = None
	# Set for a goal that has no objectives; objective_id is then ignored
	goal_level: bool = False
	quarter: Optional[str] = None
	progress_rating: Optional[str] = None
	anecdotal_notes: Optional[str] = None


@router.post("")
def save(req: ProgressEntryIn, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	return save_progress_entry(
		db,
		scope.owner,
		scope.actor,
		req.student_id,
		req.goal_id,
		NO_OBJECTIVE if req.goal_level else req.objective_id,
		req.quarter,
		req.progress_rating,
		req.anecdotal_notes,
	)


@router.get("")
def list_for_quarter(student_id: str, quarter: str, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	if not is_quarter(quarter):
		return fail(f"Invalid quarter: {quarter}. Must be one of {', '.join(QUARTERS)}")
	return ok(entries=[entry_to_dict(e) for e in get_progress_entries(db, scope.owner, student_id, quarter)])


@router.get("/student/{student_id}")
def list_for_student(student_id: str, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	return ok(entries=[entry_to_dict(e) for e in get_all_progress_for_student(db, scope.owner, student_id)])


@router.get("/status")
def completion_status(quarter: Optional[str] = None, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	"""Done/not-done for the goals the caller is responsible for."""
	denied = check_scope(db, scope)
	if denied:
		return denied
	quarter = quarter or current_quarter()
	if not is_quarter(quarter):
		return fail(f"Invalid quarter: {quarter}. Must be one of {', '.join(QUARTERS)}")
	return ok(quarter=quarter, students=get_progress_status(db, scope.owner, scope.actor, quarter))


@router.delete("/{entry_id}")
def delete(entry_id: str, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	return delete_progress_entry(db, scope.owner, entry_id)
