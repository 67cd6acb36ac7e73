from __future__ import annotations
import json
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..cache import invalidate_for
from ..db import get_db
from ..models import CheckIn
from ..records import check_in_to_dict, get_student
from ..results import fail, ok
from ..schemas import AcademicClass, encode_list
from .auth import Scope, check_scope, get_scope

router = APIRouter(prefix="/check-ins", tags=["check-ins"])

# Weekly executive-function skills, each rated 1-5
EF_SKILLS = ("planning", "organization", "time_management", "task_initiation", "self_monitoring")


class CheckInIn(BaseModel):
	id: Optional[str] = None
	student_id: str
	week_of: date
	ratings: Dict[str, int] = Field(default_factory=dict)
	academic_data: List[AcademicClass] = Field(default_factory=list)
	notes: Optional[str] = None


class AcademicDataIn(BaseModel):
	academic_data: List[AcademicClass]


def _clean_ratings(ratings: Dict[str, int]) -> Optional[str]:
	for skill, value in ratings.items():
		if skill not in EF_SKILLS:
			return f"Unknown skill: {skill}"
		if value < 1 or value > 5:
			return f"Rating for {skill} must be between 1 and 5"
	return None


def _get(db: Session, owner: str, check_in_id: str) -> Optional[CheckIn]:
	return db.query(CheckIn).filter(CheckIn.owner == owner, CheckIn.id == check_in_id).first()


@router.get("")
def list_for_student(student_id: str, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	rows = (
		db.query(CheckIn)
		.filter(CheckIn.owner == scope.owner, CheckIn.student_id == student_id)
		.order_by(CheckIn.week_of.desc(), CheckIn.created_at.desc())
		.all()
	)
	return ok(check_ins=[check_in_to_dict(r) for r in rows])


@router.post("")
def save(req: CheckInIn, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	error = _clean_ratings(req.ratings)
	if error:
		return fail(error)
	if get_student(db, scope.owner, req.student_id) is None:
		return fail("Student not found")
	if req.id:
		row = _get(db, scope.owner, req.id)
		if row is None:
			return fail("Check-in not found")
		created = False
	else:
		row = CheckIn(id=uuid.uuid4().hex, owner=scope.owner, created_by=scope.actor)
		db.add(row)
		created = True
	row.student_id = req.student_id
	row.week_of = req.week_of
	row.ratings_json = json.dumps(req.ratings)
	row.academic_data_json = encode_list(req.academic_data)
	row.notes = (req.notes or "").strip()
	db.commit()
	invalidate_for(scope.owner, "check_in")
	return ok(id=row.id, created=created)


@router.put("/{check_in_id}/academic-data")
def update_academic_data(check_in_id: str, req: AcademicDataIn, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	"""Replace the academic snapshot, e.g. after marking a missing assignment done."""
	denied = check_scope(db, scope)
	if denied:
		return denied
	row = _get(db, scope.owner, check_in_id)
	if row is None:
		return fail("Check-in not found")
	classes: List[AcademicClass] = []
	for c in req.academic_data:
		# Keep the missing count consistent with the listed assignments
		if c.missing_assignments:
			c = c.model_copy(update={"missing": len(c.missing_assignments)})
		classes.append(c)
	row.academic_data_json = encode_list(classes)
	db.commit()
	invalidate_for(scope.owner, "check_in")
	data: Dict[str, Any] = check_in_to_dict(row)
	return ok(id=row.id, academic_data=data["academic_data"], total_missing=data["total_missing"])


@router.delete("/{check_in_id}")
def delete(check_in_id: str, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	row = _get(db, scope.owner, check_in_id)
	if row is None:
		return fail("Check-in not found")
	db.delete(row)
	db.commit()
	invalidate_for(scope.owner, "check_in")
	return ok(id=check_in_id)
