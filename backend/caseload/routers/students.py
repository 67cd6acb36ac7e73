from __future__ import annotations
import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..access import authorize_owner
from ..cache import invalidate_for
from ..cleanup import delete_student_rows
from ..db import get_db
from ..models import Student
from ..records import get_student, student_to_dict
from ..results import fail, ok
from ..schemas import Goal, Objective, encode_list, goals_have_unique_ids
from ..views import get_students
from .auth import Scope, check_scope, get_scope

router = APIRouter(prefix="/students", tags=["students"])


class ObjectiveIn(BaseModel):
	id: Optional[str] = None
	text: str = ""


class GoalIn(BaseModel):
	id: Optional[str] = None
	text: str = ""
	goal_area: Optional[str] = None
	responsible_email: Optional[str] = None
	objectives: List[ObjectiveIn] = Field(default_factory=list)


class StudentIn(BaseModel):
	id: Optional[str] = None
	first_name: str
	last_name: str
	grade: Optional[str] = None
	school: Optional[str] = None
	disability_category: Optional[str] = None
	iep_due_date: Optional[date] = None
	reeval_due_date: Optional[date] = None
	goals: Optional[List[GoalIn]] = None


class GoalsIn(BaseModel):
	goals: List[GoalIn]


def _new_id(prefix: str) -> str:
	return f"{prefix}-{uuid.uuid4().hex[:8]}"


def _to_goals(items: List[GoalIn]) -> List[Goal]:
	goals = []
	for g in items:
		goals.append(Goal(
			id=(g.id or "").strip() or _new_id("g"),
			text=g.text.strip(),
			goal_area=(g.goal_area or "").strip() or None,
			responsible_email=(g.responsible_email or "").strip().lower() or None,
			objectives=[Objective(id=(o.id or "").strip() or _new_id("o"), text=o.text.strip()) for o in g.objectives],
		))
	return goals


@router.get("")
def list_all(scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	return ok(students=get_students(db, scope.owner))


@router.get("/{student_id}")
def get_one(student_id: str, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	row = get_student(db, scope.owner, student_id)
	if row is None:
		return fail("Student not found")
	return ok(student=student_to_dict(row))


@router.post("")
def save(req: StudentIn, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	first = req.first_name.strip()
	last = req.last_name.strip()
	if not first or not last:
		return fail("First and last name are required")
	goals = _to_goals(req.goals) if req.goals is not None else None
	if goals is not None:
		dup = goals_have_unique_ids(goals)
		if dup:
			return fail(dup)
	if req.id:
		row = get_student(db, scope.owner, req.id)
		if row is None:
			return fail("Student not found")
		created = False
	else:
		row = Student(id=uuid.uuid4().hex, owner=scope.owner, goals_json="[]")
		db.add(row)
		created = True
	row.first_name = first
	row.last_name = last
	row.grade = req.grade
	row.school = req.school
	row.disability_category = req.disability_category
	row.iep_due_date = req.iep_due_date
	row.reeval_due_date = req.reeval_due_date
	if goals is not None:
		row.goals_json = encode_list(goals)
	db.commit()
	invalidate_for(scope.owner, "student")
	# Goal edits change what progress and due-process views count
	if goals is not None:
		invalidate_for(scope.owner, "progress")
	return ok(id=row.id, created=created)


@router.put("/{student_id}/goals")
def replace_goals(student_id: str, req: GoalsIn, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	row = get_student(db, scope.owner, student_id)
	if row is None:
		return fail("Student not found")
	goals = _to_goals(req.goals)
	dup = goals_have_unique_ids(goals)
	if dup:
		return fail(dup)
	row.goals_json = encode_list(goals)
	db.commit()
	invalidate_for(scope.owner, "student")
	invalidate_for(scope.owner, "progress")
	return ok(id=row.id, goals=[g.model_dump(mode="json") for g in goals])


@router.delete("/{student_id}")
def delete(student_id: str, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = authorize_owner(scope.owner, scope.actor)
	if denied:
		return denied
	row = get_student(db, scope.owner, student_id)
	if row is None:
		return fail("Student not found")
	removed = delete_student_rows(db, scope.owner, student_id)
	db.delete(row)
	db.commit()
	for operation in ("student", "check_in", "evaluation", "meeting", "progress"):
		invalidate_for(scope.owner, operation)
	return ok(id=student_id, related_removed=removed)
