from __future__ import annotations
import uuid
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..cache import invalidate_for
from ..db import get_db
from ..models import Evaluation
from ..records import evaluation_to_dict, get_student
from ..results import fail, ok
from ..schemas import EVAL_TYPES, ChecklistItem, encode_list, parse_checklist
from ..views import get_eval_summary
from .auth import Scope, check_scope, get_scope

router = APIRouter(prefix="/evaluations", tags=["evaluations"])

DEFAULT_CHECKLIST = (
	"Parent consent for evaluation received",
	"Prior written notice sent",
	"Teacher input forms collected",
	"Educational assessment completed",
	"Psychological evaluation completed",
	"Related-service evaluations completed",
	"Evaluation report drafted",
	"Eligibility meeting scheduled",
)


class ChecklistItemIn(BaseModel):
	id: Optional[str] = None
	text: str
	done: bool = False


class EvaluationIn(BaseModel):
	id: Optional[str] = None
	student_id: str
	eval_type: str = "reevaluation"
	due_date: Optional[date] = None
	items: Optional[List[ChecklistItemIn]] = None
	notes: Optional[str] = None


class ItemUpdate(BaseModel):
	done: bool


def _get(db: Session, owner: str, evaluation_id: str) -> Optional[Evaluation]:
	return db.query(Evaluation).filter(Evaluation.owner == owner, Evaluation.id == evaluation_id).first()


def _checklist(items: Optional[List[ChecklistItemIn]], existing: List[ChecklistItem]) -> List[ChecklistItem]:
	if items is None:
		if existing:
			return existing
		return [ChecklistItem(id=f"i{n}", text=text) for n, text in enumerate(DEFAULT_CHECKLIST, start=1)]
	previous = {i.id: i for i in existing}
	out = []
	for item in items:
		item_id = (item.id or "").strip() or f"i-{uuid.uuid4().hex[:6]}"
		before = previous.get(item_id)
		completed_at = None
		if item.done:
			completed_at = before.completed_at if before and before.done else datetime.utcnow()
		out.append(ChecklistItem(id=item_id, text=item.text.strip(), done=item.done, completed_at=completed_at))
	return out


@router.get("")
def list_for_student(student_id: Optional[str] = None, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	query = db.query(Evaluation).filter(Evaluation.owner == scope.owner)
	if student_id:
		query = query.filter(Evaluation.student_id == student_id)
	return ok(evaluations=[evaluation_to_dict(r) for r in query.order_by(Evaluation.due_date).all()])


@router.get("/summary")
def summary(scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	return ok(summary=get_eval_summary(db, scope.owner))


@router.post("")
def save(req: EvaluationIn, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	if req.eval_type not in EVAL_TYPES:
		return fail(f"Invalid evaluation type: {req.eval_type}. Must be one of {', '.join(EVAL_TYPES)}")
	if get_student(db, scope.owner, req.student_id) is None:
		return fail("Student not found")
	if req.id:
		row = _get(db, scope.owner, req.id)
		if row is None:
			return fail("Evaluation not found")
		created = False
	else:
		row = Evaluation(id=uuid.uuid4().hex, owner=scope.owner)
		db.add(row)
		created = True
	row.student_id = req.student_id
	row.eval_type = req.eval_type
	row.due_date = req.due_date
	row.items_json = encode_list(_checklist(req.items, parse_checklist(row.items_json)))
	row.notes = (req.notes or "").strip()
	db.commit()
	invalidate_for(scope.owner, "evaluation")
	return ok(id=row.id, created=created, evaluation=evaluation_to_dict(row))


@router.patch("/{evaluation_id}/items/{item_id}")
def update_item(evaluation_id: str, item_id: str, req: ItemUpdate, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	row = _get(db, scope.owner, evaluation_id)
	if row is None:
		return fail("Evaluation not found")
	items = parse_checklist(row.items_json)
	for n, item in enumerate(items):
		if item.id == item_id:
			if item.done != req.done:
				items[n] = item.model_copy(update={"done": req.done, "completed_at": datetime.utcnow() if req.done else None})
			break
	else:
		return fail("Checklist item not found")
	row.items_json = encode_list(items)
	db.commit()
	invalidate_for(scope.owner, "evaluation")
	return ok(id=row.id, evaluation=evaluation_to_dict(row))


@router.delete("/{evaluation_id}")
def delete(evaluation_id: str, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	row = _get(db, scope.owner, evaluation_id)
	if row is None:
		return fail("Evaluation not found")
	db.delete(row)
	db.commit()
	invalidate_for(scope.owner, "evaluation")
	return ok(id=evaluation_id)
