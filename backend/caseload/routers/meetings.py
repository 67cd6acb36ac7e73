from __future__ import annotations
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..cache import invalidate_for
from ..db import get_db
from ..locks import LOCK_FAILURE_MESSAGE, LockTimeout, identity_locks
from ..models import IEPMeeting
from ..records import get_student, meeting_to_dict
from ..results import fail, ok
from ..schemas import MEETING_STATUSES, MEETING_TYPES
from .auth import Scope, check_scope, get_scope

router = APIRouter(prefix="/meetings", tags=["meetings"])


class MeetingIn(BaseModel):
	id: Optional[str] = None
	student_id: str
	meeting_type: str = "annual"
	meeting_date: date
	status: str = "scheduled"
	notes: Optional[str] = None


def _get(db: Session, owner: str, meeting_id: str) -> Optional[IEPMeeting]:
	return db.query(IEPMeeting).filter(IEPMeeting.owner == owner, IEPMeeting.id == meeting_id).first()


@router.get("")
def list_meetings(student_id: Optional[str] = None, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	query = db.query(IEPMeeting).filter(IEPMeeting.owner == scope.owner)
	if student_id:
		query = query.filter(IEPMeeting.student_id == student_id)
	return ok(meetings=[meeting_to_dict(m) for m in query.order_by(IEPMeeting.meeting_date).all()])


@router.post("")
def save(req: MeetingIn, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	if req.meeting_type not in MEETING_TYPES:
		return fail(f"Invalid meeting type: {req.meeting_type}. Must be one of {', '.join(MEETING_TYPES)}")
	if req.status not in MEETING_STATUSES:
		return fail(f"Invalid meeting status: {req.status}. Must be one of {', '.join(MEETING_STATUSES)}")
	if get_student(db, scope.owner, req.student_id) is None:
		return fail("Student not found")
	try:
		with identity_locks.hold(scope.actor):
			if req.id:
				row = _get(db, scope.owner, req.id)
				if row is None:
					return fail("Meeting not found")
			else:
				# A repeated submit for the same student, type and date updates the first one
				row = (
					db.query(IEPMeeting)
					.filter(
						IEPMeeting.owner == scope.owner,
						IEPMeeting.student_id == req.student_id,
						IEPMeeting.meeting_type == req.meeting_type,
						IEPMeeting.meeting_date == req.meeting_date,
					)
					.first()
				)
			created = row is None
			if row is None:
				row = IEPMeeting(id=uuid.uuid4().hex, owner=scope.owner, created_by=scope.actor)
				db.add(row)
			row.student_id = req.student_id
			row.meeting_type = req.meeting_type
			row.meeting_date = req.meeting_date
			row.status = req.status
			row.notes = (req.notes or "").strip()
			db.commit()
	except LockTimeout:
		return fail(LOCK_FAILURE_MESSAGE)
	invalidate_for(scope.owner, "meeting")
	return ok(id=row.id, created=created)


@router.delete("/{meeting_id}")
def delete(meeting_id: str, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	row = _get(db, scope.owner, meeting_id)
	if row is None:
		return fail("Meeting not found")
	db.delete(row)
	db.commit()
	invalidate_for(scope.owner, "meeting")
	return ok(id=meeting_id)
