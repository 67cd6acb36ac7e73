from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..access import accept_invite, authorize_owner, invite_member, list_members, normalize_identity, remove_member
from ..db import get_db
from ..results import fail, ok
from .auth import Scope, User, check_scope, get_current_user, get_scope

router = APIRouter(prefix="/team", tags=["team"])


class InviteRequest(BaseModel):
	email: str
	role: str = "co-teacher"


class AcceptRequest(BaseModel):
	owner: str


@router.get("")
def members(scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	return ok(members=list_members(db, scope.owner))


@router.post("")
def invite(req: InviteRequest, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = authorize_owner(scope.owner, scope.actor)
	if denied:
		return denied
	return invite_member(db, scope.owner, req.email, req.role)


@router.post("/accept")
def accept(req: AcceptRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	owner = normalize_identity(req.owner)
	if not owner:
		return fail("Caseload owner is required")
	return accept_invite(db, owner, user.username)


@router.delete("/{email}")
def remove(email: str, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = authorize_owner(scope.owner, scope.actor)
	if denied:
		return denied
	return remove_member(db, scope.owner, email)
