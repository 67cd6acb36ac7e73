from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .models import CoTeacher, UserAccount
from .results import fail, ok
from .schemas import TEAM_ROLES

NOT_AUTHORIZED = "Not authorized to access this caseload"


def normalize_identity(identity: Optional[str]) -> str:
	return (identity or "").strip().lower()


def ensure_account(db: Session, identity: str, display_name: Optional[str] = None) -> UserAccount:
	"""Return the caseload document for ``identity``, creating it on first use."""
	account = db.get(UserAccount, identity)
	if account is None:
		account = UserAccount(username=identity, display_name=display_name)
		db.add(account)
		db.commit()
	elif display_name and account.display_name != display_name:
		account.display_name = display_name
		db.commit()
	return account


def active_membership(db: Session, owner: str, actor: str) -> Optional[CoTeacher]:
	return (
		db.query(CoTeacher)
		.filter(CoTeacher.owner == owner, CoTeacher.email == actor, CoTeacher.status == "active")
		.first()
	)


def authorize(db: Session, owner: str, actor: str) -> Optional[Dict[str, Any]]:
	"""None when ``actor`` may read and write ``owner``'s caseload, else a failure.

	The failure is the same whether or not the caseload exists.
	"""
	if owner == actor:
		return None
	if active_membership(db, owner, actor) is not None:
		return None
	return fail(NOT_AUTHORIZED)


def authorize_owner(owner: str, actor: str) -> Optional[Dict[str, Any]]:
	if owner == actor:
		return None
	return fail(NOT_AUTHORIZED)


def member_to_dict(row: CoTeacher) -> Dict[str, Any]:
	return {
		"owner": row.owner,
		"email": row.email,
		"role": row.role,
		"status": row.status,
		"invited_at": row.invited_at.isoformat() if row.invited_at else None,
		"accepted_at": row.accepted_at.isoformat() if row.accepted_at else None,
	}


def list_members(db: Session, owner: str) -> List[Dict[str, Any]]:
	rows = db.query(CoTeacher).filter(CoTeacher.owner == owner).order_by(CoTeacher.email).all()
	return [member_to_dict(r) for r in rows]


def shared_caseloads(db: Session, actor: str) -> List[Dict[str, Any]]:
	rows = db.query(CoTeacher).filter(CoTeacher.email == actor).order_by(CoTeacher.owner).all()
	return [member_to_dict(r) for r in rows]


def invite_member(db: Session, owner: str, email: str, role: str = "co-teacher") -> Dict[str, Any]:
	email = normalize_identity(email)
	if not email or "@" not in email:
		return fail("A valid email address is required")
	if email == owner:
		return fail("You cannot add yourself to your own team")
	if role not in TEAM_ROLES:
		return fail(f"Invalid role: {role}. Must be one of {', '.join(TEAM_ROLES)}")
	row = db.query(CoTeacher).filter(CoTeacher.owner == owner, CoTeacher.email == email).first()
	if row is not None:
		# Re-inviting changes the role but keeps an accepted membership active
		row.role = role
		db.commit()
		return ok(member=member_to_dict(row), created=False)
	row = CoTeacher(owner=owner, email=email, role=role, status="pending", invited_at=datetime.utcnow())
	db.add(row)
	db.commit()
	return ok(member=member_to_dict(row), created=True)


def accept_invite(db: Session, owner: str, actor: str) -> Dict[str, Any]:
	row = db.query(CoTeacher).filter(CoTeacher.owner == owner, CoTeacher.email == actor).first()
	if row is None:
		return fail("Invitation not found")
	if row.status != "active":
		row.status = "active"
		row.accepted_at = datetime.utcnow()
		db.commit()
	return ok(member=member_to_dict(row))


def remove_member(db: Session, owner: str, email: str) -> Dict[str, Any]:
	email = normalize_identity(email)
	row = db.query(CoTeacher).filter(CoTeacher.owner == owner, CoTeacher.email == email).first()
	if row is None:
		return fail("Team member not found")
	db.delete(row)
	db.commit()
	return ok(email=email)
