"""Supervisory roll-up across the caseloads a SPED lead oversees.

Runs as a batch: caseloads are visited one at a time with a fixed pause in
between, and each one succeeds or fails on its own.
"""
from __future__ import annotations
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from .app_logger import get_logger
from .cache import OVERSIGHT, cache
from .models import CoTeacher, UserAccount
from .quarters import current_quarter
from .records import list_students
from .settings import settings
from .views import build_due_process

logger = get_logger("oversight")

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_ACCESS_LOST = "access_lost"


def overseen_owners(db: Session, lead: str) -> List[str]:
	"""Caseloads where ``lead`` is an active sped-lead; pending invitations are not visited."""
	rows = (
		db.query(CoTeacher)
		.filter(CoTeacher.email == lead, CoTeacher.role == "sped-lead", CoTeacher.status == "active")
		.order_by(CoTeacher.owner)
		.all()
	)
	return [r.owner for r in rows]


def _sync_targets(db: Session, lead: str) -> List[str]:
	# Caseloads from the last snapshot are revisited; a revoked one reports access_lost
	targets = overseen_owners(db, lead)
	previous = cache.get(lead, OVERSIGHT) or {}
	for unit in previous.get("caseloads", []):
		owner = unit.get("owner")
		if owner and owner not in targets and unit.get("status") != STATUS_ACCESS_LOST:
			targets.append(owner)
	return targets


def _summarize(db: Session, owner: str, quarter: str) -> Dict[str, Any]:
	due = build_due_process(db, owner, quarter)
	totals = due["totals"]
	return {
		"student_count": len(list_students(db, owner)),
		"meetings": totals["meetings"],
		"evaluations_due": totals["evaluations_due"],
		"progress_units": totals["progress_units"],
		"progress_reported": totals["progress_reported"],
	}


def _has_access(db: Session, owner: str, lead: str) -> bool:
	if db.get(UserAccount, owner) is None:
		return False
	row = (
		db.query(CoTeacher)
		.filter(CoTeacher.owner == owner, CoTeacher.email == lead, CoTeacher.role == "sped-lead", CoTeacher.status == "active")
		.first()
	)
	return row is not None


def sync_oversight(
	db: Session,
	lead: str,
	*,
	owners: Optional[List[str]] = None,
	quarter: Optional[str] = None,
	delay_seconds: Optional[float] = None,
	sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
	quarter = quarter or current_quarter()
	delay = settings.oversight_delay_seconds if delay_seconds is None else delay_seconds
	targets = owners if owners is not None else _sync_targets(db, lead)
	caseloads = []
	for i, owner in enumerate(targets):
		if i and delay > 0:
			sleep(delay)
		unit: Dict[str, Any] = {"owner": owner}
		try:
			if not _has_access(db, owner, lead):
				unit["status"] = STATUS_ACCESS_LOST
			else:
				unit.update(_summarize(db, owner, quarter))
				unit["status"] = STATUS_OK
		except Exception as e:
			logger.exception("Oversight sync failed for caseload %s", owner)
			db.rollback()
			unit["status"] = STATUS_FAILED
			unit["error"] = str(e)
		caseloads.append(unit)
	result = {
		"lead": lead,
		"quarter": quarter,
		"synced_at": datetime.utcnow().isoformat(),
		"caseloads": caseloads,
	}
	cache.set(lead, OVERSIGHT, result)
	return result


def sync_all_leads(db: Session, **kwargs: Any) -> int:
	leads = sorted({
		r.email
		for r in db.query(CoTeacher).filter(CoTeacher.role == "sped-lead", CoTeacher.status == "active").all()
	})
	for lead in leads:
		sync_oversight(db, lead, **kwargs)
	return len(leads)
