from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..quarters import QUARTERS, current_quarter, is_quarter
from ..results import fail, ok
from ..views import get_dashboard, get_due_process
from .auth import Scope, check_scope, get_scope

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("")
def dashboard(scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	return ok(students=get_dashboard(db, scope.owner), quarter=current_quarter())


@router.get("/due-process")
def due_process(quarter: Optional[str] = None, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	quarter = quarter or current_quarter()
	if not is_quarter(quarter):
		return fail(f"Invalid quarter: {quarter}. Must be one of {', '.join(QUARTERS)}")
	return ok(due_process=get_due_process(db, scope.owner, quarter))
