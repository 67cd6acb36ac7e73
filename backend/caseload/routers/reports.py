from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..quarters import current_quarter
from ..render import render_progress_report
from ..report import load_report_data
from .auth import Scope, check_scope, get_scope

router = APIRouter(prefix="/reports", tags=["reports"])


class RenderRequest(BaseModel):
	quarter: Optional[str] = None
	overall_summary: str = ""


@router.get("/{student_id}")
def report_data(student_id: str, quarter: Optional[str] = None, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	return load_report_data(db, scope.owner, student_id, quarter or current_quarter())


@router.post("/{student_id}/render")
def render(student_id: str, req: RenderRequest, scope: Scope = Depends(get_scope), db: Session = Depends(get_db)):
	denied = check_scope(db, scope)
	if denied:
		return denied
	result = load_report_data(db, scope.owner, student_id, req.quarter or current_quarter())
	if not result["success"]:
		return result
	return HTMLResponse(render_progress_report(result["report"], req.overall_summary))
