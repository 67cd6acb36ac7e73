from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..cache import OVERSIGHT, cache
from ..db import get_db
from ..oversight import sync_oversight
from ..results import ok
from .auth import User, get_current_user

router = APIRouter(prefix="/oversight", tags=["oversight"])


@router.get("")
def latest(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	snapshot = cache.get(user.username, OVERSIGHT)
	if snapshot is None:
		snapshot = sync_oversight(db, user.username)
	return ok(oversight=snapshot)


@router.post("/sync")
def sync(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return ok(oversight=sync_oversight(db, user.username))
