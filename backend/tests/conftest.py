from __future__ import annotations
import json
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from caseload import models  # noqa: F401  (registers tables on Base)
from caseload.cache import cache
from caseload.db import Base, get_db
from caseload.main import app
from caseload.models import CheckIn, Student, UserAccount
from caseload.routers.auth import create_identity_token

TEACHER = "t@x.org"


@pytest.fixture
def engine():
	eng = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
		future=True,
	)
	Base.metadata.create_all(bind=eng)
	yield eng
	eng.dispose()


@pytest.fixture
def session_factory(engine):
	return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture
def db(session_factory):
	session = session_factory()
	try:
		yield session
	finally:
		session.close()


@pytest.fixture(autouse=True)
def fresh_cache():
	cache.clear()
	yield
	cache.clear()


@pytest.fixture
def client(session_factory):
	def _override_get_db():
		session = session_factory()
		try:
			yield session
		finally:
			session.close()

	app.dependency_overrides[get_db] = _override_get_db
	try:
		yield TestClient(app)
	finally:
		app.dependency_overrides.clear()


def auth_headers(email: str, name: Optional[str] = None) -> Dict[str, str]:
	return {"Authorization": f"Bearer {create_identity_token(email, name)}"}


def goal(goal_id: str, area: Optional[str] = "Math", email: Optional[str] = TEACHER, objectives: Optional[List[str]] = None) -> Dict[str, Any]:
	return {
		"id": goal_id,
		"text": f"Goal {goal_id}",
		"goalArea": area,
		"responsibleEmail": email,
		"objectives": [{"id": o, "text": f"Objective {o}"} for o in (objectives if objectives is not None else ["o1", "o2"])],
	}


@pytest.fixture
def make_student(db):
	def _make(
		goals: Optional[List[Dict[str, Any]]] = None,
		owner: str = TEACHER,
		student_id: Optional[str] = None,
		first_name: str = "Sam",
		last_name: str = "Rivera",
		grade: str = "7",
		academic_data: Optional[List[Dict[str, Any]]] = None,
	) -> Student:
		if db.get(UserAccount, owner) is None:
			db.add(UserAccount(username=owner))
		row = Student(
			id=student_id or uuid.uuid4().hex,
			owner=owner,
			first_name=first_name,
			last_name=last_name,
			grade=grade,
			goals_json=json.dumps(goals if goals is not None else [goal("g1")]),
		)
		db.add(row)
		if academic_data is not None:
			db.add(CheckIn(
				id=uuid.uuid4().hex,
				owner=owner,
				student_id=row.id,
				week_of=date(2026, 10, 12),
				academic_data_json=json.dumps(academic_data),
			))
		db.commit()
		return row

	return _make
