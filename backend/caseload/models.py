from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Date, Integer, Text, UniqueConstraint, Index
from .db import Base


class UserAccount(Base):
	__tablename__ = "user_accounts"
	# One row per caseload document; created on first use of an identity
	username = Column(String(256), primary_key=True, index=True)
	display_name = Column(String(256), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Student(Base):
	__tablename__ = "students"
	id = Column(String(64), primary_key=True)
	owner = Column(String(256), nullable=False, index=True)
	first_name = Column(String(128), nullable=False)
	last_name = Column(String(128), nullable=False)
	grade = Column(String(16), nullable=True)
	school = Column(String(256), nullable=True)
	disability_category = Column(String(128), nullable=True)
	iep_due_date = Column(Date, nullable=True)
	reeval_due_date = Column(Date, nullable=True)
	goals_json = Column(Text, nullable=True)  # JSON list of goals with nested objectives
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class CheckIn(Base):
	__tablename__ = "check_ins"
	id = Column(String(64), primary_key=True)
	owner = Column(String(256), nullable=False, index=True)
	student_id = Column(String(64), nullable=False, index=True)
	week_of = Column(Date, nullable=False)
	ratings_json = Column(Text, nullable=True)  # executive-function ratings, skill -> 1..5
	academic_data_json = Column(Text, nullable=True)  # JSON snapshot of classes and grades
	notes = Column(Text, nullable=True)
	created_by = Column(String(256), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Evaluation(Base):
	__tablename__ = "evaluations"
	id = Column(String(64), primary_key=True)
	owner = Column(String(256), nullable=False, index=True)
	student_id = Column(String(64), nullable=False, index=True)
	eval_type = Column(String(32), nullable=False)
	due_date = Column(Date, nullable=True)
	items_json = Column(Text, nullable=True)  # JSON checklist items
	notes = Column(Text, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ProgressEntry(Base):
	__tablename__ = "progress_entries"
	__table_args__ = (
		UniqueConstraint("owner", "student_id", "goal_id", "objective_id", "quarter", name="uq_progress_entry_key"),
		Index("ix_progress_entries_owner_quarter", "owner", "quarter"),
	)
	id = Column(String(64), primary_key=True)
	owner = Column(String(256), nullable=False, index=True)
	student_id = Column(String(64), nullable=False, index=True)
	goal_id = Column(String(64), nullable=False)
	# Empty string stores the goal-level unit of a goal without objectives
	objective_id = Column(String(64), nullable=False, default="")
	quarter = Column(String(2), nullable=False)
	progress_rating = Column(String(32), nullable=False)
	anecdotal_notes = Column(Text, nullable=False)
	date_entered = Column(Date, nullable=False)
	entered_by = Column(String(256), nullable=False)
	created_at = Column(DateTime, nullable=False)
	last_modified = Column(DateTime, nullable=False)


class IEPMeeting(Base):
	__tablename__ = "iep_meetings"
	id = Column(String(64), primary_key=True)
	owner = Column(String(256), nullable=False, index=True)
	student_id = Column(String(64), nullable=False, index=True)
	meeting_type = Column(String(32), nullable=False)
	meeting_date = Column(Date, nullable=False)
	status = Column(String(16), default="scheduled", nullable=False)
	notes = Column(Text, nullable=True)
	created_by = Column(String(256), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class CoTeacher(Base):
	__tablename__ = "co_teachers"
	__table_args__ = (UniqueConstraint("owner", "email", name="uq_co_teacher"),)
	id = Column(Integer, primary_key=True, autoincrement=True)
	owner = Column(String(256), nullable=False, index=True)
	email = Column(String(256), nullable=False, index=True)
	role = Column(String(16), default="co-teacher", nullable=False)
	status = Column(String(16), default="pending", nullable=False)
	invited_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	accepted_at = Column(DateTime, nullable=True)
