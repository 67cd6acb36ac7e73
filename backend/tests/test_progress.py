from datetime import datetime

import pytest

from caseload.cache import cache
from caseload.locks import identity_locks
from caseload.models import ProgressEntry
from caseload.progress import (
	delete_progress_entry,
	get_all_progress_for_student,
	get_progress_entries,
	save_progress_entry,
)
from caseload.schemas import NO_OBJECTIVE
from caseload.settings import settings

from conftest import TEACHER, goal

NOTES = "Shown improvement this term."


def _save(db, student_id, goal_id="g1", objective_id="o1", quarter="Q2", rating="Adequate Progress", notes=NOTES, **kw):
	return save_progress_entry(db, TEACHER, TEACHER, student_id, goal_id, objective_id, quarter, rating, notes, **kw)


def test_second_save_of_same_tuple_updates_in_place(db, make_student):
	student = make_student()
	first = _save(db, student.id, now=datetime(2026, 12, 1, 9, 0))
	second = _save(db, student.id, rating="Objective Met", notes="Fully mastered the skill.", now=datetime(2026, 12, 8, 9, 0))

	assert first["success"] and first["updated"] is False
	assert second["success"] and second["updated"] is True
	assert second["id"] == first["id"]

	rows = db.query(ProgressEntry).all()
	assert len(rows) == 1
	row = rows[0]
	assert row.progress_rating == "Objective Met"
	assert row.anecdotal_notes == "Fully mastered the skill."
	assert row.created_at == datetime(2026, 12, 1, 9, 0)
	assert row.last_modified == datetime(2026, 12, 8, 9, 0)
	assert row.last_modified > row.created_at


def test_new_entry_sets_created_and_modified_together(db, make_student):
	student = make_student()
	now = datetime(2026, 10, 5, 14, 30)
	result = _save(db, student.id, quarter="Q1", now=now)
	row = db.get(ProgressEntry, result["id"])
	assert row.created_at == now
	assert row.last_modified == now
	assert row.date_entered == now.date()
	assert row.entered_by == TEACHER


def test_notes_of_exactly_ten_trimmed_characters_are_accepted(db, make_student):
	student = make_student()
	assert _save(db, student.id, notes="   abcdefghij   ")["success"] is True


@pytest.mark.parametrize("notes", ["abcdefghi", "  abcdefghi  ", "", None, "          "])
def test_short_or_missing_notes_are_rejected(db, make_student, notes):
	student = make_student()
	result = _save(db, student.id, notes=notes)
	assert result["success"] is False
	assert "10" in result["error"]
	assert db.query(ProgressEntry).count() == 0


@pytest.mark.parametrize("rating", ["No Progress", "Adequate Progress", "Objective Met"])
def test_every_rating_is_accepted(db, make_student, rating):
	student = make_student()
	assert _save(db, student.id, rating=rating)["success"] is True


def test_unknown_rating_is_rejected(db, make_student):
	student = make_student()
	result = _save(db, student.id, rating="Excellent")
	assert result["success"] is False
	assert "rating" in result["error"]


@pytest.mark.parametrize("quarter", ["Q1", "Q2", "Q3", "Q4"])
def test_every_quarter_is_accepted(db, make_student, quarter):
	student = make_student()
	assert _save(db, student.id, quarter=quarter)["success"] is True


def test_unknown_quarter_is_rejected(db, make_student):
	student = make_student()
	result = _save(db, student.id, quarter="Q5")
	assert result["success"] is False
	assert "quarter" in result["error"].lower()


@pytest.mark.parametrize("field", ["student_id", "goal_id", "objective_id"])
def test_identifiers_are_required(db, make_student, field):
	student = make_student()
	args = {"student_id": student.id, "goal_id": "g1", "objective_id": "o1"}
	args[field] = ""
	result = _save(db, args["student_id"], goal_id=args["goal_id"], objective_id=args["objective_id"])
	assert result["success"] is False
	assert "required" in result["error"]


def test_unknown_student_is_rejected(db, make_student):
	make_student()
	result = _save(db, "nobody")
	assert result == {"success": False, "error": "Student not found"}


def test_student_in_another_caseload_is_not_found(db, make_student):
	other = make_student(owner="other@x.org")
	result = _save(db, other.id)
	assert result["success"] is False
	assert result["error"] == "Student not found"


def test_entries_never_cross_students(db, make_student):
	a = make_student(first_name="Ana")
	b = make_student(first_name="Ben")
	_save(db, a.id)

	assert len(get_progress_entries(db, TEACHER, a.id, "Q2")) == 1
	assert get_progress_entries(db, TEACHER, b.id, "Q2") == []
	assert get_all_progress_for_student(db, TEACHER, b.id) == []


def test_all_progress_spans_quarters(db, make_student):
	student = make_student()
	_save(db, student.id, quarter="Q1")
	_save(db, student.id, quarter="Q2")
	_save(db, student.id, objective_id="o2", quarter="Q2")
	assert len(get_all_progress_for_student(db, TEACHER, student.id)) == 3
	assert len(get_progress_entries(db, TEACHER, student.id, "Q1")) == 1


def test_goal_without_objectives_saves_under_goal_level_marker(db, make_student):
	student = make_student(goals=[goal("g9", objectives=[])])
	first = save_progress_entry(db, TEACHER, TEACHER, student.id, "g9", NO_OBJECTIVE, "Q1", "No Progress", "Not started on this yet.")
	second = save_progress_entry(db, TEACHER, TEACHER, student.id, "g9", NO_OBJECTIVE, "Q1", "Adequate Progress", "Started working on it.")
	assert first["success"] and second["updated"]
	assert db.query(ProgressEntry).count() == 1


def test_save_invalidates_progress_and_due_process_views(db, make_student):
	student = make_student()
	for name in ("progress:Q2:t@x.org", "due_process:Q2", "due_process:Q3", "dashboard", "students"):
		cache.set(TEACHER, name, {"stale": True})

	assert _save(db, student.id)["success"]

	assert cache.get(TEACHER, "progress:Q2:t@x.org") is None
	assert cache.get(TEACHER, "due_process:Q2") is None
	assert cache.get(TEACHER, "due_process:Q3") is None
	assert cache.get(TEACHER, "dashboard") == {"stale": True}
	assert cache.get(TEACHER, "students") == {"stale": True}


def test_failed_validation_does_not_invalidate(db, make_student):
	student = make_student()
	cache.set(TEACHER, "due_process:Q2", {"cached": 1})
	_save(db, student.id, rating="Excellent")
	assert cache.get(TEACHER, "due_process:Q2") == {"cached": 1}


def test_lock_timeout_returns_retry_failure(db, make_student, monkeypatch):
	student = make_student()
	monkeypatch.setattr(settings, "lock_timeout_seconds", 0.05)
	with identity_locks.hold(TEACHER):
		result = _save(db, student.id)
	assert result["success"] is False
	assert "lock" in result["error"].lower()
	assert db.query(ProgressEntry).count() == 0
	# Released afterwards
	assert _save(db, student.id)["success"] is True


def test_delete_progress_entry(db, make_student):
	student = make_student()
	saved = _save(db, student.id)
	assert delete_progress_entry(db, TEACHER, saved["id"])["success"] is True
	assert db.query(ProgressEntry).count() == 0
	missing = delete_progress_entry(db, TEACHER, saved["id"])
	assert missing == {"success": False, "error": "Progress entry not found"}
