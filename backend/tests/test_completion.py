from caseload.completion import build_completion_map, load_completion_map
from caseload.progress import save_progress_entry
from caseload.records import student_record
from caseload.schemas import NO_OBJECTIVE, NO_OBJECTIVE_LABEL, StudentRecord, parse_goals

from conftest import TEACHER, goal


class _Entry:
	def __init__(self, student_id, goal_id, objective_id, quarter, rating="Adequate Progress"):
		self.student_id = student_id
		self.goal_id = goal_id
		self.objective_id = objective_id
		self.quarter = quarter
		self.progress_rating = rating


def _student(student_id, goals):
	return StudentRecord(id=student_id, first_name="A", last_name="B", goals=parse_goals(goals))


def test_counts_only_the_callers_goals():
	s = _student("s1", [goal("gx", email="x@x.org", objectives=["o1", "o2"]), goal("gy", email="y@x.org", objectives=["o1"])])
	entries = [_Entry("s1", "gy", "o1", "Q1")]

	x = build_completion_map("x@x.org", [s], "Q1", entries)
	y = build_completion_map("y@x.org", [s], "Q1", entries)

	assert x["s1"]["total"] == 2 and x["s1"]["completed"] == 0
	assert list(x["s1"]["goals"]) == ["gx"]
	assert y["s1"] == {
		"total": 1,
		"completed": 1,
		"all_done": True,
		"goals": {"gy": {"completed": True, "objectives": {"o1": True}}},
	}


def test_students_without_assigned_goals_are_omitted():
	s1 = _student("s1", [goal("g1", email="x@x.org")])
	s2 = _student("s2", [goal("g1", email="someone@x.org")])
	assert list(build_completion_map("x@x.org", [s1, s2], "Q1", [])) == ["s1"]


def test_identity_match_is_case_insensitive():
	s = _student("s1", [goal("g1", email="Teacher@X.org", objectives=["o1"])])
	result = build_completion_map("teacher@x.org", [s], "Q1", [_Entry("s1", "g1", "o1", "Q1")])
	assert result["s1"]["all_done"] is True


def test_only_requested_quarter_and_rated_entries_count():
	s = _student("s1", [goal("g1", email="x@x.org", objectives=["o1", "o2"])])
	entries = [_Entry("s1", "g1", "o1", "Q2"), _Entry("s1", "g1", "o2", "Q1"), _Entry("s1", "g1", "o2", "Q1", rating="")]
	result = build_completion_map("x@x.org", [s], "Q1", entries)
	assert result["s1"]["completed"] == 1
	assert result["s1"]["goals"]["g1"] == {"completed": False, "objectives": {"o1": False, "o2": True}}
	assert result["s1"]["all_done"] is False


def test_goal_without_objectives_is_one_unit():
	s = _student("s1", [goal("g1", email="x@x.org", objectives=[])])
	pending = build_completion_map("x@x.org", [s], "Q1", [])
	assert pending["s1"]["total"] == 1 and pending["s1"]["completed"] == 0
	assert pending["s1"]["goals"]["g1"]["objectives"] == {NO_OBJECTIVE_LABEL: False}

	done = build_completion_map("x@x.org", [s], "Q1", [_Entry("s1", "g1", "", "Q1")])
	assert done["s1"]["all_done"] is True


def test_other_students_entries_do_not_complete_shared_goal_ids():
	a = _student("a", [goal("g1", email="x@x.org", objectives=["o1"])])
	b = _student("b", [goal("g1", email="x@x.org", objectives=["o1"])])
	result = build_completion_map("x@x.org", [a, b], "Q1", [_Entry("a", "g1", "o1", "Q1")])
	assert result["a"]["all_done"] is True
	assert result["b"]["all_done"] is False


def test_end_to_end_two_objectives_met(db, make_student):
	row = make_student(goals=[{
		"id": "g1",
		"goalArea": "Math",
		"responsibleEmail": TEACHER,
		"objectives": [{"id": "o1"}, {"id": "o2"}],
	}])
	first = save_progress_entry(db, TEACHER, TEACHER, row.id, "g1", "o1", "Q2", "Adequate Progress", "Shown improvement this term.")
	second = save_progress_entry(db, TEACHER, TEACHER, row.id, "g1", "o2", "Q2", "Objective Met", "Fully mastered.")
	assert first["success"] and second["success"]

	result = load_completion_map(db, TEACHER, TEACHER, "Q2")
	assert result[row.id]["total"] == 2
	assert result[row.id]["completed"] == 2
	assert result[row.id]["all_done"] is True

	pure = build_completion_map(TEACHER, [student_record(row)], "Q2", [_Entry(row.id, "g1", "o1", "Q2")])
	assert pure[row.id]["completed"] == 1


def test_no_objective_marker_is_distinct_from_real_ids():
	assert NO_OBJECTIVE != ""
	assert NO_OBJECTIVE is type(NO_OBJECTIVE)()
