import json

from caseload.schemas import (
	DEFAULT_GOAL_AREA,
	NO_OBJECTIVE,
	encode_list,
	goals_have_unique_ids,
	parse_academic_data,
	parse_checklist,
	parse_goals,
	parse_ratings,
)


def test_goals_accept_stored_camel_case():
	goals = parse_goals(json.dumps([{
		"id": "g1",
		"text": "Solve two-step equations",
		"goalArea": "Math",
		"responsibleEmail": "t@x.org",
		"objectives": [{"id": "o1", "text": "With a model"}],
	}]))
	assert goals[0].goal_area == "Math"
	assert goals[0].responsible_email == "t@x.org"
	assert goals[0].unit_keys() == ["o1"]


def test_malformed_blobs_decode_to_empty():
	assert parse_goals("[{broken") == []
	assert parse_goals(None) == []
	assert parse_goals('{"id": "g1"}') == []
	assert parse_academic_data("not json") == []
	assert parse_checklist("") == []
	assert parse_ratings("[1, 2]") == {}


def test_invalid_goal_items_are_skipped():
	goals = parse_goals(json.dumps([{"id": "g1"}, {"text": "no id"}, {"id": "g2", "objectives": [{"id": ""}]}]))
	assert [g.id for g in goals] == ["g1"]


def test_goal_defaults():
	g = parse_goals([{"id": 7}])[0]
	assert g.id == "7"
	assert g.area == DEFAULT_GOAL_AREA
	assert g.unit_keys() == [NO_OBJECTIVE]
	assert g.is_responsible("t@x.org") is False


def test_encode_round_trips_with_stored_keys():
	classes = parse_academic_data([{"className": "Math", "grade": 90, "missing": 1, "missingAssignments": [{"name": "HW 1"}]}])
	stored = json.loads(encode_list(classes))
	assert stored[0]["className"] == "Math"
	assert stored[0]["grade"] == "90"
	assert stored[0]["missingAssignments"] == [{"name": "HW 1"}]


def test_ratings_ignore_non_numeric_values():
	assert parse_ratings('{"planning": "4", "organization": "x"}') == {"planning": 4}


def test_duplicate_ids_are_reported():
	assert goals_have_unique_ids(parse_goals([{"id": "g1"}, {"id": "g1"}])) == "Duplicate goal id: g1"
	assert "o1" in goals_have_unique_ids(parse_goals([{"id": "g1", "objectives": [{"id": "o1"}, {"id": "o1"}]}]))
	assert goals_have_unique_ids(parse_goals([{"id": "g1"}, {"id": "g2"}])) is None
