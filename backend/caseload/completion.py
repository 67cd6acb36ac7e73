from __future__ import annotations
from typing import Any, Dict, Iterable, Set, Tuple

from sqlalchemy.orm import Session

from .progress import get_quarter_entries
from .records import student_records
from .schemas import ObjectiveKey, StudentRecord, objective_key, objective_label


def _reported_keys(entries: Iterable[Any], quarter: str) -> Set[Tuple[str, str, ObjectiveKey]]:
	keys: Set[Tuple[str, str, ObjectiveKey]] = set()
	for e in entries or []:
		if e.quarter != quarter or not (e.progress_rating or "").strip():
			continue
		keys.add((e.student_id, e.goal_id, objective_key(e.objective_id)))
	return keys


def build_completion_map(
	acting_identity: str,
	students: Iterable[StudentRecord],
	quarter: str,
	entries: Iterable[Any],
) -> Dict[str, Dict[str, Any]]:
	"""Per-student progress-reporting completion for the goals ``acting_identity`` owns.

	Only goals whose responsible email matches the identity are counted.
	Students with no such goals are left out entirely. Each objective is one
	unit; a goal without objectives is a single goal-level unit.
	"""
	reported = _reported_keys(entries, quarter)
	result: Dict[str, Dict[str, Any]] = {}
	for student in students:
		mine = [g for g in student.goals if g.is_responsible(acting_identity)]
		if not mine:
			continue
		total = completed = 0
		goals: Dict[str, Any] = {}
		for goal in mine:
			objectives: Dict[str, bool] = {}
			for unit in goal.unit_keys():
				done = (student.id, goal.id, unit) in reported
				objectives[objective_label(unit)] = done
				total += 1
				completed += int(done)
			goals[goal.id] = {"completed": all(objectives.values()), "objectives": objectives}
		result[student.id] = {
			"total": total,
			"completed": completed,
			"all_done": total > 0 and completed >= total,
			"goals": goals,
		}
	return result


def load_completion_map(db: Session, owner: str, acting_identity: str, quarter: str) -> Dict[str, Dict[str, Any]]:
	return build_completion_map(
		acting_identity,
		student_records(db, owner),
		quarter,
		get_quarter_entries(db, owner, quarter),
	)
