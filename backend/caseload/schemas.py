"""Value types for the nested structures stored as JSON blobs.

Goal lists, academic snapshots, evaluation checklists and check-in ratings
live in text columns. They are decoded here, once, at the store boundary;
a corrupt blob decodes to an empty collection instead of failing the read.
"""
from __future__ import annotations
import json
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .app_logger import get_logger

logger = get_logger("schemas")


PROGRESS_RATINGS: tuple[str, ...] = ("No Progress", "Adequate Progress", "Objective Met")
EVAL_TYPES: tuple[str, ...] = ("initial", "reevaluation", "annual-review")
MEETING_TYPES: tuple[str, ...] = ("annual", "reevaluation", "amendment", "transition", "other")
MEETING_STATUSES: tuple[str, ...] = ("scheduled", "held", "cancelled")
TEAM_ROLES: tuple[str, ...] = ("co-teacher", "sped-lead")
DEFAULT_GOAL_AREA = "General"


class NoObjective:
	"""Marker for the single reportable unit of a goal with no objectives."""

	_instance: Optional["NoObjective"] = None

	def __new__(cls) -> "NoObjective":
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	def __repr__(self) -> str:
		return "NO_OBJECTIVE"


NO_OBJECTIVE = NoObjective()
ObjectiveKey = Union[str, NoObjective]

# Storage form of NO_OBJECTIVE; real objective ids are never empty
_STORED_NO_OBJECTIVE = ""
# JSON form of NO_OBJECTIVE in API responses
NO_OBJECTIVE_LABEL = "_goal"


def objective_key(stored: Optional[str]) -> ObjectiveKey:
	return NO_OBJECTIVE if not stored else stored


def stored_objective_id(key: ObjectiveKey) -> str:
	return _STORED_NO_OBJECTIVE if key is NO_OBJECTIVE else str(key)


def objective_label(key: ObjectiveKey) -> str:
	return NO_OBJECTIVE_LABEL if key is NO_OBJECTIVE else str(key)


class _Blob(BaseModel):
	model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Objective(_Blob):
	id: str = Field(min_length=1)
	text: str = ""

	@field_validator("id", mode="before")
	@classmethod
	def _coerce_id(cls, v: Any) -> Any:
		return str(v).strip() if isinstance(v, (int, str)) else v


class Goal(_Blob):
	id: str = Field(min_length=1)
	text: str = ""
	goal_area: Optional[str] = Field(default=None, alias="goalArea")
	responsible_email: Optional[str] = Field(default=None, alias="responsibleEmail")
	objectives: List[Objective] = Field(default_factory=list)

	@field_validator("id", mode="before")
	@classmethod
	def _coerce_id(cls, v: Any) -> Any:
		return str(v).strip() if isinstance(v, (int, str)) else v

	@property
	def area(self) -> str:
		return (self.goal_area or "").strip() or DEFAULT_GOAL_AREA

	def unit_keys(self) -> List[ObjectiveKey]:
		"""Countable units: each objective, or the goal itself when it has none."""
		if not self.objectives:
			return [NO_OBJECTIVE]
		return [o.id for o in self.objectives]

	def is_responsible(self, identity: str) -> bool:
		return bool(self.responsible_email) and self.responsible_email.strip().lower() == identity.strip().lower()


class MissingAssignment(_Blob):
	name: str
	type: Optional[str] = None


class AcademicClass(_Blob):
	class_name: str = Field(alias="className")
	grade: Optional[str] = None
	missing: int = 0
	missing_assignments: List[MissingAssignment] = Field(default_factory=list, alias="missingAssignments")

	@field_validator("grade", mode="before")
	@classmethod
	def _grade_as_text(cls, v: Any) -> Any:
		if v is None or isinstance(v, str):
			return v
		return str(v)


class ChecklistItem(_Blob):
	id: str = Field(min_length=1)
	text: str = ""
	done: bool = False
	completed_at: Optional[datetime] = Field(default=None, alias="completedAt")


class StudentRecord(BaseModel):
	"""Decoded student as consumed by report assembly and aggregation."""

	id: str
	first_name: str
	last_name: str
	grade: Optional[str] = None
	iep_due_date: Optional[date] = None
	reeval_due_date: Optional[date] = None
	goals: List[Goal] = Field(default_factory=list)
	academic_data: List[AcademicClass] = Field(default_factory=list)

	@property
	def full_name(self) -> str:
		return f"{self.first_name} {self.last_name}".strip()


_M = TypeVar("_M", bound=BaseModel)


def _load_json(raw: Any, what: str) -> Any:
	if raw is None or raw == "":
		return None
	if not isinstance(raw, str):
		return raw
	try:
		return json.loads(raw)
	except ValueError:
		logger.warning("Malformed %s blob; treating as empty", what)
		return None


def _decode_list(raw: Any, model: Type[_M], what: str) -> List[_M]:
	data = _load_json(raw, what)
	if data is None:
		return []
	if not isinstance(data, list):
		logger.warning("Expected a list for %s, got %s; treating as empty", what, type(data).__name__)
		return []
	items: List[_M] = []
	for raw_item in data:
		try:
			items.append(model.model_validate(raw_item))
		except ValidationError as e:
			logger.warning("Skipping invalid %s item: %s", what, e.errors()[:1])
	return items


def parse_goals(raw: Any) -> List[Goal]:
	return _decode_list(raw, Goal, "goals")


def parse_academic_data(raw: Any) -> List[AcademicClass]:
	return _decode_list(raw, AcademicClass, "academic data")


def parse_checklist(raw: Any) -> List[ChecklistItem]:
	return _decode_list(raw, ChecklistItem, "checklist")


def parse_ratings(raw: Any) -> Dict[str, int]:
	data = _load_json(raw, "ratings")
	if not isinstance(data, dict):
		return {}
	ratings: Dict[str, int] = {}
	for skill, value in data.items():
		try:
			ratings[str(skill)] = int(value)
		except (TypeError, ValueError):
			continue
	return ratings


def encode_list(items: Iterable[BaseModel]) -> str:
	return json.dumps([i.model_dump(by_alias=True, mode="json", exclude_none=True) for i in items])


def goals_have_unique_ids(goals: List[Goal]) -> Optional[str]:
	"""Return an error message when goal or objective ids repeat, else None."""
	seen_goals: set[str] = set()
	for g in goals:
		if g.id in seen_goals:
			return f"Duplicate goal id: {g.id}"
		seen_goals.add(g.id)
		seen_objectives: set[str] = set()
		for o in g.objectives:
			if o.id in seen_objectives:
				return f"Duplicate objective id {o.id} in goal {g.id}"
			seen_objectives.add(o.id)
	return None
