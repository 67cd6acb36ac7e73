from __future__ import annotations
from typing import Any, Dict


def ok(**fields: Any) -> Dict[str, Any]:
	return {"success": True, **fields}


def fail(error: str) -> Dict[str, Any]:
	"""Structured failure returned (never raised) by caseload operations.

	Callers must check ``success`` before trusting any other field.
	"""
	return {"success": False, "error": error}
