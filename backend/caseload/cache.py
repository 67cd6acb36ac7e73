from __future__ import annotations
import json
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from .app_logger import get_logger
from .settings import settings

logger = get_logger("cache")


# Derived views and the write operations that make them stale.
# A family name also covers its sub-keys, e.g. "due_process" covers "due_process:Q2".
STUDENTS = "students"
DASHBOARD = "dashboard"
EVAL_SUMMARY = "eval_summary"
PROGRESS = "progress"
DUE_PROCESS = "due_process"
OVERSIGHT = "oversight"

INVALIDATES: Dict[str, Tuple[str, ...]] = {
	"student": (STUDENTS, DASHBOARD, EVAL_SUMMARY, DUE_PROCESS),
	"check_in": (DASHBOARD,),
	"evaluation": (EVAL_SUMMARY, DASHBOARD, DUE_PROCESS),
	"meeting": (EVAL_SUMMARY, DUE_PROCESS),
	"progress": (PROGRESS, DUE_PROCESS),
}


def key(*parts: str) -> str:
	return ":".join(parts)


class ReadThroughCache:
	"""Per-caseload key/value store for derived views.

	Entries are kept serialized as ``{"data": ..., "written_at": ...}``. An entry
	older than the TTL reads as absent but is not swept; it is simply
	overwritten by the next populating read. Writes never raise: a value that
	cannot be serialized or exceeds the size ceiling is just not cached.
	"""

	def __init__(
		self,
		ttl_seconds: Optional[float] = None,
		max_entry_bytes: Optional[int] = None,
		clock: Callable[[], float] = time.time,
	) -> None:
		self.ttl_seconds = settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds
		self.max_entry_bytes = settings.cache_max_entry_bytes if max_entry_bytes is None else max_entry_bytes
		self._clock = clock
		self._store: Dict[str, Dict[str, str]] = {}
		self._mutex = threading.Lock()

	def get(self, owner: str, name: str) -> Any:
		with self._mutex:
			raw = self._store.get(owner, {}).get(name)
		if raw is None:
			return None
		try:
			wrapper = json.loads(raw)
		except ValueError:
			return None
		if self._clock() - float(wrapper.get("written_at", 0)) > self.ttl_seconds:
			return None
		return wrapper.get("data")

	def set(self, owner: str, name: str, value: Any) -> bool:
		try:
			raw = json.dumps({"data": value, "written_at": self._clock()})
		except (TypeError, ValueError) as e:
			logger.debug("Not caching %s for %s: %s", name, owner, e)
			return False
		if len(raw.encode("utf-8")) > self.max_entry_bytes:
			logger.debug("Not caching %s for %s: %d bytes over limit", name, owner, len(raw))
			return False
		with self._mutex:
			self._store.setdefault(owner, {})[name] = raw
		return True

	def invalidate(self, owner: str, *families: str) -> int:
		removed = 0
		with self._mutex:
			entries = self._store.get(owner)
			if not entries:
				return 0
			for name in list(entries):
				if any(name == f or name.startswith(f + ":") for f in families):
					del entries[name]
					removed += 1
		return removed

	def clear(self) -> None:
		with self._mutex:
			self._store.clear()


cache = ReadThroughCache()


def invalidate_for(owner: str, operation: str) -> None:
	cache.invalidate(owner, *INVALIDATES[operation])


def cached(owner: str, name: str, loader: Callable[[], Any]) -> Any:
	value = cache.get(owner, name)
	if value is not None:
		return value
	value = loader()
	if value is not None:
		cache.set(owner, name, value)
	return value
