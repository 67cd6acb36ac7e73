from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from .app_logger import get_logger
from .settings import settings

logger = get_logger("locks")


class LockTimeout(Exception):
	pass


class IdentityLocks:
	"""One mutex per acting identity, created on first use and kept for the process lifetime."""

	def __init__(self) -> None:
		self._locks: Dict[str, threading.Lock] = {}
		self._registry = threading.Lock()

	def _lock_for(self, identity: str) -> threading.Lock:
		with self._registry:
			lock = self._locks.get(identity)
			if lock is None:
				lock = threading.Lock()
				self._locks[identity] = lock
			return lock

	@contextmanager
	def hold(self, identity: str, timeout: Optional[float] = None) -> Iterator[None]:
		wait = settings.lock_timeout_seconds if timeout is None else timeout
		lock = self._lock_for(identity.lower())
		if not lock.acquire(timeout=wait):
			logger.warning("Lock for %s not acquired within %ss", identity, wait)
			raise LockTimeout(identity)
		try:
			yield
		finally:
			lock.release()


identity_locks = IdentityLocks()

LOCK_FAILURE_MESSAGE = "Could not acquire lock. Please try again."
