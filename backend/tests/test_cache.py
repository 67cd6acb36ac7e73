from caseload.cache import INVALIDATES, ReadThroughCache, cached, cache, invalidate_for


class FakeClock:
	def __init__(self, now=1000.0):
		self.now = now

	def __call__(self):
		return self.now


def test_entries_expire_after_ttl_without_sweeping():
	clock = FakeClock()
	c = ReadThroughCache(ttl_seconds=120, max_entry_bytes=10_000, clock=clock)
	c.set("t@x.org", "dashboard", [{"id": "s1"}])

	clock.now += 120
	assert c.get("t@x.org", "dashboard") == [{"id": "s1"}]
	clock.now += 1
	assert c.get("t@x.org", "dashboard") is None
	# Soft expiry: the stale entry is still held until overwritten or invalidated
	assert c.invalidate("t@x.org", "dashboard") == 1


def test_namespaces_are_per_owner():
	c = ReadThroughCache(ttl_seconds=120, max_entry_bytes=10_000)
	c.set("a@x.org", "students", ["a"])
	assert c.get("b@x.org", "students") is None
	c.invalidate("b@x.org", "students")
	assert c.get("a@x.org", "students") == ["a"]


def test_oversize_values_are_skipped_quietly():
	c = ReadThroughCache(ttl_seconds=120, max_entry_bytes=200)
	assert c.set("t@x.org", "dashboard", "x" * 500) is False
	assert c.get("t@x.org", "dashboard") is None
	assert c.set("t@x.org", "dashboard", "small") is True


def test_unserializable_values_are_skipped_quietly():
	c = ReadThroughCache(ttl_seconds=120, max_entry_bytes=10_000)
	assert c.set("t@x.org", "students", {"when": object()}) is False
	assert c.get("t@x.org", "students") is None


def test_invalidate_removes_family_sub_keys_only():
	c = ReadThroughCache(ttl_seconds=120, max_entry_bytes=10_000)
	for name in ("due_process:Q1", "due_process:Q4", "due_process_extra", "progress"):
		c.set("t@x.org", name, 1)
	assert c.invalidate("t@x.org", "due_process") == 2
	assert c.get("t@x.org", "due_process_extra") == 1
	assert c.get("t@x.org", "progress") == 1


def test_invalidation_table():
	assert set(INVALIDATES["student"]) == {"students", "dashboard", "eval_summary", "due_process"}
	assert INVALIDATES["check_in"] == ("dashboard",)
	assert set(INVALIDATES["evaluation"]) == {"eval_summary", "dashboard", "due_process"}
	assert set(INVALIDATES["meeting"]) == {"eval_summary", "due_process"}
	assert set(INVALIDATES["progress"]) == {"progress", "due_process"}


def test_invalidate_for_meeting_keeps_dashboard():
	cache.set("t@x.org", "dashboard", 1)
	cache.set("t@x.org", "eval_summary", 1)
	cache.set("t@x.org", "due_process:Q2", 1)
	invalidate_for("t@x.org", "meeting")
	assert cache.get("t@x.org", "dashboard") == 1
	assert cache.get("t@x.org", "eval_summary") is None
	assert cache.get("t@x.org", "due_process:Q2") is None


def test_cached_loads_once_until_invalidated():
	calls = []

	def loader():
		calls.append(1)
		return {"n": len(calls)}

	assert cached("t@x.org", "students", loader) == {"n": 1}
	assert cached("t@x.org", "students", loader) == {"n": 1}
	invalidate_for("t@x.org", "student")
	assert cached("t@x.org", "students", loader) == {"n": 2}
	assert len(calls) == 2
