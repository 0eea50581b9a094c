"""
Test suite for the Mem facade.

Covers:
- Read path: defaults, Lazy producers, namespacing
- Local read buffer: eligibility, invalidation, staleness, clear()
- Disabled mode
- Bulk operations
- Tags: round trip, purge, de-duplication, TTL sharing
- has() consistency, stats, default instance
"""

from __future__ import annotations

import pytest

from slim_memory import (
    CacheConfigFault,
    CacheConnectionFault,
    Lazy,
    Mem,
    MemConfig,
    BackendConfig,
    get_default_mem,
    set_default_mem,
)
from slim_memory.testing import InMemoryBackend

MEMORY_MASTER = {"driver": "memory", "host": "master", "port": 1}


def _counter():
    calls = []

    def produce():
        calls.append(1)
        return "produced"

    return produce, calls


# ============================================================================
# Read path
# ============================================================================


class TestGet:

    def test_miss_returns_default(self, mem):
        assert mem.get("nope") is None
        assert mem.get("nope", "d") == "d"

    def test_hit_returns_value(self, mem):
        mem.set("k", {"a": 1})
        assert mem.get("k") == {"a": 1}

    def test_lazy_default_only_runs_on_miss(self, mem):
        produce, calls = _counter()
        mem.set("k", 1)

        assert mem.get("k", Lazy(produce)) == 1
        assert calls == []

        assert mem.get("missing", Lazy(produce)) == "produced"
        assert calls == [1]

    def test_plain_callable_default_is_returned_as_is(self, mem):
        assert mem.get("nope", default=len) is len

    def test_reads_prefer_slave(self, drivers):
        mem = Mem(
            [MEMORY_MASTER, {"driver": "memory", "host": "replica", "role": "slave"}],
            drivers=drivers,
        )
        mem.get("k")
        assert mem.get_instance(False).host == "replica"
        assert mem.get_instance(False).call_names() == ["get"]
        assert mem.get_instance(True).calls == []

    def test_no_connection_raises(self):
        mem = Mem()
        with pytest.raises(CacheConnectionFault):
            mem.get("k")

    def test_connection_fault_is_a_connection_error(self):
        with pytest.raises(ConnectionError, match="Unable to establish connection"):
            Mem([{"driver": "unknown"}]).set("k", 1)


# ============================================================================
# Namespacing
# ============================================================================


class TestNamespacing:

    def test_prefix_applied_to_writes(self, mem, backend):
        mem.prefix = "app"
        mem.set("x", 1)

        assert backend.get("app:x") == 1
        assert backend.get("x") is None

    def test_prefix_applied_to_reads(self, mem, backend):
        mem.prefix = "app"
        backend.set("app:x", "stored")
        backend.reset_calls()

        assert mem.get("x") == "stored"
        assert backend.calls == [("get", "app:x")]

    def test_no_prefix_leaves_key_untouched(self, mem, backend):
        mem.set("x", 1)
        assert backend.raw("x") == 1

    def test_prefix_from_constructor(self, drivers):
        mem = Mem([MEMORY_MASTER], prefix="svc", drivers=drivers)
        mem.set("k", "v")
        assert mem.get_instance(True).keys() == ["svc:k"]

    def test_has_uses_prefix(self, mem, backend):
        mem.prefix = "app"
        backend.set("app:x", 1)
        assert mem.has("x") is True
        backend.set("y", 1)
        assert mem.has("y") is False


# ============================================================================
# Local read buffer
# ============================================================================


class TestLocalBuffer:

    def test_cached_key_served_from_buffer_after_set(self, mem, backend):
        mem.cached_keys = {"k"}
        mem.set("k", "v")
        backend.reset_calls()

        assert mem.get("k") == "v"
        assert backend.calls == []

    def test_uncached_key_always_goes_remote(self, mem, backend):
        mem.set("k", "v")
        backend.reset_calls()

        assert mem.get("k") == "v"
        assert mem.get("k") == "v"
        assert backend.calls == [("get", "k"), ("get", "k")]
        assert len(mem.buffer) == 0

    def test_remote_read_populates_buffer(self, mem, backend):
        mem.cached_keys = {"k"}
        backend.set("k", "remote")
        backend.reset_calls()

        assert mem.get("k") == "remote"
        assert mem.get("k") == "remote"
        assert backend.calls == [("get", "k")]

    def test_buffer_may_serve_stale_value(self, mem, backend):
        mem.cached_keys = {"k"}
        mem.set("k", "old")
        backend.set("k", "new")

        assert mem.get("k") == "old"

    def test_miss_is_not_buffered(self, mem, backend):
        mem.cached_keys = {"k"}
        assert mem.get("k") is None

        backend.set("k", "late")
        assert mem.get("k") == "late"

    def test_set_replaces_buffered_value(self, mem, backend):
        mem.cached_keys = {"k"}
        mem.set("k", "v1")
        mem.set("k", "v2")
        backend.reset_calls()

        assert mem.get("k") == "v2"
        assert backend.calls == []

    def test_delete_evicts(self, mem, backend):
        mem.cached_keys = {"k"}
        mem.set("k", "v")
        assert mem.delete("k") is True
        assert "k" not in mem.buffer

        backend.reset_calls()
        assert mem.get("k", "gone") == "gone"
        assert backend.calls == [("get", "k")]

    def test_rejected_write_leaves_buffer_empty(self, mem, backend, monkeypatch):
        mem.cached_keys = {"k"}
        mem.set("k", "v")
        monkeypatch.setattr(backend, "set", lambda *a, **kw: False)

        assert mem.set("k", "v2") is False
        assert "k" not in mem.buffer

    def test_clear_empties_buffer(self, mem, backend):
        mem.cached_keys = {"a", "b"}
        mem.set("a", 1)
        mem.set("b", 2)
        assert len(mem.buffer) == 2

        assert mem.clear() is True
        assert len(mem.buffer) == 0

        backend.set("a", "again")
        backend.reset_calls()
        assert mem.get("a") == "again"
        assert backend.calls == [("get", "a")]

    def test_removing_key_from_whitelist_stops_buffering(self, mem, backend):
        mem.cached_keys = {"k"}
        mem.set("k", "v")
        mem.cached_keys.discard("k")
        backend.reset_calls()

        mem.get("k")
        assert backend.calls == [("get", "k")]

    def test_cached_keys_from_constructor(self, drivers):
        mem = Mem([MEMORY_MASTER], cached_keys=["settings"], drivers=drivers)
        assert mem.cached_keys == {"settings"}

    def test_mutating_written_value_does_not_reach_buffer(self, mem):
        mem.cached_keys = {"settings"}
        value = {"theme": "dark"}
        mem.set("settings", value)
        value["theme"] = "light"

        assert mem.get("settings") == {"theme": "dark"}

    def test_mutating_read_value_does_not_reach_buffer(self, mem):
        mem.cached_keys = {"settings"}
        mem.set("settings", {"theme": "dark", "tabs": ["a"]})

        first = mem.get("settings")
        first["tabs"].append("b")

        assert mem.get("settings") == {"theme": "dark", "tabs": ["a"]}

    def test_bulk_read_returns_copies(self, mem):
        mem.cached_keys = {"a"}
        mem.set_multiple({"a": [1]})

        mem.get_multiple(["a"])["a"].append(2)
        assert mem.get_multiple(["a"]) == {"a": [1]}


# ============================================================================
# has()
# ============================================================================


class TestHas:

    def test_has_bypasses_buffer(self, mem, backend):
        mem.cached_keys = {"k"}
        mem.set("k", "v")
        backend.delete("k")

        assert mem.get("k") == "v"
        assert mem.has("k") is False

    def test_has_sees_remote_write(self, mem, backend):
        mem.cached_keys = {"k"}
        assert mem.get("k") is None
        backend.set("k", 1)
        assert mem.has("k") is True

    def test_has_uses_master(self, drivers):
        mem = Mem(
            [MEMORY_MASTER, {"driver": "memory", "host": "replica", "role": "slave"}],
            drivers=drivers,
        )
        mem.has("k")
        assert mem.get_instance(True).call_names() == ["has"]
        assert mem.get_instance(False).calls == []


# ============================================================================
# Disabled mode
# ============================================================================


class TestDisabled:

    def test_get_returns_default_without_backend_call(self, mem, backend):
        mem.cached_keys = {"k"}
        mem.set("k", "v")
        mem.disabled = True
        backend.reset_calls()

        assert mem.get("k", "d") == "d"
        assert backend.calls == []

    def test_lazy_default_runs_when_disabled(self, mem):
        produce, calls = _counter()
        mem.disabled = True
        assert mem.get("k", Lazy(produce)) == "produced"
        assert calls == [1]

    def test_get_multiple_returns_default(self, mem, backend):
        mem.set("a", 1)
        mem.disabled = True
        backend.reset_calls()

        assert mem.get_multiple(["a"]) == {}
        assert mem.get_multiple(["a"], default="d") == "d"
        assert backend.calls == []

    def test_writes_are_unaffected(self, drivers):
        mem = Mem([MEMORY_MASTER], disabled=True, drivers=drivers)
        assert mem.set("k", "v") is True
        assert mem.get_instance(True).raw("k") == "v"
        assert mem.has("k") is True


# ============================================================================
# Bulk operations
# ============================================================================


class TestBulk:

    def test_get_multiple_mixes_buffer_and_remote(self, mem, backend):
        mem.cached_keys = {"a"}
        mem.set("a", 1)
        mem.set("b", 2)
        backend.reset_calls()

        assert mem.get_multiple(["a", "b", "c"]) == {"a": 1, "b": 2}
        assert backend.calls == [("get_multiple", ("b", "c"))]

    def test_get_multiple_all_buffered_skips_backend(self, mem, backend):
        mem.cached_keys = {"a", "b"}
        mem.set_multiple({"a": 1, "b": 2})
        backend.reset_calls()

        assert mem.get_multiple(["a", "b"]) == {"a": 1, "b": 2}
        assert backend.calls == []

    def test_get_multiple_populates_buffer(self, mem, backend):
        mem.cached_keys = {"a"}
        backend.set("a", 1)
        backend.set("b", 2)

        mem.get_multiple(["a", "b"])
        assert "a" in mem.buffer
        assert "b" not in mem.buffer

    def test_get_multiple_translates_prefixed_keys(self, mem, backend):
        mem.prefix = "app"
        mem.set_multiple({"a": 1, "b": 2})
        backend.reset_calls()

        assert mem.get_multiple(["a", "b"]) == {"a": 1, "b": 2}
        assert backend.calls == [("get_multiple", ("app:a", "app:b"))]

    def test_get_multiple_nothing_found(self, mem):
        produce, calls = _counter()
        assert mem.get_multiple(["x", "y"]) == {}
        assert mem.get_multiple(["x"], default="none") == "none"
        assert mem.get_multiple(["x"], default=Lazy(produce)) == "produced"
        assert calls == [1]

    def test_set_multiple_buffers_cached_keys(self, mem, backend):
        mem.cached_keys = {"a"}
        assert mem.set_multiple({"a": 1, "b": 2}, ttl=60) is True
        assert "a" in mem.buffer
        assert "b" not in mem.buffer
        assert backend.calls[-1] == ("set_multiple", ("a", "b"), 60, None)

    def test_delete_multiple_is_namespaced(self, mem, backend):
        mem.prefix = "app"
        mem.set_multiple({"a": 1, "b": 2})
        backend.reset_calls()

        assert mem.delete_multiple(["a", "b"]) is True
        assert backend.calls == [("delete_multiple", ("app:a", "app:b"))]
        assert backend.keys() == []

    def test_delete_multiple_evicts(self, mem):
        mem.cached_keys = {"a", "b"}
        mem.set_multiple({"a": 1, "b": 2})
        mem.delete_multiple(["a", "b"])
        assert len(mem.buffer) == 0


# ============================================================================
# Tags
# ============================================================================


class TestTags:

    def test_round_trip(self, mem):
        mem.set("a", 1, tag="g")
        mem.set("b", 2, tag="g")
        assert mem.get_by_tag("g") == {"a": 1, "b": 2}

    def test_round_trip_with_prefix(self, mem, backend):
        mem.prefix = "app"
        mem.set("a", 1, tag="g")
        mem.set("b", 2, tag="g")

        assert mem.get_by_tag("g") == {"a": 1, "b": 2}
        assert backend.raw("app:g") == ["app:a", "app:b"]

    def test_set_multiple_with_tag(self, mem, backend):
        mem.set("a", 1, tag="g")
        mem.set_multiple({"b": 2, "c": 3}, tag="g")

        assert backend.raw("g") == ["a", "b", "c"]
        assert mem.get_by_tag("g") == {"a": 1, "b": 2, "c": 3}

    def test_members_deduplicated(self, mem, backend):
        mem.set("a", 1, tag="g")
        mem.set("a", 2, tag="g")
        assert backend.raw("g") == ["a"]

    def test_tag_shares_ttl(self, mem, backend):
        mem.set("a", 1, ttl=30, tag="g")
        assert ("set", "g", 30, None) in backend.calls
        assert ("set", "a", 30, "g") in backend.calls

    def test_delete_by_tag(self, mem, backend):
        mem.set("a", 1, tag="g")
        mem.set("b", 2, tag="g")
        mem.set("c", 3)

        assert mem.delete_by_tag("g") is True
        assert backend.keys() == ["c"]
        assert mem.get_by_tag("g") == {}

    def test_delete_by_unknown_tag_fails(self, mem):
        assert mem.delete_by_tag("nope") is False

    def test_get_by_unknown_tag_is_empty(self, mem):
        assert mem.get_by_tag("nope") == {}

    def test_deleted_member_stays_listed(self, mem, backend):
        mem.set("a", 1, tag="g")
        mem.delete("a")

        assert backend.raw("g") == ["a"]
        assert mem.get_by_tag("g") == {}

    def test_delete_by_tag_evicts_buffered_members(self, mem):
        mem.prefix = "app"
        mem.cached_keys = {"a"}
        mem.set("a", 1, tag="g")
        assert "a" in mem.buffer

        mem.delete_by_tag("g")
        assert "a" not in mem.buffer
        assert mem.get("a", "gone") == "gone"

    def test_tag_name_holding_plain_value(self, mem, backend):
        mem.cached_keys = {"a"}
        mem.set("a", 1)
        backend.set("g", 42)

        assert mem.get_by_tag("g") == {}
        assert mem.delete_by_tag("g") is False
        assert backend.raw("g") == 42
        assert "a" in mem.buffer


# ============================================================================
# clear()
# ============================================================================


class TestClear:

    def test_clear_flushes_backend(self, mem, backend):
        mem.set("a", 1)
        mem.set("b", 2, tag="g")
        assert mem.clear() is True
        assert backend.keys() == []

    def test_clear_is_not_namespace_scoped(self, mem, backend):
        backend.set("other:k", 1)
        mem.prefix = "app"
        mem.clear()
        assert backend.keys() == []


# ============================================================================
# Stats, construction, default instance
# ============================================================================


class TestStats:

    def test_counters(self, mem):
        mem.cached_keys = {"k"}
        mem.set("k", "v")
        mem.get("k")
        mem.get("miss")
        mem.delete("k")

        stats = mem.stats()
        assert stats.writes == 1
        assert stats.buffer_hits == 1
        assert stats.remote_reads == 1
        assert stats.misses == 1
        assert stats.deletes == 1
        assert stats.hit_rate == pytest.approx(50.0)

    def test_to_dict(self, mem):
        d = mem.stats().to_dict()
        assert d["hit_rate"] == 0.0
        assert "buffer_hits" in d


class TestConstruction:

    def test_from_config(self, drivers):
        config = MemConfig(
            connections=[BackendConfig(driver="memory", host="h", port=1)],
            prefix="p",
            cached_keys=("a",),
            disabled=True,
            pool_strategy="random",
        )
        mem = Mem.from_config(config, drivers=drivers)

        assert mem.prefix == "p"
        assert mem.cached_keys == {"a"}
        assert mem.disabled is True
        assert mem.pool.strategy == "random"
        assert isinstance(mem.get_instance(True), InMemoryBackend)

    def test_independent_instances(self, drivers):
        first = Mem([MEMORY_MASTER], drivers=drivers, cached_keys=["k"])
        second = Mem([MEMORY_MASTER], drivers=drivers, cached_keys=["k"])
        first.set("k", 1)

        assert "k" in first.buffer
        assert "k" not in second.buffer
        assert second.get("k") is None

    def test_repr(self, mem):
        assert "Mem" in repr(mem)


class TestClose:

    def test_close_releases_backends(self, mem, backend):
        mem.cached_keys = {"k"}
        mem.set("k", "v")
        mem.close()

        assert backend.closed is True
        assert len(mem.buffer) == 0
        assert not mem.pool.is_materialized("master")

    def test_usable_after_close(self, mem, backend):
        mem.close()
        fresh = mem.get_instance(True)

        assert fresh is not backend
        assert fresh.closed is False

    def test_context_manager(self, drivers):
        with Mem([MEMORY_MASTER], drivers=drivers) as mem:
            mem.set("k", "v")
            backend = mem.get_instance(True)

        assert backend.closed is True
        assert backend.call_names()[-1] == "close"

    def test_close_without_connections(self, drivers):
        Mem([MEMORY_MASTER], drivers=drivers).close()


class TestDefaultInstance:

    def test_unset_raises(self):
        with pytest.raises(CacheConfigFault):
            get_default_mem()

    def test_set_and_get(self, mem):
        set_default_mem(mem)
        assert get_default_mem() is mem
