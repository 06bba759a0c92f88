"""Tests for the builder result cache."""

from __future__ import annotations

import pytest

from binmodel.schema import Point, create_rounded_rect
from gridbin.cache import (
    BASE,
    BIN,
    CUTOUT,
    NAMESPACES,
    ResultCache,
    normalize_key_part,
)


class Builder:
    """Callable counting how often it was invoked."""

    def __init__(self, value="built"):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


class TestSignatures:
    """Test cases for key normalization."""

    def test_int_and_float_share_a_signature(self):
        cache = ResultCache()
        assert cache.signature([1, 2.5]) == cache.signature([1.0, 2.5])

    def test_negative_zero_is_folded(self):
        cache = ResultCache()
        assert cache.signature([-0.0]) == cache.signature([0.0])
        assert normalize_key_part(-0.0) == 0.0

    def test_dict_key_order_does_not_matter(self):
        cache = ResultCache()
        assert cache.signature([{"a": 1, "b": 2}]) == cache.signature([{"b": 2, "a": 1}])

    def test_points_and_outlines_normalize_to_plain_values(self, rect_outline):
        assert normalize_key_part(Point(1, -0.0)) == {"x": 1.0, "y": 0.0}

        data = normalize_key_part(rect_outline)
        assert data["id"] == "rect"
        assert data["width"] == 80.0
        assert data["depth"] == 20.0

    def test_identity_toggle(self):
        a = create_rounded_rect("a", 10.0, 10.0)
        b = create_rounded_rect("b", 10.0, 10.0)

        with_ids = ResultCache(include_identity=True)
        without_ids = ResultCache(include_identity=False)

        assert with_ids.signature([a]) != with_ids.signature([b])
        assert without_ids.signature([a]) == without_ids.signature([b])

    def test_geometry_changes_the_signature(self):
        cache = ResultCache()
        a = create_rounded_rect("a", 10.0, 10.0, depth=5.0)
        deeper = create_rounded_rect("a", 10.0, 10.0, depth=6.0)

        assert cache.signature([a]) != cache.signature([deeper])

    def test_unsupported_value_raises(self):
        with pytest.raises(TypeError, match="cache key"):
            normalize_key_part(object())


class TestResultCache:
    """Test cases for ResultCache storage and statistics."""

    def test_rejects_empty_capacity(self):
        with pytest.raises(ValueError, match="at least 1"):
            ResultCache(max_entries=0)

    def test_hit_returns_stored_result(self):
        cache = ResultCache()
        builder = Builder(object())

        first = cache.get_or_build(BASE, (84.0, 42.0), builder)
        second = cache.get_or_build(BASE, (84, 42), builder)

        assert first is second
        assert builder.calls == 1
        assert cache.stats()[BASE] == {"hits": 1, "misses": 1, "evictions": 0, "size": 1}

    def test_namespaces_are_separate(self):
        cache = ResultCache()
        cache.get_or_build(BASE, (1.0,), Builder("base"))

        assert cache.get_or_build(BIN, (1.0,), Builder("bin")) == "bin"
        assert len(cache) == 2

    def test_least_recently_used_is_evicted(self):
        cache = ResultCache(max_entries=2)
        cache.get_or_build(CUTOUT, ("a",), Builder("a"))
        cache.get_or_build(CUTOUT, ("b",), Builder("b"))
        cache.get_or_build(CUTOUT, ("a",), Builder("unused"))
        cache.get_or_build(CUTOUT, ("c",), Builder("c"))

        rebuilt = Builder("b again")
        assert cache.get_or_build(CUTOUT, ("b",), rebuilt) == "b again"
        assert rebuilt.calls == 1

        stats = cache.stats()[CUTOUT]
        assert stats["evictions"] == 2
        assert stats["size"] == 2

    def test_failing_builder_stores_nothing(self):
        cache = ResultCache()

        def fail():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            cache.get_or_build(BIN, ("x",), fail)

        assert len(cache) == 0
        builder = Builder()
        cache.get_or_build(BIN, ("x",), builder)
        assert builder.calls == 1

    def test_get_and_put(self):
        cache = ResultCache()
        key = cache.signature(["k"])

        assert cache.get(BASE, key) is None
        cache.put(BASE, key, "value")
        assert cache.get(BASE, key) == "value"

    def test_unknown_namespace_raises(self):
        cache = ResultCache()
        with pytest.raises(KeyError, match="Unknown cache namespace"):
            cache.get_or_build("tiles", (1,), Builder())

    def test_clear_one_namespace_keeps_counters(self):
        cache = ResultCache()
        cache.get_or_build(BASE, (1,), Builder())
        cache.get_or_build(BIN, (1,), Builder())

        cache.clear(BASE)

        stats = cache.stats()
        assert stats[BASE]["size"] == 0
        assert stats[BASE]["misses"] == 1
        assert stats[BIN]["size"] == 1
        assert len(cache) == 1

    def test_clear_everything(self):
        cache = ResultCache()
        for namespace in NAMESPACES:
            cache.get_or_build(namespace, (1,), Builder())

        cache.clear()

        assert len(cache) == 0
        assert all(s["size"] == 0 for s in cache.stats().values())
