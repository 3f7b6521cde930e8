"""
Concurrency tests: lock-free reads of a built registry and the exactly-once
guarantee of LazyRegistry.
"""

import random
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from facade_registry import (
    DuplicateEventBindingError, FacadeRegistry, LazyRegistry, RpcEntry, RpcReceiver, build_registry
)


def test_100_concurrent_readers_see_identical_results(facade_entries):
    registry = build_registry(facades=facade_entries, sdk_level=19)
    names = registry.method_names()
    expected_supported = registry.collect_supported_method_descriptors()
    barrier = Barrier(100)

    def reader(worker_id):
        barrier.wait()
        for _ in range(20):
            name = random.choice(names)
            assert registry.get_method_descriptor(name).name == name
        assert registry.collect_supported_method_descriptors() == expected_supported
        assert set(registry.collect_start_event_method_descriptors()) == {
            "battery", "signal_strengths", "webcam", "ble_scan",
        }
        return worker_id

    with ThreadPoolExecutor(max_workers=100) as executor:
        results = list(executor.map(reader, range(100)))

    assert sorted(results) == list(range(100))


class TestLazyRegistry:

    def test_builds_on_first_access(self, facade_entries):
        lazy = LazyRegistry(facades=facade_entries, sdk_level=4)
        assert not lazy.is_built

        registry = lazy.get()

        assert lazy.is_built
        assert isinstance(registry, FacadeRegistry)
        assert lazy.get() is registry

    def test_builder_runs_exactly_once_under_contention(self, facade_entries):
        calls = []
        barrier = Barrier(32)

        def builder():
            calls.append(1)
            return build_registry(facades=facade_entries, sdk_level=19)

        lazy = LazyRegistry(builder)

        def access(_):
            barrier.wait()
            return lazy.get()

        with ThreadPoolExecutor(max_workers=32) as executor:
            registries = list(executor.map(access, range(32)))

        assert len(calls) == 1
        assert all(r is registries[0] for r in registries)

    def test_failed_build_is_reraised_and_never_published(self):
        def _noop(self):
            return None

        first = type("GpsFacade", (RpcReceiver,), {
            'rpc_entries': (RpcEntry("gps_track", _noop, start_event="location"),),
        })
        second = type("LocationFacade", (RpcReceiver,), {
            'rpc_entries': (RpcEntry("location_track", _noop, start_event="location"),),
        })
        calls = []

        def builder():
            calls.append(1)
            return build_registry(facades=[first, second], sdk_level=1)

        lazy = LazyRegistry(builder)

        for _ in range(3):
            with pytest.raises(DuplicateEventBindingError):
                lazy.get()

        assert len(calls) == 1
        assert not lazy.is_built

    def test_rejects_builder_and_kwargs(self):
        with pytest.raises(TypeError):
            LazyRegistry(lambda: None, sdk_level=3)
