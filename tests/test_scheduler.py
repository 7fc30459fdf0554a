"""
Tests for background generation scheduling and double buffering.
"""

import threading

import pytest
import numpy as np
from py_terrain.core.diamond_square import GridSizeError
from py_terrain.core.geometry import Box
from py_terrain.core.scheduler import (
    BufferAllocationError, GenerationHandle, GenerationScheduler
)
from py_terrain.core.sink import TextureSink
from py_terrain.utils.random import create_rng

TIMEOUT = 10


class GatedRandom:
    """Random source whose first draw blocks until the gate opens."""

    def __init__(self, seed, started, gate):
        self._rng = create_rng(seed)
        self._started = started
        self._gate = gate

    def uniform(self, low, high):
        self._started.set()
        self._gate.wait(TIMEOUT)
        return self._rng.uniform(low, high)


class FailingRandom:
    def uniform(self, low, high):
        raise RuntimeError("random source exhausted")


@pytest.fixture
def scheduler():
    sched = GenerationScheduler(Box.grid(17, 17), roughness=1.0, seed="scheduler")
    yield sched
    sched.shutdown()


@pytest.fixture
def gated_scheduler():
    started = threading.Event()
    gate = threading.Event()

    def factory(seed):
        return GatedRandom(seed, started, gate)

    sched = GenerationScheduler(Box.grid(17, 17), seed="gated", rng_factory=factory)
    sched.started = started
    sched.gate = gate
    yield sched
    gate.set()
    sched.shutdown()


class TestGenerationScheduler:
    """Test admission, completion and buffer swaps."""

    def test_initial_state(self, scheduler):
        assert scheduler.generation_count == 0
        assert scheduler.current is None
        assert not scheduler.is_busy
        assert scheduler.wait_for_idle(0)
        assert np.all(scheduler.active_heights() == 0.0)

    def test_completed_run(self, scheduler):
        handle = scheduler.request_generation()
        assert isinstance(handle, GenerationHandle)
        assert handle.wait(TIMEOUT)

        heights = handle.result()
        assert handle.status == "completed"
        assert handle.fraction_completed == 1.0
        assert handle.progress.finished
        assert handle.elapsed_seconds is not None
        assert scheduler.generation_count == 1
        assert not scheduler.is_busy
        np.testing.assert_array_equal(scheduler.active_heights(), heights)

    def test_active_heights_is_read_only(self, scheduler):
        scheduler.request_generation().wait(TIMEOUT)
        view = scheduler.active_heights()
        with pytest.raises(ValueError):
            view[0] = 1.0

    def test_request_while_busy_is_declined(self, gated_scheduler):
        first = gated_scheduler.request_generation()
        assert first is not None
        assert gated_scheduler.started.wait(TIMEOUT)

        assert gated_scheduler.is_busy
        assert gated_scheduler.request_generation() is None
        assert first.status == "running"
        assert first.fraction_completed < 1.0

        gated_scheduler.gate.set()
        assert first.wait(TIMEOUT)
        assert gated_scheduler.generation_count == 1

        second = gated_scheduler.request_generation()
        assert second is not None
        assert second.wait(TIMEOUT)
        assert gated_scheduler.generation_count == 2

    def test_wait_times_out_while_running(self, gated_scheduler):
        handle = gated_scheduler.request_generation()
        assert gated_scheduler.started.wait(TIMEOUT)
        assert not handle.wait(0.05)
        assert not gated_scheduler.wait_for_idle(0.05)

    def test_run_ids_increase(self, scheduler):
        ids = []
        for _ in range(3):
            handle = scheduler.request_generation()
            handle.wait(TIMEOUT)
            ids.append(handle.run_id)
        assert ids == [1, 2, 3]
        assert scheduler.current.run_id == 3

    def test_callback_runs_once_after_swap(self, scheduler):
        calls = []

        def on_complete(handle):
            calls.append((
                handle.run_id,
                scheduler.generation_count,
                scheduler.is_busy,
                np.array(scheduler.active_heights()),
            ))

        handle = scheduler.request_generation(on_complete=on_complete)
        heights = handle.result(TIMEOUT)

        assert len(calls) == 1
        run_id, generation, busy, active = calls[0]
        assert run_id == handle.run_id
        assert generation == 1
        assert not busy
        np.testing.assert_array_equal(active, heights)

    def test_callback_can_request_next_run(self, scheduler):
        follow_ups = []

        def on_complete(handle):
            follow_ups.append(scheduler.request_generation(seed="follow-up"))

        scheduler.request_generation(on_complete=on_complete).wait(TIMEOUT)

        assert follow_ups[0] is not None
        assert follow_ups[0].wait(TIMEOUT)
        assert scheduler.generation_count == 2

    def test_failing_callback_marks_run_failed(self, scheduler):
        def on_complete(handle):
            raise ValueError("viewer gone")

        handle = scheduler.request_generation(on_complete=on_complete)
        assert handle.wait(TIMEOUT)
        assert handle.status == "failed"
        with pytest.raises(ValueError):
            handle.result()
        # The swap itself still happened.
        assert scheduler.generation_count == 1
        assert not scheduler.is_busy

    def test_failed_run_keeps_previous_heights(self):
        rngs = iter([create_rng("good"), FailingRandom()])
        with GenerationScheduler(Box.grid(9, 9), rng_factory=lambda seed: next(rngs)) as sched:
            good = sched.request_generation().result(TIMEOUT)

            handle = sched.request_generation()
            assert handle.wait(TIMEOUT)
            assert handle.status == "failed"
            with pytest.raises(RuntimeError, match="exhausted"):
                handle.result()

            assert sched.generation_count == 1
            assert not sched.is_busy
            np.testing.assert_array_equal(sched.active_heights(), good)

    def test_double_buffer_alternates(self, scheduler):
        first = scheduler.request_generation(seed="first").result(TIMEOUT)
        first_view = scheduler.active_heights()

        second = scheduler.request_generation(seed="second").result(TIMEOUT)

        assert not np.array_equal(first, second)
        # The second run filled the other buffer.
        np.testing.assert_array_equal(first_view, first)
        np.testing.assert_array_equal(scheduler.active_heights(), second)

    def test_same_seed_reproduces_heights(self, scheduler):
        a = scheduler.request_generation(seed=7).result(TIMEOUT)
        b = scheduler.request_generation(seed=7).result(TIMEOUT)
        np.testing.assert_array_equal(a, b)

    def test_roughness_override(self, scheduler):
        handle = scheduler.request_generation(roughness=0.0)
        heights = handle.result(TIMEOUT)
        assert handle.roughness == 0.0
        assert np.all(heights == 0.0)

    def test_negative_roughness_rejected_and_admission_released(self, scheduler):
        with pytest.raises(GridSizeError):
            scheduler.request_generation(roughness=-1.0)
        assert not scheduler.is_busy
        assert scheduler.request_generation() is not None

    def test_copy_active_to_sink(self, scheduler):
        heights = scheduler.request_generation().result(TIMEOUT)
        sink = TextureSink(17, 17)

        generation = scheduler.copy_active_to(sink)

        assert generation == 1
        np.testing.assert_array_equal(sink.pixels.reshape(-1), heights)


class TestSchedulerConstruction:
    """Test construction failures."""

    def test_invalid_grid(self):
        with pytest.raises(GridSizeError):
            GenerationScheduler(Box.grid(16, 16))

    def test_buffer_allocation_failure(self, monkeypatch):
        def no_memory(length):
            raise MemoryError()

        monkeypatch.setattr("py_terrain.core.scheduler._allocate_buffer", no_memory)

        with pytest.raises(BufferAllocationError):
            GenerationScheduler(Box.grid(9, 9))
