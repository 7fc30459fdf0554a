"""
Background scheduling of diamond-square generation runs.

One worker thread runs generation. At most one run is admitted at a time;
a request made while a run is in flight is declined (None is returned)
rather than queued. Each run renders into its own HeightField, copies the
result into the inactive half of a double buffer and then swaps the active
index, so readers only ever see a complete buffer.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, List, Optional

import numpy as np
import structlog

from .diamond_square import DiamondSquareAlgorithm, validate_grid
from .geometry import Box
from .progress import Progress, ProgressSnapshot
from .sink import copy_to_sink
from ..utils.random import Seed, create_rng

logger = structlog.get_logger()


class BufferAllocationError(RuntimeError):
    """Raised when the scheduler cannot allocate its output buffers."""


def _allocate_buffer(length: int) -> np.ndarray:
    return np.zeros(length, dtype=np.float32)


class GenerationHandle:
    """
    Caller's view of one accepted generation run.

    The handle is returned before the run starts. Progress can be polled at
    any time; `wait()` and `result()` block until the run, including its
    completion callback, has finished.
    """

    def __init__(self, run_id: int, roughness: float, seed: Seed):
        self.run_id = run_id
        self.roughness = roughness
        self.seed = seed
        self.elapsed_seconds: Optional[float] = None
        # Run-level progress: one unit for rendering, one for the buffer swap.
        self._progress = Progress(total_units=1)
        self._future: Future = Future()

    @property
    def progress(self) -> ProgressSnapshot:
        return self._progress.snapshot()

    @property
    def fraction_completed(self) -> float:
        return self._progress.fraction_completed

    def done(self) -> bool:
        return self._future.done()

    @property
    def status(self) -> str:
        """One of "running", "completed" or "failed"."""
        if not self._future.done():
            return "running"
        return "failed" if self._future.exception() is not None else "completed"

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the run has finished. Returns False on timeout."""
        try:
            self._future.exception(timeout=timeout)
        except FutureTimeoutError:
            return False
        return True

    def result(self, timeout: Optional[float] = None) -> np.ndarray:
        """Heights produced by this run; re-raises any failure from the run."""
        return self._future.result(timeout=timeout)

    def __repr__(self) -> str:
        return f"GenerationHandle(run_id={self.run_id}, fraction={self.fraction_completed:.3f})"


CompletionCallback = Callable[[GenerationHandle], None]


class GenerationScheduler:
    """Runs generation off the caller's thread and double-buffers the output."""

    def __init__(
        self,
        grid: Box,
        roughness: float = 1.0,
        seed: Seed = None,
        rng_factory: Callable[[Seed], object] = create_rng,
    ):
        """
        Initialize the scheduler and allocate both output buffers.

        Args:
            grid: Box covering the whole lattice
            roughness: Default roughness for runs that do not override it
            seed: Default seed; None gives different terrain every run
            rng_factory: Builds the random source for a run from its seed

        Raises:
            GridSizeError: If the grid dimensions are not 2^n + 1
            BufferAllocationError: If the double buffer cannot be allocated
        """
        validate_grid(grid)
        self.grid = grid
        self.roughness = roughness
        self.seed = seed
        self._rng_factory = rng_factory

        length = grid.size.w * grid.size.h
        try:
            self._buffers: List[np.ndarray] = [_allocate_buffer(length) for _ in range(2)]
        except MemoryError as e:
            logger.error("Failed to allocate height buffers", cells=length, error=str(e))
            raise BufferAllocationError(
                f"Could not allocate two {grid.size.w}x{grid.size.h} height buffers"
            ) from e

        self._active = 0
        self._generation = 0
        self._next_run_id = 1
        self._admission = threading.Lock()
        self._swap_lock = threading.Lock()
        self._current: Optional[GenerationHandle] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="terrain-generation")

        logger.info("Generation scheduler ready", width=grid.size.w, height=grid.size.h)

    # Requests

    def request_generation(
        self,
        roughness: Optional[float] = None,
        on_complete: Optional[CompletionCallback] = None,
        seed: Seed = None,
    ) -> Optional[GenerationHandle]:
        """
        Start a generation run in the background.

        A run stops counting as in flight once its buffer swap is done, before
        its on_complete runs. A request made during that callback is accepted
        and starts on the worker after the callback returns.

        Args:
            roughness: Roughness for this run; the scheduler default if None
            on_complete: Called once with the handle after the buffer swap
            seed: Seed for this run; the scheduler default if None

        Returns:
            Handle for the new run, or None if a run is already in flight
        """
        if not self._admission.acquire(blocking=False):
            logger.info("Generation request declined, run already in flight")
            return None

        run_roughness = self.roughness if roughness is None else roughness
        run_seed = self.seed if seed is None else seed

        try:
            # Validates roughness on the caller's thread so bad input fails fast.
            algorithm = DiamondSquareAlgorithm(self.grid, run_roughness, self._rng_factory(run_seed))
            handle = GenerationHandle(self._next_run_id, run_roughness, run_seed)
            self._next_run_id += 1
            self._current = handle
            self._executor.submit(self._run, handle, algorithm, on_complete)
        except Exception:
            self._admission.release()
            raise

        logger.info("Generation requested", run_id=handle.run_id, roughness=run_roughness)
        return handle

    def _run(
        self,
        handle: GenerationHandle,
        algorithm: DiamondSquareAlgorithm,
        on_complete: Optional[CompletionCallback],
    ) -> None:
        started = time.perf_counter()
        logger.info("Starting terrain generation", run_id=handle.run_id)

        try:
            field = algorithm.render(handle._progress)

            with self._swap_lock:
                inactive = 1 - self._active
            # The inactive buffer is never read, so it can be filled unlocked.
            np.copyto(self._buffers[inactive], field.values)
            with self._swap_lock:
                self._active = inactive
                self._generation += 1
            handle._progress.complete(1)
        except Exception as e:
            logger.error("Terrain generation failed", run_id=handle.run_id, error=str(e))
            self._admission.release()
            handle._future.set_exception(e)
            return

        handle.elapsed_seconds = time.perf_counter() - started
        self._admission.release()
        logger.info(
            "Terrain generation completed",
            run_id=handle.run_id,
            generation=self._generation,
            seconds=round(handle.elapsed_seconds, 3),
        )

        if on_complete is not None:
            try:
                on_complete(handle)
            except Exception as e:
                logger.error("Completion callback failed", run_id=handle.run_id, error=str(e))
                handle._future.set_exception(e)
                return

        handle._future.set_result(field.values)

    # Output

    def active_heights(self) -> np.ndarray:
        """
        Read-only view of the active buffer.

        The view stays complete, but its contents are replaced once a later
        run swaps twice; use copy_active_to() for a stable copy.
        """
        with self._swap_lock:
            view = self._buffers[self._active].view()
        view.flags.writeable = False
        return view

    def copy_active_to(self, sink) -> int:
        """
        Copy the active buffer into `sink` through the sink adapter.

        Returns:
            Generation number of the copied heights (0 before any run)
        """
        with self._swap_lock:
            copy_to_sink(self._buffers[self._active], self.grid.size.w, self.grid.size.h, sink)
            return self._generation

    # State

    @property
    def generation_count(self) -> int:
        with self._swap_lock:
            return self._generation

    @property
    def current(self) -> Optional[GenerationHandle]:
        """Handle of the most recently accepted run."""
        return self._current

    @property
    def is_busy(self) -> bool:
        return self._admission.locked()

    def wait_for_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the most recently accepted run has finished."""
        current = self._current
        if current is None:
            return True
        return current.wait(timeout)

    def shutdown(self, wait: bool = True) -> None:
        logger.info("Shutting down generation scheduler")
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "GenerationScheduler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)
