"""
Progress reporting for long-running generation work.

A Progress is an explicit handle: the worker that owns it bumps plain
counters, observers on other threads read `fraction_completed` or take a
`snapshot()`. Nested phases are modelled with `child()`: a child stands for
`pending_units` of its parent's total and contributes to the parent in
proportion to its own fraction.
"""

import threading
from typing import List, NamedTuple


class ProgressSnapshot(NamedTuple):
    """Point-in-time, read-only view of a Progress."""

    total_units: int
    completed_units: int
    fraction_completed: float
    finished: bool

    @property
    def percent(self) -> int:
        """Whole-number percentage for display."""
        return int(self.fraction_completed * 100)


class Progress:
    """Thread-safe hierarchical unit counter."""

    def __init__(self, total_units: int = 0):
        if total_units < 0:
            raise ValueError("total_units must be non-negative")
        self._lock = threading.Lock()
        self._total = total_units
        self._completed = 0
        self._children: List["_Child"] = []

    @property
    def total_units(self) -> int:
        with self._lock:
            return self._total

    @property
    def completed_units(self) -> int:
        with self._lock:
            return self._completed

    def add_total(self, units: int) -> None:
        """Grow the amount of work as new items are discovered."""
        if units < 0:
            raise ValueError("Cannot remove units from a Progress")
        with self._lock:
            self._total += units

    def complete(self, units: int = 1) -> None:
        """Record finished units. Never pushes completed past total."""
        if units < 0:
            raise ValueError("Cannot un-complete units")
        with self._lock:
            self._completed = min(self._total, self._completed + units)

    def advance(self, discovered: int, completed: int = 1) -> None:
        """
        Grow the total and record finished units in one step.

        Observers never see the grown total without the matching completion,
        so the fraction cannot dip between the two updates.
        """
        if discovered < 0 or completed < 0:
            raise ValueError("Progress can only move forward")
        with self._lock:
            self._total += discovered
            self._completed = min(self._total, self._completed + completed)

    def child(self, pending_units: int) -> "Progress":
        """
        Create a nested Progress that accounts for `pending_units` of this one.

        The pending units are added to this Progress's total right away, so
        the parent's fraction does not jump when the child starts reporting.
        """
        child = Progress()
        with self._lock:
            self._total += pending_units
            self._children.append(_Child(child, pending_units))
        return child

    @property
    def fraction_completed(self) -> float:
        with self._lock:
            total = self._total
            done = float(self._completed)
            children = list(self._children)

        if total == 0:
            return 0.0

        for entry in children:
            done += entry.pending_units * entry.progress.fraction_completed

        return min(1.0, done / total)

    @property
    def finished(self) -> bool:
        return self.fraction_completed >= 1.0

    def snapshot(self) -> ProgressSnapshot:
        fraction = self.fraction_completed
        with self._lock:
            total, completed = self._total, self._completed
        return ProgressSnapshot(
            total_units=total,
            completed_units=completed,
            fraction_completed=fraction,
            finished=fraction >= 1.0,
        )

    def __repr__(self) -> str:
        snap = self.snapshot()
        return (
            f"Progress(completed={snap.completed_units}, total={snap.total_units}, "
            f"fraction={snap.fraction_completed:.3f})"
        )


class _Child(NamedTuple):
    progress: Progress
    pending_units: int

