"""
Level-order traversal of box subdivision trees.

The diamond-square refinement must see every box of one generation before
any box of the next, because the random spread is decayed when the
traversal first meets a smaller box. A FIFO frontier gives exactly that
order.
"""

from collections import deque
from typing import Callable, Deque, Generic, Iterable, Optional, TypeVar

import structlog

from .geometry import Box
from .progress import Progress

logger = structlog.get_logger()

T = TypeVar("T")
S = TypeVar("S")


class Queue(Generic[T]):
    """First-in, first-out queue used as the BFS frontier."""

    def __init__(self, items: Optional[Iterable[T]] = None):
        self._items: Deque[T] = deque()
        if items is not None:
            self.enqueue_all(items)

    @property
    def count(self) -> int:
        return len(self._items)

    @property
    def head(self) -> Optional[T]:
        """The next item to be dequeued, or None when empty."""
        return self._items[0] if self._items else None

    @property
    def tail(self) -> Optional[T]:
        """The most recently enqueued item, or None when empty."""
        return self._items[-1] if self._items else None

    def enqueue(self, item: T) -> None:
        self._items.append(item)

    def enqueue_all(self, items: Iterable[T]) -> None:
        for item in items:
            self.enqueue(item)

    def dequeue(self) -> Optional[T]:
        """Remove and return the front item, or None when empty."""
        if not self._items:
            return None
        return self._items.popleft()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return f"Queue({list(self._items)!r})"


def breadth_first_search(
    root: Box,
    visit: Callable[[Box, S], S],
    progress: Optional[Progress] = None,
    state: S = None,
) -> S:
    """
    Visit `root` and all of its subdivisions in level order.

    Args:
        root: Box at the top of the subdivision tree
        visit: Called as visit(box, state) and returns the state handed to
            the next visit
        progress: Optional Progress; gains one unit per discovered box and
            completes one unit per visited box
        state: Initial traversal state

    Returns:
        The state returned by the last visit
    """
    queue: Queue[Box] = Queue()
    queue.enqueue(root)
    if progress is not None:
        progress.add_total(1)

    visited = 0
    while queue:
        box = queue.dequeue()
        state = visit(box, state)
        visited += 1

        subdivisions = box.subdivisions
        queue.enqueue_all(subdivisions)
        if progress is not None:
            # Discovered boxes and this box's completion land together, so
            # the fraction neither dips nor touches 1.0 while work is queued.
            progress.advance(len(subdivisions), 1)

    logger.debug("Breadth-first traversal finished", root=str(root.size), boxes=visited)
    return state
