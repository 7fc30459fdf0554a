"""Flat row-major height storage."""

import numpy as np

from .geometry import Point, Size


class HeightField:
    """
    Elevation values for a `width` x `height` lattice.

    Values live in a flat float32 array indexed as `y * width + x`, the same
    layout the renderer's r32Float texture uses. A parallel boolean array
    records which cells have been written during the current run.
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Height field dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.values = np.zeros(width * height, dtype=np.float32)
        self.assigned = np.zeros(width * height, dtype=bool)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def index_of(self, point: Point) -> int:
        if not (0 <= point.x < self.width and 0 <= point.y < self.height):
            raise IndexError(f"Point {point} outside {self.width}x{self.height} height field")
        return point.y * self.width + point.x

    def __getitem__(self, point: Point) -> float:
        return float(self.values[self.index_of(point)])

    def assign(self, point: Point, value: float) -> None:
        idx = self.index_of(point)
        self.values[idx] = value
        self.assigned[idx] = True

    def is_assigned(self, point: Point) -> bool:
        return bool(self.assigned[self.index_of(point)])

    @property
    def unassigned_count(self) -> int:
        return int(self.assigned.size - np.count_nonzero(self.assigned))

    def as_grid(self) -> np.ndarray:
        """(height, width) view of the values."""
        return self.values.reshape(self.height, self.width)

    def __len__(self) -> int:
        return self.values.size
