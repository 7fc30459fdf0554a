"""
Diamond-square height-field generation.

Implements the fractal subdivision algorithm
(https://en.wikipedia.org/wiki/Diamond-square_algorithm) over a lattice
whose sides are 2^n + 1 points long:

1. The four corners of the grid are seeded with random heights.
2. Boxes are visited in level order. For each box the midpoint gets the
   average of the corners plus noise (diamond step), then each side
   midpoint gets the average of its four diamond neighbours plus noise
   (square step). Neighbours that fall off the grid wrap around.
3. The noise range halves every time the traversal reaches a smaller box.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import structlog

from .geometry import Box, Point, Size, is_subdivisible_length
from .height_field import HeightField
from .progress import Progress
from .traversal import breadth_first_search
from ..utils.random import create_rng

logger = structlog.get_logger()


class GridSizeError(ValueError):
    """Raised when a grid cannot be refined by repeated halving."""


@dataclass(frozen=True)
class SpreadState:
    """Random range in effect for the boxes currently being refined."""

    box_size: Size
    low: float
    high: float

    @classmethod
    def initial(cls, grid_size: Size, roughness: float) -> "SpreadState":
        return cls(box_size=grid_size, low=-roughness, high=roughness)

    def is_new_level(self, box_size: Size) -> bool:
        return box_size != self.box_size

    def after_visit(self, box_size: Size) -> "SpreadState":
        """
        Spread to use after a box of `box_size` has been refined.

        Meeting a box of a different size means the traversal has moved down
        a level, so both bounds halve. The box that triggered the change was
        already refined with the previous level's spread.
        """
        if not self.is_new_level(box_size):
            return self
        return SpreadState(box_size=box_size, low=self.low * 0.5, high=self.high * 0.5)


class DiamondSquareAlgorithm:
    """
    Single-pass diamond-square generator for one grid.

    Shared side midpoints are computed once: the first of the two adjacent
    boxes to reach a side midpoint writes it, the second leaves it alone and
    draws no random number for it.
    """

    name = "Diamond-Square"

    def __init__(self, grid: Box, roughness: float = 1.0, rng=None):
        """
        Initialize the algorithm.

        Args:
            grid: Box covering the whole lattice, anchored at (0, 0)
            roughness: Amplitude of the initial random range
            rng: Object with uniform(low, high); a fresh NumPy Generator
                when omitted

        Raises:
            GridSizeError: If the grid is not anchored at the origin, either
                side is not 2^n + 1 points long, or roughness is negative
        """
        validate_grid(grid)
        if roughness < 0:
            raise GridSizeError(f"Roughness must be non-negative, got {roughness}")

        self.grid = grid
        self.roughness = float(roughness)
        self.rng = rng if rng is not None else create_rng()

    def render(self, progress: Optional[Progress] = None) -> HeightField:
        """
        Run the algorithm and return the generated height field.

        Args:
            progress: Optional Progress; this run accounts for one of its
                units, split between seeding and traversal

        Returns:
            Fully populated HeightField
        """
        render_progress = progress.child(pending_units=1) if progress is not None else Progress()
        render_progress.add_total(1)
        traversal_progress = render_progress.child(pending_units=1)

        logger.info(
            "Rendering diamond-square height field",
            width=self.grid.size.w,
            height=self.grid.size.h,
            roughness=self.roughness,
        )

        field = HeightField(self.grid.size.w, self.grid.size.h)
        spread = SpreadState.initial(self.grid.size, self.roughness)

        # 0. Seed the corners.
        for p in self.grid.corners:
            field.assign(p, self._perturbation(spread))
        render_progress.complete(1)

        def refine(box: Box, spread: SpreadState) -> SpreadState:
            if box.has_interior:
                self.diamond_step(field, box, spread)
                self.square_step(field, box, spread)
            return spread.after_visit(box.size)

        final_spread = breadth_first_search(self.grid, refine, traversal_progress, spread)

        logger.info(
            "Diamond-square render complete",
            boxes=traversal_progress.completed_units,
            final_spread=final_spread.high,
            unassigned=field.unassigned_count,
        )
        return field

    def diamond_step(self, field: HeightField, box: Box, spread: SpreadState) -> None:
        """Set the box midpoint from the average of its corners."""
        corner_values = [field[p] for p in box.corners]
        field.assign(box.midpoint, self.average(corner_values) + self._perturbation(spread))

    def square_step(self, field: HeightField, box: Box, spread: SpreadState) -> None:
        """Set each side midpoint from the average of its diamond corners."""
        for pt in box.side_midpoints:
            if field.is_assigned(pt):
                continue
            corners = self.diamond_corners(pt, box.size)
            corner_values = [field[c] for c in corners]
            field.assign(pt, self.average(corner_values) + self._perturbation(spread))

    def diamond_corners(self, point: Point, diamond_size: Size) -> List[Point]:
        """
        Find the diamond around `point`, wrapping around the grid if needed.

        Corners are ordered north, west, south, east. A coordinate that falls
        off one side re-enters `dimension - 1` cells further on, because the
        first and last rows/columns of a 2^n + 1 grid describe the same seam.
        """
        half = diamond_size.half
        corners = [
            point.offset(dy=-half.h),
            point.offset(dx=-half.w),
            point.offset(dy=half.h),
            point.offset(dx=half.w),
        ]
        width, height = self.grid.size
        return [Point(_wrap(c.x, width), _wrap(c.y, height)) for c in corners]

    @staticmethod
    def average(values: Sequence[float]) -> float:
        return sum(values) / len(values)

    def point_to_index(self, point: Point) -> int:
        return point.y * self.grid.size.w + point.x

    def _perturbation(self, spread: SpreadState) -> float:
        return float(self.rng.uniform(spread.low, spread.high))


def _wrap(coord: int, dimension: int) -> int:
    if coord < 0:
        return coord + (dimension - 1)
    if coord >= dimension:
        return coord - (dimension - 1)
    return coord


def validate_grid(grid: Box) -> None:
    """Fail fast on grids the algorithm cannot refine cleanly."""
    if grid.origin != Point(0, 0):
        raise GridSizeError(f"Grid must be anchored at (0, 0), got origin {grid.origin}")
    for label, length in (("width", grid.size.w), ("height", grid.size.h)):
        if not is_subdivisible_length(length):
            raise GridSizeError(f"Grid {label} must be 2^n + 1 (e.g. 129, 513), got {length}")


def generate_heights(
    size: int, roughness: float = 1.0, seed=None, progress: Optional[Progress] = None
) -> HeightField:
    """
    Convenience wrapper: render a square `size` x `size` height field.

    Args:
        size: Side length, 2^n + 1
        roughness: Initial random amplitude
        seed: Optional seed passed to create_rng
        progress: Optional Progress to report into

    Returns:
        Populated HeightField
    """
    algorithm = DiamondSquareAlgorithm(Box.grid(size, size), roughness, create_rng(seed))
    return algorithm.render(progress)
