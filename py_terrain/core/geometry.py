"""
Lattice geometry for the diamond-square generator.

Boxes describe square (or rectangular) regions of a height-field lattice.
Their sides are expected to be 2^n + 1 points long so that repeated halving
always lands on whole-number midpoints. Adjacent subdivisions share one row
or column of points, which is how a child box inherits the heights its
parent already computed along the shared edge.
"""

from typing import List, NamedTuple


class Point(NamedTuple):
    """A lattice coordinate."""

    x: int
    y: int

    def offset(self, dx: int = 0, dy: int = 0) -> "Point":
        return Point(self.x + dx, self.y + dy)

    def __str__(self) -> str:
        return f"(x: {self.x}, y: {self.y})"


class Size(NamedTuple):
    """Width and height of a region, in lattice points."""

    w: int
    h: int

    @property
    def half(self) -> "Size":
        return Size(self.w // 2, self.h // 2)

    def __str__(self) -> str:
        return f"(w: {self.w}, h: {self.h})"


class Box(NamedTuple):
    """A rectangular sub-region of the lattice.

    Corners sit on the first and last row/column of the region, so a box of
    size (5, 5) at the origin spans x and y in 0..4 and has its midpoint at
    (2, 2).
    """

    origin: Point
    size: Size

    # Corners

    @property
    def northwest(self) -> Point:
        return self.origin

    @property
    def northeast(self) -> Point:
        return self.origin.offset(dx=self.size.w - 1)

    @property
    def southwest(self) -> Point:
        return self.origin.offset(dy=self.size.h - 1)

    @property
    def southeast(self) -> Point:
        return self.origin.offset(dx=self.size.w - 1, dy=self.size.h - 1)

    @property
    def corners(self) -> List[Point]:
        return [self.northwest, self.northeast, self.southwest, self.southeast]

    # Sides

    @property
    def north(self) -> Point:
        return self.origin.offset(dx=self.size.w // 2)

    @property
    def west(self) -> Point:
        return self.origin.offset(dy=self.size.h // 2)

    @property
    def south(self) -> Point:
        return self.origin.offset(dx=self.size.w // 2, dy=self.size.h - 1)

    @property
    def east(self) -> Point:
        return self.origin.offset(dx=self.size.w - 1, dy=self.size.h // 2)

    @property
    def side_midpoints(self) -> List[Point]:
        return [self.north, self.west, self.south, self.east]

    @property
    def midpoint(self) -> Point:
        half = self.size.half
        return self.origin.offset(dx=half.w, dy=half.h)

    @property
    def has_interior(self) -> bool:
        """True when the midpoint is distinct from every corner."""
        return self.size.w >= 3 and self.size.h >= 3

    @property
    def subdivisions(self) -> List["Box"]:
        """
        Split the box into four overlapping quadrants.

        Quadrants are ordered northwest, northeast, southwest, southeast.
        Each is `half + 1` points wide so that neighbours share an edge.

        Returns:
            The four quadrants, or an empty list once both sides are 2 or
            fewer points long.
        """
        if self.size.w <= 2 and self.size.h <= 2:
            return []

        half = self.size.half
        quadrant = Size(half.w + 1, half.h + 1)
        return [
            Box(self.origin, quadrant),
            Box(self.origin.offset(dx=half.w), quadrant),
            Box(self.origin.offset(dy=half.h), quadrant),
            Box(self.origin.offset(dx=half.w, dy=half.h), quadrant),
        ]

    @classmethod
    def grid(cls, width: int, height: int) -> "Box":
        """The box covering a whole `width` x `height` lattice."""
        return cls(Point(0, 0), Size(width, height))


def is_subdivisible_length(n: int) -> bool:
    """Check that `n` has the form 2^k + 1 with k >= 1."""
    m = n - 1
    return m >= 2 and (m & (m - 1)) == 0
