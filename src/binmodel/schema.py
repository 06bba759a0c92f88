"""Bin data model: outlines, grid area and bin parameters.

Outlines are the 2D shapes authored in the editor. Only the fields that
affect geometry live here; display-only editor state is dropped when a
document is parsed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Literal, Optional, Tuple, Union

from .dimensions import (
    BASE_PROFILE_DEPTH,
    BOTTOM_THICKNESS,
    DEFAULT_BASE_HEIGHT,
    DEFAULT_CUTOUT_DEPTH,
    GRID_SIZE,
    HEIGHT_UNIT,
    TOLERANCE,
)

OutlineType = Literal["spline", "roundedRect"]


class MalformedOutlineError(ValueError):
    """Raised when an outline cannot describe a closed profile."""

    pass


class BinParameterError(ValueError):
    """Raised when bin heights leave no room for the base or the walls."""

    pass


@dataclass(frozen=True)
class Point:
    """2D point in millimetres."""

    x: float
    y: float

    def rotated(self, degrees: float) -> Point:
        """Rotate about the origin, counter-clockwise for positive angles."""
        angle = math.radians(degrees)
        cos, sin = math.cos(angle), math.sin(angle)
        return Point(self.x * cos - self.y * sin, self.x * sin + self.y * cos)

    def translated(self, dx: float, dy: float) -> Point:
        return Point(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned 2D bounds."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> Bounds:
        pts = list(points)
        if not pts:
            raise ValueError("Cannot compute bounds of an empty point set")
        return cls(
            min_x=min(p.x for p in pts),
            min_y=min(p.y for p in pts),
            max_x=max(p.x for p in pts),
            max_y=max(p.y for p in pts),
        )

    def union(self, other: Bounds) -> Bounds:
        return Bounds(
            min_x=min(self.min_x, other.min_x),
            min_y=min(self.min_y, other.min_y),
            max_x=max(self.max_x, other.max_x),
            max_y=max(self.max_y, other.max_y),
        )

    def include(self, x: Optional[float] = None, y: Optional[float] = None) -> Bounds:
        """Return bounds grown to contain the given coordinate(s)."""
        min_x, max_x = self.min_x, self.max_x
        min_y, max_y = self.min_y, self.max_y
        if x is not None:
            min_x, max_x = min(min_x, x), max(max_x, x)
        if y is not None:
            min_y, max_y = min(min_y, y), max(max_y, y)
        return Bounds(min_x, min_y, max_x, max_y)

    def expanded(self, amount: float) -> Bounds:
        return Bounds(
            self.min_x - amount,
            self.min_y - amount,
            self.max_x + amount,
            self.max_y + amount,
        )


@dataclass(frozen=True)
class Outline:
    """Fields shared by every outline variant.

    ``position`` is the outline origin in the editor frame, ``rotation``
    is in degrees about that origin and ``depth`` is the requested cutout
    depth (``None`` means the default depth).
    """

    id: str
    position: Point = Point(0.0, 0.0)
    rotation: float = 0.0
    depth: Optional[float] = None

    type: OutlineType = field(init=False, default="spline")

    @property
    def requested_depth(self) -> float:
        return DEFAULT_CUTOUT_DEPTH if self.depth is None else float(self.depth)

    def cutout_depth(self, wall_height: float) -> float:
        """Requested depth clamped to ``[0, wall_height]``."""
        return max(0.0, min(self.requested_depth, wall_height))

    def to_world(self, point: Point) -> Point:
        """Map a local point into the shared editor frame."""
        return point.rotated(self.rotation).translated(self.position.x, self.position.y)

    def validate(self) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class SplineOutline(Outline):
    """Free-form closed outline through ``points`` (no closing duplicate)."""

    points: Tuple[Point, ...] = ()

    type: OutlineType = field(init=False, default="spline")

    def validate(self) -> None:
        if len(self.points) < 3:
            raise MalformedOutlineError(
                f"Spline outline {self.id!r} needs at least 3 points, got {len(self.points)}"
            )


@dataclass(frozen=True)
class RoundedRectOutline(Outline):
    """Rounded rectangle centred on its position."""

    width: float = 0.0
    height: float = 0.0
    radius: float = 0.0

    type: OutlineType = field(init=False, default="roundedRect")

    @property
    def is_circle(self) -> bool:
        return (
            self.radius > 0
            and math.isclose(self.radius * 2, self.width, rel_tol=1e-9, abs_tol=1e-9)
            and math.isclose(self.radius * 2, self.height, rel_tol=1e-9, abs_tol=1e-9)
        )

    def corner_centers(self) -> Tuple[Point, Point, Point, Point]:
        """Centres of the four corner arcs in the local frame."""
        hx = self.width / 2 - self.radius
        hy = self.height / 2 - self.radius
        return (Point(hx, hy), Point(-hx, hy), Point(-hx, -hy), Point(hx, -hy))

    def validate(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise MalformedOutlineError(
                f"Rounded rectangle {self.id!r} must have positive width and height"
            )
        if self.radius < 0:
            raise MalformedOutlineError(f"Rounded rectangle {self.id!r} has a negative radius")


AnyOutline = Union[SplineOutline, RoundedRectOutline]


@dataclass(frozen=True)
class GridArea:
    """Grid-snapped rectangle enclosing every outline, in millimetres."""

    min: Point
    max: Point

    @property
    def width(self) -> float:
        return self.max.x - self.min.x

    @property
    def height(self) -> float:
        return self.max.y - self.min.y

    @property
    def center(self) -> Point:
        return Point((self.min.x + self.max.x) / 2, (self.min.y + self.max.y) / 2)

    @property
    def grid_units(self) -> Tuple[int, int]:
        """Bin size in whole grid cells."""
        return (
            math.floor((self.width + TOLERANCE) / GRID_SIZE),
            math.floor((self.height + TOLERANCE) / GRID_SIZE),
        )


@dataclass(frozen=True)
class BinParameters:
    """Heights that shape the bin.

    The wall occupies whatever remains above the base and the bottom plate.
    """

    total_height: float
    base_height: float = DEFAULT_BASE_HEIGHT

    @classmethod
    def default_for(
        cls, outlines: Iterable[Outline], base_height: float = DEFAULT_BASE_HEIGHT
    ) -> BinParameters:
        """Smallest bin, in whole height units, that fits the deepest cutout."""
        depths = [o.requested_depth for o in outlines]
        deepest = max(depths) if depths else DEFAULT_CUTOUT_DEPTH
        total = math.ceil((deepest + BOTTOM_THICKNESS + base_height) / HEIGHT_UNIT) * HEIGHT_UNIT
        return cls(total_height=total, base_height=base_height)

    @property
    def wall_height(self) -> float:
        return self.total_height - self.base_height - BOTTOM_THICKNESS

    @property
    def wall_offset(self) -> float:
        """Z of the wall's bottom face in the assembled bin."""
        return self.base_height + BOTTOM_THICKNESS

    def validate(self) -> None:
        if self.base_height <= BASE_PROFILE_DEPTH:
            raise BinParameterError(
                f"Base height {self.base_height} mm must exceed the base profile "
                f"depth of {BASE_PROFILE_DEPTH} mm"
            )
        if self.wall_height <= 0:
            raise BinParameterError(
                f"Total height {self.total_height} mm leaves no wall above a "
                f"{self.base_height} mm base and {BOTTOM_THICKNESS} mm bottom"
            )


# Factory functions for the two outline variants
def create_rounded_rect(
    outline_id: str,
    width: float,
    height: float,
    radius: float = 0.0,
    position: Tuple[float, float] = (0.0, 0.0),
    rotation: float = 0.0,
    depth: Optional[float] = None,
) -> RoundedRectOutline:
    """Create a rounded rectangle outline."""
    return RoundedRectOutline(
        id=outline_id,
        position=Point(*position),
        rotation=rotation,
        depth=depth,
        width=width,
        height=height,
        radius=radius,
    )


def create_spline(
    outline_id: str,
    points: Iterable[Tuple[float, float]],
    position: Tuple[float, float] = (0.0, 0.0),
    rotation: float = 0.0,
    depth: Optional[float] = None,
) -> SplineOutline:
    """Create a spline outline from (x, y) pairs."""
    return SplineOutline(
        id=outline_id,
        position=Point(*position),
        rotation=rotation,
        depth=depth,
        points=tuple(Point(x, y) for x, y in points),
    )
