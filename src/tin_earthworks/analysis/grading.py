"""
Grading Design Module

Design surfaces (building pads, bodies, pads with cut/fill batters) that the
volume engine compares against the surveyed terrain.

Every design is an immutable value exposing the same capability:
``evaluate(x, y)`` returns the target elevation at a point, or None where the
design does not define one. Change a parameter by building a new design.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING, Any, Iterable, Mapping, Optional, Protocol, Tuple, Union,
    runtime_checkable,
)
import numpy as np

from ..core.geometry import (
    Bounds,
    Point2D,
    PolygonLike,
    as_polygon_array,
    distances_to_polygon,
    points_in_polygon,
    points_in_rectangle,
    polygon_bounds,
    to_shapely_polygon,
    warn_if_not_simple,
)
from ..core.validation import (
    InvalidParameterError,
    validate_finite,
    validate_non_negative,
    validate_slope_ratio,
)

if TYPE_CHECKING:
    from shapely.geometry import Polygon


DEFAULT_SLOPE_RATIO = 2.0         # 2:1 (run:rise) batter
DEFAULT_MAX_SLOPE_DISTANCE = 10.0


@runtime_checkable
class DesignSurface(Protocol):
    """Capability shared by all design variants."""

    def evaluate(self, x: float, y: float) -> Optional[float]:
        """Target elevation at (x, y), or None outside the design."""
        ...

    def evaluate_many(self, xs, ys) -> np.ndarray:
        """Vectorised evaluate; NaN where the design has no value."""
        ...

    def sampling_region(self) -> Optional[Bounds]:
        """Bounds (min_x, min_y, max_x, max_y) the design is defined over."""
        ...

    def description(self) -> str:
        ...


def _scalar(values: np.ndarray) -> Optional[float]:
    z = float(values)
    return None if np.isnan(z) else z


@dataclass(frozen=True)
class Rectangle:
    """
    Axis-aligned body footprint.

    Attributes:
        min_x, min_y, max_x, max_y: Footprint extent (inclusive)
        elevation: Pad top / slab reference elevation compared against terrain
        pad_height: Vertical extrusion thickness, for display only
    """
    min_x: float
    min_y: float
    max_x: float
    max_y: float
    elevation: float
    pad_height: float = 0.0

    def __post_init__(self):
        for name in ("min_x", "min_y", "max_x", "max_y", "elevation"):
            object.__setattr__(self, name, validate_finite(getattr(self, name), f"Rectangle {name}"))
        object.__setattr__(
            self, "pad_height", validate_non_negative(self.pad_height, "Rectangle pad_height")
        )

        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise InvalidParameterError(
                f"Rectangle extent is inverted: x {self.min_x} to {self.max_x}, "
                f"y {self.min_y} to {self.max_y}"
            )

    @classmethod
    def from_center(
        cls,
        center_x: float,
        center_y: float,
        width: float,
        depth: float,
        elevation: float,
        pad_height: float = 0.0,
    ) -> Rectangle:
        """Create a rectangle from its centre and dimensions."""
        return cls(
            min_x=center_x - width / 2,
            min_y=center_y - depth / 2,
            max_x=center_x + width / 2,
            max_y=center_y + depth / 2,
            elevation=elevation,
            pad_height=pad_height,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Rectangle:
        """
        Build a rectangle from a mapping.

        Accepts snake_case (``min_x``) or camelCase (``minX``) keys.
        """
        def pick(*keys, default=None):
            for key in keys:
                if key in data:
                    return data[key]
            if default is None:
                raise InvalidParameterError(f"Rectangle is missing '{keys[0]}'")
            return default

        return cls(
            min_x=pick("min_x", "minX"),
            min_y=pick("min_y", "minY"),
            max_x=pick("max_x", "maxX"),
            max_y=pick("max_y", "maxY"),
            elevation=pick("elevation", "z"),
            pad_height=pick("pad_height", "padHeight", default=0.0),
        )

    @property
    def bounds(self) -> Bounds:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    @property
    def area(self) -> float:
        return (self.max_x - self.min_x) * (self.max_y - self.min_y)

    def footprint(self) -> 'Polygon':
        """Shapely polygon of the footprint."""
        from shapely.geometry import box

        return box(self.min_x, self.min_y, self.max_x, self.max_y)

    def to_dict(self) -> dict:
        return {
            "min_x": self.min_x,
            "min_y": self.min_y,
            "max_x": self.max_x,
            "max_y": self.max_y,
            "elevation": self.elevation,
            "pad_height": self.pad_height,
        }


@dataclass(frozen=True, init=False)
class PadWithSlope:
    """
    Flat pad on a polygon with a batter falling away from its edge.

    Inside the polygon the target is the pad elevation. Outside, the surface
    drops by 1 unit for every ``slope_ratio`` units of horizontal distance
    from the nearest edge, out to ``max_slope_distance``; beyond that the
    design has no value.

    Typical uses:
    - Building pads cut into a hillside
    - Laydown yards with graded shoulders
    """
    polygon: Tuple[Point2D, ...]
    pad_elevation: float
    slope_ratio: float = DEFAULT_SLOPE_RATIO
    max_slope_distance: float = DEFAULT_MAX_SLOPE_DISTANCE

    _vertices: np.ndarray = field(init=False, repr=False, compare=False)

    def __init__(
        self,
        polygon: PolygonLike,
        pad_elevation: float,
        slope_ratio: float = DEFAULT_SLOPE_RATIO,
        max_slope_distance: float = DEFAULT_MAX_SLOPE_DISTANCE,
    ):
        vertices = as_polygon_array(polygon)
        vertices.setflags(write=False)

        object.__setattr__(self, "polygon", tuple(Point2D(float(x), float(y)) for x, y in vertices))
        object.__setattr__(self, "pad_elevation", validate_finite(pad_elevation, "pad_elevation"))
        object.__setattr__(self, "slope_ratio", validate_slope_ratio(slope_ratio))
        object.__setattr__(
            self, "max_slope_distance",
            validate_non_negative(max_slope_distance, "max_slope_distance"),
        )
        object.__setattr__(self, "_vertices", vertices)

        warn_if_not_simple(vertices, "Pad polygon")

    def evaluate(self, x: float, y: float) -> Optional[float]:
        return _scalar(self.evaluate_many(x, y))

    def evaluate_many(self, xs, ys) -> np.ndarray:
        x, y = np.broadcast_arrays(np.asarray(xs, dtype=np.float64), np.asarray(ys, dtype=np.float64))
        inside = points_in_polygon(x, y, self._vertices)

        z = np.full(x.shape, np.nan)
        z[inside] = self.pad_elevation

        outside = ~inside
        if np.any(outside):
            dist = distances_to_polygon(x[outside], y[outside], self._vertices)
            z_out = self.pad_elevation - dist / self.slope_ratio
            z_out[dist > self.max_slope_distance] = np.nan
            z[outside] = z_out

        return z

    def sampling_region(self) -> Bounds:
        min_x, min_y, max_x, max_y = polygon_bounds(self._vertices)
        d = self.max_slope_distance
        return (min_x - d, min_y - d, max_x + d, max_y + d)

    def footprint(self) -> 'Polygon':
        return to_shapely_polygon(self._vertices)

    def influence_zone(self) -> 'Polygon':
        """Pad plus batter: the footprint grown by max_slope_distance."""
        return self.footprint().buffer(self.max_slope_distance)

    def description(self) -> str:
        return (f"Pad at elevation {self.pad_elevation:.2f} on a "
                f"{len(self.polygon)}-vertex polygon, {self.slope_ratio:g}:1 batter "
                f"out to {self.max_slope_distance:g}")


@dataclass(frozen=True)
class RectanglePad:
    """
    Single rectangular pad at a fixed elevation.

    Volume is measured against the rectangle's elevation; its pad_height
    extrusion plays no part.
    """
    rectangle: Rectangle

    def evaluate(self, x: float, y: float) -> Optional[float]:
        return _scalar(self.evaluate_many(x, y))

    def evaluate_many(self, xs, ys) -> np.ndarray:
        x, y = np.broadcast_arrays(np.asarray(xs, dtype=np.float64), np.asarray(ys, dtype=np.float64))
        return np.where(points_in_rectangle(x, y, self.rectangle), self.rectangle.elevation, np.nan)

    def sampling_region(self) -> Bounds:
        return self.rectangle.bounds

    def description(self) -> str:
        r = self.rectangle
        return (f"Rectangular pad {r.max_x - r.min_x:g} x {r.max_y - r.min_y:g} "
                f"at elevation {r.elevation:.2f}")


@dataclass(frozen=True, init=False)
class RectangleSet:
    """
    Several rectangular bodies, each with its own elevation.

    Where bodies overlap the highest elevation wins. An empty set defines no
    surface anywhere.
    """
    rectangles: Tuple[Rectangle, ...] = ()

    def __init__(self, rectangles: Iterable[Union[Rectangle, Mapping[str, Any]]] = ()):
        rects = tuple(
            r if isinstance(r, Rectangle) else Rectangle.from_dict(r)
            for r in rectangles
        )
        object.__setattr__(self, "rectangles", rects)

    def __len__(self) -> int:
        return len(self.rectangles)

    @property
    def is_empty(self) -> bool:
        return not self.rectangles

    def evaluate(self, x: float, y: float) -> Optional[float]:
        return _scalar(self.evaluate_many(x, y))

    def evaluate_many(self, xs, ys) -> np.ndarray:
        x, y = np.broadcast_arrays(np.asarray(xs, dtype=np.float64), np.asarray(ys, dtype=np.float64))
        z = np.full(x.shape, -np.inf)

        for rect in self.rectangles:
            inside = points_in_rectangle(x, y, rect)
            z[inside] = np.maximum(z[inside], rect.elevation)

        z[np.isneginf(z)] = np.nan
        return z

    def sampling_region(self) -> Optional[Bounds]:
        if not self.rectangles:
            return None

        return (
            min(r.min_x for r in self.rectangles),
            min(r.min_y for r in self.rectangles),
            max(r.max_x for r in self.rectangles),
            max(r.max_y for r in self.rectangles),
        )

    def description(self) -> str:
        if not self.rectangles:
            return "Empty body set"
        elevations = [r.elevation for r in self.rectangles]
        return (f"{len(self.rectangles)} rectangular bodies "
                f"({min(elevations):.1f} to {max(elevations):.1f})")


Design = Union[PadWithSlope, RectanglePad, RectangleSet]
