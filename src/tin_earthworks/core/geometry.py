"""
Planar Geometry Module

Pure 2D predicates used by the design surfaces: point-in-polygon,
point-in-rectangle and point-to-boundary distances.

Each predicate has a vectorised form taking numpy arrays of x and y
coordinates and a scalar wrapper taking a single point, so the grid sampler
and single-point queries run the same formula.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple, Sequence, Tuple, Union
import warnings

import numpy as np

from .validation import validate_polygon_vertices

if TYPE_CHECKING:
    from shapely.geometry import Polygon as ShapelyPolygon
    from ..analysis.grading import Rectangle


# Squared segment length below which a segment is treated as a point
DEGENERATE_SEGMENT_EPSILON = 1e-12

Bounds = Tuple[float, float, float, float]


class Point2D(NamedTuple):
    """A planar location."""
    x: float
    y: float


class Point3D(NamedTuple):
    """A surveyed or interpolated location; z is elevation."""
    x: float
    y: float
    z: float


PolygonLike = Union[np.ndarray, Sequence[Point2D], Sequence[Tuple[float, float]]]


def as_polygon_array(polygon: PolygonLike) -> np.ndarray:
    """
    Normalize polygon vertices to an (n, 2) float64 array.

    The ring is implicitly closed: the last vertex connects to the first, so a
    repeated closing vertex is dropped.

    Raises:
        InvalidParameterError: If fewer than 3 distinct vertices remain
    """
    arr = validate_polygon_vertices(polygon)

    if len(arr) > 3 and np.array_equal(arr[0], arr[-1]):
        arr = arr[:-1]

    return arr


def polygon_bounds(polygon: PolygonLike) -> Bounds:
    """Axis-aligned bounds (min_x, min_y, max_x, max_y) of a polygon."""
    arr = as_polygon_array(polygon)
    min_x, min_y = arr.min(axis=0)
    max_x, max_y = arr.max(axis=0)
    return (float(min_x), float(min_y), float(max_x), float(max_y))


def to_shapely_polygon(polygon: PolygonLike) -> 'ShapelyPolygon':
    """Convert polygon vertices to a shapely Polygon."""
    from shapely.geometry import Polygon as ShapelyPolygon

    return ShapelyPolygon(as_polygon_array(polygon))


def warn_if_not_simple(polygon: PolygonLike, context: str = "Polygon") -> bool:
    """
    Warn when a polygon ring crosses itself.

    Containment and boundary distance are not reconciled for such rings.

    Returns:
        True if the ring is simple
    """
    ring = to_shapely_polygon(polygon).exterior
    if not ring.is_simple:
        warnings.warn(
            f"{context} is self-intersecting; containment and slope distances "
            "may disagree near the crossing.",
            UserWarning,
            stacklevel=3
        )
        return False
    return True


def points_in_polygon(x, y, polygon: PolygonLike) -> np.ndarray:
    """
    Even-odd ray casting test for many points.

    Each edge uses the half-open rule on its y-range so a ray through a shared
    vertex is counted once. Horizontal edges never cross.

    Args:
        x: X coordinates (scalar or array)
        y: Y coordinates (scalar or array, broadcast against x)
        polygon: Polygon vertices, implicitly closed

    Returns:
        Boolean array with the broadcast shape of x and y
    """
    verts = as_polygon_array(polygon)
    x, y = np.broadcast_arrays(np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64))
    inside = np.zeros(x.shape, dtype=bool)

    n = len(verts)
    j = n - 1
    for i in range(n):
        xi, yi = verts[i]
        xj, yj = verts[j]
        j = i

        if yi == yj:
            continue

        straddles = (yi > y) != (yj > y)
        x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
        inside ^= straddles & (x < x_cross)

    return inside


def point_in_polygon(p: Tuple[float, float], polygon: PolygonLike) -> bool:
    """Even-odd containment test for a single point."""
    return bool(points_in_polygon(p[0], p[1], polygon))


def points_in_rectangle(x, y, rect: 'Rectangle') -> np.ndarray:
    """Inclusive containment test of many points in an axis-aligned rectangle."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    return (
        (x >= rect.min_x) & (x <= rect.max_x) &
        (y >= rect.min_y) & (y <= rect.max_y)
    )


def point_in_rectangle(p: Tuple[float, float], rect: 'Rectangle') -> bool:
    """Inclusive containment test: boundary points are inside."""
    return bool(points_in_rectangle(p[0], p[1], rect))


def distances_to_segment(x, y, a: Tuple[float, float], b: Tuple[float, float]) -> np.ndarray:
    """
    Euclidean distance from many points to the closed segment [a, b].

    A segment shorter than sqrt(DEGENERATE_SEGMENT_EPSILON) is treated as the
    point a.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    ax, ay = float(a[0]), float(a[1])
    dx = float(b[0]) - ax
    dy = float(b[1]) - ay
    len_sq = dx * dx + dy * dy

    if len_sq < DEGENERATE_SEGMENT_EPSILON:
        return np.hypot(x - ax, y - ay)

    t = ((x - ax) * dx + (y - ay) * dy) / len_sq
    t = np.clip(t, 0.0, 1.0)

    return np.hypot(x - (ax + t * dx), y - (ay + t * dy))


def distance_to_segment(
    p: Tuple[float, float],
    a: Tuple[float, float],
    b: Tuple[float, float],
) -> float:
    """Distance from p to the closest point on segment [a, b]."""
    return float(distances_to_segment(p[0], p[1], a, b))


def distances_to_polygon(x, y, polygon: PolygonLike) -> np.ndarray:
    """Minimum distance from many points to any polygon edge, closing edge included."""
    verts = as_polygon_array(polygon)
    x, y = np.broadcast_arrays(np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64))
    min_dist = np.full(x.shape, np.inf)

    n = len(verts)
    for i in range(n):
        d = distances_to_segment(x, y, verts[i], verts[(i + 1) % n])
        np.minimum(min_dist, d, out=min_dist)

    return min_dist


def distance_to_polygon(p: Tuple[float, float], polygon: PolygonLike) -> float:
    """Distance from p to the polygon boundary (0 on the boundary itself)."""
    return float(distances_to_polygon(p[0], p[1], polygon))
