"""
Terrain Model Module

Builds a triangulated irregular network (TIN) from scattered survey points
and answers elevation queries by barycentric interpolation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple
import numpy as np
from scipy.spatial import Delaunay, QhullError

from .geometry import Bounds
from .validation import (
    DegenerateInputError,
    validate_point_array,
    validate_triangle_indices,
)

logger = logging.getLogger(__name__)


# |dot00 * dot11 - dot01^2| below this marks a zero-area triangle
DEGENERATE_EPSILON = 1e-12

# Outward slack on each barycentric component (and their sum) so that points
# exactly on a shared edge are not rejected by both neighbours
BARYCENTRIC_TOLERANCE = 1e-6


def barycentric_coordinates(
    px: np.ndarray,
    py: np.ndarray,
    a: np.ndarray,
    b: np.ndarray,
    c: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Barycentric coordinates of points relative to triangles (a, b, c).

    Uses the dot-product formulation with edge vectors v0 = c - a and
    v1 = b - a. All arguments broadcast; a, b and c carry x and y in their
    last axis.

    Returns:
        Tuple of (wa, wb, wc, inside) where wa + wb + wc == 1 and inside marks
        points accepted under BARYCENTRIC_TOLERANCE by a non-degenerate triangle
    """
    v0x = c[..., 0] - a[..., 0]
    v0y = c[..., 1] - a[..., 1]
    v1x = b[..., 0] - a[..., 0]
    v1y = b[..., 1] - a[..., 1]
    v2x = px - a[..., 0]
    v2y = py - a[..., 1]

    dot00 = v0x * v0x + v0y * v0y
    dot01 = v0x * v1x + v0y * v1y
    dot02 = v0x * v2x + v0y * v2y
    dot11 = v1x * v1x + v1y * v1y
    dot12 = v1x * v2x + v1y * v2y

    denom = dot00 * dot11 - dot01 * dot01
    degenerate = np.abs(denom) < DEGENERATE_EPSILON
    inv_denom = 1.0 / np.where(degenerate, 1.0, denom)

    u = (dot11 * dot02 - dot01 * dot12) * inv_denom
    v = (dot00 * dot12 - dot01 * dot02) * inv_denom

    tol = BARYCENTRIC_TOLERANCE
    inside = (~degenerate) & (u >= -tol) & (v >= -tol) & (u + v <= 1 + tol)

    return 1.0 - u - v, v, u, inside


@dataclass(frozen=True, eq=False)
class TerrainModel:
    """
    Triangulated terrain surface built from scattered survey points.

    The model is read-only once built: both arrays are flagged non-writeable,
    attributes cannot be reassigned and queries never touch them, so a single
    instance can be shared freely.

    Build one with from_points, or pass an existing triangulation as
    ``TerrainModel(points, triangles)``. Only models built by from_points
    carry Qhull's point location; the others locate points by scanning
    their triangles in index order.

    Attributes:
        points: Nx3 array of survey points (x, y, z)
        triangles: Tx3 array of indices into points
    """
    points: np.ndarray
    triangles: np.ndarray

    _delaunay: Optional[Delaunay] = field(init=False, default=None, repr=False)
    _degenerate: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        xyz = validate_point_array(self.points)
        triangles = validate_triangle_indices(self.triangles, len(xyz))

        degenerate = _triangle_determinants(xyz[:, :2][triangles]) < DEGENERATE_EPSILON
        if len(triangles) == 0 or np.all(degenerate):
            raise DegenerateInputError(
                "Survey points produced no triangle with non-zero area."
            )

        xyz.setflags(write=False)
        triangles.setflags(write=False)
        degenerate.setflags(write=False)

        object.__setattr__(self, "points", xyz)
        object.__setattr__(self, "triangles", triangles)
        object.__setattr__(self, "_degenerate", degenerate)

    @classmethod
    def from_points(cls, points) -> TerrainModel:
        """
        Triangulate survey points.

        Args:
            points: Nx3 array or iterable of (x, y, z) triples

        Returns:
            TerrainModel instance

        Raises:
            InsufficientPointsError: If fewer than 3 points are supplied
            DegenerateInputError: If the points are collinear or coincident
            InvalidParameterError: If any coordinate is non-finite
        """
        xyz = validate_point_array(points)
        xy = xyz[:, :2]

        rank = plan_view_rank(xy)
        if rank == 0:
            raise DegenerateInputError(
                f"All {len(xyz)} survey points coincide in plan view; "
                "no triangulated surface exists."
            )
        if rank == 1:
            raise DegenerateInputError(
                f"All {len(xyz)} survey points are collinear in plan view; "
                "no triangulated surface exists. Add points off the line."
            )

        try:
            delaunay = Delaunay(xy)
        except QhullError as e:
            raise DegenerateInputError(f"Survey points could not be triangulated: {e}") from e

        model = cls(points=xyz, triangles=delaunay.simplices)
        object.__setattr__(model, "_delaunay", delaunay)

        dropped = len(xyz) - len(np.unique(model.triangles))
        if dropped:
            logger.debug(f"{dropped} survey point(s) not used as vertices (duplicate locations)")

        logger.info(
            f"Built TIN: {model.num_points} points, {model.num_triangles} triangles "
            f"({int(model._degenerate.sum())} degenerate)"
        )

        return model

    @property
    def num_points(self) -> int:
        return len(self.points)

    @property
    def num_triangles(self) -> int:
        return len(self.triangles)

    @property
    def bounds(self) -> Bounds:
        """Plan-view bounds (min_x, min_y, max_x, max_y)."""
        min_x, min_y = self.points[:, :2].min(axis=0)
        max_x, max_y = self.points[:, :2].max(axis=0)
        return (float(min_x), float(min_y), float(max_x), float(max_y))

    @property
    def elevation_range(self) -> Tuple[float, float]:
        """(min_z, max_z) of the survey points."""
        z = self.points[:, 2]
        return (float(z.min()), float(z.max()))

    @property
    def hull_area(self) -> float:
        """Plan area covered by the triangulation (the convex hull)."""
        a, b, c = (self.points[self.triangles[:, k], :2] for k in range(3))
        cross = (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])
        return float(0.5 * np.abs(cross).sum())

    @property
    def suggested_pad_elevation(self) -> float:
        """Lowest surveyed elevation, a reasonable starting pad elevation."""
        return self.elevation_range[0]

    def locate_many(self, xs, ys) -> Tuple[np.ndarray, np.ndarray]:
        """
        Locate containing triangles and interpolate elevations for many points.

        Qhull's point location proposes a candidate triangle; the candidate is
        re-checked with barycentric_coordinates and, if it is rejected, every
        non-degenerate triangle is scanned in index order and the first match
        wins. Models built without Qhull scan every point that way.

        Args:
            xs: X coordinates (scalar or array)
            ys: Y coordinates (broadcast against xs)

        Returns:
            Tuple of (triangle_index, elevation) arrays shaped like the
            broadcast input; -1 and NaN where the point is outside the hull
        """
        x, y = np.broadcast_arrays(np.asarray(xs, dtype=np.float64), np.asarray(ys, dtype=np.float64))
        shape = x.shape
        q = np.column_stack([x.ravel(), y.ravel()])

        tri_index = np.full(len(q), -1, dtype=np.int64)
        z = np.full(len(q), np.nan)

        if len(q) == 0:
            return tri_index.reshape(shape), z.reshape(shape)

        if self._delaunay is None:
            tri_index, z = self._scan_many(q)
            return tri_index.reshape(shape), z.reshape(shape)

        candidate = self._delaunay.find_simplex(q, tol=BARYCENTRIC_TOLERANCE)
        hits = np.nonzero(candidate >= 0)[0]

        if hits.size:
            cand_z, accepted = self._interpolate(q[hits], candidate[hits])
            tri_index[hits[accepted]] = candidate[hits[accepted]]
            z[hits[accepted]] = cand_z[accepted]

            for i in hits[~accepted]:
                tri_index[i], z[i] = self._scan(q[i])

        return tri_index.reshape(shape), z.reshape(shape)

    def heights(self, xs, ys) -> np.ndarray:
        """Interpolated elevations for many points; NaN outside the hull."""
        return self.locate_many(xs, ys)[1]

    def height(self, x: float, y: float) -> Optional[float]:
        """
        Interpolated elevation at (x, y).

        Returns:
            Elevation, or None when (x, y) lies outside the convex hull of the
            survey points
        """
        z = float(self.heights(x, y))
        return None if np.isnan(z) else z

    def locate(self, x: float, y: float) -> Optional[int]:
        """Index of the triangle used for (x, y), or None outside the hull."""
        idx = int(self.locate_many(x, y)[0])
        return None if idx < 0 else idx

    def _interpolate(self, q: np.ndarray, simplices: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Interpolate q[i] inside triangle simplices[i]."""
        tri = self.triangles[simplices]
        a = self.points[tri[:, 0]]
        b = self.points[tri[:, 1]]
        c = self.points[tri[:, 2]]

        wa, wb, wc, inside = barycentric_coordinates(q[:, 0], q[:, 1], a, b, c)
        z = wa * a[:, 2] + wb * b[:, 2] + wc * c[:, 2]
        return z, inside

    def _scan(self, p: np.ndarray) -> Tuple[int, float]:
        """Linear search over all triangles for one point."""
        a = self.points[self.triangles[:, 0]]
        b = self.points[self.triangles[:, 1]]
        c = self.points[self.triangles[:, 2]]

        wa, wb, wc, inside = barycentric_coordinates(p[0], p[1], a, b, c)
        matches = np.nonzero(inside)[0]
        if matches.size == 0:
            return -1, np.nan

        k = matches[0]
        return int(k), float(wa[k] * a[k, 2] + wb[k] * b[k, 2] + wc[k] * c[k, 2])

    def _scan_many(self, q: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Linear search for many points; the lowest matching triangle index wins."""
        tri_index = np.full(len(q), -1, dtype=np.int64)
        z = np.full(len(q), np.nan)

        for k, (ia, ib, ic) in enumerate(self.triangles):
            if self._degenerate[k]:
                continue

            pending = np.nonzero(tri_index < 0)[0]
            if pending.size == 0:
                break

            a, b, c = self.points[ia], self.points[ib], self.points[ic]
            wa, wb, wc, inside = barycentric_coordinates(q[pending, 0], q[pending, 1], a, b, c)

            found = pending[inside]
            tri_index[found] = k
            z[found] = (wa * a[2] + wb * b[2] + wc * c[2])[inside]

        return tri_index, z

    def statistics(self) -> dict:
        """Basic statistics for the survey and its triangulation."""
        z = self.points[:, 2]
        min_x, min_y, max_x, max_y = self.bounds

        return {
            "num_points": self.num_points,
            "num_triangles": self.num_triangles,
            "degenerate_triangles": int(self._degenerate.sum()),
            "min_x": min_x,
            "min_y": min_y,
            "max_x": max_x,
            "max_y": max_y,
            "min_elevation": float(z.min()),
            "max_elevation": float(z.max()),
            "mean_elevation": float(z.mean()),
            "std_elevation": float(z.std()),
            "elevation_range": float(z.max() - z.min()),
            "hull_area": self.hull_area,
        }


def plan_view_rank(xy: np.ndarray) -> int:
    """
    Rank of the plan-view point set: 0 if every point coincides, 1 if they
    all lie on one line, 2 otherwise.

    The line test is relative to the spread of the points, so a survey of
    any extent is judged by its shape alone.
    """
    if np.ptp(xy, axis=0).max() == 0:
        return 0

    centered = xy - xy.mean(axis=0)
    singular = np.linalg.svd(centered, compute_uv=False)
    return 1 if singular[-1] <= 1e-12 * singular[0] else 2


def _triangle_determinants(corners: np.ndarray) -> np.ndarray:
    """|dot00 * dot11 - dot01^2| for Tx3x2 triangle corners."""
    a, b, c = corners[:, 0], corners[:, 1], corners[:, 2]
    v0 = c - a
    v1 = b - a
    dot00 = np.einsum('ij,ij->i', v0, v0)
    dot01 = np.einsum('ij,ij->i', v0, v1)
    dot11 = np.einsum('ij,ij->i', v1, v1)
    return np.abs(dot00 * dot11 - dot01 * dot01)
