"""
Input Validation Module

Provides validation functions and custom exceptions for the tin_earthworks package.
All validation functions provide clear, actionable error messages.
"""

from __future__ import annotations

import math
import os
import warnings
from pathlib import Path
from typing import Tuple, Union

import numpy as np


class ValidationError(ValueError):
    """Base exception for validation errors with user-friendly messages."""
    pass


class InsufficientPointsError(ValidationError):
    """Fewer than three terrain points were supplied."""
    pass


class DegenerateInputError(ValidationError):
    """Terrain points admit no valid triangulation (e.g. all collinear)."""
    pass


class InvalidParameterError(ValidationError):
    """A numeric parameter is non-finite or outside its allowed range."""
    pass


class SurveyFormatError(ValidationError):
    """Survey point text could not be parsed."""
    pass


class FilePermissionError(ValidationError):
    """Cannot write to specified path."""
    pass


MIN_TERRAIN_POINTS = 3
MAX_GRID_NODES = 100_000_000


def _require_number(value: float, context: str) -> float:
    if value is None:
        raise InvalidParameterError(f"{context} cannot be None")

    # bool is an int subclass; True as a grid size is always a mistake
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise InvalidParameterError(
            f"{context} must be a number, got {type(value).__name__}"
        )

    if not math.isfinite(value):
        raise InvalidParameterError(f"{context} must be finite, got {value}")

    return float(value)


def validate_positive(value: float, context: str = "value") -> float:
    """
    Validate that a value is a finite number strictly greater than zero.

    Args:
        value: The value to validate
        context: Description of the value (used in error messages)

    Returns:
        The validated value as a float

    Raises:
        InvalidParameterError: If value is None, not a number, non-finite or <= 0
    """
    value = _require_number(value, context)
    if value <= 0:
        raise InvalidParameterError(f"{context} must be positive, got {value}")
    return value


def validate_non_negative(value: float, context: str = "value") -> float:
    """Validate that a value is a finite number >= 0."""
    value = _require_number(value, context)
    if value < 0:
        raise InvalidParameterError(f"{context} cannot be negative, got {value}")
    return value


def validate_finite(value: float, context: str = "value") -> float:
    """Validate that a value is a finite number."""
    return _require_number(value, context)


def validate_grid_size(grid_size: float, context: str = "Grid size") -> float:
    """
    Validate the sampling grid step.

    A zero or negative step would never advance the grid walk, so it is
    rejected up front.

    Raises:
        InvalidParameterError: If grid_size is None, not a number, non-finite or <= 0
    """
    value = _require_number(grid_size, context)
    if value <= 0:
        raise InvalidParameterError(
            f"{context} must be positive, got {value}. "
            "Typical values are 0.25-2.0 meters for site grading."
        )
    return value


def validate_slope_ratio(ratio: float, context: str = "slope_ratio") -> float:
    """
    Validate a slope ratio expressed as horizontal run per unit rise (e.g. 2 for 2:1).

    Raises:
        InvalidParameterError: If ratio is not a finite positive number
    """
    value = _require_number(ratio, context)
    if value <= 0:
        raise InvalidParameterError(
            f"{context} must be positive, got {value}. "
            "Slope ratios are horizontal run per unit rise, e.g. 2.0 for a 2:1 batter."
        )

    if value < 0.5:
        warnings.warn(
            f"{context} of {value}:1 is unusually steep. "
            "Verify this is intentional.",
            UserWarning,
            stacklevel=2
        )

    return value


def validate_point_array(points, min_points: int = MIN_TERRAIN_POINTS) -> np.ndarray:
    """
    Coerce survey points to an (N, 3) float64 array.

    Accepts an (N, 3) array or any iterable of (x, y, z) triples.

    Raises:
        InsufficientPointsError: If fewer than min_points points are supplied
        InvalidParameterError: If the shape is wrong or any coordinate is non-finite
    """
    try:
        if isinstance(points, np.ndarray):
            xyz = points.astype(np.float64, copy=True)
        else:
            xyz = np.asarray([tuple(p) for p in points], dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(f"Terrain points must be (x, y, z) triples: {e}") from e

    if xyz.size == 0:
        xyz = xyz.reshape(0, 3)

    if xyz.ndim != 2 or xyz.shape[1] != 3:
        raise InvalidParameterError(
            f"Terrain points must be an Nx3 array, got shape {xyz.shape}"
        )

    if len(xyz) < min_points:
        raise InsufficientPointsError(
            f"At least {min_points} terrain points are required to build a surface, "
            f"got {len(xyz)}."
        )

    if not np.all(np.isfinite(xyz)):
        bad = int(np.argmax(~np.all(np.isfinite(xyz), axis=1)))
        raise InvalidParameterError(
            f"Terrain point {bad} has a non-finite coordinate: {xyz[bad].tolist()}"
        )

    return xyz


def validate_triangle_indices(triangles, num_points: int) -> np.ndarray:
    """
    Coerce a triangle list to a (T, 3) int64 array of indices into the points.

    Raises:
        InvalidParameterError: If the shape is wrong, an index is out of range
            or a triangle repeats a vertex
    """
    try:
        arr = np.array(triangles, dtype=np.float64, copy=True)
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(f"Triangles must be index triples: {e}") from e

    if arr.size == 0:
        arr = arr.reshape(0, 3)

    if arr.ndim != 2 or arr.shape[1] != 3:
        raise InvalidParameterError(
            f"Triangles must be a Tx3 array of point indices, got shape {arr.shape}"
        )

    if not np.all(np.isfinite(arr)) or np.any(arr != np.round(arr)):
        raise InvalidParameterError("Triangle indices must be whole numbers")

    indices = arr.astype(np.int64)

    if np.any(indices < 0) or np.any(indices >= num_points):
        raise InvalidParameterError(
            f"Triangle indices must lie in 0..{num_points - 1}, "
            f"got {int(indices.min())}..{int(indices.max())}"
        )

    repeated = (
        (indices[:, 0] == indices[:, 1]) |
        (indices[:, 1] == indices[:, 2]) |
        (indices[:, 0] == indices[:, 2])
    )
    if np.any(repeated):
        bad = int(np.argmax(repeated))
        raise InvalidParameterError(
            f"Triangle {bad} repeats a vertex: {indices[bad].tolist()}"
        )

    return indices


def validate_polygon_vertices(vertices, context: str = "Polygon") -> np.ndarray:
    """
    Coerce polygon vertices to an (n, 2) float64 array.

    Raises:
        InvalidParameterError: If fewer than 3 vertices or any coordinate is non-finite
    """
    try:
        arr = np.asarray([tuple(v)[:2] for v in vertices], dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidParameterError(f"{context} vertices must be (x, y) pairs: {e}") from e

    if arr.ndim != 2 or len(arr) < 3:
        raise InvalidParameterError(
            f"{context} needs at least 3 vertices, got {len(arr)}"
        )

    if not np.all(np.isfinite(arr)):
        raise InvalidParameterError(f"{context} has non-finite vertex coordinates")

    return arr


def validate_output_path(filepath: Union[str, Path], context: str = "output file") -> Path:
    """
    Validate output path is writable before attempting to write.

    Args:
        filepath: The path to validate
        context: Description of what will be written (used in error messages)

    Returns:
        The validated path as a Path object

    Raises:
        FilePermissionError: If directory doesn't exist or isn't writable
    """
    path = Path(filepath)
    parent = path.parent

    # Handle empty parent (current directory)
    if str(parent) == '.':
        parent = Path.cwd()

    if not parent.exists():
        raise FilePermissionError(
            f"Cannot write {context}: directory '{parent}' does not exist. "
            "Create the directory first or specify a different path."
        )

    if not os.access(parent, os.W_OK):
        raise FilePermissionError(
            f"Cannot write {context}: no write permission for directory '{parent}'."
        )

    if path.exists() and not os.access(path, os.W_OK):
        raise FilePermissionError(
            f"Cannot overwrite {context}: file '{path}' exists but is not writable."
        )

    return path


def warn_if_region_outside_terrain(
    region: Tuple[float, float, float, float],
    terrain_bounds: Tuple[float, float, float, float],
) -> bool:
    """
    Warn when the sampling region does not overlap the terrain's extent.

    Such a walk is legal (every node is skipped) but almost always means the
    design and survey use different coordinate systems.

    Returns:
        True if the two boxes overlap
    """
    r_min_x, r_min_y, r_max_x, r_max_y = region
    t_min_x, t_min_y, t_max_x, t_max_y = terrain_bounds

    overlaps = not (
        r_max_x < t_min_x or r_min_x > t_max_x or
        r_max_y < t_min_y or r_min_y > t_max_y
    )

    if not overlaps:
        warnings.warn(
            "The design sampling region does not overlap the survey.\n"
            f"  Region bounds:  X={r_min_x:.1f} to {r_max_x:.1f}, "
            f"Y={r_min_y:.1f} to {r_max_y:.1f}\n"
            f"  Terrain bounds: X={t_min_x:.1f} to {t_max_x:.1f}, "
            f"Y={t_min_y:.1f} to {t_max_y:.1f}\n"
            "Ensure your design coordinates match the survey's coordinate system.",
            UserWarning,
            stacklevel=3
        )

    return overlaps


def validate_grid_nodes(nx: int, ny: int, grid_size: float) -> None:
    """
    Warn when a sampling grid is very large.

    Args:
        nx: Number of node columns
        ny: Number of node rows
        grid_size: Grid step
    """
    total = nx * ny
    if total > MAX_GRID_NODES:
        warnings.warn(
            f"Sampling a very large grid ({nx}x{ny} = {total:,} nodes). "
            f"Consider a coarser grid size than {grid_size}.",
            UserWarning,
            stacklevel=3
        )
