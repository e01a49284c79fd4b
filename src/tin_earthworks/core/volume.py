"""
Volume Calculator Module

Integrates cut and fill between a terrain model and a design surface by
sampling both on a regular grid.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple, TYPE_CHECKING
import numpy as np

from .geometry import Bounds
from .validation import (
    InvalidParameterError,
    validate_finite,
    validate_grid_nodes,
    validate_grid_size,
    warn_if_region_outside_terrain,
)

if TYPE_CHECKING:
    from .terrain import TerrainModel
    from ..analysis.grading import DesignSurface

logger = logging.getLogger(__name__)


DEFAULT_GRID_SIZE = 1.0

# Relative slack so a bound that is an exact multiple of the step is not lost
# to floating point rounding
GRID_BOUND_SLACK = 1e-9

# Nodes evaluated per batch
BATCH_NODES = 250_000

# |delta| at or below this is reported as neutral
DELTA_NEUTRAL_THRESHOLD = 0.01


@dataclass
class VolumeResult:
    """
    Cut/fill totals for one design against one terrain.

    All volumes are in cubic units (m³ if coordinates are in meters).
    """
    cut: float
    fill: float
    net: float  # fill - cut; positive = import required
    area_sampled: float
    cell_count: int
    grid_size: float = 0.0

    @classmethod
    def empty(cls, grid_size: float = 0.0) -> VolumeResult:
        return cls(cut=0.0, fill=0.0, net=0.0, area_sampled=0.0, cell_count=0, grid_size=grid_size)

    def summary(self) -> str:
        """Return human-readable summary."""
        lines = [
            "=" * 50,
            "EARTHWORK VOLUME SUMMARY",
            "=" * 50,
            f"Grid Size:         {self.grid_size:g} units",
            f"Cells Sampled:     {self.cell_count:,}",
            f"Area Sampled:      {self.area_sampled:,.1f} sq units",
            f"",
            f"CUT (Excavation):  {self.cut:,.1f} cubic units",
            f"FILL (Embankment): {self.fill:,.1f} cubic units",
            f"",
            f"NET VOLUME:        {self.net:,.1f} cubic units",
        ]

        if self.net > 0:
            lines.append("  (Import required)")
        elif self.net < 0:
            lines.append("  (Export required)")
        else:
            lines.append("  (Balanced)")

        lines.append("=" * 50)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "cut": self.cut,
            "fill": self.fill,
            "net": self.net,
            "area_sampled": self.area_sampled,
            "cell_count": self.cell_count,
            "grid_size": self.grid_size,
        }


def grid_axis(lower: float, upper: float, step: float) -> np.ndarray:
    """
    Node coordinates lower, lower + step, ... up to and including upper.

    The last node is the largest multiple of step not exceeding upper, so
    when the extent is not a multiple of step the final row/column stands
    for a cell narrower than step but is still counted as a full cell.
    Coordinates are computed by index rather than by repeated addition.
    """
    if upper < lower:
        return np.empty(0)

    count = int(math.floor((upper - lower) / step * (1 + GRID_BOUND_SLACK) + GRID_BOUND_SLACK)) + 1
    return lower + step * np.arange(count)


def compute_volume(
    terrain: 'TerrainModel',
    design: 'DesignSurface',
    grid_size: float = DEFAULT_GRID_SIZE,
    region: Optional[Bounds] = None,
) -> VolumeResult:
    """
    Sample terrain and design on a regular grid and accumulate cut/fill.

    At every node both surfaces are queried. Nodes where either has no value
    (outside the survey's convex hull, outside the design's zone) are skipped
    and contribute nothing. Otherwise dz = design - terrain; dz > 0 adds
    dz * grid_size² to fill, anything else adds -dz * grid_size² to cut, and
    the node is counted as sampled.

    The walk includes the upper bound of the region (see grid_axis). This is a
    Riemann sum: accuracy improves as grid_size shrinks.

    Args:
        terrain: Terrain model of the existing ground
        design: Design surface to compare against
        grid_size: Grid step in both axes, must be > 0
        region: (min_x, min_y, max_x, max_y) to sample; defaults to the
            design's own sampling region

    Returns:
        VolumeResult

    Raises:
        InvalidParameterError: If grid_size is not a finite positive number or
            region is malformed
    """
    grid_size = validate_grid_size(grid_size)

    if region is None:
        region = design.sampling_region()

    if region is None:
        logger.debug("Design defines no surface; skipping grid walk")
        return VolumeResult.empty(grid_size)

    min_x, min_y, max_x, max_y = _validate_region(region)
    warn_if_region_outside_terrain((min_x, min_y, max_x, max_y), terrain.bounds)

    xs = grid_axis(min_x, max_x, grid_size)
    ys = grid_axis(min_y, max_y, grid_size)
    validate_grid_nodes(len(xs), len(ys), grid_size)

    logger.info(
        f"Sampling {len(xs)} x {len(ys)} nodes over "
        f"X={min_x:.2f}..{max_x:.2f}, Y={min_y:.2f}..{max_y:.2f} (step {grid_size:g})"
    )

    cell_area = grid_size * grid_size
    cut = 0.0
    fill = 0.0
    cell_count = 0

    columns_per_batch = max(1, BATCH_NODES // max(len(ys), 1))

    for start in range(0, len(xs), columns_per_batch):
        xx, yy = np.meshgrid(xs[start:start + columns_per_batch], ys, indexing='ij')

        z_existing = terrain.heights(xx, yy)
        z_design = design.evaluate_many(xx, yy)

        sampled = ~np.isnan(z_existing) & ~np.isnan(z_design)
        dz = z_design[sampled] - z_existing[sampled]

        fill += float(dz[dz > 0].sum()) * cell_area
        cut += float(-dz[dz <= 0].sum()) * cell_area
        cell_count += int(sampled.sum())

    logger.info(f"Sampled {cell_count} cells: cut={cut:.3f}, fill={fill:.3f}")

    return VolumeResult(
        cut=cut,
        fill=fill,
        net=fill - cut,
        area_sampled=cell_count * cell_area,
        cell_count=cell_count,
        grid_size=grid_size,
    )


def _validate_region(region: Bounds) -> Bounds:
    if len(region) != 4:
        raise InvalidParameterError(
            f"Sampling region must be (min_x, min_y, max_x, max_y), got {region!r}"
        )

    min_x, min_y, max_x, max_y = (validate_finite(v, "Sampling region bound") for v in region)

    if min_x > max_x or min_y > max_y:
        raise InvalidParameterError(
            f"Sampling region is inverted: X={min_x} to {max_x}, Y={min_y} to {max_y}"
        )

    return (min_x, min_y, max_x, max_y)


def point_deltas(terrain: 'TerrainModel', design: 'DesignSurface') -> np.ndarray:
    """
    Design minus surveyed elevation at every survey point.

    Positive values need fill, negative values need cut. NaN marks points
    where the design has no value.

    Returns:
        Array of length terrain.num_points
    """
    x, y, z = terrain.points[:, 0], terrain.points[:, 1], terrain.points[:, 2]
    return design.evaluate_many(x, y) - z


def classify_deltas(deltas: np.ndarray, threshold: float = DELTA_NEUTRAL_THRESHOLD) -> np.ndarray:
    """
    Label each delta as 'cut', 'fill', 'neutral' or 'outside'.

    Args:
        deltas: Output of point_deltas
        threshold: |delta| at or below this is 'neutral'

    Returns:
        Array of strings, same shape as deltas
    """
    deltas = np.asarray(deltas, dtype=np.float64)
    labels = np.full(deltas.shape, "neutral", dtype=object)

    with np.errstate(invalid='ignore'):
        labels[deltas < -threshold] = "cut"
        labels[deltas > threshold] = "fill"
    labels[np.isnan(deltas)] = "outside"

    return labels


def max_abs_delta(deltas: np.ndarray, floor: float = DELTA_NEUTRAL_THRESHOLD) -> float:
    """
    Largest |delta|, for normalising colour scales.

    Returns 1.0 when every delta is below floor (or none are defined).
    """
    deltas = np.asarray(deltas, dtype=np.float64)
    valid = deltas[~np.isnan(deltas)]
    peak = float(np.abs(valid).max()) if valid.size else 0.0
    return peak if peak >= floor else 1.0


def delta_summary(deltas: np.ndarray) -> Tuple[int, int, int, int]:
    """Counts of (cut, fill, neutral, outside) points."""
    labels = classify_deltas(deltas)
    return tuple(int(np.sum(labels == name)) for name in ("cut", "fill", "neutral", "outside"))
