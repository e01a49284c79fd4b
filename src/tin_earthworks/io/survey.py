"""
Survey Point Loading Module

Reads surveyed (x, y, z) points from delimited text (CSV/XYZ) or LAS files
and hands them to the terrain model as an Nx3 array.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Tuple
import numpy as np

from ..core.validation import (
    InsufficientPointsError,
    SurveyFormatError,
    validate_output_path,
    validate_positive,
)

try:
    import laspy
    HAS_LASPY = True
except ImportError:
    HAS_LASPY = False

logger = logging.getLogger(__name__)


# Commas, semicolons, tabs and plain whitespace all separate fields
FIELD_SEPARATOR = re.compile(r"[,;\t ]+")

MIN_SURVEY_POINTS = 3


def _split(line: str) -> List[str]:
    return [part for part in FIELD_SEPARATOR.split(line.strip()) if part]


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def _is_header_row(line: str) -> bool:
    """A row is a header if any of its fields is not a number."""
    return any(not _is_number(part) for part in _split(line))


def parse_points_text(text: str) -> np.ndarray:
    """
    Parse survey points from delimited text.

    Expected format: x, y, z [extra columns ignored] per line. The first row is
    skipped when any of its fields is non-numeric (a header). Blank lines are
    ignored.

    Args:
        text: File contents

    Returns:
        Nx3 float64 array

    Raises:
        SurveyFormatError: If a row has fewer than 3 fields or a non-numeric
            coordinate; the message names the 1-based line number
        InsufficientPointsError: If fewer than 3 points are found
    """
    lines = text.strip().splitlines()
    if not lines or not lines[0].strip():
        raise SurveyFormatError("Survey file is empty")

    start = 1 if _is_header_row(lines[0]) else 0
    if start:
        logger.debug(f"Skipping header row: {lines[0].strip()!r}")

    rows: List[Tuple[float, float, float]] = []
    for lineno, line in enumerate(lines[start:], start=start + 1):
        if not line.strip():
            continue

        parts = _split(line)
        if len(parts) < 3:
            raise SurveyFormatError(
                f"Line {lineno}: expected at least 3 columns, got {len(parts)}"
            )

        try:
            x, y, z = (float(p) for p in parts[:3])
        except ValueError:
            raise SurveyFormatError(f"Line {lineno}: non-numeric values found") from None

        if not all(np.isfinite((x, y, z))):
            raise SurveyFormatError(f"Line {lineno}: non-finite coordinate")

        rows.append((x, y, z))

    if len(rows) < MIN_SURVEY_POINTS:
        raise InsufficientPointsError(
            f"Need at least {MIN_SURVEY_POINTS} points, got {len(rows)}"
        )

    logger.info(f"Parsed {len(rows)} survey points")
    return np.array(rows, dtype=np.float64)


class SurveyLoader:
    """
    Factory for loading survey points from various file formats.

    Supported formats:
        - CSV / TXT / XYZ (delimited text: x y z per line)
        - LAS/LAZ (requires laspy)
    """

    # ASPRS LAS ground classification
    CLASS_GROUND = 2

    @classmethod
    def load(cls, filepath: str | Path, **kwargs) -> np.ndarray:
        """
        Load survey points from file, auto-detecting format.

        Args:
            filepath: Path to survey file
            **kwargs: Format-specific options

        Returns:
            Nx3 array of (x, y, z)
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        loaders = {
            '.csv': cls._load_text,
            '.txt': cls._load_text,
            '.xyz': cls._load_text,
            '.las': cls._load_las,
            '.laz': cls._load_las,
        }

        if suffix not in loaders:
            raise ValueError(f"Unsupported format: {suffix}")

        return loaders[suffix](filepath, **kwargs)

    @classmethod
    def _load_text(cls, filepath: Path, encoding: str = "utf-8", **kwargs) -> np.ndarray:
        return parse_points_text(filepath.read_text(encoding=encoding))

    @classmethod
    def _load_las(cls, filepath: Path, ground_only: bool = False, **kwargs) -> np.ndarray:
        """Load LAS/LAZ file using laspy."""
        if not HAS_LASPY:
            raise ImportError(
                "laspy is required to load LAS files. "
                "Install with: pip install laspy"
            )

        with laspy.open(filepath) as reader:
            las = reader.read()

        xyz = np.column_stack([las.x, las.y, las.z]).astype(np.float64)

        if ground_only and hasattr(las, 'classification'):
            mask = np.asarray(las.classification) == cls.CLASS_GROUND
            logger.debug(f"Keeping {int(mask.sum())} of {len(xyz)} ground points")
            xyz = xyz[mask]

        if len(xyz) < MIN_SURVEY_POINTS:
            raise InsufficientPointsError(
                f"Need at least {MIN_SURVEY_POINTS} points, got {len(xyz)}"
            )

        return xyz


def write_points_csv(points: np.ndarray, filepath: str | Path, header: bool = True) -> Path:
    """
    Write survey points as x,y,z CSV.

    Returns:
        The written path
    """
    path = validate_output_path(filepath, "survey CSV")
    np.savetxt(
        path,
        np.asarray(points, dtype=np.float64),
        fmt="%.3f",
        delimiter=",",
        header="x,y,z" if header else "",
        comments="",
    )
    return path


def generate_sample_terrain(
    size: Tuple[float, float] = (100.0, 100.0),
    resolution: float = 1.0,
    base_elevation: float = 100.0,
    noise_scale: float = 0.5,
    hill_height: float = 10.0,
    seed: int = 42,
) -> np.ndarray:
    """
    Generate synthetic survey points for testing.

    Creates a terrain with gentle hills and random noise sampled on a jittered
    grid, useful for testing without real survey data.

    Args:
        size: (width, height) in meters
        resolution: Nominal point spacing in meters
        base_elevation: Base elevation value
        noise_scale: Amount of random elevation noise
        hill_height: Maximum hill height
        seed: Random seed for reproducibility

    Returns:
        Nx3 array of survey points
    """
    resolution = validate_positive(resolution, "resolution")
    rng = np.random.default_rng(seed)

    width, height = size
    x = np.arange(0, width + resolution / 2, resolution)
    y = np.arange(0, height + resolution / 2, resolution)
    xx, yy = np.meshgrid(x, y)

    # Jitter interior points so the survey is genuinely scattered
    jitter = resolution * 0.25
    interior = (xx > 0) & (xx < x[-1]) & (yy > 0) & (yy < y[-1])
    xx = xx + np.where(interior, rng.uniform(-jitter, jitter, xx.shape), 0.0)
    yy = yy + np.where(interior, rng.uniform(-jitter, jitter, yy.shape), 0.0)

    zz = base_elevation + (
        hill_height * np.sin(xx / 20) * np.cos(yy / 25) +
        hill_height * 0.5 * np.sin(xx / 10 + yy / 15) +
        noise_scale * rng.standard_normal(xx.shape)
    )

    return np.column_stack([xx.ravel(), yy.ravel(), zz.ravel()])
