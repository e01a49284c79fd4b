"""
Export utilities for earthwork analysis results.

Provides JSON summaries, per-point delta CSVs and GeoJSON design footprints.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import numpy as np

from ..core.validation import validate_output_path
from ..core.volume import classify_deltas

if TYPE_CHECKING:
    from ..core.volume import VolumeResult
    from ..analysis.grading import DesignSurface


def export_summary_json(
    result: 'VolumeResult',
    filepath: str,
    design: Optional['DesignSurface'] = None,
    indent: int = 2,
) -> None:
    """
    Export volume summary to JSON.

    Args:
        result: VolumeResult from compute_volume
        filepath: Output JSON file path
        design: Optional design whose description is stored alongside
        indent: JSON indentation level (default: 2)
    """
    path = validate_output_path(filepath, "JSON output")
    data = result.to_dict()

    if design is not None:
        data["design"] = design.description()

    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent)


def export_point_deltas_csv(
    points: np.ndarray,
    deltas: np.ndarray,
    filepath: str,
    include_header: bool = True,
) -> None:
    """
    Export per-point design-minus-terrain deltas to CSV.

    Columns: x, y, z, delta, class. Points outside the design have an empty
    delta and class 'outside'.

    Args:
        points: Nx3 survey points
        deltas: Output of point_deltas for the same points
        filepath: Output CSV file path
        include_header: Whether to include column header row (default: True)
    """
    path = validate_output_path(filepath, "CSV output")
    labels = classify_deltas(deltas)

    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)

        if include_header:
            writer.writerow(['x', 'y', 'z', 'delta', 'class'])

        for (x, y, z), dz, label in zip(points, deltas, labels):
            writer.writerow([
                f"{x:.6f}", f"{y:.6f}", f"{z:.4f}",
                "" if np.isnan(dz) else f"{dz:.4f}",
                label,
            ])


def design_features(design: 'DesignSurface') -> List[Dict[str, Any]]:
    """
    GeoJSON features describing a design's footprint.

    A pad with slope yields its pad polygon and the apron zone; rectangle
    designs yield one feature per body.
    """
    from shapely.geometry import mapping
    from ..analysis.grading import PadWithSlope, RectanglePad, RectangleSet

    features: List[Dict[str, Any]] = []

    if isinstance(design, PadWithSlope):
        features.append({
            "type": "Feature",
            "geometry": mapping(design.footprint()),
            "properties": {
                "role": "pad",
                "elevation": design.pad_elevation,
            },
        })
        if design.max_slope_distance > 0:
            apron = design.influence_zone().difference(design.footprint())
            features.append({
                "type": "Feature",
                "geometry": mapping(apron),
                "properties": {
                    "role": "slope",
                    "slope_ratio": design.slope_ratio,
                    "max_slope_distance": design.max_slope_distance,
                    "lowest_elevation": design.pad_elevation - design.max_slope_distance / design.slope_ratio,
                },
            })

    elif isinstance(design, (RectanglePad, RectangleSet)):
        rectangles = (design.rectangle,) if isinstance(design, RectanglePad) else design.rectangles
        for index, rect in enumerate(rectangles):
            features.append({
                "type": "Feature",
                "geometry": mapping(rect.footprint()),
                "properties": {"role": "body", "index": index, **rect.to_dict()},
            })

    else:
        raise TypeError(f"Unsupported design type: {type(design).__name__}")

    return features


def export_design_geojson(
    design: 'DesignSurface',
    filepath: str,
    crs: Optional[str] = None,
) -> None:
    """
    Export design footprints as a GeoJSON FeatureCollection.

    Args:
        design: Design surface
        filepath: Output GeoJSON file path
        crs: Optional CRS string (added as foreign member)
    """
    path = validate_output_path(filepath, "GeoJSON output")

    geojson: Dict[str, Any] = {
        "type": "FeatureCollection",
        "features": design_features(design),
        "properties": {"description": design.description()},
    }

    # CRS as a foreign member, as GeoJSON 2008 allowed
    if crs:
        geojson["crs"] = {
            "type": "name",
            "properties": {"name": crs}
        }

    with open(path, 'w', encoding='utf-8') as f:
        json.dump(geojson, f, indent=2)
