"""
TIN Earthwork Analysis Tool

A Python library for triangulating survey points and calculating
cut/fill volumes against pad and body designs.
"""

__version__ = "0.1.0"

from .core.geometry import Point2D, Point3D
from .core.terrain import TerrainModel
from .core.volume import VolumeResult, compute_volume, point_deltas
from .analysis.grading import (
    DesignSurface,
    PadWithSlope,
    Rectangle,
    RectanglePad,
    RectangleSet,
)
from .io.survey import SurveyLoader

__all__ = [
    "Point2D",
    "Point3D",
    "TerrainModel",
    "VolumeResult",
    "compute_volume",
    "point_deltas",
    "DesignSurface",
    "PadWithSlope",
    "Rectangle",
    "RectanglePad",
    "RectangleSet",
    "SurveyLoader",
]
