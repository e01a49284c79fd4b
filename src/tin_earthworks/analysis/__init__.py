"""Design surfaces for earthwork analysis."""

from .grading import DesignSurface, PadWithSlope, Rectangle, RectanglePad, RectangleSet

__all__ = ["DesignSurface", "PadWithSlope", "Rectangle", "RectanglePad", "RectangleSet"]
