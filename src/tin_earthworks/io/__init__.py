"""I/O modules for loading and saving data."""

from .survey import SurveyLoader, parse_points_text, generate_sample_terrain
from .exporters import (
    export_summary_json,
    export_point_deltas_csv,
    export_design_geojson,
)

__all__ = [
    "SurveyLoader",
    "parse_points_text",
    "generate_sample_terrain",
    "export_summary_json",
    "export_point_deltas_csv",
    "export_design_geojson",
]
