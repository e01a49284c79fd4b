"""
Command Line Interface for TIN Earthwork Analysis

Usage:
    tin-earthworks analyze <input> --polygon <coords> [--elevation <z>]
    tin-earthworks analyze <input> --rect <min_x,min_y,max_x,max_y> --elevation <z>
    tin-earthworks analyze <input> --bodies <json>
    tin-earthworks info <input>
    tin-earthworks generate-sample --output <file>
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .analysis.grading import (
    DEFAULT_MAX_SLOPE_DISTANCE,
    DEFAULT_SLOPE_RATIO,
    PadWithSlope,
    Rectangle,
    RectanglePad,
    RectangleSet,
)
from .core.terrain import TerrainModel
from .core.validation import ValidationError
from .core.volume import DEFAULT_GRID_SIZE, compute_volume, delta_summary, point_deltas
from .io.survey import SurveyLoader, generate_sample_terrain, write_points_csv


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_terrain(input_file: str) -> TerrainModel:
    """Load survey points and triangulate them, exiting on failure."""
    try:
        points = SurveyLoader.load(input_file)
    except (ValueError, ImportError, OSError) as e:
        click.echo(f"Error loading file: {e}", err=True)
        sys.exit(1)

    click.echo(f"  Loaded {len(points):,} points")

    try:
        return TerrainModel.from_points(points)
    except ValidationError as e:
        click.echo(f"Error building terrain: {e}", err=True)
        sys.exit(1)


def _parse_rect(rect: str, elevation: float) -> Rectangle:
    parts = rect.split(',')
    if len(parts) != 4:
        raise ValueError(
            f"Rectangle must have exactly 4 values (got {len(parts)}). "
            "Format: min_x,min_y,max_x,max_y"
        )

    try:
        min_x, min_y, max_x, max_y = [float(p.strip()) for p in parts]
    except ValueError as e:
        raise ValueError(
            f"Rectangle values must be numbers. "
            f"Got: {parts}. Error: {e}"
        )

    return Rectangle(min_x, min_y, max_x, max_y, elevation=elevation)


def _parse_bodies(bodies: str) -> RectangleSet:
    """Bodies come as a JSON list, or a path to a JSON file holding one."""
    path = Path(bodies)
    text = path.read_text(encoding="utf-8") if path.suffix.lower() == ".json" and path.exists() else bodies

    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("Bodies must be a JSON list of rectangle objects")

    return RectangleSet(data)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def main(verbose: bool):
    """TIN Earthwork Analysis Tool

    Triangulate survey points and calculate cut/fill volumes
    against a pad or body design.
    """
    _configure_logging(verbose)


@main.command()
@click.argument('input_file', type=click.Path(exists=True))
def info(input_file: str):
    """Display information about a survey point file."""
    click.echo(f"Loading: {input_file}")
    terrain = _load_terrain(input_file)
    stats = terrain.statistics()

    click.echo("\n" + "=" * 50)
    click.echo("SURVEY INFO")
    click.echo("=" * 50)
    click.echo(f"File:           {input_file}")
    click.echo(f"Points:         {stats['num_points']:,}")
    click.echo(f"Triangles:      {stats['num_triangles']:,}")
    click.echo(f"")
    click.echo(f"Bounds:")
    click.echo(f"  X:            {stats['min_x']:.2f} to {stats['max_x']:.2f}")
    click.echo(f"  Y:            {stats['min_y']:.2f} to {stats['max_y']:.2f}")
    click.echo(f"  Z:            {stats['min_elevation']:.2f} to {stats['max_elevation']:.2f}")
    click.echo(f"")
    click.echo(f"Hull Area:      {stats['hull_area']:,.1f} sq units")
    click.echo(f"Mean Elevation: {stats['mean_elevation']:.2f}")
    click.echo("=" * 50)


@main.command()
@click.argument('input_file', type=click.Path(exists=True))
@click.option('--polygon', '-p', type=str,
              help='Pad polygon as JSON: [[x1,y1],[x2,y2],...]')
@click.option('--rect', type=str,
              help='Single pad as "min_x,min_y,max_x,max_y"')
@click.option('--bodies', type=str,
              help='Rectangle bodies as a JSON list (or .json file) of '
                   '{"min_x","min_y","max_x","max_y","elevation","pad_height"}')
@click.option('--elevation', '-e', type=float,
              help='Pad elevation (default: lowest survey elevation)')
@click.option('--slope-ratio', default=DEFAULT_SLOPE_RATIO, show_default=True,
              help='Batter run per unit rise around a polygon pad')
@click.option('--slope-distance', default=DEFAULT_MAX_SLOPE_DISTANCE, show_default=True,
              help='How far the batter extends from the pad edge')
@click.option('--grid-size', '-g', default=DEFAULT_GRID_SIZE, show_default=True,
              help='Sampling grid step')
@click.option('--output', '-o', type=click.Path(), help='Output JSON file for results')
@click.option('--export-deltas', type=click.Path(), help='Export per-point deltas to CSV file')
@click.option('--export-geojson', type=click.Path(), help='Export design footprint to GeoJSON')
def analyze(
    input_file: str,
    polygon: Optional[str],
    rect: Optional[str],
    bodies: Optional[str],
    elevation: Optional[float],
    slope_ratio: float,
    slope_distance: float,
    grid_size: float,
    output: Optional[str],
    export_deltas: Optional[str],
    export_geojson: Optional[str],
):
    """Triangulate survey points and calculate cut/fill volumes.

    Requires exactly one of --polygon, --rect or --bodies.

    Examples:

        # Polygon pad with a 2:1 batter out to 8 units
        tin-earthworks analyze survey.csv -e 100.0 \\
            --polygon "[[0,0],[40,0],[40,25],[0,25]]" --slope-distance 8

        # Single rectangular pad
        tin-earthworks analyze survey.csv -e 100.0 --rect "10,10,30,20"
    """
    chosen = [name for name, value in
              (("--polygon", polygon), ("--rect", rect), ("--bodies", bodies)) if value]
    if len(chosen) != 1:
        click.echo("Error: Must specify exactly one of --polygon, --rect or --bodies", err=True)
        sys.exit(1)

    if bodies and elevation is not None:
        click.echo(
            "Error: --elevation cannot be combined with --bodies; "
            "each body carries its own elevation",
            err=True
        )
        sys.exit(1)

    if grid_size <= 0:
        click.echo(
            f"Error: Grid size must be positive (got {grid_size}). "
            "Typical values are 0.25-2.0 meters.",
            err=True
        )
        sys.exit(1)

    click.echo(f"Loading survey: {input_file}")
    terrain = _load_terrain(input_file)
    click.echo(f"  Triangulated: {terrain.num_triangles:,} triangles")

    if elevation is None and not bodies:
        elevation = terrain.suggested_pad_elevation
        click.echo(f"  Pad elevation: {elevation:.2f} (lowest survey point)")

    try:
        if polygon:
            design = PadWithSlope(json.loads(polygon), elevation, slope_ratio, slope_distance)
        elif rect:
            design = RectanglePad(_parse_rect(rect, elevation))
        else:
            design = _parse_bodies(bodies)
    except (ValueError, TypeError, OSError) as e:
        click.echo(f"Error parsing design: {e}", err=True)
        sys.exit(1)

    click.echo(f"  Design: {design.description()}")
    click.echo(f"Calculating earthwork (grid size: {grid_size})...")

    try:
        result = compute_volume(terrain, design, grid_size)
    except ValidationError as e:
        click.echo(f"Error calculating volumes: {e}", err=True)
        sys.exit(1)

    click.echo("\n" + result.summary())

    deltas = point_deltas(terrain, design)
    n_cut, n_fill, n_neutral, n_outside = delta_summary(deltas)
    click.echo(f"Survey points: {n_cut} cut, {n_fill} fill, "
               f"{n_neutral} on grade, {n_outside} outside design")

    if output:
        try:
            from .io.exporters import export_summary_json
            export_summary_json(result, output, design=design)
            click.echo(f"\nResults saved to: {output}")
        except (ValidationError, OSError) as e:
            click.echo(f"Error saving output: {e}", err=True)
            sys.exit(1)

    if export_deltas:
        try:
            from .io.exporters import export_point_deltas_csv
            export_point_deltas_csv(terrain.points, deltas, export_deltas)
            click.echo(f"Point deltas exported to: {export_deltas}")
        except (ValidationError, OSError) as e:
            click.echo(f"Error exporting CSV: {e}", err=True)
            sys.exit(1)

    if export_geojson:
        try:
            from .io.exporters import export_design_geojson
            export_design_geojson(design, export_geojson)
            click.echo(f"Design footprint exported to: {export_geojson}")
        except (ValidationError, OSError) as e:
            click.echo(f"Error exporting GeoJSON: {e}", err=True)
            sys.exit(1)


@main.command()
@click.option('--output', '-o', required=True, type=click.Path(),
              help='Output CSV file path')
@click.option('--size', default="100,100", help='Terrain size as "width,height" (default: 100,100)')
@click.option('--resolution', '-r', default=2.0, help='Point spacing (default: 2.0)')
@click.option('--base-elevation', default=100.0, help='Base elevation (default: 100)')
@click.option('--hill-height', default=10.0, help='Maximum hill height (default: 10)')
@click.option('--seed', default=42, help='Random seed (default: 42)')
def generate_sample(
    output: str,
    size: str,
    resolution: float,
    base_elevation: float,
    hill_height: float,
    seed: int,
):
    """Generate a sample survey point file for testing.

    Creates synthetic terrain with gentle hills and random variation.

    Example:
        tin-earthworks generate-sample -o sample.csv --size 200,200
    """
    try:
        width, height = [float(x) for x in size.split(',')]
    except ValueError:
        click.echo("Error: Size must be 'width,height'", err=True)
        sys.exit(1)

    click.echo(f"Generating sample terrain...")
    click.echo(f"  Size: {width} x {height}")
    click.echo(f"  Resolution: {resolution}")
    click.echo(f"  Base elevation: {base_elevation}")

    points = generate_sample_terrain(
        size=(width, height),
        resolution=resolution,
        base_elevation=base_elevation,
        hill_height=hill_height,
        seed=seed,
    )

    click.echo(f"  Generated {len(points):,} points")

    try:
        write_points_csv(points, output)
    except ValidationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Saved to: {output}")


if __name__ == '__main__':
    main()
