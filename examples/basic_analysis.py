"""
Basic Earthwork Analysis Example

This example demonstrates:
1. Generating (or loading) survey points
2. Triangulating them into a terrain model
3. Defining a building pad with a batter, a yard slab and a set of footings
4. Calculating cut/fill volumes for each design
5. Exporting per-point deltas and design footprints

Run from the project root after `pip install -e .`:
    python examples/basic_analysis.py
"""

from pathlib import Path

from tin_earthworks.io.survey import generate_sample_terrain, SurveyLoader
from tin_earthworks.core.terrain import TerrainModel
from tin_earthworks.core.volume import compute_volume, point_deltas, delta_summary
from tin_earthworks.analysis.grading import (
    PadWithSlope,
    Rectangle,
    RectanglePad,
    RectangleSet,
)


def main():
    print("=" * 60)
    print("TIN EARTHWORK ANALYSIS - EXAMPLE")
    print("=" * 60)

    # =========================================================================
    # Step 1: Generate or load survey points
    # =========================================================================
    print("\n[1] Generating sample survey...")

    # Replace with SurveyLoader.load("survey.csv") for real data
    points = generate_sample_terrain(
        size=(200.0, 150.0),     # 200m x 150m site
        resolution=4.0,          # ~4m between shots
        base_elevation=100.0,
        noise_scale=0.5,
        hill_height=8.0,
        seed=42,
    )

    print(f"   Points: {len(points):,}")

    # =========================================================================
    # Step 2: Triangulate
    # =========================================================================
    print("\n[2] Building terrain model...")

    terrain = TerrainModel.from_points(points)
    stats = terrain.statistics()

    print(f"   Triangles: {terrain.num_triangles:,}")
    print(f"   Elevation range: {stats['min_elevation']:.1f} to {stats['max_elevation']:.1f}")
    print(f"   Hull area: {stats['hull_area']:,.0f} sq meters")

    # =========================================================================
    # Step 3: Building pad with a 2:1 batter
    # =========================================================================
    print("\n[3] Building pad (2:1 batter, 8m apron)...")

    pad_elevation = stats['mean_elevation']
    building = PadWithSlope(
        polygon=[(85, 65), (115, 65), (115, 85), (85, 85)],
        pad_elevation=pad_elevation,
        slope_ratio=2.0,
        max_slope_distance=8.0,
    )

    building_result = compute_volume(terrain, building, grid_size=0.5)
    print(building_result.summary())

    # =========================================================================
    # Step 4: Yard slab as a single rectangle
    # =========================================================================
    print("\n[4] Yard slab...")

    yard = RectanglePad(Rectangle.from_center(100, 35, width=40, depth=25,
                                              elevation=pad_elevation - 0.5))
    yard_result = compute_volume(terrain, yard, grid_size=0.5)
    print(f"   Cut:  {yard_result.cut:,.0f} cubic meters")
    print(f"   Fill: {yard_result.fill:,.0f} cubic meters")

    # =========================================================================
    # Step 5: Footings; the higher body wins where they overlap
    # =========================================================================
    print("\n[5] Footings...")

    footings = RectangleSet([
        Rectangle(20, 20, 30, 30, elevation=pad_elevation, pad_height=0.4),
        Rectangle(25, 25, 40, 35, elevation=pad_elevation + 0.6, pad_height=0.4),
        {"minX": 150, "minY": 100, "maxX": 160, "maxY": 112, "elevation": pad_elevation},
    ])
    footing_result = compute_volume(terrain, footings, grid_size=0.5)
    print(f"   {footings.description()}")
    print(f"   Net: {footing_result.net:,.0f} cubic meters")

    # =========================================================================
    # Step 6: Combined site summary
    # =========================================================================
    print("\n" + "=" * 60)
    print("SITE SUMMARY")
    print("=" * 60)

    results = [building_result, yard_result, footing_result]
    total_cut = sum(r.cut for r in results)
    total_fill = sum(r.fill for r in results)
    total_net = total_fill - total_cut

    print(f"Total Cut:     {total_cut:,.0f} cubic meters")
    print(f"Total Fill:    {total_fill:,.0f} cubic meters")
    print(f"Net Movement:  {total_net:,.0f} cubic meters")

    if total_net > 0:
        print(f"\n=> {total_net:,.0f} cubic meters of material must be IMPORTED to site")
    else:
        print(f"\n=> {abs(total_net):,.0f} cubic meters of material must be EXPORTED from site")

    # =========================================================================
    # Step 7: Exports
    # =========================================================================
    print("\n[6] Exporting...")

    from tin_earthworks.io.exporters import export_design_geojson, export_point_deltas_csv

    out_dir = Path(__file__).parent
    deltas = point_deltas(terrain, building)
    n_cut, n_fill, n_neutral, n_outside = delta_summary(deltas)
    print(f"   Survey points: {n_cut} cut, {n_fill} fill, {n_neutral} on grade, {n_outside} outside")

    export_point_deltas_csv(terrain.points, deltas, out_dir / "building_deltas.csv")
    export_design_geojson(building, out_dir / "building.geojson")
    print(f"   Written to: {out_dir}")

    print("\n" + "=" * 60)
    print("Analysis complete!")
    print("=" * 60)


def demo_with_real_file(path: str = "survey.csv"):
    """Analyze a real survey file against a rectangular pad."""
    terrain = TerrainModel.from_points(SurveyLoader.load(path))
    min_x, min_y, max_x, max_y = terrain.bounds
    cx, cy = (min_x + max_x) / 2, (min_y + max_y) / 2

    pad = RectanglePad(Rectangle.from_center(cx, cy, width=20, depth=20,
                                             elevation=terrain.suggested_pad_elevation))
    print(compute_volume(terrain, pad, grid_size=1.0).summary())


if __name__ == "__main__":
    main()
