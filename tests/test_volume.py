"""
Tests for grid-sampled cut/fill volumes and per-point deltas.
"""

import numpy as np
import pytest


class ExplodingTerrain:
    """Terrain stand-in that fails if anything queries it."""

    bounds = (0.0, 0.0, 10.0, 10.0)

    def heights(self, xs, ys):
        raise AssertionError("terrain should not be queried")

    def locate_many(self, xs, ys):
        raise AssertionError("terrain should not be queried")


class TestGridAxis:
    """Tests for grid node placement."""

    def test_inclusive_upper_bound(self):
        """Test that an exact multiple includes the upper bound."""
        from tin_earthworks.core.volume import grid_axis

        axis = grid_axis(0.0, 10.0, 1.0)

        assert len(axis) == 11
        assert axis[0] == 0.0
        assert axis[-1] == pytest.approx(10.0)

    def test_rounding_does_not_lose_last_node(self):
        """Test a step that does not divide exactly in binary floating point."""
        from tin_earthworks.core.volume import grid_axis

        assert len(grid_axis(0.0, 0.3, 0.1)) == 4

    def test_non_multiple_extent(self):
        """Test that the last node does not pass the upper bound."""
        from tin_earthworks.core.volume import grid_axis

        axis = grid_axis(0.0, 9.5, 1.0)

        assert len(axis) == 10
        assert axis[-1] == pytest.approx(9.0)

    def test_degenerate_extent(self):
        """Test a zero-width region has one node."""
        from tin_earthworks.core.volume import grid_axis

        assert len(grid_axis(3.0, 3.0, 1.0)) == 1


class TestComputeVolume:
    """Tests for cut/fill accumulation."""

    def test_flat_fill(self, flat_terrain):
        """Test sign convention: design above terrain is fill."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.volume import compute_volume

        design = RectanglePad(Rectangle(0, 0, 9, 9, elevation=5.0))
        result = compute_volume(flat_terrain, design, grid_size=1.0)

        assert result.cell_count == 100
        assert result.fill == pytest.approx(500.0)
        assert result.cut == pytest.approx(0.0)
        assert result.net == pytest.approx(500.0)
        assert result.area_sampled == pytest.approx(100.0)

    def test_flat_cut(self, flat_terrain):
        """Test sign convention: design below terrain is cut."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.volume import compute_volume

        design = RectanglePad(Rectangle(0, 0, 9, 9, elevation=-2.0))
        result = compute_volume(flat_terrain, design, grid_size=1.0)

        assert result.cut == pytest.approx(200.0)
        assert result.fill == pytest.approx(0.0)
        assert result.net == pytest.approx(-200.0)

    def test_cell_area_scales_with_grid(self, flat_terrain):
        """Test that each node stands for grid_size squared of area."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.volume import compute_volume

        design = RectanglePad(Rectangle(0, 0, 8, 8, elevation=1.0))
        result = compute_volume(flat_terrain, design, grid_size=2.0)

        assert result.cell_count == 25
        assert result.area_sampled == pytest.approx(100.0)
        assert result.fill == pytest.approx(100.0)

    def test_on_grade_nodes_are_counted(self, flat_terrain):
        """Test that dz == 0 still counts as a sampled cell."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.volume import compute_volume

        design = RectanglePad(Rectangle(0, 0, 9, 9, elevation=0.0))
        result = compute_volume(flat_terrain, design, grid_size=1.0)

        assert result.cell_count == 100
        assert result.cut == pytest.approx(0.0)
        assert result.fill == pytest.approx(0.0)

    def test_upper_bound_included(self, flat_terrain):
        """Test the inclusive grid walk over an exact multiple."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.volume import compute_volume

        design = RectanglePad(Rectangle(0, 0, 10, 10, elevation=1.0))
        result = compute_volume(flat_terrain, design, grid_size=1.0)

        assert result.cell_count == 121

    def test_balanced_on_sloped_ground(self, plane_points):
        """Test cut and fill on ground rising along x."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.terrain import TerrainModel
        from tin_earthworks.core.volume import compute_volume

        terrain = TerrainModel.from_points(plane_points(a=1.0, b=0.0, c=0.0))
        design = RectanglePad(Rectangle(5, 5, 15, 15, elevation=10.0))
        result = compute_volume(terrain, design, grid_size=1.0)

        # 11 rows of dz = 5, 4, 3, 2, 1, 0, -1, ..., -5
        assert result.cell_count == 121
        assert result.fill == pytest.approx(165.0, abs=1e-6)
        assert result.cut == pytest.approx(165.0, abs=1e-6)
        assert result.net == pytest.approx(0.0, abs=1e-6)

    def test_nodes_outside_hull_are_skipped(self, flat_terrain):
        """Test that only nodes over the survey contribute."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.volume import compute_volume

        design = RectanglePad(Rectangle(-5.5, -5.5, 4, 4, elevation=1.0))
        result = compute_volume(flat_terrain, design, grid_size=1.0)

        assert result.cell_count == 25
        assert result.fill == pytest.approx(25.0)

    def test_region_outside_survey_warns(self, flat_terrain):
        """Test that a design away from the survey warns and samples nothing."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.volume import compute_volume

        design = RectanglePad(Rectangle(1000, 1000, 1010, 1010, elevation=1.0))

        with pytest.warns(UserWarning, match="does not overlap"):
            result = compute_volume(flat_terrain, design, grid_size=1.0)

        assert result.cell_count == 0
        assert result.cut == 0.0
        assert result.fill == 0.0

    def test_pad_with_slope_batter_counts(self, flat_terrain):
        """Test that the batter around a pad contributes volume."""
        from tin_earthworks.analysis.grading import PadWithSlope, RectanglePad, Rectangle
        from tin_earthworks.core.volume import compute_volume

        polygon = [(3, 3), (7, 3), (7, 7), (3, 7)]
        sloped = compute_volume(
            flat_terrain, PadWithSlope(polygon, 2.0, slope_ratio=1.0, max_slope_distance=2.0), 1.0
        )
        flat = compute_volume(flat_terrain, RectanglePad(Rectangle(3, 3, 7, 7, elevation=2.0)), 1.0)

        assert flat.fill == pytest.approx(50.0)
        assert sloped.cell_count > flat.cell_count
        assert sloped.fill > flat.fill
        assert sloped.cut == pytest.approx(0.0)

    def test_highest_body_wins_in_volume(self, flat_terrain):
        """Test that overlapping bodies are not double counted."""
        from tin_earthworks.analysis.grading import Rectangle, RectangleSet
        from tin_earthworks.core.volume import compute_volume

        bodies = RectangleSet([
            Rectangle(0, 0, 4, 4, elevation=10.0),
            Rectangle(0, 0, 4, 4, elevation=20.0),
        ])
        result = compute_volume(flat_terrain, bodies, grid_size=1.0)

        assert result.cell_count == 25
        assert result.fill == pytest.approx(500.0)

    def test_empty_body_set_queries_nothing(self):
        """Test that an empty set returns zeros without touching the terrain."""
        from tin_earthworks.analysis.grading import RectangleSet
        from tin_earthworks.core.volume import compute_volume

        result = compute_volume(ExplodingTerrain(), RectangleSet([]), grid_size=1.0)

        assert result.cut == 0.0
        assert result.fill == 0.0
        assert result.net == 0.0
        assert result.area_sampled == 0.0
        assert result.cell_count == 0

    @pytest.mark.parametrize("grid_size", [0, 0.0, -1.0, float("nan"), float("inf")])
    def test_invalid_grid_size_raises(self, flat_terrain, grid_size):
        """Test that a grid step that cannot advance is rejected."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.validation import InvalidParameterError
        from tin_earthworks.core.volume import compute_volume

        design = RectanglePad(Rectangle(0, 0, 9, 9, elevation=5.0))

        with pytest.raises(InvalidParameterError):
            compute_volume(flat_terrain, design, grid_size=grid_size)

    def test_invalid_grid_size_checked_before_empty_design(self):
        """Test that grid_size is validated even when the design is empty."""
        from tin_earthworks.analysis.grading import RectangleSet
        from tin_earthworks.core.validation import InvalidParameterError
        from tin_earthworks.core.volume import compute_volume

        with pytest.raises(InvalidParameterError):
            compute_volume(ExplodingTerrain(), RectangleSet([]), grid_size=0.0)

    def test_explicit_region(self, flat_terrain):
        """Test overriding the design's sampling region."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.volume import compute_volume

        design = RectanglePad(Rectangle(0, 0, 9, 9, elevation=5.0))
        result = compute_volume(flat_terrain, design, grid_size=1.0, region=(0, 0, 4, 4))

        assert result.cell_count == 25

    def test_inverted_region_raises(self, flat_terrain):
        """Test that a malformed region is rejected."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.validation import InvalidParameterError
        from tin_earthworks.core.volume import compute_volume

        design = RectanglePad(Rectangle(0, 0, 9, 9, elevation=5.0))

        with pytest.raises(InvalidParameterError, match="inverted"):
            compute_volume(flat_terrain, design, region=(5, 5, 0, 0))

    def test_finer_grid_converges(self, plane_points):
        """Test that a pad on a plane converges to the analytic volume."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.terrain import TerrainModel
        from tin_earthworks.core.volume import compute_volume

        terrain = TerrainModel.from_points(plane_points(a=0.0, b=0.0, c=0.0))
        design = RectanglePad(Rectangle(2, 2, 12, 12, elevation=3.0))

        coarse = compute_volume(terrain, design, grid_size=1.0)
        fine = compute_volume(terrain, design, grid_size=0.25)

        # 100 square units at depth 3
        assert abs(fine.fill - 300.0) < abs(coarse.fill - 300.0)


class TestVolumeResult:
    """Tests for the result container."""

    def test_summary_text(self):
        """Test human-readable summary."""
        from tin_earthworks.core.volume import VolumeResult

        result = VolumeResult(cut=10.0, fill=30.0, net=20.0, area_sampled=40.0,
                              cell_count=40, grid_size=1.0)
        text = result.summary()

        assert "EARTHWORK VOLUME SUMMARY" in text
        assert "Import required" in text

    def test_export_balance_label(self):
        """Test that a negative net reads as export."""
        from tin_earthworks.core.volume import VolumeResult

        result = VolumeResult(cut=30.0, fill=10.0, net=-20.0, area_sampled=40.0, cell_count=40)

        assert "Export required" in result.summary()

    def test_to_dict(self):
        """Test serialisable dictionary."""
        from tin_earthworks.core.volume import VolumeResult

        data = VolumeResult.empty(grid_size=0.5).to_dict()

        assert data == {
            "cut": 0.0,
            "fill": 0.0,
            "net": 0.0,
            "area_sampled": 0.0,
            "cell_count": 0,
            "grid_size": 0.5,
        }


class TestPointDeltas:
    """Tests for per-point design deltas."""

    def test_deltas_against_rectangle(self, flat_terrain):
        """Test deltas at survey points inside and outside a pad."""
        from tin_earthworks.analysis.grading import Rectangle, RectanglePad
        from tin_earthworks.core.volume import point_deltas

        deltas = point_deltas(flat_terrain, RectanglePad(Rectangle(0, 0, 9, 9, elevation=5.0)))

        assert deltas.shape == (flat_terrain.num_points,)
        # Only the centre point (5, 5) lies on the pad
        assert np.sum(~np.isnan(deltas)) == 1
        assert np.nanmax(deltas) == pytest.approx(5.0)

    def test_classify_deltas(self):
        """Test cut/fill/neutral/outside labels."""
        from tin_earthworks.core.volume import classify_deltas

        labels = classify_deltas(np.array([5.0, np.nan, -0.005, -3.0, 0.01]))

        assert list(labels) == ["fill", "outside", "neutral", "cut", "neutral"]

    def test_max_abs_delta(self):
        """Test normalisation scale."""
        from tin_earthworks.core.volume import max_abs_delta

        assert max_abs_delta(np.array([-3.0, 2.0, np.nan])) == pytest.approx(3.0)
        assert max_abs_delta(np.array([0.001, np.nan])) == 1.0
        assert max_abs_delta(np.array([np.nan])) == 1.0

    def test_delta_summary(self):
        """Test label counts."""
        from tin_earthworks.core.volume import delta_summary

        assert delta_summary(np.array([1.0, -1.0, -2.0, 0.0, np.nan])) == (2, 1, 1, 1)
