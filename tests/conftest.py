"""
Shared pytest fixtures and configuration for tin_earthworks tests.
"""

import numpy as np
import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "requires_laspy: requires laspy to be installed"
    )


def pytest_collection_modifyitems(config, items):
    """Auto-skip tests based on missing dependencies."""
    try:
        import laspy
        laspy_available = True
    except ImportError:
        laspy_available = False

    for item in items:
        if "requires_laspy" in item.keywords and not laspy_available:
            item.add_marker(pytest.mark.skip(reason="laspy not installed"))


def _plane_points(a=0.5, b=0.25, c=10.0, extent=20.0, step=2.0):
    """Grid of points on the plane z = a*x + b*y + c."""
    coords = np.arange(0.0, extent + step / 2, step)
    xx, yy = np.meshgrid(coords, coords)
    return np.column_stack([xx.ravel(), yy.ravel(), (a * xx + b * yy + c).ravel()])


@pytest.fixture
def plane_points():
    """Factory for planar survey point grids."""
    return _plane_points


@pytest.fixture
def flat_terrain():
    """Flat terrain at elevation 0 covering -1..11 in both axes."""
    from tin_earthworks.core.terrain import TerrainModel

    return TerrainModel.from_points([
        (-1.0, -1.0, 0.0),
        (11.0, -1.0, 0.0),
        (11.0, 11.0, 0.0),
        (-1.0, 11.0, 0.0),
        (5.0, 5.0, 0.0),
    ])


@pytest.fixture
def sloped_terrain():
    """Planar terrain z = 0.5x + 0.25y + 10 over 0..20."""
    from tin_earthworks.core.terrain import TerrainModel

    return TerrainModel.from_points(_plane_points())


@pytest.fixture
def sample_points():
    """Small synthetic survey for fast tests."""
    from tin_earthworks.io.survey import generate_sample_terrain

    return generate_sample_terrain(size=(20.0, 20.0), resolution=2.0, seed=7)


@pytest.fixture
def sample_terrain(sample_points):
    from tin_earthworks.core.terrain import TerrainModel

    return TerrainModel.from_points(sample_points)


@pytest.fixture
def square():
    """Axis-aligned 10x10 square polygon."""
    return [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]


@pytest.fixture
def survey_csv(tmp_path):
    """CSV survey of a gentle plane, with header row."""
    path = tmp_path / "survey.csv"
    points = _plane_points(a=0.1, b=0.0, c=100.0)
    lines = ["x,y,z"] + [f"{x},{y},{z}" for x, y, z in points]
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def tmp_output_dir(tmp_path):
    """Temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
