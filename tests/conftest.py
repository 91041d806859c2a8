import numpy as np
import pytest

from interp_plotter.settings import PlotSettings
from interp_plotter.viewport import ViewportTransform


@pytest.fixture
def rng():
    return np.random.default_rng(20240611)


@pytest.fixture
def settings():
    return PlotSettings()


@pytest.fixture
def viewport(settings):
    """800x600 surface: padding 30, origin (400, 300), 37 px/unit in x, 27 in y."""
    return ViewportTransform.from_size(800, 600, settings)


@pytest.fixture
def parabola():
    """Nodes of y = x**2 + 1."""
    return np.array([0.0, 1.0, 2.0]), np.array([1.0, 2.0, 5.0])
