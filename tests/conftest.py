import numpy as np
import pytest

from warptools import GridGeometry

# 90 degree rotation about z: x -> y, y -> -x
ROT90 = np.array([[0., -1., 0.],
                  [1., 0., 0.],
                  [0., 0., 1.]])


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def grid2d():
    """Unit 2D grid anchored at the origin: indices == coordinates."""
    return GridGeometry((8, 7))


@pytest.fixture
def grid3d():
    """Oblique 3D grid with anisotropic voxels."""
    c, s = np.cos(0.3), np.sin(0.3)
    direction = np.array([[c, -s, 0.], [s, c, 0.], [0., 0., 1.]])
    return GridGeometry((6, 5, 4), spacing=(1., 1.5, 2.),
                        origin=(-3., 2., 0.5), direction=direction)
