"""Tests for splitting and assembling multi-component images."""

import numpy as np
import pytest

from warptools import (
    ConfigurationError,
    GridGeometry,
    Image,
    assemble_components,
    split_components,
)


class TestSplit:

    def test_vector(self, grid3d, rng):
        data = rng.standard_normal(grid3d.shape + (3,))
        components = split_components(Image(data, grid3d, 'vector'))
        assert len(components) == 3
        for n, component in enumerate(components):
            assert component.kind == 'scalar'
            assert component.geometry is grid3d
            np.testing.assert_array_equal(component.data, data[..., n])

    def test_vector_2d(self, grid2d):
        image = Image.allocate(grid2d, 'vector')
        assert len(split_components(image)) == 2

    def test_tensor_order(self, grid3d):
        data = np.zeros(grid3d.shape + (6,))
        data[...] = np.arange(6)
        components = split_components(Image(data, grid3d, 'tensor'))
        assert len(components) == 6
        # xx, xy, xz, yy, yz, zz
        assert [c.data[0, 0, 0] for c in components] == list(range(6))

    def test_scalar(self, grid2d):
        image = Image.allocate(grid2d)
        assert split_components(image) == [image]


class TestAssemble:

    def test_roundtrip(self, grid3d, rng):
        image = Image(rng.standard_normal(grid3d.shape + (6,)), grid3d,
                      'tensor')
        out = assemble_components(split_components(image), 'tensor')
        assert out.kind == 'tensor'
        np.testing.assert_array_equal(out.data, image.data)

    def test_wrong_count(self, grid3d):
        components = [Image.allocate(grid3d) for _ in range(2)]
        with pytest.raises(ConfigurationError, match='number of images'):
            assemble_components(components, 'vector')

    def test_tensor_needs_six(self, grid3d):
        components = [Image.allocate(grid3d) for _ in range(3)]
        with pytest.raises(ConfigurationError):
            assemble_components(components, 'tensor')

    def test_geometry_mismatch(self, grid2d):
        other = GridGeometry(grid2d.shape, spacing=(2., 2.))
        components = [Image.allocate(grid2d), Image.allocate(other)]
        with pytest.raises(ConfigurationError, match='geometry'):
            assemble_components(components, 'vector')

    def test_empty(self):
        with pytest.raises(ConfigurationError):
            assemble_components([], 'vector')
