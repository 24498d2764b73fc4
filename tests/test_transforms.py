"""Tests for transforms and transform stacks."""

import numpy as np
import pytest

from warptools import (
    AffineTransform,
    ConfigurationError,
    DisplacementFieldTransform,
    GridGeometry,
    IdentityTransform,
    Image,
    TransformError,
    TransformStack,
)


@pytest.fixture
def scale2():
    return AffineTransform(2 * np.eye(3))


@pytest.fixture
def shift_x():
    return AffineTransform(np.eye(3), translation=[1., 0., 0.])


# ── Single transforms ───────────────────────────────────────────────────


class TestAffineTransform:

    def test_map_points_batch(self, shift_x):
        points = np.zeros((4, 2, 3))
        mapped = shift_x.map_points(points)
        assert mapped.shape == (4, 2, 3)
        np.testing.assert_array_equal(mapped[..., 0], 1.)

    def test_center_is_fixed(self):
        rot = [[0., -1.], [1., 0.]]
        transform = AffineTransform(rot, center=[2., 3.])
        np.testing.assert_allclose(transform([2., 3.]), [2., 3.])
        np.testing.assert_allclose(transform([3., 3.]), [2., 4.])

    def test_homogeneous_roundtrip(self):
        mat = np.array([[1., 2., 3.], [0., 1., -1.], [0., 0., 1.]])
        transform = AffineTransform.from_homogeneous(mat)
        np.testing.assert_allclose(transform.to_homogeneous(), mat)

    def test_inverse(self, rng):
        mat = np.eye(3) + 0.1 * rng.standard_normal((3, 3))
        transform = AffineTransform(mat, translation=[1., 2., 3.],
                                    center=[0.5, 0., -1.])
        points = rng.standard_normal((5, 3))
        back = transform.inverse().map_points(transform.map_points(points))
        np.testing.assert_allclose(back, points, atol=1e-10)

    def test_singular_inverse(self):
        transform = AffineTransform(np.diag([1., 0., 1.]))
        assert not transform.invertible
        with pytest.raises(TransformError):
            transform.inverse()

    def test_non_square(self):
        with pytest.raises(ConfigurationError):
            AffineTransform(np.ones((2, 3)))

    def test_wrong_point_dimension(self, shift_x):
        with pytest.raises(ConfigurationError):
            shift_x.map_points([0., 0.])


class TestDisplacementFieldTransform:

    @pytest.fixture
    def field(self):
        geom = GridGeometry((5, 5))
        data = np.zeros((5, 5, 2))
        data[..., 0] = 1.
        data[..., 1] = 2.
        return Image(data, geom, 'vector')

    def test_inside(self, field):
        transform = DisplacementFieldTransform(field)
        np.testing.assert_allclose(transform([1.5, 2.25]), [2.5, 4.25])

    def test_outside_is_not_displaced(self, field):
        transform = DisplacementFieldTransform(field)
        np.testing.assert_allclose(transform([10., 2.]), [10., 2.])

    def test_not_invertible_without_inverse_field(self, field):
        transform = DisplacementFieldTransform(field)
        assert not transform.invertible
        with pytest.raises(TransformError):
            transform.inverse()

    def test_inverse_field(self, field):
        inverse = Image(-field.data, field.geometry, 'vector')
        transform = DisplacementFieldTransform(field, inverse)
        np.testing.assert_allclose(transform.inverse()([2., 2.]),
                                   [1., 0.])

    def test_requires_vector_image(self, field):
        scalar = Image(field.data[..., 0], field.geometry)
        with pytest.raises(ConfigurationError):
            DisplacementFieldTransform(scalar)


# ── Stack ───────────────────────────────────────────────────────────────


class TestTransformStack:

    def test_empty_stack_is_identity(self, rng):
        stack = TransformStack(3)
        points = rng.standard_normal((7, 3))
        np.testing.assert_array_equal(stack.map_points(points), points)
        assert len(stack) == 1

    def test_evaluation_order(self, scale2, shift_x):
        """Last pushed transform is applied first."""
        stack = TransformStack(3)
        stack.push(scale2)      # A
        stack.push(shift_x)     # B
        point = np.array([1., 1., 1.])
        expected = IdentityTransform(3)(scale2(shift_x(point)))
        np.testing.assert_allclose(stack.map_points(point), expected)
        np.testing.assert_allclose(stack.map_points(point), [4., 2., 2.])
        assert not np.allclose(stack.map_points(point),
                               shift_x(scale2(point)))

    def test_identity_is_evaluated_last(self, scale2, shift_x):
        stack = TransformStack.from_list([scale2, shift_x], 3)
        assert isinstance(stack.transforms[-1], IdentityTransform)
        assert stack.transforms[0] is shift_x
        assert stack.transforms[1] is scale2

    def test_from_list_with_inverse_flags(self, scale2, shift_x):
        stack = TransformStack.from_list([(scale2, True), (shift_x, False)],
                                         3)
        np.testing.assert_allclose(stack.map_points([1., 2., 2.]),
                                   [1., 1., 1.])

    def test_non_invertible_fails_at_construction(self):
        singular = AffineTransform(np.zeros((3, 3)))
        with pytest.raises(TransformError):
            TransformStack.from_list([(singular, True)], 3)

    def test_dimension_mismatch(self):
        with pytest.raises(ConfigurationError):
            TransformStack(3).push(AffineTransform(np.eye(2)))

    def test_stack_is_not_invertible(self):
        with pytest.raises(TransformError):
            TransformStack(2).inverse()

    def test_displacement_field(self, shift_x, grid3d):
        stack = TransformStack.from_list([shift_x], 3)
        field = stack.displacement_field(grid3d)
        assert field.kind == 'vector'
        assert field.geometry == grid3d
        np.testing.assert_allclose(field.data[..., 0], 1.)
        np.testing.assert_allclose(field.data[..., 1:], 0., atol=1e-12)

    def test_displacement_field_of_scaling(self, scale2):
        geom = GridGeometry((3, 3, 3))
        field = TransformStack.from_list([scale2], 3).displacement_field(geom)
        # 2 * p - p == p
        np.testing.assert_allclose(field.data, geom.physical_grid())
