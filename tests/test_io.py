"""Tests for file input/output and the command line interface."""

import nibabel as nb
import numpy as np
import pytest

from warptools import (
    AffineTransform,
    ConfigurationError,
    DisplacementFieldTransform,
    GridGeometry,
    Image,
)
from warptools.io import load_image, save_image, load_transform, \
    VolumeReader
from warptools.apply.__main__ import main, parse_interpolation, \
    parse_output, parse_transform

from conftest import ROT90


@pytest.fixture
def geom():
    """Geometry whose affine is exactly representable in float32."""
    return GridGeometry((6, 5, 4), spacing=(1., 2., 0.5),
                        origin=(3., -2., 1.), direction=ROT90)


@pytest.fixture
def shift_file(tmp_path):
    mat = np.eye(4)
    mat[0, 3] = 1.
    fname = str(tmp_path / 'shift.txt')
    np.savetxt(fname, mat)
    return fname


# ── Images ──────────────────────────────────────────────────────────────


class TestImageIO:

    def test_scalar_nifti(self, tmp_path, geom, rng):
        image = Image(rng.standard_normal(geom.shape), geom)
        fname = str(tmp_path / 'scalar.nii.gz')
        save_image(image, fname)
        loaded = load_image(fname)
        assert loaded.kind == 'scalar'
        assert loaded.geometry.isclose(geom)
        np.testing.assert_allclose(loaded.data, image.data)

    @pytest.mark.parametrize('kind', ['vector', 'tensor'])
    def test_multi_component_nifti(self, tmp_path, geom, rng, kind):
        image = Image.allocate(geom, kind)
        image.data[...] = rng.standard_normal(image.shape)
        fname = str(tmp_path / 'image.nii.gz')
        obj = save_image(image, fname)
        assert obj.shape == geom.shape + (1, image.nb_components)
        loaded = load_image(fname, kind)
        assert loaded.kind == kind
        assert loaded.geometry.isclose(geom)
        np.testing.assert_allclose(loaded.data, image.data)

    def test_vector_intent(self, tmp_path, geom):
        fname = str(tmp_path / 'vector.nii')
        save_image(Image.allocate(geom, 'vector'), fname)
        assert nb.load(fname).header.get_intent()[0] == 'vector'

    def test_2d_vector_nifti(self, tmp_path):
        geom = GridGeometry((5, 4), spacing=(2., 1.), origin=(1., 1.))
        image = Image(np.ones((5, 4, 2)), geom, 'vector')
        fname = str(tmp_path / 'vector2d.nii.gz')
        save_image(image, fname)
        loaded = load_image(fname, 'vector')
        assert loaded.dim == 2
        assert loaded.geometry.isclose(geom)
        np.testing.assert_array_equal(loaded.data, 1.)

    def test_numpy(self, tmp_path, rng):
        data = rng.standard_normal((4, 5, 2))
        fname = str(tmp_path / 'vector.npy')
        np.save(fname, data)
        image = load_image(fname, 'vector')
        assert image.dim == 2
        # field of view centered on the origin
        np.testing.assert_allclose(image.geometry.origin, [-1.5, -2.])
        np.testing.assert_allclose(image.spacing, [1., 1.])
        np.testing.assert_array_equal(image.data, data)

    def test_read_geometry(self, tmp_path, geom):
        fname = str(tmp_path / 'tensor.nii.gz')
        save_image(Image.allocate(geom, 'tensor'), fname)
        assert VolumeReader().read_geometry(fname, dim=3).isclose(geom)

    def test_bad_scalar_shape(self):
        with pytest.raises(ConfigurationError):
            load_image(np.zeros((4, 4, 3)), dim=2)


# ── Transforms ──────────────────────────────────────────────────────────


class TestTransformIO:

    def test_text_matrix(self, shift_file):
        transform = load_transform(shift_file)
        assert isinstance(transform, AffineTransform)
        np.testing.assert_allclose(transform([0., 0., 0.]), [1., 0., 0.])

    def test_csv_matrix(self, tmp_path):
        fname = str(tmp_path / 'mat.csv')
        np.savetxt(fname, [[2., 0., 1.], [0., 2., 0.], [0., 0., 1.]],
                   delimiter=',')
        transform = load_transform(fname, dim=2)
        np.testing.assert_allclose(transform([1., 1.]), [3., 2.])

    def test_npy_matrix(self, tmp_path):
        fname = str(tmp_path / 'mat.npy')
        np.save(fname, np.eye(4))
        assert load_transform(fname, dim=3).dim == 3

    def test_displacement_volume(self, tmp_path, geom):
        field = Image.allocate(geom, 'vector', fill_value=1.)
        fname = str(tmp_path / 'field.nii.gz')
        save_image(field, fname)
        transform = load_transform(fname, dim=3)
        assert isinstance(transform, DisplacementFieldTransform)
        point = geom.index_to_physical([2., 2., 2.])
        np.testing.assert_allclose(transform(point), point + 1.)

    def test_not_a_matrix(self):
        with pytest.raises(ConfigurationError):
            load_transform(np.ones((3, 5)))

    def test_dimension_mismatch(self, shift_file):
        with pytest.raises(ConfigurationError):
            load_transform(shift_file, dim=2)


# ── Command line ────────────────────────────────────────────────────────


class TestParsers:

    def test_interpolation(self):
        assert parse_interpolation('Linear') == ('Linear', {})
        assert parse_interpolation('BSpline[5]') == ('BSpline', {'order': 5})
        assert parse_interpolation('Gaussian[1x1x2,1.5]') == \
            ('Gaussian', {'sigma': [1., 1., 2.], 'alpha': 1.5})
        assert parse_interpolation('MultiLabel[0.5]') == \
            ('MultiLabel', {'sigma': 0.5})

    def test_bad_interpolation(self):
        with pytest.raises(ConfigurationError):
            parse_interpolation('BSpline[three]')

    def test_transform(self):
        assert parse_transform('affine.txt') == ('affine.txt', False)
        assert parse_transform('[affine.txt,1]') == ('affine.txt', True)
        assert parse_transform('[affine.txt, 0]') == ('affine.txt', False)

    def test_bad_transform(self):
        with pytest.raises(ConfigurationError):
            parse_transform('[affine.txt,2]')

    def test_output(self):
        assert parse_output('warped.nii.gz') == ('warped.nii.gz', False)
        assert parse_output('[field.nii.gz,1]') == ('field.nii.gz', True)
        with pytest.raises(ConfigurationError, match='output'):
            parse_output('[field.nii.gz,yes]')


class TestMain:

    @pytest.fixture
    def volume(self, tmp_path):
        data = np.arange(6. * 6. * 6.).reshape(6, 6, 6)
        fname = str(tmp_path / 'moving.nii.gz')
        save_image(Image(data, GridGeometry((6, 6, 6))), fname)
        return fname, data

    def test_warp(self, tmp_path, volume, shift_file):
        fname, data = volume
        out = str(tmp_path / 'warped.nii.gz')
        code = main(['-d', '3', '-i', fname, '-r', fname, '-o', out,
                     '-t', shift_file, '-n', 'NearestNeighbor',
                     '-v', '-1'])
        assert code == 0
        warped = load_image(out).data
        np.testing.assert_array_equal(warped[:-1], data[1:])
        np.testing.assert_array_equal(warped[-1], -1.)

    def test_inverse_transform(self, tmp_path, volume, shift_file):
        fname, data = volume
        out = str(tmp_path / 'warped.nii.gz')
        code = main(['-i', fname, '-r', fname, '-o', out,
                     '-t', '[{},1]'.format(shift_file),
                     '-n', 'NearestNeighbor'])
        assert code == 0
        np.testing.assert_array_equal(load_image(out).data[1:], data[:-1])

    def test_vector(self, tmp_path, volume):
        fname, _ = volume
        vector = str(tmp_path / 'vector.nii.gz')
        save_image(Image.allocate(GridGeometry((6, 6, 6)), 'vector',
                                  fill_value=2.), vector)
        out = str(tmp_path / 'warped.nii.gz')
        assert main(['-e', '1', '-i', vector, '-r', fname, '-o', out]) == 0
        warped = load_image(out, 'vector')
        np.testing.assert_allclose(warped.data, 2.)

    def test_displacement(self, tmp_path, volume, shift_file):
        fname, _ = volume
        out = str(tmp_path / 'field.nii.gz')
        code = main(['-r', fname, '-o', out, '-t', shift_file,
                     '--displacement'])
        assert code == 0
        field = load_image(out, 'vector')
        np.testing.assert_allclose(field.data[..., 0], 1.)
        np.testing.assert_allclose(field.data[..., 1:], 0., atol=1e-12)

    def test_missing_reference(self, tmp_path, volume):
        fname, _ = volume
        out = str(tmp_path / 'warped.nii.gz')
        assert main(['-i', fname, '-o', out]) == 1

    def test_missing_input(self, tmp_path, volume):
        fname, _ = volume
        out = str(tmp_path / 'warped.nii.gz')
        assert main(['-r', fname, '-o', out]) == 1

    def test_displacement_output_form(self, tmp_path, volume, shift_file):
        fname, _ = volume
        out = str(tmp_path / 'field.nii.gz')
        code = main(['-r', fname, '-o', '[{},1]'.format(out),
                     '-t', shift_file])
        assert code == 0
        field = load_image(out, 'vector')
        np.testing.assert_allclose(field.data[..., 0], 1.)
