"""In-memory images: a voxel buffer attached to a grid geometry."""

import numpy as np
from .errors import ConfigurationError
from .geometry import GridGeometry

KINDS = ('scalar', 'vector', 'tensor')
TENSOR_ELEMENTS = 6


def check_kind(kind, dim=None):
    """Validate an image kind (and its compatibility with a dimension)."""
    if kind not in KINDS:
        raise ConfigurationError('Unrecognized image kind {!r}. Expected '
                                 'one of {}.'.format(kind, KINDS))
    if kind == 'tensor' and dim is not None and dim != 3:
        raise ConfigurationError('Tensor images are only supported in 3D. '
                                 'Got dimension {}.'.format(dim))
    return kind


def nb_components(kind, dim):
    """Number of scalar components stored in each voxel."""
    if kind == 'vector':
        return dim
    elif kind == 'tensor':
        return TENSOR_ELEMENTS
    return 1


class Image:
    """A dense voxel buffer with its physical embedding.

    The buffer has shape ``geometry.shape`` for scalar images and
    ``(*geometry.shape, C)`` for vector (``C = D``) and tensor
    (``C = 6``, upper triangle xx, xy, xz, yy, yz, zz) images.
    """

    def __init__(self, data, geometry=None, kind='scalar'):
        """

        Parameters
        ----------
        data : array_like
            Voxel buffer.
        geometry : GridGeometry or (D+1, D+1) array_like, optional
            Grid geometry, or a voxel-to-world matrix.
            By default, a centered unit-spacing geometry is used.
        kind : {'scalar', 'vector', 'tensor'}, default='scalar'

        """
        data = np.asarray(data)
        if geometry is None:
            spatial = data.shape if kind == 'scalar' else data.shape[:-1]
            geometry = GridGeometry.like(spatial)
        elif not isinstance(geometry, GridGeometry):
            dim = np.asarray(geometry).shape[-1] - 1
            geometry = GridGeometry.from_affine(geometry, data.shape[:dim])
        check_kind(kind, geometry.dim)

        expected = tuple(geometry.shape)
        if kind != 'scalar':
            expected += (nb_components(kind, geometry.dim),)
        if data.shape != expected:
            raise ConfigurationError(
                'Buffer of shape {} does not match a {} image on a grid of '
                'shape {} (expected {}).'
                .format(data.shape, kind, geometry.shape, expected))

        self.data = data
        self.geometry = geometry
        self.kind = kind

    @classmethod
    def allocate(cls, geometry, kind='scalar', fill_value=0,
                 dtype=np.float64):
        """Allocate an image filled with a constant value."""
        check_kind(kind, geometry.dim)
        shape = tuple(geometry.shape)
        if kind != 'scalar':
            shape += (nb_components(kind, geometry.dim),)
        return cls(np.full(shape, fill_value, dtype=dtype), geometry, kind)

    @property
    def dim(self):
        return self.geometry.dim

    @property
    def shape(self):
        return self.data.shape

    @property
    def spacing(self):
        return self.geometry.spacing

    @property
    def direction(self):
        return self.geometry.direction

    @property
    def nb_components(self):
        return nb_components(self.kind, self.dim)

    def copy(self):
        return Image(self.data.copy(), self.geometry, self.kind)

    def __repr__(self):
        return ('Image(kind={!r}, shape={}, dtype={})'
                .format(self.kind, self.data.shape, self.data.dtype))
