"""Physical embedding of a voxel grid.

A grid is described by its shape, voxel spacing, origin and direction
matrix. The physical position of a (continuous) voxel index ``i`` is::

    p = origin + direction @ diag(spacing) @ i

which is also encoded by the homogeneous ``affine`` matrix.
"""

import numpy as np
from .errors import ConfigurationError
from .interpolate import affine_grid
from .linalg import lmdiv, rmdiv, is_singular


def _readonly(x):
    x = np.array(x, dtype=np.float64)
    x.setflags(write=False)
    return x


def voxel_size(mat):
    """Return the voxel size associated with an affine matrix."""
    mat = np.asarray(mat)
    return np.sqrt((mat[:-1, :-1] ** 2).sum(axis=0))


def default_affine(shape):
    """Create default orientation matrix.

    We follow the same convention as nibabel/SPM: (0,0,0) is in the
    center of the field-of-view.

    """
    dim = len(shape)
    shape = np.asarray(shape)
    shift = -shape.astype(np.float64)/2 + 0.5
    mat = np.eye(dim+1, dtype=np.float64)
    mat[:dim, dim] = shift
    return mat


class GridGeometry:
    """Shape, spacing, origin and direction of a voxel grid."""

    def __init__(self, shape, spacing=None, origin=None, direction=None):
        """

        Parameters
        ----------
        shape : sequence[int]
            Number of voxels along each axis. Its length defines the
            spatial dimension ``D``.
        spacing : sequence[float], default=1
            Voxel size along each axis.
        origin : sequence[float], default=0
            Physical position of the first voxel center.
        direction : (D, D) array_like, default=identity
            Orientation of each voxel axis in physical space (columns).

        """
        shape = tuple(int(s) for s in shape)
        dim = len(shape)
        if dim == 0:
            raise ConfigurationError('A grid needs at least one axis')
        if any(s < 1 for s in shape):
            raise ConfigurationError('Grid extents must be positive. '
                                     'Got {}.'.format(shape))
        if spacing is None:
            spacing = [1.] * dim
        if origin is None:
            origin = [0.] * dim
        if direction is None:
            direction = np.eye(dim)
        spacing = np.asarray(spacing, dtype=np.float64).reshape(-1)
        origin = np.asarray(origin, dtype=np.float64).reshape(-1)
        direction = np.asarray(direction, dtype=np.float64)

        if spacing.shape != (dim,) or origin.shape != (dim,):
            raise ConfigurationError(
                'Spacing and origin must have {} elements. Got {} and {}.'
                .format(dim, spacing.shape[0], origin.shape[0]))
        if direction.shape != (dim, dim):
            raise ConfigurationError(
                'Direction must be a {0}x{0} matrix. Got shape {1}.'
                .format(dim, direction.shape))
        if np.any(spacing <= 0):
            raise ConfigurationError('Spacing must be positive. '
                                     'Got {}.'.format(spacing.tolist()))
        if is_singular(direction):
            raise ConfigurationError('Direction matrix is singular')

        self._shape = shape
        self._spacing = _readonly(spacing)
        self._origin = _readonly(origin)
        self._direction = _readonly(direction)
        self._scaled = _readonly(direction * spacing[None, :])

    @classmethod
    def from_affine(cls, affine, shape):
        """Build a geometry from a voxel-to-world matrix.

        Parameters
        ----------
        affine : (D+1, D+1) array_like
            Homogeneous orientation matrix.
        shape : sequence[int]
            Spatial shape. Only the first ``D`` elements are used.

        Returns
        -------
        GridGeometry

        """
        affine = np.asarray(affine, dtype=np.float64)
        dim = affine.shape[-1] - 1
        shape = tuple(shape)[:dim]
        spacing = voxel_size(affine)
        if np.any(spacing == 0):
            raise ConfigurationError('Affine matrix has a null column')
        direction = rmdiv(affine[:dim, :dim], np.diag(spacing))
        return cls(shape, spacing, affine[:dim, dim], direction)

    @classmethod
    def like(cls, shape):
        """Default geometry for a bare array (nibabel/SPM convention)."""
        return cls.from_affine(default_affine(shape), shape)

    @property
    def dim(self):
        return len(self._shape)

    @property
    def shape(self):
        return self._shape

    @property
    def spacing(self):
        return self._spacing

    @property
    def origin(self):
        return self._origin

    @property
    def direction(self):
        return self._direction

    @property
    def size(self):
        return int(np.prod(self._shape))

    @property
    def affine(self):
        """Homogeneous voxel-to-world matrix, shape (D+1, D+1)."""
        mat = np.eye(self.dim + 1, dtype=np.float64)
        mat[:self.dim, :self.dim] = self._scaled
        mat[:self.dim, self.dim] = self._origin
        return mat

    def index_to_physical(self, index):
        """Map (continuous) voxel indices to physical points.

        Parameters
        ----------
        index : (..., D) array_like

        Returns
        -------
        points : (..., D) np.ndarray

        """
        index = np.asarray(index, dtype=np.float64)
        return np.dot(index, self._scaled.T) + self._origin

    def physical_to_index(self, points):
        """Map physical points to continuous voxel indices.

        Parameters
        ----------
        points : (..., D) array_like

        Returns
        -------
        index : (..., D) np.ndarray

        """
        points = np.asarray(points, dtype=np.float64)
        batch = points.shape[:-1]
        points = (points - self._origin).reshape((-1, self.dim))
        index = lmdiv(self._scaled, points.T).T
        return index.reshape(batch + (self.dim,))

    def physical_grid(self, dtype=np.float64):
        """Dense grid of voxel centers, shape (*shape, D)."""
        return affine_grid(self.affine, self._shape, dtype=dtype)

    def copy(self):
        return GridGeometry(self._shape, self._spacing, self._origin,
                            self._direction)

    def isclose(self, other, tol=1e-6):
        """Same shape, and spacing/origin/direction equal within ``tol``."""
        if not isinstance(other, GridGeometry) or other.shape != self.shape:
            return False
        return (np.allclose(self._spacing, other.spacing, atol=tol, rtol=0)
                and np.allclose(self._origin, other.origin, atol=tol, rtol=0)
                and np.allclose(self._direction, other.direction,
                                atol=tol, rtol=0))

    def __eq__(self, other):
        if not isinstance(other, GridGeometry):
            return NotImplemented
        return (self._shape == other.shape
                and np.array_equal(self._spacing, other.spacing)
                and np.array_equal(self._origin, other.origin)
                and np.array_equal(self._direction, other.direction))

    def __hash__(self):
        return hash((self._shape, self._spacing.tobytes(),
                     self._origin.tobytes(), self._direction.tobytes()))

    def __repr__(self):
        return ('GridGeometry(shape={}, spacing={}, origin={})'
                .format(self._shape, self._spacing.tolist(),
                        self._origin.tolist()))
