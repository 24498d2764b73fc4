"""Spatial transforms and their composition.

A transform maps physical points onto physical points. When resampling,
transforms map points of the reference (output) space onto points of
the moving (input) space.
"""

import logging
import numpy as np
from .errors import ConfigurationError, TransformError
from .image import Image
from .interpolate import sample_grid_linear
from .linalg import is_singular

logger = logging.getLogger(__name__)


def _as_points(points, dim):
    points = np.asarray(points, dtype=np.float64)
    if points.shape[-1] != dim:
        raise ConfigurationError('Expected points of dimension {}. Got '
                                 'array of shape {}.'
                                 .format(dim, points.shape))
    return points


class Transform:
    """Base class for transforms."""

    invertible = False

    def __init__(self, dim):
        self.dim = int(dim)

    def __call__(self, points):
        return self.map_points(points)

    def map_points(self, points):
        """Map physical points.

        Parameters
        ----------
        points : (..., D) array_like

        Returns
        -------
        points : (..., D) np.ndarray

        """
        raise NotImplementedError

    def inverse(self):
        """Return the inverse transform.

        Raises
        ------
        TransformError
            If the transform cannot be inverted.
        """
        raise TransformError('{} is not invertible'
                             .format(type(self).__name__))


class IdentityTransform(Transform):
    """Leave points where they are."""

    invertible = True

    def map_points(self, points):
        return _as_points(points, self.dim).copy()

    def inverse(self):
        return IdentityTransform(self.dim)

    def __repr__(self):
        return 'IdentityTransform(dim={})'.format(self.dim)


class AffineTransform(Transform):
    """Linear transform plus translation.

    Points are mapped as ``y = A @ (x - c) + c + t``, where ``A`` is the
    matrix, ``c`` the center of rotation and ``t`` the translation.
    """

    def __init__(self, matrix, translation=None, center=None):
        """

        Parameters
        ----------
        matrix : (D, D) array_like
            Linear part.
        translation : (D,) array_like, default=0
        center : (D,) array_like, default=0
            Fixed point of the linear part.

        """
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise ConfigurationError('Affine matrix must be square. Got '
                                     'shape {}.'.format(matrix.shape))
        super().__init__(matrix.shape[0])
        if translation is None:
            translation = np.zeros(self.dim)
        if center is None:
            center = np.zeros(self.dim)
        self.matrix = matrix
        self.translation = np.asarray(translation, dtype=np.float64)
        self.center = np.asarray(center, dtype=np.float64)

    @classmethod
    def from_homogeneous(cls, mat):
        """Build from a (D+1, D+1) or (D, D+1) homogeneous matrix."""
        mat = np.asarray(mat, dtype=np.float64)
        dim = mat.shape[1] - 1
        if mat.shape[0] not in (dim, dim + 1):
            raise ConfigurationError('Not a homogeneous matrix: shape {}'
                                     .format(mat.shape))
        return cls(mat[:dim, :dim], mat[:dim, dim])

    @property
    def offset(self):
        """Translation applied after the linear part (``y = A @ x + o``)."""
        return self.translation + self.center - self.matrix @ self.center

    @property
    def invertible(self):
        return not is_singular(self.matrix)

    def to_homogeneous(self):
        mat = np.eye(self.dim + 1, dtype=np.float64)
        mat[:self.dim, :self.dim] = self.matrix
        mat[:self.dim, self.dim] = self.offset
        return mat

    def map_points(self, points):
        points = _as_points(points, self.dim)
        return np.dot(points, self.matrix.T) + self.offset

    def inverse(self):
        if not self.invertible:
            raise TransformError('Affine matrix is singular and cannot '
                                 'be inverted')
        imat = np.linalg.inv(self.matrix)
        return AffineTransform(imat, -imat @ self.offset)

    def __repr__(self):
        return 'AffineTransform(dim={})'.format(self.dim)


class DisplacementFieldTransform(Transform):
    """Dense field of physical displacements: ``y = x + u(x)``.

    The field is linearly interpolated. Points that fall outside of the
    field's grid are not displaced.
    """

    def __init__(self, field, inverse_field=None):
        """

        Parameters
        ----------
        field : Image
            Vector image of displacements (in physical units).
        inverse_field : Image, optional
            Displacement field of the inverse transform. Without it,
            the transform is not invertible.

        """
        for f in (field, inverse_field):
            if f is not None and (not isinstance(f, Image)
                                  or f.kind != 'vector'):
                raise ConfigurationError('Displacement fields must be '
                                         'vector images')
        super().__init__(field.dim)
        self.field = field
        self.inverse_field = inverse_field

    @property
    def invertible(self):
        return self.inverse_field is not None

    def displacement(self, points):
        """Displacement at physical points (zero outside the grid)."""
        points = _as_points(points, self.dim)
        geometry = self.field.geometry
        index = geometry.physical_to_index(points)
        shape = np.asarray(geometry.shape)
        inside = np.all((index >= -0.5) & (index <= shape - 0.5), axis=-1)
        disp = np.zeros_like(points)
        if inside.any():
            index = index[inside]
            disp[inside] = np.stack(
                [sample_grid_linear(self.field.data[..., d], index)
                 for d in range(self.dim)], axis=-1)
        return disp

    def map_points(self, points):
        points = _as_points(points, self.dim)
        return points + self.displacement(points)

    def inverse(self):
        if self.inverse_field is None:
            raise TransformError('Displacement field transform has no '
                                 'inverse field')
        return DisplacementFieldTransform(self.inverse_field, self.field)

    def __repr__(self):
        return ('DisplacementFieldTransform(dim={}, shape={})'
                .format(self.dim, self.field.geometry.shape))


class TransformStack(Transform):
    """Composition of transforms, applied in reverse order of insertion.

    The stack starts with an identity transform. Each pushed transform
    is applied *before* all previously pushed ones; the identity is
    always applied last. With ``A`` pushed before ``B``::

        stack.map_points(x) == identity(A(B(x)))

    """

    def __init__(self, dim, transforms=None):
        """

        Parameters
        ----------
        dim : int
            Spatial dimension.
        transforms : iterable, optional
            Entries to push, either transforms or
            ``(transform, use_inverse)`` pairs.

        """
        super().__init__(dim)
        self._transforms = [IdentityTransform(self.dim)]
        for entry in (transforms or []):
            if isinstance(entry, Transform):
                self.push(entry)
            else:
                self.push(*entry)

    @classmethod
    def from_list(cls, entries, dim):
        """Push transforms in the order in which they are listed."""
        return cls(dim, entries)

    def push(self, transform, use_inverse=False):
        """Push a transform on the stack.

        Parameters
        ----------
        transform : Transform
        use_inverse : bool, default=False
            Push the inverse of the transform instead.

        Raises
        ------
        TransformError
            If the inverse is requested but not defined.
        ConfigurationError
            If the transform has the wrong dimension.

        """
        if not isinstance(transform, Transform):
            raise ConfigurationError('Expected a Transform. Got {}.'
                                     .format(type(transform).__name__))
        if transform.dim != self.dim:
            raise ConfigurationError(
                'Cannot push a {}D transform on a {}D stack'
                .format(transform.dim, self.dim))
        if use_inverse:
            transform = transform.inverse()
        logger.debug('push %r (inverse=%s)', transform, bool(use_inverse))
        self._transforms.insert(0, transform)
        return self

    @property
    def transforms(self):
        """Transforms in order of evaluation (identity last)."""
        return tuple(self._transforms)

    def __len__(self):
        return len(self._transforms)

    def map_points(self, points):
        points = _as_points(points, self.dim)
        for transform in self._transforms:
            points = transform.map_points(points)
        return points

    def displacement_field(self, geometry, dtype=np.float64):
        """Sample the net mapping of the stack on a grid.

        Parameters
        ----------
        geometry : GridGeometry
            Grid on which to sample the displacements.

        Returns
        -------
        field : Image
            Vector image of ``map_points(p) - p``.

        """
        if geometry.dim != self.dim:
            raise ConfigurationError(
                'Cannot sample a {}D stack on a {}D grid'
                .format(self.dim, geometry.dim))
        points = geometry.physical_grid()
        disp = self.map_points(points) - points
        return Image(disp.astype(dtype), geometry, 'vector')

    def __repr__(self):
        return 'TransformStack({})'.format(
            ', '.join(repr(t) for t in self._transforms))
