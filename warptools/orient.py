"""Express vector and tensor voxels in the axes of a reference space.

Vector and tensor components are stored along the axes of the image
they belong to. Before their components can be resampled independently
as scalars, they must be rotated into the frame of the reference image.
"""

import logging
import numpy as np
from .errors import ConfigurationError
from .geometry import GridGeometry
from .linalg import is_identity, sym_to_matrix, matrix_to_sym

logger = logging.getLogger(__name__)


def _direction(x):
    if isinstance(x, GridGeometry):
        return x.direction
    if hasattr(x, 'geometry'):
        return x.geometry.direction
    return np.asarray(x, dtype=np.float64)


def _promote_to_float(image):
    """Replace an integer buffer with a float64 copy (rotated values are
    not integers)."""
    if not np.issubdtype(image.data.dtype, np.floating):
        logger.debug('promote %s buffer to float64', image.data.dtype)
        image.data = image.data.astype(np.float64)
    return image


def direction_correction(moving, reference):
    """Matrix that maps moving axes onto reference axes.

    Parameters
    ----------
    moving, reference : Image or GridGeometry or (D, D) array_like
        Objects holding (or being) a direction matrix.

    Returns
    -------
    mat : (D, D) np.ndarray
        ``moving.T @ reference``

    """
    moving = _direction(moving)
    reference = _direction(reference)
    if moving.shape != reference.shape:
        raise ConfigurationError(
            'Direction matrices have different shapes: {} and {}'
            .format(moving.shape, reference.shape))
    return np.matmul(moving.transpose(), reference)


def correct_vector_direction(image, reference, inplace=True, tol=1e-5):
    """Rotate vector voxels into the reference frame: ``v <- D @ v``.

    Parameters
    ----------
    image : Image
        Vector image. Its geometry is never modified.
    reference : Image or GridGeometry or (D, D) array_like
        Reference direction.
    inplace : bool, default=True
        Overwrite the input buffer. Otherwise, work on a copy.
        Integer buffers are always replaced by a float64 buffer.
    tol : float, default=1e-5
        Tolerance under which the correction is the identity.

    Returns
    -------
    image : Image

    """
    if image.kind != 'vector':
        raise ConfigurationError('Expected a vector image. Got {}.'
                                 .format(image.kind))
    mat = direction_correction(image, reference)
    if not inplace:
        image = image.copy()
    if is_identity(mat, tol):
        logger.debug('vector directions already aligned')
        return image
    _promote_to_float(image)
    image.data[...] = np.matmul(image.data, mat.transpose())
    return image


def correct_tensor_direction(image, reference, inplace=True, tol=1e-5):
    """Rotate tensor voxels into the reference frame: ``T <- D T D.T``.

    Parameters
    ----------
    image : Image
        Tensor image. Its geometry is never modified.
    reference : Image or GridGeometry or (D, D) array_like
        Reference direction.
    inplace : bool, default=True
        Overwrite the input buffer. Otherwise, work on a copy.
        Integer buffers are always replaced by a float64 buffer.
    tol : float, default=1e-5
        Tolerance under which the correction is the identity.

    Returns
    -------
    image : Image

    """
    if image.kind != 'tensor':
        raise ConfigurationError('Expected a tensor image. Got {}.'
                                 .format(image.kind))
    mat = direction_correction(image, reference)
    if not inplace:
        image = image.copy()
    if is_identity(mat, tol):
        logger.debug('tensor directions already aligned')
        return image
    _promote_to_float(image)
    tensors = sym_to_matrix(image.data)
    tensors = np.matmul(np.matmul(mat, tensors), mat.transpose())
    image.data[...] = matrix_to_sym(tensors)
    return image


def correct_direction(image, reference, inplace=True, tol=1e-5):
    """Reorient the voxels of a vector or tensor image.

    Scalar images are returned untouched.
    """
    if image.kind == 'vector':
        return correct_vector_direction(image, reference, inplace, tol)
    elif image.kind == 'tensor':
        return correct_tensor_direction(image, reference, inplace, tol)
    return image
