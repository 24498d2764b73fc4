"""Resample a scalar image on a target grid through a transform.

Resampling is the sequential process of:
    * **spatial transformation:** map each output voxel center to a
      point of the input space;
    * **interpolation:** evaluate the continuous input image at that
      point, or use a default value if it falls outside of the
      interpolation domain.

Output voxels are independent of each other and are processed in flat
chunks, optionally on several threads.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
import numpy as np
from .errors import ConfigurationError
from .geometry import GridGeometry
from .image import Image
from .interpolate import identity_grid
from .interpolators import make_interpolator
from .transforms import Transform, IdentityTransform
from .utils import argdef, chunks

logger = logging.getLogger(__name__)


class Resampler:
    """Resample scalar images onto a target grid."""

    def __init__(self, default_value=None, chunk_size=None, n_jobs=None,
                 dtype=None):
        """

        Parameters
        ----------
        default_value : float, default=0
            Value of output voxels that map outside of the input domain.

        chunk_size : int, default=32768
            Number of output voxels processed at once.

        n_jobs : int, default=1
            Number of threads used to process chunks.

        dtype : np.dtype, default=np.float64
            Output data type.

        """
        self.default_value = default_value
        self.chunk_size = chunk_size
        self.n_jobs = n_jobs
        self.dtype = dtype

    def __call__(self, image, interpolator=None, transform=None,
                 geometry=None, *, default_value=None, chunk_size=None,
                 n_jobs=None, dtype=None):
        """Resample a scalar image.

        Parameters
        ----------
        image : Image
            Scalar input image.

        interpolator : Interpolator or str, default='linear'
            Interpolator. It is bound to ``image`` if it is not already.

        transform : Transform, default=identity
            Maps output (reference) points onto input (moving) points.

        geometry : GridGeometry or Image, default=image.geometry
            Output grid.

        Other Parameters
        ----------------
        default_value : float, default=self.default_value
        chunk_size : int, default=self.chunk_size
        n_jobs : int, default=self.n_jobs
        dtype : np.dtype, default=self.dtype

        Returns
        -------
        y : Image
            Scalar image on the output grid.

        """
        # Parse options
        default_value = argdef(default_value, self.default_value, 0)
        chunk_size = argdef(chunk_size, self.chunk_size, 32768)
        n_jobs = argdef(n_jobs, self.n_jobs, 1)
        dtype = np.dtype(argdef(dtype, self.dtype, np.float64))

        if not isinstance(image, Image) or image.kind != 'scalar':
            raise ConfigurationError('Only scalar images can be resampled. '
                                     'Split vector and tensor images first.')
        if isinstance(geometry, Image):
            geometry = geometry.geometry
        geometry = argdef(geometry, image.geometry)
        if not isinstance(geometry, GridGeometry):
            raise ConfigurationError('Expected an output GridGeometry. Got '
                                     '{}.'.format(type(geometry).__name__))
        if geometry.dim != image.dim:
            raise ConfigurationError(
                'Input ({}D) and output ({}D) grids have different '
                'dimensions'.format(image.dim, geometry.dim))
        transform = argdef(transform, IdentityTransform(image.dim))
        if not isinstance(transform, Transform):
            raise ConfigurationError('Expected a Transform. Got {}.'
                                     .format(type(transform).__name__))
        if transform.dim != image.dim:
            raise ConfigurationError(
                'Transform ({}D) and image ({}D) have different dimensions'
                .format(transform.dim, image.dim))
        interpolator = make_interpolator(argdef(interpolator, 'linear'))
        if interpolator.image is not image:
            interpolator.bind(image)

        # Allocate output
        output = np.empty(geometry.size, dtype=dtype)
        index = identity_grid(geometry.shape, dtype=np.float64)
        index = index.reshape((-1, geometry.dim))

        def process(chunk):
            points = geometry.index_to_physical(index[chunk])
            points = transform.map_points(points)
            output[chunk] = interpolator.sample(points, default_value)

        slices = chunks(geometry.size, chunk_size)
        logger.debug('resample %d voxels in %d chunks (n_jobs=%d)',
                     geometry.size, len(slices), n_jobs)
        if n_jobs > 1 and len(slices) > 1:
            with ThreadPoolExecutor(max_workers=n_jobs) as executor:
                # list() propagates exceptions raised in workers
                list(executor.map(process, slices))
        else:
            for chunk in slices:
                process(chunk)

        return Image(output.reshape(geometry.shape), geometry, 'scalar')


def resample(image, interpolator=None, transform=None, geometry=None,
             **kwargs):
    """Resample a scalar image onto a target grid.

    See ``Resampler.__call__``.
    """
    return Resampler()(image, interpolator, transform, geometry, **kwargs)
