"""Apply a stack of transforms, implemented in an Object-Oriented
paradigm."""

# WARNING: apply.functional imports apply.object, so the opposite import
# is forbidden

import logging
from concurrent.futures import ThreadPoolExecutor
from ..components import split_components, assemble_components
from ..errors import ConfigurationError
from ..geometry import GridGeometry
from ..image import Image, check_kind
from ..interpolators import make_interpolator
from ..orient import correct_direction
from ..resample import Resampler
from ..transforms import TransformStack
from ..utils import argdef

logger = logging.getLogger(__name__)

DIMENSIONS = (2, 3, 4)


def _reference_geometry(reference):
    if reference is None:
        raise ConfigurationError('No reference image specified')
    if isinstance(reference, Image):
        return reference.geometry
    if isinstance(reference, GridGeometry):
        return reference
    raise ConfigurationError('Reference must be an Image or a GridGeometry. '
                             'Got {}.'.format(type(reference).__name__))


def _moving_image(image, kind):
    """Return a single Image, assembling pre-split components if needed."""
    if isinstance(image, Image):
        if kind is not None and image.kind != kind:
            raise ConfigurationError(
                'Input is a {} image but a {} image was announced'
                .format(image.kind, kind))
        return image
    if isinstance(image, (list, tuple)):
        kind = argdef(kind, 'scalar' if len(image) == 1 else None)
        if kind is None:
            raise ConfigurationError('The kind of pre-split components '
                                     'must be specified')
        return assemble_components(image, kind)
    raise ConfigurationError('An input image is required')


class TransformApplier:
    """Warp an image into the space of a reference image.

    Scalar, vector and tensor images are supported. Vector and tensor
    voxels are first rotated into the reference frame, then each
    component is resampled as a scalar image, and the results are
    stacked back into an image of the same kind.
    """

    def __init__(self, interpolation=None, order=None, sigma=None,
                 alpha=None, default_value=None, n_jobs=None,
                 chunk_size=None, inplace=None, dtype=None):
        """

        Parameters
        ----------
        interpolation : str or Interpolator, default='linear'
            Interpolation kernel. See ``make_interpolator``.

        order : int, default=3
            B-spline order.

        sigma : float or sequence[float], default=voxel size
            Gaussian width (Gaussian and MultiLabel kernels).

        alpha : float, default=1 (Gaussian) or 4 (MultiLabel)
            Gaussian cutoff, in standard deviations.

        default_value : float, default=0
            Value of output voxels that map outside of the input.

        Other Parameters
        ----------------
        n_jobs : int, default=1
            Number of threads.

        chunk_size : int, default=32768
            Number of output voxels processed at once.

        inplace : bool, default=False
            Reorient vector/tensor voxels in the input buffer instead of
            in a copy.

        dtype : np.dtype, default=np.float64
            Output data type.

        """
        self.interpolation = interpolation
        self.order = order
        self.sigma = sigma
        self.alpha = alpha
        self.default_value = default_value
        self.n_jobs = n_jobs
        self.chunk_size = chunk_size
        self.inplace = inplace
        self.dtype = dtype

    def __call__(self, image, reference, transforms=(), *, kind=None,
                 dim=None, compute_displacement=False, interpolation=None,
                 order=None, sigma=None, alpha=None, default_value=None,
                 n_jobs=None, chunk_size=None, inplace=None, dtype=None):
        """Warp an image into the space of a reference image.

        Parameters
        ----------
        image : Image or sequence[Image]
            Moving image, or its pre-split scalar components.
            May be None if ``compute_displacement`` is True.

        reference : Image or GridGeometry
            Reference space (only its geometry is used).

        transforms : sequence[Transform or (Transform, bool)]
            Transforms, pushed in order on a ``TransformStack``: the last
            one is applied first to reference points. The boolean
            requests the inverse transform.

        kind : {'scalar', 'vector', 'tensor'}, default=image.kind
            Kind of the moving image.

        dim : {2, 3, 4}, default=reference.dim
            Spatial dimension.

        compute_displacement : bool, default=False
            Return the displacement field of the composite transform,
            sampled on the reference grid, instead of a warped image.

        Other Parameters
        ----------------
        interpolation, order, sigma, alpha, default_value, n_jobs,
        chunk_size, inplace, dtype
            Override the values set at construction.

        Returns
        -------
        y : Image
            Warped image (same kind as the input) or displacement field.

        """
        # Parse options
        interpolation = argdef(interpolation, self.interpolation, 'linear')
        order = argdef(order, self.order)
        sigma = argdef(sigma, self.sigma)
        alpha = argdef(alpha, self.alpha)
        default_value = argdef(default_value, self.default_value, 0)
        n_jobs = argdef(n_jobs, self.n_jobs, 1)
        chunk_size = argdef(chunk_size, self.chunk_size)
        inplace = argdef(inplace, self.inplace, False)
        dtype = argdef(dtype, self.dtype)

        # Validate everything before doing any work
        geometry = _reference_geometry(reference)
        dim = argdef(dim, geometry.dim)
        if dim not in DIMENSIONS:
            raise ConfigurationError('Unsupported dimension {}'.format(dim))
        if geometry.dim != dim:
            raise ConfigurationError(
                'Reference image is {}D but dimension {} was requested'
                .format(geometry.dim, dim))
        if not compute_displacement:
            image = _moving_image(image, kind)
            kind = check_kind(image.kind, dim)
            if image.dim != dim:
                raise ConfigurationError(
                    'Input image is {}D but dimension {} was requested'
                    .format(image.dim, dim))
            interpolator = make_interpolator(interpolation, order=order,
                                             sigma=sigma, alpha=alpha)
        logger.info('Reference grid: %r', geometry)

        # Build composite transform
        stack = TransformStack.from_list(transforms, dim)
        logger.info('Composite transform: %r', stack)

        if compute_displacement:
            logger.info('Output composite transform displacement field')
            return stack.displacement_field(geometry)

        logger.info('Input %s image: %r', kind, image)
        logger.info('Interpolation type: %s', interpolator.name)
        logger.info('Default pixel value: %s', default_value)

        # Express vectors and tensors in the reference frame
        image = correct_direction(image, geometry, inplace=inplace)

        # Resample each component
        components = split_components(image)
        if n_jobs > 1 and len(components) > 1:
            outer_jobs, inner_jobs = n_jobs, 1
        else:
            outer_jobs, inner_jobs = 1, n_jobs
        resampler = Resampler(default_value=default_value,
                              chunk_size=chunk_size, n_jobs=inner_jobs,
                              dtype=dtype)

        def process(component):
            return resampler(component, interpolator.clone(), stack,
                             geometry)

        if outer_jobs > 1:
            with ThreadPoolExecutor(max_workers=outer_jobs) as executor:
                outputs = list(executor.map(process, components))
        else:
            outputs = [process(component) for component in components]

        output = assemble_components(outputs, kind)
        logger.info('Output warped %s image: %r', kind, output)
        return output
