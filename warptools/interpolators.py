"""Interpolators bound to a scalar image.

An interpolator is created once per kernel type and (re)bound to each
scalar image that must be sampled. Once bound, it holds precomputed
state (spline coefficients, label tables...) and must not be shared
between images that are resampled concurrently: use ``clone()``.

Each interpolator defines its own domain in continuous-index space::

    -0.5 + margin <= index[d] <= shape[d] - 0.5 - margin

with ``margin`` capped at ``(shape[d] - 1) // 2`` so that no axis has
an empty domain. Points outside of the domain are given a default value.
"""

import copy
import logging
from warnings import warn
import numpy as np
from .errors import ConfigurationError
from .image import Image
from .interpolate import sample_grid_nearest, sample_grid_linear, \
    spline_coefficients, sample_grid_spline, sample_grid_gaussian, \
    sample_grid_label, sample_grid_sinc, windows
from .utils import argpad

logger = logging.getLogger(__name__)


class Interpolator:
    """Base class for interpolators."""

    name = None
    margin = 0

    def __init__(self):
        self.image = None
        self._cache = None

    def bind(self, image):
        """Bind the interpolator to a scalar image.

        Parameters
        ----------
        image : Image
            Scalar image

        Returns
        -------
        self

        """
        if not isinstance(image, Image):
            raise ConfigurationError('Expected an Image. Got {}.'
                                     .format(type(image).__name__))
        if image.kind != 'scalar':
            raise ConfigurationError('Interpolators sample scalar images. '
                                     'Got a {} image.'.format(image.kind))
        self.image = image
        self._cache = self._prepare(image)
        return self

    def _prepare(self, image):
        return None

    def unbind(self):
        self.image = None
        self._cache = None
        return self

    @property
    def is_bound(self):
        return self.image is not None

    def clone(self):
        """Unbound copy with the same parameters."""
        return copy.copy(self).unbind()

    def _check_bound(self):
        if self.image is None:
            raise ConfigurationError('{} is not bound to an image'
                                     .format(type(self).__name__))

    def inside(self, index):
        """Check if continuous indices fall inside the domain.

        Parameters
        ----------
        index : (..., D) array_like

        Returns
        -------
        mask : (...) np.ndarray[bool]

        """
        self._check_bound()
        index = np.asarray(index)
        shape = np.asarray(self.image.geometry.shape, dtype=np.int64)
        # thin axes keep at least their central voxel
        margin = np.minimum(self.margin, (shape - 1) // 2)
        lo = -0.5 + margin
        hi = shape - 0.5 - margin
        return np.all((index >= lo) & (index <= hi), axis=-1)

    def evaluate(self, index):
        """Interpolate at continuous indices (assumed inside the domain).

        Parameters
        ----------
        index : (..., D) array_like

        Returns
        -------
        values : (...) np.ndarray

        """
        raise NotImplementedError

    def sample(self, points, default_value=0):
        """Interpolate at physical points.

        Parameters
        ----------
        points : (..., D) array_like
            Physical coordinates.
        default_value : float, default=0
            Value of points that fall outside of the domain.

        Returns
        -------
        values : (...) np.ndarray

        """
        self._check_bound()
        index = self.image.geometry.physical_to_index(points)
        mask = self.inside(index)
        values = np.full(mask.shape, default_value, dtype=np.float64)
        if mask.any():
            values[mask] = self.evaluate(index[mask])
        return values

    def __repr__(self):
        return '{}()'.format(type(self).__name__)


class NearestNeighborInterpolator(Interpolator):
    """Value of the closest voxel."""

    name = 'NearestNeighbor'

    def evaluate(self, index):
        self._check_bound()
        return sample_grid_nearest(self.image.data, index)


class LinearInterpolator(Interpolator):
    """Multilinear interpolation."""

    name = 'Linear'

    def evaluate(self, index):
        self._check_bound()
        return sample_grid_linear(self.image.data, index)


class BSplineInterpolator(Interpolator):
    """B-spline interpolation of order 0 to 5.

    Coefficients are computed when the interpolator is bound.
    """

    name = 'BSpline'

    def __init__(self, order=3):
        super().__init__()
        if int(order) != order or not 0 <= order <= 5:
            raise ConfigurationError('B-spline order must be an integer '
                                     'in [0, 5]. Got {}.'.format(order))
        self.order = int(order)

    @property
    def margin(self):
        return (self.order - 1) // 2 if self.order > 1 else 0

    def _prepare(self, image):
        return spline_coefficients(image.data, self.order)

    def evaluate(self, index):
        self._check_bound()
        return sample_grid_spline(self._cache, index, self.order)

    def __repr__(self):
        return 'BSplineInterpolator(order={})'.format(self.order)


class GaussianInterpolator(Interpolator):
    """Normalised gaussian-weighted average of neighbouring voxels."""

    name = 'Gaussian'
    default_alpha = 1.

    def __init__(self, sigma=None, alpha=None):
        """

        Parameters
        ----------
        sigma : float or sequence[float], default=voxel size
            Standard deviation of the kernel, in physical units.
        alpha : float, default=1 (Gaussian) or 4 (MultiLabel)
            Cutoff distance, in number of standard deviations.

        """
        super().__init__()
        if alpha is None:
            alpha = self.default_alpha
        if alpha <= 0:
            raise ConfigurationError('Gaussian cutoff must be positive. '
                                     'Got {}.'.format(alpha))
        if sigma is not None and np.any(np.asarray(sigma) <= 0):
            raise ConfigurationError('Gaussian sigma must be positive. '
                                     'Got {}.'.format(sigma))
        self.sigma = sigma
        self.alpha = float(alpha)

    def _resolve_sigma(self, image):
        if self.sigma is None:
            return np.asarray(image.spacing, dtype=np.float64)
        return np.asarray(argpad(self.sigma, image.dim), dtype=np.float64)

    def _prepare(self, image):
        return {'sigma': self._resolve_sigma(image)}

    def _fallback(self, y, total, index):
        empty = total == 0
        if empty.any():
            warn('{} points have no neighbour within the gaussian cutoff. '
                 'Using nearest neighbour instead.'.format(empty.sum()),
                 RuntimeWarning)
            y[empty] = sample_grid_nearest(self.image.data, index[empty])
        return y

    def evaluate(self, index):
        self._check_bound()
        index = np.asarray(index, dtype=np.float64)
        y, total = sample_grid_gaussian(self.image.data, index,
                                        self._cache['sigma'], self.alpha,
                                        self.image.spacing)
        return self._fallback(y, total, index)

    def __repr__(self):
        return '{}(sigma={}, alpha={})'.format(type(self).__name__,
                                               self.sigma, self.alpha)


class MultiLabelInterpolator(GaussianInterpolator):
    """Gaussian-weighted vote between the labels of neighbouring voxels.

    The returned value is always one of the labels present in the image.
    """

    name = 'MultiLabel'
    default_alpha = 4.

    def _prepare(self, image):
        values, labels = np.unique(image.data, return_inverse=True)
        return {'sigma': self._resolve_sigma(image),
                'values': values,
                'labels': labels.reshape(image.data.shape)}

    def evaluate(self, index):
        self._check_bound()
        index = np.asarray(index, dtype=np.float64)
        y, total = sample_grid_label(self._cache['labels'], index,
                                     self._cache['sigma'], self.alpha,
                                     self.image.spacing,
                                     self._cache['values'])
        return self._fallback(y, total, index)


class WindowedSincInterpolator(Interpolator):
    """Sinc interpolation truncated by a window function."""

    name = 'WindowedSinc'
    radius = 3

    def __init__(self, window='hamming'):
        """

        Parameters
        ----------
        window : {'cosine', 'welch', 'hamming', 'lanczos', 'blackman'}
            Window function.

        """
        super().__init__()
        if window not in windows:
            raise ConfigurationError('Unknown window {!r}. Expected one of '
                                     '{}.'.format(window, list(windows)))
        self.window = window

    @property
    def margin(self):
        return self.radius - 1

    def evaluate(self, index):
        self._check_bound()
        return sample_grid_sinc(self.image.data, index, self.window,
                                self.radius)

    def __repr__(self):
        return 'WindowedSincInterpolator(window={!r})'.format(self.window)


interpolators = {
    'nearestneighbor': (NearestNeighborInterpolator, {}),
    'linear': (LinearInterpolator, {}),
    'bspline': (BSplineInterpolator, {}),
    'gaussian': (GaussianInterpolator, {}),
    'multilabel': (MultiLabelInterpolator, {}),
    'cosinewindowedsinc': (WindowedSincInterpolator, {'window': 'cosine'}),
    'welchwindowedsinc': (WindowedSincInterpolator, {'window': 'welch'}),
    'hammingwindowedsinc': (WindowedSincInterpolator, {'window': 'hamming'}),
    'lanczoswindowedsinc': (WindowedSincInterpolator, {'window': 'lanczos'}),
    'blackmanwindowedsinc': (WindowedSincInterpolator,
                             {'window': 'blackman'}),
}


def make_interpolator(name='linear', order=None, sigma=None, alpha=None):
    """Create an (unbound) interpolator from its name.

    Parameters
    ----------
    name : str, default='linear'
        Case-insensitive kernel name. One of: 'Linear',
        'NearestNeighbor', 'BSpline', 'Gaussian', 'MultiLabel',
        'CosineWindowedSinc', 'WelchWindowedSinc', 'HammingWindowedSinc',
        'LanczosWindowedSinc', 'BlackmanWindowedSinc'.
    order : int, optional
        B-spline order (default 3). Ignored by other kernels.
    sigma : float or sequence[float], optional
        Gaussian width, in physical units (default: voxel size).
        Ignored by non-gaussian kernels.
    alpha : float, optional
        Gaussian cutoff, in standard deviations (default: 1 for
        'Gaussian', 4 for 'MultiLabel'). Ignored by non-gaussian kernels.

    Returns
    -------
    Interpolator

    """
    if isinstance(name, Interpolator):
        return name
    key = str(name).lower().replace('_', '').replace('-', '')
    if key not in interpolators:
        raise ConfigurationError('Unrecognized interpolation kernel {!r}'
                                 .format(name))
    klass, kwargs = interpolators[key]
    kwargs = dict(kwargs)
    if klass is BSplineInterpolator and order is not None:
        kwargs['order'] = order
    elif issubclass(klass, GaussianInterpolator):
        kwargs['sigma'] = sigma
        kwargs['alpha'] = alpha
    return klass(**kwargs)
