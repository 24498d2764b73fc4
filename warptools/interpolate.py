"""Low-level samplers.

All samplers take a scalar volume ``x`` of shape ``(*spatial)`` and a
grid of continuous voxel indices of shape ``(*batch, D)`` and return
values of shape ``(*batch)``. They do not know about physical space nor
about interpolation domains: neighbours that fall outside of the volume
are clamped to the nearest voxel.
"""

import itertools
import numpy as np
from scipy.ndimage import spline_filter1d, map_coordinates
from .utils import sub2ind

# Largest number of entries of a label vote table (float64)
max_votes = 2 ** 22


def identity_grid(shape, dtype=None):
    """Generate a dense identity grid

    Parameters
    ----------
    shape : iterable of length D
        Shape of the dense grid.
    dtype : type, default=mat.dtype
        Output data type.

    Returns
    -------
    grid : np.ndarray of shape (*shape, D)
        Dense identity grid.

    """

    grid = np.stack(np.meshgrid(*(np.arange(s, dtype=dtype) for s in shape),
                                indexing='ij', copy=False), axis=-1)
    return grid


def affine_grid(mat, shape, dtype=None):
    """Generate a dense affine grid.

    Parameters
    ----------
    mat : array_like of shape (D, D+1) or (D+1, D+1)
        Affine matrix.
        - mat[:D, :D] contains the rotation part of the affine transform
        - mat[:D, D] contains the translation part of the affine transform
    shape : iterable of length D
        Shape of the dense grid.
    dtype : type, default=mat.dtype
        Output data type.

    Returns
    -------
    grid : np.ndarray of shape (*shape, D)
        Dense affine grid.

    """
    mat = np.asarray(mat, dtype=dtype)
    dim = mat.shape[1] - 1
    assert(len(shape) == dim)
    if dtype is None:
        dtype = mat.dtype

    # Generate identity grid
    grid = identity_grid(shape, dtype)

    # Compose with affine
    rotation = mat[:dim, :dim]
    translation = mat[:dim, dim].reshape((1,)*dim + (dim,))
    grid = np.dot(grid, rotation.transpose())
    grid += translation

    return grid


# ----------------------------------------------------------------------
#                           BOUNDARY CONDITION
# ----------------------------------------------------------------------


def bound_nearest(i, n, inplace=True):
    """Clamp integer indices to [0, n-1]."""
    i = np.asarray(i)
    return np.clip(i, 0, n-1, out=i if inplace else None)


def _gather(x, nodes):
    """Read ``x`` at integer ``nodes`` of shape (*batch, D), clamped."""
    dim = nodes.shape[-1]
    nodes = [bound_nearest(nodes[..., d], x.shape[d]) for d in range(dim)]
    ind = sub2ind(nodes, x.shape[:dim])
    return x.reshape(-1)[ind]


# ----------------------------------------------------------------------
#                               SAMPLERS
# ----------------------------------------------------------------------


def sample_grid_nearest(x, grid):
    """Nearest neighbour. Half-integer positions are rounded up."""
    grid = np.floor(np.asarray(grid) + 0.5).astype(np.int64)
    return _gather(x, grid)


def sample_grid_linear(x, grid):
    """Multilinear interpolation between the 2**D surrounding voxels."""
    grid = np.asarray(grid, dtype=np.float64)
    dim = grid.shape[-1]

    # Weights
    grid_corner0 = np.floor(grid)
    weights1 = grid - grid_corner0
    weights0 = 1 - weights1
    grid_corner0 = grid_corner0.astype(np.int64)

    # Interpolate
    x0 = np.zeros(grid.shape[:-1], dtype=np.float64)
    for corner in itertools.product([False, True], repeat=dim):
        corner = list(corner)
        w = np.where(corner, weights1, weights0).prod(axis=-1)
        grid_corner = grid_corner0 + np.asarray(corner, dtype=np.int64)
        x0 += w * _gather(x, grid_corner)

    return x0


def spline_coefficients(x, order=3, mode='mirror'):
    """Compute B-spline coefficients that encode a volume.

    Parameters
    ----------
    x : array_like
        Input volume
    order : int, default=3
        Spline order. Orders 0 and 1 are their own coefficients.
    mode : str, default='mirror'
        Boundary condition (see ``scipy.ndimage``).

    Returns
    -------
    coeff : np.ndarray

    """
    coeff = np.array(x, dtype=np.float64)
    if order > 1:
        for d in range(coeff.ndim):
            coeff = spline_filter1d(coeff, order=order, axis=d, mode=mode,
                                    output=np.float64)
    return coeff


def sample_grid_spline(coeff, grid, order=3, mode='mirror'):
    """Evaluate a B-spline encoded volume at continuous indices.

    ``coeff`` must have been computed with ``spline_coefficients``.
    """
    grid = np.asarray(grid, dtype=np.float64)
    batch = grid.shape[:-1]
    grid = grid.reshape((-1, grid.shape[-1])).transpose()
    y = map_coordinates(coeff, grid, order=order, mode=mode,
                        prefilter=False)
    return y.reshape(batch)


def _gaussian_axis_weights(grid, offsets, radius, scale, n):
    """Per-axis gaussian weights for each integer offset.

    Returns a list (one element per offset) of (nodes, weights).
    """
    base = np.floor(grid).astype(np.int64)
    out = []
    for k in offsets:
        node = base + k
        dist = node - grid
        w = np.exp(-0.5 * (dist * scale) ** 2)
        w[(np.abs(dist) > radius) | (node < 0) | (node >= n)] = 0
        out.append((node, w))
    return out


def _gaussian_neighbourhood(shape, grid, sigma, alpha, spacing):
    """Iterate over (nodes, weights) in a gaussian neighbourhood.

    Parameters
    ----------
    shape : (D,) sequence[int]
        Spatial shape of the sampled volume.
    grid : (N, D) np.ndarray
        Continuous indices.
    sigma, spacing : (D,) sequence[float]
        Standard deviation and voxel size, in physical units.
    alpha : float
        Cutoff distance, in number of standard deviations.

    Yields
    ------
    nodes : (N, D) np.ndarray[int]
    weights : (N,) np.ndarray

    """
    dim = grid.shape[-1]
    sigma = np.asarray(sigma, dtype=np.float64)
    spacing = np.asarray(spacing, dtype=np.float64)
    radius = alpha * sigma / spacing            # in voxels
    scale = spacing / sigma                     # voxels -> standard units
    per_axis = []
    for d in range(dim):
        r = int(np.ceil(radius[d]))
        offsets = range(-r, r + 2)
        per_axis.append(_gaussian_axis_weights(grid[:, d], offsets,
                                               radius[d], scale[d],
                                               shape[d]))
    for combination in itertools.product(*per_axis):
        weights = combination[0][1].copy()
        for _, w in combination[1:]:
            weights *= w
        if not weights.any():
            continue
        nodes = np.stack([node for node, _ in combination], axis=-1)
        yield nodes, weights


def sample_grid_gaussian(x, grid, sigma, alpha=1., spacing=1.):
    """Normalised gaussian-weighted average of the neighbouring voxels.

    The weight of a voxel at physical offset ``delta`` is
    ``exp(-0.5 * sum((delta / sigma) ** 2))``; voxels farther than
    ``alpha * sigma`` along any axis are discarded.

    Returns
    -------
    y : np.ndarray
        Interpolated values.
    total : np.ndarray
        Sum of weights (zero where the neighbourhood is empty).

    """
    grid = np.asarray(grid, dtype=np.float64)
    batch = grid.shape[:-1]
    dim = grid.shape[-1]
    grid = grid.reshape((-1, dim))
    sigma = np.broadcast_to(sigma, (dim,))
    spacing = np.broadcast_to(spacing, (dim,))

    acc = np.zeros(len(grid), dtype=np.float64)
    total = np.zeros(len(grid), dtype=np.float64)
    for nodes, weights in _gaussian_neighbourhood(x.shape, grid, sigma,
                                                  alpha, spacing):
        acc += weights * _gather(x, nodes)
        total += weights
    y = np.divide(acc, total, out=np.zeros_like(acc), where=total > 0)
    return y.reshape(batch), total.reshape(batch)


def sample_grid_label(labels, grid, sigma, alpha=4., spacing=1.,
                      values=None):
    """Gaussian-weighted vote between discrete labels.

    Parameters
    ----------
    labels : array_like[int]
        Index of each voxel's label into ``values``.
    grid : (*batch, D) array_like
        Continuous indices.
    sigma, alpha, spacing
        See ``sample_grid_gaussian``.
    values : (L,) array_like, optional
        Label values. By default, the label indices are returned.

    Returns
    -------
    y : np.ndarray
        Winning label (ties are won by the first label).
    total : np.ndarray
        Sum of weights (zero where the neighbourhood is empty).

    """
    labels = np.asarray(labels)
    grid = np.asarray(grid, dtype=np.float64)
    batch = grid.shape[:-1]
    dim = grid.shape[-1]
    grid = grid.reshape((-1, dim))
    sigma = np.broadcast_to(sigma, (dim,))
    spacing = np.broadcast_to(spacing, (dim,))
    nb_labels = int(labels.max()) + 1 if values is None else len(values)

    # the vote table holds at most `max_votes` entries at once
    block = max(1, max_votes // nb_labels)
    y = np.zeros(len(grid), dtype=np.int64)
    total = np.zeros(len(grid), dtype=np.float64)
    for start in range(0, len(grid), block):
        sub = grid[start:start + block]
        rows = np.arange(len(sub))
        votes = np.zeros((len(sub), nb_labels), dtype=np.float64)
        for nodes, weights in _gaussian_neighbourhood(labels.shape, sub,
                                                      sigma, alpha, spacing):
            # each row receives exactly one vote per neighbour
            votes[rows, _gather(labels, nodes)] += weights
        total[start:start + block] = votes.sum(axis=-1)
        y[start:start + block] = np.argmax(votes, axis=-1)
    if values is not None:
        y = np.asarray(values)[y]
    return y.reshape(batch), total.reshape(batch)


# ----------------------------------------------------------------------
#                           WINDOWED SINC
# ----------------------------------------------------------------------


def window_cosine(x, m):
    return np.cos(x * (np.pi / (2 * m)))


def window_hamming(x, m):
    return 0.54 + 0.46 * np.cos(x * (np.pi / m))


def window_welch(x, m):
    return 1 - (x / m) ** 2


def window_lanczos(x, m):
    return np.sinc(x / m)


def window_blackman(x, m):
    return (0.42 + 0.5 * np.cos(x * (np.pi / m))
            + 0.08 * np.cos(x * (2 * np.pi / m)))


windows = {
    'cosine': window_cosine,
    'hamming': window_hamming,
    'welch': window_welch,
    'lanczos': window_lanczos,
    'blackman': window_blackman,
}


def sample_grid_sinc(x, grid, window='hamming', radius=3):
    """Windowed-sinc interpolation.

    The kernel ``window(t) * sinc(t)`` is evaluated at the 2*radius
    nodes ``floor(x)-radius+1 ... floor(x)+radius`` along each axis.
    Weights are not renormalised.
    """
    if isinstance(window, str):
        window = windows[window]
    grid = np.asarray(grid, dtype=np.float64)
    batch = grid.shape[:-1]
    dim = grid.shape[-1]
    grid = grid.reshape((-1, dim))
    base = np.floor(grid).astype(np.int64)

    offsets = range(1 - radius, radius + 1)
    per_axis = []
    for d in range(dim):
        axis = []
        for k in offsets:
            node = base[:, d] + k
            t = grid[:, d] - node
            axis.append((node, window(t, radius) * np.sinc(t)))
        per_axis.append(axis)

    y = np.zeros(len(grid), dtype=np.float64)
    for combination in itertools.product(*per_axis):
        weights = combination[0][1].copy()
        for _, w in combination[1:]:
            weights *= w
        nodes = np.stack([node for node, _ in combination], axis=-1)
        y += weights * _gather(x, nodes)
    return y.reshape(batch)
