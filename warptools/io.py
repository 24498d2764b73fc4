"""Read and write images and transforms.

Images are read through nibabel (NIfTI, MGH, ...) or numpy (``.npy``)
and returned as ``Image`` objects. Vector and tensor components are
stored along the last axis of the file; singleton axes between the
spatial axes and the component axis (NIfTI stores vectors as
``(X, Y, Z, 1, C)``) are dropped on reading and added on writing.
"""

import logging
import os.path
import nibabel as nb
import numpy as np
from nibabel.spatialimages import SpatialImage
from .errors import ConfigurationError
from .geometry import GridGeometry
from .image import Image, check_kind
from .transforms import Transform, AffineTransform, \
    DisplacementFieldTransform
from .utils import argdef

logger = logging.getLogger(__name__)

numpy_extensions = ('.npy',)
text_extensions = ('.txt', '.csv')
intents = {'vector': 'vector', 'tensor': 'symmetric matrix'}


def _fileparts(fname):
    """Split a filename into directory / basename / extension.

    If the last extension is ``.gz``, this function checks if another
    extension is present, in which case it returns ``.<ext>.gz``
    """
    dir = os.path.dirname(fname)
    basename = os.path.basename(fname)
    basename, ext = os.path.splitext(basename)
    if ext == '.gz':
        basename, ext0 = os.path.splitext(basename)
        ext = ext0 + ext
    return dir, basename, ext


def isfile(x):
    """Check if the input is a filename (rather than an in-memory object)."""
    return isinstance(x, str)


def _spatial_dim(shape):
    """Number of spatial axes: trailing singletons are dropped."""
    shape = list(shape)
    while len(shape) > 2 and shape[-1] == 1:
        shape.pop()
    return len(shape)


def _reduce_affine(affine, dim, zooms=None):
    """Extract (or extend) a (dim+1, dim+1) matrix from a 3D affine."""
    affine = np.asarray(affine, dtype=np.float64)
    fdim = affine.shape[-1] - 1
    if dim <= fdim:
        keep = list(range(dim)) + [fdim]
        return affine[np.ix_(keep, keep)]
    mat = np.eye(dim + 1, dtype=np.float64)
    mat[:fdim, :fdim] = affine[:fdim, :fdim]
    mat[:fdim, dim] = affine[:fdim, fdim]
    if zooms is not None:
        for d in range(fdim, dim):
            if d < len(zooms) and zooms[d] > 0:
                mat[d, d] = zooms[d]
    return mat


def _extend_affine(affine, dim):
    """Embed a (dim+1, dim+1) matrix into a 3D (4, 4) affine."""
    if dim == 3:
        return affine
    mat = np.eye(4, dtype=np.float64)
    n = min(dim, 3)
    mat[:n, :n] = affine[:n, :n]
    mat[:n, 3] = affine[:n, dim]
    return mat


def _squeeze_components(data, dim):
    """(*spatial, 1, ..., C) -> (*spatial, C)."""
    middle = data.shape[dim:-1]
    if any(s != 1 for s in middle):
        raise ConfigurationError(
            'Cannot interpret array of shape {} as a {}D multi-component '
            'image'.format(data.shape, dim))
    return data.reshape(data.shape[:dim] + data.shape[-1:])


class VolumeReader:
    """Versatile reader for volume files or objects."""

    def __init__(self, dtype=np.float64, allow_pickle=False):
        """

        Parameters
        ----------
        dtype : type or str, default=np.float64
            Data type in which to load the input array.

        allow_pickle : bool, default=False
            Allow loading pickled object arrays stored in npy files.
        """
        self.dtype = dtype
        self.allow_pickle = allow_pickle

    def __call__(self, *args, **kwargs):
        return self.read(*args, **kwargs)

    def _load(self, x):
        if isfile(x):
            _, _, ext = _fileparts(x)
            if ext in numpy_extensions:
                return np.load(x, allow_pickle=self.allow_pickle)
            return nb.load(x)
        return x

    def inspect(self, x):
        """Read the header of a volume without loading its data.

        Returns
        -------
        info : dict
            With keys 'shape', 'dim', 'affine' and 'zooms'.

        """
        x = self._load(x)
        if isinstance(x, SpatialImage):
            shape = tuple(x.header.get_data_shape())
            info = {'affine': x.affine,
                    'zooms': tuple(x.header.get_zooms())}
        else:
            shape = tuple(np.shape(x))
            info = {'affine': None, 'zooms': None}
        info['shape'] = shape
        info['dim'] = _spatial_dim(shape)
        return info

    def read_geometry(self, x, dim=None):
        """Read the grid geometry of a volume, without its data."""
        info = self.inspect(x)
        dim = argdef(dim, info['dim'])
        shape = tuple(info['shape'][:dim])
        shape += (1,) * (dim - len(shape))
        if info['affine'] is None:
            return GridGeometry.like(shape)
        return GridGeometry.from_affine(
            _reduce_affine(info['affine'], dim, info['zooms']), shape)

    def read(self, x, kind='scalar', dim=None, dtype=None):
        """Load an image stored in a file or array.

        Parameters
        ----------
        x : str or nib.SpatialImage or array_like
            An input volume, on disk or in memory.

        kind : {'scalar', 'vector', 'tensor'}, default='scalar'
            Kind of image stored in the volume.

        dim : int, optional
            Number of spatial dimensions. By default, all non-singleton
            leading axes (scalar images) or all but the last axis
            (vector/tensor images) are spatial.

        dtype : type or str, default=self.dtype
            Data type in which to load the input array.

        Returns
        -------
        image : Image

        """
        dtype = np.dtype(argdef(dtype, self.dtype))
        if isfile(x):
            logger.debug('read %s image: %s', kind, x)
        x = self._load(x)

        if isinstance(x, SpatialImage):
            affine = x.affine
            zooms = x.header.get_zooms()
            data = np.asarray(x.dataobj, dtype=dtype)
        else:
            affine = zooms = None
            data = np.array(x, dtype=dtype)

        if kind == 'scalar':
            dim = argdef(dim, _spatial_dim(data.shape))
            if any(s != 1 for s in data.shape[dim:]):
                raise ConfigurationError(
                    'Cannot interpret array of shape {} as a {}D scalar '
                    'image'.format(data.shape, dim))
            data = data.reshape(data.shape[:dim] + (1,) *
                                max(0, dim - data.ndim))
        else:
            dim = argdef(dim, _spatial_dim(data.shape[:-1]))
            data = _squeeze_components(data, dim)
        check_kind(kind, dim)

        if affine is None:
            geometry = GridGeometry.like(data.shape[:dim])
        else:
            geometry = GridGeometry.from_affine(
                _reduce_affine(affine, dim, zooms), data.shape[:dim])
        return Image(data, geometry, kind)


class VolumeWriter:
    """Versatile writer for Image objects."""

    def __init__(self, dtype=None):
        """

        Parameters
        ----------
        dtype : str or type, optional
            Output data type. Default: same as the image buffer.

        """
        self.dtype = dtype

    def __call__(self, *args, **kwargs):
        return self.write(*args, **kwargs)

    def write(self, image, fname, dtype=None):
        """Save an image on disk.

        Parameters
        ----------
        image : Image
        fname : str
            Output filename. The format is guessed from the extension.
        dtype : str or type, default=self.dtype

        Returns
        -------
        obj : nib.SpatialImage or np.ndarray
            The object that was written.

        """
        dtype = np.dtype(argdef(dtype, self.dtype, image.data.dtype))
        data = image.data.astype(dtype)
        _, _, ext = _fileparts(fname)
        logger.debug('write %s image: %s', image.kind, fname)

        if ext in numpy_extensions:
            # --- Save using numpy ---
            np.save(fname, data, allow_pickle=False)
            return data

        # --- Save using nibabel ---
        dim = image.dim
        if image.kind != 'scalar':
            # (*spatial, C) -> (X, Y, Z, 1, C)
            spatial = data.shape[:dim] + (1,) * max(0, 3 - dim)
            data = data.reshape(spatial + (1,) + data.shape[-1:])
        affine = _extend_affine(image.geometry.affine, dim)
        obj = nb.Nifti1Image(data, affine)
        obj.header.set_data_dtype(dtype)
        if image.kind in intents:
            obj.header.set_intent(intents[image.kind])
        nb.save(obj, fname)
        return obj


def load_image(x, kind='scalar', dim=None, dtype=np.float64):
    """Load an image (see ``VolumeReader.read``)."""
    return VolumeReader(dtype=dtype)(x, kind=kind, dim=dim)


def save_image(image, fname, dtype=None):
    """Save an image (see ``VolumeWriter.write``)."""
    return VolumeWriter(dtype=dtype)(image, fname)


def load_transform(x, dim=None, inverse=None):
    """Load a transform.

    Parameters
    ----------
    x : str or array_like or Image or Transform
        * a (D+1, D+1) homogeneous matrix, in memory or stored in a
          ``.npy`` or text file -> ``AffineTransform``;
        * a vector image, in memory or stored in a volume file
          -> ``DisplacementFieldTransform``.
    dim : int, optional
        Expected spatial dimension.
    inverse : str or Image, optional
        Inverse displacement field.

    Returns
    -------
    Transform

    """
    if isinstance(x, Transform):
        transform = x
    elif isinstance(x, Image):
        if isfile(inverse):
            inverse = load_image(inverse, 'vector', x.dim)
        transform = DisplacementFieldTransform(x, inverse)
    else:
        if isfile(x):
            _, _, ext = _fileparts(x)
            if ext in numpy_extensions:
                x = np.load(x, allow_pickle=False)
            elif ext in text_extensions:
                x = np.loadtxt(x, delimiter=',' if ext == '.csv' else None)
            else:
                field = load_image(x, 'vector', dim)
                return load_transform(field, dim, inverse)
        x = np.asarray(x, dtype=np.float64)
        if x.ndim != 2 or x.shape[1] not in (x.shape[0], x.shape[0] + 1):
            raise ConfigurationError('Not a homogeneous matrix: shape {}'
                                     .format(x.shape))
        transform = AffineTransform.from_homogeneous(x)
    if dim is not None and transform.dim != dim:
        raise ConfigurationError('Expected a {}D transform. Got {}D.'
                                 .format(dim, transform.dim))
    return transform
