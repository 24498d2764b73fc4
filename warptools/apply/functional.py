"""Apply a stack of transforms, implemented in a Functional paradigm."""

from typing import Mapping, Optional, Sequence
from ..hints import Reference, TransformEntry
from ..image import Image
from .object import TransformApplier


def apply_transforms(image, reference, transforms=(), **kwargs):
    # type: (Image, Reference, Sequence[TransformEntry], Mapping) -> Image
    """Warp an image into the space of a reference image.

    Parameters
    ----------
    image : Image or sequence[Image]
        Moving image, or its pre-split scalar components (in which case
        ``kind`` must be given).

    reference : Image or GridGeometry
        Reference space.

    transforms : sequence[Transform or (Transform, bool)]
        Transforms, in the order in which they are pushed on the stack.
        The boolean requests the inverse transform.

    kind : {'scalar', 'vector', 'tensor'}, default=image.kind
        Kind of the moving image.

    dim : {2, 3, 4}, default=reference.dim
        Spatial dimension.

    interpolation : str, default='linear'
        Interpolation kernel. See ``make_interpolator``.

    order : int, default=3
        B-spline order.

    sigma : float or sequence[float], default=voxel size
        Gaussian width.

    alpha : float, default=1 (Gaussian) or 4 (MultiLabel)
        Gaussian cutoff.

    default_value : float, default=0
        Value of output voxels that map outside of the input.

    n_jobs : int, default=1
        Number of threads.

    Returns
    -------
    y : Image
        Warped image, with the same kind as the input.

    """
    return TransformApplier()(image, reference, transforms, **kwargs)


def compute_displacement_field(reference, transforms=(), dim=None):
    # type: (Reference, Sequence[TransformEntry], Optional[int]) -> Image
    """Sample the displacement field of a stack of transforms.

    Parameters
    ----------
    reference : Image or GridGeometry
        Grid on which to sample the displacement field.

    transforms : sequence[Transform or (Transform, bool)]
        Transforms, in the order in which they are pushed on the stack.

    dim : {2, 3, 4}, default=reference.dim
        Spatial dimension.

    Returns
    -------
    field : Image
        Vector image of physical displacements.

    """
    return TransformApplier()(None, reference, transforms, dim=dim,
                              compute_displacement=True)
