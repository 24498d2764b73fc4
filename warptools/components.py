"""Split vector/tensor images into scalar components and back."""

import logging
import numpy as np
from .errors import ConfigurationError
from .image import Image, check_kind, nb_components

logger = logging.getLogger(__name__)


def split_components(image):
    """Split an image into scalar images, one per component.

    Parameters
    ----------
    image : Image
        Vector images yield ``D`` components, tensor images yield 6
        components (xx, xy, xz, yy, yz, zz). A scalar image is returned
        as the only element of the list.

    Returns
    -------
    components : list[Image]
        Scalar images sharing the geometry of the input.

    """
    if image.kind == 'scalar':
        return [image]
    components = [Image(np.ascontiguousarray(image.data[..., n]),
                        image.geometry, 'scalar')
                  for n in range(image.nb_components)]
    logger.debug('split %s image into %d components',
                 image.kind, len(components))
    return components


def assemble_components(components, kind):
    """Stack scalar images into one vector or tensor image.

    Parameters
    ----------
    components : sequence[Image]
        Scalar images sharing the same geometry.
    kind : {'scalar', 'vector', 'tensor'}
        Kind of the output image.

    Returns
    -------
    image : Image

    Raises
    ------
    ConfigurationError
        If the number of components does not match ``kind`` or if the
        components do not share the same geometry.

    """
    components = list(components)
    if not components:
        raise ConfigurationError('No component to assemble')
    geometry = components[0].geometry
    check_kind(kind, geometry.dim)
    expected = nb_components(kind, geometry.dim)
    if len(components) != expected:
        raise ConfigurationError(
            'The number of images ({}) does not match the number of {} '
            'components ({}).'.format(len(components), kind, expected))
    for component in components:
        if component.kind != 'scalar':
            raise ConfigurationError('Only scalar images can be assembled')
        if not component.geometry.isclose(geometry):
            raise ConfigurationError('Components do not share the same '
                                     'geometry')
    if kind == 'scalar':
        return components[0]
    data = np.stack([component.data for component in components], axis=-1)
    return Image(data, geometry, kind)
