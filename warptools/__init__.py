"""Apply stacks of spatial transforms to scalar, vector and tensor
volumes."""

from .errors import WarpError, ConfigurationError, TransformError
from .geometry import GridGeometry
from .image import Image
from .transforms import Transform, IdentityTransform, AffineTransform, \
    DisplacementFieldTransform, TransformStack
from .orient import correct_direction
from .components import split_components, assemble_components
from .interpolators import make_interpolator
from .resample import Resampler, resample
from .apply import TransformApplier, apply_transforms, \
    compute_displacement_field
