"""Tools for warping volumes through a stack of transforms.

Warping is the sequential process of:
    * **reorientation:** express vector/tensor voxels in the axes of the
      reference space;
    * **splitting:** turn vector/tensor images into scalar components;
    * **resampling:** map each reference voxel through the transform
      stack and interpolate the moving components there;
    * **assembling:** stack the resampled components back together.

"""

from .object import TransformApplier
from .functional import apply_transforms, compute_displacement_field
