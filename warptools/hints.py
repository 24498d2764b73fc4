from typing import Union, Tuple

Reference = Union['Image', 'GridGeometry']
TransformEntry = Union['Transform', Tuple['Transform', bool]]
