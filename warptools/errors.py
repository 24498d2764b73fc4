"""Exceptions raised by warptools.

All exceptions derive from ``WarpError`` and from the closest built-in
exception, so that callers can catch either.
"""


class WarpError(Exception):
    """Base class for all warptools errors."""


class ConfigurationError(WarpError, ValueError):
    """Invalid or inconsistent inputs.

    Raised for a missing reference space, an unsupported dimension or
    image kind, an unknown interpolation kernel, malformed geometry, or a
    number of components that does not match the image kind.
    """


class TransformError(WarpError, RuntimeError):
    """A transform cannot be used the way it was requested.

    Typically raised when the inverse of a non-invertible transform is
    requested while building a transform stack.
    """
