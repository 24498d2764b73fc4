import numpy as np


def argpad(arg, n, default=None):
    """Pad/crop list so that its length is ``n``.

    Parameters
    ----------
    arg : scalar or iterable
        Input argument(s)
    n : int
        Target length
    default : optional
        Default value to pad with. By default, replicate the last value

    Returns
    -------
    arg : list
        Output arguments

    """
    try:
        arg = list(arg)[:n]
    except TypeError:
        arg = [arg]
    if default is None:
        default = arg[-1]
    arg += [default] * max(0, n - len(arg))
    return arg


def argdef(*args):
    """Return the first non-None value from a list of arguments.

    Parameters
    ----------
    value0
        First potential value. If None, try value 1
    value1
        Second potential value. If None, try value 2
    ...
    valueN
        Last potential value

    Returns
    -------
    value
        First non-None value

    """
    args = list(args)
    arg = args.pop(0)
    while arg is None and len(args) > 0:
        arg = args.pop(0)
    return arg


def sub2ind(subs, shape):
    """Convert sub indices (i, j, k) into linear indices.

    Parameters
    ----------
    subs : iterable of array_like
        List of sub-indices. Its length is the number of dimension.
        Each element should have the same number of elements and shape.
    shape : iterable
        Size of each dimension. Its length should be the same as the
        length of ``subs``.

    Returns
    -------
    ind : np.array
        Linear indices

    """
    dim = len(shape)
    if isinstance(subs, np.ndarray) and subs.shape[-1] == dim:
        subs = [subs[..., d] for d in range(dim)]
    ind = np.zeros_like(np.asarray(subs[0]))
    # The rightmost dimension is the most rapidly changing one
    # -> if shape == [D, H, W], the strides are therefore [H*W, W, 1]
    stride = np.cumprod(shape[:0:-1])[::-1].tolist() + [1]
    for i, s in zip(subs, stride):
        ind += np.asarray(i) * s
    return ind


def chunks(n, size):
    """Split ``range(n)`` into contiguous slices of at most ``size``."""
    size = max(int(size), 1)
    return [slice(start, min(start + size, n)) for start in range(0, n, size)]
