import numpy as np

# Row-major upper triangle of a symmetric 3x3 matrix:
# xx, xy, xz, yy, yz, zz
SYM_INDICES = ((0, 0), (0, 1), (0, 2), (1, 1), (1, 2), (2, 2))


def lmdiv(A, B, rcond=None):
    r"""Left matrix division A\B.

    Parameters
    ----------
    A : (M, [N]) array_like
    B : (M, [K]) array_like

    Returns
    -------
    X : (N, [K]) np.ndarray

    """
    A = np.asarray(A)
    B = np.asarray(B)
    if len(A.shape) == 1:
        A = A[..., None]
    X = np.linalg.lstsq(A, B, rcond=rcond)[0]
    return X


def rmdiv(A, B, rcond=None):
    r"""Right matrix division A/B.

    Parameters
    ----------
    A : (M, [N]) array_like
    B : (K, [N]) array_like

    Returns
    -------
    X : (M, K) np.ndarray

    """
    A = np.asarray(A)
    B = np.asarray(B)
    if len(A.shape) == 1:
        A = A[..., None]
    if len(B.shape) == 1:
        B = B[..., None]
    return np.linalg.lstsq(B.transpose(), A.transpose(),
                           rcond=rcond)[0].transpose()


def is_identity(mat, tol=1e-5):
    """Check if a square matrix is the identity, entry-wise.

    Parameters
    ----------
    mat : (D, D) array_like
    tol : float, default=1e-5
        Largest absolute deviation allowed on each entry.

    Returns
    -------
    bool

    """
    mat = np.asarray(mat, dtype=np.float64)
    eye = np.eye(mat.shape[0], dtype=np.float64)
    return bool(np.all(np.abs(mat - eye) <= tol))


def is_singular(mat, rcond=1e-12):
    """Check if a square matrix is (numerically) singular."""
    mat = np.asarray(mat, dtype=np.float64)
    if not np.all(np.isfinite(mat)):
        return True
    s = np.linalg.svd(mat, compute_uv=False)
    return bool(s[-1] <= rcond * max(s[0], 1.))


def sym_to_matrix(sym):
    """Expand packed symmetric tensors into full matrices.

    Parameters
    ----------
    sym : (..., 6) array_like
        Upper triangle, in order xx, xy, xz, yy, yz, zz.

    Returns
    -------
    mat : (..., 3, 3) np.ndarray

    """
    sym = np.asarray(sym)
    mat = np.empty(sym.shape[:-1] + (3, 3), dtype=sym.dtype)
    for n, (i, j) in enumerate(SYM_INDICES):
        mat[..., i, j] = sym[..., n]
        mat[..., j, i] = sym[..., n]
    return mat


def matrix_to_sym(mat):
    """Pack full symmetric matrices into their upper triangle.

    Parameters
    ----------
    mat : (..., 3, 3) array_like

    Returns
    -------
    sym : (..., 6) np.ndarray
        Upper triangle, in order xx, xy, xz, yy, yz, zz.

    """
    mat = np.asarray(mat)
    return np.stack([mat[..., i, j] for i, j in SYM_INDICES], axis=-1)
