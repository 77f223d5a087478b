"""
Closed-form 3x3 matrix helpers for projective transforms.
"""

import numpy as np

from quadwarp.errors import InvalidInputError, SingularMatrixError

# |det| at or below DET_EPS * (larger Hadamard bound) counts as singular
DET_EPS = 1e-12


def _as_matrix3x3(m) -> np.ndarray:
    m = np.asarray(m, dtype=np.float64)
    if m.shape != (3, 3):
        raise InvalidInputError(f"Expected a 3 x 3 matrix, got shape {m.shape}")
    return m


def invert_matrix(m, det_eps: float = DET_EPS) -> np.ndarray:
    """Invert a 3x3 matrix via its adjugate and determinant.

    The singularity test is scale-free.  The determinant is compared against
    the larger of the two Hadamard bounds on ``|det|``: the product of the
    row norms and the product of the column norms.  A rank-deficient matrix
    whose top rows have shrunk to rounding noise still has full-size
    columns, so it cannot hide behind a tiny row product.  An exactly zero
    determinant always fails.

    Parameters
    ----------
    m : array_like
        3 x 3 matrix.
    det_eps : float
        Relative determinant tolerance.

    Returns
    -------
    np.ndarray
        3 x 3 inverse.  Its ``[2, 2]`` entry is not normalised.

    Raises
    ------
    SingularMatrixError
        If the matrix is (numerically) singular.
    """
    m = _as_matrix3x3(m)
    a, b, c = m[0]
    d, e, f = m[1]
    g, h, i = m[2]

    # Cofactors of the first row
    c00 = e * i - f * h
    c01 = f * g - d * i
    c02 = d * h - e * g
    det = a * c00 + b * c01 + c * c02

    bound = max(float(np.prod(np.linalg.norm(m, axis=1))),
                float(np.prod(np.linalg.norm(m, axis=0))))
    if not np.isfinite(det) or abs(det) <= det_eps * bound:
        raise SingularMatrixError(f"Matrix is not invertible (det={det:.3g})")

    adjugate = np.array([
        [c00, c * h - b * i, b * f - c * e],
        [c01, a * i - c * g, c * d - a * f],
        [c02, b * g - a * h, a * e - b * d],
    ])
    return adjugate / det


def multiply_matrix_point(m, point) -> np.ndarray:
    """Multiply a 3x3 matrix by a homogeneous point.

    Parameters
    ----------
    m : array_like
        3 x 3 matrix.
    point : array_like
        Length-3 homogeneous coordinate ``(x, y, w)``.

    Returns
    -------
    np.ndarray
        Length-3 product ``m @ point``.
    """
    m = _as_matrix3x3(m)
    point = np.asarray(point, dtype=np.float64)
    if point.shape != (3,):
        raise InvalidInputError(f"Expected a homogeneous 3-vector, got shape {point.shape}")
    return m @ point
