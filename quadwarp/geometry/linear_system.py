"""
Linear system for the eight free homography parameters.

Each of the four correspondences contributes two rows to an 8 x 9 augmented
matrix (eight unknowns plus the right-hand side).  The system is solved by
Gauss-Jordan elimination with partial pivoting.
"""

import numpy as np

from quadwarp.errors import SingularSystemError

# A pivot below PIVOT_EPS times its column's original magnitude counts as zero
PIVOT_EPS = 1e-10


def build_linear_system(src_quad: np.ndarray, dst_quad: np.ndarray) -> np.ndarray:
    """Assemble the augmented matrix for a four-point homography.

    For correspondence *i* with source ``(sx, sy)`` and destination
    ``(dx, dy)`` the rows are::

        [sx, sy, 1, 0,  0,  0, -sx*dx, -sy*dx | dx]
        [0,  0,  0, sx, sy, 1, -sx*dy, -sy*dy | dy]

    which encode ``dx * (h6*sx + h7*sy + 1) = h0*sx + h1*sy + h2`` and the
    matching equation for ``dy``.

    Parameters
    ----------
    src_quad, dst_quad : np.ndarray
        4 x 2 arrays of (x, y) coordinates.

    Returns
    -------
    np.ndarray
        8 x 9 float64 augmented matrix.
    """
    rows = []
    for i in range(4):
        sx, sy = src_quad[i]
        dx, dy = dst_quad[i]

        rows.append([sx, sy, 1, 0,  0,  0, -sx * dx, -sy * dx, dx])
        rows.append([0,  0,  0, sx, sy, 1, -sx * dy, -sy * dy, dy])
    return np.array(rows, dtype=np.float64)


def solve_linear_system(augmented: np.ndarray,
                        pivot_eps: float = PIVOT_EPS) -> np.ndarray:
    """Solve an n x (n+1) augmented system by Gauss-Jordan elimination.

    At each step the remaining row with the largest-magnitude entry in the
    pivot column is swapped into place, normalised, and the column is
    eliminated from every other row.  The input array is not modified.

    Parameters
    ----------
    augmented : np.ndarray
        n x (n+1) matrix ``[A | b]``.
    pivot_eps : float
        Relative tolerance.  A pivot whose magnitude is at most
        ``pivot_eps`` times the largest magnitude of its column in *A* is
        treated as zero.

    Returns
    -------
    np.ndarray
        Length-n solution vector ``x`` with ``A @ x = b``.

    Raises
    ------
    SingularSystemError
        If some pivot column has no usable (non-zero) candidate.
    """
    work = np.array(augmented, dtype=np.float64)
    n = work.shape[0]
    column_scale = np.max(np.abs(work[:, :n]), axis=0)

    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(work[col:, col])))
        pivot = work[pivot_row, col]
        if abs(pivot) <= pivot_eps * column_scale[col]:
            raise SingularSystemError(
                f"Linear system is singular (pivot column {col}); "
                "source points are coincident or collinear"
            )

        if pivot_row != col:
            work[[col, pivot_row]] = work[[pivot_row, col]]

        work[col, col:] /= pivot

        for row in range(n):
            if row != col:
                factor = work[row, col]
                if factor != 0.0:
                    work[row, col:] -= factor * work[col, col:]

    return work[:, n].copy()
