"""
Homography estimation from four point correspondences.

A planar homography (projective transformation) maps one plane onto another
while preserving straight lines.  With the bottom-right entry fixed to 1 the
3x3 matrix has eight unknowns, which four correspondences determine exactly
through an 8 x 8 linear system.
"""

from collections.abc import Mapping
from itertools import combinations

import numpy as np

from quadwarp.errors import InvalidInputError, SingularSystemError
from quadwarp.geometry.linear_system import (
    PIVOT_EPS,
    build_linear_system,
    solve_linear_system,
)
from quadwarp.geometry.matrix import multiply_matrix_point

# Initial handle positions of the interactive editor this engine serves
DEFAULT_QUAD = ((100.0, 122.0), (296.0, 40.0), (513.0, 262.0), (273.0, 411.0))

# Twice a triangle's area at or below COLLINEAR_EPS * extent**2 counts as collinear
COLLINEAR_EPS = 1e-9


def _as_xy(point) -> tuple:
    if isinstance(point, Mapping):
        try:
            return point["x"], point["y"]
        except KeyError as exc:
            raise InvalidInputError(f"Point mapping is missing key {exc}") from None
    if hasattr(point, "x") and hasattr(point, "y"):
        return point.x, point.y
    try:
        x, y = point
    except (TypeError, ValueError):
        raise InvalidInputError(f"Cannot interpret {point!r} as an (x, y) point") from None
    return x, y


def as_point_quad(points) -> np.ndarray:
    """Convert four points into a read-only 4 x 2 float64 array.

    Parameters
    ----------
    points : sequence
        Exactly four points.  Each may be an ``(x, y)`` pair, a mapping
        with ``"x"`` and ``"y"`` keys, or an object with ``x`` / ``y``
        attributes.  A 4 x 2 array is accepted as-is.

    Returns
    -------
    np.ndarray
        4 x 2 array; row *i* is correspondence *i*.

    Raises
    ------
    InvalidInputError
        If there are not exactly four points or a coordinate is not a
        finite number.
    """
    if isinstance(points, np.ndarray):
        if points.ndim != 2 or points.shape[1] != 2:
            raise InvalidInputError(
                f"Expected an N x 2 point array, got shape {points.shape}")
        rows = points.tolist()
    else:
        try:
            rows = [_as_xy(p) for p in points]
        except TypeError:
            raise InvalidInputError(f"Cannot interpret {points!r} as a point sequence") from None

    if len(rows) != 4:
        raise InvalidInputError(f"Exactly 4 points are required, got {len(rows)}")

    try:
        quad = np.array(rows, dtype=np.float64)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Point coordinates must be numbers: {rows!r}") from None
    if not np.all(np.isfinite(quad)):
        raise InvalidInputError(f"Point coordinates must be finite: {rows!r}")

    quad.setflags(write=False)
    return quad


def check_general_position(quad: np.ndarray, eps: float = COLLINEAR_EPS) -> None:
    """Raise :class:`SingularSystemError` if any three points are collinear.

    The test compares twice the area of every point triple against the
    squared extent of the quad, so it does not depend on the coordinate
    scale.  Coincident points count as collinear.
    """
    extent = float(np.max(np.ptp(quad, axis=0)))
    limit = eps * extent ** 2
    for i, j, k in combinations(range(len(quad)), 3):
        (ax, ay), (bx, by), (cx, cy) = quad[i], quad[j], quad[k]
        area2 = (bx - ax) * (cy - ay) - (by - ay) * (cx - ax)
        if abs(area2) <= limit:
            raise SingularSystemError(
                f"Source points {i}, {j} and {k} are collinear or coincident")


def rectangle_corners(width: float, height: float) -> np.ndarray:
    """Corners of a ``width x height`` rectangle anchored at the origin.

    Order is top-left, top-right, bottom-right, bottom-left.  The far
    corners sit at ``width`` and ``height`` (not ``width - 1``), so the
    rectangle spans the full pixel grid.

    Returns
    -------
    np.ndarray
        Read-only 4 x 2 array.
    """
    return as_point_quad([(0, 0), (width, 0), (width, height), (0, height)])


def solve_homography(src_quad, dst_quad, pivot_eps: float = PIVOT_EPS) -> np.ndarray:
    """Compute the homography mapping four source points onto four targets.

    Parameters
    ----------
    src_quad, dst_quad : sequence
        Four ordered points each (anything :func:`as_point_quad` accepts).
        Source point *i* maps to destination point *i*.
    pivot_eps : float
        Relative pivot tolerance for the elimination.

    Returns
    -------
    H : np.ndarray
        3 x 3 matrix with ``H[2, 2] == 1`` such that
        ``dst ~ H @ src`` in homogeneous coordinates.

    Raises
    ------
    InvalidInputError
        If either quad does not hold exactly four points.
    SingularSystemError
        If the source points are coincident or collinear.
    """
    src = as_point_quad(src_quad)
    dst = as_point_quad(dst_quad)
    check_general_position(src)

    h = solve_linear_system(build_linear_system(src, dst), pivot_eps=pivot_eps)

    return np.array([
        [h[0], h[1], h[2]],
        [h[3], h[4], h[5]],
        [h[6], h[7], 1.0],
    ])


def apply_homography(H: np.ndarray, points) -> np.ndarray:
    """Project (x, y) points through a homography.

    Parameters
    ----------
    H : np.ndarray
        3 x 3 homography matrix.
    points : array_like
        N x 2 array of (x, y) coordinates.

    Returns
    -------
    np.ndarray
        N x 2 array of transformed (x, y) coordinates.  Points sent to
        infinity come back as ``inf`` / ``nan``.
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    transformed = np.array(
        [multiply_matrix_point(H, (x, y, 1.0)) for x, y in points]
    ).reshape(-1, 3)
    with np.errstate(divide="ignore", invalid="ignore"):
        return transformed[:, :2] / transformed[:, 2:3]
