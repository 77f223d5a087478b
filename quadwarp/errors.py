"""
Error types raised by the perspective-warp engine.

All failures are deterministic consequences of the inputs (wrong point
counts, degenerate quads), so they are reported by raising and never
retried.
"""


class WarpError(Exception):
    """Base class for every error raised by :mod:`quadwarp`."""


class InvalidInputError(WarpError, ValueError):
    """Malformed input: wrong number of points, bad raster size or buffer."""


class SingularSystemError(WarpError, ArithmeticError):
    """The 8x8 homography system has no unique solution.

    Raised when the source correspondences are coincident or collinear.
    """


class SingularMatrixError(WarpError, ArithmeticError):
    """A 3x3 projective matrix has (numerically) zero determinant."""
