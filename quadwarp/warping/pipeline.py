"""
Quad-to-rectangle perspective correction.

Ties the pieces together: four control points picked on a source image are
mapped onto the corners of a destination rectangle and the image is
resampled into it.
"""

from typing import NamedTuple, Optional

import numpy as np

from quadwarp.geometry.homography import rectangle_corners, solve_homography
from quadwarp.geometry.linear_system import PIVOT_EPS
from quadwarp.geometry.matrix import DET_EPS
from quadwarp.warping.inverse_warp import DEFAULT_BAND_HEIGHT, warp_with_coverage
from quadwarp.warping.raster import RasterImage, check_dimensions


class WarpReport(NamedTuple):
    raster: RasterImage
    matrix: np.ndarray
    coverage: int

    @property
    def coverage_rate(self) -> float:
        total = self.raster.width * self.raster.height
        return self.coverage / total


def warp_with_report(source: RasterImage, points,
                     dest_width: Optional[int] = None,
                     dest_height: Optional[int] = None,
                     workers: int = 1,
                     band_height: int = DEFAULT_BAND_HEIGHT,
                     pivot_eps: float = PIVOT_EPS,
                     det_eps: float = DET_EPS) -> WarpReport:
    """Run :func:`perspective_transform` and keep its intermediate results.

    Returns
    -------
    WarpReport
        ``(raster, matrix, coverage)``: the warped image, the forward
        homography from source points to destination corners, and the
        number of destination pixels that received a source sample.
    """
    if dest_width is None:
        dest_width = source.width
    if dest_height is None:
        dest_height = source.height
    check_dimensions(dest_width, dest_height)

    H = solve_homography(points, rectangle_corners(dest_width, dest_height),
                         pivot_eps=pivot_eps)
    raster, coverage = warp_with_coverage(source, H, dest_width, dest_height,
                                          workers=workers, band_height=band_height,
                                          det_eps=det_eps)
    return WarpReport(raster, H, coverage)


def perspective_transform(source: RasterImage, points,
                          dest_width: Optional[int] = None,
                          dest_height: Optional[int] = None,
                          **options) -> RasterImage:
    """Rectify the quadrilateral *points* of *source* into a rectangle.

    Point *i* is sent to corner *i* of the destination rectangle, in the
    order top-left, top-right, bottom-right, bottom-left.

    Parameters
    ----------
    source : RasterImage
        Image the control points were picked on.
    points : sequence
        Four ordered control points in source pixel coordinates.
    dest_width, dest_height : int, optional
        Output size.  Defaults to the source size.
    **options
        ``workers``, ``band_height``, ``pivot_eps`` and ``det_eps``,
        forwarded to the solver and rasteriser.

    Returns
    -------
    RasterImage
        The rectified image.

    Raises
    ------
    InvalidInputError
        Wrong point count or bad output size.
    SingularSystemError, SingularMatrixError
        Degenerate (coincident or collinear) control points.  Nothing is
        allocated for the output when these are raised.
    """
    return warp_with_report(source, points, dest_width, dest_height, **options).raster
