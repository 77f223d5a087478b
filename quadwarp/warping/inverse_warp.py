"""
Nearest-neighbour inverse warping.

Inverse warping iterates over every destination pixel, maps it back into the
source plane through H⁻¹ and copies the closest source pixel.  Working
backwards leaves no holes in the output.  Destination pixels that land
outside the source (or at infinity) keep their zero default.

The per-pixel work is vectorised with numpy over horizontal bands of rows;
bands are independent, so they may also be spread across a thread pool.
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np

from quadwarp.errors import InvalidInputError
from quadwarp.geometry.matrix import DET_EPS, invert_matrix
from quadwarp.warping.raster import CHANNELS, RasterImage, check_dimensions

DEFAULT_BAND_HEIGHT = 256

# |w| at or below W_EPS * max|inverse| marks a back-projected point at infinity
W_EPS = 1e-12

# Coordinates are snapped to this many decimals before rounding
SNAP_DECIMALS = 9


def round_half_down(values: np.ndarray) -> np.ndarray:
    """Round to the nearest integer, sending exact ties toward zero.

    ``0.5 -> 0``, ``1.5 -> 1``, ``-0.5 -> 0``, ``1.6 -> 2``.  When a
    destination grid is an exact multiple of the source grid this keeps the
    last destination column/row on the last source pixel instead of one past
    it.
    """
    values = np.asarray(values, dtype=np.float64)
    return np.sign(values) * np.ceil(np.abs(values) - 0.5)


def _warp_band(src: np.ndarray, inverse: np.ndarray, dest: np.ndarray,
               y_start: int, y_stop: int) -> int:
    """Fill rows ``[y_start, y_stop)`` of *dest*; return the number sampled."""
    src_h, src_w = src.shape[:2]
    dest_w = dest.shape[1]

    ys, xs = np.mgrid[y_start:y_stop, 0:dest_w].astype(np.float64)

    # inverse @ (x, y, 1), written out so every pixel is computed identically
    sx = inverse[0, 0] * xs + inverse[0, 1] * ys + inverse[0, 2]
    sy = inverse[1, 0] * xs + inverse[1, 1] * ys + inverse[1, 2]
    sw = inverse[2, 0] * xs + inverse[2, 1] * ys + inverse[2, 2]

    finite = np.abs(sw) > W_EPS * np.max(np.abs(inverse))
    safe_w = np.where(finite, sw, 1.0)
    with np.errstate(over="ignore", invalid="ignore"):
        src_x = round_half_down(np.round(sx / safe_w, SNAP_DECIMALS))
        src_y = round_half_down(np.round(sy / safe_w, SNAP_DECIMALS))

    inside = (
        finite &
        (src_x >= 0) & (src_x < src_w) &
        (src_y >= 0) & (src_y < src_h)
    )

    band = dest[y_start:y_stop]
    band[inside] = src[src_y[inside].astype(np.intp), src_x[inside].astype(np.intp)]
    return int(np.count_nonzero(inside))


def warp_with_coverage(source: RasterImage, forward_matrix: np.ndarray,
                       dest_width: int, dest_height: int, workers: int = 1,
                       band_height: int = DEFAULT_BAND_HEIGHT,
                       det_eps: float = DET_EPS):
    """Warp *source* and also report how many destination pixels were sampled.

    Same parameters as :func:`warp_raster`.

    Returns
    -------
    raster : RasterImage
        The warped destination image.
    coverage : int
        Number of destination pixels that received a source sample.
    """
    check_dimensions(dest_width, dest_height)
    if int(workers) < 1 or int(band_height) < 1:
        raise InvalidInputError(
            f"workers and band_height must be >= 1, got {workers} and {band_height}")
    workers, band_height = int(workers), int(band_height)

    # Fails before any destination memory exists
    inverse = invert_matrix(forward_matrix, det_eps=det_eps)

    src = source.to_array()
    dest = np.zeros((dest_height, dest_width, CHANNELS), dtype=np.uint8)
    bands = [(y, min(y + band_height, dest_height))
             for y in range(0, dest_height, band_height)]

    if workers == 1 or len(bands) == 1:
        coverage = sum(_warp_band(src, inverse, dest, y0, y1) for y0, y1 in bands)
    else:
        # Bands write disjoint row slices of dest
        with ThreadPoolExecutor(max_workers=min(workers, len(bands))) as executor:
            futures = [executor.submit(_warp_band, src, inverse, dest, y0, y1)
                       for y0, y1 in bands]
            coverage = sum(f.result() for f in futures)

    return RasterImage.from_array(dest), coverage


def warp_raster(source: RasterImage, forward_matrix: np.ndarray,
                dest_width: int, dest_height: int, workers: int = 1,
                band_height: int = DEFAULT_BAND_HEIGHT,
                det_eps: float = DET_EPS) -> RasterImage:
    """Resample *source* into a new raster under the inverse of a homography.

    Parameters
    ----------
    source : RasterImage
        Image to sample from.  Never modified.
    forward_matrix : np.ndarray
        3 x 3 homography mapping source coordinates to destination
        coordinates.
    dest_width, dest_height : int
        Size of the output raster.
    workers : int
        Number of threads; 1 runs every band in the calling thread.  The
        result does not depend on this value.
    band_height : int
        Rows processed per vectorised step.
    det_eps : float
        Relative determinant tolerance used when inverting the matrix.

    Returns
    -------
    RasterImage
        ``dest_width x dest_height`` RGBA raster.  Pixels whose source
        location falls outside the source image are ``(0, 0, 0, 0)``.

    Raises
    ------
    InvalidInputError
        If a size argument is not a positive integer.
    SingularMatrixError
        If *forward_matrix* cannot be inverted.
    """
    raster, _ = warp_with_coverage(source, forward_matrix, dest_width, dest_height,
                                   workers=workers, band_height=band_height,
                                   det_eps=det_eps)
    return raster
