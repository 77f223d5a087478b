"""
RGBA raster value type shared by the warp engine and its callers.
"""

from dataclasses import dataclass

import numpy as np

from quadwarp.errors import InvalidInputError

CHANNELS = 4


def check_dimensions(width, height) -> None:
    """Raise :class:`InvalidInputError` unless both sizes are positive ints."""
    for label, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise InvalidInputError(f"Raster {label} must be an integer, got {value!r}")
        if value <= 0:
            raise InvalidInputError(f"Raster {label} must be positive, got {value}")


@dataclass(frozen=True)
class RasterImage:
    """An immutable RGBA image.

    Attributes
    ----------
    width, height : int
        Size in pixels.
    pixels : bytes
        ``width * height * 4`` bytes, channel order R, G, B, A, row-major,
        origin at the top-left.
    """

    width: int
    height: int
    pixels: bytes

    def __post_init__(self):
        check_dimensions(self.width, self.height)
        object.__setattr__(self, "width", int(self.width))
        object.__setattr__(self, "height", int(self.height))
        object.__setattr__(self, "pixels", bytes(self.pixels))

        expected = self.width * self.height * CHANNELS
        if len(self.pixels) != expected:
            raise InvalidInputError(
                f"Pixel buffer holds {len(self.pixels)} bytes, expected "
                f"{expected} for a {self.width}x{self.height} RGBA image"
            )

    @classmethod
    def blank(cls, width: int, height: int) -> "RasterImage":
        """A fully transparent (all-zero) raster."""
        check_dimensions(width, height)
        return cls(width, height, bytes(width * height * CHANNELS))

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "RasterImage":
        """Build a raster from an H x W x 4 (or H x W x 3) uint8 array.

        Three-channel input is treated as opaque RGB and receives an alpha
        channel of 255.
        """
        arr = np.asarray(arr)
        if arr.ndim != 3 or arr.shape[2] not in (3, CHANNELS):
            raise InvalidInputError(
                f"Expected an H x W x 3 or H x W x 4 array, got shape {arr.shape}")
        if arr.dtype != np.uint8:
            raise InvalidInputError(f"Expected a uint8 array, got {arr.dtype}")

        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=2)

        h, w = arr.shape[:2]
        return cls(w, h, np.ascontiguousarray(arr).tobytes())

    def to_array(self) -> np.ndarray:
        """Read-only H x W x 4 uint8 view of the pixel buffer."""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(
            self.height, self.width, CHANNELS)

    def pixel(self, x: int, y: int) -> tuple:
        """RGBA tuple at column *x*, row *y*."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} raster")
        offset = (y * self.width + x) * CHANNELS
        return tuple(self.pixels[offset:offset + CHANNELS])

    def __repr__(self) -> str:
        return f"RasterImage(width={self.width}, height={self.height})"
