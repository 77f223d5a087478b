"""
Image I/O helpers.

Thin wrappers around PIL for converting between image files and
:class:`RasterImage` values, plus output directory management.
"""

import os

from PIL import Image

from quadwarp.warping.raster import RasterImage


def load_raster(path: str) -> RasterImage:
    """Load any PIL-readable image as an RGBA raster.

    Parameters
    ----------
    path : str
        Image file path.

    Returns
    -------
    RasterImage
        The image converted to RGBA.
    """
    with Image.open(path) as img:
        rgba = img.convert("RGBA")
        return RasterImage(rgba.width, rgba.height, rgba.tobytes())


def raster_to_image(raster: RasterImage) -> Image.Image:
    """Wrap a raster's pixels in a PIL RGBA image."""
    return Image.frombytes("RGBA", (raster.width, raster.height), raster.pixels)


def save_raster(raster: RasterImage, path: str) -> None:
    """Write a raster to disk; the format follows the file extension.

    Formats without an alpha channel (e.g. JPEG) receive the RGB channels
    only.
    """
    img = raster_to_image(raster)
    ext = os.path.splitext(path)[1].lower()
    if ext in (".jpg", ".jpeg", ".bmp"):
        img = img.convert("RGB")
    img.save(path)


def ensure_output_dirs(names: list, base: str = "results") -> None:
    """Create one output subdirectory per job name.

    Parameters
    ----------
    names : list of str
        Job identifiers.
    base : str
        Root output directory.
    """
    for name in names:
        os.makedirs(os.path.join(base, name), exist_ok=True)
