"""
Visualization utilities for the perspective-warp tool.

All functions save figures to disk rather than displaying them interactively,
making the module suitable for headless execution.
"""

import os
import numpy as np
import matplotlib
matplotlib.use("Agg")          # non-interactive backend
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon

from quadwarp.warping.raster import RasterImage

# Same fill the interactive editor uses for the selected region
QUAD_FILL = (1.0, 0.0, 0.0, 0.3)


def _draw_quad(ax, quad: np.ndarray) -> None:
    ax.add_patch(Polygon(quad, closed=True, facecolor=QUAD_FILL,
                         edgecolor="red", linewidth=1))
    for idx, (x, y) in enumerate(quad):
        ax.plot(x, y, "wo", markersize=10, markeredgecolor="black")
        ax.text(x, y, str(idx), color="black", fontsize=7, weight="bold",
                ha="center", va="center")


# ---------------------------------------------------------------------------
# Source image with control points
# ---------------------------------------------------------------------------

def save_quad_overlay(source: RasterImage, quad: np.ndarray,
                      name: str, out_dir: str) -> str:
    """Save the source image with the control quad and numbered handles.

    Returns
    -------
    str
        Path of the written figure.
    """
    fig, ax = plt.subplots(figsize=(8, 8))
    ax.imshow(source.to_array())
    _draw_quad(ax, np.array(quad, dtype=float))
    ax.set_title(f"{name} – control points")
    ax.axis("off")

    path = os.path.join(out_dir, name, "quad_overlay.jpg")
    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


# ---------------------------------------------------------------------------
# Before / after
# ---------------------------------------------------------------------------

def save_warp_result(source: RasterImage, quad: np.ndarray, warped: RasterImage,
                     name: str, out_dir: str) -> str:
    """Save the source (with quad) next to the warped output."""
    fig, axes = plt.subplots(1, 2, figsize=(16, 8))

    axes[0].imshow(source.to_array())
    _draw_quad(axes[0], np.array(quad, dtype=float))
    axes[0].set_title(f"Source {source.width}×{source.height}"); axes[0].axis("off")

    axes[1].imshow(warped.to_array())
    axes[1].set_title(f"Warped {warped.width}×{warped.height}"); axes[1].axis("off")

    path = os.path.join(out_dir, name, "comparison.jpg")
    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path
