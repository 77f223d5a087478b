#!/usr/bin/env python3
"""
run_warp.py – Four-Point Perspective Warp

Loads configuration from configs/default.yaml (or a user-specified file),
rectifies the control quad of every job defined in the config into a
rectangle, and writes the warped images (plus optional figures) to the
results directory.

Usage
-----
    python run_warp.py
    python run_warp.py --config configs/default.yaml
    python run_warp.py --jobs poster
    python run_warp.py --no-figures --workers 4
"""

import argparse
import copy
import os
import sys
import time

import yaml

# Ensure the project root is on the Python path when invoked directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from quadwarp.errors import WarpError
from quadwarp.geometry.homography import DEFAULT_QUAD, as_point_quad
from quadwarp.geometry.linear_system import PIVOT_EPS
from quadwarp.geometry.matrix import DET_EPS
from quadwarp.warping.inverse_warp import DEFAULT_BAND_HEIGHT
from quadwarp.warping.pipeline import warp_with_report
from quadwarp.utils.image_io import load_raster, save_raster, ensure_output_dirs
from quadwarp.utils.visualization import save_quad_overlay, save_warp_result


DEFAULTS = {
    "results_dir": "results",
    "figures": True,
    "solver": {"pivot_eps": PIVOT_EPS, "det_eps": DET_EPS},
    "warp": {"workers": 1, "band_height": DEFAULT_BAND_HEIGHT},
    "jobs": [],
}


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def load_config(path: str) -> dict:
    with open(path, "r") as fh:
        user = yaml.safe_load(fh) or {}

    cfg = copy.deepcopy(DEFAULTS)
    for key, value in user.items():
        if isinstance(value, dict) and isinstance(cfg.get(key), dict):
            cfg[key].update(value)
        else:
            cfg[key] = value
    return cfg


def banner(text: str) -> None:
    width = 60
    print("\n" + "─" * width)
    print(f"  {text}")
    print("─" * width)


# ──────────────────────────────────────────────────────────────────────────────
# Per-job pipeline
# ──────────────────────────────────────────────────────────────────────────────

def run_job(job: dict, cfg: dict, results_dir: str, figures: bool) -> dict:
    """Warp a single job's image and return summary metrics."""
    name = job["name"]
    banner(f"Job: {name}")

    metrics = {
        "job": name,
        "source": None,
        "dest": None,
        "coverage": None,
        "error": None,
    }

    # ── 1. Load image ─────────────────────────────────────────────────────────
    source = load_raster(job["image"])
    metrics["source"] = f"{source.width}x{source.height}"
    print(f"  Loaded image  {source.width}×{source.height}")

    # ── 2. Solve + warp ───────────────────────────────────────────────────────
    width = job.get("width", source.width)
    height = job.get("height", source.height)
    metrics["dest"] = f"{width}x{height}"

    try:
        quad = as_point_quad(job.get("points") or DEFAULT_QUAD)
        print(f"  Control points: {[tuple(p) for p in quad.tolist()]}")
        print(f"  Warping into {width}×{height} "
              f"({cfg['warp']['workers']} worker(s))...")
        report = warp_with_report(
            source, quad, width, height,
            workers=cfg["warp"]["workers"],
            band_height=cfg["warp"]["band_height"],
            pivot_eps=cfg["solver"]["pivot_eps"],
            det_eps=cfg["solver"]["det_eps"],
        )
    except WarpError as exc:
        print(f"  [ERROR] {type(exc).__name__}: {exc}")
        metrics["error"] = type(exc).__name__
        return metrics

    print(f"  Homography:\n{report.matrix}")
    print(f"  Coverage: {report.coverage}/{width * height} px "
          f"({100 * report.coverage_rate:.1f}%)")
    metrics["coverage"] = report.coverage_rate

    # ── 3. Save outputs ───────────────────────────────────────────────────────
    out_path = os.path.join(results_dir, name, "warped.png")
    save_raster(report.raster, out_path)
    print(f"  Saved warped image → {out_path}")

    if figures:
        save_quad_overlay(source, quad, name, results_dir)
        save_warp_result(source, quad, report.raster, name, results_dir)

    return metrics


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Rectify a four-point region of an image into a rectangle"
    )
    p.add_argument(
        "--config", default="configs/default.yaml",
        help="Path to YAML configuration file (default: configs/default.yaml)",
    )
    p.add_argument(
        "--jobs", nargs="*", default=None,
        help="Subset of job names to process (default: all jobs in config)",
    )
    p.add_argument(
        "--no-figures", action="store_true",
        help="Skip the matplotlib overlay / comparison figures",
    )
    p.add_argument(
        "--workers", type=int, default=None,
        help="Threads used by the rasteriser (overrides warp.workers)",
    )
    return p.parse_args(argv)


def run(argv=None) -> list:
    """Process every selected job and return their summary metrics."""
    args = parse_args(argv)

    # Load configuration
    if not os.path.exists(args.config):
        print(f"[ERROR] Config file not found: {args.config}")
        sys.exit(1)
    cfg = load_config(args.config)

    if args.workers is not None:
        cfg["warp"]["workers"] = args.workers

    results_dir = cfg["results_dir"]
    jobs = cfg["jobs"]

    # Optionally restrict to a subset of jobs
    if args.jobs:
        jobs = [j for j in jobs if j["name"] in args.jobs]
        if not jobs:
            print(f"[ERROR] No matching jobs found for: {args.jobs}")
            sys.exit(1)

    # Validate that image files exist
    for job in jobs:
        if not os.path.exists(job["image"]):
            print(f"[ERROR] Image not found: {job['image']}")
            sys.exit(1)

    # Create output directories
    ensure_output_dirs([j["name"] for j in jobs], base=results_dir)

    figures = cfg["figures"] and not args.no_figures

    banner("Four-Point Perspective Warp")
    print(f"  Config  : {args.config}")
    print(f"  Jobs    : {[j['name'] for j in jobs]}")
    print(f"  Figures : {'enabled' if figures else 'disabled'}")
    print(f"  Output  : {results_dir}/")

    t0 = time.time()
    all_metrics = []

    for job in jobs:
        metrics = run_job(job, cfg, results_dir, figures)
        all_metrics.append(metrics)

    # ── Summary table ──────────────────────────────────────────────────────
    banner("Results Summary")
    header = f"{'Job':<14} {'Source':>11} {'Dest':>11} {'Coverage':>9}  Status"
    print(header)
    print("─" * len(header))
    for m in all_metrics:
        cov = f"{100 * m['coverage']:.1f}%" if m["coverage"] is not None else "–"
        status = m["error"] or "ok"
        print(f"{m['job']:<14} {m['source'] or '–':>11} {m['dest'] or '–':>11} "
              f"{cov:>9}  {status}")

    elapsed = time.time() - t0
    print(f"\nWarp complete in {elapsed:.1f}s")
    print(f"Results saved to: {os.path.abspath(results_dir)}/")
    return all_metrics


def main(argv=None):
    run(argv)


if __name__ == "__main__":
    main()
