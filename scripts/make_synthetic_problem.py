#!/usr/bin/env python3
"""
Generate a synthetic show coordinate system fitting problem.

Takeoff positions form a rows x cols grid in the show frame; UAV positions are
those takeoff positions projected through a known coordinate system, with
optional GPS noise, heading noise and UAVs lacking a fix. The true coordinate
system is stored next to the problem under "truth".

Example:
  python scripts/make_synthetic_problem.py --rows 5 --cols 4 --spacing 6 \
      --origin 19.0613 47.4740 --orientation 30 --noise 0.2 --out runtime/problem.json
  python -m autofit.pipeline --problem runtime/problem.json
"""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Optional, Sequence, Tuple

import numpy as np

from common.geo import FlatEarthTransformer
from common.types import CoordinateSystemEstimate, FittingProblem


def grid_positions(rows: int, cols: int, spacing_m: float) -> list:
    return [(r * spacing_m, c * spacing_m) for r in range(rows) for c in range(cols)]


def make_problem(
    rows: int = 5,
    cols: int = 4,
    spacing_m: float = 6.0,
    origin: Sequence[float] = (19.0613, 47.4740),
    orientation_deg: float = 30.0,
    handedness: str = "nwu",
    noise_m: float = 0.0,
    heading_noise_deg: float = 0.0,
    seed: int = 0,
    missing: int = 0,
    shuffle: bool = True,
) -> Tuple[FittingProblem, CoordinateSystemEstimate]:
    """
    Returns (problem, truth). UAV order is shuffled so that UAV i is not
    trivially takeoff i; the last `missing` UAVs have no GPS fix.
    """
    rng = np.random.default_rng(seed)
    truth = CoordinateSystemEstimate(origin=(float(origin[0]), float(origin[1])), orientation_deg=orientation_deg, handedness=handedness)
    show_to_geo = FlatEarthTransformer(truth.origin, truth.orientation_deg, truth.handedness)

    takeoffs = grid_positions(rows, cols, spacing_m)
    order = rng.permutation(len(takeoffs)) if shuffle else np.arange(len(takeoffs))

    positions: list = []
    headings: list = []
    for k in order:
        x, y = takeoffs[int(k)]
        if noise_m > 0:
            x += float(rng.normal(0.0, noise_m))
            y += float(rng.normal(0.0, noise_m))
        positions.append(show_to_geo.to_geo((x, y)))
        heading = orientation_deg + (float(rng.normal(0.0, heading_noise_deg)) if heading_noise_deg > 0 else 0.0)
        headings.append(heading % 360.0)

    for i in range(max(0, min(missing, len(positions)))):
        positions[len(positions) - 1 - i] = None

    problem = FittingProblem(
        uav_ids=[f"{i + 1:02d}" for i in range(len(positions))],
        uav_positions=positions,
        uav_headings=headings,
        takeoff_positions=takeoffs,
    )
    return problem, truth


def main(argv: Optional[list] = None) -> None:
    ap = argparse.ArgumentParser(description="Synthetic auto-fit problem generator")
    ap.add_argument("--rows", type=int, default=5)
    ap.add_argument("--cols", type=int, default=4)
    ap.add_argument("--spacing", type=float, default=6.0, help="Grid spacing (m)")
    ap.add_argument("--origin", type=float, nargs=2, default=[19.0613, 47.4740], metavar=("LON", "LAT"))
    ap.add_argument("--orientation", type=float, default=30.0, help="Show X axis heading (deg)")
    ap.add_argument("--handedness", choices=["neu", "nwu"], default="nwu")
    ap.add_argument("--noise", type=float, default=0.0, help="GPS noise sigma (m)")
    ap.add_argument("--heading-noise", type=float, default=0.0, help="Compass noise sigma (deg)")
    ap.add_argument("--missing", type=int, default=0, help="#UAVs without GPS fix")
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--out", default="runtime/problem.json")
    args = ap.parse_args(argv)

    problem, truth = make_problem(
        rows=args.rows,
        cols=args.cols,
        spacing_m=args.spacing,
        origin=args.origin,
        orientation_deg=args.orientation,
        handedness=args.handedness,
        noise_m=args.noise,
        heading_noise_deg=args.heading_noise,
        seed=args.seed,
        missing=args.missing,
    )
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    payload = problem.to_dict()
    payload["truth"] = truth.to_dict()
    out.write_text(json.dumps(payload, indent=2))
    print(f"Wrote {problem.num_uavs} UAVs / {len(problem.takeoff_positions)} takeoffs to {out}")


if __name__ == "__main__":
    main()
