from __future__ import annotations

import argparse
import json
import sys
import warnings
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from common.logging_setup import get_logger, setup_logging
from common.types import FitReport, FittingProblem
from common.utils import iso_now_ms, timer_ms
from autofit.errors import AutoFitError, InputError, NonConvergenceWarning
from autofit.estimate import FitOptions, run_autofit


log = get_logger("autofit")

_DEFAULT_CONFIG: Dict = {
    "autofit": {"threshold_m": 3.0, "max_iterations": 20, "algorithm": "greedy", "handedness": "nwu"},
    "logging": {"level": "INFO", "metrics_file": "logs/autofit.jsonl"},
}


def _load_config(path: Optional[str]) -> Dict:
    """params.yaml merged over the built-in defaults; a missing file means defaults."""
    P = {k: dict(v) for k, v in _DEFAULT_CONFIG.items()}
    if not path or not Path(path).exists():
        return P
    with open(path, "r") as f:
        loaded = yaml.safe_load(f) or {}
    for section, values in loaded.items():
        if isinstance(values, dict):
            P.setdefault(section, {}).update(values)
        else:
            P[section] = values
    return P


def _load_problem(path: str) -> FittingProblem:
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise InputError(f"cannot read fitting problem {path}: {e}") from e
    if not isinstance(data, dict):
        raise InputError("fitting problem must be a JSON object")
    try:
        return FittingProblem.from_dict(data)
    except (TypeError, ValueError, IndexError) as e:
        raise InputError(f"malformed fitting problem: {e}") from e


def _write_metrics_row(path: Path, row: Dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", buffering=1) as f:
        f.write(json.dumps(row) + "\n")


@timer_ms
def _fit(problem: FittingProblem, options: FitOptions) -> FitReport:
    return run_autofit(problem, options)


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Show coordinate system auto-fit")
    ap.add_argument("--problem", required=True, help="Fitting problem JSON")
    ap.add_argument("--config", default="config/params.yaml")
    ap.add_argument("--threshold", type=float, default=None, help="Max UAV-to-takeoff distance (m)")
    ap.add_argument("--max-iterations", type=int, default=None, help="ICP iteration budget")
    ap.add_argument("--algorithm", choices=["greedy", "hungarian"], default=None)
    ap.add_argument("--handedness", choices=["neu", "nwu"], default=None)
    ap.add_argument("--output", default=None, help="Write the report JSON here instead of stdout")
    ap.add_argument("--log-level", default=None)
    args = ap.parse_args(argv)

    P = _load_config(args.config)
    setup_logging(args.log_level or P.get("logging", {}).get("level", "INFO"))
    metrics_path = Path(P.get("logging", {}).get("metrics_file", "logs/autofit.jsonl"))

    row: Dict = {"ts": iso_now_ms(), "problem": str(args.problem)}
    try:
        options = FitOptions.from_config(
            P,
            threshold_m=args.threshold,
            max_iterations=args.max_iterations,
            algorithm=args.algorithm,
            handedness=args.handedness,
        )
        problem = _load_problem(args.problem)
        log.info(
            "Fitting show coordinate system",
            extra={"extra": {"uavs": problem.num_uavs, "takeoffs": len(problem.takeoff_positions)}},
        )
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NonConvergenceWarning)
            report, dt_ms = _fit(problem, options)
    except AutoFitError as e:
        log.error("Show coordinate system fit failed", extra={"extra": {"kind": e.kind, "error": str(e)}})
        row.update({"status": "failed", "error": e.kind, "message": str(e)})
        _write_metrics_row(metrics_path, row)
        print(f"autofit: {e}", file=sys.stderr)
        return 2

    row.update(
        {
            "status": report.status,
            "iterations": report.iterations,
            "matched": len(report.matching),
            "rms_error_m": report.rms_error_m,
            "latency_ms": int(dt_ms),
            "origin": list(report.estimate.origin),
            "orientation_deg": report.estimate.orientation_deg,
        }
    )
    _write_metrics_row(metrics_path, row)

    text = json.dumps(report.to_dict(), indent=2)
    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text + "\n")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
