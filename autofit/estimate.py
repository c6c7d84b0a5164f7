"""
Show coordinate system auto-fit.

Finds the geographic origin and orientation of a show's local frame that best
lines up the planned takeoff positions with the measured GPS positions of the
UAVs:

1. Seed: align the centroid of the takeoff positions with the centroid of the
   UAVs and point the show X axis along the mean UAV heading.
2. Refine (ICP): project the UAVs into the current show frame, match them to
   takeoff positions within a distance threshold, solve the 2D Procrustes
   problem on the matched pairs and update the estimate. Stop as soon as the
   matching stops changing, or give up after `max_iterations`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union
import math
import warnings

import numpy as np

from common.geo import FlatEarthTransformer, HANDEDNESS_TYPES, centroid, circular_mean_deg, haversine_m, rotate_deg
from common.logging_setup import get_logger
from common.types import CoordinateSystemEstimate, FitReport, FittingProblem, Matching
from autofit.alignment import align_rigid
from autofit.errors import InputError, NoMatchError, NonConvergenceWarning
from autofit.matching import (
    ASSIGNMENT_ALGORITHMS,
    canonical_matching,
    distance_matrix,
    find_assignment,
    matched_points,
)


log = get_logger("autofit.estimate")

CONVERGED = "converged"
NON_CONVERGED = "non_converged"


@dataclass(frozen=True, slots=True)
class FitOptions:
    """
    Tunables of the refinement loop.

    Attributes:
        threshold_m: maximum UAV-to-takeoff distance of a matched pair (meters).
        max_iterations: iteration budget of the ICP loop.
        algorithm: assignment algorithm, "greedy" or "hungarian".
        handedness: axis convention of the show frame, "neu" or "nwu".
    """
    threshold_m: float = 3.0
    max_iterations: int = 20
    algorithm: str = "greedy"
    handedness: str = "nwu"

    def __post_init__(self) -> None:
        try:
            threshold = float(self.threshold_m)
        except (TypeError, ValueError):
            raise InputError(f"invalid threshold: {self.threshold_m!r}") from None
        if math.isnan(threshold) or threshold <= 0:
            raise InputError("threshold must be > 0")
        try:
            valid = (
                not isinstance(self.max_iterations, bool)
                and int(self.max_iterations) == self.max_iterations
                and self.max_iterations >= 1
            )
        except (TypeError, ValueError, OverflowError):
            valid = False
        if not valid:
            raise InputError("max_iterations must be a positive integer")
        if self.algorithm not in ASSIGNMENT_ALGORITHMS:
            raise InputError(f"unknown assignment algorithm: {self.algorithm!r}")
        if self.handedness not in HANDEDNESS_TYPES:
            raise InputError(f"unknown coordinate system type: {self.handedness!r}")
        object.__setattr__(self, "threshold_m", threshold)
        object.__setattr__(self, "max_iterations", int(self.max_iterations))

    @classmethod
    def from_config(cls, P: Optional[Mapping[str, Any]], **overrides: Any) -> "FitOptions":
        """Build from the `autofit` section of params.yaml; non-None overrides win."""
        section = dict((P or {}).get("autofit") or {})
        for key, value in overrides.items():
            if value is not None:
                section[key] = value
        known = {k: section[k] for k in _OPTION_NAMES if k in section}
        return cls(**known)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "FitOptions":
        """
        Build from caller-supplied options. Accepts the camelCase names used by
        show files (thresholdMeters, maxIterations, coordinateSystemType) next
        to the field names; any other key is an InputError.
        """
        kwargs: dict = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in _OPTION_NAMES:
                raise InputError(f"unknown fit option: {key!r}")
            if name in kwargs:
                raise InputError(f"fit option given twice: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)


_OPTION_NAMES = ("threshold_m", "max_iterations", "algorithm", "handedness")
_OPTION_ALIASES = {
    "thresholdMeters": "threshold_m",
    "threshold": "threshold_m",
    "maxIterations": "max_iterations",
    "coordinateSystemType": "handedness",
}


def _coerce_problem(problem: Union[FittingProblem, Mapping[str, Any]]) -> FittingProblem:
    if isinstance(problem, FittingProblem):
        return problem
    try:
        return FittingProblem.from_dict(dict(problem))
    except (TypeError, ValueError, IndexError) as e:
        raise InputError(f"malformed fitting problem: {e}") from e


def _prepare(problem: Union[FittingProblem, Mapping[str, Any]]) -> FittingProblem:
    """Validate and drop UAVs without a GPS fix. Fails fast, before any iteration."""
    p = _coerce_problem(problem).with_fixes_only()
    if p.num_uavs == 0:
        raise InputError("There are no UAVs with GPS coordinates to work with")
    if not p.takeoff_positions:
        raise InputError("There are no takeoff positions to fit the UAVs to")
    for lon, lat in p.uav_positions:  # type: ignore[misc]
        if not (math.isfinite(lon) and math.isfinite(lat)) or not -90.0 <= lat <= 90.0:
            raise InputError(f"invalid UAV position: ({lon}, {lat})")
    for uav_id, heading in zip(p.uav_ids, p.uav_headings):
        if heading is not None and not math.isfinite(heading):
            raise InputError(f"invalid heading of UAV {uav_id}: {heading}")
    for x, y in p.takeoff_positions:
        if not (math.isfinite(x) and math.isfinite(y)):
            raise InputError(f"invalid takeoff position: ({x}, {y})")
    return p


def calculate_initial_estimate(
    problem: Union[FittingProblem, Mapping[str, Any]],
    handedness: str = "nwu",
) -> CoordinateSystemEstimate:
    """
    Assignment-free seed: centroids on top of each other, show X axis along the
    circular mean of the known UAV headings (0 when none is known).
    """
    p = _prepare(problem)
    if handedness not in HANDEDNESS_TYPES:
        raise InputError(f"unknown coordinate system type: {handedness!r}")

    gps_centroid = centroid(p.uav_positions)  # type: ignore[arg-type]
    orientation = circular_mean_deg(p.uav_headings)
    gps_to_local = FlatEarthTransformer(gps_centroid, 0.0, handedness)

    uav_center = centroid(gps_to_local.to_local_many(p.uav_positions))  # type: ignore[arg-type]
    takeoff_center = centroid(p.takeoff_positions)
    rotated = rotate_deg(takeoff_center, gps_to_local.frame_rotation_deg(orientation))
    origin_local = (uav_center[0] - rotated[0], uav_center[1] - rotated[1])

    return CoordinateSystemEstimate(
        origin=gps_to_local.to_geo(origin_local),
        orientation_deg=orientation,
        handedness=handedness,
    )


def _rms_distance(a: Sequence[Sequence[float]], b: Sequence[Sequence[float]]) -> float:
    if not a:
        return 0.0
    d = np.asarray(a, dtype=float) - np.asarray(b, dtype=float)
    return float(np.sqrt(np.mean(np.sum(d ** 2, axis=1))))


def refine_estimate(
    estimate: CoordinateSystemEstimate,
    problem: Union[FittingProblem, Mapping[str, Any]],
    options: Optional[FitOptions] = None,
) -> FitReport:
    """
    Iterative closest point refinement of an estimate.

    Every iteration yields a new estimate; the orientation correction found by
    each alignment is accumulated on top of the previous orientation.

    Raises:
        InputError: the problem has no UAV fixes or no takeoff positions.
        NoMatchError: some iteration found no UAV within the threshold of any
            takeoff position.
    """
    opts = options or FitOptions(handedness=estimate.handedness)
    p = _prepare(problem)
    takeoffs = p.takeoff_positions
    seed = estimate

    previous: Optional[Matching] = None
    matching: Matching = []
    status = NON_CONVERGED
    iterations = 0

    for iteration in range(opts.max_iterations):
        iterations = iteration + 1
        gps_to_local = FlatEarthTransformer(estimate.origin, estimate.orientation_deg, estimate.handedness)
        uav_local = gps_to_local.to_local_many(p.uav_positions)  # type: ignore[arg-type]
        distances = distance_matrix(uav_local, takeoffs)
        matching = canonical_matching(find_assignment(distances, algorithm=opts.algorithm, threshold=opts.threshold_m))

        if previous is not None and matching == previous:
            status = CONVERGED
            break

        if not matching:
            raise NoMatchError(
                "Failed to find a sufficiently close matching between the drones and the takeoff positions"
            )

        uav_points, takeoff_points = matched_points(matching, uav_local, takeoffs)
        alignment = align_rigid(uav_points, takeoff_points)
        if alignment.is_reflection:
            log.warning(
                "Alignment produced a reflection; estimate may be mirrored",
                extra={"extra": {"iteration": iterations, "matched": len(matching)}},
            )

        estimate = CoordinateSystemEstimate(
            origin=gps_to_local.to_geo(alignment.translation),
            orientation_deg=estimate.orientation_deg - gps_to_local.frame_rotation_deg(alignment.rotation_deg),
            handedness=estimate.handedness,
        )
        log.debug(
            "ICP iteration",
            extra={
                "extra": {
                    "iteration": iterations,
                    "matched": len(matching),
                    "rotation_deg": alignment.rotation_deg,
                    "rms_m": alignment.rms_error(uav_points, takeoff_points),
                }
            },
        )
        previous = matching

    # Residual of the final matching under the final estimate
    final_frame = FlatEarthTransformer(estimate.origin, estimate.orientation_deg, estimate.handedness)
    uav_points, takeoff_points = matched_points(matching, final_frame.to_local_many(p.uav_positions), takeoffs)  # type: ignore[arg-type]
    rms = _rms_distance(uav_points, takeoff_points)
    shift = haversine_m(seed.origin[1], seed.origin[0], estimate.origin[1], estimate.origin[0])

    report = FitReport(
        estimate=estimate,
        initial=seed,
        matching=matching,
        iterations=iterations,
        status=status,
        rms_error_m=rms,
        origin_shift_m=shift,
        uav_ids=list(p.uav_ids),
    )

    if status == CONVERGED:
        log.info(
            "Show coordinate system fit converged",
            extra={"extra": {"iterations": iterations, "matched": len(matching), "rms_m": rms}},
        )
    else:
        log.warning(
            "Maximum iteration count reached in ICP algorithm",
            extra={"extra": {"iterations": iterations, "matched": len(matching), "rms_m": rms}},
        )
        warnings.warn(
            f"matching did not stabilize within {opts.max_iterations} iterations; the estimate may be approximate",
            NonConvergenceWarning,
            stacklevel=2,
        )
    return report


def run_autofit(
    problem: Union[FittingProblem, Mapping[str, Any]],
    options: Optional[FitOptions] = None,
) -> FitReport:
    """Seed and refine; returns the full diagnostic report."""
    opts = options or FitOptions()
    p = _prepare(problem)
    seed = calculate_initial_estimate(p, handedness=opts.handedness)
    log.debug(
        "Initial estimate",
        extra={"extra": {"uavs": p.num_uavs, "takeoffs": len(p.takeoff_positions), **seed.to_dict()}},
    )
    return refine_estimate(seed, p, opts)


def estimate_show_coordinate_system(
    problem: Union[FittingProblem, Mapping[str, Any]],
    options: Optional[Union[FitOptions, Mapping[str, Any]]] = None,
) -> CoordinateSystemEstimate:
    """
    Estimate the origin and orientation of the show coordinate system from the
    current UAV positions.

    Args:
        problem: FittingProblem (or its dict form). Never mutated.
        options: FitOptions or a mapping with any of threshold_m
            (thresholdMeters), max_iterations (maxIterations), algorithm,
            handedness (coordinateSystemType). Defaults: 3 m, 20, greedy, nwu.
            Unknown keys raise InputError.

    Returns:
        CoordinateSystemEstimate. When the iteration cap is hit, the last
        estimate is returned and a NonConvergenceWarning is issued.

    Raises:
        InputError, NoMatchError
    """
    if options is not None and not isinstance(options, FitOptions):
        options = FitOptions.from_mapping(options)
    return run_autofit(problem, options).estimate
