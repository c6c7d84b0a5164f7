"""
Adapters between application-level records and the fitting engine.

- build_fitting_problem(): live UAV records + show trajectories -> FittingProblem
- apply_estimate(): CoordinateSystemEstimate -> updated show environment mapping
"""
from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from common.types import CoordinateSystemEstimate, FittingProblem, XY
from common.utils import wrap_deg


def is_valid_trajectory(trajectory: Any) -> bool:
    if not isinstance(trajectory, Mapping):
        return False
    points = trajectory.get("points")
    return isinstance(points, Sequence) and len(points) > 0


def first_points_of_trajectories(trajectories: Sequence[Any]) -> List[XY]:
    """
    (x, y) of the first point of every valid trajectory.

    Trajectory points are [t, [x, y, z], control_points]; trajectories without
    points are skipped.
    """
    out: List[XY] = []
    for trajectory in trajectories or []:
        if not is_valid_trajectory(trajectory):
            continue
        first = trajectory["points"][0]
        coords = first[1] if len(first) > 1 else None
        if coords is None or len(coords) < 2:
            continue
        out.append((float(coords[0]), float(coords[1])))
    return out


def _position_of(uav: Mapping[str, Any]) -> Optional[Tuple[float, float]]:
    pos = uav.get("position")
    if pos is None:
        return None
    if isinstance(pos, Mapping):
        lon, lat = pos.get("lon"), pos.get("lat")
        if lon is None or lat is None:
            return None
        return (float(lon), float(lat))
    return (float(pos[0]), float(pos[1]))


def _relative_heading_delta(takeoff_heading: Optional[Mapping[str, Any]]) -> Optional[float]:
    if not takeoff_heading or takeoff_heading.get("type") != "relative":
        return None
    try:
        return float(takeoff_heading.get("value", 0))
    except (TypeError, ValueError):
        return None


def build_fitting_problem(
    uavs: Sequence[Mapping[str, Any]],
    trajectories: Sequence[Any],
    takeoff_heading: Optional[Mapping[str, Any]] = None,
) -> FittingProblem:
    """
    Collect the fitting problem from live UAV records and the planned show.

    Args:
        uavs: records like {"id": "01", "position": {"lon": .., "lat": ..} | None,
            "heading": deg | None}. UAVs without a position (no GPS fix yet)
            are dropped together with their id and heading.
        trajectories: show trajectories; their first points are the takeoff positions.
        takeoff_heading: takeoff heading specification of the show. With
            {"type": "relative", "value": delta} the UAV headings are offset
            from the show X axis by delta, so delta is subtracted from them.
    """
    ids: List[str] = []
    positions: List[Tuple[float, float]] = []
    headings: List[Optional[float]] = []
    for uav in uavs:
        pos = _position_of(uav)
        if pos is None:
            continue
        ids.append(str(uav.get("id", len(ids))))
        positions.append(pos)
        heading = uav.get("heading")
        headings.append(None if heading is None else float(heading))

    delta = _relative_heading_delta(takeoff_heading)
    if delta is not None:
        headings = [None if h is None else (h - delta) % 360.0 for h in headings]

    return FittingProblem(
        uav_ids=ids,
        uav_positions=list(positions),
        uav_headings=headings,
        takeoff_positions=first_points_of_trajectories(trajectories),
    )


def can_estimate(environment: Mapping[str, Any], uavs: Sequence[Any], num_drones_in_show: int) -> bool:
    """Outdoor show, at least one UAV around and at least one drone in the show."""
    return environment.get("type", "outdoor") == "outdoor" and len(uavs) > 0 and num_drones_in_show > 0


def apply_estimate(environment: Mapping[str, Any], estimate: CoordinateSystemEstimate) -> Dict[str, Any]:
    """
    New show environment mapping with the estimate written into
    outdoor.coordinateSystem; the input mapping is left untouched.

    The orientation is stored as a string to avoid rounding drift on round trips.
    """
    env: Dict[str, Any] = copy.deepcopy(dict(environment))
    outdoor = env.setdefault("outdoor", {})
    outdoor["coordinateSystem"] = {
        "origin": [estimate.origin[0], estimate.origin[1]],
        "orientation": f"{wrap_deg(estimate.orientation_deg):.6f}",
        "type": estimate.handedness,
    }
    return env
