from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Any, Dict, List, Sequence
import math


LonLat = Tuple[float, float]
XY = Tuple[float, float]
Matching = List[Tuple[int, int]]


def _as_pair(p: Sequence[float]) -> Tuple[float, float]:
    return (float(p[0]), float(p[1]))


def _opt_pair(p: Optional[Sequence[float]]) -> Optional[Tuple[float, float]]:
    return None if p is None else _as_pair(p)


def _opt_float(x: Optional[float]) -> Optional[float]:
    return None if x is None else float(x)


@dataclass(slots=True)
class FittingProblem:
    """
    Input of the show coordinate system fit.

    Attributes:
        uav_ids: identifiers of the UAVs, index-aligned with the two lists below.
        uav_positions: (lon, lat) degrees per UAV; None when the UAV has no GPS fix.
        uav_headings: compass heading (deg) per UAV; None for compass-less UAVs.
        takeoff_positions: planned (x, y) takeoff positions in the show frame (m).
            Its length is independent of the number of UAVs.
    """
    uav_ids: List[str]
    uav_positions: List[Optional[LonLat]]
    uav_headings: List[Optional[float]]
    takeoff_positions: List[XY]

    def __post_init__(self) -> None:
        self.uav_ids = [str(x) for x in self.uav_ids]
        self.uav_positions = [_opt_pair(p) for p in self.uav_positions]
        self.uav_headings = [_opt_float(h) for h in self.uav_headings]
        self.takeoff_positions = [_as_pair(p) for p in self.takeoff_positions]
        n = len(self.uav_ids)
        if len(self.uav_positions) != n or len(self.uav_headings) != n:
            raise ValueError("uav_ids, uav_positions and uav_headings must have equal length")

    @property
    def num_uavs(self) -> int:
        return len(self.uav_ids)

    def with_fixes_only(self) -> "FittingProblem":
        """New problem without the UAVs lacking a GPS fix (ids and headings dropped alongside)."""
        keep = [i for i, p in enumerate(self.uav_positions) if p is not None]
        return FittingProblem(
            uav_ids=[self.uav_ids[i] for i in keep],
            uav_positions=[self.uav_positions[i] for i in keep],
            uav_headings=[self.uav_headings[i] for i in keep],
            takeoff_positions=list(self.takeoff_positions),
        )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FittingProblem":
        positions = d.get("uav_positions") or []
        ids = d.get("uav_ids")
        if ids is None:
            ids = [str(i) for i in range(len(positions))]
        headings = d.get("uav_headings")
        if headings is None:
            headings = [None] * len(positions)
        return cls(
            uav_ids=list(ids),
            uav_positions=list(positions),
            uav_headings=list(headings),
            takeoff_positions=list(d.get("takeoff_positions") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uav_ids": list(self.uav_ids),
            "uav_positions": [None if p is None else list(p) for p in self.uav_positions],
            "uav_headings": list(self.uav_headings),
            "takeoff_positions": [list(p) for p in self.takeoff_positions],
        }


@dataclass(frozen=True, slots=True)
class CoordinateSystemEstimate:
    """
    Geographic placement of the show coordinate system.

    Attributes:
        origin: (lon, lat) degrees of the show-frame origin.
        orientation_deg: heading of the show X axis, clockwise from north.
        handedness: "neu" or "nwu".
    """
    origin: LonLat
    orientation_deg: float
    handedness: str = "nwu"

    def __post_init__(self) -> None:
        lon, lat = float(self.origin[0]), float(self.origin[1])
        if not (-90.0 <= lat <= 90.0) or not math.isfinite(lon):
            raise ValueError("origin lat/lon out of range")
        if not math.isfinite(self.orientation_deg):
            raise ValueError("orientation must be finite")
        object.__setattr__(self, "origin", (lon, lat))
        object.__setattr__(self, "orientation_deg", float(self.orientation_deg))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": list(self.origin),
            "orientation_deg": self.orientation_deg,
            "handedness": self.handedness,
        }


@dataclass(slots=True)
class FitReport:
    """
    Outcome of one fitting run, with diagnostics for logs and the CLI.

    Attributes:
        estimate: final coordinate system estimate.
        initial: seed estimate the refinement started from.
        matching: canonical (uav_index, takeoff_index) pairs of the last iteration.
        iterations: number of refinement iterations executed.
        status: "converged" or "non_converged".
        rms_error_m: RMS distance of the matched pairs after the last alignment.
        origin_shift_m: distance between the seed origin and the final origin.
    """
    estimate: CoordinateSystemEstimate
    initial: CoordinateSystemEstimate
    matching: Matching
    iterations: int
    status: str
    rms_error_m: float
    origin_shift_m: float = 0.0
    uav_ids: List[str] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.status == "converged"

    def to_dict(self) -> Dict[str, Any]:
        pairs = []
        for uav_index, takeoff_index in self.matching:
            item: Dict[str, Any] = {"uav_index": uav_index, "takeoff_index": takeoff_index}
            if uav_index < len(self.uav_ids):
                item["uav_id"] = self.uav_ids[uav_index]
            pairs.append(item)
        return {
            "status": self.status,
            "iterations": self.iterations,
            "estimate": self.estimate.to_dict(),
            "initial": self.initial.to_dict(),
            "matching": pairs,
            "rms_error_m": self.rms_error_m,
            "origin_shift_m": self.origin_shift_m,
        }
