from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple
import math

import numpy as np
from scipy.optimize import linear_sum_assignment

from common.geo import euclidean_distance_2d
from common.types import Matching


ASSIGNMENT_ALGORITHMS = ("greedy", "hungarian")


def distance_matrix(
    points_a: Sequence[Sequence[float]],
    points_b: Sequence[Sequence[float]],
    distance_fn: Callable[[Sequence[float], Sequence[float]], float] = euclidean_distance_2d,
) -> np.ndarray:
    """
    Pairwise distances: result[i, j] = distance_fn(points_a[i], points_b[j]).

    The default Euclidean case is vectorized; any other callable is evaluated
    pair by pair.
    """
    n, m = len(points_a), len(points_b)
    if n == 0 or m == 0:
        return np.zeros((n, m), dtype=float)
    if distance_fn is euclidean_distance_2d:
        a = np.asarray(points_a, dtype=float)[:, :2]
        b = np.asarray(points_b, dtype=float)[:, :2]
        diff = a[:, None, :] - b[None, :, :]
        return np.hypot(diff[..., 0], diff[..., 1])
    out = np.empty((n, m), dtype=float)
    for i, pa in enumerate(points_a):
        for j, pb in enumerate(points_b):
            out[i, j] = float(distance_fn(pa, pb))
    return out


def _effective_threshold(threshold: Optional[float]) -> float:
    # Missing, non-positive or NaN thresholds mean "no threshold"
    if threshold is None:
        return math.inf
    t = float(threshold)
    if math.isnan(t) or t <= 0:
        return math.inf
    return t


def _greedy(matrix: np.ndarray, threshold: float) -> Matching:
    """
    Repeatedly commit the smallest remaining entry <= threshold, then retire its
    row and column. Equal entries are taken in row-major encounter order.
    """
    rows, cols = np.nonzero(matrix <= threshold)  # NaN compares False
    if rows.size == 0:
        return []
    values = matrix[rows, cols]
    order = np.argsort(values, kind="stable")

    n_rows, n_cols = matrix.shape
    row_used = np.zeros(n_rows, dtype=bool)
    col_used = np.zeros(n_cols, dtype=bool)
    rows_left, cols_left = n_rows, n_cols
    result: Matching = []
    for k in order:
        r, c = int(rows[k]), int(cols[k])
        if row_used[r] or col_used[c]:
            continue
        result.append((r, c))
        row_used[r] = True
        col_used[c] = True
        rows_left -= 1
        cols_left -= 1
        if not rows_left or not cols_left:
            break
    return result


def _hungarian(matrix: np.ndarray, threshold: float) -> Matching:
    """
    Globally optimal assignment (minimum total distance). Entries above the
    threshold are priced out so the number of admissible pairs is maximized
    first; any pair that still lands above the threshold is dropped.
    """
    admissible = np.isfinite(matrix) & (matrix <= threshold)
    if not admissible.any():
        return []
    penalty = float(matrix[admissible].max()) * (min(matrix.shape) + 1) + 1.0
    cost = np.where(admissible, matrix, penalty)
    rows, cols = linear_sum_assignment(cost)
    return [(int(r), int(c)) for r, c in zip(rows, cols) if admissible[r, c]]


def find_assignment(
    matrix,
    algorithm: str = "greedy",
    threshold: Optional[float] = None,
) -> Matching:
    """
    Assign rows to columns of a distance matrix so that each row and each
    column is used at most once.

    Args:
        matrix: 2D array-like of distances (rows: UAVs, columns: takeoff positions).
        algorithm: "greedy" (smallest entries first; simple and intuitive, not
            globally optimal) or "hungarian" (minimum total distance).
        threshold: pairs farther apart than this are never assigned.

    Returns:
        List of (row, col) pairs. Empty when nothing is within the threshold;
        the caller decides whether that is a failure.
    """
    if algorithm not in ASSIGNMENT_ALGORITHMS:
        raise ValueError(f"unknown assignment algorithm: {algorithm!r}")
    m = np.asarray(matrix, dtype=float)
    if m.ndim != 2 or m.shape[0] == 0 or m.shape[1] == 0:
        return []
    t = _effective_threshold(threshold)
    if algorithm == "hungarian":
        return _hungarian(m, t)
    return _greedy(m, t)


def canonical_matching(matching: Sequence[Tuple[int, int]]) -> Matching:
    """Sort pairs by takeoff index so matchings from different iterations compare equal."""
    return sorted(((int(u), int(t)) for u, t in matching), key=lambda pair: (pair[1], pair[0]))


def is_valid_matching(matching: Sequence[Tuple[int, int]]) -> bool:
    """True when no UAV index and no takeoff index occurs twice."""
    uavs = [u for u, _ in matching]
    takeoffs = [t for _, t in matching]
    return len(set(uavs)) == len(uavs) and len(set(takeoffs)) == len(takeoffs)


def matched_points(
    matching: Sequence[Tuple[int, int]],
    uav_points: Sequence[Sequence[float]],
    takeoff_points: Sequence[Sequence[float]],
) -> Tuple[List[Tuple[float, float]], List[Tuple[float, float]]]:
    """Split a matching into index-aligned UAV and takeoff point lists."""
    a = [(float(uav_points[u][0]), float(uav_points[u][1])) for u, _ in matching]
    b = [(float(takeoff_points[t][0]), float(takeoff_points[t][1])) for _, t in matching]
    return a, b
