from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Tuple
import math

import numpy as np


@dataclass(frozen=True, slots=True)
class RigidAlignment:
    """
    Least-squares rigid transform a ≈ R @ b + t between matched 2D point lists.

    Attributes:
        rotation: 2x2 matrix R = U @ Vt mapping centered B onto centered A.
        rotation_deg: atan2(R[0][1], R[0][0]) in degrees.
        translation: t = centroid(A) - R @ centroid(B), i.e. where the origin
            of the B frame lands in the A frame.
        centroid_a, centroid_b: arithmetic means of the two lists.
        singular_values: singular values of the cross-covariance, larger first.
    """
    rotation: np.ndarray = field(repr=False)
    rotation_deg: float
    translation: Tuple[float, float]
    centroid_a: Tuple[float, float]
    centroid_b: Tuple[float, float]
    singular_values: Tuple[float, float]

    @property
    def is_reflection(self) -> bool:
        """det(R) < 0; reported, never corrected."""
        return bool(np.linalg.det(self.rotation) < 0)

    @property
    def centroid_offset(self) -> Tuple[float, float]:
        """Plain translation centroid(A) - centroid(B), ignoring the rotation."""
        return (self.centroid_a[0] - self.centroid_b[0], self.centroid_a[1] - self.centroid_b[1])

    def apply(self, points_b: Sequence[Sequence[float]]) -> np.ndarray:
        b = np.asarray(points_b, dtype=float).reshape(-1, 2)
        return b @ self.rotation.T + np.asarray(self.translation, dtype=float)

    def rms_error(self, points_a: Sequence[Sequence[float]], points_b: Sequence[Sequence[float]]) -> float:
        a = np.asarray(points_a, dtype=float).reshape(-1, 2)
        if a.shape[0] == 0:
            return 0.0
        res = a - self.apply(points_b)
        return float(np.sqrt(np.mean(np.sum(res ** 2, axis=1))))


def cross_covariance(centered_a: np.ndarray, centered_b: np.ndarray) -> np.ndarray:
    """M[r][c] = sum_i a_i[r] * b_i[c]."""
    return centered_a.T @ centered_b


def align_rigid(points_a: Sequence[Sequence[float]], points_b: Sequence[Sequence[float]]) -> RigidAlignment:
    """
    2D Procrustes step: optimal rotation and translation superimposing B on A.

    Well defined (if degenerate) for two pairs; a single pair yields the
    identity rotation. Reflections are not corrected: when the point sets
    are mirrored, the returned matrix has det(R) < 0 and
    RigidAlignment.is_reflection says so.

    Raises:
        ValueError: empty input or lists of different length.
    """
    a = np.asarray(points_a, dtype=float).reshape(-1, 2)
    b = np.asarray(points_b, dtype=float).reshape(-1, 2)
    if a.shape[0] == 0:
        raise ValueError("rigid alignment needs at least one matched pair")
    if a.shape != b.shape:
        raise ValueError("point lists must have equal length")

    ca = a.mean(axis=0)
    cb = b.mean(axis=0)
    M = cross_covariance(a - ca, b - cb)

    U, S, Vt = np.linalg.svd(M)
    # Larger singular value first, whatever order the SVD returned
    order = np.argsort(S)[::-1]
    U = U[:, order]
    Vt = Vt[order, :]
    S = S[order]

    R = U @ Vt if np.any(M) else np.eye(2)
    rotation_deg = math.degrees(math.atan2(R[0, 1], R[0, 0]))
    t = ca - R @ cb

    return RigidAlignment(
        rotation=R,
        rotation_deg=float(rotation_deg),
        translation=(float(t[0]), float(t[1])),
        centroid_a=(float(ca[0]), float(ca[1])),
        centroid_b=(float(cb[0]), float(cb[1])),
        singular_values=(float(S[0]), float(S[1])),
    )
