"""
Show coordinate system auto-fit

This package provides:
- Distance matrix and threshold-bounded assignment (greedy or Hungarian)
- 2D rigid alignment of matched point pairs (Procrustes via SVD)
- An ICP driver that estimates the geographic origin and orientation of a
  show's local frame from live UAV positions and planned takeoff positions
- Adapters that build a fitting problem from UAV records / show trajectories
  and write the estimate back into the show environment

Entry point:
    python -m autofit.pipeline --problem problem.json --config config/params.yaml
"""
from .errors import AutoFitError, InputError, NoMatchError, NonConvergenceWarning
from .estimate import FitOptions, calculate_initial_estimate, estimate_show_coordinate_system, refine_estimate, run_autofit

__all__ = [
    "AutoFitError",
    "InputError",
    "NoMatchError",
    "NonConvergenceWarning",
    "FitOptions",
    "calculate_initial_estimate",
    "estimate_show_coordinate_system",
    "refine_estimate",
    "run_autofit",
]
