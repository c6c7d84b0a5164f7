"""
Failure taxonomy of the show coordinate system fit.

Every failure is local to one call; nothing here carries retry state.
"""


class AutoFitError(Exception):
    """Base class of fatal fitting failures."""

    kind = "autofit_error"


class InputError(AutoFitError, ValueError):
    """The problem cannot be fitted as given (no UAV fixes, no takeoff positions, bad options)."""

    kind = "input_error"


class NoMatchError(AutoFitError):
    """No UAV is within the distance threshold of any takeoff position (correspondence failure)."""

    kind = "no_match"


class NonConvergenceWarning(UserWarning):
    """The iteration cap was reached before the matching stabilized; the estimate may be approximate."""
