"""
Exception types for pore path finding.

Two classes of failure:
- ConfigurationError: invalid parameters, raised before any optimization starts
- DegenerateResultError: a frame produced no usable path; callers skip the
  frame and carry on with the trajectory

Non-convergence of the optimizer is not an error (see OptimizationStatus).
"""


class PorePathError(Exception):
    """Base class for all porepath errors."""


class ConfigurationError(PorePathError, ValueError):
    """Invalid configuration value. Fatal, never retried."""


class DegenerateResultError(PorePathError):
    """
    Path finding produced a result that cannot define a pore.

    Raised for single-point paths, an empty neighbourhood around the initial
    probe position, or support points that do not advance along the path.
    """
