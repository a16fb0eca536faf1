"""
# Errors

Exception hierarchy shared by the growth model, the integrator and the
sensitivity analysis.

## Classes

- `ForestModelError`: Base class for every error raised by forest_tools
- `InvalidParameter`: A parameter set the growth model cannot evaluate
- `NumericalInstability`: Non-finite derivative or state during integration
- `ConvergenceFailure`: Step size underflow or exhausted evaluation budget
- `EmptyTrajectory`: Metric extraction on a trajectory with no points
- `DesignMismatch`: Parameter column identity lost between sampling and analysis

Errors raised while evaluating a single design row are caught by
`Model.evaluate_row` and recorded; `DesignMismatch` is always fatal.
"""


class ForestModelError(Exception):
    """Base class for forest_tools errors."""


class InvalidParameter(ForestModelError, ValueError):
    """Raised when a parameter set has non-positive or non-finite values
    where the model requires a positive finite value (K, canopy_threshold)."""


class NumericalInstability(ForestModelError):
    """
    Raised when the derivative or the state becomes non-finite.

    Attributes:
        time (float): Last time at which the state was still finite.
        state (float): Last finite state value.
    """
    def __init__(self, message: str, time: float, state: float):
        super().__init__(f"{message} (last valid time={time}, state={state})")
        self.time = time
        self.state = state


class ConvergenceFailure(ForestModelError):
    """Raised when the integrator cannot make progress: step size below the
    configured minimum, derivative evaluation budget or timeout exceeded,
    or too many regime switches."""


class EmptyTrajectory(ForestModelError):
    """Raised when metrics are requested for a trajectory with no points."""


class DesignMismatch(ForestModelError, ValueError):
    """Raised when sample matrices or the Sobol design lose their parameter
    labels, ordering, or shape agreement."""
