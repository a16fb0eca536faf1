"""Configuration for the adaptive ODE integrator.

This module provides the settings that control step-size selection, error
tolerances and the resource limits of a single integration run.

Typical usage example:

    from forest_tools.ode import IntegratorConfig

    config = IntegratorConfig(method="DOP853", rtol=1e-8, timeout=5.0)
    config = IntegratorConfig.from_dict({"rtol": 1e-8})
"""

from dataclasses import dataclass, asdict
from typing import Optional


@dataclass
class IntegratorConfig:
    """Settings for `forest_tools.ode.integrate`.

    Attributes:
        method (str): Embedded Runge-Kutta pair, one of 'RK23', 'RK45' or
            'DOP853'. Defaults to 'RK45'.
        rtol (float): Relative local error tolerance. Defaults to 1e-6.
        atol (float): Absolute local error tolerance. Defaults to 1e-9.
        max_step (float, optional): Largest step the controller may take.
            None means unbounded. Defaults to None.
        first_step (float, optional): Initial step size; None lets the
            solver choose. Defaults to None.
        min_step (float): A step smaller than this (other than the final
            step onto the last output time) fails the run with
            ConvergenceFailure. Defaults to 1e-10.
        max_evaluations (int): Budget of derivative evaluations per run.
            Defaults to 1,000,000.
        max_switches (int): Number of regime switches (threshold crossings)
            allowed per run before the run fails. Defaults to 100.
        timeout (float, optional): Wall-clock budget in seconds per run.
            None disables the check. Defaults to None.
    """

    method: str = "RK45"
    rtol: float = 1e-6
    atol: float = 1e-9
    max_step: Optional[float] = None
    first_step: Optional[float] = None
    min_step: float = 1e-10
    max_evaluations: int = 1_000_000
    max_switches: int = 100
    timeout: Optional[float] = None

    def validate(self):
        """Check the settings.

        Raises:
            ValueError: If a tolerance, step bound or budget is not positive,
                or the method is unknown.
        """
        if self.method not in ("RK23", "RK45", "DOP853"):
            raise ValueError(f"Unknown integration method: {self.method}")
        if self.rtol <= 0 or self.atol <= 0:
            raise ValueError("rtol and atol must be positive")
        if self.min_step <= 0:
            raise ValueError("min_step must be positive")
        if self.max_step is not None and self.max_step <= self.min_step:
            raise ValueError("max_step must be larger than min_step")
        if self.max_evaluations <= 0 or self.max_switches < 0:
            raise ValueError("Evaluation and switch budgets must be positive")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @classmethod
    def from_dict(cls, data: dict):
        return cls(**data)

    def to_dict(self) -> dict:
        return asdict(self)
