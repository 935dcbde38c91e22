"""
Exceptions raised by the Flow-Lenia core.

Numerical trouble inside a step is contained silently (clamping, wrapping).
Only configuration mistakes and a broken conservation law surface here.
"""


class FlowLeniaError(Exception):
    """Base class for all flowlenia errors."""


class ConfigurationError(FlowLeniaError, ValueError):
    """Invalid grid size, radius or parameter combination."""


class KernelError(ConfigurationError):
    """Unknown kernel type or unusable kernel parameters."""


class MassConservationError(FlowLeniaError):
    """
    Transport + diffusion changed the total mass beyond tolerance.

    Attributes:
        before: Total mass before transport
        after: Total mass after diffusion
        drift: Relative drift |after - before| / before
    """

    def __init__(self, before: float, after: float, drift: float, step: int = 0):
        self.before = before
        self.after = after
        self.drift = drift
        self.step = step
        super().__init__(
            f"mass drift {drift:.4%} at step {step} "
            f"({before:.6f} -> {after:.6f})"
        )
