"""Engine-side driving of individual resources through the protocol."""

from tether.engine.models import RefreshResult, ResourceState, StepOp, StepResult
from tether.engine.stepper import ProviderClient, ReplacementError, ResourceStepper, connect

__all__ = [
    "ProviderClient",
    "RefreshResult",
    "ReplacementError",
    "ResourceState",
    "ResourceStepper",
    "StepOp",
    "StepResult",
    "connect",
]
