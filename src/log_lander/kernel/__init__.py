from .context import Context, ContextFactory, CtxError
from .runner import Runner
from .scenario import Scenario, StepSpec
from .step import Step
from .step_registry import StepRegistry, UnknownStepError

# Kernel exports are minimal and runtime-focused.
__all__ = [
    "Context",
    "ContextFactory",
    "CtxError",
    "Runner",
    "Scenario",
    "Step",
    "StepRegistry",
    "StepSpec",
    "UnknownStepError",
]
