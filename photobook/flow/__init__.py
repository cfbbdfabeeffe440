from photobook.flow.state_machine import (
    DEFAULT_STEPS,
    BookingStep,
    InvalidStepError,
    StepDefinition,
    StepStateMachine,
    single_step,
)

__all__ = [
    "DEFAULT_STEPS",
    "BookingStep",
    "InvalidStepError",
    "StepDefinition",
    "StepStateMachine",
    "single_step",
]
