"""
Step state machine for the booking configurator.

Sequences a DraftStore through an ordered list of steps. Moving forward is
gated on the rules of the step being left; moving back is never blocked.
Errors are kept per step so the UI can show them next to the fields.

Usage:
    flow = StepStateMachine(store)
    flow.next()              # stays on step 1 until a service is selected
    flow.errors_for(1)       # [StepError(field='service_id', ...)]
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum, IntEnum
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from photobook.config import PricingConfig, ValidationConfig, settings
from photobook.draft.store import DraftStore
from photobook.flow.validators import (
    RuleContext,
    StepRule,
    addon_rules,
    contact_rules,
    payment_rules,
    schedule_rules,
    service_rules,
)
from photobook.schemas.draft_schema import StepError

logger = logging.getLogger(__name__)


class BookingStep(IntEnum):
    """Steps of the default five-step flow."""
    SERVICE = 1
    ADDONS = 2
    SCHEDULE = 3
    CONTACT = 4
    PAYMENT = 5


class StepTrigger(str, Enum):
    """What moved the flow to a step."""
    START = "start"
    NEXT = "next"
    PREV = "prev"
    GO_TO = "go_to"
    RESET = "reset"


@dataclass(frozen=True)
class StepDefinition:
    """A step number, its title, and the rules that gate leaving it forward."""
    number: int
    title: str
    rules: tuple[StepRule, ...] = ()


@dataclass
class StepEntry:
    """Recorded history entry for a step visit."""
    step: int
    entered_at: datetime
    trigger: StepTrigger


class InvalidStepError(Exception):
    """Raised when a step number outside the flow is requested."""


DEFAULT_STEPS: tuple[StepDefinition, ...] = (
    StepDefinition(BookingStep.SERVICE, "Service", (service_rules,)),
    StepDefinition(BookingStep.ADDONS, "Add-ons", (addon_rules,)),
    StepDefinition(BookingStep.SCHEDULE, "Schedule", (schedule_rules,)),
    StepDefinition(BookingStep.CONTACT, "Contact", (contact_rules,)),
    StepDefinition(BookingStep.PAYMENT, "Payment", (payment_rules,)),
)


def single_step() -> tuple[StepDefinition, ...]:
    """One page carrying every rule: the single-form rendering of the same flow."""
    rules = tuple(rule for step in DEFAULT_STEPS for rule in step.rules)
    return (StepDefinition(1, "Booking", rules),)


def _today_in(tz_name: str) -> date:
    return datetime.now(ZoneInfo(tz_name)).date()


class StepStateMachine:
    """
    Gated forward / free backward navigation over a fixed list of steps.

    Reaching the last step and passing its rules is the terminal condition
    that enables submission; there is no step beyond the last.
    """

    def __init__(
        self,
        store: DraftStore,
        steps: tuple[StepDefinition, ...] = DEFAULT_STEPS,
        clock: Optional[Callable[[], date]] = None,
        limits: ValidationConfig = settings.validation,
        pricing: PricingConfig = settings.pricing,
    ) -> None:
        if not steps:
            raise ValueError("A flow needs at least one step")
        numbers = [s.number for s in steps]
        if numbers != list(range(1, len(steps) + 1)):
            raise ValueError(f"Steps must be numbered 1..{len(steps)} in order, got {numbers}")

        self._store = store
        self._steps = {s.number: s for s in steps}
        self._clock = clock or (lambda: _today_in(settings.timezone))
        self._limits = limits
        self._pricing = pricing
        self._current_step = 1
        self._errors: dict[int, list[StepError]] = {}
        self._history: list[StepEntry] = [self._entry(1, StepTrigger.START)]

    @property
    def current_step(self) -> int:
        return self._current_step

    @property
    def total_steps(self) -> int:
        return len(self._steps)

    @property
    def current_definition(self) -> StepDefinition:
        return self._steps[self._current_step]

    @property
    def errors(self) -> dict[int, list[StepError]]:
        return {step: list(errs) for step, errs in self._errors.items()}

    def errors_for(self, step: int) -> list[StepError]:
        return list(self._errors.get(step, []))

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def validate_step(self, step: int) -> bool:
        """Run the rules of ``step`` against the current draft and record its errors."""
        definition = self._get_definition(step)
        draft = self._store.draft
        ctx = RuleContext(today=self._clock(), limits=self._limits, pricing=self._pricing)
        errors = [err for rule in definition.rules for err in rule(draft, ctx)]
        self._errors[step] = errors
        if errors:
            logger.debug(
                "Step %d invalid: %s", step, ", ".join(e.field for e in errors)
            )
        return not errors

    def set_field_error(self, field: str, message: str, step: Optional[int] = None) -> None:
        """Record an error raised outside the rule set, e.g. a rejected upload."""
        target = step or self._current_step
        kept = [e for e in self._errors.get(target, []) if e.field != field]
        self._errors[target] = kept + [StepError(field=field, message=message)]

    def clear_field_error(self, field: str, step: Optional[int] = None) -> None:
        target = step or self._current_step
        self._errors[target] = [e for e in self._errors.get(target, []) if e.field != field]

    def is_last_step(self) -> bool:
        return self._current_step == self.total_steps

    def is_complete(self) -> bool:
        """True when the flow sits on its last step and that step validates."""
        return self.is_last_step() and self.validate_step(self.total_steps)

    # ------------------------------------------------------------------ #
    # Navigation
    # ------------------------------------------------------------------ #

    def next(self) -> int:
        """Advance one step if the current step validates. Never moves past the last step."""
        if not self.validate_step(self._current_step):
            return self._current_step
        if self._current_step < self.total_steps:
            self._move_to(self._current_step + 1, StepTrigger.NEXT)
        return self._current_step

    def prev(self) -> int:
        """Go back one step. Always allowed, no validation."""
        if self._current_step > 1:
            self._move_to(self._current_step - 1, StepTrigger.PREV)
        return self._current_step

    def go_to(self, step: int) -> int:
        """
        Jump to ``step``.

        Backward jumps are never blocked. Forward jumps validate every step
        being skipped, in order, and stop on the first one that fails.

        Raises:
            InvalidStepError: If ``step`` is outside the flow.
        """
        self._get_definition(step)
        if step <= self._current_step:
            if step != self._current_step:
                self._move_to(step, StepTrigger.GO_TO)
            return self._current_step

        target = step
        for intermediate in range(self._current_step, step):
            if not self.validate_step(intermediate):
                target = intermediate
                break
        if target != self._current_step:
            self._move_to(target, StepTrigger.GO_TO)
        return self._current_step

    def reset(self) -> None:
        self._errors.clear()
        self._move_to(1, StepTrigger.RESET)

    def get_history(self) -> list[StepEntry]:
        return list(self._history)

    def get_step_trace(self) -> list[int]:
        """Return the ordered list of steps visited."""
        return [entry.step for entry in self._history]

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _get_definition(self, step: int) -> StepDefinition:
        try:
            return self._steps[step]
        except KeyError:
            raise InvalidStepError(
                f"Step {step} does not exist. Valid steps: 1..{self.total_steps}"
            ) from None

    def _move_to(self, step: int, trigger: StepTrigger) -> None:
        old = self._current_step
        self._current_step = step
        self._history.append(self._entry(step, trigger))
        logger.debug("Step transition: %d -> %d (trigger: %s)", old, step, trigger.value)

    @staticmethod
    def _entry(step: int, trigger: StepTrigger) -> StepEntry:
        return StepEntry(step=step, entered_at=datetime.now(timezone.utc), trigger=trigger)
