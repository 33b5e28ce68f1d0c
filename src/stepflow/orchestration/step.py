"""Step definitions and the groups they are scheduled in."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..config_exceptions import InvalidConfigurationException, require_not_none
from .keys import Key
from .step_options import StepOptions

if TYPE_CHECKING:
    from .execution_context import OrchestrationContext

StepBody = Callable[["OrchestrationContext"], Any]


@dataclass(frozen=True)
class StepDefinition:
    """A named unit of work.

    A step with a ``key`` produces a value that is stored in the context
    when the body returns. A step without a key produces nothing; whatever
    its body returns is discarded.
    """

    name: str
    body: StepBody
    key: Key[Any] | None = None
    options: StepOptions = field(default_factory=StepOptions.defaults)

    def __post_init__(self) -> None:
        require_not_none(self.name, "step.name")
        require_not_none(self.body, "step.body")
        require_not_none(self.options, "step.options")
        if not callable(self.body):
            raise InvalidConfigurationException("step.body", f"step '{self.name}' body is not callable")

    @property
    def produces_value(self) -> bool:
        return self.key is not None


@dataclass(frozen=True)
class StepGroup:
    """Steps scheduled together.

    A group with one step runs inline. A group with several steps runs them
    concurrently and completes when every member has completed.
    """

    steps: tuple[StepDefinition, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        if not self.steps:
            raise InvalidConfigurationException("step_group", "a step group cannot be empty")
        for step in self.steps:
            require_not_none(step, "step_group.steps")

    @classmethod
    def single(cls, step: StepDefinition) -> "StepGroup":
        return cls((step,))

    @classmethod
    def parallel(cls, steps: Iterable[StepDefinition]) -> "StepGroup":
        return cls(tuple(steps))

    @property
    def is_parallel(self) -> bool:
        return len(self.steps) > 1

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)
