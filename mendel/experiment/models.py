"""
Data models for experiments
"""

import numbers
from typing import Any, Callable, Hashable, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..exceptions import ConfigurationError, EvaluationError
from ..sampling.outcome_space import OutcomeSpace


SpaceSelector = Callable[[Tuple[Hashable, ...]], OutcomeSpace]
EvaluationRule = Callable[[Tuple[Hashable, ...]], Optional[Hashable]]


class DrawSpec(BaseModel):
    """Which outcome space one stage of a trial draws from, and how often"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    space: Union[OutcomeSpace, Callable[..., Any]] = Field(
        ...,
        description="Outcome space, or a callable choosing one from the labels drawn so far"
    )
    count: int = Field(default=1, description="Number of draws from this space")
    replace: bool = Field(
        default=True,
        description="Independent draws (True) or draws without replacement (False)"
    )

    @field_validator("space", mode="before")
    @classmethod
    def _check_space(cls, value: Any) -> Any:
        if isinstance(value, OutcomeSpace) or callable(value):
            return value
        raise ConfigurationError(
            f"Draw space must be an OutcomeSpace or a callable, got {type(value).__name__}",
            space=repr(value)
        )

    @field_validator("count", mode="before")
    @classmethod
    def _check_count(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
            raise ConfigurationError(
                f"Draw count must be a positive integer, got {value!r}",
                count=value
            )
        return int(value)

    @property
    def is_dependent(self) -> bool:
        """True when the space is chosen from earlier draws"""
        return not isinstance(self.space, OutcomeSpace)

    def resolve(self, drawn: Tuple[Hashable, ...]) -> OutcomeSpace:
        """Outcome space to use given the labels drawn so far in this trial"""
        if isinstance(self.space, OutcomeSpace):
            return self.space
        space = self.space(drawn)
        if not isinstance(space, OutcomeSpace):
            raise ConfigurationError(
                f"Space selector returned {type(space).__name__}, expected OutcomeSpace",
                drawn=drawn
            )
        return space


class Trial(NamedTuple):
    """Result of one experiment execution: a compound label or the error that replaced it"""
    label: Optional[Hashable] = None
    error: Optional[EvaluationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
