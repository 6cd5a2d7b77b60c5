"""
Data models for the simulator
"""

from enum import Enum
from typing import Any, Dict, Hashable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import ConfigurationError


DEFAULT_BATCH_SIZE = 10_000


class ErrorPolicy(str, Enum):
    """What a run does when a trial cannot be classified"""
    ABORT = "abort"
    SKIP_AND_CONTINUE = "skip-and-continue"


class SimulatorConfig(BaseModel):
    """Configuration for a simulation run"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    seed: Optional[int] = Field(default=None, ge=0, description="Seed; None uses OS entropy")
    error_policy: ErrorPolicy = Field(default=ErrorPolicy.ABORT)
    max_retries: Optional[int] = Field(
        default=None,
        ge=0,
        description="Failed trials tolerated under skip-and-continue (default: trial count)"
    )
    workers: int = Field(default=1, ge=1, le=256, description="Threads running trial batches")
    batch_size: Optional[int] = Field(
        default=None,
        ge=1,
        description="Trials per independent stream; setting it enables batched mode"
    )
    target_ci_width: Optional[float] = Field(
        default=None,
        gt=0,
        description="Stop early once the confidence interval is at most this wide"
    )
    target_label: Optional[Hashable] = Field(
        default=None,
        description="Label whose interval drives early stopping (default: widest)"
    )
    confidence_level: float = Field(default=0.95, gt=0, lt=1)
    max_seconds: Optional[float] = Field(default=None, gt=0, description="Wall-clock budget")
    check_interval: int = Field(default=1000, ge=1, description="Trials between early-stop checks")

    @property
    def batched(self) -> bool:
        return self.workers > 1 or self.batch_size is not None

    @property
    def early_stop_enabled(self) -> bool:
        return self.target_ci_width is not None or self.max_seconds is not None

    @classmethod
    def from_options(
        cls,
        options: Union["SimulatorConfig", Mapping[str, Any], None] = None,
        **overrides: Any
    ) -> "SimulatorConfig":
        """
        Build a config from a config object, a dict of options, or nothing

        Raises:
            ConfigurationError: On unrecognized options or invalid values
        """
        if options is None:
            data: Dict[str, Any] = {}
        elif isinstance(options, SimulatorConfig):
            data = options.model_dump()
        elif isinstance(options, Mapping):
            data = dict(options)
        else:
            raise ConfigurationError(
                f"Simulator options must be a SimulatorConfig or a mapping, "
                f"got {type(options).__name__}"
            )
        data.update(overrides)

        try:
            return cls(**data)
        except ValidationError as e:
            problems = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise ConfigurationError(
                f"Invalid simulator options: {'; '.join(problems)}",
                problems=problems
            ) from e


class ConfidenceInterval(BaseModel):
    """Symmetric normal-approximation interval around a probability estimate"""
    model_config = ConfigDict(frozen=True)

    label: Any = Field(default=None)
    estimate: float = Field(description="Point estimate count / total")
    lower: float = Field(description="estimate - half_width (not clipped to 0)")
    upper: float = Field(description="estimate + half_width (not clipped to 1)")
    confidence_level: float
    standard_error: float
    trials: int

    @property
    def half_width(self) -> float:
        return (self.upper - self.lower) / 2

    @property
    def width(self) -> float:
        return self.upper - self.lower

    def contains(self, value: float) -> bool:
        return self.lower <= value <= self.upper

    def to_dict(self) -> Dict[str, float]:
        return {
            "estimate": round(self.estimate, 6),
            "lower": round(self.lower, 6),
            "upper": round(self.upper, 6),
            "confidence_level": self.confidence_level,
            "standard_error": round(self.standard_error, 6),
        }
