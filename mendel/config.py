"""
YAML experiment files

An experiment file names its outcome spaces, the draws made per trial, the
built-in evaluation rule that classifies them, and simulator options::

    spaces:
      mother: {A: 1, a: 1}
      father: {A: 1, a: 1}
    draws:
      - space: mother
      - space: father
    rule: genotype
    trials: 10000
    simulation:
      seed: 42
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigurationError
from .experiment.experiment import Experiment
from .experiment.models import DrawSpec
from .experiment.rules import rule_from_name
from .sampling.outcome_space import OutcomeSpace
from .simulator.models import SimulatorConfig


class DrawEntry(BaseModel):
    """One draw stage of an experiment file"""
    model_config = ConfigDict(extra="forbid")

    space: str = Field(..., description="Name of a space declared under 'spaces'")
    count: int = Field(default=1, ge=1)
    replace: bool = Field(default=True)


class RuleEntry(BaseModel):
    """Built-in evaluation rule plus its parameters"""
    model_config = ConfigDict(extra="allow")

    name: str

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class ExperimentFile(BaseModel):
    """Validated contents of an experiment file"""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    description: Optional[str] = None
    spaces: Dict[str, Union[Dict[Any, Any], List[Any]]] = Field(
        ...,
        description="Space name -> {label: weight} or a list of equally likely labels"
    )
    draws: List[DrawEntry] = Field(..., min_length=1)
    rule: Union[str, RuleEntry] = Field(default="identity")
    trials: Optional[int] = Field(default=None, description="Trial count (default: MENDEL_MAX_SIMS)")
    simulation: Dict[str, Any] = Field(default_factory=dict)
    expected: Optional[Dict[Any, float]] = Field(
        default=None,
        description="Known probabilities to compare against in reports"
    )

    @property
    def rule_entry(self) -> RuleEntry:
        if isinstance(self.rule, str):
            return RuleEntry(name=self.rule)
        return self.rule


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a YAML file, returning an empty dict when it does not exist"""
    if not os.path.exists(path):
        logger.warning(f"Config file not found: {path}, using defaults")
        return {}

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}",
            path=str(path)
        )

    logger.info(f"Loaded configuration from {path}")
    return data


def parse_experiment_file(data: Dict[str, Any]) -> ExperimentFile:
    """
    Raises:
        ConfigurationError: If the data does not describe a valid experiment
    """
    try:
        return ExperimentFile(**data)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigurationError(
            f"Invalid experiment file: {'; '.join(problems)}",
            problems=problems
        ) from e


def build_spaces(spec: ExperimentFile) -> Dict[str, OutcomeSpace]:
    spaces = {}
    for name, outcomes in spec.spaces.items():
        if isinstance(outcomes, list):
            spaces[name] = OutcomeSpace.uniform(outcomes)
        else:
            spaces[name] = OutcomeSpace(outcomes)
    return spaces


def build_experiment(spec: ExperimentFile) -> Experiment:
    """
    Turn a parsed experiment file into an Experiment

    Raises:
        InvalidOutcomeSpace: If a declared space is invalid
        ConfigurationError: On unknown space or rule names
    """
    spaces = build_spaces(spec)

    draws = []
    for entry in spec.draws:
        if entry.space not in spaces:
            raise ConfigurationError(
                f"Draw references unknown space '{entry.space}'",
                space=entry.space,
                available=sorted(spaces)
            )
        draws.append(DrawSpec(space=spaces[entry.space], count=entry.count, replace=entry.replace))

    rule_entry = spec.rule_entry
    params = rule_entry.params
    if rule_entry.name == "labelled" and isinstance(params.get("mapping"), dict):
        # YAML keys are strings: "A,a" stands for the draw tuple ("A", "a")
        params["mapping"] = {
            tuple(part.strip() for part in str(key).split(",")): value
            for key, value in params["mapping"].items()
        }

    return Experiment(draws, rule_from_name(rule_entry.name, **params))


def simulator_config(spec: ExperimentFile, **overrides: Any) -> SimulatorConfig:
    """Simulator options from the file, with command-line overrides applied"""
    options = dict(spec.simulation)
    options.update({k: v for k, v in overrides.items() if v is not None})
    return SimulatorConfig.from_options(options)


def load_experiment(path: Union[str, Path]) -> ExperimentFile:
    """Load and validate an experiment file"""
    return parse_experiment_file(load_yaml(path))
