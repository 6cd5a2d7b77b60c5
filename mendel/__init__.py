"""
mendel

Predicts the odds of population selections, such as drawing a green ball
out of a bag of colored balls or the genotype of an offspring, by running
many randomized trials and tallying the results rather than by deriving
closed-form probabilities.
"""

from loguru import logger

from .exceptions import (
    MendelError,
    InvalidOutcomeSpace,
    InvalidTrialCount,
    EvaluationError,
    ExhaustedRetries,
    ConfigurationError,
)
from .sampling import RandomSource, OutcomeSpace, Outcome
from .experiment import Experiment, DrawSpec, Trial, rules
from .simulator import (
    Simulator,
    simulate,
    EmpiricalDistribution,
    SimulatorConfig,
    ErrorPolicy,
    ConfidenceInterval,
)
from .bag import Bag

__version__ = "0.1.0"

# Library code stays silent unless the host application opts in
logger.disable("mendel")

__all__ = [
    # Errors
    "MendelError",
    "InvalidOutcomeSpace",
    "InvalidTrialCount",
    "EvaluationError",
    "ExhaustedRetries",
    "ConfigurationError",
    # Sampling
    "RandomSource",
    "OutcomeSpace",
    "Outcome",
    # Experiments
    "Experiment",
    "DrawSpec",
    "Trial",
    "rules",
    # Simulation
    "Simulator",
    "simulate",
    "EmpiricalDistribution",
    "SimulatorConfig",
    "ErrorPolicy",
    "ConfidenceInterval",
    # Populations
    "Bag",
]
