"""
Bag - odds of picking things out of a population

Convenience layer over the simulator for the common "what are the odds of
pulling a green ball out of this bag" question. Items can be anything,
hashable or not: draws are made over item positions and the caller's
predicate sees the items themselves.
"""

import os
from typing import Any, Callable, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from loguru import logger

from ..exceptions import ConfigurationError, InvalidOutcomeSpace
from ..experiment.experiment import Experiment
from ..experiment.models import DrawSpec
from ..sampling.outcome_space import OutcomeSpace
from ..simulator.simulator import Simulator, validate_trial_count


T = TypeVar("T")

MAX_SIMS_ENV = "MENDEL_MAX_SIMS"
DEFAULT_MAX_SIMS = 100_000


def default_max_sims() -> int:
    """
    Trial count used by new bags

    Read from the MENDEL_MAX_SIMS environment variable, 100,000 when unset.

    Raises:
        ConfigurationError: If the variable is not a positive integer
    """
    raw = os.environ.get(MAX_SIMS_ENV)
    if raw is None or raw.strip() == "":
        return DEFAULT_MAX_SIMS
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{MAX_SIMS_ENV} must be an integer, got {raw!r}",
            variable=MAX_SIMS_ENV,
            value=raw
        ) from e
    if value <= 0:
        raise ConfigurationError(
            f"{MAX_SIMS_ENV} must be positive, got {value}",
            variable=MAX_SIMS_ENV,
            value=raw
        )
    return value


class Bag(Generic[T]):
    """
    A population of items with equal chances of being picked

    Example:
        >>> bag = Bag.from_range(1, 11)
        >>> odds_of_even = bag.one(lambda v: v % 2 == 0)
    """

    def __init__(self, items: Iterable[T], max_sims: Optional[int] = None):
        """
        Initialize Bag

        Args:
            items: Population members (duplicates count separately)
            max_sims: Trials per estimate (default from MENDEL_MAX_SIMS)

        Raises:
            InvalidOutcomeSpace: If the bag is empty
        """
        self.items: Tuple[T, ...] = tuple(items)
        if not self.items:
            raise InvalidOutcomeSpace("Bag must contain at least one item")

        self.max_sims = validate_trial_count(max_sims) if max_sims is not None else default_max_sims()
        self._space = OutcomeSpace.uniform(range(len(self.items)))

    @classmethod
    def from_range(cls, start: int, stop: int) -> "Bag[int]":
        """Bag holding the integers start..stop-1"""
        return cls(range(start, stop))

    @classmethod
    def from_items(cls, items: Sequence[T]) -> "Bag[T]":
        return cls(items)

    def set_max_sims(self, max_sims: int) -> None:
        """
        Raises:
            InvalidTrialCount: If max_sims is not a positive integer
        """
        self.max_sims = validate_trial_count(max_sims)

    def one(self, predicate: Callable[[T], bool], seed: Optional[int] = None) -> float:
        """
        Probability that a single random pick satisfies predicate

        Args:
            predicate: Test applied to the picked item
            seed: Seed for reproducibility
        """
        items = self.items

        def rule(drawn: Tuple[int, ...]) -> bool:
            return bool(predicate(items[drawn[0]]))

        return self._estimate(Experiment(self._space, rule), seed)

    def sample(
        self,
        sample_size: int,
        predicate: Callable[[List[T]], bool],
        seed: Optional[int] = None
    ) -> float:
        """
        Probability that sample_size picks without replacement satisfy predicate

        Args:
            sample_size: Number of items taken from the bag
            predicate: Test applied to the list of picked items, in pick order
            seed: Seed for reproducibility

        Raises:
            ConfigurationError: If sample_size is not in 1..len(bag)
        """
        items = self.items

        def rule(drawn: Tuple[int, ...]) -> bool:
            return bool(predicate([items[i] for i in drawn]))

        experiment = Experiment(
            DrawSpec(space=self._space, count=sample_size, replace=False),
            rule
        )
        return self._estimate(experiment, seed)

    def _estimate(self, experiment: Experiment, seed: Optional[int]) -> float:
        distribution = Simulator(seed=seed).run(experiment, self.max_sims)
        odds = distribution.probability_of(True)
        logger.debug(f"Bag of {len(self.items)}: odds={odds:.4f} over {distribution.total_trials():,} picks")
        return odds

    def __len__(self) -> int:
        return len(self.items)

    def __repr__(self) -> str:
        return f"Bag({len(self.items)} items, max_sims={self.max_sims})"
