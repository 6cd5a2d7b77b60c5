"""
Outcome Space - immutable weighted set of outcomes
"""

import math
import numbers
from bisect import bisect_right
from itertools import accumulate
from typing import Hashable, Iterable, Iterator, List, Mapping, Tuple, Union

import numpy as np

from ..exceptions import ConfigurationError, InvalidOutcomeSpace
from .models import Outcome
from .random_source import RandomSource


OutcomePairs = Union[Mapping[Hashable, float], Iterable[Tuple[Hashable, float]]]


class OutcomeSpace:
    """
    Weighted, finite, ordered set of outcomes

    Draws select a label with probability weight / total weight. Cumulative
    weight boundaries are computed once at construction, and each draw is a
    binary search over them (O(log k) for k outcomes). Instances are
    immutable: build a new space instead of editing one.
    """

    __slots__ = ("_outcomes", "_index", "_cumulative", "_total")

    def __init__(self, outcomes: OutcomePairs):
        """
        Initialize Outcome Space

        Args:
            outcomes: Mapping of label -> weight, or a sequence of
                      (label, weight) pairs. Order is preserved.

        Raises:
            InvalidOutcomeSpace: If empty, if any weight is not a finite
                                 number > 0, if labels are repeated, or
                                 if the total weight overflows
        """
        if isinstance(outcomes, Mapping):
            pairs = list(outcomes.items())
        else:
            try:
                pairs = [tuple(pair) for pair in outcomes]
            except TypeError as e:
                raise InvalidOutcomeSpace(
                    "Outcomes must be a mapping or a sequence of (label, weight) pairs"
                ) from e

        if not pairs:
            raise InvalidOutcomeSpace("Outcome space must not be empty")

        built: List[Outcome] = []
        index = {}
        for pair in pairs:
            if len(pair) != 2:
                raise InvalidOutcomeSpace(
                    f"Expected a (label, weight) pair, got {pair!r}",
                    entry=pair
                )
            label, weight = pair

            try:
                hash(label)
            except TypeError as e:
                raise InvalidOutcomeSpace(
                    f"Outcome label {label!r} is not hashable",
                    label=repr(label)
                ) from e

            if isinstance(weight, bool) or not isinstance(weight, numbers.Real):
                raise InvalidOutcomeSpace(
                    f"Weight for {label!r} must be a real number, got {weight!r}",
                    label=label,
                    weight=weight
                )
            if not math.isfinite(weight) or weight <= 0:
                raise InvalidOutcomeSpace(
                    f"Weight for {label!r} must be finite and > 0, got {weight!r}",
                    label=label,
                    weight=weight
                )
            if label in index:
                raise InvalidOutcomeSpace(
                    f"Duplicate outcome label {label!r}",
                    label=label
                )

            index[label] = len(built)
            built.append(Outcome(label=label, weight=float(weight)))

        with np.errstate(over="ignore"):
            cumulative = np.cumsum([o.weight for o in built], dtype=np.float64)
        if not math.isfinite(cumulative[-1]):
            raise InvalidOutcomeSpace(
                "Total weight overflows; rescale the weights",
                total_weight=float(cumulative[-1])
            )

        self._outcomes: Tuple[Outcome, ...] = tuple(built)
        self._index = index
        self._cumulative: List[float] = cumulative.tolist()
        self._total: float = self._cumulative[-1]

    @classmethod
    def uniform(cls, labels: Iterable[Hashable]) -> "OutcomeSpace":
        """Space where every label has weight 1"""
        return cls([(label, 1.0) for label in labels])

    @property
    def outcomes(self) -> Tuple[Outcome, ...]:
        return self._outcomes

    @property
    def labels(self) -> Tuple[Hashable, ...]:
        return tuple(o.label for o in self._outcomes)

    @property
    def weights(self) -> Tuple[float, ...]:
        return tuple(o.weight for o in self._outcomes)

    @property
    def total_weight(self) -> float:
        return self._total

    def probability(self, label: Hashable) -> float:
        """Normalized weight of a label (0.0 if absent)"""
        if label not in self._index:
            return 0.0
        return self._outcomes[self._index[label]].weight / self._total

    def draw(self, random: RandomSource) -> Hashable:
        """
        Draw one label with probability proportional to its weight

        Args:
            random: Random stream to consume one uniform value from

        Returns:
            The selected outcome label
        """
        target = random.uniform() * self._total
        # u * total can round up to total when u is just below 1
        idx = min(bisect_right(self._cumulative, target), len(self._outcomes) - 1)
        return self._outcomes[idx].label

    def draw_without_replacement(self, random: RandomSource, count: int) -> Tuple[Hashable, ...]:
        """
        Draw count distinct labels, each draw weighted over what is left

        Args:
            random: Random stream
            count: Number of labels to take

        Returns:
            Tuple of labels in draw order

        Raises:
            ConfigurationError: If count is not in 1..len(space)
        """
        if isinstance(count, bool) or not isinstance(count, numbers.Integral) \
                or count < 1 or count > len(self._outcomes):
            raise ConfigurationError(
                f"Cannot draw {count!r} outcomes without replacement "
                f"from a space of {len(self._outcomes)}",
                count=count,
                size=len(self._outcomes)
            )

        remaining = list(self._outcomes)
        drawn = []
        for _ in range(count):
            if len(remaining) == 1:
                drawn.append(remaining.pop().label)
                break
            cumulative = list(accumulate(o.weight for o in remaining))
            target = random.uniform() * cumulative[-1]
            idx = min(bisect_right(cumulative, target), len(remaining) - 1)
            drawn.append(remaining.pop(idx).label)
        return tuple(drawn)

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self) -> Iterator[Outcome]:
        return iter(self._outcomes)

    def __contains__(self, label: object) -> bool:
        try:
            return label in self._index
        except TypeError:
            return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OutcomeSpace):
            return NotImplemented
        return self._outcomes == other._outcomes

    def __hash__(self) -> int:
        return hash(self._outcomes)

    def __repr__(self) -> str:
        inner = ", ".join(f"{o.label!r}: {o.weight:g}" for o in self._outcomes)
        return f"OutcomeSpace({{{inner}}})"
