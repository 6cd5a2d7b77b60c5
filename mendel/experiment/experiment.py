"""
Experiment - composes outcome-space draws into one compound result per trial
"""

from typing import Hashable, List, Sequence, Tuple, Union

from ..exceptions import ConfigurationError, EvaluationError
from ..sampling.outcome_space import OutcomeSpace
from ..sampling.random_source import RandomSource
from .models import DrawSpec, EvaluationRule, Trial
from .rules import identity


DrawPlan = Union[OutcomeSpace, DrawSpec, Sequence[Union[OutcomeSpace, DrawSpec]]]


class Experiment:
    """
    A repeatable randomized experiment

    Each trial walks the draw specifications in order, collecting one label
    per draw into a flat tuple, and hands that tuple to the evaluation rule
    which classifies it into a compound result label.

    The experiment keeps no state between trials; it only references the
    outcome spaces it draws from.
    """

    def __init__(self, draws: DrawPlan, rule: EvaluationRule = identity):
        """
        Initialize Experiment

        Args:
            draws: One OutcomeSpace or DrawSpec, or a sequence of them.
                   A bare OutcomeSpace means a single draw from it.
            rule: Function from the tuple of drawn labels to a compound
                  result label. Returning None or raising EvaluationError
                  marks the combination as unclassifiable.

        Raises:
            ConfigurationError: If there are no draws or rule is not callable
        """
        if isinstance(draws, (OutcomeSpace, DrawSpec)):
            draws = [draws]

        specs: List[DrawSpec] = []
        for draw in draws:
            if isinstance(draw, DrawSpec):
                specs.append(draw)
            else:
                specs.append(DrawSpec(space=draw))

        if not specs:
            raise ConfigurationError("Experiment needs at least one draw")
        if not callable(rule):
            raise ConfigurationError(
                f"Evaluation rule must be callable, got {type(rule).__name__}"
            )

        for spec in specs:
            if not spec.is_dependent and not spec.replace and spec.count > len(spec.space):
                raise ConfigurationError(
                    f"Cannot draw {spec.count} outcomes without replacement "
                    f"from a space of {len(spec.space)}",
                    count=spec.count,
                    size=len(spec.space)
                )

        self._draws: Tuple[DrawSpec, ...] = tuple(specs)
        self._rule = rule

    @classmethod
    def single(cls, space: OutcomeSpace) -> "Experiment":
        """One draw per trial, labelled by the drawn outcome"""
        return cls(space, identity)

    @classmethod
    def repeated(
        cls,
        space: OutcomeSpace,
        count: int,
        rule: EvaluationRule,
        replace: bool = True
    ) -> "Experiment":
        """count draws from the same space per trial"""
        return cls(DrawSpec(space=space, count=count, replace=replace), rule)

    @property
    def draws(self) -> Tuple[DrawSpec, ...]:
        return self._draws

    @property
    def rule(self) -> EvaluationRule:
        return self._rule

    @property
    def draws_per_trial(self) -> int:
        return sum(spec.count for spec in self._draws)

    def draw(self, random: RandomSource) -> Tuple[Hashable, ...]:
        """Perform all draws for one trial without evaluating them"""
        drawn: List[Hashable] = []
        for spec in self._draws:
            space = spec.resolve(tuple(drawn))
            if spec.replace:
                for _ in range(spec.count):
                    drawn.append(space.draw(random))
            else:
                drawn.extend(space.draw_without_replacement(random, spec.count))
        return tuple(drawn)

    def run_trial(self, random: RandomSource) -> Trial:
        """
        Run one trial and return its result without raising on failure

        Returns:
            Trial with either a label or the EvaluationError that replaced it
        """
        try:
            drawn = self.draw(random)
        except EvaluationError as e:
            # A dependent space selector rejected the draws so far
            return Trial(error=e)

        try:
            label = self._rule(drawn)
        except EvaluationError as e:
            if "draws" not in e.context:
                e.context["draws"] = drawn
            return Trial(error=e)

        if label is None:
            return Trial(error=EvaluationError(
                f"Evaluation rule could not classify draws {drawn!r}",
                draws=drawn
            ))
        try:
            hash(label)
        except TypeError:
            return Trial(error=EvaluationError(
                f"Evaluation rule returned unhashable label {label!r}",
                draws=drawn
            ))
        return Trial(label=label)

    def run_once(self, random: RandomSource) -> Hashable:
        """
        Run one trial and return its compound label

        Raises:
            EvaluationError: If the rule could not classify the draws
        """
        trial = self.run_trial(random)
        if not trial.ok:
            raise trial.error
        return trial.label

    def __repr__(self) -> str:
        rule_name = getattr(self._rule, "__name__", type(self._rule).__name__)
        return f"Experiment(draws={len(self._draws)}, rule={rule_name})"
