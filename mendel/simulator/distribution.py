"""
Empirical Distribution - tally of compound results across trials
"""

import math
import numbers
from types import MappingProxyType
from typing import Any, Dict, Hashable, KeysView, List, Mapping, Optional, Tuple

from scipy import stats as scipy_stats

from ..exceptions import ConfigurationError
from .models import ConfidenceInterval


class EmpiricalDistribution:
    """
    Occurrence counts per compound result label

    Created empty by the Simulator, filled by its fold step and then
    finalized. Once finalized the distribution is read-only: every public
    method is an accessor, and the private fold methods refuse to run.

    Invariants: counts are positive integers, their sum equals
    ``total_trials()``, and labels keep first-occurrence order.
    """

    __slots__ = ("_counts", "_total", "_finalized")

    def __init__(self):
        self._counts: Dict[Hashable, int] = {}
        self._total: int = 0
        self._finalized: bool = False

    @classmethod
    def from_counts(cls, counts: Mapping[Hashable, int]) -> "EmpiricalDistribution":
        """Build a finalized distribution from known counts (zero counts dropped)"""
        dist = cls()
        for label, count in counts.items():
            if isinstance(count, bool) or not isinstance(count, numbers.Integral):
                raise ConfigurationError(
                    f"Count for {label!r} must be an integer, got {count!r}",
                    label=label,
                    count=count
                )
            if count < 0:
                raise ConfigurationError(f"Count for {label!r} is negative", label=label)
            if count:
                dist._record(label, int(count))
        dist._finalize()
        return dist

    @classmethod
    def combine(cls, *distributions: "EmpiricalDistribution") -> "EmpiricalDistribution":
        """Sum several distributions; counting is commutative and associative"""
        combined = cls()
        for dist in distributions:
            combined._merge(dist)
        combined._finalize()
        return combined

    # Fold step. Only the Simulator calls these, and only before finalizing.

    def _check_open(self) -> None:
        if self._finalized:
            raise RuntimeError("EmpiricalDistribution is finalized and read-only")

    def _record(self, label: Hashable, count: int = 1) -> None:
        self._check_open()
        self._counts[label] = self._counts.get(label, 0) + count
        self._total += count

    def _merge(self, other: "EmpiricalDistribution") -> None:
        self._check_open()
        for label, count in other._counts.items():
            self._counts[label] = self._counts.get(label, 0) + count
        self._total += other._total

    def _finalize(self) -> "EmpiricalDistribution":
        self._finalized = True
        return self

    # Accessors

    @property
    def finalized(self) -> bool:
        return self._finalized

    def total_trials(self) -> int:
        return self._total

    def count_of(self, label: Hashable) -> int:
        return self._counts.get(label, 0)

    def labels(self) -> KeysView:
        """
        Labels observed at least once, in order of first occurrence

        The returned view is lazy and can be iterated any number of times.
        """
        return self._counts.keys()

    def counts(self) -> Mapping[Hashable, int]:
        return MappingProxyType(self._counts)

    def probability_of(self, label: Hashable) -> float:
        """Point estimate count(label) / total; 0.0 for unseen labels"""
        if self._total == 0:
            return 0.0
        return self._counts.get(label, 0) / self._total

    def probabilities(self) -> Dict[Hashable, float]:
        return {label: self.probability_of(label) for label in self._counts}

    def confidence_interval(
        self,
        label: Hashable,
        confidence_level: float = 0.95
    ) -> ConfidenceInterval:
        """
        Symmetric interval around probability_of(label)

        Uses the normal approximation to the binomial proportion:
        half width = z * sqrt(p(1-p)/n) with z the two-sided critical value.

        The approximation degrades when p is near 0 or 1 or when n is small
        (the interval collapses to zero width at p = 0 or p = 1). Callers
        needing tighter guarantees should increase the trial count.

        Args:
            label: Compound result label
            confidence_level: Coverage in (0, 1), default 95%

        Raises:
            ConfigurationError: If confidence_level is outside (0, 1)
        """
        if not 0 < confidence_level < 1:
            raise ConfigurationError(
                f"Confidence level must be in (0, 1), got {confidence_level!r}",
                confidence_level=confidence_level
            )

        p = self.probability_of(label)
        n = self._total
        standard_error = math.sqrt(p * (1 - p) / n) if n > 0 else 0.0
        z = float(scipy_stats.norm.ppf((1 + confidence_level) / 2))
        half_width = z * standard_error

        return ConfidenceInterval(
            label=label,
            estimate=p,
            lower=p - half_width,
            upper=p + half_width,
            confidence_level=confidence_level,
            standard_error=standard_error,
            trials=n
        )

    def max_interval_width(self, confidence_level: float = 0.95) -> float:
        """Widest confidence interval across observed labels (inf when empty)"""
        if self._total == 0:
            return math.inf
        return max(
            self.confidence_interval(label, confidence_level).width
            for label in self._counts
        )

    def most_common(self, n: Optional[int] = None) -> List[Tuple[Hashable, int]]:
        ranked = sorted(self._counts.items(), key=lambda item: item[1], reverse=True)
        return ranked if n is None else ranked[:n]

    def summary(self, confidence_level: float = 0.95) -> Dict[str, Any]:
        """Plain dictionary for reporting layers (labels rendered with str)"""
        outcomes = []
        for label, count in self._counts.items():
            ci = self.confidence_interval(label, confidence_level)
            outcomes.append({
                "label": str(label),
                "count": count,
                "probability": round(ci.estimate, 6),
                "ci_lower": round(ci.lower, 6),
                "ci_upper": round(ci.upper, 6),
            })
        return {
            "total_trials": self._total,
            "confidence_level": confidence_level,
            "outcomes": outcomes,
        }

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, label: object) -> bool:
        return label in self._counts

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EmpiricalDistribution):
            return NotImplemented
        return self._total == other._total and self._counts == other._counts

    __hash__ = None

    def __repr__(self) -> str:
        top = ", ".join(f"{label!r}: {count}" for label, count in self.most_common(5))
        more = ", ..." if len(self._counts) > 5 else ""
        return f"EmpiricalDistribution(total={self._total}, {{{top}{more}}})"
