"""
Random Source - seedable stream of uniform random values
"""

import numbers
from typing import List, Optional, Tuple

import numpy as np

from ..exceptions import ConfigurationError


class RandomSource:
    """
    Uniform random stream backed by a numpy Generator

    Each instance owns its own PCG64 generator so that runs never share
    global random state. Child streams produced by ``spawn`` come from
    ``SeedSequence.spawn`` and never overlap with the parent or each other.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize Random Source

        Args:
            seed: Seed for reproducibility. None draws fresh OS entropy.
        """
        self._seed_sequence = self._make_seed_sequence(seed)
        self._rng = np.random.Generator(np.random.PCG64(self._seed_sequence))

    @classmethod
    def _from_seed_sequence(cls, seed_sequence: np.random.SeedSequence) -> "RandomSource":
        source = cls.__new__(cls)
        source._seed_sequence = seed_sequence
        source._rng = np.random.Generator(np.random.PCG64(seed_sequence))
        return source

    @staticmethod
    def _make_seed_sequence(seed: Optional[int]) -> np.random.SeedSequence:
        if seed is None:
            return np.random.SeedSequence()
        if isinstance(seed, bool) or not isinstance(seed, numbers.Integral) or seed < 0:
            raise ConfigurationError(
                f"Seed must be a non-negative integer, got {seed!r}",
                seed=seed
            )
        return np.random.SeedSequence(int(seed))

    @property
    def seed(self) -> int:
        """
        Root entropy of the stream (the explicit seed when given)

        Spawned child streams share their parent's root entropy and are told
        apart by ``spawn_key``.
        """
        return self._seed_sequence.entropy

    @property
    def spawn_key(self) -> Tuple[int, ...]:
        """Position in the spawn tree; empty for a root stream"""
        return tuple(self._seed_sequence.spawn_key)

    def reseed(self, seed: Optional[int] = None) -> None:
        """Restart the stream from a new seed"""
        self._seed_sequence = self._make_seed_sequence(seed)
        self._rng = np.random.Generator(np.random.PCG64(self._seed_sequence))

    def uniform(self) -> float:
        """Uniform real value in [0, 1)"""
        return float(self._rng.random())

    def index(self, n: int) -> int:
        """
        Uniform integer index in [0, n)

        Raises:
            ConfigurationError: If n is not a positive integer
        """
        if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n <= 0:
            raise ConfigurationError(
                f"Index range must be a positive integer, got {n!r}",
                n=n
            )
        return int(self._rng.integers(0, n))

    def spawn(self, n: int) -> List["RandomSource"]:
        """
        Split off n independent child streams

        Used for batch-parallel runs: batch i always receives child i, so the
        result of a batched run does not depend on scheduling.
        """
        if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n <= 0:
            raise ConfigurationError(
                f"Number of child streams must be a positive integer, got {n!r}",
                n=n
            )
        return [
            RandomSource._from_seed_sequence(child)
            for child in self._seed_sequence.spawn(int(n))
        ]

    def __repr__(self) -> str:
        if self.spawn_key:
            return f"RandomSource(seed={self.seed}, spawn_key={self.spawn_key})"
        return f"RandomSource(seed={self.seed})"
