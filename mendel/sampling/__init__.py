"""
Sampling Module - random streams and weighted outcome spaces
"""

from .random_source import RandomSource
from .outcome_space import OutcomeSpace
from .models import Outcome

__all__ = [
    "RandomSource",
    "OutcomeSpace",
    "Outcome"
]
