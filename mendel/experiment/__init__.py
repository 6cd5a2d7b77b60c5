"""
Experiment Module - compound draws and evaluation rules
"""

from .experiment import Experiment
from .models import DrawSpec, Trial
from . import rules

__all__ = [
    "Experiment",
    "DrawSpec",
    "Trial",
    "rules"
]
