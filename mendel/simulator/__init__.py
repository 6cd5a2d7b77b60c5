"""
Simulator Module
"""

from .simulator import Simulator, simulate
from .distribution import EmpiricalDistribution
from .models import SimulatorConfig, ErrorPolicy, ConfidenceInterval

__all__ = [
    "Simulator",
    "simulate",
    "EmpiricalDistribution",
    "SimulatorConfig",
    "ErrorPolicy",
    "ConfidenceInterval"
]
