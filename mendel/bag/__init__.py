"""
Bag Module - population selection odds
"""

from .bag import Bag, default_max_sims

__all__ = ["Bag", "default_max_sims"]
