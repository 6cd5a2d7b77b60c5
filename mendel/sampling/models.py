"""
Data models for weighted sampling
"""

from typing import Hashable

from pydantic import BaseModel, ConfigDict, Field


class Outcome(BaseModel):
    """A single labeled possibility with its selection weight"""
    model_config = ConfigDict(frozen=True)

    label: Hashable = Field(..., description="Opaque label (string, enum member, int, tuple)")
    weight: float = Field(..., description="Selection weight, need not be normalized")

    def __repr__(self) -> str:
        return f"Outcome({self.label!r}, {self.weight:g})"
