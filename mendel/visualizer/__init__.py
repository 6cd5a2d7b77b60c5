"""
Visualization Module
"""

from .charts import Visualizer
from .styles import ChartStyles

__all__ = ["Visualizer", "ChartStyles"]
