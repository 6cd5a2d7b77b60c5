"""
Chart styling configuration
"""

from typing import List

import matplotlib.pyplot as plt


class ChartStyles:
    """Chart styling utilities"""

    COLORS = {
        "primary": "#2E86AB",
        "secondary": "#A23B72",
        "success": "#28A745",
        "danger": "#DC3545",
        "warning": "#FFC107",
        "dark": "#343A40",
    }

    PALETTE = [
        "#2E86AB",  # Blue
        "#A23B72",  # Magenta
        "#F18F01",  # Orange
        "#28A745",  # Green
        "#6C757D",  # Gray
        "#17A2B8",  # Cyan
        "#DC3545",  # Red
        "#6610F2",  # Purple
        "#20C997",  # Teal
        "#FFC107",  # Yellow
    ]

    @classmethod
    def setup_matplotlib(cls) -> None:
        """Apply the house style to matplotlib"""
        if "seaborn-v0_8-whitegrid" in plt.style.available:
            plt.style.use("seaborn-v0_8-whitegrid")
        else:
            plt.style.use("ggplot")

        plt.rcParams.update({
            "figure.figsize": (12, 8),
            "figure.dpi": 150,
            "axes.labelsize": 12,
            "axes.titlesize": 14,
            "xtick.labelsize": 10,
            "ytick.labelsize": 10,
            "legend.fontsize": 10,
        })

    @classmethod
    def bar_colors(cls, n: int) -> List[str]:
        """n colors cycling through the palette"""
        return [cls.PALETTE[i % len(cls.PALETTE)] for i in range(n)]

    @classmethod
    def format_percentage(cls, value: float) -> str:
        """Format value as percentage"""
        return f"{value * 100:.1f}%"
