"""
Chart generation for simulated distributions
"""

import os
from typing import Any, Dict, Hashable, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from loguru import logger

from ..simulator.distribution import EmpiricalDistribution
from .styles import ChartStyles


class Visualizer:
    """
    Distribution chart generator

    Renders an EmpiricalDistribution as a bar chart of estimated
    probabilities with confidence-interval error bars.
    """

    def __init__(
        self,
        output_dir: str = "output/charts",
        dpi: int = 150,
        figsize: tuple = (12, 8),
        max_labels: int = 30
    ):
        """
        Initialize Visualizer

        Args:
            output_dir: Directory for saving charts
            dpi: DPI for saved images
            figsize: Default figure size
            max_labels: Most frequent labels to show; the rest are grouped
        """
        self.output_dir = output_dir
        self.dpi = dpi
        self.figsize = figsize
        self.max_labels = max_labels

        os.makedirs(output_dir, exist_ok=True)
        ChartStyles.setup_matplotlib()

        logger.info(f"Visualizer initialized. Output dir: {output_dir}")

    def plot_distribution(
        self,
        distribution: EmpiricalDistribution,
        confidence_level: float = 0.95,
        expected: Optional[Dict[Hashable, float]] = None,
        title: Optional[str] = None,
        filename: str = "distribution.png",
        save: bool = True
    ) -> Any:
        """
        Bar chart of estimated probabilities

        Args:
            distribution: Finalized simulation result
            confidence_level: Level for the error bars
            expected: Known probabilities to mark on each bar
            title: Chart title
            filename: Output file name inside output_dir
            save: Whether to save the chart

        Returns:
            Figure object
        """
        logger.info("Generating distribution chart...")

        ranked = distribution.most_common()
        shown = ranked[:self.max_labels]
        labels = [str(label) for label, _ in shown]
        intervals = [distribution.confidence_interval(label, confidence_level) for label, _ in shown]
        estimates = np.array([ci.estimate for ci in intervals])
        errors = np.array([ci.half_width for ci in intervals])

        other = sum(count for _, count in ranked[self.max_labels:])
        if other:
            labels.append("other")
            estimates = np.append(estimates, other / distribution.total_trials())
            errors = np.append(errors, 0.0)

        fig, ax = plt.subplots(figsize=self.figsize)
        x = np.arange(len(labels))

        ax.bar(
            x, estimates,
            yerr=errors,
            capsize=4,
            color=ChartStyles.bar_colors(len(labels)),
            alpha=0.85
        )

        if expected:
            marked = 0
            for i, (label, _) in enumerate(shown):
                if label in expected:
                    ax.hlines(
                        expected[label], i - 0.4, i + 0.4,
                        colors=ChartStyles.COLORS["danger"],
                        linestyles="dashed",
                        label="expected" if marked == 0 else None
                    )
                    marked += 1
            if marked:
                ax.legend(loc="upper right")

        for i, value in enumerate(estimates):
            ax.annotate(
                ChartStyles.format_percentage(value),
                (x[i], value),
                textcoords="offset points",
                xytext=(0, 6),
                ha="center",
                fontsize=9
            )

        crowded = len(labels) > 8
        ax.set_xticks(x)
        ax.set_xticklabels(
            labels,
            rotation=45 if crowded else 0,
            ha="right" if crowded else "center"
        )
        ax.set_ylabel("Estimated probability")
        ax.set_xlabel("Result")
        ax.set_title(
            title or f"Simulated distribution ({distribution.total_trials():,} trials, "
                     f"{confidence_level:.0%} CI)",
            fontsize=14,
            fontweight="bold"
        )

        if save:
            path = os.path.join(self.output_dir, filename)
            plt.savefig(path, dpi=self.dpi, bbox_inches="tight")
            plt.close(fig)
            logger.info(f"Chart saved to {path}")

        return fig
