#!/usr/bin/env python3
"""
mendel - Main Entry Point

Runs the experiment described by a YAML file and reports the simulated odds
- load the experiment file
- run the simulation
- log a summary table, optionally print JSON and save a chart
"""

import argparse
import json
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from .exceptions import MendelError
from .simulator.models import ErrorPolicy


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(verbose: bool = False) -> None:
    """Send mendel's log output to stderr"""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level="DEBUG" if verbose else "INFO")
    logger.enable("mendel")


def run_simulation(
    config_path: str,
    trials: Optional[int] = None,
    seed: Optional[int] = None,
    policy: Optional[str] = None,
    workers: Optional[int] = None,
    chart_dir: Optional[str] = None
) -> Dict[str, Any]:
    """
    Run the experiment described by a YAML file

    Args:
        config_path: Path to the experiment file
        trials: Override the file's trial count
        seed: Override the file's seed
        policy: Override the error policy (abort / skip-and-continue)
        workers: Override the number of worker threads
        chart_dir: Directory to save a distribution chart in

    Returns:
        Dictionary with the parsed experiment, distribution and summary
    """
    from .bag.bag import default_max_sims
    from .config import build_experiment, load_experiment, simulator_config
    from .simulator import Simulator

    spec = load_experiment(config_path)
    experiment = build_experiment(spec)
    config = simulator_config(spec, seed=seed, error_policy=policy, workers=workers)
    if trials is not None:
        trial_count = trials
    elif spec.trials is not None:
        trial_count = spec.trials
    else:
        trial_count = default_max_sims()

    logger.info("=" * 60)
    logger.info(f"  Experiment: {spec.name or config_path}")
    if spec.description:
        logger.info(f"  {spec.description}")
    logger.info(f"  Run Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info(f"  Trials: {trial_count:,} | Seed: {config.seed} | Policy: {config.error_policy.value}")
    logger.info("=" * 60)

    distribution = Simulator(config).run(experiment, trial_count)
    summary = distribution.summary(config.confidence_level)

    expected = spec.expected or {}
    expected_by_str = {str(k): v for k, v in expected.items()}
    for row in summary["outcomes"]:
        if row["label"] in expected_by_str:
            row["expected"] = expected_by_str[row["label"]]

    for line in format_table(summary):
        logger.info(line)

    results: Dict[str, Any] = {
        "experiment": spec,
        "distribution": distribution,
        "summary": summary,
    }

    if chart_dir:
        from .visualizer import Visualizer

        visualizer = Visualizer(output_dir=chart_dir)
        filename = f"distribution_{datetime.now().strftime('%Y%m%d_%H%M%S')}.png"
        visualizer.plot_distribution(
            distribution,
            confidence_level=config.confidence_level,
            expected={label: expected_by_str[str(label)]
                      for label in distribution.labels() if str(label) in expected_by_str},
            title=spec.name,
            filename=filename
        )
        results["chart_path"] = f"{chart_dir}/{filename}"

    return results


def format_table(summary: Dict[str, Any]) -> List[str]:
    """Render a distribution summary as aligned text lines"""
    level = summary["confidence_level"]
    lines = [
        f"  {'Result':<16} {'Count':>10} {'Prob':>8}   {f'{level:.0%} CI':<20} {'Expected':>8}",
        "  " + "-" * 68,
    ]
    for row in summary["outcomes"]:
        ci = f"[{row['ci_lower']:.4f}, {row['ci_upper']:.4f}]"
        expected = f"{row['expected']:.4f}" if "expected" in row else ""
        lines.append(
            f"  {row['label']:<16} {row['count']:>10,} {row['probability']:>8.4f}   {ci:<20} {expected:>8}"
        )
    lines.append(f"  Total trials: {summary['total_trials']:,}")
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="mendel - estimate odds by simulation"
    )

    parser.add_argument(
        "config",
        type=str,
        help="Path to a YAML experiment file"
    )

    parser.add_argument(
        "--trials", "-n",
        type=int,
        default=None,
        help="Number of trials (default: from file, then MENDEL_MAX_SIMS, then 100000)"
    )

    parser.add_argument(
        "--seed", "-s",
        type=int,
        default=None,
        help="Random seed for reproducible runs"
    )

    parser.add_argument(
        "--policy", "-p",
        choices=[p.value for p in ErrorPolicy],
        default=None,
        help="What to do with trials the rule cannot classify (default: abort)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads for batched runs (default: 1)"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the summary as JSON on stdout"
    )

    parser.add_argument(
        "--chart", "-c",
        type=str,
        default=None,
        help="Directory to save a distribution chart in"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        results = run_simulation(
            config_path=args.config,
            trials=args.trials,
            seed=args.seed,
            policy=args.policy,
            workers=args.workers,
            chart_dir=args.chart
        )

    except KeyboardInterrupt:
        logger.info("Simulation cancelled by user")
        return 1

    except MendelError as e:
        logger.error(f"{e.kind}: {e.message}")
        return 1

    if args.json:
        print(json.dumps(results["summary"], indent=2))

    return 0


if __name__ == "__main__":
    sys.exit(main())
