"""
Simulator - runs experiments repeatedly and tallies the results
"""

import numbers
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Mapping, NamedTuple, Optional, Union

from loguru import logger

from ..exceptions import ConfigurationError, ExhaustedRetries, InvalidTrialCount
from ..experiment.experiment import Experiment
from ..sampling.random_source import RandomSource
from .distribution import EmpiricalDistribution
from .models import DEFAULT_BATCH_SIZE, ErrorPolicy, SimulatorConfig


StopCheck = Callable[[EmpiricalDistribution], bool]

# Successes and failures each needed before a width-based early stop
MIN_SETTLED_COUNT = 5


class _BatchResult(NamedTuple):
    tally: EmpiricalDistribution
    failures: int
    stopped: bool


def validate_trial_count(trial_count: Any) -> int:
    """
    Raises:
        InvalidTrialCount: If trial_count is not a positive integer
    """
    if isinstance(trial_count, bool) or not isinstance(trial_count, numbers.Integral) \
            or trial_count <= 0:
        raise InvalidTrialCount(
            f"Trial count must be a positive integer, got {trial_count!r}",
            trial_count=trial_count
        )
    return int(trial_count)


def plan_batches(trial_count: int, batch_size: int) -> List[int]:
    """Split trial_count into full batches of batch_size plus one remainder batch"""
    full, remainder = divmod(trial_count, batch_size)
    sizes = [batch_size] * full
    if remainder:
        sizes.append(remainder)
    return sizes


class Simulator:
    """
    Monte Carlo odds estimator

    Runs an Experiment many times and folds every compound result label
    into an EmpiricalDistribution. The run is a single logical trial stream;
    in batched mode the stream is split into independent child streams
    (one per batch) that may execute on worker threads and are folded back
    in batch order, so results depend only on the seed and the batch plan.
    """

    def __init__(
        self,
        config: Union[SimulatorConfig, Mapping[str, Any], None] = None,
        **options: Any
    ):
        """
        Initialize Simulator

        Args:
            config: SimulatorConfig or a mapping of options
            **options: Individual options overriding config
                       (seed, error_policy, max_retries, workers, batch_size,
                       target_ci_width, target_label, confidence_level,
                       max_seconds, check_interval)

        Raises:
            ConfigurationError: On unrecognized options or invalid values
        """
        self.config = SimulatorConfig.from_options(config, **options)

        logger.debug(
            f"Simulator initialized: seed={self.config.seed}, "
            f"policy={self.config.error_policy.value}, workers={self.config.workers}"
        )

    def run(
        self,
        experiment: Experiment,
        trial_count: int,
        random: Optional[RandomSource] = None
    ) -> EmpiricalDistribution:
        """
        Run trial_count trials of an experiment

        Args:
            experiment: Experiment to repeat
            trial_count: Number of classified trials to collect
            random: Random stream; defaults to a new stream from config.seed

        Returns:
            Finalized EmpiricalDistribution

        Raises:
            InvalidTrialCount: If trial_count is not a positive integer
            ConfigurationError: If experiment is not an Experiment
            EvaluationError: First unclassifiable trial under the abort policy
            ExhaustedRetries: Too many unclassifiable trials under skip-and-continue
        """
        trial_count = validate_trial_count(trial_count)
        if not isinstance(experiment, Experiment):
            raise ConfigurationError(
                f"Expected an Experiment, got {type(experiment).__name__}"
            )
        if random is None:
            random = RandomSource(self.config.seed)

        config = self.config
        max_retries = config.max_retries if config.max_retries is not None else trial_count
        deadline = time.monotonic() + config.max_seconds if config.max_seconds else None

        logger.debug(
            f"Running {trial_count:,} trials of {experiment!r}: "
            f"seed={random.seed}, policy={config.error_policy.value}, "
            f"max_retries={max_retries}, batched={config.batched}"
        )

        started = time.monotonic()
        if config.batched:
            tally, failures, stopped = self._run_batched(
                experiment, trial_count, random, max_retries, deadline
            )
        else:
            stop_check = self._stop_check(deadline) if config.early_stop_enabled else None
            tally, failures, stopped = self._collect(
                experiment, trial_count, random, max_retries, stop_check
            )
        tally._finalize()

        elapsed = time.monotonic() - started
        if stopped:
            logger.warning(
                f"Simulation stopped early after {tally.total_trials():,} of "
                f"{trial_count:,} trials"
            )
        logger.info(
            f"Simulation complete: {tally.total_trials():,} trials, "
            f"{len(tally)} distinct results, {failures} skipped, {elapsed:.2f}s"
        )
        return tally

    def _collect(
        self,
        experiment: Experiment,
        target: int,
        random: RandomSource,
        retry_budget: int,
        stop_check: Optional[StopCheck] = None,
        batch: Optional[int] = None
    ) -> _BatchResult:
        """Run trials on one stream until target labels are collected"""
        tally = EmpiricalDistribution()
        policy = self.config.error_policy
        interval = self.config.check_interval
        collected = 0
        failures = 0

        while collected < target:
            trial = experiment.run_trial(random)

            if trial.ok:
                tally._record(trial.label)
                collected += 1
                if stop_check is not None and collected % interval == 0 and stop_check(tally):
                    return _BatchResult(tally, failures, True)
                continue

            if policy is ErrorPolicy.ABORT:
                logger.debug(f"Aborting run after {collected:,} trials: {trial.error.message}")
                raise trial.error

            failures += 1
            if failures > retry_budget:
                raise ExhaustedRetries(
                    f"Collected {collected:,} of {target:,} trials before exceeding "
                    f"the retry budget of {retry_budget}",
                    requested=target,
                    collected=collected,
                    failures=failures,
                    max_retries=retry_budget,
                    batch=batch
                )

        return _BatchResult(tally, failures, False)

    def _run_batched(
        self,
        experiment: Experiment,
        trial_count: int,
        random: RandomSource,
        max_retries: int,
        deadline: Optional[float]
    ) -> _BatchResult:
        config = self.config
        sizes = plan_batches(trial_count, config.batch_size or DEFAULT_BATCH_SIZE)
        streams = random.spawn(len(sizes))
        batch_stop = self._stop_check(deadline, time_only=True) if deadline is not None else None
        global_stop = self._stop_check(deadline) if config.early_stop_enabled else None

        logger.debug(
            f"Batched run: {len(sizes)} batches of up to {sizes[0]:,} trials "
            f"on {config.workers} worker(s)"
        )

        tally = EmpiricalDistribution()
        failures = 0
        stopped = False

        # Each batch may spend the whole retry budget; the run-wide total is checked on fold
        with ThreadPoolExecutor(max_workers=config.workers) as executor:
            futures: List[Future] = [
                executor.submit(
                    self._collect, experiment, size, stream, max_retries, batch_stop, i
                )
                for i, (size, stream) in enumerate(zip(sizes, streams))
            ]
            try:
                for i, future in enumerate(futures):
                    result = future.result()
                    tally._merge(result.tally)
                    failures += result.failures
                    if failures > max_retries:
                        raise ExhaustedRetries(
                            f"Collected {tally.total_trials():,} of {trial_count:,} trials before "
                            f"exceeding the retry budget of {max_retries}",
                            requested=trial_count,
                            collected=tally.total_trials(),
                            failures=failures,
                            max_retries=max_retries,
                            batch=i
                        )
                    if result.stopped or (global_stop is not None and global_stop(tally)):
                        stopped = True
                        break
            finally:
                for future in futures:
                    future.cancel()

        return _BatchResult(tally, failures, stopped)

    def _stop_check(self, deadline: Optional[float], time_only: bool = False) -> StopCheck:
        """Early-stop predicate evaluated on the tally collected so far"""
        config = self.config

        def should_stop(tally: EmpiricalDistribution) -> bool:
            if deadline is not None and time.monotonic() >= deadline:
                return True
            if time_only or config.target_ci_width is None:
                return False
            if config.target_label is not None:
                labels = [config.target_label]
            else:
                labels = list(tally.labels())
            if not labels or not all(is_settled(tally, label) for label in labels):
                return False
            width = max(
                tally.confidence_interval(label, config.confidence_level).width
                for label in labels
            )
            return width <= config.target_ci_width

        return should_stop


def is_settled(tally: EmpiricalDistribution, label: Any) -> bool:
    """
    Whether the normal-approximation interval for label can be trusted

    Requires at least MIN_SETTLED_COUNT trials with the label and as many
    without it. Below that the interval is too narrow, and at p = 0 or
    p = 1 it has zero width.
    """
    count = tally.count_of(label)
    return count >= MIN_SETTLED_COUNT and tally.total_trials() - count >= MIN_SETTLED_COUNT


def simulate(
    experiment: Experiment,
    trial_count: int,
    options: Union[SimulatorConfig, Mapping[str, Any], None] = None
) -> EmpiricalDistribution:
    """
    Estimate the distribution of an experiment's compound results

    Args:
        experiment: Experiment to run
        trial_count: Number of trials
        options: SimulatorConfig or mapping of simulator options

    Returns:
        Finalized EmpiricalDistribution
    """
    return Simulator(options).run(experiment, trial_count)
