"""
Tests for simulator module
"""

import itertools

import pytest

from mendel.exceptions import (
    ConfigurationError, EvaluationError, ExhaustedRetries, InvalidTrialCount
)
from mendel.experiment.experiment import Experiment
from mendel.experiment.models import DrawSpec
from mendel.experiment import rules
from mendel.sampling.outcome_space import OutcomeSpace
from mendel.sampling.random_source import RandomSource
from mendel.simulator.distribution import EmpiricalDistribution
from mendel.simulator.models import ErrorPolicy, SimulatorConfig
from mendel.simulator.simulator import MIN_SETTLED_COUNT, Simulator, plan_batches, simulate


@pytest.fixture
def weighted_space():
    return OutcomeSpace({"A": 1, "B": 3})


@pytest.fixture
def coin():
    return OutcomeSpace({"heads": 1, "tails": 1})


def both_heads(drawn):
    return "both-heads" if drawn == ("heads", "heads") else "other"


def reject_tails(drawn):
    """Leaves trials with any tails unclassified"""
    return None if "tails" in drawn else "all-heads"


def fails_on_call(n):
    """Rule that leaves only its n-th call unclassified"""
    calls = itertools.count(1)

    def rule(drawn):
        return None if next(calls) == n else drawn[0]

    return rule


class TestSimulatorConfig:
    """Test simulator configuration"""

    def test_default_config(self):
        config = SimulatorConfig()

        assert config.seed is None
        assert config.error_policy == ErrorPolicy.ABORT
        assert config.workers == 1
        assert config.confidence_level == 0.95
        assert config.batched is False
        assert config.early_stop_enabled is False

    def test_policy_from_string(self):
        config = SimulatorConfig.from_options({"error_policy": "skip-and-continue"})

        assert config.error_policy is ErrorPolicy.SKIP_AND_CONTINUE

    def test_unknown_option(self):
        """Test unrecognized options raise ConfigurationError"""
        with pytest.raises(ConfigurationError):
            SimulatorConfig.from_options({"sede": 42})
        with pytest.raises(ConfigurationError):
            Simulator(turbo=True)

    def test_invalid_values(self):
        with pytest.raises(ConfigurationError):
            Simulator(error_policy="retry-forever")
        with pytest.raises(ConfigurationError):
            Simulator(workers=0)
        with pytest.raises(ConfigurationError):
            Simulator(confidence_level=1.5)

    def test_overrides(self):
        config = SimulatorConfig.from_options(SimulatorConfig(seed=1), seed=2, workers=3)

        assert config.seed == 2
        assert config.workers == 3
        assert config.batched is True


class TestBatchPlanning:
    """Test batch planning"""

    def test_plan_batches(self):
        assert plan_batches(10, 4) == [4, 4, 2]
        assert plan_batches(8, 4) == [4, 4]
        assert plan_batches(3, 10) == [3]


class TestSimulatorRun:
    """Test simulation runs"""

    def test_weighted_single_draw(self, weighted_space):
        """Test {A: 1, B: 3} over 4,000 trials with seed 42"""
        dist = Simulator(seed=42).run(Experiment.single(weighted_space), 4000)

        assert dist.total_trials() == 4000
        assert abs(dist.probability_of("B") - 0.75) < 0.02
        assert abs(dist.probability_of("A") - 0.25) < 0.02

    def test_seed_reproduces_counts(self, weighted_space):
        """Test rerunning with the same seed gives identical counts"""
        experiment = Experiment.single(weighted_space)
        first = Simulator(seed=42).run(experiment, 4000)
        second = Simulator(seed=42).run(experiment, 4000)

        assert first == second
        assert dict(first.counts()) == dict(second.counts())

    def test_explicit_random_source(self, weighted_space):
        experiment = Experiment.single(weighted_space)
        first = Simulator().run(experiment, 1000, RandomSource(seed=5))
        second = Simulator().run(experiment, 1000, RandomSource(seed=5))

        assert first == second

    def test_two_coins_both_heads(self, coin):
        """Test two independent draws: both heads about a quarter of the time"""
        experiment = Experiment.repeated(coin, 2, both_heads)
        dist = simulate(experiment, 10000, {"seed": 2024})

        assert abs(dist.probability_of("both-heads") - 0.25) < 0.02

    def test_convergence_within_interval(self):
        """Test estimates land inside a wide confidence interval of the true weights"""
        space = OutcomeSpace({"red": 2, "green": 5, "blue": 3})
        dist = Simulator(seed=99).run(Experiment.single(space), 100000)

        for label in space.labels:
            expected = space.probability(label)
            assert abs(dist.probability_of(label) - expected) < 0.02
            assert dist.confidence_interval(label, 0.9999).contains(expected)

    def test_probabilities_sum_to_one(self, coin):
        experiment = Experiment.repeated(coin, 3, rules.count_of("heads"))
        dist = Simulator(seed=1).run(experiment, 5000)

        assert sum(dist.probability_of(label) for label in dist.labels()) == pytest.approx(1.0)
        assert set(dist.labels()) <= {0, 1, 2, 3}

    def test_punnett_cross(self):
        """Test an Aa x Aa cross approaches 1:2:1"""
        parent = OutcomeSpace({"A": 1, "a": 1})
        experiment = Experiment([parent, parent], rules.genotype)
        dist = simulate(experiment, 20000, {"seed": 42})

        assert abs(dist.probability_of("AA") - 0.25) < 0.02
        assert abs(dist.probability_of("Aa") - 0.50) < 0.02
        assert abs(dist.probability_of("aa") - 0.25) < 0.02
        assert "aA" not in dist

    def test_result_is_finalized(self, coin):
        dist = Simulator(seed=1).run(Experiment.single(coin), 100)

        assert dist.finalized
        with pytest.raises(RuntimeError):
            dist._record("heads")


class TestTrialCountValidation:
    """Test trial count checks"""

    @pytest.mark.parametrize("trial_count", [0, -5, 2.5, True, "100", None])
    def test_invalid_trial_count(self, coin, trial_count):
        with pytest.raises(InvalidTrialCount):
            Simulator(seed=1).run(Experiment.single(coin), trial_count)

    def test_not_an_experiment(self, coin):
        with pytest.raises(ConfigurationError):
            Simulator(seed=1).run(coin, 10)


class TestErrorPolicies:
    """Test abort and skip-and-continue policies"""

    def test_abort_is_default(self, coin):
        experiment = Experiment.repeated(coin, 2, reject_tails)

        with pytest.raises(EvaluationError):
            Simulator(seed=3).run(experiment, 1000)

    def test_skip_collects_requested_trials(self, coin):
        """Test skipped trials are excluded from counts and total"""
        experiment = Experiment.repeated(coin, 2, reject_tails)
        dist = Simulator(
            seed=3,
            error_policy=ErrorPolicy.SKIP_AND_CONTINUE,
            max_retries=10000
        ).run(experiment, 1000)

        assert dist.total_trials() == 1000
        assert list(dist.labels()) == ["all-heads"]
        assert dist.probability_of("all-heads") == 1.0

    def test_skip_conditions_estimate(self, coin):
        """Test rejecting girl-girl style pairs gives the conditional 1/3"""
        def at_least_one_heads(drawn):
            if drawn == ("tails", "tails"):
                return None
            return "two" if drawn == ("heads", "heads") else "one"

        experiment = Experiment.repeated(coin, 2, at_least_one_heads)
        dist = Simulator(seed=8, error_policy="skip-and-continue").run(experiment, 20000)

        assert dist.total_trials() == 20000
        assert abs(dist.probability_of("two") - 1 / 3) < 0.02

    def test_exhausted_retries(self, coin):
        experiment = Experiment(coin, lambda drawn: None)

        with pytest.raises(ExhaustedRetries) as exc_info:
            Simulator(seed=1, error_policy="skip-and-continue", max_retries=10).run(experiment, 100)

        context = exc_info.value.context
        assert context["failures"] == 11
        assert context["collected"] == 0
        assert context["requested"] == 100

    def test_default_retry_budget_is_trial_count(self, coin):
        experiment = Experiment(coin, lambda drawn: None)

        with pytest.raises(ExhaustedRetries) as exc_info:
            Simulator(seed=1, error_policy="skip-and-continue").run(experiment, 50)

        assert exc_info.value.context["max_retries"] == 50


class TestBatchedRuns:
    """Test batched and threaded execution"""

    def test_batched_total(self, weighted_space):
        dist = Simulator(seed=4, batch_size=300).run(Experiment.single(weighted_space), 1000)

        assert dist.total_trials() == 1000
        assert abs(dist.probability_of("B") - 0.75) < 0.05

    def test_worker_count_does_not_change_results(self, weighted_space):
        """Test results depend on seed and batch plan, not on thread count"""
        experiment = Experiment.single(weighted_space)
        single = Simulator(seed=4, batch_size=500, workers=1).run(experiment, 5000)
        threaded = Simulator(seed=4, batch_size=500, workers=4).run(experiment, 5000)

        assert single == threaded

    def test_batched_abort(self, coin):
        experiment = Experiment.repeated(coin, 2, reject_tails)

        with pytest.raises(EvaluationError):
            Simulator(seed=3, workers=2, batch_size=100).run(experiment, 1000)

    @pytest.mark.parametrize("batch_size", [1, 2])
    def test_retry_budget_is_run_wide(self, coin, batch_size):
        """Test batching does not shrink the retry budget"""
        single = Simulator(seed=5, error_policy="skip-and-continue", max_retries=2).run(
            Experiment(coin, fails_on_call(3)), 4
        )
        batched = Simulator(
            seed=5,
            error_policy="skip-and-continue",
            max_retries=2,
            batch_size=batch_size
        ).run(Experiment(coin, fails_on_call(3)), 4)

        assert single.total_trials() == 4
        assert batched.total_trials() == 4

    def test_batched_exhausted_retries_across_batches(self, coin):
        """Test failures spread over batches still count against one budget"""
        experiment = Experiment(coin, lambda drawn: None if drawn[0] == "tails" else "heads")

        with pytest.raises(ExhaustedRetries) as exc_info:
            Simulator(
                seed=3,
                error_policy="skip-and-continue",
                max_retries=30,
                batch_size=10
            ).run(experiment, 100)

        context = exc_info.value.context
        assert context["max_retries"] == 30
        assert context["failures"] > 30
        assert context["requested"] in (10, 100)

    def test_batched_skip(self, coin):
        experiment = Experiment.repeated(coin, 2, reject_tails)
        dist = Simulator(
            seed=3,
            workers=2,
            batch_size=250,
            error_policy="skip-and-continue",
            max_retries=100000
        ).run(experiment, 1000)

        assert dist.total_trials() == 1000


class TestEarlyStop:
    """Test early stopping"""

    def test_stops_at_target_width(self, coin):
        config = SimulatorConfig(seed=6, target_ci_width=0.05, check_interval=100)
        dist = Simulator(config).run(Experiment.single(coin), 1000000)

        assert dist.total_trials() < 10000
        assert dist.total_trials() % 100 == 0
        assert dist.max_interval_width() <= 0.05

    def test_target_label(self, weighted_space):
        dist = Simulator(
            seed=6,
            target_ci_width=0.04,
            target_label="B",
            check_interval=50
        ).run(Experiment.single(weighted_space), 1000000)

        assert dist.total_trials() < 1000000
        assert dist.confidence_interval("B").width <= 0.04

    def test_unseen_target_label_runs_to_completion(self, coin):
        dist = Simulator(
            seed=6,
            target_ci_width=0.5,
            target_label="edge",
            check_interval=10
        ).run(Experiment.single(coin), 500)

        assert dist.total_trials() == 500

    def test_rare_label_blocks_early_stop(self):
        """Test a tally with only the common label seen is not converged"""
        space = OutcomeSpace({"rare": 1, "common": 999})
        dist = Simulator(seed=6, target_ci_width=0.01, check_interval=100).run(
            Experiment.single(space), 20000
        )

        assert dist.total_trials() > 100
        assert dist.count_of("rare") >= MIN_SETTLED_COUNT

    def test_target_label_seen_every_trial(self):
        space = OutcomeSpace({"hit": 999, "miss": 1})
        dist = Simulator(
            seed=6,
            target_ci_width=0.01,
            target_label="hit",
            check_interval=100
        ).run(Experiment.single(space), 20000)

        assert dist.count_of("miss") >= MIN_SETTLED_COUNT

    def test_certain_outcome_runs_to_completion(self):
        dist = Simulator(seed=6, target_ci_width=0.5, check_interval=10).run(
            Experiment.single(OutcomeSpace({"only": 1})), 500
        )

        assert dist.total_trials() == 500

    def test_wall_clock_budget(self, coin):
        dist = Simulator(seed=6, max_seconds=0.001, check_interval=500).run(
            Experiment.repeated(coin, 2, both_heads), 10000000
        )

        assert 0 < dist.total_trials() < 10000000
        assert dist.finalized

    def test_batched_early_stop(self, coin):
        dist = Simulator(
            seed=6,
            workers=2,
            batch_size=1000,
            target_ci_width=0.05
        ).run(Experiment.single(coin), 100000)

        assert dist.total_trials() < 100000
        assert dist.total_trials() % 1000 == 0


class TestSimulateEntryPoint:
    """Test the simulate() entry point"""

    def test_simulate_with_config(self, weighted_space):
        dist = simulate(Experiment.single(weighted_space), 100, SimulatorConfig(seed=1))

        assert isinstance(dist, EmpiricalDistribution)
        assert dist.total_trials() == 100

    def test_simulate_without_options(self, weighted_space):
        dist = simulate(Experiment.single(weighted_space), 100)

        assert dist.total_trials() == 100

    def test_simulate_rejects_bad_options(self, weighted_space):
        with pytest.raises(ConfigurationError):
            simulate(Experiment.single(weighted_space), 100, {"policy": "abort"})
        with pytest.raises(ConfigurationError):
            simulate(Experiment.single(weighted_space), 100, ["seed", 1])
