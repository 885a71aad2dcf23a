"""
Unit tests for single-step Baum-Welch re-estimation.
"""

import numpy as np
import pytest

from rabiner_hmm.config import reset_config, set_config
from rabiner_hmm.exceptions import (
    ConfigurationError,
    DomainError,
    EmptyCorpusError,
    ObservationDomainError,
    ZeroDenominatorError,
    ZeroProbabilityEvidenceError,
)
from rabiner_hmm.hmm.model import ProbabilityModel
from rabiner_hmm.hmm.scaled import total_log_likelihood
from rabiner_hmm.train.baum_welch import (
    BaumWelchTrainer,
    ExpectedCounts,
    ZeroDenominatorPolicy,
    accumulate_sequence,
    train_one_step,
)


@pytest.fixture
def unreachable_state_model():
    """State C is never entered: zero initial probability and no incoming transitions."""
    return ProbabilityModel.from_mappings(
        initial={'A': 0.6, 'B': 0.4, 'C': 0.0},
        transitions={
            'A': {'A': 0.5, 'B': 0.5},
            'B': {'A': 0.5, 'B': 0.5},
            'C': {'A': 0.2, 'B': 0.3, 'C': 0.5}
        },
        emissions={
            'A': {'x': 0.7, 'y': 0.3},
            'B': {'x': 0.4, 'y': 0.6},
            'C': {'x': 0.1, 'y': 0.9}
        }
    )


class TestSingleStep:
    """Test re-estimated parameters."""

    def test_example_single_sequence(self, two_state_model):
        new_model = train_one_step(two_state_model, [['x', 'y']])

        np.testing.assert_allclose(new_model.pi, [0.171 / 0.23, 0.059 / 0.23])
        np.testing.assert_allclose(new_model.A, [
            [0.027 / 0.171, 0.144 / 0.171],
            [0.003 / 0.059, 0.056 / 0.059]
        ])
        np.testing.assert_allclose(new_model.B, [
            [0.171 / 0.201, 0.03 / 0.201],
            [0.059 / 0.259, 0.2 / 0.259]
        ])

    def test_returns_new_valid_model(self, weather_model, weather_sequences):
        pi, A, B = weather_model.get_parameters()

        new_model = train_one_step(weather_model, weather_sequences)

        assert new_model is not weather_model
        assert new_model.states == weather_model.states
        assert new_model.observations == weather_model.observations
        assert new_model.validate_stochastic_matrices() is True
        np.testing.assert_array_equal(weather_model.pi, pi)
        np.testing.assert_array_equal(weather_model.A, A)
        np.testing.assert_array_equal(weather_model.B, B)

    def test_initial_distribution_averages_over_corpus(self, two_state_model):
        new_model = train_one_step(two_state_model, [['x'], ['y']])

        expected_a = (0.45 / 0.55 + 0.05 / 0.45) / 2
        assert new_model.initial_probability('A') == pytest.approx(expected_a)
        assert new_model.initial_probability('B') == pytest.approx(1 - expected_a)

    def test_log_likelihood_does_not_decrease(self, weather_model, weather_sequences):
        model = weather_model
        previous = total_log_likelihood(model, weather_sequences)

        for _ in range(5):
            model = train_one_step(model, weather_sequences)
            current = total_log_likelihood(model, weather_sequences)
            assert current >= previous - 1e-9
            previous = current

    def test_integer_domain(self, integer_model):
        corpus = [
            [(0, 'lo'), (0, 'lo'), (2, 'hi'), (2, 'hi')],
            [(1, 'mid'), (2, 'hi'), (0, 'lo')]
        ]

        new_model = train_one_step(integer_model, corpus)

        assert new_model.states == (0, 1)
        np.testing.assert_allclose(new_model.A.sum(axis=1), 1.0)


class TestZeroDenominatorPolicy:
    """Test handling of states with no expected counts."""

    def test_length_one_corpus_keeps_transitions(self, two_state_model):
        new_model = train_one_step(two_state_model, [['x'], ['y']], zero_denominator_policy='keep_prior')

        np.testing.assert_array_equal(new_model.A, two_state_model.A)
        np.testing.assert_allclose(new_model.B.sum(axis=1), 1.0)

    def test_length_one_corpus_uniform(self, two_state_model):
        new_model = train_one_step(two_state_model, [['x']], zero_denominator_policy='uniform')

        np.testing.assert_array_equal(new_model.A, [[0.5, 0.5], [0.5, 0.5]])

    def test_length_one_corpus_raise(self, two_state_model):
        with pytest.raises(ZeroDenominatorError, match="transition"):
            train_one_step(two_state_model, [['x']], zero_denominator_policy=ZeroDenominatorPolicy.RAISE)

    def test_unreachable_state_keeps_prior(self, unreachable_state_model):
        new_model = train_one_step(unreachable_state_model, [['x', 'y', 'x']])

        c = unreachable_state_model.state_index('C')
        np.testing.assert_array_equal(new_model.A[c], unreachable_state_model.A[c])
        np.testing.assert_array_equal(new_model.B[c], unreachable_state_model.B[c])
        assert new_model.initial_probability('C') == 0.0

    def test_unreachable_state_uniform(self, unreachable_state_model):
        new_model = train_one_step(unreachable_state_model, [['x', 'y', 'x']], zero_denominator_policy='uniform')

        c = unreachable_state_model.state_index('C')
        np.testing.assert_allclose(new_model.A[c], 1.0 / 3)
        np.testing.assert_allclose(new_model.B[c], 0.5)

    def test_policy_from_config(self, unreachable_state_model):
        set_config('hmm', 'zero_denominator_policy', 'raise')

        with pytest.raises(ZeroDenominatorError, match="'C'"):
            train_one_step(unreachable_state_model, [['x', 'y', 'x']])

    def test_invalid_policy(self):
        with pytest.raises(ConfigurationError, match="keep_prior, uniform, raise"):
            BaumWelchTrainer('ignore')

    def test_invalid_policy_from_environment(self, monkeypatch, two_state_model):
        monkeypatch.setenv('RABINER_HMM_ZERO_DENOMINATOR_POLICY', 'drop')
        reset_config()

        with pytest.raises(ConfigurationError, match="hmm.zero_denominator_policy 'drop'"):
            train_one_step(two_state_model, [['x', 'y']])


class TestCorpusValidation:
    """Test errors surfaced to the caller."""

    def test_empty_corpus(self, two_state_model):
        with pytest.raises(EmptyCorpusError):
            train_one_step(two_state_model, [])

    def test_empty_sequence(self, two_state_model):
        with pytest.raises(DomainError):
            train_one_step(two_state_model, [['x'], []])

    def test_unknown_observation(self, two_state_model):
        with pytest.raises(ObservationDomainError):
            train_one_step(two_state_model, [['x', 'y'], ['x', 'z']])

    def test_zero_probability_sequence_names_index(self):
        model = ProbabilityModel(['A'], ['x', 'y'], [1.0], [[1.0]], [[1.0, 0.0]])

        with pytest.raises(ZeroProbabilityEvidenceError, match="Sequence 1"):
            train_one_step(model, [['x'], ['x', 'y']])

    def test_subnormal_evidence_names_index(self, two_state_model):
        corpus = [['x', 'y'], ['x', 'y'] * 444]

        with pytest.raises(ZeroProbabilityEvidenceError, match="Sequence 1"):
            train_one_step(two_state_model, corpus)


class TestExpectedCounts:
    """Test accumulation and merging of expected counts."""

    def test_accumulators_for_example(self, two_state_model):
        counts = accumulate_sequence(two_state_model, ['x', 'y'])

        assert counts.n_sequences == 1
        np.testing.assert_allclose(counts.initial, [0.171 / 0.23, 0.059 / 0.23])
        np.testing.assert_allclose(counts.outgoing, [0.171 / 0.23, 0.059 / 0.23])
        np.testing.assert_allclose(counts.occupation, [0.201 / 0.23, 0.259 / 0.23])
        np.testing.assert_allclose(counts.emitting, [
            [0.171 / 0.23, 0.03 / 0.23],
            [0.059 / 0.23, 0.2 / 0.23]
        ])

    def test_last_step_excluded_from_outgoing(self, weather_model, weather_sequences):
        sequence = weather_sequences[0]
        counts = accumulate_sequence(weather_model, sequence)

        assert counts.outgoing.sum() == pytest.approx(len(sequence) - 1)
        assert counts.occupation.sum() == pytest.approx(len(sequence))
        assert counts.transitions.sum() == pytest.approx(len(sequence) - 1)

    def test_merge_is_order_independent(self, weather_model, weather_sequences):
        partials = [accumulate_sequence(weather_model, seq) for seq in weather_sequences]
        combined = ExpectedCounts.for_model(weather_model)
        for sequence in weather_sequences:
            combined.accumulate_sequence(weather_model, sequence)

        forward = partials[0] + partials[1] + partials[2] + partials[3]
        backward = partials[3].merge(partials[2].merge(partials[1].merge(partials[0])))

        for merged in (forward, backward):
            assert merged.n_sequences == combined.n_sequences
            np.testing.assert_allclose(merged.initial, combined.initial)
            np.testing.assert_allclose(merged.transitions, combined.transitions)
            np.testing.assert_allclose(merged.outgoing, combined.outgoing)
            np.testing.assert_allclose(merged.occupation, combined.occupation)
            np.testing.assert_allclose(merged.emitting, combined.emitting)

    def test_merged_counts_give_same_model(self, weather_model, weather_sequences):
        partials = [accumulate_sequence(weather_model, seq) for seq in weather_sequences]
        merged = partials[2] + partials[0] + partials[3] + partials[1]

        via_merge = merged.to_model(weather_model)
        direct = train_one_step(weather_model, weather_sequences)

        np.testing.assert_allclose(via_merge.pi, direct.pi)
        np.testing.assert_allclose(via_merge.A, direct.A)
        np.testing.assert_allclose(via_merge.B, direct.B)

    def test_merge_shape_mismatch(self, two_state_model, weather_model):
        with pytest.raises(ValueError, match="Cannot merge"):
            ExpectedCounts.for_model(two_state_model).merge(ExpectedCounts.for_model(weather_model))

    def test_empty_counts_cannot_normalise(self, two_state_model):
        with pytest.raises(EmptyCorpusError):
            ExpectedCounts.for_model(two_state_model).to_model(two_state_model)
