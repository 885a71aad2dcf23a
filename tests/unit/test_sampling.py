"""
Unit tests for weighted sampling and synthetic corpora.
"""

import pytest

from rabiner_hmm.config import set_config
from rabiner_hmm.exceptions import DomainError, MalformedDistributionError, OffsetOutOfRangeError
from rabiner_hmm.hmm.model import ProbabilityModel
from rabiner_hmm.sampling import sample_corpus, sample_sequence, select_state_at_offset


class TestSelectStateAtOffset:
    """Test the cumulative-interval lookup."""

    @pytest.fixture
    def tiles(self):
        return [('red', 0.2), ('green', 0.6), ('blue', 0.2)]

    @pytest.mark.parametrize("offset,expected", [
        (0.0, 'red'),
        (0.1, 'red'),
        (0.3, 'blue'),
        (0.4, 'green'),
        (0.5, 'green'),
        (0.99, 'green'),
    ])
    def test_intervals_in_ascending_probability(self, tiles, offset, expected):
        assert select_state_at_offset(tiles, offset) == expected

    @pytest.mark.parametrize("offset", [-0.1, 1.0, 1.5])
    def test_offset_out_of_range(self, tiles, offset):
        with pytest.raises(OffsetOutOfRangeError):
            select_state_at_offset(tiles, offset)

    def test_zero_probability_items_are_skipped(self):
        items = [('never', 0.0), ('always', 1.0)]

        assert select_state_at_offset(items, 0.0) == 'always'

    def test_rounding_shortfall_selects_last_item(self):
        items = [('a', 0.3), ('b', 0.3), ('c', 0.3999999999)]

        assert select_state_at_offset(items, 0.99999999999) == 'c'

    def test_no_positive_probability(self):
        with pytest.raises(MalformedDistributionError):
            select_state_at_offset([('a', 0.0)], 0.5)


class TestSampleSequence:
    """Test generating sequences from a model."""

    def test_lengths_and_domains(self, weather_model):
        states, observations = sample_sequence(weather_model, 25, random_state=3)

        assert len(states) == 25
        assert len(observations) == 25
        assert set(states) <= set(weather_model.states)
        assert set(observations) <= set(weather_model.observations)

    def test_reproducible(self, weather_model):
        assert sample_sequence(weather_model, 10, random_state=5) == sample_sequence(weather_model, 10, random_state=5)

    def test_seed_from_config(self, weather_model):
        set_config('sampling', 'random_seed', 9)

        assert sample_sequence(weather_model, 10) == sample_sequence(weather_model, 10, random_state=9)

    def test_unseeded_by_default(self, weather_model):
        first = sample_sequence(weather_model, 200)[1]
        second = sample_sequence(weather_model, 200)[1]

        assert first != second

    def test_deterministic_model(self):
        model = ProbabilityModel.from_mappings(
            initial={'A': 1.0, 'B': 0.0},
            transitions={'A': {'B': 1.0}, 'B': {'A': 1.0}},
            emissions={'A': {'x': 1.0}, 'B': {'y': 1.0}}
        )

        states, observations = sample_sequence(model, 4)

        assert states == ['A', 'B', 'A', 'B']
        assert observations == ['x', 'y', 'x', 'y']

    def test_invalid_length(self, weather_model):
        with pytest.raises(DomainError):
            sample_sequence(weather_model, 0)


class TestSampleCorpus:
    """Test generating corpora."""

    def test_shape(self, integer_model):
        corpus = sample_corpus(integer_model, n_sequences=4, length=6, random_state=11)

        assert len(corpus) == 4
        assert all(len(sequence) == 6 for sequence in corpus)
        assert all(obs in integer_model.observations for sequence in corpus for obs in sequence)

    def test_invalid_size(self, integer_model):
        with pytest.raises(DomainError):
            sample_corpus(integer_model, n_sequences=0, length=3)
