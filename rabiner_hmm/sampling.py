"""
Weighted sampling and synthetic sequence generation.

Items are laid out on [0, 1) in ascending order of probability, each owning
the half-open interval [cum_lo, cum_hi). An offset drawn uniformly from
[0, 1) therefore selects an item with its probability.
"""

from typing import Hashable, List, Optional, Sequence, Tuple

import numpy as np

from .config import get_config
from .exceptions import DomainError, MalformedDistributionError, OffsetOutOfRangeError
from .hmm.model import ProbabilityModel
from .logger import get_sampling_logger

logger = get_sampling_logger()


def select_state_at_offset(items_with_probability: Sequence[Tuple[Hashable, float]], offset: float) -> Hashable:
    """
    Pick the item whose cumulative-probability interval contains ``offset``.

    Args:
        items_with_probability: (item, probability) pairs covering a full distribution
        offset: Position in [0, 1)

    Returns:
        The selected item

    Raises:
        OffsetOutOfRangeError: If offset lies outside [0, 1)
        MalformedDistributionError: If no item has a positive probability
    """
    if not 0.0 <= offset < 1.0:
        raise OffsetOutOfRangeError(f"Offset {offset} must lie in [0, 1)")

    # sorted() is stable, so equal probabilities keep their given order
    ordered = sorted(items_with_probability, key=lambda pair: pair[1])

    lower = 0.0
    last_selectable = None
    for item, probability in ordered:
        if probability <= 0:
            continue
        upper = lower + probability
        if lower <= offset < upper:
            return item
        lower = upper
        last_selectable = item

    if last_selectable is None:
        raise MalformedDistributionError("Distribution has no item with positive probability")

    # Rounding left the cumulative total just below the offset
    return last_selectable


def _sample(model: ProbabilityModel, length: int, rng: np.random.Generator) -> Tuple[List[Hashable], List[Hashable]]:
    initial = list(model.initial_distribution().items())
    transitions = {s: list(row.items()) for s, row in model.transition_table().items()}
    emissions = {s: list(row.items()) for s, row in model.emission_table().items()}

    states = []
    observations = []
    state = select_state_at_offset(initial, rng.random())
    for t in range(length):
        states.append(state)
        observations.append(select_state_at_offset(emissions[state], rng.random()))
        if t < length - 1:
            state = select_state_at_offset(transitions[state], rng.random())

    return states, observations


def sample_sequence(model: ProbabilityModel,
                    length: int,
                    random_state: Optional[int] = None) -> Tuple[List[Hashable], List[Hashable]]:
    """
    Generate a hidden state path and its observations from ``model``.

    Args:
        model: Generating model
        length: Number of time steps (>= 1)
        random_state: Random seed (default: ``sampling.random_seed`` from config;
            unseeded when that is unset)

    Returns:
        Tuple of (states, observations), each of length ``length``
    """
    if length < 1:
        raise DomainError(f"Sequence length must be at least 1, got {length}")

    if random_state is None:
        random_state = get_config('sampling', 'random_seed')

    return _sample(model, length, np.random.default_rng(random_state))


def sample_corpus(model: ProbabilityModel,
                  n_sequences: int,
                  length: int,
                  random_state: Optional[int] = None) -> List[List[Hashable]]:
    """
    Generate ``n_sequences`` observation sequences of equal ``length``.

    Args:
        model: Generating model
        n_sequences: Number of sequences (>= 1)
        length: Length of every sequence (>= 1)
        random_state: Random seed (default: ``sampling.random_seed`` from config;
            unseeded when that is unset)

    Returns:
        List of observation sequences
    """
    if n_sequences < 1:
        raise DomainError(f"Corpus must contain at least one sequence, got {n_sequences}")
    if length < 1:
        raise DomainError(f"Sequence length must be at least 1, got {length}")

    if random_state is None:
        random_state = get_config('sampling', 'random_seed')
    rng = np.random.default_rng(random_state)

    corpus = [_sample(model, length, rng)[1] for _ in range(n_sequences)]

    logger.debug(f"Sampled {n_sequences} sequences of length {length} from {model!r}")
    return corpus
