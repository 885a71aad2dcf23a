"""
One Baum-Welch (EM) re-estimation step for discrete HMMs.

Every sequence of the corpus contributes expected counts computed from its
gamma and xi posteriors; the counts are summed across the corpus and then
normalised into a new ProbabilityModel:

    pi_i  = sum over sequences of gamma_1(i) / |corpus|
    a_ij  = sum_t<T xi_t(i, j) / sum_t<T gamma_t(i)
    b_ik  = sum_t:o_t=k gamma_t(i) / sum_t gamma_t(i)

Iterating to convergence is left to the caller.
"""

from enum import Enum
from typing import Hashable, Optional, Sequence, Union

import numpy as np

from ..config import get_config
from ..exceptions import (
    ConfigurationError,
    EmptyCorpusError,
    ZeroDenominatorError,
    ZeroProbabilityEvidenceError,
)
from ..hmm.forward_backward import ObservationContext
from ..hmm.model import ProbabilityModel
from ..hmm.posterior import PosteriorEstimator
from ..logger import get_training_logger

logger = get_training_logger()


class ZeroDenominatorPolicy(Enum):
    """What to do with a row whose expected-count denominator is zero."""

    KEEP_PRIOR = 'keep_prior'
    UNIFORM = 'uniform'
    RAISE = 'raise'

    @classmethod
    def resolve(cls, policy: Union['ZeroDenominatorPolicy', str, None]) -> 'ZeroDenominatorPolicy':
        """
        Turn a policy, its string value or None (read ``hmm.zero_denominator_policy``
        from config) into a ZeroDenominatorPolicy.

        Raises:
            ConfigurationError: If the value names no policy
        """
        source = "zero_denominator_policy argument"
        if policy is None:
            source = "config key hmm.zero_denominator_policy"
            policy = get_config('hmm', 'zero_denominator_policy') or cls.KEEP_PRIOR.value

        try:
            return cls(policy)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ConfigurationError(
                f"Invalid {source} {policy!r}; expected one of: {allowed}") from None


class ExpectedCounts:
    """
    Expected-count accumulators for one training step.

    All arrays are dense over the model's domains:
    - initial: expected occupation at time 1 [n_states]
    - transitions: expected i -> j transitions [n_states, n_states]
    - outgoing: expected occupation over times 1..T-1 [n_states]
    - occupation: expected occupation over times 1..T [n_states]
    - emitting: expected occupation while emitting k [n_states, n_observations]

    Counts from different sequences combine by elementwise addition, so
    partial counts can be merged in any order.
    """

    def __init__(self, n_states: int, n_observations: int):
        self.n_states = n_states
        self.n_observations = n_observations
        self.n_sequences = 0

        self.initial = np.zeros(n_states)
        self.transitions = np.zeros((n_states, n_states))
        self.outgoing = np.zeros(n_states)
        self.occupation = np.zeros(n_states)
        self.emitting = np.zeros((n_states, n_observations))

    @classmethod
    def for_model(cls, model: ProbabilityModel) -> 'ExpectedCounts':
        return cls(model.n_states, model.n_observations)

    def accumulate_sequence(self, model: ProbabilityModel, sequence: Sequence[Hashable]) -> float:
        """
        Add the expected counts of one observation sequence.

        Args:
            model: Current model parameters
            sequence: Non-empty observation sequence

        Returns:
            Probability of the sequence under ``model``

        Raises:
            ObservationDomainError: If the sequence contains unknown observations
            ZeroProbabilityEvidenceError: If the sequence is impossible under the model
        """
        result = ObservationContext(model, sequence).calculate_forward_backward()
        estimator = PosteriorEstimator(result)
        gamma = estimator.gamma()
        xi = estimator.xi()
        observations = result.observations

        self.initial += gamma[0]

        # Transitions only count up to T-1; the last step has no successor
        self.transitions += xi.sum(axis=0)
        self.outgoing += gamma[:-1].sum(axis=0)

        self.occupation += gamma.sum(axis=0)
        for k in np.unique(observations):
            mask = (observations == k)
            self.emitting[:, k] += gamma[mask].sum(axis=0)

        self.n_sequences += 1
        return result.sequence_probability

    def merge(self, other: 'ExpectedCounts') -> 'ExpectedCounts':
        """Return the elementwise sum of two accumulators."""
        if (self.n_states, self.n_observations) != (other.n_states, other.n_observations):
            raise ValueError(
                f"Cannot merge counts of shape ({self.n_states}, {self.n_observations}) with "
                f"({other.n_states}, {other.n_observations})")

        merged = ExpectedCounts(self.n_states, self.n_observations)
        merged.n_sequences = self.n_sequences + other.n_sequences
        merged.initial = self.initial + other.initial
        merged.transitions = self.transitions + other.transitions
        merged.outgoing = self.outgoing + other.outgoing
        merged.occupation = self.occupation + other.occupation
        merged.emitting = self.emitting + other.emitting
        return merged

    __add__ = merge

    def to_model(self,
                 current: ProbabilityModel,
                 policy: Union[ZeroDenominatorPolicy, str, None] = None) -> ProbabilityModel:
        """
        Normalise the accumulated counts into new model parameters.

        Args:
            current: Model the counts were computed under; supplies the domains
                and the prior rows for the ``keep_prior`` policy
            policy: Handling of zero denominators (default: from config)

        Returns:
            New ProbabilityModel

        Raises:
            EmptyCorpusError: If no sequence has been accumulated
            ZeroDenominatorError: On a zero denominator under the ``raise`` policy
        """
        if self.n_sequences == 0:
            raise EmptyCorpusError("Cannot re-estimate parameters from an empty corpus")

        policy = ZeroDenominatorPolicy.resolve(policy)

        pi_new = self.initial / self.n_sequences
        A_new = self._normalise_rows(self.transitions, self.outgoing, current.A,
                                     current.states, "transition", policy)
        B_new = self._normalise_rows(self.emitting, self.occupation, current.B,
                                     current.states, "emission", policy)

        return current.with_parameters(pi_new, A_new, B_new)

    @staticmethod
    def _normalise_rows(numerator: np.ndarray,
                        denominator: np.ndarray,
                        prior: np.ndarray,
                        states: Sequence[Hashable],
                        label: str,
                        policy: ZeroDenominatorPolicy) -> np.ndarray:
        rows = np.zeros_like(numerator)

        for i, state in enumerate(states):
            if denominator[i] > 0:
                rows[i] = numerator[i] / denominator[i]
                continue

            if policy is ZeroDenominatorPolicy.RAISE:
                raise ZeroDenominatorError(
                    f"State {state!r} has zero expected {label} count across the corpus")

            if policy is ZeroDenominatorPolicy.UNIFORM:
                rows[i] = 1.0 / numerator.shape[1]
            else:
                rows[i] = prior[i]

            logger.warning(f"State {state!r} has zero expected {label} count; "
                           f"applying '{policy.value}' fallback")

        return rows


class BaumWelchTrainer:
    """
    Single-step Baum-Welch re-estimation over a corpus of sequences.

    Holds the zero-denominator policy; each call to ``train_one_step`` is
    independent and returns a new model.
    """

    def __init__(self, zero_denominator_policy: Union[ZeroDenominatorPolicy, str, None] = None):
        """
        Args:
            zero_denominator_policy: 'keep_prior', 'uniform' or 'raise'
                (default: ``hmm.zero_denominator_policy`` from config)
        """
        self.zero_denominator_policy = ZeroDenominatorPolicy.resolve(zero_denominator_policy)

    def accumulate(self, model: ProbabilityModel, corpus: Sequence[Sequence[Hashable]]) -> ExpectedCounts:
        """
        Accumulate expected counts for every sequence of ``corpus``.

        Raises:
            EmptyCorpusError: If the corpus is empty
            ZeroProbabilityEvidenceError: If a sequence is impossible under the
                model; the message names the sequence index
        """
        if len(corpus) == 0:
            raise EmptyCorpusError("Training corpus cannot be empty")

        # Validate all sequences before any work is done
        for sequence in corpus:
            model.encode(sequence)

        counts = ExpectedCounts.for_model(model)
        for seq_idx, sequence in enumerate(corpus):
            try:
                probability = counts.accumulate_sequence(model, sequence)
            except ZeroProbabilityEvidenceError as e:
                raise ZeroProbabilityEvidenceError(f"Sequence {seq_idx}: {e}", time=e.time) from e

            logger.debug(f"Sequence {seq_idx}: T={len(sequence)}, P(O)={probability:.6e}")

        return counts

    def train_one_step(self, model: ProbabilityModel, corpus: Sequence[Sequence[Hashable]]) -> ProbabilityModel:
        """
        Run one EM iteration.

        Args:
            model: Current model parameters
            corpus: Non-empty list of non-empty observation sequences

        Returns:
            Re-estimated ProbabilityModel
        """
        logger.info(f"Re-estimating {model!r} from {len(corpus)} sequences")

        counts = self.accumulate(model, corpus)
        new_model = counts.to_model(model, self.zero_denominator_policy)

        logger.debug("Baum-Welch step completed")
        return new_model


def accumulate_sequence(model: ProbabilityModel,
                        sequence: Sequence[Hashable],
                        counts: Optional[ExpectedCounts] = None) -> ExpectedCounts:
    """Expected counts of a single sequence, added to ``counts`` when given."""
    if counts is None:
        counts = ExpectedCounts.for_model(model)
    counts.accumulate_sequence(model, sequence)
    return counts


def train_one_step(model: ProbabilityModel,
                   corpus: Sequence[Sequence[Hashable]],
                   zero_denominator_policy: Union[ZeroDenominatorPolicy, str, None] = None) -> ProbabilityModel:
    """
    Re-estimate ``model`` from ``corpus`` with one Baum-Welch step.

    Raises:
        EmptyCorpusError: If the corpus is empty
        DomainError: If a sequence is empty
        ObservationDomainError: If a sequence contains unknown observations
        ZeroProbabilityEvidenceError: If a sequence is impossible under the model
        ZeroDenominatorError: On a zero denominator under the ``raise`` policy
    """
    return BaumWelchTrainer(zero_denominator_policy).train_one_step(model, corpus)
