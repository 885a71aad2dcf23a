"""
Unscaled forward and backward recursions (Rabiner, 1989).

Time indices are 1-based: an observation sequence of length T has times
1..T, and the backward boundary sits at T+1.

The recursions deliberately do not rescale. Probabilities shrink
geometrically with sequence length and underflow to 0.0 for long sequences;
use :mod:`rabiner_hmm.hmm.scaled` to score such sequences.
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, Optional, Sequence

import numpy as np

from .model import ProbabilityModel
from ..exceptions import TimeIndexError
from ..logger import get_hmm_logger

logger = get_hmm_logger()


@dataclass(frozen=True, eq=False)
class ForwardBackwardResult:
    """
    Forward and backward probabilities for one (model, sequence) pair.

    Attributes:
        model: Model the probabilities were computed under
        observations: Encoded observation indices [T]
        alpha: Forward probabilities [T, n_states]; row t-1 holds time t
        beta: Backward probabilities [T+1, n_states]; row t-1 holds time t,
            the last row is the all-ones boundary at time T+1
    """
    model: ProbabilityModel
    observations: np.ndarray = field(repr=False)
    alpha: np.ndarray = field(repr=False)
    beta: np.ndarray = field(repr=False)

    @property
    def length(self) -> int:
        return len(self.observations)

    @property
    def sequence_probability(self) -> float:
        """P(O | model), the sum of the final forward probabilities."""
        return float(self.alpha[-1].sum())

    def alpha_at(self, time: int) -> Dict[Hashable, float]:
        _check_time(time, self.length, "forward")
        return dict(zip(self.model.states, map(float, self.alpha[time - 1])))

    def beta_at(self, time: int) -> Dict[Hashable, float]:
        _check_time(time, self.length + 1, "backward")
        return dict(zip(self.model.states, map(float, self.beta[time - 1])))


def _check_time(time: int, upper: int, label: str) -> None:
    if not 1 <= time <= upper:
        raise TimeIndexError(f"{label} time {time} is outside [1, {upper}]")


class ObservationContext:
    """
    A model observing one sequence.

    Encodes the sequence once against the model's observation domain and
    exposes the forward/backward recursions over it.
    """

    def __init__(self, model: ProbabilityModel, sequence: Sequence[Hashable]):
        """
        Args:
            model: HMM parameters
            sequence: Non-empty observation sequence drawn from the model's domain

        Raises:
            DomainError: If the sequence is empty
            ObservationDomainError: If an observation is outside the domain
        """
        self.model = model
        self.sequence = list(sequence)
        self.observations = model.encode(self.sequence)

    @property
    def length(self) -> int:
        return len(self.observations)

    def forward_probabilities(self, up_to: Optional[int] = None) -> np.ndarray:
        """
        Run the forward recursion.

        alpha_1(s) = pi(s) * b_s(o_1)
        alpha_t(s) = b_s(o_t) * sum_s' alpha_t-1(s') * a_s's

        Args:
            up_to: Last time to compute (default: T)

        Returns:
            alpha: Forward probabilities [up_to, n_states]
        """
        T = self.length if up_to is None else up_to
        _check_time(T, self.length, "forward")

        model = self.model
        alpha = np.zeros((T, model.n_states))
        alpha[0] = model.pi * model.B[:, self.observations[0]]

        for t in range(1, T):
            alpha[t] = model.B[:, self.observations[t]] * (alpha[t - 1] @ model.A)

        return alpha

    def backward_probabilities(self, down_to: int = 1) -> np.ndarray:
        """
        Run the backward recursion from the boundary at T+1 down to ``down_to``.

        beta_T+1(s) = 1
        beta_T(s) = 1 (no observation follows time T)
        beta_t(s) = sum_s' a_ss' * b_s'(o_t+1) * beta_t+1(s')

        Rows before ``down_to`` are left at zero.

        Returns:
            beta: Backward probabilities [T+1, n_states]
        """
        _check_time(down_to, self.length + 1, "backward")

        model = self.model
        T = self.length
        beta = np.zeros((T + 1, model.n_states))
        beta[T] = 1.0
        if down_to <= T:
            beta[T - 1] = 1.0

        for t in range(T - 2, down_to - 2, -1):
            beta[t] = model.A @ (model.B[:, self.observations[t + 1]] * beta[t + 1])

        return beta

    def forward(self, time: int) -> Dict[Hashable, float]:
        """
        Forward probability of each state at ``time``: the joint probability
        of the first ``time`` observations and being in that state.

        Raises:
            TimeIndexError: If time is outside [1, T]
        """
        _check_time(time, self.length, "forward")
        alpha = self.forward_probabilities(up_to=time)
        return dict(zip(self.model.states, map(float, alpha[time - 1])))

    def backward(self, time: int) -> Dict[Hashable, float]:
        """
        Backward probability of each state at ``time``: the probability of the
        observations after ``time`` given that state.

        Raises:
            TimeIndexError: If time is outside [1, T+1]
        """
        beta = self.backward_probabilities(down_to=time)
        return dict(zip(self.model.states, map(float, beta[time - 1])))

    def calculate_forward_backward(self) -> ForwardBackwardResult:
        """Compute alpha for times 1..T and beta for times 1..T+1."""
        alpha = self.forward_probabilities()
        beta = self.backward_probabilities()

        result = ForwardBackwardResult(self.model, self.observations, alpha, beta)

        logger.debug(f"Forward-backward completed: T={self.length}, "
                     f"P(O)={result.sequence_probability:.6e}")
        return result
