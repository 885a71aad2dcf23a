"""
Immutable discrete Hidden Markov Model parameters.

A ProbabilityModel fixes a finite state domain and a finite observation
domain and holds the initial distribution, the state-transition table and
the emission table as dense arrays indexed over those domains. Re-estimation
never mutates a model; it builds a new one.
"""

import numpy as np
from typing import Any, Dict, Hashable, Iterable, Mapping, Optional, Sequence, Tuple
import logging

from ..config import get_config
from ..exceptions import MalformedDistributionError, ObservationDomainError, DomainError

logger = logging.getLogger(__name__)


def _as_domain(values: Iterable[Hashable], name: str) -> Tuple[Hashable, ...]:
    domain = tuple(values)
    if not domain:
        raise MalformedDistributionError(f"{name} domain must not be empty")
    if len(set(domain)) != len(domain):
        raise MalformedDistributionError(f"{name} domain contains duplicate values")
    return domain


def _check_rows(matrix: np.ndarray, label: str, tolerance: float) -> None:
    """
    Check that every row of ``matrix`` is a probability distribution.

    Raises:
        MalformedDistributionError: On non-finite or negative entries, or a row
            whose sum differs from 1 beyond ``tolerance`` (relative).
    """
    if not np.all(np.isfinite(matrix)):
        raise MalformedDistributionError(f"{label} contains non-finite values")

    row_sums = matrix.sum(axis=-1)
    if not np.allclose(row_sums, 1.0, rtol=tolerance, atol=tolerance):
        if matrix.ndim == 1:
            raise MalformedDistributionError(f"{label} sum to {row_sums}, expected 1.0")
        raise MalformedDistributionError(f"{label} rows don't sum to 1.0: {row_sums}")

    if np.any(matrix < 0):
        raise MalformedDistributionError(f"{label} contains negative values")


class ProbabilityModel:
    """
    Discrete HMM parameter set over arbitrary hashable states and observations.

    Parameters are stored as read-only arrays:
    - pi: initial state probabilities [n_states]
    - A: transition matrix [n_states, n_states] where A[i,j] = P(q_t+1=j | q_t=i)
    - B: emission matrix [n_states, n_observations] where B[i,k] = P(o_t=k | q_t=i)

    Row ``i`` of A and B belongs to ``states[i]``; column ``k`` of B belongs to
    ``observations[k]``.
    """

    def __init__(self,
                 states: Iterable[Hashable],
                 observations: Iterable[Hashable],
                 pi: Any,
                 A: Any,
                 B: Any,
                 tolerance: Optional[float] = None):
        """
        Build and validate a model.

        Args:
            states: Ordered, non-empty state domain
            observations: Ordered, non-empty observation domain
            pi: Initial state probabilities [n_states]
            A: Transition matrix [n_states, n_states]
            B: Emission matrix [n_states, n_observations]
            tolerance: Relative tolerance for the sum-to-one checks
                (default: ``hmm.tolerance`` from config)

        Raises:
            MalformedDistributionError: If a domain is empty or has duplicates,
                a parameter has the wrong shape, or a distribution is malformed
        """
        self._states = _as_domain(states, "State")
        self._observations = _as_domain(observations, "Observation")
        self._state_index = {state: i for i, state in enumerate(self._states)}
        self._observation_index = {obs: k for k, obs in enumerate(self._observations)}

        if tolerance is None:
            tolerance = get_config('hmm', 'tolerance') or 1e-9
        self.tolerance = float(tolerance)

        n, m = len(self._states), len(self._observations)
        self._pi = self._frozen_array(pi, (n,), "pi")
        self._A = self._frozen_array(A, (n, n), "A")
        self._B = self._frozen_array(B, (n, m), "B")

        self.validate_stochastic_matrices()

        logger.debug(f"Built ProbabilityModel with {n} states and {m} observations")

    @staticmethod
    def _frozen_array(values: Any, shape: Tuple[int, ...], name: str) -> np.ndarray:
        array = np.array(values, dtype=float)
        if array.shape != shape:
            raise MalformedDistributionError(f"{name} shape {array.shape} doesn't match expected {shape}")
        array.setflags(write=False)
        return array

    @classmethod
    def from_mappings(cls,
                      initial: Mapping[Hashable, float],
                      transitions: Mapping[Hashable, Mapping[Hashable, float]],
                      emissions: Mapping[Hashable, Mapping[Hashable, float]],
                      observations: Optional[Sequence[Hashable]] = None,
                      tolerance: Optional[float] = None) -> 'ProbabilityModel':
        """
        Build a model from nested probability mappings.

        The state domain is taken from ``initial`` in its iteration order. The
        observation domain is ``observations`` when given, otherwise every
        emission target key in first-seen order. Target keys left out of a
        distribution have probability 0.

        Raises:
            MalformedDistributionError: If the source keys of either table differ
                from the state domain, a target key lies outside its domain, or
                a distribution is malformed
        """
        states = _as_domain(initial.keys(), "State")

        if observations is None:
            seen = {}
            for state in states:
                for obs in emissions.get(state, {}):
                    seen.setdefault(obs, None)
            observations = tuple(seen)
        observations = _as_domain(observations, "Observation")

        for label, table in (("Transition", transitions), ("Emission", emissions)):
            if set(table.keys()) != set(states):
                raise MalformedDistributionError(
                    f"{label} table source keys {sorted(map(repr, table.keys()))} "
                    f"don't match states {sorted(map(repr, states))}")

        state_index = {state: i for i, state in enumerate(states)}
        observation_index = {obs: k for k, obs in enumerate(observations)}

        def dense(rows: Mapping[Hashable, Mapping[Hashable, float]],
                  index: Dict[Hashable, int], label: str) -> np.ndarray:
            matrix = np.zeros((len(states), len(index)))
            for source, distribution in rows.items():
                for target, probability in distribution.items():
                    if target not in index:
                        raise MalformedDistributionError(
                            f"{label} target {target!r} of {source!r} is outside the declared domain")
                    matrix[state_index[source], index[target]] = probability
            return matrix

        pi = np.array([initial[state] for state in states], dtype=float)
        A = dense(transitions, state_index, "Transition")
        B = dense(emissions, observation_index, "Emission")

        return cls(states, observations, pi, A, B, tolerance=tolerance)

    @classmethod
    def random(cls,
               states: Iterable[Hashable],
               observations: Iterable[Hashable],
               random_state: Optional[int] = None) -> 'ProbabilityModel':
        """
        Build a strictly positive model with uniform initial probabilities and
        random stochastic transition/emission rows.

        Args:
            states: State domain
            observations: Observation domain
            random_state: Random seed for reproducible initialization
        """
        states = _as_domain(states, "State")
        observations = _as_domain(observations, "Observation")
        rng = np.random.default_rng(random_state)

        pi = np.ones(len(states)) / len(states)

        # Shift away from zero so every parameter stays strictly positive
        A = rng.random((len(states), len(states))) + 0.05
        A = A / A.sum(axis=1, keepdims=True)

        B = rng.random((len(states), len(observations))) + 0.05
        B = B / B.sum(axis=1, keepdims=True)

        return cls(states, observations, pi, A, B)

    @property
    def states(self) -> Tuple[Hashable, ...]:
        return self._states

    @property
    def observations(self) -> Tuple[Hashable, ...]:
        return self._observations

    @property
    def n_states(self) -> int:
        return len(self._states)

    @property
    def n_observations(self) -> int:
        return len(self._observations)

    @property
    def pi(self) -> np.ndarray:
        return self._pi

    @property
    def A(self) -> np.ndarray:
        return self._A

    @property
    def B(self) -> np.ndarray:
        return self._B

    def validate_stochastic_matrices(self) -> bool:
        """
        Validate that all probability matrices satisfy stochastic properties.

        Returns:
            bool: True if all matrices are valid stochastic matrices

        Raises:
            MalformedDistributionError: If any matrix violates stochastic properties
        """
        _check_rows(self._pi, "Initial probabilities", self.tolerance)
        _check_rows(self._A, "Transition matrix", self.tolerance)
        _check_rows(self._B, "Emission matrix", self.tolerance)
        return True

    def get_parameters(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Get writable copies of the model parameters.

        Returns:
            Tuple of (pi, A, B) parameters
        """
        return self._pi.copy(), self._A.copy(), self._B.copy()

    def with_parameters(self, pi: Any, A: Any, B: Any) -> 'ProbabilityModel':
        """Build a new model over the same domains with different parameters."""
        return type(self)(self._states, self._observations, pi, A, B, tolerance=self.tolerance)

    def state_index(self, state: Hashable) -> int:
        try:
            return self._state_index[state]
        except KeyError:
            raise DomainError(f"Unknown state {state!r}") from None

    def observation_index(self, observation: Hashable) -> int:
        try:
            return self._observation_index[observation]
        except KeyError:
            raise ObservationDomainError(
                f"Observation {observation!r} is not in the model's observation domain") from None

    def encode(self, sequence: Sequence[Hashable]) -> np.ndarray:
        """
        Translate an observation sequence into observation indices.

        Raises:
            DomainError: If the sequence is empty
            ObservationDomainError: If an observation is outside the domain
        """
        if len(sequence) == 0:
            raise DomainError("Observation sequence must contain at least one observation")

        indices = np.empty(len(sequence), dtype=int)
        for t, observation in enumerate(sequence):
            try:
                indices[t] = self._observation_index[observation]
            except KeyError:
                raise ObservationDomainError(
                    f"Observation {observation!r} at time {t + 1} is not in the model's "
                    f"observation domain") from None
        return indices

    def initial_probability(self, state: Hashable) -> float:
        return float(self._pi[self.state_index(state)])

    def transition_probability(self, source: Hashable, target: Hashable) -> float:
        return float(self._A[self.state_index(source), self.state_index(target)])

    def emission_probability(self, state: Hashable, observation: Hashable) -> float:
        return float(self._B[self.state_index(state), self.observation_index(observation)])

    def initial_distribution(self) -> Dict[Hashable, float]:
        return {state: float(p) for state, p in zip(self._states, self._pi)}

    def transition_table(self) -> Dict[Hashable, Dict[Hashable, float]]:
        return {source: dict(zip(self._states, map(float, row)))
                for source, row in zip(self._states, self._A)}

    def emission_table(self) -> Dict[Hashable, Dict[Hashable, float]]:
        return {source: dict(zip(self._observations, map(float, row)))
                for source, row in zip(self._states, self._B)}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProbabilityModel):
            return NotImplemented
        return (self._states == other._states
                and self._observations == other._observations
                and np.array_equal(self._pi, other._pi)
                and np.array_equal(self._A, other._A)
                and np.array_equal(self._B, other._B))

    __hash__ = None

    def __repr__(self) -> str:
        """String representation of the HMM."""
        return f"ProbabilityModel(n_states={self.n_states}, n_observations={self.n_observations})"
