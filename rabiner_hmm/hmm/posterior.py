"""
Posterior state estimates from forward-backward results.

gamma_t(i)   = alpha_t(i) * beta_t(i) / sum_j alpha_t(j) * beta_t(j)
xi_t(i, j)   = alpha_t(i) * a_ij * b_j(o_t+1) * beta_t+1(j) / (sum over all pairs)

Both normalisers vanish when the sequence has zero probability under the
model, and drop into the subnormal range when the unscaled recursions
underflow. Either case is reported as ZeroProbabilityEvidenceError instead
of producing NaN or imprecise posteriors.
"""

from typing import Dict, Hashable, Optional

import numpy as np

from .forward_backward import ForwardBackwardResult
from ..exceptions import TimeIndexError, ZeroProbabilityEvidenceError

# Below this the normaliser is subnormal and alpha*beta has lost its precision
_SMALLEST_NORMAL = np.finfo(float).tiny


class PosteriorEstimator:
    """
    Computes gamma and xi posteriors for one observed sequence.

    Full-sequence matrices are computed on first use and reused by the
    per-time accessors.
    """

    def __init__(self, result: ForwardBackwardResult):
        self.result = result
        self.model = result.model
        self._gamma: Optional[np.ndarray] = None
        self._xi: Optional[np.ndarray] = None

    def gamma(self) -> np.ndarray:
        """
        State-occupation probabilities for every time.

        Returns:
            gamma: [T, n_states], each row sums to 1

        Raises:
            ZeroProbabilityEvidenceError: If alpha*beta sums to zero (or a subnormal
                value) at some time
        """
        if self._gamma is None:
            weights = self.result.alpha * self.result.beta[:-1]
            totals = weights.sum(axis=1)

            zero = np.flatnonzero(totals < _SMALLEST_NORMAL)
            if zero.size:
                time = int(zero[0]) + 1
                raise ZeroProbabilityEvidenceError(
                    f"State occupation at time {time} has zero total probability; the "
                    f"sequence is impossible under the model or underflowed", time=time)

            self._gamma = weights / totals[:, np.newaxis]
        return self._gamma

    def xi(self) -> np.ndarray:
        """
        State-pair transition probabilities for times 1..T-1.

        Returns:
            xi: [T-1, n_states, n_states], each [t] slice sums to 1
                (empty for sequences of length 1)

        Raises:
            ZeroProbabilityEvidenceError: If a time slice sums to zero or underflows
        """
        if self._xi is None:
            T = self.result.length
            n = self.model.n_states
            xi = np.zeros((max(T - 1, 0), n, n))

            for t in range(T - 1):
                xi[t] = self._pair_weights(t)
                total = xi[t].sum()
                if total < _SMALLEST_NORMAL:
                    raise ZeroProbabilityEvidenceError(
                        f"Transition pair occupation at time {t + 1} has zero total "
                        f"probability; the sequence is impossible under the model or "
                        f"underflowed", time=t + 1)
                xi[t] /= total

            self._xi = xi
        return self._xi

    def _pair_weights(self, t: int) -> np.ndarray:
        # t is 0-based here; beta row t+1 is time t+2 in 1-based terms
        model = self.model
        result = self.result
        next_emission = model.B[:, result.observations[t + 1]] * result.beta[t + 1]
        return result.alpha[t][:, np.newaxis] * model.A * next_emission[np.newaxis, :]

    def state_occupation(self, time: int) -> Dict[Hashable, float]:
        """
        Posterior probability of each state at ``time`` given the whole sequence.

        Raises:
            TimeIndexError: If time is outside [1, T]
            ZeroProbabilityEvidenceError: If the normaliser is zero
        """
        if not 1 <= time <= self.result.length:
            raise TimeIndexError(f"state occupation time {time} is outside [1, {self.result.length}]")

        gamma = self.gamma()
        return dict(zip(self.model.states, map(float, gamma[time - 1])))

    def transition_pair_occupation(self, time: int) -> Dict[Hashable, Dict[Hashable, float]]:
        """
        Posterior probability of each (source, target) pair at times
        (``time``, ``time`` + 1), as ``{source: {target: probability}}``.

        Raises:
            TimeIndexError: If time is outside [1, T-1]
            ZeroProbabilityEvidenceError: If the normaliser is zero
        """
        if not 1 <= time <= self.result.length - 1:
            raise TimeIndexError(
                f"transition pair time {time} is outside [1, {self.result.length - 1}]")

        pairs = self.xi()[time - 1]
        states = self.model.states
        return {source: dict(zip(states, map(float, row))) for source, row in zip(states, pairs)}
