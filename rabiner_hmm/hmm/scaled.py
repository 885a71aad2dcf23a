"""
Scaled forward-backward for scoring long sequences.

Each forward step is divided by its sum c_t, so the scaled probabilities stay
in a representable range and log P(O | model) = sum_t log c_t. This is kept
apart from the unscaled recursions, whose raw alpha/beta values feed the
posterior estimates.
"""

from typing import Hashable, Iterable, Sequence, Tuple

import numpy as np

from .model import ProbabilityModel
from ..exceptions import ZeroProbabilityEvidenceError
from ..logger import get_hmm_logger

logger = get_hmm_logger()


def forward_backward_scaled(model: ProbabilityModel,
                            sequence: Sequence[Hashable]) -> Tuple[np.ndarray, np.ndarray, np.ndarray, float]:
    """
    Compute forward-backward algorithm with scaling to prevent numerical underflow.

    Args:
        model: HMM parameters
        sequence: Observation sequence drawn from the model's domain

    Returns:
        Tuple of:
        - alpha: Scaled forward probabilities [T, n_states]
        - beta: Scaled backward probabilities [T, n_states]
        - c_scale: Scaling coefficients [T]
        - log_likelihood: Log-likelihood of the observation sequence

    Raises:
        ObservationDomainError: If the sequence contains unknown observations
        ZeroProbabilityEvidenceError: If the sequence is impossible under the model
    """
    observations = model.encode(sequence)
    T = len(observations)

    alpha = np.zeros((T, model.n_states))
    beta = np.zeros((T, model.n_states))
    c_scale = np.zeros(T)

    # Forward pass with scaling
    for t in range(T):
        if t == 0:
            alpha[t] = model.pi * model.B[:, observations[0]]
        else:
            alpha[t] = (alpha[t - 1] @ model.A) * model.B[:, observations[t]]

        c_scale[t] = alpha[t].sum()
        if c_scale[t] == 0:
            raise ZeroProbabilityEvidenceError(
                f"Forward probabilities sum to zero at time {t + 1}", time=t + 1)
        alpha[t] /= c_scale[t]

    # Backward pass, scaled by the coefficient of the following step
    beta[T - 1] = 1.0
    for t in range(T - 2, -1, -1):
        beta[t] = model.A @ (model.B[:, observations[t + 1]] * beta[t + 1])
        beta[t] /= c_scale[t + 1]

    log_likelihood = float(np.sum(np.log(c_scale)))

    logger.debug(f"Scaled forward-backward completed: T={T}, log_likelihood={log_likelihood:.6f}")

    return alpha, beta, c_scale, log_likelihood


def score(model: ProbabilityModel, sequence: Sequence[Hashable]) -> float:
    """
    Compute log-likelihood of observation sequence using the scaled forward pass.

    Returns:
        Log-likelihood of the observation sequence
    """
    _, _, _, log_likelihood = forward_backward_scaled(model, sequence)
    return log_likelihood


def total_log_likelihood(model: ProbabilityModel, corpus: Iterable[Sequence[Hashable]]) -> float:
    """Sum of per-sequence log-likelihoods across a corpus."""
    return float(sum(score(model, sequence) for sequence in corpus))
