"""
Hidden Markov Model module.

Discrete HMM parameters, forward/backward recursions and posterior estimates.
"""

from .model import ProbabilityModel
from .forward_backward import ObservationContext, ForwardBackwardResult
from .posterior import PosteriorEstimator
from .scaled import forward_backward_scaled, score, total_log_likelihood

__all__ = [
    "ProbabilityModel",
    "ObservationContext",
    "ForwardBackwardResult",
    "PosteriorEstimator",
    "forward_backward_scaled",
    "score",
    "total_log_likelihood"
]
