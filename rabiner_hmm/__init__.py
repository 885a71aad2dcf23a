"""
RabinerHMM: Baum-Welch parameter estimation for discrete Hidden Markov Models

Forward/backward recursions, gamma/xi posteriors and single-step Baum-Welch
re-estimation over arbitrary hashable state and observation domains,
following Rabiner's tutorial formulation.
"""

__version__ = "0.1.0"
__author__ = "RabinerHMM Development Team"

from .config import get_config, set_config
from .logger import get_logger
from .hmm import ProbabilityModel, ObservationContext, ForwardBackwardResult, PosteriorEstimator
from .train import BaumWelchTrainer, ExpectedCounts, ZeroDenominatorPolicy, train_one_step

__all__ = [
    "get_config",
    "set_config",
    "get_logger",
    "ProbabilityModel",
    "ObservationContext",
    "ForwardBackwardResult",
    "PosteriorEstimator",
    "BaumWelchTrainer",
    "ExpectedCounts",
    "ZeroDenominatorPolicy",
    "train_one_step",
    "__version__"
]
