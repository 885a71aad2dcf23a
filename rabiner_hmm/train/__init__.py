"""
Training module.

Single-step Baum-Welch re-estimation over a corpus of observation sequences.
"""

from .baum_welch import (
    BaumWelchTrainer,
    ExpectedCounts,
    ZeroDenominatorPolicy,
    accumulate_sequence,
    train_one_step
)

__all__ = [
    "BaumWelchTrainer",
    "ExpectedCounts",
    "ZeroDenominatorPolicy",
    "accumulate_sequence",
    "train_one_step"
]
