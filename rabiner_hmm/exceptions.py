"""
Exception hierarchy for RabinerHMM system.
"""


class RabinerHMMError(Exception):
    """Base exception for RabinerHMM system."""
    pass


class MalformedDistributionError(RabinerHMMError, ValueError):
    """Probability distribution does not sum to 1 over its declared domain."""
    pass


class DomainError(RabinerHMMError, ValueError):
    """Index or value outside the domain an operation accepts."""
    pass


class TimeIndexError(DomainError):
    """Time index outside the valid range for an observation sequence."""
    pass


class ObservationDomainError(DomainError):
    """Observation not declared in the model's observation domain."""
    pass


class OffsetOutOfRangeError(DomainError):
    """Sampling offset outside [0, 1)."""
    pass


class ZeroProbabilityEvidenceError(RabinerHMMError):
    """Observation sequence has zero probability under the current model."""

    def __init__(self, message: str, time: int = None):
        self.time = time
        super().__init__(message)


class ModelTrainingError(RabinerHMMError):
    """Baum-Welch re-estimation failures."""
    pass


class EmptyCorpusError(ModelTrainingError):
    """Training corpus contains no sequences."""
    pass


class ZeroDenominatorError(ModelTrainingError):
    """Expected-count denominator is zero and the policy forbids a fallback."""
    pass


class ConfigurationError(RabinerHMMError, ValueError):
    """Setting value outside the values an option accepts."""
    pass
