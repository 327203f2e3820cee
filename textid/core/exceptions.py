"""
Exception hierarchy for text identification.

Configuration errors are fatal and surface immediately. Analyzer
non-opinion is never an exception; it is an empty result list.
"""


class TextIdError(Exception):
    """Base exception for all text identification errors."""
    pass


class ConfigurationError(TextIdError):
    """Fatal misconfiguration detected at startup or training time."""
    pass


class DuplicateAnalyzerError(ConfigurationError):
    """An analyzer id was registered more than once."""
    pass


class DuplicateFeatureError(ConfigurationError, ValueError):
    """A feature model declared the same input feature twice."""
    pass


class SchemaMismatchError(ConfigurationError):
    """Feature data does not structurally match its feature model."""
    pass


class BuilderStateError(ConfigurationError):
    """A classifier builder was used after it had already built."""
    pass


class AnalyzerResourceError(TextIdError):
    """An analyzer's backing engine or resource is not available."""
    pass


class AnalyzerUnavailableError(TextIdError):
    """An analyzer was invoked after disposal."""
    pass


class ModelUnavailableError(AnalyzerUnavailableError):
    """A trained model could not be reconstructed and cannot classify."""
    pass


class TrainingError(TextIdError):
    """A classifier could not be trained from the supplied data."""
    pass
