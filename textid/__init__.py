"""
textid: encoding, language and script identification.

A panel of independent analyzers inspects the input, and a trained
ensemble classifier per category fuses their ranked opinions. Without
trained models the analyzers vote.

Public API Examples:

Identification:
    from textid import TextIdentifier
    identifier = TextIdentifier()
    info = identifier.identify(open("page.txt", "rb").read())
    print(info.encoding, info.language, info.script)

Ranked candidates:
    ranking = identifier.classify_language(data)
    for analysis in ranking:
        print(analysis[LANGUAGE], analysis.score)

Training:
    from textid import Trainer, read_manifest
    trainer = Trainer(identifier)
    trainer.train(read_manifest("corpus/manifest.csv"))
    trainer.save("profiles/corpus")
"""

from textid.core.base import (
    ENCODING,
    LANGUAGE,
    LENGTH,
    SCRIPT,
    SIZE,
    UNKNOWN,
    Analysis,
    AnalysisFeature,
    BaseAnalyzer,
    InputType,
)
from textid.core.codes import Language, Script
from textid.core.ensemble import EnsembleClassifier, EnsembleClassifierBuilder, ForestConfig
from textid.core.exceptions import (
    AnalyzerResourceError,
    AnalyzerUnavailableError,
    ConfigurationError,
    ModelUnavailableError,
    TextIdError,
    TrainingError,
)
from textid.core.registry import AnalyzerRegistry, get_registry, register_analyzer, reset_registry
from textid.core.text_models import Category, build_feature_model
from textid.core.working import TextInfo
from textid.orchestrator import TextIdentifier
from textid.training import EvaluationReport, ModelProfile, Trainer, TrainingRecord, evaluate, read_manifest

# Import logging functionality for easy access
from textid.logging_config import (
    configure_logging,
    LogConfig,
    LogLevel,
    get_logger,
    user_info,
    user_success,
    user_warning,
    user_error,
    debug_operation,
    performance_log,
    metrics_log
)

# Configure sensible defaults for Python import usage
# Users can override this by calling configure_logging() explicitly
configure_logging(
    level=LogLevel.NORMAL,
    console_output=True,
    file_output=False,
    collect_performance=False,
    collect_metrics=False
)

__version__ = "0.1.0"

__all__ = [
    # Core types
    "ENCODING",
    "LANGUAGE",
    "LENGTH",
    "SCRIPT",
    "SIZE",
    "UNKNOWN",
    "Analysis",
    "AnalysisFeature",
    "BaseAnalyzer",
    "InputType",
    "Language",
    "Script",
    "TextInfo",
    "Category",

    # Registry
    "AnalyzerRegistry",
    "get_registry",
    "register_analyzer",
    "reset_registry",

    # Models
    "EnsembleClassifier",
    "EnsembleClassifierBuilder",
    "ForestConfig",
    "build_feature_model",

    # Main interfaces
    "TextIdentifier",
    "Trainer",
    "TrainingRecord",
    "ModelProfile",
    "EvaluationReport",
    "evaluate",
    "read_manifest",

    # Errors
    "TextIdError",
    "ConfigurationError",
    "AnalyzerResourceError",
    "AnalyzerUnavailableError",
    "ModelUnavailableError",
    "TrainingError",

    # Logging
    "configure_logging",
    "LogConfig",
    "LogLevel",
    "get_logger",
    "user_info",
    "user_success",
    "user_warning",
    "user_error",
    "debug_operation",
    "performance_log",
    "metrics_log",
]
