"""
Core components for text identification.

This package contains the fundamental building blocks:
- Analyzer capability interface and analysis results
- Analyzer registry
- Feature models, feature data and training data
- Per-category feature assembly
- Trainable ensemble classifier and the voting fallback
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
from textid.core.codes import Language, Script, normalize_encoding
from textid.core.ensemble import EnsembleClassifier, EnsembleClassifierBuilder, ForestConfig
from textid.core.exceptions import (
    AnalyzerResourceError,
    AnalyzerUnavailableError,
    BuilderStateError,
    ConfigurationError,
    DuplicateAnalyzerError,
    DuplicateFeatureError,
    ModelUnavailableError,
    SchemaMismatchError,
    TextIdError,
    TrainingError,
)
from textid.core.features import (
    Datum,
    EnumeratedFeature,
    FeatureData,
    FeatureKind,
    FeatureModel,
    IntegerFeature,
    ModelFeature,
    NominalFeature,
    NumericFeature,
    RealFeature,
    boolean_feature,
)
from textid.core.registry import (
    AnalyzerMetadata,
    AnalyzerRegistry,
    get_registry,
    register_analyzer,
    reset_registry,
)
from textid.core.text_models import (
    Category,
    assemble_features,
    build_feature_model,
    fill_features,
)
from textid.core.voting import Election, elect
from textid.core.working import TextInfo, Working

__all__ = [
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
    "normalize_encoding",
    "EnsembleClassifier",
    "EnsembleClassifierBuilder",
    "ForestConfig",
    "AnalyzerResourceError",
    "AnalyzerUnavailableError",
    "BuilderStateError",
    "ConfigurationError",
    "DuplicateAnalyzerError",
    "DuplicateFeatureError",
    "ModelUnavailableError",
    "SchemaMismatchError",
    "TextIdError",
    "TrainingError",
    "Datum",
    "EnumeratedFeature",
    "FeatureData",
    "FeatureKind",
    "FeatureModel",
    "IntegerFeature",
    "ModelFeature",
    "NominalFeature",
    "NumericFeature",
    "RealFeature",
    "boolean_feature",
    "AnalyzerMetadata",
    "AnalyzerRegistry",
    "get_registry",
    "register_analyzer",
    "reset_registry",
    "Category",
    "assemble_features",
    "build_feature_model",
    "fill_features",
    "Election",
    "elect",
    "TextInfo",
    "Working",
]
