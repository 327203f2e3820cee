"""
Feature models for the encoding, language and script classifiers.

Column names are derived from the sorted analyzer ids alone, so two
models built from the same analyzers are column-identical in any process:

- ``<kind prefix><analyzer id>_<rank>`` holds a hypothesis (``enc_``,
  ``lang_`` or ``script_`` by the feature it carries), ranks 1..3 for
  ranking analyzers and rank 1 otherwise;
- ``<score prefix><analyzer id>_<rank>`` holds its confidence when the
  analyzer scores (``score_enc_`` for byte analyzers, ``score_text_`` for
  text analyzers);
- ``size`` and, for language and script, ``detected_enc`` are filled
  from the working state.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from textid.core.base import (
    ENCODING,
    LANGUAGE,
    SCRIPT,
    UNKNOWN,
    Analysis,
    AnalysisFeature,
    BaseAnalyzer,
    InputType,
)
from textid.core.features import (
    EnumeratedFeature,
    FeatureData,
    FeatureModel,
    IntegerFeature,
    ModelFeature,
    RealFeature,
)
from textid.core.registry import AnalyzerRegistry, get_registry
from textid.core.working import TextInfo, Working

logger = logging.getLogger(__name__)

MAX_RANKS = 3

BINARY_SIZE = "size"
DETECTED_ENCODING = "detected_enc"

ENCODING_PREFIX = "enc_"
LANGUAGE_PREFIX = "lang_"
SCRIPT_PREFIX = "script_"

KIND_PREFIXES = {ENCODING: ENCODING_PREFIX, LANGUAGE: LANGUAGE_PREFIX, SCRIPT: SCRIPT_PREFIX}
KIND_CODECS = {ENCODING: "encoding", LANGUAGE: "language", SCRIPT: "script"}
KIND_ORDER = (ENCODING, LANGUAGE, SCRIPT)


class Category(Enum):
    """Classification targets, in the order they must be decided."""

    ENCODING = "encoding"
    LANGUAGE = "language"
    SCRIPT = "script"

    @property
    def feature(self) -> AnalysisFeature:
        return KIND_BY_CATEGORY[self]

    @classmethod
    def parse(cls, value: Union["Category", str]) -> "Category":
        if isinstance(value, Category):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown category '{value}', expected one of: "
                             f"{', '.join(c.value for c in cls)}") from None


KIND_BY_CATEGORY = {Category.ENCODING: ENCODING, Category.LANGUAGE: LANGUAGE, Category.SCRIPT: SCRIPT}


@dataclass(frozen=True)
class AssemblyPass:
    """One group of analyzers feeding a model: an input view and the kinds read from it."""

    input_type: InputType
    kinds: FrozenSet[AnalysisFeature]
    score_prefix: str

    def qualifies(self, analyzer: BaseAnalyzer) -> bool:
        return analyzer.accepts(self.input_type) and any(analyzer.produces(kind) for kind in self.kinds)

    def produced_kinds(self, analyzer: BaseAnalyzer) -> List[AnalysisFeature]:
        return [kind for kind in KIND_ORDER if kind in self.kinds and analyzer.produces(kind)]


BYTES_PASS = AssemblyPass(InputType.BYTES, frozenset({ENCODING}), "score_enc_")
TEXT_PASS = AssemblyPass(InputType.TEXT, frozenset({LANGUAGE, SCRIPT}), "score_text_")

CATEGORY_PASSES: Dict[Category, Tuple[AssemblyPass, ...]] = {
    Category.ENCODING: (BYTES_PASS,),
    Category.LANGUAGE: (BYTES_PASS, TEXT_PASS),
    Category.SCRIPT: (BYTES_PASS, TEXT_PASS),
}


def output_model_feature(category: Category) -> EnumeratedFeature:
    return EnumeratedFeature(category.value, codec=KIND_CODECS[category.feature])


def value_feature_name(kind: AnalysisFeature, analyzer_id: str, rank: int) -> str:
    return f"{KIND_PREFIXES[kind]}{analyzer_id}_{rank}"


def score_feature_name(assembly_pass: AssemblyPass, analyzer_id: str, rank: int) -> str:
    return f"{assembly_pass.score_prefix}{analyzer_id}_{rank}"


def rank_count(analyzer: BaseAnalyzer) -> int:
    return MAX_RANKS if analyzer.produces_rankings else 1


def analyzer_features(analyzer_id: str, analyzer: BaseAnalyzer, assembly_pass: AssemblyPass) -> List[ModelFeature]:
    """Columns contributed by one analyzer in one pass."""
    features: List[ModelFeature] = []
    for rank in range(1, rank_count(analyzer) + 1):
        for kind in assembly_pass.produced_kinds(analyzer):
            features.append(EnumeratedFeature(value_feature_name(kind, analyzer_id, rank), codec=KIND_CODECS[kind]))
        if analyzer.produces_scores:
            features.append(RealFeature(score_feature_name(assembly_pass, analyzer_id, rank)))
    return features


def build_feature_model(
    category: Union[Category, str],
    registry: Optional[AnalyzerRegistry] = None,
    analyzer_ids: Optional[Iterable[str]] = None,
) -> FeatureModel:
    """
    Build the feature model for one category.

    Args:
        category: Classification target
        registry: Analyzer catalog, the process-wide one when None
        analyzer_ids: Candidate ids, every registered id when None

    Returns:
        Feature model whose columns depend only on the sorted qualifying ids
    """
    category = Category.parse(category)
    registry = registry or get_registry()
    candidate_ids = sorted(set(analyzer_ids) if analyzer_ids is not None else registry.ids())

    model = FeatureModel(output_model_feature(category))
    model.add_input_feature(IntegerFeature(BINARY_SIZE))
    if category is not Category.ENCODING:
        model.add_input_feature(EnumeratedFeature(DETECTED_ENCODING, codec="encoding"))

    for assembly_pass in CATEGORY_PASSES[category]:
        for analyzer_id in candidate_ids:
            analyzer = registry.get(analyzer_id)
            if analyzer is None:
                logger.warning(f"Analyzer '{analyzer_id}' is not registered, leaving it out of the {category.value} model")
                continue
            if assembly_pass.qualifies(analyzer):
                for feature in analyzer_features(analyzer_id, analyzer, assembly_pass):
                    model.add_input_feature(feature)

    logger.debug(f"Built {category.value} feature model with {len(model)} input features")
    return model


def model_analyzer_ids(model: FeatureModel, registry: AnalyzerRegistry, assembly_pass: AssemblyPass) -> List[str]:
    """Registered ids of the pass's analyzers that own a column in a model."""
    ids = []
    for analyzer_id in sorted(registry.find(assembly_pass.qualifies)):
        analyzer = registry.get(analyzer_id)
        if any(model.get_input_feature(feature.name) is not None
               for feature in analyzer_features(analyzer_id, analyzer, assembly_pass)):
            ids.append(analyzer_id)
    return ids


def _bind(feature_data: FeatureData, model: FeatureModel, name: str, value: object) -> None:
    feature = model.get_input_feature(name)
    if feature is None:
        return
    if value is not None and value is not UNKNOWN:
        if feature.test(value):
            feature_data.set(feature, value)
        else:
            logger.debug(f"Dropping illegal value {value!r} for feature '{name}'")
    feature_data.bind_unknown(feature)


def fill_features(
    text_info: TextInfo,
    feature_data: FeatureData,
    model: FeatureModel,
    assembly_pass: AssemblyPass,
    results: Mapping[str, Sequence[Analysis]],
    registry: AnalyzerRegistry,
) -> FeatureData:
    """
    Map analyzer results into the columns of a feature model.

    Missing hypotheses bind the unknown sentinel. Real values overwrite
    earlier bindings; the sentinel never does. On return every input
    feature of the model is bound.

    Args:
        text_info: Decisions made so far for the input
        feature_data: Accumulating feature data
        model: Target feature model
        assembly_pass: Which analyzers and kinds the results come from
        results: Ranked analyses keyed by analyzer id
        registry: Catalog used to look up analyzer capabilities

    Returns:
        The same feature data, completed against the model
    """
    for analyzer_id in sorted(results):
        analyzer = registry.get(analyzer_id)
        if analyzer is None or not assembly_pass.qualifies(analyzer):
            continue

        hypotheses = results[analyzer_id]
        kinds = assembly_pass.produced_kinds(analyzer)
        for rank in range(1, rank_count(analyzer) + 1):
            analysis = hypotheses[rank - 1] if len(hypotheses) >= rank else None
            for kind in kinds:
                value = analysis.get(kind) if analysis is not None else None
                _bind(feature_data, model, value_feature_name(kind, analyzer_id, rank), value)
            if analyzer.produces_scores:
                score = analysis.score if analysis is not None else None
                _bind(feature_data, model, score_feature_name(assembly_pass, analyzer_id, rank), score)

    _bind(feature_data, model, BINARY_SIZE, text_info.size)
    _bind(feature_data, model, DETECTED_ENCODING, text_info.encoding)

    return feature_data.complete(model)


def assemble_features(category: Union[Category, str], working: Working, model: FeatureModel) -> FeatureData:
    """
    Run the analyzers a model needs on one input and fill its features.

    Earlier stages must already be decided on ``working``; otherwise their
    columns come out as unknown.
    """
    category = Category.parse(category)
    feature_data = FeatureData()
    for assembly_pass in CATEGORY_PASSES[category]:
        wanted = model_analyzer_ids(model, working.registry, assembly_pass)
        results = working.run_analyzers(assembly_pass.input_type, assembly_pass.qualifies, ids=wanted)
        fill_features(working.text_info, feature_data, model, assembly_pass, results, working.registry)
    return feature_data.complete(model)
