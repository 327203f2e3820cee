"""
Trainable ensemble classifier over feature data.

``EnsembleClassifierBuilder`` collects labeled ``Datum`` instances for one
feature model and builds an ``EnsembleClassifier`` once. The classifier is
a random forest over the model's columns: nominal and enumerated columns
are ordinal-encoded against the vocabulary seen during training (index 0
is reserved for unknown and unseen values) and numeric columns are used as
floats with -1 standing for unknown.

Trained classifiers are immutable, safe for concurrent use, and serialize
to a versioned envelope. Reconstruction never raises: a blob that cannot
be read yields a classifier whose ``is_available()`` is False.
"""

import io
import pickle
import time
from collections import Counter
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import joblib
import numpy as np
from sklearn.ensemble import RandomForestClassifier

from textid.core.base import UNKNOWN, Analysis, AnalysisFeature, BaseAnalyzer, InputType
from textid.core.exceptions import (
    BuilderStateError,
    ModelUnavailableError,
    SchemaMismatchError,
    TrainingError,
)
from textid.core.features import (
    UNKNOWN_TEXT,
    Datum,
    FeatureData,
    FeatureKind,
    FeatureModel,
    check_schema,
)
from textid.logging_config import get_logger, performance_log

logger = get_logger(__name__)

MODEL_FORMAT = "textid.ensemble"
MODEL_VERSION = "1.0"

UNKNOWN_NUMERIC = -1.0


@dataclass
class ForestConfig:
    """Random forest training parameters."""

    n_estimators: int = 100
    random_state: int = 1
    max_features: Union[str, int, float, None] = "sqrt"
    bootstrap: bool = False
    n_jobs: Optional[int] = None
    max_results: int = 5

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ForestConfig":
        """Build from a configuration section, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in (data or {}).items() if key in known})


def _encode_rows(
    feature_model: FeatureModel,
    indexes: Mapping[str, Mapping[str, int]],
    rows: Sequence[FeatureData],
) -> np.ndarray:
    matrix = np.empty((len(rows), len(feature_model)), dtype=np.float64)
    for column, feature in enumerate(feature_model.input_features):
        numeric = feature.kind is FeatureKind.NUMERIC
        index = indexes.get(feature.name, {})
        for row_index, row in enumerate(rows):
            value = row.get(feature, UNKNOWN)
            if numeric:
                matrix[row_index, column] = UNKNOWN_NUMERIC if value is UNKNOWN else float(value)
            else:
                matrix[row_index, column] = index.get(feature.format(value), 0)
    return matrix


class EnsembleClassifier(BaseAnalyzer):
    """
    A trained random forest deciding one analysis feature.

    The classifier is itself an analyzer: it accepts feature data and
    produces ranked, scored analyses binding its output feature.
    """

    input_types = frozenset({InputType.FEATURE_DATA})
    produces_rankings = True
    produces_scores = True

    def __init__(
        self,
        feature_model: Optional[FeatureModel],
        output_feature: Optional[AnalysisFeature],
        predictor: Optional[RandomForestClassifier],
        vocabularies: Optional[Mapping[str, Sequence[str]]] = None,
        class_priors: Optional[Mapping[str, int]] = None,
        max_results: int = 5,
        analyzer_id: Optional[str] = None,
        unavailable_reason: Optional[str] = None,
    ):
        """
        Initialize a trained classifier.

        Args:
            feature_model: Column schema the predictor was trained on
            output_feature: Analysis feature bound in the results
            predictor: Fitted random forest, None when unavailable
            vocabularies: Per-column value texts, index 0 being unknown
            class_priors: Training frequency of each label text
            max_results: Most results returned per call
            analyzer_id: Identifier used in logs
            unavailable_reason: Why the predictor is missing
        """
        name = output_feature.name if output_feature is not None else "unavailable"
        super().__init__(analyzer_id=analyzer_id or f"ensemble_{name}")
        self.output_features = frozenset({output_feature}) if output_feature is not None else frozenset()
        self._feature_model = feature_model
        self._output_feature = output_feature
        self._predictor = predictor
        self._vocabularies = {key: list(values) for key, values in (vocabularies or {}).items()}
        self._indexes = {
            key: {text: index for index, text in enumerate(values)}
            for key, values in self._vocabularies.items()
        }
        self._class_priors = dict(class_priors or {})
        self.max_results = max_results
        self.unavailable_reason = unavailable_reason

    @classmethod
    def unavailable(cls, reason: str) -> "EnsembleClassifier":
        return cls(None, None, None, unavailable_reason=reason)

    def get_feature_model(self) -> Optional[FeatureModel]:
        return self._feature_model

    def get_output_feature(self) -> Optional[AnalysisFeature]:
        return self._output_feature

    @property
    def class_priors(self) -> Dict[str, int]:
        return dict(self._class_priors)

    @property
    def classes(self) -> List[str]:
        if self._predictor is None:
            return []
        return [str(label) for label in self._predictor.classes_]

    def is_available(self) -> bool:
        return self._predictor is not None and super().is_available()

    def _check_available(self) -> None:
        if self._predictor is None:
            raise ModelUnavailableError(
                f"Model '{self.analyzer_id}' is unavailable: {self.unavailable_reason or 'no trained predictor'}"
            )
        super()._check_available()

    def _analyze(self, feature_data: FeatureData) -> List[Analysis]:
        check_schema(self._feature_model, feature_data)

        row = _encode_rows(self._feature_model, self._indexes, [feature_data])
        probabilities = self._predictor.predict_proba(row)[0]

        ranked = sorted(
            ((str(label), float(probability))
             for label, probability in zip(self._predictor.classes_, probabilities)
             if probability > 0),
            key=lambda item: (-item[1], -self._class_priors.get(item[0], 0), item[0]),
        )

        output = self._feature_model.output_feature
        return [
            Analysis({self._output_feature: output.parse(label)}, score=min(probability, 1.0))
            for label, probability in ranked[:self.max_results]
        ]

    def to_bytes(self) -> bytes:
        """
        Serialize to an opaque blob.

        Raises:
            ModelUnavailableError: If there is no predictor to serialize
        """
        self._check_available()
        buffer = io.BytesIO()
        joblib.dump(self._predictor, buffer)
        envelope = {
            "format": MODEL_FORMAT,
            "version": MODEL_VERSION,
            "analyzer_id": self.analyzer_id,
            "feature_model": self._feature_model.to_dict(),
            "output_feature": self._output_feature.to_dict(),
            "vocabularies": self._vocabularies,
            "class_priors": self._class_priors,
            "max_results": self.max_results,
            "predictor": buffer.getvalue(),
        }
        return pickle.dumps(envelope, protocol=pickle.HIGHEST_PROTOCOL)

    @classmethod
    def from_bytes(cls, blob: bytes) -> "EnsembleClassifier":
        """
        Reconstruct a classifier from ``to_bytes`` output.

        Never raises; unreadable or incompatible blobs produce an
        unavailable classifier.
        """
        try:
            envelope = pickle.loads(blob)
            if not isinstance(envelope, dict) or envelope.get("format") != MODEL_FORMAT:
                raise ValueError("not a textid ensemble model")
            if envelope.get("version") != MODEL_VERSION:
                raise ValueError(f"unsupported model version {envelope.get('version')!r}")

            predictor = joblib.load(io.BytesIO(envelope["predictor"]))
            return cls(
                FeatureModel.from_dict(envelope["feature_model"]),
                AnalysisFeature.from_dict(envelope["output_feature"]),
                predictor,
                vocabularies=envelope["vocabularies"],
                class_priors=envelope["class_priors"],
                max_results=envelope["max_results"],
                analyzer_id=envelope.get("analyzer_id"),
            )
        except Exception as e:
            logger.error(f"Could not reconstruct ensemble model: {e}")
            return cls.unavailable(str(e))

    def _dispose(self) -> None:
        self._predictor = None
        self.unavailable_reason = "disposed"

    def __repr__(self) -> str:
        if not self.is_available():
            return f"EnsembleClassifier(unavailable: {self.unavailable_reason})"
        return (f"EnsembleClassifier(output={self._output_feature.name!r}, "
                f"inputs={len(self._feature_model)}, classes={len(self.classes)})")


class EnsembleClassifierBuilder:
    """
    Collects training data for one feature model and builds a classifier.

    The builder is single use: after ``build()`` it accepts no more data
    and a second ``build()`` raises ``BuilderStateError``.
    """

    def __init__(
        self,
        feature_model: FeatureModel,
        output_feature: AnalysisFeature,
        config: Optional[ForestConfig] = None,
    ):
        self.feature_model = feature_model
        self.output_feature = output_feature
        self.config = config or ForestConfig()
        self._data: List[Datum] = []
        self._built = False

    @property
    def instance_count(self) -> int:
        return len(self._data)

    @property
    def built(self) -> bool:
        return self._built

    def add_training_data(self, datum: Datum) -> None:
        """
        Add one labeled example.

        Raises:
            BuilderStateError: If the builder has already built
            SchemaMismatchError: If the datum does not fit the feature model
        """
        if self._built:
            raise BuilderStateError("Classifier already built; builders are single use")

        output = self.feature_model.output_feature
        if datum.ground_truth is UNKNOWN or not output.test(datum.ground_truth):
            raise SchemaMismatchError(
                f"Ground truth {datum.ground_truth!r} is not a legal value of '{output.name}'"
            )
        check_schema(self.feature_model, datum.feature_data)
        self._data.append(datum)

    def build(self) -> EnsembleClassifier:
        """
        Train the classifier on the collected data.

        Raises:
            BuilderStateError: If called a second time
            TrainingError: If there is nothing to train on
        """
        if self._built:
            raise BuilderStateError("Classifier already built; builders are single use")
        if not self._data:
            raise TrainingError(f"No training data for '{self.output_feature.name}'")
        if len(self.feature_model) == 0:
            raise TrainingError("Feature model declares no input features")

        start_time = time.time()
        rows = [datum.feature_data for datum in self._data]
        output = self.feature_model.output_feature
        labels = [output.format(datum.ground_truth) for datum in self._data]

        vocabularies: Dict[str, List[str]] = {}
        for feature in self.feature_model.input_features:
            if feature.kind is FeatureKind.NUMERIC:
                continue
            seen = {feature.format(row.get(feature, UNKNOWN)) for row in rows}
            seen.discard(UNKNOWN_TEXT)
            vocabularies[feature.name] = [UNKNOWN_TEXT] + sorted(seen)

        indexes = {
            name: {text: index for index, text in enumerate(values)}
            for name, values in vocabularies.items()
        }
        matrix = _encode_rows(self.feature_model, indexes, rows)

        predictor = RandomForestClassifier(
            n_estimators=self.config.n_estimators,
            max_features=self.config.max_features,
            bootstrap=self.config.bootstrap,
            random_state=self.config.random_state,
            n_jobs=self.config.n_jobs,
        )
        try:
            predictor.fit(matrix, np.array(labels, dtype=object))
        except ValueError as e:
            raise TrainingError(f"Could not train '{self.output_feature.name}' classifier: {e}") from e

        classifier = EnsembleClassifier(
            self.feature_model,
            self.output_feature,
            predictor,
            vocabularies=vocabularies,
            class_priors=Counter(labels),
            max_results=self.config.max_results,
        )

        self._built = True
        self._data = []

        duration = time.time() - start_time
        performance_log(f"train_{self.output_feature.name}", duration, instances=len(rows),
                        features=len(self.feature_model), classes=len(classifier.classes))
        logger.info(f"Built '{self.output_feature.name}' classifier from {len(rows)} instances "
                    f"({len(self.feature_model)} features, {len(classifier.classes)} classes)")
        return classifier
