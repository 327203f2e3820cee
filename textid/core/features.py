"""
Feature models and feature vectors.

A ``FeatureModel`` is the column schema of one classification target:
an ordered, duplicate-free list of input features plus one output
feature. ``FeatureData`` binds values to those columns for one input, and
a ``Datum`` pairs feature data with its ground-truth label for training.

Every feature kind parses and formats its values through a named codec,
so a feature model can be written out with ``to_dict`` and rebuilt with
``from_dict`` in another process.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from textid.core.base import UNKNOWN, InputType
from textid.core.codes import Language, Script, normalize_encoding
from textid.core.exceptions import DuplicateFeatureError, SchemaMismatchError

logger = logging.getLogger(__name__)

UNKNOWN_TEXT = "UNK"
MISSING_TEXT = "?"


class FeatureKind(Enum):
    """Kinds of model feature."""

    NOMINAL = "nominal"        # open-ended text
    ENUMERATED = "enumerated"  # typed value, optionally from a closed domain
    NUMERIC = "numeric"        # integer or real


def _parse_boolean(text: str) -> bool:
    value = text.strip().lower()
    if value in ("true", "yes", "y", "t", "1"):
        return True
    if value in ("false", "no", "n", "f", "0"):
        return False
    raise ValueError(f"Not a boolean: {text}")


def _parse_language(text: str) -> Language:
    language = Language.by_text(text)
    if language is None:
        raise ValueError(f"Not a language: {text}")
    return language


def _parse_script(text: str) -> Script:
    script = Script.by_text(text)
    if script is None:
        raise ValueError(f"Not a script: {text}")
    return script


def _format_real(value: Any) -> str:
    return repr(float(value))


@dataclass(frozen=True)
class ValueCodec:
    """Text parse/format pair for one family of feature values."""

    name: str
    parse: Callable[[str], Any]
    format: Callable[[Any], str]
    value_types: Tuple[type, ...]

    def accepts(self, value: Any) -> bool:
        if isinstance(value, bool) and bool not in self.value_types:
            return False
        return isinstance(value, self.value_types)


CODECS: Dict[str, ValueCodec] = {
    codec.name: codec for codec in (
        ValueCodec("text", str, str, (str,)),
        ValueCodec("lower", lambda text: text.lower(), lambda value: str(value).lower(), (str,)),
        ValueCodec("boolean", _parse_boolean, lambda value: "yes" if value else "no", (bool,)),
        ValueCodec("encoding", normalize_encoding, str, (str,)),
        ValueCodec("language", _parse_language, str, (Language,)),
        ValueCodec("script", _parse_script, str, (Script,)),
        ValueCodec("integer", lambda text: int(text), str, (int,)),
        ValueCodec("real", lambda text: float(text), _format_real, (float, int)),
    )
}


class ModelFeature:
    """
    A named, typed column of a feature model.

    Features compare and hash by name.
    """

    kind: FeatureKind = FeatureKind.NOMINAL
    default_codec = "text"

    def __init__(self, name: str, codec: Optional[str] = None, values: Optional[Iterable[Any]] = None):
        """
        Initialize the feature.

        Args:
            name: Column name
            codec: Name of the value codec, the kind's default when None
            values: Closed value domain, open when None
        """
        if not name or not name.strip():
            raise ValueError("Feature name cannot be blank")
        codec = codec or self.default_codec
        if codec not in CODECS:
            raise ValueError(f"Unknown value codec: {codec}")
        self.name = name.strip()
        self.codec = CODECS[codec]
        self.values = tuple(values) if values is not None else None
        if self.values is not None:
            for value in self.values:
                if not self.codec.accepts(value):
                    raise ValueError(f"Illegal domain value {value!r} for feature '{self.name}'")

    def parse(self, text: Optional[str]) -> Any:
        """Parse text to a value; blank or '?' means no value."""
        if text is None:
            return None
        text = str(text).strip()
        if not text or text == MISSING_TEXT:
            return None
        if text == UNKNOWN_TEXT:
            return UNKNOWN
        return self.codec.parse(text)

    def format(self, value: Any) -> str:
        if value is None:
            return MISSING_TEXT
        if value is UNKNOWN:
            return UNKNOWN_TEXT
        return self.codec.format(value)

    def test(self, value: Any) -> bool:
        """Check that a value is legal for this feature."""
        if value is UNKNOWN:
            return True
        if not self.codec.accepts(value):
            return False
        return self.values is None or value in self.values

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.__class__.__name__,
            "name": self.name,
            "kind": self.kind.value,
            "codec": self.codec.name,
            "values": [self.format(value) for value in self.values] if self.values is not None else None,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ModelFeature":
        feature_class = FEATURE_TYPES.get(data.get("type", ""))
        if feature_class is None:
            raise ValueError(f"Unknown feature type: {data.get('type')}")
        codec = CODECS[data["codec"]]
        values = None
        if data.get("values") is not None:
            values = [codec.parse(text) for text in data["values"]]
        return feature_class(data["name"], codec=codec.name, values=values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModelFeature):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r}, codec={self.codec.name!r})"


class NominalFeature(ModelFeature):
    """Open-ended text values."""

    kind = FeatureKind.NOMINAL


class EnumeratedFeature(ModelFeature):
    """Typed values such as languages, scripts, encodings or booleans."""

    kind = FeatureKind.ENUMERATED


class NumericFeature(ModelFeature):
    kind = FeatureKind.NUMERIC
    default_codec = "real"


class IntegerFeature(NumericFeature):
    default_codec = "integer"


class RealFeature(NumericFeature):
    default_codec = "real"


FEATURE_TYPES = {
    feature_class.__name__: feature_class
    for feature_class in (NominalFeature, EnumeratedFeature, NumericFeature, IntegerFeature, RealFeature)
}


def boolean_feature(name: str) -> EnumeratedFeature:
    """An enumerated yes/no feature."""
    return EnumeratedFeature(name, codec="boolean", values=(True, False))


class FeatureModel:
    """
    Ordered input features plus exactly one output feature.

    Input feature lookup by name is case-insensitive. A feature model is
    treated as immutable once construction is finished.
    """

    def __init__(self, output_feature: ModelFeature, input_features: Iterable[ModelFeature] = ()):
        if output_feature is None:
            raise ValueError("A feature model requires an output feature")
        self._output_feature = output_feature
        self._input_features: List[ModelFeature] = []
        self._by_name: Dict[str, ModelFeature] = {}
        for feature in input_features:
            self.add_input_feature(feature)

    def add_input_feature(self, feature: ModelFeature) -> "FeatureModel":
        """
        Append an input feature.

        Raises:
            DuplicateFeatureError: If the name is already used
        """
        key = feature.name.lower()
        if key in self._by_name or key == self._output_feature.name.lower():
            raise DuplicateFeatureError(f"Duplicate feature in model: {feature.name}")
        self._input_features.append(feature)
        self._by_name[key] = feature
        return self

    @property
    def input_features(self) -> Tuple[ModelFeature, ...]:
        return tuple(self._input_features)

    @property
    def output_feature(self) -> ModelFeature:
        return self._output_feature

    def get_input_feature(self, name: str) -> Optional[ModelFeature]:
        return self._by_name.get(name.strip().lower()) if name else None

    def input_names(self) -> List[str]:
        return [feature.name for feature in self._input_features]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output": self._output_feature.to_dict(),
            "inputs": [feature.to_dict() for feature in self._input_features],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FeatureModel":
        return cls(
            ModelFeature.from_dict(data["output"]),
            [ModelFeature.from_dict(feature) for feature in data["inputs"]],
        )

    def __len__(self) -> int:
        return len(self._input_features)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeatureModel):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash((self._output_feature.name, tuple(self.input_names())))

    def __repr__(self) -> str:
        return f"FeatureModel(output={self._output_feature.name!r}, inputs={len(self._input_features)})"


class FeatureData:
    """Values bound to model features for one input instance."""

    input_type = InputType.FEATURE_DATA

    def __init__(self, values: Optional[Mapping[ModelFeature, Any]] = None):
        self._values: Dict[ModelFeature, Any] = {}
        for feature, value in (values or {}).items():
            self.set(feature, value)

    def set(self, feature: ModelFeature, value: Any) -> None:
        """Bind a value, or unbind the feature when the value is None."""
        if value is None:
            self._values.pop(feature, None)
            return
        if not feature.test(value):
            raise ValueError(f"Illegal value {value!r} for feature '{feature.name}'")
        self._values[feature] = value

    def set_text(self, feature: ModelFeature, text: Optional[str]) -> None:
        self.set(feature, feature.parse(text))

    def get(self, feature: ModelFeature, default: Any = None) -> Any:
        return self._values.get(feature, default)

    def is_bound(self, feature: ModelFeature) -> bool:
        return feature in self._values

    def bind_unknown(self, feature: ModelFeature) -> None:
        """Bind the unknown sentinel if the feature has no value yet."""
        if feature not in self._values:
            self._values[feature] = UNKNOWN

    def missing(self, model: FeatureModel) -> List[ModelFeature]:
        return [feature for feature in model.input_features if feature not in self._values]

    def is_complete(self, model: FeatureModel) -> bool:
        return not self.missing(model)

    def complete(self, model: FeatureModel) -> "FeatureData":
        """Bind the unknown sentinel to every unbound input of a model."""
        for feature in model.input_features:
            self.bind_unknown(feature)
        return self

    def features(self) -> List[ModelFeature]:
        return list(self._values)

    def items(self) -> Iterator[Tuple[ModelFeature, Any]]:
        return iter(list(self._values.items()))

    def to_dict(self) -> Dict[str, str]:
        return {feature.name: feature.format(value) for feature, value in self._values.items()}

    def __contains__(self, feature: object) -> bool:
        return feature in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeatureData):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"FeatureData({self.to_dict()})"


class Datum:
    """A labeled training example."""

    def __init__(self, ground_truth: Any, feature_data: Optional[FeatureData] = None):
        if ground_truth is None or ground_truth is UNKNOWN:
            raise ValueError("A training datum requires a ground truth value")
        self._ground_truth = ground_truth
        self._feature_data = feature_data if feature_data is not None else FeatureData()

    @property
    def ground_truth(self) -> Any:
        return self._ground_truth

    @property
    def feature_data(self) -> FeatureData:
        return self._feature_data

    def set_feature(self, feature: ModelFeature, value: Any) -> None:
        """Bind a feature value once."""
        if self._feature_data.is_bound(feature):
            raise ValueError(f"Feature already set: {feature.name}")
        self._feature_data.set(feature, value)

    def __repr__(self) -> str:
        return f"Datum({self._ground_truth!r}, {len(self._feature_data)} features)"


def check_schema(model: FeatureModel, feature_data: FeatureData) -> None:
    """
    Verify that feature data binds exactly the inputs of a model.

    Raises:
        SchemaMismatchError: On foreign, redefined or unbound features
    """
    problems: List[str] = []
    for feature in feature_data.features():
        declared = model.get_input_feature(feature.name)
        if declared is None or declared.name != feature.name:
            problems.append(f"unexpected feature '{feature.name}'")
        elif declared.to_dict() != feature.to_dict():
            problems.append(f"feature '{feature.name}' does not match its declaration")

    missing = feature_data.missing(model)
    if missing:
        names = ", ".join(feature.name for feature in missing[:5])
        more = f" and {len(missing) - 5} more" if len(missing) > 5 else ""
        problems.append(f"unbound features {names}{more}")

    if problems:
        raise SchemaMismatchError(f"Feature data does not match {model!r}: {'; '.join(problems)}")
