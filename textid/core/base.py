"""
Base classes and result types for text identification.

This module defines the analyzer capability contract shared by every
detector and by trained ensemble models, along with the immutable
``Analysis`` result bag and the typed features analyzers report.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterator, List, Mapping, Optional

from textid.core.codes import Language, Script
from textid.core.exceptions import AnalyzerUnavailableError, TextIdError

logger = logging.getLogger(__name__)


class InputType(Enum):
    """Kinds of input an analyzer can accept."""

    BYTES = "bytes"
    TEXT = "text"
    FEATURE_DATA = "feature_data"

    @classmethod
    def of(cls, content: Any) -> Optional["InputType"]:
        """Return the input type tag for a value, or None if it has none."""
        if isinstance(content, InputType):
            return content
        if isinstance(content, (bytes, bytearray, memoryview)):
            return cls.BYTES
        if isinstance(content, str):
            return cls.TEXT
        tag = getattr(content, "input_type", None)
        return tag if isinstance(tag, InputType) else None


class _Unknown:
    """Sentinel bound to feature slots no analyzer had an opinion about."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __reduce__(self):
        return (_Unknown, ())

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        return False


UNKNOWN = _Unknown()


@dataclass(frozen=True)
class AnalysisFeature:
    """A typed key in an Analysis. Features compare by name only."""

    name: str
    value_type: type = field(default=str, compare=False)

    def test(self, value: Any) -> bool:
        """Check that a value may be bound to this feature."""
        if value is UNKNOWN:
            return True
        if self.value_type is not bool and isinstance(value, bool):
            return False
        if self.value_type is float:
            return isinstance(value, (int, float))
        return isinstance(value, self.value_type)

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "value_type": self.value_type.__name__}

    @classmethod
    def from_dict(cls, data: Mapping[str, str]) -> "AnalysisFeature":
        value_type = VALUE_TYPES.get(data.get("value_type", "str"))
        if value_type is None:
            raise ValueError(f"Unsupported analysis value type: {data.get('value_type')}")
        return cls(data["name"], value_type)


VALUE_TYPES = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "Language": Language,
    "Script": Script,
}

# Features of the text information record.
SIZE = AnalysisFeature("size", int)
ENCODING = AnalysisFeature("encoding", str)
LENGTH = AnalysisFeature("length", int)
LANGUAGE = AnalysisFeature("language", Language)
SCRIPT = AnalysisFeature("script", Script)

TEXT_FEATURES = (SIZE, ENCODING, LENGTH, LANGUAGE, SCRIPT)


class Analysis(Mapping):
    """
    Immutable results of one analyzer call for one input.

    Maps analysis features to values and optionally carries a confidence
    score in [0, 1].
    """

    __slots__ = ("_values", "_score")

    def __init__(self, values: Optional[Mapping[AnalysisFeature, Any]] = None,
                 score: Optional[float] = None):
        checked = {}
        for feature, value in (values or {}).items():
            if value is None:
                continue
            if not feature.test(value):
                raise TypeError(
                    f"Value {value!r} is not a legal {feature.value_type.__name__} for feature '{feature.name}'"
                )
            checked[feature] = value
        if score is not None:
            score = float(score)
            if not 0.0 <= score <= 1.0:
                raise ValueError(f"Score must be within [0, 1], got {score}")
        self._values = MappingProxyType(checked)
        self._score = score

    @property
    def score(self) -> Optional[float]:
        return self._score

    def __getitem__(self, feature: AnalysisFeature) -> Any:
        return self._values[feature]

    def __iter__(self) -> Iterator[AnalysisFeature]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Analysis):
            return NotImplemented
        return dict(self._values) == dict(other._values) and self._score == other._score

    def __hash__(self) -> int:
        return hash((frozenset(self._values.items()), self._score))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        result: Dict[str, Any] = {
            feature.name: ("UNK" if value is UNKNOWN else str(value))
            for feature, value in self._values.items()
        }
        if self._score is not None:
            result["score"] = self._score
        return result

    def __repr__(self) -> str:
        values = ", ".join(f"{f.name}={v}" for f, v in self._values.items())
        if self._score is not None:
            return f"Analysis({values}, score={self._score:.4f})"
        return f"Analysis({values})"


class BaseAnalyzer(ABC):
    """
    Abstract base class for all analyzers.

    Capabilities are class level and fixed: the accepted input types, the
    features produced, and whether the analyzer ranks several hypotheses
    (``produces_rankings``) and attaches meaningful scores
    (``produces_scores``). ``register_analyzer`` fills them in from its
    declaration.

    Subclasses implement ``_analyze``. Returning an empty list means the
    analyzer has no opinion about the input; that is not an error.
    """

    analyzer_id: str = ""
    input_types: FrozenSet[InputType] = frozenset()
    output_features: FrozenSet[AnalysisFeature] = frozenset()
    produces_rankings: bool = False
    produces_scores: bool = False

    def __init__(self, analyzer_id: Optional[str] = None, **kwargs):
        """
        Initialize the analyzer.

        Args:
            analyzer_id: Registry identifier, defaults to the declared id
            **kwargs: Analyzer specific parameters
        """
        self.analyzer_id = analyzer_id or self.analyzer_id or self.__class__.__name__.lower()
        self.parameters = kwargs
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")
        self._disposed = False
        self._dispose_lock = threading.Lock()

    def accepts(self, input_type: Any) -> bool:
        """Check whether an input type (or a value of it) is accepted."""
        tag = InputType.of(input_type)
        return tag is not None and tag in self.input_types

    def produces(self, feature: AnalysisFeature) -> bool:
        return feature in self.output_features

    def get_input_classes(self) -> FrozenSet[InputType]:
        return frozenset(self.input_types)

    def get_output_features(self) -> FrozenSet[AnalysisFeature]:
        return frozenset(self.output_features)

    def is_available(self) -> bool:
        return not self._disposed

    def validate_input(self, content: Any) -> None:
        """Reject inputs that violate the call contract."""
        if content is None:
            raise ValueError("Content cannot be None")

    def analyze(self, content: Any) -> List[Analysis]:
        """
        Analyze one input.

        Args:
            content: Bytes, text or feature data

        Returns:
            Analyses ordered best first; empty when the analyzer has no opinion
        """
        self.validate_input(content)
        self._check_available()

        if not self.accepts(content):
            return []

        try:
            results = [result for result in (self._analyze(content) or []) if result is not None]
        except (TextIdError, MemoryError):
            raise
        except Exception as e:
            self.logger.error(f"Analyzer '{self.analyzer_id}' failed on {InputType.of(content).value} input: {e}")
            return []

        if self.produces_scores:
            results.sort(key=lambda result: result.score or 0.0, reverse=True)
        return results

    @abstractmethod
    def _analyze(self, content: Any) -> List[Analysis]:
        """Produce analyses for an accepted input."""
        pass

    def dispose(self) -> None:
        """Release held resources. Later calls are no-ops."""
        with self._dispose_lock:
            if self._disposed:
                return
            self._dispose()
            self._disposed = True
        self.logger.debug(f"Disposed analyzer '{self.analyzer_id}'")

    def _dispose(self) -> None:
        pass

    def _check_available(self) -> None:
        if self._disposed:
            raise AnalyzerUnavailableError(f"Analyzer '{self.analyzer_id}' has been disposed")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.analyzer_id!r})"
