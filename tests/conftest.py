"""
Pytest configuration and shared fixtures for the test suite.

This module provides stub analyzers, the classic weather training set
and registries shared across the test modules.
"""

from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence

import pytest

from textid.core.base import (
    ENCODING,
    LANGUAGE,
    SCRIPT,
    Analysis,
    AnalysisFeature,
    BaseAnalyzer,
    InputType,
)
from textid.core.codes import Language, Script
from textid.core.features import (
    Datum,
    EnumeratedFeature,
    FeatureData,
    FeatureModel,
    NominalFeature,
    RealFeature,
    boolean_feature,
)
from textid.core.registry import AnalyzerRegistry


class StubAnalyzer(BaseAnalyzer):
    """Analyzer returning canned results, with capabilities set per instance."""

    def __init__(
        self,
        analyzer_id: Optional[str] = None,
        input_types: Iterable[InputType] = (InputType.BYTES,),
        output_features: Iterable[AnalysisFeature] = (ENCODING,),
        ranks: bool = False,
        scores: bool = False,
        results: Optional[Sequence[Analysis]] = None,
        error: Optional[BaseException] = None,
    ):
        super().__init__(analyzer_id=analyzer_id or "stub")
        self.input_types = frozenset(input_types)
        self.output_features = frozenset(output_features)
        self.produces_rankings = ranks
        self.produces_scores = scores
        self.results = list(results or [])
        self.error = error
        self.calls = 0
        self.dispose_count = 0

    def _analyze(self, content: Any) -> List[Analysis]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.results)

    def _dispose(self) -> None:
        self.dispose_count += 1


def encoding_results(*pairs) -> List[Analysis]:
    return [Analysis({ENCODING: name}, score=score) for name, score in pairs]


def language_results(*pairs) -> List[Analysis]:
    return [Analysis({LANGUAGE: Language.by_text(code)}, score=score) for code, score in pairs]


def script_results(*pairs) -> List[Analysis]:
    return [Analysis({SCRIPT: Script.by_text(code)}, score=score) for code, score in pairs]


@pytest.fixture
def stub_registry() -> AnalyzerRegistry:
    """
    Registry with two byte encoding analyzers and two text analyzers.

    ``b_rank`` ranks and scores, ``b_flag`` neither; ``t_lang`` and
    ``t_script`` rank and score.
    """
    registry = AnalyzerRegistry(declarations={})
    registry.register("b_rank", StubAnalyzer(
        "b_rank", ranks=True, scores=True,
        results=encoding_results(("utf-8", 0.9), ("windows-1252", 0.4)),
    ))
    registry.register("b_flag", StubAnalyzer(
        "b_flag", results=[Analysis({ENCODING: "utf-8"})],
    ))
    registry.register("t_lang", StubAnalyzer(
        "t_lang", input_types=[InputType.TEXT], output_features=[LANGUAGE], ranks=True, scores=True,
        results=language_results(("en", 0.8), ("fr", 0.15), ("de", 0.05)),
    ))
    registry.register("t_script", StubAnalyzer(
        "t_script", input_types=[InputType.TEXT], output_features=[SCRIPT], ranks=True, scores=True,
        results=script_results(("Latn", 1.0)),
    ))
    yield registry
    registry.dispose()


# The classic "play tennis" weather data: outlook, temperature, humidity, windy -> play
WEATHER_ROWS = [
    ("sunny", 85, 85, False, "no"),
    ("sunny", 80, 90, True, "no"),
    ("overcast", 83, 86, False, "yes"),
    ("rainy", 70, 96, False, "yes"),
    ("rainy", 68, 80, False, "yes"),
    ("rainy", 65, 70, True, "no"),
    ("overcast", 64, 65, True, "yes"),
    ("sunny", 72, 95, False, "no"),
    ("sunny", 69, 70, False, "yes"),
    ("rainy", 75, 80, False, "yes"),
    ("sunny", 75, 70, True, "yes"),
    ("overcast", 72, 90, True, "yes"),
    ("overcast", 81, 75, False, "yes"),
    ("rainy", 71, 91, True, "no"),
]

PLAY = AnalysisFeature("play", str)


class WeatherData:
    """Feature model and labeled rows of the weather data set."""

    def __init__(self):
        self.outlook = NominalFeature("outlook", codec="lower")
        self.temperature = RealFeature("temperature")
        self.humidity = RealFeature("humidity")
        self.windy = boolean_feature("windy")
        self.play = EnumeratedFeature("play", codec="text", values=("yes", "no"))
        self.model = FeatureModel(self.play, [self.outlook, self.temperature, self.humidity, self.windy])
        self.output = PLAY

    def feature_data(self, outlook, temperature, humidity, windy) -> FeatureData:
        return FeatureData({
            self.outlook: outlook,
            self.temperature: float(temperature),
            self.humidity: float(humidity),
            self.windy: windy,
        })

    def data(self) -> List[Datum]:
        return [Datum(label, self.feature_data(*row)) for *row, label in WEATHER_ROWS]


@pytest.fixture
def weather() -> WeatherData:
    return WeatherData()


# Labeled samples: file name, text, encoding, language, script
SAMPLES = [
    ("english.txt",
     "The committee will publish its annual report on the state of the regional economy "
     "next week, and the findings are expected to shape the budget for the coming year.",
     "utf-8", "en", "Latn"),
    ("russian.txt",
     "Москва является столицей Российской Федерации и крупнейшим городом страны. "
     "В городе работают тысячи предприятий, музеев и театров.",
     "utf-8", "ru", "Cyrl"),
    ("arabic.txt",
     "القاهرة هي عاصمة جمهورية مصر العربية وأكبر مدنها، وتقع على ضفاف نهر النيل "
     "في شمال البلاد وهي من أقدم المدن في العالم.",
     "utf-8", "ar", "Arab"),
    ("chinese.txt",
     "北京是中华人民共和国的首都，也是全国的政治中心和文化中心。"
     "这座城市有三千多年的历史，每年都有很多人来这里旅游。",
     "utf-8", "zh", "Hani"),
    ("english_utf16.txt",
     "Weather forecasters expect heavy rain across the northern counties this weekend, "
     "with strong winds along the coast and cooler temperatures by Monday.",
     "utf-16", "en", "Latn"),
]


def write_corpus(directory, extra_rows=()) -> Path:
    """Write the labeled samples and a manifest describing them; return the manifest path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    lines = ["file,encoding,language,script"]
    for name, text, encoding, language, script in SAMPLES:
        (directory / name).write_bytes(text.encode(encoding))
        lines.append(f"{name},{encoding},{language},{script}")
    lines.extend(extra_rows)
    manifest = directory / "manifest.csv"
    manifest.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return manifest


@pytest.fixture(scope="session")
def analyzer_registry() -> AnalyzerRegistry:
    """Registry of the built-in analyzers, shared across the session."""
    registry = AnalyzerRegistry()
    yield registry
    registry.dispose()
