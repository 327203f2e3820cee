"""
Character encoding analyzers.

All three read raw bytes and report ENCODING hypotheses with normalized
names, so votes from different engines agree on spelling.
"""

import importlib
from typing import Dict, List, Optional, Tuple

from textid.core.base import ENCODING, Analysis, BaseAnalyzer, InputType
from textid.core.codes import normalize_encoding
from textid.core.exceptions import AnalyzerResourceError
from textid.core.registry import SpeedLevel, register_analyzer

# Byte Order Marks; UTF-32 first since its little-endian mark starts with UTF-16's.
BOM_PATTERNS: Tuple[Tuple[bytes, str], ...] = (
    (b'\xFF\xFE\x00\x00', 'utf-32'),
    (b'\x00\x00\xFE\xFF', 'utf-32'),
    (b'\xEF\xBB\xBF', 'utf-8-sig'),
    (b'\xFF\xFE', 'utf-16'),
    (b'\xFE\xFF', 'utf-16'),
)


def _load_engine(module_name: str):
    try:
        return importlib.import_module(module_name)
    except ImportError as e:
        raise AnalyzerResourceError(f"Detection engine '{module_name}' is not installed: {e}") from e


def _ranked(candidates: List[Tuple[Optional[str], float]], max_results: int) -> List[Analysis]:
    """Deduplicate normalized encodings, keeping each one's best score."""
    best: Dict[str, float] = {}
    for name, score in candidates:
        encoding = normalize_encoding(name)
        if encoding is None:
            continue
        score = min(max(float(score), 0.0), 1.0)
        if score > best.get(encoding, -1.0):
            best[encoding] = score

    ordered = sorted(best.items(), key=lambda item: (-item[1], item[0]))
    return [Analysis({ENCODING: encoding}, score=score) for encoding, score in ordered[:max_results]]


@register_analyzer(
    analyzer_id="bom",
    input_types=[InputType.BYTES],
    output_features=[ENCODING],
    description="Detects Unicode encodings from a leading Byte Order Mark",
    speed=SpeedLevel.VERY_FAST,
)
class BomAnalyzer(BaseAnalyzer):
    """Byte Order Mark sniffing."""

    def _analyze(self, content: bytes) -> List[Analysis]:
        for bom, encoding in BOM_PATTERNS:
            if content.startswith(bom):
                return [Analysis({ENCODING: encoding})]
        return []


@register_analyzer(
    analyzer_id="chardet",
    input_types=[InputType.BYTES],
    output_features=[ENCODING],
    ranks=True,
    scores=True,
    description="Statistical encoding detection with chardet",
    dependencies=["chardet"],
    speed=SpeedLevel.MEDIUM,
    default_parameters={"max_results": 3, "sample_size": 65536},
)
class ChardetAnalyzer(BaseAnalyzer):
    """Ranked encoding candidates from ``chardet.detect_all``."""

    def __init__(self, analyzer_id: Optional[str] = None, max_results: int = 3,
                 sample_size: int = 65536, **kwargs):
        super().__init__(analyzer_id=analyzer_id, max_results=max_results, sample_size=sample_size, **kwargs)
        self._chardet = _load_engine("chardet")
        self.max_results = max_results
        self.sample_size = sample_size

    def _analyze(self, content: bytes) -> List[Analysis]:
        if not content:
            return []
        detections = self._chardet.detect_all(content[:self.sample_size], ignore_threshold=True)
        return _ranked(
            [(detection.get('encoding'), detection.get('confidence') or 0.0) for detection in detections],
            self.max_results,
        )


@register_analyzer(
    analyzer_id="cnorm",
    input_types=[InputType.BYTES],
    output_features=[ENCODING],
    ranks=True,
    scores=True,
    description="Encoding detection by decoding coherence with charset-normalizer",
    dependencies=["charset-normalizer"],
    speed=SpeedLevel.MEDIUM,
    default_parameters={"max_results": 3, "sample_size": 65536},
)
class CharsetNormalizerAnalyzer(BaseAnalyzer):
    """
    Ranked encoding candidates from charset-normalizer.

    A candidate's score is one minus its mess ratio ("chaos").
    """

    def __init__(self, analyzer_id: Optional[str] = None, max_results: int = 3,
                 sample_size: int = 65536, **kwargs):
        super().__init__(analyzer_id=analyzer_id, max_results=max_results, sample_size=sample_size, **kwargs)
        self._charset_normalizer = _load_engine("charset_normalizer")
        self.max_results = max_results
        self.sample_size = sample_size

    def _analyze(self, content: bytes) -> List[Analysis]:
        if not content:
            return []
        matches = self._charset_normalizer.from_bytes(content[:self.sample_size])
        return _ranked([(match.encoding, 1.0 - match.chaos) for match in matches], self.max_results)
