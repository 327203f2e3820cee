"""
Per-input working state for the identification pipeline.

A ``Working`` instance carries one input through the encoding, language
and script stages. It holds the raw bytes, the decoded text once an
encoding is decided, the ``TextInfo`` decisions made so far, and the
results of every analyzer already run, so no analyzer sees the same
input twice.
"""

import codecs
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from textid.core.base import (
    ENCODING,
    LANGUAGE,
    LENGTH,
    SCRIPT,
    SIZE,
    Analysis,
    BaseAnalyzer,
    InputType,
)
from textid.core.codes import Language, Script, normalize_encoding
from textid.core.registry import AnalyzerRegistry

logger = logging.getLogger(__name__)

# Byte-order specific decisions that collapse onto the BOM-aware codec when
# the input starts with their byte order mark
BOM_FOLDS = {
    "utf-16-be": (codecs.BOM_UTF16_BE, "utf-16"),
    "utf-16-le": (codecs.BOM_UTF16_LE, "utf-16"),
    "utf-32-be": (codecs.BOM_UTF32_BE, "utf-32"),
    "utf-32-le": (codecs.BOM_UTF32_LE, "utf-32"),
}


@dataclass
class TextInfo:
    """Decisions about one input: size, encoding, length, language, script."""

    size: Optional[int] = None
    encoding: Optional[str] = None
    length: Optional[int] = None
    language: Optional[Language] = None
    script: Optional[Script] = None

    def to_analysis(self, score: Optional[float] = None) -> Analysis:
        return Analysis({
            SIZE: self.size,
            ENCODING: self.encoding,
            LENGTH: self.length,
            LANGUAGE: self.language,
            SCRIPT: self.script,
        }, score=score)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "encoding": self.encoding,
            "length": self.length,
            "language": str(self.language) if self.language else None,
            "script": str(self.script) if self.script else None,
        }


class Working:
    """Mutable identification state for a single input."""

    def __init__(self, content: Any, registry: AnalyzerRegistry):
        """
        Start identification of one input.

        Args:
            content: Bytes of unknown encoding, or text (taken as UTF-8)
            registry: Analyzers available to the stages

        Raises:
            ValueError: If content is None
            TypeError: If content is neither bytes nor text
        """
        if content is None:
            raise ValueError("Content cannot be None")

        self.registry = registry
        self.text_info = TextInfo()
        self._results: Dict[InputType, Dict[str, List[Analysis]]] = {}

        if isinstance(content, str):
            self.input_data = content.encode("utf-8")
            self.input_text: Optional[str] = content
            self.text_info.encoding = "utf-8"
            self.text_info.length = len(content)
            self.text_given = True
        elif isinstance(content, (bytes, bytearray, memoryview)):
            self.input_data = bytes(content)
            self.input_text = None
            self.text_given = False
        else:
            raise TypeError(f"Unsupported input type: {type(content).__name__}")

        self.text_info.size = len(self.input_data)

    def set_encoding(self, encoding: Optional[str]) -> None:
        """
        Record the encoding decision and decode the input with it.

        Text inputs keep their UTF-8 encoding. A byte-order specific UTF-16/32
        decision on input carrying a byte order mark is recorded as the plain
        codec, which consumes the mark. An encoding Python cannot decode with
        leaves the text absent.
        """
        if self.text_given:
            return
        encoding = normalize_encoding(encoding)
        if encoding in BOM_FOLDS:
            bom, folded = BOM_FOLDS[encoding]
            if self.input_data.startswith(bom):
                encoding = folded
        self.text_info.encoding = encoding
        self.input_text = None
        self.text_info.length = None
        self._results.pop(InputType.TEXT, None)
        if encoding is None:
            return
        try:
            self.input_text = self.input_data.decode(encoding, errors="replace")
        except LookupError:
            logger.warning(f"Cannot decode input with unsupported encoding '{encoding}'")
            return
        self.text_info.length = len(self.input_text)

    def input_for(self, input_type: InputType) -> Any:
        if input_type is InputType.BYTES:
            return self.input_data
        if input_type is InputType.TEXT:
            return self.input_text
        return None

    def run_analyzers(
        self,
        input_type: InputType,
        predicate: Callable[[BaseAnalyzer], bool],
        ids: Optional[Iterable[str]] = None,
    ) -> Dict[str, List[Analysis]]:
        """
        Run the analyzers matching a predicate over one view of the input.

        Results already computed for this input are reused.

        Args:
            input_type: Which view of the input to analyze
            predicate: Capability filter
            ids: Further restrict to these analyzer ids

        Returns:
            Results keyed by analyzer id, in id order
        """
        content = self.input_for(input_type)
        if content is None:
            return {}

        wanted = sorted(
            self.registry.find(lambda analyzer: analyzer.accepts(input_type) and predicate(analyzer))
        )
        if ids is not None:
            allowed = set(ids)
            wanted = [analyzer_id for analyzer_id in wanted if analyzer_id in allowed]
        cache = self._results.setdefault(input_type, {})
        pending = [analyzer_id for analyzer_id in wanted if analyzer_id not in cache]
        if pending:
            cache.update(self.registry.run(content, ids=pending))
            logger.debug(f"Ran {len(pending)} {input_type.value} analyzers: {', '.join(pending)}")

        return {analyzer_id: cache[analyzer_id] for analyzer_id in wanted}
