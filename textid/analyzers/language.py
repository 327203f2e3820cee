"""
Language analyzers over decoded text.
"""

import re
from typing import Dict, List, Optional

from textid.analyzers.scripts import script_profile
from textid.core.base import LANGUAGE, Analysis, BaseAnalyzer, InputType
from textid.core.codes import Language
from textid.core.exceptions import AnalyzerResourceError
from textid.core.registry import SpeedLevel, register_analyzer


@register_analyzer(
    analyzer_id="langdetect",
    input_types=[InputType.TEXT],
    output_features=[LANGUAGE],
    ranks=True,
    scores=True,
    description="Naive Bayes language identification with langdetect",
    dependencies=["langdetect"],
    speed=SpeedLevel.MEDIUM,
    default_parameters={"max_results": 3, "seed": 0},
)
class LangdetectAnalyzer(BaseAnalyzer):
    """
    Ranked languages from langdetect's character n-gram profiles.

    The analyzer owns its detector factory and seeds it, so repeated calls
    on the same text give the same probabilities. Regional variants such
    as ``zh-cn`` and ``zh-tw`` are merged into their base language.
    """

    def __init__(self, analyzer_id: Optional[str] = None, max_results: int = 3, seed: int = 0, **kwargs):
        super().__init__(analyzer_id=analyzer_id, max_results=max_results, seed=seed, **kwargs)
        try:
            from langdetect.detector_factory import PROFILES_DIRECTORY, DetectorFactory
            from langdetect.lang_detect_exception import LangDetectException
        except ImportError as e:
            raise AnalyzerResourceError(f"Detection engine 'langdetect' is not installed: {e}") from e

        self._no_features_error = LangDetectException
        self._factory = DetectorFactory()
        try:
            self._factory.load_profile(PROFILES_DIRECTORY)
        except LangDetectException as e:
            raise AnalyzerResourceError(f"Could not load langdetect profiles: {e}") from e
        self._factory.set_seed(seed)
        self.max_results = max_results

    def _analyze(self, content: str) -> List[Analysis]:
        if not content.strip():
            return []

        detector = self._factory.create()
        detector.append(content)
        try:
            probabilities = detector.get_probabilities()
        except self._no_features_error:
            # No letters langdetect can use
            return []

        merged: Dict[Language, float] = {}
        for candidate in probabilities:
            language = Language.by_text(candidate.lang)
            if language is not None:
                merged[language] = merged.get(language, 0.0) + candidate.prob

        ordered = sorted(merged.items(), key=lambda item: (-item[1], item[0].code))
        return [
            Analysis({LANGUAGE: language}, score=min(probability, 1.0))
            for language, probability in ordered[:self.max_results]
        ]

    def _dispose(self) -> None:
        self._factory = None


# Frequent function words per language. Languages written without spaces
# between words are matched per character.
KEYWORDS = {
    'en': {'words': ['the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by',
                     'is', 'are', 'hello', 'world', 'this', 'a']},
    'es': {'words': ['el', 'la', 'de', 'que', 'y', 'en', 'un', 'es', 'se', 'no', 'te', 'lo',
                     'hola', 'mundo', 'los', 'las']},
    'fr': {'words': ['le', 'de', 'et', 'à', 'un', 'il', 'être', 'en', 'avoir', 'que', 'pour',
                     'bonjour', 'monde', 'les', 'est']},
    'de': {'words': ['der', 'die', 'und', 'in', 'den', 'von', 'zu', 'das', 'mit', 'sich', 'des', 'auf',
                     'hallo', 'welt', 'ist']},
    'it': {'words': ['il', 'di', 'che', 'e', 'la', 'per', 'un', 'in', 'con', 'da', 'su', 'come',
                     'ciao', 'mondo']},
    'pt': {'words': ['o', 'de', 'e', 'do', 'da', 'em', 'um', 'para', 'é', 'com', 'não', 'uma',
                     'olá', 'mundo']},
    'ru': {'words': ['в', 'и', 'не', 'на', 'я', 'быть', 'он', 'с', 'а', 'как', 'это', 'вы',
                     'привет', 'мир', 'здравствуй']},
    'ar': {'words': ['في', 'من', 'على', 'إلى', 'عن', 'مع', 'هذا', 'هذه', 'التي', 'الذي', 'كان', 'لم',
                     'مرحبا', 'بالعالم', 'العالم']},
    'zh': {'chars': ['的', '了', '在', '是', '我', '有', '和', '就', '不', '人', '都', '一',
                     '你', '好', '世', '界']},
    'ja': {'chars': ['の', 'に', 'は', 'を', 'た', 'が', 'で', 'て', 'と', 'し', 'れ', 'さ',
                     'こ', 'ん', 'ち']},
}

# Most likely language for a dominant script when no keyword matches.
SCRIPT_LANGUAGES = {
    'Latn': 'en',
    'Cyrl': 'ru',
    'Arab': 'ar',
    'Hani': 'zh',
    'Hira': 'ja',
    'Kana': 'ja',
    'Hang': 'ko',
    'Grek': 'el',
    'Hebr': 'he',
    'Thai': 'th',
    'Deva': 'hi',
}

SCRIPT_FALLBACK_SCORE = 0.3

_WORD_PATTERN = re.compile(r'\w+')


@register_analyzer(
    analyzer_id="keywords",
    input_types=[InputType.TEXT],
    output_features=[LANGUAGE],
    ranks=True,
    scores=True,
    description="Language guesses from frequent function words",
    speed=SpeedLevel.FAST,
    default_parameters={"max_results": 3, "sample_size": 4000},
)
class KeywordLanguageAnalyzer(BaseAnalyzer):
    """
    Scores languages by the share of tokens that are frequent words.

    When no keyword matches, the dominant script suggests one language
    with a low score.
    """

    def __init__(self, analyzer_id: Optional[str] = None, max_results: int = 3,
                 sample_size: int = 4000, **kwargs):
        super().__init__(analyzer_id=analyzer_id, max_results=max_results, sample_size=sample_size, **kwargs)
        self.max_results = max_results
        self.sample_size = sample_size
        self._keywords = {
            code: (frozenset(entry.get('words', ())), frozenset(entry.get('chars', ())))
            for code, entry in KEYWORDS.items()
        }

    def _analyze(self, content: str) -> List[Analysis]:
        sample = content[:self.sample_size].lower()
        words = _WORD_PATTERN.findall(sample)
        chars = [char for char in sample if char.isalpha()]
        if not words:
            return []

        scores: Dict[str, float] = {}
        for code, (keywords, keychars) in self._keywords.items():
            if keywords:
                score = sum(1 for word in words if word in keywords) / len(words)
            else:
                score = sum(1 for char in chars if char in keychars) / len(chars) if chars else 0.0
            if score > 0:
                scores[code] = score

        if not scores:
            return self._script_fallback(sample)

        ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
        return [
            Analysis({LANGUAGE: Language.by_text(code)}, score=min(score, 1.0))
            for code, score in ordered[:self.max_results]
        ]

    def _script_fallback(self, sample: str) -> List[Analysis]:
        for script, _share in script_profile(sample):
            code = SCRIPT_LANGUAGES.get(script)
            if code is not None:
                return [Analysis({LANGUAGE: Language.by_text(code)}, score=SCRIPT_FALLBACK_SCORE)]
        return []
