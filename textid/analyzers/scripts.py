"""
Writing system analyzer.

Each letter is assigned a script from its Unicode character name (the
name of every letter starts with its script, e.g. ``CYRILLIC SMALL
LETTER A``); the script profile is the share of letters per script.
"""

import unicodedata
from collections import Counter
from typing import List, Optional, Tuple

from textid.core.base import SCRIPT, Analysis, BaseAnalyzer, InputType
from textid.core.codes import Script
from textid.core.registry import SpeedLevel, register_analyzer

# Leading word of a Unicode character name -> ISO 15924 code.
NAME_PREFIXES = {
    'LATIN': 'Latn',
    'CYRILLIC': 'Cyrl',
    'ARABIC': 'Arab',
    'GREEK': 'Grek',
    'HEBREW': 'Hebr',
    'ARMENIAN': 'Armn',
    'GEORGIAN': 'Geor',
    'DEVANAGARI': 'Deva',
    'THAI': 'Thai',
    'HANGUL': 'Hang',
    'HIRAGANA': 'Hira',
    'KATAKANA': 'Kana',
    'CJK': 'Hani',
}


def char_script(char: str) -> Optional[str]:
    """ISO 15924 code of a letter, or None for non-letters and unlisted scripts."""
    if not char.isalpha():
        return None
    name = unicodedata.name(char, '')
    if not name:
        return None
    return NAME_PREFIXES.get(name.split(' ', 1)[0])


def script_profile(text: str) -> List[Tuple[str, float]]:
    """
    Share of letters written in each script, largest first.

    Returns:
        (script code, share) pairs; empty when the text has no letters of a
        listed script
    """
    counts = Counter(script for script in map(char_script, text) if script is not None)
    total = sum(counts.values())
    if total == 0:
        return []
    return sorted(((script, count / total) for script, count in counts.items()),
                  key=lambda item: (-item[1], item[0]))


@register_analyzer(
    analyzer_id="scripts",
    input_types=[InputType.TEXT],
    output_features=[SCRIPT],
    ranks=True,
    scores=True,
    description="Writing system shares from Unicode character names",
    speed=SpeedLevel.VERY_FAST,
    default_parameters={"max_results": 3},
)
class ScriptProfileAnalyzer(BaseAnalyzer):
    """Ranks scripts by the share of letters written in them."""

    def __init__(self, analyzer_id: Optional[str] = None, max_results: int = 3, **kwargs):
        super().__init__(analyzer_id=analyzer_id, max_results=max_results, **kwargs)
        self.max_results = max_results

    def _analyze(self, content: str) -> List[Analysis]:
        return [
            Analysis({SCRIPT: Script.by_text(code)}, score=min(share, 1.0))
            for code, share in script_profile(content)[:self.max_results]
        ]
