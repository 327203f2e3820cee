"""
Language, script and encoding identifiers.

Code tables are an external concern; these value objects only carry a
canonical code (and a display name where one is known) and compare by code.
"""

import codecs
import re
from dataclasses import dataclass, field
from typing import Optional


LANGUAGE_NAMES = {
    "ar": "Arabic",
    "de": "German",
    "el": "Greek",
    "en": "English",
    "es": "Spanish",
    "fa": "Persian",
    "fr": "French",
    "he": "Hebrew",
    "hi": "Hindi",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "nl": "Dutch",
    "pl": "Polish",
    "pt": "Portuguese",
    "ru": "Russian",
    "th": "Thai",
    "tr": "Turkish",
    "uk": "Ukrainian",
    "ur": "Urdu",
    "zh": "Chinese",
}

SCRIPT_NAMES = {
    "Arab": "Arabic",
    "Armn": "Armenian",
    "Cyrl": "Cyrillic",
    "Deva": "Devanagari",
    "Geor": "Georgian",
    "Grek": "Greek",
    "Hang": "Hangul",
    "Hani": "Han",
    "Hebr": "Hebrew",
    "Hira": "Hiragana",
    "Kana": "Katakana",
    "Latn": "Latin",
    "Thai": "Thai",
}

_LANGUAGE_BY_NAME = {name.lower(): code for code, name in LANGUAGE_NAMES.items()}
_SCRIPT_BY_TEXT = {}
for _code, _name in SCRIPT_NAMES.items():
    _SCRIPT_BY_TEXT[_code.lower()] = _code
    _SCRIPT_BY_TEXT[_name.lower()] = _code


@dataclass(frozen=True)
class Language:
    """A language identified by its lowercase ISO 639 code."""

    code: str
    name: str = field(default="", compare=False)

    @classmethod
    def by_text(cls, text: Optional[str]) -> Optional["Language"]:
        """
        Resolve a code or English name to a Language.

        Region and script subtags are dropped, so ``zh-cn`` and ``zh_TW``
        both resolve to ``zh``.
        """
        if text is None or not str(text).strip():
            return None
        value = str(text).strip().lower()
        if value in _LANGUAGE_BY_NAME:
            value = _LANGUAGE_BY_NAME[value]
        code = re.split(r"[-_]", value)[0]
        if not code:
            return None
        return cls(code, LANGUAGE_NAMES.get(code, ""))

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True)
class Script:
    """A writing system identified by its ISO 15924 code (e.g. ``Latn``)."""

    code: str
    name: str = field(default="", compare=False)

    @classmethod
    def by_text(cls, text: Optional[str]) -> Optional["Script"]:
        if text is None or not str(text).strip():
            return None
        value = str(text).strip().lower()
        code = _SCRIPT_BY_TEXT.get(value)
        if code is None:
            if len(value) != 4 or not value.isalpha():
                return None
            code = value.title()
        return cls(code, SCRIPT_NAMES.get(code, ""))

    def __str__(self) -> str:
        return self.code


def normalize_encoding(name: Optional[str]) -> Optional[str]:
    """
    Canonicalize a character encoding name.

    Names known to Python collapse onto the codec's canonical spelling, so
    ``UTF-16BE`` becomes ``utf-16-be`` and keeps its byte order. Unknown
    names are only lowercased.
    """
    if name is None or not str(name).strip():
        return None
    value = str(name).strip().lower()
    try:
        return codecs.lookup(value).name
    except LookupError:
        return value
