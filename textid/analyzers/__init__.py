"""
Built-in analyzers.

Importing this package declares every built-in analyzer with the registry
catalog. Encoding analyzers read raw bytes; language and script analyzers
read the text decoded with the decided encoding.
"""

from textid.analyzers.encoding import BomAnalyzer, ChardetAnalyzer, CharsetNormalizerAnalyzer
from textid.analyzers.language import KeywordLanguageAnalyzer, LangdetectAnalyzer
from textid.analyzers.scripts import ScriptProfileAnalyzer, script_profile

__all__ = [
    "BomAnalyzer",
    "ChardetAnalyzer",
    "CharsetNormalizerAnalyzer",
    "LangdetectAnalyzer",
    "KeywordLanguageAnalyzer",
    "ScriptProfileAnalyzer",
    "script_profile",
]
