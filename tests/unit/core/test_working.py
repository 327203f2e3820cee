"""
Tests for per-input working state.
"""

import pytest

from textid.core.base import ENCODING, LANGUAGE, InputType
from textid.core.codes import Language
from textid.core.working import TextInfo, Working


class TestWorking:
    """Test input handling and analyzer result caching."""

    def test_bytes_input(self, stub_registry):
        """Test that bytes start with no decoded text."""
        working = Working(b"caf\xc3\xa9", stub_registry)

        assert working.text_info.size == 5
        assert working.text_info.encoding is None
        assert working.input_for(InputType.TEXT) is None
        assert not working.text_given

    def test_text_input_taken_as_utf8(self, stub_registry):
        """Test that text input is encoded as UTF-8 and its encoding fixed."""
        working = Working("café", stub_registry)

        assert working.text_given
        assert working.input_data == "café".encode("utf-8")
        assert working.text_info.encoding == "utf-8"
        assert working.text_info.size == 5
        assert working.text_info.length == 4

        working.set_encoding("latin-1")
        assert working.text_info.encoding == "utf-8"

    def test_invalid_input(self, stub_registry):
        """Test rejection of None and unsupported types."""
        with pytest.raises(ValueError):
            Working(None, stub_registry)
        with pytest.raises(TypeError):
            Working(12, stub_registry)

    def test_set_encoding_decodes(self, stub_registry):
        """Test that deciding an encoding decodes the text."""
        working = Working(b"caf\xc3\xa9", stub_registry)
        working.set_encoding("UTF8")

        assert working.text_info.encoding == "utf-8"
        assert working.input_for(InputType.TEXT) == "café"
        assert working.text_info.length == 4

    @pytest.mark.parametrize("label,codec", [
        ("UTF-16BE", "utf-16-be"),
        ("utf-16-le", "utf-16-le"),
        ("UTF-32BE", "utf-32-be"),
    ])
    def test_byte_order_kept_without_mark(self, stub_registry, label, codec):
        """Test that byte-order specific encodings decode input without a byte order mark."""
        text = "Hello world, this is plain English."
        working = Working(text.encode(codec), stub_registry)
        working.set_encoding(label)

        assert working.text_info.encoding == codec
        assert working.input_for(InputType.TEXT) == text
        assert working.text_info.length == len(text)

    @pytest.mark.parametrize("label,codec,plain", [
        ("utf-16-be", "utf-16-be", "utf-16"),
        ("UTF-16LE", "utf-16-le", "utf-16"),
        ("utf-32-le", "utf-32-le", "utf-32"),
    ])
    def test_byte_order_mark_consumed(self, stub_registry, label, codec, plain):
        """Test that a byte order mark folds the decision onto the plain codec."""
        text = "Привет"
        working = Working(("\ufeff" + text).encode(codec), stub_registry)
        working.set_encoding(label)

        assert working.text_info.encoding == plain
        assert working.input_for(InputType.TEXT) == text

    def test_unsupported_encoding_leaves_text_absent(self, stub_registry):
        """Test that an encoding Python lacks yields no text."""
        working = Working(b"data", stub_registry)
        working.set_encoding("x-mystery-charset")

        assert working.text_info.encoding == "x-mystery-charset"
        assert working.input_for(InputType.TEXT) is None

    def test_results_cached(self, stub_registry):
        """Test that each analyzer runs once per view of the input."""
        working = Working(b"data", stub_registry)
        producing_encoding = lambda analyzer: analyzer.produces(ENCODING)

        first = working.run_analyzers(InputType.BYTES, producing_encoding)
        second = working.run_analyzers(InputType.BYTES, producing_encoding, ids=["b_rank"])

        assert list(first) == ["b_flag", "b_rank"]
        assert list(second) == ["b_rank"]
        assert stub_registry.get("b_rank").calls == 1

    def test_text_results_reset_on_new_encoding(self, stub_registry):
        """Test that a new encoding decision discards text results."""
        working = Working(b"data", stub_registry)
        working.set_encoding("utf-8")
        working.run_analyzers(InputType.TEXT, lambda analyzer: analyzer.produces(LANGUAGE))
        working.set_encoding("latin-1")
        working.run_analyzers(InputType.TEXT, lambda analyzer: analyzer.produces(LANGUAGE))

        assert stub_registry.get("t_lang").calls == 2


class TestTextInfo:
    """Test the decision record."""

    def test_to_dict_and_analysis(self):
        """Test conversions of a partly decided record."""
        info = TextInfo(size=10, encoding="utf-8", length=10, language=Language.by_text("en"))

        assert info.to_dict() == {
            "size": 10, "encoding": "utf-8", "length": 10, "language": "en", "script": None,
        }
        analysis = info.to_analysis()
        assert analysis[LANGUAGE] == Language.by_text("en")
        assert len(analysis) == 4
