"""
Tests for category feature models and feature assembly.
"""

import pytest

from textid.core.base import UNKNOWN
from textid.core.codes import Language, Script
from textid.core.features import FeatureData, FeatureKind
from textid.core.registry import AnalyzerRegistry
from textid.core.text_models import (
    BYTES_PASS,
    TEXT_PASS,
    Category,
    assemble_features,
    build_feature_model,
    fill_features,
    model_analyzer_ids,
    output_model_feature,
)
from textid.core.working import TextInfo, Working


class TestCategory:
    """Test classification target parsing."""

    @pytest.mark.parametrize("text,category", [
        ("encoding", Category.ENCODING),
        (" Language ", Category.LANGUAGE),
        (Category.SCRIPT, Category.SCRIPT),
    ])
    def test_parse(self, text, category):
        """Test parsing names and passing through members."""
        assert Category.parse(text) is category

    def test_parse_unknown(self):
        """Test that other names list the valid ones."""
        with pytest.raises(ValueError, match="encoding, language, script"):
            Category.parse("dialect")

    def test_output_feature(self):
        """Test the output column of each category."""
        assert output_model_feature(Category.LANGUAGE).name == "language"
        assert output_model_feature(Category.LANGUAGE).codec.name == "language"
        assert output_model_feature(Category.ENCODING).codec.name == "encoding"


class TestFeatureModelLayout:
    """Test column naming and counts."""

    def test_encoding_model_columns(self, stub_registry):
        """Test the encoding model: size, the flagging analyzer, three scored ranks."""
        model = build_feature_model(Category.ENCODING, stub_registry)

        assert model.input_names() == [
            "size",
            "enc_b_flag_1",
            "enc_b_rank_1", "score_enc_b_rank_1",
            "enc_b_rank_2", "score_enc_b_rank_2",
            "enc_b_rank_3", "score_enc_b_rank_3",
        ]
        assert model.output_feature.name == "encoding"
        assert model.get_input_feature("size").kind is FeatureKind.NUMERIC

    @pytest.mark.parametrize("category", [Category.LANGUAGE, Category.SCRIPT])
    def test_text_model_columns(self, stub_registry, category):
        """Test that language and script models read both passes."""
        model = build_feature_model(category, stub_registry)
        names = model.input_names()

        assert len(model) == 21
        assert names[:2] == ["size", "detected_enc"]
        assert "lang_t_lang_1" in names
        assert "score_text_t_lang_3" in names
        assert "script_t_script_2" in names
        assert "score_enc_b_rank_1" in names
        assert not any(name.startswith("lang_b_") for name in names)

    def test_deterministic(self, stub_registry):
        """Test that rebuilding yields an identical model regardless of id order."""
        first = build_feature_model("language", stub_registry)
        second = build_feature_model("language", stub_registry, analyzer_ids=["t_script", "t_lang", "b_rank", "b_flag"])

        assert first == second
        assert first.input_names() == second.input_names()

    def test_restricted_and_unregistered_ids(self, stub_registry):
        """Test that only named ids contribute and unknown ids are skipped."""
        model = build_feature_model(Category.ENCODING, stub_registry, analyzer_ids=["b_flag", "ghost"])
        assert model.input_names() == ["size", "enc_b_flag_1"]

    def test_zero_analyzers(self):
        """Test models built from an empty registry."""
        empty = AnalyzerRegistry(declarations={})

        assert build_feature_model(Category.ENCODING, empty).input_names() == ["size"]
        assert build_feature_model(Category.SCRIPT, empty).input_names() == ["size", "detected_enc"]

    def test_model_analyzer_ids(self, stub_registry):
        """Test recovering the analyzers that own columns in a model."""
        model = build_feature_model(Category.LANGUAGE, stub_registry)

        assert model_analyzer_ids(model, stub_registry, BYTES_PASS) == ["b_flag", "b_rank"]
        assert model_analyzer_ids(model, stub_registry, TEXT_PASS) == ["t_lang", "t_script"]


class TestFeatureAssembly:
    """Test mapping analyzer results into feature data."""

    def test_assemble_language_features(self, stub_registry):
        """Test that every column is bound with hypotheses or the unknown sentinel."""
        model = build_feature_model(Category.LANGUAGE, stub_registry)
        working = Working(b"data", stub_registry)
        working.set_encoding("utf-8")

        data = assemble_features(Category.LANGUAGE, working, model)

        assert data.is_complete(model)
        get = lambda name: data.get(model.get_input_feature(name))
        assert get("size") == 4
        assert get("detected_enc") == "utf-8"
        assert get("enc_b_flag_1") == "utf-8"
        assert get("enc_b_rank_2") == "windows-1252"
        assert get("score_enc_b_rank_1") == pytest.approx(0.9)
        assert get("enc_b_rank_3") is UNKNOWN
        assert get("score_enc_b_rank_3") is UNKNOWN
        assert get("lang_t_lang_1") == Language.by_text("en")
        assert get("score_text_t_lang_3") == pytest.approx(0.05)
        assert get("script_t_script_1") == Script.by_text("Latn")
        assert get("script_t_script_2") is UNKNOWN

    def test_undecided_encoding_leaves_text_columns_unknown(self, stub_registry):
        """Test that without decoded text the text pass contributes nothing."""
        model = build_feature_model(Category.SCRIPT, stub_registry)
        working = Working(b"data", stub_registry)

        data = assemble_features(Category.SCRIPT, working, model)

        assert data.is_complete(model)
        assert data.get(model.get_input_feature("detected_enc")) is UNKNOWN
        assert data.get(model.get_input_feature("lang_t_lang_1")) is UNKNOWN
        assert stub_registry.get("t_lang").calls == 0

    def test_analyzers_run_once_per_input(self, stub_registry):
        """Test that results are reused across categories for one input."""
        working = Working(b"data", stub_registry)
        working.set_encoding("utf-8")
        for category in (Category.LANGUAGE, Category.SCRIPT):
            assemble_features(category, working, build_feature_model(category, stub_registry))

        assert stub_registry.get("b_rank").calls == 1
        assert stub_registry.get("t_lang").calls == 1

    def test_unknown_never_overwrites(self, stub_registry):
        """Test that a later missing hypothesis keeps an earlier real value."""
        model = build_feature_model(Category.ENCODING, stub_registry)
        feature = model.get_input_feature("enc_b_flag_1")
        data = FeatureData({feature: "latin-1"})

        fill_features(TextInfo(size=3), data, model, BYTES_PASS, {"b_flag": []}, stub_registry)

        assert data.get(feature) == "latin-1"
        assert data.get(model.get_input_feature("size")) == 3
        assert data.is_complete(model)

    def test_no_results_binds_unknown(self, stub_registry):
        """Test that with no results and no size every column is unknown."""
        model = build_feature_model(Category.ENCODING, stub_registry)
        data = fill_features(TextInfo(size=None), FeatureData(), model, BYTES_PASS, {}, stub_registry)

        assert all(value is UNKNOWN for _, value in data.items())
