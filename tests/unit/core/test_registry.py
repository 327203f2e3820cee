"""
Tests for analyzer declarations and the analyzer registry.
"""

import threading

import pytest

from textid.core.base import ENCODING, LANGUAGE, InputType
from textid.core.exceptions import AnalyzerResourceError, DuplicateAnalyzerError
from textid.core.registry import (
    AnalyzerDeclaration,
    AnalyzerMetadata,
    AnalyzerRegistry,
    SpeedLevel,
    get_declarations,
    get_registry,
    is_package_available,
    missing_dependencies,
    register_analyzer,
    reset_registry,
)

from tests.conftest import StubAnalyzer, encoding_results


class CountingFactory:
    """Factory building stub analyzers, counting constructions."""

    def __init__(self, error=None):
        self.error = error
        self.count = 0
        self.lock = threading.Lock()

    def __call__(self, analyzer_id, **kwargs):
        with self.lock:
            self.count += 1
        if self.error is not None:
            raise self.error
        return StubAnalyzer(analyzer_id, results=encoding_results(("utf-8", 1.0)), **kwargs)


def declaration(analyzer_id, factory, dependencies=None, **parameters):
    metadata = AnalyzerMetadata(
        analyzer_id=analyzer_id,
        input_types=[InputType.BYTES],
        output_features=[ENCODING],
        dependencies=dependencies or [],
        default_parameters=parameters,
    )
    return AnalyzerDeclaration(factory, metadata)


class TestDeclarations:
    """Test the static declaration catalog."""

    def test_builtin_catalog(self):
        """Test that the built-in analyzers are declared with their capabilities."""
        declarations = get_declarations()

        assert {"bom", "chardet", "cnorm", "langdetect", "keywords", "scripts"} <= set(declarations)
        chardet = declarations["chardet"].metadata
        assert chardet.ranks and chardet.scores
        assert chardet.input_types == [InputType.BYTES]
        assert chardet.output_features == [ENCODING]

    def test_duplicate_declaration_rejected(self):
        """Test that an id can only be declared once."""
        with pytest.raises(DuplicateAnalyzerError):
            @register_analyzer("chardet", input_types=[InputType.BYTES], output_features=[ENCODING])
            class AnotherChardet(StubAnalyzer):
                pass

    def test_metadata_to_dict(self):
        """Test metadata export."""
        metadata = AnalyzerMetadata(
            analyzer_id="x", input_types=[InputType.TEXT], output_features=[LANGUAGE],
            ranks=True, speed=SpeedLevel.SLOW,
        )
        data = metadata.to_dict()
        assert data["input_types"] == ["text"]
        assert data["output_features"] == ["language"]
        assert data["speed"] == "slow"
        assert data["ranks"] is True

    def test_package_availability(self):
        """Test dependency probing."""
        assert is_package_available("pytest")
        assert not is_package_available("definitely-not-installed-package")


class TestAnalyzerRegistry:
    """Test registry population, lookup and lifecycle."""

    def setup_method(self):
        """Set up a catalog of two working analyzers and one broken one."""
        self.good = CountingFactory()
        self.broken = CountingFactory(error=AnalyzerResourceError("engine missing"))
        self.declarations = {
            "alpha": declaration("alpha", self.good),
            "beta": declaration("beta", self.good),
            "gamma": declaration("gamma", self.broken),
        }

    def test_population_is_lazy(self):
        """Test that nothing is built until first use."""
        registry = AnalyzerRegistry(declarations=self.declarations)
        assert self.good.count == 0

        assert registry.ids() == frozenset({"alpha", "beta"})
        assert self.good.count == 2

        registry.get("alpha")
        assert self.good.count == 2

    def test_missing_resource_excludes_analyzer(self):
        """Test that a failing constructor leaves only that analyzer out."""
        registry = AnalyzerRegistry(declarations=self.declarations)

        assert "gamma" not in registry
        assert registry.get("gamma") is None
        assert "engine missing" in registry.excluded()["gamma"]
        assert len(registry) == 2

    def test_missing_dependency_excludes_analyzer(self):
        """Test that an analyzer whose declared package is absent is never constructed."""
        factory = CountingFactory()
        registry = AnalyzerRegistry(declarations={
            "alpha": declaration("alpha", self.good, dependencies=["pytest"]),
            "needy": declaration("needy", factory, dependencies=["pytest", "definitely-not-installed-package"]),
        })

        assert registry.ids() == frozenset({"alpha"})
        assert factory.count == 0
        assert "definitely-not-installed-package" in registry.excluded()["needy"]

    def test_builtin_dependencies_declared(self):
        """Test that installed built-in engines pass the dependency check."""
        for analyzer_id in ("chardet", "cnorm", "langdetect"):
            metadata = get_declarations()[analyzer_id].metadata
            assert metadata.dependencies
            assert missing_dependencies(metadata) == []

    def test_enabled_and_disabled(self):
        """Test id selection at population time."""
        only_alpha = AnalyzerRegistry(declarations=self.declarations, enabled=["alpha"])
        assert only_alpha.ids() == frozenset({"alpha"})

        no_beta = AnalyzerRegistry(declarations=self.declarations, disabled=["beta"])
        assert no_beta.ids() == frozenset({"alpha"})

    def test_default_parameters_passed(self):
        """Test that declared parameters reach the factory."""
        registry = AnalyzerRegistry(declarations={
            "tuned": declaration("tuned", self.good, scores=True),
        })
        assert registry.get("tuned").produces_scores is True

    def test_concurrent_first_use_builds_once(self):
        """Test that racing threads share one population."""
        registry = AnalyzerRegistry(declarations=self.declarations)
        seen = []

        def lookup():
            seen.append(registry.get("alpha"))

        threads = [threading.Thread(target=lookup) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert self.good.count == 2
        assert all(analyzer is seen[0] for analyzer in seen)

    def test_register_and_duplicates(self):
        """Test adding a live analyzer and rejecting a repeated id."""
        registry = AnalyzerRegistry(declarations={})
        stub = StubAnalyzer("delta")
        registry.register("delta", stub)

        assert registry.get("delta") is stub
        assert registry.get_metadata("delta").output_features == [ENCODING]
        with pytest.raises(DuplicateAnalyzerError):
            registry.register("delta", StubAnalyzer("delta"))

    def test_find_and_list(self, stub_registry):
        """Test capability queries."""
        assert stub_registry.find(lambda analyzer: analyzer.produces_rankings) == frozenset(
            {"b_rank", "t_lang", "t_script"}
        )
        assert stub_registry.list_analyzers(input_type=InputType.BYTES) == ["b_flag", "b_rank"]
        assert stub_registry.list_analyzers(output_feature=LANGUAGE) == ["t_lang"]

    def test_run_selection(self, stub_registry):
        """Test running a selection of analyzers in id order."""
        results = stub_registry.run(b"data", predicate=lambda analyzer: analyzer.accepts(InputType.BYTES))

        assert list(results) == ["b_flag", "b_rank"]
        assert results["b_rank"][0][ENCODING] == "utf-8"
        assert stub_registry.run(b"data", ids=["missing"]) == {}

    def test_parallel_run_matches_sequential(self, stub_registry):
        """Test that parallel invocation returns the same results."""
        sequential = stub_registry.run(b"data")
        stub_registry.parallel = True
        stub_registry.max_workers = 4

        assert stub_registry.run(b"data") == sequential

    def test_export(self):
        """Test registry export for display."""
        registry = AnalyzerRegistry(declarations=self.declarations)
        exported = registry.export_registry()

        assert exported["analyzers"] == ["alpha", "beta"]
        assert exported["metadata"]["alpha"]["input_types"] == ["bytes"]
        assert "gamma" in exported["excluded"]

    def test_dispose_once(self, stub_registry):
        """Test that disposing twice disposes each analyzer once."""
        analyzer = stub_registry.get("b_rank")
        stub_registry.dispose()
        stub_registry.dispose()

        assert stub_registry.disposed
        assert analyzer.dispose_count == 1


class TestProcessRegistry:
    """Test the process-wide default registry."""

    def teardown_method(self):
        """Drop the default registry built by the test."""
        reset_registry()

    def test_get_and_reset(self):
        """Test that the default registry is shared until reset."""
        first = get_registry()
        assert get_registry() is first

        reset_registry()

        assert first.disposed
        assert get_registry() is not first
