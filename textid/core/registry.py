"""
Registry system for analyzers.

Analyzers declare themselves with the ``register_analyzer`` decorator,
which records a factory and capability metadata in a static catalog.
An ``AnalyzerRegistry`` is the process-wide context object built from
that catalog: it instantiates every declared analyzer exactly once, on
first use, and owns those instances until ``dispose()``.
"""

import importlib.util
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Type

from textid.core.base import Analysis, AnalysisFeature, BaseAnalyzer, InputType
from textid.core.exceptions import AnalyzerResourceError, DuplicateAnalyzerError

logger = logging.getLogger(__name__)


class SpeedLevel(Enum):
    """Rough per-call cost of an analyzer."""

    VERY_FAST = "very_fast"    # table lookups, byte sniffing
    FAST = "fast"              # single pass statistics
    MEDIUM = "medium"          # model inference
    SLOW = "slow"              # large models or native engines


@dataclass
class AnalyzerMetadata:
    """
    Capability and descriptive metadata for a declared analyzer.

    Example:
        ```python
        @register_analyzer(
            analyzer_id="chardet",
            input_types=[InputType.BYTES],
            output_features=[ENCODING],
            ranks=True,
            scores=True,
            dependencies=["chardet"],
        )
        class ChardetAnalyzer(BaseAnalyzer):
            ...
        ```
    """

    analyzer_id: str
    description: str = ""
    version: str = "1.0.0"

    input_types: List[InputType] = field(default_factory=list)
    output_features: List[AnalysisFeature] = field(default_factory=list)
    ranks: bool = False
    scores: bool = False

    dependencies: List[str] = field(default_factory=list)
    speed: SpeedLevel = SpeedLevel.FAST
    default_parameters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary format."""
        return {
            "analyzer_id": self.analyzer_id,
            "description": self.description,
            "version": self.version,
            "input_types": [input_type.value for input_type in self.input_types],
            "output_features": [feature.name for feature in self.output_features],
            "ranks": self.ranks,
            "scores": self.scores,
            "dependencies": list(self.dependencies),
            "speed": self.speed.value,
            "default_parameters": dict(self.default_parameters),
        }

    @classmethod
    def describe(cls, analyzer_id: str, analyzer: BaseAnalyzer) -> "AnalyzerMetadata":
        """Build metadata for an analyzer registered without a declaration."""
        return cls(
            analyzer_id=analyzer_id,
            description=(analyzer.__class__.__doc__ or "").strip().split("\n")[0],
            input_types=sorted(analyzer.input_types, key=lambda t: t.value),
            output_features=sorted(analyzer.output_features, key=lambda f: f.name),
            ranks=analyzer.produces_rankings,
            scores=analyzer.produces_scores,
        )


@dataclass(frozen=True)
class AnalyzerDeclaration:
    """A factory for one analyzer plus its metadata."""

    factory: Callable[..., BaseAnalyzer]
    metadata: AnalyzerMetadata


# Static catalog filled by @register_analyzer at import time.
_declarations: Dict[str, AnalyzerDeclaration] = {}


def register_analyzer(
    analyzer_id: str,
    input_types: Iterable[InputType],
    output_features: Iterable[AnalysisFeature],
    ranks: bool = False,
    scores: bool = False,
    description: str = "",
    dependencies: Optional[List[str]] = None,
    speed: SpeedLevel = SpeedLevel.FAST,
    default_parameters: Optional[Dict[str, Any]] = None,
    version: str = "1.0.0",
) -> Callable[[Type[BaseAnalyzer]], Type[BaseAnalyzer]]:
    """
    Decorator to declare an analyzer class with its capabilities.

    The capabilities are written onto the class, so every instance reports
    the same descriptor. Declaring an id twice is a configuration error.

    Args:
        analyzer_id: Stable unique identifier
        input_types: Accepted input types
        output_features: Features the analyzer produces
        ranks: Whether several ordered hypotheses are returned
        scores: Whether results carry a meaningful confidence
        description: Human-readable description
        dependencies: Packages that must be importable
        speed: Rough cost classification
        default_parameters: Constructor keyword arguments
        version: Analyzer version

    Raises:
        DuplicateAnalyzerError: If the id is already declared
    """
    def decorator(analyzer_class: Type[BaseAnalyzer]) -> Type[BaseAnalyzer]:
        metadata = AnalyzerMetadata(
            analyzer_id=analyzer_id,
            description=description or (analyzer_class.__doc__ or "").strip().split("\n")[0],
            version=version,
            input_types=list(input_types),
            output_features=list(output_features),
            ranks=ranks,
            scores=scores,
            dependencies=dependencies or [],
            speed=speed,
            default_parameters=default_parameters or {},
        )

        analyzer_class.analyzer_id = analyzer_id
        analyzer_class.input_types = frozenset(metadata.input_types)
        analyzer_class.output_features = frozenset(metadata.output_features)
        analyzer_class.produces_rankings = ranks
        analyzer_class.produces_scores = scores

        declare_analyzer(AnalyzerDeclaration(analyzer_class, metadata))
        return analyzer_class

    return decorator


def declare_analyzer(declaration: AnalyzerDeclaration) -> None:
    """Add a declaration to the static catalog."""
    analyzer_id = declaration.metadata.analyzer_id
    if analyzer_id in _declarations:
        raise DuplicateAnalyzerError(f"Analyzer already declared: {analyzer_id}")
    _declarations[analyzer_id] = declaration
    logger.debug(f"Declared analyzer: {analyzer_id}")


def get_declarations() -> Mapping[str, AnalyzerDeclaration]:
    """Return the built-in analyzer catalog, importing it on first use."""
    import textid.analyzers  # noqa: F401

    return MappingProxyType(_declarations)


def is_package_available(package_name: str) -> bool:
    """Check if a package is available for import."""
    return importlib.util.find_spec(package_name.replace("-", "_")) is not None


def missing_dependencies(metadata: AnalyzerMetadata) -> List[str]:
    """Declared dependencies of an analyzer that cannot be imported."""
    return [dep for dep in metadata.dependencies if not is_package_available(dep)]


class AnalyzerRegistry:
    """
    Catalog of live analyzer instances addressed by id.

    Population happens once, lazily, under a lock with a double check, so
    concurrent first use from several threads builds a single set of
    instances. Writers replace the catalog mapping wholesale, so readers
    never need the lock.

    Analyzers whose backing resource is missing at construction are left
    out of the catalog and logged; startup continues without them.
    """

    def __init__(
        self,
        declarations: Optional[Mapping[str, AnalyzerDeclaration]] = None,
        enabled: Optional[Iterable[str]] = None,
        disabled: Optional[Iterable[str]] = None,
        parallel: bool = False,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize the registry.

        Args:
            declarations: Analyzer catalog, the built-in one when None
            enabled: Only build these ids (all when None)
            disabled: Never build these ids
            parallel: Invoke analyzers concurrently in ``run``
            max_workers: Thread pool size for parallel runs
        """
        self._declarations = dict(declarations) if declarations is not None else None
        self.enabled = frozenset(enabled) if enabled else None
        self.disabled = frozenset(disabled or ())
        self.parallel = parallel
        self.max_workers = max_workers

        self._analyzers: Mapping[str, BaseAnalyzer] = MappingProxyType({})
        self._metadata: Mapping[str, AnalyzerMetadata] = MappingProxyType({})
        self._excluded: Dict[str, str] = {}
        self._lock = threading.RLock()
        self._built = False
        self._disposed = False

    def _ensure_built(self) -> None:
        if self._built:
            return
        with self._lock:
            if self._built:
                return
            self._populate()
            self._built = True

    def _populate(self) -> None:
        declarations = self._declarations if self._declarations is not None else get_declarations()
        analyzers: Dict[str, BaseAnalyzer] = {}
        metadata: Dict[str, AnalyzerMetadata] = {}

        for analyzer_id in sorted(declarations):
            if self.enabled is not None and analyzer_id not in self.enabled:
                continue
            if analyzer_id in self.disabled:
                continue

            declaration = declarations[analyzer_id]
            missing = missing_dependencies(declaration.metadata)
            if missing:
                self._excluded[analyzer_id] = f"missing dependencies: {', '.join(missing)}"
                logger.error(f"Analyzer {analyzer_id} needs {', '.join(missing)}, excluding it")
                continue

            try:
                analyzer = declaration.factory(
                    analyzer_id=analyzer_id, **declaration.metadata.default_parameters
                )
            except (AnalyzerResourceError, ImportError) as e:
                self._excluded[analyzer_id] = str(e)
                logger.error(f"Could not instantiate analyzer {analyzer_id}, excluding it: {e}")
                continue

            analyzers[analyzer_id] = analyzer
            metadata[analyzer_id] = declaration.metadata

        self._analyzers = MappingProxyType(analyzers)
        self._metadata = MappingProxyType(metadata)
        logger.debug(f"Analyzer registry built with {len(analyzers)} analyzers: {', '.join(analyzers)}")

    def register(
        self,
        analyzer_id: str,
        analyzer: BaseAnalyzer,
        metadata: Optional[AnalyzerMetadata] = None,
    ) -> None:
        """
        Add a live analyzer under an id.

        Raises:
            DuplicateAnalyzerError: If the id is already registered
        """
        self._ensure_built()
        with self._lock:
            if analyzer_id in self._analyzers:
                raise DuplicateAnalyzerError(f"Analyzer already registered: {analyzer_id}")

            analyzers = dict(self._analyzers)
            analyzers[analyzer_id] = analyzer
            all_metadata = dict(self._metadata)
            all_metadata[analyzer_id] = metadata or AnalyzerMetadata.describe(analyzer_id, analyzer)

            self._analyzers = MappingProxyType(analyzers)
            self._metadata = MappingProxyType(all_metadata)

        logger.debug(f"Registered analyzer: {analyzer_id}")

    def get(self, analyzer_id: str) -> Optional[BaseAnalyzer]:
        self._ensure_built()
        return self._analyzers.get(analyzer_id)

    def get_metadata(self, analyzer_id: str) -> Optional[AnalyzerMetadata]:
        self._ensure_built()
        return self._metadata.get(analyzer_id)

    def ids(self) -> FrozenSet[str]:
        self._ensure_built()
        return frozenset(self._analyzers)

    def find(self, predicate: Callable[[BaseAnalyzer], bool]) -> FrozenSet[str]:
        """Return the ids of analyzers satisfying a capability predicate."""
        self._ensure_built()
        return frozenset(
            analyzer_id for analyzer_id, analyzer in self._analyzers.items() if predicate(analyzer)
        )

    def excluded(self) -> Dict[str, str]:
        """Ids left out at population time, with the reason."""
        self._ensure_built()
        return dict(self._excluded)

    def list_analyzers(
        self,
        input_type: Optional[InputType] = None,
        output_feature: Optional[AnalysisFeature] = None,
    ) -> List[str]:
        """
        List analyzer ids with optional filtering.

        Args:
            input_type: Only analyzers accepting this input type
            output_feature: Only analyzers producing this feature

        Returns:
            Sorted analyzer ids
        """
        def matches(analyzer: BaseAnalyzer) -> bool:
            if input_type is not None and not analyzer.accepts(input_type):
                return False
            if output_feature is not None and not analyzer.produces(output_feature):
                return False
            return True

        return sorted(self.find(matches))

    def run(
        self,
        content: Any,
        ids: Optional[Iterable[str]] = None,
        predicate: Optional[Callable[[BaseAnalyzer], bool]] = None,
    ) -> Dict[str, List[Analysis]]:
        """
        Run a selection of analyzers over one input.

        Args:
            content: Input handed to each analyzer
            ids: Restrict to these ids (all registered ids when None)
            predicate: Restrict to analyzers satisfying this predicate

        Returns:
            Results keyed by analyzer id, in id order
        """
        self._ensure_built()
        selected = sorted(
            analyzer_id for analyzer_id in (ids if ids is not None else self._analyzers)
            if analyzer_id in self._analyzers
            and (predicate is None or predicate(self._analyzers[analyzer_id]))
        )
        if not selected:
            return {}

        results: Dict[str, List[Analysis]] = {}
        if self.parallel and len(selected) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                future_to_id = {
                    executor.submit(self._analyzers[analyzer_id].analyze, content): analyzer_id
                    for analyzer_id in selected
                }
                for future in as_completed(future_to_id):
                    results[future_to_id[future]] = future.result()
        else:
            for analyzer_id in selected:
                results[analyzer_id] = self._analyzers[analyzer_id].analyze(content)

        return {analyzer_id: results[analyzer_id] for analyzer_id in selected}

    def export_registry(self) -> Dict[str, Any]:
        """Export registry contents for display or serialization."""
        self._ensure_built()
        return {
            "analyzers": sorted(self._analyzers),
            "metadata": {analyzer_id: meta.to_dict() for analyzer_id, meta in sorted(self._metadata.items())},
            "excluded": dict(self._excluded),
        }

    def dispose(self) -> None:
        """
        Dispose every analyzer exactly once.

        Must only be called at teardown, after in-flight analysis has
        drained.
        """
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            for analyzer_id in sorted(self._analyzers):
                self._analyzers[analyzer_id].dispose()
        logger.debug(f"Disposed {len(self._analyzers)} analyzers")

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __len__(self) -> int:
        return len(self.ids())

    def __contains__(self, analyzer_id: object) -> bool:
        return analyzer_id in self.ids()


# Process-wide default registry
_global_registry: Optional[AnalyzerRegistry] = None
_global_lock = threading.Lock()


def get_registry() -> AnalyzerRegistry:
    """Get the process-wide registry instance, creating it on first use."""
    global _global_registry
    if _global_registry is None:
        with _global_lock:
            if _global_registry is None:
                _global_registry = AnalyzerRegistry()
    return _global_registry


def reset_registry() -> None:
    """Dispose the process-wide registry; the next lookup rebuilds it."""
    global _global_registry
    with _global_lock:
        if _global_registry is not None:
            _global_registry.dispose()
        _global_registry = None
