"""
Configuration-driven text identification.

``TextIdentifier`` is the main entry point. It decides, in order, the
encoding, language and script of an input. Each decision comes from the
category's trained ensemble model when one is installed, and otherwise
from a rank-weighted election among the analyzers that report that
feature.
"""

import copy
import json
import os
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import yaml

from textid.core.base import ENCODING, LANGUAGE, SCRIPT, UNKNOWN, Analysis, InputType
from textid.core.ensemble import EnsembleClassifier, EnsembleClassifierBuilder, ForestConfig
from textid.core.features import Datum, FeatureModel
from textid.core.registry import AnalyzerRegistry
from textid.core.text_models import Category, assemble_features, build_feature_model
from textid.core.voting import MAX_VOTES, elect
from textid.core.working import TextInfo, Working
from textid.logging_config import debug_operation, get_logger, performance_log, user_info

logger = get_logger(__name__)

MODEL_SUFFIX = ".model"

CategoryLike = Union[Category, str]
Content = Union[bytes, bytearray, str]


def model_path(directory: Union[str, Path], category: CategoryLike) -> Path:
    """Location of a category's serialized model inside a profile directory."""
    return Path(directory) / f"{Category.parse(category).value}{MODEL_SUFFIX}"


def _merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class TextIdentifier:
    """
    Identifies the encoding, language and script of text.

    Examples:
        Basic usage:
        ```python
        identifier = TextIdentifier()
        info = identifier.identify(data)
        print(info.encoding, info.language, info.script)
        ```

        With trained models:
        ```python
        identifier = TextIdentifier(model_dir="profiles/news")
        ranking = identifier.classify_language(data)
        ```

        With configuration:
        ```python
        config = {
            "analyzers": {"disabled": ["cnorm"]},
            "forest": {"n_estimators": 200},
        }
        identifier = TextIdentifier(config=config)
        ```
    """

    def __init__(
        self,
        models: Optional[Mapping[CategoryLike, Union[EnsembleClassifier, bytes]]] = None,
        registry: Optional[AnalyzerRegistry] = None,
        config: Optional[Dict[str, Any]] = None,
        config_path: Optional[Union[str, Path]] = None,
        default_profile: str = "balanced",
        model_dir: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize the identifier.

        Args:
            models: Trained models (or their serialized blobs) per category
            registry: Analyzer registry, built from configuration when None
            config: Configuration dictionary, overriding the file and profile
            config_path: Path to a YAML or JSON configuration file
            default_profile: Built-in profile the configuration starts from
            model_dir: Profile directory to load models from
        """
        self.logger = get_logger(f"{__name__}.TextIdentifier")

        file_config = self._load_config_file(config_path) if config_path else {}
        profile = (config or {}).get("profile_name") or file_config.get("profile_name") or default_profile
        self.config = _merge(_merge(self._get_default_config(profile), file_config), config or {})
        self._apply_environment(self.config)

        if registry is None:
            analyzers = self.config.get("analyzers", {})
            pipeline = self.config.get("pipeline", {})
            registry = AnalyzerRegistry(
                enabled=analyzers.get("enabled"),
                disabled=analyzers.get("disabled"),
                parallel=bool(pipeline.get("parallel", False)),
                max_workers=pipeline.get("max_workers"),
            )
            self._owns_registry = True
        else:
            self._owns_registry = False
        self.registry = registry

        self.forest_config = ForestConfig.from_dict(self.config.get("forest"))
        self.max_votes = int(self.config.get("voting", {}).get("max_rank", MAX_VOTES))
        self._models: Dict[Category, EnsembleClassifier] = {}

        for category, model in (models or {}).items():
            self.install_model(category, model)

        model_dir = model_dir or self.config.get("models", {}).get("directory")
        if model_dir:
            self.load_models(model_dir)

        self.logger.debug(f"Using '{self.config.get('profile_name')}' identification profile")

    def identify(self, content: Content) -> TextInfo:
        """
        Decide encoding, language and script of one input.

        Args:
            content: Bytes of unknown encoding, or text

        Returns:
            The input's size, encoding, decoded length, language and script
        """
        start_time = time.time()
        working = Working(content, self.registry)
        self.run_stages(working, Category.SCRIPT)

        performance_log("identify", time.time() - start_time, size=working.text_info.size)
        debug_operation("identify", working.text_info.to_dict())
        return working.text_info

    def classify_encoding(self, content: Union[bytes, bytearray]) -> List[Analysis]:
        """
        Rank candidate encodings for raw bytes.

        Raises:
            TypeError: If given text, whose encoding is already known
        """
        if isinstance(content, str):
            raise TypeError("Encoding classification needs raw bytes, not text")
        return self.run_stages(Working(content, self.registry), Category.ENCODING)

    def classify_language(self, content: Content) -> List[Analysis]:
        """Rank candidate languages, deciding the encoding first for bytes."""
        return self.run_stages(Working(content, self.registry), Category.LANGUAGE)

    def classify_script(self, content: Content) -> List[Analysis]:
        """Rank candidate scripts after the encoding and language stages."""
        return self.run_stages(Working(content, self.registry), Category.SCRIPT)

    def classify(self, category: CategoryLike, content: Content) -> List[Analysis]:
        category = Category.parse(category)
        if category is Category.ENCODING:
            return self.classify_encoding(content)
        if category is Category.LANGUAGE:
            return self.classify_language(content)
        return self.classify_script(content)

    def run_stages(self, working: Working, last: Category) -> List[Analysis]:
        """Decide every stage up to and including ``last``; return its ranking."""
        if working.text_given:
            results = [Analysis({ENCODING: working.text_info.encoding}, score=1.0)]
        else:
            results = self._classify(Category.ENCODING, working)
            working.set_encoding(self._best(results, ENCODING))
        if last is Category.ENCODING:
            return results

        results = self._classify(Category.LANGUAGE, working)
        working.text_info.language = self._best(results, LANGUAGE)
        if last is Category.LANGUAGE:
            return results

        results = self._classify(Category.SCRIPT, working)
        working.text_info.script = self._best(results, SCRIPT)
        return results

    @staticmethod
    def _best(results: List[Analysis], feature) -> Any:
        if not results:
            return None
        value = results[0].get(feature)
        return None if value is UNKNOWN else value

    def _classify(self, category: Category, working: Working) -> List[Analysis]:
        """
        Rank values for one category.

        The trained model decides when present; otherwise the analyzers
        vote. With no opinion at all the result is a single unknown.
        """
        feature = category.feature
        model = self._models.get(category)
        if model is not None:
            feature_data = assemble_features(category, working, model.get_feature_model())
            results = model.analyze(feature_data)
            if results:
                return results
            self.logger.debug(f"{category.value} model gave no result, falling back to voting")

        input_type = InputType.BYTES if category is Category.ENCODING else InputType.TEXT
        votes = working.run_analyzers(input_type, lambda analyzer: analyzer.produces(feature))
        results = elect(feature, votes, self.max_votes)
        return results or [Analysis({feature: UNKNOWN})]

    def train_model(self, category: CategoryLike, examples: Iterable[Tuple[Content, Any]]) -> bytes:
        """
        Train and install the model for one category.

        Earlier stages are decided by the identifier as it stands, so train
        the encoding model before the language and script models.

        Args:
            category: Classification target
            examples: (content, label) pairs; labels may be text such as 'en'

        Returns:
            The serialized model
        """
        category = Category.parse(category)
        builder = self.create_builder(category)

        for content, label in examples:
            working = Working(content, self.registry)
            if category is not Category.ENCODING:
                self.run_stages(working, Category.ENCODING)
            builder.add_training_data(self.make_datum(category, working, label, builder.feature_model))

        classifier = builder.build()
        self.install_model(category, classifier)
        return classifier.to_bytes()

    def create_builder(self, category: CategoryLike) -> EnsembleClassifierBuilder:
        category = Category.parse(category)
        feature_model = build_feature_model(category, self.registry)
        return EnsembleClassifierBuilder(feature_model, category.feature, self.forest_config)

    @staticmethod
    def make_datum(category: Category, working: Working, label: Any, feature_model: FeatureModel) -> Datum:
        """Assemble a labeled example from an input whose earlier stages are decided."""
        ground_truth = feature_model.output_feature.parse(label) if isinstance(label, str) else label
        return Datum(ground_truth, assemble_features(category, working, feature_model))

    def install_model(self, category: CategoryLike, model: Union[EnsembleClassifier, bytes]) -> bool:
        """
        Use a trained model for a category.

        Blobs that cannot be reconstructed are not installed; the category
        keeps falling back to voting.

        Returns:
            True if the model was installed
        """
        category = Category.parse(category)
        if isinstance(model, (bytes, bytearray)):
            model = EnsembleClassifier.from_bytes(bytes(model))
        if not model.is_available():
            self.logger.warning(f"Ignoring unavailable {category.value} model: {model.unavailable_reason}")
            return False
        if model.get_output_feature() != category.feature:
            raise ValueError(f"Model decides '{model.get_output_feature().name}', not '{category.value}'")

        previous = self._models.get(category)
        self._models[category] = model
        if previous is not None and previous is not model:
            previous.dispose()
        return True

    def has_model(self, category: CategoryLike) -> bool:
        return Category.parse(category) in self._models

    def get_model(self, category: CategoryLike) -> Optional[EnsembleClassifier]:
        return self._models.get(Category.parse(category))

    def load_models(self, directory: Union[str, Path]) -> int:
        """
        Load every category model found in a profile directory.

        Returns:
            Number of models installed
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise FileNotFoundError(f"Model directory not found: {directory}")

        loaded = 0
        for category in Category:
            path = model_path(directory, category)
            if not path.exists():
                continue
            if self.install_model(category, path.read_bytes()):
                loaded += 1
        user_info(f"Loaded {loaded} models from {directory}")
        return loaded

    def save_models(self, directory: Union[str, Path]) -> List[Path]:
        """Write every installed model into a profile directory."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        written = []
        for category, model in sorted(self._models.items(), key=lambda item: item[0].value):
            path = model_path(directory, category)
            path.write_bytes(model.to_bytes())
            written.append(path)
        return written

    def feature_model(self, category: CategoryLike) -> FeatureModel:
        """Feature model of the installed model, or the one training would use."""
        category = Category.parse(category)
        model = self._models.get(category)
        if model is not None:
            return model.get_feature_model()
        return build_feature_model(category, self.registry)

    def close(self) -> None:
        """Dispose installed models and, if owned, the registry."""
        for model in self._models.values():
            model.dispose()
        self._models = {}
        if self._owns_registry:
            self.registry.dispose()

    def __enter__(self) -> "TextIdentifier":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _load_config_file(self, config_path: Union[str, Path]) -> Dict[str, Any]:
        """Load configuration from a YAML or JSON file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if config_path.suffix.lower() in ['.yaml', '.yml']:
                    raw_config = yaml.safe_load(f)
                elif config_path.suffix.lower() == '.json':
                    raw_config = json.load(f)
                else:
                    raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")
        except Exception as e:
            self.logger.error(f"Error loading configuration file: {e}")
            raise

        if raw_config is None:
            return {}
        if not isinstance(raw_config, dict):
            raise ValueError(f"Configuration file must contain a mapping: {config_path}")
        return raw_config

    def _apply_environment(self, config: Dict[str, Any]) -> None:
        """Apply TEXTID_* environment overrides in place."""
        pipeline = config.setdefault("pipeline", {})

        parallel = os.environ.get("TEXTID_PARALLEL")
        if parallel:
            pipeline["parallel"] = parallel.lower() in ("true", "1", "yes")

        max_workers = os.environ.get("TEXTID_MAX_WORKERS")
        if max_workers:
            try:
                pipeline["max_workers"] = int(max_workers)
            except ValueError:
                self.logger.warning(f"Ignoring non-integer TEXTID_MAX_WORKERS={max_workers!r}")

        model_dir = os.environ.get("TEXTID_MODEL_DIR")
        if model_dir:
            config.setdefault("models", {})["directory"] = model_dir

    def _get_default_config(self, profile: str) -> Dict[str, Any]:
        """Get default configuration for profile."""
        if profile == "fast":
            return {
                "profile_name": "fast",
                "analyzers": {"enabled": None, "disabled": ["cnorm"]},
                "forest": {"n_estimators": 50, "random_state": 1, "max_results": 3},
                "pipeline": {"parallel": False, "max_workers": None},
                "voting": {"max_rank": 3},
                "models": {"directory": None},
            }
        elif profile == "accurate":
            return {
                "profile_name": "accurate",
                "analyzers": {"enabled": None, "disabled": []},
                "forest": {"n_estimators": 300, "random_state": 1, "max_results": 5},
                "pipeline": {"parallel": True, "max_workers": 4},
                "voting": {"max_rank": MAX_VOTES},
                "models": {"directory": None},
            }
        else:  # balanced
            return {
                "profile_name": "balanced",
                "analyzers": {"enabled": None, "disabled": []},
                "forest": {"n_estimators": 100, "random_state": 1, "max_results": 5},
                "pipeline": {"parallel": False, "max_workers": None},
                "voting": {"max_rank": MAX_VOTES},
                "models": {"directory": None},
            }
