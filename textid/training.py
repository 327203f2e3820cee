"""
Training manifests, model profiles and evaluation.

A training manifest is a CSV file with the header
``file,encoding,language,script``. Each row names a sample file (relative
paths resolve against the manifest's directory) and its known labels; a
blank cell means the sample is not labeled for that category.

``Trainer`` turns a manifest into the three category models and writes
them, with a ``profile.yaml`` description, into a profile directory that
``TextIdentifier(model_dir=...)`` loads.
"""

import csv
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml
from sklearn.metrics import accuracy_score, precision_recall_fscore_support

from textid.core.ensemble import EnsembleClassifierBuilder
from textid.core.exceptions import TrainingError
from textid.core.features import MISSING_TEXT, UNKNOWN_TEXT
from textid.core.text_models import Category, output_model_feature
from textid.core.working import Working
from textid.logging_config import get_logger, metrics_log, performance_log, user_info, user_warning
from textid.orchestrator import TextIdentifier

logger = get_logger(__name__)

MANIFEST_COLUMNS = ("file", "encoding", "language", "script")
PROFILE_FILE = "profile.yaml"


@dataclass
class TrainingRecord:
    """One sample file with its known labels."""

    path: Path
    encoding: Optional[str] = None
    language: Optional[str] = None
    script: Optional[str] = None

    def label(self, category: Union[Category, str]) -> Optional[str]:
        return getattr(self, Category.parse(category).value)

    def read(self) -> bytes:
        return self.path.read_bytes()


def _cell(row: Dict[str, Optional[str]], column: str) -> Optional[str]:
    value = (row.get(column) or "").strip()
    return value if value and value != MISSING_TEXT else None


def read_manifest(manifest_path: Union[str, Path]) -> List[TrainingRecord]:
    """
    Load the records of a training manifest.

    Rows without a file name, or naming a file that does not exist, are
    logged and skipped.

    Raises:
        FileNotFoundError: If the manifest does not exist
        ValueError: If the header has no ``file`` column
    """
    manifest_path = Path(manifest_path)
    if not manifest_path.exists():
        raise FileNotFoundError(f"Training manifest not found: {manifest_path}")

    records: List[TrainingRecord] = []
    with open(manifest_path, 'r', encoding='utf-8', newline='') as fh:
        reader = csv.DictReader(fh)
        fieldnames = [name.strip().lower() for name in (reader.fieldnames or [])]
        if "file" not in fieldnames:
            raise ValueError(f"Manifest {manifest_path} needs a header with columns: {', '.join(MANIFEST_COLUMNS)}")
        reader.fieldnames = fieldnames

        for line_number, row in enumerate(reader, start=2):
            file_name = _cell(row, "file")
            if file_name is None:
                logger.warning(f"Skipping manifest line {line_number}: no file name")
                continue
            path = Path(file_name)
            if not path.is_absolute():
                path = manifest_path.parent / path
            if not path.is_file():
                logger.warning(f"Skipping manifest line {line_number}: file not found: {path}")
                continue
            records.append(TrainingRecord(
                path=path,
                encoding=_cell(row, "encoding"),
                language=_cell(row, "language"),
                script=_cell(row, "script"),
            ))

    logger.debug(f"Read {len(records)} training records from {manifest_path}")
    return records


@dataclass
class ModelProfile:
    """Description of a trained profile directory."""

    name: str
    created: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))
    training_file: Optional[str] = None
    analyzers: List[str] = field(default_factory=list)
    instances: Dict[str, int] = field(default_factory=dict)
    version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def save(self, directory: Union[str, Path]) -> Path:
        path = Path(directory) / PROFILE_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        return path

    @classmethod
    def load(cls, directory: Union[str, Path]) -> "ModelProfile":
        path = Path(directory) / PROFILE_FILE
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        if "name" not in known:
            raise ValueError(f"Profile {path} has no name")
        return cls(**known)


class Trainer:
    """
    Trains the category models of an identifier from labeled records.

    A record's ground-truth encoding, when labeled, decodes the sample for
    the language and script models; otherwise the identifier decides it.
    """

    def __init__(self, identifier: TextIdentifier):
        self.identifier = identifier
        self.instances: Dict[str, int] = {}

    def train(self, records: Iterable[TrainingRecord],
              categories: Optional[Iterable[Union[Category, str]]] = None) -> Dict[Category, Any]:
        """
        Build and install a model for every category with labeled data.

        Args:
            records: Labeled samples
            categories: Restrict training to these categories

        Returns:
            The trained classifiers by category

        Raises:
            TrainingError: If no category has any labeled sample
        """
        start_time = time.time()
        wanted = [Category.parse(c) for c in categories] if categories is not None else list(Category)
        builders: Dict[Category, EnsembleClassifierBuilder] = {
            category: self.identifier.create_builder(category) for category in wanted
        }

        for record in records:
            try:
                data = record.read()
            except OSError as e:
                logger.warning(f"Skipping unreadable training file {record.path}: {e}")
                continue

            working = Working(data, self.identifier.registry)
            if Category.ENCODING in builders:
                self._add(builders[Category.ENCODING], Category.ENCODING, working, record)

            if record.encoding:
                working.set_encoding(record.encoding)
            else:
                self.identifier.run_stages(working, Category.ENCODING)

            for category in (Category.LANGUAGE, Category.SCRIPT):
                if category in builders:
                    self._add(builders[category], category, working, record)

        trained = {}
        for category, builder in builders.items():
            self.instances[category.value] = builder.instance_count
            if builder.instance_count == 0:
                user_warning(f"No labeled samples for {category.value}, skipping that model")
                continue
            classifier = builder.build()
            self.identifier.install_model(category, classifier)
            trained[category] = classifier

        if not trained:
            raise TrainingError("No labeled training samples for any category")

        performance_log("train_profile", time.time() - start_time, instances=dict(self.instances))
        return trained

    def _add(self, builder: EnsembleClassifierBuilder, category: Category,
             working: Working, record: TrainingRecord) -> None:
        label = record.label(category)
        if label is None:
            return
        try:
            datum = self.identifier.make_datum(category, working, label, builder.feature_model)
        except ValueError as e:
            logger.warning(f"Skipping {category.value} label {label!r} of {record.path}: {e}")
            return
        builder.add_training_data(datum)

    def save(self, directory: Union[str, Path], name: Optional[str] = None,
             training_file: Optional[Union[str, Path]] = None) -> ModelProfile:
        """Write the trained models and their profile description."""
        from textid import __version__

        directory = Path(directory)
        self.identifier.save_models(directory)
        profile = ModelProfile(
            name=name or directory.name,
            training_file=str(training_file) if training_file else None,
            analyzers=self.identifier.registry.list_analyzers(),
            instances=dict(self.instances),
            version=__version__,
        )
        profile.save(directory)
        user_info(f"Saved profile '{profile.name}' to {directory}")
        return profile


@dataclass
class LabelStats:
    """Precision, recall and F1 of one label; zero denominators give 0."""

    label: str
    precision: float
    recall: float
    f1: float
    support: int


@dataclass
class EvaluationReport:
    category: str
    total: int = 0
    correct: int = 0
    accuracy: float = 0.0
    labels: Dict[str, LabelStats] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "total": self.total,
            "correct": self.correct,
            "accuracy": self.accuracy,
            "labels": {label: asdict(stats) for label, stats in sorted(self.labels.items())},
        }


def _report(category: Category, expected: List[str], predicted: List[str]) -> EvaluationReport:
    report = EvaluationReport(category=category.value, total=len(expected))
    if not expected:
        return report

    report.correct = sum(1 for truth, guess in zip(expected, predicted) if truth == guess)
    report.accuracy = float(accuracy_score(expected, predicted))

    labels = sorted(set(expected) | set(predicted))
    precision, recall, f1, support = precision_recall_fscore_support(
        expected, predicted, labels=labels, zero_division=0
    )
    for index, label in enumerate(labels):
        report.labels[label] = LabelStats(
            label=label,
            precision=float(precision[index]),
            recall=float(recall[index]),
            f1=float(f1[index]),
            support=int(support[index]),
        )
    return report


def evaluate(identifier: TextIdentifier, records: Iterable[TrainingRecord]) -> Dict[str, EvaluationReport]:
    """
    Compare an identifier's decisions with the labels of some records.

    Returns:
        One report per category, keyed by category name
    """
    start_time = time.time()
    expected: Dict[Category, List[str]] = {category: [] for category in Category}
    predicted: Dict[Category, List[str]] = {category: [] for category in Category}

    for record in records:
        try:
            info = identifier.identify(record.read())
        except OSError as e:
            logger.warning(f"Skipping unreadable evaluation file {record.path}: {e}")
            continue

        for category in Category:
            label = record.label(category)
            if label is None:
                continue
            feature = output_model_feature(category)
            try:
                truth = feature.parse(label)
            except ValueError as e:
                logger.warning(f"Skipping {category.value} label {label!r} of {record.path}: {e}")
                continue
            decided = getattr(info, category.value)
            expected[category].append(feature.format(truth))
            predicted[category].append(feature.format(decided) if decided is not None else UNKNOWN_TEXT)

    reports = {category.value: _report(category, expected[category], predicted[category]) for category in Category}
    metrics_log({name: round(report.accuracy, 4) for name, report in reports.items() if report.total})
    performance_log("evaluate", time.time() - start_time,
                    samples=max(report.total for report in reports.values()))
    return reports
