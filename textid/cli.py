"""
Command-line interface for textid.

Identify the encoding, language and script of files, train model
profiles from labeled manifests, and evaluate them.
"""

import json
import sys
from pathlib import Path
from typing import List, Optional

import click

from textid import __version__
from textid.core.base import Analysis
from textid.core.text_models import Category
from textid.logging_config import LogLevel, configure_logging, get_logger, user_info, user_success
from textid.orchestrator import TextIdentifier
from textid.training import ModelProfile, Trainer, evaluate, read_manifest

logger = get_logger(__name__)

CATEGORY_CHOICE = click.Choice([category.value for category in Category], case_sensitive=False)


def _read_input(path: Optional[Path], text: Optional[str]):
    if text is not None:
        return text
    if path is None:
        raise click.UsageError("Give a file path or --text")
    return path.read_bytes()


def _create_identifier(models: Optional[Path], config: Optional[Path] = None,
                       profile: str = "balanced") -> TextIdentifier:
    return TextIdentifier(config_path=config, default_profile=profile, model_dir=models)


def _ranking_to_dict(category: Category, ranking: List[Analysis]) -> List[dict]:
    return [
        {"value": analysis.to_dict().get(category.value, "UNK"), "score": analysis.score}
        for analysis in ranking
    ]


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Suppress output except errors')
@click.option('--debug', is_flag=True, help='Enable debug mode with detailed logging')
@click.option('--log-level', type=click.Choice(['silent', 'minimal', 'normal', 'verbose', 'debug', 'trace']),
              help='Set specific log level')
@click.option('--log-file', type=click.Path(path_type=Path), help='Write logs to file')
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool, debug: bool,
         log_level: Optional[str], log_file: Optional[Path]) -> None:
    """
    textid: encoding, language and script identification.
    """
    ctx.ensure_object(dict)

    if debug:
        level = LogLevel.DEBUG
        if log_file is None:
            log_file = Path("textid_debug.log")
    elif log_level:
        level = LogLevel(log_level.lower())
    elif quiet:
        level = LogLevel.MINIMAL
    elif verbose:
        level = LogLevel.VERBOSE
    else:
        level = LogLevel.NORMAL

    configure_logging(
        level=level,
        file_output=bool(log_file),
        log_file=log_file,
        console_output=not quiet,
        collect_performance=verbose or debug,
        collect_metrics=verbose or debug,
    )

    ctx.obj['verbose'] = verbose or debug
    ctx.obj['quiet'] = quiet
    ctx.obj['debug'] = debug


@main.command()
@click.argument('input_file', required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--text', '-t', help='Identify this text instead of a file')
@click.option('--models', '-m', type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Profile directory with trained models')
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path), help='Configuration file')
@click.option('--profile', type=click.Choice(['balanced', 'fast', 'accurate']), default='balanced',
              help='Built-in configuration profile')
@click.option('--format', 'output_format', type=click.Choice(['json', 'text']), default='text', help='Output format')
def identify(input_file: Optional[Path], text: Optional[str], models: Optional[Path],
             config: Optional[Path], profile: str, output_format: str) -> None:
    """Identify encoding, language and script of a file or text."""
    try:
        content = _read_input(input_file, text)
        with _create_identifier(models, config, profile) as identifier:
            info = identifier.identify(content)

        result = info.to_dict()
        if input_file is not None:
            result['file'] = str(input_file)

        if output_format == 'json':
            click.echo(json.dumps(result, indent=2))
        else:
            for key in ('file', 'size', 'encoding', 'length', 'language', 'script'):
                if key in result:
                    value = result[key]
                    click.echo(f"{key + ':':<10} {value if value is not None else 'unknown'}")

    except click.UsageError:
        raise
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument('category', type=CATEGORY_CHOICE)
@click.argument('input_file', required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--text', '-t', help='Classify this text instead of a file')
@click.option('--models', '-m', type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Profile directory with trained models')
@click.option('--format', 'output_format', type=click.Choice(['json', 'text']), default='text', help='Output format')
def classify(category: str, input_file: Optional[Path], text: Optional[str],
             models: Optional[Path], output_format: str) -> None:
    """Rank the candidate values of one CATEGORY for a file or text."""
    try:
        category = Category.parse(category)
        content = _read_input(input_file, text)
        with _create_identifier(models) as identifier:
            ranking = identifier.classify(category, content)

        rows = _ranking_to_dict(category, ranking)
        if output_format == 'json':
            click.echo(json.dumps({"category": category.value, "ranking": rows}, indent=2))
        else:
            for rank, row in enumerate(rows, start=1):
                score = f"{row['score']:.4f}" if row['score'] is not None else "-"
                click.echo(f"{rank:>2}. {row['value']:<16} {score}")

    except click.UsageError:
        raise
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument('manifest', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--output', '-o', required=True, type=click.Path(file_okay=False, path_type=Path),
              help='Profile directory to write')
@click.option('--name', help='Profile name (defaults to the directory name)')
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path), help='Configuration file')
@click.option('--category', 'categories', multiple=True, type=CATEGORY_CHOICE,
              help='Only train these categories (repeatable)')
def train(manifest: Path, output: Path, name: Optional[str], config: Optional[Path],
          categories: tuple) -> None:
    """Train models from a CSV MANIFEST (file,encoding,language,script)."""
    try:
        records = read_manifest(manifest)
        user_info(f"Training from {len(records)} samples in {manifest}")

        with TextIdentifier(config_path=config) as identifier:
            trainer = Trainer(identifier)
            trained = trainer.train(records, categories=categories or None)
            profile = trainer.save(output, name=name, training_file=manifest)

        for category in trained:
            click.echo(f"{category.value}: {profile.instances.get(category.value, 0)} instances")
        user_success(f"Trained {len(trained)} models into {output}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command('evaluate')
@click.argument('manifest', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--models', '-m', type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Profile directory with trained models (voting when omitted)')
@click.option('--format', 'output_format', type=click.Choice(['json', 'text']), default='text', help='Output format')
def evaluate_command(manifest: Path, models: Optional[Path], output_format: str) -> None:
    """Evaluate identification accuracy against a labeled MANIFEST."""
    try:
        records = read_manifest(manifest)
        with _create_identifier(models) as identifier:
            reports = evaluate(identifier, records)

        if output_format == 'json':
            click.echo(json.dumps({name: report.to_dict() for name, report in reports.items()}, indent=2))
            return

        for name, report in reports.items():
            if not report.total:
                continue
            click.echo(f"{name}: accuracy {report.accuracy:.3f} ({report.correct}/{report.total})")
            for label, stats in sorted(report.labels.items()):
                click.echo(f"  {label:<14} P={stats.precision:.3f} R={stats.recall:.3f} "
                           f"F1={stats.f1:.3f} n={stats.support}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command('list-analyzers')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json', 'simple']), default='table',
              help='Output format')
def list_analyzers(output_format: str) -> None:
    """List available analyzers."""
    try:
        with TextIdentifier() as identifier:
            exported = identifier.registry.export_registry()

        if not exported['analyzers']:
            click.echo("No analyzers available")
            return

        if output_format == 'simple':
            for analyzer_id in exported['analyzers']:
                click.echo(analyzer_id)

        elif output_format == 'json':
            click.echo(json.dumps(exported, indent=2))

        else:  # table format
            click.echo(f"{'Id':<12} {'Input':<8} {'Output':<10} {'Ranks':<6} {'Scores':<7} {'Description'}")
            click.echo("-" * 80)
            for analyzer_id in exported['analyzers']:
                metadata = exported['metadata'][analyzer_id]
                description = metadata['description']
                if len(description) > 40:
                    description = description[:40] + "..."
                click.echo(f"{analyzer_id:<12} {','.join(metadata['input_types']):<8} "
                           f"{','.join(metadata['output_features']):<10} "
                           f"{'yes' if metadata['ranks'] else 'no':<6} "
                           f"{'yes' if metadata['scores'] else 'no':<7} {description}")
            for analyzer_id, reason in exported['excluded'].items():
                click.echo(f"{analyzer_id:<12} unavailable: {reason}")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command('feature-model')
@click.argument('category', type=CATEGORY_CHOICE)
@click.option('--models', '-m', type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Show the columns of a trained model instead')
def feature_model(category: str, models: Optional[Path]) -> None:
    """Print the input columns of a CATEGORY's feature model."""
    try:
        with _create_identifier(models) as identifier:
            model = identifier.feature_model(category)

        for feature in model.input_features:
            click.echo(f"{feature.name}\t{feature.kind.value}\t{feature.codec.name}")
        click.echo(f"output: {model.output_feature.name} ({len(model)} inputs)")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command('show-profile')
@click.argument('directory', type=click.Path(exists=True, file_okay=False, path_type=Path))
def show_profile(directory: Path) -> None:
    """Show the description of a trained profile DIRECTORY."""
    try:
        profile = ModelProfile.load(directory)
        for key, value in profile.to_dict().items():
            click.echo(f"{key + ':':<15} {value}")
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
