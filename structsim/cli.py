"""Command-line interface for the structural similarity detector."""

import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
import yaml

from . import __version__
from .config import DEFAULT_CONFIG_FILE, ConfigManager, DetectorConfig, get_config
from .core.languages import get_profile
from .core.serializer import encode
from .core.types import CorpusEntry
from .errors import StructSimError
from .pipeline import StructuralPipeline
from .utils.files import collect_files, read_sources
from .utils.logging_setup import get_logger, log_operation, setup_logging

logger = get_logger(__name__)

console = Console()
err_console = Console(stderr=True)

CONFIDENCE_STYLES = {
    "high": "bold red",
    "medium": "yellow",
    "low": "cyan",
    "none": "green",
}


def _emit_json(data) -> None:
    click.echo(json.dumps(data, indent=2))


def _fail(error: StructSimError) -> None:
    err_console.print(f"[red]✗ {error.message}[/red]")
    sys.exit(2)


def _score_text(score: float, confidence: str, flagged: bool) -> str:
    style = CONFIDENCE_STYLES.get(confidence, "white")
    flag = " [bold red]FLAGGED[/bold red]" if flagged else ""
    return f"[{style}]{score:.4f} ({confidence})[/{style}]{flag}"


@click.group()
@click.version_option(__version__, prog_name="structsim")
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="Path to configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--log-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Also write JSON-lines logs to this directory")
@click.pass_context
def cli(ctx, config_path, verbose, log_dir):
    """Flag likely plagiarism by comparing the structure of source code."""
    try:
        config = get_config(Path(config_path) if config_path else None)
    except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
        raise click.BadParameter(str(e), param_hint="--config")

    setup_logging(
        level="DEBUG" if verbose else config.log_level,
        log_dir=log_dir,
        file=log_dir is not None,
    )
    ctx.obj = {"config": config, "config_path": config_path}


def _pipeline(ctx) -> StructuralPipeline:
    return StructuralPipeline(ctx.obj["config"])


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--language", "-l", help="Source language (default from config)")
@click.option("--tokens", "show_tokens", is_flag=True,
              help="Print the canonical token string instead of the weight table")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def fingerprint(ctx, file, language, show_tokens, as_json):
    """Show the structural fingerprint of FILE."""
    pipeline = _pipeline(ctx)
    code = file.read_text(encoding="utf-8", errors="replace")
    try:
        tokens = pipeline.tokens(code, language)
    except StructSimError as e:
        _fail(e)

    serialized = encode(tokens)
    weights = pipeline.vectorizer.vectorize(tokens)

    if as_json:
        _emit_json({
            "file": str(file),
            "serialized": serialized,
            "token_count": len(tokens),
            "fingerprint": weights.to_dict(),
        })
        return

    if show_tokens:
        click.echo(serialized)
        return

    table = Table(title=f"Fingerprint: {file}")
    table.add_column("Node type", style="cyan")
    table.add_column("Weight", justify="right")
    for node_type, weight in sorted(weights.items(), key=lambda kv: (-kv[1], kv[0])):
        table.add_row(node_type, f"{weight:.4f}")
    console.print(table)
    console.print(f"{len(tokens)} tokens, {len(weights)} distinct node types")


@cli.command()
@click.argument("file_a", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("file_b", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--language", "-l", help="Source language (default from config)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def compare(ctx, file_a, file_b, language, as_json):
    """Compare the structure of FILE_A and FILE_B."""
    pipeline = _pipeline(ctx)
    try:
        result = pipeline.compare(
            file_a.read_text(encoding="utf-8", errors="replace"),
            file_b.read_text(encoding="utf-8", errors="replace"),
            language,
        )
    except StructSimError as e:
        _fail(e)

    if as_json:
        _emit_json({"file_a": str(file_a), "file_b": str(file_b), **result.to_dict()})
        return

    console.print(Panel(
        f"Similarity: {_score_text(result.score, result.confidence, result.flagged)}\n"
        f"Shared node types: {result.shared_nodes} "
        f"({result.total_nodes_a} in A, {result.total_nodes_b} in B)",
        title=f"{file_a} vs {file_b}",
    ))


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--corpus", "-c", "corpus_paths", multiple=True, required=True,
              type=click.Path(exists=True, path_type=Path),
              help="Corpus file or directory (repeatable)")
@click.option("--language", "-l", help="Source language (default from config)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def analyze(ctx, file, corpus_paths, language, as_json):
    """Find the corpus file most structurally similar to FILE."""
    pipeline = _pipeline(ctx)
    language = language or pipeline.config.language
    try:
        suffixes = get_profile(language).suffixes
        target = file.resolve()
        corpus_files = [p for p in collect_files(corpus_paths, suffixes) if p.resolve() != target]
        log_operation(logger, "analyze", corpus_size=len(corpus_files), language=language)

        corpus = [
            CorpusEntry(label, pipeline.serialize(code, language))
            for label, code in read_sources(corpus_files)
        ]
        result = pipeline.analyze(file.read_text(encoding="utf-8", errors="replace"),
                                  corpus, language)
    except StructSimError as e:
        _fail(e)

    if as_json:
        _emit_json({"file": str(file), "corpus_size": len(corpus), **result.to_dict()})
        return

    if result.matched_id is None:
        console.print(f"[green]No structural match for {file} among {len(corpus)} files[/green]")
        return

    console.print(Panel(
        f"Best match: [bold]{result.matched_id}[/bold]\n"
        f"Similarity: {_score_text(result.score, result.confidence, result.flagged)}\n"
        f"Shared node types: {result.shared_nodes} "
        f"({result.total_nodes_target} in target, {result.total_nodes_match} in match)",
        title=f"{file} against {len(corpus)} corpus files",
    ))


@cli.command()
@click.argument("paths", nargs=-1, required=True,
                type=click.Path(exists=True, path_type=Path))
@click.option("--language", "-l", help="Source language (default from config)")
@click.option("--max-pairs", type=click.IntRange(min=0),
              help="Override the pair-count ceiling")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def bulk(ctx, paths, language, max_pairs, as_json):
    """Compare every pair of files found under PATHS."""
    config = ctx.obj["config"]
    if max_pairs is not None:
        config = replace(config, max_bulk_pairs=max_pairs)
    pipeline = StructuralPipeline(config)
    language = language or config.language

    try:
        files = collect_files(paths, get_profile(language).suffixes)
        # Reject before reading any file.
        pipeline.engine.check_bulk_limit(len(files))
        report = asyncio.run(pipeline.bulk_analyze(read_sources(files), language))
    except StructSimError as e:
        _fail(e)

    if as_json:
        _emit_json(report.to_dict())
        return

    console.print(
        f"Compared {report.sample_count} files ({report.pair_count} pairs), "
        f"threshold {report.threshold}"
    )
    if not report.suspicious_pairs:
        console.print("[green]✓ No suspicious pairs[/green]")
        return

    table = Table(title="Suspicious pairs")
    table.add_column("A", style="cyan")
    table.add_column("B", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Confidence")
    table.add_column("Shared", justify="right")
    for pair in report.suspicious_pairs:
        style = CONFIDENCE_STYLES.get(pair.confidence, "white")
        table.add_row(
            pair.label_a,
            pair.label_b,
            f"{pair.score:.4f}",
            f"[{style}]{pair.confidence}[/{style}]",
            str(pair.shared_nodes),
        )
    console.print(table)


@cli.group(name="config")
def config_group():
    """Manage detector configuration."""


@config_group.command(name="init")
@click.option("--path", type=click.Path(dir_okay=False), default=DEFAULT_CONFIG_FILE,
              help="Path for config file")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def config_init(path, force):
    """Write a configuration file with default settings."""
    config_path = Path(path)
    if config_path.exists() and not force:
        if not click.confirm(f"Config file {path} already exists. Overwrite?"):
            console.print("[yellow]Aborted[/yellow]")
            return

    DetectorConfig().save_to_file(config_path)
    console.print(f"[green]✓ Created config file at {path}[/green]")


@config_group.command(name="show")
@click.option("--path", type=click.Path(exists=True, dir_okay=False),
              help="Path to config file")
@click.pass_context
def config_show(ctx, path):
    """Display the effective configuration."""
    manager = ConfigManager(path or ctx.obj.get("config_path"))
    config = manager.config

    yaml_str = yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False)
    console.print(Panel(
        Syntax(yaml_str, "yaml", theme="monokai", line_numbers=True),
        title="[bold cyan]Detector Configuration[/bold cyan]",
        border_style="cyan",
    ))

    for issue in manager.validate_config(config):
        console.print(f"[yellow]• {issue}[/yellow]")


def main():
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
