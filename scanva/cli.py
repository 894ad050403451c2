"""CLI entrypoint for scanva."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import click
import typer

from scanva import __version__
from scanva.config import ScanvaConfig, default_config_template, load_config
from scanva.diff_processor import DiffProcessor
from scanva.git import GitError, get_files_from_commit, get_git_root
from scanva.reporter import Reporter, render_json
from scanva.rule_processor import RuleProcessor

TITLE = "Scanva - Validation Tools"

app = typer.Typer(
    name="scanva",
    no_args_is_help=True,
    help="Check the files and diff of a commit against configured rules.",
)


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
) -> None:
    """Root command callback."""
    _ = version


@app.command("check")
def check_command(
    commit: Annotated[str, typer.Option("--commit", "-c", help="Commit to analyze.")] = "HEAD",
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log rule progress.")] = False,
) -> None:
    """Check a commit against the configured rules."""
    output_format = _output_format_or_raise(format)
    _configure_logging(verbose)
    config = _load_config_or_raise(repo, config_file)

    try:
        root = get_git_root(repo)
        files = get_files_from_commit(repo, commit)
        reporter = Reporter(root=root)
        processor = RuleProcessor(
            reporter,
            commit=commit,
            diff_processor=DiffProcessor(repo=repo),
            root=root,
        )
        processor.process_rules(config, files)
    except GitError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except OSError as exc:
        typer.secho(f"Error: {exc}", err=True, fg="red")
        raise typer.Exit(code=1) from exc

    if output_format == "json":
        summary = reporter.summary()
        typer.echo(
            render_json(
                summary,
                rules=reporter.rules,
                matched_files=reporter.file_matches,
                commit=commit,
                config_source=config.source,
                root=root,
            )
        )
        has_errors = summary.has_errors
    else:
        typer.echo(click.style(TITLE, bold=True))
        typer.echo("-" * len(TITLE))
        has_errors = reporter.report()

    if has_errors:
        raise typer.Exit(code=1)


@app.command("config")
def config_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show resolved configuration."""
    output_format = _output_format_or_raise(format)
    config = _load_config_or_raise(repo, config_file)
    payload = config.to_dict()

    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = [
        "Resolved configuration:",
        f"- source: {payload['source']}",
        f"- rules: {len(payload['rules'])}",
    ]
    for rule in config.rules:
        find = rule.find.describe() if rule.find is not None else "-"
        lines.append(
            f"  - [{rule.level.value}] {rule.pattern} "
            f"(files: {_describe_files(rule.files)}, find: {find}, head: {rule.head})"
        )
    typer.echo("\n".join(lines))


@app.command("config-init")
def config_init_command(
    out: Annotated[Path, typer.Option(help="Output path for starter config TOML.")] = Path(
        "scanva.toml"
    ),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite if file already exists."),
    ] = False,
) -> None:
    """Create a starter repository config file."""
    out_path = out.resolve()
    if out_path.exists() and not force:
        raise typer.BadParameter(
            f"Refusing to overwrite existing file: {out_path}. Use --force to overwrite."
        )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(default_config_template(), encoding="utf-8")
    typer.echo(f"Wrote starter config: {out_path}")


@app.command("config-validate")
def config_validate_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file to validate."),
    ] = None,
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
) -> None:
    """Validate a config file and list its rules."""
    output_format = _output_format_or_raise(format)
    config = _load_config_or_raise(repo, config_file)
    payload = {
        "ok": True,
        "source": config.source,
        "rules": [rule.pattern for rule in config.rules],
    }
    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return
    typer.echo(
        "\n".join(
            [
                "Config is valid.",
                f"- source: {payload['source']}",
                f"- rules: {payload['rules']}",
            ]
        )
    )


def main() -> None:
    """Console script entrypoint."""
    app()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _output_format_or_raise(value: str) -> str:
    output_format = value.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")
    return output_format


def _load_config_or_raise(repo: Path, config_file: Path | None = None) -> ScanvaConfig:
    try:
        return load_config(repo, config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc


def _describe_files(files: str | tuple[str, ...] | None) -> str:
    if files is None:
        return "*"
    if isinstance(files, str):
        return files
    return ", ".join(files)
