"""Violation aggregation and report rendering."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import click
import typer

from scanva import __version__
from scanva.config import Level, Rule

SUCCESS_MESSAGE = "No violations found!"
ERROR_INDICATOR = "✕"
WARNING_INDICATOR = "△"


@dataclass(frozen=True, slots=True)
class ReportEvent:
    """One violation as recorded by the reporter."""

    rule: Rule
    file: str
    level: Level


@dataclass(slots=True)
class FileViolations:
    """Violations of a single file, in arrival order."""

    file: str
    events: list[ReportEvent] = field(default_factory=list)


@dataclass(slots=True)
class ReportSummary:
    """Grouped view of a run's violations."""

    files: list[FileViolations]
    error_count: int
    warning_count: int
    info_count: int

    @property
    def violation_count(self) -> int:
        return self.error_count + self.warning_count + self.info_count

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0


def summarize(events: tuple[ReportEvent, ...] | list[ReportEvent]) -> ReportSummary:
    """Group events by file (first-seen order) and count them per severity."""
    groups: dict[str, FileViolations] = {}
    for event in events:
        group = groups.get(event.file)
        if group is None:
            group = groups[event.file] = FileViolations(file=event.file)
        group.events.append(event)

    return ReportSummary(
        files=list(groups.values()),
        error_count=sum(1 for event in events if event.level == Level.ERROR),
        warning_count=sum(1 for event in events if event.level == Level.WARNING),
        info_count=sum(1 for event in events if event.level == Level.INFO),
    )


def render_human(summary: ReportSummary, root: Path | None = None) -> str:
    """Render violations grouped by file followed by severity counts."""
    if summary.violation_count == 0:
        return click.style(SUCCESS_MESSAGE, fg="green", bold=True)

    lines: list[str] = []
    for group in summary.files:
        lines.append(click.style(_display_path(group.file, root), underline=True))
        for event in group.events:
            if event.level == Level.ERROR:
                indicator = click.style(ERROR_INDICATOR, fg="red")
            else:
                indicator = click.style(WARNING_INDICATOR, fg="yellow")
            message = event.rule.pattern
            rule_id = click.style(event.rule.pattern, dim=True)
            lines.append(f"{indicator}  {message:<40} {rule_id}")
        lines.append("")

    lines.append(click.style(_plural(summary.error_count, "error"), fg="red"))
    lines.append(click.style(_plural(summary.warning_count, "warning"), fg="yellow"))
    return "\n".join(lines)


def render_json(
    summary: ReportSummary,
    *,
    rules: list[str],
    matched_files: list[str],
    commit: str,
    config_source: str | None,
    root: Path | None = None,
) -> str:
    """Render stable JSON output for CI and automation."""
    payload = build_json_payload(
        summary,
        rules=rules,
        matched_files=matched_files,
        commit=commit,
        config_source=config_source,
        root=root,
    )
    return json.dumps(payload, sort_keys=True)


def build_json_payload(
    summary: ReportSummary,
    *,
    rules: list[str],
    matched_files: list[str],
    commit: str,
    config_source: str | None,
    root: Path | None = None,
) -> dict[str, Any]:
    violations = [
        {
            "file": _display_path(event.file, root),
            "rule": event.rule.pattern,
            "level": event.level.value,
        }
        for group in summary.files
        for event in group.events
    ]
    return {
        "violations": violations,
        "summary": {
            "errors": summary.error_count,
            "warnings": summary.warning_count,
            "info": summary.info_count,
            "has_errors": summary.has_errors,
        },
        "rules": rules,
        "matched_files": [_display_path(path, root) for path in matched_files],
        "meta": {
            "generated_at": datetime.now(tz=UTC)
            .replace(microsecond=0)
            .isoformat()
            .replace("+00:00", "Z"),
            "commit": commit,
            "config_source": config_source,
            "version": __version__,
        },
    }


class Reporter:
    """Collects rule-processing events for one run and reports them once."""

    def __init__(self, root: Path | None = None) -> None:
        self._root = root
        self._rules: dict[str, None] = {}
        self._file_matches: dict[str, None] = {}
        self._violations: list[ReportEvent] = []

    @property
    def rules(self) -> list[str]:
        return list(self._rules)

    @property
    def file_matches(self) -> list[str]:
        return list(self._file_matches)

    @property
    def violations(self) -> tuple[ReportEvent, ...]:
        return tuple(self._violations)

    def on_rule_processed(self, rule: Rule) -> None:
        self._rules[rule.pattern] = None

    def on_file_matched(self, file: str) -> None:
        self._file_matches[file] = None

    def on_violation(self, file: str, rule: Rule, level: Level) -> None:
        self._violations.append(ReportEvent(rule=rule, file=file, level=level))

    def summary(self) -> ReportSummary:
        return summarize(self._violations)

    def report(self, echo: Callable[[str], Any] = typer.echo) -> bool:
        """Print the grouped report and return True when error-level violations exist."""
        summary = self.summary()
        echo(render_human(summary, root=self._root))
        return summary.has_errors


def _display_path(path: str, root: Path | None) -> str:
    if root is None:
        return path
    try:
        return Path(path).relative_to(root).as_posix()
    except ValueError:
        return path


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"
