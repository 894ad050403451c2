"""Rule evaluation against the files and diff of a commit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from scanva.config import Level, Rule, ScanvaConfig
from scanva.diff_processor import DiffProcessor
from scanva.files import filter_files, read_head_of_file
from scanva.patterns import has_pattern_match

log = logging.getLogger(__name__)


class RuleListener(Protocol):
    """Receives rule-processing events, e.g. a ``Reporter``."""

    def on_rule_processed(self, rule: Rule) -> None: ...

    def on_file_matched(self, file: str) -> None: ...

    def on_violation(self, file: str, rule: Rule, level: Level) -> None: ...


@dataclass(frozen=True, slots=True)
class FlaggedFile:
    """A matched file whose search pattern also appears in the commit diff."""

    file: str
    rule: Rule
    error_level: Level


@dataclass(frozen=True, slots=True)
class RuleResult:
    """Outcome of one rule for one run."""

    rule: Rule
    matched_files: list[str]
    files_with_matches: list[str]
    flagged_files: list[FlaggedFile]


class RuleProcessor:
    """Applies configured rules to changed files, in declaration order."""

    def __init__(
        self,
        reporter: RuleListener,
        commit: str = "HEAD",
        diff_processor: DiffProcessor | None = None,
        root: Path | None = None,
    ) -> None:
        self._reporter = reporter
        self._commit = commit
        self._diff_processor = diff_processor if diff_processor is not None else DiffProcessor()
        self._root = root
        self._diff_content: str | None = None

    def process_rules(self, config: ScanvaConfig, files: list[str]) -> list[RuleResult]:
        """Evaluate every rule and return one result per rule.

        The diff is loaded once before the first rule; errors from the diff
        fetch or from reading a file propagate and abort the run.
        """
        self._diff_content = self._diff_processor.get_diff_content(self._commit)

        results: list[RuleResult] = []
        for rule in config.rules:
            result = self._process_rule(rule, files)
            log.info(
                "Rule found matches in %d files: %s",
                len(result.files_with_matches),
                ", ".join(result.files_with_matches),
            )
            self._reporter.on_rule_processed(rule)
            results.append(result)
        return results

    def _process_rule(self, rule: Rule, files: list[str]) -> RuleResult:
        matched_files = filter_files(rule, files, root=self._root)
        files_with_matches = self._find_files_with_pattern(rule, matched_files)
        flagged_files: list[FlaggedFile] = []

        diff_content = self._diff_content or ""
        for file in files_with_matches:
            self._reporter.on_file_matched(file)
            if not self._diff_processor.has_pattern_in_diff(rule.search_pattern, diff_content):
                continue
            flagged_files.append(FlaggedFile(file=file, rule=rule, error_level=rule.level))
            self._reporter.on_violation(file, rule, rule.level)
            log.info(
                "Flagged violation - File: %s, Rule: %s, Error Level: %s",
                file,
                rule.pattern,
                rule.level.value,
            )

        return RuleResult(
            rule=rule,
            matched_files=matched_files,
            files_with_matches=files_with_matches,
            flagged_files=flagged_files,
        )

    def _find_files_with_pattern(self, rule: Rule, files: list[str]) -> list[str]:
        if rule.find is None:
            return list(files)

        return [
            file
            for file in files
            if has_pattern_match(rule.find, read_head_of_file(file, rule.head))
        ]
