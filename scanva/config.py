"""Configuration loading for scanva."""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

from scanva.files import DEFAULT_HEAD_LINES
from scanva.patterns import AnyOfPattern, FindPattern, LiteralPattern, RegexPattern

CONFIG_FILENAMES = ("scanva.toml", ".scanva.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEY = "scanva"

_TOP_LEVEL_KEYS = {"rules"}
_RULE_KEYS = {"files", "pattern", "level", "find", "head"}
_REGEX_KEYS = {"regex", "flags"}


class ConfigError(ValueError):
    """Raised when a configuration document is invalid."""


class ConfigurationNotFoundError(ConfigError):
    """Raised when no configuration file can be found."""


class Level(StrEnum):
    """Rule severity, most severe first."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True, slots=True)
class Rule:
    """A user-declared check."""

    pattern: str
    level: Level
    files: str | tuple[str, ...] | None = None
    find: FindPattern | None = None
    head: int = DEFAULT_HEAD_LINES

    @property
    def search_pattern(self) -> FindPattern:
        """Pattern looked up in the diff: ``find`` or, failing that, the label."""
        return self.find if self.find is not None else LiteralPattern(self.pattern)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "level": self.level.value,
            "files": list(self.files) if isinstance(self.files, tuple) else self.files,
            "find": _find_to_value(self.find),
            "head": self.head,
        }


@dataclass(frozen=True, slots=True)
class ScanvaConfig:
    """Validated rule set."""

    rules: tuple[Rule, ...] = ()
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rules": [rule.to_dict() for rule in self.rules],
            "source": self.source,
        }


def load_config(repo: Path, config_path: Path | None = None) -> ScanvaConfig:
    """Load config from an explicit path or repository-local files with precedence."""
    repo = repo.resolve()
    if config_path is not None:
        resolved = config_path if config_path.is_absolute() else (repo / config_path)
        if not resolved.exists():
            raise ConfigError(f"Config file does not exist: {resolved}")
        mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
        return parse_config(mapping, source=str(resolved))

    for filename in CONFIG_FILENAMES:
        resolved = repo / filename
        if resolved.exists():
            mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
            return parse_config(mapping, source=str(resolved))

    pyproject_path = repo / PYPROJECT_FILENAME
    if pyproject_path.exists():
        tool_section = _find_pyproject_tool_section(_load_toml(pyproject_path))
        if tool_section is not None:
            return parse_config(tool_section, source=str(pyproject_path))

    raise ConfigurationNotFoundError("Configuration file not found")


def parse_config(mapping: dict[str, Any], *, source: str | None = None) -> ScanvaConfig:
    """Validate a raw mapping into a ``ScanvaConfig``."""
    _reject_unknown_keys(mapping, _TOP_LEVEL_KEYS, "config")
    raw_rules = mapping.get("rules")
    if raw_rules is None:
        return ScanvaConfig(source=source)
    if not isinstance(raw_rules, list):
        raise ConfigError("rules must be a list of tables")

    rules: list[Rule] = []
    for index, item in enumerate(raw_rules):
        field_name = f"rules[{index}]"
        if not isinstance(item, dict):
            raise ConfigError(f"{field_name} must be a table/object")
        rules.append(_parse_rule(item, field_name))
    return ScanvaConfig(rules=tuple(rules), source=source)


def default_config_template() -> str:
    """Return a starter config template."""
    return "\n".join(
        [
            "# scanva rules are checked in order against the files of a commit.",
            "",
            "[[rules]]",
            'pattern = "console.log left in source"',
            'files = ["src/**/*.{ts,js}", "!**/*.test.{ts,js}"]',
            'find = "console.log"',
            'level = "error"',
            "",
            "[[rules]]",
            'pattern = "TODO"',
            'files = "**/*.py"',
            'find = ["TODO", "FIXME"]',
            'level = "warning"',
            "head = 50",
            "",
            "[[rules]]",
            'pattern = "debugger statement"',
            'find = { regex = "\\\\bdebugger\\\\b", flags = "i" }',
            'level = "error"',
            "",
        ]
    )


def _parse_rule(item: dict[str, Any], field_name: str) -> Rule:
    _reject_unknown_keys(item, _RULE_KEYS, field_name)
    files = _parse_files(item.get("files"), f"{field_name}.files")
    head = _as_int(item.get("head", DEFAULT_HEAD_LINES), f"{field_name}.head")
    if head <= 0:
        raise ConfigError(f"{field_name}.head must be > 0")
    return Rule(
        pattern=_as_str(item.get("pattern"), f"{field_name}.pattern"),
        level=_as_level(item.get("level"), f"{field_name}.level"),
        files=files,
        find=_parse_find(item.get("find"), f"{field_name}.find"),
        head=head,
    )


def _parse_files(value: Any, field_name: str) -> str | tuple[str, ...] | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, list) and value and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise ConfigError(f"{field_name} must be a string or a non-empty list of strings")


def _parse_find(value: Any, field_name: str) -> FindPattern | None:
    if value is None:
        return None
    if isinstance(value, str):
        return LiteralPattern(value)
    if isinstance(value, list):
        options: list[str] = []
        for option in value:
            if not isinstance(option, str):
                raise ConfigError(f"{field_name} must be a list of strings")
            options.append(option)
        return AnyOfPattern(tuple(options))
    if isinstance(value, dict):
        _reject_unknown_keys(value, _REGEX_KEYS, field_name)
        source = _as_str(value.get("regex"), f"{field_name}.regex")
        flags = _as_str(value.get("flags", ""), f"{field_name}.flags")
        try:
            return RegexPattern.from_source(source, flags)
        except re.error as exc:
            raise ConfigError(
                f"{field_name}.regex is not a valid regular expression: {exc}"
            ) from exc
        except ValueError as exc:
            raise ConfigError(f"{field_name}.flags: {exc}") from exc
    raise ConfigError(f"{field_name} must be a string, a list of strings or a regex table")


def _find_to_value(find: FindPattern | None) -> Any:
    if find is None:
        return None
    if isinstance(find, LiteralPattern):
        return find.text
    if isinstance(find, AnyOfPattern):
        return list(find.options)
    return {"regex": find.regex.pattern, "flags": find.flag_letters()}


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as file_obj:
            loaded = tomllib.load(file_obj)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _extract_config_mapping(loaded: dict[str, Any], *, source_path: Path) -> dict[str, Any]:
    if source_path.name == PYPROJECT_FILENAME:
        section = _find_pyproject_tool_section(loaded)
        return section if section is not None else {}

    tool_section = _find_pyproject_tool_section(loaded)
    if tool_section is not None:
        return tool_section
    return loaded


def _find_pyproject_tool_section(loaded: dict[str, Any]) -> dict[str, Any] | None:
    tool = loaded.get("tool")
    if not isinstance(tool, dict):
        return None
    section = tool.get(PYPROJECT_TOOL_KEY)
    if isinstance(section, dict):
        return section
    return None


def _reject_unknown_keys(mapping: dict[str, Any], allowed: set[str], field_name: str) -> None:
    unknown = sorted(set(mapping) - allowed)
    if unknown:
        raise ConfigError(f"{field_name} has unknown keys: {', '.join(unknown)}")


def _as_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{field_name} must be a string")
    return value


def _as_int(raw: Any, field_name: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ConfigError(f"{field_name} must be an integer")
    return raw


def _as_level(raw: Any, field_name: str) -> Level:
    if isinstance(raw, str):
        try:
            return Level(raw)
        except ValueError:
            pass
    choices = ", ".join(level.value for level in Level)
    raise ConfigError(f"{field_name} must be one of: {choices}")
