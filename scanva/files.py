"""Changed-file filtering and head-of-file reads."""

from __future__ import annotations

import re
from collections.abc import Sequence
from functools import lru_cache
from itertools import islice
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scanva.config import Rule

DEFAULT_HEAD_LINES = 10


def filter_files(rule: Rule, candidates: list[str], root: Path | None = None) -> list[str]:
    """Narrow candidates to those matching ``rule.files`` that exist on disk.

    Globs are tested against the path relative to ``root`` when the candidate
    lives under it. Candidate order is preserved.
    """
    if rule.files:
        matched = [
            path for path in candidates if match_globs(_glob_subject(path, root), rule.files)
        ]
    else:
        matched = list(candidates)
    return [path for path in matched if Path(path).exists()]


def match_globs(path: str, globs: str | Sequence[str]) -> bool:
    """Multi-pattern glob match.

    ``*`` and ``?`` stay within one path segment, ``**/`` spans zero or more
    directories and braces expand to alternatives. Globs starting with ``!``
    remove earlier positive matches, so a list made only of negations never
    matches.
    """
    patterns = [globs] if isinstance(globs, str) else globs
    matched = False
    for raw in patterns:
        negated = raw.startswith("!")
        body = raw[1:] if negated else raw
        hit = any(regex.fullmatch(path) for regex in _compile_glob(body))
        if negated and hit:
            matched = False
        elif not negated and hit:
            matched = True
    return matched


def read_head_of_file(file_path: str | Path, lines: int = DEFAULT_HEAD_LINES) -> str:
    """Return the first ``lines`` lines of a file joined with newlines.

    Undecodable bytes are replaced, so binary files read as noise rather than
    failing; ``OSError`` from opening or reading propagates.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File does not exist: {path}")

    with path.open("r", encoding="utf-8", errors="replace") as file_obj:
        head_lines = [line.rstrip("\r\n") for line in islice(file_obj, lines)]
    return "\n".join(head_lines)


def _glob_subject(path: str, root: Path | None) -> str:
    if root is None:
        return path
    try:
        relative = Path(path).relative_to(root)
    except ValueError:
        return path
    return PurePosixPath(relative).as_posix()


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(_translate(variant)) for variant in _expand_braces(pattern))


def _translate(pattern: str) -> str:
    parts: list[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
            continue
        if pattern.startswith("**", index):
            parts.append(".*")
            index += 2
            continue
        char = pattern[index]
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            close = pattern.find("]", index + 2)
            if close == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[index + 1 : close].replace("\\", "\\\\")
                if body[0] in "!^":
                    body = "^/" + body[1:]
                parts.append(f"[{body}]")
                index = close
        else:
            parts.append(re.escape(char))
        index += 1
    return "".join(parts)


def _expand_braces(pattern: str) -> list[str]:
    start = pattern.find("{")
    if start == -1:
        return [pattern]

    depth = 0
    split_points: list[int] = []
    for index in range(start, len(pattern)):
        char = pattern[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                break
        elif char == "," and depth == 1:
            split_points.append(index)
    else:
        # unbalanced brace, treat literally
        return [pattern]

    end = index
    if not split_points:
        head = pattern[: end + 1]
        return [head + rest for rest in _expand_braces(pattern[end + 1 :])]

    bounds = [start, *split_points, end]
    options = [pattern[bounds[i] + 1 : bounds[i + 1]] for i in range(len(bounds) - 1)]
    prefix = pattern[:start]
    suffix = pattern[end + 1 :]
    expanded: list[str] = []
    for option in options:
        expanded.extend(_expand_braces(prefix + option + suffix))
    return expanded
