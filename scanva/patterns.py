"""Content patterns used by rule ``find`` checks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import assert_never

REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


@dataclass(frozen=True, slots=True)
class LiteralPattern:
    """Plain substring."""

    text: str

    def describe(self) -> str:
        return self.text


@dataclass(frozen=True, slots=True)
class AnyOfPattern:
    """Matches when any of the literals occurs."""

    options: tuple[str, ...]

    def describe(self) -> str:
        return " | ".join(self.options)


@dataclass(frozen=True, slots=True)
class RegexPattern:
    """Compiled regular expression."""

    regex: re.Pattern[str]

    @classmethod
    def from_source(cls, source: str, flags: str = "") -> RegexPattern:
        """Compile ``source`` with single-letter ``flags`` (``i``, ``m``, ``s``, ``x``)."""
        compiled_flags = 0
        for letter in flags:
            try:
                compiled_flags |= REGEX_FLAGS[letter]
            except KeyError:
                choices = ", ".join(sorted(REGEX_FLAGS))
                raise ValueError(
                    f"unknown regex flag {letter!r}; expected any of: {choices}"
                ) from None
        return cls(re.compile(source, compiled_flags))

    def flag_letters(self) -> str:
        return "".join(
            letter for letter, flag in sorted(REGEX_FLAGS.items()) if self.regex.flags & flag
        )

    def describe(self) -> str:
        return f"/{self.regex.pattern}/{self.flag_letters()}"


FindPattern = LiteralPattern | AnyOfPattern | RegexPattern


def has_pattern_match(pattern: FindPattern, content: str) -> bool:
    """Return True if ``pattern`` occurs within ``content``.

    Empty content never matches. Literal and any-of patterns are substring
    tests; regex patterns use ``search`` with the flags they were compiled with.
    """
    if not content:
        return False

    match pattern:
        case RegexPattern(regex=regex):
            return regex.search(content) is not None
        case AnyOfPattern(options=options):
            return any(option in content for option in options)
        case LiteralPattern(text=text):
            return text in content
        case _:
            assert_never(pattern)
