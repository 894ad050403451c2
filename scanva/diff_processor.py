"""Cached access to the diff text of the commit under check."""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import partial
from pathlib import Path

from scanva.git import get_diff_content
from scanva.patterns import FindPattern, has_pattern_match

log = logging.getLogger(__name__)


class DiffProcessor:
    """Fetches a commit diff once and answers pattern queries against it.

    The cache is not keyed by commit reference: an instance serves exactly one
    reference, the first one it was asked for.
    """

    def __init__(
        self,
        fetch: Callable[[str], str] | None = None,
        repo: Path = Path("."),
    ) -> None:
        self._fetch = fetch if fetch is not None else partial(get_diff_content, repo)
        self._diff_content: str | None = None

    def get_diff_content(self, commit_reference: str = "HEAD") -> str:
        """Return the diff for ``commit_reference``, fetching it on first use.

        Fetch errors (e.g. ``GitError``) propagate to the caller.
        """
        if self._diff_content is not None:
            return self._diff_content

        self._diff_content = self._fetch(commit_reference)
        log.info("Loaded diff for %s (%d bytes)", commit_reference, len(self._diff_content))
        return self._diff_content

    def has_pattern_in_diff(self, pattern: FindPattern, diff_content: str) -> bool:
        return has_pattern_match(pattern, diff_content)
