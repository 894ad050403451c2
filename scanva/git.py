"""Git subprocess helpers."""

from __future__ import annotations

from pathlib import Path
from subprocess import CalledProcessError, run


class GitError(RuntimeError):
    """Raised when git command execution fails."""


def get_git_root(repo: Path) -> Path:
    """Return the top-level directory of the repository containing ``repo``."""
    root = _run_git(repo, ["rev-parse", "--show-toplevel"]).strip()
    if not root:
        raise GitError("Could not determine git root directory")
    return Path(root)


def get_files_from_commit(repo: Path, commit: str = "HEAD") -> list[str]:
    """Return absolute paths of files touched by a single commit."""
    output = _run_git(repo, ["diff-tree", "-z", "--no-commit-id", "--name-only", "-r", commit])
    names = [name for name in output.split("\0") if name]
    if not names:
        return []
    root = get_git_root(repo)
    return [str(root / name) for name in names]


def get_diff_content(repo: Path, commit: str = "HEAD") -> str:
    """Return the patch introduced by ``commit``."""
    return _run_git(repo, ["show", "--no-color", "--format=", commit])


def _run_git(repo: Path, args: list[str]) -> str:
    try:
        completed = run(
            ["git", *args],
            cwd=repo,
            check=True,
            capture_output=True,
            text=True,
        )
    except CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise GitError(stderr or f"git {' '.join(args)} failed") from exc
    except FileNotFoundError as exc:
        raise GitError(f"git executable not found: {exc}") from exc

    return completed.stdout
