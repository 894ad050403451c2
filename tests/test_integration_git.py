"""Integration tests using synthetic git repositories."""

from __future__ import annotations

import json
from pathlib import Path

import click
import pytest
from typer.testing import CliRunner

from scanva.cli import app
from scanva.git import GitError, get_diff_content, get_files_from_commit, get_git_root
from tests.helpers_git import commit_all, init_repo, write_config, write_file

runner = CliRunner()

CONSOLE_RULES = [
    "[[rules]]",
    'pattern = "console.log left in code"',
    'files = "**/*.ts"',
    'find = "console.log"',
    'level = "error"',
    "",
    "[[rules]]",
    'pattern = "TODO"',
    'files = "**/*.py"',
    'level = "warning"',
]


def test_git_helpers_report_files_and_patch_of_a_commit(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_file(repo, "README.md", "hello\n")
    commit_all(repo, "baseline")
    write_file(repo, "src/app.ts", "console.log('hi');\n")
    write_file(repo, "README.md", "hello again\n")
    commit_all(repo, "change")

    root = get_git_root(repo)
    files = get_files_from_commit(repo, "HEAD")
    diff = get_diff_content(repo, "HEAD")

    assert sorted(files) == sorted([str(root / "README.md"), str(root / "src/app.ts")])
    assert "+console.log('hi');" in diff
    assert "+hello again" in diff
    assert "baseline" not in diff


def test_git_helpers_fail_outside_a_repository(tmp_path: Path) -> None:
    outside = tmp_path / "plain"
    outside.mkdir()

    with pytest.raises(GitError):
        get_diff_content(outside, "HEAD")


def test_check_flags_error_violation_and_exits_nonzero(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_config(repo, CONSOLE_RULES)
    commit_all(repo, "config")
    write_file(repo, "src/a.ts", "console.log('debug');\n")
    write_file(repo, "src/b.js", "console.log('debug');\n")
    commit_all(repo, "add debug output")

    result = runner.invoke(app, ["check", "--repo", str(repo)])
    output = click.unstyle(result.stdout)

    assert result.exit_code == 1
    assert "Scanva - Validation Tools" in output
    assert "src/a.ts" in output
    assert "src/b.js" not in output
    assert "1 error" in output
    assert "0 warnings" in output


def test_check_passes_when_diff_lacks_pattern(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_config(repo, CONSOLE_RULES)
    # keep the console.log line outside the hunk context and funcname header
    body = "  console.log('debug');\n" + "".join(f"const v{idx} = {idx};\n" for idx in range(2, 9))
    write_file(repo, "src/a.ts", body + "export const a = 1;\n")
    commit_all(repo, "baseline")
    write_file(repo, "src/a.ts", body + "export const a = 2;\n")
    commit_all(repo, "unrelated change")

    result = runner.invoke(app, ["check", "--repo", str(repo)])

    assert result.exit_code == 0
    assert "No violations found!" in click.unstyle(result.stdout)


def test_check_older_commit_and_json_output(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_config(repo, CONSOLE_RULES)
    commit_all(repo, "config")
    write_file(repo, "tools/run.py", "# TODO tidy\n")
    flagged_commit = commit_all(repo, "add todo")
    write_file(repo, "docs/notes.md", "notes\n")
    commit_all(repo, "docs")

    result = runner.invoke(
        app, ["check", "--repo", str(repo), "--commit", flagged_commit, "--format", "json"]
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["violations"] == [{"file": "tools/run.py", "level": "warning", "rule": "TODO"}]
    assert payload["summary"]["warnings"] == 1
    assert payload["summary"]["has_errors"] is False
    assert payload["rules"] == ["console.log left in code", "TODO"]
    assert payload["meta"]["commit"] == flagged_commit


def test_check_skips_files_deleted_by_the_commit(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_config(repo, ["[[rules]]", 'pattern = "TODO"', 'level = "error"'])
    write_file(repo, "old.py", "# TODO\n")
    commit_all(repo, "baseline")
    (repo / "old.py").unlink()
    commit_all(repo, "remove todo file")

    result = runner.invoke(app, ["check", "--repo", str(repo)])

    assert result.exit_code == 0
    assert "No violations found!" in click.unstyle(result.stdout)


def test_check_unknown_commit_is_reported(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_config(repo, CONSOLE_RULES)
    commit_all(repo, "config")

    result = runner.invoke(app, ["check", "--repo", str(repo), "--commit", "does-not-exist"])

    assert result.exit_code == 2


def test_non_ascii_file_names_are_checked(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_config(repo, CONSOLE_RULES)
    commit_all(repo, "config")
    write_file(repo, "tools/café.py", "# TODO accents\n")
    write_file(repo, "tools/with space.py", "# TODO spaces\n")
    commit_all(repo, "add todos")

    root = get_git_root(repo)
    assert sorted(get_files_from_commit(repo, "HEAD")) == [
        str(root / "tools/café.py"),
        str(root / "tools/with space.py"),
    ]

    result = runner.invoke(app, ["check", "--repo", str(repo), "--format", "json"])

    payload = json.loads(result.stdout)
    assert [item["file"] for item in payload["violations"]] == [
        "tools/café.py",
        "tools/with space.py",
    ]


def test_check_with_glob_list_excludes_negated_files(tmp_path: Path) -> None:
    repo = init_repo(tmp_path)
    write_config(
        repo,
        [
            "[[rules]]",
            'pattern = "console.log left in code"',
            'files = ["src/**/*.ts", "!**/*.test.ts"]',
            'find = "console.log"',
            'level = "error"',
        ],
    )
    commit_all(repo, "config")
    write_file(repo, "src/a.ts", "console.log('debug');\n")
    write_file(repo, "src/a.test.ts", "console.log('debug');\n")
    commit_all(repo, "add debug output")

    result = runner.invoke(app, ["check", "--repo", str(repo), "--format", "json"])

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["violations"] == [
        {"file": "src/a.ts", "level": "error", "rule": "console.log left in code"}
    ]
