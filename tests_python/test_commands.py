"""Tests for the plumbum-backed command runner."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from plumbum import local

from tag_release.commands import MISSING_EXECUTABLE, CommandFailed, CommandRunner


def _python(code: str) -> tuple[str, str, str]:
    return (sys.executable, "-c", code)


def test_run_returns_stdout() -> None:
    """Successful commands return their standard output."""
    output = CommandRunner().run(*_python("print('hello')"))

    assert output.strip() == "hello"


def test_run_feeds_stdin() -> None:
    """``stdin`` is delivered to the process verbatim."""
    code = "import sys; sys.stdout.write(sys.stdin.read().upper())"

    assert CommandRunner().run(*_python(code), stdin="notes\nline") == "NOTES\nLINE"


def test_run_scopes_environment_to_the_call() -> None:
    """Per-call variables reach the child and do not leak afterwards."""
    code = "import os; print(os.environ['DEMO_SCOPED_TOKEN'])"

    output = CommandRunner().run(*_python(code), env={"DEMO_SCOPED_TOKEN": "t0k"})

    assert output.strip() == "t0k"
    assert "DEMO_SCOPED_TOKEN" not in os.environ


def test_run_withholds_inherited_secrets() -> None:
    """Withheld variables never reach a child unless the call passes them."""
    code = (
        "import os; "
        "print(os.environ.get('CARGO_TOKEN'), os.environ.get('GH_PAT'), "
        "os.environ.get('GH_TOKEN'))"
    )
    runner = CommandRunner(withheld=frozenset({"CARGO_TOKEN", "GH_PAT", "GH_TOKEN"}))

    with local.env(CARGO_TOKEN="cargo-secret", GH_PAT="gh-secret"):
        release_child = runner.run(*_python(code), env={"GH_TOKEN": "gh-secret"})
        build_child = runner.run(*_python(code))
        still_set = (local.env.get("CARGO_TOKEN"), local.env.get("GH_PAT"))

    assert release_child.split() == ["None", "None", "gh-secret"], (
        "Only the explicitly passed token may reach the child"
    )
    assert build_child.split() == ["None", "None", "None"], (
        "Commands without credentials must not inherit any token"
    )
    assert still_set == ("cargo-secret", "gh-secret"), (
        "Withholding applies to children only, not the parent environment"
    )


def test_run_keeps_unrelated_environment() -> None:
    """Variables outside the withheld set are inherited as usual."""
    code = "import os; print(os.environ.get('DEMO_PLAIN'))"
    runner = CommandRunner(withheld=frozenset({"CARGO_TOKEN"}))

    with local.env(DEMO_PLAIN="visible"):
        output = runner.run(*_python(code))

    assert output.strip() == "visible"


def test_run_uses_working_directory(tmp_path: Path) -> None:
    """Commands run inside ``cwd`` when one is given."""
    output = CommandRunner().run(*_python("import os; print(os.getcwd())"), cwd=tmp_path)

    assert Path(output.strip()).resolve() == tmp_path.resolve()


def test_run_raises_on_failure() -> None:
    """Non-zero exits surface status and stderr."""
    code = "import sys; sys.stderr.write('boom'); sys.exit(3)"

    with pytest.raises(CommandFailed) as exc:
        CommandRunner().run(*_python(code))

    assert exc.value.returncode == 3
    assert exc.value.stderr == "boom"
    assert "exited with status 3: boom" in str(exc.value)


def test_run_reports_missing_program() -> None:
    """Unknown executables map to the conventional 127 status."""
    with pytest.raises(CommandFailed) as exc:
        CommandRunner().run("tag-release-no-such-program")

    assert exc.value.returncode == MISSING_EXECUTABLE


def test_dry_run_skips_mutating_commands(capsys: pytest.CaptureFixture[str]) -> None:
    """Mutating commands are printed instead of executed during dry runs."""
    runner = CommandRunner(dry_run=True)

    output = runner.run("cargo", "publish", "--no-verify", mutating=True)

    assert output == ""
    assert "[dry-run] cargo publish --no-verify" in capsys.readouterr().out


def test_dry_run_still_runs_read_only_commands() -> None:
    """Read-only commands execute even in dry-run mode."""
    runner = CommandRunner(dry_run=True)

    assert runner.run(*_python("print(42)")).strip() == "42"
