"""Tests for GitHub output and job summary helpers."""

from __future__ import annotations

from pathlib import Path

from release_test_helpers import decode_output_file

from tag_release.github_output import emit_outputs, write_github_output, write_step_summary


def test_write_github_output_multiline(tmp_path: Path) -> None:
    """Values round-trip through the delimiter syntax, including sequences."""
    output = tmp_path / "nested" / "output"

    write_github_output(output, {"tag": "v1.2.0", "notes": ["- a", "- b"]})

    assert decode_output_file(output) == {"tag": "v1.2.0", "notes": "- a\n- b"}


def test_write_step_summary_appends(tmp_path: Path) -> None:
    """Summaries accumulate and always end with a newline."""
    summary = tmp_path / "summary.md"

    write_step_summary(summary, "first")
    write_step_summary(summary, "second\n")

    assert summary.read_text(encoding="utf-8") == "first\nsecond\n"


def test_emit_outputs_without_runner_files(tmp_path: Path) -> None:
    """Nothing is written outside GitHub Actions."""
    emit_outputs({"tag": "v1"}, summary="x", environ={})

    assert list(tmp_path.iterdir()) == []


def test_emit_outputs_with_runner_files(tmp_path: Path) -> None:
    """Outputs and summary go to the files named by the runner."""
    environ = {
        "GITHUB_OUTPUT": str(tmp_path / "output"),
        "GITHUB_STEP_SUMMARY": str(tmp_path / "summary.md"),
    }

    emit_outputs({"tag": "v1"}, summary="### Run", environ=environ)

    assert decode_output_file(tmp_path / "output") == {"tag": "v1"}
    assert (tmp_path / "summary.md").read_text(encoding="utf-8") == "### Run\n"
