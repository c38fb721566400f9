"""Helpers for writing GitHub Actions outputs and job summaries."""

from __future__ import annotations

import os
import typing as typ
import uuid
from collections.abc import Mapping, Sequence
from pathlib import Path

__all__ = ["emit_outputs", "write_github_output", "write_step_summary"]


def write_github_output(
    file: Path, values: Mapping[str, str | Sequence[str]]
) -> None:
    """Append ``values`` to ``file`` using GitHub's multiline syntax.

    Parameters
    ----------
    file:
        Path to the GitHub Actions output file (typically ``GITHUB_OUTPUT``).
    values:
        Mapping of output keys to string or sequence values. Sequence values
        are joined with newlines before being written.
    """
    file.parent.mkdir(parents=True, exist_ok=True)
    with file.open("a", encoding="utf-8") as handle:
        for key, value in values.items():
            delimiter = f"EOF_{uuid.uuid4().hex}"
            handle.write(f"{key}<<{delimiter}\n")
            if isinstance(value, Sequence) and not isinstance(value, str):
                handle.write("\n".join(value))
            else:
                handle.write(str(value))
            handle.write(f"\n{delimiter}\n")


def write_step_summary(file: Path, markdown: str) -> None:
    """Append ``markdown`` to the job summary file."""
    file.parent.mkdir(parents=True, exist_ok=True)
    with file.open("a", encoding="utf-8") as handle:
        handle.write(markdown)
        if not markdown.endswith("\n"):
            handle.write("\n")


def emit_outputs(
    values: Mapping[str, str],
    *,
    summary: str | None = None,
    environ: typ.Mapping[str, str] | None = None,
) -> None:
    """Write ``values`` and ``summary`` when the runner provides the files.

    Outside GitHub Actions neither ``GITHUB_OUTPUT`` nor
    ``GITHUB_STEP_SUMMARY`` is set and nothing is written.
    """
    env = os.environ if environ is None else environ
    if output := env.get("GITHUB_OUTPUT"):
        write_github_output(Path(output), values)
    if summary and (summary_path := env.get("GITHUB_STEP_SUMMARY")):
        write_step_summary(Path(summary_path), summary)
