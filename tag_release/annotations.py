"""GitHub Actions workflow command helpers.

Errors and warnings go to ``stderr`` so they surface as annotations on the
workflow run; grouping markers go to ``stdout`` alongside progress lines.
"""

from __future__ import annotations

import contextlib
import os
import sys
import typing as typ

__all__ = ["add_mask", "error", "group", "notice", "warning"]


def _emit(command: str, message: str, *, title: str | None) -> None:
    properties = f" title={title}" if title else ""
    print(f"::{command}{properties}::{message}", file=sys.stderr)


def error(message: str, *, title: str | None = None) -> None:
    """Emit an ``::error`` annotation."""
    _emit("error", message, title=title)


def warning(message: str, *, title: str | None = None) -> None:
    """Emit a ``::warning`` annotation."""
    _emit("warning", message, title=title)


def notice(message: str, *, title: str | None = None) -> None:
    """Emit a ``::notice`` annotation."""
    _emit("notice", message, title=title)


def add_mask(value: str, environ: typ.Mapping[str, str] | None = None) -> None:
    """Ask the runner to redact ``value`` from all subsequent log output.

    Only emitted when running inside GitHub Actions; elsewhere the command
    would print the secret verbatim.
    """
    env = os.environ if environ is None else environ
    if env.get("GITHUB_ACTIONS") == "true" and value:
        print(f"::add-mask::{value}")


@contextlib.contextmanager
def group(name: str) -> typ.Iterator[None]:
    """Fold the output produced inside the block under ``name``."""
    print(f"::group::{name}", flush=True)
    try:
        yield
    finally:
        print("::endgroup::", flush=True)
