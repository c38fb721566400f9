"""Acquire isolated repository snapshots at a tag."""

from __future__ import annotations

import contextlib
import tempfile
import typing as typ
from pathlib import Path

from .commands import CommandFailed, Runner
from .errors import CheckoutFailure
from .trigger import TAG_REF_PREFIX

__all__ = ["Checkout", "GitCheckout"]


class Checkout(typ.Protocol):
    """Provide a working tree for ``tag`` that lives only inside the block."""

    def snapshot(
        self, tag: str, *, sha: str | None = None
    ) -> typ.ContextManager[Path]: ...


class GitCheckout:
    """Clone ``source`` into a temporary directory and detach at the tag.

    Each call to :meth:`snapshot` produces an independent clone, so a stage
    never sees files written by another stage. Nothing is pushed back.
    """

    def __init__(self, runner: Runner, source: str) -> None:
        self._runner = runner
        self._source = source

    @contextlib.contextmanager
    def snapshot(self, tag: str, *, sha: str | None = None) -> typ.Iterator[Path]:
        """Yield a working tree checked out at ``refs/tags/<tag>``.

        When ``sha`` is given the tag must still resolve to it, either as the
        tag object or as the commit it points at. A tag moved after the
        triggering event therefore fails instead of releasing other code.

        Raises
        ------
        CheckoutFailure
            If the clone fails, the tag does not exist in ``source`` or the
            tag no longer points at ``sha``.
        """
        ref = f"{TAG_REF_PREFIX}{tag}"
        with tempfile.TemporaryDirectory(prefix="tag-release-") as scratch:
            workdir = Path(scratch) / "repo"
            try:
                self._runner.run(
                    "git", "clone", "--quiet", self._source, str(workdir)
                )
                self._runner.run(
                    "git",
                    "-c",
                    "advice.detachedHead=false",
                    "checkout",
                    "--quiet",
                    "--detach",
                    ref,
                    cwd=workdir,
                )
                resolved = self._runner.run(
                    "git", "rev-parse", ref, "HEAD", cwd=workdir
                ).split()
            except CommandFailed as exc:
                message = f"Unable to check out tag {tag!r} from {self._source}: {exc}"
                raise CheckoutFailure(message) from exc
            if sha and sha not in resolved:
                message = (
                    f"Tag {tag!r} in {self._source} no longer points at {sha}; "
                    f"found {' '.join(resolved)}"
                )
                raise CheckoutFailure(message)
            print(f"Checked out '{tag}' into '{workdir}'")
            yield workdir
