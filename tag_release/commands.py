"""Run external programs through :mod:`plumbum`.

Every collaborator (``git``, ``cargo``, ``gh``) is driven through
:class:`CommandRunner` so that secrets can be scoped to a single process
environment and so that dry runs can print mutating commands instead of
executing them.
"""

from __future__ import annotations

import contextlib
import dataclasses
import shlex
import typing as typ
from pathlib import Path

from plumbum import local
from plumbum.commands import CommandNotFound

__all__ = ["CommandFailed", "CommandRunner", "Runner"]

MISSING_EXECUTABLE = 127


class CommandFailed(RuntimeError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(
        self,
        argv: typ.Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.argv = tuple(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = (stderr or stdout).strip()
        message = f"`{shlex.join(self.argv)}` exited with status {returncode}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def output(self) -> str:
        """Return combined stdout and stderr for error classification."""
        return f"{self.stdout}\n{self.stderr}"


class Runner(typ.Protocol):
    """Callable interface implemented by :class:`CommandRunner` and test fakes."""

    def run(
        self,
        program: str,
        *args: str,
        cwd: Path | None = None,
        env: typ.Mapping[str, str] | None = None,
        stdin: str | None = None,
        mutating: bool = False,
    ) -> str: ...


@dataclasses.dataclass(slots=True)
class CommandRunner:
    """Execute commands with :data:`plumbum.local`.

    Parameters
    ----------
    dry_run : bool
        When ``True``, commands marked ``mutating`` are printed rather than
        executed and return an empty string.
    withheld : frozenset[str]
        Variables removed from every child's inherited environment. Only a
        call that passes one of them in ``env`` hands it to its process.
    machine : Any
        Plumbum machine used to look up programs; tests may substitute it.
    """

    dry_run: bool = False
    withheld: frozenset[str] = frozenset()
    machine: typ.Any = local

    def run(
        self,
        program: str,
        *args: str,
        cwd: Path | None = None,
        env: typ.Mapping[str, str] | None = None,
        stdin: str | None = None,
        mutating: bool = False,
    ) -> str:
        """Run ``program`` with ``args`` and return its stdout.

        Raises
        ------
        CommandFailed
            If the program is missing or exits with a non-zero status.
        """
        argv = (program, *args)
        if self.dry_run and mutating:
            print(f"[dry-run] {shlex.join(argv)}")
            return ""

        try:
            command = self.machine[program]
        except CommandNotFound as exc:
            raise CommandFailed(argv, MISSING_EXECUTABLE, stderr=str(exc)) from exc

        bound = command[args] if args else command
        if stdin is not None:
            bound = bound << stdin

        workdir = (
            self.machine.cwd(cwd) if cwd is not None else contextlib.nullcontext()
        )
        with workdir, self.machine.env():
            for name in self.withheld:
                if name in self.machine.env:
                    del self.machine.env[name]
            self.machine.env.update(dict(env or {}))
            returncode, stdout, stderr = bound.run(retcode=None)

        if returncode != 0:
            raise CommandFailed(argv, returncode, stdout, stderr)
        return stdout
