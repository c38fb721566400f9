"""Hosting-platform release records through the GitHub CLI."""

from __future__ import annotations

import dataclasses
import typing as typ
from pathlib import Path

from .commands import CommandFailed, Runner
from .errors import AuthenticationFailure, ReleaseCreationFailure

if typ.TYPE_CHECKING:
    from .credentials import Credential

__all__ = ["GitHubReleases", "ReleaseHost", "ReleaseRecord"]


@dataclasses.dataclass(frozen=True, slots=True)
class ReleaseRecord:
    """Release entry created on the hosting platform."""

    tag: str
    body: str
    url: str | None = None


class ReleaseHost(typ.Protocol):
    """Create release records; records are never updated once created."""

    def create(
        self, workdir: Path, tag: str, body: str, credential: Credential
    ) -> ReleaseRecord: ...


class GitHubReleases:
    """Create GitHub releases with ``gh release create``."""

    def __init__(
        self,
        runner: Runner,
        repository: str | None = None,
        *,
        draft: bool = False,
        prerelease: bool = False,
    ) -> None:
        self._runner = runner
        self._repository = repository
        self._draft = draft
        self._prerelease = prerelease

    def create(
        self, workdir: Path, tag: str, body: str, credential: Credential
    ) -> ReleaseRecord:
        """Create the release named ``tag`` with ``body`` as its notes.

        The notes are passed on stdin so the body reaches the platform byte
        for byte. ``--verify-tag`` stops ``gh`` from creating a missing tag.

        Raises
        ------
        AuthenticationFailure
            If the platform rejects ``credential``.
        ReleaseCreationFailure
            If the release already exists or creation is refused otherwise.
        """
        args = [
            "release",
            "create",
            tag,
            "--title",
            tag,
            "--notes-file",
            "-",
            "--verify-tag",
        ]
        if self._repository:
            args.extend(["--repo", self._repository])
        if self._draft:
            args.append("--draft")
        if self._prerelease:
            args.append("--prerelease")
        try:
            output = self._runner.run(
                "gh",
                *args,
                cwd=workdir,
                env={"GH_TOKEN": credential.reveal()},
                stdin=body,
                mutating=True,
            )
        except CommandFailed as exc:
            if "HTTP 401" in exc.output or "Bad credentials" in exc.output:
                message = f"GitHub rejected the credential: {exc}"
                raise AuthenticationFailure(message) from exc
            message = f"Unable to create release {tag!r}: {exc}"
            raise ReleaseCreationFailure(message) from exc
        return ReleaseRecord(tag=tag, body=body, url=output.strip() or None)
