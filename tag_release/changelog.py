"""Build release notes from the history between two tags.

The previous tag is found in the local snapshot; the list of changes comes
from a pluggable source, either the hosting platform's compare API or the
snapshot's own ``git log``.
"""

from __future__ import annotations

import dataclasses
import json
import typing as typ
from pathlib import Path
from urllib.parse import quote

from .commands import CommandFailed, Runner
from .config import DEFAULT_TEMPLATE
from .errors import AuthenticationFailure, ChangelogGenerationFailure
from .trigger import TAG_REF_PREFIX

if typ.TYPE_CHECKING:
    from .credentials import Credential

__all__ = [
    "Changelog",
    "ChangelogBuilder",
    "ChangelogEntry",
    "ChangeSource",
    "GitHubChangelog",
    "GitLogChangelog",
    "previous_tag",
    "render_changelog",
]

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_COMPARE_PAGE_SIZE = 100


@dataclasses.dataclass(frozen=True, slots=True)
class ChangelogEntry:
    """One change between two releases."""

    sha: str
    subject: str
    author: str | None = None

    def render(self) -> str:
        """Return the Markdown bullet for this change."""
        line = f"- {self.subject} ({self.sha[:7]})"
        if self.author:
            line = f"{line} by {self.author}"
        return line


@dataclasses.dataclass(frozen=True, slots=True)
class Changelog:
    """Release notes for the interval ``(previous_tag, tag]``."""

    previous_tag: str
    tag: str
    text: str


class ChangeSource(typ.Protocol):
    """List the changes between two tags, newest first."""

    def entries(
        self,
        workdir: Path,
        previous: str,
        tag: str,
        credential: Credential,
    ) -> list[ChangelogEntry]: ...


def previous_tag(
    runner: Runner, workdir: Path, tag: str, *, match: str | None = None
) -> str:
    """Return the nearest tag reachable from the parent of ``tag``.

    Raises
    ------
    ChangelogGenerationFailure
        If no earlier tag exists, as on a project's first release.
    """
    args = ["describe", "--tags", "--abbrev=0"]
    if match:
        args.extend(["--match", match])
    args.append(f"{TAG_REF_PREFIX}{tag}^")
    try:
        found = runner.run("git", *args, cwd=workdir).strip()
    except CommandFailed as exc:
        message = f"No release tag found before {tag!r}: {exc}"
        raise ChangelogGenerationFailure(message) from exc
    if not found:
        message = f"No release tag found before {tag!r}"
        raise ChangelogGenerationFailure(message)
    return found


def render_changelog(
    entries: typ.Sequence[ChangelogEntry],
    *,
    previous_tag: str,
    tag: str,
    template: str = DEFAULT_TEMPLATE,
) -> str:
    """Format ``entries`` into ``template``.

    Examples
    --------
    >>> render_changelog(
    ...     [ChangelogEntry("0123456789", "Fix parser")],
    ...     previous_tag="v1.1.0",
    ...     tag="v1.2.0",
    ...     template="{changes}",
    ... )
    '- Fix parser (0123456)'
    """
    changes = "\n".join(entry.render() for entry in entries) or "- No changes"
    try:
        return template.format(changes=changes, previous_tag=previous_tag, tag=tag)
    except (KeyError, IndexError) as exc:
        message = f"Invalid changelog template key {exc} in {template!r}"
        raise ChangelogGenerationFailure(message) from exc


class GitLogChangelog:
    """Read the changes from the snapshot's ``git log``."""

    def __init__(self, runner: Runner) -> None:
        self._runner = runner

    def entries(
        self,
        workdir: Path,
        previous: str,
        tag: str,
        credential: Credential,
    ) -> list[ChangelogEntry]:
        del credential  # history is local
        span = f"{TAG_REF_PREFIX}{previous}..{TAG_REF_PREFIX}{tag}"
        try:
            output = self._runner.run(
                "git",
                "log",
                f"--format=%H{_FIELD_SEP}%s{_FIELD_SEP}%an{_RECORD_SEP}",
                span,
                cwd=workdir,
            )
        except CommandFailed as exc:
            message = f"Unable to read history {span}: {exc}"
            raise ChangelogGenerationFailure(message) from exc
        entries: list[ChangelogEntry] = []
        for record in output.split(_RECORD_SEP):
            if not (record := record.strip()):
                continue
            sha, subject, author = (record.split(_FIELD_SEP) + ["", ""])[:3]
            entries.append(ChangelogEntry(sha, subject, author or None))
        return entries


class GitHubChangelog:
    """Read the changes from the GitHub compare API through ``gh api``.

    The compare endpoint pages its commit list, so every page is requested
    and each commit is emitted as one compact JSON document per line.
    Commit authors are reported by their GitHub login when the platform can
    resolve one, otherwise by the commit author name.
    """

    def __init__(self, runner: Runner, repository: str) -> None:
        self._runner = runner
        self._repository = repository

    def entries(
        self,
        workdir: Path,
        previous: str,
        tag: str,
        credential: Credential,
    ) -> list[ChangelogEntry]:
        endpoint = (
            f"repos/{self._repository}/compare/"
            f"{quote(previous, safe='')}...{quote(tag, safe='')}"
            f"?per_page={_COMPARE_PAGE_SIZE}"
        )
        try:
            output = self._runner.run(
                "gh",
                "api",
                "--paginate",
                "--jq",
                ".commits[] | @json",
                endpoint,
                cwd=workdir,
                env={"GH_TOKEN": credential.reveal()},
            )
        except CommandFailed as exc:
            if "HTTP 401" in exc.output or "Bad credentials" in exc.output:
                message = f"GitHub rejected the credential: {exc}"
                raise AuthenticationFailure(message) from exc
            message = f"Unable to compare {previous}...{tag}: {exc}"
            raise ChangelogGenerationFailure(message) from exc
        commits: list[typ.Mapping[str, typ.Any]] = []
        for line in output.splitlines():
            if not (line := line.strip()):
                continue
            try:
                commit = json.loads(line)
            except json.JSONDecodeError as exc:
                message = f"Compare API returned invalid JSON: {exc}"
                raise ChangelogGenerationFailure(message) from exc
            if isinstance(commit, dict):
                commits.append(commit)
        return [_entry_from_commit(commit) for commit in reversed(commits)]


def _entry_from_commit(commit: typ.Mapping[str, typ.Any]) -> ChangelogEntry:
    details = commit.get("commit") or {}
    message = details.get("message") or ""
    subject = message.splitlines()[0] if message else ""
    login = (commit.get("author") or {}).get("login")
    author = f"@{login}" if login else (details.get("author") or {}).get("name")
    return ChangelogEntry(commit.get("sha", ""), subject, author)


class ChangelogBuilder:
    """Produce the :class:`Changelog` for a tag from a :class:`ChangeSource`."""

    def __init__(
        self,
        runner: Runner,
        source: ChangeSource,
        *,
        template: str = DEFAULT_TEMPLATE,
        match: str | None = None,
    ) -> None:
        self._runner = runner
        self._source = source
        self._template = template
        self._match = match

    def generate(self, workdir: Path, tag: str, credential: Credential) -> Changelog:
        """Return release notes for the interval ending at ``tag``."""
        previous = previous_tag(self._runner, workdir, tag, match=self._match)
        entries = self._source.entries(workdir, previous, tag, credential)
        text = render_changelog(
            entries, previous_tag=previous, tag=tag, template=self._template
        )
        print(f"Collected {len(entries)} change(s) between '{previous}' and '{tag}'")
        return Changelog(previous_tag=previous, tag=tag, text=text)
