"""Shared fakes and helpers for the release pipeline test suites."""

from __future__ import annotations

import contextlib
import dataclasses
import typing as typ
from pathlib import Path
from textwrap import dedent

from tag_release.changelog import Changelog
from tag_release.commands import CommandFailed
from tag_release.errors import (
    BuildFailure,
    ChangelogGenerationFailure,
    ReleaseCreationFailure,
    VersionConflict,
)
from tag_release.github import ReleaseRecord
from tag_release.manifest import get_field, read_manifest

if typ.TYPE_CHECKING:
    from tag_release.credentials import Credential

__all__ = [
    "SECRETS",
    "FakeChangelog",
    "FakeCheckout",
    "FakeRegistry",
    "FakeReleases",
    "FakeRunner",
    "FakeToolchain",
    "RecordedCall",
    "decode_output_file",
    "write_cargo_manifest",
]

SECRETS = {"CARGO_TOKEN": "cargo-secret", "GH_PAT": "gh-secret"}


def write_cargo_manifest(root: Path, version: str = "0.0.0") -> Path:
    """Write a minimal ``Cargo.toml`` beneath ``root`` and return its path."""
    root.mkdir(parents=True, exist_ok=True)
    manifest = root / "Cargo.toml"
    manifest.write_text(
        dedent(
            f"""\
            [package]
            name = "demo"
            version = "{version}"  # bumped on release
            edition = "2021"

            [dependencies]
            serde = {{ version = "1.0" }}
            """
        ),
        encoding="utf-8",
    )
    return manifest


def decode_output_file(path: Path) -> dict[str, str]:
    """Parse GitHub output records written with ``write_github_output``."""
    lines = path.read_text(encoding="utf-8").splitlines()
    values: dict[str, str] = {}
    index = 0
    while index < len(lines):
        line = lines[index]
        if "<<" in line:
            key, delimiter = line.split("<<", 1)
            index += 1
            buffer: list[str] = []
            while index < len(lines) and lines[index] != delimiter:
                buffer.append(lines[index])
                index += 1
            values[key] = "\n".join(buffer)
        index += 1
    return values


@dataclasses.dataclass(frozen=True, slots=True)
class RecordedCall:
    """Command invocation captured by :class:`FakeRunner`."""

    argv: tuple[str, ...]
    cwd: Path | None
    env: dict[str, str]
    stdin: str | None
    mutating: bool


@dataclasses.dataclass(slots=True)
class FakeRunner:
    """Stand-in for :class:`tag_release.commands.CommandRunner`.

    Responses are matched on the leading words of the argument vector; the
    first registered match wins. Unmatched commands return an empty string.
    """

    calls: list[RecordedCall] = dataclasses.field(default_factory=list)
    _responses: list[tuple[tuple[str, ...], str | CommandFailed]] = dataclasses.field(
        default_factory=list
    )

    def on(self, *prefix: str, stdout: str = "", stderr: str | None = None) -> None:
        """Answer commands starting with ``prefix``; ``stderr`` makes them fail."""
        response: str | CommandFailed = stdout
        if stderr is not None:
            response = CommandFailed(prefix, 1, stdout, stderr)
        self._responses.append((prefix, response))

    def run(
        self,
        program: str,
        *args: str,
        cwd: Path | None = None,
        env: typ.Mapping[str, str] | None = None,
        stdin: str | None = None,
        mutating: bool = False,
    ) -> str:
        argv = (program, *args)
        self.calls.append(RecordedCall(argv, cwd, dict(env or {}), stdin, mutating))
        for prefix, response in self._responses:
            if argv[: len(prefix)] == prefix:
                if isinstance(response, CommandFailed):
                    raise CommandFailed(argv, 1, response.stdout, response.stderr)
                return response
        return ""

    def commands(self, program: str) -> list[tuple[str, ...]]:
        """Return the argument vectors recorded for ``program``."""
        return [call.argv for call in self.calls if call.argv[0] == program]


class FakeCheckout:
    """Checkout that materialises a fresh ``Cargo.toml`` per snapshot."""

    def __init__(self, root: Path, *, version: str = "0.0.0") -> None:
        self.root = root
        self.version = version
        self.snapshots: list[Path] = []
        self.pinned: list[str | None] = []

    @contextlib.contextmanager
    def snapshot(self, tag: str, *, sha: str | None = None) -> typ.Iterator[Path]:
        workdir = self.root / f"snapshot-{len(self.snapshots)}"
        write_cargo_manifest(workdir, self.version)
        self.snapshots.append(workdir)
        self.pinned.append(sha)
        yield workdir


@dataclasses.dataclass(slots=True)
class FakeRegistry:
    """In-memory package registry keyed by version."""

    artefacts: dict[str, str] = dataclasses.field(default_factory=dict)
    uploads: int = 0


class FakeToolchain:
    """Toolchain publishing the manifest version into a :class:`FakeRegistry`."""

    def __init__(self, registry: FakeRegistry, *, fail_build: bool = False) -> None:
        self.registry = registry
        self.fail_build = fail_build
        self.credentials: list[str] = []
        self.publish_flags: list[tuple[bool, bool]] = []

    def registry_env(self, credential: Credential) -> dict[str, str]:
        self.credentials.append(credential.name)
        return {"CARGO_REGISTRY_TOKEN": credential.reveal()}

    def build(self, workdir: Path) -> None:
        if self.fail_build:
            raise BuildFailure("Build failed: error[E0425]")

    def publish(
        self,
        workdir: Path,
        *,
        env: typ.Mapping[str, str],
        verify: bool = False,
        allow_dirty: bool = True,
    ) -> None:
        self.publish_flags.append((verify, allow_dirty))
        version = get_field(read_manifest(workdir / "Cargo.toml"), "version")
        if version in self.registry.artefacts:
            message = f"crate version `{version}` is already uploaded"
            raise VersionConflict(message)
        self.registry.artefacts[version] = env["CARGO_REGISTRY_TOKEN"]
        self.registry.uploads += 1


class FakeChangelog:
    """Changelog builder returning canned text or failing on demand."""

    def __init__(
        self, text: str = "- Fix parser (0123456)", *, previous: str | None = "v1.1.0"
    ) -> None:
        self.text = text
        self.previous = previous
        self.requests: list[tuple[str, str]] = []

    def generate(self, workdir: Path, tag: str, credential: Credential) -> Changelog:
        self.requests.append((tag, credential.name))
        if self.previous is None:
            message = f"No release tag found before {tag!r}"
            raise ChangelogGenerationFailure(message)
        return Changelog(previous_tag=self.previous, tag=tag, text=self.text)


class FakeReleases:
    """Release host that refuses duplicate tags."""

    def __init__(self) -> None:
        self.records: dict[str, ReleaseRecord] = {}

    def create(
        self, workdir: Path, tag: str, body: str, credential: Credential
    ) -> ReleaseRecord:
        if tag in self.records:
            message = f"Unable to create release {tag!r}: already exists"
            raise ReleaseCreationFailure(message)
        record = ReleaseRecord(tag=tag, body=body, url=f"https://example.test/{tag}")
        self.records[tag] = record
        return record
