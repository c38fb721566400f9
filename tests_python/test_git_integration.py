"""Checkout and changelog behaviour against a real git repository."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

import pytest
from release_test_helpers import write_cargo_manifest

from tag_release.changelog import ChangelogBuilder, GitLogChangelog, previous_tag
from tag_release.checkout import GitCheckout
from tag_release.commands import CommandRunner
from tag_release.credentials import Credential
from tag_release.errors import ChangelogGenerationFailure, CheckoutFailure

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is required")

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Ada",
    "GIT_AUTHOR_EMAIL": "ada@example.test",
    "GIT_COMMITTER_NAME": "Ada",
    "GIT_COMMITTER_EMAIL": "ada@example.test",
}


def _git(repo: Path, *args: str) -> str:
    completed = subprocess.run(  # noqa: S603  # Security: fixed git arguments in tests.
        ["git", *args],  # noqa: S607
        cwd=repo,
        env=os.environ | GIT_ENV,
        capture_output=True,
        text=True,
        check=True,
    )
    return completed.stdout.strip()


def _commit(repo: Path, message: str) -> None:
    with (repo / "CHANGES").open("a", encoding="utf-8") as handle:
        handle.write(f"{message}\n")
    _git(repo, "add", "-A")
    _git(repo, "commit", "--quiet", "-m", message)


@pytest.fixture
def origin(tmp_path: Path) -> Path:
    """Repository with releases ``v1.1.0`` and ``v1.2.0``."""
    repo = tmp_path / "origin"
    repo.mkdir()
    _git(repo, "init", "--quiet")
    write_cargo_manifest(repo, "1.1.0")
    _commit(repo, "Initial release")
    _git(repo, "tag", "v1.1.0")
    _commit(repo, "Fix parser")
    _commit(repo, "Add feature")
    _git(repo, "tag", "v1.2.0")
    _commit(repo, "Unreleased work")
    return repo


def test_snapshot_is_detached_at_tag(origin: Path) -> None:
    """The snapshot holds the tagged commit and disappears afterwards."""
    checkout = GitCheckout(CommandRunner(), str(origin))

    with checkout.snapshot("v1.2.0") as workdir:
        head = _git(workdir, "rev-parse", "HEAD")
        assert head == _git(origin, "rev-parse", "v1.2.0^{commit}")
        assert "Unreleased work" not in (workdir / "CHANGES").read_text(encoding="utf-8")
        (workdir / "Cargo.toml").write_text("dirty", encoding="utf-8")

    assert not workdir.exists(), "Snapshots must be removed after use"
    assert (origin / "Cargo.toml").read_text(encoding="utf-8") != "dirty"


def test_snapshots_are_independent(origin: Path) -> None:
    """Each stage receives a fresh clone."""
    checkout = GitCheckout(CommandRunner(), str(origin))

    with checkout.snapshot("v1.2.0") as first, checkout.snapshot("v1.2.0") as second:
        (first / "Cargo.toml").write_text("edited", encoding="utf-8")
        assert (second / "Cargo.toml").read_text(encoding="utf-8") != "edited"


def test_snapshot_unknown_tag(origin: Path) -> None:
    """Missing tags fail the checkout."""
    checkout = GitCheckout(CommandRunner(), str(origin))

    with pytest.raises(CheckoutFailure, match="'v9.9.9'"), checkout.snapshot("v9.9.9"):
        pass


def test_snapshot_accepts_event_commit(origin: Path) -> None:
    """A tag still pointing at the triggering commit checks out normally."""
    checkout = GitCheckout(CommandRunner(), str(origin))
    sha = _git(origin, "rev-parse", "v1.2.0^{commit}")

    with checkout.snapshot("v1.2.0", sha=sha) as workdir:
        assert _git(workdir, "rev-parse", "HEAD") == sha


def test_snapshot_rejects_moved_tag(origin: Path) -> None:
    """A tag re-pointed after the triggering event fails the checkout."""
    checkout = GitCheckout(CommandRunner(), str(origin))
    stale = _git(origin, "rev-parse", "v1.1.0^{commit}")

    with pytest.raises(CheckoutFailure, match="no longer points at"), checkout.snapshot(
        "v1.2.0", sha=stale
    ):
        pass


def test_changelog_from_local_history(origin: Path) -> None:
    """Changes since the previous tag are listed newest first."""
    runner = CommandRunner()
    builder = ChangelogBuilder(
        runner, GitLogChangelog(runner), template="{previous_tag}\n{changes}", match="v*"
    )

    with GitCheckout(runner, str(origin)).snapshot("v1.2.0") as workdir:
        changelog = builder.generate(workdir, "v1.2.0", Credential("GH_PAT", "unused"))

    lines = changelog.text.splitlines()
    assert lines[0] == "v1.1.0"
    assert [line.split(" (")[0] for line in lines[1:]] == ["- Add feature", "- Fix parser"]


def test_first_release_has_no_previous_tag(origin: Path) -> None:
    """The earliest tag cannot produce a changelog interval."""
    runner = CommandRunner()

    with GitCheckout(runner, str(origin)).snapshot("v1.1.0") as workdir, pytest.raises(
        ChangelogGenerationFailure
    ):
        previous_tag(runner, workdir, "v1.1.0")
