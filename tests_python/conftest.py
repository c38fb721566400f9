"""Shared fixtures for the release pipeline test suite."""

from __future__ import annotations

from pathlib import Path

import pytest
from release_test_helpers import (
    SECRETS,
    FakeChangelog,
    FakeCheckout,
    FakeRegistry,
    FakeReleases,
    FakeRunner,
    FakeToolchain,
)

from tag_release.config import PublishConfig
from tag_release.credentials import EnvCredential
from tag_release.publish import PublishStage
from tag_release.release import ReleaseStage


@pytest.fixture(autouse=True)
def _isolated_github_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Strip runner variables so tests never write to a real workflow."""
    for name in (
        "GITHUB_ACTIONS",
        "GITHUB_OUTPUT",
        "GITHUB_STEP_SUMMARY",
        "GITHUB_EVENT_NAME",
        "GITHUB_EVENT_PATH",
        "GITHUB_REF",
        "GITHUB_REF_TYPE",
        "GITHUB_SHA",
        "GITHUB_REPOSITORY",
        "GITHUB_SERVER_URL",
        "GITHUB_WORKSPACE",
        "INPUT_DRY_RUN",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner() -> FakeRunner:
    """Provide a recording command runner."""
    return FakeRunner()


@pytest.fixture
def registry() -> FakeRegistry:
    """Provide an empty in-memory registry shared across runs in a test."""
    return FakeRegistry()


@pytest.fixture
def releases() -> FakeReleases:
    """Provide an empty in-memory release host shared across runs in a test."""
    return FakeReleases()


@pytest.fixture
def changelog() -> FakeChangelog:
    """Provide a changelog builder answering with canned notes."""
    return FakeChangelog()


@pytest.fixture
def toolchain(registry: FakeRegistry) -> FakeToolchain:
    """Provide a toolchain that publishes into ``registry``."""
    return FakeToolchain(registry)


@pytest.fixture
def publish_stage(tmp_path: Path, toolchain: FakeToolchain) -> PublishStage:
    """Publish stage wired to fakes and a registry-only credential."""
    return PublishStage(
        checkout=FakeCheckout(tmp_path / "publish"),
        toolchain=toolchain,
        credential=EnvCredential("CARGO_TOKEN", environ=SECRETS),
        config=PublishConfig(),
    )


@pytest.fixture
def release_stage(
    tmp_path: Path, changelog: FakeChangelog, releases: FakeReleases
) -> ReleaseStage:
    """Release stage wired to fakes and a hosting-only credential."""
    return ReleaseStage(
        checkout=FakeCheckout(tmp_path / "release"),
        changelog=changelog,
        releases=releases,
        credential=EnvCredential("GH_PAT", environ=SECRETS),
    )
