"""Tests for the release stage."""

from __future__ import annotations

import pytest
from release_test_helpers import FakeChangelog, FakeReleases

from tag_release.errors import ChangelogGenerationFailure, ReleaseCreationFailure
from tag_release.github import ReleaseRecord
from tag_release.release import ReleaseStage
from tag_release.trigger import RunRequest


def test_creates_record_with_changelog_body(
    release_stage: ReleaseStage, changelog: FakeChangelog, releases: FakeReleases
) -> None:
    """The record is keyed by the tag and its body is the changelog verbatim."""
    record = release_stage(RunRequest("v1.2.0"))

    assert record == ReleaseRecord(
        tag="v1.2.0", body=changelog.text, url="https://example.test/v1.2.0"
    )
    assert releases.records == {"v1.2.0": record}


def test_uses_hosting_credential_only(
    release_stage: ReleaseStage, changelog: FakeChangelog
) -> None:
    """The changelog collaborator receives the hosting token, not the registry one."""
    release_stage(RunRequest("v1.2.0"))

    assert changelog.requests == [("v1.2.0", "GH_PAT")]


def test_changelog_failure_creates_nothing(
    release_stage: ReleaseStage, changelog: FakeChangelog, releases: FakeReleases
) -> None:
    """Without a previous tag the stage fails before creating a record."""
    changelog.previous = None

    with pytest.raises(ChangelogGenerationFailure):
        release_stage(RunRequest("v0.1.0"))

    assert releases.records == {}


def test_duplicate_record_is_not_updated(
    release_stage: ReleaseStage, changelog: FakeChangelog, releases: FakeReleases
) -> None:
    """An existing record is left as it was."""
    first = release_stage(RunRequest("v1.2.0"))
    changelog.text = "- Different notes"

    with pytest.raises(ReleaseCreationFailure):
        release_stage(RunRequest("v1.2.0"))

    assert releases.records == {"v1.2.0": first}
