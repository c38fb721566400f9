"""Release stage: changelog plus release record for a published tag."""

from __future__ import annotations

import typing as typ

from .github import ReleaseRecord

if typ.TYPE_CHECKING:
    from .changelog import ChangelogBuilder
    from .checkout import Checkout
    from .credentials import CredentialSource
    from .github import ReleaseHost
    from .trigger import RunRequest

__all__ = ["ReleaseStage"]


class ReleaseStage:
    """Create the release record for a tag whose artefact is published.

    The stage takes its own snapshot and its own hosting credential; only the
    tag travels over from the publish stage.
    """

    def __init__(
        self,
        *,
        checkout: Checkout,
        changelog: ChangelogBuilder,
        releases: ReleaseHost,
        credential: CredentialSource,
    ) -> None:
        self._checkout = checkout
        self._changelog = changelog
        self._releases = releases
        self._credential = credential

    def __call__(self, request: RunRequest) -> ReleaseRecord:
        with self._checkout.snapshot(request.tag, sha=request.sha) as workdir:
            credential = self._credential()
            changelog = self._changelog.generate(workdir, request.tag, credential)
            record = self._releases.create(
                workdir, request.tag, changelog.text, credential
            )
        location = f" at {record.url}" if record.url else ""
        print(f"Created release '{record.tag}'{location}")
        return record
