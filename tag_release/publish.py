"""Publish stage: version the manifest from the tag, build and upload."""

from __future__ import annotations

import dataclasses
import typing as typ

from . import annotations
from .manifest import overwrite_version
from .trigger import version_from_tag

if typ.TYPE_CHECKING:
    from .checkout import Checkout
    from .config import PublishConfig
    from .credentials import CredentialSource
    from .toolchain import Toolchain
    from .trigger import RunRequest

__all__ = ["PublishResult", "PublishStage"]


@dataclasses.dataclass(frozen=True, slots=True)
class PublishResult:
    """Outcome of a successful publish: the artefact is on the registry."""

    tag: str
    version: str
    previous_version: str


class PublishStage:
    """Publish the package for a tag.

    Steps run strictly in order and each one is a precondition for the
    next: snapshot at the tag, registry credential, version overwrite, build,
    publish. Any :class:`~tag_release.errors.ReleaseError` aborts the stage.
    Nothing is rolled back.
    """

    def __init__(
        self,
        *,
        checkout: Checkout,
        toolchain: Toolchain,
        credential: CredentialSource,
        config: PublishConfig,
        tag_prefix: str = "v",
    ) -> None:
        self._checkout = checkout
        self._toolchain = toolchain
        self._credential = credential
        self._config = config
        self._tag_prefix = tag_prefix

    def __call__(self, request: RunRequest) -> PublishResult:
        version = version_from_tag(request.tag, prefix=self._tag_prefix)
        self._flag_bypassed_checks()

        with self._checkout.snapshot(request.tag, sha=request.sha) as workdir:
            registry_env = self._toolchain.registry_env(self._credential())

            manifest_path = workdir / self._config.manifest
            previous = overwrite_version(manifest_path, version)
            print(f"Set {self._config.manifest} version {previous} -> {version}")

            self._toolchain.build(workdir)
            self._toolchain.publish(
                workdir,
                env=registry_env,
                verify=self._config.verify,
                allow_dirty=self._config.allow_dirty,
            )

        print(f"Published version {version} for tag '{request.tag}'")
        return PublishResult(
            tag=request.tag, version=version, previous_version=previous
        )

    def _flag_bypassed_checks(self) -> None:
        skipped = []
        if not self._config.verify:
            skipped.append("registry verification is skipped")
        if self._config.allow_dirty:
            skipped.append("a dirty working tree is accepted")
        if skipped:
            annotations.warning(
                f"Publishing with relaxed checks: {'; '.join(skipped)}.",
                title="Publish Checks Relaxed",
            )
