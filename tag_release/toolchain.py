"""Package build and publish collaborator backed by ``cargo``."""

from __future__ import annotations

import re
import typing as typ
from pathlib import Path

from .commands import CommandFailed, Runner
from .errors import (
    AuthenticationFailure,
    BuildFailure,
    PublishRejected,
    VersionConflict,
)

if typ.TYPE_CHECKING:
    from .credentials import Credential

__all__ = [
    "CargoToolchain",
    "Toolchain",
    "classify_publish_failure",
    "registry_token_variable",
]

_CONFLICT_PATTERN = re.compile(r"already (?:uploaded|exists)", re.IGNORECASE)
_AUTH_PATTERN = re.compile(
    r"status 40[13]|unauthori[sz]ed|forbidden|invalid token|no token found"
    r"|non-empty token|authentication",
    re.IGNORECASE,
)


class Toolchain(typ.Protocol):
    """Build and publish a package from a working tree."""

    def registry_env(self, credential: Credential) -> dict[str, str]: ...

    def build(self, workdir: Path) -> None: ...

    def publish(
        self,
        workdir: Path,
        *,
        env: typ.Mapping[str, str],
        verify: bool = False,
        allow_dirty: bool = True,
    ) -> None: ...


def registry_token_variable(registry: str | None = None) -> str:
    """Return the variable ``cargo`` reads the token for ``registry`` from.

    Examples
    --------
    >>> registry_token_variable()
    'CARGO_REGISTRY_TOKEN'
    >>> registry_token_variable("my-registry")
    'CARGO_REGISTRIES_MY_REGISTRY_TOKEN'
    """
    if not registry:
        return "CARGO_REGISTRY_TOKEN"
    name = re.sub(r"[^A-Z0-9]", "_", registry.upper())
    return f"CARGO_REGISTRIES_{name}_TOKEN"


def classify_publish_failure(
    exc: CommandFailed,
) -> PublishRejected | AuthenticationFailure:
    """Map a failed publish command onto the pipeline's error taxonomy.

    Examples
    --------
    >>> failure = CommandFailed(
    ...     ("cargo", "publish"),
    ...     101,
    ...     stderr="crate version `1.2.0` is already uploaded",
    ... )
    >>> type(classify_publish_failure(failure)).__name__
    'VersionConflict'
    """
    output = exc.output
    if _CONFLICT_PATTERN.search(output):
        return VersionConflict(f"Registry already has this version: {exc}")
    if _AUTH_PATTERN.search(output):
        return AuthenticationFailure(f"Registry rejected the credential: {exc}")
    return PublishRejected(f"Registry rejected the publish: {exc}")


class CargoToolchain:
    """Drive ``cargo build`` and ``cargo publish``.

    The registry token is supplied through the publish command's environment
    rather than ``cargo login`` so that it is never written to the cargo
    credentials file.
    """

    def __init__(
        self,
        runner: Runner,
        *,
        registry: str | None = None,
        build_args: typ.Sequence[str] = (),
    ) -> None:
        self._runner = runner
        self._registry = registry
        self._build_args = tuple(build_args)

    def registry_env(self, credential: Credential) -> dict[str, str]:
        """Return the environment that authenticates ``cargo`` to the registry."""
        return {registry_token_variable(self._registry): credential.reveal()}

    def build(self, workdir: Path) -> None:
        """Build the package in ``workdir``; failures raise :class:`BuildFailure`."""
        try:
            self._runner.run("cargo", "build", *self._build_args, cwd=workdir)
        except CommandFailed as exc:
            raise BuildFailure(f"Build failed: {exc}") from exc

    def publish(
        self,
        workdir: Path,
        *,
        env: typ.Mapping[str, str],
        verify: bool = False,
        allow_dirty: bool = True,
    ) -> None:
        """Upload the package in ``workdir`` to the registry."""
        args = ["publish"]
        if not verify:
            args.append("--no-verify")
        if allow_dirty:
            args.append("--allow-dirty")
        if self._registry:
            args.extend(["--registry", self._registry])
        try:
            self._runner.run("cargo", *args, cwd=workdir, env=env, mutating=True)
        except CommandFailed as exc:
            raise classify_publish_failure(exc) from exc
