"""Exception hierarchy for the release pipeline."""

from __future__ import annotations

__all__ = [
    "AuthenticationFailure",
    "BuildFailure",
    "ChangelogGenerationFailure",
    "CheckoutFailure",
    "ConfigError",
    "ManifestError",
    "PublishRejected",
    "ReleaseCreationFailure",
    "ReleaseError",
    "VersionConflict",
]


class ReleaseError(RuntimeError):
    """Raised when a pipeline stage cannot continue."""


class ConfigError(ReleaseError):
    """Raised when the release configuration is missing keys or malformed."""


class AuthenticationFailure(ReleaseError):
    """Raised when a registry or hosting-platform credential is rejected."""


class CheckoutFailure(ReleaseError):
    """Raised when the repository snapshot for a tag cannot be acquired."""


class ManifestError(ReleaseError):
    """Raised when the package manifest version cannot be rewritten."""


class BuildFailure(ReleaseError):
    """Raised when the package build step fails."""


class PublishRejected(ReleaseError):
    """Raised when the registry refuses the artefact."""


class VersionConflict(PublishRejected):
    """Raised when the registry already holds an artefact at this version."""


class ChangelogGenerationFailure(ReleaseError):
    """Raised when the changelog between two tags cannot be computed."""


class ReleaseCreationFailure(ReleaseError):
    """Raised when the hosting platform refuses to create a release record."""
