"""Tag-triggered release automation: publish a package, then release it."""

from .changelog import Changelog, ChangelogBuilder, ChangelogEntry
from .config import PipelineConfig, PublishConfig, ReleaseConfig, load_config
from .credentials import Credential, EnvCredential
from .errors import (
    AuthenticationFailure,
    BuildFailure,
    ChangelogGenerationFailure,
    CheckoutFailure,
    ConfigError,
    ManifestError,
    PublishRejected,
    ReleaseCreationFailure,
    ReleaseError,
    VersionConflict,
)
from .github import ReleaseRecord
from .pipeline import RunReport, StageStatus, TaskGraph, release_pipeline, run_pipeline
from .publish import PublishResult, PublishStage
from .release import ReleaseStage
from .trigger import (
    RepositoryEvent,
    RunRequest,
    evaluate,
    select_runs,
    version_from_tag,
)

__all__ = [
    "AuthenticationFailure",
    "BuildFailure",
    "Changelog",
    "ChangelogBuilder",
    "ChangelogEntry",
    "ChangelogGenerationFailure",
    "CheckoutFailure",
    "ConfigError",
    "Credential",
    "EnvCredential",
    "ManifestError",
    "PipelineConfig",
    "PublishConfig",
    "PublishRejected",
    "PublishResult",
    "PublishStage",
    "ReleaseConfig",
    "ReleaseCreationFailure",
    "ReleaseError",
    "ReleaseRecord",
    "ReleaseStage",
    "RepositoryEvent",
    "RunReport",
    "RunRequest",
    "StageStatus",
    "TaskGraph",
    "VersionConflict",
    "evaluate",
    "load_config",
    "release_pipeline",
    "run_pipeline",
    "select_runs",
    "version_from_tag",
]
