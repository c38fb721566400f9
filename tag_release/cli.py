"""Command-line entry point for the tag-triggered release pipeline.

Examples
--------
Run both stages for the tag that triggered the workflow::

    export CARGO_TOKEN=... GH_PAT=...
    tag-release run

Run the stages as separate jobs joined by ``needs:``::

    tag-release publish --tag v1.2.0
    tag-release release --tag v1.2.0

Print the planned mutating commands without publishing anything::

    tag-release run --tag v1.2.0 --dry-run
"""

from __future__ import annotations

import os
import sys
import typing as typ
from pathlib import Path

import cyclopts

from . import annotations
from .changelog import ChangelogBuilder, GitHubChangelog, GitLogChangelog
from .checkout import GitCheckout
from .commands import CommandRunner
from .config import PipelineConfig, load_config
from .credentials import EnvCredential
from .environment import coerce_bool, repository_from_url
from .errors import ConfigError
from .github import GitHubReleases
from .github_output import emit_outputs
from .pipeline import PUBLISH, RELEASE, Node, RunReport, TaskGraph, release_pipeline
from .publish import PublishStage
from .release import ReleaseStage
from .toolchain import CargoToolchain, registry_token_variable
from .trigger import RunRequest, evaluate, load_event, version_from_tag

__all__ = [
    "app",
    "build_publish_stage",
    "build_release_stage",
    "main",
    "secret_variables",
]

app = cyclopts.App(
    name="tag-release",
    help="Publish a package and create its release from a pushed tag.",
)


def build_publish_stage(config: PipelineConfig, runner: CommandRunner) -> PublishStage:
    """Wire the publish stage with its own checkout and registry credential."""
    return PublishStage(
        checkout=GitCheckout(runner, config.source),
        toolchain=CargoToolchain(
            runner,
            registry=config.publish.registry,
            build_args=config.publish.build_args,
        ),
        credential=EnvCredential(config.publish.token_env),
        config=config.publish,
        tag_prefix=config.tag_prefix,
    )


def build_release_stage(config: PipelineConfig, runner: CommandRunner) -> ReleaseStage:
    """Wire the release stage with its own checkout and hosting credential.

    Raises
    ------
    ConfigError
        If the GitHub repository could not be determined. The snapshot's
        ``origin`` is the clone source, which is usually a local path that
        ``gh`` cannot map to a repository.
    """
    settings = config.release
    if not settings.repository:
        message = (
            "Cannot determine the GitHub repository; set [release] repository "
            "or GITHUB_REPOSITORY."
        )
        raise ConfigError(message)
    source = (
        GitHubChangelog(runner, settings.repository)
        if settings.changelog == "github"
        else GitLogChangelog(runner)
    )
    match = f"{config.tag_prefix}*" if config.tag_prefix else None
    return ReleaseStage(
        checkout=GitCheckout(runner, config.source),
        changelog=ChangelogBuilder(
            runner, source, template=settings.template, match=match
        ),
        releases=GitHubReleases(
            runner,
            settings.repository,
            draft=settings.draft,
            prerelease=settings.prerelease,
        ),
        credential=EnvCredential(settings.token_env),
    )


def secret_variables(config: PipelineConfig) -> frozenset[str]:
    """Return every variable that may carry a stage credential.

    The runner strips these from the environment each child inherits, so a
    token reaches only the command it is explicitly handed to.
    """
    return frozenset(
        {
            config.publish.token_env,
            config.release.token_env,
            registry_token_variable(config.publish.registry),
            "CARGO_REGISTRY_TOKEN",
            "GH_TOKEN",
            "GITHUB_TOKEN",
        }
    )


def _prepare(
    config: Path | None, source: str | None, dry_run: bool
) -> tuple[PipelineConfig, CommandRunner]:
    settings = load_config(config)
    if source:
        settings.source = source
        settings.release.repository = settings.release.repository or (
            repository_from_url(source)
        )
    if not dry_run and (env_flag := os.environ.get("INPUT_DRY_RUN")):
        try:
            dry_run = coerce_bool(env_flag)
        except ValueError as exc:
            message = f"Invalid INPUT_DRY_RUN: {exc}"
            raise ConfigError(message) from exc
    runner = CommandRunner(dry_run=dry_run, withheld=secret_variables(settings))
    return settings, runner


def _finish(report: RunReport) -> None:
    emit_outputs(report.outputs(), summary=report.summary())
    for stage in report.stages:
        print(f"{stage.name}: {stage.status.value}", file=sys.stderr)
    if not report.succeeded:
        raise SystemExit(1)


def _config_failure(exc: Exception) -> typ.NoReturn:
    annotations.error(str(exc), title="Configuration Failure")
    raise SystemExit(1) from exc


@app.command
def trigger(*, config: Path | None = None) -> None:
    """Report whether the current workflow event should start a release.

    Parameters
    ----------
    config:
        Optional TOML configuration file.
    """
    try:
        settings = load_config(config)
        request = evaluate(load_event())
    except (FileNotFoundError, ConfigError) as exc:
        _config_failure(exc)

    if request is None:
        annotations.notice(
            "Event is not a tag creation; nothing to release.",
            title="Release Skipped",
        )
        emit_outputs({"should_release": "false"})
        return

    version = version_from_tag(request.tag, prefix=settings.tag_prefix)
    print(request.tag)
    emit_outputs({"tag": request.tag, "version": version, "should_release": "true"})


@app.command
def publish(
    *,
    tag: str,
    config: Path | None = None,
    source: str | None = None,
    dry_run: bool = False,
) -> None:
    """Publish the package for ``tag`` to the registry.

    Parameters
    ----------
    tag:
        Tag whose snapshot is built and whose name becomes the version.
    config:
        Optional TOML configuration file.
    source:
        Repository location to clone snapshots from.
    dry_run:
        Print the publish command instead of running it.
    """
    try:
        settings, runner = _prepare(config, source, dry_run)
    except (FileNotFoundError, ConfigError) as exc:
        _config_failure(exc)
    stage = build_publish_stage(settings, runner)
    _finish(TaskGraph([Node(PUBLISH, stage)]).run(RunRequest(tag)))


@app.command
def release(
    *,
    tag: str,
    config: Path | None = None,
    source: str | None = None,
    dry_run: bool = False,
) -> None:
    """Create the release record for an already published ``tag``.

    Parameters
    ----------
    tag:
        Tag to create the release for.
    config:
        Optional TOML configuration file.
    source:
        Repository location to clone snapshots from.
    dry_run:
        Print the release command instead of running it.
    """
    try:
        settings, runner = _prepare(config, source, dry_run)
        stage = build_release_stage(settings, runner)
    except (FileNotFoundError, ConfigError) as exc:
        _config_failure(exc)
    _finish(TaskGraph([Node(RELEASE, stage)]).run(RunRequest(tag)))


@app.command
def run(
    *,
    tag: str | None = None,
    config: Path | None = None,
    source: str | None = None,
    dry_run: bool = False,
) -> None:
    """Publish and then release, gated on the publish succeeding.

    Parameters
    ----------
    tag:
        Tag to release; defaults to the tag that triggered the workflow.
    config:
        Optional TOML configuration file.
    source:
        Repository location to clone snapshots from.
    dry_run:
        Print mutating commands instead of running them.
    """
    try:
        settings, runner = _prepare(config, source, dry_run)
        request = RunRequest(tag) if tag else evaluate(load_event())
    except (FileNotFoundError, ConfigError) as exc:
        _config_failure(exc)

    if request is None:
        annotations.notice(
            "Event is not a tag creation; nothing to release.",
            title="Release Skipped",
        )
        return

    try:
        graph = release_pipeline(
            build_publish_stage(settings, runner),
            build_release_stage(settings, runner),
        )
    except ConfigError as exc:
        _config_failure(exc)
    _finish(graph.run(request))


app.default(run)


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
