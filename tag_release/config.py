"""Configuration models and loader for the release pipeline.

Settings come from an optional TOML file with ``[common]``, ``[publish]``
and ``[release]`` tables. Every key has a default so that a repository with
no configuration file behaves like the stock tag-to-release workflow.

Usage
-----
Load the configuration used by a workflow run::

    from pathlib import Path
    from tag_release.config import load_config

    config = load_config(Path(".github/release.toml"))
    print(config.publish.token_env)
"""

from __future__ import annotations

import dataclasses
import os
import typing as typ
from pathlib import Path

import tomllib

from .environment import default_source, repository_from_url
from .errors import ConfigError

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_TEMPLATE",
    "PipelineConfig",
    "PublishConfig",
    "ReleaseConfig",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path(".github/release.toml")
DEFAULT_TEMPLATE = "## Changes since {previous_tag}\n\n{changes}\n"
CHANGELOG_SOURCES = frozenset({"github", "git"})


@dataclasses.dataclass(slots=True)
class PublishConfig:
    """Settings consumed by the publish stage.

    Attributes
    ----------
    manifest : str
        Manifest path relative to the repository snapshot.
    token_env : str
        Environment variable holding the registry token.
    registry : str | None
        Named alternative registry; ``None`` publishes to crates.io.
    verify : bool
        When ``False`` the registry's pre-publish verification build is
        skipped.
    allow_dirty : bool
        When ``True`` uncommitted changes such as the version rewrite are
        accepted by the publish command.
    build_args : list[str]
        Extra arguments appended to the build command.
    """

    manifest: str = "Cargo.toml"
    token_env: str = "CARGO_TOKEN"
    registry: str | None = None
    verify: bool = False
    allow_dirty: bool = True
    build_args: list[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(slots=True)
class ReleaseConfig:
    """Settings consumed by the release stage."""

    token_env: str = "GH_PAT"
    repository: str | None = None
    changelog: str = "github"
    template: str = DEFAULT_TEMPLATE
    draft: bool = False
    prerelease: bool = False


@dataclasses.dataclass(slots=True)
class PipelineConfig:
    """Concrete configuration produced by :func:`load_config`."""

    source: str
    tag_prefix: str = "v"
    publish: PublishConfig = dataclasses.field(default_factory=PublishConfig)
    release: ReleaseConfig = dataclasses.field(default_factory=ReleaseConfig)


def load_config(
    config_file: Path | None = None,
    *,
    environ: typ.Mapping[str, str] | None = None,
) -> PipelineConfig:
    """Load the pipeline configuration.

    Parameters
    ----------
    config_file : Path | None
        Explicit configuration path. When ``None`` the default
        ``.github/release.toml`` is used if it exists, otherwise built-in
        defaults apply.
    environ : Mapping[str, str] | None
        Environment consulted for source and repository defaults.

    Raises
    ------
    FileNotFoundError
        Raised when an explicit ``config_file`` does not exist.
    ConfigError
        Raised when a key has the wrong type or an unknown value.
    """
    data: dict[str, typ.Any] = {}
    label = "<defaults>"
    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.is_file():
            message = f"Configuration file not found at {config_file}"
            raise FileNotFoundError(message)
        data = _load_toml(config_file)
        label = str(config_file)
    elif DEFAULT_CONFIG_PATH.is_file():
        data = _load_toml(DEFAULT_CONFIG_PATH)
        label = str(DEFAULT_CONFIG_PATH)

    common = _table(data, "common", label)
    publish = _table(data, "publish", label)
    release = _table(data, "release", label)
    env = os.environ if environ is None else environ

    changelog = _string(release, "changelog", "github", label)
    if changelog not in CHANGELOG_SOURCES:
        supported = ", ".join(sorted(CHANGELOG_SOURCES))
        message = (
            f"Unsupported changelog source {changelog!r} in {label}; "
            f"expected one of: {supported}"
        )
        raise ConfigError(message)

    source = _optional_string(common, "source", label) or default_source(env)
    repository = (
        _optional_string(release, "repository", label)
        or env.get("GITHUB_REPOSITORY")
        or repository_from_url(source)
    )

    return PipelineConfig(
        source=source,
        tag_prefix=_string(common, "tag_prefix", "v", label, allow_empty=True),
        publish=PublishConfig(
            manifest=_string(publish, "manifest", "Cargo.toml", label),
            token_env=_string(publish, "token_env", "CARGO_TOKEN", label),
            registry=_optional_string(publish, "registry", label),
            verify=_boolean(publish, "verify", default=False, label=label),
            allow_dirty=_boolean(publish, "allow_dirty", default=True, label=label),
            build_args=_string_list(publish, "build_args", label),
        ),
        release=ReleaseConfig(
            token_env=_string(release, "token_env", "GH_PAT", label),
            repository=repository,
            changelog=changelog,
            template=_string(release, "template", DEFAULT_TEMPLATE, label),
            draft=_boolean(release, "draft", default=False, label=label),
            prerelease=_boolean(release, "prerelease", default=False, label=label),
        ),
    )


def _load_toml(path: Path) -> dict[str, typ.Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        message = f"Invalid TOML in {path}: {exc}"
        raise ConfigError(message) from exc


def _table(data: dict[str, typ.Any], key: str, label: str) -> dict[str, typ.Any]:
    section = data.get(key, {})
    if not isinstance(section, dict):
        message = f"[{key}] in {label} must be a table"
        raise ConfigError(message)
    return section


def _string(
    section: dict[str, typ.Any],
    key: str,
    default: str,
    label: str,
    *,
    allow_empty: bool = False,
) -> str:
    value = section.get(key, default)
    if not isinstance(value, str) or (not value and not allow_empty):
        message = f"Key '{key}' in {label} must be a non-empty string"
        raise ConfigError(message)
    return value


def _optional_string(
    section: dict[str, typ.Any], key: str, label: str
) -> str | None:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        message = f"Key '{key}' in {label} must be a string"
        raise ConfigError(message)
    return value or None


def _boolean(
    section: dict[str, typ.Any], key: str, *, default: bool, label: str
) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        message = f"Key '{key}' in {label} must be a boolean"
        raise ConfigError(message)
    return value


def _string_list(section: dict[str, typ.Any], key: str, label: str) -> list[str]:
    value = section.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        message = f"Key '{key}' in {label} must be a list of strings"
        raise ConfigError(message)
    return list(value)
