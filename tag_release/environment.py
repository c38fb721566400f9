"""Environment helpers shared by the release toolchain."""

from __future__ import annotations

import os
import re
import typing as typ
from pathlib import Path

from .errors import ConfigError

__all__ = ["coerce_bool", "default_source", "repository_from_url", "require_env"]

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"", "false", "0", "no", "off"}
_GITHUB_URL = re.compile(
    r"^(?:https?://|ssh://git@|git@)github\.com[:/]"
    r"(?P<owner>[\w.-]+)/(?P<name>[\w.-]+?)(?:\.git)?/?$"
)


def require_env(name: str, environ: typ.Mapping[str, str] | None = None) -> str:
    """Return the value of ``name`` or raise :class:`ConfigError`.

    Parameters
    ----------
    name:
        Name of the environment variable to fetch.
    environ:
        Mapping to read from; defaults to :data:`os.environ`.

    Raises
    ------
    ConfigError
        Raised when the environment variable is unset or empty.
    """
    env = os.environ if environ is None else environ
    value = env.get(name)
    if not value:
        message = f"Environment variable '{name}' is not set."
        raise ConfigError(message)
    return value


def repository_from_url(url: str) -> str | None:
    """Return ``owner/name`` for a GitHub clone URL, or ``None``.

    Examples
    --------
    >>> repository_from_url("https://github.com/acme/demo.git")
    'acme/demo'
    >>> repository_from_url("git@github.com:acme/demo")
    'acme/demo'
    >>> repository_from_url("/work/repo") is None
    True
    """
    if match := _GITHUB_URL.match(url.strip()):
        return f"{match['owner']}/{match['name']}"
    return None


def coerce_bool(value: object) -> bool:
    """Return ``value`` as a strict boolean.

    Examples
    --------
    >>> coerce_bool(" Yes ")
    True
    >>> coerce_bool("off")
    False
    """
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        message = f"Cannot interpret {value!r} as a boolean"
        raise TypeError(message)
    normalised = value.strip().lower()
    if normalised in _FALSE_VALUES:
        return False
    if normalised in _TRUE_VALUES:
        return True
    message = f"Cannot interpret {value!r} as a boolean"
    raise ValueError(message)


def default_source(environ: typ.Mapping[str, str] | None = None) -> str:
    """Return the repository location to clone snapshots from.

    ``GITHUB_WORKSPACE`` wins because the runner has already checked the
    repository out there; the public clone URL is used otherwise, and the
    current directory outside CI.
    """
    env = os.environ if environ is None else environ
    if workspace := env.get("GITHUB_WORKSPACE"):
        return workspace
    server = env.get("GITHUB_SERVER_URL")
    repository = env.get("GITHUB_REPOSITORY")
    if server and repository:
        return f"{server.rstrip('/')}/{repository}.git"
    return str(Path.cwd())
