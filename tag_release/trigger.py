"""Select tag-creation events and turn them into pipeline run requests.

This is a pure filter: one qualifying event yields exactly one
:class:`RunRequest`. Nothing is deduplicated, so a tag pushed twice asks
for two runs and the downstream stages decide what happens the second time.
"""

from __future__ import annotations

import dataclasses
import json
import os
import typing as typ
from pathlib import Path

from .environment import require_env
from .errors import ConfigError

__all__ = [
    "TAG_REF_PREFIX",
    "RepositoryEvent",
    "RunRequest",
    "evaluate",
    "event_from_payload",
    "is_tag_creation",
    "load_event",
    "select_runs",
    "version_from_tag",
]

TAG_REF_PREFIX = "refs/tags/"


@dataclasses.dataclass(frozen=True, slots=True)
class RepositoryEvent:
    """Repository event as delivered by the hosting platform."""

    name: str
    ref: str
    ref_type: str | None = None
    deleted: bool = False
    sha: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class RunRequest:
    """Request for one pipeline run for ``tag``."""

    tag: str
    sha: str | None = None


def is_tag_creation(event: RepositoryEvent) -> bool:
    """Return ``True`` when ``event`` creates (or re-pushes) a tag.

    Examples
    --------
    >>> is_tag_creation(RepositoryEvent("push", "refs/tags/v1.2.0"))
    True
    >>> is_tag_creation(RepositoryEvent("push", "refs/heads/main"))
    False
    """
    if event.deleted:
        return False
    if event.name == "push":
        return event.ref.startswith(TAG_REF_PREFIX) and len(event.ref) > len(
            TAG_REF_PREFIX
        )
    if event.name == "create":
        return event.ref_type == "tag" and bool(event.ref)
    return False


def _tag_name(event: RepositoryEvent) -> str:
    return event.ref.removeprefix(TAG_REF_PREFIX)


def evaluate(event: RepositoryEvent) -> RunRequest | None:
    """Return the run request for ``event`` or ``None`` when it does not qualify."""
    if not is_tag_creation(event):
        return None
    return RunRequest(tag=_tag_name(event), sha=event.sha)


def select_runs(events: typ.Iterable[RepositoryEvent]) -> typ.Iterator[RunRequest]:
    """Yield one :class:`RunRequest` per qualifying event, in arrival order."""
    for event in events:
        if (request := evaluate(event)) is not None:
            yield request


def event_from_payload(
    event_name: str, payload: typ.Mapping[str, typ.Any]
) -> RepositoryEvent:
    """Build a :class:`RepositoryEvent` from a GitHub webhook payload.

    ``push`` payloads carry the fully qualified ref and the pushed commit in
    ``after``; ``create`` payloads carry the short ref name and ``ref_type``.
    """
    ref = payload.get("ref") or ""
    if not isinstance(ref, str):
        message = f"Event payload 'ref' must be a string, got {ref!r}"
        raise ConfigError(message)
    sha = payload.get("after") if event_name == "push" else None
    return RepositoryEvent(
        name=event_name,
        ref=ref,
        ref_type=payload.get("ref_type"),
        deleted=bool(payload.get("deleted", False)),
        sha=sha if isinstance(sha, str) else None,
    )


def load_event(environ: typ.Mapping[str, str] | None = None) -> RepositoryEvent:
    """Return the event that triggered the current workflow run.

    Reads ``GITHUB_EVENT_NAME`` and the JSON payload at ``GITHUB_EVENT_PATH``.
    When no payload file is available the event is rebuilt from
    ``GITHUB_REF`` and ``GITHUB_SHA``.

    Raises
    ------
    ConfigError
        If ``GITHUB_EVENT_NAME`` is unset or the payload is not valid JSON.
    """
    env = os.environ if environ is None else environ
    event_name = require_env("GITHUB_EVENT_NAME", env)

    event_path = env.get("GITHUB_EVENT_PATH")
    if event_path and Path(event_path).is_file():
        try:
            payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            message = f"Event payload at {event_path} is not valid JSON: {exc}"
            raise ConfigError(message) from exc
        if not isinstance(payload, dict):
            message = f"Event payload at {event_path} must be a JSON object"
            raise ConfigError(message)
        return event_from_payload(event_name, payload)

    return RepositoryEvent(
        name=event_name,
        ref=env.get("GITHUB_REF", ""),
        ref_type=env.get("GITHUB_REF_TYPE"),
        sha=env.get("GITHUB_SHA"),
    )


def version_from_tag(tag: str, *, prefix: str = "v") -> str:
    """Return the package version carried by ``tag``.

    The tag is used as-is apart from removing the literal ``prefix`` when the
    tag starts with it. No semantic-version validation is performed.

    Examples
    --------
    >>> version_from_tag("v1.2.0")
    '1.2.0'
    >>> version_from_tag("v1.2.0", prefix="")
    'v1.2.0'
    >>> version_from_tag("release-7")
    'release-7'
    """
    if prefix and tag.startswith(prefix) and len(tag) > len(prefix):
        return tag.removeprefix(prefix)
    return tag
