"""Read and rewrite the package version in ``Cargo.toml``."""

from __future__ import annotations

import json
import re
import typing as typ
from pathlib import Path

import tomllib

from .errors import ManifestError

__all__ = ["get_field", "overwrite_version", "read_manifest"]

_TABLE_HEADER = re.compile(r"^\s*\[\[?\s*([^\]]+?)\s*\]\]?\s*(?:#.*)?$")
_VERSION_LINE = re.compile(
    r"""^(?P<lead>\s*version\s*=\s*)(?P<value>"(?:[^"\\]|\\.)*"|'[^']*')(?P<tail>.*)$"""
)


def read_manifest(path: Path) -> dict[str, typ.Any]:
    """Load and return the parsed Cargo manifest as a dictionary.

    Parameters
    ----------
    path : Path
        Path to the ``Cargo.toml`` file.

    Returns
    -------
    dict[str, Any]
        Parsed manifest fields keyed by section.

    Raises
    ------
    ManifestError
        If the manifest does not exist or contains invalid TOML.
    """
    if not path.is_file():
        message = f"Manifest {path} does not exist"
        raise ManifestError(message)
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        message = f"Manifest {path} is not valid TOML: {exc}"
        raise ManifestError(message) from exc


def get_field(manifest: typ.Mapping[str, typ.Any], field: str) -> str:
    """Extract a package field from the manifest, raising if it is missing.

    Examples
    --------
    >>> get_field({"package": {"name": "demo", "version": "1.2.3"}}, "name")
    'demo'
    """
    package = manifest.get("package") or {}
    if not isinstance(package, dict):
        message = "package table missing from manifest"
        raise ManifestError(message)
    value = package.get(field, "")
    if not isinstance(value, str) or not value:
        message = f"package.{field} is missing"
        raise ManifestError(message)
    return value


def overwrite_version(path: Path, version: str) -> str:
    """Set ``[package].version`` in ``path`` to ``version``.

    The value is replaced unconditionally and nothing else in the file is
    touched. The manifest is parsed again afterwards to confirm the write.

    Returns
    -------
    str
        The version that was declared before the rewrite.

    Raises
    ------
    ManifestError
        If the manifest lacks a literal ``[package].version`` (for example
        when it is inherited from the workspace) or the rewrite does not
        round-trip.
    """
    previous = get_field(read_manifest(path), "version")
    text = path.read_text(encoding="utf-8")
    lines = text.splitlines(keepends=True)

    table: str | None = None
    for index, line in enumerate(lines):
        if header := _TABLE_HEADER.match(line):
            table = header.group(1)
            continue
        if table != "package":
            continue
        if match := _VERSION_LINE.match(line.rstrip("\r\n")):
            ending = line[len(line.rstrip("\r\n")) :]
            lines[index] = (
                f"{match['lead']}{json.dumps(version)}{match['tail']}{ending}"
            )
            break
    else:
        message = f"No literal [package] version found in {path}"
        raise ManifestError(message)

    path.write_text("".join(lines), encoding="utf-8")

    written = get_field(read_manifest(path), "version")
    if written != version:
        message = (
            f"Version rewrite in {path} produced {written!r}, expected {version!r}"
        )
        raise ManifestError(message)
    return previous
