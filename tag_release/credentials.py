"""Stage-scoped secrets.

A :class:`Credential` is acquired by the stage that needs it, handed only to
the command that consumes it, and never written to disk or printed.
"""

from __future__ import annotations

import dataclasses
import os
import typing as typ

from . import annotations
from .errors import AuthenticationFailure

__all__ = ["Credential", "CredentialSource", "EnvCredential"]


@dataclasses.dataclass(frozen=True, slots=True)
class Credential:
    """Secret token labelled with the variable it was read from."""

    name: str
    value: str = dataclasses.field(repr=False)

    def reveal(self) -> str:
        """Return the raw secret for handing to a subprocess environment."""
        return self.value

    def __str__(self) -> str:
        return f"{self.name}=***"


CredentialSource = typ.Callable[[], Credential]


@dataclasses.dataclass(frozen=True, slots=True)
class EnvCredential:
    """Read a credential from the environment when a stage asks for it.

    Examples
    --------
    >>> source = EnvCredential("CARGO_TOKEN", environ={"CARGO_TOKEN": "s3cr3t"})
    >>> source()
    Credential(name='CARGO_TOKEN')
    """

    variable: str
    environ: typ.Mapping[str, str] | None = None

    def __call__(self) -> Credential:
        env = os.environ if self.environ is None else self.environ
        value = (env.get(self.variable) or "").strip()
        if not value:
            message = f"Credential '{self.variable}' is not set or empty."
            raise AuthenticationFailure(message)
        annotations.add_mask(value, env)
        return Credential(self.variable, value)
