"""
Resolve the variables that configure the Daraja client.

Three layers are consulted, highest precedence first: explicit overrides, the
process environment (or a caller-supplied ``base``), then a ``.env`` file.
The result is a read-only view that :class:`mpesa_stk.core.config.MpesaConfig`
reads ``MPESA_*`` keys from.
"""

from __future__ import annotations

import os
from collections import ChainMap
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Mapping, MutableMapping, Optional, Tuple

__all__ = ["MpesaEnvironment", "build_environment", "load_env_file", "read_env_file"]

_QUOTES = ("'", '"')


def _parse_line(line: str) -> Optional[Tuple[str, str]]:
    """Split one ``.env`` line into ``(key, value)``, or ``None`` to skip it."""
    line = line.strip()
    if line.startswith("export "):
        line = line[7:].lstrip()
    if not line or line.startswith("#"):
        return None

    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key or " " in key:
        return None

    value = value.strip()
    if value[:1] in _QUOTES:
        closing = value.find(value[0], 1)
        if closing > 0:
            return key, value[1:closing]
    # Unquoted values may carry a trailing " # comment".
    comment = value.find(" #")
    if comment >= 0:
        value = value[:comment].rstrip()
    return key, value


def _iter_env_file(path: Path) -> Iterator[Tuple[str, str]]:
    if not path.is_file():
        return
    with path.open(encoding="utf-8") as handle:
        for raw_line in handle:
            parsed = _parse_line(raw_line)
            if parsed is not None:
                yield parsed


def read_env_file(path: str | os.PathLike[str]) -> Dict[str, str]:
    """Return the assignments in ``path``; a missing file reads as empty."""
    return dict(_iter_env_file(Path(path)))


def load_env_file(
    path: str = ".env",
    *,
    environ: Optional[MutableMapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Copy the entries of ``path`` into ``environ`` (``os.environ`` by default).

    Keys already present are left alone. Returns a snapshot of the result.
    """
    target: MutableMapping[str, str] = os.environ if environ is None else environ
    for key, value in _iter_env_file(Path(path)):
        target.setdefault(key, value)
    return dict(target)


@dataclass(frozen=True)
class MpesaEnvironment:
    variables: Mapping[str, str]

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.variables.get(key, default)


def build_environment(
    *,
    env_file: Optional[str] = ".env",
    base: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> MpesaEnvironment:
    """
    Layer ``overrides`` over ``base`` (``os.environ`` when omitted) over
    ``env_file``. Pass ``env_file=None`` to skip the file.
    """
    layers = ChainMap(
        dict(overrides or {}),
        dict(os.environ if base is None else base),
        read_env_file(env_file) if env_file is not None else {},
    )
    return MpesaEnvironment(variables=dict(layers))
