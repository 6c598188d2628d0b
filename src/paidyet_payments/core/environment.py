"""
Resolution of ``PAIDYET_*`` settings from the process environment, a
``.env`` file and explicit overrides.

The result is a plain mapping that :class:`paidyet_payments.core.config.GatewayConfig`
turns into a validated configuration object once, at startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Mapping, MutableMapping, Optional, Tuple

__all__ = ["EnvironmentSnapshot", "build_environment", "load_env_file", "read_env_file"]


def _iter_assignments(text: str) -> Iterator[Tuple[str, str]]:
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[7:].lstrip()
        if not line or line[0] == "#":
            continue
        name, sep, value = line.partition("=")
        if not sep or not name.strip():
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        yield name.strip(), value


def read_env_file(path: Optional[str]) -> Dict[str, str]:
    """Parse ``KEY=VALUE`` lines; a missing file yields an empty dict."""
    if path is None:
        return {}
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    return dict(_iter_assignments(text))


def load_env_file(
    path: str = ".env",
    *,
    environ: Optional[MutableMapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Copy settings from ``path`` into ``environ`` (default :data:`os.environ`)
    without replacing keys that are already set, and return the result.
    """
    target = os.environ if environ is None else environ
    for name, value in read_env_file(path).items():
        if name not in target:
            target[name] = value
    return dict(target)


@dataclass(frozen=True)
class EnvironmentSnapshot:
    variables: Mapping[str, str]

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Empty strings count as unset."""
        return self.variables.get(key) or default

    def with_prefix(self, prefix: str = "PAIDYET_") -> Dict[str, str]:
        return {k: v for k, v in self.variables.items() if k.startswith(prefix)}


def build_environment(
    *,
    env_file: Optional[str] = ".env",
    base: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> EnvironmentSnapshot:
    """
    Precedence, lowest first: ``base`` (default :data:`os.environ`), then
    keys from ``env_file`` not already present, then ``overrides``. Pass
    ``env_file=None`` to skip the file.
    """
    resolved = {**read_env_file(env_file), **(os.environ if base is None else base)}
    resolved.update(overrides or {})
    return EnvironmentSnapshot(variables=resolved)
