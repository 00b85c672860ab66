"""Environment lookup for cliprelay settings.

Settings are read from ``CLIPRELAY_<KEY>``. Some keys also answer to an
unprefixed name that hosting platforms inject (``PORT``); the prefixed
variable wins when both are set.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

ENV_PREFIX = "CLIPRELAY_"

# key -> unprefixed variable consulted after CLIPRELAY_<key>
PLATFORM_ALIASES: dict[str, str] = {"SERVER_PORT": "PORT"}

_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})


def _parse_flag(value: str) -> bool:
    return value.lower() in _TRUE_WORDS


class EnvReader:
    """Typed access to cliprelay's environment variables.

    Lookups take the key without its prefix. A set but unparseable value is
    logged and skipped, so the next candidate variable (or the config file)
    still applies.

    Example:
        reader = EnvReader({"PORT": "3000"})
        reader.get_int("SERVER_PORT")  # 3000, via the PORT alias
    """

    def __init__(
        self, env: Mapping[str, str] | None = None, prefix: str = ENV_PREFIX
    ) -> None:
        """Initialize the reader.

        Args:
            env: Mapping to read instead of os.environ (tests inject one).
            prefix: Prefix prepended to every key.
        """
        self._env: Mapping[str, str] = env if env is not None else os.environ
        self._prefix = prefix

    def variables(self, key: str) -> Iterator[str]:
        """Variable names consulted for ``key``, highest precedence first."""
        yield self._prefix + key
        alias = PLATFORM_ALIASES.get(key)
        if alias:
            yield alias

    def _lookup(self, key: str, parse: Callable[[str], T], kind: str) -> T | None:
        for name in self.variables(key):
            value = self._env.get(name)
            if value is None:
                continue
            try:
                return parse(value.strip())
            except ValueError:
                logger.warning("Ignoring %s=%r: not a valid %s", name, value, kind)
        return None

    def get_str(self, key: str) -> str | None:
        return self._lookup(key, str, "string")

    def get_int(self, key: str) -> int | None:
        return self._lookup(key, int, "integer")

    def get_float(self, key: str) -> float | None:
        return self._lookup(key, float, "number")

    def get_bool(self, key: str) -> bool | None:
        """Read a flag; "true", "1", "yes" and "on" are true, anything else false."""
        return self._lookup(key, _parse_flag, "flag")

    def get_path(self, key: str, *, must_exist: bool = False) -> Path | None:
        """Read a path, expanding ``~``.

        With ``must_exist`` a path that is not on disk is logged and ignored;
        tool executables use this, directories cliprelay creates itself don't.
        """
        path = self._lookup(key, lambda v: Path(v).expanduser(), "path")
        if path is not None and must_exist and not path.exists():
            logger.warning(
                "Ignoring %s%s: %s does not exist", self._prefix, key, path
            )
            return None
        return path
