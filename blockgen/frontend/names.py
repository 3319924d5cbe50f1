"""Identifier allocation for one compilation.

User variables get stable, sanitized names. Helpers and temporaries get fresh
names that never collide with anything handed out before. Comparison is
case-insensitive so the same registry works for targets whose function names
ignore case.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^A-Za-z0-9_]")


def sanitize(name: str) -> str:
    """Turn an arbitrary user-visible name into a legal identifier."""
    result = _NON_WORD.sub("_", name)
    if not result:
        return "unnamed"
    if result[0].isdigit():
        return "_" + result
    return result


class NameRegistry:
    """Collision-free names for variables, helpers and temporaries."""

    def __init__(self, reserved: frozenset[str] | set[str] = frozenset()) -> None:
        self._reserved: set[str] = {w.lower() for w in reserved}
        self._taken: set[str] = set()
        self._variables: dict[str, str] = {}

    def reserved(self, name: str) -> bool:
        """Check if name is a reserved word of the target."""
        return name.lower() in self._reserved

    def taken(self, name: str) -> bool:
        """Check if name was already handed out or is reserved."""
        key = name.lower()
        return key in self._taken or key in self._reserved

    def variable(self, name: str) -> str:
        """Stable identifier for the user variable called name."""
        existing = self._variables.get(name)
        if existing is not None:
            return existing
        result = self._distinct(sanitize(name))
        self._variables[name] = result
        return result

    def allocate(self, hint: str) -> str:
        """Fresh identifier based on hint, distinct from every earlier name."""
        result = self._distinct(sanitize(hint))
        logger.debug("allocated %s for hint %r", result, hint)
        return result

    def variables(self) -> dict[str, str]:
        """Mapping of user variable names to their identifiers."""
        return dict(self._variables)

    def _distinct(self, base: str) -> str:
        candidate = base
        counter = 2
        while self.taken(candidate):
            candidate = base + str(counter)
            counter += 1
        self._taken.add(candidate.lower())
        return candidate
