"""Per-compilation registry of synthesized helper functions.

A helper is identified by a logical key describing what it does. The first
request for a key allocates a fresh name and records the definition; later
requests get the same name. Builders may request other helpers, or their own
key, while their source is being produced.

Helper sources are written with two-space indentation; the registry
re-indents them to the unit of the compilation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from ..frontend.names import NameRegistry

logger = logging.getLogger(__name__)

HELPER_NAME_PLACEHOLDER = "{{helper}}"
HELPER_INDENT = "  "

HelperSource = list[str] | Callable[[str], list[str]]


def reindent(line: str, indent: str) -> str:
    """Replace each leading two-space unit of a helper line with indent."""
    width = len(HELPER_INDENT)
    depth = 0
    while line.startswith(HELPER_INDENT, depth * width):
        depth += 1
    return indent * depth + line[depth * width :]


@dataclass
class HelperEntry:
    """One synthesized helper: logical key, generated name, source lines."""

    key: str
    name: str
    lines: list[str] = field(default_factory=list)

    def source(self) -> str:
        return "\n".join(self.lines)


class HelperRegistry:
    """Deduplicating store of helper definitions for one compilation."""

    def __init__(self, names: NameRegistry, indent: str = HELPER_INDENT) -> None:
        self._names = names
        self._indent = indent
        self._entries: dict[str, HelperEntry] = {}

    def provide(self, key: str, source: HelperSource, hint: str | None = None) -> str:
        """Name of the helper for key, registering it on first request."""
        existing = self._entries.get(key)
        if existing is not None:
            return existing.name
        name = self._names.allocate(hint if hint is not None else key.replace("-", "_"))
        entry = HelperEntry(key, name)
        # Reserve the slot before building so nested requests keep the order
        self._entries[key] = entry
        if callable(source):
            lines = list(source(name))
        else:
            lines = [line.replace(HELPER_NAME_PLACEHOLDER, name) for line in source]
        if self._indent != HELPER_INDENT:
            lines = [reindent(line, self._indent) for line in lines]
        entry.lines = lines
        logger.debug("registered helper %s as %s", key, name)
        return name

    def entries(self) -> list[HelperEntry]:
        """Helpers in registration order."""
        return list(self._entries.values())

    def definitions(self) -> str:
        """All helper sources separated by blank lines."""
        return "\n\n".join(entry.source() for entry in self._entries.values())

    def name_of(self, key: str) -> str | None:
        entry = self._entries.get(key)
        return entry.name if entry is not None else None

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
