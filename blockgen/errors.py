"""Error types shared by the loader and the emission engine."""

from __future__ import annotations


class BlockgenError(Exception):
    """Base for all fatal compilation errors."""


class LoadError(BlockgenError):
    """Raised when a block program cannot be read."""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.message: str = message
        self.path: str = path

    def __str__(self) -> str:
        if self.path:
            return "error: [load] " + self.path + ": " + self.message
        return "error: [load] " + self.message


class EmitError(BlockgenError):
    """Raised when a block cannot be turned into target code.

    The path is filled in while the error unwinds through the dispatcher,
    innermost entry last.
    """

    category: str = "emit"

    def __init__(self, message: str, kind: str = "") -> None:
        super().__init__(message)
        self.message: str = message
        self.kind: str = kind
        self.path: list[str] = []

    def __str__(self) -> str:
        text = "error: [" + self.category + "] " + self.message
        if self.path:
            text += " (at " + " > ".join(self.path) + ")"
        return text


class UnsupportedBlockError(EmitError):
    """No emission rule is registered for a block kind."""

    category = "unsupported"

    def __init__(self, kind: str) -> None:
        super().__init__("no rule for block kind '" + kind + "'", kind)


class AccessError(EmitError):
    """A positional access combination has no plan."""

    category = "access"

    def __init__(self, mode: str, anchor: str, detail: str = "") -> None:
        message = "unhandled access combination (" + mode + ", " + anchor + ")"
        if detail:
            message += ": " + detail
        super().__init__(message)
        self.mode: str = mode
        self.anchor: str = anchor
