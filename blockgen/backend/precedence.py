"""Emission results and the precedence contract.

Every emitted expression carries the level of its outermost unparenthesized
operator. Higher levels bind tighter. A slot that embeds a child states the
level it requires; the child is grouped only when its own level is lower.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import EmitError


@dataclass(frozen=True)
class ExprResult:
    """Expression text plus the level of its outermost operator."""

    code: str
    level: int


@dataclass(frozen=True)
class StmtResult:
    """Zero or more complete statements, each ending in a newline."""

    code: str


EmissionResult = ExprResult | StmtResult


class PrecedenceTable:
    """Named precedence levels of one target language."""

    def __init__(
        self, levels: dict[str, int], group_open: str = "(", group_close: str = ")"
    ) -> None:
        self.levels: dict[str, int] = dict(levels)
        self.group_open = group_open
        self.group_close = group_close
        self.atomic: int = max(self.levels.values())

    def required_level(self, context: str) -> int:
        """Level a slot of the given context requires from its child."""
        level = self.levels.get(context)
        if level is None:
            raise EmitError("unknown precedence context '" + context + "'")
        return level

    def needs_group(self, result: ExprResult, required: int) -> bool:
        return result.level < required

    def wrap_if_needed(self, result: ExprResult, required: int) -> str:
        """Child text ready to embed in a slot requiring the given level."""
        if self.needs_group(result, required):
            return self.group_open + result.code + self.group_close
        return result.code

    def group(self, result: ExprResult) -> ExprResult:
        """Explicitly grouped copy of result."""
        return ExprResult(self.group_open + result.code + self.group_close, self.atomic)
