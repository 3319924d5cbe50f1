"""Positional access planning.

Blocks describe positional reads and writes as (mode, anchor, offset). The
planner normalizes the offset into a Position and picks the template
operation from ACCESS_TABLE. Templates are supplied per target language and
per container kind (list, text).

Offsets:
    FIRST       index 0 from the start
    LAST        index 0 from the end
    FROM_START  1-based in the block program; literal numerals are
                decremented now, dynamic expressions get a runtime "- 1"
    FROM_END    0-based from the end: absolute position n - 1 - k
    RANDOM      no index; templates delegate to a helper
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from ..errors import AccessError
from .precedence import ExprResult, PrecedenceTable, StmtResult


class Mode(Enum):
    GET = "GET"
    GET_AND_REMOVE = "GET_REMOVE"
    REMOVE = "REMOVE"
    SET = "SET"
    INSERT = "INSERT"


class Anchor(Enum):
    FIRST = "FIRST"
    LAST = "LAST"
    FROM_START = "FROM_START"
    FROM_END = "FROM_END"
    RANDOM = "RANDOM"


class Op(Enum):
    """Template operations named by the access table."""

    GET = "get"
    TAKE = "take"
    REMOVE = "remove"
    SET = "set"
    INSERT = "insert"
    RANDOM_GET = "random_get"
    RANDOM_TAKE = "random_take"
    RANDOM_REMOVE = "random_remove"
    RANDOM_SET = "random_set"
    RANDOM_INSERT = "random_insert"
    SLICE = "slice"


_INDEXED = (Anchor.FIRST, Anchor.LAST, Anchor.FROM_START, Anchor.FROM_END)


def _build_table() -> dict[tuple[Mode, Anchor], Op]:
    indexed = {
        Mode.GET: Op.GET,
        Mode.GET_AND_REMOVE: Op.TAKE,
        Mode.REMOVE: Op.REMOVE,
        Mode.SET: Op.SET,
        Mode.INSERT: Op.INSERT,
    }
    random = {
        Mode.GET: Op.RANDOM_GET,
        Mode.GET_AND_REMOVE: Op.RANDOM_TAKE,
        Mode.REMOVE: Op.RANDOM_REMOVE,
        Mode.SET: Op.RANDOM_SET,
        Mode.INSERT: Op.RANDOM_INSERT,
    }
    table: dict[tuple[Mode, Anchor], Op] = {}
    for mode, op in indexed.items():
        for anchor in _INDEXED:
            table[(mode, anchor)] = op
    for mode, op in random.items():
        table[(mode, Anchor.RANDOM)] = op
    return table


ACCESS_TABLE: dict[tuple[Mode, Anchor], Op] = _build_table()

_NUMBER = re.compile(r"^\s*-?\d+(\.\d+)?\s*$")


def parse_number(code: str) -> int | float | None:
    """Numeric value of a literal numeral, or None for anything else."""
    if not _NUMBER.match(code):
        return None
    text = code.strip()
    if "." in text:
        value = float(text)
        return int(value) if value.is_integer() else value
    return int(text)


def parse_mode(value: object) -> Mode:
    try:
        return Mode(value)
    except ValueError:
        raise AccessError(str(value), "?", "unknown mode") from None


def parse_anchor(value: object) -> Anchor:
    try:
        return Anchor(value)
    except ValueError:
        raise AccessError("?", str(value), "unknown anchor") from None


@dataclass(frozen=True)
class Position:
    """Normalized offset: index counted from the start, or from the end."""

    anchor: Anchor
    index: ExprResult
    literal: int | float | None = None  # folded value of index when known

    @property
    def from_end(self) -> bool:
        return self.anchor in (Anchor.LAST, Anchor.FROM_END)


@dataclass(frozen=True)
class AccessDescriptor:
    """One positional access request, built per block and consumed at once."""

    mode: Mode
    anchor: Anchor
    container: ExprResult
    offset: ExprResult | None = None
    value: ExprResult | None = None


class AccessTemplates:
    """Target-language renderings of positional operations on one container kind.

    Subclasses list the operations they implement in `operations`; the
    planner never calls anything outside that set.
    """

    kind: str = "container"
    operations: frozenset[Op] = frozenset()

    def __init__(self, table: PrecedenceTable) -> None:
        self.table = table

    # --- arithmetic shared by index computations ---

    def number(self, value: int | float) -> ExprResult:
        if value < 0:
            return ExprResult("-" + _format_number(-value), self.table.required_level("UNARY"))
        return ExprResult(_format_number(value), self.table.atomic)

    def minus(self, left: ExprResult, right: ExprResult) -> ExprResult:
        level = self.table.required_level("SUBTRACTION")
        code = (
            self.table.wrap_if_needed(left, level)
            + " - "
            + self.table.wrap_if_needed(right, level + 1)
        )
        return ExprResult(code, level)

    def absolute_index(self, container: ExprResult, position: Position) -> ExprResult:
        """0-based index from the start: n - 1 - k for positions from the end."""
        if not position.from_end:
            return position.index
        if position.literal is not None:
            return self.minus(self.length(container), self.number(position.literal + 1))
        last = self.minus(self.length(container), self.number(1))
        return self.minus(last, position.index)

    def end_offset(self, position: Position) -> ExprResult:
        """Negative offset of a position from the end: -1 is the last item."""
        if position.literal is not None:
            return self.number(-(position.literal + 1))
        return self.minus(self.number(-1), position.index)

    # --- operations ---

    def length(self, container: ExprResult) -> ExprResult:
        raise NotImplementedError

    def statement(self, expr: ExprResult) -> StmtResult:
        raise NotImplementedError

    def get(self, container: ExprResult, position: Position) -> ExprResult:
        raise NotImplementedError

    def take(self, container: ExprResult, position: Position) -> ExprResult:
        raise NotImplementedError

    def set(self, container: ExprResult, position: Position, value: ExprResult) -> StmtResult:
        raise NotImplementedError

    def insert(
        self, container: ExprResult, position: Position, value: ExprResult
    ) -> StmtResult:
        raise NotImplementedError

    def random_get(self, container: ExprResult) -> ExprResult:
        raise NotImplementedError

    def random_take(self, container: ExprResult) -> ExprResult:
        raise NotImplementedError

    def random_set(self, container: ExprResult, value: ExprResult) -> StmtResult:
        raise NotImplementedError

    def random_insert(self, container: ExprResult, value: ExprResult) -> StmtResult:
        raise NotImplementedError

    def slice(self, container: ExprResult, start: Position, end: Position) -> ExprResult:
        raise NotImplementedError


class AccessPlanner:
    """Turns access descriptors into emission results for one container kind."""

    def __init__(self, templates: AccessTemplates) -> None:
        self.templates = templates

    def position(self, anchor: Anchor, offset: ExprResult | None) -> Position:
        """Normalize an offset for an indexed anchor."""
        t = self.templates
        match anchor:
            case Anchor.FIRST | Anchor.LAST:
                return Position(anchor, t.number(0), 0)
            case Anchor.FROM_START:
                if offset is None:
                    offset = t.number(1)
                literal = parse_number(offset.code)
                if literal is not None:
                    return Position(anchor, t.number(literal - 1), literal - 1)
                return Position(anchor, t.minus(offset, t.number(1)))
            case Anchor.FROM_END:
                if offset is None:
                    offset = t.number(1)
                return Position(anchor, offset, parse_number(offset.code))
            case _:
                raise AccessError("?", anchor.value, "anchor has no index")

    def plan(self, d: AccessDescriptor) -> ExprResult | StmtResult:
        """Emission result for one positional access."""
        op = ACCESS_TABLE.get((d.mode, d.anchor))
        if op is None:
            raise AccessError(d.mode.value, d.anchor.value)
        t = self.templates
        if op not in t.operations:
            raise AccessError(d.mode.value, d.anchor.value, "not supported on " + t.kind)
        if d.mode in (Mode.SET, Mode.INSERT) and d.value is None:
            raise AccessError(d.mode.value, d.anchor.value, "no value to store")
        if d.anchor is Anchor.RANDOM:
            return self._plan_random(op, d)
        position = self.position(d.anchor, d.offset)
        match op:
            case Op.GET:
                return t.get(d.container, position)
            case Op.TAKE:
                return t.take(d.container, position)
            case Op.REMOVE:
                return t.statement(t.take(d.container, position))
            case Op.SET:
                return t.set(d.container, position, d.value)
            case Op.INSERT:
                return t.insert(d.container, position, d.value)
        raise AccessError(d.mode.value, d.anchor.value)

    def _plan_random(self, op: Op, d: AccessDescriptor) -> ExprResult | StmtResult:
        t = self.templates
        match op:
            case Op.RANDOM_GET:
                return t.random_get(d.container)
            case Op.RANDOM_TAKE:
                return t.random_take(d.container)
            case Op.RANDOM_REMOVE:
                return t.statement(t.random_take(d.container))
            case Op.RANDOM_SET:
                return t.random_set(d.container, d.value)
            case Op.RANDOM_INSERT:
                return t.random_insert(d.container, d.value)
        raise AccessError(d.mode.value, d.anchor.value)

    def plan_range(
        self,
        container: ExprResult,
        start_anchor: Anchor,
        start_offset: ExprResult | None,
        end_anchor: Anchor,
        end_offset: ExprResult | None,
    ) -> ExprResult:
        """Inclusive range between two anchors; FIRST..LAST is the container itself."""
        if start_anchor is Anchor.FIRST and end_anchor is Anchor.LAST:
            return container
        for anchor in (start_anchor, end_anchor):
            if anchor is Anchor.RANDOM:
                raise AccessError("RANGE", anchor.value)
        t = self.templates
        if Op.SLICE not in t.operations:
            raise AccessError("RANGE", start_anchor.value, "not supported on " + t.kind)
        start = self.position(start_anchor, start_offset)
        end = self.position(end_anchor, end_offset)
        return t.slice(container, start, end)


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
