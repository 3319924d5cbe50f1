"""PHP backend: blocks → PHP 7+ code."""

from __future__ import annotations

import math
import re
from enum import IntEnum

from ..errors import EmitError
from ..frontend.blocks import Block, Program
from .access import (
    AccessDescriptor,
    AccessTemplates,
    Anchor,
    Mode,
    Op,
    Position,
    parse_anchor,
    parse_mode,
)
from .dispatch import Dispatcher, EmitContext, EmitOptions
from .helpers import HELPER_NAME_PLACEHOLDER, HelperRegistry
from .precedence import EmissionResult, ExprResult, PrecedenceTable, StmtResult
from .program import EmitResult, emit_program
from .util import escape_single_quoted


class Order(IntEnum):
    """PHP operator precedence (higher number = tighter binding)."""

    NONE = 0
    COMMA = 1
    LOGICAL_OR_WORD = 2  # or
    LOGICAL_XOR = 3  # xor
    LOGICAL_AND_WORD = 4  # and
    ASSIGNMENT = 5  # = += .= ...
    CONDITIONAL = 6  # ?:
    NULL_COALESCE = 7  # ??
    LOGICAL_OR = 8  # ||
    LOGICAL_AND = 9  # &&
    BITWISE_OR = 10
    BITWISE_XOR = 11
    BITWISE_AND = 12
    EQUALITY = 13  # == != === !== <=>
    RELATIONAL = 14  # < <= > >=
    STRING_CONCAT = 15  # .
    BITWISE_SHIFT = 16
    ADDITION = 17
    SUBTRACTION = 17
    MULTIPLICATION = 18
    DIVISION = 18
    MODULUS = 18
    LOGICAL_NOT = 19  # !
    INSTANCEOF = 20
    UNARY = 21  # unary - + ~ ++ -- casts @
    POWER = 22  # **
    NEW = 23
    MEMBER = 24  # [] ->
    FUNCTION_CALL = 24
    ATOMIC = 25


PHP_TABLE = PrecedenceTable({name: int(o) for name, o in Order.__members__.items()})

_PLAIN_VARIABLE = re.compile(r"^\$[A-Za-z_][A-Za-z0-9_]*$")

PHP_RESERVED = frozenset(
    {
        "abstract",
        "and",
        "array",
        "as",
        "break",
        "callable",
        "case",
        "catch",
        "class",
        "clone",
        "const",
        "continue",
        "declare",
        "default",
        "die",
        "do",
        "echo",
        "else",
        "elseif",
        "empty",
        "enddeclare",
        "endfor",
        "endforeach",
        "endif",
        "endswitch",
        "endwhile",
        "eval",
        "exit",
        "extends",
        "final",
        "finally",
        "fn",
        "for",
        "foreach",
        "function",
        "global",
        "goto",
        "if",
        "implements",
        "include",
        "include_once",
        "instanceof",
        "insteadof",
        "interface",
        "isset",
        "list",
        "match",
        "namespace",
        "new",
        "or",
        "print",
        "private",
        "protected",
        "public",
        "readonly",
        "require",
        "require_once",
        "return",
        "static",
        "switch",
        "throw",
        "trait",
        "try",
        "unset",
        "use",
        "var",
        "while",
        "xor",
        "yield",
        # Pseudo-variables and superglobals
        "this",
        "GLOBALS",
        "_SERVER",
        "_GET",
        "_POST",
        "_FILES",
        "_COOKIE",
        "_SESSION",
        "_REQUEST",
        "_ENV",
        "argc",
        "argv",
    }
)


def _wrap(result: ExprResult, level: int) -> str:
    return PHP_TABLE.wrap_if_needed(result, level)


def quote(text: str) -> ExprResult:
    """PHP string literal; newlines become "\\n" joined with the concat operator."""
    parts = ["'" + escape_single_quoted(p) + "'" for p in text.split("\n")]
    if len(parts) == 1:
        return ExprResult(parts[0], Order.ATOMIC)
    return ExprResult(' . "\\n" . '.join(parts), Order.STRING_CONCAT)


def number_literal(value: object) -> ExprResult:
    """PHP numeral for a number field."""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise EmitError("invalid number '" + str(value) + "'") from None
    if math.isnan(number):
        return ExprResult("NAN", Order.ATOMIC)
    if math.isinf(number):
        code = "INF" if number > 0 else "-INF"
        return ExprResult(code, Order.ATOMIC if number > 0 else Order.UNARY)
    code = str(int(number)) if number.is_integer() else repr(number)
    if number < 0:
        return ExprResult(code, Order.UNARY)
    return ExprResult(code, Order.ATOMIC)


def _call(name: str, *args: ExprResult) -> ExprResult:
    return ExprResult(
        name + "(" + ", ".join(_wrap(a, Order.COMMA) for a in args) + ")",
        Order.FUNCTION_CALL,
    )


def _anchor_literal(position: Position) -> ExprResult:
    return quote(position.anchor.value)


# ============================================================
# ACCESS TEMPLATES
# ============================================================


class PhpListTemplates(AccessTemplates):
    """Positional access on PHP arrays used as lists."""

    kind = "list"
    operations = frozenset(Op)

    def __init__(self, table: PrecedenceTable, helpers: HelperRegistry) -> None:
        super().__init__(table)
        self.helpers = helpers

    def length(self, container: ExprResult) -> ExprResult:
        return _call("count", container)

    def statement(self, expr: ExprResult) -> StmtResult:
        return StmtResult(expr.code + ";\n")

    def _repeatable(self, container: ExprResult) -> bool:
        return _PLAIN_VARIABLE.match(container.code) is not None

    def _index(self, container: ExprResult, position: Position) -> ExprResult:
        """Offset for array_splice, which counts negative offsets from the end."""
        if position.from_end and not self._repeatable(container):
            return self.end_offset(position)
        return self.absolute_index(container, position)

    def _element(self, container: ExprResult, position: Position) -> str:
        index = self.absolute_index(container, position)
        return _wrap(container, Order.MEMBER) + "[" + index.code + "]"

    def get(self, container: ExprResult, position: Position) -> ExprResult:
        if position.from_end and not self._repeatable(container):
            part = _call("array_slice", container, self.end_offset(position), self.number(1))
            return ExprResult(part.code + "[0]", Order.MEMBER)
        return ExprResult(self._element(container, position), Order.MEMBER)

    def take(self, container: ExprResult, position: Position) -> ExprResult:
        if position.anchor is Anchor.FIRST:
            return _call("array_shift", container)
        if position.anchor is Anchor.LAST:
            return _call("array_pop", container)
        splice = _call("array_splice", container, self._index(container, position), self.number(1))
        return ExprResult(splice.code + "[0]", Order.MEMBER)

    def set(self, container: ExprResult, position: Position, value: ExprResult) -> StmtResult:
        if position.from_end and not self._repeatable(container):
            index = self.end_offset(position)
            items = _call("array", value)
            return self.statement(_call("array_splice", container, index, self.number(1), items))
        target = self._element(container, position)
        return StmtResult(target + " = " + _wrap(value, Order.ASSIGNMENT) + ";\n")

    def insert(
        self, container: ExprResult, position: Position, value: ExprResult
    ) -> StmtResult:
        if position.anchor is Anchor.FIRST:
            return self.statement(_call("array_unshift", container, value))
        if position.anchor is Anchor.LAST:
            code = _wrap(container, Order.MEMBER) + "[] = " + _wrap(value, Order.ASSIGNMENT)
            return StmtResult(code + ";\n")
        index = self._index(container, position)
        items = _call("array", value)
        return self.statement(_call("array_splice", container, index, self.number(0), items))

    def random_get(self, container: ExprResult) -> ExprResult:
        name = self.helpers.provide(
            "random-pick",
            [
                "function " + HELPER_NAME_PLACEHOLDER + "($list) {",
                "  return $list[array_rand($list)];",
                "}",
            ],
            hint="lists_get_random_item",
        )
        return _call(name, container)

    def random_take(self, container: ExprResult) -> ExprResult:
        name = self.helpers.provide(
            "random-item",
            [
                "function " + HELPER_NAME_PLACEHOLDER + "(&$list) {",
                "  $x = array_rand($list);",
                "  return array_splice($list, $x, 1)[0];",
                "}",
            ],
            hint="lists_take_random_item",
        )
        return _call(name, container)

    def _random_store(self) -> str:
        return self.helpers.provide(
            "random-store",
            [
                "function " + HELPER_NAME_PLACEHOLDER + "(&$list, $value, $insert) {",
                "  $x = array_rand($list);",
                "  if ($insert) {",
                "    array_splice($list, $x, 0, array($value));",
                "  } else {",
                "    $list[$x] = $value;",
                "  }",
                "}",
            ],
            hint="lists_set_random_item",
        )

    def random_set(self, container: ExprResult, value: ExprResult) -> StmtResult:
        call = _call(self._random_store(), container, value, ExprResult("false", Order.ATOMIC))
        return self.statement(call)

    def random_insert(self, container: ExprResult, value: ExprResult) -> StmtResult:
        call = _call(self._random_store(), container, value, ExprResult("true", Order.ATOMIC))
        return self.statement(call)

    def slice(self, container: ExprResult, start: Position, end: Position) -> ExprResult:
        def build(name: str) -> list[str]:
            index = provide_position_index(self.helpers)
            return [
                "function " + name + "($list, $where1, $at1, $where2, $at2) {",
                "  $length = count($list);",
                "  $start = " + index + "($length, $where1, $at1);",
                "  $end = " + index + "($length, $where2, $at2);",
                "  return array_slice($list, $start, max(0, $end - $start + 1));",
                "}",
            ]

        name = self.helpers.provide("sublist", build, hint="lists_get_sublist")
        return _call(
            name,
            container,
            _anchor_literal(start),
            start.index,
            _anchor_literal(end),
            end.index,
        )


class PhpTextTemplates(AccessTemplates):
    """Character access on PHP strings (multibyte aware)."""

    kind = "text"
    operations = frozenset({Op.GET, Op.RANDOM_GET, Op.SLICE})

    def __init__(self, table: PrecedenceTable, helpers: HelperRegistry) -> None:
        super().__init__(table)
        self.helpers = helpers

    def length(self, container: ExprResult) -> ExprResult:
        return _call("mb_strlen", container)

    def statement(self, expr: ExprResult) -> StmtResult:
        return StmtResult(expr.code + ";\n")

    def start(self, position: Position) -> ExprResult:
        """mb_substr start offset; negative offsets count from the end."""
        if not position.from_end:
            return position.index
        return self.end_offset(position)

    def get(self, container: ExprResult, position: Position) -> ExprResult:
        return _call("mb_substr", container, self.start(position), self.number(1))

    def random_get(self, container: ExprResult) -> ExprResult:
        name = self.helpers.provide(
            "random-letter",
            [
                "function " + HELPER_NAME_PLACEHOLDER + "($text) {",
                "  $length = mb_strlen($text);",
                "  if ($length == 0) {",
                "    return '';",
                "  }",
                "  return mb_substr($text, mt_rand(0, $length - 1), 1);",
                "}",
            ],
            hint="text_random_letter",
        )
        return _call(name, container)

    def slice(self, container: ExprResult, start: Position, end: Position) -> ExprResult:
        def build(name: str) -> list[str]:
            index = provide_position_index(self.helpers)
            return [
                "function " + name + "($text, $where1, $at1, $where2, $at2) {",
                "  $length = mb_strlen($text);",
                "  $start = " + index + "($length, $where1, $at1);",
                "  $end = " + index + "($length, $where2, $at2);",
                "  return mb_substr($text, $start, max(0, $end - $start + 1));",
                "}",
            ]

        name = self.helpers.provide("substring", build, hint="text_get_substring")
        return _call(
            name,
            container,
            _anchor_literal(start),
            start.index,
            _anchor_literal(end),
            end.index,
        )


def provide_position_index(helpers: HelperRegistry) -> str:
    """Helper resolving (length, anchor, offset) to a 0-based index at runtime."""
    return helpers.provide(
        "position-index",
        [
            "function " + HELPER_NAME_PLACEHOLDER + "($length, $where, $at) {",
            "  if ($where == 'FIRST') {",
            "    return 0;",
            "  }",
            "  if ($where == 'LAST') {",
            "    return $length - 1;",
            "  }",
            "  if ($where == 'FROM_END') {",
            "    return $length - 1 - $at;",
            "  }",
            "  return $at;",
            "}",
        ],
    )


# ============================================================
# RULES
# ============================================================

_PHP_RULES = Dispatcher(PHP_TABLE)


def _choice(block: Block, name: str, options: dict[str, object], default: str) -> object:
    """Look up a dropdown field value in options."""
    value = block.get_field(name, default)
    if not isinstance(value, str) or value not in options:
        raise EmitError("unknown " + name + " '" + str(value) + "'", block.kind)
    return options[value]


def _variable(ctx: EmitContext, block: Block) -> str:
    return "$" + ctx.variable(block.get_field("VAR", "item"))


# --- values ---


@_PHP_RULES.rule("math_number")
def math_number(block: Block, ctx: EmitContext) -> EmissionResult:
    return number_literal(block.get_field("NUM", 0))


_ARITHMETIC = {
    "ADD": (" + ", Order.ADDITION),
    "MINUS": (" - ", Order.SUBTRACTION),
    "MULTIPLY": (" * ", Order.MULTIPLICATION),
    "DIVIDE": (" / ", Order.DIVISION),
    "POWER": (" ** ", Order.POWER),
}


@_PHP_RULES.rule("math_arithmetic")
def math_arithmetic(block: Block, ctx: EmitContext) -> EmissionResult:
    operator, order = _choice(block, "OP", _ARITHMETIC, "ADD")
    if order == Order.POWER:
        # Right-associative
        left_level, right_level = order + 1, order
    else:
        left_level, right_level = order, order + 1
    left = ctx.value_to_code(block, "A", left_level, "0")
    right = ctx.value_to_code(block, "B", right_level, "0")
    return ExprResult(left + operator + right, order)


@_PHP_RULES.rule("logic_boolean")
def logic_boolean(block: Block, ctx: EmitContext) -> EmissionResult:
    code = _choice(block, "BOOL", {"TRUE": "true", "FALSE": "false"}, "TRUE")
    return ExprResult(code, Order.ATOMIC)


@_PHP_RULES.rule("logic_null")
def logic_null(block: Block, ctx: EmitContext) -> EmissionResult:
    return ExprResult("null", Order.ATOMIC)


_COMPARE = {
    "EQ": (" == ", Order.EQUALITY),
    "NEQ": (" != ", Order.EQUALITY),
    "LT": (" < ", Order.RELATIONAL),
    "LTE": (" <= ", Order.RELATIONAL),
    "GT": (" > ", Order.RELATIONAL),
    "GTE": (" >= ", Order.RELATIONAL),
}


@_PHP_RULES.rule("logic_compare")
def logic_compare(block: Block, ctx: EmitContext) -> EmissionResult:
    operator, order = _choice(block, "OP", _COMPARE, "EQ")
    # Comparisons are non-associative in PHP 8
    left = ctx.value_to_code(block, "A", order + 1, "0")
    right = ctx.value_to_code(block, "B", order + 1, "0")
    return ExprResult(left + operator + right, order)


@_PHP_RULES.rule("logic_operation")
def logic_operation(block: Block, ctx: EmitContext) -> EmissionResult:
    operator, order = _choice(
        block, "OP", {"AND": (" && ", Order.LOGICAL_AND), "OR": (" || ", Order.LOGICAL_OR)}, "AND"
    )
    left_missing = block.get_input("A") is None
    right_missing = block.get_input("B") is None
    if left_missing and right_missing:
        default = "false"
    else:
        default = "true" if order == Order.LOGICAL_AND else "false"
    left = ctx.value_to_code(block, "A", order, default)
    right = ctx.value_to_code(block, "B", order, default)
    return ExprResult(left + operator + right, order)


@_PHP_RULES.rule("logic_negate")
def logic_negate(block: Block, ctx: EmitContext) -> EmissionResult:
    operand = ctx.value_to_code(block, "BOOL", Order.LOGICAL_NOT, "true")
    return ExprResult("!" + operand, Order.LOGICAL_NOT)


@_PHP_RULES.rule("logic_ternary")
def logic_ternary(block: Block, ctx: EmitContext) -> EmissionResult:
    # PHP 8 rejects unparenthesized nested ternaries
    level = Order.CONDITIONAL + 1
    cond = ctx.value_to_code(block, "IF", level, "false")
    then = ctx.value_to_code(block, "THEN", level, "null")
    other = ctx.value_to_code(block, "ELSE", level, "null")
    return ExprResult(cond + " ? " + then + " : " + other, Order.CONDITIONAL)


@_PHP_RULES.rule("variables_get")
def variables_get(block: Block, ctx: EmitContext) -> EmissionResult:
    return ExprResult(_variable(ctx, block), Order.ATOMIC)


# --- statements ---


@_PHP_RULES.rule("variables_set")
def variables_set(block: Block, ctx: EmitContext) -> EmissionResult:
    value = ctx.value_to_code(block, "VALUE", Order.ASSIGNMENT, "0")
    return StmtResult(_variable(ctx, block) + " = " + value + ";\n")


@_PHP_RULES.rule("controls_if")
def controls_if(block: Block, ctx: EmitContext) -> EmissionResult:
    count = max(block.repeated_slot_count("IF"), block.repeated_slot_count("DO"), 1)
    code = ""
    for n in range(count):
        cond = ctx.value_to_code(block, "IF" + str(n), Order.NONE, "false")
        keyword = "if" if n == 0 else " else if"
        code += keyword + " (" + cond + ") {\n" + ctx.statements(block, "DO" + str(n)) + "}"
    if block.get_input("ELSE") is not None:
        code += " else {\n" + ctx.statements(block, "ELSE") + "}"
    return StmtResult(code + "\n")


@_PHP_RULES.rule("controls_repeat_ext")
def controls_repeat_ext(block: Block, ctx: EmitContext) -> EmissionResult:
    times = ctx.value(block, "TIMES", "0")
    counter = "$" + ctx.allocate("count")
    code = ""
    limit = times.code
    if times.level != Order.ATOMIC or limit.startswith("$"):
        # Evaluate the bound once
        end = "$" + ctx.allocate("repeat_end")
        code += end + " = " + _wrap(times, Order.ASSIGNMENT) + ";\n"
        limit = end
    branch = ctx.statements(block, "DO")
    code += (
        "for (" + counter + " = 0; " + counter + " < " + limit + "; " + counter + "++) {\n"
    )
    return StmtResult(code + branch + "}\n")


@_PHP_RULES.rule("controls_whileUntil")
def controls_while_until(block: Block, ctx: EmitContext) -> EmissionResult:
    until = _choice(block, "MODE", {"WHILE": False, "UNTIL": True}, "WHILE")
    if until:
        cond = "!" + ctx.value_to_code(block, "BOOL", Order.LOGICAL_NOT, "false")
    else:
        cond = ctx.value_to_code(block, "BOOL", Order.NONE, "false")
    branch = ctx.statements(block, "DO")
    return StmtResult("while (" + cond + ") {\n" + branch + "}\n")


@_PHP_RULES.rule("controls_forEach")
def controls_for_each(block: Block, ctx: EmitContext) -> EmissionResult:
    items = ctx.value_to_code(block, "LIST", Order.ASSIGNMENT, "array()")
    branch = ctx.statements(block, "DO")
    return StmtResult(
        "foreach (" + items + " as " + _variable(ctx, block) + ") {\n" + branch + "}\n"
    )


# --- lists ---


@_PHP_RULES.rule("lists_create_empty")
def lists_create_empty(block: Block, ctx: EmitContext) -> EmissionResult:
    return ExprResult("array()", Order.FUNCTION_CALL)


@_PHP_RULES.rule("lists_create_with")
def lists_create_with(block: Block, ctx: EmitContext) -> EmissionResult:
    items = [
        ctx.value_to_code(block, "ADD" + str(n), Order.COMMA, "null")
        for n in range(block.repeated_slot_count("ADD"))
    ]
    return ExprResult("array(" + ", ".join(items) + ")", Order.FUNCTION_CALL)


@_PHP_RULES.rule("lists_repeat")
def lists_repeat(block: Block, ctx: EmitContext) -> EmissionResult:
    name = ctx.provide(
        "repeat",
        [
            "function " + HELPER_NAME_PLACEHOLDER + "($value, $count) {",
            "  $array = array();",
            "  for ($index = 0; $index < $count; $index++) {",
            "    $array[] = $value;",
            "  }",
            "  return $array;",
            "}",
        ],
        hint="lists_repeat",
    )
    item = ctx.value(block, "ITEM", "null")
    times = ctx.value(block, "NUM", "0")
    return _call(name, item, times)


@_PHP_RULES.rule("lists_length")
def lists_length(block: Block, ctx: EmitContext) -> EmissionResult:
    return _call("count", ctx.value(block, "VALUE", "array()"))


@_PHP_RULES.rule("lists_isEmpty")
def lists_is_empty(block: Block, ctx: EmitContext) -> EmissionResult:
    return _call("empty", ctx.value(block, "VALUE", "array()"))


@_PHP_RULES.rule("lists_indexOf")
def lists_index_of(block: Block, ctx: EmitContext) -> EmissionResult:
    from_end = _choice(block, "END", {"FIRST": False, "LAST": True}, "FIRST")
    if from_end:
        name = ctx.provide(
            "list-last-index-of",
            [
                "function " + HELPER_NAME_PLACEHOLDER + "($list, $item) {",
                "  $index = array_search($item, array_reverse($list));",
                "  return $index === false ? 0 : count($list) - $index;",
                "}",
            ],
            hint="lists_last_index_of",
        )
    else:
        name = ctx.provide(
            "list-index-of",
            [
                "function " + HELPER_NAME_PLACEHOLDER + "($list, $item) {",
                "  $index = array_search($item, $list);",
                "  return $index === false ? 0 : $index + 1;",
                "}",
            ],
            hint="lists_index_of",
        )
    items = ctx.value(block, "VALUE", "array()")
    item = ctx.value(block, "FIND", "''")
    return _call(name, items, item)


def _offset(block: Block, ctx: EmitContext, anchor: Anchor, slot: str) -> ExprResult | None:
    if anchor in (Anchor.FROM_START, Anchor.FROM_END):
        return ctx.value(block, slot, "1")
    return None


@_PHP_RULES.rule("lists_getIndex")
def lists_get_index(block: Block, ctx: EmitContext) -> EmissionResult:
    mode = parse_mode(block.get_field("MODE", "GET"))
    anchor = parse_anchor(block.get_field("WHERE", "FROM_START"))
    container = ctx.value(block, "VALUE", "array()")
    offset = _offset(block, ctx, anchor, "AT")
    return ctx.plan("list", AccessDescriptor(mode, anchor, container, offset))


@_PHP_RULES.rule("lists_setIndex")
def lists_set_index(block: Block, ctx: EmitContext) -> EmissionResult:
    mode = parse_mode(block.get_field("MODE", "SET"))
    anchor = parse_anchor(block.get_field("WHERE", "FROM_START"))
    container = ctx.value(block, "LIST", "array()")
    offset = _offset(block, ctx, anchor, "AT")
    value = ctx.value(block, "TO", "null")
    return ctx.plan("list", AccessDescriptor(mode, anchor, container, offset, value))


@_PHP_RULES.rule("lists_getSublist")
def lists_get_sublist(block: Block, ctx: EmitContext) -> EmissionResult:
    start = parse_anchor(block.get_field("WHERE1", "FIRST"))
    end = parse_anchor(block.get_field("WHERE2", "LAST"))
    container = ctx.value(block, "LIST", "array()")
    return ctx.plan_range(
        "list",
        container,
        start,
        _offset(block, ctx, start, "AT1"),
        end,
        _offset(block, ctx, end, "AT2"),
    )


# --- text ---


@_PHP_RULES.rule("text")
def text(block: Block, ctx: EmitContext) -> EmissionResult:
    return quote(str(block.get_field("TEXT", "")))


def _as_string(value: ExprResult) -> str:
    return "(string) " + _wrap(value, Order.UNARY)


@_PHP_RULES.rule("text_join")
def text_join(block: Block, ctx: EmitContext) -> EmissionResult:
    count = block.repeated_slot_count("ADD")
    if count == 0:
        return ExprResult("''", Order.ATOMIC)
    parts = [_as_string(ctx.value(block, "ADD" + str(n), "''")) for n in range(count)]
    if count == 1:
        return ExprResult(parts[0], Order.UNARY)
    return ExprResult(" . ".join(parts), Order.STRING_CONCAT)


@_PHP_RULES.rule("text_append")
def text_append(block: Block, ctx: EmitContext) -> EmissionResult:
    value = _as_string(ctx.value(block, "TEXT", "''"))
    return StmtResult(_variable(ctx, block) + " .= " + value + ";\n")


@_PHP_RULES.rule("text_length")
def text_length(block: Block, ctx: EmitContext) -> EmissionResult:
    return _call("mb_strlen", ctx.value(block, "VALUE", "''"))


@_PHP_RULES.rule("text_isEmpty")
def text_is_empty(block: Block, ctx: EmitContext) -> EmissionResult:
    value = _as_string(ctx.value(block, "VALUE", "''"))
    return ExprResult(value + " === ''", Order.EQUALITY)


@_PHP_RULES.rule("text_indexOf")
def text_index_of(block: Block, ctx: EmitContext) -> EmissionResult:
    from_end = _choice(block, "END", {"FIRST": False, "LAST": True}, "FIRST")
    if from_end:
        name = ctx.provide(
            "text-last-index-of",
            [
                "function " + HELPER_NAME_PLACEHOLDER + "($text, $search) {",
                "  if ($search === '') {",
                "    return mb_strlen($text) + 1;",
                "  }",
                "  $index = mb_strrpos($text, $search);",
                "  return $index === false ? 0 : $index + 1;",
                "}",
            ],
            hint="text_last_index_of",
        )
    else:
        name = ctx.provide(
            "text-index-of",
            [
                "function " + HELPER_NAME_PLACEHOLDER + "($text, $search) {",
                "  if ($search === '') {",
                "    return 1;",
                "  }",
                "  $index = mb_strpos($text, $search);",
                "  return $index === false ? 0 : $index + 1;",
                "}",
            ],
            hint="text_index_of",
        )
    haystack = ctx.value(block, "VALUE", "''")
    needle = ctx.value(block, "FIND", "''")
    return _call(name, haystack, needle)


@_PHP_RULES.rule("text_charAt")
def text_char_at(block: Block, ctx: EmitContext) -> EmissionResult:
    anchor = parse_anchor(block.get_field("WHERE", "FROM_START"))
    container = ctx.value(block, "VALUE", "''")
    offset = _offset(block, ctx, anchor, "AT")
    return ctx.plan("text", AccessDescriptor(Mode.GET, anchor, container, offset))


@_PHP_RULES.rule("text_getSubstring")
def text_get_substring(block: Block, ctx: EmitContext) -> EmissionResult:
    start = parse_anchor(block.get_field("WHERE1", "FIRST"))
    end = parse_anchor(block.get_field("WHERE2", "LAST"))
    container = ctx.value(block, "STRING", "''")
    return ctx.plan_range(
        "text",
        container,
        start,
        _offset(block, ctx, start, "AT1"),
        end,
        _offset(block, ctx, end, "AT2"),
    )


_CASES = {
    "UPPERCASE": "MB_CASE_UPPER",
    "LOWERCASE": "MB_CASE_LOWER",
    "TITLECASE": "MB_CASE_TITLE",
}


@_PHP_RULES.rule("text_changeCase")
def text_change_case(block: Block, ctx: EmitContext) -> EmissionResult:
    mode = _choice(block, "CASE", _CASES, "UPPERCASE")
    value = ctx.value(block, "TEXT", "''")
    return _call("mb_convert_case", value, ExprResult(mode, Order.ATOMIC))


_TRIMS = {"LEFT": "ltrim", "RIGHT": "rtrim", "BOTH": "trim"}


@_PHP_RULES.rule("text_trim")
def text_trim(block: Block, ctx: EmitContext) -> EmissionResult:
    name = _choice(block, "MODE", _TRIMS, "BOTH")
    return _call(name, ctx.value(block, "TEXT", "''"))


@_PHP_RULES.rule("text_print")
def text_print(block: Block, ctx: EmitContext) -> EmissionResult:
    value = ctx.value_to_code(block, "TEXT", Order.COMMA, "''")
    return StmtResult("echo " + value + ";\n")


def _prompt(block: Block, message: ExprResult) -> ExprResult:
    to_number = _choice(block, "TYPE", {"TEXT": False, "NUMBER": True}, "TEXT")
    result = _call("readline", message)
    if to_number:
        return _call("floatval", result)
    return result


@_PHP_RULES.rule("text_prompt")
def text_prompt(block: Block, ctx: EmitContext) -> EmissionResult:
    return _prompt(block, quote(str(block.get_field("TEXT", ""))))


@_PHP_RULES.rule("text_prompt_ext")
def text_prompt_ext(block: Block, ctx: EmitContext) -> EmissionResult:
    return _prompt(block, ctx.value(block, "TEXT", "''"))


# ============================================================
# BACKEND
# ============================================================


class PhpBackend:
    """Emit PHP code from block programs."""

    name = "php"
    reserved = PHP_RESERVED

    def __init__(self) -> None:
        self.dispatcher = _PHP_RULES.copy()

    def expression_statement(self, expr: ExprResult) -> StmtResult:
        return StmtResult(expr.code + ";\n")

    def prologue(self, options: EmitOptions) -> str:
        return "<?php" if options.header else ""

    def list_templates(self, ctx: EmitContext) -> AccessTemplates:
        return PhpListTemplates(ctx.table, ctx.helpers)

    def text_templates(self, ctx: EmitContext) -> AccessTemplates:
        return PhpTextTemplates(ctx.table, ctx.helpers)


def emit_php(program: Program, options: EmitOptions | None = None) -> EmitResult:
    """Emit PHP for a whole program with a fresh backend."""
    return emit_program(program, PhpBackend(), options)
