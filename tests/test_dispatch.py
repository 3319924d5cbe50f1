"""Block emitter dispatch tests."""

import pytest

from blockgen.backend.dispatch import Dispatcher, EmitContext, EmitOptions
from blockgen.backend.helpers import HelperRegistry
from blockgen.backend.php import PHP_TABLE, Order, PhpBackend, emit_php
from blockgen.backend.program import emit_program
from blockgen.backend.precedence import ExprResult, StmtResult
from blockgen.errors import EmitError, UnsupportedBlockError
from blockgen.frontend.blocks import Block, Program
from blockgen.frontend.names import NameRegistry


def number(n: int) -> Block:
    return Block("math_number", fields={"NUM": n})


def make_context(backend: PhpBackend, options: EmitOptions | None = None) -> EmitContext:
    names = NameRegistry(backend.reserved)
    return EmitContext(backend, names, HelperRegistry(names), options or EmitOptions())


def test_register_and_lookup() -> None:
    dispatcher = Dispatcher(PHP_TABLE)

    @dispatcher.rule("answer")
    def answer(block, ctx):
        return ExprResult("42", Order.ATOMIC)

    assert dispatcher.lookup("answer") is answer
    assert dispatcher.kinds() == ["answer"]


def test_lookup_unknown_kind() -> None:
    with pytest.raises(UnsupportedBlockError, match="no rule for block kind 'nope'"):
        Dispatcher(PHP_TABLE).lookup("nope")


def test_register_after_freeze_is_an_error() -> None:
    dispatcher = Dispatcher(PHP_TABLE)
    dispatcher.freeze()
    assert dispatcher.frozen
    with pytest.raises(EmitError, match="after emission started"):
        dispatcher.register("late", lambda block, ctx: StmtResult(""))


def test_php_backend_registers_core_kinds() -> None:
    kinds = PhpBackend().dispatcher.kinds()
    for kind in ("math_number", "lists_getIndex", "text_getSubstring", "controls_if"):
        assert kind in kinds


def test_custom_rule_before_emission() -> None:
    backend = PhpBackend()
    backend.dispatcher.register("answer", lambda block, ctx: ExprResult("42", Order.ATOMIC))
    program = Program([Block("variables_set", fields={"VAR": "x"}, inputs={"VALUE": Block("answer")})])
    assert "$x = 42;" in emit_php_with(backend, program)


def emit_php_with(backend: PhpBackend, program: Program) -> str:
    result = emit_program(program, backend)
    assert result.ok(), result.errors()
    return result.output


def test_backend_dispatcher_is_frozen_by_emission() -> None:
    backend = PhpBackend()
    emit_php_with(backend, Program([]))
    with pytest.raises(EmitError):
        backend.dispatcher.register("late", lambda block, ctx: StmtResult(""))


def test_value_default_for_empty_slot() -> None:
    ctx = make_context(PhpBackend())
    result = ctx.value(Block("variables_set"), "VALUE", "0")
    assert result == ExprResult("0", PHP_TABLE.atomic)


def test_value_to_code_wraps_looser_child() -> None:
    ctx = make_context(PhpBackend())
    parent = Block(
        "x",
        inputs={
            "A": Block(
                "math_arithmetic",
                fields={"OP": "ADD"},
                inputs={"A": number(1), "B": number(2)},
            )
        },
    )
    assert ctx.value_to_code(parent, "A", Order.MULTIPLICATION, "0") == "(1 + 2)"
    assert ctx.value_to_code(parent, "A", Order.ADDITION, "0") == "1 + 2"


def test_statement_block_in_value_slot() -> None:
    ctx = make_context(PhpBackend())
    parent = Block("x", inputs={"A": Block("variables_set", fields={"VAR": "y"})})
    with pytest.raises(EmitError, match="statement block in value slot 'A'"):
        ctx.value(parent, "A", "0")


def test_value_at_statement_position_becomes_statement() -> None:
    ctx = make_context(PhpBackend())
    assert ctx.statement(number(5)) == StmtResult("5;\n")


def test_statements_are_indented_with_option() -> None:
    ctx = make_context(PhpBackend(), EmitOptions(indent="\t"))
    body = Block("variables_set", fields={"VAR": "a"}, next=Block("variables_set", fields={"VAR": "b"}))
    parent = Block("controls_whileUntil", inputs={"DO": body})
    assert ctx.statements(parent, "DO") == "\t$a = 0;\n\t$b = 0;\n"
    assert ctx.statements(parent, "ELSE") == ""


def test_error_path_uses_block_ids() -> None:
    program = Program(
        [
            Block("text_print", id="p1"),
            Block(
                "variables_set",
                id="s1",
                fields={"VAR": "x"},
                inputs={"VALUE": Block("mystery", id="m1")},
            ),
        ]
    )
    result = emit_php(program)
    error = result.errors()[0]
    assert error.path == ["[1]", "variables_set#s1", "VALUE", "mystery#m1"]
    assert error.kind == "mystery"


def test_unknown_container_kind() -> None:
    ctx = make_context(PhpBackend())
    with pytest.raises(EmitError, match="unknown container kind 'set'"):
        ctx.planner("set")


def test_planner_is_cached_per_kind() -> None:
    ctx = make_context(PhpBackend())
    assert ctx.planner("list") is ctx.planner("list")
    assert ctx.planner("list") is not ctx.planner("text")


def test_copy_keeps_rules_and_is_unfrozen() -> None:
    dispatcher = Dispatcher(PHP_TABLE)
    dispatcher.register("answer", lambda block, ctx: ExprResult("42", Order.ATOMIC))
    dispatcher.freeze()
    other = dispatcher.copy()
    assert other.kinds() == ["answer"]
    assert not other.frozen
    other.register("extra", lambda block, ctx: StmtResult(""))
    assert dispatcher.kinds() == ["answer"]


def test_backends_do_not_share_registrations() -> None:
    first = PhpBackend()
    first.dispatcher.register("answer", lambda block, ctx: ExprResult("42", Order.ATOMIC))
    assert "answer" not in PhpBackend().dispatcher.kinds()
