"""Program emitter tests."""

from blockgen.backend.dispatch import EmitOptions
from blockgen.backend.php import PhpBackend, emit_php
from blockgen.backend.program import collect_variables, emit_program
from blockgen.frontend.blocks import Block, Program


def text(value: str) -> Block:
    return Block("text", fields={"TEXT": value})


def repeat_list(var: str) -> Block:
    return Block(
        "variables_set",
        fields={"VAR": var},
        inputs={"VALUE": Block("lists_repeat", inputs={"ITEM": text("x")})},
    )


def test_output_layout() -> None:
    program = Program([repeat_list("a")])
    output = emit_php(program).output
    lines = output.split("\n")
    assert lines[0] == "<?php"
    assert lines[1] == ""
    assert lines[2] == "function lists_repeat($value, $count) {"
    assert lines[-3] == ""
    assert lines[-2] == "$a = lists_repeat('x', 0);"
    assert lines[-1] == ""


def test_no_header() -> None:
    program = Program([Block("text_print", inputs={"TEXT": text("hi")})])
    result = emit_php(program, EmitOptions(header=False))
    assert result.output == "echo 'hi';\n"


def test_empty_program() -> None:
    assert emit_php(Program([])).output == "<?php\n"
    assert emit_php(Program([]), EmitOptions(header=False)).output == ""


def test_helpers_defined_once_in_first_request_order() -> None:
    pick = Block(
        "variables_set",
        fields={"VAR": "c"},
        inputs={
            "VALUE": Block(
                "lists_getIndex",
                fields={"MODE": "GET", "WHERE": "RANDOM"},
                inputs={"VALUE": Block("variables_get", fields={"VAR": "a"})},
            )
        },
    )
    program = Program([repeat_list("a"), pick, repeat_list("b")])
    result = emit_php(program)
    assert result.helpers == ["repeat", "random-pick"]
    assert result.output.count("function lists_repeat(") == 1
    assert result.output.index("function lists_repeat(") < result.output.index(
        "function lists_get_random_item("
    )


def test_user_variable_wins_over_helper_name() -> None:
    program = Program([repeat_list("lists_repeat")])
    output = emit_php(program).output
    assert "function lists_repeat2($value, $count) {" in output
    assert "$lists_repeat = lists_repeat2('x', 0);" in output


def test_declared_variables_are_reserved_first() -> None:
    program = Program([Block("variables_set", fields={"VAR": "item"})], variables=["Item"])
    assert collect_variables(program) == ["Item", "item"]
    assert "$item2 = 0;" in emit_php(program).output


def test_fatal_error_has_no_partial_output() -> None:
    program = Program([Block("text_print"), Block("warp_drive")])
    result = emit_php(program)
    assert not result.ok()
    assert result.output == ""
    assert result.helpers == []
    assert len(result.errors()) == 1
    assert str(result.errors()[0]) == (
        "error: [unsupported] no rule for block kind 'warp_drive' (at [1] > warp_drive)"
    )


def test_compilations_do_not_share_state() -> None:
    backend = PhpBackend()
    program = Program([repeat_list("a")])
    first = emit_program(program, backend)
    second = emit_program(program, backend)
    assert first.output == second.output
    assert second.helpers == ["repeat"]


def test_indent_option() -> None:
    loop = Block(
        "controls_whileUntil",
        inputs={"DO": Block("text_print", inputs={"TEXT": text("x")})},
    )
    output = emit_php(Program([loop]), EmitOptions(indent="    ")).output
    assert "while (false) {\n    echo 'x';\n}\n" in output


def test_indent_option_applies_to_helpers() -> None:
    output = emit_php(Program([repeat_list("a")]), EmitOptions(indent="    ")).output
    assert "function lists_repeat($value, $count) {\n    $array = array();\n" in output
    assert "\n        $array[] = $value;\n" in output
