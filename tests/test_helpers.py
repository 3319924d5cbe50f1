"""Helper registry tests."""

from blockgen.backend.helpers import HELPER_NAME_PLACEHOLDER, HelperRegistry, reindent
from blockgen.frontend.names import NameRegistry

REPEAT = [
    "function " + HELPER_NAME_PLACEHOLDER + "($value, $count) {",
    "  return array_fill(0, $count, $value);",
    "}",
]


def test_provide_twice_registers_once() -> None:
    helpers = HelperRegistry(NameRegistry())
    first = helpers.provide("repeat", REPEAT)
    second = helpers.provide("repeat", REPEAT)
    assert first == second == "repeat"
    assert len(helpers) == 1
    assert "repeat" in helpers


def test_placeholder_is_replaced() -> None:
    helpers = HelperRegistry(NameRegistry())
    name = helpers.provide("repeat", REPEAT, hint="lists_repeat")
    assert name == "lists_repeat"
    assert helpers.entries()[0].lines[0] == "function lists_repeat($value, $count) {"


def test_default_hint_turns_dashes_into_underscores() -> None:
    helpers = HelperRegistry(NameRegistry())
    assert helpers.provide("random-item", ["x"]) == "random_item"
    assert helpers.name_of("random-item") == "random_item"
    assert helpers.name_of("missing") is None


def test_helper_name_avoids_user_variables() -> None:
    names = NameRegistry()
    names.variable("lists_repeat")
    helpers = HelperRegistry(names)
    assert helpers.provide("repeat", REPEAT, hint="lists_repeat") == "lists_repeat2"


def test_helper_name_avoids_reserved_words() -> None:
    helpers = HelperRegistry(NameRegistry({"count"}))
    assert helpers.provide("count", ["x"]) == "count2"


def test_registration_order_is_first_requested() -> None:
    helpers = HelperRegistry(NameRegistry())
    helpers.provide("b", ["b"])
    helpers.provide("a", ["a"])
    helpers.provide("b", ["b"])
    assert [e.key for e in helpers.entries()] == ["b", "a"]


def test_builder_may_request_other_helpers() -> None:
    helpers = HelperRegistry(NameRegistry())

    def outer(name: str) -> list[str]:
        inner = helpers.provide("inner", ["function " + HELPER_NAME_PLACEHOLDER + "() {}"])
        return ["function " + name + "() { return " + inner + "(); }"]

    helpers.provide("outer", outer)
    helpers.provide("outer", outer)
    assert [e.key for e in helpers.entries()] == ["outer", "inner"]
    assert helpers.entries()[0].lines == ["function outer() { return inner(); }"]


def test_builder_may_request_itself() -> None:
    helpers = HelperRegistry(NameRegistry())

    def recursive(name: str) -> list[str]:
        again = helpers.provide("fact", recursive)
        return ["function " + name + "($n) { return $n * " + again + "($n - 1); }"]

    name = helpers.provide("fact", recursive)
    assert len(helpers) == 1
    assert helpers.entries()[0].lines == [
        "function fact($n) { return $n * fact($n - 1); }"
    ]
    assert name == "fact"


def test_definitions_join_with_blank_lines() -> None:
    helpers = HelperRegistry(NameRegistry())
    helpers.provide("a", ["function a() {", "}"])
    helpers.provide("b", ["function b() {", "}"])
    assert helpers.definitions() == "function a() {\n}\n\nfunction b() {\n}"


def test_registries_are_independent() -> None:
    first = HelperRegistry(NameRegistry())
    second = HelperRegistry(NameRegistry())
    first.provide("repeat", REPEAT)
    assert "repeat" not in second
    assert second.provide("repeat", REPEAT) == "repeat"


def test_reindent_replaces_two_space_units() -> None:
    assert reindent("    return $x;", "\t") == "\t\treturn $x;"
    assert reindent("   odd", "    ") == "     odd"
    assert reindent("}", "\t") == "}"


def test_sources_follow_registry_indent() -> None:
    helpers = HelperRegistry(NameRegistry(), indent="    ")
    helpers.provide("repeat", REPEAT)
    assert helpers.entries()[0].lines[1] == "    return array_fill(0, $count, $value);"
