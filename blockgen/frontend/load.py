"""Load a Blockly JSON workspace into a Program.

Accepted shapes:
    {"blocks": {"languageVersion": 0, "blocks": [...]}, "variables": [...]}
    {"blocks": [...]}
    [...]

Inputs hold {"block": ...} and/or {"shadow": ...}; the real block wins.
Variable fields may be plain names or {"id": ...} references into variables.
"""

from __future__ import annotations

import json

from ..errors import LoadError
from .blocks import Block, Program

# JSON objects as decoded by the json module
JSONNode = dict[str, object]


def load_program(text: str) -> Program:
    """Parse JSON text into a Program."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LoadError(e.msg, "line " + str(e.lineno) + ":" + str(e.colno)) from e
    return program_from_json(data)


def program_from_json(data: object) -> Program:
    """Build a Program from already-decoded JSON."""
    variables: dict[str, str] = {}
    names: list[str] = []
    raw_blocks: object = data
    if isinstance(data, dict):
        raw_vars = data.get("variables", [])
        if not isinstance(raw_vars, list):
            raise LoadError("variables must be a list", "$.variables")
        for i, var in enumerate(raw_vars):
            path = "$.variables[" + str(i) + "]"
            if not isinstance(var, dict) or not isinstance(var.get("name"), str):
                raise LoadError("variable needs a string name", path)
            name = var["name"]
            var_id = var.get("id")
            if isinstance(var_id, str):
                variables[var_id] = name
            if name not in names:
                names.append(name)
        raw_blocks = data.get("blocks", [])
        if isinstance(raw_blocks, dict):
            raw_blocks = raw_blocks.get("blocks", [])
    if not isinstance(raw_blocks, list):
        raise LoadError("blocks must be a list", "$.blocks")
    loader = _Loader(variables)
    blocks = [
        loader.block(raw, "$.blocks[" + str(i) + "]") for i, raw in enumerate(raw_blocks)
    ]
    return Program(blocks=blocks, variables=names)


class _Loader:
    """Recursive JSON-to-Block conversion with variable id resolution."""

    def __init__(self, variables: dict[str, str]) -> None:
        self.variables = variables

    def block(self, raw: object, path: str) -> Block:
        if not isinstance(raw, dict):
            raise LoadError("block must be an object", path)
        kind = raw.get("type")
        if not isinstance(kind, str) or not kind:
            raise LoadError("block needs a non-empty string type", path)
        block_id = raw.get("id", "")
        if not isinstance(block_id, str):
            block_id = str(block_id)
        return Block(
            kind=kind,
            id=block_id,
            fields=self.fields(raw.get("fields", {}), path + ".fields"),
            inputs=self.inputs(raw.get("inputs", {}), path + ".inputs"),
            next=self.connection(raw.get("next"), path + ".next"),
            item_count=self.item_count(raw.get("extraState"), path + ".extraState"),
        )

    def fields(self, raw: object, path: str) -> dict[str, object]:
        if not isinstance(raw, dict):
            raise LoadError("fields must be an object", path)
        result: dict[str, object] = {}
        for name, value in raw.items():
            if isinstance(value, dict):
                result[name] = self.variable_ref(value, path + "." + name)
            else:
                result[name] = value
        return result

    def variable_ref(self, value: JSONNode, path: str) -> str:
        if isinstance(value.get("name"), str):
            return value["name"]
        var_id = value.get("id")
        if not isinstance(var_id, str):
            raise LoadError("variable reference needs an id or name", path)
        name = self.variables.get(var_id)
        if name is None:
            raise LoadError("unknown variable id '" + var_id + "'", path)
        return name

    def inputs(self, raw: object, path: str) -> dict[str, Block]:
        if not isinstance(raw, dict):
            raise LoadError("inputs must be an object", path)
        result: dict[str, Block] = {}
        for name, slot in raw.items():
            child = self.connection(slot, path + "." + name)
            if child is not None:
                result[name] = child
        return result

    def connection(self, raw: object, path: str) -> Block | None:
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise LoadError("connection must be an object", path)
        if raw.get("block") is not None:
            return self.block(raw["block"], path + ".block")
        if raw.get("shadow") is not None:
            return self.block(raw["shadow"], path + ".shadow")
        return None

    def item_count(self, raw: object, path: str) -> int | None:
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise LoadError("extraState must be an object", path)
        for key in ("itemCount", "items"):
            value = raw.get(key)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise LoadError(key + " must be a non-negative integer", path)
            return value
        return None
