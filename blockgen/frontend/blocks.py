"""Block program model.

Blocks are the read-only input of a compilation. The loader builds them once;
the emission engine only reads them.

Architecture:
    Block JSON -> Loader -> [Program] -> Program Emitter -> Dispatch -> Target text
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator


@dataclass(frozen=True)
class Block:
    """A node of the block program.

    Invariants:
    - kind is non-empty
    - inputs holds only filled slots; a missing key is an empty slot
    - the graph formed by inputs and next is a tree (no block is reachable twice)

    Statement blocks form chains through next. Value blocks have next=None.
    """

    kind: str
    id: str = ""
    fields: dict[str, object] = field(default_factory=dict)
    inputs: dict[str, Block] = field(default_factory=dict)
    next: Block | None = None
    item_count: int | None = None  # explicit arity of ADD0..ADDn style blocks

    def get_field(self, name: str, default: object = None) -> object:
        """Return a field value, or default when the field is absent."""
        return self.fields.get(name, default)

    def get_input(self, name: str) -> Block | None:
        """Return the child block in slot name, or None for an empty slot."""
        return self.inputs.get(name)

    def repeated_slot_count(self, prefix: str = "ADD") -> int:
        """Number of prefix<N> slots, counting empty ones below the highest index."""
        if self.item_count is not None:
            return self.item_count
        highest = -1
        for name in self.inputs:
            suffix = name[len(prefix) :]
            if name.startswith(prefix) and suffix.isdigit():
                highest = max(highest, int(suffix))
        return highest + 1

    def chain(self) -> list[Block]:
        """This block followed by every block linked through next."""
        result: list[Block] = []
        current: Block | None = self
        while current is not None:
            result.append(current)
            current = current.next
        return result

    def walk(self) -> Iterator[Block]:
        """Pre-order traversal over inputs, then next."""
        yield self
        for child in self.inputs.values():
            yield from child.walk()
        if self.next is not None:
            yield from self.next.walk()

    def label(self) -> str:
        """Short description for error paths."""
        if self.id:
            return self.kind + "#" + self.id
        return self.kind


@dataclass
class Program:
    """A whole workspace: top-level blocks in order plus declared variables."""

    blocks: list[Block] = field(default_factory=list)
    variables: list[str] = field(default_factory=list)

    def walk(self) -> Iterator[Block]:
        for top in self.blocks:
            yield from top.walk()


def block_to_dict(block: Block) -> dict[str, object]:
    """Serialize a block back into the Blockly JSON shape."""
    result: dict[str, object] = {"type": block.kind}
    if block.id:
        result["id"] = block.id
    if block.fields:
        result["fields"] = dict(block.fields)
    if block.inputs:
        result["inputs"] = {
            name: {"block": block_to_dict(child)} for name, child in block.inputs.items()
        }
    if block.item_count is not None:
        result["extraState"] = {"itemCount": block.item_count}
    if block.next is not None:
        result["next"] = {"block": block_to_dict(block.next)}
    return result


def program_to_dict(program: Program) -> dict[str, object]:
    """Serialize a program back into the Blockly JSON shape."""
    return {
        "blocks": {
            "languageVersion": 0,
            "blocks": [block_to_dict(b) for b in program.blocks],
        },
        "variables": [{"name": name} for name in program.variables],
    }
