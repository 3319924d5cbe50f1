"""Program emitter: one whole compilation.

Creates the per-compilation registries, reserves user variable names,
emits every top-level statement chain in order, then places helper
definitions (registration order) ahead of the statements.
"""

from __future__ import annotations

import logging

from ..errors import EmitError
from ..frontend.blocks import Program
from ..frontend.names import NameRegistry
from .dispatch import Backend, EmitContext, EmitOptions
from .helpers import HelperRegistry
from .util import Emitter

logger = logging.getLogger(__name__)

VARIABLE_FIELDS = ("VAR",)


class EmitResult:
    """Result of emitting a program."""

    def __init__(self) -> None:
        self.output: str = ""
        self.helpers: list[str] = []
        self._errors: list[EmitError] = []

    def add_error(self, error: EmitError) -> None:
        self._errors.append(error)

    def errors(self) -> list[EmitError]:
        return self._errors

    def ok(self) -> bool:
        return len(self._errors) == 0


def collect_variables(program: Program) -> list[str]:
    """Declared workspace variables followed by every variable field, in order."""
    result: list[str] = list(program.variables)
    for block in program.walk():
        for name in VARIABLE_FIELDS:
            value = block.get_field(name)
            if isinstance(value, str) and value not in result:
                result.append(value)
    return result


def emit_program(
    program: Program, backend: Backend, options: EmitOptions | None = None
) -> EmitResult:
    """Emit target source for a whole program."""
    if options is None:
        options = EmitOptions()
    result = EmitResult()
    backend.dispatcher.freeze()
    names = NameRegistry(backend.reserved)
    for var in collect_variables(program):
        names.variable(var)
    helpers = HelperRegistry(names, options.indent)
    ctx = EmitContext(backend, names, helpers, options)
    parts: list[str] = []
    try:
        for i, top in enumerate(program.blocks):
            parts.append(ctx.top_level(i, top))
    except EmitError as e:
        logger.debug("emission aborted: %s", e)
        result.add_error(e)
        return result
    out = Emitter(options.indent)
    prologue = backend.prologue(options)
    if prologue:
        out.block(prologue)
        out.line()
    for entry in helpers.entries():
        out.block(entry.source())
        out.line()
    code = "".join(parts)
    if code:
        out.block(code)
    text = out.output().rstrip("\n")
    result.output = text + "\n" if text else ""
    result.helpers = [entry.key for entry in helpers.entries()]
    logger.info(
        "emitted %d top-level blocks for %s with %d helpers",
        len(program.blocks),
        backend.name,
        len(helpers),
    )
    return result
