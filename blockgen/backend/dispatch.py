"""Block emitter dispatch.

Rules are registered per block kind before emission starts and looked up by
kind during the walk. A rule receives the block and the EmitContext of the
current compilation and returns an ExprResult or a StmtResult. Rules reach
children only through the context so that every embedded child passes the
precedence contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

from ..errors import EmitError, UnsupportedBlockError
from ..frontend.blocks import Block
from ..frontend.names import NameRegistry
from .access import AccessDescriptor, AccessPlanner, AccessTemplates, Anchor
from .helpers import HelperRegistry, HelperSource
from .precedence import EmissionResult, ExprResult, PrecedenceTable, StmtResult
from .util import prefix_lines

Rule = Callable[[Block, "EmitContext"], EmissionResult]


@dataclass
class EmitOptions:
    """User-facing knobs for one compilation."""

    indent: str = "  "
    header: bool = True


class Dispatcher:
    """Mapping from block kind to emission rule, frozen once emission starts."""

    def __init__(self, table: PrecedenceTable) -> None:
        self.table = table
        self._rules: dict[str, Rule] = {}
        self._frozen = False

    def register(self, kind: str, rule: Rule) -> None:
        if self._frozen:
            raise EmitError("cannot register '" + kind + "' after emission started", kind)
        self._rules[kind] = rule

    def rule(self, kind: str) -> Callable[[Rule], Rule]:
        """Decorator form of register."""

        def decorate(fn: Rule) -> Rule:
            self.register(kind, fn)
            return fn

        return decorate

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, kind: str) -> Rule:
        rule = self._rules.get(kind)
        if rule is None:
            raise UnsupportedBlockError(kind)
        return rule

    def kinds(self) -> list[str]:
        return sorted(self._rules)

    def copy(self) -> Dispatcher:
        """Unfrozen dispatcher with the same rules."""
        other = Dispatcher(self.table)
        other._rules = dict(self._rules)
        return other


class Backend(Protocol):
    """What the program emitter needs from a target language."""

    name: str
    reserved: frozenset[str]
    dispatcher: Dispatcher

    def expression_statement(self, expr: ExprResult) -> StmtResult: ...

    def prologue(self, options: EmitOptions) -> str: ...

    def list_templates(self, ctx: EmitContext) -> AccessTemplates: ...

    def text_templates(self, ctx: EmitContext) -> AccessTemplates: ...


class EmitContext:
    """Everything a rule may use during one compilation."""

    def __init__(
        self,
        backend: Backend,
        names: NameRegistry,
        helpers: HelperRegistry,
        options: EmitOptions,
    ) -> None:
        self.backend = backend
        self.dispatcher = backend.dispatcher
        self.table: PrecedenceTable = backend.dispatcher.table
        self.names = names
        self.helpers = helpers
        self.options = options
        self._path: list[str] = []
        self._planners: dict[str, AccessPlanner] = {}

    # --- walking ---

    def emit(self, block: Block) -> EmissionResult:
        """Emit one block through its registered rule."""
        self._path.append(block.label())
        try:
            rule = self.dispatcher.lookup(block.kind)
            result = rule(block, self)
        except EmitError as e:
            if not e.path:
                e.path = list(self._path)
            if not e.kind:
                e.kind = block.kind
            raise
        finally:
            self._path.pop()
        return result

    def value(self, block: Block, slot: str, default: str) -> ExprResult:
        """Child expression in slot, or default as an atomic literal when empty."""
        child = block.get_input(slot)
        if child is None:
            return ExprResult(default, self.table.atomic)
        self._path.append(slot)
        try:
            result = self.emit(child)
        finally:
            self._path.pop()
        if isinstance(result, StmtResult):
            raise EmitError("statement block in value slot '" + slot + "'", child.kind)
        return result

    def value_to_code(self, block: Block, slot: str, level: int, default: str) -> str:
        """Child expression text, grouped when it binds looser than level."""
        return self.table.wrap_if_needed(self.value(block, slot, default), level)

    def statement(self, block: Block) -> StmtResult:
        """Emit a block at statement position."""
        result = self.emit(block)
        if isinstance(result, ExprResult):
            return self.backend.expression_statement(result)
        return result

    def chain(self, first: Block | None) -> str:
        """Statements of a block and everything linked after it."""
        if first is None:
            return ""
        return "".join(self.statement(block).code for block in first.chain())

    def top_level(self, index: int, block: Block) -> str:
        """Statements of the index-th top-level chain of the program."""
        self._path.append("[" + str(index) + "]")
        try:
            return self.chain(block)
        finally:
            self._path.pop()

    def statements(self, block: Block, slot: str) -> str:
        """Indented statement chain held in slot."""
        child = block.get_input(slot)
        if child is None:
            return ""
        self._path.append(slot)
        try:
            code = self.chain(child)
        finally:
            self._path.pop()
        return prefix_lines(code, self.options.indent)

    # --- collaborators ---

    def provide(self, key: str, source: HelperSource, hint: str | None = None) -> str:
        return self.helpers.provide(key, source, hint)

    def variable(self, name: object) -> str:
        return self.names.variable(str(name))

    def allocate(self, hint: str) -> str:
        return self.names.allocate(hint)

    def planner(self, kind: str) -> AccessPlanner:
        """Access planner for the "list" or "text" container kind."""
        planner = self._planners.get(kind)
        if planner is None:
            if kind == "list":
                templates = self.backend.list_templates(self)
            elif kind == "text":
                templates = self.backend.text_templates(self)
            else:
                raise EmitError("unknown container kind '" + kind + "'")
            planner = AccessPlanner(templates)
            self._planners[kind] = planner
        return planner

    def plan(self, kind: str, descriptor: AccessDescriptor) -> EmissionResult:
        return self.planner(kind).plan(descriptor)

    def plan_range(
        self,
        kind: str,
        container: ExprResult,
        start_anchor: Anchor,
        start_offset: ExprResult | None,
        end_anchor: Anchor,
        end_offset: ExprResult | None,
    ) -> ExprResult:
        return self.planner(kind).plan_range(
            container, start_anchor, start_offset, end_anchor, end_offset
        )
