from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal, Optional

from tree_sitter import Node

ScopeKind = Literal["program", "function", "block"]
BindingKind = Literal["var", "let", "const", "param", "function", "class", "import"]

FUNCTION_NODES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",  # older tree-sitter-javascript name for function_expression
        "generator_function",
        "arrow_function",
        "method_definition",
    }
)

BLOCK_NODES = frozenset(
    {
        "statement_block",
        "for_statement",
        "for_in_statement",
        "catch_clause",
        "switch_body",
        "class_body",
    }
)

_TYPE_ONLY = frozenset(
    {"type_annotation", "type_identifier", "predefined_type", "accessibility_modifier"}
)


@dataclass(frozen=True)
class Binding:
    name: str
    kind: BindingKind
    init: Optional[Node] = None


@dataclass
class Scope:
    id: int
    kind: ScopeKind
    parent: Optional[int]
    bindings: dict[str, Binding] = field(default_factory=dict)


class ScopeTable:
    """
    Arena of lexical scopes for one file.

    Scopes reference their parent by index; lookups walk outward until a
    binding with the requested name is found. Declarations are indexed for the
    whole scope regardless of position (hoisting semantics).
    """

    PROGRAM = 0

    def __init__(self) -> None:
        self.scopes: list[Scope] = [Scope(id=0, kind="program", parent=None)]

    def push(self, kind: ScopeKind, parent: int) -> int:
        sid = len(self.scopes)
        self.scopes.append(Scope(id=sid, kind=kind, parent=parent))
        return sid

    def declare(self, scope_id: int, name: str, kind: BindingKind, init: Optional[Node] = None) -> None:
        # first declaration of a name in a scope wins (redeclared `var` keeps the first init)
        self.scopes[scope_id].bindings.setdefault(name, Binding(name=name, kind=kind, init=init))

    def function_scope_of(self, scope_id: int) -> int:
        sid: Optional[int] = scope_id
        while sid is not None:
            scope = self.scopes[sid]
            if scope.kind in ("function", "program"):
                return sid
            sid = scope.parent
        return self.PROGRAM

    def lookup(self, scope_id: int, name: str) -> Optional[Binding]:
        sid: Optional[int] = scope_id
        while sid is not None:
            scope = self.scopes[sid]
            hit = scope.bindings.get(name)
            if hit is not None:
                return hit
            sid = scope.parent
        return None

    def resolve_init(self, scope_id: int, name: str) -> Optional[Node]:
        binding = self.lookup(scope_id, name)
        return binding.init if binding is not None else None


def pattern_names(node: Optional[Node]) -> list[str]:
    """Names bound by a declaration/parameter pattern (`a`, `{a, b: c}`, `[x, ...rest]`, `a = 1`)."""
    if node is None:
        return []
    t = node.type
    if t in ("identifier", "shorthand_property_identifier_pattern"):
        return [_text(node)]
    if t in ("assignment_pattern", "object_assignment_pattern"):
        return pattern_names(node.child_by_field_name("left"))
    if t == "pair_pattern":
        return pattern_names(node.child_by_field_name("value"))
    if t in ("required_parameter", "optional_parameter"):
        return pattern_names(node.child_by_field_name("pattern"))
    if t in _TYPE_ONLY or t == "this":
        return []

    out: list[str] = []
    for child in node.named_children:
        out.extend(pattern_names(child))
    return out


def parameter_names(fn: Node) -> list[str]:
    single = fn.child_by_field_name("parameter")  # `x => ...`
    if single is not None:
        return pattern_names(single)
    params = fn.child_by_field_name("parameters")
    if params is None:
        return []
    out: list[str] = []
    for p in params.named_children:
        out.extend(pattern_names(p))
    return out


def declare_all(table: ScopeTable, scope_id: int, names: Iterable[str], kind: BindingKind) -> None:
    for n in names:
        table.declare(scope_id, n, kind)


def _text(node: Node) -> str:
    return node.text.decode("utf-8", errors="ignore") if node.text is not None else ""
