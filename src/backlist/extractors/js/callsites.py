from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

import structlog
from tree_sitter import Node, Tree

from backlist.domain.models import BODY_METHODS, CallKind, SchemaField
from backlist.extractors.js.parser import parse_source
from backlist.extractors.js.scopes import (
    BLOCK_NODES,
    FUNCTION_NODES,
    ScopeTable,
    declare_all,
    parameter_names,
    pattern_names,
)
from backlist.extractors.js.values import (
    find_property,
    object_schema,
    string_value,
    text_of,
    unwrap,
    url_value,
)

logger = structlog.get_logger(__name__)

FETCH_NAME = "fetch"

_CLIENT_VERBS = {
    "get": "GET",
    "post": "POST",
    "put": "PUT",
    "patch": "PATCH",
    "delete": "DELETE",
}


@dataclass(frozen=True)
class CallSite:
    """A call expression seen during the walk, with the scope it lives in."""

    callee: Node
    arguments: tuple[Node, ...]
    scope_id: int
    line: int


@dataclass(frozen=True)
class CallObservation:
    """Raw facts extracted from one recognized HTTP call."""

    kind: CallKind
    method: str
    url: str
    line: int
    client: Optional[str] = None
    body_fields: Optional[dict[str, SchemaField]] = None


def extract_calls_from_source(source: str, grammar: str = "tsx") -> list[CallObservation]:
    """
    Parse JS/TS source and extract HTTP calls of the form:
      fetch(url, { method, body: JSON.stringify(payload) })
      <anything>.<get|post|put|patch|delete>(url, payload?)
    Raises ParseError when the source does not parse.
    """
    return extract_calls_from_tree(parse_source(source, grammar))


def extract_calls_from_tree(tree: Tree) -> list[CallObservation]:
    table, sites = collect_call_sites(tree.root_node)

    out: list[CallObservation] = []
    for site in sites:
        maybe = _parse_fetch_call(site, table)
        if maybe is None:
            maybe = _parse_client_call(site, table)
        if maybe is not None:
            out.append(maybe)
    return out


def collect_call_sites(root: Node) -> tuple[ScopeTable, list[CallSite]]:
    """
    Single pre-order walk: builds the scope table and records every call
    expression with its enclosing scope. Resolution happens afterwards, so a
    declaration placed after the call in the same scope is still visible.
    """
    table = ScopeTable()
    sites: list[CallSite] = []

    stack: list[tuple[Node, int]] = [(root, ScopeTable.PROGRAM)]
    while stack:
        node, scope = stack.pop()
        if not node.is_named:
            # keyword/punctuation tokens (`function`, `(`) carry nothing
            continue
        t = node.type
        inner = scope

        if t in FUNCTION_NODES:
            if t in ("function_declaration", "generator_function_declaration"):
                name = node.child_by_field_name("name")
                if name is not None:
                    table.declare(scope, text_of(name), "function")
            inner = table.push("function", scope)
            declare_all(table, inner, parameter_names(node), "param")

        elif t in BLOCK_NODES:
            # a function body shares the function's scope
            if not (t == "statement_block" and node.parent is not None and node.parent.type in FUNCTION_NODES):
                inner = table.push("block", scope)
            if t == "catch_clause":
                declare_all(table, inner, pattern_names(node.child_by_field_name("parameter")), "let")
            elif t == "for_in_statement" and node.child_by_field_name("kind") is not None:
                kind = text_of(node.child_by_field_name("kind"))
                declare_all(
                    table,
                    inner if kind != "var" else table.function_scope_of(scope),
                    pattern_names(node.child_by_field_name("left")),
                    "var" if kind == "var" else "let",
                )

        elif t == "variable_declarator":
            _declare_variable(table, node, scope)

        elif t in ("class_declaration", "abstract_class_declaration"):
            name = node.child_by_field_name("name")
            if name is not None:
                table.declare(scope, text_of(name), "class")

        elif t == "import_statement":
            _declare_imports(table, node)

        elif t == "call_expression":
            callee = node.child_by_field_name("function")
            args = node.child_by_field_name("arguments")
            if callee is not None and args is not None and args.type == "arguments":
                sites.append(
                    CallSite(
                        callee=callee,
                        arguments=tuple(a for a in args.named_children if a.type != "comment"),
                        scope_id=scope,
                        line=node.start_point[0] + 1,
                    )
                )

        # reversed so that pop() visits children in source order
        for child in reversed(node.children):
            stack.append((child, inner))

    return table, sites


def _declare_variable(table: ScopeTable, node: Node, scope: int) -> None:
    parent = node.parent
    keyword = ""
    if parent is not None:
        if parent.type == "variable_declaration":
            keyword = "var"
        elif parent.type == "lexical_declaration":
            kind = parent.child_by_field_name("kind")
            keyword = text_of(kind) if kind is not None else text_of(parent.children[0])

    target = table.function_scope_of(scope) if keyword == "var" else scope
    binding_kind = "const" if keyword == "const" else ("var" if keyword == "var" else "let")

    name = node.child_by_field_name("name")
    if name is None:
        return
    if name.type == "identifier":
        table.declare(target, text_of(name), binding_kind, node.child_by_field_name("value"))
    else:
        # destructuring: names are bound, but not to an object literal
        declare_all(table, target, pattern_names(name), binding_kind)


def _declare_imports(table: ScopeTable, node: Node) -> None:
    for clause in node.named_children:
        if clause.type != "import_clause":
            continue
        for part in clause.named_children:
            if part.type == "identifier":
                table.declare(ScopeTable.PROGRAM, text_of(part), "import")
            elif part.type == "namespace_import":
                declare_all(table, ScopeTable.PROGRAM, _identifiers(part.named_children), "import")
            elif part.type == "named_imports":
                for spec in part.named_children:
                    if spec.type != "import_specifier":
                        continue
                    local = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                    if local is not None:
                        table.declare(ScopeTable.PROGRAM, text_of(local), "import")


def _identifiers(nodes: Iterable[Node]) -> list[str]:
    return [text_of(n) for n in nodes if n.type == "identifier"]


def _parse_fetch_call(site: CallSite, table: ScopeTable) -> Optional[CallObservation]:
    """
    Recognize `fetch(url, options?)`.

    method comes from `options.method` when it is a string literal; the body
    schema comes from `options.body = JSON.stringify(<object | identifier>)`.
    """
    callee = site.callee
    if callee.type != "identifier" or text_of(callee) != FETCH_NAME:
        return None
    if not site.arguments:
        return None

    url = url_value(site.arguments[0], _resolver(table, site.scope_id))
    if url is None:
        return None

    method = "GET"
    options = unwrap(site.arguments[1]) if len(site.arguments) > 1 else None
    body_fields = None

    if options is not None and options.type == "object":
        method_node = unwrap(find_property(options, "method"))
        if method_node is not None and method_node.type == "string":
            method = string_value(method_node).upper()

        if method in BODY_METHODS:
            payload = _stringify_argument(find_property(options, "body"))
            if payload is not None:
                body_fields = _payload_schema(payload, table, site)

    return CallObservation(
        kind="fetch",
        method=method,
        url=url,
        line=site.line,
        body_fields=body_fields,
    )


def _parse_client_call(site: CallSite, table: ScopeTable) -> Optional[CallObservation]:
    """
    Recognize `<client>.<verb>(url, payload?)` for any object; the client is
    not checked, so wrapped or renamed axios instances are accepted.
    """
    callee = site.callee
    if callee.type != "member_expression":
        return None

    prop = callee.child_by_field_name("property")
    if prop is None:
        return None
    method = _CLIENT_VERBS.get(text_of(prop).lower())
    if method is None:
        return None
    if not site.arguments:
        return None

    url = url_value(site.arguments[0], _resolver(table, site.scope_id))
    if url is None:
        return None

    body_fields = None
    if method in BODY_METHODS and len(site.arguments) > 1:
        body_fields = _payload_schema(site.arguments[1], table, site)

    return CallObservation(
        kind="client",
        method=method,
        url=url,
        line=site.line,
        client=text_of(callee.child_by_field_name("object")) or None,
        body_fields=body_fields,
    )


def _payload_schema(node: Node, table: ScopeTable, site: CallSite) -> Optional[dict[str, SchemaField]]:
    """Object literal -> schema; identifier -> one hop to its initializer; else None."""
    node = unwrap(node)
    if node is None:
        return None
    if node.type == "object":
        return object_schema(node)
    if node.type == "identifier":
        name = text_of(node)
        init = table.resolve_init(site.scope_id, name)
        schema = object_schema(init)
        if schema is None:
            logger.debug("payload_unresolved", identifier=name, line=site.line)
        return schema
    return None


def _stringify_argument(node: Optional[Node]) -> Optional[Node]:
    """`JSON.stringify(x)` -> x."""
    node = unwrap(node)
    if node is None or node.type != "call_expression":
        return None
    fn = node.child_by_field_name("function")
    if fn is None or fn.type != "member_expression":
        return None
    obj = fn.child_by_field_name("object")
    prop = fn.child_by_field_name("property")
    if text_of(obj) != "JSON" or text_of(prop) != "stringify":
        return None
    args = node.child_by_field_name("arguments")
    if args is None or not args.named_children:
        return None
    return args.named_children[0]


def _resolver(table: ScopeTable, scope_id: int):
    return lambda name: table.resolve_init(scope_id, name)
