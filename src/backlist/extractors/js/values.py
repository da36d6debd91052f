from __future__ import annotations

from typing import Callable, Optional

from tree_sitter import Node

from backlist.domain.models import SchemaField, SchemaType

# identifier name -> initializer node (one hop, supplied by the caller's scope)
Resolver = Callable[[str], Optional[Node]]

_WRAPPERS = frozenset(
    {"parenthesized_expression", "as_expression", "satisfies_expression", "non_null_expression"}
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def text_of(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="ignore")


def unwrap(node: Optional[Node]) -> Optional[Node]:
    """Strip `( ... )`, `x as T`, `x satisfies T` and `x!` down to the inner expression."""
    while node is not None and node.type in _WRAPPERS:
        inner = node.named_children[0] if node.named_children else None
        if inner is None:
            break
        node = inner
    return node


def string_value(node: Node) -> str:
    parts: list[str] = []
    for child in node.children:
        if child.type == "string_fragment":
            parts.append(text_of(child))
        elif child.type == "escape_sequence":
            parts.append(_decode_escape(text_of(child)))
    return "".join(parts)


def _decode_escape(raw: str) -> str:
    if len(raw) == 2:
        return _SIMPLE_ESCAPES.get(raw[1], raw[1])
    # \uXXXX, \xXX, line continuations: keep verbatim
    return raw


class _Placeholders:
    """Numbers embedded expressions 1..N across one composite URL."""

    def __init__(self) -> None:
        self.position = 0

    def render(self, expr: Optional[Node]) -> str:
        self.position += 1
        expr = unwrap(expr)
        if expr is not None and expr.type == "identifier":
            return "{" + text_of(expr) + "}"
        return "{param" + str(self.position) + "}"


def _template_text(node: Node, ph: _Placeholders) -> str:
    # Rebuild from byte offsets so the result does not depend on how a given
    # grammar version splits template text into child nodes.
    raw = node.text or b""
    base = node.start_byte
    cursor = 1  # skip opening backtick
    out: list[str] = []
    for child in node.children:
        if child.type != "template_substitution":
            continue
        out.append(raw[cursor : child.start_byte - base].decode("utf-8", errors="ignore"))
        inner = child.named_children[0] if child.named_children else None
        out.append(ph.render(inner))
        cursor = child.end_byte - base
    out.append(raw[cursor : len(raw) - 1].decode("utf-8", errors="ignore"))
    return "".join(out)


def _concat_operands(node: Node) -> Optional[list[Node]]:
    """Flatten `a + b + c` into [a, b, c]; None if this is not a `+` chain."""
    node = unwrap(node)
    if node is None or node.type != "binary_expression":
        return None
    op = node.child_by_field_name("operator")
    if op is None or text_of(op) != "+":
        return None
    out: list[Node] = []
    for side in (node.child_by_field_name("left"), node.child_by_field_name("right")):
        if side is None:
            return None
        nested = _concat_operands(side)
        if nested is not None:
            out.extend(nested)
        else:
            out.append(unwrap(side) or side)
    return out


def _literal_url(node: Node, ph: _Placeholders) -> Optional[str]:
    if node.type == "string":
        return string_value(node)
    if node.type == "template_string":
        return _template_text(node, ph)
    operands = _concat_operands(node)
    if operands is None:
        return None
    if not any(o.type in ("string", "template_string") for o in operands):
        # numeric addition or identifier-only concatenation: not a URL
        return None
    out: list[str] = []
    for o in operands:
        if o.type == "string":
            out.append(string_value(o))
        elif o.type == "template_string":
            out.append(_template_text(o, ph))
        else:
            out.append(ph.render(o))
    return "".join(out)


def url_value(node: Optional[Node], resolve: Optional[Resolver] = None) -> Optional[str]:
    """
    Reconstruct URL text from a string literal, template string or `+`
    concatenation. Dynamic pieces become `{name}` / `{paramN}` placeholders.

    A bare identifier is resolved once through `resolve`; the initializer must
    itself be a literal or composite string (no second hop).
    """
    node = unwrap(node)
    if node is None:
        return None

    if node.type == "identifier":
        if resolve is None:
            return None
        init = unwrap(resolve(text_of(node)))
        if init is None or init.type == "identifier":
            return None
        return _literal_url(init, _Placeholders())

    return _literal_url(node, _Placeholders())


def infer_type(node: Optional[Node]) -> SchemaType:
    node = unwrap(node)
    if node is None:
        return "String"
    if node.type == "number":
        return "Number"
    if node.type in ("true", "false"):
        return "Boolean"
    return "String"


def _property_key(key: Optional[Node]) -> Optional[str]:
    if key is None:
        return None
    if key.type in ("property_identifier", "identifier", "private_property_identifier"):
        return text_of(key)
    if key.type == "string":
        return string_value(key)
    if key.type == "number":
        return text_of(key)
    return None  # computed keys


def object_schema(node: Optional[Node]) -> Optional[dict[str, SchemaField]]:
    """Field name -> SchemaField for an object literal; None for anything else."""
    node = unwrap(node)
    if node is None or node.type != "object":
        return None

    fields: dict[str, SchemaField] = {}
    for prop in node.named_children:
        if prop.type == "pair":
            name = _property_key(prop.child_by_field_name("key"))
            if name is None:
                continue
            fields[name] = SchemaField(name=name, inferred_type=infer_type(prop.child_by_field_name("value")))
        elif prop.type == "shorthand_property_identifier":
            name = text_of(prop)
            fields[name] = SchemaField(name=name, inferred_type="String")
        # spread_element, method_definition, comments: skipped
    return fields


def find_property(obj: Node, name: str) -> Optional[Node]:
    """Value node of `name: value` in an object literal (first match)."""
    for prop in obj.named_children:
        if prop.type != "pair":
            continue
        if _property_key(prop.child_by_field_name("key")) == name:
            return prop.child_by_field_name("value")
    return None
