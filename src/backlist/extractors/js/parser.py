from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Node, Parser, Tree

from backlist.domain.errors import ParseError

_GRAMMAR_BY_SUFFIX = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
}

# grammars that get a second attempt when the first parse has errors
_FALLBACK_GRAMMAR = {
    "javascript": "tsx",
}


@lru_cache(maxsize=None)
def _language(grammar: str) -> Language:
    if grammar == "javascript":
        return Language(tsjavascript.language())
    if grammar == "typescript":
        return Language(tstypescript.language_typescript())
    if grammar == "tsx":
        return Language(tstypescript.language_tsx())
    raise ValueError(f"Unknown grammar: {grammar}")


def grammar_for_path(path: str | Path) -> str:
    """
    JSX lives in the javascript grammar; .ts files use the plain typescript
    grammar because `<T>value` casts are ambiguous with JSX.
    """
    return _GRAMMAR_BY_SUFFIX.get(Path(path).suffix.lower(), "tsx")


def parse_source(source: str, grammar: str = "tsx") -> Tree:
    """
    Parse JS/TS source into a tree-sitter Tree.

    tree-sitter always produces a tree; a tree containing ERROR or MISSING
    nodes is reported as ParseError so a half-understood file never feeds
    guesses into the endpoint list.
    """
    data = source.encode("utf-8")
    tree = _parse(data, grammar)

    fallback = _FALLBACK_GRAMMAR.get(grammar)
    if tree.root_node.has_error and fallback is not None:
        # plain .js files may still carry type annotations
        retry = _parse(data, fallback)
        if not retry.root_node.has_error:
            return retry

    if tree.root_node.has_error:
        bad = _first_error(tree.root_node)
        where = f"line {bad.start_point[0] + 1}" if bad is not None else "unknown position"
        raise ParseError(f"syntax error near {where} ({grammar})")
    return tree


def _parse(data: bytes, grammar: str) -> Tree:
    # Parser objects are not shared across threads; they are cheap to build.
    return Parser(_language(grammar)).parse(data)


def _first_error(root: Node) -> Node | None:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None
