"""Extract the body of the self-invoking function that wraps a server bundle.

Three strategies are tried in order, each a pure ``str -> str | None``:
the tree-sitter walk, a string-aware brace scanner, and a marker heuristic.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ledgerbuild import jsparse
from ledgerbuild.errors import ParserUnavailableError

IIFE_OPEN_MARKER = "(function"
IIFE_CLOSE_MARKER = "})("
STRICT_MARKERS = ('"use strict"', "'use strict'")

_FUNCTION_NODE_TYPES = frozenset({"function_expression", "function", "arrow_function"})
_QUOTES = frozenset({'"', "'", "`"})


@dataclass(frozen=True, slots=True)
class Extraction:
    body: str
    strategy: str


def _block_from_callee(callee: Any) -> Any | None:
    if callee is None:
        return None
    if callee.type == "parenthesized_expression":
        inner = callee.named_children
        callee = inner[0] if len(inner) == 1 else None
        if callee is None:
            return None
    if callee.type not in _FUNCTION_NODE_TYPES:
        return None
    body = callee.child_by_field_name("body")
    if body is None or body.type != "statement_block":
        return None
    return body


def extract_with_parser(text: str) -> str | None:
    source = text.encode("utf-8")
    try:
        tree = jsparse.parse(source)
    except ParserUnavailableError:
        return None
    root = tree.root_node
    if root.has_error:
        return None

    block = None
    for statement in root.named_children:
        if statement.type != "expression_statement" or not statement.named_children:
            continue
        expression = statement.named_children[0]
        if expression.type != "call_expression":
            continue
        block = _block_from_callee(expression.child_by_field_name("function"))
        if block is not None:
            break
    if block is None:
        return None

    body = source[block.start_byte:block.end_byte].decode("utf-8")
    if body.startswith("{") and body.endswith("}"):
        body = body[1:-1]
    return body


def extract_by_braces(text: str) -> str | None:
    """Slice between the wrapper's outer braces, skipping braces in strings.

    Braces inside ``${...}`` template expressions are not tracked, and
    comments are not skipped: a quote in ``// don't ...`` opens a string
    that may never close, and the scan then finds nothing.
    """
    start = text.find(IIFE_OPEN_MARKER)
    if start == -1:
        return None
    open_idx = text.find("{", start)
    if open_idx == -1:
        return None

    depth = 1
    quote: str | None = None
    escaped = False
    index = open_idx + 1
    while index < len(text):
        ch = text[index]
        if quote is not None:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[open_idx + 1:index]
        index += 1
    return None


def extract_by_markers(text: str) -> str | None:
    """Last resort: everything after the strict prologue up to the last closer."""
    start = 0
    for marker in STRICT_MARKERS:
        found = text.find(marker)
        if found != -1:
            start = found + len(marker)
            break
    end = text.rfind(IIFE_CLOSE_MARKER)
    if end <= start:
        return None
    return text[start:end]


Strategy = Callable[[str], str | None]

EXTRACTION_STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("ast", extract_with_parser),
    ("braces", extract_by_braces),
    ("markers", extract_by_markers),
)


def extract_iife_body(
    text: str,
    strategies: tuple[tuple[str, Strategy], ...] = EXTRACTION_STRATEGIES,
) -> Extraction | None:
    for name, strategy in strategies:
        body = strategy(text)
        if body:
            return Extraction(body=body, strategy=name)
    return None
