"""Thin wrapper over the tree-sitter JavaScript grammar."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from ledgerbuild.errors import JsSyntaxError, ParserUnavailableError


@lru_cache(maxsize=1)
def load_parser() -> Any:
    try:
        import tree_sitter_javascript
        from tree_sitter import Language, Parser
    except ImportError as exc:
        raise ParserUnavailableError(
            "JavaScript parsing requires tree-sitter and tree-sitter-javascript"
        ) from exc
    try:
        return Parser(Language(tree_sitter_javascript.language()))
    except (TypeError, ValueError) as exc:
        raise ParserUnavailableError(f"tree-sitter JavaScript grammar is unusable: {exc}") from exc


def parse(source: bytes) -> Any:
    """Parse UTF-8 ``source`` and return the tree-sitter tree."""
    return load_parser().parse(source)


def first_error(root: Any) -> Any | None:
    """Depth-first search for the first ERROR or MISSING node."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None


_FUNCTION_TYPES = frozenset(
    {
        "function_declaration",
        "function_expression",
        "function",
        "generator_function_declaration",
        "generator_function",
        "arrow_function",
        "method_definition",
        "class_static_block",
    }
)
_LOOP_TYPES = frozenset({"for_statement", "for_in_statement", "while_statement", "do_statement"})


def _semantic_error(node: Any, in_function: bool, in_loop: bool, in_switch: bool) -> str | None:
    kind = node.type
    if kind == "return_statement" and not in_function:
        return "illegal return statement"
    if kind == "try_statement":
        handler = node.child_by_field_name("handler")
        finalizer = node.child_by_field_name("finalizer")
        if handler is None and finalizer is None:
            return "missing catch or finally after try"
    if kind in ("break_statement", "continue_statement"):
        # Labelled jumps are resolved against their label, not the loop.
        if node.child_by_field_name("label") is not None:
            return None
        if kind == "continue_statement" and not in_loop:
            return "illegal continue statement"
        if kind == "break_statement" and not (in_loop or in_switch):
            return "illegal break statement"
    return None


def check_semantics(root: Any) -> None:
    """Reject constructs tree-sitter accepts but a JavaScript engine does not.

    Covers ``return`` outside a function, ``try`` without ``catch`` or
    ``finally``, and unlabelled ``break``/``continue`` outside a loop or
    ``switch``.
    """
    stack: list[tuple[Any, bool, bool, bool]] = [(root, False, False, False)]
    while stack:
        node, in_function, in_loop, in_switch = stack.pop()
        message = _semantic_error(node, in_function, in_loop, in_switch)
        if message is not None:
            line = node.start_point[0] + 1
            raise JsSyntaxError(f"{message} at line {line}", line=line)
        if node.type in _FUNCTION_TYPES:
            in_function, in_loop, in_switch = True, False, False
        elif node.type in _LOOP_TYPES:
            in_loop = True
        elif node.type == "switch_statement":
            in_switch = True
        for child in reversed(node.named_children):
            stack.append((child, in_function, in_loop, in_switch))


def check_syntax(code: str) -> None:
    """Raise JsSyntaxError unless ``code`` is a well-formed classic script."""
    root = parse(code.encode("utf-8")).root_node
    if root.has_error:
        node = first_error(root)
        line = node.start_point[0] + 1 if node is not None else None
        kind = "missing token" if node is not None and node.is_missing else "unexpected token"
        raise JsSyntaxError(f"{kind} at line {line}", line=line)
    check_semantics(root)
