"""AST helper functions for tree-sitter C parsing."""

from typing import Iterator

from tree_sitter import Node

# Declarator wrappers whose name sits under their "declarator" field
_WRAPPING_DECLARATORS = {
    "init_declarator",
    "pointer_declarator",
    "array_declarator",
    "function_declarator",
    "attributed_declarator",
}


def get_node_text(node: Node | None) -> str:
    """Extract text content from a tree-sitter node."""
    if not node:
        return ""
    return node.text.decode("utf-8", errors="replace")


def find_nodes_by_type(node: Node | None, node_type: str) -> list[Node]:
    """All descendants of ``node`` (itself included) of one type, in source order."""
    if node is None:
        return []
    found = []
    pending = [node]
    while pending:
        current = pending.pop()
        if current.type == node_type:
            found.append(current)
        pending.extend(reversed(current.children))
    return found


def get_parent_of_type(node: Node, parent_type: str) -> Node | None:
    """Nearest enclosing node of ``parent_type``."""
    ancestor = node.parent
    while ancestor is not None and ancestor.type != parent_type:
        ancestor = ancestor.parent
    return ancestor


def is_inside_function(node: Node) -> bool:
    """True for nodes nested in a function body or signature."""
    return get_parent_of_type(node, "function_definition") is not None


def get_line_number(node: Node) -> int:
    row, _ = node.start_point
    return row + 1


def get_declarator_name(declarator: Node | None) -> str | None:
    """Name introduced by a (possibly nested) C declarator."""
    current = declarator
    while current is not None:
        if current.type in ("identifier", "field_identifier", "type_identifier"):
            return get_node_text(current)
        if current.type in _WRAPPING_DECLARATORS:
            current = current.child_by_field_name("declarator")
        elif current.type == "parenthesized_declarator":
            current = current.named_children[0] if current.named_children else None
        else:
            return None
    return None


def is_function_prototype(declarator: Node | None) -> bool:
    """True for ``name(args)`` declarators, false for function pointers."""
    current = declarator
    while current is not None and current.type == "pointer_declarator":
        current = current.child_by_field_name("declarator")
    if current is None or current.type != "function_declarator":
        return False
    inner = current.child_by_field_name("declarator")
    return inner is not None and inner.type == "identifier"


def get_function_name(node: Node) -> str | None:
    """Extract function name from a function_definition node."""
    if node.type != "function_definition":
        return None
    declarator = node.child_by_field_name("declarator")
    while declarator is not None and declarator.type == "pointer_declarator":
        declarator = declarator.child_by_field_name("declarator")
    if declarator is None or declarator.type != "function_declarator":
        return None
    return get_declarator_name(declarator)


def iter_declarators(declaration: Node) -> Iterator[Node]:
    """Yield every declarator of a declaration or parameter_declaration."""
    yield from declaration.children_by_field_name("declarator")


def iter_calls(node: Node | None) -> Iterator[Node]:
    """Yield call_expression nodes in evaluation order (operands first)."""
    if node is None:
        return
    for child in node.children:
        yield from iter_calls(child)
    if node.type == "call_expression":
        yield node
