# --- Tree-sitter plumbing ----------------------------------------------------
from functools import lru_cache

from tree_sitter import Language, Parser

from lro_scan.src.lro_scan.errors import GrammarLoadError


@lru_cache(maxsize=1)
def load_go_language() -> Language:
    """
    Loads the Tree-sitter Go grammar shipped by the ``tree-sitter-go`` wheel.
    """
    try:
        import tree_sitter_go
    except ModuleNotFoundError as exc:
        raise GrammarLoadError(
            "Could not load Go grammar.\n"
            "- Install `tree-sitter-go` (pip install tree-sitter-go) next to `tree-sitter`."
        ) from exc
    return Language(tree_sitter_go.language())


def new_parser() -> Parser:
    """Parsers are not shared between threads; make one per indexer."""
    return Parser(load_go_language())


def node_text(source_bytes: bytes, node) -> str:
    """
    Converts a node's [start_byte:end_byte] into the corresponding string.
    Tree-sitter nodes only store byte offsets, so we slice the original source.
    """
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def node_point(node) -> tuple[int, int]:
    """
    Returns the (line, column) of a node's start in 0-based coordinates.
    """
    return (node.start_point[0], node.start_point[1])


def node_span(node) -> tuple[int, int]:
    """Byte span used as the key of a file's ``uses`` table."""
    return (node.start_byte, node.end_byte)


def unquote(literal: str) -> str:
    """Strips the quotes of an interpreted ("...") or raw (`...`) string literal."""
    if len(literal) >= 2 and literal[0] in "\"`" and literal[-1] == literal[0]:
        return literal[1:-1]
    return literal


def receiver_type_name(source_bytes: bytes, method_node):
    """
    Name of the type a ``method_declaration`` is declared on, ignoring the
    pointer and any type parameters: ``func (c *Client[T]) Do()`` -> "Client".
    """
    receiver = method_node.child_by_field_name("receiver")
    if receiver is None:
        return None
    for param in receiver.named_children:
        if param.type != "parameter_declaration":
            continue
        type_node = param.child_by_field_name("type")
        while type_node is not None and type_node.type in ("pointer_type", "parenthesized_type", "generic_type"):
            if type_node.type == "generic_type":
                type_node = type_node.child_by_field_name("type")
            else:
                type_node = type_node.named_children[0] if type_node.named_children else None
        if type_node is not None and type_node.type == "type_identifier":
            return node_text(source_bytes, type_node)
        return None
    return None
