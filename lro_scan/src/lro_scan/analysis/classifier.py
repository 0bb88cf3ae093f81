"""Call-site classification shared by both rules.

One traversal per file yields a ``CallSite`` for every assignment whose only
right-hand value is a selector call. Each rule is a predicate over that value.
"""
import logging
from typing import Iterator

from lro_scan.src.lro_scan.config import ScanConfig, is_async_name, is_sync_name
from lro_scan.src.lro_scan.models.ast_models import CallSite, Package, SourceFile
from lro_scan.src.lro_scan.tree_sitter_helpers import node_span, node_text

logger = logging.getLogger(__name__)

ASSIGNMENT_NODE_TYPES = ("short_var_declaration", "assignment_statement")
BLANK_IDENTIFIER = "_"


def iter_call_sites(package: Package, include_bare_calls: bool = False) -> Iterator[CallSite]:
    """
    Lazily yields call sites of ``package`` in file order, then source order.
    """
    for source_file in package.files:
        stack = [source_file.tree.root_node]
        while stack:
            node = stack.pop()
            site = _classify(package, source_file, node, include_bare_calls)
            if site is not None:
                yield site
            stack.extend(reversed(node.children))


def _classify(package: Package, source_file: SourceFile, node, include_bare_calls: bool):
    src = source_file.source
    if node.type in ASSIGNMENT_NODE_TYPES:
        if node.type == "assignment_statement":
            operator = node.child_by_field_name("operator")
            if operator is not None and node_text(src, operator) != "=":
                return None
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is None or right is None or len(right.named_children) != 1:
            return None
        targets = tuple(node_text(src, t) for t in left.named_children)
        call = right.named_children[0]
    elif include_bare_calls and node.type == "expression_statement":
        if not node.named_children:
            return None
        targets = ()
        call = node.named_children[0]
    else:
        return None

    if call.type != "call_expression":
        return None
    function = call.child_by_field_name("function")
    if function is None or function.type != "selector_expression":
        return None
    field = function.child_by_field_name("field")
    if field is None:
        return None

    symbol = source_file.uses.get(node_span(field))
    if symbol is None:
        logger.debug("%s: %s is unresolved", package.format_position(source_file, field), node_text(src, field))
    return CallSite(
        name=node_text(src, field),
        signature=symbol.declaration if symbol is not None else None,
        targets=targets,
        position=package.format_position(source_file, node),
        name_position=package.format_position(source_file, field),
    )


def is_track1_shape(site: CallSite) -> bool:
    """``_, err := x.Call()``: exactly two targets, the first one blank."""
    return len(site.targets) == 2 and site.targets[0] == BLANK_IDENTIFIER


def is_pandora_shape(cfg: ScanConfig, site: CallSite) -> bool:
    """A Create/Update/Delete-named call that is not already the polling variant."""
    return is_sync_name(cfg, site.name) and not is_async_name(cfg, site.name)
