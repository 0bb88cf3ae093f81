import logging
from typing import Callable, Optional

from tree_sitter import Node

from lro_scan.src.lro_scan.indexer import composite_literal_type, type_ref_from_node
from lro_scan.src.lro_scan.models.ast_models import Package, Signature, SourceFile, Symbol, TypeInfo, TypeRef
from lro_scan.src.lro_scan.tree_sitter_helpers import node_span, node_text

logger = logging.getLogger(__name__)

# Embedding chains deeper than this are not followed.
MAX_EMBED_DEPTH = 4

# Receiver expressions nested deeper than this are left unresolved.
MAX_INFER_DEPTH = 64

Scope = dict[str, Optional[TypeRef]]  # local name -> type; None = local of unknown type

# Statements that bind local names once their subtree has been resolved.
BINDING_NODE_TYPES = ("short_var_declaration", "var_spec", "range_clause")


def lookup_type(get_package: Callable[[str], Optional[Package]], ref: TypeRef, depth: int = 0) -> Optional[TypeInfo]:
    """
    Finds the declaration of a named type, following aliases. For ``type X Y``
    the fields of Y are reported under X, like Go's underlying type.
    """
    if ref.is_builtin or depth > MAX_EMBED_DEPTH:
        return None
    package = get_package(ref.package_path)
    if package is None:
        return None
    info = package.types.get(ref.name)
    if info is None:
        return None
    if info.alias_of is not None:
        return lookup_type(get_package, info.alias_of, depth + 1)
    if info.defined_from is not None:
        target = lookup_type(get_package, info.defined_from, depth + 1)
        if target is None:
            return None
        return TypeInfo(info.package_path, info.name, target.kind, fields=target.fields)
    return info


class CallResolver:
    """
    Resolves selector calls of one package to their declared signatures and
    records them in each file's ``uses`` table, keyed by the selector
    identifier. Local types are tracked in statement order per function body.
    Anything that cannot be resolved is simply not recorded.
    """

    def __init__(self, package: Package, get_package: Callable[[str], Optional[Package]]):
        self.package = package
        self.get_package = get_package

    def resolve(self) -> Package:
        for source_file in self.package.files:
            self._resolve_file(source_file)
        self.package.resolved = True
        return self.package

    def _resolve_file(self, source_file: SourceFile):
        for decl in source_file.tree.root_node.children:
            if decl.type not in ("function_declaration", "method_declaration"):
                continue
            body = decl.child_by_field_name("body")
            if body is None:
                continue
            scope: Scope = {}
            if decl.type == "method_declaration":
                self._bind_parameters(source_file, decl.child_by_field_name("receiver"), scope)
            self._bind_parameters(source_file, decl.child_by_field_name("parameters"), scope)
            self._bind_named_results(source_file, decl, scope)
            self._walk(source_file, body, scope)

    # -- scope building -------------------------------------------------------

    def _bind_parameters(self, source_file: SourceFile, params: Optional[Node], scope: Scope):
        if params is None:
            return
        src = source_file.source
        for param in params.named_children:
            if param.type not in ("parameter_declaration", "variadic_parameter_declaration"):
                continue
            ref = type_ref_from_node(src, param.child_by_field_name("type"), source_file.imports, self.package.path)
            if param.type == "variadic_parameter_declaration":
                ref = None
            for name_node in param.children_by_field_name("name"):
                scope[node_text(src, name_node)] = ref

    def _bind_named_results(self, source_file: SourceFile, decl: Node, scope: Scope):
        result = decl.child_by_field_name("result")
        if result is not None and result.type == "parameter_list":
            self._bind_parameters(source_file, result, scope)

    def _walk(self, source_file: SourceFile, body: Node, scope: Scope):
        """
        DFS in source order with an explicit stack. Right-hand sides are
        resolved before the names on the left are bound, so
        ``c, err := c.Get()`` sees the outer ``c``.
        """
        stack: list[tuple[Node, Scope, bool]] = [(body, scope, False)]
        while stack:
            node, scope, children_done = stack.pop()
            kind = node.type
            if children_done:
                self._bind(source_file, node, scope)
                continue
            if kind == "func_literal":
                inner = dict(scope)
                self._bind_parameters(source_file, node.child_by_field_name("parameters"), inner)
                inner_body = node.child_by_field_name("body")
                if inner_body is not None:
                    stack.append((inner_body, inner, False))
                continue
            if kind == "call_expression":
                self._record_call(source_file, node, scope)
            if kind in BINDING_NODE_TYPES:
                stack.append((node, scope, True))
            stack.extend((child, scope, False) for child in reversed(node.children))

    def _bind(self, source_file: SourceFile, node: Node, scope: Scope):
        kind = node.type
        if kind == "short_var_declaration":
            self._bind_assignment(source_file, node, scope)
        elif kind == "var_spec":
            self._bind_var_spec(source_file, node, scope)
        elif kind == "range_clause":
            left = node.child_by_field_name("left")
            if left is not None:
                for target in left.named_children:
                    if target.type == "identifier":
                        scope[node_text(source_file.source, target)] = None

    def _bind_assignment(self, source_file: SourceFile, node: Node, scope: Scope):
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is None or right is None:
            return
        targets = left.named_children
        values = right.named_children
        types: list[Optional[TypeRef]]
        if len(values) == 1 and len(targets) > 1:
            types = list(self._call_results(source_file, values[0], scope))
        else:
            types = [self.infer(source_file, v, scope) for v in values]
        for i, target in enumerate(targets):
            if target.type != "identifier":
                continue
            name = node_text(source_file.source, target)
            if name != "_":
                scope[name] = types[i] if i < len(types) else None

    def _bind_var_spec(self, source_file: SourceFile, spec: Node, scope: Scope):
        src = source_file.source
        names = spec.children_by_field_name("name")
        ref = type_ref_from_node(src, spec.child_by_field_name("type"), source_file.imports, self.package.path)
        values_node = spec.child_by_field_name("value")
        values = values_node.named_children if values_node is not None else []
        types: list[Optional[TypeRef]] = []
        if ref is None and len(values) == 1 and len(names) > 1:
            types = list(self._call_results(source_file, values[0], scope))
        elif ref is None:
            types = [self.infer(source_file, v, scope) for v in values]
        for i, name_node in enumerate(names):
            name = node_text(src, name_node)
            if name == "_":
                continue
            scope[name] = ref if ref is not None else (types[i] if i < len(types) else None)

    def _call_results(
        self, source_file: SourceFile, node: Node, scope: Scope, depth: int = 0
    ) -> tuple[Optional[TypeRef], ...]:
        while node.type == "parenthesized_expression" and node.named_children:
            node = node.named_children[0]
        if node.type != "call_expression":
            return ()
        signature = self.resolve_call(source_file, node, scope, depth)
        return signature.results if signature is not None else ()

    # -- resolution -----------------------------------------------------------

    def _record_call(self, source_file: SourceFile, call: Node, scope: Scope):
        function = call.child_by_field_name("function")
        if function is None or function.type != "selector_expression":
            return
        field = function.child_by_field_name("field")
        signature = self.resolve_call(source_file, call, scope)
        if field is None or signature is None:
            return
        source_file.uses[node_span(field)] = Symbol(
            name=node_text(source_file.source, field),
            declaration=signature,
            package_path=signature.package_path,
        )

    def resolve_call(self, source_file: SourceFile, call: Node, scope: Scope, depth: int = 0) -> Optional[Signature]:
        src = source_file.source
        function = call.child_by_field_name("function")
        if function is None:
            return None
        if function.type == "identifier":
            name = node_text(src, function)
            if name in scope:
                return None
            if name == "new":
                return self._builtin_new(source_file, call)
            return self.package.functions.get(name)
        if function.type != "selector_expression":
            return None

        operand = function.child_by_field_name("operand")
        field = function.child_by_field_name("field")
        if operand is None or field is None:
            return None
        name = node_text(src, field)
        imported = self._imported_package(source_file, operand, scope)
        if imported is not None:
            return imported.functions.get(name)
        receiver = self.infer(source_file, operand, scope, depth + 1)
        if receiver is None:
            logger.debug("%s: receiver of %s not resolved", source_file.path, name)
            return None
        return self.lookup_method(receiver, name)

    def _builtin_new(self, source_file: SourceFile, call: Node) -> Optional[Signature]:
        args = call.child_by_field_name("arguments")
        if args is None or not args.named_children:
            return None
        ref = type_ref_from_node(source_file.source, args.named_children[0], source_file.imports, self.package.path)
        if ref is None:
            return None
        return Signature(package_path="", name="new", receiver=None, results=(ref.as_pointer(),))

    def _imported_package(self, source_file: SourceFile, operand: Node, scope: Scope) -> Optional[Package]:
        if operand.type != "identifier":
            return None
        alias = node_text(source_file.source, operand)
        if alias in scope or alias in self.package.vars:
            return None
        path = source_file.imports.get(alias)
        if path is None:
            return None
        return self.get_package(path)

    def infer(self, source_file: SourceFile, node: Node, scope: Scope, depth: int = 0) -> Optional[TypeRef]:
        """Best-effort static type of an expression, None when unknown."""
        src = source_file.source
        kind = node.type
        if depth > MAX_INFER_DEPTH:
            return None
        if kind == "identifier":
            name = node_text(src, node)
            if name in scope:
                return scope[name]
            return self.package.vars.get(name)
        if kind == "type_assertion_expression":
            return type_ref_from_node(src, node.child_by_field_name("type"), source_file.imports, self.package.path)
        if kind == "parenthesized_expression":
            return self.infer(source_file, node.named_children[0], scope, depth + 1) if node.named_children else None
        if kind in ("composite_literal", "unary_expression"):
            if kind == "unary_expression":
                operator = node.child_by_field_name("operator")
                operand = node.child_by_field_name("operand")
                if operator is not None and operand is not None and node_text(src, operator) == "*":
                    inner = self.infer(source_file, operand, scope, depth + 1)
                    return inner.base() if inner is not None else None
                if operator is not None and operand is not None and node_text(src, operator) == "&" \
                        and operand.type != "composite_literal":
                    inner = self.infer(source_file, operand, scope, depth + 1)
                    return inner.as_pointer() if inner is not None else None
            return composite_literal_type(src, node, source_file.imports, self.package.path)
        if kind == "call_expression":
            results = self._call_results(source_file, node, scope, depth + 1)
            return results[0] if results else None
        if kind == "selector_expression":
            operand = node.child_by_field_name("operand")
            field = node.child_by_field_name("field")
            if operand is None or field is None:
                return None
            name = node_text(src, field)
            imported = self._imported_package(source_file, operand, scope)
            if imported is not None:
                return imported.vars.get(name)
            owner = self.infer(source_file, operand, scope, depth + 1)
            if owner is None:
                return None
            return self.field_type(owner, name)
        return None

    def lookup_method(self, receiver: TypeRef, name: str, depth: int = 0) -> Optional[Signature]:
        """Finds a method on a named type, including methods promoted by embedding."""
        if receiver.is_builtin or depth > MAX_EMBED_DEPTH:
            return None
        package = self.get_package(receiver.package_path)
        if package is None:
            return None
        method = package.methods.get(receiver.name, {}).get(name)
        if method is not None:
            return method
        info = package.types.get(receiver.name)
        if info is None:
            return None
        if info.alias_of is not None:
            return self.lookup_method(info.alias_of, name, depth + 1)
        for f in info.fields:
            if f.embedded and f.type is not None:
                promoted = self.lookup_method(f.type.base(), name, depth + 1)
                if promoted is not None:
                    return promoted
        return None

    def field_type(self, owner: TypeRef, name: str, depth: int = 0) -> Optional[TypeRef]:
        if depth > MAX_EMBED_DEPTH:
            return None
        info = lookup_type(self.get_package, owner.base())
        if info is None:
            return None
        for f in info.fields:
            if f.name == name:
                return f.type
        for f in info.fields:
            if f.embedded and f.type is not None:
                found = self.field_type(f.type, name, depth + 1)
                if found is not None:
                    return found
        return None


def resolve_package(package: Package, get_package: Callable[[str], Optional[Package]]) -> Package:
    """Fills the ``uses`` tables of every file in ``package``."""
    if package.resolved:
        return package
    return CallResolver(package, get_package).resolve()


