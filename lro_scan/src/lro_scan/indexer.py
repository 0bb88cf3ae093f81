import logging
import re
from pathlib import Path
from typing import Optional

from tree_sitter import Node, Tree

from lro_scan.src.lro_scan.models.ast_models import FieldInfo, Package, Signature, SourceFile, TypeInfo, TypeRef
from lro_scan.src.lro_scan.tree_sitter_helpers import new_parser, node_text, unquote

logger = logging.getLogger(__name__)

GO_BUILTIN_TYPES = frozenset({
    "any", "bool", "byte", "comparable", "complex64", "complex128", "error", "float32", "float64",
    "int", "int8", "int16", "int32", "int64", "rune", "string",
    "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
})

_MAJOR_VERSION = re.compile(r"^v[0-9]+$")
_BUILD_IGNORE = re.compile(r"^//go:build\s+ignore\s*$", re.MULTILINE)


def default_import_name(import_path: str) -> str:
    """
    Guesses the package name an unaliased import is referred to by.
    Go uses the imported package's clause name; generated SDKs keep it equal to
    the last path element, minus a major-version element and "go-" decorations.
    """
    parts = [p for p in import_path.split("/") if p]
    if not parts:
        return import_path
    name = parts[-1]
    if _MAJOR_VERSION.match(name) and len(parts) > 1:
        name = parts[-2]
    if "." in name:
        # gopkg.in/yaml.v3 -> yaml
        name = name.split(".", 1)[0]
    if name.startswith("go-"):
        name = name[3:]
    if name.endswith("-go"):
        name = name[:-3]
    return name.replace("-", "")


def type_ref_from_node(source_bytes: bytes, node: Optional[Node], imports: dict[str, str],
                       package_path: str) -> Optional[TypeRef]:
    """
    Turns a type expression into a TypeRef. Only named types (possibly behind a
    pointer or with type arguments) resolve; slices, maps, funcs etc. give None.
    """
    if node is None:
        return None
    kind = node.type
    if kind == "type_identifier" or kind == "identifier":
        name = node_text(source_bytes, node)
        if name in GO_BUILTIN_TYPES:
            return TypeRef("", name)
        return TypeRef(package_path, name)
    if kind == "qualified_type":
        pkg_node = node.child_by_field_name("package")
        name_node = node.child_by_field_name("name")
        if pkg_node is None or name_node is None:
            return None
        path = imports.get(node_text(source_bytes, pkg_node))
        if path is None:
            return None
        return TypeRef(path, node_text(source_bytes, name_node))
    if kind == "selector_expression":
        # pkg.Type in expression position, e.g. new(pkg.Type)
        operand = node.child_by_field_name("operand")
        field = node.child_by_field_name("field")
        if operand is None or field is None or operand.type != "identifier":
            return None
        path = imports.get(node_text(source_bytes, operand))
        if path is None:
            return None
        return TypeRef(path, node_text(source_bytes, field))
    if kind == "pointer_type":
        inner = type_ref_from_node(source_bytes, _first_named(node), imports, package_path)
        return inner.as_pointer() if inner is not None else None
    if kind == "generic_type":
        return type_ref_from_node(source_bytes, node.child_by_field_name("type"), imports, package_path)
    if kind == "parenthesized_type":
        return type_ref_from_node(source_bytes, _first_named(node), imports, package_path)
    return None


def _first_named(node: Node) -> Optional[Node]:
    for child in node.named_children:
        if child.type != "comment":
            return child
    return None


def declared_results(source_bytes: bytes, decl: Node, imports: dict[str, str],
                     package_path: str) -> tuple[Optional[TypeRef], ...]:
    """Result types of a function/method declaration, one entry per value."""
    result = decl.child_by_field_name("result")
    if result is None:
        return ()
    if result.type != "parameter_list":
        return (type_ref_from_node(source_bytes, result, imports, package_path),)
    out: list[Optional[TypeRef]] = []
    for param in result.named_children:
        if param.type not in ("parameter_declaration", "variadic_parameter_declaration"):
            continue
        ref = type_ref_from_node(source_bytes, param.child_by_field_name("type"), imports, package_path)
        if param.type == "variadic_parameter_declaration":
            ref = None
        names = param.children_by_field_name("name")
        out.extend([ref] * max(1, len(names)))
    return tuple(out)


# --- The Indexer -------------------------------------------------------------

class GoIndexer:
    """
    Walks Tree-sitter Go ASTs of one package directory to build its declaration
    index: types (with struct fields) -> functions -> methods -> package vars.
    """

    def __init__(self):
        self.parser = new_parser()

    def parse(self, source: bytes) -> Tree:
        return self.parser.parse(source)

    def index_package(self, import_path: str, directory: Path, files: list[Path],
                      root: Optional[Path] = None) -> Package:
        """
        Parses & indexes the given files as one package. Files excluded by a
        ``//go:build ignore`` line are skipped.
        """
        package = Package(path=import_path, name="", directory=directory, root=root)
        for file_path in files:
            source = file_path.read_bytes()
            if _BUILD_IGNORE.search(source.decode("utf-8", errors="replace")):
                logger.debug("skipping %s: build-ignored", file_path)
                continue
            source_file = self.index_source(package, source, file_path)
            if source_file is not None:
                package.files.append(source_file)
        return package

    def index_source(self, package: Package, source: bytes, file_path: Path) -> Optional[SourceFile]:
        """
        Parses one Go file and adds its declarations to ``package``.
        """
        tree = self.parse(source)
        root = tree.root_node
        package_name = self._find_package(source, root)
        if package_name is None:
            logger.warning("skipping %s: no package clause", file_path)
            return None
        if not package.name:
            package.name = package_name
        elif package_name != package.name:
            logger.debug("skipping %s: package %s, expected %s", file_path, package_name, package.name)
            return None
        if root.has_error:
            logger.warning("%s has syntax errors; indexing what parsed", file_path)

        source_file = SourceFile(
            path=file_path,
            source=source,
            tree=tree,
            package_name=package_name,
            imports=self._collect_imports(source, root),
        )
        self._index_declarations(package, source_file)
        return source_file

    # -- AST helpers ----------------------------------------------------------

    def _find_package(self, source_bytes: bytes, root: Node) -> Optional[str]:
        for child in root.children:
            if child.type == "package_clause":
                name_node = _first_named(child)
                if name_node:
                    return node_text(source_bytes, name_node)
        return None

    def _collect_imports(self, source_bytes: bytes, root: Node) -> dict[str, str]:
        """
        Maps each local import name to its path. Blank and dot imports do not
        introduce a name and are left out.
        """
        imports: dict[str, str] = {}
        for decl in root.children:
            if decl.type != "import_declaration":
                continue
            specs = []
            for child in decl.named_children:
                if child.type == "import_spec":
                    specs.append(child)
                elif child.type == "import_spec_list":
                    specs.extend(c for c in child.named_children if c.type == "import_spec")
            for spec in specs:
                path_node = spec.child_by_field_name("path")
                if path_node is None:
                    continue
                path = unquote(node_text(source_bytes, path_node))
                name_node = spec.child_by_field_name("name")
                if name_node is None:
                    imports[default_import_name(path)] = path
                    continue
                alias = node_text(source_bytes, name_node)
                if alias in ("_", "."):
                    continue
                imports[alias] = path
        return imports

    def _index_declarations(self, package: Package, source_file: SourceFile):
        for node in source_file.tree.root_node.children:
            if node.type == "type_declaration":
                for spec in node.named_children:
                    if spec.type in ("type_spec", "type_alias"):
                        self._index_type(package, source_file, spec)
            elif node.type == "function_declaration":
                self._index_function(package, source_file, node)
            elif node.type == "method_declaration":
                self._index_method(package, source_file, node)
            elif node.type == "var_declaration":
                for spec in _var_specs(node):
                    self._index_var(package, source_file, spec)

    def _index_type(self, package: Package, source_file: SourceFile, spec: Node):
        src = source_file.source
        name_node = spec.child_by_field_name("name")
        type_node = spec.child_by_field_name("type")
        if name_node is None or type_node is None:
            return
        name = node_text(src, name_node)
        if spec.type == "type_alias":
            target = type_ref_from_node(src, type_node, source_file.imports, package.path)
            package.types[name] = TypeInfo(package.path, name, "other", alias_of=target)
            return
        if type_node.type == "struct_type":
            fields = self._struct_fields(package, source_file, type_node)
            package.types[name] = TypeInfo(package.path, name, "struct", fields=fields)
        elif type_node.type == "interface_type":
            package.types[name] = TypeInfo(package.path, name, "interface")
        else:
            underlying = type_ref_from_node(src, type_node, source_file.imports, package.path)
            if underlying is not None and (underlying.pointer or underlying.is_builtin):
                underlying = None
            package.types[name] = TypeInfo(package.path, name, "other", defined_from=underlying)

    def _struct_fields(self, package: Package, source_file: SourceFile, struct_node: Node) -> tuple[FieldInfo, ...]:
        src = source_file.source
        fields: list[FieldInfo] = []
        for decl_list in struct_node.named_children:
            if decl_list.type != "field_declaration_list":
                continue
            for decl in decl_list.named_children:
                if decl.type != "field_declaration":
                    continue
                type_node = decl.child_by_field_name("type")
                ref = type_ref_from_node(src, type_node, source_file.imports, package.path)
                names = decl.children_by_field_name("name")
                if names:
                    for n in names:
                        fields.append(FieldInfo(node_text(src, n), ref))
                    continue
                # Embedded: `azure.FutureAPI` or `*BaseClient`
                if ref is not None and any(c.type == "*" for c in decl.children):
                    ref = ref.as_pointer()
                field_name = ref.name if ref is not None else node_text(src, type_node) if type_node else ""
                fields.append(FieldInfo(field_name, ref, embedded=True))
        return tuple(fields)

    def _index_function(self, package: Package, source_file: SourceFile, node: Node):
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = node_text(source_file.source, name_node)
        package.functions[name] = Signature(
            package_path=package.path,
            name=name,
            receiver=None,
            results=declared_results(source_file.source, node, source_file.imports, package.path),
        )

    def _index_method(self, package: Package, source_file: SourceFile, node: Node):
        src = source_file.source
        name_node = node.child_by_field_name("name")
        receiver = self._receiver_ref(package, source_file, node)
        if name_node is None or receiver is None:
            return
        name = node_text(src, name_node)
        package.methods.setdefault(receiver.name, {})[name] = Signature(
            package_path=package.path,
            name=name,
            receiver=receiver,
            results=declared_results(src, node, source_file.imports, package.path),
        )

    def _receiver_ref(self, package: Package, source_file: SourceFile, node: Node) -> Optional[TypeRef]:
        receiver = node.child_by_field_name("receiver")
        if receiver is None:
            return None
        for param in receiver.named_children:
            if param.type == "parameter_declaration":
                ref = type_ref_from_node(source_file.source, param.child_by_field_name("type"),
                                         source_file.imports, package.path)
                if ref is None or ref.package_path != package.path:
                    return None
                return ref
        return None

    def _index_var(self, package: Package, source_file: SourceFile, spec: Node):
        src = source_file.source
        names = [node_text(src, n) for n in spec.children_by_field_name("name")]
        ref = type_ref_from_node(src, spec.child_by_field_name("type"), source_file.imports, package.path)
        values = spec.child_by_field_name("value")
        value_nodes = values.named_children if values is not None else []
        for i, name in enumerate(names):
            if name == "_":
                continue
            var_type = ref
            if var_type is None and i < len(value_nodes):
                var_type = composite_literal_type(src, value_nodes[i], source_file.imports, package.path)
            package.vars[name] = var_type


def _var_specs(node: Node) -> list[Node]:
    specs = []
    for child in node.named_children:
        if child.type == "var_spec":
            specs.append(child)
        elif child.type == "var_spec_list":
            specs.extend(c for c in child.named_children if c.type == "var_spec")
    return specs


def composite_literal_type(source_bytes: bytes, node: Node, imports: dict[str, str],
                           package_path: str) -> Optional[TypeRef]:
    """Type of ``T{...}`` or ``&T{...}``; None for anything else."""
    if node.type == "unary_expression":
        operator = node.child_by_field_name("operator")
        operand = node.child_by_field_name("operand")
        if operator is None or operand is None or node_text(source_bytes, operator) != "&":
            return None
        inner = composite_literal_type(source_bytes, operand, imports, package_path)
        return inner.as_pointer() if inner is not None else None
    if node.type == "composite_literal":
        return type_ref_from_node(source_bytes, node.child_by_field_name("type"), imports, package_path)
    return None
