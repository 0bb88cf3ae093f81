# --- Data models for the Go program model and the scan results --------------
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from lro_scan.src.lro_scan.tree_sitter_helpers import node_point


@dataclass(frozen=True)
class TypeRef:
    """Reference to a named Go type, e.g. ``*compute.VirtualMachinesClient``."""
    package_path: str  # import path of the declaring package ("" for builtins like error)
    name: str  # type name without package qualifier
    pointer: bool = False

    @property
    def key(self) -> str:
        """Canonical ``path.Name`` string; the pointer flag is not part of it."""
        return f"{self.package_path}.{self.name}"

    @property
    def is_builtin(self) -> bool:
        return self.package_path == ""

    def base(self) -> "TypeRef":
        return TypeRef(self.package_path, self.name) if self.pointer else self

    def as_pointer(self) -> "TypeRef":
        return TypeRef(self.package_path, self.name, pointer=True)

    def __str__(self) -> str:
        star = "*" if self.pointer else ""
        if self.is_builtin:
            return star + self.name
        return f"{star}{self.key}"


@dataclass(frozen=True)
class FieldInfo:
    """A struct field. Embedded fields are named after their type."""
    name: str
    type: Optional[TypeRef]  # None when the field type is not a named type
    embedded: bool = False


@dataclass(frozen=True)
class TypeInfo:
    """A type declaration (``type X struct {...}``, ``type X = Y``, ``type X Y``)."""
    package_path: str
    name: str
    kind: str  # "struct" | "interface" | "other"
    fields: tuple[FieldInfo, ...] = ()
    alias_of: Optional[TypeRef] = None  # type X = Y
    defined_from: Optional[TypeRef] = None  # type X Y, underlying taken from Y


@dataclass(frozen=True)
class Signature:
    """Declared function or method: where it lives, its receiver and results."""
    package_path: str
    name: str
    receiver: Optional[TypeRef]  # None for plain functions
    results: tuple[Optional[TypeRef], ...] = ()

    @property
    def is_method(self) -> bool:
        return self.receiver is not None


@dataclass(frozen=True)
class Symbol:
    """An identifier use together with the declaration it resolves to."""
    name: str
    declaration: Signature
    package_path: str  # defining package


@dataclass(frozen=True)
class Position:
    filename: str
    line: int  # 1-based
    column: int  # 1-based

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


@dataclass
class SourceFile:
    """One parsed Go file of a package."""
    path: Path
    source: bytes
    tree: Any  # tree_sitter.Tree
    package_name: str
    imports: dict[str, str] = field(default_factory=dict)  # local alias -> import path
    uses: dict[tuple[int, int], Symbol] = field(default_factory=dict)  # ident byte span -> symbol


@dataclass
class Package:
    """Information about one Go package (one directory)."""
    path: str  # import path, e.g. "github.com/acme/infra/compute"
    name: str  # package clause name
    directory: Path
    root: Optional[Path] = None  # scan root; positions are printed relative to it
    files: list[SourceFile] = field(default_factory=list)
    types: dict[str, TypeInfo] = field(default_factory=dict)
    functions: dict[str, Signature] = field(default_factory=dict)
    methods: dict[str, dict[str, Signature]] = field(default_factory=dict)  # receiver type -> name -> sig
    vars: dict[str, Optional[TypeRef]] = field(default_factory=dict)
    resolved: bool = False

    @property
    def imports(self) -> set[str]:
        out: set[str] = set()
        for f in self.files:
            out.update(f.imports.values())
        return out

    def format_position(self, source_file: SourceFile, node) -> Position:
        line, col = node_point(node)
        filename = source_file.path
        if self.root is not None:
            try:
                filename = source_file.path.relative_to(self.root)
            except ValueError:
                pass
        return Position(str(filename), line + 1, col + 1)


@dataclass(frozen=True)
class CallSite:
    """A call through a selector found by the classifier."""
    name: str  # selector name, e.g. "CreateOrUpdate"
    signature: Optional[Signature]  # resolved callee, None when unresolvable
    targets: tuple[str, ...]  # left-hand side texts in order; () for a bare call statement
    position: Position  # start of the enclosing statement
    name_position: Position  # start of the selector identifier

    @property
    def receiver(self) -> Optional[TypeRef]:
        return self.signature.receiver if self.signature is not None else None


class Rule(str, Enum):
    TRACK1 = "Track1"
    PANDORA_MISMATCH = "PandoraMismatch"


class Confidence(str, Enum):
    DEFINITE = "Definite"
    LIKELY_FALSE_POSITIVE = "LikelyFalsePositive"


@dataclass(frozen=True)
class Finding:
    rule: Rule
    position: Position
    confidence: Confidence = Confidence.DEFINITE
    callee: Optional[str] = None  # e.g. "compute.VirtualMachinesClient.CreateOrUpdate"


@dataclass(frozen=True)
class MethodInventory:
    """Exported Create/Update/Delete methods of one receiver type."""
    key: str  # "package/path.TypeName"
    sync_names: frozenset[str] = frozenset()
    async_names: frozenset[str] = frozenset()
