# --- Go module discovery and package loading ---------------------------------
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from lro_scan.src.lro_scan.errors import PackageLoadError
from lro_scan.src.lro_scan.indexer import GoIndexer
from lro_scan.src.lro_scan.models.ast_models import Package, TypeInfo, TypeRef
from lro_scan.src.lro_scan.resolver import lookup_type, resolve_package
from lro_scan.src.lro_scan.singleflight import SingleFlightCache

logger = logging.getLogger(__name__)

SKIPPED_DIRS = ("vendor", "testdata", "node_modules")

_REQUIRE_LINE = re.compile(r"^(?P<path>\S+)\s+(?P<version>v\S+)")
_REPLACE_LINE = re.compile(r"^(?P<old>\S+)(?:\s+v\S+)?\s*=>\s*(?P<new>\S+)(?:\s+(?P<version>v\S+))?")


@dataclass
class GoModule:
    """The parts of a go.mod file needed to locate imported packages."""
    path: str
    root: Path
    requires: dict[str, str] = field(default_factory=dict)  # module path -> version
    replaces: dict[str, tuple[str, Optional[str]]] = field(default_factory=dict)  # old -> (new, version)


def find_module_root(start: Path) -> Optional[Path]:
    for directory in (start, *start.parents):
        if (directory / "go.mod").is_file():
            return directory
    return None


def read_go_mod(root: Path) -> GoModule:
    text = (root / "go.mod").read_text(encoding="utf-8", errors="replace")
    module = GoModule(path="", root=root)
    block: Optional[str] = None
    for raw in text.splitlines():
        line = raw.split("//", 1)[0].strip()
        if not line:
            continue
        if block is not None:
            if line == ")":
                block = None
            else:
                _parse_directive(module, block, line)
            continue
        keyword, _, rest = line.partition(" ")
        rest = rest.strip()
        if rest == "(":
            block = keyword
        elif keyword == "module":
            module.path = rest.strip('"')
        else:
            _parse_directive(module, keyword, rest)
    if not module.path:
        raise PackageLoadError(str(root), "go.mod has no module directive")
    return module


def _parse_directive(module: GoModule, keyword: str, line: str):
    if keyword == "require":
        m = _REQUIRE_LINE.match(line)
        if m:
            module.requires[m.group("path")] = m.group("version")
    elif keyword == "replace":
        m = _REPLACE_LINE.match(line)
        if m:
            module.replaces[m.group("old")] = (m.group("new"), m.group("version"))


def escape_module_path(path: str) -> str:
    """Module cache case-encoding: "Azure" -> "!azure"."""
    return "".join("!" + c.lower() if c.isupper() else c for c in path)


def module_cache_dir() -> Optional[Path]:
    cache = os.environ.get("GOMODCACHE")
    if cache:
        return Path(cache)
    gopath = os.environ.get("GOPATH") or str(Path.home() / "go")
    return Path(gopath.split(os.pathsep)[0]) / "pkg" / "mod"


def go_files(directory: Path) -> list[Path]:
    """Non-test Go files of one directory, sorted for a stable scan order."""
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix == ".go" and not p.name.endswith("_test.go")
    )


def _within(path: str, prefix: str) -> Optional[str]:
    """Remainder of ``path`` below module ``prefix`` ("" for equal), else None."""
    if path == prefix:
        return ""
    if path.startswith(prefix + "/"):
        return path[len(prefix) + 1:]
    return None


class GoLoader:
    """
    Locates and indexes Go packages of one module and its dependencies.
    Every import path is indexed at most once; callers on other threads asking
    for the same path wait for the first load.
    """

    def __init__(self, module: GoModule, scan_root: Optional[Path] = None,
                 mod_cache: Optional[Path] = None):
        self.module = module
        self.scan_root = scan_root or module.root
        self.mod_cache = mod_cache if mod_cache is not None else module_cache_dir()
        self._packages: SingleFlightCache[Package] = SingleFlightCache()
        self._resolved: SingleFlightCache[Package] = SingleFlightCache()

    @classmethod
    def for_directory(cls, directory: Path) -> "GoLoader":
        directory = directory.resolve()
        root = find_module_root(directory)
        if root is None:
            raise PackageLoadError(str(directory), "no go.mod found in this directory or any parent")
        return cls(read_go_mod(root), scan_root=directory)

    # -- locating -------------------------------------------------------------

    def locate(self, import_path: str) -> Path:
        rel = _within(import_path, self.module.path)
        if rel is not None:
            return self.module.root / rel
        for old, (new, version) in sorted(self.module.replaces.items(), key=lambda kv: -len(kv[0])):
            rel = _within(import_path, old)
            if rel is None:
                continue
            if new.startswith(("./", "../", "/")):
                return (self.module.root / new).resolve() / rel
            if version is not None and self.mod_cache is not None:
                return self.mod_cache / f"{escape_module_path(new)}@{version}" / rel
        vendored = self.module.root / "vendor" / import_path
        if vendored.is_dir():
            return vendored
        for mod_path, version in sorted(self.module.requires.items(), key=lambda kv: -len(kv[0])):
            rel = _within(import_path, mod_path)
            if rel is not None and self.mod_cache is not None:
                return self.mod_cache / f"{escape_module_path(mod_path)}@{version}" / rel
        for env in ("GOPATH", "GOROOT"):
            value = os.environ.get(env)
            if not value:
                continue
            candidate = Path(value.split(os.pathsep)[0]) / "src" / import_path
            if candidate.is_dir():
                return candidate
        raise PackageLoadError(import_path, "not in the main module, vendor/, go.mod requirements, GOPATH or GOROOT")

    def expand_patterns(self, patterns: list[str]) -> list[str]:
        """
        Turns ``./...``, ``./dir/...``, ``./dir`` and plain import paths into
        import paths, keeping first-seen order.
        """
        out: list[str] = []
        for pattern in patterns or ["."]:
            if pattern.startswith((".", "/")):
                recursive = pattern.endswith("/...") or pattern == "..."
                base = "." if pattern == "..." else pattern[:-4] if recursive else pattern
                directory = (self.scan_root / base).resolve()
                dirs = self._walk_package_dirs(directory) if recursive else [directory]
                for d in dirs:
                    out.append(self.import_path_for(d))
            else:
                out.append(pattern)
        return list(dict.fromkeys(out))

    def import_path_for(self, directory: Path) -> str:
        try:
            rel = directory.resolve().relative_to(self.module.root.resolve())
        except ValueError:
            raise PackageLoadError(str(directory), f"outside module {self.module.path}") from None
        rel_str = rel.as_posix()
        return self.module.path if rel_str in ("", ".") else f"{self.module.path}/{rel_str}"

    def _walk_package_dirs(self, directory: Path) -> list[Path]:
        found: list[Path] = []
        for dirpath, dirnames, _ in os.walk(directory):
            dirnames[:] = sorted(
                d for d in dirnames
                if d not in SKIPPED_DIRS and not d.startswith((".", "_"))
                and not (Path(dirpath) / d / "go.mod").exists()
            )
            if go_files(Path(dirpath)):
                found.append(Path(dirpath))
        return found

    # -- loading --------------------------------------------------------------

    def load_package(self, import_path: str) -> Package:
        """Indexes the declarations of one package. Raises PackageLoadError."""
        return self._packages.get_or_compute(import_path, lambda: self._index(import_path))

    def _index(self, import_path: str) -> Package:
        directory = self.locate(import_path)
        files = go_files(directory)
        if not files:
            raise PackageLoadError(import_path, f"no Go files in {directory}")
        logger.debug("indexing %s from %s", import_path, directory)
        try:
            package = GoIndexer().index_package(import_path, directory, files, root=self.scan_root)
        except OSError as exc:
            raise PackageLoadError(import_path, str(exc)) from exc
        if not package.files:
            raise PackageLoadError(import_path, f"no buildable Go files in {directory}")
        return package

    def get_package(self, import_path: str) -> Optional[Package]:
        """Like load_package, but an unloadable package is just unknown."""
        try:
            return self.load_package(import_path)
        except PackageLoadError as exc:
            logger.debug("type information unavailable: %s", exc)
            return None

    def load_resolved(self, import_path: str) -> Package:
        """Indexes a package and resolves its selector calls."""
        return self._resolved.get_or_compute(
            import_path, lambda: resolve_package(self.load_package(import_path), self.get_package)
        )

    def load(self, patterns: list[str]) -> list[Package]:
        """Loads the packages named by ``patterns`` ready for scanning."""
        return [self.load_resolved(p) for p in self.expand_patterns(patterns)]

    def lookup_type(self, ref: TypeRef) -> Optional[TypeInfo]:
        return lookup_type(self.get_package, ref)
