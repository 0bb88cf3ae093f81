"""Per receiver type inventory of Create/Update/Delete methods.

The declaring package of a receiver type is loaded on the first request for
that type and never again in the same run. Entries are keyed by the canonical
``package/path.TypeName`` string, because the receiver seen at a call site and
the receiver parsed from the declaring package are different objects.
"""
import logging
from typing import Callable

from lro_scan.src.lro_scan.config import ON_ERROR_SKIP, ScanConfig, is_async_name, is_sync_name
from lro_scan.src.lro_scan.errors import InventoryLoadError, LroScanError
from lro_scan.src.lro_scan.models.ast_models import MethodInventory, Package, TypeRef
from lro_scan.src.lro_scan.singleflight import SingleFlightCache
from lro_scan.src.lro_scan.tree_sitter_helpers import node_text, receiver_type_name

logger = logging.getLogger(__name__)

PackageLoad = Callable[[str], Package]


def is_publicly_visible(name: str) -> bool:
    """Go exports identifiers whose first character is not lowercase."""
    return bool(name) and not name[0].islower()


def receiver_key(receiver: TypeRef) -> str:
    return receiver.key


class MethodInventoryBuilder:
    """
    ``inventory(receiver)`` -> MethodInventory, memoized with single-flight
    semantics so concurrent first requests load the package once.
    """

    def __init__(self, load_package: PackageLoad, cfg: ScanConfig):
        self._load_package = load_package
        self.cfg = cfg
        self._entries: SingleFlightCache[MethodInventory] = SingleFlightCache()

    def __len__(self) -> int:
        return len(self._entries)

    def inventory(self, receiver: TypeRef) -> MethodInventory:
        key = receiver_key(receiver)
        return self._entries.get_or_compute(key, lambda: self._build(key, receiver))

    def _build(self, key: str, receiver: TypeRef) -> MethodInventory:
        try:
            package = self._load_package(receiver.package_path)
        except LroScanError as exc:
            if self.cfg.on_inventory_error == ON_ERROR_SKIP:
                logger.warning("skipping inventory for %s: %s", key, exc)
                return MethodInventory(key=key)
            raise InventoryLoadError(key, receiver.package_path, exc) from exc
        return build_inventory(package, receiver.name, self.cfg, key=key)


def build_inventory(package: Package, type_name: str, cfg: ScanConfig, key: str = "") -> MethodInventory:
    """
    Walks every method declaration of ``package`` and collects the exported
    ones declared on ``type_name``.
    """
    sync_names: set[str] = set()
    async_names: set[str] = set()
    for source_file in package.files:
        src = source_file.source
        for node in source_file.tree.root_node.children:
            if node.type != "method_declaration":
                continue
            if receiver_type_name(src, node) != type_name:
                continue
            name_node = node.child_by_field_name("name")
            if name_node is None:
                continue
            name = node_text(src, name_node)
            if not is_publicly_visible(name):
                continue
            if is_async_name(cfg, name):
                async_names.add(name)
            elif is_sync_name(cfg, name):
                sync_names.add(name)
    logger.debug("inventory %s: %d sync, %d async", key, len(sync_names), len(async_names))
    return MethodInventory(
        key=key or f"{package.path}.{type_name}",
        sync_names=frozenset(sync_names),
        async_names=frozenset(async_names),
    )
