from __future__ import annotations

from dataclasses import dataclass

# Legacy SDK generation: a response struct embedding this type is an in-flight LRO.
TRACK1_FUTURE_TYPE_NAME = "FutureAPI"
TRACK1_FUTURE_PACKAGE_PATH = "github.com/Azure/go-autorest/autorest/azure"

# Pandora SDK generation: "<Op>ThenPoll" issues <Op> and polls to completion.
ASYNC_POLL_SUFFIX = "ThenPoll"
SYNC_NAME_MARKERS = ("Create", "CreateOrUpdate", "Update", "Delete")
PANDORA_PACKAGE_PREFIXES = ("github.com/hashicorp/go-azure-sdk/",)

ON_ERROR_RAISE = "raise"
ON_ERROR_SKIP = "skip"


@dataclass(frozen=True)
class ScanConfig:
    future_type_name: str = TRACK1_FUTURE_TYPE_NAME
    future_package_path: str = TRACK1_FUTURE_PACKAGE_PATH
    async_suffix: str = ASYNC_POLL_SUFFIX
    sync_markers: tuple[str, ...] = SYNC_NAME_MARKERS

    # Receiver packages whose inventory may be consulted. Empty means any package.
    pandora_package_prefixes: tuple[str, ...] = PANDORA_PACKAGE_PREFIXES

    # What to do when a receiver's declaring package cannot be loaded.
    on_inventory_error: str = ON_ERROR_RAISE

    apply_confidence_heuristic: bool = True
    # Also look at calls whose results are not assigned at all.
    include_bare_calls: bool = False

    workers: int = 1

    def __post_init__(self) -> None:
        if self.on_inventory_error not in (ON_ERROR_RAISE, ON_ERROR_SKIP):
            raise ValueError(f"on_inventory_error must be {ON_ERROR_RAISE!r} or {ON_ERROR_SKIP!r}")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")


def is_sync_name(cfg: ScanConfig, name: str) -> bool:
    return any(m in name for m in cfg.sync_markers)


def is_async_name(cfg: ScanConfig, name: str) -> bool:
    return name.endswith(cfg.async_suffix)


def is_pandora_package(cfg: ScanConfig, package_path: str) -> bool:
    if not cfg.pandora_package_prefixes:
        return True
    return any(package_path.startswith(p) for p in cfg.pandora_package_prefixes)
