# --- Exceptions ---------------------------------------------------------------
from typing import Optional


class LroScanError(Exception):
    """Base class for errors that abort a scan."""


class GrammarLoadError(LroScanError):
    """The Tree-sitter Go grammar could not be loaded."""


class PackageLoadError(LroScanError):
    """A Go package could not be located or read."""

    def __init__(self, import_path: str, reason: str):
        self.import_path = import_path
        self.reason = reason
        super().__init__(f"cannot load package {import_path}: {reason}")


class InventoryLoadError(LroScanError):
    """
    The declaring package of a receiver type could not be loaded while building
    its method inventory. Raised instead of silently dropping findings.
    """

    def __init__(self, key: str, import_path: str, cause: Optional[Exception] = None):
        self.key = key
        self.import_path = import_path
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"method inventory for {key} unavailable, package {import_path} failed to load{detail}")
