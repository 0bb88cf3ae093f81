"""Runs both rules over a set of packages.

Packages are scanned independently, sequentially or on a thread pool; the
method inventory is the only state they share. Findings come back grouped by
package in input order, then in source order, whatever the worker count.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional

from lro_scan.src.lro_scan.analysis.classifier import is_pandora_shape, is_track1_shape, iter_call_sites
from lro_scan.src.lro_scan.analysis.confidence import ConfidencePolicy, future_binding_policy, keep_confidence
from lro_scan.src.lro_scan.analysis.inventory import MethodInventoryBuilder, PackageLoad
from lro_scan.src.lro_scan.analysis.pandora import PandoraDetector
from lro_scan.src.lro_scan.analysis.track1 import Track1Detector, TypeLookup
from lro_scan.src.lro_scan.config import ScanConfig
from lro_scan.src.lro_scan.models.ast_models import Finding, Package

logger = logging.getLogger(__name__)


class Scanner:
    def __init__(
        self,
        lookup_type: TypeLookup,
        load_package: PackageLoad,
        cfg: Optional[ScanConfig] = None,
        *,
        inventory: Optional[MethodInventoryBuilder] = None,
        confidence_policy: Optional[ConfidencePolicy] = None,
    ) -> None:
        self.cfg = cfg or ScanConfig()
        self.inventory = inventory or MethodInventoryBuilder(load_package, self.cfg)
        self.track1 = Track1Detector(lookup_type, self.cfg)
        self.pandora = PandoraDetector(self.inventory, self.cfg)
        if confidence_policy is None:
            confidence_policy = future_binding_policy if self.cfg.apply_confidence_heuristic else keep_confidence
        self.confidence_policy = confidence_policy

    @classmethod
    def for_loader(cls, loader, cfg: Optional[ScanConfig] = None) -> "Scanner":
        """Scanner backed by a GoLoader (type lookups and secondary loads)."""
        return cls(loader.lookup_type, loader.load_package, cfg)

    def scan_package(self, package: Package) -> list[Finding]:
        findings: list[Finding] = []
        for site in iter_call_sites(package, include_bare_calls=self.cfg.include_bare_calls):
            if site.signature is None:
                continue
            if is_track1_shape(site):
                hit = self.track1.detect(site)
                if hit is not None:
                    findings.append(hit)
            if is_pandora_shape(self.cfg, site):
                hit = self.pandora.detect(site)
                if hit is not None:
                    findings.append(self.confidence_policy(hit, site))
        logger.debug("%s: %d finding(s)", package.path, len(findings))
        return findings

    def scan(self, packages: Iterable[Package]) -> list[Finding]:
        packages = list(packages)
        return [f for per_package in self._map(self.scan_package, packages) for f in per_package]

    def _map(self, fn: Callable[[Package], list[Finding]], packages: list[Package]) -> list[list[Finding]]:
        if self.cfg.workers <= 1 or len(packages) <= 1:
            return [fn(p) for p in packages]
        max_workers = min(self.cfg.workers, len(packages))
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="lro-scan") as executor:
            return list(executor.map(fn, packages))
