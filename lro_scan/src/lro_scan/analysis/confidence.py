"""Confidence labelling applied after a finding has been emitted."""
import dataclasses
from typing import Callable

from lro_scan.src.lro_scan.models.ast_models import CallSite, Confidence, Finding

ConfidencePolicy = Callable[[Finding, CallSite], Finding]

FUTURE_MARKER = "future"


def future_binding_policy(finding: Finding, site: CallSite) -> Finding:
    """
    ``fut, err := client.Create(...)``: a caller binding something named like a
    future is probably threading the poller through by hand.
    """
    if len(site.targets) > 1 and any(FUTURE_MARKER in t.lower() for t in site.targets):
        return dataclasses.replace(finding, confidence=Confidence.LIKELY_FALSE_POSITIVE)
    return finding


def keep_confidence(finding: Finding, site: CallSite) -> Finding:
    return finding
