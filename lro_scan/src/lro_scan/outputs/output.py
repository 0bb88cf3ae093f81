import json
from typing import Iterable, Optional, TextIO

from lro_scan.src.lro_scan.models.ast_models import Confidence, Finding, Rule


# --- Pretty printing & JSON export ------------------------------------------

RULE_LABELS = {
    Rule.TRACK1: "Track 1 Hit",
    Rule.PANDORA_MISMATCH: "Pandora Hit",
}


def format_finding(finding: Finding) -> str:
    """
    One line per finding: rule tag, position, and the confidence note when the
    heuristic downgraded it.
    """
    line = f"{RULE_LABELS[finding.rule]}: {finding.position}"
    if finding.confidence is Confidence.LIKELY_FALSE_POSITIVE:
        line += " (likely false positive)"
    return line


def print_findings(findings: Iterable[Finding], out: Optional[TextIO] = None):
    """Writes one line per finding to ``out``, or to the current stdout."""
    for f in findings:
        print(format_finding(f), file=out)


def to_json(findings: Iterable[Finding]) -> str:
    """
    Serializes findings for other tools (CI annotations, dashboards).
    """
    out = [
        {
            "rule": f.rule.value,
            "file": f.position.filename,
            "line": f.position.line,
            "col": f.position.column,
            "confidence": f.confidence.value,
            "callee": f.callee,
        }
        for f in findings
    ]
    return json.dumps(out, indent=2)
