import logging
from typing import Callable, Optional

from lro_scan.src.lro_scan.config import ScanConfig
from lro_scan.src.lro_scan.models.ast_models import CallSite, Finding, Rule, TypeInfo, TypeRef

logger = logging.getLogger(__name__)

TypeLookup = Callable[[TypeRef], Optional[TypeInfo]]


class Track1Detector:
    """
    Flags ``_, err := client.CreateOrUpdate(...)`` where the discarded first
    result is a track 1 future wrapper: a named struct whose first field is the
    SDK's polling future type.
    """

    def __init__(self, lookup_type: TypeLookup, cfg: ScanConfig):
        self.lookup_type = lookup_type
        self.cfg = cfg

    def future_field(self, signature) -> Optional[TypeRef]:
        """Type of the first field of the first result's struct, if it is named."""
        if not signature.results:
            return None
        first = signature.results[0]
        if first is None or first.pointer or first.is_builtin:
            return None
        info = self.lookup_type(first)
        if info is None or info.kind != "struct" or not info.fields:
            return None
        field_type = info.fields[0].type
        if field_type is None or field_type.pointer or field_type.is_builtin:
            return None
        return field_type

    def detect(self, site: CallSite) -> Optional[Finding]:
        if site.signature is None:
            return None
        field_type = self.future_field(site.signature)
        if field_type is None:
            logger.debug("%s: %s result is not a struct with a named first field", site.position, site.name)
            return None
        if field_type.name != self.cfg.future_type_name or field_type.package_path != self.cfg.future_package_path:
            logger.debug("%s: %s result starts with %s, not a future", site.position, site.name, field_type)
            return None
        return Finding(rule=Rule.TRACK1, position=site.position, callee=_callee(site))


def _callee(site: CallSite) -> str:
    sig = site.signature
    owner = sig.receiver.key if sig.is_method else sig.package_path
    return f"{owner}.{sig.name}"
