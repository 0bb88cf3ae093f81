import logging
from typing import Optional

from lro_scan.src.lro_scan.analysis.inventory import MethodInventoryBuilder
from lro_scan.src.lro_scan.config import ScanConfig, is_pandora_package
from lro_scan.src.lro_scan.models.ast_models import CallSite, Finding, Rule

logger = logging.getLogger(__name__)


class PandoraDetector:
    """
    Flags a plain ``client.Delete(...)`` when the client type also declares
    ``DeleteThenPoll``: the caller returns before the operation finishes.
    """

    def __init__(self, inventory: MethodInventoryBuilder, cfg: ScanConfig):
        self.inventory = inventory
        self.cfg = cfg

    def detect(self, site: CallSite) -> Optional[Finding]:
        receiver = site.receiver
        if receiver is None or receiver.is_builtin:
            return None
        if not is_pandora_package(self.cfg, receiver.package_path):
            logger.debug("%s: %s is outside the pandora packages", site.name_position, receiver)
            return None
        entry = self.inventory.inventory(receiver)
        if site.name + self.cfg.async_suffix not in entry.async_names:
            logger.debug("%s: %s has no %s%s", site.name_position, receiver.key, site.name, self.cfg.async_suffix)
            return None
        return Finding(
            rule=Rule.PANDORA_MISMATCH,
            position=site.name_position,
            callee=f"{receiver.key}.{site.name}",
        )
