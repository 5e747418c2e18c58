"""Default provider reading exported records from a directory."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .translator import import_records

if TYPE_CHECKING:
    from pathlib import Path

    from exportables.domain.model import ManagedRecord

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class JsonDirectoryProvider:
    """Declare every record exported to ``*.json`` files under ``directory``.

    Files are read in name order, so a later file wins when two declare the
    same record name. A missing directory declares nothing.
    """

    directory: Path
    pattern: str = "*.json"

    def __call__(self) -> dict[str, ManagedRecord]:
        if not self.directory.is_dir():
            log.warning("Defaults directory %s does not exist", self.directory)
            return {}
        declared: dict[str, ManagedRecord] = {}
        for path in sorted(self.directory.glob(self.pattern)):
            for record in import_records(path.read_bytes()):
                declared[record.name] = record
        log.debug("Read %d defaults from %s", len(declared), self.directory)
        return declared
