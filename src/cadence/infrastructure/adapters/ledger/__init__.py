# Infrastructure Ledger Adapters Package
from .memory_ledger import InMemoryCardLedger
from .yaml_snapshot import YamlSnapshotLedger

__all__ = ["InMemoryCardLedger", "YamlSnapshotLedger"]
