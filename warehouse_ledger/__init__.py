from warehouse_ledger.errors import (
    InsufficientStockError,
    LedgerError,
    TransportError,
    ValidationError,
)
from warehouse_ledger.services.filter_engine import FilterEngine
from warehouse_ledger.services.location_ledger import LocationLedger
from warehouse_ledger.services.movement_batch import MovementBatchEngine
from warehouse_ledger.services.preset_store import PresetStore
from warehouse_ledger.services.snapshot import InventorySnapshot

__all__ = [
    "FilterEngine",
    "InsufficientStockError",
    "InventorySnapshot",
    "LedgerError",
    "LocationLedger",
    "MovementBatchEngine",
    "PresetStore",
    "TransportError",
    "ValidationError",
]
