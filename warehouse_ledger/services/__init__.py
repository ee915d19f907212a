from warehouse_ledger.services.filter_engine import FilterEngine
from warehouse_ledger.services.location_ledger import LocationLedger, LocationTotals
from warehouse_ledger.services.movement_batch import BatchCompletion, MovementBatchEngine
from warehouse_ledger.services.preset_store import PresetStore
from warehouse_ledger.services.snapshot import InventorySnapshot

__all__ = [
    "BatchCompletion",
    "FilterEngine",
    "InventorySnapshot",
    "LocationLedger",
    "LocationTotals",
    "MovementBatchEngine",
    "PresetStore",
]
