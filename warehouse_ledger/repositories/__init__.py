from warehouse_ledger.repositories.dynamodb import (
    LocationRepository,
    MovementRepository,
    ProductRepository,
)
from warehouse_ledger.repositories.envelope import unwrap
from warehouse_ledger.repositories.storage import (
    DynamoDBKeyValueStorage,
    InMemoryKeyValueStorage,
    KeyValueStorage,
)

__all__ = [
    "DynamoDBKeyValueStorage",
    "InMemoryKeyValueStorage",
    "KeyValueStorage",
    "LocationRepository",
    "MovementRepository",
    "ProductRepository",
    "unwrap",
]
