"""Testlerde ortak kullanılan bellek içi depolar ve fixture'lar."""

import pytest

from warehouse_ledger.models.warehouse import LocationStock, Product, WarehouseLocation
from warehouse_ledger.services.snapshot import InventorySnapshot


class FakeMovementRepository:
    """MovementRepository ile aynı zarf sözleşmesini uygulayan bellek içi depo."""

    def __init__(self):
        self.items = {}
        self.fail_with = None
        self.calls = []

    def _failure(self):
        return {"success": False, "error": self.fail_with}

    def get_all(self, params=None):
        self.calls.append(("get_all", params))
        if self.fail_with:
            return self._failure()
        return {"success": True, "data": list(self.items.values())}

    def create(self, data):
        self.calls.append(("create", data))
        if self.fail_with:
            return self._failure()
        self.items[data["movement_id"]] = dict(data)
        return {"success": True, "data": dict(data)}

    def create_many(self, items):
        self.calls.append(("create_many", items))
        if self.fail_with:
            return self._failure()
        for item in items:
            self.items[item["movement_id"]] = dict(item)
        return {"success": True, "data": items}

    def update(self, movement_id, patch):
        self.calls.append(("update", movement_id, patch))
        if self.fail_with:
            return self._failure()
        self.items.setdefault(movement_id, {"movement_id": movement_id}).update(patch)
        return {"success": True, "data": self.items[movement_id]}

    def delete(self, movement_id):
        self.calls.append(("delete", movement_id))
        if self.fail_with:
            return self._failure()
        self.items.pop(movement_id, None)
        return {"success": True, "data": {"movement_id": movement_id}}

    def complete_batch(self, batch_id, movement_ids, product_ledgers, new_movements=None):
        self.calls.append(("complete_batch", batch_id, list(movement_ids), dict(product_ledgers), new_movements))
        if self.fail_with:
            return self._failure()
        for item in new_movements or []:
            self.items[item["movement_id"]] = dict(item)
        for movement_id in movement_ids:
            self.items.setdefault(movement_id, {"movement_id": movement_id})["status"] = "completed"
        return {"success": True, "data": {"batch_number": batch_id, "completed_count": len(movement_ids)}}

    def call_names(self):
        return [call[0] for call in self.calls]


class FakeListRepository:
    """get_all/get_categories için sabit yanıt döndüren depo."""

    def __init__(self, items=None, categories=None):
        self.items = items or []
        self.categories = categories or {}
        self.fail_with = None

    def get_all(self, params=None):
        if self.fail_with:
            return {"success": False, "error": self.fail_with}
        return {"success": True, "data": list(self.items), "pagination": {"page": 1, "limit": 0, "total": len(self.items), "pages": 1}}

    def get_categories(self):
        if self.fail_with:
            return {"success": False, "error": self.fail_with}
        return {"success": True, "data": dict(self.categories)}


def make_product(product_id="P1", stock=10, location="A", location_stock=None, **kwargs) -> Product:
    name = kwargs.pop("name", f"Ürün {product_id}")
    return Product(
        product_id=product_id,
        name=name,
        stock=stock,
        location=location,
        location_stock=LocationStock(location_stock) if location_stock is not None else None,
        **kwargs,
    )


def make_locations(*codes, capacity=100):
    return [WarehouseLocation(code=code, name=f"Raf {code}", capacity=capacity) for code in codes]


@pytest.fixture
def movement_repo():
    return FakeMovementRepository()


@pytest.fixture
def snapshot(movement_repo):
    snap = InventorySnapshot(movement_repository=movement_repo)
    snap.load(
        products=[make_product("X", stock=10, location="A", location_stock={"A": 10})],
        locations=make_locations("A", "B", "C"),
    )
    return snap
