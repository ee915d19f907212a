"""Ürün, lokasyon ve hareketlerin bellek içi kopyası.

Kayıt sistemi dış depodur; bu sınıf yalnızca son okunan durumu tutar ve
türetimler için tek doğruluk kaynağı olarak kullanılır. Her okuma bir nesil
numarası alır; daha yeni bir okuma uygulandıktan sonra gelen eski sonuçlar
atılır.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Optional

from warehouse_ledger.models.warehouse import (
    LocationStock,
    MovementRecord,
    MovementStatus,
    Product,
    WarehouseLocation,
    normalize_location_key,
)
from warehouse_ledger.repositories.envelope import unwrap

logger = logging.getLogger(__name__)

PRODUCTS = "products"
LOCATIONS = "locations"
MOVEMENTS = "movements"
CATEGORIES = "categories"


class InventorySnapshot:
    """Depolardan okunan verinin yerel aynası."""

    def __init__(
        self,
        product_repository: Optional[Any] = None,
        location_repository: Optional[Any] = None,
        movement_repository: Optional[Any] = None,
    ):
        self.product_repository = product_repository
        self.location_repository = location_repository
        self.movement_repository = movement_repository

        self._products: dict[str, Product] = {}
        self._locations: dict[str, WarehouseLocation] = {}
        self._movements: list[MovementRecord] = []
        self.categories: dict[str, str] = {}

        # Kaynak bazında verilen ve uygulanan son nesil numaraları
        self._issued: dict[str, int] = {}
        self._applied: dict[str, int] = {}

    # --- Nesil koruması ---

    def begin_fetch(self, resource: str) -> int:
        token = self._issued.get(resource, 0) + 1
        self._issued[resource] = token
        return token

    def _accept(self, resource: str, token: int) -> bool:
        if token < self._applied.get(resource, 0):
            logger.info("Eski %s yanıtı atıldı (nesil %s)", resource, token)
            return False
        self._applied[resource] = token
        return True

    # --- Okunan verinin uygulanması ---

    def apply_products(self, token: int, items: Iterable[dict]) -> bool:
        if not self._accept(PRODUCTS, token):
            return False
        products = [Product.from_dict(item) for item in items or []]
        self._products = {p.product_id: p for p in products}
        return True

    def apply_locations(self, token: int, items: Iterable[dict]) -> bool:
        if not self._accept(LOCATIONS, token):
            return False
        locations = [WarehouseLocation.from_dict(item) for item in items or []]
        self._locations = {loc.code: loc for loc in locations if loc.code}
        return True

    def apply_movements(self, token: int, items: Iterable[dict]) -> bool:
        if not self._accept(MOVEMENTS, token):
            return False
        self._movements = [MovementRecord.from_dict(item) for item in items or []]
        return True

    def apply_categories(self, token: int, categories: Optional[dict]) -> bool:
        if not self._accept(CATEGORIES, token):
            return False
        # Yerinde güncellenir; FilterEngine aynı sözlüğü okur
        self.categories.clear()
        self.categories.update(categories or {})
        return True

    # --- Depolardan yenileme ---

    def refresh_products(self, params: Optional[dict] = None) -> list[Product]:
        token = self.begin_fetch(PRODUCTS)
        data = unwrap(self.product_repository.get_all(params), "products.get_all")
        self.apply_products(token, data)
        return self.products

    def refresh_categories(self) -> dict[str, str]:
        token = self.begin_fetch(CATEGORIES)
        data = unwrap(self.product_repository.get_categories(), "products.get_categories")
        self.apply_categories(token, data)
        return self.categories

    def refresh_locations(self, params: Optional[dict] = None) -> list[WarehouseLocation]:
        token = self.begin_fetch(LOCATIONS)
        data = unwrap(self.location_repository.get_all(params), "locations.get_all")
        self.apply_locations(token, data)
        return self.locations

    def refresh_movements(self, params: Optional[dict] = None) -> list[MovementRecord]:
        token = self.begin_fetch(MOVEMENTS)
        data = unwrap(self.movement_repository.get_all(params), "movements.get_all")
        self.apply_movements(token, data)
        return self.movements

    def refresh_all(self) -> None:
        self.refresh_products()
        self.refresh_locations()
        self.refresh_movements()

    def load(
        self,
        products: Iterable[Product] = (),
        locations: Iterable[WarehouseLocation] = (),
        movements: Iterable[MovementRecord] = (),
    ) -> None:
        """Hazır model nesneleriyle doldurur."""
        self._products = {p.product_id: p for p in products}
        self._locations = {loc.code: loc for loc in locations}
        self._movements = list(movements)

    # --- Okuma ---

    @property
    def products(self) -> list[Product]:
        return list(self._products.values())

    @property
    def locations(self) -> list[WarehouseLocation]:
        return list(self._locations.values())

    @property
    def movements(self) -> list[MovementRecord]:
        return list(self._movements)

    def product(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    def location(self, code: str) -> Optional[WarehouseLocation]:
        return self._locations.get(normalize_location_key(code))

    def has_location(self, code: str) -> bool:
        return normalize_location_key(code) in self._locations

    def movement(self, movement_id: str) -> Optional[MovementRecord]:
        for record in self._movements:
            if record.movement_id == movement_id:
                return record
        return None

    def batch_members(self, batch_id: str) -> list[MovementRecord]:
        return [m for m in self._movements if m.batch_id == batch_id]

    # --- Yalnızca hareket motorunun kullandığı değişiklikler ---

    def add_movement(self, record: MovementRecord) -> None:
        self._movements.insert(0, record)

    def remove_movement(self, movement_id: str) -> Optional[MovementRecord]:
        for i, record in enumerate(self._movements):
            if record.movement_id == movement_id:
                return self._movements.pop(i)
        return None

    def replace_location_stock(self, product_id: str, ledger: LocationStock) -> None:
        product = self._products[product_id]
        product.location_stock = ledger.copy()

    def mark_completed(self, movement_ids: Iterable[str]) -> None:
        ids = set(movement_ids)
        for record in self._movements:
            if record.movement_id in ids:
                record.status = MovementStatus.COMPLETED
