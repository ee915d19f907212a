"""Lokasyon Defteri - lokasyon bazında stok miktarları ve doluluk.

- Ürünün bir lokasyondaki miktarını hesaplar
- Lokasyon doluluğunu ve kullanım oranını türetir
- Yeni transfer için varsayılan kaynak lokasyonu önerir

Hiçbir veriyi değiştirmez; sonuçlar yalnızca verilen ürün listesinin fonksiyonudur.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Optional

from warehouse_ledger.models.warehouse import (
    LocationStock,
    Product,
    UtilizationLevel,
    WarehouseLocation,
    normalize_location_key,
)

logger = logging.getLogger(__name__)


@dataclass
class LocationTotals:
    total_capacity: int
    total_occupancy: int
    utilization: float


class LocationLedger:
    """Ürün listesinden lokasyon seviyesindeki stok bilgilerini türetir."""

    def _entries(self, product: Product) -> Optional[LocationStock]:
        raw: Any = product.location_stock
        if raw is None:
            return None
        if isinstance(raw, LocationStock):
            return raw
        # Düz dict ya da liste olarak gelmiş olabilir
        return LocationStock.from_raw(raw)

    def quantity_at(self, product: Product, location_code: str) -> int:
        """Ürünün verilen lokasyondaki adedini döndürür.

        Kayıtlı locationStock girişi varsa o kullanılır. Yoksa birincil
        lokasyon ürünün tüm stoğunu gösterir; başka lokasyonlar 0.
        """
        code = normalize_location_key(location_code)
        if not code:
            return 0
        entries = self._entries(product)
        if entries is not None and code in entries:
            return max(0, entries[code])
        if code == normalize_location_key(product.location):
            return max(0, product.stock)
        return 0

    def primary_remainder(self, product: Product) -> int:
        """Birincil lokasyonda kayıtsız kalan stok: stok - diğer girişlerin toplamı."""
        entries = self._entries(product)
        others = entries.total() if entries is not None else 0
        return max(0, product.stock - others)

    def stock_breakdown(self, product: Product) -> LocationStock:
        """Transfer tamamlamada kullanılan dağılım; birincil lokasyonun kalan payı dahil."""
        entries = self._entries(product)
        breakdown = entries.copy() if entries is not None else LocationStock()
        primary = normalize_location_key(product.location)
        if primary and primary not in breakdown:
            implied = self.primary_remainder(product)
            if implied > 0:
                breakdown[primary] = implied
        return breakdown

    def products_at(
        self, location_code: str, products: Iterable[Product]
    ) -> list[tuple[Product, int]]:
        """Lokasyonda stoğu olan ürünleri (ürün, adet) olarak döndürür."""
        result = []
        for product in products:
            qty = self.quantity_at(product, location_code)
            if qty > 0:
                result.append((product, qty))
        return result

    def occupancy(self, location_code: str, products: Iterable[Product]) -> int:
        return sum(self.quantity_at(p, location_code) for p in products)

    def utilization(self, location: WarehouseLocation, products: Iterable[Product]) -> float:
        """Doluluk / kapasite * 100. Kapasite 0 ise 0.0 döner."""
        if location.capacity <= 0:
            return 0.0
        return self.occupancy(location.code, products) / location.capacity * 100

    def free_capacity(self, location: WarehouseLocation, products: Iterable[Product]) -> int:
        return location.capacity - self.occupancy(location.code, products)

    @staticmethod
    def utilization_level(utilization: float) -> UtilizationLevel:
        if utilization >= 90:
            return UtilizationLevel.OVERFULL
        if utilization >= 75:
            return UtilizationLevel.HIGH
        if utilization >= 50:
            return UtilizationLevel.MEDIUM
        return UtilizationLevel.LOW

    def totals(
        self, locations: Iterable[WarehouseLocation], products: Iterable[Product]
    ) -> LocationTotals:
        products = list(products)
        total_capacity = 0
        total_occupancy = 0
        for location in locations:
            total_capacity += location.capacity
            total_occupancy += self.occupancy(location.code, products)
        utilization = total_occupancy / total_capacity * 100 if total_capacity > 0 else 0.0
        return LocationTotals(total_capacity, total_occupancy, utilization)

    def default_source_location(self, product: Optional[Product]) -> str:
        """Yeni transferin 'nereden' alanı için en çok stok tutan lokasyon.

        Yalnızca locationStock girişlerine bakılır; eşit miktarlarda kod
        sırasına göre ilk lokasyon seçilir. Pozitif giriş yoksa birincil
        lokasyon, o da yoksa boş string döner.
        """
        if product is None:
            return ""
        entries = self._entries(product)
        positive = [(code, qty) for code, qty in (entries or {}).items() if qty > 0]
        if positive:
            return min(positive, key=lambda item: (-item[1], item[0]))[0]
        return normalize_location_key(product.location)

    def ledger_totals_match(self, product: Product) -> bool:
        """locationStock toplamı ürün stoğuna eşit mi (locationStock yoksa True)."""
        entries = self._entries(product)
        if entries is None:
            return True
        return entries.total() == product.stock
