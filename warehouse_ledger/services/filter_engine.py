"""Filtre Motoru - kategori bazlı arama filtrelerinin değerlendirilmesi.

- Tek bir kaydın filtre konfigürasyonuna uyup uymadığına karar verir
- Kategori başına aktif filtre durumunu tutar
- Preset ve son arama işlemlerini PresetStore'a devreder

Ürün ve hareket verisini hiçbir zaman değiştirmez.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Union

from warehouse_ledger.models.filters import (
    FieldKind,
    FilterConfig,
    FilterPreset,
    RecentSearch,
    SearchCategory,
    empty_filters,
)
from warehouse_ledger.models.warehouse import MovementRecord, Product, parse_timestamp
from warehouse_ledger.services.preset_store import PresetStore

logger = logging.getLogger(__name__)

_DOTTED_DATE = re.compile(r"^\s*(\d{1,2})\.(\d{1,2})\.(\d{4})\s*$")
_ISO_DATE = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\s*$")

Accessor = Callable[[Any], Any]


def parse_date_bound(value: Any) -> Optional[datetime]:
    """'gg.aa.yyyy' (veya 'yyyy-aa-gg') sınırını gün başına çevirir; bozuksa None."""
    if value is None or value == "":
        return None
    text = str(value)
    match = _DOTTED_DATE.match(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
    else:
        match = _ISO_DATE.match(text)
        if not match:
            logger.warning("Geçersiz tarih filtresi yok sayıldı: %r", value)
            return None
        year, month, day = (int(g) for g in match.groups())
    try:
        return datetime(year, month, day)
    except ValueError:
        logger.warning("Geçersiz tarih filtresi yok sayıldı: %r", value)
        return None


def end_of_day(day: datetime) -> datetime:
    return day + timedelta(days=1) - timedelta(microseconds=1)


# --- Alan yüklemleri ---


def _text_matches(value: Any, needle: str) -> bool:
    needle = needle.lower()
    values = value if isinstance(value, (list, tuple)) else [value]
    return any(needle in str(v or "").lower() for v in values)


def _reference_matches(value: tuple[Any, Any], wanted: str) -> bool:
    """Id birebir eşleşirse ya da görünen ad filtre metnini içerirse doğru."""
    identifier, name = value
    if identifier is not None and str(identifier) == wanted:
        return True
    return bool(wanted) and bool(name) and wanted.lower() in str(name).lower()


def _exact_matches(value: Any, wanted: str) -> bool:
    return str(value or "").lower() == wanted.lower()


def _choice_matches(value: Any, wanted: list[str]) -> bool:
    if hasattr(value, "value"):
        value = value.value
    return str(value) in wanted


def _number_in_range(value: Any, bound: float, is_min: bool) -> bool:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return number >= bound if is_min else number <= bound


def _date_in_range(value: Any, bound: str, is_lower: bool) -> bool:
    day = parse_date_bound(bound)
    if day is None:
        # Okunamayan sınır yokmuş gibi davranır
        return True
    moment = parse_timestamp(value)
    if moment is None:
        return False
    return moment >= day if is_lower else moment <= end_of_day(day)


class FilterEngine:
    """Filtre konfigürasyonlarını kayıtlara uygular ve aktif filtre durumunu tutar."""

    def __init__(
        self,
        preset_store: Optional[PresetStore] = None,
        categories: Optional[dict[str, str]] = None,
        product_lookup: Optional[Callable[[str], Optional[Product]]] = None,
        movements: Optional[Callable[[], Iterable[MovementRecord]]] = None,
    ):
        self.preset_store = preset_store
        self.categories = categories if categories is not None else {}
        self.product_lookup = product_lookup or (lambda product_id: None)
        self.movements = movements or (lambda: [])

        self.active_category = SearchCategory.PRODUCTS
        self._filters: dict[SearchCategory, FilterConfig] = {
            category: empty_filters(category) for category in SearchCategory
        }

    @classmethod
    def for_snapshot(cls, snapshot: Any, preset_store: Optional[PresetStore] = None) -> "FilterEngine":
        """InventorySnapshot üzerinden kategori adlarını ve hareketleri okuyan motor."""
        return cls(
            preset_store=preset_store,
            categories=snapshot.categories,
            product_lookup=snapshot.product,
            movements=lambda: snapshot.movements,
        )

    # --- Kayıt alanlarına erişim ---

    def _accessors(self, category: SearchCategory) -> dict[str, Accessor]:
        if category is SearchCategory.PRODUCTS:
            return {
                "name": lambda p: p.name,
                "sku": lambda p: p.barcode,
                "category": lambda p: (p.category, p.category_name or self.categories.get(p.category)),
                "price_min": lambda p: p.sale_price,
                "price_max": lambda p: p.sale_price,
                "stock_status": lambda p: p.stock_status,
                "supplier": lambda p: (p.supplier_id, p.supplier_name),
                "movement_id": self._product_movement_ids,
                "product_id": lambda p: p.product_id,
                "created_from": lambda p: p.created_at,
                "created_to": lambda p: p.created_at,
            }
        if category is SearchCategory.SALES:
            return {
                "date_from": lambda s: s.date,
                "date_to": lambda s: s.date,
                "amount_min": lambda s: s.amount,
                "amount_max": lambda s: s.amount,
                "payment_method": lambda s: s.payment_method,
                "status": lambda s: s.status,
                "cashier": lambda s: s.cashier,
            }
        if category is SearchCategory.MOVEMENTS:
            return {
                "query": self._movement_search_text,
                "date_from": lambda m: m.timestamp,
                "date_to": lambda m: m.timestamp,
                "product_id": lambda m: m.product_id,
                "category": self._movement_category,
                "from_location": lambda m: m.from_location,
                "to_location": lambda m: m.to_location,
                "status": lambda m: m.status,
            }
        if category is SearchCategory.CLIENTS:
            return {
                "name": lambda c: c.name,
                "phone": lambda c: c.phone,
                "email": lambda c: c.email,
                "type": lambda c: c.type,
                "registration_from": lambda c: c.registered_at,
                "registration_to": lambda c: c.registered_at,
            }
        return {
            "transaction_type": lambda t: t.transaction_type,
            "amount_min": lambda t: t.amount,
            "amount_max": lambda t: t.amount,
            "date_from": lambda t: t.date,
            "date_to": lambda t: t.date,
            "category": lambda t: (t.category, t.category_name or self.categories.get(t.category)),
            "payment_method": lambda t: t.payment_method,
        }

    def _product_movement_ids(self, product: Product) -> list[str]:
        ids = []
        for m in self.movements():
            if m.product_id == product.product_id:
                ids.extend([m.movement_id, m.batch_id])
        return ids

    def _movement_product_name(self, record: MovementRecord) -> str:
        if record.product_name:
            return record.product_name
        product = self.product_lookup(record.product_id)
        return product.name if product else ""

    def _movement_search_text(self, record: MovementRecord) -> list[str]:
        return [
            record.movement_id,
            record.batch_number or "",
            record.product_id,
            self._movement_product_name(record),
            record.from_location,
            record.to_location,
            record.user_id,
            record.notes,
        ]

    def _movement_category(self, record: MovementRecord) -> str:
        product = self.product_lookup(record.product_id)
        return product.category if product else ""

    # --- Eşleştirme ---

    def matches(self, record: Any, config: FilterConfig) -> bool:
        """Kayıt, aktif alanların hepsini sağlıyorsa doğru (VE bağlacı)."""
        accessors = self._accessors(config.search_category)
        for name, wanted in config.active_fields().items():
            accessor = accessors.get(name)
            if accessor is None:
                continue
            if not self._field_matches(config.field_kind(name), name, accessor(record), wanted):
                return False
        return True

    @staticmethod
    def _field_matches(kind: FieldKind, name: str, value: Any, wanted: Any) -> bool:
        if kind is FieldKind.TEXT:
            return _text_matches(value, str(wanted))
        if kind is FieldKind.NUMBER:
            return _number_in_range(value, wanted, is_min=name.endswith("_min"))
        if kind is FieldKind.CHOICES:
            return _choice_matches(value, wanted)
        if kind is FieldKind.DATE:
            return _date_in_range(value, wanted, is_lower=name.endswith("_from"))
        if kind is FieldKind.REFERENCE:
            return _reference_matches(value, str(wanted))
        return _exact_matches(value, str(wanted))

    def filter_records(self, records: Iterable[Any], config: FilterConfig) -> list[Any]:
        return [r for r in records if self.matches(r, config)]

    @staticmethod
    def active_field_count(config: FilterConfig) -> int:
        """Dolu alan sayısı; çok seçimli alan kaç eleman içerirse içersin bir sayılır."""
        return len(config.active_fields())

    # --- Aktif filtre durumu ---

    def set_active_category(self, category: Union[SearchCategory, str]) -> None:
        self.active_category = SearchCategory(category)

    def filters_for(self, category: Union[SearchCategory, str]) -> FilterConfig:
        return self._filters[SearchCategory(category)]

    def update_filters(self, category: Union[SearchCategory, str], **changes: Any) -> FilterConfig:
        category = SearchCategory(category)
        self._filters[category] = self._filters[category].merged(**changes)
        return self._filters[category]

    def clear_filters(self, category: Optional[Union[SearchCategory, str]] = None) -> None:
        """Verilen kategorinin, kategori yoksa tüm kategorilerin filtrelerini temizler."""
        if category is None:
            self._filters = {c: empty_filters(c) for c in SearchCategory}
            return
        category = SearchCategory(category)
        self._filters[category] = empty_filters(category)

    def active_count(self, category: Union[SearchCategory, str]) -> int:
        return self.active_field_count(self.filters_for(category))

    # --- Presetler ve son aramalar ---

    def _store(self) -> PresetStore:
        if self.preset_store is None:
            raise RuntimeError("PresetStore yapılandırılmamış")
        return self.preset_store

    def save_preset(self, name: str, category: Union[SearchCategory, str]) -> FilterPreset:
        return self._store().save(name, category, self.filters_for(category))

    def delete_preset(self, preset_id: str) -> bool:
        return self._store().delete(preset_id)

    def load_preset(self, preset: FilterPreset) -> FilterConfig:
        """Presetin filtrelerini aktif konfigürasyona kopyalar; depoya yazmaz."""
        config = type(preset.filters).from_dict(preset.filters.to_dict())
        self._filters[preset.category] = config
        self.active_category = preset.category
        return config

    def record_search(self, category: Union[SearchCategory, str], query: str) -> RecentSearch:
        return self._store().record(category, query, self.filters_for(category))

    def clear_recent_searches(self) -> None:
        self._store().clear_recent()

    @property
    def presets(self) -> list[FilterPreset]:
        return self._store().presets

    @property
    def recent_searches(self) -> list[RecentSearch]:
        return self._store().recent_searches
