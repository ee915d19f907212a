"""Arama filtresi konfigürasyonları, preset ve son arama modelleri.

Her arama kategorisinin kendi tipli filtre sınıfı vardır. Boş (None, "" veya
boş liste) alanlar eşleşmeyi kısıtlamaz.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Union

logger = logging.getLogger(__name__)


class SearchCategory(str, Enum):
    PRODUCTS = "products"
    SALES = "sales"
    MOVEMENTS = "movements"
    CLIENTS = "clients"
    FINANCIAL = "financial"


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    CHOICES = "choices"
    DATE = "date"
    REFERENCE = "reference"
    EXACT = "exact"


def text_field() -> Any:
    return field(default=None, metadata={"kind": FieldKind.TEXT})


def number_field() -> Any:
    return field(default=None, metadata={"kind": FieldKind.NUMBER})


def choices_field() -> Any:
    return field(default_factory=list, metadata={"kind": FieldKind.CHOICES})


def date_field() -> Any:
    return field(default=None, metadata={"kind": FieldKind.DATE})


def reference_field() -> Any:
    return field(default=None, metadata={"kind": FieldKind.REFERENCE})


def exact_field() -> Any:
    return field(default=None, metadata={"kind": FieldKind.EXACT})


def _coerce(kind: FieldKind, name: str, value: Any) -> Any:
    """Saklanmış ham değeri alan tipine çevirir; bozuk değer boş sayılır."""
    if value is None:
        return [] if kind is FieldKind.CHOICES else None
    if kind is FieldKind.CHOICES:
        if isinstance(value, str):
            return [value] if value else []
        if isinstance(value, (list, tuple, set)):
            return [str(v) for v in value]
        logger.warning("Filtre alanı %s için geçersiz liste yok sayıldı: %r", name, value)
        return []
    if kind is FieldKind.NUMBER:
        if isinstance(value, bool) or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning("Filtre alanı %s için sayısal olmayan değer yok sayıldı: %r", name, value)
            return None
    return str(value)


@dataclass
class FilterConfig:
    """Kategori filtrelerinin ortak tabanı."""

    search_category: ClassVar[SearchCategory]

    def active_fields(self) -> dict[str, Any]:
        """Boş olmayan alanları döndürür."""
        active = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or value == "":
                continue
            if isinstance(value, list) and not value:
                continue
            active[f.name] = value
        return active

    def to_dict(self) -> dict[str, Any]:
        return {
            name: list(value) if isinstance(value, list) else value
            for name, value in self.active_fields().items()
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "FilterConfig":
        data = data or {}
        kwargs = {}
        for f in fields(cls):
            if f.name in data:
                kwargs[f.name] = _coerce(f.metadata["kind"], f.name, data[f.name])
        return cls(**kwargs)

    def merged(self, **changes: Any) -> "FilterConfig":
        """Mevcut filtrelerin üzerine verilen alanları yazar."""
        data = self.to_dict()
        data.update(changes)
        return type(self).from_dict(data)

    @classmethod
    def field_kind(cls, name: str) -> FieldKind:
        for f in fields(cls):
            if f.name == name:
                return f.metadata["kind"]
        raise KeyError(name)


@dataclass
class ProductFilters(FilterConfig):
    search_category: ClassVar[SearchCategory] = SearchCategory.PRODUCTS

    name: Optional[str] = text_field()
    sku: Optional[str] = text_field()
    category: Optional[str] = reference_field()
    price_min: Optional[float] = number_field()
    price_max: Optional[float] = number_field()
    stock_status: list[str] = choices_field()
    supplier: Optional[str] = reference_field()
    movement_id: Optional[str] = text_field()
    product_id: Optional[str] = text_field()
    created_from: Optional[str] = date_field()
    created_to: Optional[str] = date_field()


@dataclass
class SalesFilters(FilterConfig):
    search_category: ClassVar[SearchCategory] = SearchCategory.SALES

    date_from: Optional[str] = date_field()
    date_to: Optional[str] = date_field()
    amount_min: Optional[float] = number_field()
    amount_max: Optional[float] = number_field()
    payment_method: list[str] = choices_field()
    status: list[str] = choices_field()
    cashier: Optional[str] = text_field()


@dataclass
class MovementFilters(FilterConfig):
    search_category: ClassVar[SearchCategory] = SearchCategory.MOVEMENTS

    query: Optional[str] = text_field()
    date_from: Optional[str] = date_field()
    date_to: Optional[str] = date_field()
    product_id: Optional[str] = exact_field()
    category: Optional[str] = exact_field()
    from_location: Optional[str] = exact_field()
    to_location: Optional[str] = exact_field()
    status: list[str] = choices_field()


@dataclass
class ClientFilters(FilterConfig):
    search_category: ClassVar[SearchCategory] = SearchCategory.CLIENTS

    name: Optional[str] = text_field()
    phone: Optional[str] = text_field()
    email: Optional[str] = text_field()
    type: list[str] = choices_field()
    registration_from: Optional[str] = date_field()
    registration_to: Optional[str] = date_field()


@dataclass
class FinancialFilters(FilterConfig):
    search_category: ClassVar[SearchCategory] = SearchCategory.FINANCIAL

    transaction_type: list[str] = choices_field()
    amount_min: Optional[float] = number_field()
    amount_max: Optional[float] = number_field()
    date_from: Optional[str] = date_field()
    date_to: Optional[str] = date_field()
    category: Optional[str] = reference_field()
    payment_method: list[str] = choices_field()


AnyFilters = Union[ProductFilters, SalesFilters, MovementFilters, ClientFilters, FinancialFilters]

FILTER_TYPES: dict[SearchCategory, type[FilterConfig]] = {
    SearchCategory.PRODUCTS: ProductFilters,
    SearchCategory.SALES: SalesFilters,
    SearchCategory.MOVEMENTS: MovementFilters,
    SearchCategory.CLIENTS: ClientFilters,
    SearchCategory.FINANCIAL: FinancialFilters,
}


def empty_filters(category: SearchCategory) -> FilterConfig:
    return FILTER_TYPES[SearchCategory(category)]()


def filters_from_dict(category: SearchCategory, data: Optional[Mapping[str, Any]]) -> FilterConfig:
    return FILTER_TYPES[SearchCategory(category)].from_dict(data)


# --- Ürün dışı arama kayıtları ---


@dataclass
class SaleRecord:
    sale_id: str
    date: Optional[str] = None
    amount: float = 0.0
    payment_method: str = ""
    status: str = ""
    cashier: str = ""


@dataclass
class ClientRecord:
    client_id: str
    name: str = ""
    phone: str = ""
    email: str = ""
    type: str = "regular"
    registered_at: Optional[str] = None


@dataclass
class FinancialTransaction:
    transaction_id: str
    transaction_type: str
    amount: float = 0.0
    date: Optional[str] = None
    category: str = ""
    category_name: Optional[str] = None
    payment_method: str = ""


# --- Kalıcı arama durumu ---


@dataclass
class FilterPreset:
    preset_id: str
    name: str
    category: SearchCategory
    filters: FilterConfig
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.preset_id,
            "name": self.name,
            "category": self.category.value,
            "filters": self.filters.to_dict(),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilterPreset":
        category = SearchCategory(data["category"])
        return cls(
            preset_id=str(data["id"]),
            name=str(data.get("name") or ""),
            category=category,
            filters=filters_from_dict(category, data.get("filters")),
            created_at=str(data.get("createdAt") or ""),
        )


@dataclass
class RecentSearch:
    search_id: str
    category: SearchCategory
    query: str
    filters: FilterConfig
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.search_id,
            "category": self.category.value,
            "query": self.query,
            "filters": self.filters.to_dict(),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RecentSearch":
        category = SearchCategory(data["category"])
        return cls(
            search_id=str(data["id"]),
            category=category,
            query=str(data.get("query") or ""),
            filters=filters_from_dict(category, data.get("filters")),
            timestamp=str(data.get("timestamp") or ""),
        )
