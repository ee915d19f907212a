"""Depo, ürün ve stok hareketi veri modelleri."""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)

_CODE_IN_PARENS = re.compile(r"\(([^)]+)\)")


class MovementStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    COMPLETED = "completed"

    @property
    def is_open(self) -> bool:
        """Taslak veya bekleyen hareketler henüz stoğa yansımamıştır."""
        return self is not MovementStatus.COMPLETED


class MovementType(str, Enum):
    IN = "in"
    OUT = "out"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class UtilizationLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    OVERFULL = "overfull"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_movement_id() -> str:
    """Sunucu id döndürmediğinde kullanılan yedek hareket id'si."""
    stamp = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"mv_{stamp}_{uuid.uuid4().hex[:6]}"


def normalize_location_key(key: Any) -> str:
    """'Raf A (A1-B2)' biçimindeki anahtarları 'A1-B2' koduna indirger."""
    text = str(key if key is not None else "").strip()
    if not text:
        return ""
    match = _CODE_IN_PARENS.search(text)
    return (match.group(1) if match else text).strip()


def to_int(value: Any, default: int = 0) -> int:
    """Sayısal olmayan değerleri varsayılana düşürür, hiçbir zaman hata fırlatmaz."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            return default


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO 8601 zaman damgasını naive UTC datetime'a çevirir; bozuksa None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.warning("Geçersiz zaman damgası yok sayıldı: %r", value)
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class LocationStock(MutableMapping):
    """Lokasyon kodu -> adet eşlemesi.

    Sıralı, negatif olmayan tamsayı değerler tutar. Ham veri düz bir dict,
    (kod, adet) çiftleri ya da {"location": ..., "quantity": ...} kayıtları
    olabilir; hepsi aynı kanonik biçime dönüştürülür.
    """

    def __init__(self, entries: Optional[Mapping[str, Any]] = None) -> None:
        self._data: dict[str, int] = {}
        if entries:
            for key, qty in entries.items():
                self.add(key, qty)

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["LocationStock"]:
        """Dış kaynaktan gelen locationStock alanını okur. Yoksa None döner."""
        if raw is None:
            return None
        if isinstance(raw, LocationStock):
            return raw.copy()
        ledger = cls()
        if isinstance(raw, Mapping):
            for key, qty in raw.items():
                ledger.add(key, qty)
            return ledger
        if isinstance(raw, (list, tuple)):
            for entry in raw:
                if isinstance(entry, Mapping):
                    ledger.add(entry.get("location") or entry.get("code"), entry.get("quantity"))
                elif isinstance(entry, (list, tuple)) and len(entry) == 2:
                    ledger.add(entry[0], entry[1])
                else:
                    logger.warning("Tanınmayan locationStock kaydı atlandı: %r", entry)
            return ledger
        logger.warning("Tanınmayan locationStock biçimi yok sayıldı: %r", type(raw).__name__)
        return None

    def add(self, key: Any, qty: Any) -> None:
        """Normalize edilmiş koda adet ekler (aynı koda düşen girişler toplanır)."""
        code = normalize_location_key(key)
        if not code:
            return
        self[code] = self._data.get(code, 0) + self._clip(code, qty)

    @staticmethod
    def _clip(code: str, qty: Any) -> int:
        value = to_int(qty)
        if value < 0:
            logger.warning("Negatif lokasyon stoğu sıfırlandı: %s=%s", code, value)
            return 0
        return value

    def __getitem__(self, key: str) -> int:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = self._clip(key, value)

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"LocationStock({self._data!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, LocationStock):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def total(self) -> int:
        return sum(self._data.values())

    def copy(self) -> "LocationStock":
        clone = LocationStock()
        clone._data = dict(self._data)
        return clone

    def to_dict(self) -> dict[str, int]:
        return dict(self._data)


@dataclass
class Product:
    product_id: str
    name: str
    stock: int = 0
    location: str = ""
    location_stock: Optional[LocationStock] = None
    min_stock: int = 0
    reserved_stock: int = 0
    available_stock: int = 0
    category: str = ""
    category_name: Optional[str] = None
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    barcode: str = ""
    brand: str = ""
    model: str = ""
    purchase_price: float = 0.0
    sale_price: float = 0.0
    created_at: Optional[str] = None
    serial_numbers: list[str] = field(default_factory=list)

    @property
    def stock_status(self) -> StockStatus:
        if self.stock <= 0:
            return StockStatus.OUT_OF_STOCK
        if self.stock <= self.min_stock:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        """Depodan gelen ham ürün kaydını modele çevirir."""
        product_id = str(data.get("product_id") or data.get("id") or "")
        if not product_id:
            product_id = f"prd_{uuid.uuid4().hex[:8]}"
            logger.warning("Id'siz ürün kaydına yedek id atandı: %s", product_id)
        stock = max(0, to_int(data.get("stock")))
        return cls(
            product_id=product_id,
            name=str(data.get("name") or ""),
            stock=stock,
            location=normalize_location_key(data.get("location")),
            location_stock=LocationStock.from_raw(data.get("location_stock")),
            min_stock=to_int(data.get("min_stock")),
            reserved_stock=to_int(data.get("reserved_stock")),
            available_stock=to_int(data.get("available_stock"), stock),
            category=str(data.get("category") or ""),
            category_name=data.get("category_name"),
            supplier_id=data.get("supplier_id"),
            supplier_name=data.get("supplier_name"),
            barcode=str(data.get("barcode") or ""),
            brand=str(data.get("brand") or ""),
            model=str(data.get("model") or ""),
            purchase_price=to_float(data.get("purchase_price")),
            sale_price=to_float(data.get("sale_price")),
            created_at=data.get("created_at"),
            serial_numbers=list(data.get("serial_numbers") or []),
        )


@dataclass
class WarehouseLocation:
    code: str
    name: str
    capacity: int = 0
    zone: str = "A"
    level: int = 0
    section: int = 0
    location_id: Optional[str] = None
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WarehouseLocation":
        return cls(
            code=normalize_location_key(data.get("code")),
            name=str(data.get("name") or ""),
            capacity=max(0, to_int(data.get("capacity"))),
            zone=str(data.get("zone") or "A"),
            level=to_int(data.get("level")),
            section=to_int(data.get("section")),
            location_id=data.get("location_id") or data.get("id"),
            description=str(data.get("description") or ""),
        )


@dataclass
class MovementRecord:
    movement_id: str
    product_id: str
    quantity: int
    from_location: str
    to_location: str
    status: MovementStatus = MovementStatus.DRAFT
    batch_number: Optional[str] = None
    movement_type: MovementType = MovementType.TRANSFER
    user_id: str = ""
    timestamp: str = field(default_factory=utc_now_iso)
    notes: str = ""
    reason: str = ""
    product_name: Optional[str] = None

    @property
    def batch_id(self) -> str:
        """Gruplanmamış hareket kendi id'siyle tek elemanlı bir parti oluşturur."""
        return self.batch_number or self.movement_id

    @property
    def is_open(self) -> bool:
        return self.status.is_open

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MovementRecord":
        movement_id = str(data.get("movement_id") or data.get("id") or "")
        if not movement_id:
            movement_id = generate_movement_id()
            logger.warning("Id'siz hareket kaydına yedek id atandı: %s", movement_id)
        try:
            status = MovementStatus(data.get("status") or MovementStatus.COMPLETED.value)
        except ValueError:
            logger.warning("Bilinmeyen hareket durumu %r, 'completed' varsayıldı", data.get("status"))
            status = MovementStatus.COMPLETED
        try:
            movement_type = MovementType(data.get("movement_type") or MovementType.TRANSFER.value)
        except ValueError:
            movement_type = MovementType.TRANSFER
        return cls(
            movement_id=movement_id,
            product_id=str(data.get("product_id") or ""),
            quantity=to_int(data.get("quantity")),
            from_location=normalize_location_key(data.get("from_location")),
            to_location=normalize_location_key(data.get("to_location")),
            status=status,
            batch_number=data.get("batch_number") or None,
            movement_type=movement_type,
            user_id=str(data.get("user_id") or ""),
            timestamp=str(data.get("timestamp") or utc_now_iso()),
            notes=str(data.get("notes") or ""),
            reason=str(data.get("reason") or ""),
            product_name=data.get("product_name"),
        )

    def to_dict(self) -> dict[str, Any]:
        item: dict[str, Any] = {
            "movement_id": self.movement_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "from_location": self.from_location,
            "to_location": self.to_location,
            "status": self.status.value,
            "movement_type": self.movement_type.value,
            "user_id": self.user_id,
            "timestamp": self.timestamp,
            "notes": self.notes,
            "reason": self.reason,
        }
        if self.batch_number:
            item["batch_number"] = self.batch_number
        return item


@dataclass
class MovementGroup:
    representative: MovementRecord
    batch_id: str
    grouped_count: int
    is_grouped: bool
    status: MovementStatus
    members: list[MovementRecord] = field(default_factory=list)


@dataclass
class EditableItem:
    product_id: str
    from_location: str
    to_location: str
    quantity: int
    notes: str = ""
    source_ids: list[str] = field(default_factory=list)


@dataclass
class TransferItem:
    """Çok kalemli transfer formundaki tek satır."""

    product_id: str
    quantity: int
    from_location: str
    to_location: str
    notes: str = ""
