"""Hareket Partisi Motoru - lokasyonlar arası transferlerin yaşam döngüsü.

- Transfer isteklerini doğrular ve hareket kaydı oluşturur
- Aynı parti numarasını taşıyan hareketleri tek bir transfer olarak gruplar
- Taslak -> tamamlandı geçişini tek ve atomik bir istekle yapar
- Taslak partiyi düzenlenebilir kalemlere geri çevirir
- Tek bir hareket kaydını siler

Stoğu değiştirme yetkisi olan tek bileşendir. Yerel kopya yalnızca depo
isteği başarılı olduktan sonra güncellenir.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from warehouse_ledger.errors import InsufficientStockError, ValidationError
from warehouse_ledger.models.warehouse import (
    EditableItem,
    LocationStock,
    MovementGroup,
    MovementRecord,
    MovementStatus,
    MovementType,
    Product,
    TransferItem,
    normalize_location_key,
    parse_timestamp,
    utc_now_iso,
)
from warehouse_ledger.repositories.envelope import unwrap
from warehouse_ledger.services.location_ledger import LocationLedger
from warehouse_ledger.services.snapshot import InventorySnapshot

logger = logging.getLogger(__name__)

TRANSFER_REASON = "Ürün transferi"


@dataclass
class BatchCompletion:
    batch_id: str
    completed_ids: list[str] = field(default_factory=list)
    ledgers: dict[str, LocationStock] = field(default_factory=dict)

    @property
    def completed_count(self) -> int:
        return len(self.completed_ids)


def _new_movement_id() -> str:
    return f"MV-{uuid.uuid4().hex[:8].upper()}"


def _new_batch_number() -> str:
    return f"BATCH-{uuid.uuid4().hex[:8].upper()}"


def _parse_status(status: Union[MovementStatus, str]) -> MovementStatus:
    try:
        return MovementStatus(status)
    except ValueError:
        raise ValidationError(f"Geçersiz hareket durumu: {status}") from None


class MovementBatchEngine:
    """Transfer hareketlerini ve partilerini yöneten motor."""

    def __init__(
        self,
        snapshot: InventorySnapshot,
        movement_repository: Optional[Any] = None,
        ledger: Optional[LocationLedger] = None,
    ):
        self.snapshot = snapshot
        self.movements = movement_repository or snapshot.movement_repository
        self.ledger = ledger or LocationLedger()

    # --- Doğrulama ---

    def validate_transfer(
        self, product_id: str, quantity: Any, from_location: str, to_location: str
    ) -> Product:
        """Transfer isteğini depoya gitmeden önce doğrular.

        Kontroller:
        - Miktar pozitif bir tamsayı mı
        - Kaynak ve hedef lokasyon belirtilmiş ve farklı mı
        - Ürün ve iki lokasyon da yerel kopyada var mı
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError(f"Transfer miktarı tamsayı olmalıdır: {quantity!r}")
        if quantity <= 0:
            raise ValidationError("Transfer miktarı pozitif olmalıdır")

        from_code = normalize_location_key(from_location)
        to_code = normalize_location_key(to_location)
        if not from_code or not to_code:
            raise ValidationError("Kaynak ve hedef lokasyon belirtilmelidir")
        if from_code == to_code:
            raise ValidationError("Kaynak ve hedef lokasyon aynı olamaz")

        product = self.snapshot.product(product_id)
        if product is None:
            raise ValidationError(f"Ürün bulunamadı: {product_id}")
        for code in (from_code, to_code):
            if not self.snapshot.has_location(code):
                raise ValidationError(f"Lokasyon bulunamadı: {code}")
        return product

    # --- Transfer oluşturma ---

    def _build_record(
        self,
        product_id: str,
        quantity: int,
        from_location: str,
        to_location: str,
        notes: str,
        status: MovementStatus,
        batch_number: Optional[str],
        user_id: str,
    ) -> MovementRecord:
        return MovementRecord(
            movement_id=_new_movement_id(),
            product_id=product_id,
            quantity=quantity,
            from_location=normalize_location_key(from_location),
            to_location=normalize_location_key(to_location),
            status=status,
            batch_number=batch_number,
            movement_type=MovementType.TRANSFER,
            user_id=user_id,
            timestamp=utc_now_iso(),
            notes=notes.strip(),
            reason=TRANSFER_REASON,
        )

    def create_transfer(
        self,
        product_id: str,
        quantity: int,
        from_location: str,
        to_location: str,
        notes: str = "",
        status: Union[MovementStatus, str] = MovementStatus.DRAFT,
        batch_number: Optional[str] = None,
        user_id: str = "",
    ) -> MovementRecord:
        """Tek kalemli transfer hareketi oluşturur.

        Taslak/bekleyen kayıt stoğa dokunmaz. 'completed' olarak istenen kayıt,
        stok değişiklikleriyle birlikte tek transaction'da yazılır.
        """
        status = _parse_status(status)
        self.validate_transfer(product_id, quantity, from_location, to_location)
        record = self._build_record(
            product_id, quantity, from_location, to_location, notes, status, batch_number, user_id
        )

        if status is MovementStatus.COMPLETED:
            self._create_completed([record], record.batch_id)
            return record

        data = unwrap(self.movements.create(record.to_dict()), "movements.create")
        created = MovementRecord.from_dict(data or record.to_dict())
        self.snapshot.add_movement(created)
        logger.info(
            "Transfer oluşturuldu: %s %s x%s %s -> %s [%s]",
            created.movement_id, created.product_id, created.quantity,
            created.from_location, created.to_location, created.status.value,
        )
        return created

    def create_batch(
        self,
        items: Iterable[TransferItem],
        status: Union[MovementStatus, str] = MovementStatus.DRAFT,
        notes: str = "",
        batch_number: Optional[str] = None,
        user_id: str = "",
    ) -> list[MovementRecord]:
        """Çok kalemli transferi ortak parti numarasıyla oluşturur.

        Tüm kalemler önce doğrulanır; biri bile geçersizse hiçbir kayıt yazılmaz.
        Kendi notu olmayan kalemler transferin genel notunu alır.
        """
        status = _parse_status(status)
        items = list(items)
        if not items:
            raise ValidationError("Transfer en az bir kalem içermelidir")
        for item in items:
            self.validate_transfer(item.product_id, item.quantity, item.from_location, item.to_location)

        batch_number = batch_number or _new_batch_number()
        records = [
            self._build_record(
                item.product_id, item.quantity, item.from_location, item.to_location,
                item.notes or notes, status, batch_number, user_id,
            )
            for item in items
        ]

        if status is MovementStatus.COMPLETED:
            self._create_completed(records, batch_number)
            return records

        unwrap(self.movements.create_many([r.to_dict() for r in records]), "movements.create_many")
        for record in reversed(records):
            self.snapshot.add_movement(record)
        logger.info("Taslak parti oluşturuldu: %s (%d kalem)", batch_number, len(records))
        return records

    def _create_completed(self, records: list[MovementRecord], batch_id: str) -> None:
        plans = self._plan_completion(records)
        response = self.movements.complete_batch(
            batch_id,
            [],
            {pid: ledger.to_dict() for pid, ledger in plans.items()},
            new_movements=[r.to_dict() for r in records],
        )
        unwrap(response, "movements.complete_batch")
        self._apply_plans(plans)
        for record in reversed(records):
            self.snapshot.add_movement(record)
        logger.info("Transfer doğrudan tamamlandı: %s (%d kalem)", batch_id, len(records))

    # --- Tamamlama ---

    def _plan_completion(self, records: Iterable[MovementRecord]) -> dict[str, LocationStock]:
        """Her ürün için tamamlama sonrası lokasyon dağılımını hesaplar.

        Kaynakta yeterli stok yoksa InsufficientStockError fırlatır; bu durumda
        hiçbir şey yazılmaz.
        """
        plans: dict[str, LocationStock] = {}
        for record in records:
            if record.movement_type is not MovementType.TRANSFER:
                logger.warning(
                    "Transfer olmayan hareket stok dağılımını değiştirmez: %s (%s)",
                    record.movement_id, record.movement_type.value,
                )
                continue
            product = self.snapshot.product(record.product_id)
            if product is None:
                raise ValidationError(f"Ürün bulunamadı: {record.product_id} (hareket {record.movement_id})")

            ledger = plans.get(product.product_id)
            if ledger is None:
                ledger = self.ledger.stock_breakdown(product)
            available = ledger.get(record.from_location, 0)
            if available < record.quantity:
                raise InsufficientStockError(
                    f"Yetersiz stok: {record.product_id}/{record.from_location} "
                    f"mevcut={available}, istenen={record.quantity}"
                )
            ledger[record.from_location] = available - record.quantity
            ledger[record.to_location] = ledger.get(record.to_location, 0) + record.quantity
            plans[product.product_id] = ledger
        return plans

    def _apply_plans(self, plans: dict[str, LocationStock]) -> None:
        for product_id, ledger in plans.items():
            self.snapshot.replace_location_stock(product_id, ledger)

    def complete_batch(self, batch_id: str) -> BatchCompletion:
        """Partinin tüm taslak/bekleyen hareketlerini tamamlar.

        Tamamlanmış partide tekrar çağrılırsa hiçbir şey yapmaz. Stok
        değişiklikleri ve durum güncellemeleri tek istekte gönderilir; istek
        başarısız olursa yerel durum değişmez.
        """
        members = self.snapshot.batch_members(batch_id)
        if not members:
            raise ValidationError(f"Parti bulunamadı: {batch_id}")

        open_members = [m for m in members if m.is_open]
        if not open_members:
            logger.info("Parti zaten tamamlanmış: %s", batch_id)
            return BatchCompletion(batch_id=batch_id)

        plans = self._plan_completion(open_members)
        movement_ids = [m.movement_id for m in open_members]
        response = self.movements.complete_batch(
            batch_id,
            movement_ids,
            {pid: ledger.to_dict() for pid, ledger in plans.items()},
        )
        unwrap(response, "movements.complete_batch")

        self._apply_plans(plans)
        self.snapshot.mark_completed(movement_ids)
        logger.info("Parti tamamlandı: %s (%d hareket)", batch_id, len(movement_ids))
        return BatchCompletion(batch_id=batch_id, completed_ids=movement_ids, ledgers=plans)

    # --- Düzenleme ---

    def edit_batch(self, batch_id: str) -> list[EditableItem]:
        """Taslak partiyi düzenleme formu için kalemlere çevirir.

        Aynı (ürün, kaynak, hedef) kombinasyonları tek kalemde birleşir:
        miktarlar toplanır, farklı notlar '; ' ile eklenir.
        """
        members = self.snapshot.batch_members(batch_id)
        if not members:
            raise ValidationError(f"Transfer bulunamadı: {batch_id}")
        if not any(m.is_open for m in members):
            raise ValidationError(f"Tamamlanmış transfer düzenlenemez: {batch_id}")

        items: dict[tuple[str, str, str], EditableItem] = {}
        seen_notes: dict[tuple[str, str, str], set[str]] = {}
        for m in members:
            if not m.product_id:
                continue
            key = (m.product_id, m.from_location, m.to_location)
            existing = items.get(key)
            if existing is None:
                items[key] = EditableItem(
                    product_id=m.product_id,
                    from_location=m.from_location,
                    to_location=m.to_location,
                    quantity=m.quantity,
                    notes=m.notes,
                    source_ids=[m.movement_id],
                )
                seen_notes[key] = {m.notes} if m.notes else set()
                continue
            existing.quantity += m.quantity
            existing.source_ids.append(m.movement_id)
            if m.notes and m.notes not in seen_notes[key]:
                seen_notes[key].add(m.notes)
                existing.notes = f"{existing.notes}; {m.notes}" if existing.notes else m.notes
        return list(items.values())

    def amend_notes(self, movement_id: str, notes: str) -> MovementRecord:
        """Yalnızca not alanını günceller; tamamlanmış kayıtlarda da izinlidir."""
        record = self.snapshot.movement(movement_id)
        if record is None:
            raise ValidationError(f"Hareket bulunamadı: {movement_id}")
        unwrap(self.movements.update(movement_id, {"notes": notes}), "movements.update")
        record.notes = notes
        return record

    # --- Silme ---

    def delete_record(self, movement_id: str) -> Optional[MovementRecord]:
        """Tek bir hareket kaydını siler.

        Taslak silme stoğa dokunmaz. Tamamlanmış kayıt silindiğinde stok
        geri alınmaz; kayıt yalnızca listeden kalkar.
        """
        unwrap(self.movements.delete(movement_id), "movements.delete")
        removed = self.snapshot.remove_movement(movement_id)
        if removed is not None and removed.status is MovementStatus.COMPLETED:
            logger.warning(
                "Tamamlanmış hareket silindi, stok geri alınmadı: %s (%s x%s %s -> %s)",
                removed.movement_id, removed.product_id, removed.quantity,
                removed.from_location, removed.to_location,
            )
        else:
            logger.info("Hareket silindi: %s", movement_id)
        return removed

    # --- Listeleme ---

    def group_for_display(self, records: Optional[Iterable[MovementRecord]] = None) -> list[MovementGroup]:
        """Hareketleri parti numarasına göre gruplar.

        Taslak/bekleyen üyesi olan grup taslak sayılır. Taslak gruplar önce,
        her bantta en yeni önce sıralanır.
        """
        if records is None:
            records = self.snapshot.movements
        buckets: dict[str, list[MovementRecord]] = {}
        for record in records:
            buckets.setdefault(record.batch_id, []).append(record)

        groups = []
        for batch_id, members in buckets.items():
            status = MovementStatus.DRAFT if any(m.is_open for m in members) else MovementStatus.COMPLETED
            groups.append(MovementGroup(
                representative=members[0],
                batch_id=batch_id,
                grouped_count=len(members),
                is_grouped=len(members) > 1,
                status=status,
                members=members,
            ))

        groups.sort(key=lambda g: parse_timestamp(g.representative.timestamp) or datetime.min, reverse=True)
        groups.sort(key=lambda g: 0 if g.status is MovementStatus.DRAFT else 1)
        return groups

    @staticmethod
    def draft_count(records: Iterable[MovementRecord]) -> int:
        return sum(1 for r in records if r.is_open)
