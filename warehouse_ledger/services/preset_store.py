"""Filtre presetleri ve son aramaların kalıcı saklanması."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TypeVar, Union

from warehouse_ledger.errors import DataShapeError
from warehouse_ledger.models.filters import FilterConfig, FilterPreset, RecentSearch, SearchCategory
from warehouse_ledger.models.warehouse import utc_now_iso
from warehouse_ledger.repositories.storage import KeyValueStorage

logger = logging.getLogger(__name__)

PRESETS_KEY = "searchFilterPresets"
RECENT_SEARCHES_KEY = "recentSearches"
DEFAULT_RECENT_LIMIT = 10

T = TypeVar("T")


def _new_id(prefix: str) -> str:
    """Aynı milisaniyede üretilse bile benzersiz id."""
    stamp = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"{prefix}_{stamp}_{uuid.uuid4().hex[:6]}"


def _parse_entry(entry: Any, parser: Callable[[Any], T]) -> T:
    if not isinstance(entry, dict):
        raise DataShapeError(f"Kayıt dict değil: {type(entry).__name__}")
    try:
        return parser(entry)
    except (KeyError, TypeError, ValueError) as e:
        raise DataShapeError(str(e)) from e


class PresetStore:
    """Presetleri ve son aramaları bir KeyValueStorage üzerinde tutar.

    Her iki anahtar yalnızca kurulumda okunur; sonraki her değişiklik ilgili
    anahtarın tamamını yeniden yazar.
    """

    def __init__(self, storage: KeyValueStorage, limit: int = DEFAULT_RECENT_LIMIT):
        self.storage = storage
        self.limit = limit
        self._presets: list[FilterPreset] = self._load(PRESETS_KEY, FilterPreset.from_dict)
        self._recent: list[RecentSearch] = self._load(RECENT_SEARCHES_KEY, RecentSearch.from_dict)[:limit]

    def _load(self, key: str, parser: Callable[[Any], T]) -> list[T]:
        raw = self.storage.get(key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("%s liste değil, yok sayıldı", key)
            return []
        entries = []
        for entry in raw:
            try:
                entries.append(_parse_entry(entry, parser))
            except DataShapeError as e:
                logger.warning("%s içindeki bozuk kayıt atlandı: %s", key, e)
        return entries

    # --- Presetler ---

    @property
    def presets(self) -> list[FilterPreset]:
        return list(self._presets)

    def save(self, name: str, category: Union[SearchCategory, str], filters: FilterConfig) -> FilterPreset:
        """Mevcut filtrelerin bir kopyasını isimli preset olarak saklar."""
        category = SearchCategory(category)
        preset = FilterPreset(
            preset_id=_new_id("preset"),
            name=name.strip(),
            category=category,
            # Sonraki düzenlemeler presete yansımasın
            filters=type(filters).from_dict(filters.to_dict()),
            created_at=utc_now_iso(),
        )
        self._write_presets(self._presets + [preset])
        logger.info("Filtre preseti kaydedildi: %s (%s)", preset.name, category.value)
        return preset

    def delete(self, preset_id: str) -> bool:
        remaining = [p for p in self._presets if p.preset_id != preset_id]
        if len(remaining) == len(self._presets):
            return False
        self._write_presets(remaining)
        return True

    def get(self, preset_id: str) -> Optional[FilterPreset]:
        for preset in self._presets:
            if preset.preset_id == preset_id:
                return preset
        return None

    def _write_presets(self, presets: list[FilterPreset]) -> None:
        # Bellek yalnızca yazma başarılı olursa güncellenir
        self.storage.set(PRESETS_KEY, [p.to_dict() for p in presets])
        self._presets = presets

    # --- Son aramalar ---

    @property
    def recent_searches(self) -> list[RecentSearch]:
        return list(self._recent)

    def record(self, category: Union[SearchCategory, str], query: str, filters: FilterConfig) -> RecentSearch:
        """Aramayı en başa ekler ve listeyi sınırda keser."""
        category = SearchCategory(category)
        search = RecentSearch(
            search_id=_new_id("search"),
            category=category,
            query=query,
            filters=type(filters).from_dict(filters.to_dict()),
            timestamp=utc_now_iso(),
        )
        recent = [search] + self._recent[: max(0, self.limit - 1)]
        self.storage.set(RECENT_SEARCHES_KEY, [s.to_dict() for s in recent])
        self._recent = recent
        return search

    def clear_recent(self) -> None:
        self.storage.remove(RECENT_SEARCHES_KEY)
        self._recent = []
