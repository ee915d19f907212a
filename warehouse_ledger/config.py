"""Ortam değişkenlerinden okunan ayarlar. Proje kökündeki .env yüklenir."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning("%s geçersiz (%r), varsayılan kullanılıyor: %s", name, raw, default)
        return default


@dataclass
class Settings:
    region_name: str = "us-west-2"
    products_table: str = "Products"
    locations_table: str = "Locations"
    movements_table: str = "StockMovements"
    settings_table: str = "UserSettings"
    recent_search_limit: int = 10
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            region_name=os.environ.get("AWS_DEFAULT_REGION", "us-west-2"),
            products_table=os.environ.get("LEDGER_PRODUCTS_TABLE", "Products"),
            locations_table=os.environ.get("LEDGER_LOCATIONS_TABLE", "Locations"),
            movements_table=os.environ.get("LEDGER_MOVEMENTS_TABLE", "StockMovements"),
            settings_table=os.environ.get("LEDGER_SETTINGS_TABLE", "UserSettings"),
            recent_search_limit=_env_int("LEDGER_RECENT_SEARCH_LIMIT", 10),
            log_level=os.environ.get("LEDGER_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("mcp").setLevel(logging.WARNING)
